import logging

from sqlalchemy import or_

from database.db import db
from database.models import Scheme
from services.translation_service import Translator, SUPPORTED_LANGUAGES

logger = logging.getLogger('scheme_service')


class SchemeService:
    TRANSLATABLE_FIELDS = ('name', 'description', 'eligibility', 'benefits')
    EDITABLE_FIELDS = (
        'name', 'name_hi', 'name_mr', 'description', 'description_hi', 'description_mr',
        'category', 'state', 'department', 'eligibility', 'benefits',
        'application_process', 'official_url', 'contact_info', 'is_active',
    )

    @staticmethod
    def list_schemes(state=None, category=None, lang='en'):
        """
        Active schemes ordered by name. A state filter also matches
        "All India" schemes. For hi/mr, stored translations win; the rest
        go through the translation API, falling back to English.
        """
        query = Scheme.query.filter(Scheme.is_active.is_(True))
        if state and state != 'All India':
            query = query.filter(or_(Scheme.state == state, Scheme.state == 'All India'))
        if category:
            query = query.filter(Scheme.category == category)
        schemes = [s.to_dict() for s in query.order_by(Scheme.name).all()]

        if lang not in SUPPORTED_LANGUAGES or lang == 'en':
            return schemes

        translator = Translator(lang)
        for scheme in schemes:
            for field in SchemeService.TRANSLATABLE_FIELDS:
                localized = scheme.get(f"{field}_{lang}")
                scheme[field] = localized or translator.translate(scheme.get(field))
        return schemes

    @staticmethod
    def list_all():
        return [s.to_dict() for s in Scheme.query.order_by(Scheme.created_at.desc()).all()]

    @staticmethod
    def _apply(scheme, data):
        for key in SchemeService.EDITABLE_FIELDS:
            if key in data:
                setattr(scheme, key, data[key])

    @staticmethod
    def create_scheme(data):
        scheme = Scheme()
        SchemeService._apply(scheme, data)
        db.session.add(scheme)
        db.session.commit()
        logger.info(f"Scheme created: {scheme.name}")
        return scheme

    @staticmethod
    def update_scheme(scheme_id, data):
        scheme = db.session.get(Scheme, scheme_id)
        if not scheme:
            return None
        SchemeService._apply(scheme, data)
        db.session.commit()
        return scheme

    @staticmethod
    def delete_scheme(scheme_id):
        scheme = db.session.get(Scheme, scheme_id)
        if not scheme:
            return False
        db.session.delete(scheme)
        db.session.commit()
        return True
