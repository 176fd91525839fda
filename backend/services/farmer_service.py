from database.db import db
from database.models import FarmerProfile


def _to_float(value):
    if value in (None, ''):
        return None
    return float(value)


class FarmerService:
    # ──────────────────────────────────────────
    # PROFILE (one per user)
    # ──────────────────────────────────────────

    @staticmethod
    def get_profile(user_id):
        profile = FarmerProfile.query.filter_by(user_id=user_id).first()
        return profile.to_dict() if profile else None

    @staticmethod
    def _apply(profile, data):
        """
        Copy onboarding fields onto a profile. Accepts the aliases the
        onboarding and settings forms send:
          phone | contact_number, land_area | farm_size | farm_size_hectares,
          irrigation | irrigation_method
        """
        simple_fields = ['full_name', 'state', 'district', 'village', 'language', 'farm_name', 'primary_crop']
        for field in simple_fields:
            if field in data:
                setattr(profile, field, data[field])

        phone = data.get('phone') or data.get('contact_number')
        if phone:
            profile.phone = str(phone).strip()

        for key in ('land_area', 'farm_size', 'farm_size_hectares'):
            if key in data:
                profile.farm_size_hectares = _to_float(data[key])
                break

        irrigation = data.get('irrigation') or data.get('irrigation_method')
        if irrigation:
            profile.irrigation_method = irrigation

    @staticmethod
    def upsert_profile(user_id, data):
        profile = FarmerProfile.query.filter_by(user_id=user_id).first()
        if not profile:
            profile = FarmerProfile(user_id=user_id)
            db.session.add(profile)
        FarmerService._apply(profile, data)
        db.session.commit()
        return profile.to_dict()

    # ──────────────────────────────────────────
    # ADMIN
    # ──────────────────────────────────────────

    @staticmethod
    def list_farmers(limit=50):
        farmers = FarmerProfile.query.order_by(FarmerProfile.created_at.desc()).limit(limit).all()
        return [f.to_dict() for f in farmers]

    @staticmethod
    def create_farmer(data):
        """Admin-entered farmer record, not tied to a login."""
        profile = FarmerProfile(user_id=data.get('user_id'))
        FarmerService._apply(profile, data)
        db.session.add(profile)
        db.session.commit()
        return profile
