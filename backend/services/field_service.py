"""
Field Service: fields, crop cycles and field activities.

Ownership is enforced by filtering on ``user_id``; admins see every record.
A field may carry at most one active cycle (planning / planted / growing).
The active-cycle check and the following write are separate statements,
so two concurrent requests for the same field can both pass the check.
"""

import logging
from datetime import date as date_type

from database.db import db
from database.models import Field, CropCycle, FieldActivity, SoilAnalysis, ACTIVE_CYCLE_STATUSES
from services.auth_service import AuthService

logger = logging.getLogger('field_service')


def parse_date(value):
    if isinstance(value, date_type):
        return value
    if isinstance(value, str) and value:
        try:
            return date_type.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _clean(value):
    if isinstance(value, str):
        value = value.strip()
    return value or None


class FieldService:

    @staticmethod
    def _scoped(query, model, user):
        if AuthService.is_admin(user):
            return query
        return query.filter(model.user_id == user.id)

    # ──────────────────────────────────────────
    # FIELDS
    # ──────────────────────────────────────────

    @staticmethod
    def get_field(field_id, user):
        return FieldService._scoped(Field.query.filter_by(id=field_id), Field, user).first()

    @staticmethod
    def list_fields(user):
        """All fields for the user, newest first, with their crop cycles."""
        fields = Field.query.filter_by(user_id=user.id).order_by(Field.created_at.desc()).all()
        result = []
        for field in fields:
            field_dict = field.to_dict()
            field_dict['crop_cycles'] = [c.to_dict() for c in field.crop_cycles]
            result.append(field_dict)
        return result

    @staticmethod
    def field_detail(field):
        """Field with cycles and each cycle's activities."""
        field_dict = field.to_dict()
        cycles = []
        for cycle in field.crop_cycles:
            cycle_dict = cycle.to_dict()
            cycle_dict['field_activities'] = [a.to_dict() for a in cycle.activities]
            cycles.append(cycle_dict)
        field_dict['crop_cycles'] = cycles
        return field_dict

    @staticmethod
    def create_field(user, data):
        field = Field(
            user_id=user.id,
            field_name=data['field_name'].strip(),
            area_hectares=float(data['area_hectares']),
            coordinates=data.get('coordinates') or None,
            soil_type=_clean(data.get('soil_type')),
            irrigation_type=_clean(data.get('irrigation_type')),
        )
        db.session.add(field)
        db.session.commit()
        logger.info(f"Field {field.id} created for user {user.id}")
        return field

    @staticmethod
    def update_field(field, data):
        field.field_name = data['field_name'].strip()
        field.area_hectares = float(data['area_hectares'])
        field.coordinates = data.get('coordinates') or None
        field.soil_type = _clean(data.get('soil_type'))
        field.irrigation_type = _clean(data.get('irrigation_type'))
        db.session.commit()
        return field

    @staticmethod
    def has_active_cycle(field_id, exclude_cycle_id=None):
        query = CropCycle.query.filter(
            CropCycle.field_id == field_id,
            CropCycle.status.in_(ACTIVE_CYCLE_STATUSES),
        )
        if exclude_cycle_id:
            query = query.filter(CropCycle.id != exclude_cycle_id)
        return query.first() is not None

    @staticmethod
    def delete_field(field):
        """Delete a field unless it still has an active crop cycle."""
        if FieldService.has_active_cycle(field.id):
            return {"error": "Cannot delete field with active crop cycles"}
        # Soil reports outlive the field they were taken on
        SoilAnalysis.query.filter_by(field_id=field.id).update({'field_id': None}, synchronize_session=False)
        db.session.delete(field)
        db.session.commit()
        logger.info(f"Field {field.id} deleted")
        return {"success": True}

    # ──────────────────────────────────────────
    # CROP CYCLES
    # ──────────────────────────────────────────

    @staticmethod
    def get_cycle(cycle_id, user):
        return FieldService._scoped(CropCycle.query.filter_by(id=cycle_id), CropCycle, user).first()

    @staticmethod
    def cycle_detail(cycle):
        cycle_dict = cycle.to_dict()
        cycle_dict['field'] = cycle.field.summary() if cycle.field else None
        cycle_dict['field_activities'] = [a.to_dict() for a in cycle.activities]
        return cycle_dict

    @staticmethod
    def list_cycles(user, field_id=None, status=None):
        query = CropCycle.query.filter_by(user_id=user.id)
        if field_id:
            query = query.filter_by(field_id=field_id)
        if status:
            query = query.filter_by(status=status)
        cycles = query.order_by(CropCycle.created_at.desc()).all()
        return [FieldService.cycle_detail(c) for c in cycles]

    @staticmethod
    def create_cycle(field, data):
        """New cycles start in 'planning'. Rejected while the field has an active cycle."""
        if FieldService.has_active_cycle(field.id):
            return {"error": "Field already has an active crop cycle"}

        cycle = CropCycle(
            field_id=field.id,
            user_id=field.user_id,
            crop_name=data['crop_name'].strip(),
            variety=_clean(data.get('variety')),
            planting_date=parse_date(data.get('planting_date')),
            expected_harvest_date=parse_date(data.get('expected_harvest_date')),
            status='planning',
            notes=_clean(data.get('notes')),
        )
        db.session.add(cycle)
        db.session.commit()
        logger.info(f"Crop cycle {cycle.id} ({cycle.crop_name}) created on field {field.id}")
        return cycle

    @staticmethod
    def update_cycle(cycle, data):
        new_status = data.get('status')
        if new_status in ACTIVE_CYCLE_STATUSES and not cycle.is_active:
            if FieldService.has_active_cycle(cycle.field_id, exclude_cycle_id=cycle.id):
                return {"error": "Field already has an active crop cycle"}

        if data.get('crop_name'):
            cycle.crop_name = data['crop_name'].strip()
        if new_status:
            cycle.status = new_status
        for key in ('variety', 'notes', 'yield_unit'):
            if key in data:
                setattr(cycle, key, _clean(data[key]))
        for key in ('planting_date', 'expected_harvest_date', 'actual_harvest_date'):
            if key in data:
                setattr(cycle, key, parse_date(data[key]))
        if 'yield_quantity' in data:
            cycle.yield_quantity = float(data['yield_quantity']) if data['yield_quantity'] not in (None, '') else None

        db.session.commit()
        return cycle

    @staticmethod
    def delete_cycle(cycle):
        db.session.delete(cycle)
        db.session.commit()
        logger.info(f"Crop cycle {cycle.id} deleted")

    # ──────────────────────────────────────────
    # FIELD ACTIVITIES
    # ──────────────────────────────────────────

    @staticmethod
    def list_activities(user, crop_cycle_id=None, activity_type=None, limit=50):
        query = FieldActivity.query.filter_by(user_id=user.id)
        if crop_cycle_id:
            query = query.filter_by(crop_cycle_id=crop_cycle_id)
        if activity_type:
            query = query.filter_by(activity_type=activity_type)
        activities = (
            query.order_by(FieldActivity.activity_date.desc(), FieldActivity.created_at.desc())
            .limit(limit)
            .all()
        )
        result = []
        for activity in activities:
            activity_dict = activity.to_dict()
            cycle = activity.crop_cycle
            activity_dict['crop_cycle'] = {
                'id': cycle.id,
                'crop_name': cycle.crop_name,
                'field_name': cycle.field.field_name if cycle.field else None,
            }
            result.append(activity_dict)
        return result

    @staticmethod
    def create_activity(cycle, data, cost=None):
        activity = FieldActivity(
            crop_cycle_id=cycle.id,
            field_id=cycle.field_id,
            user_id=cycle.user_id,
            activity_type=data['activity_type'].strip(),
            activity_date=parse_date(data.get('activity_date')) or date_type.today(),
            materials_used=_clean(data.get('materials_used')),
            cost=cost,
            notes=_clean(data.get('notes')),
        )
        db.session.add(activity)
        db.session.commit()
        return activity
