"""
Reward tier administration.
Validation and persistence for RewardTier rows.
"""
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Dict, Any
from flask import current_app

from ..extensions import db
from ..models import RewardTier, CustomerQuarterlyReward
from ..utils.exceptions import InvalidInputError, InvalidQuarterError, TierNotFoundError

_MISSING = object()


def _int_field(data: Dict[str, Any], field: str, required: bool = False, nullable: bool = False):
    value = data.get(field, _MISSING)
    if value is _MISSING or (value is None and not nullable) or value == '':
        if required:
            raise InvalidInputError('Missing required fields', field)
        return _MISSING
    if value is None:
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise InvalidInputError(f'{field} must be an integer', field)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f'{field} must be an integer', field)


def _name_field(value) -> str:
    if not isinstance(value, str):
        raise InvalidInputError('Name must be a string', 'name')
    return value.strip()


def _decimal_field(data: Dict[str, Any], field: str, required: bool = False):
    value = data.get(field, _MISSING)
    if value is _MISSING or value is None or value == '':
        if required:
            raise InvalidInputError('Missing required fields', field)
        return _MISSING
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f'{field} must be a number', field)
    if not result.is_finite():
        raise InvalidInputError(f'{field} must be a number', field)
    return result


class RewardTierService:
    """CRUD for quarterly reward tiers."""

    def list_tiers(self, quarter: Optional[int] = None, year: Optional[int] = None) -> List[RewardTier]:
        query = RewardTier.query
        if quarter is not None and year is not None:
            query = query.filter(RewardTier.quarter == quarter, RewardTier.year == year)
        return query.order_by(
            RewardTier.year.desc(),
            RewardTier.quarter.asc(),
            RewardTier.min_cartons.asc()
        ).all()

    def get_tier(self, tier_id: int) -> RewardTier:
        tier = db.session.get(RewardTier, tier_id)
        if not tier:
            raise TierNotFoundError(tier_id)
        return tier

    def create_tier(self, data: Dict[str, Any]) -> RewardTier:
        """
        Create a tier.

        Raises:
            InvalidInputError: Missing fields, quarter outside 1-4, negative
                cartons/cashback, or max_cartons below min_cartons
        """
        name = data.get('name')
        if name is None or name == '':
            raise InvalidInputError('Missing required fields', 'name')
        name = _name_field(name)
        if not name:
            raise InvalidInputError('Missing required fields', 'name')

        quarter = _int_field(data, 'quarter', required=True)
        year = _int_field(data, 'year', required=True)
        min_cartons = _int_field(data, 'min_cartons', required=True)
        max_cartons = _int_field(data, 'max_cartons', nullable=True)
        cashback = _decimal_field(data, 'cashback_per_carton', required=True)

        if max_cartons is _MISSING:
            max_cartons = None

        self._validate(quarter, min_cartons, max_cartons, cashback)

        tier = RewardTier(
            name=name,
            name_ar=data.get('name_ar') or None,
            quarter=quarter,
            year=year,
            min_cartons=min_cartons,
            max_cartons=max_cartons,
            cashback_per_carton=cashback,
            is_active=bool(data['is_active']) if data.get('is_active') is not None else True,
        )
        db.session.add(tier)
        db.session.commit()

        current_app.logger.info(f"Created reward tier {tier.id}: {tier.name} Q{quarter}/{year}")
        return tier

    def update_tier(self, tier_id: int, data: Dict[str, Any]) -> RewardTier:
        """
        Partial update. Range checks run against the effective (merged) values.
        """
        tier = self.get_tier(tier_id)

        quarter = _int_field(data, 'quarter')
        year = _int_field(data, 'year')
        min_cartons = _int_field(data, 'min_cartons')
        max_cartons = _int_field(data, 'max_cartons', nullable=True)
        cashback = _decimal_field(data, 'cashback_per_carton')

        effective_quarter = tier.quarter if quarter is _MISSING else quarter
        effective_min = tier.min_cartons if min_cartons is _MISSING else min_cartons
        effective_max = tier.max_cartons if max_cartons is _MISSING else max_cartons
        effective_cashback = Decimal(str(tier.cashback_per_carton)) if cashback is _MISSING else cashback

        self._validate(effective_quarter, effective_min, effective_max, effective_cashback)

        name = data.get('name')
        if name is not None:
            name = _name_field(name)
            if not name:
                raise InvalidInputError('Name cannot be empty', 'name')
            tier.name = name
        if 'name_ar' in data:
            tier.name_ar = data['name_ar'] or None
        if quarter is not _MISSING:
            tier.quarter = quarter
        if year is not _MISSING:
            tier.year = year
        if min_cartons is not _MISSING:
            tier.min_cartons = min_cartons
        if max_cartons is not _MISSING:
            tier.max_cartons = max_cartons
        if cashback is not _MISSING:
            tier.cashback_per_carton = cashback
        if data.get('is_active') is not None:
            tier.is_active = bool(data['is_active'])

        db.session.commit()
        return tier

    def delete_tier(self, tier_id: int) -> Dict[str, Any]:
        """
        Delete a tier, or deactivate it when reward rows still reference it.
        """
        tier = self.get_tier(tier_id)

        referenced = db.session.query(CustomerQuarterlyReward.id).filter(
            CustomerQuarterlyReward.eligible_tier_id == tier.id
        ).first() is not None

        if referenced:
            tier.is_active = False
            db.session.commit()
            current_app.logger.info(f"Reward tier {tier_id} is referenced by rewards; deactivated instead")
            return {'deleted': False, 'deactivated': True, 'tier': tier.to_dict()}

        db.session.delete(tier)
        db.session.commit()
        return {'deleted': True, 'deactivated': False}

    def _validate(self, quarter, min_cartons, max_cartons, cashback) -> None:
        if quarter < 1 or quarter > 4:
            raise InvalidQuarterError(quarter)
        if min_cartons < 0 or cashback < 0:
            raise InvalidInputError('Cartons and cashback must be positive')
        if max_cartons is not None and max_cartons < min_cartons:
            raise InvalidInputError('Max cartons must be greater than min cartons', 'max_cartons')
