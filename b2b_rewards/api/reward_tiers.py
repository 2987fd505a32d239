"""
Reward Tier API endpoints.

Tiers are named carton brackets (the name is the reward category) with a
cashback-per-carton rate, defined per quarter and year.
"""
from flask import Blueprint, request, jsonify
from ..middleware import require_admin, require_role
from ..services.reward_tier_service import RewardTierService
from ..utils.errors import bad_request
from ..utils.quarters import parse_quarter_params

reward_tiers_bp = Blueprint('reward_tiers', __name__)


@reward_tiers_bp.route('', methods=['GET'])
@require_admin
def list_reward_tiers():
    """List tiers, optionally for one quarter (?quarter=1&year=2025)."""
    quarter = request.args.get('quarter')
    year = request.args.get('year')

    service = RewardTierService()
    if quarter and year:
        q, y = parse_quarter_params(quarter, year)
        tiers = service.list_tiers(q, y)
    else:
        tiers = service.list_tiers()

    return jsonify([tier.to_dict() for tier in tiers])


@reward_tiers_bp.route('/<int:tier_id>', methods=['GET'])
@require_admin
def get_reward_tier(tier_id):
    tier = RewardTierService().get_tier(tier_id)
    return jsonify(tier.to_dict())


@reward_tiers_bp.route('', methods=['POST'])
@require_admin
def create_reward_tier():
    """
    Create a tier.

    Request body:
    {
        "name": "Gold",
        "name_ar": "ذهبي",           # optional
        "quarter": 1,
        "year": 2025,
        "min_cartons": 100,
        "max_cartons": null,          # optional, null = no upper bound
        "cashback_per_carton": 1.00,
        "is_active": true             # optional
    }
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return bad_request('JSON body required')

    tier = RewardTierService().create_tier(data)
    return jsonify(tier.to_dict()), 201


@reward_tiers_bp.route('/<int:tier_id>', methods=['PUT'])
@require_admin
def update_reward_tier(tier_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return bad_request('JSON body required')

    tier = RewardTierService().update_tier(tier_id, data)
    return jsonify(tier.to_dict())


@reward_tiers_bp.route('/<int:tier_id>', methods=['DELETE'])
@require_role('admin')
def delete_reward_tier(tier_id):
    """Delete a tier; tiers already used by rewards are deactivated instead."""
    result = RewardTierService().delete_tier(tier_id)

    if result['deleted']:
        result['message'] = 'Reward tier deleted successfully'
    else:
        result['message'] = 'Reward tier is in use and was deactivated'
    return jsonify(result)
