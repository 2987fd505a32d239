"""
Customer Rewards API endpoints.

- GET  /                      recompute the quarter, then list it
- POST /recompute             recompute the quarter only
- PUT  /<id>                  manual adjustment on a pending reward
- POST /process               settle the quarter's pending rewards
- GET  /customer/<id>         one customer's reward history
"""
from flask import Blueprint, request, jsonify
from ..middleware import require_admin, get_current_actor_id
from ..services.reward_ledger import RewardLedgerService
from ..services.settlement_processor import RewardSettlementProcessor
from ..utils.errors import bad_request
from ..utils.exceptions import MissingActorError
from ..utils.quarters import parse_quarter_params

customer_rewards_bp = Blueprint('customer_rewards', __name__)


@customer_rewards_bp.route('', methods=['GET'])
@require_admin
def list_customer_rewards():
    """
    Rewards for a quarter (?quarter=1&year=2025).

    Every active customer is recomputed first, so the list reflects the
    latest delivered orders. Processed rows are returned unchanged.
    """
    quarter, year = parse_quarter_params(request.args.get('quarter'), request.args.get('year'))

    service = RewardLedgerService()
    recompute = service.batch_recompute_for_quarter(quarter, year)
    rewards = service.list_quarter(quarter, year)

    response = {
        'success': True,
        'data': [reward.to_dict(include_relations=True) for reward in rewards],
    }
    if recompute['errors']:
        response['errors'] = recompute['errors']
    return jsonify(response)


@customer_rewards_bp.route('/recompute', methods=['POST'])
@require_admin
def recompute_customer_rewards():
    """Recompute a quarter without listing it. Body: {"quarter": 1, "year": 2025}"""
    data = request.get_json(silent=True) or {}
    quarter, year = parse_quarter_params(data.get('quarter'), data.get('year'))

    results = RewardLedgerService().batch_recompute_for_quarter(quarter, year)
    return jsonify(results)


@customer_rewards_bp.route('/<int:reward_id>', methods=['PUT'])
@require_admin
def update_customer_reward(reward_id):
    """
    Set the manual adjustment on a pending reward.

    Request body:
    {
        "manual_adjustment": -50,
        "notes": "Returned damaged cartons"   # optional
    }
    """
    data = request.get_json(silent=True) or {}

    if data.get('manual_adjustment') is None:
        return bad_request('Manual adjustment is required')

    reward = RewardLedgerService().adjust_manual(
        reward_id,
        data['manual_adjustment'],
        notes=data.get('notes')
    )
    return jsonify(reward.to_dict())


@customer_rewards_bp.route('/process', methods=['POST'])
@require_admin
def process_customer_rewards():
    """
    Settle all pending rewards of a quarter. Body: {"quarter": 1, "year": 2025}

    Per-customer failures are reported in errors; the request still succeeds.
    """
    data = request.get_json(silent=True) or {}
    actor_id = get_current_actor_id()

    if data.get('quarter') in (None, '') or data.get('year') in (None, ''):
        return bad_request('Quarter and year are required')
    if not actor_id:
        raise MissingActorError()

    results = RewardSettlementProcessor().process_quarter(
        data['quarter'],
        data['year'],
        actor_id
    )

    response = {
        'message': 'Rewards processed successfully',
        'quarter': results['quarter'],
        'year': results['year'],
        'processed_count': results['processed_count'],
        'skipped_count': results['skipped_count'],
        'total_amount': results['total_amount'],
        'processed': results['processed'],
    }
    if results['errors']:
        response['errors'] = results['errors']
    return jsonify(response)


@customer_rewards_bp.route('/customer/<int:customer_id>', methods=['GET'])
@require_admin
def get_customer_reward_history(customer_id):
    """All quarters for one customer, newest first."""
    rewards = RewardLedgerService().customer_history(customer_id)
    return jsonify([reward.to_dict() for reward in rewards])
