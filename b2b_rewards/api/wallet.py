"""
Wallet API endpoints.
"""
from flask import Blueprint, request, jsonify
from ..middleware import require_admin
from ..services.wallet_service import WalletService
from ..utils.errors import bad_request

wallet_bp = Blueprint('wallet', __name__)


@wallet_bp.route('/<int:customer_id>', methods=['GET'])
@require_admin
def get_wallet(customer_id):
    """Wallet balance and available credit for a customer."""
    return jsonify(WalletService().get_wallet(customer_id))


@wallet_bp.route('/<int:customer_id>/top-up', methods=['POST'])
@require_admin
def top_up_wallet(customer_id):
    """
    Record a wallet top-up.

    Request body:
    {
        "amount": 500.00,
        "method": "bank_transfer",   # cash or bank_transfer
        "reference": "TRX-8812",     # optional
        "notes": "..."               # optional
    }
    """
    data = request.get_json(silent=True) or {}
    if data.get('amount') is None:
        return bad_request('Amount is required')

    service = WalletService()
    payment = service.top_up(
        customer_id,
        data['amount'],
        method=data.get('method', 'cash'),
        reference=data.get('reference'),
        notes=data.get('notes'),
    )

    return jsonify({
        'payment': payment.to_dict(),
        'wallet': service.get_wallet(customer_id),
    }), 201
