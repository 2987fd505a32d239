"""
Wallet Service.

A customer pays orders from two sources:
- wallet_balance: prepaid money (top-ups and quarterly rewards)
- credit: credit_limit minus current_balance (credit already used)

Top-ups and reward credits only ever add to the wallet with a SQL-side
increment, so concurrent credits cannot lose each other's updates. Charging
an order reads the customer row FOR UPDATE because the split between wallet
and credit depends on the current balances.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Dict, Any
from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import Customer, Payment, PaymentMethod, PaymentStatus, PaymentType
from ..utils.exceptions import (
    CustomerNotFoundError,
    InsufficientFundsError,
    InvalidInputError,
    PersistenceError,
)

CENT = Decimal('0.01')

TOPUP_METHODS = (PaymentMethod.CASH.value, PaymentMethod.BANK_TRANSFER.value)


def _positive_amount(value) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidInputError('Amount is required', 'amount')
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInputError('Amount must be a number', 'amount')
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError('Amount must be greater than zero', 'amount')
    return amount.quantize(CENT)


class WalletService:
    """Wallet top-ups, order charging and balance summaries."""

    def get_wallet(self, customer_id: int) -> Dict[str, Any]:
        customer = db.session.get(Customer, customer_id)
        if not customer:
            raise CustomerNotFoundError(customer_id)

        wallet = Decimal(str(customer.wallet_balance or 0))
        available_credit = customer.available_credit

        return {
            'customer_id': customer.id,
            'wallet_balance': float(wallet),
            'credit_limit': float(customer.credit_limit or 0),
            'current_balance': float(customer.current_balance or 0),
            'available_credit': float(available_credit),
            'total_available': float(wallet + available_credit),
        }

    def top_up(
        self,
        customer_id: int,
        amount,
        method: str = PaymentMethod.CASH.value,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """
        Add money to a customer's wallet.

        Records a completed user_topup payment and increments the wallet in
        the same transaction.

        Raises:
            InvalidInputError: If amount is not positive or method is unsupported
            CustomerNotFoundError: If the customer does not exist
        """
        amount = _positive_amount(amount)
        if method not in TOPUP_METHODS:
            raise InvalidInputError(f"Method must be one of: {', '.join(TOPUP_METHODS)}", 'method')

        if not db.session.get(Customer, customer_id):
            raise CustomerNotFoundError(customer_id)

        now = datetime.utcnow()
        prefix = current_app.config.get('TOPUP_PAYMENT_PREFIX', 'TOP')

        try:
            payment = Payment(
                payment_number=f'{prefix}-{now.strftime("%Y%m%d%H%M%S%f")}-{customer_id}',
                customer_id=customer_id,
                amount=amount,
                method=method,
                type=PaymentType.USER_TOPUP.value,
                status=PaymentStatus.COMPLETED.value,
                reference=reference,
                notes=notes,
                processed_at=now,
            )
            db.session.add(payment)

            credited = db.session.execute(
                update(Customer)
                .where(Customer.id == customer_id)
                .values(wallet_balance=Customer.wallet_balance + amount, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if credited.rowcount != 1:
                raise PersistenceError(f"Customer {customer_id} wallet could not be credited")

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f"Wallet top-up ${amount} ({method}) for customer {customer_id}")
        return payment

    def charge_order(self, customer_id: int, total) -> Dict[str, Any]:
        """
        Take an order total from the wallet first and the rest from credit.

        Entry point for order placement, which lives in the storefront
        ordering service and is not exposed by this API. Does not commit;
        the caller commits together with its order insert.

        Raises:
            InvalidInputError: If total is not positive
            CustomerNotFoundError: If the customer does not exist
            InsufficientFundsError: If wallet plus available credit is short
        """
        total = _positive_amount(total)

        customer = (
            Customer.query
            .filter(Customer.id == customer_id)
            .with_for_update()
            .first()
        )
        if not customer:
            raise CustomerNotFoundError(customer_id)

        wallet = Decimal(str(customer.wallet_balance or 0))
        credit_used = Decimal(str(customer.current_balance or 0))
        available_credit = customer.available_credit
        total_available = wallet + available_credit

        if total > total_available:
            raise InsufficientFundsError(float(total), float(total_available))

        if wallet >= total:
            wallet_deduction = total
            credit_deduction = Decimal('0.00')
        else:
            wallet_deduction = wallet
            credit_deduction = total - wallet

        customer.wallet_balance = wallet - wallet_deduction
        customer.current_balance = credit_used + credit_deduction
        customer.total_orders = (customer.total_orders or 0) + 1
        customer.total_spent = Decimal(str(customer.total_spent or 0)) + total

        return {
            'customer_id': customer.id,
            'total': float(total),
            'wallet_deduction': float(wallet_deduction),
            'credit_deduction': float(credit_deduction),
            'wallet_balance': float(customer.wallet_balance),
            'current_balance': float(customer.current_balance),
        }
