from dataclasses import dataclass
from decimal import Decimal
import logging

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import NotFound, PersistenceError, StoreError, ValidationFailed
from app.models import FUNDING_METHODS, PaymentMethod, Transaction, TransactionStatus, TransactionType
from app.services.ledger import LedgerStore
from app.utils.references import generate_transaction_reference, to_money

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class FundingResult:
    new_balance: Decimal
    reference: str
    transaction: Transaction | None


def _parse_payment_method(value) -> PaymentMethod:
    try:
        method = PaymentMethod(str(getattr(value, "value", value) or "").strip().lower())
    except ValueError:
        method = None
    if method not in FUNDING_METHODS:
        allowed = ", ".join(sorted(m.value for m in FUNDING_METHODS))
        raise ValidationFailed(f"Payment method must be one of: {allowed}")
    return method


def fund_account(db: Session, *, user_id: int, amount: Decimal, payment_method="card") -> FundingResult:
    amount = to_money(amount)
    low, high = to_money(settings.min_funding_amount), to_money(settings.max_funding_amount)
    if amount < low or amount > high:
        raise ValidationFailed(f"Amount must be between {low:,.2f} and {high:,.2f}")
    method = _parse_payment_method(payment_method)

    store = LedgerStore(db)
    try:
        user = store.get_active_user(user_id)
    except StoreError as exc:
        logger.error("Funding user read failed user=%s: %s", user_id, exc)
        raise PersistenceError() from exc
    if user is None:
        raise NotFound("User not found")
    old_balance = to_money(user.balance)

    try:
        store.credit_user(user_id, amount)
    except StoreError as exc:
        logger.error("Funding credit failed user=%s amount=%s: %s", user_id, amount, exc)
        raise PersistenceError("Failed to update balance") from exc

    reference = generate_transaction_reference()
    transaction = None
    try:
        transaction = store.insert_transaction(
            user_id=user_id,
            reference=reference,
            amount=amount,
            tx_type=TransactionType.FUNDING,
            status=TransactionStatus.COMPLETED,
            payment_method=method,
            description=f"Wallet funding via {method.value}",
        )
    except StoreError as exc:
        logger.error("RECONCILE funding ledger entry missing ref=%s user=%s amount=%s: %s", reference, user_id, amount, exc)

    try:
        new_balance = to_money(store.get_balance(user_id))
    except StoreError:
        logger.warning("Post-funding balance read failed user=%s", user_id, exc_info=True)
        new_balance = old_balance + amount

    logger.info("Wallet funded user=%s amount=%s method=%s ref=%s", user_id, amount, method.value, reference)
    return FundingResult(new_balance=new_balance, reference=reference, transaction=transaction)
