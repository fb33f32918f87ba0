import logging
from decimal import Decimal

import pytest

from app.core.exceptions import NotFound, StoreError, ValidationFailed
from app.models import PaymentMethod, Transaction, TransactionStatus, TransactionType
from app.services.ledger import LedgerStore
from app.services.wallet import fund_account


def test_funding_credits_wallet_and_records_ledger_entry(db, make_user):
    user = make_user(balance="200")

    result = fund_account(db, user_id=user.id, amount=Decimal("500"), payment_method="bank_transfer")

    assert result.new_balance == Decimal("700.00")
    assert result.reference.startswith("TXN-")
    db.refresh(user)
    assert user.balance == Decimal("700.00")

    tx = db.query(Transaction).one()
    assert tx.reference == result.reference
    assert tx.tx_type == TransactionType.FUNDING
    assert tx.status == TransactionStatus.COMPLETED
    assert tx.payment_method == PaymentMethod.BANK_TRANSFER
    assert tx.booking_id is None


@pytest.mark.parametrize("amount", ["99.99", "1000000.01", "-5"])
def test_funding_amount_bounds(db, make_user, amount):
    user = make_user(balance="0")

    with pytest.raises(ValidationFailed) as excinfo:
        fund_account(db, user_id=user.id, amount=Decimal(amount))

    assert excinfo.value.message == "Amount must be between 100.00 and 1,000,000.00"
    db.refresh(user)
    assert user.balance == Decimal("0.00")


def test_funding_bounds_are_inclusive(db, make_user):
    user = make_user(balance="0")

    fund_account(db, user_id=user.id, amount=Decimal("100"))
    result = fund_account(db, user_id=user.id, amount=Decimal("1000000"))

    assert result.new_balance == Decimal("1000100.00")


@pytest.mark.parametrize("method", ["wallet", "crypto", ""])
def test_funding_rejects_unknown_or_internal_methods(db, make_user, method):
    user = make_user(balance="0")

    with pytest.raises(ValidationFailed) as excinfo:
        fund_account(db, user_id=user.id, amount=Decimal("500"), payment_method=method)

    assert excinfo.value.message == "Payment method must be one of: bank_transfer, card, ussd"
    assert db.query(Transaction).count() == 0


def test_funding_inactive_user_is_not_found(db, make_user):
    user = make_user(balance="0", is_active=False)

    with pytest.raises(NotFound):
        fund_account(db, user_id=user.id, amount=Decimal("500"))


def test_missing_funding_entry_keeps_credit(db, make_user, monkeypatch, caplog):
    user = make_user(balance="200")

    def _fail(self, *args, **kwargs):
        raise StoreError("insert_transaction")

    monkeypatch.setattr(LedgerStore, "insert_transaction", _fail)

    with caplog.at_level(logging.ERROR, logger="app.services.wallet"):
        result = fund_account(db, user_id=user.id, amount=Decimal("500"))

    assert result.transaction is None
    assert result.new_balance == Decimal("700.00")
    assert any("RECONCILE" in record.getMessage() for record in caplog.records)
    db.refresh(user)
    assert user.balance == Decimal("700.00")
    assert db.query(Transaction).count() == 0
