from decimal import Decimal
from typing import Optional

from app.models.transaction import PaymentMethod
from app.schemas.common import CamelModel, Money
from app.schemas.transaction import TransactionOut


class FundWalletRequest(CamelModel):
    amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.CARD


class FundingOut(CamelModel):
    new_balance: Money
    reference: str
    transaction: Optional[TransactionOut] = None
