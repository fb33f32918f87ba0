"""
Finds bookings whose ledger rows were never written.

Settlement and cancellation treat the ledger insert as best-effort, so a
booking can exist without its ``booking`` transaction, and a cancelled
booking without its ``refund`` transaction. Funding gaps cannot be detected
from bookings; those are only visible in the ``RECONCILE`` log lines.
"""

from dataclasses import dataclass
import logging

from sqlalchemy.orm import Session

from app.models import Booking, BookingStatus, PaymentMethod, Transaction, TransactionStatus, TransactionType
from app.utils.references import refund_reference

logger = logging.getLogger(__name__)

SETTLED_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.COMPLETED, BookingStatus.CANCELLED)


@dataclass
class LedgerGap:
    booking_id: int
    user_id: int
    booking_code: str
    tx_type: TransactionType
    reference: str
    amount: object


def find_ledger_gaps(db: Session) -> list[LedgerGap]:
    bookings = (
        db.query(Booking)
        .filter(Booking.status.in_(SETTLED_STATUSES))
        .order_by(Booking.id.asc())
        .all()
    )
    if not bookings:
        return []

    expected = {}
    for booking in bookings:
        expected[booking.booking_code] = (booking, TransactionType.BOOKING)
        if booking.status == BookingStatus.CANCELLED:
            expected[refund_reference(booking.booking_code)] = (booking, TransactionType.REFUND)

    found = {
        row[0]
        for row in db.query(Transaction.reference).filter(Transaction.reference.in_(list(expected))).all()
    }

    gaps = []
    for reference, (booking, tx_type) in expected.items():
        if reference in found:
            continue
        gaps.append(
            LedgerGap(
                booking_id=booking.id,
                user_id=booking.user_id,
                booking_code=booking.booking_code,
                tx_type=tx_type,
                reference=reference,
                amount=booking.total_price,
            )
        )
    return gaps


def repair_ledger_gaps(db: Session, gaps: list[LedgerGap]) -> int:
    for gap in gaps:
        db.add(
            Transaction(
                user_id=gap.user_id,
                booking_id=gap.booking_id,
                reference=gap.reference,
                amount=gap.amount,
                tx_type=gap.tx_type,
                status=TransactionStatus.COMPLETED,
                payment_method=PaymentMethod.WALLET,
                description=f"Reconciled {gap.tx_type.value} entry for {gap.booking_code}",
            )
        )
    db.commit()
    if gaps:
        logger.info("Inserted %s reconciled ledger entries", len(gaps))
    return len(gaps)
