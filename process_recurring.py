"""
process_recurring.py
--------------------
Materialise recurring transactions whose next occurrence has arrived.

Each due template produces one completed, non-recurring copy dated at the
occurrence; the template's next occurrence is then advanced (never into the
past) and stamped with ``last_processed``.
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from currency import format_currency
from database import SessionLocal, Transaction, TransactionStatus, init_db
from date_ranges import as_utc_naive, utcnow
from recurrence import schedule_next_occurrence
from transaction_store import due_recurring_transactions

logger = logging.getLogger(__name__)


def materialise_occurrence(template: Transaction, occurred_at: datetime) -> Transaction:
    return Transaction(
        user_id=template.user_id,
        type=template.type,
        title=template.title,
        amount=template.amount,
        category=template.category,
        description=template.description,
        receipt_url=template.receipt_url,
        date=occurred_at,
        payment_method=template.payment_method,
        status=TransactionStatus.COMPLETED,
        is_recurring=False,
        recurring_interval=None,
        next_recurring_date=None,
        last_processed=None,
    )


def process_due_transactions(db: Session, now: Optional[datetime] = None) -> int:
    """Create one occurrence per due recurring transaction and return how many were created."""
    now = now or utcnow()
    count = 0
    for template in due_recurring_transactions(db, now):
        occurred_at = template.next_recurring_date
        db.add(materialise_occurrence(template, occurred_at))

        template.next_recurring_date = schedule_next_occurrence(
            template.is_recurring, template.recurring_interval, occurred_at, now
        )
        template.last_processed = now
        count += 1
        logger.info(
            "Recorded %s occurrence of transaction %s (%s); next on %s",
            template.recurring_interval.value,
            template.id,
            format_currency(template.amount),
            template.next_recurring_date,
        )
    db.commit()
    return count


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Create transactions for recurring items that are due.")
    parser.add_argument("--now", help="Process as of this ISO timestamp (UTC) instead of the current time")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    now = as_utc_naive(datetime.fromisoformat(args.now)) if args.now else utcnow()

    init_db()
    db = SessionLocal()
    try:
        created = process_due_transactions(db, now)
    finally:
        db.close()
    print(f"Created {created} recurring transaction(s).")
    return created


if __name__ == "__main__":
    main()
