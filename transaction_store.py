"""Transaction persistence scoped to a single owner.

Every function takes the owning ``user_id`` explicitly; rows belonging to any
other user are indistinguishable from rows that do not exist.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from currency import to_minor_units
from database import Transaction, TransactionStatus, TransactionType
from date_ranges import as_utc_naive
from recurrence import schedule_next_occurrence
from schemas import BulkTransactionItem, TransactionCreate, TransactionUpdate

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
LIKE_ESCAPE = "\\"


class RecurringStatus(str, Enum):
    RECURRING = "RECURRING"
    NON_RECURRING = "NON_RECURRING"


@dataclass(frozen=True)
class TransactionFilters:
    keyword: Optional[str] = None
    type: Optional[TransactionType] = None
    recurring_status: Optional[RecurringStatus] = None
    page_size: int = DEFAULT_PAGE_SIZE
    page_number: int = 1

    @property
    def skip(self) -> int:
        return (self.page_number - 1) * self.page_size


@dataclass(frozen=True)
class TransactionPage:
    items: List[Transaction]
    total_count: int
    page_size: int
    page_number: int
    skip: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0


def owned_query(db: Session, user_id: int) -> Query:
    return db.query(Transaction).filter(Transaction.user_id == user_id)


def escape_like(keyword: str) -> str:
    """Make LIKE wildcards in user input match literally."""
    return keyword.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", LIKE_ESCAPE + "%").replace("_", LIKE_ESCAPE + "_")


def filtered_query(db: Session, user_id: int, filters: TransactionFilters) -> Query:
    query = owned_query(db, user_id)

    if filters.keyword:
        pattern = f"%{escape_like(filters.keyword)}%"
        query = query.filter(
            or_(
                Transaction.title.ilike(pattern, escape=LIKE_ESCAPE),
                Transaction.category.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    if filters.type is not None:
        query = query.filter(Transaction.type == filters.type)

    if filters.recurring_status is RecurringStatus.RECURRING:
        query = query.filter(Transaction.is_recurring.is_(True))
    elif filters.recurring_status is RecurringStatus.NON_RECURRING:
        query = query.filter(Transaction.is_recurring.is_(False))

    return query


def list_transactions(db: Session, user_id: int, filters: TransactionFilters) -> TransactionPage:
    """Newest-first page of the owner's transactions plus the unpaged total."""
    query = filtered_query(db, user_id, filters)
    total = query.order_by(None).with_entities(func.count(Transaction.id)).scalar() or 0
    items = (
        query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset(filters.skip)
        .limit(filters.page_size)
        .all()
    )
    return TransactionPage(items, int(total), filters.page_size, filters.page_number, filters.skip)


def get_owned_transaction(db: Session, user_id: int, transaction_id: int) -> Optional[Transaction]:
    return owned_query(db, user_id).filter(Transaction.id == transaction_id).first()


def transactions_in_range(
    db: Session,
    user_id: int,
    date_from: Optional[datetime],
    date_to: Optional[datetime],
    txn_type: Optional[TransactionType] = None,
) -> Query:
    """Owner's transactions whose occurrence date lies in ``[date_from, date_to]``; no bounds means all."""
    query = owned_query(db, user_id)
    if date_from is not None and date_to is not None:
        query = query.filter(Transaction.date >= date_from, Transaction.date <= date_to)
    if txn_type is not None:
        query = query.filter(Transaction.type == txn_type)
    return query


def create_transaction(db: Session, user_id: int, payload: TransactionCreate, now: datetime) -> Transaction:
    occurred_at = as_utc_naive(payload.date) if payload.date else now
    interval = payload.recurring_interval if payload.is_recurring else None

    txn = Transaction(
        user_id=user_id,
        type=payload.type,
        title=payload.title,
        amount=to_minor_units(payload.amount),
        category=payload.category,
        description=payload.description or None,
        receipt_url=payload.receipt_url or None,
        date=occurred_at,
        is_recurring=payload.is_recurring,
        recurring_interval=interval,
        next_recurring_date=schedule_next_occurrence(payload.is_recurring, interval, occurred_at, now),
        last_processed=None,
        payment_method=payload.payment_method,
    )
    db.add(txn)
    db.commit()
    db.refresh(txn)
    return txn


def update_transaction(db: Session, txn: Transaction, payload: TransactionUpdate, now: datetime) -> Transaction:
    """Apply only the fields present in the request; recurrence is recomputed from the merged state."""
    changes = payload.model_dump(exclude_unset=True)

    for field in ("title", "description", "category", "type", "payment_method", "receipt_url"):
        if field in changes and changes[field] is not None:
            setattr(txn, field, changes[field])
    if changes.get("amount") is not None:
        txn.amount = to_minor_units(changes["amount"])
    if changes.get("date") is not None:
        txn.date = as_utc_naive(changes["date"])
    if changes.get("is_recurring") is not None:
        txn.is_recurring = changes["is_recurring"]
    if "recurring_interval" in changes:
        txn.recurring_interval = changes["recurring_interval"]

    if not txn.is_recurring:
        txn.recurring_interval = None
    txn.next_recurring_date = schedule_next_occurrence(txn.is_recurring, txn.recurring_interval, txn.date, now)
    txn.updated_at = now

    db.commit()
    db.refresh(txn)
    return txn


def duplicate_transaction(db: Session, txn: Transaction) -> Transaction:
    copy = Transaction(
        user_id=txn.user_id,
        type=txn.type,
        title=f"Duplicate - {txn.title}",
        amount=txn.amount,
        category=txn.category,
        description=f"{txn.description} (Duplicate)" if txn.description else "Duplicated transaction",
        receipt_url=txn.receipt_url,
        date=txn.date,
        payment_method=txn.payment_method,
        is_recurring=False,
        recurring_interval=None,
        next_recurring_date=None,
        last_processed=None,
    )
    db.add(copy)
    db.commit()
    db.refresh(copy)
    return copy


def delete_transaction(db: Session, txn: Transaction) -> None:
    db.delete(txn)
    db.commit()


def delete_transactions(db: Session, user_id: int, transaction_ids: Sequence[int]) -> int:
    """Delete the owner's rows among ``transaction_ids``; ids owned by others are ignored."""
    query = owned_query(db, user_id).filter(Transaction.id.in_(list(transaction_ids)))
    deleted = query.delete(synchronize_session=False)
    db.commit()
    logger.info("Bulk deleted %s transactions for user %s", deleted, user_id)
    return deleted


def bulk_insert_transactions(
    db: Session, user_id: int, items: Iterable[BulkTransactionItem], now: datetime
) -> List[Transaction]:
    rows = [
        Transaction(
            user_id=user_id,
            type=item.type,
            title=item.title,
            amount=to_minor_units(item.amount),
            category=item.category,
            description=item.description or None,
            receipt_url=item.receipt_url or None,
            date=as_utc_naive(item.date) if item.date else now,
            is_recurring=False,
            recurring_interval=None,
            next_recurring_date=None,
            last_processed=None,
            payment_method=item.payment_method,
            status=TransactionStatus.COMPLETED,
        )
        for item in items
    ]
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    logger.info("Bulk inserted %s transactions for user %s", len(rows), user_id)
    return rows


def due_recurring_transactions(db: Session, now: datetime) -> List[Transaction]:
    return (
        db.query(Transaction)
        .filter(
            Transaction.is_recurring.is_(True),
            Transaction.next_recurring_date.isnot(None),
            Transaction.next_recurring_date <= now,
        )
        .order_by(Transaction.next_recurring_date)
        .all()
    )


def page_bounds(page_size: Optional[int], page_number: Optional[int]) -> Tuple[int, int]:
    """Clamp paging inputs to sane values."""
    size = page_size if page_size and page_size > 0 else DEFAULT_PAGE_SIZE
    number = page_number if page_number and page_number > 0 else 1
    return min(size, MAX_PAGE_SIZE), number
