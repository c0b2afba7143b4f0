import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from database import Transaction, TransactionType, get_db
from date_ranges import utcnow
from errors import NotFoundError
from image_host import upload_image, validate_image
from receipt_scanner import scan_receipt
from schemas import (
    BulkDeleteRequest,
    BulkTransactionRequest,
    Pagination,
    TransactionCreate,
    TransactionListResponse,
    TransactionOut,
    TransactionResponse,
    TransactionUpdate,
)
from security import get_current_user_id
import transaction_store as store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["transactions"])

NOT_FOUND_MESSAGE = "Transaction not found or you don't have permission to access it"


def _owned_or_404(db: Session, user_id: int, transaction_id: int) -> Transaction:
    txn = store.get_owned_transaction(db, user_id, transaction_id)
    if txn is None:
        raise NotFoundError(NOT_FOUND_MESSAGE, error="Transaction not found")
    return txn


@router.post("/create", status_code=201, response_model=TransactionResponse)
def create_transaction(
    req: TransactionCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    txn = store.create_transaction(db, user_id, req, utcnow())
    return TransactionResponse(message="Transaction created successfully", transaction=TransactionOut.from_model(txn))


@router.get("/all", response_model=TransactionListResponse)
def list_transactions(
    keyword: Optional[str] = None,
    type: Optional[TransactionType] = None,
    recurring_status: Optional[store.RecurringStatus] = Query(None, alias="recurringStatus"),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    page_number: Optional[int] = Query(None, alias="pageNumber"),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    size, number = store.page_bounds(page_size, page_number)
    filters = store.TransactionFilters(
        keyword=keyword.strip() if keyword else None,
        type=type,
        recurring_status=recurring_status,
        page_size=size,
        page_number=number,
    )
    page = store.list_transactions(db, user_id, filters)
    return TransactionListResponse(
        message="Transactions fetched successfully",
        transactions=[TransactionOut.from_model(txn) for txn in page.items],
        pagination=Pagination(
            page_size=page.page_size,
            page_number=page.page_number,
            total_count=page.total_count,
            total_pages=page.total_pages,
            skip=page.skip,
        ),
    )


@router.post("/delete/bulk")
def bulk_delete(
    req: BulkDeleteRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    deleted = store.delete_transactions(db, user_id, req.transaction_ids)
    if deleted == 0:
        raise NotFoundError(
            "No transactions found or you don't have permission to delete them", error="No transactions found"
        )
    return {"success": True, "message": "Transactions deleted successfully", "deletedCount": deleted}


@router.post("/bulk-transaction", status_code=201)
def bulk_create(
    req: BulkTransactionRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    rows = store.bulk_insert_transactions(db, user_id, req.transactions, utcnow())
    return {
        "success": True,
        "message": "Bulk transactions inserted successfully",
        "insertedCount": len(rows),
        "transactions": [TransactionOut.from_model(txn) for txn in rows],
    }


@router.post("/scan-receipt")
async def scan_receipt_upload(
    receipt: Optional[UploadFile] = File(None),
    user_id: int = Depends(get_current_user_id),
):
    data = await receipt.read() if receipt is not None else b""
    content_type = receipt.content_type if receipt is not None else None
    validate_image(data, content_type)

    receipt_url = upload_image(data, content_type, folder="receipts")
    scanned = scan_receipt(data, content_type, receipt_url)
    logger.info("Scanned receipt for user %s", user_id)
    return {"message": "Receipt scanned successfully", "data": scanned}


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    txn = _owned_or_404(db, user_id, transaction_id)
    return TransactionResponse(message="Transaction fetched successfully", transaction=TransactionOut.from_model(txn))


@router.put("/duplicate/{transaction_id}", response_model=TransactionResponse)
def duplicate_transaction(
    transaction_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    txn = _owned_or_404(db, user_id, transaction_id)
    copy = store.duplicate_transaction(db, txn)
    return TransactionResponse(message="Transaction duplicated successfully", transaction=TransactionOut.from_model(copy))


@router.put("/update/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: int,
    req: TransactionUpdate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    txn = _owned_or_404(db, user_id, transaction_id)
    updated = store.update_transaction(db, txn, req, utcnow())
    return TransactionResponse(message="Transaction updated successfully", transaction=TransactionOut.from_model(updated))


@router.delete("/delete/{transaction_id}")
def delete_transaction(
    transaction_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    txn = _owned_or_404(db, user_id, transaction_id)
    store.delete_transaction(db, txn)
    return {"message": "Transaction deleted successfully"}
