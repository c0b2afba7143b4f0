from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from analytics import compute_chart, compute_expense_breakdown, compute_summary
from database import get_db
from date_ranges import DateRange, resolve_date_range
from schemas import ChartResponse, ExpenseBreakdownResponse, SummaryResponse
from security import get_current_user_id

router = APIRouter(prefix="/analytics", tags=["analytics"])


def requested_range(
    preset: Optional[str] = None,
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
) -> DateRange:
    # Malformed dates fall back to all-time instead of failing the request
    return resolve_date_range(preset, date_from, date_to)


@router.get("/summary", response_model=SummaryResponse)
def summary(
    date_range: DateRange = Depends(requested_range),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return SummaryResponse(message="Summary fetched successfully", data=compute_summary(db, user_id, date_range))


@router.get("/chart", response_model=ChartResponse)
def chart(
    date_range: DateRange = Depends(requested_range),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return ChartResponse(message="Chart fetched successfully", data=compute_chart(db, user_id, date_range))


@router.get("/expense-breakdown", response_model=ExpenseBreakdownResponse)
def expense_breakdown(
    date_range: DateRange = Depends(requested_range),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return ExpenseBreakdownResponse(
        message="Expense breakdown fetched successfully",
        data=compute_expense_breakdown(db, user_id, date_range),
    )
