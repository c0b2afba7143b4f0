"""Request and response contracts.

Wire names are camelCase (``isRecurring``, ``availableBalance``); Python code
uses the snake_case attribute names. Money fields in responses are dollars.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from currency import to_major_units, to_minor_units
from database import PaymentMethod, RecurringInterval, Transaction, TransactionStatus, TransactionType

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Keeps stored cents well inside a signed 64-bit column
MAX_AMOUNT = 10**13


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

# --- Auth / users ---

def _validate_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value


class RegisterRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=4)

    @field_validator("name", "password", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def normalise_email(cls, value: str) -> str:
        return _validate_email(value)


class LoginRequest(ApiModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=4)

    @field_validator("password", mode="before")
    @classmethod
    def strip_password(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def normalise_email(cls, value: str) -> str:
        return _validate_email(value)


class UserOut(ApiModel):
    id: int
    name: str
    email: str
    profile_picture: Optional[str] = None
    created_at: datetime
    updated_at: datetime

# --- Transactions ---

def _validate_amount(value):
    if value is not None and to_minor_units(value) < 1:
        raise ValueError("Amount must be at least 0.01")
    return value


class TransactionCreate(ApiModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: TransactionType
    amount: float = Field(..., gt=0, le=MAX_AMOUNT, allow_inf_nan=False, description="Amount in dollars")
    category: str = Field(..., min_length=1)
    is_recurring: bool = False
    recurring_interval: Optional[RecurringInterval] = None
    receipt_url: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    date: Optional[datetime] = None

    @field_validator("amount")
    @classmethod
    def at_least_one_cent(cls, value):
        return _validate_amount(value)


class TransactionUpdate(ApiModel):
    """Partial update: only fields present in the request body are applied."""

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    type: Optional[TransactionType] = None
    amount: Optional[float] = Field(None, gt=0, le=MAX_AMOUNT, allow_inf_nan=False)
    category: Optional[str] = Field(None, min_length=1)
    is_recurring: Optional[bool] = None
    recurring_interval: Optional[RecurringInterval] = None
    receipt_url: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    date: Optional[datetime] = None

    @field_validator("amount")
    @classmethod
    def at_least_one_cent(cls, value):
        return _validate_amount(value)


class BulkTransactionItem(ApiModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: TransactionType
    amount: float = Field(..., gt=0, le=MAX_AMOUNT, allow_inf_nan=False)
    category: str = Field(..., min_length=1)
    receipt_url: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    date: Optional[datetime] = None

    @field_validator("amount")
    @classmethod
    def at_least_one_cent(cls, value):
        return _validate_amount(value)


class BulkTransactionRequest(ApiModel):
    transactions: List[BulkTransactionItem] = Field(..., min_length=1)


class BulkDeleteRequest(ApiModel):
    transaction_ids: List[int] = Field(..., min_length=1)


class TransactionOut(ApiModel):
    id: int
    user_id: int
    type: TransactionType
    title: str
    amount: float
    category: str
    receipt_url: Optional[str] = None
    description: Optional[str] = None
    date: datetime
    is_recurring: bool
    recurring_interval: Optional[RecurringInterval] = None
    next_recurring_date: Optional[datetime] = None
    last_processed: Optional[datetime] = None
    status: TransactionStatus
    payment_method: PaymentMethod
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, txn: Transaction) -> "TransactionOut":
        out = cls.model_validate(txn)
        out.amount = to_major_units(txn.amount)
        return out


class Pagination(ApiModel):
    page_size: int
    page_number: int
    total_count: int
    total_pages: int
    skip: int


class TransactionResponse(ApiModel):
    message: str
    transaction: TransactionOut


class TransactionListResponse(ApiModel):
    message: str
    transactions: List[TransactionOut]
    pagination: Pagination


class ReceiptScanData(ApiModel):
    title: str
    amount: float
    date: str
    description: str
    category: str
    payment_method: PaymentMethod
    type: TransactionType
    receipt_url: str

# --- Analytics ---

class DateRangeOut(ApiModel):
    date_from: Optional[datetime] = Field(None, alias="from")
    date_to: Optional[datetime] = Field(None, alias="to")
    value: str
    label: str


class SavingRate(ApiModel):
    percentage: float
    expense_ratio: float


class PreviousValues(ApiModel):
    income_amount: float = 0.0
    expense_amount: float = 0.0
    balance_amount: float = 0.0


class PercentageChange(ApiModel):
    income: float = 0.0
    expenses: float = 0.0
    balance: float = 0.0
    prev_period_from: Optional[datetime] = None
    prev_period_to: Optional[datetime] = None
    previous_values: PreviousValues = Field(default_factory=PreviousValues)


class SummaryData(ApiModel):
    available_balance: float
    total_income: float
    total_expenses: float
    saving_rate: SavingRate
    transaction_count: int
    percentage_change: PercentageChange
    preset: DateRangeOut


class ChartPoint(ApiModel):
    date: str
    income: float
    expenses: float


class ChartData(ApiModel):
    chart_data: List[ChartPoint]
    total_income_count: int
    total_expense_count: int
    preset: DateRangeOut


class BreakdownItem(ApiModel):
    name: str
    value: float
    percentage: int


class ExpenseBreakdownData(ApiModel):
    total_spent: float
    breakdown: List[BreakdownItem]
    preset: DateRangeOut


class SummaryResponse(ApiModel):
    message: str
    data: SummaryData


class ChartResponse(ApiModel):
    message: str
    data: ChartData


class ExpenseBreakdownResponse(ApiModel):
    message: str
    data: ExpenseBreakdownData
