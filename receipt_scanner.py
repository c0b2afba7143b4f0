"""Extract transaction fields from a receipt photo with an OpenAI vision model."""

from __future__ import annotations

import base64
import json
import logging
import math
import re
from typing import Any, Callable, Mapping, Optional

from openai import APIError, OpenAI

from config import OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_MODEL
from database import PaymentMethod, TransactionType
from date_ranges import parse_date_input
from errors import UpstreamError, ValidationFailed
from schemas import ReceiptScanData

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 400

RECEIPT_PROMPT = """Analyze this receipt image and extract the following information in JSON format:
{
  "title": "merchant or store name",
  "amount": "total amount as a number",
  "date": "date in ISO format (YYYY-MM-DD)",
  "description": "brief description of the transaction",
  "category": "category (e.g., Food, Shopping, Transport, etc.)",
  "paymentMethod": "payment method if visible (CASH, CARD, MOBILE_PAYMENT, etc.)",
  "type": "EXPENSE or INCOME"
}

Rules:
- If information is not clearly visible, omit that field or use reasonable defaults
- Amount must be a positive number
- Date must be in YYYY-MM-DD format
- Type should almost always be EXPENSE for receipts
- Return only valid JSON, no additional text"""

_FENCE = re.compile(r"```(?:json)?\n?")


class ReceiptScanError(ValidationFailed):
    """The model answered, but not with anything usable."""

    error = "Receipt scan failed"


def _default_client() -> OpenAI:
    if not OPENAI_API_KEY:
        raise UpstreamError("Missing OpenAI API key. Set OPENAI_API_KEY.", error="Receipt scanning service unavailable")

    client_kwargs: dict[str, Any] = {"api_key": OPENAI_API_KEY}
    if OPENAI_BASE_URL:
        client_kwargs["base_url"] = OPENAI_BASE_URL
    return OpenAI(**client_kwargs)


def _coerce_amount(value: Any) -> Optional[float]:
    if isinstance(value, str):
        value = value.replace("$", "").replace(",", "").strip()
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    amount = abs(amount)
    return amount if math.isfinite(amount) and amount > 0 else None


def _coerce_enum(enum_cls, value: Any, default):
    try:
        return enum_cls(str(value).strip().upper())
    except (ValueError, AttributeError):
        return default


def parse_receipt_reply(text: str, receipt_url: str) -> ReceiptScanData:
    """Validate the model's JSON reply; anything it got wrong falls back to a default."""
    cleaned = _FENCE.sub("", text or "").strip()
    if not cleaned:
        raise ReceiptScanError("Could not read receipt content")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ReceiptScanError("Could not read receipt content") from exc
    if not isinstance(data, Mapping):
        raise ReceiptScanError("Could not read receipt content")

    amount = _coerce_amount(data.get("amount"))
    parsed_date = parse_date_input(str(data.get("date") or ""))
    if amount is None or parsed_date is None:
        raise ReceiptScanError("Receipt missing required information (amount or date)")

    return ReceiptScanData(
        title=str(data.get("title") or "Receipt"),
        amount=amount,
        date=parsed_date.date().isoformat(),
        description=str(data.get("description") or ""),
        category=str(data.get("category") or "Uncategorized"),
        payment_method=_coerce_enum(PaymentMethod, data.get("paymentMethod"), PaymentMethod.CASH),
        type=_coerce_enum(TransactionType, data.get("type"), TransactionType.EXPENSE),
        receipt_url=receipt_url,
    )


def scan_receipt(
    image: bytes,
    content_type: str,
    receipt_url: str,
    *,
    client_factory: Callable[[], OpenAI] | None = None,
    model: str = OPENAI_MODEL,
) -> ReceiptScanData:
    client = (client_factory or _default_client)()
    encoded = base64.b64encode(image).decode("ascii")

    try:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": RECEIPT_PROMPT},
                        {"type": "image_url", "image_url": {"url": f"data:{content_type};base64,{encoded}"}},
                    ],
                }
            ],
            temperature=0,
            max_tokens=MAX_OUTPUT_TOKENS,
        )
    except APIError as exc:
        logger.error("Receipt scan request failed: %s", exc)
        raise UpstreamError(str(exc), error="Receipt scanning service unavailable") from exc

    text = response.choices[0].message.content if response.choices else ""
    return parse_receipt_reply(text or "", receipt_url)
