"""
Validators — Regex and rule-based validation for donation inputs.
"""
import re
from datetime import datetime
from typing import Optional

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")
INDIAN_MOBILE_PATTERN = re.compile(r"^\+91\d{10}$")

TRANSACTION_ID_PATTERN = re.compile(
    r"\b(?:transaction\s*id|txn|id)(?![A-Za-z])[:\s#]*([A-Za-z0-9][A-Za-z0-9_-]*)",
    re.IGNORECASE,
)


def validate_e164(phone: str | None) -> bool:
    """Validate an international number: '+' followed by up to 15 digits."""
    if not phone:
        return False
    return bool(E164_PATTERN.match(phone.strip()))


def validate_indian_mobile(phone: str | None) -> bool:
    """Validate an Indian mobile number with country code (+91 and 10 digits)."""
    if not phone:
        return False
    return bool(INDIAN_MOBILE_PATTERN.match(phone.strip()))


def parse_amount(value) -> Optional[float]:
    """Parse a donation amount in rupees. Returns None unless it is a finite number > 0."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = float(str(value).strip())
    except ValueError:
        return None
    if amount != amount or amount in (float("inf"), float("-inf")) or amount <= 0:
        return None
    return amount


def extract_transaction_id(text: str | None) -> Optional[str]:
    """Pull a transaction id out of free text such as 'Transaction ID: abc-123' or 'txn abc'."""
    if not text:
        return None
    match = TRANSACTION_ID_PATTERN.search(text)
    return match.group(1) if match else None


def safe_file_token(value: str) -> str:
    """Reduce a value to characters allowed in receipt file names."""
    return re.sub(r"[^A-Za-z0-9_-]", "", value or "") or "unknown"


def format_inr(amount: float | int | None) -> str:
    """Format rupees with Indian digit grouping: 1234567.5 -> '12,34,567.5'."""
    amount = amount or 0
    negative = amount < 0
    text = f"{abs(amount):.2f}".rstrip("0").rstrip(".")
    whole, _, fraction = text.partition(".")

    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])

    result = f"{whole}.{fraction}" if fraction else whole
    return f"-{result}" if negative else result


def format_timestamp(value: Optional[datetime]) -> str:
    """Render a timestamp the way Indian locale clocks read: 19/10/2026, 3:04:05 pm."""
    if value is None:
        return "N/A"
    hour = value.hour % 12 or 12
    suffix = "am" if value.hour < 12 else "pm"
    return f"{value:%d/%m/%Y}, {hour}:{value:%M:%S} {suffix}"
