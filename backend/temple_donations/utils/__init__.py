from temple_donations.utils.hashing import hmac_sha256_hex, signatures_match
from temple_donations.utils.validators import (
    validate_e164, validate_indian_mobile, parse_amount,
    extract_transaction_id, format_inr, format_timestamp,
)

__all__ = [
    "hmac_sha256_hex", "signatures_match",
    "validate_e164", "validate_indian_mobile", "parse_amount",
    "extract_transaction_id", "format_inr", "format_timestamp",
]
