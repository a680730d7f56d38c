"""
Masking helpers for sensitive values in logs.

The SDK never writes PINs, tokens, API keys or full phone numbers to its
logs; every metadata dict passes through mask_sensitive_data first.
"""

from collections.abc import Mapping
from typing import Any

# Lower-cased substrings identifying sensitive keys
SENSITIVE_KEYS = ("pin", "password", "token", "apikey", "api_key", "authorization", "secret")

PHONE_KEYS = ("msisdn", "mobile", "phone")


def mask_value(value: str) -> str:
    """Keep the first and last two characters; fully mask short values."""
    if len(value) <= 4:
        return "***"
    return f"{value[:2]}***{value[-2:]}"


def mask_phone_number(phone: str) -> str:
    """263774222475 -> 263***75"""
    if len(phone) < 6:
        return "***"
    return f"{phone[:3]}***{phone[-2:]}"


def mask_transaction_reference(reference: str) -> str:
    """Keep the first and last four characters of a reference."""
    if len(reference) <= 8:
        return "***"
    return f"{reference[:4]}***{reference[-4:]}"


def mask_api_key(api_key: str) -> str:
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return f"{api_key[:4]}{'*' * (len(api_key) - 8)}{api_key[-4:]}"


def is_sensitive_key(key: str) -> bool:
    normalized = key.lower().replace("-", "_")
    return any(marker in normalized or marker in normalized.replace("_", "") for marker in SENSITIVE_KEYS)


def mask_sensitive_data(data: Any) -> Any:
    """
    Return a copy of ``data`` with sensitive values masked.

    Walks nested mappings and lists. String values under sensitive keys are
    masked with mask_value; values under phone-number keys with
    mask_phone_number. Non-string sensitive values become "***".
    """
    if isinstance(data, Mapping):
        masked = {}
        for key, value in data.items():
            key_str = str(key)
            if is_sensitive_key(key_str):
                masked[key] = mask_value(value) if isinstance(value, str) else "***"
            elif isinstance(value, str) and any(marker in key_str.lower() for marker in PHONE_KEYS):
                masked[key] = mask_phone_number(value)
            else:
                masked[key] = mask_sensitive_data(value)
        return masked
    if isinstance(data, list | tuple):
        return type(data)(mask_sensitive_data(item) for item in data)
    return data
