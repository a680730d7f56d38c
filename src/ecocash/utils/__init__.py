"""
Utility modules for the EcoCash SDK.
"""

from ecocash.utils.logging import get_logger, setup_logging
from ecocash.utils.masking import (
    mask_api_key,
    mask_phone_number,
    mask_sensitive_data,
    mask_transaction_reference,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "mask_api_key",
    "mask_phone_number",
    "mask_sensitive_data",
    "mask_transaction_reference",
]
