"""
Observability helpers: correlation ids, structured formatters, redaction.
"""

from ecocash.observability.structured_logging import (
    HumanReadableFormatter,
    RedactingFilter,
    StructuredFormatter,
    add_correlation_id,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "HumanReadableFormatter",
    "RedactingFilter",
    "StructuredFormatter",
    "add_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]
