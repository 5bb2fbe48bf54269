"""
Shared utilities for Groom Scheduling API.

Security helpers (rate limiting, honeypot, sanitization) and booking
request validators.
"""

from groom_scheduling.api.security import (
    check_rate_limit,
    get_client_ip,
    check_honeypot,
    sanitize_notes,
)

from .validators import (
    parse_date,
    parse_local_datetime,
    parse_pet_selections,
    validate_docname,
    validate_positive_int,
    validate_status,
)

__all__ = [
    # Security
    "check_rate_limit",
    "get_client_ip",
    "check_honeypot",
    "sanitize_notes",
    # Booking validators
    "parse_date",
    "parse_local_datetime",
    "parse_pet_selections",
    "validate_docname",
    "validate_positive_int",
    "validate_status",
]
