"""
Groom Scheduling API

Structure:
    api/
    ├── __init__.py              # This file
    ├── bookings/                # Bookings domain
    │   ├── __init__.py          # Re-exports the endpoints
    │   └── endpoints.py         # Whitelisted endpoints
    ├── shared/                  # Shared utilities
    │   ├── __init__.py          # Re-exports security helpers and validators
    │   └── validators.py        # Booking request validators
    └── security.py              # Rate limiting, honeypot, sanitization

Usage:
    frappe.call("groom_scheduling.api.bookings.quote_booking", ...)
"""

from . import bookings
from . import shared

__all__ = [
    "bookings",
    "shared",
]
