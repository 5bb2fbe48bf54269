"""
Guest Access Guards for the Booking API

The online booking page calls the slot and booking endpoints as Guest.
Each action has a per-IP request budget (scheduling.config.DEFAULT_RATE_LIMITS),
overridable per site with "groom_scheduling_rate_limit_<action>" keys.
"""

import re
import frappe
from frappe import _
from frappe.utils import cint, strip_html

from groom_scheduling.groom_scheduling.scheduling.config import rate_limit_from_mapping

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')


def check_rate_limit(action: str) -> None:
    """
    Count a request of `action` for the caller's IP.

    Raises:
        frappe.TooManyRequestsError: once the site's budget for the action is spent
    """
    limit, seconds = rate_limit_from_mapping(action, frappe.conf)

    ip = get_client_ip()
    cache_key = f"groom_scheduling:rate_limit:{action}:{ip}"
    current = cint(frappe.cache.get_value(cache_key) or 0)

    if current >= limit:
        frappe.logger("groom_scheduling").warning(
            f"Rate limit hit for {action} from {ip} ({limit}/{seconds}s)"
        )
        frappe.throw(
            _("Too many booking requests. Please wait a moment and try again."),
            frappe.TooManyRequestsError
        )

    frappe.cache.set_value(cache_key, current + 1, expires_in_sec=seconds)


def get_client_ip() -> str:
    # Frappe resolves proxy headers into request_ip
    return getattr(frappe.local, "request_ip", None) or "unknown"


def check_honeypot(honeypot_value: str = None) -> None:
    """
    Reject booking forms whose hidden honeypot field was filled in.

    The error is generic so the check is not revealed to bots.
    """
    if honeypot_value:
        frappe.logger("groom_scheduling").warning(
            f"Booking form honeypot filled from {get_client_ip()}"
        )
        frappe.throw(_("Invalid request"), frappe.ValidationError)


def sanitize_notes(value: str, max_length: int = 2000) -> str:
    """
    Client notes are shown to groomers on the day sheet, so markup and
    control characters are dropped.

    Returns:
        str: cleaned notes, "" for empty input
    """
    if not value:
        return ""

    value = _CONTROL_CHARS.sub('', strip_html(str(value))).strip()
    return value[:max_length]
