"""
Booking Request Validators

Parse and validate raw API arguments into the types the booking engine expects.
Every failure is raised as frappe.ValidationError with a client-facing message.
"""

import json
import re
from datetime import date, datetime
from typing import Any, List, Optional

import frappe
from frappe import _

from groom_scheduling.groom_scheduling.scheduling.booking import PetSelection, ServiceSelection
from groom_scheduling.groom_scheduling.scheduling.types import AppointmentStatus

DOCNAME_MAX_LENGTH = 140

DANGEROUS_PATTERNS = [
    r"<script",
    r"javascript:",
    r"onclick",
    r"onerror",
    r"SELECT\s+",
    r"INSERT\s+",
    r"UPDATE\s+",
    r"DELETE\s+",
    r"DROP\s+",
    r"UNION\s+",
    r"--",
    r";",
]


def parse_date(date_str: str, field_name: str = "date") -> date:
    """
    Parse a YYYY-MM-DD string.

    Raises:
        frappe.ValidationError: If missing or malformed
    """
    if not date_str:
        frappe.throw(_("{0} is required").format(field_name), frappe.ValidationError)

    date_str = str(date_str).strip()
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        frappe.throw(_("Invalid {0} format. Use YYYY-MM-DD").format(field_name), frappe.ValidationError)


def parse_local_datetime(datetime_str: str, field_name: str = "datetime") -> datetime:
    """
    Parse a "YYYY-MM-DD HH:MM[:SS]" string as a naive local datetime.

    The caller localizes it to the organization timezone.

    Raises:
        frappe.ValidationError: If missing or malformed
    """
    if not datetime_str:
        frappe.throw(_("{0} is required").format(field_name), frappe.ValidationError)

    datetime_str = str(datetime_str).strip().replace("T", " ")
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M"):
        try:
            return datetime.strptime(datetime_str, fmt)
        except ValueError:
            continue

    frappe.throw(
        _("Invalid {0} format. Use YYYY-MM-DD HH:MM:SS").format(field_name),
        frappe.ValidationError,
    )


def validate_docname(name: str, field_name: str = "name") -> str:
    """
    Validate a document name (ID).

    Rejects overly long names and obvious injection patterns.

    Raises:
        frappe.ValidationError: If name is invalid
    """
    if not name:
        frappe.throw(_("{0} is required").format(field_name), frappe.ValidationError)

    name = str(name).strip()

    if len(name) > DOCNAME_MAX_LENGTH:
        frappe.throw(_("{0} is too long").format(field_name), frappe.ValidationError)

    for pattern in DANGEROUS_PATTERNS:
        if re.search(pattern, name, re.IGNORECASE):
            frappe.throw(_("Invalid {0}").format(field_name), frappe.ValidationError)

    return name


def validate_positive_int(value: Any, field_name: str, maximum: Optional[int] = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        frappe.throw(_("{0} must be a whole number").format(field_name), frappe.ValidationError)

    if number <= 0:
        frappe.throw(_("{0} must be greater than 0").format(field_name), frappe.ValidationError)
    if maximum is not None and number > maximum:
        frappe.throw(_("{0} must be at most {1}").format(field_name, maximum), frappe.ValidationError)

    return number


def validate_status(status: str) -> AppointmentStatus:
    try:
        return AppointmentStatus(str(status or "").strip().lower())
    except ValueError:
        frappe.throw(_("Invalid status: {0}").format(status), frappe.ValidationError)


def parse_pet_selections(pets: Any) -> List[PetSelection]:
    """
    Parse the pets payload of a booking request.

    Args:
        pets: JSON string or list of
            {"pet_id": "PET-0001", "services": [{"service_id": "...", "modifier_ids": ["..."]}]}

    Returns:
        list[PetSelection]

    Raises:
        frappe.ValidationError: If the payload is malformed
    """
    if isinstance(pets, str):
        try:
            pets = json.loads(pets)
        except ValueError:
            frappe.throw(_("pets must be a JSON list"), frappe.ValidationError)

    if not isinstance(pets, list) or not pets:
        frappe.throw(_("Select at least one pet"), frappe.ValidationError)

    selections = []
    for idx, entry in enumerate(pets, 1):
        if not isinstance(entry, dict):
            frappe.throw(_("Pet {0}: invalid entry").format(idx), frappe.ValidationError)

        services = entry.get("services") or []
        if not isinstance(services, list) or not services:
            frappe.throw(_("Pet {0}: select at least one service").format(idx), frappe.ValidationError)

        service_selections = []
        for service in services:
            if not isinstance(service, dict):
                frappe.throw(_("Pet {0}: invalid service entry").format(idx), frappe.ValidationError)

            modifier_ids = service.get("modifier_ids") or []
            if not isinstance(modifier_ids, list):
                frappe.throw(_("Pet {0}: modifier_ids must be a list").format(idx), frappe.ValidationError)

            service_selections.append(ServiceSelection(
                service_id=validate_docname(service.get("service_id"), "service_id"),
                modifier_ids=[validate_docname(m, "modifier_id") for m in modifier_ids],
            ))

        selections.append(PetSelection(
            pet_id=validate_docname(entry.get("pet_id"), "pet_id"),
            services=service_selections,
        ))

    return selections
