"""
Booking API Endpoints

Whitelisted functions for the online booking flow and the front desk.
Public endpoints allow guest access with security protections:
- Rate limiting by IP address
- Honeypot validation for bot detection
- Input sanitization

Datetimes are exchanged as "YYYY-MM-DD HH:MM:SS" in the organization timezone.
"""

import frappe
from frappe import _
from datetime import datetime, timedelta
from typing import Dict, List, Any, Optional

from groom_scheduling.groom_scheduling.scheduling.availability import get_timezone
from groom_scheduling.groom_scheduling.scheduling.booking import BookingRequest
from groom_scheduling.groom_scheduling.scheduling.errors import (
	AppointmentNotFoundError,
	SchedulingError,
	ServiceNotFoundError,
	StaffNotFoundError,
)
from groom_scheduling.groom_scheduling.scheduling.factory import get_orchestrator
from groom_scheduling.groom_scheduling.scheduling.types import Appointment

from groom_scheduling.api.shared import (
	check_rate_limit,
	check_honeypot,
	parse_date,
	parse_local_datetime,
	parse_pet_selections,
	sanitize_notes,
	validate_docname,
	validate_positive_int,
	validate_status,
)

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

NOT_FOUND_ERRORS = (AppointmentNotFoundError, ServiceNotFoundError, StaffNotFoundError)


def _throw_scheduling_error(error: SchedulingError) -> None:
	"""Re-raises an engine error as the matching Frappe exception."""
	exc = frappe.DoesNotExistError if isinstance(error, NOT_FOUND_ERRORS) else frappe.ValidationError
	frappe.throw(_(str(error)), exc, title=error.code)


def _format_local(value: datetime, tz_name: str) -> str:
	return value.astimezone(get_timezone(tz_name)).strftime(DATETIME_FORMAT)


def _localize(value: datetime, tz_name: str) -> datetime:
	return get_timezone(tz_name).localize(value)


def _groomer_organization(groomer: str) -> str:
	organization = frappe.db.get_value("Staff Availability", groomer, "organization")
	if not organization:
		frappe.throw(_("Groomer '{0}' has no availability configured").format(groomer), frappe.DoesNotExistError)
	return organization


def _appointment_response(appointment: Appointment, tz_name: str) -> Dict[str, Any]:
	return {
		"name": appointment.id,
		"groomer": appointment.groomer_id,
		"start_datetime": _format_local(appointment.start_time, tz_name),
		"end_datetime": _format_local(appointment.end_time, tz_name),
		"status": appointment.status.value,
		"total_amount": str(appointment.total_amount),
		"deposit_amount": str(appointment.deposit_amount),
		"fee_amount": str(appointment.fee_amount),
	}


def _slot_response(slot: datetime, duration: int, tz_name: str) -> Dict[str, str]:
	return {
		"start": _format_local(slot, tz_name),
		"end": _format_local(slot + timedelta(minutes=duration), tz_name),
	}


def _build_request(
	organization: str,
	client: str,
	start_datetime: str,
	pets: Any,
	groomer: Optional[str],
	client_notes: Optional[str] = None,
	quoted_total: Optional[str] = None
) -> BookingRequest:
	organization = validate_docname(organization, "organization")
	client = validate_docname(client, "client")
	groomer = validate_docname(groomer, "groomer") if groomer else None
	start = parse_local_datetime(start_datetime, "start_datetime")

	orchestrator = get_orchestrator()
	tz_name = orchestrator.store.get_timezone(organization)

	return BookingRequest(
		organization_id=organization,
		client_id=client,
		start_time=_localize(start, tz_name),
		pets=parse_pet_selections(pets),
		groomer_id=groomer,
		client_notes=sanitize_notes(client_notes),
		quoted_total=quoted_total,
	)


@frappe.whitelist(allow_guest=True, methods=['GET'])
def get_available_slots(groomer: str, date: str, duration_minutes: int) -> List[Dict[str, str]]:
	"""
	Lists bookable start times of a groomer on a day.

	Rate limited: 30 requests per minute per IP.

	Args:
		groomer: Staff Availability name of the groomer
		date: local date (YYYY-MM-DD)
		duration_minutes: total duration of the appointment

	Returns:
		list[dict]: [{"start": "2026-01-15 10:45:00", "end": "2026-01-15 11:45:00"}, ...]
	"""
	check_rate_limit("get_available_slots")

	groomer = validate_docname(groomer, "groomer")
	target_date = parse_date(date, "date")
	duration = validate_positive_int(duration_minutes, "duration_minutes")

	try:
		organization = _groomer_organization(groomer)
		orchestrator = get_orchestrator()
		tz_name = orchestrator.store.get_timezone(organization)

		slots = orchestrator.list_available_slots(groomer, target_date, duration, organization)
		return [_slot_response(slot, duration, tz_name) for slot in slots]

	except SchedulingError as e:
		_throw_scheduling_error(e)
	except frappe.ValidationError:
		raise
	except Exception as e:
		frappe.log_error(f"Error in get_available_slots: {str(e)}", "Booking API Error")
		frappe.throw(_("Unexpected error, please try again"))


@frappe.whitelist(allow_guest=True, methods=['GET'])
def get_week_slots(groomer: str, start_date: str, duration_minutes: int) -> Dict[str, List[str]]:
	"""
	Bookable start times of a groomer for the 7 days from start_date.

	Rate limited: 20 requests per minute per IP.

	Returns:
		dict: {"2026-01-15": ["2026-01-15 10:45:00", ...], ...}
	"""
	check_rate_limit("get_week_slots")

	groomer = validate_docname(groomer, "groomer")
	first_date = parse_date(start_date, "start_date")
	duration = validate_positive_int(duration_minutes, "duration_minutes")

	try:
		organization = _groomer_organization(groomer)
		orchestrator = get_orchestrator()
		tz_name = orchestrator.store.get_timezone(organization)

		week = orchestrator.list_slots_for_week(groomer, first_date, duration, organization)
		return {
			day: [_format_local(slot, tz_name) for slot in slots]
			for day, slots in week.items()
		}

	except SchedulingError as e:
		_throw_scheduling_error(e)
	except frappe.ValidationError:
		raise
	except Exception as e:
		frappe.log_error(f"Error in get_week_slots: {str(e)}", "Booking API Error")
		frappe.throw(_("Unexpected error, please try again"))


@frappe.whitelist(allow_guest=True, methods=['GET'])
def get_groomer_day(groomer: str, date: str) -> Dict[str, Any]:
	"""Working hours, break, time off and load of a groomer's day."""
	check_rate_limit("get_groomer_day")

	groomer = validate_docname(groomer, "groomer")
	target_date = parse_date(date, "date")

	try:
		organization = _groomer_organization(groomer)
		return get_orchestrator().get_day_summary(groomer, target_date, organization)
	except SchedulingError as e:
		_throw_scheduling_error(e)
	except frappe.ValidationError:
		raise
	except Exception as e:
		frappe.log_error(f"Error in get_groomer_day: {str(e)}", "Booking API Error")
		frappe.throw(_("Unexpected error, please try again"))


@frappe.whitelist(allow_guest=True, methods=['GET', 'POST'])
def quote_booking(
	organization: str,
	client: str,
	start_datetime: str,
	pets: Any,
	groomer: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Live quote for a booking. Reserves nothing.

	Used by the booking form to show price, duration, free slots and
	any policy violation before the client confirms.

	Rate limited: 30 requests per minute per IP.

	Args:
		organization: organization name (Booking Policies)
		client: client making the booking
		start_datetime: requested start (YYYY-MM-DD HH:MM:SS)
		pets: JSON [{"pet_id": "...", "services": [{"service_id": "...", "modifier_ids": [...]}]}]
		groomer: chosen groomer (empty = any groomer)

	Returns:
		dict: BookingQuote.as_dict with datetimes in local time
	"""
	check_rate_limit("quote_booking")

	request = _build_request(organization, client, start_datetime, pets, groomer)

	try:
		orchestrator = get_orchestrator()
		tz_name = orchestrator.store.get_timezone(request.organization_id)

		result = orchestrator.quote_and_validate(request).as_dict()
		result["available_slots"] = [
			_format_local(datetime.fromisoformat(slot), tz_name) for slot in result["available_slots"]
		]
		result["start_time"] = _format_local(request.start_time, tz_name)
		result["end_time"] = _format_local(datetime.fromisoformat(result["end_time"]), tz_name)
		return result

	except SchedulingError as e:
		_throw_scheduling_error(e)
	except frappe.ValidationError:
		raise
	except Exception as e:
		frappe.log_error(f"Error in quote_booking: {str(e)}", "Booking API Error")
		frappe.throw(_("Unexpected error, please try again"))


@frappe.whitelist(allow_guest=True, methods=['POST'])
def create_booking(
	organization: str,
	client: str,
	start_datetime: str,
	pets: Any,
	groomer: Optional[str] = None,
	client_notes: Optional[str] = None,
	quoted_total: Optional[str] = None,
	honeypot: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Books an appointment.

	Price, duration, deposit and status are recomputed on the server;
	quoted_total is only logged when it differs.

	Rate limited: 5 requests per minute per IP.

	Returns:
		dict: the created appointment (name, groomer, times, status, amounts)

	Example:
		```javascript
		frappe.call({
			method: "groom_scheduling.api.bookings.create_booking",
			args: {
				organization: "Happy Paws",
				client: "CLI-0001",
				start_datetime: "2026-01-20 10:45:00",
				pets: JSON.stringify([{pet_id: "PET-0001", services: [{service_id: "Full Groom", modifier_ids: ["Nail Trim"]}]}])
			},
			callback: function(r) {
				console.log("Booked:", r.message);
			}
		});
		```
	"""
	check_honeypot(honeypot)
	check_rate_limit("create_booking")

	request = _build_request(organization, client, start_datetime, pets, groomer, client_notes, quoted_total)

	try:
		orchestrator = get_orchestrator()
		tz_name = orchestrator.store.get_timezone(request.organization_id)

		appointment = orchestrator.commit(request)
		frappe.db.commit()

		frappe.logger("groom_scheduling").info(
			f"Booking {appointment.id} created for client {request.client_id} ({appointment.status.value})"
		)
		return _appointment_response(appointment, tz_name)

	except SchedulingError as e:
		frappe.db.rollback()
		_throw_scheduling_error(e)
	except frappe.ValidationError:
		frappe.db.rollback()
		raise
	except Exception as e:
		frappe.db.rollback()
		frappe.log_error(f"Error in create_booking: {str(e)}", "Booking API Error")
		frappe.throw(_("Unexpected error, please try again"))


@frappe.whitelist(methods=['GET'])
def get_cancellation_fee(appointment_name: str) -> Dict[str, Any]:
	"""
	Whether the appointment can be cancelled now, and the fee it would cost.

	Returns:
		dict: {"appointment": str, "can_cancel": bool, "is_late": bool,
			"reason": str | None, "fee_amount": "25.00"}
	"""
	appointment_name = validate_docname(appointment_name, "appointment_name")

	try:
		orchestrator = get_orchestrator()
		terms = orchestrator.get_cancellation_terms(appointment_name)
		return {
			"appointment": appointment_name,
			"can_cancel": terms["can_cancel"],
			"is_late": terms["is_late"],
			"reason": terms["reason"],
			"fee_amount": str(terms["fee_amount"]),
		}
	except SchedulingError as e:
		_throw_scheduling_error(e)
	except frappe.ValidationError:
		raise
	except Exception as e:
		frappe.log_error(f"Error in get_cancellation_fee: {str(e)}", "Booking API Error")
		frappe.throw(_("Unexpected error, please try again"))


@frappe.whitelist(methods=['POST'])
def cancel_appointment(appointment_name: str) -> Dict[str, Any]:
	"""
	Cancels an appointment and records the late-cancellation fee, if any.

	Returns:
		dict: the updated appointment
	"""
	appointment_name = validate_docname(appointment_name, "appointment_name")

	try:
		orchestrator = get_orchestrator()
		appointment = orchestrator.cancel(appointment_name)
		frappe.db.commit()

		tz_name = orchestrator.store.get_timezone(appointment.organization_id)
		return _appointment_response(appointment, tz_name)

	except SchedulingError as e:
		frappe.db.rollback()
		_throw_scheduling_error(e)
	except frappe.ValidationError:
		frappe.db.rollback()
		raise
	except Exception as e:
		frappe.db.rollback()
		frappe.log_error(f"Error in cancel_appointment: {str(e)}", "Booking API Error")
		frappe.throw(_("Unexpected error, please try again"))


@frappe.whitelist(methods=['POST'])
def update_appointment_status(appointment_name: str, status: str) -> Dict[str, Any]:
	"""
	Changes the status of an appointment (front desk).

	Cancellation and no-show apply their Booking Policies fees.

	Returns:
		dict: the updated appointment
	"""
	appointment_name = validate_docname(appointment_name, "appointment_name")
	new_status = validate_status(status)

	try:
		orchestrator = get_orchestrator()
		appointment = orchestrator.transition(appointment_name, new_status)
		frappe.db.commit()

		tz_name = orchestrator.store.get_timezone(appointment.organization_id)
		return _appointment_response(appointment, tz_name)

	except SchedulingError as e:
		frappe.db.rollback()
		_throw_scheduling_error(e)
	except frappe.ValidationError:
		frappe.db.rollback()
		raise
	except Exception as e:
		frappe.db.rollback()
		frappe.log_error(f"Error in update_appointment_status: {str(e)}", "Booking API Error")
		frappe.throw(_("Unexpected error, please try again"))
