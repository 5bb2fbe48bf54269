"""
Scheduling Errors

Error taxonomy for the availability and pricing engine.
Every error is scoped to a single booking attempt; only SlotConflictError is retryable.
"""

from enum import Enum
from typing import Optional


class SchedulingError(Exception):
	"""Base class for engine errors."""

	code = "scheduling_error"
	retryable = False


class UnknownModifierError(SchedulingError):
	"""A selected modifier id does not belong to the service."""

	code = "unknown_modifier"

	def __init__(self, service_id: str, modifier_id: str):
		self.service_id = service_id
		self.modifier_id = modifier_id
		super().__init__(f"Modifier '{modifier_id}' does not belong to service '{service_id}'")


class InactiveServiceError(SchedulingError):
	code = "inactive_service"

	def __init__(self, service_id: str):
		self.service_id = service_id
		super().__init__(f"Service '{service_id}' is not active")


class ServiceNotFoundError(SchedulingError):
	code = "service_not_found"

	def __init__(self, service_id: str):
		self.service_id = service_id
		super().__init__(f"Service '{service_id}' does not exist")


class StaffNotFoundError(SchedulingError):
	"""No availability is configured for the staff member."""

	code = "staff_not_found"

	def __init__(self, staff_id: str):
		self.staff_id = staff_id
		super().__init__(f"No availability configured for staff member '{staff_id}'")


class AppointmentNotFoundError(SchedulingError):
	code = "appointment_not_found"

	def __init__(self, appointment_id: str):
		self.appointment_id = appointment_id
		super().__init__(f"Appointment '{appointment_id}' does not exist")


class PolicyViolationReason(str, Enum):
	TOO_SOON = "too_soon"
	TOO_FAR = "too_far"
	TOO_MANY_PETS = "too_many_pets"
	BLOCKED = "blocked"


class PolicyViolationError(SchedulingError):
	"""
	The booking breaks an organization booking policy.

	The message is meant to be shown to the client as is.
	"""

	code = "policy_violation"

	def __init__(self, reason: PolicyViolationReason, message: str):
		self.reason = PolicyViolationReason(reason)
		super().__init__(message)


class SlotConflictError(SchedulingError):
	"""The requested slot was taken by a concurrent booking. Re-quote and retry."""

	code = "slot_conflict"
	retryable = True

	def __init__(self, message: Optional[str] = None):
		super().__init__(message or "The selected time slot is no longer available")


class BookingValidationError(SchedulingError):
	code = "booking_validation"


class InvalidStatusTransitionError(SchedulingError):
	code = "invalid_status_transition"

	def __init__(self, current: str, new: str):
		self.current = current
		self.new = new
		super().__init__(f'Cannot change status from "{current}" to "{new}"')
