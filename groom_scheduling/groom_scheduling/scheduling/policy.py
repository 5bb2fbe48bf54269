"""
Booking Policy Evaluator

Applies an organization's booking policies to a prospective or existing
appointment: advance-booking window, pet count, confirmation mode, deposit,
and cancellation / no-show fees.

Pure given its inputs; callers persist whatever it returns.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from .errors import BookingValidationError, PolicyViolationError, PolicyViolationReason
from .types import (
	Appointment,
	AppointmentStatus,
	BookingPolicies,
	ConfirmationMode,
	Number,
	Pet,
	money,
	to_decimal,
)

DEFAULT_MAX_APPOINTMENT_MINUTES = 480

FINALIZED_STATUSES = (
	AppointmentStatus.COMPLETED,
	AppointmentStatus.CANCELLED,
	AppointmentStatus.NO_SHOW,
)


@dataclass(frozen=True)
class PolicyResult:
	status: AppointmentStatus
	deposit_amount: Decimal

	@property
	def requires_confirmation(self) -> bool:
		return self.status == AppointmentStatus.REQUESTED


@dataclass(frozen=True)
class CancellationCheck:
	can_cancel: bool
	is_late: bool
	reason: Optional[str] = None


def _percent_of(amount: Number, percentage: Number) -> Decimal:
	return to_decimal(amount) * to_decimal(percentage) / Decimal(100)


def confirmation_mode(policies: BookingPolicies, is_new_client: bool) -> ConfirmationMode:
	return policies.new_client_mode if is_new_client else policies.existing_client_mode


def calculate_deposit(policies: BookingPolicies, total_price: Number) -> Decimal:
	"""
	Deposit owed at booking time.

	Returns:
		Decimal: max(deposit_minimum, total * deposit_percentage / 100) when a
		deposit is required, otherwise 0
	"""
	if not policies.deposit_required:
		return money(0)

	percentage_deposit = _percent_of(total_price, policies.deposit_percentage)
	return money(max(percentage_deposit, policies.deposit_minimum))


def check_policy(
	policies: BookingPolicies,
	is_new_client: bool,
	start: datetime,
	pet_count: int,
	now: datetime
) -> List[PolicyViolationError]:
	"""
	Collects every policy violation of a booking without raising.

	Used by live quotes so the client sees all problems at once.
	"""
	violations = []

	earliest = now + timedelta(hours=policies.min_advance_booking_hours)
	latest = now + timedelta(days=policies.max_advance_booking_days)

	if start < earliest:
		violations.append(PolicyViolationError(
			PolicyViolationReason.TOO_SOON,
			f"Appointments must be booked at least {policies.min_advance_booking_hours} hours in advance"
		))
	elif start > latest:
		violations.append(PolicyViolationError(
			PolicyViolationReason.TOO_FAR,
			f"Appointments cannot be booked more than {policies.max_advance_booking_days} days in advance"
		))

	if pet_count > policies.max_pets_per_appointment:
		violations.append(PolicyViolationError(
			PolicyViolationReason.TOO_MANY_PETS,
			f"Maximum {policies.max_pets_per_appointment} pets per appointment"
		))

	if confirmation_mode(policies, is_new_client) == ConfirmationMode.BLOCKED:
		who = "new clients" if is_new_client else "existing clients"
		violations.append(PolicyViolationError(
			PolicyViolationReason.BLOCKED,
			f"Online booking is not available for {who}. Please contact us to schedule."
		))

	return violations


def evaluate_policy(
	policies: BookingPolicies,
	is_new_client: bool,
	start: datetime,
	total_price: Number,
	pet_count: int,
	now: datetime
) -> PolicyResult:
	"""
	Decides how a requested booking is disposed.

	Args:
		policies: organization BookingPolicies
		is_new_client: whether the requesting client has booked before
		start: requested start instant
		total_price: quoted total of the appointment
		pet_count: distinct pets in the request
		now: current instant (injected so the evaluation stays pure)

	Returns:
		PolicyResult: status ("confirmed" or "requested") and deposit amount

	Raises:
		PolicyViolationError: too_soon, too_far, too_many_pets or blocked
	"""
	violations = check_policy(policies, is_new_client, start, pet_count, now)
	if violations:
		raise violations[0]

	if confirmation_mode(policies, is_new_client) == ConfirmationMode.AUTO_CONFIRM:
		status = AppointmentStatus.CONFIRMED
	else:
		status = AppointmentStatus.REQUESTED

	return PolicyResult(status=status, deposit_amount=calculate_deposit(policies, total_price))


def is_late_cancellation(policies: BookingPolicies, appointment: Appointment, cancel_instant: datetime) -> bool:
	window = timedelta(hours=policies.cancellation_window_hours)
	return appointment.start_time - cancel_instant < window


def compute_cancellation_fee(
	policies: BookingPolicies,
	appointment: Appointment,
	cancel_instant: datetime
) -> Decimal:
	"""
	Fee charged when an appointment is cancelled at cancel_instant.

	Late cancellations (inside cancellation_window_hours before start) pay
	late_cancellation_fee_percentage of the total; earlier ones pay nothing.
	"""
	if not is_late_cancellation(policies, appointment, cancel_instant):
		return money(0)

	return money(_percent_of(appointment.total_amount, policies.late_cancellation_fee_percentage))


def compute_no_show_fee(policies: BookingPolicies, appointment: Appointment) -> Decimal:
	"""No-show fee; independent of timing."""
	return money(_percent_of(appointment.total_amount, policies.no_show_fee_percentage))


def check_cancellation_window(
	policies: BookingPolicies,
	appointment: Appointment,
	now: datetime
) -> CancellationCheck:
	"""Whether an appointment can still be cancelled, and whether it would be late."""
	if appointment.status in FINALIZED_STATUSES:
		return CancellationCheck(can_cancel=False, is_late=False, reason="Appointment already finalized")

	if appointment.start_time <= now:
		return CancellationCheck(can_cancel=False, is_late=False, reason="Cannot cancel past appointments")

	return CancellationCheck(can_cancel=True, is_late=is_late_cancellation(policies, appointment, now))


# ===== REQUEST VALIDATION =====

def validate_appointment_duration(total_duration_minutes: int, max_minutes: int = DEFAULT_MAX_APPOINTMENT_MINUTES) -> None:
	if total_duration_minutes <= 0:
		raise BookingValidationError("Select at least one service")

	if total_duration_minutes > max_minutes:
		raise BookingValidationError(
			f"Appointment duration ({total_duration_minutes} minutes) exceeds the maximum "
			f"allowed duration of {max_minutes} minutes"
		)


def validate_pet_ownership(pets: Iterable[Pet], client_id: str) -> None:
	for pet in pets:
		if pet.client_id is not None and pet.client_id != client_id:
			raise BookingValidationError(f'Pet "{pet.name or pet.id}" does not belong to this client')


def validate_vaccinations(pets: Iterable[Pet], on_date: date) -> None:
	"""
	Rejects bookings for pets with a vaccination expired by the appointment date.

	Pets without vaccination records are accepted.
	"""
	expired = [
		pet.name or pet.id for pet in pets
		if any(expiration < on_date for expiration in pet.vaccination_expirations)
	]

	if expired:
		verb = "has" if len(expired) == 1 else "have"
		raise BookingValidationError(
			f"Cannot book: {', '.join(expired)} {verb} expired vaccinations. "
			"Please update vaccination records before booking."
		)
