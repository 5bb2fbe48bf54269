"""
Booking Orchestrator

Composes the modifier resolver, availability calculator and policy evaluator
into the two calls used by the booking flow:

- quote_and_validate: live quote for the UI, no side effects
- commit: recomputes everything from live data and reserves the slot

Flow:
1. Client picks pets, services and add-ons -> quote_and_validate shows price,
   duration, free slots and any policy problem
2. Client submits -> commit ignores client totals, re-runs the pipeline and
   inserts through the store under a per-staff conflict guard
3. If another booking wins the race, the guard raises SlotConflictError; the
   commit re-quotes and retries a bounded number of times
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

import pytz

from .availability import (
	count_appointments_on,
	day_bounds,
	find_conflicts,
	get_day_summary,
	list_available_slots,
	local_date,
	localize_instant,
)
from .config import DEFAULT_SETTINGS, EngineSettings
from .errors import (
	AppointmentNotFoundError,
	BookingValidationError,
	PolicyViolationError,
	ServiceNotFoundError,
	SlotConflictError,
	StaffNotFoundError,
)
from .modifiers import ModifierQuote, combine_quotes, resolve_modifiers
from .policy import (
	PolicyResult,
	check_cancellation_window,
	check_policy,
	compute_cancellation_fee,
	compute_no_show_fee,
	evaluate_policy,
	validate_appointment_duration,
	validate_pet_ownership,
	validate_vaccinations,
)
from .status import validate_status_transition
from .store import BookingStore, ConflictGuard
from .types import (
	Appointment,
	AppointmentPet,
	AppointmentStatus,
	Pet,
	StaffAvailability,
	money,
)

logger = logging.getLogger(__name__)


@dataclass
class ServiceSelection:
	service_id: str
	modifier_ids: List[str] = field(default_factory=list)


@dataclass
class PetSelection:
	pet_id: str
	services: List[ServiceSelection] = field(default_factory=list)


@dataclass
class BookingRequest:
	"""
	A booking as submitted by the client.

	quoted_total is whatever the client displayed; it is never used for pricing.
	groomer_id None means "any available groomer".
	A naive start_time is wall-clock time in the organization timezone.
	"""

	organization_id: str
	client_id: str
	start_time: datetime
	pets: List[PetSelection]
	groomer_id: Optional[str] = None
	client_notes: str = ""
	quoted_total: Optional[Decimal] = None

	@property
	def pet_count(self) -> int:
		return len({p.pet_id for p in self.pets})


@dataclass
class BookingQuote:
	quote: ModifierQuote
	pet_quotes: Dict[str, ModifierQuote]
	available_slots: List[datetime]
	slots_by_groomer: Dict[str, List[datetime]]
	policy_result: Optional[PolicyResult]
	violations: List[PolicyViolationError]
	slot_available: bool
	groomer_id: Optional[str]
	is_new_client: bool
	start_time: datetime
	end_time: datetime

	@property
	def is_bookable(self) -> bool:
		return self.slot_available and not self.violations

	def as_dict(self) -> Dict:
		"""JSON-friendly representation for API responses."""
		return {
			"total_duration": self.quote.total_duration,
			"total_price": str(self.quote.total_price),
			"pets": [
				{
					"pet_id": pet_id,
					"services": [
						{
							"service_id": s.service_id,
							"applied_modifier_ids": list(s.applied_modifier_ids),
							"final_duration": s.final_duration,
							"final_price": str(s.final_price),
						}
						for s in pet_quote.per_service
					],
				}
				for pet_id, pet_quote in self.pet_quotes.items()
			],
			"available_slots": [slot.isoformat() for slot in self.available_slots],
			"groomer_id": self.groomer_id,
			"slot_available": self.slot_available,
			"status": self.policy_result.status.value if self.policy_result else None,
			"deposit_amount": str(self.policy_result.deposit_amount) if self.policy_result else None,
			"violations": [{"reason": v.reason.value, "message": str(v)} for v in self.violations],
			"is_new_client": self.is_new_client,
			"start_time": self.start_time.isoformat(),
			"end_time": self.end_time.isoformat(),
		}


def _utc_now() -> datetime:
	return datetime.now(pytz.UTC)


class BookingOrchestrator:
	"""
	Booking entry point shared by the booking API and quote previews.

	Args:
		store: BookingStore used for reads and the guarded insert
		settings: EngineSettings
		clock: returns the current aware datetime (injected for tests)
	"""

	def __init__(
		self,
		store: BookingStore,
		settings: EngineSettings = DEFAULT_SETTINGS,
		clock: Optional[Callable[[], datetime]] = None
	):
		self.store = store
		self.settings = settings
		self.clock = clock or _utc_now

	# ===== PRICING =====

	def _load_pets(self, request: BookingRequest) -> List[Pet]:
		pets = []
		for selection in request.pets:
			pet = self.store.get_pet(selection.pet_id)
			if pet is None:
				raise BookingValidationError(f"Pet '{selection.pet_id}' does not exist")
			pets.append(pet)
		return pets

	def price(self, request: BookingRequest) -> Tuple[Dict[str, ModifierQuote], ModifierQuote, List[Pet]]:
		"""
		Resolves modifiers for every pet of a request.

		Returns:
			tuple: (quote per pet id, appointment totals, loaded pets)
		"""
		if not request.pets:
			raise BookingValidationError("Select at least one pet")

		pets = self._load_pets(request)
		pet_quotes: Dict[str, ModifierQuote] = {}

		for pet, selection in zip(pets, request.pets):
			selected = []
			for service_selection in selection.services:
				service = self.store.get_service(service_selection.service_id)
				if service is None:
					raise ServiceNotFoundError(service_selection.service_id)
				selected.append((service, service_selection.modifier_ids))

			pet_quote = resolve_modifiers(pet, selected, self.settings)
			if pet.id in pet_quotes:
				pet_quote = combine_quotes([pet_quotes[pet.id], pet_quote])
			pet_quotes[pet.id] = pet_quote

		return pet_quotes, combine_quotes(pet_quotes.values()), pets

	# ===== AVAILABILITY =====

	def _load_day(
		self,
		staff_id: str,
		target_date: date,
		tz: str
	) -> Tuple[Optional[StaffAvailability], list, list]:
		bounds = day_bounds(target_date, tz)
		availability = self.store.get_staff_availability(staff_id)
		time_off = self.store.get_time_off(staff_id, target_date, target_date)
		appointments = self.store.get_appointments(
			staff_id,
			bounds["start"] - timedelta(days=1),
			bounds["end"] + timedelta(days=1),
		)
		return availability, time_off, appointments

	def list_available_slots(
		self,
		staff_id: str,
		target_date: date,
		requested_duration_minutes: int,
		organization_id: Optional[str] = None
	) -> List[datetime]:
		"""
		Bookable start times of a staff member on a local date.

		Raises:
			StaffNotFoundError: if the staff member has no availability configured
		"""
		tz = self.store.get_timezone(organization_id)
		availability, time_off, appointments = self._load_day(staff_id, target_date, tz)

		return list_available_slots(
			staff_id,
			target_date,
			requested_duration_minutes,
			availability,
			time_off,
			appointments,
			tz,
			self.settings.slot_granularity_minutes,
		)

	def list_slots_for_week(
		self,
		staff_id: str,
		start_date: date,
		requested_duration_minutes: int,
		organization_id: Optional[str] = None,
		days: int = 7
	) -> Dict[str, List[datetime]]:
		"""
		Bookable start times for each day of a week starting at start_date.

		Returns:
			dict: {"YYYY-MM-DD": [datetime, ...]} including days without slots
		"""
		result = {}
		for offset in range(days):
			current_date = start_date + timedelta(days=offset)
			result[current_date.strftime("%Y-%m-%d")] = self.list_available_slots(
				staff_id, current_date, requested_duration_minutes, organization_id
			)
		return result

	def get_day_summary(
		self,
		staff_id: str,
		target_date: date,
		organization_id: Optional[str] = None
	) -> Dict:
		"""Working hours, break, time off and booking load of a staff member's day."""
		tz = self.store.get_timezone(organization_id)
		availability, time_off, appointments = self._load_day(staff_id, target_date, tz)
		return get_day_summary(staff_id, target_date, availability, time_off, appointments, tz)

	def _slots_by_groomer(
		self,
		request: BookingRequest,
		target_date: date,
		duration: int
	) -> Dict[str, List[datetime]]:
		if request.groomer_id:
			return {
				request.groomer_id: self.list_available_slots(
					request.groomer_id, target_date, duration, request.organization_id
				)
			}

		result = {}
		for staff_id in self.store.list_staff(request.organization_id):
			try:
				result[staff_id] = self.list_available_slots(
					staff_id, target_date, duration, request.organization_id
				)
			except StaffNotFoundError:
				logger.info("Skipping staff %s: no availability configured", staff_id)
		return result

	# ===== QUOTE =====

	def _validate_request(self, start: datetime, request: BookingRequest, pets: List[Pet], quote: ModifierQuote, tz: str) -> None:
		validate_appointment_duration(quote.total_duration, self.settings.max_appointment_minutes)
		validate_pet_ownership(pets, request.client_id)
		validate_vaccinations(pets, local_date(start, tz))

	def quote_and_validate(self, request: BookingRequest) -> BookingQuote:
		"""
		Prices a request and checks it against availability and policy.

		Never reserves anything; safe to call concurrently and repeatedly.

		Returns:
			BookingQuote: quote, available slots, policy result and violations

		Raises:
			UnknownModifierError, InactiveServiceError, ServiceNotFoundError,
			BookingValidationError: invalid selections
			StaffNotFoundError: the chosen groomer has no availability configured
		"""
		tz = self.store.get_timezone(request.organization_id)
		start = localize_instant(request.start_time, tz)
		pet_quotes, quote, pets = self.price(request)
		self._validate_request(start, request, pets, quote, tz)

		target_date = local_date(start, tz)
		slots_by_groomer = self._slots_by_groomer(request, target_date, quote.total_duration)

		groomer_id = request.groomer_id
		if groomer_id is None:
			groomer_id = next(
				(staff_id for staff_id, slots in slots_by_groomer.items() if start in slots),
				None
			)

		if request.groomer_id:
			available_slots = slots_by_groomer[request.groomer_id]
		else:
			available_slots = sorted({slot for slots in slots_by_groomer.values() for slot in slots})

		slot_available = groomer_id is not None and start in slots_by_groomer.get(groomer_id, [])

		policies = self.store.get_policies(request.organization_id)
		is_new_client = self.store.is_new_client(request.client_id)
		now = self.clock()

		violations = check_policy(policies, is_new_client, start, request.pet_count, now)
		policy_result = None
		if not violations:
			policy_result = evaluate_policy(
				policies, is_new_client, start, quote.total_price, request.pet_count, now
			)

		return BookingQuote(
			quote=quote,
			pet_quotes=pet_quotes,
			available_slots=available_slots,
			slots_by_groomer=slots_by_groomer,
			policy_result=policy_result,
			violations=violations,
			slot_available=slot_available,
			groomer_id=groomer_id,
			is_new_client=is_new_client,
			start_time=start,
			end_time=start + timedelta(minutes=quote.total_duration),
		)

	# ===== COMMIT =====

	def _build_appointment(self, request: BookingRequest, booking_quote: BookingQuote) -> Appointment:
		return Appointment(
			organization_id=request.organization_id,
			client_id=request.client_id,
			groomer_id=booking_quote.groomer_id,
			start_time=booking_quote.start_time,
			end_time=booking_quote.end_time,
			status=booking_quote.policy_result.status,
			pets=[
				AppointmentPet(
					pet_id=pet_id,
					services=[s.to_appointment_service() for s in pet_quote.per_service],
				)
				for pet_id, pet_quote in booking_quote.pet_quotes.items()
			],
			deposit_amount=booking_quote.policy_result.deposit_amount,
			deposit_paid=False,
			total_amount=booking_quote.quote.total_price,
			client_notes=request.client_notes,
		)

	def _make_guard(self, appointment: Appointment, organization_id: str) -> ConflictGuard:
		availability = self.store.get_staff_availability(appointment.groomer_id)
		if availability is None:
			raise StaffNotFoundError(appointment.groomer_id)

		tz = self.store.get_timezone(organization_id)
		target_date = local_date(appointment.start_time, tz)

		def guard(existing: List[Appointment]) -> None:
			conflicts = find_conflicts(
				appointment.interval,
				existing,
				appointment.groomer_id,
				availability.buffer_minutes_between_appointments,
			)
			if conflicts:
				raise SlotConflictError(
					f"Slot overlaps appointment {conflicts[0].id} for groomer {appointment.groomer_id}"
				)

			booked = count_appointments_on(target_date, existing, appointment.groomer_id, tz)
			if booked >= availability.max_appointments_per_day:
				raise SlotConflictError(f"Groomer {appointment.groomer_id} is fully booked on {target_date}")

		return guard

	def _is_on_schedule(self, request: BookingRequest, booking_quote: BookingQuote) -> bool:
		"""Whether the start would be a slot of an eligible groomer if nothing were booked."""
		tz = self.store.get_timezone(request.organization_id)
		target_date = local_date(booking_quote.start_time, tz)

		for staff_id in booking_quote.slots_by_groomer:
			open_slots = list_available_slots(
				staff_id,
				target_date,
				booking_quote.quote.total_duration,
				self.store.get_staff_availability(staff_id),
				self.store.get_time_off(staff_id, target_date, target_date),
				[],
				tz,
				self.settings.slot_granularity_minutes,
			)
			if booking_quote.start_time in open_slots:
				return True
		return False

	def commit(self, request: BookingRequest) -> Appointment:
		"""
		Books a request against live data.

		Client totals are ignored: price, duration, deposit and status all come
		from a fresh quote. The insert happens under the store's per-staff
		guard; a conflict triggers a re-quote, up to max_commit_attempts times.

		Returns:
			Appointment: the persisted appointment

		Raises:
			PolicyViolationError: the booking breaks a policy
			SlotConflictError: the slot is taken by other appointments (retryable)
			BookingValidationError: the start is off the groomers' schedule, or invalid request
			UnknownModifierError, InactiveServiceError, ServiceNotFoundError,
			StaffNotFoundError: invalid request
		"""
		last_conflict = None

		for attempt in range(1, self.settings.max_commit_attempts + 1):
			booking_quote = self.quote_and_validate(request)

			if booking_quote.violations:
				raise booking_quote.violations[0]

			if not booking_quote.slot_available:
				if not self._is_on_schedule(request, booking_quote):
					raise BookingValidationError(
						f"{booking_quote.start_time.isoformat()} is not a bookable start for this booking"
					)
				raise SlotConflictError()

			if request.quoted_total is not None and Decimal(str(request.quoted_total)) != booking_quote.quote.total_price:
				logger.warning(
					"Client quoted %s but live total is %s for client %s; using live total",
					request.quoted_total, booking_quote.quote.total_price, request.client_id
				)

			appointment = self._build_appointment(request, booking_quote)
			guard = self._make_guard(appointment, request.organization_id)

			try:
				saved = self.store.insert_appointment(appointment, guard)
			except SlotConflictError as e:
				last_conflict = e
				logger.warning(
					"Slot conflict for groomer %s at %s (attempt %s/%s): %s",
					appointment.groomer_id, appointment.start_time.isoformat(),
					attempt, self.settings.max_commit_attempts, e
				)
				continue

			logger.info(
				"Appointment %s booked: groomer=%s start=%s status=%s",
				saved.id, saved.groomer_id, saved.start_time.isoformat(), saved.status.value
			)
			return saved

		raise SlotConflictError(str(last_conflict) if last_conflict else None)

	# ===== LIFECYCLE =====

	def _get(self, appointment_id: str) -> Appointment:
		appointment = self.store.get_appointment(appointment_id)
		if appointment is None:
			raise AppointmentNotFoundError(appointment_id)
		return appointment

	def get_cancellation_fee(self, appointment_id: str, cancel_instant: Optional[datetime] = None) -> Decimal:
		"""Fee the client would pay if the appointment were cancelled at cancel_instant (default now)."""
		appointment = self._get(appointment_id)
		policies = self.store.get_policies(appointment.organization_id)
		return compute_cancellation_fee(policies, appointment, cancel_instant or self.clock())

	def get_cancellation_terms(self, appointment_id: str, cancel_instant: Optional[datetime] = None) -> Dict:
		"""
		What cancelling at cancel_instant (default now) would mean for the client.

		Returns:
			dict: {"can_cancel": bool, "is_late": bool, "reason": str | None, "fee_amount": Decimal}
			fee_amount is 0.00 when the appointment cannot be cancelled.
		"""
		appointment = self._get(appointment_id)
		policies = self.store.get_policies(appointment.organization_id)
		cancel_instant = cancel_instant or self.clock()

		check = check_cancellation_window(policies, appointment, cancel_instant)
		fee = compute_cancellation_fee(policies, appointment, cancel_instant) if check.can_cancel else money(0)

		return {
			"can_cancel": check.can_cancel,
			"is_late": check.is_late,
			"reason": check.reason,
			"fee_amount": fee,
		}

	def cancel(self, appointment_id: str, cancel_instant: Optional[datetime] = None) -> Appointment:
		"""
		Cancels an appointment and records the late-cancellation fee, if any.

		Raises:
			AppointmentNotFoundError, BookingValidationError (finalized or past),
			InvalidStatusTransitionError
		"""
		appointment = self._get(appointment_id)
		policies = self.store.get_policies(appointment.organization_id)
		cancel_instant = cancel_instant or self.clock()

		check = check_cancellation_window(policies, appointment, cancel_instant)
		if not check.can_cancel:
			raise BookingValidationError(check.reason)

		validate_status_transition(appointment.status, AppointmentStatus.CANCELLED)

		appointment.status = AppointmentStatus.CANCELLED
		appointment.fee_amount = compute_cancellation_fee(policies, appointment, cancel_instant)

		logger.info(
			"Appointment %s cancelled (late=%s, fee=%s)",
			appointment.id, check.is_late, appointment.fee_amount
		)
		return self.store.update_appointment(appointment)

	def mark_no_show(self, appointment_id: str) -> Appointment:
		appointment = self._get(appointment_id)
		validate_status_transition(appointment.status, AppointmentStatus.NO_SHOW)

		policies = self.store.get_policies(appointment.organization_id)
		appointment.status = AppointmentStatus.NO_SHOW
		appointment.fee_amount = compute_no_show_fee(policies, appointment)

		logger.info("Appointment %s marked no-show (fee=%s)", appointment.id, appointment.fee_amount)
		return self.store.update_appointment(appointment)

	def transition(self, appointment_id: str, new_status: str) -> Appointment:
		"""
		Moves an appointment to a new status, applying fees for cancel / no-show.

		Raises:
			InvalidStatusTransitionError: if the lifecycle does not allow it
		"""
		new_status = AppointmentStatus(new_status)

		if new_status == AppointmentStatus.CANCELLED:
			return self.cancel(appointment_id)
		if new_status == AppointmentStatus.NO_SHOW:
			return self.mark_no_show(appointment_id)

		appointment = self._get(appointment_id)
		validate_status_transition(appointment.status, new_status)
		appointment.status = new_status
		return self.store.update_appointment(appointment)
