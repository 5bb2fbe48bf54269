"""
Booking Store

Defines the interface the booking orchestrator reads and writes through,
and an in-memory implementation used for quote previews and tests.
"""

import copy
import itertools
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from .errors import AppointmentNotFoundError
from .types import (
	Appointment,
	BookingPolicies,
	Pet,
	Service,
	StaffAvailability,
	TimeOffRequest,
)

# Called by the store while it holds the staff member's write lock, with the
# staff member's appointments around the candidate. Raises SlotConflictError.
ConflictGuard = Callable[[List[Appointment]], None]

# One day either side covers every appointment that can share the candidate's local date.
_GUARD_MARGIN = timedelta(days=1)


class BookingStore(ABC):
	"""
	Base interface for booking stores.

	Reads may be served from any snapshot. insert_appointment must be
	serialized per staff member: the guard runs and the row is written while
	no other insert for the same staff member can interleave.
	"""

	@abstractmethod
	def get_service(self, service_id: str) -> Optional[Service]:
		pass

	@abstractmethod
	def get_pet(self, pet_id: str) -> Optional[Pet]:
		pass

	@abstractmethod
	def get_staff_availability(self, staff_id: str) -> Optional[StaffAvailability]:
		pass

	@abstractmethod
	def list_staff(self, organization_id: str) -> List[str]:
		"""Ids of bookable staff members of an organization, in display order."""
		pass

	@abstractmethod
	def get_time_off(self, staff_id: str, start_date: date, end_date: date) -> List[TimeOffRequest]:
		"""Time off requests of a staff member overlapping [start_date, end_date]."""
		pass

	@abstractmethod
	def get_appointments(self, staff_id: str, start: datetime, end: datetime) -> List[Appointment]:
		"""Appointments of a staff member overlapping [start, end), any status."""
		pass

	@abstractmethod
	def get_policies(self, organization_id: str) -> BookingPolicies:
		pass

	def get_timezone(self, organization_id: str) -> str:
		return "UTC"

	@abstractmethod
	def is_new_client(self, client_id: str) -> bool:
		pass

	@abstractmethod
	def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
		pass

	@abstractmethod
	def insert_appointment(self, appointment: Appointment, guard: ConflictGuard) -> Appointment:
		"""
		Persists a new appointment if the guard accepts it.

		Raises:
			SlotConflictError: raised by the guard when the slot is taken
		"""
		pass

	@abstractmethod
	def update_appointment(self, appointment: Appointment) -> Appointment:
		pass


class InMemoryBookingStore(BookingStore):
	"""
	Thread-safe store kept in process memory.

	Commits are serialized with one lock per staff member.
	"""

	def __init__(self, timezone: str = "UTC"):
		self.timezone = timezone
		self.services: Dict[str, Service] = {}
		self.pets: Dict[str, Pet] = {}
		self.availability: Dict[str, StaffAvailability] = {}
		self.staff_by_organization: Dict[str, List[str]] = defaultdict(list)
		self.time_off: List[TimeOffRequest] = []
		self.appointments: Dict[str, Appointment] = {}
		self.policies: Dict[str, BookingPolicies] = {}
		self.returning_clients = set()

		self._sequence = itertools.count(1)
		self._registry_lock = threading.Lock()
		self._staff_locks: Dict[str, threading.Lock] = {}

	# ===== SEEDING =====

	def add_service(self, service: Service) -> Service:
		self.services[service.id] = service
		return service

	def add_pet(self, pet: Pet) -> Pet:
		self.pets[pet.id] = pet
		return pet

	def add_staff(self, organization_id: str, availability: StaffAvailability) -> StaffAvailability:
		self.availability[availability.staff_id] = availability
		if availability.staff_id not in self.staff_by_organization[organization_id]:
			self.staff_by_organization[organization_id].append(availability.staff_id)
		return availability

	def add_time_off(self, request: TimeOffRequest) -> TimeOffRequest:
		self.time_off.append(request)
		return request

	def set_policies(self, policies: BookingPolicies) -> BookingPolicies:
		self.policies[policies.organization_id] = policies
		return policies

	def add_returning_client(self, client_id: str) -> None:
		self.returning_clients.add(client_id)

	def add_appointments(self, appointments: Iterable[Appointment]) -> None:
		for appointment in appointments:
			with self._registry_lock:
				self._assign_id(appointment)
				self.appointments[appointment.id] = copy.deepcopy(appointment)

	# ===== READS =====

	def get_service(self, service_id: str) -> Optional[Service]:
		return self.services.get(service_id)

	def get_pet(self, pet_id: str) -> Optional[Pet]:
		return self.pets.get(pet_id)

	def get_staff_availability(self, staff_id: str) -> Optional[StaffAvailability]:
		return self.availability.get(staff_id)

	def list_staff(self, organization_id: str) -> List[str]:
		return list(self.staff_by_organization.get(organization_id, []))

	def get_time_off(self, staff_id: str, start_date: date, end_date: date) -> List[TimeOffRequest]:
		return [
			request for request in self.time_off
			if request.staff_id == staff_id
			and request.start_date <= end_date and request.end_date >= start_date
		]

	def get_appointments(self, staff_id: str, start: datetime, end: datetime) -> List[Appointment]:
		return self._appointments_for(staff_id, start, end)

	def get_policies(self, organization_id: str) -> BookingPolicies:
		policies = self.policies.get(organization_id)
		if policies is None:
			policies = BookingPolicies(organization_id=organization_id)
		return policies

	def get_timezone(self, organization_id: str) -> str:
		return self.timezone

	def is_new_client(self, client_id: str) -> bool:
		if client_id in self.returning_clients:
			return False
		with self._registry_lock:
			snapshot = list(self.appointments.values())
		return not any(a.client_id == client_id for a in snapshot)

	def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
		with self._registry_lock:
			appointment = self.appointments.get(appointment_id)
			return copy.deepcopy(appointment) if appointment else None

	# ===== WRITES =====

	def _staff_lock(self, staff_id: str) -> threading.Lock:
		with self._registry_lock:
			if staff_id not in self._staff_locks:
				self._staff_locks[staff_id] = threading.Lock()
			return self._staff_locks[staff_id]

	def _assign_id(self, appointment: Appointment) -> None:
		if not appointment.id:
			appointment.id = f"APT-{next(self._sequence):05d}"

	def _appointments_for(self, staff_id: str, start: datetime, end: datetime) -> List[Appointment]:
		with self._registry_lock:
			snapshot = list(self.appointments.values())
		return [
			copy.deepcopy(appt) for appt in snapshot
			if appt.groomer_id == staff_id and appt.start_time < end and appt.end_time > start
		]

	def insert_appointment(self, appointment: Appointment, guard: ConflictGuard) -> Appointment:
		lock = self._staff_lock(appointment.groomer_id or "")

		with lock:
			neighbours = self._appointments_for(
				appointment.groomer_id,
				appointment.start_time - _GUARD_MARGIN,
				appointment.end_time + _GUARD_MARGIN,
			)
			guard(neighbours)

			stored = copy.deepcopy(appointment)
			with self._registry_lock:
				self._assign_id(stored)
				self.appointments[stored.id] = stored

		return copy.deepcopy(stored)

	def update_appointment(self, appointment: Appointment) -> Appointment:
		with self._registry_lock:
			if appointment.id not in self.appointments:
				raise AppointmentNotFoundError(appointment.id)
			self.appointments[appointment.id] = copy.deepcopy(appointment)
		return copy.deepcopy(appointment)
