"""
Frappe Booking Store

BookingStore backed by the app's DocTypes:
- Grooming Service (child table: Service Modifier)
- Pet (child table: Pet Vaccination)
- Staff Availability (child table: Staff Schedule Day)
- Time Off Request
- Grooming Appointment (child table: Appointment Service Line)
- Booking Policies (one per organization, also holds the timezone)

Datetimes are stored naive in the organization timezone and handed to the
engine timezone-aware.
"""

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

import frappe
from frappe.utils import get_datetime, get_time, getdate

from .availability import get_timezone
from .config import EngineSettings, settings_from_mapping
from .errors import AppointmentNotFoundError, StaffNotFoundError
from .store import BookingStore, ConflictGuard
from .types import (
	Appointment,
	AppointmentPet,
	AppointmentService,
	BookingPolicies,
	DaySchedule,
	ModifierCondition,
	Pet,
	Service,
	ServiceModifier,
	StaffAvailability,
	TimeOffRequest,
	to_decimal,
)

# One day either side covers every appointment that can share the candidate's local date.
_GUARD_MARGIN = timedelta(days=1)

APPOINTMENT_FIELDS = [
	"name",
	"organization",
	"client",
	"groomer",
	"start_datetime",
	"end_datetime",
	"status",
	"deposit_amount",
	"deposit_paid",
	"total_amount",
	"fee_amount",
	"client_notes",
]


def settings_from_conf() -> EngineSettings:
	"""EngineSettings from site_config.json keys prefixed with groom_scheduling_."""
	return settings_from_mapping(dict(frappe.conf or {}))


def _split(value: Optional[str]) -> Optional[List[str]]:
	"""Comma or newline separated values; None when empty."""
	if not value:
		return None
	items = [item.strip() for item in value.replace("\n", ",").split(",")]
	return [item for item in items if item] or None


def _hhmm(value) -> Optional[str]:
	if not value:
		return None
	if isinstance(value, timedelta):
		return (datetime.min + value).time().strftime("%H:%M")
	return get_time(value).strftime("%H:%M")


class FrappeBookingStore(BookingStore):
	"""
	BookingStore reading and writing through the Frappe ORM.

	insert_appointment serializes commits per groomer with a row lock on the
	groomer's Staff Availability record, held until the request transaction ends.
	"""

	def __init__(self, settings: Optional[EngineSettings] = None):
		self.settings = settings or settings_from_conf()

	# ===== TIMEZONE =====

	def get_timezone(self, organization_id: Optional[str]) -> str:
		tz_name = None
		if organization_id:
			tz_name = frappe.db.get_value("Booking Policies", organization_id, "timezone")

		if not tz_name or tz_name == "system timezone":
			tz_name = frappe.utils.get_system_timezone() or self.settings.default_timezone

		return tz_name

	def _to_aware(self, value, tz_name: str) -> datetime:
		tz = get_timezone(tz_name)
		value = get_datetime(value)
		if value.tzinfo is None:
			return tz.localize(value)
		return value.astimezone(tz)

	def _to_db(self, value: datetime, tz_name: str) -> datetime:
		if value.tzinfo is None:
			return value
		return value.astimezone(get_timezone(tz_name)).replace(tzinfo=None)

	# ===== CATALOG =====

	def get_service(self, service_id: str) -> Optional[Service]:
		if not frappe.db.exists("Grooming Service", service_id):
			return None

		doc = frappe.get_cached_doc("Grooming Service", service_id)
		modifiers = [
			ServiceModifier(
				id=row.name,
				service_id=doc.name,
				type=row.modifier_type,
				duration_minutes=row.duration_minutes or 0,
				price_adjustment=to_decimal(row.price_adjustment or 0),
				is_percentage=bool(row.is_percentage),
				condition=ModifierCondition.build(
					weight_range=_split(row.applies_to_weight_ranges),
					coat_type=_split(row.applies_to_coat_types),
				),
				name=row.modifier_name or "",
			)
			for row in doc.get("modifiers") or []
		]

		return Service(
			id=doc.name,
			base_duration_minutes=doc.base_duration_minutes or 0,
			base_price=to_decimal(doc.base_price or 0),
			name=doc.service_name or doc.name,
			category=doc.category or "",
			is_active=bool(doc.is_active),
			modifiers=modifiers,
		)

	def get_pet(self, pet_id: str) -> Optional[Pet]:
		if not frappe.db.exists("Pet", pet_id):
			return None

		doc = frappe.get_doc("Pet", pet_id)
		return Pet(
			id=doc.name,
			weight_range=doc.weight_range,
			coat_type=doc.coat_type,
			client_id=doc.client or None,
			name=doc.pet_name or doc.name,
			species=doc.species or "dog",
			vaccination_expirations=[
				getdate(row.expiration_date)
				for row in doc.get("vaccinations") or []
				if row.expiration_date
			],
		)

	# ===== STAFF =====

	def get_staff_availability(self, staff_id: str) -> Optional[StaffAvailability]:
		if not staff_id or not frappe.db.exists("Staff Availability", staff_id):
			return None

		doc = frappe.get_doc("Staff Availability", staff_id)
		if not doc.is_active:
			return None

		weekly_schedule = {}
		for row in doc.get("weekly_schedule") or []:
			weekly_schedule[int(row.day_of_week)] = DaySchedule(
				day_of_week=int(row.day_of_week),
				is_working_day=bool(row.is_working_day),
				start_time=_hhmm(row.start_time) or "09:00",
				end_time=_hhmm(row.end_time) or "17:00",
				break_start=_hhmm(row.break_start),
				break_end=_hhmm(row.break_end),
			)

		return StaffAvailability(
			staff_id=doc.name,
			weekly_schedule=weekly_schedule,
			max_appointments_per_day=doc.max_appointments_per_day or 8,
			buffer_minutes_between_appointments=doc.buffer_minutes_between_appointments or 0,
		)

	def list_staff(self, organization_id: str) -> List[str]:
		return frappe.get_all(
			"Staff Availability",
			filters={"organization": organization_id, "is_active": 1},
			order_by="creation asc",
			pluck="name",
		)

	def get_time_off(self, staff_id: str, start_date: date, end_date: date) -> List[TimeOffRequest]:
		rows = frappe.get_all(
			"Time Off Request",
			filters={
				"staff_member": staff_id,
				"start_date": ["<=", end_date],
				"end_date": [">=", start_date],
			},
			fields=["name", "staff_member", "start_date", "end_date", "status", "reason"],
		)
		return [
			TimeOffRequest(
				id=row.name,
				staff_id=row.staff_member,
				start_date=getdate(row.start_date),
				end_date=getdate(row.end_date),
				status=(row.status or "pending").lower(),
				reason=row.reason or "",
			)
			for row in rows
		]

	# ===== APPOINTMENTS =====

	def _appointment_from_row(self, row, tz_name: str, pets: Optional[List[AppointmentPet]] = None) -> Appointment:
		return Appointment(
			id=row.name,
			organization_id=row.organization,
			client_id=row.client,
			groomer_id=row.groomer or None,
			start_time=self._to_aware(row.start_datetime, tz_name),
			end_time=self._to_aware(row.end_datetime, tz_name),
			status=row.status,
			pets=pets or [],
			deposit_amount=to_decimal(row.deposit_amount or 0),
			deposit_paid=bool(row.deposit_paid),
			total_amount=to_decimal(row.total_amount or 0),
			fee_amount=to_decimal(row.fee_amount or 0),
			client_notes=row.client_notes or "",
		)

	def _staff_timezone(self, staff_id: str) -> str:
		organization = frappe.db.get_value("Staff Availability", staff_id, "organization")
		return self.get_timezone(organization)

	def _query_appointments(
		self,
		staff_id: str,
		start: datetime,
		end: datetime,
		for_update: bool = False
	) -> List[Appointment]:
		"""
		Appointments of a staff member overlapping [start, end).

		With for_update the rows are read with a locking read, which sees the
		latest committed rows instead of the transaction snapshot.
		"""
		tz_name = self._staff_timezone(staff_id)
		rows = frappe.get_all(
			"Grooming Appointment",
			filters={
				"groomer": staff_id,
				"start_datetime": ["<", self._to_db(end, tz_name)],
				"end_datetime": [">", self._to_db(start, tz_name)],
			},
			fields=APPOINTMENT_FIELDS,
			order_by="start_datetime asc",
			for_update=for_update,
		)
		return [self._appointment_from_row(row, tz_name) for row in rows]

	def get_appointments(self, staff_id: str, start: datetime, end: datetime) -> List[Appointment]:
		return self._query_appointments(staff_id, start, end)

	def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
		if not frappe.db.exists("Grooming Appointment", appointment_id):
			return None

		doc = frappe.get_doc("Grooming Appointment", appointment_id)
		tz_name = self.get_timezone(doc.organization)

		pets: Dict[str, AppointmentPet] = {}
		for line in doc.get("services") or []:
			pet = pets.setdefault(line.pet, AppointmentPet(pet_id=line.pet))
			pet.services.append(AppointmentService(
				service_id=line.service,
				applied_modifier_ids=_split(line.applied_modifiers) or [],
				final_duration=line.final_duration or 0,
				final_price=to_decimal(line.final_price or 0),
			))

		return self._appointment_from_row(doc, tz_name, list(pets.values()))

	def get_policies(self, organization_id: str) -> BookingPolicies:
		if not frappe.db.exists("Booking Policies", organization_id):
			return BookingPolicies(organization_id=organization_id)

		doc = frappe.get_cached_doc("Booking Policies", organization_id)
		return BookingPolicies(
			organization_id=organization_id,
			new_client_mode=doc.new_client_mode,
			existing_client_mode=doc.existing_client_mode,
			deposit_required=bool(doc.deposit_required),
			deposit_percentage=doc.deposit_percentage or 0,
			deposit_minimum=doc.deposit_minimum or 0,
			no_show_fee_percentage=doc.no_show_fee_percentage or 0,
			cancellation_window_hours=doc.cancellation_window_hours or 0,
			late_cancellation_fee_percentage=doc.late_cancellation_fee_percentage or 0,
			max_pets_per_appointment=doc.max_pets_per_appointment or 1,
			min_advance_booking_hours=doc.min_advance_booking_hours or 0,
			max_advance_booking_days=doc.max_advance_booking_days or 0,
		)

	def is_new_client(self, client_id: str) -> bool:
		return not frappe.db.exists("Grooming Appointment", {"client": client_id})

	def _service_lines(self, appointment: Appointment) -> List[Dict]:
		return [
			{
				"pet": pet.pet_id,
				"service": service.service_id,
				"applied_modifiers": ",".join(service.applied_modifier_ids),
				"final_duration": service.final_duration,
				"final_price": service.final_price,
			}
			for pet in appointment.pets
			for service in pet.services
		]

	def insert_appointment(self, appointment: Appointment, guard: ConflictGuard) -> Appointment:
		"""
		Locks the groomer's Staff Availability row, runs the guard and inserts.

		The guard sees the groomer's appointments through a locking read, so a
		commit that waited on the row lock also sees the appointment inserted
		by the commit that held it. Locks are released when the request
		transaction commits or rolls back.
		"""
		locked = frappe.db.sql(
			"SELECT name FROM `tabStaff Availability` WHERE name = %s FOR UPDATE",
			(appointment.groomer_id,),
		)
		if not locked:
			raise StaffNotFoundError(appointment.groomer_id)

		neighbours = self._query_appointments(
			appointment.groomer_id,
			appointment.start_time - _GUARD_MARGIN,
			appointment.end_time + _GUARD_MARGIN,
			for_update=True,
		)
		guard(neighbours)

		tz_name = self.get_timezone(appointment.organization_id)
		doc = frappe.get_doc({
			"doctype": "Grooming Appointment",
			"organization": appointment.organization_id,
			"client": appointment.client_id,
			"groomer": appointment.groomer_id,
			"start_datetime": self._to_db(appointment.start_time, tz_name),
			"end_datetime": self._to_db(appointment.end_time, tz_name),
			"status": appointment.status.value,
			"deposit_amount": appointment.deposit_amount,
			"deposit_paid": int(appointment.deposit_paid),
			"total_amount": appointment.total_amount,
			"fee_amount": appointment.fee_amount,
			"client_notes": appointment.client_notes,
			"services": self._service_lines(appointment),
		})
		doc.insert(ignore_permissions=True)

		appointment.id = doc.name
		return appointment

	def update_appointment(self, appointment: Appointment) -> Appointment:
		if not appointment.id or not frappe.db.exists("Grooming Appointment", appointment.id):
			raise AppointmentNotFoundError(appointment.id)

		doc = frappe.get_doc("Grooming Appointment", appointment.id)
		doc.status = appointment.status.value
		doc.fee_amount = appointment.fee_amount
		doc.deposit_paid = int(appointment.deposit_paid)
		doc.save(ignore_permissions=True)
		return appointment
