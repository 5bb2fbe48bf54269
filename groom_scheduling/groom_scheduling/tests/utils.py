"""
Test factories for the scheduling engine.

Builds services, pets, schedules and a seeded in-memory store without a
Frappe site. Dates are fixed: 2026-03-01 is a Sunday, 2026-03-02 a Monday.
"""

from datetime import date, datetime, time
from decimal import Decimal

import pytz

from groom_scheduling.groom_scheduling.scheduling.availability import build_staff_availability
from groom_scheduling.groom_scheduling.scheduling.booking import (
	BookingRequest,
	PetSelection,
	ServiceSelection,
)
from groom_scheduling.groom_scheduling.scheduling.store import InMemoryBookingStore
from groom_scheduling.groom_scheduling.scheduling.types import (
	Appointment,
	AppointmentStatus,
	BookingPolicies,
	ConfirmationMode,
	DaySchedule,
	ModifierCondition,
	Pet,
	Service,
	ServiceModifier,
)

ORG = "happy-paws"
SUNDAY = date(2026, 3, 1)
MONDAY = date(2026, 3, 2)
TUESDAY = date(2026, 3, 3)


def at(target_date: date, hhmm: str, tz: str = "UTC") -> datetime:
	"""Aware datetime for a local wall-clock time."""
	hours, minutes = (int(part) for part in hhmm.split(":"))
	return pytz.timezone(tz).localize(datetime.combine(target_date, time(hours, minutes)))


class FixedClock:
	def __init__(self, now: datetime):
		self.now = now

	def __call__(self) -> datetime:
		return self.now


def weekday_schedule(start="08:00", end="16:00", break_start="12:00", break_end="12:30"):
	"""Monday to Friday working days; weekends are filled in as days off."""
	return [
		DaySchedule(
			day_of_week=day,
			is_working_day=True,
			start_time=start,
			end_time=end,
			break_start=break_start,
			break_end=break_end,
		)
		for day in range(1, 6)
	]


def make_availability(staff_id="groomer-1", buffer_minutes=15, max_per_day=8, **schedule_kwargs):
	return build_staff_availability(
		staff_id,
		weekday_schedule(**schedule_kwargs),
		max_appointments_per_day=max_per_day,
		buffer_minutes_between_appointments=buffer_minutes,
	)


def make_pet(pet_id="pet-rex", weight_range="large", coat_type="long", client_id="client-1", **kwargs):
	return Pet(
		id=pet_id,
		weight_range=weight_range,
		coat_type=coat_type,
		client_id=client_id,
		name=kwargs.pop("name", pet_id),
		**kwargs
	)


def full_groom() -> Service:
	return Service(
		id="svc-full-groom",
		name="Full Groom",
		category="grooming",
		base_duration_minutes=90,
		base_price=Decimal("65"),
		modifiers=[
			ServiceModifier(
				id="mod-large",
				service_id="svc-full-groom",
				type="weight",
				name="Large Dog",
				duration_minutes=30,
				price_adjustment=Decimal("25"),
				condition=ModifierCondition.build(weight_range=["large"]),
			),
			ServiceModifier(
				id="mod-long-coat",
				service_id="svc-full-groom",
				type="coat",
				name="Long Coat",
				duration_minutes=15,
				price_adjustment=Decimal("10"),
				condition=ModifierCondition.build(coat_type=["long"]),
			),
			ServiceModifier(
				id="mod-nails",
				service_id="svc-full-groom",
				type="addon",
				name="Nail Trim",
				duration_minutes=10,
				price_adjustment=Decimal("12"),
			),
		],
	)


def basic_bath() -> Service:
	return Service(
		id="svc-basic-bath",
		name="Basic Bath",
		category="bath",
		base_duration_minutes=45,
		base_price=Decimal("35"),
		modifiers=[
			ServiceModifier(
				id="mod-xlarge",
				service_id="svc-basic-bath",
				type="weight",
				name="X-Large Dog",
				duration_minutes=30,
				price_adjustment=Decimal("25"),
				condition=ModifierCondition.build(weight_range=["xlarge"]),
			),
			ServiceModifier(
				id="mod-double-coat",
				service_id="svc-basic-bath",
				type="coat",
				name="Double Coat",
				duration_minutes=15,
				price_adjustment=Decimal("10"),
				condition=ModifierCondition.build(coat_type=["double"]),
			),
		],
	)


def make_appointment(start, end, groomer_id="groomer-1", status=AppointmentStatus.CONFIRMED,
		client_id="client-0", total=Decimal("100"), appointment_id=None) -> Appointment:
	return Appointment(
		id=appointment_id,
		organization_id=ORG,
		client_id=client_id,
		groomer_id=groomer_id,
		start_time=start,
		end_time=end,
		status=status,
		total_amount=total,
	)


def make_policies(**overrides) -> BookingPolicies:
	values = dict(
		organization_id=ORG,
		new_client_mode=ConfirmationMode.AUTO_CONFIRM,
		existing_client_mode=ConfirmationMode.AUTO_CONFIRM,
		min_advance_booking_hours=2,
		max_advance_booking_days=60,
	)
	values.update(overrides)
	return BookingPolicies(**values)


def seeded_store(timezone="UTC", policies=None, groomers=("groomer-1", "groomer-2"), store_class=InMemoryBookingStore):
	store = store_class(timezone)
	store.add_service(full_groom())
	store.add_service(basic_bath())
	store.add_pet(make_pet())
	store.add_pet(make_pet("pet-bruno", weight_range="xlarge", coat_type="double"))
	store.add_pet(make_pet("pet-other", client_id="client-2"))
	for groomer in groomers:
		store.add_staff(ORG, make_availability(groomer))
	store.set_policies(policies or make_policies())
	return store


def full_groom_request(start, groomer_id="groomer-1", client_id="client-1", addons=(), **kwargs) -> BookingRequest:
	"""Full Groom for Rex (large, long coat): 135 minutes, $100 before add-ons."""
	return BookingRequest(
		organization_id=ORG,
		client_id=client_id,
		start_time=start,
		groomer_id=groomer_id,
		pets=[
			PetSelection(
				pet_id=kwargs.pop("pet_id", "pet-rex"),
				services=[ServiceSelection("svc-full-groom", list(addons))],
			)
		],
		**kwargs
	)
