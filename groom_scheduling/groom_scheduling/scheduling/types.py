"""
Scheduling Types

Plain data objects shared by the engine. The booking store maps its rows
(DocTypes, seed data, API payloads) onto these before calling the engine.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Union

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def money(value: Number) -> Decimal:
	"""Converts a number to a Decimal amount rounded to cents."""
	if not isinstance(value, Decimal):
		# str() keeps floats like 0.1 from dragging binary noise along
		value = Decimal(str(value))
	return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Number) -> Decimal:
	if isinstance(value, Decimal):
		return value
	return Decimal(str(value))


class WeightRange(str, Enum):
	SMALL = "small"
	MEDIUM = "medium"
	LARGE = "large"
	XLARGE = "xlarge"


class CoatType(str, Enum):
	SHORT = "short"
	MEDIUM = "medium"
	LONG = "long"
	CURLY = "curly"
	DOUBLE = "double"
	WIRE = "wire"


class ModifierType(str, Enum):
	WEIGHT = "weight"
	COAT = "coat"
	ADDON = "addon"


class AppointmentStatus(str, Enum):
	REQUESTED = "requested"
	CONFIRMED = "confirmed"
	CHECKED_IN = "checked_in"
	IN_PROGRESS = "in_progress"
	COMPLETED = "completed"
	CANCELLED = "cancelled"
	NO_SHOW = "no_show"


class TimeOffStatus(str, Enum):
	PENDING = "pending"
	APPROVED = "approved"
	REJECTED = "rejected"


class ConfirmationMode(str, Enum):
	AUTO_CONFIRM = "auto_confirm"
	REQUEST_ONLY = "request_only"
	BLOCKED = "blocked"


@dataclass(frozen=True)
class Pet:
	id: str
	weight_range: WeightRange
	coat_type: CoatType
	client_id: Optional[str] = None
	name: str = ""
	species: str = "dog"
	vaccination_expirations: List[date] = field(default_factory=list, compare=False)

	def __post_init__(self) -> None:
		object.__setattr__(self, "weight_range", WeightRange(self.weight_range))
		object.__setattr__(self, "coat_type", CoatType(self.coat_type))


@dataclass(frozen=True)
class ModifierCondition:
	"""
	Condition under which a modifier applies automatically.

	Only the fields that are set are tested, and every set field must match.
	A condition with no fields never matches.
	"""

	weight_range: Optional[FrozenSet[WeightRange]] = None
	coat_type: Optional[FrozenSet[CoatType]] = None

	@classmethod
	def build(
		cls,
		weight_range: Optional[Iterable[str]] = None,
		coat_type: Optional[Iterable[str]] = None,
	) -> "ModifierCondition":
		return cls(
			weight_range=frozenset(WeightRange(w) for w in weight_range) if weight_range is not None else None,
			coat_type=frozenset(CoatType(c) for c in coat_type) if coat_type is not None else None,
		)

	@property
	def is_empty(self) -> bool:
		return self.weight_range is None and self.coat_type is None

	def matches_weight(self, pet: Pet) -> bool:
		return self.weight_range is None or pet.weight_range in self.weight_range

	def matches_coat(self, pet: Pet) -> bool:
		return self.coat_type is None or pet.coat_type in self.coat_type

	def matches(self, pet: Pet) -> bool:
		if self.is_empty:
			return False
		return self.matches_weight(pet) and self.matches_coat(pet)


@dataclass(frozen=True)
class ServiceModifier:
	id: str
	service_id: str
	type: ModifierType
	duration_minutes: int = 0
	price_adjustment: Decimal = Decimal("0")
	is_percentage: bool = False
	condition: Optional[ModifierCondition] = None
	name: str = ""

	def __post_init__(self) -> None:
		object.__setattr__(self, "type", ModifierType(self.type))
		object.__setattr__(self, "price_adjustment", to_decimal(self.price_adjustment))
		if self.condition is not None and self.condition.is_empty:
			object.__setattr__(self, "condition", None)

	@property
	def is_conditional(self) -> bool:
		return self.condition is not None


@dataclass(frozen=True)
class Service:
	id: str
	base_duration_minutes: int
	base_price: Decimal
	name: str = ""
	category: str = ""
	is_active: bool = True
	modifiers: List[ServiceModifier] = field(default_factory=list)

	def __post_init__(self) -> None:
		object.__setattr__(self, "base_price", to_decimal(self.base_price))

	def get_modifier(self, modifier_id: str) -> Optional[ServiceModifier]:
		for modifier in self.modifiers:
			if modifier.id == modifier_id:
				return modifier
		return None


@dataclass(frozen=True)
class DaySchedule:
	"""One weekday of a staff schedule. day_of_week: 0 = Sunday ... 6 = Saturday."""

	day_of_week: int
	is_working_day: bool
	start_time: str = "09:00"
	end_time: str = "17:00"
	break_start: Optional[str] = None
	break_end: Optional[str] = None

	@property
	def has_break(self) -> bool:
		return bool(self.break_start and self.break_end)


def day_of_week(target_date: date) -> int:
	"""Sunday-based weekday (0 = Sunday), the convention used by schedules."""
	return (target_date.weekday() + 1) % 7


@dataclass
class StaffAvailability:
	staff_id: str
	weekly_schedule: Dict[int, DaySchedule]
	max_appointments_per_day: int = 8
	buffer_minutes_between_appointments: int = 0

	def for_date(self, target_date: date) -> Optional[DaySchedule]:
		return self.weekly_schedule.get(day_of_week(target_date))


@dataclass(frozen=True)
class TimeOffRequest:
	staff_id: str
	start_date: date
	end_date: date
	status: TimeOffStatus = TimeOffStatus.PENDING
	id: Optional[str] = None
	reason: str = ""

	def __post_init__(self) -> None:
		object.__setattr__(self, "status", TimeOffStatus(self.status))

	def covers(self, target_date: date) -> bool:
		return self.start_date <= target_date <= self.end_date

	@property
	def is_approved(self) -> bool:
		return self.status == TimeOffStatus.APPROVED


@dataclass
class AppointmentService:
	service_id: str
	applied_modifier_ids: List[str]
	final_duration: int
	final_price: Decimal


@dataclass
class AppointmentPet:
	pet_id: str
	services: List[AppointmentService] = field(default_factory=list)


@dataclass
class Appointment:
	organization_id: str
	client_id: str
	start_time: datetime
	end_time: datetime
	status: AppointmentStatus = AppointmentStatus.REQUESTED
	groomer_id: Optional[str] = None
	pets: List[AppointmentPet] = field(default_factory=list)
	deposit_amount: Decimal = Decimal("0")
	deposit_paid: bool = False
	total_amount: Decimal = Decimal("0")
	fee_amount: Decimal = Decimal("0")
	client_notes: str = ""
	id: Optional[str] = None

	def __post_init__(self) -> None:
		self.status = AppointmentStatus(self.status)

	@property
	def is_cancelled(self) -> bool:
		return self.status == AppointmentStatus.CANCELLED

	@property
	def interval(self) -> Dict[str, datetime]:
		return {"start": self.start_time, "end": self.end_time}

	@property
	def duration_minutes(self) -> int:
		return int((self.end_time - self.start_time).total_seconds() // 60)


@dataclass(frozen=True)
class BookingPolicies:
	organization_id: str
	new_client_mode: ConfirmationMode = ConfirmationMode.REQUEST_ONLY
	existing_client_mode: ConfirmationMode = ConfirmationMode.AUTO_CONFIRM
	deposit_required: bool = False
	deposit_percentage: Decimal = Decimal("0")
	deposit_minimum: Decimal = Decimal("0")
	no_show_fee_percentage: Decimal = Decimal("0")
	cancellation_window_hours: int = 24
	late_cancellation_fee_percentage: Decimal = Decimal("0")
	max_pets_per_appointment: int = 3
	min_advance_booking_hours: int = 0
	max_advance_booking_days: int = 60

	def __post_init__(self) -> None:
		object.__setattr__(self, "new_client_mode", ConfirmationMode(self.new_client_mode))
		object.__setattr__(self, "existing_client_mode", ConfirmationMode(self.existing_client_mode))
		for name in (
			"deposit_percentage",
			"deposit_minimum",
			"no_show_fee_percentage",
			"late_cancellation_fee_percentage",
		):
			object.__setattr__(self, name, to_decimal(getattr(self, name)))
