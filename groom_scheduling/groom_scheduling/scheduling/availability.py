"""
Staff Availability Service

Calculates bookable time slots for a staff member, considering:
- Weekly schedule (working hours and break per weekday)
- Approved time off (whole days)
- Existing appointments, expanded by the buffer between appointments
- Daily appointment cap
- Organization timezone

Everything here is read-only: listing slots never reserves anything.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pytz

from .errors import StaffNotFoundError
from .intervals import Interval, expand, fits_within, merge, overlaps, subtract, subtract_all
from .types import (
	Appointment,
	DaySchedule,
	StaffAvailability,
	TimeOffRequest,
)

logger = logging.getLogger(__name__)

DEFAULT_GRANULARITY_MINUTES = 15

TimezoneLike = Union[str, Any]


def _to_time(time_value: Union[time, timedelta, str]) -> time:
	"""
	Converts a schedule value to datetime.time.

	Args:
		time_value: time, timedelta since midnight, or "HH:MM" / "HH:MM:SS" string

	Returns:
		datetime.time object
	"""
	if isinstance(time_value, time):
		return time_value
	elif isinstance(time_value, timedelta):
		# MariaDB returns TIME columns as timedelta since midnight
		return (datetime.min + time_value).time()
	elif isinstance(time_value, str):
		value = time_value.strip()
		for fmt in ("%H:%M", "%H:%M:%S"):
			try:
				return datetime.strptime(value, fmt).time()
			except ValueError:
				continue
		raise ValueError(f"Invalid time value '{time_value}', expected HH:MM")
	else:
		raise ValueError(f"Cannot convert {type(time_value)} to time")


def get_timezone(tz: TimezoneLike):
	"""
	Resolves a timezone name to a pytz timezone, falling back to UTC.

	Args:
		tz: timezone name or tzinfo object
	"""
	if tz is None:
		return pytz.UTC
	if not isinstance(tz, str):
		return tz

	try:
		return pytz.timezone(tz)
	except pytz.UnknownTimeZoneError:
		logger.warning("Invalid timezone '%s', using UTC", tz)
		return pytz.UTC


def _localize(target_date: date, time_value: Union[time, timedelta, str], tz) -> datetime:
	naive = datetime.combine(target_date, _to_time(time_value))
	return tz.localize(naive) if hasattr(tz, "localize") else naive.replace(tzinfo=tz)


def _aware(value: datetime, tz) -> datetime:
	if value.tzinfo is not None:
		return value
	return tz.localize(value) if hasattr(tz, "localize") else value.replace(tzinfo=tz)


def localize_instant(value: datetime, tz: TimezoneLike) -> datetime:
	"""Aware instant; naive values are read as wall-clock time in tz."""
	return _aware(value, get_timezone(tz))


def local_date(value: datetime, tz: TimezoneLike) -> date:
	"""Calendar date of an instant in the organization timezone."""
	tz = get_timezone(tz)
	return _aware(value, tz).astimezone(tz).date()


def day_bounds(target_date: date, tz: TimezoneLike) -> Interval:
	"""The whole local day [00:00, next 00:00) as an interval."""
	tz = get_timezone(tz)
	return {
		"start": _localize(target_date, time.min, tz),
		"end": _localize(target_date + timedelta(days=1), time.min, tz),
	}


# ===== WEEKLY SCHEDULE =====

def _schedule_from_value(entry: Union[DaySchedule, Mapping[str, Any]]) -> DaySchedule:
	if isinstance(entry, DaySchedule):
		return entry

	return DaySchedule(
		day_of_week=int(entry["day_of_week"]),
		is_working_day=bool(entry.get("is_working_day")),
		start_time=entry.get("start_time") or "09:00",
		end_time=entry.get("end_time") or "17:00",
		break_start=entry.get("break_start") or None,
		break_end=entry.get("break_end") or None,
	)


def validate_day_schedule(schedule: DaySchedule) -> None:
	"""
	Checks the times of a working day.

	Raises:
		ValueError: start >= end, half-defined break, or break outside working hours
	"""
	if not 0 <= schedule.day_of_week <= 6:
		raise ValueError(f"day_of_week must be between 0 and 6, got {schedule.day_of_week}")

	if not schedule.is_working_day:
		return

	start = _to_time(schedule.start_time)
	end = _to_time(schedule.end_time)
	if start >= end:
		raise ValueError(
			f"Day {schedule.day_of_week}: start time ({start.strftime('%H:%M')}) "
			f"must be before end time ({end.strftime('%H:%M')})"
		)

	if bool(schedule.break_start) != bool(schedule.break_end):
		raise ValueError(f"Day {schedule.day_of_week}: break needs both start and end")

	if schedule.has_break:
		break_start = _to_time(schedule.break_start)
		break_end = _to_time(schedule.break_end)
		if break_start >= break_end:
			raise ValueError(f"Day {schedule.day_of_week}: break start must be before break end")
		if break_start < start or break_end > end:
			raise ValueError(f"Day {schedule.day_of_week}: break must fall within working hours")


def normalize_weekly_schedule(
	entries: Iterable[Union[DaySchedule, Mapping[str, Any]]]
) -> Dict[int, DaySchedule]:
	"""
	Normalizes schedule rows to exactly one DaySchedule per weekday.

	Missing weekdays become non-working days; duplicated weekdays are rejected.

	Args:
		entries: DaySchedule objects or dicts with DaySchedule keys

	Returns:
		dict: {0: DaySchedule, ..., 6: DaySchedule}

	Raises:
		ValueError: on duplicated weekdays or invalid times
	"""
	by_day: Dict[int, DaySchedule] = {}

	for entry in entries:
		schedule = _schedule_from_value(entry)
		validate_day_schedule(schedule)
		if schedule.day_of_week in by_day:
			raise ValueError(f"Duplicate schedule for day {schedule.day_of_week}")
		by_day[schedule.day_of_week] = schedule

	for day in range(7):
		if day not in by_day:
			by_day[day] = DaySchedule(day_of_week=day, is_working_day=False)

	return dict(sorted(by_day.items()))


def build_staff_availability(
	staff_id: str,
	weekly_schedule: Iterable[Union[DaySchedule, Mapping[str, Any]]],
	max_appointments_per_day: int = 8,
	buffer_minutes_between_appointments: int = 0
) -> StaffAvailability:
	"""Builds a StaffAvailability with a normalized schedule and checked limits."""
	if max_appointments_per_day < 1:
		raise ValueError("max_appointments_per_day must be at least 1")
	if buffer_minutes_between_appointments < 0:
		raise ValueError("buffer_minutes_between_appointments must be >= 0")

	return StaffAvailability(
		staff_id=staff_id,
		weekly_schedule=normalize_weekly_schedule(weekly_schedule),
		max_appointments_per_day=max_appointments_per_day,
		buffer_minutes_between_appointments=buffer_minutes_between_appointments,
	)


# ===== DAY CALCULATION =====

def has_approved_time_off(staff_id: str, target_date: date, time_off: Iterable[TimeOffRequest]) -> bool:
	return any(
		request.is_approved and request.staff_id == staff_id and request.covers(target_date)
		for request in time_off
	)


def active_appointments(appointments: Iterable[Appointment], staff_id: str) -> List[Appointment]:
	"""Non-cancelled appointments assigned to the staff member."""
	return [
		appt for appt in appointments
		if appt.groomer_id == staff_id and not appt.is_cancelled
	]


def count_appointments_on(
	target_date: date,
	appointments: Iterable[Appointment],
	staff_id: str,
	tz: TimezoneLike
) -> int:
	"""Counts non-cancelled appointments of a staff member starting on a local date."""
	return sum(
		1 for appt in active_appointments(appointments, staff_id)
		if local_date(appt.start_time, tz) == target_date
	)


def get_working_windows(schedule: Optional[DaySchedule], target_date: date, tz: TimezoneLike) -> List[Interval]:
	"""
	Working hours of a day minus the break.

	Returns:
		list: 0, 1 or 2 windows
	"""
	if schedule is None or not schedule.is_working_day:
		return []

	tz = get_timezone(tz)
	working = {
		"start": _localize(target_date, schedule.start_time, tz),
		"end": _localize(target_date, schedule.end_time, tz),
	}

	if not schedule.has_break:
		return subtract(working, [])

	break_window = {
		"start": _localize(target_date, schedule.break_start, tz),
		"end": _localize(target_date, schedule.break_end, tz),
	}
	return subtract(working, [break_window])


def busy_intervals(
	appointments: Iterable[Appointment],
	staff_id: str,
	buffer_minutes: int,
	tz: TimezoneLike,
	within: Optional[Interval] = None
) -> List[Interval]:
	"""
	Buffered, merged intervals of a staff member's non-cancelled appointments.

	Args:
		within: when given, only appointments overlapping it are considered
	"""
	tz = get_timezone(tz)
	intervals = []
	for appt in active_appointments(appointments, staff_id):
		interval = {"start": _aware(appt.start_time, tz), "end": _aware(appt.end_time, tz)}
		if within is not None and not overlaps(expand(interval, buffer_minutes), within):
			continue
		intervals.append(expand(interval, buffer_minutes))
	return merge(intervals)


def _require_availability(staff_id: str, availability: Optional[StaffAvailability]) -> StaffAvailability:
	if availability is None or availability.staff_id != staff_id:
		raise StaffNotFoundError(staff_id)
	return availability


def get_day_windows(
	staff_id: str,
	target_date: date,
	availability: Optional[StaffAvailability],
	time_off: Iterable[TimeOffRequest] = (),
	appointments: Iterable[Appointment] = (),
	tz: TimezoneLike = "UTC"
) -> List[Interval]:
	"""
	Free windows of a staff member on a day, before the daily cap is applied.

	Algorithm:
		1. Approved time off or non-working weekday -> []
		2. Working window minus break
		3. Minus buffered, merged appointments of that day

	Raises:
		StaffNotFoundError: if no availability is configured
	"""
	availability = _require_availability(staff_id, availability)

	if has_approved_time_off(staff_id, target_date, time_off):
		return []

	windows = get_working_windows(availability.for_date(target_date), target_date, tz)
	if not windows:
		return []

	busy = busy_intervals(
		appointments,
		staff_id,
		availability.buffer_minutes_between_appointments,
		tz,
		within=day_bounds(target_date, tz),
	)
	return subtract_all(windows, busy)


def _enumerate_starts(windows: Sequence[Interval], duration_minutes: int, granularity_minutes: int) -> List[datetime]:
	duration = timedelta(minutes=duration_minutes)
	step = timedelta(minutes=granularity_minutes)

	starts = []
	for window in windows:
		current = window["start"]
		while current + duration <= window["end"]:
			starts.append(current)
			current += step

	starts.sort()
	return starts


def list_available_slots(
	staff_id: str,
	target_date: date,
	requested_duration_minutes: int,
	availability: Optional[StaffAvailability],
	time_off: Iterable[TimeOffRequest] = (),
	appointments: Iterable[Appointment] = (),
	tz: TimezoneLike = "UTC",
	granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES
) -> List[datetime]:
	"""
	Lists bookable start times for a staff member on a day.

	Args:
		staff_id: staff member (groomer) id
		target_date: local calendar date
		requested_duration_minutes: total duration of the booking
		availability: the staff member's StaffAvailability (None if not configured)
		time_off: time off requests (any status, any staff; filtered here)
		appointments: existing appointments (any date; filtered here)
		tz: organization timezone
		granularity_minutes: step between candidate starts

	Returns:
		list[datetime]: chronological, timezone-aware start times (may be empty)

	Raises:
		StaffNotFoundError: if no availability is configured
	"""
	if requested_duration_minutes <= 0:
		raise ValueError("requested_duration_minutes must be positive")

	appointments = list(appointments)
	windows = get_day_windows(staff_id, target_date, availability, time_off, appointments, tz)
	if not windows:
		return []

	booked = count_appointments_on(target_date, appointments, staff_id, tz)
	if booked >= availability.max_appointments_per_day:
		logger.debug(
			"Staff %s at daily cap on %s (%s/%s)",
			staff_id, target_date, booked, availability.max_appointments_per_day
		)
		return []

	return _enumerate_starts(windows, requested_duration_minutes, granularity_minutes)


def list_slots_for_range(
	staff_id: str,
	start_date: date,
	end_date: date,
	requested_duration_minutes: int,
	availability: Optional[StaffAvailability],
	time_off: Iterable[TimeOffRequest] = (),
	appointments: Iterable[Appointment] = (),
	tz: TimezoneLike = "UTC",
	granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES
) -> Dict[str, List[datetime]]:
	"""
	Lists bookable start times for every day of a date range (inclusive).

	Returns:
		dict: {"2026-01-15": [datetime, ...], ...}; days with no slots are omitted
	"""
	time_off = list(time_off)
	appointments = list(appointments)

	result = {}
	current_date = start_date

	while current_date <= end_date:
		slots = list_available_slots(
			staff_id, current_date, requested_duration_minutes, availability,
			time_off, appointments, tz, granularity_minutes
		)
		if slots:
			result[current_date.strftime("%Y-%m-%d")] = slots
		current_date += timedelta(days=1)

	return result


def find_conflicts(
	candidate: Interval,
	appointments: Iterable[Appointment],
	staff_id: str,
	buffer_minutes: int,
	exclude_appointment: Optional[str] = None
) -> List[Appointment]:
	"""
	Appointments of a staff member whose buffered interval intersects a candidate.

	Args:
		candidate: the interval being booked
		exclude_appointment: id to ignore (for reschedules)
	"""
	return [
		appt for appt in active_appointments(appointments, staff_id)
		if exclude_appointment is None or appt.id != exclude_appointment
		if overlaps(candidate, expand(appt.interval, buffer_minutes))
	]


def is_staff_available(
	staff_id: str,
	start: datetime,
	end: datetime,
	availability: Optional[StaffAvailability],
	time_off: Iterable[TimeOffRequest] = (),
	appointments: Iterable[Appointment] = (),
	tz: TimezoneLike = "UTC"
) -> bool:
	"""
	Checks a concrete interval against schedule, break, time off, buffers and cap.

	Unlike list_available_slots this does not require the start to be on the
	slot grid.
	"""
	if end <= start:
		return False

	tz = get_timezone(tz)
	appointments = list(appointments)
	target_date = local_date(start, tz)
	windows = get_day_windows(staff_id, target_date, availability, time_off, appointments, tz)

	if count_appointments_on(target_date, appointments, staff_id, tz) >= availability.max_appointments_per_day:
		return False

	candidate = {"start": _aware(start, tz), "end": _aware(end, tz)}
	return any(fits_within(candidate, window) for window in windows)


def get_day_summary(
	staff_id: str,
	target_date: date,
	availability: Optional[StaffAvailability],
	time_off: Iterable[TimeOffRequest] = (),
	appointments: Iterable[Appointment] = (),
	tz: TimezoneLike = "UTC"
) -> Dict[str, Any]:
	"""
	Describes a staff member's day for the booking calendar.

	Returns:
		dict: {
			"is_working_day": bool,
			"has_time_off": bool,
			"working_hours": {"start": "08:00", "end": "16:00"} | None,
			"break_time": {"start": "12:00", "end": "12:30"} | None,
			"appointment_count": int,
			"at_capacity": bool
		}
	"""
	availability = _require_availability(staff_id, availability)
	schedule = availability.for_date(target_date)
	is_working_day = bool(schedule and schedule.is_working_day)
	count = count_appointments_on(target_date, appointments, staff_id, tz)

	return {
		"is_working_day": is_working_day,
		"has_time_off": has_approved_time_off(staff_id, target_date, time_off),
		"working_hours": (
			{"start": schedule.start_time, "end": schedule.end_time} if is_working_day else None
		),
		"break_time": (
			{"start": schedule.break_start, "end": schedule.break_end}
			if is_working_day and schedule.has_break else None
		),
		"appointment_count": count,
		"at_capacity": count >= availability.max_appointments_per_day,
	}
