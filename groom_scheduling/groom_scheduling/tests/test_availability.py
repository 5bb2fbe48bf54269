"""
Tests for scheduling/availability.py

Tests slot calculation from weekly schedule, breaks, buffers, time off,
daily caps and timezones.
"""

import unittest
from datetime import timedelta

from groom_scheduling.groom_scheduling.scheduling.availability import (
	find_conflicts,
	get_day_summary,
	is_staff_available,
	list_available_slots,
	list_slots_for_range,
	normalize_weekly_schedule,
)
from groom_scheduling.groom_scheduling.scheduling.errors import StaffNotFoundError
from groom_scheduling.groom_scheduling.scheduling.intervals import overlaps
from groom_scheduling.groom_scheduling.scheduling.types import (
	AppointmentStatus,
	DaySchedule,
	TimeOffRequest,
	TimeOffStatus,
)

from groom_scheduling.groom_scheduling.tests.utils import (
	MONDAY,
	SUNDAY,
	TUESDAY,
	at,
	make_appointment,
	make_availability,
)


class TestAvailability(unittest.TestCase):
	"""Tests for availability calculation."""

	def setUp(self):
		self.availability = make_availability("groomer-1", buffer_minutes=15)
		self.booked = make_appointment(at(MONDAY, "09:00"), at(MONDAY, "10:30"), appointment_id="APT-1")

	def test_slots_skip_buffered_appointment_and_break(self):
		"""08:00-16:00, break 12:00-12:30, 15 min buffer, booked 09:00-10:30, 60 min requested."""
		slots = list_available_slots("groomer-1", MONDAY, 60, self.availability, [], [self.booked])

		expected = [at(MONDAY, "10:45"), at(MONDAY, "11:00")] + [
			at(MONDAY, "12:30") + timedelta(minutes=15 * i) for i in range(11)
		]
		self.assertEqual(slots, expected)

		blocked = [
			{"start": at(MONDAY, "08:45"), "end": at(MONDAY, "10:45")},
			{"start": at(MONDAY, "12:00"), "end": at(MONDAY, "12:30")},
		]
		for slot in slots:
			candidate = {"start": slot, "end": slot + timedelta(minutes=60)}
			for block in blocked:
				self.assertFalse(overlaps(candidate, block), f"{slot} intersects {block}")

	def test_slots_on_free_day_start_at_opening(self):
		slots = list_available_slots("groomer-1", MONDAY, 60, self.availability)

		self.assertEqual(slots[0], at(MONDAY, "08:00"))
		self.assertEqual(slots[-1], at(MONDAY, "15:00"))
		self.assertNotIn(at(MONDAY, "11:45"), slots)

	def test_slots_are_chronological_and_unique(self):
		slots = list_available_slots("groomer-1", MONDAY, 30, self.availability, [], [self.booked])

		self.assertEqual(slots, sorted(set(slots)))

	def test_non_working_day_has_no_slots(self):
		self.assertEqual(list_available_slots("groomer-1", SUNDAY, 30, self.availability), [])

	def test_approved_time_off_blocks_the_day(self):
		time_off = [TimeOffRequest("groomer-1", MONDAY, TUESDAY, status=TimeOffStatus.APPROVED)]

		self.assertEqual(list_available_slots("groomer-1", MONDAY, 30, self.availability, time_off), [])

	def test_pending_time_off_is_ignored(self):
		time_off = [TimeOffRequest("groomer-1", MONDAY, MONDAY, status=TimeOffStatus.PENDING)]

		self.assertTrue(list_available_slots("groomer-1", MONDAY, 30, self.availability, time_off))

	def test_time_off_of_other_staff_is_ignored(self):
		time_off = [TimeOffRequest("groomer-2", MONDAY, MONDAY, status=TimeOffStatus.APPROVED)]

		self.assertTrue(list_available_slots("groomer-1", MONDAY, 30, self.availability, time_off))

	def test_cancelled_appointment_releases_time(self):
		cancelled = make_appointment(
			at(MONDAY, "09:00"), at(MONDAY, "10:30"), status=AppointmentStatus.CANCELLED
		)

		slots = list_available_slots("groomer-1", MONDAY, 60, self.availability, [], [cancelled])

		self.assertIn(at(MONDAY, "09:00"), slots)

	def test_no_show_still_occupies_time(self):
		no_show = make_appointment(at(MONDAY, "09:00"), at(MONDAY, "10:30"), status=AppointmentStatus.NO_SHOW)

		slots = list_available_slots("groomer-1", MONDAY, 60, self.availability, [], [no_show])

		self.assertNotIn(at(MONDAY, "09:00"), slots)

	def test_appointments_of_other_staff_are_ignored(self):
		other = make_appointment(at(MONDAY, "09:00"), at(MONDAY, "10:30"), groomer_id="groomer-2")

		slots = list_available_slots("groomer-1", MONDAY, 60, self.availability, [], [other])

		self.assertIn(at(MONDAY, "09:00"), slots)

	def test_daily_cap_reached_returns_no_slots(self):
		availability = make_availability("groomer-1", max_per_day=2)
		appointments = [
			make_appointment(at(MONDAY, "08:00"), at(MONDAY, "09:00")),
			make_appointment(at(MONDAY, "14:00"), at(MONDAY, "15:00")),
		]

		self.assertEqual(list_available_slots("groomer-1", MONDAY, 30, availability, [], appointments), [])

	def test_duration_longer_than_any_window(self):
		self.assertEqual(list_available_slots("groomer-1", MONDAY, 5 * 60, self.availability), [])

	def test_missing_availability_raises(self):
		with self.assertRaises(StaffNotFoundError):
			list_available_slots("groomer-9", MONDAY, 30, None)

	def test_non_positive_duration_raises(self):
		with self.assertRaises(ValueError):
			list_available_slots("groomer-1", MONDAY, 0, self.availability)

	def test_schedule_is_localized_to_organization_timezone(self):
		"""08:00 in Bogota (UTC-5) is 13:00 UTC."""
		slots = list_available_slots("groomer-1", MONDAY, 60, self.availability, tz="America/Bogota")

		self.assertEqual(slots[0], at(MONDAY, "13:00"))
		self.assertEqual(slots[0], at(MONDAY, "08:00", "America/Bogota"))

	def test_appointment_on_previous_day_buffer_does_not_leak(self):
		late = make_appointment(at(SUNDAY, "23:00"), at(SUNDAY, "23:50"))

		slots = list_available_slots("groomer-1", MONDAY, 60, self.availability, [], [late])

		self.assertEqual(slots[0], at(MONDAY, "08:00"))

	def test_list_slots_for_range_omits_empty_days(self):
		result = list_slots_for_range("groomer-1", SUNDAY, TUESDAY, 60, self.availability)

		self.assertEqual(sorted(result.keys()), ["2026-03-02", "2026-03-03"])

	def test_find_conflicts_uses_buffer(self):
		candidate = {"start": at(MONDAY, "10:30"), "end": at(MONDAY, "11:00")}

		self.assertEqual(find_conflicts(candidate, [self.booked], "groomer-1", 15), [self.booked])
		self.assertEqual(find_conflicts(candidate, [self.booked], "groomer-1", 0), [])
		self.assertEqual(find_conflicts(candidate, [self.booked], "groomer-1", 15, exclude_appointment="APT-1"), [])

	def test_is_staff_available_off_grid(self):
		self.assertTrue(is_staff_available(
			"groomer-1", at(MONDAY, "10:50"), at(MONDAY, "11:20"), self.availability, [], [self.booked]
		))
		self.assertFalse(is_staff_available(
			"groomer-1", at(MONDAY, "10:40"), at(MONDAY, "11:10"), self.availability, [], [self.booked]
		))
		self.assertFalse(is_staff_available(
			"groomer-1", at(MONDAY, "11:45"), at(MONDAY, "12:15"), self.availability
		))

	def test_day_summary(self):
		summary = get_day_summary("groomer-1", MONDAY, self.availability, [], [self.booked])

		self.assertTrue(summary["is_working_day"])
		self.assertFalse(summary["has_time_off"])
		self.assertEqual(summary["working_hours"], {"start": "08:00", "end": "16:00"})
		self.assertEqual(summary["break_time"], {"start": "12:00", "end": "12:30"})
		self.assertEqual(summary["appointment_count"], 1)
		self.assertFalse(summary["at_capacity"])


class TestWeeklySchedule(unittest.TestCase):
	"""Tests for weekly schedule normalization."""

	def test_missing_days_become_days_off(self):
		schedule = normalize_weekly_schedule([
			{"day_of_week": 1, "is_working_day": 1, "start_time": "09:00", "end_time": "17:00"},
		])

		self.assertEqual(list(schedule.keys()), list(range(7)))
		self.assertTrue(schedule[1].is_working_day)
		self.assertFalse(schedule[0].is_working_day)
		self.assertFalse(schedule[6].is_working_day)

	def test_duplicate_days_are_rejected(self):
		with self.assertRaises(ValueError):
			normalize_weekly_schedule([
				DaySchedule(1, True, "09:00", "12:00"),
				DaySchedule(1, True, "13:00", "17:00"),
			])

	def test_start_after_end_is_rejected(self):
		with self.assertRaises(ValueError):
			normalize_weekly_schedule([DaySchedule(2, True, "17:00", "09:00")])

	def test_break_outside_working_hours_is_rejected(self):
		with self.assertRaises(ValueError):
			normalize_weekly_schedule([DaySchedule(2, True, "09:00", "17:00", "17:00", "17:30")])

	def test_half_defined_break_is_rejected(self):
		with self.assertRaises(ValueError):
			normalize_weekly_schedule([DaySchedule(2, True, "09:00", "17:00", "12:00", None)])

	def test_invalid_weekday_is_rejected(self):
		with self.assertRaises(ValueError):
			normalize_weekly_schedule([DaySchedule(7, True, "09:00", "17:00")])

	def test_days_off_skip_time_checks(self):
		schedule = normalize_weekly_schedule([DaySchedule(0, False, "17:00", "09:00")])

		self.assertFalse(schedule[0].is_working_day)


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
