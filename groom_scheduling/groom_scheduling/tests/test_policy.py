"""
Tests for scheduling/policy.py

Tests advance-booking bounds, confirmation modes, deposits, fees and
request validators.
"""

import unittest
from datetime import date, timedelta
from decimal import Decimal

from groom_scheduling.groom_scheduling.scheduling.errors import (
	BookingValidationError,
	PolicyViolationError,
	PolicyViolationReason,
)
from groom_scheduling.groom_scheduling.scheduling.policy import (
	calculate_deposit,
	check_cancellation_window,
	check_policy,
	compute_cancellation_fee,
	compute_no_show_fee,
	evaluate_policy,
	validate_appointment_duration,
	validate_pet_ownership,
	validate_vaccinations,
)
from groom_scheduling.groom_scheduling.scheduling.types import (
	AppointmentStatus,
	BookingPolicies,
	ConfirmationMode,
)

from groom_scheduling.groom_scheduling.tests.utils import (
	MONDAY,
	ORG,
	SUNDAY,
	at,
	make_appointment,
	make_pet,
)


class TestBookingPolicy(unittest.TestCase):
	"""Tests for policy evaluation."""

	def setUp(self):
		self.now = at(SUNDAY, "09:00")
		self.policies = BookingPolicies(
			organization_id=ORG,
			new_client_mode=ConfirmationMode.REQUEST_ONLY,
			existing_client_mode=ConfirmationMode.AUTO_CONFIRM,
			deposit_required=True,
			deposit_percentage=Decimal("25"),
			deposit_minimum=Decimal("15"),
			no_show_fee_percentage=Decimal("100"),
			cancellation_window_hours=24,
			late_cancellation_fee_percentage=Decimal("50"),
			max_pets_per_appointment=2,
			min_advance_booking_hours=24,
			max_advance_booking_days=30,
		)

	def test_deposit_percentage_exceeds_minimum(self):
		"""25% of $100 is $25, above the $15 minimum."""
		self.assertEqual(calculate_deposit(self.policies, Decimal("100")), Decimal("25.00"))

	def test_deposit_minimum_wins_for_small_totals(self):
		self.assertEqual(calculate_deposit(self.policies, Decimal("40")), Decimal("15.00"))

	def test_no_deposit_when_not_required(self):
		policies = BookingPolicies(organization_id=ORG, deposit_percentage=Decimal("25"))

		self.assertEqual(calculate_deposit(policies, Decimal("100")), Decimal("0.00"))

	def test_min_advance_boundary_is_inclusive(self):
		start = self.now + timedelta(hours=24)

		self.assertEqual(check_policy(self.policies, False, start, 1, self.now), [])

		violations = check_policy(self.policies, False, start - timedelta(minutes=1), 1, self.now)
		self.assertEqual([v.reason for v in violations], [PolicyViolationReason.TOO_SOON])

	def test_max_advance_boundary_is_inclusive(self):
		start = self.now + timedelta(days=30)

		self.assertEqual(check_policy(self.policies, False, start, 1, self.now), [])

		violations = check_policy(self.policies, False, start + timedelta(minutes=1), 1, self.now)
		self.assertEqual([v.reason for v in violations], [PolicyViolationReason.TOO_FAR])

	def test_too_many_pets(self):
		start = self.now + timedelta(days=2)

		violations = check_policy(self.policies, False, start, 3, self.now)

		self.assertEqual([v.reason for v in violations], [PolicyViolationReason.TOO_MANY_PETS])

	def test_check_policy_collects_every_violation(self):
		policies = BookingPolicies(
			organization_id=ORG,
			new_client_mode=ConfirmationMode.BLOCKED,
			max_pets_per_appointment=1,
			min_advance_booking_hours=24,
		)

		violations = check_policy(policies, True, self.now, 2, self.now)

		self.assertEqual(
			[v.reason for v in violations],
			[PolicyViolationReason.TOO_SOON, PolicyViolationReason.TOO_MANY_PETS, PolicyViolationReason.BLOCKED],
		)

	def test_new_client_goes_to_review(self):
		result = evaluate_policy(self.policies, True, self.now + timedelta(days=2), Decimal("100"), 1, self.now)

		self.assertEqual(result.status, AppointmentStatus.REQUESTED)
		self.assertTrue(result.requires_confirmation)
		self.assertEqual(result.deposit_amount, Decimal("25.00"))

	def test_existing_client_is_confirmed(self):
		result = evaluate_policy(self.policies, False, self.now + timedelta(days=2), Decimal("100"), 1, self.now)

		self.assertEqual(result.status, AppointmentStatus.CONFIRMED)
		self.assertFalse(result.requires_confirmation)

	def test_blocked_mode_raises(self):
		policies = BookingPolicies(organization_id=ORG, new_client_mode=ConfirmationMode.BLOCKED)

		with self.assertRaises(PolicyViolationError) as ctx:
			evaluate_policy(policies, True, self.now + timedelta(days=2), Decimal("100"), 1, self.now)

		self.assertEqual(ctx.exception.reason, PolicyViolationReason.BLOCKED)

	def test_evaluate_raises_too_soon(self):
		with self.assertRaises(PolicyViolationError) as ctx:
			evaluate_policy(self.policies, False, self.now + timedelta(hours=1), Decimal("100"), 1, self.now)

		self.assertEqual(ctx.exception.reason, PolicyViolationReason.TOO_SOON)


class TestFees(unittest.TestCase):
	"""Tests for cancellation and no-show fees."""

	def setUp(self):
		self.policies = BookingPolicies(
			organization_id=ORG,
			cancellation_window_hours=24,
			late_cancellation_fee_percentage=Decimal("50"),
			no_show_fee_percentage=Decimal("75"),
		)
		self.appointment = make_appointment(at(MONDAY, "10:00"), at(MONDAY, "11:00"), total=Decimal("90"))

	def test_cancellation_outside_window_is_free(self):
		fee = compute_cancellation_fee(self.policies, self.appointment, at(MONDAY, "10:00") - timedelta(hours=24))

		self.assertEqual(fee, Decimal("0.00"))

	def test_late_cancellation_pays_percentage(self):
		fee = compute_cancellation_fee(self.policies, self.appointment, at(SUNDAY, "10:01"))

		self.assertEqual(fee, Decimal("45.00"))

	def test_no_show_fee_ignores_timing(self):
		self.assertEqual(compute_no_show_fee(self.policies, self.appointment), Decimal("67.50"))

	def test_cancellation_window_reports_late(self):
		check = check_cancellation_window(self.policies, self.appointment, at(MONDAY, "08:00"))

		self.assertTrue(check.can_cancel)
		self.assertTrue(check.is_late)

	def test_past_appointment_cannot_be_cancelled(self):
		check = check_cancellation_window(self.policies, self.appointment, at(MONDAY, "10:00"))

		self.assertFalse(check.can_cancel)

	def test_finalized_appointment_cannot_be_cancelled(self):
		self.appointment.status = AppointmentStatus.COMPLETED

		check = check_cancellation_window(self.policies, self.appointment, at(SUNDAY, "08:00"))

		self.assertFalse(check.can_cancel)
		self.assertEqual(check.reason, "Appointment already finalized")


class TestRequestValidators(unittest.TestCase):
	"""Tests for booking request validators."""

	def test_duration_limits(self):
		validate_appointment_duration(480)

		with self.assertRaises(BookingValidationError):
			validate_appointment_duration(481)
		with self.assertRaises(BookingValidationError):
			validate_appointment_duration(0)

	def test_pet_must_belong_to_client(self):
		validate_pet_ownership([make_pet(client_id="client-1")], "client-1")

		with self.assertRaises(BookingValidationError):
			validate_pet_ownership([make_pet(client_id="client-2")], "client-1")

	def test_expired_vaccination_blocks_booking(self):
		pet = make_pet(vaccination_expirations=[date(2026, 3, 1)])

		validate_vaccinations([pet], date(2026, 3, 1))
		with self.assertRaises(BookingValidationError):
			validate_vaccinations([pet], MONDAY)

	def test_pets_without_records_are_accepted(self):
		validate_vaccinations([make_pet()], MONDAY)


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
