"""
Tests for scheduling/modifiers.py

Tests which modifiers apply to a pet and the resulting duration and price.
"""

import unittest
from dataclasses import replace
from decimal import Decimal

from groom_scheduling.groom_scheduling.scheduling.config import EngineSettings
from groom_scheduling.groom_scheduling.scheduling.errors import InactiveServiceError, UnknownModifierError
from groom_scheduling.groom_scheduling.scheduling.modifiers import (
	combine_quotes,
	resolve_modifiers,
	resolve_service,
)
from groom_scheduling.groom_scheduling.scheduling.types import ModifierCondition, Service, ServiceModifier

from groom_scheduling.groom_scheduling.tests.utils import basic_bath, full_groom, make_pet


def percentage_service() -> Service:
	return Service(
		id="svc-spa",
		base_duration_minutes=60,
		base_price=Decimal("50"),
		modifiers=[
			ServiceModifier(id="mod-mask", service_id="svc-spa", type="addon", price_adjustment=Decimal("10")),
			ServiceModifier(
				id="mod-premium",
				service_id="svc-spa",
				type="addon",
				price_adjustment=Decimal("10"),
				is_percentage=True,
			),
		],
	)


class TestModifiers(unittest.TestCase):
	"""Tests for modifier resolution."""

	def test_full_groom_large_long_coat(self):
		"""Full Groom on a large, long-coated dog: 90+30+15 min, $65+25+10."""
		pet = make_pet(weight_range="large", coat_type="long")

		quote = resolve_modifiers(pet, [(full_groom(), [])])

		self.assertEqual(quote.total_duration, 135)
		self.assertEqual(quote.total_price, Decimal("100.00"))
		self.assertEqual(quote.per_service[0].applied_modifier_ids, ("mod-large", "mod-long-coat"))

	def test_basic_bath_xlarge_double_coat(self):
		"""Basic Bath on an x-large, double-coated dog: 45+30+15 min, $35+25+10."""
		pet = make_pet(weight_range="xlarge", coat_type="double")

		quote = resolve_modifiers(pet, [(basic_bath(), [])])

		self.assertEqual(quote.total_duration, 90)
		self.assertEqual(quote.total_price, Decimal("70.00"))

	def test_non_matching_conditions_do_not_apply(self):
		pet = make_pet(weight_range="small", coat_type="short")

		quote = resolve_modifiers(pet, [(full_groom(), [])])

		self.assertEqual(quote.total_duration, 90)
		self.assertEqual(quote.total_price, Decimal("65.00"))
		self.assertEqual(quote.per_service[0].applied_modifier_ids, ())

	def test_selecting_conditional_modifier_does_not_force_it(self):
		pet = make_pet(weight_range="small", coat_type="short")

		resolved = resolve_service(pet, full_groom(), ["mod-large"])

		self.assertEqual(resolved.applied_modifier_ids, ())

	def test_addon_applies_only_when_selected(self):
		pet = make_pet()

		without = resolve_service(pet, full_groom())
		with_nails = resolve_service(pet, full_groom(), ["mod-nails"])

		self.assertNotIn("mod-nails", without.applied_modifier_ids)
		self.assertIn("mod-nails", with_nails.applied_modifier_ids)
		self.assertEqual(with_nails.final_duration, 145)
		self.assertEqual(with_nails.final_price, Decimal("112.00"))

	def test_result_is_independent_of_modifier_order(self):
		pet = make_pet()
		service = full_groom()
		reversed_service = replace(service, modifiers=list(reversed(service.modifiers)))

		forward = resolve_service(pet, service, ["mod-nails"])
		backward = resolve_service(pet, reversed_service, ["mod-nails"])

		self.assertEqual(forward.final_duration, backward.final_duration)
		self.assertEqual(forward.final_price, backward.final_price)
		self.assertEqual(set(forward.applied_modifier_ids), set(backward.applied_modifier_ids))

	def test_result_is_independent_of_selection_order(self):
		pet = make_pet()

		first = resolve_modifiers(pet, [(full_groom(), ["mod-nails"]), (basic_bath(), [])])
		second = resolve_modifiers(pet, [(basic_bath(), []), (full_groom(), ["mod-nails"])])

		self.assertEqual(first.total_duration, second.total_duration)
		self.assertEqual(first.total_price, second.total_price)

	def test_unknown_modifier_raises(self):
		with self.assertRaises(UnknownModifierError) as ctx:
			resolve_service(make_pet(), full_groom(), ["mod-double-coat"])

		self.assertEqual(ctx.exception.modifier_id, "mod-double-coat")
		self.assertEqual(ctx.exception.service_id, "svc-full-groom")

	def test_inactive_service_raises(self):
		service = replace(full_groom(), is_active=False)

		with self.assertRaises(InactiveServiceError):
			resolve_service(make_pet(), service)

	def test_percentage_applies_to_base_price(self):
		resolved = resolve_service(make_pet(), percentage_service(), ["mod-mask", "mod-premium"])

		self.assertEqual(resolved.final_price, Decimal("65.00"))

	def test_percentage_applies_to_running_total_when_configured(self):
		settings = EngineSettings(percentage_base="running")

		resolved = resolve_service(make_pet(), percentage_service(), ["mod-mask", "mod-premium"], settings)

		self.assertEqual(resolved.final_price, Decimal("66.00"))

	def test_empty_condition_behaves_as_addon(self):
		modifier = ServiceModifier(
			id="mod-empty",
			service_id="svc-spa",
			type="addon",
			duration_minutes=5,
			condition=ModifierCondition.build(),
		)

		self.assertIsNone(modifier.condition)
		self.assertFalse(ModifierCondition.build().matches(make_pet()))

	def test_condition_with_both_fields_requires_both(self):
		condition = ModifierCondition.build(weight_range=["large"], coat_type=["curly"])

		self.assertFalse(condition.matches(make_pet(weight_range="large", coat_type="long")))
		self.assertTrue(condition.matches(make_pet(weight_range="large", coat_type="curly")))

	def test_combine_quotes_sums_pets(self):
		rex = resolve_modifiers(make_pet(), [(full_groom(), [])])
		bruno = resolve_modifiers(make_pet("pet-bruno", "xlarge", "double"), [(basic_bath(), [])])

		total = combine_quotes([rex, bruno])

		self.assertEqual(total.total_duration, 225)
		self.assertEqual(total.total_price, Decimal("170.00"))
		self.assertEqual(len(total.per_service), 2)


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
