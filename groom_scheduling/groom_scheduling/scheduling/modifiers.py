"""
Modifier Resolver

Works out which service modifiers apply to a pet and the resulting
duration and price of each selected service.

The same function runs for the live quote and again at commit time, so it
must stay pure: no I/O, no clock, no dependence on input ordering.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Sequence, Tuple

from .config import DEFAULT_SETTINGS, EngineSettings
from .errors import InactiveServiceError, UnknownModifierError
from .types import AppointmentService, Pet, Service, ServiceModifier, money

SelectedService = Tuple[Service, Iterable[str]]


@dataclass(frozen=True)
class ResolvedService:
	service_id: str
	applied_modifier_ids: Tuple[str, ...]
	final_duration: int
	final_price: Decimal

	def to_appointment_service(self) -> AppointmentService:
		return AppointmentService(
			service_id=self.service_id,
			applied_modifier_ids=list(self.applied_modifier_ids),
			final_duration=self.final_duration,
			final_price=self.final_price,
		)


@dataclass(frozen=True)
class ModifierQuote:
	per_service: Tuple[ResolvedService, ...] = field(default_factory=tuple)
	total_duration: int = 0
	total_price: Decimal = Decimal("0.00")


def applicable_modifiers(pet: Pet, service: Service, selected_ids: Iterable[str]) -> List[ServiceModifier]:
	"""
	Returns the modifiers of a service that apply to a pet, in service order.

	Conditional modifiers apply when their condition matches the pet, whether
	or not they were selected. Unconditional modifiers (add-ons) apply only when
	selected.

	Raises:
		UnknownModifierError: if a selected id is not a modifier of the service
	"""
	selected = set(selected_ids)

	for modifier_id in sorted(selected):
		if service.get_modifier(modifier_id) is None:
			raise UnknownModifierError(service.id, modifier_id)

	applied = []
	for modifier in service.modifiers:
		if modifier.is_conditional:
			if modifier.condition.matches(pet):
				applied.append(modifier)
		elif modifier.id in selected:
			applied.append(modifier)

	return applied


def resolve_service(
	pet: Pet,
	service: Service,
	selected_ids: Iterable[str] = (),
	settings: EngineSettings = DEFAULT_SETTINGS
) -> ResolvedService:
	"""
	Resolves a single service for a pet.

	Args:
		pet: the pet being groomed
		service: the selected service with its modifiers
		selected_ids: add-on modifier ids chosen explicitly
		settings: engine settings (percentage_base)

	Returns:
		ResolvedService with final duration and price

	Algorithm:
		1. Reject inactive services
		2. Collect applicable modifiers (conditional matches + selected add-ons)
		3. Duration = base + sum of duration deltas
		4. Price = base + additive deltas + percentage deltas, where each
		   percentage is taken from the same base so the order never matters
	"""
	if not service.is_active:
		raise InactiveServiceError(service.id)

	applied = applicable_modifiers(pet, service, selected_ids)

	duration = service.base_duration_minutes + sum(m.duration_minutes for m in applied)

	additive = sum((m.price_adjustment for m in applied if not m.is_percentage), Decimal("0"))

	if settings.percentage_base == "running":
		percentage_base = service.base_price + additive
	else:
		percentage_base = service.base_price

	percentage = sum(
		(percentage_base * m.price_adjustment / Decimal(100) for m in applied if m.is_percentage),
		Decimal("0")
	)

	return ResolvedService(
		service_id=service.id,
		applied_modifier_ids=tuple(m.id for m in applied),
		final_duration=duration,
		final_price=money(service.base_price + additive + percentage),
	)


def resolve_modifiers(
	pet: Pet,
	selections: Sequence[SelectedService],
	settings: EngineSettings = DEFAULT_SETTINGS
) -> ModifierQuote:
	"""
	Resolves every selected service for a pet and sums the totals.

	Args:
		pet: pet attributes (weight_range, coat_type)
		selections: list of (service, explicitly selected modifier ids)
		settings: engine settings

	Returns:
		ModifierQuote: per-service results, total duration and total price
	"""
	per_service = tuple(
		resolve_service(pet, service, modifier_ids, settings)
		for service, modifier_ids in selections
	)
	return combine_quotes([ModifierQuote(per_service=per_service)])


def combine_quotes(quotes: Iterable[ModifierQuote]) -> ModifierQuote:
	"""Merges the quotes of several pets into appointment totals."""
	per_service: Tuple[ResolvedService, ...] = ()
	for quote in quotes:
		per_service += quote.per_service

	return ModifierQuote(
		per_service=per_service,
		total_duration=sum(s.final_duration for s in per_service),
		total_price=money(sum((s.final_price for s in per_service), Decimal("0"))),
	)
