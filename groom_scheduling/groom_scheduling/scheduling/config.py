"""
Engine Settings

Tunable constants for the availability and pricing engine.
Frappe sites override them from site_config.json (see frappe_store.settings_from_conf).
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

PERCENTAGE_BASE_CHOICES = ("base", "running")

CONF_PREFIX = "groom_scheduling_"


@dataclass(frozen=True)
class EngineSettings:
	"""
	Settings consumed by the engine.

	Attributes:
		slot_granularity_minutes: step between candidate slot starts
		max_commit_attempts: commit retries after a store conflict
		max_appointment_minutes: longest bookable appointment
		percentage_base: "base" applies percentage modifiers to the base price,
			"running" applies them to base price plus additive modifiers
		default_timezone: used when an organization has no timezone
	"""

	slot_granularity_minutes: int = 15
	max_commit_attempts: int = 3
	max_appointment_minutes: int = 480
	percentage_base: str = "base"
	default_timezone: str = "UTC"

	def __post_init__(self) -> None:
		if self.slot_granularity_minutes <= 0:
			raise ValueError("slot_granularity_minutes must be positive")
		if self.max_commit_attempts < 1:
			raise ValueError("max_commit_attempts must be at least 1")
		if self.percentage_base not in PERCENTAGE_BASE_CHOICES:
			raise ValueError(f"Unsupported percentage_base: {self.percentage_base}")


DEFAULT_SETTINGS = EngineSettings()


def settings_from_mapping(conf: Optional[Dict[str, Any]]) -> EngineSettings:
	"""
	Builds EngineSettings from a flat mapping with prefixed keys.

	Unknown keys are ignored; missing keys keep their defaults.

	Example:
		{"groom_scheduling_slot_granularity_minutes": 30}
	"""
	if not conf:
		return DEFAULT_SETTINGS

	overrides = {}
	for field_name, default in DEFAULT_SETTINGS.__dict__.items():
		key = CONF_PREFIX + field_name
		if key in conf and conf[key] is not None:
			overrides[field_name] = type(default)(conf[key])

	return replace(DEFAULT_SETTINGS, **overrides)


# ===== API RATE LIMITS =====

# action -> (requests, window in seconds), per client IP
DEFAULT_RATE_LIMITS: Dict[str, Tuple[int, int]] = {
	"get_available_slots": (30, 60),
	"get_week_slots": (20, 60),
	"get_groomer_day": (30, 60),
	"quote_booking": (30, 60),
	"create_booking": (5, 60),
}

FALLBACK_RATE_LIMIT = (10, 60)


def rate_limit_from_mapping(action: str, conf: Optional[Dict[str, Any]] = None) -> Tuple[int, int]:
	"""
	Rate limit of a booking API action.

	Sites override a limit with a "groom_scheduling_rate_limit_<action>" key,
	either "requests/seconds" or a plain request count that keeps the
	default window.

	Example:
		{"groom_scheduling_rate_limit_create_booking": "3/60"}

	Raises:
		ValueError: if the override is malformed or not positive
	"""
	limit, seconds = DEFAULT_RATE_LIMITS.get(action, FALLBACK_RATE_LIMIT)

	value = (conf or {}).get(f"{CONF_PREFIX}rate_limit_{action}")
	if value is None:
		return limit, seconds

	if isinstance(value, str) and "/" in value:
		requests, window = value.split("/", 1)
		limit, seconds = int(requests), int(window)
	else:
		limit = int(value)

	if limit < 1 or seconds < 1:
		raise ValueError(f"Invalid rate limit for {action}: {value}")

	return limit, seconds
