"""
Booking Store Factory

Factory pattern to get the store (and an orchestrator over it) by backend name.
"""

from typing import Callable, Optional
from datetime import datetime

from .booking import BookingOrchestrator
from .config import EngineSettings
from .store import BookingStore


def get_store(backend: str = "frappe", settings: Optional[EngineSettings] = None) -> BookingStore:
	"""
	Returns the booking store for a backend.

	Args:
		backend: "frappe" (DocTypes) or "memory" (in-process, for previews and tests)

	Raises:
		ValueError: if backend is not supported
	"""
	if backend == "frappe":
		from .frappe_store import FrappeBookingStore
		return FrappeBookingStore(settings)
	elif backend == "memory":
		from .store import InMemoryBookingStore
		return InMemoryBookingStore(settings.default_timezone if settings else "UTC")
	else:
		raise ValueError(f"Unsupported store backend: {backend}")


def get_orchestrator(
	backend: str = "frappe",
	settings: Optional[EngineSettings] = None,
	clock: Optional[Callable[[], datetime]] = None
) -> BookingOrchestrator:
	"""Orchestrator over the store of a backend, with site settings for Frappe."""
	if settings is None and backend == "frappe":
		from .frappe_store import settings_from_conf
		settings = settings_from_conf()

	store = get_store(backend, settings)
	if settings is None:
		return BookingOrchestrator(store, clock=clock)
	return BookingOrchestrator(store, settings, clock)
