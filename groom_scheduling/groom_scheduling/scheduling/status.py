"""
Appointment Status Machine

Allowed lifecycle transitions of a grooming appointment.
"""

from typing import Dict, Tuple, Union

from .errors import InvalidStatusTransitionError
from .types import AppointmentStatus

S = AppointmentStatus

VALID_TRANSITIONS: Dict[AppointmentStatus, Tuple[AppointmentStatus, ...]] = {
	S.REQUESTED: (S.CONFIRMED, S.CANCELLED),
	S.CONFIRMED: (S.CHECKED_IN, S.CANCELLED, S.NO_SHOW),
	S.CHECKED_IN: (S.IN_PROGRESS, S.CANCELLED),
	S.IN_PROGRESS: (S.COMPLETED, S.CANCELLED),
	S.COMPLETED: (),
	S.CANCELLED: (),
	S.NO_SHOW: (),
}


def can_transition_to(current: Union[str, AppointmentStatus], new: Union[str, AppointmentStatus]) -> bool:
	return AppointmentStatus(new) in VALID_TRANSITIONS[AppointmentStatus(current)]


def validate_status_transition(current: Union[str, AppointmentStatus], new: Union[str, AppointmentStatus]) -> None:
	"""
	Raises:
		InvalidStatusTransitionError: if new is not reachable from current
	"""
	if not can_transition_to(current, new):
		raise InvalidStatusTransitionError(AppointmentStatus(current).value, AppointmentStatus(new).value)
