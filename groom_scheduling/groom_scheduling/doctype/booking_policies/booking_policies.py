# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Booking Policies DocType

Un registro por organización: modos de confirmación, depósito, cargos y
ventana de reserva anticipada. También guarda la zona horaria de la organización.
"""

import frappe
import pytz
from frappe import _
from frappe.model.document import Document
from frappe.utils import cint, flt

from groom_scheduling.groom_scheduling.scheduling.types import ConfirmationMode

PERCENTAGE_FIELDS = (
	("deposit_percentage", "Deposit Percentage"),
	("no_show_fee_percentage", "No Show Fee Percentage"),
	("late_cancellation_fee_percentage", "Late Cancellation Fee Percentage"),
)


class BookingPolicies(Document):
	"""
	Validaciones:
	- Modos de confirmación: auto_confirm, request_only o blocked
	- Porcentajes entre 0 y 100
	- Montos, horas y días no negativos
	- max_pets_per_appointment >= 1
	- Zona horaria conocida por pytz
	"""

	def validate(self) -> None:
		self._validate_modes()
		self._validate_percentages()
		self._validate_limits()
		self._validate_timezone()

	def _validate_modes(self) -> None:
		for fieldname in ("new_client_mode", "existing_client_mode"):
			try:
				ConfirmationMode(self.get(fieldname))
			except ValueError:
				frappe.throw(_(f"{fieldname}: modo de confirmación inválido ({self.get(fieldname)})"))

	def _validate_percentages(self) -> None:
		for fieldname, label in PERCENTAGE_FIELDS:
			value = flt(self.get(fieldname))
			if value < 0 or value > 100:
				frappe.throw(_(f"{label} debe estar entre 0 y 100"))

	def _validate_limits(self) -> None:
		if flt(self.deposit_minimum) < 0:
			frappe.throw(_("Deposit Minimum no puede ser negativo"))

		for fieldname in ("cancellation_window_hours", "min_advance_booking_hours", "max_advance_booking_days"):
			if cint(self.get(fieldname)) < 0:
				frappe.throw(_(f"{fieldname} no puede ser negativo"))

		if cint(self.max_pets_per_appointment) < 1:
			frappe.throw(_("Max Pets Per Appointment debe ser al menos 1"))

	def _validate_timezone(self) -> None:
		if not self.timezone or self.timezone == "system timezone":
			return

		if self.timezone not in pytz.all_timezones_set:
			frappe.throw(_(f"Timezone desconocida: {self.timezone}"))
