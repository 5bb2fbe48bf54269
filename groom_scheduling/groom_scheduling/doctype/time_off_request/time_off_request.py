# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Time Off Request DocType

Ausencias de días completos de un peluquero. Solo las solicitudes
aprobadas bloquean la disponibilidad.
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import add_days, getdate

from groom_scheduling.groom_scheduling.scheduling.types import TimeOffStatus


class TimeOffRequest(Document):
	"""
	Ejecuta:
	1. Validar rango de fechas
	2. Validar status
	3. Avisar de citas reservadas si la solicitud está aprobada
	"""

	def validate(self) -> None:
		self._validate_dates()
		self._validate_status()
		self._warn_about_booked_appointments()

	def _validate_dates(self) -> None:
		"""Valida que start_date <= end_date."""
		if not self.start_date or not self.end_date:
			frappe.throw(_("Start Date y End Date son requeridos"))

		if getdate(self.start_date) > getdate(self.end_date):
			frappe.throw(_("Start Date debe ser menor o igual que End Date"))

	def _validate_status(self) -> None:
		self.status = (self.status or TimeOffStatus.PENDING.value).lower()
		try:
			TimeOffStatus(self.status)
		except ValueError:
			frappe.throw(_(f"Status inválido: {self.status}"))

	def _warn_about_booked_appointments(self) -> None:
		"""Aprobar la ausencia no cancela las citas existentes; recepción debe moverlas."""
		if self.status != TimeOffStatus.APPROVED.value:
			return

		booked = frappe.get_all(
			"Grooming Appointment",
			filters={
				"groomer": self.staff_member,
				"status": ["!=", "cancelled"],
				"start_datetime": ["<", add_days(getdate(self.end_date), 1)],
				"end_datetime": [">", getdate(self.start_date)],
			},
			pluck="name",
		)

		if booked:
			frappe.msgprint(
				_(f"Hay {len(booked)} cita(s) reservadas en estas fechas: {', '.join(booked)}"),
				indicator="orange",
				alert=True
			)
