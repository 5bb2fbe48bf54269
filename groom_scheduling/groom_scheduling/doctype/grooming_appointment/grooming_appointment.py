# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Grooming Appointment DocType

Las citas se crean desde la API de reservas (BookingOrchestrator.commit),
que calcula el precio y reserva el horario. El controlador protege las
ediciones hechas desde el escritorio.
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import flt, get_datetime

from groom_scheduling.groom_scheduling.scheduling.errors import BookingValidationError, InvalidStatusTransitionError
from groom_scheduling.groom_scheduling.scheduling.policy import validate_appointment_duration
from groom_scheduling.groom_scheduling.scheduling.status import validate_status_transition
from groom_scheduling.groom_scheduling.scheduling.types import AppointmentStatus


class GroomingAppointment(Document):
	"""
	Cita de peluquería con validación del ciclo de estados.

	Ejecuta:
	1. Validar consistencia de fechas y duración máxima
	2. Validar status y transición desde el valor guardado
	3. Validar montos no negativos
	4. Validar que las líneas de servicio sumen la duración de la cita
	"""

	def validate(self) -> None:
		self._validate_datetime_consistency()
		self._validate_status_transition()
		self._validate_amounts()
		self._validate_service_lines()

	def _validate_datetime_consistency(self) -> None:
		"""Valida que start_datetime < end_datetime y la duración máxima."""
		if not self.start_datetime or not self.end_datetime:
			frappe.throw(_("Start DateTime y End DateTime son requeridos"))

		start = get_datetime(self.start_datetime)
		end = get_datetime(self.end_datetime)

		if start >= end:
			frappe.throw(_("Start DateTime debe ser menor que End DateTime"))

		try:
			validate_appointment_duration(int((end - start).total_seconds() // 60))
		except BookingValidationError as e:
			frappe.throw(_(str(e)))

	def _validate_status_transition(self) -> None:
		"""Valida el status y la transición desde el valor guardado."""
		self.status = (self.status or AppointmentStatus.REQUESTED.value).lower()
		try:
			AppointmentStatus(self.status)
		except ValueError:
			frappe.throw(_(f"Status inválido: {self.status}"))

		previous = self.get_doc_before_save()
		if not previous or previous.status == self.status:
			return

		try:
			validate_status_transition(previous.status, self.status)
		except InvalidStatusTransitionError as e:
			frappe.throw(_(str(e)))

	def _validate_amounts(self) -> None:
		for fieldname in ("total_amount", "deposit_amount", "fee_amount"):
			if flt(self.get(fieldname)) < 0:
				frappe.throw(_(f"{fieldname} no puede ser negativo"))

		if flt(self.deposit_amount) > flt(self.total_amount):
			frappe.msgprint(
				_("El depósito es mayor que el total de la cita (depósito mínimo de la política)"),
				indicator="yellow",
				alert=True
			)

	def _validate_service_lines(self) -> None:
		"""
		Las mascotas se atienden una tras otra, así que la suma de las
		líneas de servicio debe dar la duración de la cita.
		"""
		lines = self.get("services") or []
		if not lines:
			return

		booked_minutes = int((get_datetime(self.end_datetime) - get_datetime(self.start_datetime)).total_seconds() // 60)
		line_minutes = sum(int(line.final_duration or 0) for line in lines)

		if line_minutes != booked_minutes:
			frappe.msgprint(
				_(f"La duración de los servicios ({line_minutes} min) no coincide con la cita ({booked_minutes} min)"),
				indicator="yellow",
				alert=True
			)
