# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Staff Availability DocType

Horario semanal de un peluquero, con descanso, margen entre
citas y máximo de citas por día.
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import cint

from groom_scheduling.groom_scheduling.scheduling.availability import normalize_weekly_schedule


class StaffAvailability(Document):
	"""
	Disponibilidad de un peluquero con horario semanal normalizado.

	Validaciones:
	- max_appointments_per_day >= 1
	- buffer_minutes_between_appointments >= 0
	- Una fila por día (los días faltantes se agregan como no laborables)
	- Días laborables: inicio < fin, descanso dentro del horario
	"""

	def validate(self) -> None:
		self._validate_limits()
		self._normalize_weekly_schedule()

	def _validate_limits(self) -> None:
		if cint(self.max_appointments_per_day) < 1:
			frappe.throw(_("Max Appointments Per Day debe ser al menos 1"))

		if cint(self.buffer_minutes_between_appointments) < 0:
			frappe.throw(_("Buffer Minutes Between Appointments no puede ser negativo"))

	def _normalize_weekly_schedule(self) -> None:
		"""
		Rechaza días duplicados o inválidos y completa la semana.

		day_of_week: 0 = domingo ... 6 = sábado.
		"""
		rows = [
			{
				"day_of_week": cint(row.day_of_week),
				"is_working_day": cint(row.is_working_day),
				"start_time": row.start_time,
				"end_time": row.end_time,
				"break_start": row.break_start,
				"break_end": row.break_end,
			}
			for row in self.get("weekly_schedule") or []
		]

		try:
			schedule = normalize_weekly_schedule(rows)
		except ValueError as e:
			frappe.throw(_(str(e)))

		present = {row["day_of_week"] for row in rows}
		for day in schedule:
			if day not in present:
				self.append("weekly_schedule", {
					"day_of_week": day,
					"is_working_day": 0,
				})

		self.weekly_schedule.sort(key=lambda row: cint(row.day_of_week))
		for idx, row in enumerate(self.weekly_schedule, 1):
			row.idx = idx
