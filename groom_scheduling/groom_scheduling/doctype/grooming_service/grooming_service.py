# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Grooming Service DocType

Servicio reservable con duración y precio base, y sus modificadores
(ajustes por peso, pelaje y adicionales).
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import cint, flt

from groom_scheduling.groom_scheduling.scheduling.types import CoatType, ModifierType, WeightRange


def _split(value):
	if not value:
		return []
	return [item.strip() for item in value.replace("\n", ",").split(",") if item.strip()]


class GroomingService(Document):
	"""
	Validaciones:
	- base_duration_minutes > 0, base_price >= 0
	- Tipo de modificador: weight, coat o addon
	- Las condiciones usan rangos de peso y tipos de pelaje conocidos
	- Modificadores porcentuales entre -100 y 100
	- La duración resultante de un modificador siempre es mayor que 0
	"""

	def validate(self) -> None:
		self._validate_base()
		self._validate_modifiers()

	def _validate_base(self) -> None:
		if cint(self.base_duration_minutes) <= 0:
			frappe.throw(_("Base Duration Minutes debe ser mayor que 0"))

		if flt(self.base_price) < 0:
			frappe.throw(_("Base Price no puede ser negativo"))

	def _validate_modifiers(self) -> None:
		for idx, row in enumerate(self.get("modifiers") or [], 1):
			label = row.modifier_name or idx

			try:
				ModifierType(row.modifier_type)
			except ValueError:
				frappe.throw(_(f"Modifier {label}: tipo inválido ({row.modifier_type})"))

			try:
				for value in _split(row.applies_to_weight_ranges):
					WeightRange(value)
				for value in _split(row.applies_to_coat_types):
					CoatType(value)
			except ValueError as e:
				frappe.throw(_(f"Modifier {label}: condición inválida ({e})"))

			if row.is_percentage and not -100 <= flt(row.price_adjustment) <= 100:
				frappe.throw(_(f"Modifier {label}: el porcentaje debe estar entre -100 y 100"))

			if cint(self.base_duration_minutes) + cint(row.duration_minutes) <= 0:
				frappe.throw(_(f"Modifier {label}: la duración resultante debe ser mayor que 0"))
