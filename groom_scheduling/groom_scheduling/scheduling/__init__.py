"""
Scheduling Services Module

Availability and pricing engine for grooming appointments:
- Interval arithmetic (intervals.py)
- Modifier resolution and pricing (modifiers.py)
- Staff availability and slot calculation (availability.py)
- Booking policies and fees (policy.py)
- Appointment status lifecycle (status.py)
- Booking orchestration: quote and commit (booking.py)
- Booking stores and factory (store.py, frappe_store.py, factory.py)

Only frappe_store.py imports Frappe; everything else runs without a site.
"""
