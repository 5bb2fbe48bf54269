"""
Bookings API Domain

Slot listing, live quotes, booking and appointment lifecycle.
"""

from groom_scheduling.api.bookings.endpoints import (
    # Availability
    get_available_slots,
    get_week_slots,
    get_groomer_day,
    # Booking
    quote_booking,
    create_booking,
    # Lifecycle
    get_cancellation_fee,
    cancel_appointment,
    update_appointment_status,
)

__all__ = [
    # Availability
    "get_available_slots",
    "get_week_slots",
    "get_groomer_day",
    # Booking
    "quote_booking",
    "create_booking",
    # Lifecycle
    "get_cancellation_fee",
    "cancel_appointment",
    "update_appointment_status",
]
