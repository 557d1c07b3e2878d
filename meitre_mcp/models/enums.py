from enum import StrEnum


class ServiceType(StrEnum):
    LUNCH = "lunch"
    DINNER = "dinner"


class ReservationStatus(StrEnum):
    BOOKED = "booked"
    CANCELLED = "cancelled"


class ReservationMode(StrEnum):
    NEW = "new"
    RESCHEDULE = "reschedule"
