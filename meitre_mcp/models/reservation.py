from meitre_mcp.models.base import CamelModel


class Reservation(CamelModel):
    """A reservation as returned by the Meitre admin API."""

    id: int
    status: str
    res_date: str
    res_time: str
    guest_name: str = ""
    guest_phone: str = ""
    guest_email: str = ""
    party_size: int
    area_id: int | None = None
    area: str | None = None
    menu_id: int | None = None
    menu: str | None = None


class AreaRef(CamelModel):
    id: int | None = None
    name: str | None = None


class MenuRef(CamelModel):
    id: int | None = None
    name: str | None = None


class ReservationSummary(CamelModel):
    """A booked reservation as shown to the assistant."""

    id: int
    date: str
    time: str
    name: str
    phone: str
    email: str
    party_size: int
    area: AreaRef
    menu: MenuRef


class BookingConfirmation(CamelModel):
    id: int
    status: str
    date: str
    time: str
    name: str
    party_size: int

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "BookingConfirmation":
        return cls(
            id=reservation.id,
            status=reservation.status,
            date=reservation.res_date,
            time=reservation.res_time,
            name=reservation.guest_name,
            party_size=reservation.party_size,
        )
