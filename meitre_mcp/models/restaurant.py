from meitre_mcp.models.base import CamelModel


class Restaurant(CamelModel):
    id: int
    name: str
    subdomain_prefix: str
    address: str = ""
    timezone: str = ""


class NamedRef(CamelModel):
    id: int
    name: str


class Area(CamelModel):
    id: int
    name: str
    description: str | None = None


class Menu(CamelModel):
    id: int
    name: str
    description: str | None = None


class CalendarDay(CamelModel):
    date: str
    is_available: bool
    is_special_day: bool = False


class Timeslot(CamelModel):
    hour: str
    areas: list[NamedRef] = []
    menus: list[NamedRef] = []


class RestaurantOptions(CamelModel):
    areas: list[Area]
    service_types: list[str]
    menus: list[Menu]
