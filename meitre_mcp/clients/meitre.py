"""Meitre admin API client with lazy login, token caching and 401 recovery."""

import asyncio
import logging
from typing import Any

import httpx

from meitre_mcp.clients.resilience import (
    AmbiguousRestaurantError,
    NoRestaurantError,
    UpstreamAuthError,
    classify_response,
    require_keys,
)
from meitre_mcp.models.credentials import Credentials
from meitre_mcp.models.enums import ReservationStatus
from meitre_mcp.models.reservation import Reservation
from meitre_mcp.models.restaurant import (
    Area,
    CalendarDay,
    Menu,
    Restaurant,
    Timeslot,
)
from meitre_mcp.storage.token_cache import TokenCache

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.meitre.com/api"


class MeitreClient:
    """Async client for one account's session against the Meitre admin API.

    One instance serves one inbound request. It owns the in-memory bearer
    token and the restaurant scope; the only state shared with other
    requests is the token cache.

    Token lifecycle: reuse the in-memory token, else the cached one, else
    log in. When an authenticated call comes back 401 the cached entry is
    dropped, a fresh login is forced and the call is retried exactly once.

    Args:
        credentials: Account credentials from the inbound request.
        token_cache: Encrypted persistent token cache.
        http: Shared httpx client. When omitted the instance creates and
            owns one, closed by ``close()``.
        base_url: Meitre API root.
        timeout: Timeout for an owned httpx client, in seconds.
    """

    def __init__(
        self,
        credentials: Credentials,
        token_cache: TokenCache,
        http: httpx.AsyncClient | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
    ) -> None:
        self.credentials = credentials
        self.token_cache = token_cache
        self.base_url = base_url.rstrip("/")
        self.cache_key = credentials.cache_key
        self.restaurant: str | None = credentials.restaurant or None
        self._token: str | None = None
        self._http = http
        self._owns_http = http is None
        self._timeout = timeout
        # Serialise token and scope work so a fan-out logs in at most once.
        self._auth_lock = asyncio.Lock()
        self._scope_lock = asyncio.Lock()

    def _get_http(self) -> httpx.AsyncClient:
        """Return (and lazily create) the httpx client."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
        return self._http

    async def close(self) -> None:
        """Close the httpx client if this instance created it."""
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    # ── Authentication ─────────────────────────────────────────────────

    async def _login(self) -> str:
        """POST the credentials to ``/login_check`` and cache the token.

        Raises:
            UpstreamAuthError: On a non-2xx response.
        """
        response = await self._get_http().post(
            f"{self.base_url}/login_check",
            json={
                "username": self.credentials.username,
                "password": self.credentials.password,
            },
        )
        if not response.is_success:
            logger.warning(
                "Meitre login failed for %s (HTTP %d)",
                self.cache_key, response.status_code,
            )
            raise UpstreamAuthError(response.status_code)

        token = require_keys(response.json(), "token")
        await self.token_cache.set(self.cache_key, str(token))
        self._token = str(token)
        logger.info("Logged in to Meitre as %s", self.cache_key)
        return self._token

    async def get_or_refresh_token(self) -> str:
        """Return a bearer token: in-memory, then cached, then a fresh login."""
        async with self._auth_lock:
            if self._token:
                return self._token

            cached = await self.token_cache.get(self.cache_key)
            if cached:
                logger.debug("Using cached Meitre token for %s", self.cache_key)
                self._token = cached
                return cached

            return await self._login()

    async def _replace_rejected_token(self, rejected: str) -> str:
        """Drop a token the upstream refused and log in again.

        If a concurrent call already replaced *rejected*, its token is
        reused instead of logging in a second time.
        """
        async with self._auth_lock:
            if self._token and self._token != rejected:
                return self._token
            await self.token_cache.delete(self.cache_key)
            self._token = None
            return await self._login()

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Issue an authenticated request, retrying once after a 401.

        Raises:
            UpstreamAuthError: If a login needed along the way fails.
            UpstreamError: On any non-2xx status other than a first 401,
                including a 401 on the retry.
        """
        token = await self.get_or_refresh_token()
        response = await self._get_http().request(
            method, url, params=params, json=json, headers=self._headers(token),
        )

        if response.status_code == 401:
            logger.info("Meitre rejected the token for %s, logging in again", self.cache_key)
            token = await self._replace_rejected_token(token)
            response = await self._get_http().request(
                method, url, params=params, json=json, headers=self._headers(token),
            )

        classify_response(response)
        return response.json()

    # ── Restaurant scope ───────────────────────────────────────────────

    def set_restaurant(self, restaurant: str) -> None:
        self.restaurant = restaurant

    async def get_restaurant(self) -> str:
        """Return the restaurant scope, auto-selecting it when unambiguous.

        Raises:
            NoRestaurantError: If the account has no restaurants.
            AmbiguousRestaurantError: If it has more than one.
        """
        if self.restaurant:
            return self.restaurant

        async with self._scope_lock:
            if self.restaurant:
                return self.restaurant

            restaurants = await self.list_restaurants()
            if not restaurants:
                raise NoRestaurantError()
            if len(restaurants) > 1:
                raise AmbiguousRestaurantError(len(restaurants))

            self.restaurant = restaurants[0].subdomain_prefix
            logger.info("Auto-selected restaurant %s for %s", self.restaurant, self.cache_key)
            return self.restaurant

    async def fetch(
        self,
        path: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Call a restaurant-scoped admin endpoint and return the decoded JSON."""
        restaurant = await self.get_restaurant()
        url = f"{self.base_url}/admin/v2/restaurants/{restaurant}/{path}"
        return await self._request(method, url, params=params, json=json)

    # ── API methods ────────────────────────────────────────────────────

    async def list_restaurants(self) -> list[Restaurant]:
        """List the restaurants this account can administer."""
        data = await self._request("GET", f"{self.base_url}/admin/v2/restaurants")
        return [Restaurant.model_validate(r) for r in require_keys(data, "restaurants")]

    async def get_areas(self) -> list[Area]:
        data = await self.fetch("areas")
        return [Area.model_validate(a) for a in require_keys(data, "areas")]

    async def get_service_types(self) -> list[str]:
        data = await self.fetch("timeslots/servicetype")
        return list(require_keys(data, "serviceTypes"))

    async def get_menus(self) -> list[Menu]:
        data = await self.fetch("menus", params={"onlyActives": 1})
        return [Menu.model_validate(m) for m in require_keys(data, "menus")]

    async def get_calendar(
        self,
        party_size: int,
        service_type: str,
        area_id: int | None = None,
        menu_id: int | None = None,
    ) -> list[CalendarDay]:
        """Return the availability calendar for a party size and service.

        Args:
            party_size: Number of diners.
            service_type: ``lunch`` or ``dinner``.
            area_id: Restrict to one area.
            menu_id: Restrict to one menu.
        """
        params = _availability_params(party_size, service_type, area_id, menu_id)
        data = await self.fetch("availabilities/calendarnew", params=params)
        return [CalendarDay.model_validate(d) for d in require_keys(data, "data", "calendar")]

    async def get_timeslots(
        self,
        party_size: int,
        date: str,
        service_type: str,
        area_id: int | None = None,
        menu_id: int | None = None,
    ) -> list[Timeslot]:
        """Return the bookable hours for one date.

        Args:
            party_size: Number of diners.
            date: Date string YYYY-MM-DD.
            service_type: ``lunch`` or ``dinner``.
            area_id: Restrict to one area.
            menu_id: Restrict to one menu.
        """
        params = {"date": date, **_availability_params(party_size, service_type, area_id, menu_id)}
        data = await self.fetch("availabilities/searchallhoursadmin", params=params)
        slots = require_keys(data, "data", "center", "slots")
        return [
            Timeslot(
                hour=slot["hour"],
                areas=slot.get("availableAreas", []),
                menus=slot.get("menus", []),
            )
            for slot in slots
        ]

    async def search_reservations(self, term: str) -> list[Reservation]:
        """Full-text reservation search (name, phone, email)."""
        data = await self.fetch("search/fulltext", params={"term": term})
        return [
            Reservation.model_validate(r)
            for r in require_keys(data, "data", "reservations")
        ]

    async def create_reservation(self, payload: dict[str, Any]) -> Reservation:
        """POST a reservation payload (new booking or reschedule)."""
        data = await self.fetch("reservations", method="POST", json=payload)
        return Reservation.model_validate(require_keys(data, "reservation"))

    async def cancel_reservation(self, reservation_id: int) -> Reservation:
        data = await self.fetch(
            f"reservations/{reservation_id}",
            method="PATCH",
            params={"withCharge": 0, "cancelOption": 1},
            json={"status": ReservationStatus.CANCELLED.value},
        )
        return Reservation.model_validate(require_keys(data, "data", "reservation"))


def _availability_params(
    party_size: int,
    service_type: str,
    area_id: int | None,
    menu_id: int | None,
) -> dict[str, Any]:
    params: dict[str, Any] = {"partySize": party_size, "serviceType": str(service_type)}
    if area_id:
        params["areasIds"] = area_id
    if menu_id:
        params["menusIds"] = menu_id
    return params
