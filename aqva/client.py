"""Synchronous HTTP client and polling loops for the rider and customer apps.

``LocationBroadcaster`` reports a rider's position while the server says
sharing is active. ``RiderTracker`` polls an order and its rider's position
until the order reaches a terminal status.
"""

import logging
import threading
from typing import Any, Callable

import httpx

logger = logging.getLogger(__name__)

Position = tuple[float, float]
ErrorCallback = Callable[[Exception], None]

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_INTERVAL_SECONDS = 5.0
# Mirrors the server-side terminal order statuses.
TERMINAL_STATUSES = frozenset({"delivered", "failed", "cancelled"})


class AqvaClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        transport: httpx.BaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._http = httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
            timeout=timeout,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "AqvaClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        response = self._http.request(method, path, **kwargs)
        response.raise_for_status()
        return response.json()

    def report_location(self, latitude: float, longitude: float) -> dict:
        return self._request(
            "POST",
            "/api/riders/me/location",
            json={"latitude": latitude, "longitude": longitude},
        )

    def get_order(self, order_id: int) -> dict:
        return self._request("GET", f"/api/orders/{order_id}")

    def get_rider_location(self, order_id: int) -> dict:
        return self._request("GET", f"/api/orders/{order_id}/rider-location")


class _PollingLoop:
    def __init__(
        self,
        interval: float,
        sleep: Callable[[float], Any] | None,
        on_error: ErrorCallback | None,
        max_iterations: int | None,
    ) -> None:
        self.interval = interval
        self._stop = threading.Event()
        self._sleep = sleep or self._stop.wait
        self._on_error = on_error
        self._max_iterations = max_iterations
        self.iterations = 0

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _report_error(self, exc: Exception) -> None:
        if self._on_error is not None:
            self._on_error(exc)

    def _next_iteration(self) -> bool:
        if self._stop.is_set():
            return False
        if self._max_iterations is not None and self.iterations >= self._max_iterations:
            return False
        self.iterations += 1
        return True


class LocationBroadcaster(_PollingLoop):
    """Report positions every ``interval`` seconds while sharing is active.

    The loop ends as soon as the server answers ``sharing_active=false``
    (rider offline or no order en route). Transport and HTTP errors are
    logged and passed to ``on_error``; the loop keeps going.
    """

    def __init__(
        self,
        client: AqvaClient,
        position_source: Callable[[], Position],
        interval: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Callable[[float], Any] | None = None,
        on_error: ErrorCallback | None = None,
        max_iterations: int | None = None,
    ) -> None:
        super().__init__(interval, sleep, on_error, max_iterations)
        self.client = client
        self.position_source = position_source
        self.sent = 0

    def run(self) -> bool:
        """Returns True when stopped by the server, False when stopped locally."""
        while self._next_iteration():
            latitude, longitude = self.position_source()
            try:
                result = self.client.report_location(latitude, longitude)
            except httpx.HTTPError as exc:
                logger.warning("Location report failed: %s", exc)
                self._report_error(exc)
            else:
                if not result.get("sharing_active"):
                    logger.info("Location sharing inactive; broadcaster stopping")
                    return True
                self.sent += 1
            self._sleep(self.interval)
        return False


class RiderTracker(_PollingLoop):
    """Poll an order and its rider's position until the order is terminal.

    ``on_update`` receives ``(order, tracking)`` after every successful poll;
    ``tracking`` is None once the order is terminal.
    """

    def __init__(
        self,
        client: AqvaClient,
        order_id: int,
        on_update: Callable[[dict, dict | None], Any] | None = None,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Callable[[float], Any] | None = None,
        on_error: ErrorCallback | None = None,
        max_iterations: int | None = None,
    ) -> None:
        super().__init__(interval, sleep, on_error, max_iterations)
        self.client = client
        self.order_id = order_id
        self.on_update = on_update
        self.last_order: dict | None = None

    def run(self) -> dict | None:
        """Returns the terminal order, or the last order seen when stopped locally."""
        while self._next_iteration():
            try:
                order = self.client.get_order(self.order_id)
                tracking = None
                if order.get("status") not in TERMINAL_STATUSES:
                    tracking = self.client.get_rider_location(self.order_id)
            except httpx.HTTPError as exc:
                logger.warning("Tracking poll for order %s failed: %s", self.order_id, exc)
                self._report_error(exc)
            else:
                self.last_order = order
                if self.on_update is not None:
                    self.on_update(order, tracking)
                if order.get("status") in TERMINAL_STATUSES:
                    logger.info("Order %s is %s; tracker stopping", self.order_id, order.get("status"))
                    return order
            self._sleep(self.interval)
        return self.last_order
