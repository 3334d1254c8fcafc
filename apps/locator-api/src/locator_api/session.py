"""Live location session: position stream in, normalized results and periodic
reverse-geocode refreshes out.

A session owns at most two tasks: the consumer reading pushed positions and a
single live refresh task for the last known coordinate. Arming a refresh for a
new coordinate cancels the previous one, and the new task waits for it to
finish before its first lookup.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Any

from locate_engine.models import Coordinate, GeoResult, GeoSuccess
from locate_engine.position import normalize_position

from locator_api.schemas.geocoding import AggregatedAddress
from locator_api.services.reverse_geocoder import ReverseGeocoder

logger = logging.getLogger(__name__)

ResultCallback = Callable[[GeoResult], Awaitable[None]]
AddressCallback = Callable[[Coordinate, AggregatedAddress], Awaitable[None]]

DEFAULT_REFRESH_INTERVAL_SECONDS = 30 * 60


class LocationSession:
    def __init__(
        self,
        reverse_geocoder: ReverseGeocoder,
        on_result: ResultCallback,
        on_address: AddressCallback | None = None,
        refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
        provider_ids: Sequence[str] | None = None,
    ) -> None:
        if refresh_interval_seconds <= 0:
            raise ValueError("refresh_interval_seconds must be > 0")
        self._reverse_geocoder = reverse_geocoder
        self._on_result = on_result
        self._on_address = on_address
        self._refresh_interval_seconds = refresh_interval_seconds
        self._provider_ids = provider_ids
        self._consumer_task: asyncio.Task[None] | None = None
        self._refresh_task: asyncio.Task[None] | None = None
        self._retired_tasks: set[asyncio.Task[None]] = set()
        self._closed = False
        self.last_result: GeoResult | None = None
        self.last_coordinate: Coordinate | None = None
        self.latest_address: AggregatedAddress | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> LocationSession:
        return self

    async def __aexit__(self, *_exc_info: Any) -> None:
        await self.aclose()

    def attach(self, positions: AsyncIterator[Any]) -> None:
        if self._closed:
            raise RuntimeError("session is closed")
        if self._consumer_task is not None:
            raise RuntimeError("a position stream is already attached")
        self._consumer_task = asyncio.create_task(self._consume(positions))

    async def wait(self) -> None:
        """Block until the attached position stream ends."""
        if self._consumer_task is not None:
            await self._consumer_task

    async def push(self, raw: Any) -> GeoResult | None:
        if self._closed:
            return None
        result = normalize_position(raw)
        self.last_result = result
        await self._on_result(result)
        if isinstance(result, GeoSuccess):
            coordinate = result.reading.coordinate
            if coordinate != self.last_coordinate and not self._closed:
                self._rearm(coordinate)
        return result

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        current = asyncio.current_task()
        candidates = (self._consumer_task, self._refresh_task, *self._retired_tasks)
        tasks = [task for task in candidates if task is not None and task is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)
        self._refresh_task = None
        logger.info("location_session_closed", extra={"last_coordinate": self._describe(self.last_coordinate)})

    async def _consume(self, positions: AsyncIterator[Any]) -> None:
        async for raw in positions:
            if self._closed:
                break
            await self.push(raw)

    def _rearm(self, coordinate: Coordinate) -> None:
        # The handle is swapped before any suspension so concurrent pushes never
        # both replace the same task.
        previous = self._refresh_task
        if previous is not None and not previous.done():
            previous.cancel()
            self._retired_tasks.add(previous)
            previous.add_done_callback(self._retired_tasks.discard)
        else:
            previous = None
        self.last_coordinate = coordinate
        self.latest_address = None
        self._refresh_task = asyncio.create_task(self._refresh_loop(coordinate, previous))
        logger.info("location_refresh_armed", extra={"coordinate": self._describe(coordinate)})

    async def _refresh_loop(self, coordinate: Coordinate, previous: asyncio.Task[None] | None = None) -> None:
        if previous is not None:
            # Never overlap with the refresh being replaced.
            await asyncio.wait([previous])
        while not self._closed:
            addresses = await self._reverse_geocoder.reverse(coordinate, self._provider_ids)
            if self._closed:
                return
            self.latest_address = addresses
            if self._on_address is not None:
                try:
                    await self._on_address(coordinate, addresses)
                except Exception:
                    logger.exception("location_address_callback_failed")
            await asyncio.sleep(self._refresh_interval_seconds)

    @staticmethod
    def _describe(coordinate: Coordinate | None) -> str | None:
        if coordinate is None:
            return None
        return f"{coordinate.latitude},{coordinate.longitude}"
