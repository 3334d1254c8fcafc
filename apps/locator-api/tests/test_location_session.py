from __future__ import annotations

import asyncio

import pytest
from locate_engine.models import Coordinate, GeoError, GeoErrorKind, GeoResult, GeoSuccess

from locator_api.schemas.geocoding import AggregatedAddress, ProviderResult
from locator_api.session import LocationSession


class RecordingReverseGeocoder:
    def __init__(self) -> None:
        self.calls: list[Coordinate] = []
        self.changed = asyncio.Event()

    async def reverse(self, coordinate: Coordinate, provider_ids=None) -> AggregatedAddress:
        self.calls.append(coordinate)
        self.changed.set()
        return {"nominatim": ProviderResult(provider_id="nominatim", label=f"near {coordinate.latitude}")}

    async def wait_for_calls(self, count: int) -> None:
        while len(self.calls) < count:
            self.changed.clear()
            await asyncio.wait_for(self.changed.wait(), timeout=1)


def position(lat: float, lon: float, accuracy: float | None = 5.0) -> dict:
    coords = {"latitude": lat, "longitude": lon}
    if accuracy is not None:
        coords["accuracy"] = accuracy
    return {"coords": coords, "timestamp": 1_700_000_000_000}


def build_session(geocoder, interval: float = 1800.0):
    results: list[GeoResult] = []
    addresses: list[tuple[Coordinate, AggregatedAddress]] = []

    async def on_result(result: GeoResult) -> None:
        results.append(result)

    async def on_address(coordinate: Coordinate, aggregated: AggregatedAddress) -> None:
        addresses.append((coordinate, aggregated))

    session = LocationSession(geocoder, on_result=on_result, on_address=on_address, refresh_interval_seconds=interval)
    return session, results, addresses


@pytest.mark.asyncio
async def test_first_fix_triggers_immediate_reverse_geocode() -> None:
    geocoder = RecordingReverseGeocoder()
    session, results, addresses = build_session(geocoder)

    async with session:
        result = await session.push(position(6.5244, 3.3792))
        await geocoder.wait_for_calls(1)
        await asyncio.sleep(0)

    assert isinstance(result, GeoSuccess)
    assert results == [result]
    assert geocoder.calls == [Coordinate(latitude=6.5244, longitude=3.3792)]
    assert addresses[0][1]["nominatim"].label == "near 6.5244"
    assert session.latest_address is not None
    assert session.closed


@pytest.mark.asyncio
async def test_same_coordinate_does_not_rearm_refresh() -> None:
    geocoder = RecordingReverseGeocoder()
    session, results, _ = build_session(geocoder)

    async with session:
        await session.push(position(6.5244, 3.3792))
        await geocoder.wait_for_calls(1)
        await session.push(position(6.5244, 3.3792, accuracy=20.0))
        await asyncio.sleep(0.01)

    assert len(results) == 2
    assert len(geocoder.calls) == 1


@pytest.mark.asyncio
async def test_new_coordinate_replaces_pending_refresh() -> None:
    geocoder = RecordingReverseGeocoder()
    session, _, _ = build_session(geocoder)

    async with session:
        await session.push(position(6.5244, 3.3792))
        await geocoder.wait_for_calls(1)
        await session.push(position(9.0765, 7.3986))
        await geocoder.wait_for_calls(2)
        assert session.last_coordinate == Coordinate(latitude=9.0765, longitude=7.3986)

    assert geocoder.calls[-1] == Coordinate(latitude=9.0765, longitude=7.3986)
    assert len(geocoder.calls) == 2


@pytest.mark.asyncio
async def test_old_coordinate_stops_refreshing_after_switch() -> None:
    geocoder = RecordingReverseGeocoder()
    session, _, _ = build_session(geocoder, interval=0.01)
    lagos = Coordinate(latitude=6.5244, longitude=3.3792)
    abuja = Coordinate(latitude=9.0765, longitude=7.3986)

    async with session:
        await session.push(position(6.5244, 3.3792))
        await geocoder.wait_for_calls(2)
        await session.push(position(9.0765, 7.3986))
        switched_at = len(geocoder.calls)
        await geocoder.wait_for_calls(switched_at + 3)

    assert all(call == lagos for call in geocoder.calls[:switched_at])
    assert all(call == abuja for call in geocoder.calls[switched_at:])


@pytest.mark.asyncio
async def test_concurrent_pushes_leave_a_single_refresh_timer() -> None:
    geocoder = RecordingReverseGeocoder()

    async def on_result(_result: GeoResult) -> None:
        await asyncio.sleep(0)

    session = LocationSession(geocoder, on_result=on_result, refresh_interval_seconds=0.02)

    async with session:
        await session.push(position(1.0, 1.0))
        await geocoder.wait_for_calls(1)
        await asyncio.gather(session.push(position(2.0, 2.0)), session.push(position(3.0, 3.0)))
        await asyncio.sleep(0.05)
        settled_at = len(geocoder.calls)
        await geocoder.wait_for_calls(settled_at + 3)
        assert session.last_coordinate == Coordinate(latitude=3.0, longitude=3.0)

    assert {call.latitude for call in geocoder.calls[settled_at:]} == {3.0}


class BlockingReverseGeocoder:
    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def reverse(self, coordinate: Coordinate, provider_ids=None) -> AggregatedAddress:
        self.started.set()
        await self.release.wait()
        return {"nominatim": ProviderResult(provider_id="nominatim", label="late answer")}


@pytest.mark.asyncio
async def test_no_address_callback_after_close_during_lookup() -> None:
    geocoder = BlockingReverseGeocoder()
    session, _, addresses = build_session(geocoder)

    await session.push(position(6.5244, 3.3792))
    await asyncio.wait_for(geocoder.started.wait(), timeout=1)
    await session.aclose()
    geocoder.release.set()
    await asyncio.sleep(0.01)

    assert addresses == []
    assert session.latest_address is None


@pytest.mark.asyncio
async def test_refresh_repeats_on_interval() -> None:
    geocoder = RecordingReverseGeocoder()
    session, _, addresses = build_session(geocoder, interval=0.01)

    async with session:
        await session.push(position(6.5244, 3.3792))
        await geocoder.wait_for_calls(3)

    assert all(call == Coordinate(latitude=6.5244, longitude=3.3792) for call in geocoder.calls)
    assert len(addresses) >= 2


@pytest.mark.asyncio
async def test_error_result_does_not_arm_refresh() -> None:
    geocoder = RecordingReverseGeocoder()
    session, results, _ = build_session(geocoder)

    async with session:
        result = await session.push({"code": 1, "message": "denied"})
        await asyncio.sleep(0.01)

    assert isinstance(result, GeoError)
    assert result.kind is GeoErrorKind.PERMISSION_DENIED
    assert results == [result]
    assert geocoder.calls == []


@pytest.mark.asyncio
async def test_attached_stream_is_consumed_in_order() -> None:
    geocoder = RecordingReverseGeocoder()
    session, results, _ = build_session(geocoder)

    async def positions():
        yield position(6.5244, 3.3792)
        yield "garbage"
        yield {"code": 3}

    async with session:
        session.attach(positions())
        await session.wait()

    assert [type(result) for result in results] == [GeoSuccess, GeoError, GeoError]
    assert results[1].message == "Unexpected response from Geolocation API."
    assert results[2].kind is GeoErrorKind.TIMEOUT


@pytest.mark.asyncio
async def test_closed_session_ignores_pushes() -> None:
    geocoder = RecordingReverseGeocoder()
    session, results, _ = build_session(geocoder)

    await session.aclose()

    assert await session.push(position(6.5244, 3.3792)) is None
    assert results == []
    with pytest.raises(RuntimeError):
        session.attach(iter([]))


def test_refresh_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        LocationSession(RecordingReverseGeocoder(), on_result=lambda result: None, refresh_interval_seconds=0)
