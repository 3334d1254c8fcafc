from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from locate_engine.errors import ValidationError
from locate_engine.models import Coordinate, GeoResult
from locate_engine.position import geo_result_to_dict

from locator_api.config import LocatorSettings
from locator_api.dependencies import get_reverse_geocoder, get_settings
from locator_api.schemas.geocoding import AggregatedAddress
from locator_api.services.reverse_geocoder import ReverseGeocoder
from locator_api.session import LocationSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["location"])

POLICY_VIOLATION = 1008


def _decode(text: str) -> Any:
    # Undecodable frames are pushed as-is and come back as an "unexpected response" error.
    try:
        return json.loads(text)
    except ValueError:
        return text


@router.websocket("/ws/location")
async def location_stream(
    websocket: WebSocket,
    reverse_geocoder: ReverseGeocoder = Depends(get_reverse_geocoder),
    settings: LocatorSettings = Depends(get_settings),
) -> None:
    raw_providers = websocket.query_params.get("providers")
    provider_ids = None
    if raw_providers:
        provider_ids = [item.strip().lower() for item in raw_providers.split(",") if item.strip()]
        try:
            reverse_geocoder.select(provider_ids)
        except ValidationError as exc:
            await websocket.close(code=POLICY_VIOLATION, reason=str(exc))
            return

    await websocket.accept()

    async def on_result(result: GeoResult) -> None:
        await websocket.send_json({"event": "position", "result": geo_result_to_dict(result)})

    async def on_address(coordinate: Coordinate, addresses: AggregatedAddress) -> None:
        await websocket.send_json(
            {
                "event": "address",
                "coordinates": coordinate.as_lat_lon(),
                "addresses": {provider_id: result.to_payload() for provider_id, result in addresses.items()},
            }
        )

    async with LocationSession(
        reverse_geocoder,
        on_result=on_result,
        on_address=on_address,
        refresh_interval_seconds=settings.SESSION_REFRESH_INTERVAL_SECONDS,
        provider_ids=provider_ids,
    ) as session:
        try:
            while True:
                text = await websocket.receive_text()
                await session.push(_decode(text))
        except WebSocketDisconnect:
            logger.info("location_stream_disconnected")
