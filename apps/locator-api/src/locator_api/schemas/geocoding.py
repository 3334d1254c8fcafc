from typing import Any

from locate_engine.models import Coordinate
from pydantic import BaseModel, ConfigDict


class AddressComponents(BaseModel):
    street_number: str = ""
    route: str = ""
    locality: str = ""
    administrative_area_level_1: str = ""
    postal_code: str = ""
    country: str = ""


class ForwardGeocodeResult(BaseModel):
    latitude: float
    longitude: float
    formatted_address: str = ""
    components: AddressComponents = AddressComponents()

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


class ProviderResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider_id: str
    label: str | None = None
    error: str | None = None
    latency_ms: float = 0.0

    def to_payload(self) -> dict[str, Any]:
        return {"label": self.label, "error": self.error, "latencyMs": round(self.latency_ms, 2)}


# Insertion order follows provider registration order.
AggregatedAddress = dict[str, ProviderResult]


class GeocodeRequest(BaseModel):
    address: str | None = None
