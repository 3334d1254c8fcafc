from pydantic import BaseModel, ConfigDict, Field


class MatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_lat: float | None = Field(default=None, alias="sourceLat")
    source_lon: float | None = Field(default=None, alias="sourceLon")
    target_lat: float | None = Field(default=None, alias="targetLat")
    target_lon: float | None = Field(default=None, alias="targetLon")
    address: str | None = None
    tolerance_meters: float | None = Field(default=None, alias="toleranceMeters")
