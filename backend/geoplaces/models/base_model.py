from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Dict, Any

# --- Base ---
class CamelModel(BaseModel):
    """Accepts and emits camelCase on the wire, snake_case in Python and storage."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# --- Domain Models ---
class GeoPoint(CamelModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)

class Bounds(CamelModel):
    """Map viewport rectangle. Crosses the antimeridian when southwest.lng > northeast.lng."""
    northeast: GeoPoint
    southwest: GeoPoint

    def contains(self, point: GeoPoint) -> bool:
        if not (self.southwest.lat <= point.lat <= self.northeast.lat):
            return False
        if self.southwest.lng <= self.northeast.lng:
            return self.southwest.lng <= point.lng <= self.northeast.lng
        return point.lng >= self.southwest.lng or point.lng <= self.northeast.lng

# --- API Error Models ---
class ErrorBody(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = {}

class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody
