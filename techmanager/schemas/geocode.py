from __future__ import annotations

from pydantic import BaseModel


class CityResult(BaseModel):
    name: str
    state: str = ""
    lat: float
    lng: float


class Coordinates(BaseModel):
    lat: float
    lng: float
