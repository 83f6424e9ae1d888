from typing import List, Literal, Optional

from pydantic import BaseModel, Field


Network = Literal["gov", "private"]
SortKey = Literal["distance", "availability", "rating", "name"]


class Facility(str):
    ICU = "ICU"
    TRAUMA = "Trauma"
    CARDIOLOGY = "Cardiology"
    PEDIATRICS = "Pediatrics"
    LABOUR = "Labour"
    VENTILATOR = "Ventilator"
    GENERAL = "General"


class Coordinates(BaseModel):
    latitude: float
    longitude: float


class Beds(BaseModel):
    total: Optional[int] = None
    available: int
    icuAvailable: int


class Doctors(BaseModel):
    emergency: int = 0
    cardiology: int = 0
    general: int = 0
    pediatrics: int = 0


class Hospital(BaseModel):
    id: str
    name: str
    address: str
    network: Network
    coordinates: Coordinates
    beds: Beds
    rating: float
    phone: Optional[str] = None
    facilities: List[str] = Field(default_factory=list)
    doctors: Optional[Doctors] = None


class DirectoryEntry(Hospital):
    distanceKm: Optional[float] = None
    etaMin: Optional[int] = None
    mapsUrl: str
