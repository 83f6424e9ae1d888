from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional

from ..hub import ChannelHub
from ..models import (
    Beds,
    Coordinates,
    DirectoryEntry,
    Doctors,
    Facility,
    Hospital,
)


EARTH_RADIUS_KM = 6371.0
AVERAGE_SPEED_KMH = 30.0
MIN_ETA_MIN = 2

DEMO_LOCATION = Coordinates(latitude=17.433, longitude=78.45)


def _gov(id, name, address, phone, lat, lon, facilities, beds, icu, available, doctors, rating):
    return Hospital(
        id=id,
        name=name,
        address=address,
        network="gov",
        phone=phone,
        coordinates=Coordinates(latitude=lat, longitude=lon),
        facilities=facilities,
        beds=Beds(total=beds, available=available, icuAvailable=icu),
        doctors=Doctors(**doctors),
        rating=rating,
    )


def _branch(id, name, address, lat, lon, available, icu, rating):
    return Hospital(
        id=id,
        name=name,
        address=address,
        network="private",
        coordinates=Coordinates(latitude=lat, longitude=lon),
        beds=Beds(available=available, icuAvailable=icu),
        rating=rating,
    )


F = Facility

HOSPITALS: List[Hospital] = [
    _gov("h1", "CityCare General Hospital", "12 Park Ave, Midtown", "+1 (555) 011-2001",
         17.4413, 78.3915, [F.ICU, F.TRAUMA, F.CARDIOLOGY, F.LABOUR, F.VENTILATOR], 150, 6, 24,
         {"emergency": 5, "cardiology": 3, "general": 12, "pediatrics": 2}, 4.5),
    _gov("h2", "GreenCross Medical Center", "88 Riverside Rd, West End", "+1 (555) 011-2002",
         17.4421, 78.4631, [F.ICU, F.TRAUMA, F.PEDIATRICS, F.LABOUR], 90, 3, 12,
         {"emergency": 3, "cardiology": 1, "general": 7, "pediatrics": 3}, 4.1),
    _gov("h3", "Sunrise Specialty Hospital", "5 Hillcrest Blvd, East Side", "+1 (555) 011-2003",
         17.4082, 78.4983, [F.ICU, F.CARDIOLOGY, F.VENTILATOR], 120, 10, 34,
         {"emergency": 4, "cardiology": 4, "general": 9, "pediatrics": 1}, 4.7),
    _gov("h4", "Lakeside Children & Trauma", "42 Lake Rd, North Quarter", "+1 (555) 011-2004",
         17.4804, 78.3999, [F.TRAUMA, F.PEDIATRICS, F.LABOUR], 60, 2, 18,
         {"emergency": 2, "cardiology": 0, "general": 6, "pediatrics": 5}, 4.0),
    _gov("h5", "Metro Heart Institute", "210 Central Ave, Downtown", "+1 (555) 011-2005",
         17.4218, 78.4501, [F.ICU, F.CARDIOLOGY, F.VENTILATOR], 110, 1, 6,
         {"emergency": 3, "cardiology": 6, "general": 8, "pediatrics": 0}, 4.6),
    _gov("h6", "Riverbend Community Hospital", "9 Old Mill St, Riverbend", "+1 (555) 011-2006",
         17.3659, 78.4422, [F.GENERAL, F.PEDIATRICS, F.LABOUR], 80, 0, 27,
         {"emergency": 2, "cardiology": 0, "general": 10, "pediatrics": 2}, 3.9),
    _branch("ap1", "Apollo Health City Jubilee Hills", "Jubilee Hills, Hyderabad", 17.4327, 78.4070, 14, 3, 4.6),
    _branch("ap2", "Apollo Hospital Secunderabad", "Secunderabad", 17.4410, 78.4983, 8, 1, 4.4),
    _branch("ap3", "Apollo DRDO", "Kanchanbagh", 17.3308, 78.5247, 21, 4, 4.2),
]


def distance_km(a: Coordinates, b: Coordinates) -> float:
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def eta_minutes(distance: Optional[float]) -> Optional[int]:
    if distance is None:
        return None
    return max(MIN_ETA_MIN, round(distance / AVERAGE_SPEED_KMH * 60))


def maps_url(dest: Coordinates, origin: Optional[Coordinates] = None) -> str:
    url = f"https://www.google.com/maps/dir/?api=1&destination={dest.latitude},{dest.longitude}"
    if origin is not None:
        url += f"&origin={origin.latitude},{origin.longitude}"
    return url


def resolve_origin(
    lat: Optional[float], lon: Optional[float], use_demo_location: bool = True
) -> Optional[Coordinates]:
    if lat is not None and lon is not None:
        return Coordinates(latitude=lat, longitude=lon)
    if use_demo_location:
        return DEMO_LOCATION
    return None


def _distance_key(entry: DirectoryEntry):
    # unknown distances sort last, by name among themselves
    if entry.distanceKm is None:
        return (1, 0.0, entry.name)
    return (0, entry.distanceKm, "")


SORTERS = {
    "distance": lambda entries: sorted(entries, key=_distance_key),
    "availability": lambda entries: sorted(entries, key=lambda e: -e.beds.available),
    "rating": lambda entries: sorted(entries, key=lambda e: -e.rating),
    "name": lambda entries: sorted(entries, key=lambda e: e.name),
}


class HospitalDirectory:
    """Read-only lookup over the hospital and branch records."""

    def __init__(self, hospitals: Iterable[Hospital] = HOSPITALS):
        self._by_id: Dict[str, Hospital] = {h.id: h for h in hospitals}

    def get(self, hospital_id: str) -> Optional[Hospital]:
        return self._by_id.get(hospital_id)

    def entry(self, hospital: Hospital, origin: Optional[Coordinates]) -> DirectoryEntry:
        distance = distance_km(origin, hospital.coordinates) if origin is not None else None
        return DirectoryEntry(
            **hospital.model_dump(),
            distanceKm=distance,
            etaMin=eta_minutes(distance),
            mapsUrl=maps_url(hospital.coordinates, origin),
        )

    def search(
        self,
        *,
        network: str = "gov",
        origin: Optional[Coordinates] = None,
        query: str = "",
        min_beds: int = 0,
        facilities: Iterable[str] = (),
        sort: str = "distance",
    ) -> List[DirectoryEntry]:
        if sort not in SORTERS:
            raise ValueError(f"Unknown sort key: {sort}")
        needle = query.strip().lower()
        required = list(facilities)
        entries = []
        for hospital in self._by_id.values():
            if hospital.network != network:
                continue
            if needle and needle not in hospital.name.lower() and needle not in hospital.address.lower():
                continue
            if min_beds > 0 and hospital.beds.available < min_beds:
                continue
            if any(f not in hospital.facilities for f in required):
                continue
            entries.append(self.entry(hospital, origin))
        return SORTERS[sort](entries)

    async def notify(
        self,
        hub: ChannelHub,
        hospital: Hospital,
        *,
        origin: Optional[Coordinates],
        channel: str,
    ) -> dict:
        """Publish an "en route" notice for ``hospital`` and return the meta sent."""
        distance = distance_km(origin, hospital.coordinates) if origin is not None else None
        meta = {
            "selectedHospital": {
                "id": hospital.id,
                "name": hospital.name,
                "beds": hospital.beds.model_dump(exclude_none=True),
            },
            "distanceKm": distance,
        }
        eta = eta_minutes(distance)
        if eta is not None:
            meta["etaMin"] = eta
        await hub.publish(
            channel,
            f"Ambulance en route to {hospital.name}",
            hospital.id,
            meta,
        )
        return meta


directory = HospitalDirectory()
