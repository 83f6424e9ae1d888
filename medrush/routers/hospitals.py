from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..config import DEFAULT_CHANNEL
from ..hub import ChannelHub, get_hub
from ..models import DirectoryEntry, Network, SortKey
from ..services.directory import directory, resolve_origin


router = APIRouter(prefix="/api/hospitals", tags=["hospitals"])


class DirectoryEnvelope(BaseModel):
    hospitals: List[DirectoryEntry]


class HospitalNotifyRequest(BaseModel):
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lon: Optional[float] = Field(default=None, ge=-180, le=180)
    demo: bool = True
    channel: str = DEFAULT_CHANNEL


class HospitalNotifyResponse(BaseModel):
    ok: bool
    hospitalId: str
    meta: dict


@router.get("", response_model=DirectoryEnvelope)
def list_hospitals(
    network: Network = "gov",
    q: str = "",
    min_beds: int = Query(default=0, ge=0),
    facility: List[str] = Query(default=[]),
    sort: SortKey = "distance",
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lon: Optional[float] = Query(default=None, ge=-180, le=180),
    demo: bool = True,
):
    origin = resolve_origin(lat, lon, demo)
    entries = directory.search(
        network=network,
        origin=origin,
        query=q,
        min_beds=min_beds,
        facilities=facility,
        sort=sort,
    )
    return DirectoryEnvelope(hospitals=entries)


@router.get("/{hospital_id}", response_model=DirectoryEntry)
def get_hospital(
    hospital_id: str,
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lon: Optional[float] = Query(default=None, ge=-180, le=180),
    demo: bool = True,
):
    hospital = directory.get(hospital_id)
    if not hospital:
        raise HTTPException(404, "Hospital not found")
    return directory.entry(hospital, resolve_origin(lat, lon, demo))


@router.post("/{hospital_id}/notify", response_model=HospitalNotifyResponse)
async def notify_hospital(
    hospital_id: str,
    payload: Optional[HospitalNotifyRequest] = None,
    hub: ChannelHub = Depends(get_hub),
):
    hospital = directory.get(hospital_id)
    if not hospital:
        raise HTTPException(404, "Hospital not found")
    payload = payload or HospitalNotifyRequest()
    meta = await directory.notify(
        hub,
        hospital,
        origin=resolve_origin(payload.lat, payload.lon, payload.demo),
        channel=payload.channel or DEFAULT_CHANNEL,
    )
    return HospitalNotifyResponse(ok=True, hospitalId=hospital.id, meta=meta)
