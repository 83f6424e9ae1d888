from __future__ import annotations

import asyncio
import json

import pytest

from medrush.models import Coordinates
from medrush.services.directory import (
    DEMO_LOCATION,
    distance_km,
    eta_minutes,
    maps_url,
    resolve_origin,
)


def ids(resp) -> list:
    return [h["id"] for h in resp.json()["hospitals"]]


def test_distance_km_is_great_circle():
    one_degree = distance_km(
        Coordinates(latitude=0, longitude=0), Coordinates(latitude=0, longitude=1)
    )
    assert one_degree == pytest.approx(111.195, abs=0.01)
    assert distance_km(DEMO_LOCATION, DEMO_LOCATION) == 0


def test_eta_minutes_has_a_floor():
    assert eta_minutes(None) is None
    assert eta_minutes(0.3) == 2
    assert eta_minutes(15) == 30


def test_maps_url_with_and_without_origin():
    dest = Coordinates(latitude=17.4218, longitude=78.4501)
    assert maps_url(dest) == "https://www.google.com/maps/dir/?api=1&destination=17.4218,78.4501"
    assert maps_url(dest, DEMO_LOCATION).endswith("&origin=17.433,78.45")


def test_resolve_origin_prefers_explicit_coordinates():
    assert resolve_origin(1.0, 2.0) == Coordinates(latitude=1.0, longitude=2.0)
    assert resolve_origin(None, None) == DEMO_LOCATION
    assert resolve_origin(1.0, None, use_demo_location=False) is None


def test_gov_hospitals_sorted_by_distance(app_client):
    client, _ = app_client
    resp = client.get("/api/hospitals")
    assert resp.status_code == 200, resp.text
    hospitals = resp.json()["hospitals"]
    assert len(hospitals) == 6
    assert [h["id"] for h in hospitals[:2]] == ["h5", "h2"]
    distances = [h["distanceKm"] for h in hospitals]
    assert distances == sorted(distances)
    nearest = hospitals[0]
    assert nearest["etaMin"] == 2
    assert nearest["mapsUrl"].endswith("&origin=17.433,78.45")
    assert nearest["beds"] == {"total": 110, "available": 6, "icuAvailable": 1}


def test_private_branches_sorted_by_distance(app_client):
    client, _ = app_client
    resp = client.get("/api/hospitals", params={"network": "private"})
    assert ids(resp) == ["ap1", "ap2", "ap3"]
    assert all(h["facilities"] == [] for h in resp.json()["hospitals"])


def test_unknown_distance_sorts_by_name(app_client):
    client, _ = app_client
    resp = client.get("/api/hospitals", params={"network": "private", "demo": "false"})
    hospitals = resp.json()["hospitals"]
    assert [h["name"] for h in hospitals] == [
        "Apollo DRDO",
        "Apollo Health City Jubilee Hills",
        "Apollo Hospital Secunderabad",
    ]
    assert all(h["distanceKm"] is None and h["etaMin"] is None for h in hospitals)
    assert "origin=" not in hospitals[0]["mapsUrl"]


@pytest.mark.parametrize(
    "sort,expected",
    [
        ("availability", ["h3", "h6", "h1", "h4", "h2", "h5"]),
        ("rating", ["h3", "h5", "h1", "h2", "h4", "h6"]),
        ("name", ["h1", "h2", "h4", "h5", "h6", "h3"]),
    ],
)
def test_sort_keys(app_client, sort, expected):
    client, _ = app_client
    resp = client.get("/api/hospitals", params={"sort": sort})
    assert ids(resp) == expected


def test_filters_combine(app_client):
    client, _ = app_client
    resp = client.get("/api/hospitals", params={"q": "  RIVER ", "sort": "name"})
    assert ids(resp) == ["h2", "h6"]

    resp = client.get("/api/hospitals", params={"min_beds": 20, "sort": "name"})
    assert ids(resp) == ["h1", "h6", "h3"]

    resp = client.get(
        "/api/hospitals",
        params=[("facility", "ICU"), ("facility", "Ventilator"), ("sort", "rating")],
    )
    assert ids(resp) == ["h3", "h5", "h1"]


def test_explicit_origin_changes_nearest(app_client):
    client, _ = app_client
    resp = client.get("/api/hospitals", params={"lat": 17.4804, "lon": 78.3999})
    first = resp.json()["hospitals"][0]
    assert first["id"] == "h4"
    assert first["distanceKm"] == pytest.approx(0, abs=1e-6)


def test_invalid_query_values_are_rejected(app_client):
    client, _ = app_client
    assert client.get("/api/hospitals", params={"network": "army"}).status_code == 422
    assert client.get("/api/hospitals", params={"sort": "price"}).status_code == 422
    assert client.get("/api/hospitals", params={"min_beds": -1}).status_code == 422
    assert client.get("/api/hospitals", params={"lat": 91, "lon": 0}).status_code == 422


def test_get_hospital(app_client):
    client, _ = app_client
    resp = client.get("/api/hospitals/ap2")
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Apollo Hospital Secunderabad"
    assert body["network"] == "private"
    assert body["distanceKm"] > 0

    assert client.get("/api/hospitals/nope").status_code == 404


def test_notify_hospital_without_origin(app_client):
    client, hub = app_client
    resp = client.post("/api/hospitals/h1/notify", json={"demo": False})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["ok"] is True
    assert body["hospitalId"] == "h1"
    assert body["meta"]["distanceKm"] is None
    assert "etaMin" not in body["meta"]
    assert hub.channels() == {"hospital": 0}


def test_notify_unknown_hospital(app_client):
    client, hub = app_client
    resp = client.post("/api/hospitals/h99/notify")
    assert resp.status_code == 404
    assert hub.channels() == {}


@pytest.mark.asyncio
async def test_notify_hospital_reaches_console(hub, async_client):
    hub.keepalive_interval = 60
    sub = await hub.subscribe("hospital")
    await sub.read()

    resp = await async_client.post("/api/hospitals/ap1/notify")
    assert resp.status_code == 200, resp.text

    frame = await asyncio.wait_for(sub.read(), timeout=1)
    event = json.loads(frame[len("data: "):])
    assert event["type"] == "notify"
    assert event["message"] == "Ambulance en route to Apollo Health City Jubilee Hills"
    assert event["hospitalId"] == "ap1"
    meta = event["meta"]
    assert meta["selectedHospital"] == {
        "id": "ap1",
        "name": "Apollo Health City Jubilee Hills",
        "beds": {"available": 14, "icuAvailable": 3},
    }
    assert meta["distanceKm"] == pytest.approx(4.56, abs=0.05)
    assert meta["etaMin"] == 9
    assert meta == resp.json()["meta"]
