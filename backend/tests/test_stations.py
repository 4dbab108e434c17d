from datetime import datetime, timezone

import pytest

from cacophony_api.models.station import Station
from cacophony_api.schemas.station import StationIn
from cacophony_api.services.groups import add_user_to_group
from cacophony_api.services.permissions import UserAccess
from cacophony_api.services.stations import distance_meters, nearest_station, reconcile_stations

from conftest import auth


def station(name, lat, lng, retired=False):
    return Station(
        name=name,
        lat=lat,
        lng=lng,
        retired_at=datetime(2024, 1, 1, tzinfo=timezone.utc) if retired else None,
    )


class TestReconcileStations:

    def test_create_update_retire(self):
        current = [station("trap-1", -43.5, 172.6), station("trap-2", -43.6, 172.7)]
        incoming = [StationIn(name="trap-1", lat=-43.51, lng=172.6), StationIn(name="trap-3", lat=-43.7, lng=172.8)]

        changes = reconcile_stations(current, incoming)

        assert [s.name for s in changes.to_create] == ["trap-3"]
        assert [(existing.name, new.lat) for existing, new in changes.to_update] == [("trap-1", -43.51)]
        assert [s.name for s in changes.to_retire] == ["trap-2"]

    def test_unchanged_list_is_empty(self):
        current = [station("trap-1", -43.5, 172.6)]
        changes = reconcile_stations(current, [StationIn(name="trap-1", lat=-43.5, lng=172.6)])
        assert changes.is_empty

    def test_retired_stations_are_ignored(self):
        current = [station("trap-1", -43.5, 172.6, retired=True)]
        changes = reconcile_stations(current, [StationIn(name="trap-1", lat=-43.5, lng=172.6)])
        assert [s.name for s in changes.to_create] == ["trap-1"]
        assert changes.to_retire == []

    def test_repeated_name_last_wins(self):
        incoming = [StationIn(name="trap-1", lat=-43.5, lng=172.6), StationIn(name="trap-1", lat=-44.0, lng=172.6)]
        changes = reconcile_stations([], incoming)
        assert [(s.name, s.lat) for s in changes.to_create] == [("trap-1", -44.0)]

    def test_empty_incoming_retires_everything(self):
        current = [station("trap-1", -43.5, 172.6), station("trap-2", -43.6, 172.7)]
        changes = reconcile_stations(current, [])
        assert len(changes.to_retire) == 2


def test_distance_meters():
    # One thousandth of a degree of latitude is about 111 m
    assert distance_meters(-43.5, 172.6, -43.501, 172.6) == pytest.approx(111.2, abs=0.5)
    assert distance_meters(-43.5, 172.6, -43.5, 172.6) == 0


def test_nearest_station_within_radius():
    near = station("near", -43.5001, 172.6)
    far = station("far", -43.5002, 172.6)
    assert nearest_station(-43.5, 172.6, [far, near], max_distance=30) is near
    assert nearest_station(-43.6, 172.6, [far, near], max_distance=30) is None


async def test_import_and_list_stations(client, make_user, make_group):
    owner = await make_user("owner")
    await make_group(owner, "kiwi-watch")

    response = await client.post(
        "/api/v1/groups/kiwi-watch/stations",
        json={"stations": [{"name": "trap-1", "lat": -43.5, "lng": 172.6}, {"name": "trap-2", "lat": -43.6, "lng": 172.7}]},
        headers=auth(owner),
    )
    assert response.status_code == 200
    body = response.json()
    assert sorted(body["added"]) == ["trap-1", "trap-2"]
    assert body["recordingsUpdated"] == 0

    response = await client.post(
        "/api/v1/groups/kiwi-watch/stations",
        json={"stations": [{"name": "trap-1", "lat": -43.55, "lng": 172.6}]},
        headers=auth(owner),
    )
    body = response.json()
    assert body["added"] == []
    assert body["updated"] == ["trap-1"]
    assert body["retired"] == ["trap-2"]

    response = await client.get("/api/v1/groups/kiwi-watch/stations", headers=auth(owner))
    stations = response.json()["stations"]
    assert [(s["name"], s["lat"]) for s in stations] == [("trap-1", -43.55)]

    response = await client.get(
        "/api/v1/groups/kiwi-watch/stations", params={"includeRetired": True}, headers=auth(owner)
    )
    stations = response.json()["stations"]
    assert [s["name"] for s in stations] == ["trap-1", "trap-2"]
    assert stations[1]["retiredAt"] is not None

    response = await client.get(f"/api/v1/stations/{stations[0]['id']}", headers=auth(owner))
    assert response.status_code == 200
    assert response.json()["station"]["name"] == "trap-1"


async def test_stations_need_group_admin(client, db, make_user, make_group):
    owner = await make_user("owner")
    member = await make_user("member")
    outsider = await make_user("outsider")
    group = await make_group(owner, "kiwi-watch")
    await add_user_to_group(db, UserAccess.from_user(owner), group, member, admin=False)
    payload = {"stations": [{"name": "trap-1", "lat": -43.5, "lng": 172.6}]}

    response = await client.post("/api/v1/groups/kiwi-watch/stations", json=payload, headers=auth(member))
    assert response.status_code == 403

    response = await client.delete("/api/v1/groups/kiwi-watch/stations", headers=auth(member))
    assert response.status_code == 403

    response = await client.get("/api/v1/groups/kiwi-watch/stations", headers=auth(member))
    assert response.status_code == 200

    response = await client.get("/api/v1/groups/kiwi-watch/stations", headers=auth(outsider))
    assert response.status_code == 403


async def test_station_of_other_group_not_found(client, make_user, make_group):
    owner = await make_user("owner")
    outsider = await make_user("outsider")
    await make_group(owner, "kiwi-watch")
    response = await client.post(
        "/api/v1/groups/kiwi-watch/stations",
        json={"stations": [{"name": "trap-1", "lat": -43.5, "lng": 172.6}]},
        headers=auth(owner),
    )
    assert response.status_code == 200

    response = await client.get("/api/v1/groups/kiwi-watch/stations", headers=auth(owner))
    station_id = response.json()["stations"][0]["id"]

    response = await client.get(f"/api/v1/stations/{station_id}", headers=auth(outsider))
    assert response.status_code == 404


async def test_retire_all_stations(client, make_user, make_group):
    owner = await make_user("owner")
    await make_group(owner, "kiwi-watch")
    await client.post(
        "/api/v1/groups/kiwi-watch/stations",
        json={"stations": [{"name": "trap-1", "lat": -43.5, "lng": 172.6}, {"name": "trap-2", "lat": -43.6, "lng": 172.7}]},
        headers=auth(owner),
    )

    response = await client.delete("/api/v1/groups/kiwi-watch/stations", headers=auth(owner))
    assert response.status_code == 200
    assert response.json()["retired"] == 2

    response = await client.get("/api/v1/groups/kiwi-watch/stations", headers=auth(owner))
    assert response.json()["stations"] == []


async def test_recordings_matched_to_stations(client, make_user, make_group, make_device):
    owner = await make_user("owner")
    kiwi = await make_group(owner, "kiwi-watch")
    device = await make_device(kiwi, "trap-cam-1")

    recording = {"type": "thermalRaw", "recordingDateTime": "2024-03-01T22:00:00Z", "lat": -43.5, "lng": 172.6}
    response = await client.post("/api/v1/recordings", json=recording, headers=auth(device))
    assert response.status_code == 200
    recording_id = response.json()["recordingId"]

    response = await client.get(f"/api/v1/recordings/{recording_id}", headers=auth(owner))
    assert response.json()["recording"]["stationId"] is None

    # Importing with fromDate re-matches existing recordings
    response = await client.post(
        "/api/v1/groups/kiwi-watch/stations",
        json={
            "stations": [{"name": "trap-1", "lat": -43.5001, "lng": 172.6}],
            "fromDate": "2024-01-01T00:00:00Z",
        },
        headers=auth(owner),
    )
    assert response.json()["recordingsUpdated"] == 1

    response = await client.get(f"/api/v1/recordings/{recording_id}", headers=auth(owner))
    station_id = response.json()["recording"]["stationId"]
    assert station_id is not None

    # New uploads are matched when they arrive
    response = await client.post(
        "/api/v1/recordings",
        json={**recording, "recordingDateTime": "2024-03-02T22:00:00Z"},
        headers=auth(device),
    )
    new_id = response.json()["recordingId"]
    response = await client.get(f"/api/v1/recordings/{new_id}", headers=auth(owner))
    assert response.json()["recording"]["stationId"] == station_id

    # Far away recordings stay unmatched
    response = await client.post(
        "/api/v1/recordings",
        json={**recording, "lat": -44.0},
        headers=auth(device),
    )
    far_id = response.json()["recordingId"]
    response = await client.get(f"/api/v1/recordings/{far_id}", headers=auth(owner))
    assert response.json()["recording"]["stationId"] is None


async def test_rematch_from_date_with_offset(client, make_user, make_group, make_device):
    owner = await make_user("owner")
    kiwi = await make_group(owner, "kiwi-watch")
    device = await make_device(kiwi, "trap-cam-1")

    recording = {"type": "thermalRaw", "recordingDateTime": "2024-03-01T22:00:00Z", "lat": -43.5, "lng": 172.6}
    response = await client.post("/api/v1/recordings", json=recording, headers=auth(device))
    assert response.status_code == 200

    # 2024-03-02T10:00+13:00 is 21:00 UTC, before the recording
    response = await client.post(
        "/api/v1/groups/kiwi-watch/stations",
        json={
            "stations": [{"name": "trap-1", "lat": -43.5001, "lng": 172.6}],
            "fromDate": "2024-03-02T10:00:00+13:00",
        },
        headers=auth(owner),
    )
    assert response.json()["recordingsUpdated"] == 1

    # 2024-03-02T12:00+13:00 is 23:00 UTC, after it
    response = await client.post(
        "/api/v1/groups/kiwi-watch/stations",
        json={
            "stations": [{"name": "trap-1", "lat": -43.5001, "lng": 172.6}, {"name": "trap-2", "lat": -43.5, "lng": 172.6}],
            "fromDate": "2024-03-02T12:00:00+13:00",
        },
        headers=auth(owner),
    )
    assert response.json()["recordingsUpdated"] == 0
