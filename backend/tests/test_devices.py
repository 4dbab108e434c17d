import json

from sqlalchemy import func, select

from cacophony_api.models.device import Device, DeviceUsers
from cacophony_api.models.user import GlobalPermission
from cacophony_api.services import devices as device_service

from conftest import PASSWORD, auth


async def test_register_device(client, make_user, make_group):
    owner = await make_user("owner")
    await make_group(owner, "kiwi-watch")

    response = await client.post(
        "/api/v1/devices",
        json={"devicename": "trap-cam-1", "password": PASSWORD, "group": "kiwi-watch"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["messages"] == ["Created new device."]
    assert body["id"]
    assert body["token"].startswith("JWT ")

    response = await client.post(
        "/authenticate_device",
        json={"devicename": "trap-cam-1", "password": PASSWORD, "groupname": "kiwi-watch"},
    )
    assert response.status_code == 200
    assert response.json()["id"] == body["id"]


async def test_register_duplicate_name_creates_nothing(client, db, make_user, make_group, make_device):
    owner = await make_user("owner")
    kiwi = await make_group(owner, "kiwi-watch")
    await make_group(owner, "stoat-patrol")
    await make_device(kiwi, "trap-cam-1")

    response = await client.post(
        "/api/v1/devices",
        json={"devicename": "trap-cam-1", "password": PASSWORD, "group": "stoat-patrol"},
    )
    assert response.status_code == 422
    assert response.json()["messages"] == ["Device name in use."]

    count = await db.scalar(select(func.count()).select_from(Device).where(Device.devicename == "trap-cam-1"))
    assert count == 1


async def test_register_into_missing_group(client):
    response = await client.post(
        "/api/v1/devices",
        json={"devicename": "trap-cam-1", "password": PASSWORD, "group": "nowhere"},
    )
    assert response.status_code == 422


async def test_register_short_password(client, make_user, make_group):
    owner = await make_user("owner")
    await make_group(owner, "kiwi-watch")

    response = await client.post(
        "/api/v1/devices",
        json={"devicename": "trap-cam-1", "password": "short", "group": "kiwi-watch"},
    )
    assert response.status_code == 422


async def test_reregister_keeps_device_id(client, db, make_user, make_group, make_device):
    owner = await make_user("owner")
    kiwi = await make_group(owner, "kiwi-watch")
    stoat = await make_group(owner, "stoat-patrol")
    device = await make_device(kiwi, "trap-cam-1")

    response = await client.post(
        "/api/v1/devices/reregister",
        json={"newName": "trap-cam-2", "newGroup": "stoat-patrol", "newPassword": "another-password"},
        headers=auth(device),
    )
    assert response.status_code == 200
    assert response.json()["id"] == device.id

    await db.refresh(device)
    assert device.devicename == "trap-cam-2"
    assert device.group_id == stoat.id
    assert await device_service.free_devicename(db, "trap-cam-1")

    response = await client.post(
        "/authenticate_device",
        json={"devicename": "trap-cam-2", "password": "another-password"},
    )
    assert response.status_code == 200


async def test_reregistered_name_can_be_taken_again(client, make_user, make_group, make_device):
    owner = await make_user("owner")
    kiwi = await make_group(owner, "kiwi-watch")
    device = await make_device(kiwi, "trap-cam-1")

    response = await client.post(
        "/api/v1/devices/reregister",
        json={"newName": "trap-cam-2", "newGroup": "kiwi-watch", "newPassword": "another-password"},
        headers=auth(device),
    )
    assert response.status_code == 200

    response = await client.post(
        "/api/v1/devices",
        json={"devicename": "trap-cam-1", "password": PASSWORD, "group": "kiwi-watch"},
    )
    assert response.status_code == 200
    new_id = response.json()["id"]
    assert new_id != device.id

    response = await client.post("/authenticate_device", json={"devicename": "trap-cam-1", "password": PASSWORD})
    assert response.json()["id"] == new_id

    response = await client.get("/api/v1/devices", headers=auth(owner))
    rows = response.json()["devices"]["rows"]
    assert [(d["id"], d["devicename"]) for d in rows] == [(device.id, "trap-cam-2"), (new_id, "trap-cam-1")]
    assert "active" not in rows[0]


async def test_reregister_requires_device_token(client, make_user, make_group):
    owner = await make_user("owner")
    await make_group(owner, "kiwi-watch")

    response = await client.post(
        "/api/v1/devices/reregister",
        json={"newName": "trap-cam-2", "newGroup": "kiwi-watch", "newPassword": "another-password"},
        headers=auth(owner),
    )
    assert response.status_code == 401


async def test_reregister_to_taken_name(client, make_user, make_group, make_device):
    owner = await make_user("owner")
    kiwi = await make_group(owner, "kiwi-watch")
    device = await make_device(kiwi, "trap-cam-1")
    await make_device(kiwi, "trap-cam-2")

    response = await client.post(
        "/api/v1/devices/reregister",
        json={"newName": "trap-cam-2", "newGroup": "kiwi-watch", "newPassword": "another-password"},
        headers=auth(device),
    )
    assert response.status_code == 422


async def test_list_devices_visibility(client, db, make_user, make_group, make_device):
    owner = await make_user("owner")
    outsider = await make_user("outsider")
    direct = await make_user("direct")
    reader = await make_user("reader", GlobalPermission.READ)
    kiwi = await make_group(owner, "kiwi-watch")
    first = await make_device(kiwi, "trap-cam-1")
    await make_device(kiwi, "trap-cam-2")
    db.add(DeviceUsers(device_id=first.id, user_id=direct.id, admin=False))
    await db.commit()

    response = await client.get("/api/v1/devices", headers=auth(owner))
    assert response.status_code == 200
    devices = response.json()["devices"]
    assert devices["count"] == 2
    assert devices["rows"][0]["groupname"] == "kiwi-watch"

    response = await client.get("/api/v1/devices", headers=auth(direct))
    rows = response.json()["devices"]["rows"]
    assert [d["devicename"] for d in rows] == ["trap-cam-1"]
    assert rows[0]["users"] == [{"id": direct.id, "username": "direct", "admin": False}]

    response = await client.get("/api/v1/devices", headers=auth(outsider))
    assert response.json()["devices"] == {"count": 0, "rows": []}

    response = await client.get("/api/v1/devices", headers=auth(reader))
    assert response.json()["devices"]["count"] == 2


async def test_device_users(client, db, make_user, make_group, make_device):
    owner = await make_user("owner")
    helper = await make_user("helper")
    await make_user("newcomer")
    kiwi = await make_group(owner, "kiwi-watch")
    device = await make_device(kiwi, "trap-cam-1")
    db.add(DeviceUsers(device_id=device.id, user_id=helper.id, admin=False))
    await db.commit()

    response = await client.get("/api/v1/devices/users", params={"deviceId": device.id}, headers=auth(owner))
    assert response.status_code == 200
    relations = {u["username"]: (u["relation"], u["admin"]) for u in response.json()["rows"]}
    assert relations == {"helper": ("device", False), "owner": ("group", True)}

    # A plain device user can see the device but not manage it
    response = await client.get("/api/v1/devices/users", params={"deviceId": device.id}, headers=auth(helper))
    assert response.status_code == 403
    response = await client.post(
        "/api/v1/devices/users",
        json={"deviceId": device.id, "username": "newcomer", "admin": False},
        headers=auth(helper),
    )
    assert response.status_code == 403

    response = await client.post(
        "/api/v1/devices/users",
        json={"deviceId": device.id, "username": "newcomer", "admin": True},
        headers=auth(owner),
    )
    assert response.status_code == 200

    response = await client.request(
        "DELETE",
        "/api/v1/devices/users",
        json={"deviceId": device.id, "username": "newcomer"},
        headers=auth(owner),
    )
    assert response.status_code == 200

    response = await client.request(
        "DELETE",
        "/api/v1/devices/users",
        json={"deviceId": device.id, "username": "newcomer"},
        headers=auth(owner),
    )
    assert response.status_code == 400
    assert response.json()["messages"] == ["Failed to remove user from the device."]


async def test_device_users_of_invisible_device(client, make_user, make_group, make_device):
    owner = await make_user("owner")
    outsider = await make_user("outsider")
    kiwi = await make_group(owner, "kiwi-watch")
    device = await make_device(kiwi, "trap-cam-1")

    response = await client.get("/api/v1/devices/users", params={"deviceId": device.id}, headers=auth(outsider))
    assert response.status_code == 404

    response = await client.post(
        "/api/v1/devices/users",
        json={"deviceId": device.id, "username": "outsider", "admin": True},
        headers=auth(outsider),
    )
    assert response.status_code == 404
    assert response.json()["statusCode"] == 404

    response = await client.request(
        "DELETE",
        "/api/v1/devices/users",
        json={"deviceId": device.id, "username": "owner"},
        headers=auth(outsider),
    )
    assert response.status_code == 404

    # Same answer as for a device that does not exist
    response = await client.post(
        "/api/v1/devices/users",
        json={"deviceId": 9999, "username": "outsider", "admin": True},
        headers=auth(outsider),
    )
    assert response.status_code == 404


async def test_query_devices(client, make_user, make_group, make_device):
    owner = await make_user("owner")
    kiwi = await make_group(owner, "kiwi-watch")
    stoat = await make_group(owner, "stoat-patrol")
    cam = await make_device(kiwi, "trap-cam-1")
    recorder = await make_device(stoat, "audio-1")

    params = {"devices": json.dumps([{"devicename": "trap-cam-1", "groupname": "kiwi-watch"}])}
    response = await client.get("/api/v1/devices/query", params=params, headers=auth(owner))
    assert response.status_code == 200
    body = response.json()
    assert [d["id"] for d in body["devices"]] == [cam.id]
    assert body["nameMatches"] == []

    # Right name, wrong group: reported as a name match only
    params = {"devices": json.dumps([{"devicename": "trap-cam-1", "groupname": "stoat-patrol"}])}
    body = (await client.get("/api/v1/devices/query", params=params, headers=auth(owner))).json()
    assert body["devices"] == []
    assert body["nameMatches"] == [{"id": cam.id, "devicename": "trap-cam-1", "groupname": "kiwi-watch"}]

    params = {
        "devices": json.dumps([{"devicename": "trap-cam-1", "groupname": "kiwi-watch"}]),
        "groups": json.dumps(["stoat-patrol"]),
    }
    body = (await client.get("/api/v1/devices/query", params=params, headers=auth(owner))).json()
    assert sorted(d["id"] for d in body["devices"]) == sorted([cam.id, recorder.id])

    body = (await client.get(
        "/api/v1/devices/query", params={**params, "operator": "and"}, headers=auth(owner)
    )).json()
    assert body["devices"] == []


async def test_query_devices_bad_input(client, make_user):
    user = await make_user("owner")

    response = await client.get("/api/v1/devices/query", headers=auth(user))
    assert response.status_code == 422

    response = await client.get("/api/v1/devices/query", params={"groups": "[not json"}, headers=auth(user))
    assert response.status_code == 422

    response = await client.get(
        "/api/v1/devices/query",
        params={"groups": json.dumps(["kiwi-watch"]), "operator": "xor"},
        headers=auth(user),
    )
    assert response.status_code == 422
