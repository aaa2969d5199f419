import pytest

from sensafe.models import UserPreferences


async def test_preferences_are_null_until_saved(client, parent):
    resp = await client.get("/user/preferences")

    assert resp.status_code == 200
    assert resp.json() == {"preferences": None}


async def test_patch_creates_then_merges(client, parent, count_rows):
    resp = await client.patch("/user/preferences", json={"fontSize": 18, "theme": "dark"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Preferences updated successfully"
    assert body["preferences"]["fontSize"] == 18
    assert body["preferences"]["theme"] == "dark"
    assert body["preferences"]["notificationsEnabled"] is True
    assert body["preferences"]["userId"] == parent["id"]

    resp = await client.patch("/user/preferences", json={"language": "pt-BR", "notificationsEnabled": False})
    assert resp.status_code == 200

    prefs = (await client.get("/user/preferences")).json()["preferences"]
    # 보내지 않은 필드는 그대로
    assert prefs["fontSize"] == 18
    assert prefs["theme"] == "dark"
    assert prefs["language"] == "pt-BR"
    assert prefs["notificationsEnabled"] is False
    assert await count_rows(UserPreferences) == 1


async def test_null_clears_a_value(client, parent):
    await client.patch("/user/preferences", json={"theme": "dark", "fontSize": 14})

    resp = await client.patch("/user/preferences", json={"theme": None})

    assert resp.status_code == 200
    assert resp.json()["preferences"]["theme"] is None
    assert resp.json()["preferences"]["fontSize"] == 14


@pytest.mark.parametrize("payload,field", [
    ({"fontSize": 7}, "fontSize"),
    ({"fontSize": 73}, "fontSize"),
    ({"fontSize": "18"}, "fontSize"),
    ({"batterySaverLevel": 4}, "batterySaverLevel"),
    ({"theme": ""}, "theme"),
    ({"theme": "x" * 21}, "theme"),
    ({"language": "e"}, "language"),
    ({"notificationsEnabled": "yes"}, "notificationsEnabled"),
    ({"notificationsEnabled": None}, "notificationsEnabled"),
    ({"favouriteColour": "blue"}, "favouriteColour"),
])
async def test_invalid_values_are_rejected(client, parent, count_rows, payload, field):
    resp = await client.patch("/user/preferences", json=payload)

    assert resp.status_code == 400
    assert field in resp.json()["errors"]
    assert await count_rows(UserPreferences) == 0


async def test_empty_patch_is_rejected(client, parent, count_rows):
    resp = await client.patch("/user/preferences", json={})

    assert resp.status_code == 400
    assert resp.json()["message"] == "No preference data provided."
    assert await count_rows(UserPreferences) == 0


async def test_preferences_require_a_session(client):
    assert (await client.get("/user/preferences")).status_code == 401
    assert (await client.patch("/user/preferences", json={"fontSize": 12})).status_code == 401


async def test_preferences_are_per_user(client, parent, patient):
    # 현재 쿠키는 마지막으로 가입한 환자 것
    await client.patch("/user/preferences", json={"fontSize": 30})

    resp = await client.post("/auth/login", json={"email": "parent@x.com", "password": "secret1"})
    assert resp.status_code == 200

    assert (await client.get("/user/preferences")).json() == {"preferences": None}
