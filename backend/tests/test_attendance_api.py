"""
Tests for /api/v1/attendance – punch-in/out, early confirmation, remaining time,
history and error mapping.
"""
import asyncio
import uuid
from datetime import timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from shiftclock.core.security import create_access_token
from shiftclock.main import create_app
from tests.conftest import auth_headers, make_database

URL = "/api/v1/attendance"


async def punch_in(client, token, **payload):
    resp = await client.post(f"{URL}/punch-in", json=payload, headers=auth_headers(token))
    assert resp.status_code == 201, resp.text
    return resp.json()


# ── Auth ──────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_missing_token_rejected(client):
    resp = await client.get(URL)
    assert resp.status_code in (401, 403)


@pytest.mark.asyncio
async def test_invalid_token_rejected(client):
    resp = await client.get(URL, headers=auth_headers("not-a-jwt"))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_unknown_user_rejected(client):
    resp = await client.get(URL, headers=auth_headers(create_access_token(uuid.uuid4())))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_rejected(client, user):
    token = create_access_token(user.id, expires_delta=timedelta(minutes=-1))
    resp = await client.get(URL, headers=auth_headers(token))
    assert resp.status_code == 401


# ── POST /punch-in ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_punch_in(client, user, user_token):
    data = await punch_in(client, user_token)

    assert data["ownerId"] == str(user.id)
    assert data["status"] == "working"
    assert data["date"] == "2026-10-19"
    assert data["day"] == "Mon"
    assert data["punchIn"] == "09:00:00"
    assert data["punchOut"] is None
    assert data["duration"] is None
    assert data["isHalfDay"] is False
    assert data["lastReminderSentAt"] is None


@pytest.mark.asyncio
async def test_punch_in_half_day(client, user_token):
    data = await punch_in(client, user_token, isHalfDay=True)
    assert data["isHalfDay"] is True


@pytest.mark.asyncio
async def test_punch_in_twice_conflict(client, user_token, clock):
    await punch_in(client, user_token)
    clock.advance(minutes=10)

    resp = await client.post(f"{URL}/punch-in", json={}, headers=auth_headers(user_token))
    assert resp.status_code == 409
    assert resp.json()["error"] == "AlreadyOpenError"


# ── POST /punch-out ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_early_punch_out_needs_confirmation(client, user_token, clock):
    await punch_in(client, user_token)
    clock.advance(hours=2)

    resp = await client.post(f"{URL}/punch-out", json={}, headers=auth_headers(user_token))

    assert resp.status_code == 428
    detail = resp.json()["detail"]
    assert detail["remaining"] == "7h 30m"
    assert detail["remainingSeconds"] == 7 * 3600 + 30 * 60

    current = await client.get(f"{URL}/current", headers=auth_headers(user_token))
    assert current.json()["punchOut"] is None


@pytest.mark.asyncio
async def test_early_punch_out_confirmed(client, user_token, clock):
    await punch_in(client, user_token)
    clock.advance(hours=2)

    resp = await client.post(
        f"{URL}/punch-out", json={"confirmEarly": True}, headers=auth_headers(user_token)
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "A"
    assert data["duration"] == "2.00"
    assert data["punchOut"] == "11:00:00"


@pytest.mark.asyncio
async def test_full_shift_punch_out(client, user_token, clock):
    opened = await punch_in(client, user_token)
    clock.advance(hours=9, minutes=36)

    resp = await client.post(f"{URL}/punch-out", json={"id": opened["id"]}, headers=auth_headers(user_token))

    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == opened["id"]
    assert data["status"] == "OP"
    assert data["duration"] == "9.60"


@pytest.mark.asyncio
async def test_punch_out_without_open_shift(client, user_token):
    resp = await client.post(f"{URL}/punch-out", json={}, headers=auth_headers(user_token))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_punch_out_already_closed(client, user_token, clock):
    opened = await punch_in(client, user_token)
    clock.advance(hours=10)
    first = await client.post(f"{URL}/punch-out", json={}, headers=auth_headers(user_token))
    assert first.status_code == 200

    resp = await client.post(
        f"{URL}/punch-out", json={"id": opened["id"]}, headers=auth_headers(user_token)
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "AlreadyClosedError"


@pytest.mark.asyncio
async def test_punch_out_other_users_record(client, user_token, other_token, clock):
    theirs = await punch_in(client, other_token)
    clock.advance(hours=10)

    resp = await client.post(
        f"{URL}/punch-out",
        json={"id": theirs["id"], "confirmEarly": True},
        headers=auth_headers(user_token),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_punch_out_without_body(client, user_token, clock):
    await punch_in(client, user_token)
    clock.advance(hours=10)

    resp = await client.post(f"{URL}/punch-out", headers=auth_headers(user_token))

    assert resp.status_code == 200
    assert resp.json()["status"] == "OP"


@pytest.mark.asyncio
async def test_early_punch_out_without_body_needs_confirmation(client, user_token, clock):
    await punch_in(client, user_token)
    clock.advance(hours=1)

    resp = await client.post(f"{URL}/punch-out", headers=auth_headers(user_token))
    assert resp.status_code == 428


# ── GET /current, /remaining ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_current_shift(client, user_token):
    resp = await client.get(f"{URL}/current", headers=auth_headers(user_token))
    assert resp.status_code == 200
    assert resp.json() is None

    opened = await punch_in(client, user_token)
    resp = await client.get(f"{URL}/current", headers=auth_headers(user_token))
    assert resp.json()["id"] == opened["id"]


@pytest.mark.asyncio
async def test_remaining(client, user_token, clock):
    await punch_in(client, user_token, isHalfDay=True)
    clock.advance(hours=1, minutes=15)

    resp = await client.get(f"{URL}/remaining", headers=auth_headers(user_token))

    assert resp.status_code == 200
    assert resp.json() == {"remainingSeconds": 3 * 3600 + 30 * 60, "remaining": "3h 30m"}


@pytest.mark.asyncio
async def test_remaining_without_open_shift(client, user_token):
    resp = await client.get(f"{URL}/remaining", headers=auth_headers(user_token))
    assert resp.status_code == 404


# ── GET /attendance ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_history_newest_first_own_records_only(client, user, user_token, other_token, clock):
    for _ in range(2):
        await punch_in(client, user_token)
        await punch_in(client, other_token)
        clock.advance(hours=10)
        for token in (user_token, other_token):
            resp = await client.post(f"{URL}/punch-out", json={}, headers=auth_headers(token))
            assert resp.status_code == 200
        clock.advance(hours=14)

    resp = await client.get(URL, headers=auth_headers(user_token))

    assert resp.status_code == 200
    records = resp.json()
    assert [r["date"] for r in records] == ["2026-10-20", "2026-10-19"]
    assert records[0]["id"] > records[1]["id"]
    assert {r["ownerId"] for r in records} == {str(user.id)}


# ── Store outage / health ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_store_unavailable_is_503(test_settings, notifier, clock):
    app = create_app(test_settings, database=make_database(), notifier=notifier, clock=clock)
    token = create_access_token(uuid.uuid4())

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.post(f"{URL}/punch-in", json={}, headers=auth_headers(token))

    assert resp.status_code == 503
    assert resp.json()["error"] == "StoreUnavailableError"


@pytest.mark.asyncio
async def test_slow_user_lookup_is_503(monkeypatch, database, notifier, clock, test_settings, user_token):
    async def stalled_execute(self, *args, **kwargs):
        await asyncio.sleep(1)

    settings = test_settings.model_copy(update={"STORE_TIMEOUT_SECONDS": 0.05})
    app = create_app(settings, database=database, notifier=notifier, clock=clock)
    monkeypatch.setattr(AsyncSession, "execute", stalled_execute)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.get(URL, headers=auth_headers(user_token))

    assert resp.status_code == 503
    assert resp.json()["error"] == "StoreUnavailableError"


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
