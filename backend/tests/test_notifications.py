"""Tests for notification inbox, live hub and warehouse endpoints."""

import json

import pytest
from fastapi.testclient import TestClient
from httpx import AsyncClient

from app.main import app
from app.services.notifications import NotificationHub, hub

BASE = "/api/notifications"


async def _create_reposition(client: AsyncClient, headers: dict, payload: dict) -> dict:
    response = await client.post(
        "/api/repositions/",
        data={"reposition_data": json.dumps(payload)},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


class _FakeSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


@pytest.mark.unit
@pytest.mark.asyncio
class TestHub:

    async def test_broadcast_reaches_every_client(self):
        local = NotificationHub()
        first, second = _FakeSocket(), _FakeSocket()
        local._clients.update({first, second})

        await local.broadcast({"type": "notification", "data": {"id": "n-1"}})

        assert first.sent == second.sent == [{"type": "notification", "data": {"id": "n-1"}}]

    async def test_broadcast_drops_dead_clients(self):
        local = NotificationHub()
        alive, dead = _FakeSocket(), _FakeSocket(fail=True)
        local._clients.update({alive, dead})

        await local.publish({"type": "ping"})

        assert local.client_count == 1
        assert alive.sent == [{"type": "ping"}]


@pytest.mark.api
@pytest.mark.asyncio
class TestInbox:

    async def test_creation_notifies_approvers(
        self, client: AsyncClient, patronaje_headers, admin_headers, make_payload
    ):
        created = await _create_reposition(client, patronaje_headers, make_payload())

        inbox = await client.get(f"{BASE}/", headers=admin_headers)
        assert inbox.status_code == 200
        [notification] = inbox.json()
        assert notification["type"] == "new_reposition"
        assert notification["reposition_id"] == created["id"]
        assert notification["read"] is False
        assert created["folio"] in notification["message"]

        requester_inbox = await client.get(f"{BASE}/", headers=patronaje_headers)
        assert requester_inbox.json() == []

    async def test_mark_read(
        self, client: AsyncClient, patronaje_headers, admin_headers, make_payload
    ):
        await _create_reposition(client, patronaje_headers, make_payload())
        unread = await client.get(f"{BASE}/repositions", headers=admin_headers)
        notification_id = unread.json()[0]["id"]

        marked = await client.post(f"{BASE}/{notification_id}/read", headers=admin_headers)
        assert marked.status_code == 200
        assert marked.json()["read"] is True

        unread = await client.get(f"{BASE}/repositions", headers=admin_headers)
        assert unread.json() == []

    async def test_cannot_mark_someone_elses(
        self, client: AsyncClient, patronaje_headers, admin_headers, make_payload
    ):
        await _create_reposition(client, patronaje_headers, make_payload())
        notification_id = (await client.get(f"{BASE}/", headers=admin_headers)).json()[0]["id"]

        response = await client.post(f"{BASE}/{notification_id}/read", headers=patronaje_headers)
        assert response.status_code == 404

    async def test_approval_notifies_requester(
        self, client: AsyncClient, patronaje_headers, admin_headers, make_payload
    ):
        created = await _create_reposition(client, patronaje_headers, make_payload())
        await client.post(
            f"/api/repositions/{created['id']}/approval",
            json={"action": "rechazado", "notes": "Sin justificación"},
            headers=admin_headers,
        )

        inbox = await client.get(f"{BASE}/repositions", headers=patronaje_headers)
        [notification] = inbox.json()
        assert notification["type"] == "reposition_rejected"
        assert "Sin justificación" in notification["message"]


@pytest.mark.api
@pytest.mark.asyncio
class TestWarehouseEndpoints:

    async def test_pause_resume_and_listing(
        self, client: AsyncClient, patronaje_headers, almacen_headers, make_payload
    ):
        created = await _create_reposition(client, patronaje_headers, make_payload())
        url = f"/api/almacen/repositions/{created['id']}"

        paused = await client.post(
            f"{url}/pause", json={"reason": "Falta tela"}, headers=almacen_headers
        )
        assert paused.status_code == 200
        assert paused.json()["is_paused"] is True

        listing = await client.get("/api/almacen/repositions", headers=almacen_headers)
        [row] = listing.json()
        assert row["is_paused"] is True
        assert row["pause_reason"] == "Falta tela"

        resumed = await client.post(f"{url}/resume", headers=almacen_headers)
        assert resumed.json()["is_paused"] is False

        materials = await client.put(
            f"{url}/materials",
            json={"material_status": "parcial", "missing_materials": "Cierres"},
            headers=almacen_headers,
        )
        assert materials.status_code == 200
        assert materials.json()["material_status"] == "parcial"

        material = await client.get(
            f"/api/repositions/{created['id']}/material", headers=patronaje_headers
        )
        assert material.json()["missing_materials"] == "Cierres"

    async def test_resume_is_pushed_to_live_clients(
        self, client: AsyncClient, patronaje_headers, almacen_headers, admin_user,
        make_payload, monkeypatch,
    ):
        created = await _create_reposition(client, patronaje_headers, make_payload())
        url = f"/api/almacen/repositions/{created['id']}"
        await client.post(f"{url}/pause", json={"reason": "Falta tela"}, headers=almacen_headers)

        published = []

        async def _capture(message):
            published.append(message)

        monkeypatch.setattr(hub, "publish", _capture)
        resumed = await client.post(f"{url}/resume", headers=almacen_headers)

        assert resumed.status_code == 200
        [message] = published
        assert message["type"] == "notification"
        assert message["data"]["type"] == "reposition_resumed"
        assert message["data"]["user_id"] == admin_user.id
        assert message["data"]["reposition_id"] == created["id"]

    async def test_warehouse_is_restricted(self, client: AsyncClient, patronaje_headers):
        response = await client.get("/api/almacen/repositions", headers=patronaje_headers)
        assert response.status_code == 403


@pytest.mark.api
class TestWebSocket:

    def test_client_messages_are_relayed_as_notifications(self):
        with TestClient(app) as test_client:
            with test_client.websocket_connect("/ws") as websocket:
                hello = websocket.receive_json()
                assert hello["type"] == "connection"

                websocket.send_text("not json")
                websocket.send_json({"type": "reposition_updated", "id": 1})
                assert websocket.receive_json() == {
                    "type": "notification",
                    "data": {"type": "reposition_updated", "id": 1},
                }
