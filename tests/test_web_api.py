"""
Tests for the HTTP API and the WebSocket event feed.
"""

import pytest
from aiohttp import WSCloseCode, WSMsgType
from aiohttp.test_utils import TestClient, TestServer

from dealbuster.components.web_api import BROADCASTER_KEY, create_app
from dealbuster.components.websocket_broadcaster import WebSocketBroadcaster
from dealbuster.models.config import OperatingMode


def deal_body(user_id, **overrides):
    body = {
        "title": "RTX 4080",
        "price": 650,
        "url": "https://example.com/rtx-4080",
        "submitted_by": user_id,
        "category": "Electronics",
    }
    body.update(overrides)
    return body


async def register(client, username):
    resp = await client.post("/api/users/register", json={"username": username})
    assert resp.status == 200
    return (await resp.json())["user"]


@pytest.fixture
def decentralized_app(make_service):
    return create_app(make_service(OperatingMode.DECENTRALIZED))


@pytest.fixture
def centralized_app(make_service):
    return create_app(make_service(OperatingMode.CENTRALIZED))


class TestUsersApi:
    """Test user endpoints."""

    @pytest.mark.asyncio
    async def test_register_and_fetch(self, centralized_app):
        async with TestClient(TestServer(centralized_app)) as client:
            user = await register(client, "alice")
            assert user["username"] == "alice"
            assert user["reputation_score"] == 100
            assert user["verifications_count"] == 0

            resp = await client.get(f"/api/users/{user['id']}")
            assert resp.status == 200
            assert (await resp.json())["verification_history"] == []

            resp = await client.get("/api/users")
            assert [u["id"] for u in await resp.json()] == [user["id"]]

    @pytest.mark.asyncio
    async def test_register_errors(self, centralized_app):
        async with TestClient(TestServer(centralized_app)) as client:
            await register(client, "alice")

            resp = await client.post("/api/users/register", json={"username": "alice"})
            assert resp.status == 409
            assert (await resp.json()) == {"error": "Username already exists"}

            resp = await client.post("/api/users/register", json={})
            assert resp.status == 400

            resp = await client.get("/api/users/missing")
            assert resp.status == 404

    @pytest.mark.asyncio
    async def test_malformed_body(self, centralized_app):
        async with TestClient(TestServer(centralized_app)) as client:
            resp = await client.post(
                "/api/users/register",
                data="{not json",
                headers={"Content-Type": "application/json"},
            )
            assert resp.status == 400

            resp = await client.post("/api/users/register", json=["alice"])
            assert resp.status == 400


class TestDealsApi:
    """Test deal endpoints."""

    @pytest.mark.asyncio
    async def test_submit_and_list(self, centralized_app):
        async with TestClient(TestServer(centralized_app)) as client:
            user = await register(client, "alice")

            resp = await client.post("/api/deals", json=deal_body(user["id"]))
            assert resp.status == 200
            deal = (await resp.json())["deal"]
            assert deal["status"] == "pending"
            assert deal["votes"] == 0

            resp = await client.get("/api/deals")
            assert [d["id"] for d in await resp.json()] == [deal["id"]]

            resp = await client.get(f"/api/deals/{deal['id']}")
            assert (await resp.json())["title"] == "RTX 4080"

    @pytest.mark.asyncio
    async def test_submit_validation(self, centralized_app):
        async with TestClient(TestServer(centralized_app)) as client:
            user = await register(client, "alice")

            resp = await client.post("/api/deals", json=deal_body(user["id"], price=-1))
            assert resp.status == 400

            resp = await client.post("/api/deals", json=deal_body(user["id"], title=None))
            assert resp.status == 400

            resp = await client.post("/api/deals", json=deal_body("ghost"))
            assert resp.status == 404

            resp = await client.get("/api/deals")
            assert await resp.json() == []

    @pytest.mark.asyncio
    async def test_vote(self, centralized_app):
        async with TestClient(TestServer(centralized_app)) as client:
            user = await register(client, "alice")
            resp = await client.post("/api/deals", json=deal_body(user["id"]))
            deal_id = (await resp.json())["deal"]["id"]

            resp = await client.post(f"/api/deals/{deal_id}/vote", json={"user_id": user["id"]})
            assert resp.status == 200
            assert (await resp.json())["deal"]["votes"] == 1

            resp = await client.post("/api/deals/missing/vote", json={"user_id": user["id"]})
            assert resp.status == 404

    @pytest.mark.asyncio
    async def test_verify_to_consensus(self, decentralized_app):
        async with TestClient(TestServer(decentralized_app)) as client:
            submitter = await register(client, "alice")
            resp = await client.post("/api/deals", json=deal_body(submitter["id"]))
            deal_id = (await resp.json())["deal"]["id"]

            statuses = []
            for name in ("u1", "u2", "u3"):
                verifier = await register(client, name)
                resp = await client.post(
                    f"/api/deals/{deal_id}/verify",
                    json={"user_id": verifier["id"], "verdict": "valid", "evidence": "ok"},
                )
                assert resp.status == 200
                data = await resp.json()
                assert data["verification"]["verdict"] == "valid"
                statuses.append(data["deal"]["status"])

            assert statuses == ["pending", "pending", "verified"]

            resp = await client.post(
                f"/api/deals/{deal_id}/verify",
                json={"user_id": verifier["id"], "verdict": "invalid"},
            )
            assert resp.status == 409

            resp = await client.post(
                f"/api/deals/{deal_id}/verify",
                json={"user_id": submitter["id"], "verdict": "maybe"},
            )
            assert resp.status == 400


class TestAlertsApi:
    """Test alert endpoints."""

    @pytest.mark.asyncio
    async def test_alert_lifecycle(self, centralized_app):
        async with TestClient(TestServer(centralized_app)) as client:
            user = await register(client, "alice")

            resp = await client.post(
                "/api/alerts",
                json={"user_id": user["id"], "keywords": "Laptop", "max_price": 500},
            )
            assert resp.status == 200
            alert = (await resp.json())["alert"]
            assert alert["keywords"] == "laptop"
            assert alert["min_verifications"] == 3

            resp = await client.get(f"/api/alerts/user/{user['id']}")
            assert [a["id"] for a in await resp.json()] == [alert["id"]]

            resp = await client.delete(f"/api/alerts/{alert['id']}")
            assert (await resp.json()) == {"success": True, "alert_id": alert["id"]}

            resp = await client.delete(f"/api/alerts/{alert['id']}")
            assert resp.status == 404

    @pytest.mark.asyncio
    async def test_missing_fields(self, centralized_app):
        async with TestClient(TestServer(centralized_app)) as client:
            resp = await client.post("/api/alerts", json={"keywords": "laptop"})
            assert resp.status == 400
            assert (await resp.json())["error"] == "Missing required fields"


class TestConfigApi:
    """Test configuration, stats and health endpoints."""

    @pytest.mark.asyncio
    async def test_switch_mode(self, centralized_app):
        async with TestClient(TestServer(centralized_app)) as client:
            resp = await client.get("/api/config")
            assert (await resp.json())["mode"] == "centralized"

            resp = await client.post("/api/config/mode", json={"mode": "decentralized"})
            assert resp.status == 200
            assert (await resp.json())["config"]["mode"] == "decentralized"

            resp = await client.post("/api/config/mode", json={"mode": "hybrid"})
            assert resp.status == 400

            resp = await client.get("/api/config")
            assert (await resp.json())["mode"] == "decentralized"

    @pytest.mark.asyncio
    async def test_stats_and_health(self, centralized_app):
        async with TestClient(TestServer(centralized_app)) as client:
            user = await register(client, "alice")
            await client.post("/api/deals", json=deal_body(user["id"]))

            resp = await client.get("/api/stats")
            stats = await resp.json()
            assert stats["total_deals"] == 1
            assert stats["pending_deals"] == 1
            assert stats["total_users"] == 1
            assert stats["average_promotion_time"] == 0.0

            resp = await client.get("/api/health")
            health = await resp.json()
            assert health["status"] == "ok"
            assert health["mode"] == "centralized"
            assert health["pending_promotion_checks"] == 1
            assert health["websocket_clients"] == 0


class TestWebSocketFeed:
    """Test the live event feed."""

    @pytest.mark.asyncio
    async def test_events_are_broadcast(self, decentralized_app):
        async with TestClient(TestServer(decentralized_app)) as client:
            user = await register(client, "alice")
            ws = await client.ws_connect("/ws")

            await client.post("/api/deals", json=deal_body(user["id"]))
            created = await ws.receive_json(timeout=2)
            assert created["type"] == "deal-created"
            assert created["deal"]["title"] == "RTX 4080"

            await client.post("/api/config/mode", json={"mode": "centralized"})
            updated = await ws.receive_json(timeout=2)
            assert updated["type"] == "config-updated"
            assert updated["config"]["mode"] == "centralized"

            await ws.close()

    @pytest.mark.asyncio
    async def test_every_client_receives_events(self, decentralized_app):
        async with TestClient(TestServer(decentralized_app)) as client:
            first = await client.ws_connect("/ws")
            second = await client.ws_connect("/ws")

            await client.post("/api/config/mode", json={"mode": "centralized"})

            for ws in (first, second):
                message = await ws.receive_json(timeout=2)
                assert message["type"] == "config-updated"
                await ws.close()

    @pytest.mark.asyncio
    async def test_slow_client_is_disconnected(self, make_service):
        service = make_service(OperatingMode.DECENTRALIZED)
        app = create_app(service, WebSocketBroadcaster(service.notifier, queue_size=1))

        async with TestClient(TestServer(app)) as client:
            ws = await client.ws_connect("/ws")

            # Published back to back, before the sender task gets a chance to drain
            for mode in ("centralized", "decentralized", "centralized"):
                service.set_mode(mode)

            msg = await ws.receive(timeout=2)
            while msg.type == WSMsgType.TEXT:
                msg = await ws.receive(timeout=2)

            assert msg.type in (WSMsgType.CLOSE, WSMsgType.CLOSED)
            assert ws.closed
            assert ws.close_code == WSCloseCode.TRY_AGAIN_LATER
            assert app[BROADCASTER_KEY].client_count == 0
