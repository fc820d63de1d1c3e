"""
Tests for the HTTP API.

Tests:
- Battle lifecycle via REST
- Moves, history and difficulty changes
- Error codes and HTTP statuses
- Health reporting
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from ..config import Settings
from ..api import create_app
from ..api.service import BattleService, build_battle_service
from ..bots.service import MockOpponentConfig, MockOpponentService, ServiceType
from ..errors import ConfigurationError
from ..session import FallbackPolicy, SessionRegistry


def _make_service(primary=None, secondary=None, max_sessions=10) -> BattleService:
    primary = primary or MockOpponentService(MockOpponentConfig(response_time_ms=0))
    return BattleService(
        registry=SessionRegistry(max_sessions=max_sessions),
        fallback=FallbackPolicy(
            primary=primary,
            secondary=secondary,
            enable_fallback=secondary is not None,
            max_attempts=2,
            retry_delay_ms=0,
        ),
    )


@pytest.fixture
def service() -> BattleService:
    return _make_service()


@pytest.fixture
def client(service) -> TestClient:
    return TestClient(create_app(service=service, settings=Settings()))


def _create(client, **body) -> dict:
    response = client.post("/api/ai-battle", json=body)
    assert response.status_code == 201
    return response.json()


class TestBattleLifecycle:
    """Tests for creating, reading and deleting battles."""

    def test_create_battle(self, client):
        data = _create(client)

        assert data["current_player"] == "black"
        assert data["black_count"] == 2
        assert data["white_count"] == 2
        assert data["difficulty"] == "easy"
        assert data["status"] == "in_progress"
        assert data["ai_thinking"] is False
        assert data["move_count"] == 0
        assert data["board"][3][3] == "white"
        assert data["board"][0][0] is None
        assert {(m["row"], m["col"]) for m in data["valid_moves"]} == {(2, 3), (3, 2), (4, 5), (5, 4)}

    def test_create_without_body(self, client):
        response = client.post("/api/ai-battle")

        assert response.status_code == 201
        assert response.json()["difficulty"] == "easy"

    def test_create_with_difficulty(self, client):
        data = _create(client, difficulty="hard")

        assert data["difficulty"] == "hard"

    def test_get_battle(self, client):
        game_id = _create(client)["game_id"]

        response = client.get(f"/api/ai-battle/{game_id}")

        assert response.status_code == 200
        assert response.json()["game_id"] == game_id

    def test_get_unknown(self, client):
        response = client.get("/api/ai-battle/nonexistent-id")

        assert response.status_code == 404
        assert response.json()["error_code"] == "GAME_NOT_FOUND"

    def test_delete_battle(self, client):
        game_id = _create(client)["game_id"]

        assert client.delete(f"/api/ai-battle/{game_id}").status_code == 204
        assert client.get(f"/api/ai-battle/{game_id}").status_code == 404
        assert client.delete(f"/api/ai-battle/{game_id}").status_code == 404

    def test_list_sessions(self, client):
        first = _create(client)["game_id"]
        second = _create(client, difficulty="medium")["game_id"]

        data = client.get("/api/ai-battle/sessions").json()

        assert data["total"] == 2
        assert data["max_sessions"] == 10
        assert {s["game_id"] for s in data["sessions"]} == {first, second}

    def test_session_ceiling(self):
        client = TestClient(create_app(service=_make_service(max_sessions=1), settings=Settings()))
        _create(client)

        response = client.post("/api/ai-battle", json={})

        assert response.status_code == 429
        assert response.json()["error_code"] == "MAX_SESSIONS_REACHED"

    def test_difficulties(self, client):
        data = client.get("/api/ai-battle/difficulties").json()

        assert [d["level"] for d in data["difficulties"]] == ["easy", "medium", "hard"]
        assert all(d["description"] for d in data["difficulties"])


class TestMoves:
    """Tests for the move endpoint."""

    def test_move_and_reply(self, client):
        game_id = _create(client)["game_id"]

        response = client.post(f"/api/ai-battle/{game_id}/move", json={"row": 2, "col": 3})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["player_move"]["flipped"] == [{"row": 3, "col": 3}]
        assert len(data["ai_moves"]) == 1
        assert data["ai_moves"][0]["player"] == "white"
        assert data["game_state"]["current_player"] == "black"
        assert data["game_state"]["move_count"] == 2

    def test_invalid_move(self, client):
        game_id = _create(client)["game_id"]

        response = client.post(f"/api/ai-battle/{game_id}/move", json={"row": 0, "col": 0})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_MOVE"

    def test_invalid_position(self, client):
        game_id = _create(client)["game_id"]

        response = client.post(f"/api/ai-battle/{game_id}/move", json={"row": 9, "col": 2})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_POSITION"

    def test_malformed_body(self, client):
        game_id = _create(client)["game_id"]

        response = client.post(f"/api/ai-battle/{game_id}/move", json={"row": "a"})

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_busy(self, client, service):
        game_id = _create(client)["game_id"]
        service.registry.set_thinking(game_id, True)

        response = client.post(f"/api/ai-battle/{game_id}/move", json={"row": 2, "col": 3})

        assert response.status_code == 409
        assert response.json()["error_code"] == "OPPONENT_BUSY"

    def test_history(self, client):
        game_id = _create(client)["game_id"]
        client.post(f"/api/ai-battle/{game_id}/move", json={"row": 2, "col": 3})

        data = client.get(f"/api/ai-battle/{game_id}/history").json()

        assert data["total_moves"] == 2
        assert data["moves"][0]["player"] == "black"
        assert data["moves"][0]["thinking_time_ms"] is None
        assert data["moves"][1]["thinking_time_ms"] == 0

    def test_change_difficulty(self, client):
        game_id = _create(client)["game_id"]

        response = client.put(f"/api/ai-battle/{game_id}/difficulty", json={"difficulty": "medium"})

        assert response.status_code == 200
        assert response.json()["difficulty"] == "medium"

    def test_unknown_difficulty(self, client):
        game_id = _create(client)["game_id"]

        response = client.put(f"/api/ai-battle/{game_id}/difficulty", json={"difficulty": "insane"})

        assert response.status_code == 422


class TestAIFailure:
    """Tests for AI failures surfacing through the API."""

    def test_failure_keeps_human_move(self):
        primary = MockOpponentService(MockOpponentConfig(available=False))
        client = TestClient(create_app(service=_make_service(primary=primary), settings=Settings()))
        game_id = _create(client)["game_id"]

        response = client.post(f"/api/ai-battle/{game_id}/move", json={"row": 2, "col": 3})

        assert response.status_code == 500
        body = response.json()
        assert body["error_code"] == "AI_THINKING_ERROR"
        assert body["details"]["attempts"] == 2

        state = client.get(f"/api/ai-battle/{game_id}").json()
        assert state["move_count"] == 1
        assert state["current_player"] == "white"
        assert state["ai_thinking"] is False

        retry = client.post(f"/api/ai-battle/{game_id}/move", json={"row": 2, "col": 2})
        assert retry.status_code == 403
        assert retry.json()["error_code"] == "NOT_PLAYER_TURN"

        primary.config.available = True
        primary.config.response_time_ms = 0
        resumed = client.post(f"/api/ai-battle/{game_id}/ai-move")
        assert resumed.status_code == 200
        assert resumed.json()["game_state"]["current_player"] == "black"


class TestHealth:
    """Tests for health and root endpoints."""

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["service"] == "reversi-arena"
        assert data["opponent"]["name"] == "Mock AI"
        assert data["fallback"] is None
        assert data["sessions"]["total_sessions"] == 0

    def test_health_degraded(self):
        primary = MockOpponentService(MockOpponentConfig(available=False))
        client = TestClient(create_app(service=_make_service(primary=primary), settings=Settings()))

        assert client.get("/health").json()["status"] == "degraded"

    def test_root(self, client):
        data = client.get("/").json()

        assert data["name"] == "Reversi Arena API"
        assert data["health"] == "/health"

    def test_lifespan_runs_sweeper(self, service):
        """The app starts and stops cleanly with the sweeper task."""
        with TestClient(create_app(service=service, settings=Settings())) as client:
            assert client.get("/health").status_code == 200


class TestBuildService:
    """Tests for wiring from settings."""

    def test_defaults(self):
        service = build_battle_service(Settings())

        assert service.fallback.primary.name == "Local AI"
        assert service.fallback.secondary is not None
        assert service.registry.max_sessions == 100
        assert service.registry.session_timeout_seconds == 30 * 60

    def test_mock_primary(self):
        settings = Settings()
        settings.opponent.service_type = ServiceType.MOCK
        settings.fallback.enable_fallback = False

        service = build_battle_service(settings)

        assert isinstance(service.fallback.primary, MockOpponentService)
        assert service.fallback.secondary is None

    def test_http_rejected(self):
        settings = Settings()
        settings.opponent.service_type = ServiceType.HTTP

        with pytest.raises(ConfigurationError):
            build_battle_service(settings)

    def test_switch_opponent(self, service):
        replacement = MockOpponentService(MockOpponentConfig(response_time_ms=0))
        asyncio.run(service.switch_opponent(replacement))

        assert service.fallback.primary is replacement
