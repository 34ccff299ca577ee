from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from canteen.main import app


def test_health_endpoint():
    """Health is reachable without credentials"""
    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_root_endpoint():
    client = TestClient(app)
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["message"] == "Server up!"


def test_protected_route_without_token_is_401():
    client = TestClient(app)
    response = client.get("/orders")

    assert response.status_code == 401
    body = response.json()
    assert body["status"] == "error"
    assert body["error"] == "missing or invalid auth header"
    assert body["request_id"]


def test_lifespan_runs_sweeper_between_db_init_and_close():
    sweeper = MagicMock()
    sweeper.stop = AsyncMock()

    with patch("canteen.main.init_db", AsyncMock()) as init_db, \
            patch("canteen.main.close_db", AsyncMock()) as close_db, \
            patch("canteen.main.HoldSweeper", return_value=sweeper) as sweeper_cls:
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            init_db.assert_awaited_once()
            sweeper.start.assert_called_once()
            sweeper.stop.assert_not_awaited()

        sweeper.stop.assert_awaited_once()
        close_db.assert_awaited_once()

    assert sweeper_cls.call_args.kwargs["interval_secs"] > 0
