"""
Tests for the HTTP API (lifespan not started; the engine is injected).
"""

import pytest
from fastapi.testclient import TestClient

from hydr8 import main
from hydr8.api import routes
from hydr8.config import HOST, PORT
from hydr8.main import create_app


@pytest.fixture
def client(engine):
    return TestClient(create_app(engine))


class TestWaterEndpoints:

    def test_log_water(self, client, engine):
        r = client.post("/api/water", json={"amount": 250})
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "ok"
        assert body["entry"]["amount"] == 250
        assert body["evaluation"]["trigger"] == "IntakeLogged"
        assert body["evaluation"]["recorded"] is True
        assert engine.water_log.total_last_24h() == 250

    def test_negative_amount_rejected(self, client, engine):
        r = client.post("/api/water", json={"amount": -100})
        assert r.status_code == 422
        assert engine.water_log.entries == []

    @pytest.mark.parametrize("raw", ['{"amount": 1e400}', '{"amount": NaN}'])
    def test_non_finite_amount_rejected(self, client, engine, raw):
        client.post("/api/water", json={"amount": 250})
        r = client.post("/api/water", content=raw, headers={"content-type": "application/json"})

        assert r.status_code == 422
        assert "input" not in r.json()["detail"][0]
        assert [e.amount for e in engine.water_log.entries] == [250]

    def test_water_summary(self, client):
        client.post("/api/water", json={"amount": 500})
        body = client.get("/api/water").json()
        assert body["last_24h_ml"] == 500
        assert body["weighted_exposure_ml"] == pytest.approx(250)
        assert len(body["segment_totals_ml"]) == 6
        assert body["daily"][0]["total"] == 500


class TestTriggerEndpoints:

    def test_signals(self, client):
        r = client.post("/api/signals", json={"heart_rate": 120, "step_count": 10000})
        assert r.status_code == 200
        body = r.json()
        assert body["trigger"] == "ExternalSignalUpdate"
        assert body["hr_index"] == pytest.approx(0.5)
        assert body["activity_index"] == pytest.approx(0.25)

    def test_non_finite_signal_rejected(self, client, engine):
        r = client.post("/api/signals", content='{"heart_rate": Infinity}',
                        headers={"content-type": "application/json"})
        assert r.status_code == 422
        assert engine.last_result is None

    def test_launch_and_tick(self, client):
        assert client.post("/api/launch").json()["trigger"] == "AppLaunch"
        assert client.post("/api/tick").json()["trigger"] == "PeriodicRefresh"

    def test_notification_action(self, client, engine):
        r = client.post("/api/notification/action", json={"action": "LOG_200"})
        assert r.json()["handled"] is True
        assert engine.water_log.total_last_24h() == 200

        r = client.post("/api/notification/action", json={"action": "LOG_much"})
        assert r.status_code == 422


class TestRiskEndpoints:

    def test_risk_before_any_evaluation_is_404(self, client, engine):
        assert client.get("/api/risk").status_code == 404
        assert engine.history.is_empty()

    def test_risk_returns_latest_evaluation(self, client, engine):
        client.post("/api/tick")
        body = client.get("/api/risk").json()
        assert body["risk"] == pytest.approx(0.6)
        assert set(body["breakdown"]) == {"water", "activity", "hr", "temp", "delta"}
        assert len(engine.history.entries) == 1

    def test_history_and_clear(self, client, engine):
        client.post("/api/water", json={"amount": 250})
        client.post("/api/water", json={"amount": 250})
        body = client.get("/api/risk/history").json()
        assert len(body["entries"]) == 2
        assert len(body["daily"]) == 1

        assert client.delete("/api/risk/history").json()["status"] == "ok"
        assert engine.history.is_empty()


class TestProfileEndpoints:

    def test_profile_lifecycle(self, client):
        assert client.get("/api/profile").status_code == 404
        assert client.get("/api/recommendation").json()["daily_ml"] == 2000

        r = client.put("/api/profile", json={"age": 30, "weight": 160, "sex": "Male", "location": "94103"})
        assert r.status_code == 200
        assert r.json()["sex"] == "male"

        rec = client.get("/api/recommendation").json()
        assert rec["daily_ml"] == pytest.approx(160 * 0.453592 * 35.0)
        assert rec["has_profile"] is True

    def test_invalid_profile(self, client):
        r = client.put("/api/profile", json={"age": -1, "weight": 160, "sex": "male"})
        assert r.status_code == 422


class TestDebugAndAuth:

    def test_debug_overrides(self, client):
        r = client.put("/api/debug/signals", json={"heart_rate": 180})
        assert r.json()["signals"]["heart_rate"] == 180
        assert client.post("/api/tick").json()["hr_index"] == 1.0

        client.delete("/api/debug/signals")
        assert client.post("/api/tick").json()["hr_index"] == 0.0

    def test_api_key_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(routes, "API_KEY", "secret")
        assert client.post("/api/tick").status_code == 401
        assert client.post("/api/tick", headers={"x-api-key": "secret"}).status_code == 200
        assert client.get("/api/status").status_code == 200


class TestServerEntryPoint:

    def test_run_serves_module_app(self, monkeypatch):
        calls = []
        monkeypatch.setattr(main.uvicorn, "run", lambda app, **kw: calls.append((app, kw)))
        main.run()
        assert calls == [(main.app, {"host": HOST, "port": PORT})]
