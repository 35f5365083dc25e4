import pytest
from aiohttp.test_utils import TestClient, TestServer

from deck_engine.healthcheck import HealthcheckService
from deck_engine.version import VERSION


@pytest.mark.asyncio
async def test_health_endpoint_reports_engine_state(make_engine, make_participant):
    engine = make_engine()
    engine.open_session("combat", [make_participant("hero")], seed=1)
    svc = HealthcheckService(engine, port=0)

    async with TestClient(TestServer(svc.make_app())) as client:
        resp = await client.get("/health")
        assert resp.status == 200
        data = await resp.json()

    assert data["engine"]["active_sessions"] == 1
    assert data["version"] == VERSION
    assert "database" not in data


def test_snapshot_includes_database_stats(make_engine, database_manager):
    engine = make_engine(database=database_manager)
    snapshot = HealthcheckService(engine).snapshot()
    assert snapshot["database"]["total_outcomes"] == 0


def test_sweep_expires_stale_sessions(make_engine, make_participant, clock):
    engine = make_engine()
    sid = engine.open_session("combat", [make_participant("hero")], seed=1, timeout=5)
    svc = HealthcheckService(engine)

    assert svc.sweep() == 0
    clock.advance(5)
    assert svc.sweep() == 1
    assert engine.get_outcome(sid).status == "timeout"
    assert svc.snapshot()["expired_last_sweep"] == 1
    assert svc.snapshot()["status"] == "ok"


def test_sweep_resolves_a_session_waiting_only_on_resolve(make_engine, make_participant, clock):
    engine = make_engine()
    sid = engine.open_session("combat", [make_participant("hero")], seed=1, timeout=5)
    engine.submit_decision(sid, "hero", [])
    clock.advance(5)

    assert HealthcheckService(engine).sweep() == 1
    assert engine.get_outcome(sid).status == "resolved"
    assert engine.stats()["outcomes_by_status"] == {"resolved": 1}
