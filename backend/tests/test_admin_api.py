"""Admin and feed HTTP surface: triggers, operator summaries, single-flight sweeps and status."""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from feed_service.api.routes import admin as admin_routes
from feed_service.db.session import get_db
from feed_service.main import app
from feed_service.services import admin_service
from feed_service.services.regeneration.jobs import RegenerationResult


@pytest.fixture
def client(session_factory, orchestrator):
    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[admin_routes.get_orchestrator] = lambda: orchestrator
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def items(make_item):
    for item_id in range(1, 6):
        make_item(item_id)


def test_refresh_user_clears_and_regenerates(client, items, make_cache_row, cache_rows):
    make_cache_row("u1", 5, 0.1)

    r = client.post("/admin/cache/users/u1/refresh")

    assert r.status_code == 200
    body = r.json()
    assert body["trigger"] == "manual"
    assert body["succeeded"] == 1
    assert body["cache_items"] == 3
    assert body["errors"] == []
    assert body["message"] == "Regenerated 1 user(s)"
    assert [row[1] for row in cache_rows("u1")] == [1, 2, 3]


def test_refresh_stale_shows_first_ten_errors(client, fake_scorer, make_user):
    for i in range(12):
        user_id = f"s{i:02d}"
        make_user(user_id)
        fake_scorer.fail_for[user_id] = "scorer down"

    r = client.post("/admin/cache/refresh-stale", params={"min_valid_rows": 5, "batch_limit": 50})

    assert r.status_code == 200
    body = r.json()
    assert body["trigger"] == "smart-targeted"
    assert body["total_users"] == 12
    assert body["succeeded"] == 0
    assert body["error_count"] == 12
    assert len(body["errors"]) == 10
    assert body["message"] == "Regenerated 0 of 12 user(s); 12 failed"


def test_refresh_stale_with_nothing_to_do(client, fake_scorer):
    r = client.post("/admin/cache/refresh-stale")
    assert r.status_code == 200
    assert r.json()["message"] == "No users needed regeneration"
    assert fake_scorer.calls == []


def test_refresh_stale_batch_limit_is_capped(client):
    r = client.post("/admin/cache/refresh-stale", params={"batch_limit": 51})
    assert r.status_code == 422


def test_refresh_all_and_force(client, fake_scorer, items, make_user):
    make_user("a")
    make_user("b")

    r = client.post("/admin/cache/refresh-all")
    assert r.status_code == 200
    assert r.json()["succeeded"] == 2

    r = client.post("/admin/cache/force-refresh-all")
    assert r.status_code == 200
    assert r.json()["trigger"] == "forced"
    assert all(req.force_regeneration for req in fake_scorer.requests[2:])


def test_second_sweep_is_rejected_while_one_runs(client, fake_scorer, items, make_user):
    make_user("a")
    assert admin_service._sweep_lock.acquire(blocking=False)
    try:
        assert client.post("/admin/cache/refresh-all").status_code == 409
        assert client.post("/admin/cache/refresh-stale").status_code == 409
        assert client.post("/admin/cache/force-refresh-all").status_code == 409
        assert client.get("/admin/cache/status").json()["sweep_running"] is True
        # Single-user refresh is not a sweep
        assert client.post("/admin/cache/users/a/refresh").status_code == 200
    finally:
        admin_service._sweep_lock.release()
    assert fake_scorer.calls == ["a"]


def test_stale_users_preview(client, make_user):
    make_user("u2")
    make_user("u1")
    make_user("no-topics", topics=())

    r = client.get("/admin/cache/stale-users")

    assert r.status_code == 200
    assert r.json() == {"user_ids": ["u1", "u2"], "count": 2, "min_valid_rows": 5}


def test_user_cache_status(client, now, items, make_cache_row):
    make_cache_row("u1", 1, 1.0)
    make_cache_row("u1", 2, 1.0, expires_at=now - timedelta(minutes=5))

    body = client.get("/admin/cache/users/u1").json()
    assert body == {"user_id": "u1", "valid_rows": 1, "needs_regeneration": True}


def test_status_reports_last_run_and_config(client, items, make_user):
    make_user("a")
    client.post("/admin/cache/refresh-all")

    body = client.get("/admin/cache/status").json()
    assert body["state"] == "done"
    assert body["trigger"] == "scheduled"
    assert body["sweep_running"] is False
    assert body["last_result"]["succeeded"] == 1
    assert body["config"]["batch_size"] == 5
    assert body["config"]["min_valid_rows"] == 5


def test_purge_expired(client, now, items, make_cache_row, cache_rows):
    make_cache_row("u1", 1, 1.0, expires_at=now - timedelta(hours=1))
    make_cache_row("u2", 2, 1.0, expires_at=now - timedelta(days=2))
    make_cache_row("u1", 3, 1.0)

    r = client.post("/admin/cache/purge-expired")

    assert r.status_code == 200
    assert r.json()["deleted"] == 2
    assert [row[:2] for row in cache_rows()] == [("u1", 3)]


def test_feed_route_pages(client, items, make_cache_row):
    for item_id in range(1, 6):
        make_cache_row("u1", item_id, float(item_id))

    first = client.get("/feed/u1", params={"limit": 3}).json()
    assert [i["id"] for i in first["items"]] == [5, 4, 3]
    assert first["next_cursor"]

    second = client.get("/feed/u1", params={"limit": 3, "cursor": first["next_cursor"]}).json()
    assert [i["id"] for i in second["items"]] == [2, 1]
    assert second["next_cursor"] is None


def test_feed_route_rejects_bad_limit(client):
    assert client.get("/feed/u1", params={"limit": 0}).status_code == 422
    assert client.get("/feed/u1", params={"limit": 101}).status_code == 422


def test_feed_route_storage_failure_is_503(client, engine):
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE user_feed_cache")
    r = client.get("/feed/u1")
    assert r.status_code == 503


def test_summarize_messages():
    assert admin_service.summarize(RegenerationResult(trigger="scheduled"))["message"] == (
        "No users needed regeneration"
    )
    ok = RegenerationResult(trigger="scheduled", total_users=3, processed=3, succeeded=3, cache_items=9)
    assert admin_service.summarize(ok)["message"] == "Regenerated 3 user(s)"
    failed_selection = RegenerationResult(trigger="forced", errors=["selection: db down"])
    assert admin_service.summarize(failed_selection)["message"] == "Regenerated 0 of 0 user(s); 1 failed"


def test_refresh_user_runs_on_complete(orchestrator, items):
    seen = []
    result = admin_service.refresh_user("u9", orchestrator=orchestrator, on_complete=seen.append)
    assert seen == [result]
    assert result.succeeded == 1
