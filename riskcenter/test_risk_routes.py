from dataclasses import replace

import pytest

from riskcenter.app import create_app
from riskcenter.config import APP_CONFIG
from riskcenter.conftest import FakeGenerationClient, ImmediateExecutor
from riskcenter.factories import SessionFactory, SessionRegistry
from riskcenter.risk_agent.scheduler import ManualScheduler
from riskcenter.risk_agent.session_controller import SessionState


def _config(tmp_path, seed=False):
    store = replace(APP_CONFIG.store, backend="json", json_path=str(tmp_path / "archive.jsonl"), seed_scenarios=seed)
    return replace(APP_CONFIG, store=store, log_file=None)


@pytest.fixture
def generation(document):
    return FakeGenerationClient(document)


@pytest.fixture
def app(tmp_path, json_store, generation, scheduler, corpus):
    return create_app(
        _config(tmp_path),
        store=json_store,
        generation_client=generation,
        scheduler=scheduler,
        executor=ImmediateExecutor(),
        corpus=corpus,
    )


@pytest.fixture
def client(app):
    return app.test_client()


def _new_session(client):
    response = client.post("/api/risk/sessions", json={"user_id": "admin-1"})
    assert response.status_code == 201
    return response.get_json()["session_id"]


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok", "sessions": 0}


def test_submit_and_view_report(client):
    sid = _new_session(client)

    response = client.post(f"/api/risk/sessions/{sid}/submit", json={"issue": "Parent complaint"})

    assert response.status_code == 202
    assert response.get_json()["token"] == 1

    view = client.get(f"/api/risk/sessions/{sid}").get_json()
    assert view["state"] == "complete"
    assert [s["index"] for s in view["steps"]] == [1, 2, 3, 4, 5, 6]
    assert all(s["reveal"] == "closed" and s["display"] is None for s in view["steps"])


def test_blank_submit_is_400(client, generation):
    sid = _new_session(client)

    response = client.post(f"/api/risk/sessions/{sid}/submit", json={"issue": "   "})

    assert response.status_code == 400
    assert response.get_json() == {
        "error": "Please describe the issue before generating a report.",
        "kind": "input",
    }
    assert generation.calls == []


@pytest.mark.parametrize("body", [[], ["issue"], "Parent complaint", 5])
def test_non_object_submit_body_is_400(client, generation, body):
    sid = _new_session(client)

    response = client.post(f"/api/risk/sessions/{sid}/submit", json=body)

    assert response.status_code == 400
    assert response.get_json() == {"error": "The request body must be a JSON object.", "kind": "input"}
    assert generation.calls == []


def test_non_string_issue_is_400(client, generation):
    sid = _new_session(client)

    response = client.post(f"/api/risk/sessions/{sid}/submit", json={"issue": ["Parent complaint"]})

    assert response.status_code == 400
    assert response.get_json()["kind"] == "input"
    assert generation.calls == []


def test_non_object_create_body_is_400(client):
    response = client.post("/api/risk/sessions", json=["admin-1"])

    assert response.status_code == 400
    assert client.get("/health").get_json()["sessions"] == 0


def test_unknown_session_is_404(client):
    response = client.get("/api/risk/sessions/nope")

    assert response.status_code == 404
    assert response.get_json()["kind"] == "not_found"


def test_failed_generation_shows_error_step(client, generation):
    generation.responses = ["not json"]
    sid = _new_session(client)
    client.post(f"/api/risk/sessions/{sid}/submit", json={"issue": "issue"})

    view = client.get(f"/api/risk/sessions/{sid}").get_json()

    assert view["state"] == "failed"
    assert view["error"]["kind"] == "parse"
    assert len(view["steps"]) == 1
    assert view["steps"][0]["display"]["kind"] == "message"


def test_toggle_step_reveals_after_delay(client, scheduler):
    sid = _new_session(client)
    client.post(f"/api/risk/sessions/{sid}/submit", json={"issue": "issue"})

    response = client.post(f"/api/risk/sessions/{sid}/steps/4/toggle")
    assert response.get_json() == {"index": 4, "reveal": "pending"}

    scheduler.advance(APP_CONFIG.session.reveal_delay_s)
    steps = client.get(f"/api/risk/sessions/{sid}").get_json()["steps"]
    assert steps[3]["reveal"] == "open"
    assert [c["kind"] for c in steps[3]["display"]["children"]] == ["collapsible"] * 3

    assert client.post(f"/api/risk/sessions/{sid}/steps/9/toggle").status_code == 404


def test_scenario_endpoint_opens_all_steps(client):
    sid = _new_session(client)

    response = client.post(f"/api/risk/sessions/{sid}/scenarios/facultyLeave")

    view = response.get_json()
    assert response.status_code == 200
    assert view["state"] == "demo_complete"
    assert all(s["reveal"] == "open" for s in view["steps"])
    assert client.post(f"/api/risk/sessions/{sid}/scenarios/missing").status_code == 404


def test_archive_conflict_then_created(client):
    sid = _new_session(client)

    conflict = client.post(f"/api/risk/sessions/{sid}/archive")
    assert conflict.status_code == 409
    assert conflict.get_json()["kind"] == "conflict"

    client.post(f"/api/risk/sessions/{sid}/submit", json={"issue": "Parent complaint"})
    created = client.post(f"/api/risk/sessions/{sid}/archive")
    assert created.status_code == 201
    report_id = created.get_json()["id"]

    listing = client.get("/api/risk/reports").get_json()["reports"]
    assert [r["id"] for r in listing] == [report_id]

    detail = client.get(f"/api/risk/reports/{report_id}").get_json()
    assert detail["report"]["id"] == report_id
    assert detail["display"]["kind"] == "report"
    assert detail["display"]["text"] == "Parent complaint"


def test_unknown_report_is_404(client):
    assert client.get("/api/risk/reports/missing").status_code == 404


def test_scenarios_listing(client):
    scenarios = client.get("/api/risk/scenarios").get_json()["scenarios"]

    assert [s["key"] for s in scenarios] == ["parentComplaint", "facultyLeave"]


def test_seeded_archive_lists_scenarios(tmp_path, json_store, generation, corpus):
    app = create_app(
        _config(tmp_path, seed=True),
        store=json_store,
        generation_client=generation,
        scheduler=ManualScheduler(),
        executor=ImmediateExecutor(),
        corpus=corpus,
    )

    reports = app.test_client().get("/api/risk/reports").get_json()["reports"]

    assert [(r["id"], r["date"]) for r in reports] == [
        ("scenario-parentComplaint", "August 12, 2025"),
        ("scenario-facultyLeave", "August 10, 2025"),
    ]


def test_registry_evicts_oldest(tmp_path, json_store, generation, corpus):
    factory = SessionFactory(
        config=_config(tmp_path),
        store=json_store,
        corpus=corpus,
        generation_client=generation,
        scheduler=ManualScheduler(),
        executor=ImmediateExecutor(),
    )
    registry = SessionRegistry(factory, max_sessions=2)

    first = registry.create()
    second = registry.create(user_id="u")
    registry.get(first.session_id)
    registry.create()

    assert len(registry) == 2
    assert registry.get(second.session_id) is None
    assert registry.get(first.session_id) is first
    assert first.state is SessionState.IDLE
    assert second.context.user_id == "u"
