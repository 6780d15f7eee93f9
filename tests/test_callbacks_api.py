from fastapi.testclient import TestClient

from jobrelay.main import create_app
from tests.conftest import PROFILE_URL, make_dispatcher, read_timeout

CALLBACK = "/api/v1/callbacks/automation"


def _client(settings) -> TestClient:
    return TestClient(create_app(settings, dispatcher=make_dispatcher(settings, read_timeout)))


def _start(client: TestClient) -> str:
    r = client.post("/api/v1/jobs", json={"target": PROFILE_URL})
    assert r.status_code == 202, r.text
    return r.json()["jobId"]


def test_marker_prefixed_callback_completes_job(settings):
    with _client(settings) as client:
        job_id = _start(client)

        r = client.post(
            CALLBACK,
            json={
                "jobId": f"={job_id}",
                "success": "=true",
                "items": "=https://instagram.com/a, ,https://instagram.com/b,",
                "itemCount": "=2",
            },
        )
        assert r.status_code == 200, r.text
        assert r.json() == {"status": "received", "jobId": job_id}

        view = client.get(f"/api/v1/jobs/{job_id}").json()
        assert view["status"] == "completed"
        assert view["results"] == ["https://instagram.com/a", "https://instagram.com/b"]
        assert view["totalItems"] == 2
        assert view["completedAt"]
        assert "error" not in view


def test_failure_callback_marks_job_failed(settings):
    with _client(settings) as client:
        job_id = _start(client)

        r = client.post(CALLBACK, json={"jobId": job_id, "success": "false", "errorDetail": "Session expired"})
        assert r.status_code == 200

        view = client.get(f"/api/v1/jobs/{job_id}").json()
        assert view["status"] == "failed"
        assert view["error"] == "Session expired"
        assert "results" not in view


def test_callback_for_unknown_job_is_acknowledged_without_creating_a_row(settings):
    with _client(settings) as client:
        r = client.post(CALLBACK, json={"jobId": "=abc123", "success": "=true", "items": "a"})
        assert r.status_code == 200
        assert r.json() == {"status": "received", "jobId": "abc123"}

        assert client.get("/api/v1/jobs/abc123").status_code == 404
        assert client.get("/api/v1/jobs", params={"status": "completed"}).json()["total"] == 0


def test_late_duplicate_callback_does_not_change_terminal_job(settings):
    with _client(settings) as client:
        job_id = _start(client)

        client.post(CALLBACK, json={"jobId": job_id, "success": "true", "items": "a,b"})
        before = client.get(f"/api/v1/jobs/{job_id}").json()

        r = client.post(CALLBACK, json={"jobId": job_id, "success": "false", "errorDetail": "late"})
        assert r.status_code == 200
        assert r.json()["status"] == "received"

        assert client.get(f"/api/v1/jobs/{job_id}").json() == before


def test_callback_without_job_id_is_400_and_touches_nothing(settings):
    with _client(settings) as client:
        job_id = _start(client)

        r = client.post(CALLBACK, json={"success": "true", "items": "a"})
        assert r.status_code == 400
        assert r.json()["error"]

        assert client.get(f"/api/v1/jobs/{job_id}").json()["status"] == "processing"


def test_callback_with_non_json_body_is_400(settings):
    with _client(settings) as client:
        r = client.post(CALLBACK, content=b"not json", headers={"content-type": "application/json"})
        assert r.status_code == 400
        assert r.json()["error"] == "Callback body must be JSON"
