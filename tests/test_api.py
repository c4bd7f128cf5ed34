"""
API tests using FastAPI TestClient.

Background matching runs on the app's queue; ``settle`` waits for it on the
client's event loop before asserting on matches.
"""
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine

from jobboard.api import create_app
from matcher import BatchMatcher, MatchScorer

from tests.conftest import FakeScorer

REACT_JOB = {"title": "Frontend Developer", "description": "Need React and TypeScript developer"}
DJANGO_JOB = {"title": "Backend Developer", "description": "Need Python and Django developer"}


def same_stack_rule(resume, job_description):
    """90 when both sides mention React (or neither does), 20 otherwise."""
    return 90 if ("React" in resume) == ("React" in job_description) else 20


@pytest.fixture
def client(db_url, monkeypatch):
    monkeypatch.setattr("jobboard.api.setup_logging", lambda: None)
    engine = create_async_engine(db_url)
    scorer = FakeScorer(same_stack_rule)
    app = create_app(engine=engine, batch_matcher=BatchMatcher(scorer, delay_seconds=0))

    with TestClient(app) as test_client:
        test_client.scorer = scorer
        yield test_client
        test_client.portal.call(app.state.matching_queue.join)
        test_client.portal.call(engine.dispose)


def settle(client):
    client.portal.call(client.app.state.matching_queue.join)


def apply(client, **overrides):
    data = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "resume": "Frontend engineer with 5 years of React and TypeScript",
    }
    data.update(overrides)
    return client.post("/applications", data=data)


class TestMeta:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root_lists_endpoints(self, client):
        body = client.get("/").json()

        assert body["endpoints"]["submit_application"] == "/applications"
        assert body["endpoints"]["jobs"] == "/jobs"


class TestApplications:

    def test_application_is_matched_against_all_jobs(self, client):
        react_id = client.post("/jobs", json=REACT_JOB).json()["job_id"]
        django_id = client.post("/jobs", json=DJANGO_JOB).json()["job_id"]
        settle(client)

        response = apply(client)
        assert response.status_code == 201
        body = response.json()
        assert body["processing"] is True
        candidate_id = body["candidate_id"]
        settle(client)

        status = client.get(f"/candidates/{candidate_id}/processing-status").json()
        assert status == {
            "candidate_id": candidate_id,
            "is_processed": True,
            "match_count": 2,
            "message": "Processing complete! Found 2 job matches.",
        }

        jobs = {job["id"]: job for job in client.get("/jobs").json()}
        assert [m["percentage"] for m in jobs[react_id]["top_candidates"]] == [90]
        assert jobs[react_id]["top_candidates"][0]["full_name"] == "Ada Lovelace"
        assert jobs[django_id]["match_count"] == 1
        assert jobs[django_id]["top_candidates"] == []

    def test_processed_even_when_every_score_fails(self, client):
        client.post("/jobs", json=REACT_JOB)
        settle(client)
        client.scorer.rule = lambda resume, job_description: RuntimeError("scoring unavailable")

        candidate_id = apply(client).json()["candidate_id"]
        settle(client)

        status = client.get(f"/candidates/{candidate_id}/processing-status").json()
        assert status["is_processed"] is True
        assert status["match_count"] == 0

    def test_resume_file_upload(self, client):
        response = client.post(
            "/applications",
            data={"first_name": "Bob", "last_name": "Builder", "email": "bob@example.com"},
            files={"resume_file": ("cv.txt", b"Django developer with Python", "text/plain")},
        )
        assert response.status_code == 201
        settle(client)

        candidate = client.get(f"/candidates/{response.json()['candidate_id']}").json()
        assert candidate["resume"] == "Django developer with Python"
        assert candidate["resume_filename"] == "cv.txt"
        assert candidate["ai_processed"] is True

    def test_unsupported_upload_is_rejected(self, client):
        response = client.post(
            "/applications",
            data={"first_name": "Bob", "last_name": "Builder", "email": "bob@example.com"},
            files={"resume_file": ("cv.docx", b"PK\x03\x04", "application/octet-stream")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "parse_error"

    def test_missing_fields_are_rejected(self, client):
        response = apply(client, first_name="", resume="")

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert "first_name" in response.json()["detail"]

    def test_invalid_email_is_rejected(self, client):
        response = apply(client, email="not-an-email")

        assert response.status_code == 400
        assert response.json()["detail"] == "Please enter a valid email address"


class TestCandidates:

    def test_list_and_get(self, client):
        first = apply(client, email="first@example.com").json()["candidate_id"]
        second = apply(client, email="second@example.com").json()["candidate_id"]
        settle(client)

        listed = client.get("/candidates").json()
        assert {c["id"] for c in listed} == {first, second}

        candidate = client.get(f"/candidates/{first}").json()
        assert candidate["email"] == "first@example.com"
        assert candidate["contacted"] is False

    def test_unknown_candidate(self, client):
        for path in ("/candidates/999", "/candidates/999/processing-status"):
            response = client.get(path)
            assert response.status_code == 404
            assert response.json()["error"] == "not_found"

    def test_contact_tracking(self, client):
        candidate_id = apply(client).json()["candidate_id"]
        settle(client)

        marked = client.post(f"/candidates/{candidate_id}/contact", json={"notes": "Phone screen booked"})
        assert marked.status_code == 200
        assert marked.json()["contacted"] is True
        assert marked.json()["contact_notes"] == "Phone screen booked"
        assert marked.json()["contacted_at"] is not None

        unmarked = client.delete(f"/candidates/{candidate_id}/contact")
        assert unmarked.json()["contacted"] is False
        assert unmarked.json()["contacted_at"] is None

        assert client.post("/candidates/999/contact").status_code == 404


class TestJobs:

    def test_job_is_matched_against_existing_candidates(self, client):
        candidate_id = apply(client).json()["candidate_id"]
        settle(client)

        response = client.post("/jobs", json=REACT_JOB)
        assert response.status_code == 201
        job_id = response.json()["job_id"]
        settle(client)

        status = client.get(f"/jobs/{job_id}/processing-status").json()
        assert status["completed"] is True
        assert status["candidate_count"] == 1
        assert status["message"] == "AI matching completed! Found 1 candidate matches."

        job = client.get(f"/jobs/{job_id}").json()
        assert job["ai_processed"] is True
        assert job["matches"] == [{
            "candidate_id": candidate_id,
            "percentage": 90,
            "full_name": "Ada Lovelace",
            "email": "ada@example.com",
            "contacted": False,
        }]

    def test_threshold_is_strict_and_overridable(self, client):
        apply(client)
        settle(client)
        job_id = client.post("/jobs", json=DJANGO_JOB).json()["job_id"]
        settle(client)

        default = {j["id"]: j for j in client.get("/jobs").json()}
        assert default[job_id]["top_candidates"] == []

        lowered = {j["id"]: j for j in client.get("/jobs", params={"min_percentage": 19}).json()}
        assert [m["percentage"] for m in lowered[job_id]["top_candidates"]] == [20]

        assert client.get("/jobs", params={"min_percentage": 101}).status_code == 422

    def test_jobs_listed_newest_first(self, client):
        first = client.post("/jobs", json=REACT_JOB).json()["job_id"]
        second = client.post("/jobs", json=DJANGO_JOB).json()["job_id"]
        settle(client)

        assert [j["id"] for j in client.get("/jobs").json()] == [second, first]

    def test_update_recomputes_matches(self, client):
        apply(client)
        settle(client)
        job_id = client.post("/jobs", json=REACT_JOB).json()["job_id"]
        settle(client)
        assert client.get(f"/jobs/{job_id}").json()["matches"][0]["percentage"] == 90

        response = client.put(f"/jobs/{job_id}", json=DJANGO_JOB)
        assert response.status_code == 200
        assert response.json()["title"] == DJANGO_JOB["title"]
        settle(client)

        job = client.get(f"/jobs/{job_id}").json()
        assert job["description"] == DJANGO_JOB["description"]
        assert job["ai_processed"] is True
        assert [m["percentage"] for m in job["matches"]] == [20]

    def test_delete(self, client):
        apply(client)
        settle(client)
        job_id = client.post("/jobs", json=REACT_JOB).json()["job_id"]
        settle(client)

        response = client.delete(f"/jobs/{job_id}")
        assert response.status_code == 200
        assert response.json()["message"] == "Job deleted successfully"

        assert client.get(f"/jobs/{job_id}").status_code == 404
        assert client.delete(f"/jobs/{job_id}").status_code == 404

    def test_blank_fields_are_rejected(self, client):
        response = client.post("/jobs", json={"title": "   ", "description": "Need React"})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

        assert client.post("/jobs", json={"title": "", "description": "x"}).status_code == 422
        assert client.put("/jobs/1", json={"title": "   ", "description": "   "}).status_code == 400

    def test_unknown_job(self, client):
        assert client.get("/jobs/999").status_code == 404
        assert client.get("/jobs/999/processing-status").status_code == 404
        assert client.put("/jobs/999", json=REACT_JOB).status_code == 404


def test_shutdown_closes_scoring_client(db_url, monkeypatch, openai_client):
    monkeypatch.setattr("jobboard.api.setup_logging", lambda: None)
    openai_client.close = AsyncMock()
    engine = create_async_engine(db_url)
    app = create_app(engine=engine, batch_matcher=BatchMatcher(MatchScorer("test-key", client=openai_client)))

    with TestClient(app) as client:
        client.post("/jobs", json=REACT_JOB)
        settle(client)
        openai_client.close.assert_not_awaited()
        client.portal.call(engine.dispose)

    openai_client.close.assert_awaited_once()
