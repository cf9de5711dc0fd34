import pytest
from fastapi.testclient import TestClient

from interview_coach.main import app
from interview_coach.schemas.interview import InterviewType, Speaker, Utterance
from interview_coach.services.interview.session import InterviewSession
from interview_coach.services.pipeline.results_pipeline import ResultsPipeline


@pytest.fixture
def session():
    return InterviewSession()


@pytest.fixture
def client(provider, session, fake_sleep):
    app.state.provider = provider
    app.state.session = session
    app.state.results_pipeline = ResultsPipeline(provider, session, sleep=fake_sleep)
    return TestClient(app)


def receive_until(websocket, event_type, limit=50):
    seen = []
    for _ in range(limit):
        event = websocket.receive_json()
        seen.append(event)
        if event["type"] == event_type:
            return event, seen
    raise AssertionError(f"no {event_type} event in {seen}")


def test_root_reports_service(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["service"] == "AI Interview Coach"


def test_session_snapshot_starts_on_setup(client):
    response = client.get("/api/v1/session")

    assert response.status_code == 200
    assert response.json()["current_screen"] == "setup"


def test_results_without_interview_is_conflict(client):
    response = client.post("/api/v1/results")

    assert response.status_code == 409
    assert response.json()["error_type"] == "MissingPrerequisiteError"


def test_results_then_toggle(client, session, goal):
    session.start_interview(goal, [InterviewType.TECHNICAL])
    session.append_utterance(Utterance(speaker=Speaker.INTERVIEWER, text="Why SQL?"))
    session.append_utterance(Utterance(speaker=Speaker.CANDIDATE, text="It is everywhere."))

    assert client.get("/api/v1/results").status_code == 404

    generated = client.post("/api/v1/results").json()
    item_id = generated["roadmap"][0]["id"]
    toggled = client.post(f"/api/v1/roadmap/{item_id}/toggle")

    assert toggled.status_code == 200
    assert toggled.json()["completed"] is True
    stored = client.get("/api/v1/results").json()
    assert [item["completed"] for item in stored["roadmap"]] == [True, False, False, False, False]
    assert client.post("/api/v1/roadmap/unknown/toggle").status_code == 404


def test_reset_returns_to_setup(client, session, goal):
    session.start_interview(goal, [InterviewType.BEHAVIORAL])

    response = client.post("/api/v1/session/reset")

    assert response.json()["current_screen"] == "setup"
    assert session.goal is None


def test_resume_score_from_text(client):
    response = client.post(
        "/api/v1/resume/score",
        json={"resume_text": "Five years of SQL.", "job_description": "Senior analyst"},
    )

    assert response.status_code == 200
    assert response.json()["score"] == 82


def test_resume_score_from_txt_upload(client):
    response = client.post(
        "/api/v1/resume/score-file",
        files={"resume_file": ("resume.txt", b"Five years of SQL.", "text/plain")},
        data={"job_description": "Senior analyst"},
    )

    assert response.status_code == 200
    assert response.json()["strengths"] == "SQL"


def test_resume_upload_with_wrong_type_is_rejected(client):
    response = client.post(
        "/api/v1/resume/score-file",
        files={"resume_file": ("resume.docx", b"PK\x03\x04", "application/octet-stream")},
        data={"job_description": "Senior analyst"},
    )

    assert response.status_code == 400


def test_resume_upload_with_fake_pdf_is_rejected(client):
    response = client.post(
        "/api/v1/resume/score-file",
        files={"resume_file": ("resume.pdf", b"not a pdf", "application/pdf")},
        data={"job_description": "Senior analyst"},
    )

    assert response.status_code == 400


def test_websocket_interview_round_trip(client, session, provider):
    with client.websocket_connect("/api/v1/ws/interview/tester") as websocket:
        websocket.send_json({"type": "start", "name": "Ada", "role": "Data Analyst", "interview_types": ["technical"]})
        speak, _ = receive_until(websocket, "speak")
        assert speak["content"] == "Tell me about yourself."

        websocket.send_json({"type": "end"})
        error, _ = receive_until(websocket, "error")
        assert error["content"]["error_type"] == "InterviewStateError"

        websocket.send_json({"type": "playback_complete"})
        state, _ = receive_until(websocket, "state")
        assert state["content"] == "idle"

        websocket.send_json({"type": "utterance", "text": "I have five years of SQL."})
        receive_until(websocket, "speak")
        websocket.send_json({"type": "playback_complete"})
        receive_until(websocket, "state")

        websocket.send_json({"type": "end"})
        navigate, _ = receive_until(websocket, "navigate")
        assert navigate["content"] == "results"

    speakers = [u.speaker for u in session.transcript]
    assert speakers == [Speaker.INTERVIEWER, Speaker.CANDIDATE, Speaker.INTERVIEWER]
    assert provider.started_goals[0].role == "Data Analyst"


def test_websocket_rejects_unknown_messages(client):
    with client.websocket_connect("/api/v1/ws/interview/tester") as websocket:
        websocket.send_json({"type": "dance"})
        error, _ = receive_until(websocket, "error")

    assert "dance" in error["content"]["error"]
