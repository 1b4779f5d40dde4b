import uuid

import api.session as session
from personality_quiz.models.session_state import AttemptStatus, is_valid_attempt_id

OBSERVER_QUESTIONS = {1, 16}


def _start(client, **body):
    payload = {"gender": "female", "age": 22}
    payload.update(body)
    response = client.post("/api/test/start", json=payload)
    assert response.status_code == 200, response.text
    return response.json()["attempt_id"]


def _all_answers(score=5, overrides=None):
    answers = {str(i): score for i in range(1, 31)}
    for qid, value in (overrides or {}).items():
        answers[str(qid)] = value
    return answers


# --- 응시 시작 ---

def test_start_returns_uuid4(client):
    attempt_id = _start(client)
    assert is_valid_attempt_id(attempt_id)
    sess = session.get_session(attempt_id)
    assert sess.attempt.status == AttemptStatus.IN_PROGRESS


def test_start_with_age_range(client):
    attempt_id = _start(client, age=None, age_range="19-25")
    assert session.get_session(attempt_id).attempt.age == 22


def test_start_rejects_missing_demographics(client):
    assert client.post("/api/test/start", json={"gender": "other", "age": 20}).status_code == 422
    assert client.post("/api/test/start", json={"gender": "male"}).status_code == 422


# --- 문항 / 페이지 ---

def test_questions_hide_weights(client):
    attempt_id = _start(client)
    body = client.get(f"/api/test/{attempt_id}/questions").json()
    assert body["total"] == 30
    assert set(body["questions"][0]) == {"id", "text"}


def test_invalid_attempt_id_is_rejected(client):
    response = client.get("/api/test/not-a-uuid/page")
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_attempt_id"


def test_unknown_attempt_is_not_found(client):
    response = client.get(f"/api/test/{uuid.uuid4()}/page")
    assert response.status_code == 404


def test_page_navigation_flow(client):
    attempt_id = _start(client)
    page = client.get(f"/api/test/{attempt_id}/page").json()
    assert page["page_index"] == 0
    assert page["total_pages"] == 6
    assert page["is_first_page"] is True
    assert [q["id"] for q in page["questions"]] == [1, 2, 3, 4, 5]

    response = client.post(f"/api/test/{attempt_id}/next")
    assert response.status_code == 422
    assert response.json()["detail"]["missing_question_ids"] == [1, 2, 3, 4, 5]

    for qid in range(1, 6):
        r = client.post(f"/api/test/{attempt_id}/answer", json={"question_id": qid, "score": 7})
        assert r.status_code == 200
    assert r.json()["is_complete"] is True

    page = client.post(f"/api/test/{attempt_id}/next").json()
    assert page["page_index"] == 1
    assert page["answered_count"] == 5

    page = client.post(f"/api/test/{attempt_id}/prev").json()
    assert page["page_index"] == 0
    assert page["questions"][0]["saved_score"] == 7


def test_jump_to_page(client):
    attempt_id = _start(client)
    assert client.post(f"/api/test/{attempt_id}/page/3").status_code == 422
    assert client.post(f"/api/test/{attempt_id}/page/9").status_code == 404
    assert client.post(f"/api/test/{attempt_id}/page/0").json()["page_index"] == 0


def test_answer_validation(client):
    attempt_id = _start(client)
    r = client.post(f"/api/test/{attempt_id}/answer", json={"question_id": 1, "score": 11})
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "score_out_of_range"

    r = client.post(f"/api/test/{attempt_id}/answer", json={"question_id": 999, "score": 3})
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "unknown_question_id"

    client.post(f"/api/test/{attempt_id}/answer", json={"question_id": 1, "score": 3})
    r = client.post(f"/api/test/{attempt_id}/answer", json={"question_id": 1, "score": None})
    assert r.json()["answered_count"] == 0


# --- 제출 / 결과 ---

def test_submit_incomplete(client):
    attempt_id = _start(client)
    answers = _all_answers()
    del answers["17"]
    response = client.post("/api/test/submit", json={"attempt_id": attempt_id, "answers": answers})
    assert response.status_code == 422
    assert response.json()["detail"]["missing_question_id"] == 17
    assert response.json()["detail"]["missing_count"] == 1


def test_submit_single_winner(client):
    attempt_id = _start(client)
    answers = _all_answers(5, {qid: 10 for qid in OBSERVER_QUESTIONS})
    response = client.post("/api/test/submit", json={"attempt_id": attempt_id, "answers": answers})
    assert response.status_code == 200, response.text

    data = response.json()["data"]
    assert data["attempt_id"] == attempt_id
    assert data["is_tie"] is False
    assert data["max_score"] == 20
    assert data["total_questions_answered"] == 30
    [ptype] = data["personality_types"]
    assert ptype["type_code"] == "observer"
    assert ptype["type_name"] == "관찰형"
    assert ptype["calculated_score"] == 20
    assert ptype["strength_keywords"]


def test_submit_reports_ties(client):
    attempt_id = _start(client)
    response = client.post("/api/test/submit", json={"attempt_id": attempt_id, "answers": _all_answers(5)})
    data = response.json()["data"]
    assert data["is_tie"] is True
    assert data["max_score"] == 12.5
    assert [t["type_code"] for t in data["personality_types"]] == ["communicator", "helper", "reasoner"]
    assert all(t["is_tied"] for t in data["personality_types"])


def test_double_submit_and_result_fetch(client):
    attempt_id = _start(client)
    first = client.post("/api/test/submit", json={"attempt_id": attempt_id, "answers": _all_answers(5)})
    assert first.status_code == 200

    second = client.post("/api/test/submit", json={"attempt_id": attempt_id, "answers": _all_answers(1)})
    assert second.status_code == 409
    assert second.json()["detail"]["error"] == "already_submitted"

    fetched = client.get(f"/api/test/result/{attempt_id}")
    assert fetched.status_code == 200
    assert fetched.json()["data"] == first.json()["data"]
    assert session.get_session(attempt_id).attempt.status == AttemptStatus.SUBMITTED


def test_result_before_submit_is_not_found(client):
    attempt_id = _start(client)
    assert client.get(f"/api/test/result/{attempt_id}").status_code == 404
    assert client.get("/api/test/result/not-a-uuid").status_code == 400


def test_rejected_bulk_submit_writes_nothing(client):
    attempt_id = _start(client)
    response = client.post(
        "/api/test/submit",
        json={"attempt_id": attempt_id, "answers": _all_answers(5, {30: 11})},
    )
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "score_out_of_range"
    assert session.get_session(attempt_id).store.answered_count == 0


def test_resubmit_after_session_expiry_is_conflict(client, monkeypatch):
    attempt_id = _start(client)
    first = client.post("/api/test/submit", json={"attempt_id": attempt_id, "answers": _all_answers(5)})
    assert first.status_code == 200

    monkeypatch.setattr(session, "SESSION_TTL", -1)
    assert session.get_session(attempt_id) is None

    second = client.post("/api/test/submit", json={"attempt_id": attempt_id, "answers": _all_answers(5)})
    assert second.status_code == 409
    assert second.json()["detail"]["error"] == "already_submitted"
    assert client.get(f"/api/test/result/{attempt_id}").json()["data"] == first.json()["data"]
