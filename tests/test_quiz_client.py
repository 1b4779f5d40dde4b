import json

import httpx
import pytest

from personality_quiz.models.errors import CollaborationError, InvalidAttemptId, SubmissionRejected
from personality_quiz.models.session_state import AttemptStatus
from personality_quiz.services.quiz_client import QuizApiClient, remote_store

ATTEMPT_ID = "0b6f5c2e-8d1a-4f3b-a9c7-2e4d6f8a0b1c"

RESULT_BODY = {
    "success": True,
    "message": "ok",
    "data": {
        "attempt_id": ATTEMPT_ID,
        "test_completed_at": "2026-10-17T09:00:00+00:00",
        "max_score": 15,
        "is_tie": True,
        "total_questions_answered": 3,
        "personality_types": [
            {"type_code": "A", "type_name": "관찰형", "calculated_score": 15, "is_tied": True},
            {"type_code": "B", "type_name": "교육형", "calculated_score": 15, "is_tied": True},
        ],
    },
}

QUESTIONS_BODY = {
    "attempt_id": ATTEMPT_ID,
    "total": 3,
    "questions": [{"id": 1, "text": "Q1"}, {"id": 2, "text": "Q2"}, {"id": 3, "text": "Q3"}],
}


def _client(handler):
    return QuizApiClient(base_url="http://quiz.test", transport=httpx.MockTransport(handler))


def test_start_attempt():
    def handler(request):
        assert request.url.path == "/api/test/start"
        assert json.loads(request.content) == {"gender": "male", "age": 38}
        return httpx.Response(200, json={"success": True, "attempt_id": ATTEMPT_ID})

    with _client(handler) as client:
        assert client.start_attempt("male", 38) == ATTEMPT_ID


def test_start_attempt_rejects_malformed_id():
    def handler(request):
        return httpx.Response(200, json={"success": True, "attempt_id": "1234"})

    with _client(handler) as client:
        with pytest.raises(InvalidAttemptId):
            client.start_attempt("male", 38)


def test_fetch_questions():
    def handler(request):
        assert request.url.path == f"/api/test/{ATTEMPT_ID}/questions"
        return httpx.Response(200, json=QUESTIONS_BODY)

    with _client(handler) as client:
        questions = client.fetch_questions(ATTEMPT_ID)
    assert [q.id for q in questions] == [1, 2, 3]
    assert questions[0].type_weights == {}


def test_fetch_result():
    def handler(request):
        return httpx.Response(200, json=RESULT_BODY)

    with _client(handler) as client:
        result = client.fetch_result(ATTEMPT_ID)
    assert result.attempt_id == ATTEMPT_ID
    assert result.result_set.type_codes == ("A", "B")
    assert result.result_set.is_tie is True
    assert result.total_questions_answered == 3


def test_http_error_keeps_status_and_message():
    def handler(request):
        return httpx.Response(404, json={"detail": {"error": "attempt_not_found", "message": "응시 정보를 찾을 수 없습니다"}})

    with _client(handler) as client:
        with pytest.raises(CollaborationError) as exc:
            client.fetch_result(ATTEMPT_ID)
    assert exc.value.status_code == 404
    assert "찾을 수 없습니다" in exc.value.message


def test_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client:
        with pytest.raises(CollaborationError) as exc:
            client.fetch_questions(ATTEMPT_ID)
    assert exc.value.status_code is None


def test_unsuccessful_result_body():
    def handler(request):
        return httpx.Response(200, json={"success": False, "message": "결과 없음"})

    with _client(handler) as client:
        with pytest.raises(CollaborationError):
            client.fetch_result(ATTEMPT_ID)


def test_remote_store_round_trip():
    submitted = []

    def handler(request):
        if request.url.path.endswith("/questions"):
            return httpx.Response(200, json=QUESTIONS_BODY)
        if request.url.path == "/api/test/submit":
            submitted.append(json.loads(request.content))
            return httpx.Response(200, json=RESULT_BODY)
        return httpx.Response(404)

    with _client(handler) as client:
        store = remote_store(client)
        store.initialize(ATTEMPT_ID)
        for qid, score in ((1, 10), (2, 10), (3, 5)):
            store.set_answer(qid, score)
        result = store.submit()

    assert submitted == [{"attempt_id": ATTEMPT_ID, "answers": {"1": 10, "2": 10, "3": 5}}]
    assert result.type_codes == ("A", "B")
    assert store.status == AttemptStatus.SUBMITTED


def test_remote_store_rejected_submission_stays_in_progress():
    def handler(request):
        if request.url.path.endswith("/questions"):
            return httpx.Response(200, json=QUESTIONS_BODY)
        return httpx.Response(409, json={"detail": {"error": "already_submitted", "message": "이미 제출된 검사입니다."}})

    with _client(handler) as client:
        store = remote_store(client)
        store.initialize(ATTEMPT_ID)
        for qid in (1, 2, 3):
            store.set_answer(qid, 5)
        with pytest.raises(SubmissionRejected):
            store.submit()

    assert store.status == AttemptStatus.IN_PROGRESS


@pytest.mark.parametrize("payload", [["not", "an", "object"], "text", 42])
def test_non_object_body(payload):
    def handler(request):
        return httpx.Response(200, json=payload)

    with _client(handler) as client:
        with pytest.raises(CollaborationError):
            client.start_attempt("male", 38)
        with pytest.raises(CollaborationError):
            client.fetch_result(ATTEMPT_ID)
