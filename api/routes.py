"""
api/routes.py — FastAPI 엔드포인트
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, field_validator, model_validator

import api.session as session
from config import AGE_RANGE_REPRESENTATIVE, ALLOWED_GENDERS

# Core Logic Imports (Relative paths handled by package structure)
from personality_quiz.models.errors import (
    AlreadySubmitted,
    AttemptNotFound,
    AttemptNotInProgress,
    CollaborationError,
    IncompletePageError,
    IncompleteSubmission,
    InvalidAttemptId,
    NoScorableData,
    QuestionSetError,
    QuizError,
    ScoreOutOfRange,
    SubmissionRejected,
    UnknownQuestionId,
)
from personality_quiz.models.question_model import Question
from personality_quiz.models.session_state import AttemptResult, AttemptStatus, is_valid_attempt_id
from personality_quiz.services.attempt_store import AttemptSessionStore
from personality_quiz.services.question_bank import get_personality_type

logger = logging.getLogger(__name__)

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class StartTestBody(BaseModel):
    gender: str
    age: Optional[int] = Field(None, ge=1, le=120)
    age_range: Optional[str] = None

    @field_validator('gender')
    @classmethod
    def validate_gender(cls, v: str) -> str:
        if v not in ALLOWED_GENDERS:
            raise ValueError("성별과 나이를 모두 선택해주세요.")
        return v

    @model_validator(mode='after')
    def resolve_age(self) -> 'StartTestBody':
        """나이대만 온 경우 대표 나이로 변환한다."""
        if self.age is None:
            if self.age_range not in AGE_RANGE_REPRESENTATIVE:
                raise ValueError("나이 또는 올바른 나이대(age_range)를 입력해주세요.")
            self.age = AGE_RANGE_REPRESENTATIVE[self.age_range]
        return self

class SaveAnswerBody(BaseModel):
    question_id: int
    score: Optional[int] = None  # None이면 응답 삭제

class SubmitBody(BaseModel):
    attempt_id: str
    answers: Dict[int, int] = {}


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

# 위에서부터 먼저 일치하는 클래스의 상태 코드를 사용 (하위 클래스가 앞)
_ERROR_STATUS = [
    (AttemptNotFound, 404),
    (InvalidAttemptId, 400),
    (ScoreOutOfRange, 400),
    (UnknownQuestionId, 400),
    (IncompletePageError, 422),
    (IncompleteSubmission, 422),
    (AlreadySubmitted, 409),
    (AttemptNotInProgress, 409),
    (SubmissionRejected, 502),
    (CollaborationError, 502),
    (QuestionSetError, 503),
    (NoScorableData, 500),
]


def _http_error(e: QuizError) -> HTTPException:
    status = next((code for cls, code in _ERROR_STATUS if isinstance(e, cls)), 400)
    detail = {"error": e.code, "message": e.message}
    if isinstance(e, IncompletePageError):
        detail["missing_question_ids"] = e.missing_question_ids
    elif isinstance(e, IncompleteSubmission):
        detail["missing_question_id"] = e.missing_question_id
        detail["missing_count"] = e.missing_count
    return HTTPException(status_code=status, detail=detail)


def _check_attempt_id(attempt_id: str) -> None:
    if not is_valid_attempt_id(attempt_id):
        raise _http_error(InvalidAttemptId(attempt_id))


def _question_to_dict(q: Question) -> dict:
    # 가중치는 채점 기준이므로 클라이언트에 내려주지 않는다
    return {"id": q.id, "text": q.text}


def _page_to_dict(store: AttemptSessionStore) -> dict:
    answers = store.answers
    questions = []
    for q in store.current_page_questions():
        d = _question_to_dict(q)
        d["saved_score"] = answers.get(q.id)
        questions.append(d)
    return {
        "attempt_id": store.attempt_id,
        "status": store.status.value if store.status else None,
        "page_index": store.page_index,
        "total_pages": store.total_pages(),
        "is_first_page": store.is_first_page(),
        "is_last_page": store.is_last_page(),
        "is_complete": store.is_current_page_complete(),
        "answered_count": store.answered_count,
        "total_questions": len(store.questions),
        "questions": questions,
    }


def _result_to_dict(result: AttemptResult) -> dict:
    result_set = result.result_set
    personality_types = []
    for r in result_set.results:
        d = {"type_code": r.type_code, "type_name": r.type_code, "title": r.type_code}
        profile = get_personality_type(r.type_code)
        if profile is not None:
            d.update(profile.model_dump())
        d.update({"calculated_score": r.aggregate_score, "is_tied": r.is_tied})
        personality_types.append(d)

    return {
        "attempt_id": result.attempt_id,
        "test_completed_at": result.completed_at.isoformat(),
        "max_score": result_set.max_score,
        "personality_types": personality_types,
        "is_tie": result_set.is_tie,
        "total_questions_answered": result.total_questions_answered,
    }


def _snapshot(store: AttemptSessionStore) -> AttemptResult:
    return AttemptResult(
        attempt_id=store.attempt_id,
        completed_at=store.submitted_at,
        total_questions_answered=store.answered_count,
        result_set=store.result_set,
    )


# ── 엔드포인트 ───────────────────────────────────────────────────────────────

@router.post("/api/test/start")
def start_test(body: StartTestBody):
    try:
        attempt = session.create_attempt(body.gender, body.age)
    except QuizError as e:
        logger.error(f"응시 생성 실패: {e}")
        raise _http_error(e)
    return {"success": True, "attempt_id": attempt.id}


@router.get("/api/test/{attempt_id}/questions")
def get_questions(attempt_id: str):
    _check_attempt_id(attempt_id)
    try:
        with session.locked_session(attempt_id) as sess:
            questions = sess.store.questions
    except QuizError as e:
        raise _http_error(e)
    return {
        "attempt_id": attempt_id,
        "total": len(questions),
        "questions": [_question_to_dict(q) for q in questions],
    }


@router.get("/api/test/{attempt_id}/page")
def get_page(attempt_id: str):
    _check_attempt_id(attempt_id)
    try:
        with session.locked_session(attempt_id) as sess:
            return _page_to_dict(sess.store)
    except QuizError as e:
        raise _http_error(e)


@router.post("/api/test/{attempt_id}/answer")
def save_answer(attempt_id: str, body: SaveAnswerBody):
    _check_attempt_id(attempt_id)
    try:
        with session.locked_session(attempt_id) as sess:
            if body.score is None:
                sess.store.clear_answer(body.question_id)
            else:
                sess.store.set_answer(body.question_id, body.score)
            return {
                "ok": True,
                "answered_count": sess.store.answered_count,
                "is_complete": sess.store.is_current_page_complete(),
            }
    except QuizError as e:
        raise _http_error(e)


@router.post("/api/test/{attempt_id}/next")
def next_page(attempt_id: str):
    _check_attempt_id(attempt_id)
    try:
        with session.locked_session(attempt_id) as sess:
            sess.store.advance_page()
            return _page_to_dict(sess.store)
    except QuizError as e:
        raise _http_error(e)


@router.post("/api/test/{attempt_id}/prev")
def prev_page(attempt_id: str):
    _check_attempt_id(attempt_id)
    try:
        with session.locked_session(attempt_id) as sess:
            sess.store.retreat_page()
            return _page_to_dict(sess.store)
    except QuizError as e:
        raise _http_error(e)


@router.post("/api/test/{attempt_id}/page/{page_index}")
def jump_to_page(attempt_id: str, page_index: int):
    _check_attempt_id(attempt_id)
    try:
        with session.locked_session(attempt_id) as sess:
            sess.store.go_to_page(page_index)
            return _page_to_dict(sess.store)
    except IndexError as e:
        raise HTTPException(status_code=404, detail={"error": "page_not_found", "message": str(e)})
    except QuizError as e:
        raise _http_error(e)


@router.post("/api/test/submit")
def submit_test(body: SubmitBody):
    _check_attempt_id(body.attempt_id)
    try:
        # 세션이 만료돼도 결과가 남아 있으면 중복 제출로 처리
        if session.get_result(body.attempt_id) is not None:
            raise AlreadySubmitted(body.attempt_id)
        with session.locked_session(body.attempt_id) as sess:
            store = sess.store
            if body.answers and store.status != AttemptStatus.SUBMITTED:
                store.set_answers(body.answers)
            store.submit()
            result = _snapshot(store)
    except QuizError as e:
        raise _http_error(e)

    session.save_result(result)
    return {"success": True, "data": _result_to_dict(result), "message": "제출이 완료되었습니다."}


@router.get("/api/test/result/{attempt_id}")
def get_result(attempt_id: str):
    _check_attempt_id(attempt_id)
    result = session.get_result(attempt_id)
    if result is None:
        raise _http_error(AttemptNotFound(attempt_id))
    return {"success": True, "data": _result_to_dict(result), "message": "결과를 불러왔습니다."}
