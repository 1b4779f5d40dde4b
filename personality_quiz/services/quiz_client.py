"""
services/quiz_client.py

원격 검사 백엔드 HTTP 클라이언트 (httpx).
Public API:
  - QuizApiClient.start_attempt(gender, age) -> str            : 응시 생성
  - QuizApiClient.fetch_questions(attempt_id) -> List[Question] : 문항 조회
  - QuizApiClient.submit_answers(attempt_id, answers) -> AttemptResult
  - QuizApiClient.fetch_result(attempt_id) -> AttemptResult     : 결과 재조회
  - remote_store(client) -> AttemptSessionStore                 : 원격 채점 스토어

실패는 모두 CollaborationError로 올린다. 재시도는 호출자 몫.
"""

import logging
from typing import Dict, List, Optional

import httpx
from pydantic import ValidationError

from config import BACKEND_URL, REQUEST_TIMEOUT
from personality_quiz.models.errors import CollaborationError, InvalidAttemptId
from personality_quiz.models.question_model import Question
from personality_quiz.models.session_state import (
    AttemptResult,
    PersonalityTypeResult,
    ResultSet,
    is_valid_attempt_id,
)
from personality_quiz.services.attempt_store import AttemptSessionStore

logger = logging.getLogger(__name__)


class QuizApiClient:
    """검사 백엔드(api/routes.py와 같은 계약)를 호출하는 동기 클라이언트."""

    def __init__(
        self,
        base_url: str = BACKEND_URL,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "QuizApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ── 엔드포인트 ──────────────────────────────────────────────────────────

    def start_attempt(self, gender: str, age: int) -> str:
        body = self._request("POST", "/api/test/start", json={"gender": gender, "age": age})
        attempt_id = body.get("attempt_id")
        if not is_valid_attempt_id(attempt_id):
            logger.error(f"start_attempt: 서버가 잘못된 응시 ID를 반환 - {attempt_id!r}")
            raise InvalidAttemptId(attempt_id)
        return attempt_id

    def fetch_questions(self, attempt_id: str) -> List[Question]:
        body = self._request("GET", f"/api/test/{attempt_id}/questions")
        try:
            return [Question.model_validate(item) for item in body.get("questions", [])]
        except ValidationError as e:
            raise CollaborationError(f"문항 응답 형식이 올바르지 않습니다: {e}") from e

    def submit_answers(self, attempt_id: str, answers: Dict[int, int]) -> AttemptResult:
        body = self._request(
            "POST",
            "/api/test/submit",
            json={"attempt_id": attempt_id, "answers": {str(k): v for k, v in answers.items()}},
        )
        return _parse_result(body)

    def fetch_result(self, attempt_id: str) -> AttemptResult:
        body = self._request("GET", f"/api/test/result/{attempt_id}")
        return _parse_result(body)

    # ── 내부 헬퍼 ─────────────────────────────────────────────────────────

    def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.error(f"{method} {url} 실패: {e.response.status_code} - {detail}")
            raise CollaborationError(detail, status_code=e.response.status_code) from e
        except httpx.RequestError as e:
            logger.error(f"{method} {url} 요청 오류: {e}")
            raise CollaborationError(f"서버에 연결할 수 없습니다: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise CollaborationError("서버 응답이 올바르지 않습니다.") from e
        if not isinstance(body, dict):
            logger.error(f"{method} {url} 응답이 JSON 객체가 아님: {type(body).__name__}")
            raise CollaborationError("서버 응답이 올바르지 않습니다.")
        return body


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message") or body.get("error")
        if isinstance(detail, dict):
            return detail.get("message", str(detail))
        if detail:
            return str(detail)
    return f"HTTP {response.status_code}"


def _parse_result(body: dict) -> AttemptResult:
    if not body.get("success") or not body.get("data"):
        raise CollaborationError(body.get("message") or "결과 데이터가 없습니다.")
    data = body["data"]
    try:
        types = data["personality_types"]
        result_set = ResultSet(
            results=tuple(
                PersonalityTypeResult(
                    type_code=t["type_code"],
                    aggregate_score=t["calculated_score"],
                    is_tied=t.get("is_tied", data.get("is_tie", False)),
                )
                for t in types
            ),
            max_score=data["max_score"],
        )
        return AttemptResult(
            attempt_id=data["attempt_id"],
            completed_at=data["test_completed_at"],
            total_questions_answered=data["total_questions_answered"],
            result_set=result_set,
        )
    except (KeyError, TypeError, ValidationError) as e:
        raise CollaborationError(f"결과 응답 형식이 올바르지 않습니다: {e}") from e


def remote_store(client: QuizApiClient) -> AttemptSessionStore:
    """문항 조회와 채점을 모두 원격 백엔드에 맡기는 스토어를 만든다."""
    return AttemptSessionStore(
        fetch_questions=client.fetch_questions,
        submitter=lambda attempt_id, answers: client.submit_answers(attempt_id, answers).result_set,
    )
