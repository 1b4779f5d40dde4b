"""
api/session.py — 응시별 인메모리 세션 저장소

응시 ID(UUID v4)마다 AttemptSessionStore 하나와 잠금 하나를 둔다.
같은 응시에 대한 변경은 한 번에 하나만 실행된다.
TTL(기본 1시간) 경과 시 진행 중 응시는 자동 만료. 제출된 결과는 RESULT_TTL 동안 조회 가능.
"""

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from config import RESULT_TTL, SESSION_TTL
from personality_quiz.models.errors import AttemptNotFound
from personality_quiz.models.session_state import Attempt, AttemptResult
from personality_quiz.services.attempt_store import AttemptSessionStore
from personality_quiz.services.question_bank import fetch_questions

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_sessions: Dict[str, "AttemptSession"] = {}
_results: Dict[str, AttemptResult] = {}
_timestamps: Dict[str, float] = {}


@dataclass
class AttemptSession:
    attempt: Attempt
    store: AttemptSessionStore
    lock: threading.Lock = field(default_factory=threading.Lock)


def create_attempt(gender: str, age: int) -> Attempt:
    """새 응시를 생성하고 문항을 불러온 스토어를 등록한다."""
    attempt = Attempt(id=str(uuid.uuid4()), gender=gender, age=age)
    store = AttemptSessionStore(fetch_questions=fetch_questions)
    store.initialize(attempt.id)

    attempt = attempt.model_copy(update={"status": store.status})
    with _lock:
        _sessions[attempt.id] = AttemptSession(attempt=attempt, store=store)
        _timestamps[attempt.id] = time.time()
    logger.info(f"응시 생성: {attempt.id} (gender={gender}, age={age})")
    return attempt


def get_session(attempt_id: str) -> Optional[AttemptSession]:
    """응시 ID로 세션을 가져옴. 만료되었거나 없으면 None."""
    attempt_id = attempt_id.lower()
    with _lock:
        if attempt_id not in _sessions:
            return None
        if time.time() - _timestamps[attempt_id] > SESSION_TTL:
            del _sessions[attempt_id]
            del _timestamps[attempt_id]
            return None
        _timestamps[attempt_id] = time.time()  # 접근 시 갱신
        return _sessions[attempt_id]


@contextmanager
def locked_session(attempt_id: str) -> Iterator[AttemptSession]:
    """
    응시 세션을 잠근 상태로 넘겨준다.

    Raises:
        AttemptNotFound: 세션이 없거나 만료된 경우.
    """
    sess = get_session(attempt_id)
    if sess is None:
        raise AttemptNotFound(attempt_id)
    with sess.lock:
        try:
            yield sess
        finally:
            sess.attempt = sess.attempt.model_copy(update={"status": sess.store.status})


def save_result(result: AttemptResult) -> None:
    """제출 결과를 결과 조회용 저장소에 기록 (한 번만)."""
    with _lock:
        _results.setdefault(result.attempt_id, result)
        _timestamps[_result_key(result.attempt_id)] = time.time()


def get_result(attempt_id: str) -> Optional[AttemptResult]:
    attempt_id = attempt_id.lower()
    with _lock:
        result = _results.get(attempt_id)
        if result is None:
            return None
        if time.time() - _timestamps.get(_result_key(attempt_id), 0) > RESULT_TTL:
            del _results[attempt_id]
            _timestamps.pop(_result_key(attempt_id), None)
            return None
        return result


def cleanup_expired() -> int:
    """만료된 세션/결과를 정리. 제거된 수 반환."""
    now = time.time()
    removed = 0
    with _lock:
        expired = [aid for aid in _sessions if now - _timestamps[aid] > SESSION_TTL]
        for aid in expired:
            del _sessions[aid]
            del _timestamps[aid]
            removed += 1
        expired_results = [
            aid for aid in _results if now - _timestamps.get(_result_key(aid), 0) > RESULT_TTL
        ]
        for aid in expired_results:
            del _results[aid]
            _timestamps.pop(_result_key(aid), None)
            removed += 1
    return removed


def clear() -> None:
    """모든 세션과 결과를 지움 (테스트용)."""
    with _lock:
        _sessions.clear()
        _results.clear()
        _timestamps.clear()


def _result_key(attempt_id: str) -> str:
    return f"result:{attempt_id}"
