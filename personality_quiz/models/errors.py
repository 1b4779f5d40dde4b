"""
models/errors.py

검사 응시/채점 과정의 도메인 오류 계층.
모든 오류는 QuizError를 상속하며, 기계 판독용 code와 사용자 표시용 메시지를 가진다.
"""

from typing import Iterable, List, Optional


class QuizError(Exception):
    """도메인 오류 기반 클래스."""

    code = "quiz_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ── 입력 검증 오류 ────────────────────────────────────────────────────────────

class InvalidAttemptId(QuizError):
    code = "invalid_attempt_id"

    def __init__(self, attempt_id: Optional[str]):
        super().__init__(f"유효하지 않은 응시 ID입니다: {attempt_id!r}")
        self.attempt_id = attempt_id


class ScoreOutOfRange(QuizError):
    code = "score_out_of_range"

    def __init__(self, score, min_score: int, max_score: int):
        super().__init__(f"점수는 {min_score}~{max_score} 사이의 정수여야 합니다 (입력: {score!r}).")
        self.score = score


class UnknownQuestionId(QuizError):
    code = "unknown_question_id"

    def __init__(self, question_id):
        super().__init__(f"존재하지 않는 문항입니다: {question_id!r}")
        self.question_id = question_id


class QuestionSetError(QuizError):
    code = "invalid_question_set"


class EmptyQuestionSet(QuestionSetError):
    code = "empty_question_set"

    def __init__(self):
        super().__init__("표시할 질문이 없습니다.")


# ── 상태 전이 오류 ────────────────────────────────────────────────────────────

class AttemptNotInProgress(QuizError):
    code = "attempt_not_in_progress"

    def __init__(self, status):
        super().__init__(f"진행 중인 검사가 아닙니다 (현재 상태: {status}).")
        self.status = status


class IncompletePageError(QuizError):
    code = "incomplete_page"

    def __init__(self, missing_question_ids: Iterable[int]):
        self.missing_question_ids: List[int] = list(missing_question_ids)
        super().__init__(
            "현재 페이지의 모든 질문에 답변해주세요. "
            f"(미응답 문항: {', '.join(str(i) for i in self.missing_question_ids)})"
        )


class SubmissionError(QuizError):
    code = "submission_error"


class IncompleteSubmission(SubmissionError):
    code = "incomplete"

    def __init__(self, missing_question_id: int, missing_count: int = 1):
        super().__init__(
            f"모든 질문에 답변해주세요. {missing_question_id}번 문항을 포함해 "
            f"{missing_count}개 문항이 남아 있습니다."
        )
        self.missing_question_id = missing_question_id
        self.missing_count = missing_count


class AlreadySubmitted(SubmissionError):
    code = "already_submitted"

    def __init__(self, attempt_id: Optional[str] = None):
        super().__init__("이미 제출된 검사입니다.")
        self.attempt_id = attempt_id


class SubmissionRejected(SubmissionError):
    code = "submission_rejected"


# ── 채점 오류 ────────────────────────────────────────────────────────────────

class NoScorableData(QuizError):
    code = "no_scorable_data"

    def __init__(self, message: str = "채점할 응답 또는 성격 유형이 없습니다."):
        super().__init__(message)


# ── 외부 연동 오류 ────────────────────────────────────────────────────────────

class CollaborationError(QuizError):
    code = "collaboration_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class QuestionLoadError(CollaborationError):
    code = "question_load_failed"


class AttemptNotFound(QuizError):
    code = "attempt_not_found"

    def __init__(self, attempt_id: str):
        super().__init__(f"응시 정보를 찾을 수 없습니다: {attempt_id}")
        self.attempt_id = attempt_id
