"""
services/attempt_store.py

응시 1회의 진행 상태를 관리하는 세션 스토어.
Public API:
  - initialize(attempt_id)          : 응시 ID 검증 + 문항 불러오기
  - load_questions(questions)       : 문항 집합 교체
  - set_answer / clear_answer       : 응답지 수정
  - current_page_questions / total_pages / is_current_page_complete
  - advance_page / retreat_page / go_to_page : 페이지 이동
  - submit()                        : 전체 응답 검증 후 채점
  - reset()                         : 초기 상태로 복귀

설계 원칙:
- 모든 상태 변경은 이 클래스의 메서드를 통해서만 일어난다.
- 검증 실패는 QuizError 하위 예외로 호출자에게 그대로 전달된다.
- 외부 연동(문항 조회, 원격 제출)의 재시도는 호출자 몫이다.
- 단일 소유자 전제. 서버에서 여러 요청이 접근하면 응시 ID별 잠금이 필요 (api/session.py).
"""

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from config import MAX_SCORE, MIN_SCORE, QUESTIONS_PER_PAGE
from personality_quiz.models.errors import (
    AlreadySubmitted,
    AttemptNotInProgress,
    EmptyQuestionSet,
    IncompletePageError,
    IncompleteSubmission,
    InvalidAttemptId,
    QuestionLoadError,
    QuestionSetError,
    ScoreOutOfRange,
    SubmissionRejected,
    UnknownQuestionId,
)
from personality_quiz.models.question_model import Question
from personality_quiz.models.session_state import AttemptStatus, ResultSet, is_valid_attempt_id
from personality_quiz.services.scoring_service import score_answers

logger = logging.getLogger(__name__)

QuestionFetcher = Callable[[str], Sequence[Question]]
Submitter = Callable[[str, Dict[int, int]], ResultSet]


class AttemptSessionStore:
    """
    응시 1회의 문항/응답/페이지 커서를 보관하는 상태 머신.

    상태 전이: (초기) → created → in_progress → submitted
      - initialize() 성공 시 created
      - load_questions() 성공 시 in_progress
      - submit() 성공 시 submitted (1회만)

    Args:
        fetch_questions: 응시 ID로 문항 리스트를 돌려주는 함수. 지정하면 initialize()가 호출한다.
        submitter:       원격 채점 함수. 없으면 scoring_service로 로컬 채점.
        page_size:       페이지당 문항 수.
    """

    def __init__(
        self,
        fetch_questions: Optional[QuestionFetcher] = None,
        submitter: Optional[Submitter] = None,
        page_size: int = QUESTIONS_PER_PAGE,
    ):
        if page_size < 1:
            raise ValueError("page_size는 1 이상이어야 합니다.")
        self._fetch_questions = fetch_questions
        self._submitter = submitter
        self.page_size = page_size
        self.reset()

    # ── 상태 조회 ─────────────────────────────────────────────────────────

    @property
    def attempt_id(self) -> Optional[str]:
        return self._attempt_id

    @property
    def status(self) -> Optional[AttemptStatus]:
        return self._status

    @property
    def questions(self) -> List[Question]:
        return list(self._questions)

    @property
    def answers(self) -> Dict[int, int]:
        return dict(self._answers)

    @property
    def page_index(self) -> int:
        return self._page_index

    @property
    def result_set(self) -> Optional[ResultSet]:
        return self._result_set

    @property
    def submitted_at(self) -> Optional[datetime]:
        return self._submitted_at

    @property
    def load_error(self) -> Optional[Exception]:
        """마지막 문항 불러오기 실패 사유 (없으면 None)."""
        return self._load_error

    @property
    def answered_count(self) -> int:
        return len(self._answers)

    # ── 초기화 ────────────────────────────────────────────────────────────

    def reset(self) -> None:
        """initialize() 이전의 빈 상태로 되돌린다."""
        self._attempt_id: Optional[str] = None
        self._status: Optional[AttemptStatus] = None
        self._questions: List[Question] = []
        self._question_ids: set = set()
        self._answers: Dict[int, int] = {}
        self._page_index = 0
        self._result_set: Optional[ResultSet] = None
        self._submitted_at: Optional[datetime] = None
        self._load_error: Optional[Exception] = None

    def initialize(self, attempt_id: Optional[str]) -> None:
        """
        응시 ID를 검증하고 스토어를 새 응시로 시작한다.

        이전 상태는 먼저 모두 지운다. ID가 UUID v4 형식이 아니면
        InvalidAttemptId를 던지고 초기 상태를 유지한다.
        fetch_questions가 있으면 문항을 불러와 in_progress로 전이한다.

        Raises:
            InvalidAttemptId:  ID가 없거나 형식이 잘못된 경우.
            QuestionLoadError: 문항 조회 실패 (load_error에 기록).
            EmptyQuestionSet:  조회된 문항이 없는 경우.
        """
        self.reset()
        if not is_valid_attempt_id(attempt_id):
            logger.warning(f"initialize: 잘못된 응시 ID 거부 - {attempt_id!r}")
            raise InvalidAttemptId(attempt_id)

        self._attempt_id = attempt_id.lower()
        self._status = AttemptStatus.CREATED
        logger.info(f"initialize: 응시 {self._attempt_id} 시작")

        if self._fetch_questions is None:
            return

        try:
            fetched = self._fetch_questions(self._attempt_id)
        except Exception as e:
            self._load_error = e
            logger.error(f"initialize: 문항 조회 실패 ({self._attempt_id}) - {e}")
            raise QuestionLoadError(f"질문을 불러오지 못했습니다: {e}") from e
        self.load_questions(fetched)

    def load_questions(self, questions: Sequence[Question]) -> None:
        """
        문항 집합을 교체한다.

        새 집합에 없는 문항의 응답은 버리고, 페이지는 첫 페이지로 돌아간다.

        Raises:
            AttemptNotInProgress: initialize() 전이거나 이미 제출된 경우.
            EmptyQuestionSet:     문항이 비어 있는 경우 ("표시할 질문 없음").
            QuestionSetError:     문항 ID가 중복된 경우.
        """
        if self._status not in (AttemptStatus.CREATED, AttemptStatus.IN_PROGRESS):
            raise AttemptNotInProgress(self._status)

        questions = list(questions)
        if not questions:
            error = EmptyQuestionSet()
            self._load_error = error
            logger.warning(f"load_questions: 응시 {self._attempt_id}에 표시할 문항 없음")
            raise error

        ids = [q.id for q in questions]
        if len(set(ids)) != len(ids):
            duplicated = sorted({i for i in ids if ids.count(i) > 1})
            raise QuestionSetError(f"문항 ID가 중복되었습니다: {duplicated}")

        self._questions = questions
        self._question_ids = set(ids)
        self._answers = {qid: s for qid, s in self._answers.items() if qid in self._question_ids}
        self._page_index = 0
        self._load_error = None
        self._status = AttemptStatus.IN_PROGRESS
        logger.info(
            f"load_questions: 응시 {self._attempt_id} - {len(questions)}문항, {self.total_pages()}페이지"
        )

    # ── 응답 ──────────────────────────────────────────────────────────────

    def set_answer(self, question_id: int, score: int) -> None:
        """
        응답을 저장(덮어쓰기)한다. 페이지는 자동으로 넘어가지 않는다.

        Raises:
            AttemptNotInProgress: 진행 중이 아닌 경우.
            ScoreOutOfRange:      점수가 1~10 정수가 아닌 경우.
            UnknownQuestionId:    불러온 문항에 없는 ID인 경우.
        """
        self._require_in_progress()
        self._validate_answer(question_id, score)
        self._answers[question_id] = score

    def set_answers(self, answers: Dict[int, int]) -> None:
        """
        여러 응답을 한 번에 저장한다. 하나라도 잘못되면 아무것도 저장하지 않는다.

        Raises:
            set_answer()와 같음.
        """
        self._require_in_progress()
        for question_id, score in answers.items():
            self._validate_answer(question_id, score)
        self._answers.update(answers)

    def clear_answer(self, question_id: int) -> None:
        """응답을 지운다. 응답하지 않은 문항이면 아무 일도 하지 않는다."""
        self._require_in_progress()
        if question_id not in self._question_ids:
            raise UnknownQuestionId(question_id)
        self._answers.pop(question_id, None)

    # ── 페이지 ────────────────────────────────────────────────────────────

    def total_pages(self) -> int:
        return math.ceil(len(self._questions) / self.page_size)

    def current_page_questions(self) -> List[Question]:
        return self._page_slice(self._page_index)

    def is_first_page(self) -> bool:
        return self._page_index == 0

    def is_last_page(self) -> bool:
        return self._page_index >= self.total_pages() - 1

    def is_current_page_complete(self) -> bool:
        return not self._missing_on_page(self._page_index)

    def missing_question_ids(self) -> List[int]:
        """전체 문항 중 미응답 문항 ID (문항 순서대로)."""
        return [q.id for q in self._questions if q.id not in self._answers]

    def advance_page(self) -> None:
        """
        다음 페이지로 이동한다. 마지막 페이지에서는 아무 일도 하지 않는다 (submit 사용).

        Raises:
            IncompletePageError: 현재 페이지에 미응답 문항이 있는 경우. 페이지는 그대로.
        """
        if self.is_last_page():
            return
        missing = self._missing_on_page(self._page_index)
        if missing:
            logger.info(f"advance_page: 페이지 {self._page_index + 1} 미완료 - {missing}")
            raise IncompletePageError(missing)
        self._page_index += 1

    def retreat_page(self) -> None:
        """이전 페이지로 이동한다. 완료 여부와 무관하게 항상 성공 (0 미만으로는 가지 않음)."""
        self._page_index = max(0, self._page_index - 1)

    def go_to_page(self, page_index: int) -> None:
        """
        페이지 번호로 바로 이동한다.

        뒤로는 항상 이동 가능. 앞으로는 목표 페이지 이전의 모든 페이지가 완료되어야 한다.

        Raises:
            IndexError:          페이지 번호가 범위를 벗어난 경우.
            IncompletePageError: 건너뛰려는 페이지에 미응답 문항이 있는 경우.
        """
        if not 0 <= page_index < max(self.total_pages(), 1):
            raise IndexError(f"페이지 번호가 범위를 벗어났습니다: {page_index}")
        for idx in range(self._page_index, page_index):
            missing = self._missing_on_page(idx)
            if missing:
                raise IncompletePageError(missing)
        self._page_index = page_index

    # ── 제출 ──────────────────────────────────────────────────────────────

    def submit(self) -> ResultSet:
        """
        전체 응답을 검증하고 채점 결과를 반환한다. 한 번만 성공한다.

        현재 페이지 완료 여부와 별개로 전체 문항 응답 여부를 다시 확인한다
        (검증되지 않은 경로로 마지막 페이지에 도달한 경우 대비).

        Raises:
            AlreadySubmitted:     이미 제출된 경우 (재채점하지 않음).
            AttemptNotInProgress: 진행 중이 아닌 경우.
            IncompleteSubmission: 미응답 문항이 있는 경우 (첫 미응답 문항 명시).
            SubmissionRejected:   원격 제출 실패. 상태는 in_progress 유지.
            NoScorableData:       채점할 유형 정보가 없는 경우.
        """
        if self._status == AttemptStatus.SUBMITTED:
            logger.warning(f"submit: 응시 {self._attempt_id} 중복 제출 거부")
            raise AlreadySubmitted(self._attempt_id)
        self._require_in_progress()

        page_missing = self._missing_on_page(self._page_index)
        all_missing = self.missing_question_ids()
        if page_missing or all_missing:
            first = page_missing[0] if page_missing else all_missing[0]
            logger.info(f"submit: 응시 {self._attempt_id} 미응답 {len(all_missing)}개 (첫 문항 {first})")
            raise IncompleteSubmission(first, len(all_missing))

        if self._submitter is not None:
            try:
                result = self._submitter(self._attempt_id, dict(self._answers))
            except Exception as e:
                logger.error(f"submit: 응시 {self._attempt_id} 원격 제출 실패 - {e}")
                raise SubmissionRejected(f"답변 제출에 실패했습니다: {e}") from e
        else:
            result = score_answers(self._questions, self._answers)

        self._result_set = result
        self._submitted_at = datetime.now(timezone.utc)
        self._status = AttemptStatus.SUBMITTED
        logger.info(f"submit: 응시 {self._attempt_id} 제출 완료 - {list(result.type_codes)}")
        return result

    # ── 내부 헬퍼 ─────────────────────────────────────────────────────────

    def _require_in_progress(self) -> None:
        if self._status != AttemptStatus.IN_PROGRESS:
            raise AttemptNotInProgress(self._status)

    def _validate_answer(self, question_id: int, score: int) -> None:
        if isinstance(score, bool) or not isinstance(score, int) or not MIN_SCORE <= score <= MAX_SCORE:
            raise ScoreOutOfRange(score, MIN_SCORE, MAX_SCORE)
        if question_id not in self._question_ids:
            raise UnknownQuestionId(question_id)

    def _page_slice(self, page_index: int) -> List[Question]:
        start = page_index * self.page_size
        return self._questions[start : min(len(self._questions), start + self.page_size)]

    def _missing_on_page(self, page_index: int) -> List[int]:
        return [q.id for q in self._page_slice(page_index) if q.id not in self._answers]
