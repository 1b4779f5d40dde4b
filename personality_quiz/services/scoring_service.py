"""
services/scoring_service.py

성격 유형 채점 및 동점 처리 비즈니스 로직.
순수 Python 함수로 구성 — UI 코드, 전역 상태 변경 없음.
같은 입력에 대해 항상 같은 결과(동점 구성, 순서 포함)를 반환한다.
"""

from fractions import Fraction
from typing import Dict, Iterable, List, Mapping

from personality_quiz.models.errors import NoScorableData
from personality_quiz.models.question_model import Question
from personality_quiz.models.session_state import PersonalityTypeResult, ResultSet, Score


def calculate_type_scores(
    questions: Iterable[Question],
    answers: Mapping[int, int],
) -> Dict[str, Fraction]:
    """
    응답을 유형별 점수로 합산한다.

    합산 기준: 응답한 문항마다 (점수 × 가중치)를 해당 문항이 가중치를 가진
    모든 유형에 더한다 (복합 문항은 여러 유형에 동시에 반영).
    가중치는 Decimal → Fraction으로 변환해 정확한 값으로 누적한다.

    Args:
        questions: 문항 리스트 (type_weights 포함).
        answers:   응답지. {question.id: 1~10 점수}

    Returns:
        {type_code: 합산 점수}. 어떤 문항에도 가중치가 없는 유형은 포함되지 않는다.
        응답하지 않은 문항의 유형은 0으로 시작한다.
    """
    by_id = {q.id: q for q in questions}
    totals: Dict[str, Fraction] = {}

    for q in by_id.values():
        for type_code in q.type_weights:
            totals.setdefault(type_code, Fraction(0))

    for question_id, score in answers.items():
        q = by_id.get(question_id)
        if q is None:
            # 문항 집합에 없는 응답은 채점하지 않는다 (스토어가 이미 차단)
            continue
        for type_code, weight in q.type_weights.items():
            totals[type_code] += Fraction(weight) * score

    return totals


def resolve_top_types(type_scores: Mapping[str, Fraction]) -> ResultSet:
    """
    최고 점수 유형을 모두 골라 유형 코드 오름차순으로 정렬한다.

    Raises:
        NoScorableData: 유형 점수가 하나도 없는 경우.
    """
    if not type_scores:
        raise NoScorableData("채점할 성격 유형이 없습니다.")

    max_score = max(type_scores.values())
    winners = sorted(code for code, total in type_scores.items() if total == max_score)
    is_tied = len(winners) > 1

    return ResultSet(
        results=tuple(
            PersonalityTypeResult(
                type_code=code,
                aggregate_score=to_number(type_scores[code]),
                is_tied=is_tied,
            )
            for code in winners
        ),
        max_score=to_number(max_score),
    )


def score_answers(
    questions: List[Question],
    answers: Mapping[int, int],
) -> ResultSet:
    """
    응답지를 채점하여 최고 점수 유형 묶음을 반환한다.

    Raises:
        NoScorableData: 응답이 없거나 가중치가 있는 유형이 없는 경우.
    """
    if not answers:
        raise NoScorableData("채점할 응답이 없습니다.")
    return resolve_top_types(calculate_type_scores(questions, answers))


def to_number(value: Fraction) -> Score:
    """정수로 떨어지면 int, 아니면 float으로 변환 (표시용)."""
    if value.denominator == 1:
        return int(value)
    return float(value)
