"""
services/question_bank.py

문항/성격 유형 카탈로그 로딩 서비스.
Public API:
  - load_questions(path) -> List[Question]              : 문항 JSON 로딩 (캐시)
  - load_personality_types(path) -> Dict[str, PersonalityType]
  - fetch_questions(attempt_id) -> List[Question]       : 스토어용 문항 조회 함수
  - get_personality_type(type_code) -> PersonalityType | None

잘못된 항목은 건너뛰지 않고 파일 전체를 거부한다 (채점 기준이 틀어지므로).
"""

import json
import logging
from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import ValidationError

from config import QUESTIONS_FILE, TYPES_FILE
from personality_quiz.models.question_model import PersonalityType, Question

logger = logging.getLogger(__name__)


def _read_json(path: str):
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise ValueError(f"데이터 파일을 찾을 수 없습니다: {path}")
    except json.JSONDecodeError as e:
        raise ValueError(f"데이터 파일 JSON 형식 오류 ({path}): {e}")


@lru_cache(maxsize=8)
def load_questions(path: str = QUESTIONS_FILE) -> List[Question]:
    """
    문항 JSON 파일을 읽어 id 오름차순 Question 리스트로 반환한다.

    파일 형식: {"questions": [{"id": 1, "text": "...", "type_weights": {"observer": 1}}, ...]}
    """
    raw = _read_json(path)
    items = raw.get("questions", []) if isinstance(raw, dict) else raw

    questions: List[Question] = []
    for idx, item in enumerate(items):
        try:
            questions.append(Question.model_validate(item))
        except ValidationError as e:
            raise ValueError(f"item[{idx}]: Question 생성 실패 — {e}") from e

    ids = [q.id for q in questions]
    if len(set(ids)) != len(ids):
        raise ValueError(f"문항 ID가 중복되었습니다 ({path})")

    questions.sort(key=lambda q: q.id)
    logger.info(f"load_questions: {len(questions)}개 문항 로딩 완료 ({path})")
    return questions


@lru_cache(maxsize=8)
def load_personality_types(path: str = TYPES_FILE) -> Dict[str, PersonalityType]:
    """성격 유형 카탈로그를 {type_code: PersonalityType}으로 반환한다."""
    raw = _read_json(path)
    items = raw.get("personality_types", []) if isinstance(raw, dict) else raw

    catalog: Dict[str, PersonalityType] = {}
    for idx, item in enumerate(items):
        try:
            ptype = PersonalityType.model_validate(item)
        except ValidationError as e:
            raise ValueError(f"item[{idx}]: PersonalityType 생성 실패 — {e}") from e
        catalog[ptype.type_code] = ptype

    logger.info(f"load_personality_types: {len(catalog)}개 유형 로딩 완료 ({path})")
    return catalog


def fetch_questions(attempt_id: str) -> List[Question]:
    """
    응시에 사용할 문항을 반환한다 (AttemptSessionStore의 문항 조회 함수).
    현재는 모든 응시가 같은 문항 집합을 사용한다.
    """
    logger.debug(f"fetch_questions: 응시 {attempt_id}")
    return list(load_questions())


def get_personality_type(type_code: str) -> Optional[PersonalityType]:
    return load_personality_types().get(type_code)


def validate_catalog() -> List[str]:
    """문항 가중치에 등장하지만 카탈로그에 없는 유형 코드 목록."""
    catalog = load_personality_types()
    codes = {code for q in load_questions() for code in q.type_weights}
    missing = sorted(codes - set(catalog))
    if missing:
        logger.warning(f"validate_catalog: 설명이 없는 유형 코드 {missing}")
    return missing
