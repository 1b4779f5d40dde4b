"""
models/session_state.py

응시(Attempt)와 채점 결과를 담는 모델.
Pydantic BaseModel 기반 — 직렬화/역직렬화 및 타입 안전성 확보.
UI 코드 없음.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from config import ALLOWED_GENDERS

UUID_V4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

Score = Union[int, float]


def is_valid_attempt_id(value: Optional[str]) -> bool:
    """UUID v4 형식(8-4-4-4-12, 버전 4, variant 8/9/a/b)인지 확인."""
    return isinstance(value, str) and bool(UUID_V4_PATTERN.match(value))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AttemptStatus(str, Enum):
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class Attempt(BaseModel):
    """
    응시 1회를 표현하는 모델.

    Attributes:
        id:         UUID v4 문자열.
        created_at: 응시 생성 시각 (UTC).
        status:     created → in_progress → submitted 순으로만 전이.
        gender:     시작 화면에서 받은 성별.
        age:        나이 (나이대 선택 시 대표 나이).
    """

    id: str = Field(..., description="응시 ID (UUID v4)")
    created_at: datetime = Field(default_factory=_utcnow)
    status: AttemptStatus = Field(default=AttemptStatus.CREATED)
    gender: str = Field(..., description="성별 (male / female)")
    age: int = Field(..., ge=1, le=120, description="나이")

    @field_validator('id')
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not is_valid_attempt_id(v):
            raise ValueError(f"UUID v4 형식이 아닙니다: {v!r}")
        return v.lower()

    @field_validator('gender')
    @classmethod
    def validate_gender(cls, v: str) -> str:
        if v not in ALLOWED_GENDERS:
            raise ValueError(f"성별은 {', '.join(ALLOWED_GENDERS)} 중 하나여야 합니다.")
        return v


class PersonalityTypeResult(BaseModel):
    """유형별 합산 점수. 제출 때마다 새로 계산되며 변경되지 않는다."""
    model_config = ConfigDict(frozen=True)

    type_code: str
    aggregate_score: Score
    is_tied: bool = False


class ResultSet(BaseModel):
    """최고 점수 유형(들)의 정렬된 묶음."""
    model_config = ConfigDict(frozen=True)

    results: Tuple[PersonalityTypeResult, ...]
    max_score: Score

    @computed_field
    @property
    def is_tie(self) -> bool:
        return len(self.results) > 1

    @property
    def type_codes(self) -> Tuple[str, ...]:
        return tuple(r.type_code for r in self.results)


class AttemptResult(BaseModel):
    """결과 조회용 스냅샷 (공유 링크/새로고침 시 재조회)."""
    model_config = ConfigDict(frozen=True)

    attempt_id: str
    completed_at: datetime
    total_questions_answered: int = Field(..., ge=0)
    result_set: ResultSet
