from decimal import Decimal
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Question(BaseModel):
    """
    성격 유형 검사 문항 모델
    Pydantic v2 적용. 응시 중에는 변경되지 않는다 (frozen).
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(
        ...,
        description="문항 번호 (고유 식별자, 정렬 기준)"
    )
    text: str = Field(
        ...,
        min_length=1,
        description="문항 내용"
    )
    type_weights: Dict[str, Decimal] = Field(
        default_factory=dict,
        description="성격 유형 코드별 가중치. 클라이언트에 내려주는 문항에서는 비어 있을 수 있다."
    )

    @field_validator('type_weights')
    @classmethod
    def validate_type_codes(cls, v: Dict[str, Decimal]) -> Dict[str, Decimal]:
        """
        검증 로직: 유형 코드는 빈 문자열일 수 없다.
        """
        for code in v:
            if not code or not code.strip():
                raise ValueError("성격 유형 코드(type_weights의 키)는 비어 있을 수 없습니다.")
        return v


class PersonalityType(BaseModel):
    """결과 화면에 표시되는 성격 유형 설명."""
    model_config = ConfigDict(frozen=True)

    type_code: str = Field(..., min_length=1, description="성격 유형 코드")
    type_name: str = Field(..., min_length=1, description="유형명 (예: 관찰형)")
    title: str = Field(..., description="결과 카드 제목")
    theme_sentence: str = Field("", description="한 줄 요약")
    description: str = Field("", description="상세 설명")
    description_points: List[str] = Field(default_factory=list)
    strength_keywords: List[str] = Field(default_factory=list)
    weakness_keywords: List[str] = Field(default_factory=list)
