import uuid

import pytest
from fastapi.testclient import TestClient

import api.session as session
from api.app import create_app
from personality_quiz.models.question_model import Question
from personality_quiz.services.attempt_store import AttemptSessionStore


def make_questions(count: int):
    """홀수 문항은 A 유형, 짝수 문항은 B 유형에 가중치 1."""
    return [
        Question(id=i, text=f"문항 {i}", type_weights={"A" if i % 2 else "B": 1})
        for i in range(1, count + 1)
    ]


def answer_page(store: AttemptSessionStore, score: int = 5):
    for q in store.current_page_questions():
        store.set_answer(q.id, score)


@pytest.fixture
def attempt_id():
    return str(uuid.uuid4())


@pytest.fixture
def ab_questions():
    """A/B 두 유형, 세 번째 문항은 두 유형에 동시에 반영되는 복합 문항."""
    return [
        Question(id=1, text="Q1", type_weights={"A": 1}),
        Question(id=2, text="Q2", type_weights={"B": 1}),
        Question(id=3, text="Q3", type_weights={"A": 1, "B": 1}),
    ]


@pytest.fixture
def store(attempt_id):
    """문항 12개(3페이지)를 불러온 진행 중 스토어."""
    s = AttemptSessionStore(fetch_questions=lambda _aid: make_questions(12))
    s.initialize(attempt_id)
    return s


@pytest.fixture
def client():
    session.clear()
    with TestClient(create_app(start_cleanup=False)) as c:
        yield c
    session.clear()
