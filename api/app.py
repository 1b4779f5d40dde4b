"""
api/app.py — FastAPI 앱 인스턴스 + CORS + 만료 세션 정리
"""

import logging
import threading
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import CLEANUP_INTERVAL
from api.routes import router
import api.session as session
from personality_quiz.services.question_bank import validate_catalog

logger = logging.getLogger(__name__)


def create_app(start_cleanup: bool = True) -> FastAPI:
    app = FastAPI(title="성격 유형 검사 API")

    # CORS (프런트엔드가 다른 출처에서 호출)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/api/health")
    async def health():
        return {"ok": True}

    # 문항 가중치와 유형 설명이 맞는지 기동 시 확인
    validate_catalog()

    # 만료 세션 주기적 정리
    if start_cleanup:
        def _cleanup_loop():
            while True:
                time.sleep(CLEANUP_INTERVAL)
                removed = session.cleanup_expired()
                if removed:
                    logger.info(f"만료 세션 {removed}개 정리")

        t = threading.Thread(target=_cleanup_loop, daemon=True)
        t.start()

    return app
