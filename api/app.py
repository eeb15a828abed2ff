"""
api/app.py — FastAPI 앱 인스턴스 (진단 세션 서비스)

세션 식별은 URL 토큰으로만 한다. 쿠키 세션은 쓰지 않는다.
"""

import logging
import threading
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
import api.session as session

CLEANUP_INTERVAL = 300  # 5분


def _cleanup_loop():
    while True:
        time.sleep(CLEANUP_INTERVAL)
        removed = session.cleanup_expired()
        if removed:
            logging.getLogger(__name__).info(f"만료 세션 {removed}개 정리")


def create_app(start_cleanup: bool = True) -> FastAPI:
    app = FastAPI(title="Leadership Assessment", docs_url=None, redoc_url=None)

    # CORS (UI가 다른 포트에서 뜨므로 허용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(router)

    # 만료 세션 주기적 정리
    if start_cleanup:
        t = threading.Thread(target=_cleanup_loop, daemon=True)
        t.start()

    return app
