# /backend/sensafe/main.py

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from sensafe.api.routers import auth, user, relationship, location, realtime
from sensafe.config import Settings
from sensafe.db import Database
from sensafe.errors import register_exception_handlers
from sensafe.logging import setup_logging
from sensafe.services.connection_manager import ConnectionManager


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)

    # DB 핸들은 프로세스에 하나. 라우터는 get_db 로 요청마다 세션만 받아 씀
    database = Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # 앱 시작 시
        if settings.create_tables:
            await database.create_all()
        logger.info("SenSafe API started")
        try:
            yield
        finally:
            # 앱 종료 시
            await database.dispose()
            logger.info("SenSafe API stopped")

    app = FastAPI(
        title="SenSafe API",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.connections = ConnectionManager()

    # 💡 CORS 미들웨어를 먼저 등록 (쿠키 인증이라 allow_credentials 필요)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(user.router)
    app.include_router(relationship.router)
    app.include_router(location.router)
    app.include_router(realtime.router)

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


app = create_app()
