from __future__ import annotations
from typing import AsyncIterator

from fastapi.requests import HTTPConnection
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class Database:
    """
    프로세스 전체에서 하나만 쓰는 DB 핸들 (engine + session factory).
    create_app 에서 만들고 lifespan 종료 시 dispose 합니다.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        is_sqlite = url.startswith("sqlite")
        self.engine = create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=not is_sqlite,
            connect_args={"check_same_thread": False} if is_sqlite else {},
        )
        if is_sqlite:
            # SQLite 는 연결마다 FK(cascade) 를 켜줘야 함
            @event.listens_for(self.engine.sync_engine, "connect")
            def _enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)

    async def create_all(self) -> None:
        # 모델 모듈이 import 되어 있어야 metadata 에 테이블이 잡힘
        from sensafe import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(conn: HTTPConnection) -> AsyncIterator[AsyncSession]:
    database: Database = conn.app.state.database
    async with database.sessionmaker() as session:
        yield session
