from __future__ import annotations

from collections.abc import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


def build_session_factory(url: str, **engine_kwargs) -> sessionmaker[Session]:
    engine = create_engine(url, pool_pre_ping=True, future=True, **engine_kwargs)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def dispose_session_factory(factory: sessionmaker[Session]) -> None:
    engine = factory.kw.get('bind')
    if engine is not None:
        engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    factory: sessionmaker[Session] = request.app.state.session_factory
    with factory() as db:
        yield db
