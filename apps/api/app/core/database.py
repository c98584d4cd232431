from __future__ import annotations

from collections.abc import Callable, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.core.config import AnalyticsConfig, get_settings


class Base(DeclarativeBase):
    pass


def build_database_url(config: AnalyticsConfig) -> URL:
    url = make_url(config.endpoint)
    if config.credential:
        url = url.set(password=config.credential)
    return url


engine = create_engine(
    build_database_url(AnalyticsConfig.from_settings(get_settings())),
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal
