from __future__ import annotations

import os
from collections.abc import Generator
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("OTEL_ENABLED", "true")

from app.business.reporting.analytics.service import FETCH_SOURCES
from app.business.workspace.models import Profile, Task
from app.core.auth import AuthUser, get_current_user
from app.core.config import get_settings
from app.core.database import Base, get_session_factory
from app.main import app
from app.otel import setup_inmemory_otel


@pytest.fixture()
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        session.add_all(
            [
                Profile(user_id="user-1", full_name="Span User", role="user"),
                Task(user_id="user-1", title="Trace me", created_at=datetime(2024, 1, 9, tzinfo=timezone.utc)),
            ]
        )
        session.commit()
    try:
        yield SessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("ANALYTICS_FETCH_WORKERS", "3")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def span_exporter() -> InMemorySpanExporter:
    exporter = setup_inmemory_otel("api")
    exporter.clear()
    return exporter


@pytest.fixture()
def client(session_factory: sessionmaker[Session]) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_current_user] = lambda: AuthUser(sub="user-1", roles=["user"])
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _analytics(client: TestClient, correlation_id: str):  # type: ignore[no-untyped-def]
    return client.post(
        "/api/analytics",
        json={"action": "get_task_analytics", "params": {"start_date": "2024-01-01", "end_date": "2024-01-31"}},
        headers={"X-Correlation-Id": correlation_id},
    )


def test_request_span_contains_correlation_id(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    response = client.get("/health", headers={"X-Correlation-Id": "otel-corr-1"})
    assert response.status_code == 200

    spans = span_exporter.get_finished_spans()
    assert spans
    assert any(span.attributes.get("correlation_id") == "otel-corr-1" for span in spans)


def test_build_span_contains_action_and_correlation(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    response = _analytics(client, "otel-build-corr-1")
    assert response.status_code == 200

    build_spans = [span for span in span_exporter.get_finished_spans() if span.name == "analytics.build"]
    assert len(build_spans) == 1
    build = build_spans[0]
    assert build.attributes.get("analytics.action") == "get_task_analytics"
    assert build.attributes.get("analytics.window_days") == 31
    assert build.attributes.get("correlation_id") == "otel-build-corr-1"


def test_fetch_spans_are_children_of_build_span(client: TestClient, span_exporter: InMemorySpanExporter) -> None:
    response = _analytics(client, "otel-fetch-corr-1")
    assert response.status_code == 200

    spans = span_exporter.get_finished_spans()
    build = next(span for span in spans if span.name == "analytics.build")
    fetch_spans = {span.name: span for span in spans if span.name.startswith("analytics.fetch.")}

    assert set(fetch_spans) == {f"analytics.fetch.{source}" for source in FETCH_SOURCES}
    assert all(span.parent is not None and span.parent.span_id == build.context.span_id for span in fetch_spans.values())
    assert all(span.attributes.get("correlation_id") == "otel-fetch-corr-1" for span in fetch_spans.values())
    assert fetch_spans["analytics.fetch.tasks"].attributes.get("analytics.row_count") == 1
