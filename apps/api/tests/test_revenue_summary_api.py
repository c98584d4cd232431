from __future__ import annotations

from collections.abc import Generator
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app import audit
from app.business.reporting.revenue.service import period_key, revenue_reporting_service
from app.business.workspace.models import Profile, RevenueEntry, RevenueTarget
from app.core.auth import AuthUser, get_current_user
from app.core.config import AnalyticsConfig, get_settings
from app.core.database import Base, get_db
from app.main import app


def _at(month: int, day: int) -> datetime:
    return datetime(2024, month, day, 15, tzinfo=timezone.utc)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def seeded(db_session: Session) -> Session:
    db_session.add_all(
        [
            Profile(user_id="admin-1", full_name="Ada Admin", role="admin"),
            Profile(user_id="rep-1", full_name="Rae Rep", role="user", company="Northwind"),
            Profile(user_id="rep-2", full_name="Sam Seller", role="user"),
            RevenueEntry(user_id="rep-1", revenue_amount=Decimal("1000"), revenue_type="sales", transaction_date=_at(1, 10)),
            RevenueEntry(user_id="rep-1", revenue_amount=Decimal("200"), revenue_type="commission", transaction_date=_at(2, 5)),
            RevenueEntry(user_id="rep-1", revenue_amount=Decimal("300"), revenue_type="bonus", transaction_date=_at(4, 2)),
            RevenueEntry(
                user_id="rep-1",
                revenue_amount=Decimal("5000"),
                revenue_type="sales",
                status="refunded",
                transaction_date=_at(1, 11),
            ),
            RevenueEntry(user_id="rep-2", revenue_amount=Decimal("2500"), revenue_type="project", transaction_date=_at(3, 1)),
            RevenueTarget(
                user_id="rep-1",
                target_amount=Decimal("2000"),
                target_period="quarterly",
                period_start=date(2024, 1, 1),
                period_end=date(2024, 3, 31),
            ),
        ]
    )
    db_session.commit()
    return db_session


@pytest.fixture(autouse=True)
def clear_state() -> Generator[None, None, None]:
    get_settings.cache_clear()
    audit.audit_entries.clear()
    yield
    get_settings.cache_clear()
    audit.audit_entries.clear()


@pytest.fixture()
def caller() -> str:
    return "rep-1"


@pytest.fixture()
def client(seeded: Session, caller: str) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield seeded

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: AuthUser(sub=caller, roles=["user"])

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.mark.parametrize(
    ("period", "expected"),
    [
        ("daily", "2024-02-14"),
        ("weekly", "2024-02-11"),
        ("monthly", "2024-02"),
        ("quarterly", "2024-Q1"),
        ("yearly", "2024"),
    ],
)
def test_period_key(period: str, expected: str) -> None:
    assert period_key(date(2024, 2, 14), period) == expected  # type: ignore[arg-type]


def test_weekly_key_for_sunday_is_same_day() -> None:
    assert period_key(date(2024, 2, 11), "weekly") == "2024-02-11"


def test_summary_for_own_user(client: TestClient) -> None:
    response = client.get(
        "/api/revenue/summary",
        params={"period": "monthly", "start_date": "2024-01-01", "end_date": "2024-03-31"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user_id"] == "rep-1"
    assert Decimal(body["totals"]["total_revenue"]) == Decimal("1200")
    assert Decimal(body["totals"]["sales_revenue"]) == Decimal("1000")
    assert Decimal(body["totals"]["commission_revenue"]) == Decimal("200")
    assert body["totals"]["transaction_count"] == 2
    assert [row["period"] for row in body["period_data"]] == ["2024-01", "2024-02"]
    assert body["user_performance"] == []

    target = body["targets"][0]
    assert Decimal(target["achieved_amount"]) == Decimal("1200")
    assert target["attainment_rate"] == 60


def test_non_admin_cannot_read_someone_else(client: TestClient) -> None:
    response = client.get("/api/revenue/summary", params={"user_id": "rep-2"})

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ACCESS_DENIED"
    assert audit.audit_entries[-1]["action"] == "access.denied"


@pytest.mark.parametrize("caller", ["admin-1"])
def test_admin_summary_is_organization_wide(client: TestClient) -> None:
    response = client.get(
        "/api/revenue/summary",
        params={"period": "quarterly", "start_date": "2024-01-01", "end_date": "2024-06-30"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user_id"] is None
    assert Decimal(body["totals"]["total_revenue"]) == Decimal("4000")
    assert [row["period"] for row in body["period_data"]] == ["2024-Q1", "2024-Q2"]

    performance = body["user_performance"]
    assert [row["user_id"] for row in performance] == ["rep-2", "rep-1"]
    assert performance[1]["user_name"] == "Rae Rep"
    assert performance[1]["company"] == "Northwind"
    assert Decimal(performance[1]["average_deal_size"]) == Decimal("500")


@pytest.mark.parametrize("caller", ["admin-1"])
def test_admin_can_target_one_user(client: TestClient) -> None:
    response = client.get(
        "/api/revenue/summary",
        params={"user_id": "rep-2", "start_date": "2024-01-01", "end_date": "2024-12-31"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user_id"] == "rep-2"
    assert Decimal(body["totals"]["project_revenue"]) == Decimal("2500")
    assert body["targets"] == []


def test_service_defaults_to_trailing_window(seeded: Session) -> None:
    summary = revenue_reporting_service.summary(
        seeded,
        "rep-1",
        config=AnalyticsConfig(endpoint="sqlite://", default_window_days=10),
        today=date(2024, 2, 10),
    )

    assert (summary.start_date, summary.end_date) == (date(2024, 2, 1), date(2024, 2, 10))
    assert summary.totals.transaction_count == 1
    assert summary.totals.commission_revenue == Decimal("200.00")
