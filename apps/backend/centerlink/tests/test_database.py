"""Engine binding, seeding and row timestamps."""
from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC
from pathlib import Path

import pytest

from ..store import database
from ..store.models import CommunityCenter, ContactMessage, utcnow
from ..store.registry import seed_centers


@pytest.fixture
def bound(tmp_path: Path) -> Iterator[None]:
    database.bind(f"sqlite:///{tmp_path / 'centers.db'}")
    database.init_db()
    yield
    database.dispose()


def test_database_url_prefers_explicit_url(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CENTERLINK_DB_URL", "sqlite:///:memory:")
    assert database.database_url() == "sqlite:///:memory:"

    monkeypatch.delenv("CENTERLINK_DB_URL")
    monkeypatch.setenv("CENTERLINK_DB_PATH", str(tmp_path / "nested" / "app.db"))
    assert database.database_url() == f"sqlite:///{tmp_path / 'nested' / 'app.db'}"
    assert (tmp_path / "nested").is_dir()


def test_seeding_is_idempotent(bound: None) -> None:
    with database.SessionFactory() as session:
        assert seed_centers(session) == 5
        session.commit()
    with database.SessionFactory() as session:
        assert seed_centers(session) == 0
        assert session.get(CommunityCenter, "kampala-hub").manager_id == "admin-1"


def test_row_timestamps_are_utc(bound: None) -> None:
    assert utcnow().tzinfo is UTC

    with database.SessionFactory() as session:
        seed_centers(session)
        message = ContactMessage(
            center_id="kampala-hub",
            sender_user_id="visitor-1",
            sender_name="Visitor",
            subject="Opening hours",
            message="When are you open on weekends?",
            inquiry_type="general",
        )
        session.add(message)
        session.commit()

        assert message.created_at.tzinfo is UTC
        assert message.status == "pending"
