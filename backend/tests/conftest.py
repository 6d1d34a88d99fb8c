"""
Shared fixtures: a file-backed SQLite database per test, seed helpers and a fake scorer.

The app's own engine is created at import time from DATABASE_URL, so point it at a throwaway
SQLite file before anything from feed_service is imported. Tests never use that engine; they
override get_db / the orchestrator with the per-test one.
"""
import os
import tempfile
import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

_IMPORT_DB_DIR = tempfile.mkdtemp(prefix="feed_cache_import_")
os.environ["DATABASE_URL"] = f"sqlite:///{_IMPORT_DB_DIR}/import.db"
os.environ.setdefault("SCORER_URL", "http://scorer.test/rank")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from feed_service.core.errors import ScorerInvocationError  # noqa: E402
from feed_service.db.base import Base  # noqa: E402
from feed_service.models import CacheRow, FeedItem, Preference, Profile  # noqa: E402
from feed_service.services.regeneration.heartbeat import reset_regeneration_heartbeat  # noqa: E402
from feed_service.services.regeneration.orchestrator import RegenerationOrchestrator  # noqa: E402
from feed_service.services.scorer.types import ScoredItem, ScorerResponse  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'feed.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _reset_heartbeat():
    reset_regeneration_heartbeat()
    yield
    reset_regeneration_heartbeat()


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def make_item(db, now):
    """Insert a FeedItem. published_at defaults to now - id minutes so ids have distinct times."""

    def _make(item_id, published_at=None, **kwargs):
        item = FeedItem(
            id=item_id,
            title=kwargs.pop("title", f"Item {item_id}"),
            url=kwargs.pop("url", f"https://example.com/items/{item_id}"),
            published_at=published_at or (now - timedelta(minutes=item_id)),
            type=kwargs.pop("type", "article"),
            **kwargs,
        )
        db.add(item)
        db.commit()
        return item

    return _make


@pytest.fixture
def make_cache_row(db, now):
    """Insert a CacheRow; valid for a day unless expires_at is given."""

    def _make(user_id, item_id, score, expires_at=None, reason=None):
        row = CacheRow(
            user_id=user_id,
            item_id=item_id,
            final_score=score,
            reason_for_ranking=reason,
            expires_at=expires_at or (now + timedelta(days=1)),
        )
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def make_user(db):
    """Insert a Profile and (optionally) a Preference."""

    def _make(user_id, topics=(1,), onboarded=True, status="active", with_preferences=True):
        db.add(Profile(id=user_id, onboarding_completed=onboarded, status=status))
        if with_preferences:
            db.add(Preference(user_id=user_id, selected_topic_ids=list(topics) if topics is not None else None))
        db.commit()

    return _make


@pytest.fixture
def cache_rows(session_factory):
    """All cache rows (optionally for one user) as sorted (user_id, item_id, score, reason) tuples."""

    def _read(user_id=None):
        s = session_factory()
        try:
            q = s.query(CacheRow)
            if user_id is not None:
                q = q.filter(CacheRow.user_id == user_id)
            return sorted((r.user_id, r.item_id, r.final_score, r.reason_for_ranking) for r in q.all())
        finally:
            s.close()

    return _read


class FakeScorer:
    """
    In-process scorer. By default returns `rows_per_user` items (ids from item_ids) scored by
    position. fail_for raises ScorerInvocationError, reject_for returns success=False,
    empty_for returns success with no rows. Records every request and the peak concurrency.
    """

    def __init__(self, item_ids=(1, 2, 3), delay=0.0):
        self.item_ids = list(item_ids)
        self.delay = delay
        self.fail_for: dict[str, str] = {}
        self.reject_for: dict[str, str] = {}
        self.empty_for: set[str] = set()
        self.requests = []
        self.calls = []
        self._lock = threading.Lock()
        self._in_flight = 0
        self.max_in_flight = 0

    def score_user(self, request):
        with self._lock:
            self.requests.append(request)
            self.calls.append(request.user_id)
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if request.user_id in self.fail_for:
                raise ScorerInvocationError(self.fail_for[request.user_id], "http")
            if request.user_id in self.reject_for:
                return ScorerResponse(success=False, error=self.reject_for[request.user_id])
            if request.user_id in self.empty_for:
                return ScorerResponse(success=True, items=[])
            items = [
                ScoredItem(item_id=item_id, score=10.0 - i, reason=f"rank {i + 1}", position=i + 1)
                for i, item_id in enumerate(self.item_ids)
            ]
            return ScorerResponse(success=True, items=items)
        finally:
            with self._lock:
                self._in_flight -= 1

    def mark(self, label):
        with self._lock:
            self.calls.append(label)


@pytest.fixture
def fake_scorer():
    return FakeScorer()


@pytest.fixture
def slow_scorer():
    return FakeScorer(delay=0.05)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def orchestrator(session_factory, fake_scorer, sleeps, now):
    return RegenerationOrchestrator(
        session_factory,
        fake_scorer,
        batch_size=5,
        inter_batch_delay_seconds=2.0,
        sleep=sleeps.append,
        clock=lambda: now,
    )
