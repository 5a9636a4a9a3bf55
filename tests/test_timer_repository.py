import threading
from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from pydantic import ValidationError

from timer_cli.db.session import get_session_factory
from timer_cli.exceptions import StoreUnavailable
from timer_cli.models.history import HistoryEntryCreate, TimerOutcome
from timer_cli.models.timer import TimerRecordCreate, TimerRecordUpdate, TimerState
from timer_cli.repositories import HistoryRepository, TimerRepository, next_free_id

NOW = datetime(2026, 1, 1, 12, 0, 0)


def make_create(seconds: float = 60, message: str = None, pid: int = 4242) -> TimerRecordCreate:
    return TimerRecordCreate(
        duration_seconds=seconds,
        duration_text=f"{seconds}s",
        message=message,
        owner_pid=pid,
        owner_token=uuid4().hex,
        created_at=NOW,
        expires_at=NOW + timedelta(seconds=seconds),
    )


def make_entry(message: str, outcome: TimerOutcome = TimerOutcome.COMPLETED, offset: int = 0) -> HistoryEntryCreate:
    return HistoryEntryCreate(
        timestamp=NOW + timedelta(seconds=offset),
        duration_seconds=60,
        duration_text="1m",
        message=message,
        outcome=outcome,
    )


@pytest.fixture
def repos(db_path):
    factory = get_session_factory(db_path)
    return TimerRepository(factory), HistoryRepository(factory)


@pytest.mark.parametrize("used, expected", [
    ([], 1),
    ([1, 2, 3], 4),
    ([2, 3], 1),
    ([1, 3], 2),
    ([5, 1, 2], 3),
])
def test_next_free_id_is_smallest_unused(used, expected):
    assert next_free_id(used) == expected


def test_create_assigns_smallest_free_id(repos):
    timers, _ = repos
    first = timers.create(make_create())
    second = timers.create(make_create())
    third = timers.create(make_create())
    assert [first.id, second.id, third.id] == [1, 2, 3]

    assert timers.remove(2, second.owner_token)
    assert timers.create(make_create()).id == 2
    assert timers.create(make_create()).id == 4


def test_create_round_trips_fields(repos):
    timers, _ = repos
    record = timers.create(make_create(seconds=600, message="tea"))
    loaded = timers.get(record.id)
    assert loaded.state == TimerState.RUNNING
    assert loaded.message == "tea"
    assert loaded.expires_at - loaded.created_at == timedelta(minutes=10)
    assert loaded.duration == timedelta(minutes=10)
    assert loaded.cancel_requested_at is None


def test_concurrent_creates_never_share_an_id(db_path):
    errors = []
    created = []
    lock = threading.Lock()

    def worker():
        # Each thread gets its own repository, like a separate process
        timers = TimerRepository(get_session_factory(db_path))
        try:
            for _ in range(3):
                record = timers.create(make_create())
                with lock:
                    created.append(record.id)
        except Exception as e:  # pragma: no cover - reported below
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert sorted(created) == list(range(1, 19))


def test_expiry_before_creation_is_rejected():
    with pytest.raises(ValidationError):
        TimerRecordCreate(
            duration_seconds=60,
            duration_text="1m",
            owner_pid=1,
            owner_token="x",
            created_at=NOW,
            expires_at=NOW - timedelta(seconds=1),
        )


def test_non_positive_duration_is_rejected():
    with pytest.raises(ValidationError):
        make_create(seconds=0)


def test_update_requires_owner_token(repos):
    timers, _ = repos
    record = timers.create(make_create())

    assert timers.update(record.id, "not-the-owner", TimerRecordUpdate(state=TimerState.ALERTING)) is None
    assert timers.get(record.id).state == TimerState.RUNNING

    updated = timers.update(record.id, record.owner_token, TimerRecordUpdate(state=TimerState.ALERTING))
    assert updated.state == TimerState.ALERTING


def test_owner_update_keeps_cancel_flag(repos):
    timers, _ = repos
    record = timers.create(make_create())
    assert timers.request_cancel(record.id)

    updated = timers.update(
        record.id, record.owner_token, TimerRecordUpdate(expires_at=NOW + timedelta(hours=1))
    )
    assert updated.is_cancel_requested()


def test_request_cancel_unknown_id_is_noop(repos):
    timers, _ = repos
    assert timers.request_cancel(7) is False


def test_request_cancel_is_idempotent(repos):
    timers, _ = repos
    record = timers.create(make_create())
    assert timers.request_cancel(record.id)
    first = timers.get(record.id).cancel_requested_at
    assert timers.request_cancel(record.id)
    assert timers.get(record.id).cancel_requested_at == first


def test_request_cancel_all_flags_every_record(repos):
    timers, _ = repos
    for _ in range(3):
        timers.create(make_create())
    flagged = timers.request_cancel_all()
    assert [r.id for r in flagged] == [1, 2, 3]
    assert all(r.is_cancel_requested() for r in flagged)
    assert all(r.is_cancel_requested() for r in timers.read_all_active())


def test_terminate_removes_record_and_logs_once(repos):
    timers, history = repos
    record = timers.create(make_create(message="once"))

    entry = timers.terminate(record.id, record.owner_token, make_entry("once"))
    assert entry is not None
    assert timers.get(record.id) is None

    assert timers.terminate(record.id, record.owner_token, make_entry("once")) is None
    assert [e.message for e in history.read_history(10)] == ["once"]


def test_terminate_ignores_slot_reused_by_another_timer(repos):
    timers, history = repos
    old = timers.create(make_create())
    timers.remove(old.id, old.owner_token)
    new = timers.create(make_create())
    assert new.id == old.id

    assert timers.terminate(old.id, old.owner_token, make_entry("old")) is None
    assert timers.get(new.id) is not None
    assert history.read_history(10) == []


def test_read_history_most_recent_first_with_limit(repos):
    _, history = repos
    for i in range(5):
        history.append_history(make_entry(f"t{i}", offset=i))

    entries = history.read_history(3)
    assert [e.message for e in entries] == ["t4", "t3", "t2"]
    assert entries[0].outcome == TimerOutcome.COMPLETED


def test_unusable_database_path_raises_store_unavailable(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    with pytest.raises(StoreUnavailable):
        get_session_factory(str(blocker / "timers.db"))


def test_request_cancel_all_returns_current_owner_tokens(repos):
    timers, _ = repos
    old = timers.create(make_create())
    timers.remove(old.id, old.owner_token)
    new = timers.create(make_create())

    flagged = timers.request_cancel_all()

    assert [(r.id, r.owner_token) for r in flagged] == [(1, new.owner_token)]
