from datetime import datetime, timedelta

from models import REQUEST_ACTIVE, REQUEST_CANCELLED, REQUEST_COMPLETED, REQUEST_EXPIRED
from stats import get_cleanup_stats
from sweep import SweepResult, sweep
from votes import cast_vote

from helpers import make_request, make_user, reload_request, today


def test_past_travel_date_expires():
    u = make_user("U")
    r = make_request(u.id, travel_date=today() - timedelta(days=1))
    result = sweep()
    assert result.expired >= 1
    assert reload_request(r.id).status == REQUEST_EXPIRED


def test_old_request_expires_even_with_future_date():
    u = make_user("U")
    r = make_request(u.id, created_at=datetime.utcnow() - timedelta(hours=25))
    result = sweep()
    assert result.expired == 1
    assert reload_request(r.id).status == REQUEST_EXPIRED


def test_fresh_request_for_today_stays_active():
    u = make_user("U")
    r = make_request(u.id, travel_date=today())
    result = sweep()
    assert result == SweepResult(expired=0, completed=0)
    assert reload_request(r.id).status == REQUEST_ACTIVE


def test_expiry_window_from_environment(monkeypatch):
    monkeypatch.setenv("REQUEST_EXPIRY_HOURS", "1")
    u = make_user("U")
    r = make_request(u.id, created_at=datetime.utcnow() - timedelta(hours=2))
    assert sweep().expired == 1
    assert reload_request(r.id).status == REQUEST_EXPIRED


def test_explicit_clock_and_window():
    u = make_user("U")
    r = make_request(u.id, travel_date=today() + timedelta(days=3))
    later = today() + timedelta(days=5)
    assert sweep(now=later, expiry_hours=1000).expired == 1
    assert reload_request(r.id).status == REQUEST_EXPIRED


def test_full_active_request_completed():
    u = make_user("U")
    r = make_request(u.id, max_persons=2, occupancy=2)
    result = sweep()
    assert result.completed == 1
    assert result.expired == 0
    assert reload_request(r.id).status == REQUEST_COMPLETED


def test_two_accepts_then_sweep_keeps_completed():
    owner = make_user("Owner")
    a = make_user("A")
    b = make_user("B")
    r = make_request(owner.id, max_persons=2)
    cast_vote(a.id, r.id, "accepted")
    cast_vote(b.id, r.id, "accepted")
    sweep()
    stored = reload_request(r.id)
    assert stored.status == REQUEST_COMPLETED
    assert stored.current_occupancy == 2


def test_full_and_expired_request_ends_expired():
    u = make_user("U")
    r = make_request(u.id, max_persons=1, occupancy=1, travel_date=today() - timedelta(days=2))
    result = sweep()
    assert result == SweepResult(expired=1, completed=0)
    assert reload_request(r.id).status == REQUEST_EXPIRED


def test_sweep_is_idempotent():
    u = make_user("U")
    make_request(u.id, travel_date=today() - timedelta(days=1))
    make_request(u.id, max_persons=1, occupancy=1)
    first = sweep()
    second = sweep()
    assert first == SweepResult(expired=1, completed=1)
    assert second == SweepResult(expired=0, completed=0)


def test_cancelled_request_untouched():
    u = make_user("U")
    old = make_request(u.id, status=REQUEST_CANCELLED, travel_date=today() - timedelta(days=3))
    full = make_request(u.id, status=REQUEST_CANCELLED, max_persons=1, occupancy=1)
    result = sweep()
    assert result == SweepResult(expired=0, completed=0)
    assert reload_request(old.id).status == REQUEST_CANCELLED
    assert reload_request(full.id).status == REQUEST_CANCELLED


def test_completed_request_not_expired():
    u = make_user("U")
    r = make_request(u.id, status=REQUEST_COMPLETED, max_persons=1, occupancy=1,
                     travel_date=today() - timedelta(days=1))
    sweep()
    assert reload_request(r.id).status == REQUEST_COMPLETED


def test_sweep_result_as_dict():
    assert SweepResult(expired=2, completed=1).as_dict() == {"expired": 2, "completed": 1}


def test_cleanup_stats_counts_every_status():
    assert get_cleanup_stats() == {"active": 0, "completed": 0, "cancelled": 0, "expired": 0}
    u = make_user("U")
    make_request(u.id)
    make_request(u.id)
    make_request(u.id, status=REQUEST_CANCELLED)
    make_request(u.id, travel_date=today() - timedelta(days=1))
    sweep()
    assert get_cleanup_stats() == {"active": 2, "completed": 0, "cancelled": 1, "expired": 1}
