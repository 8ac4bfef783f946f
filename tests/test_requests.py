from pharmacy_erp.modules.documents.requests import RowRequestTracker


def test_last_request_wins():
    tracker = RowRequestTracker()
    first = tracker.issue(0)
    second = tracker.issue(0)
    assert not tracker.accept(0, first)
    assert tracker.accept(0, second)
    # settled: a repeated delivery is stale too
    assert not tracker.accept(0, second)


def test_rows_are_independent():
    tracker = RowRequestTracker()
    a = tracker.issue(0)
    b = tracker.issue(1)
    assert tracker.accept(1, b)
    assert tracker.accept(0, a)


def test_forget_shifts_rows_below():
    tracker = RowRequestTracker()
    tracker.issue(0)
    t1 = tracker.issue(1)
    t2 = tracker.issue(2)
    tracker.forget(1)
    assert tracker.pending() == {0: 1, 1: t2}
    assert not tracker.is_current(1, t1)
