"""Tests for the memoizing recovery table."""

import threading
import time

from recovercheck.table import RecoveryKey, RecoveryTable, Role


def test_lookup_or_compute_runs_once():
    table = RecoveryTable()
    calls = []
    key = RecoveryKey(Role.GUARD, "pkg.F")

    def compute():
        calls.append(1)
        return True

    assert table.lookup_or_compute(key, compute) is True
    assert table.lookup_or_compute(key, compute) is True
    assert len(calls) == 1
    assert table.get(key) is True
    assert key in table


def test_false_results_are_memoized_too():
    table = RecoveryTable()
    key = RecoveryKey(Role.GUARD, "pkg.Missing")
    assert table.lookup_or_compute(key, lambda: False) is False
    assert table.lookup_or_compute(key, lambda: True) is False
    assert table.computations == 1


def test_reentrant_lookup_breaks_cycle():
    table = RecoveryTable()
    a = RecoveryKey(Role.HANDLER, "a.F")
    b = RecoveryKey(Role.HANDLER, "b.G")

    def compute_a():
        return table.lookup_or_compute(b, compute_b)

    def compute_b():
        return table.lookup_or_compute(a, compute_a)

    assert table.lookup_or_compute(a, compute_a) is False
    assert table.get(a) is False
    assert table.get(b) is False


def test_failed_computation_leaves_key_unresolved():
    table = RecoveryTable()
    key = RecoveryKey(Role.GUARD, "pkg.F")

    def boom():
        raise RuntimeError("boom")

    try:
        table.lookup_or_compute(key, boom)
    except RuntimeError:
        pass
    assert table.get(key) is None
    assert table.lookup_or_compute(key, lambda: True) is True


def test_lookup_local_unknown_name():
    table = RecoveryTable()
    assert table.lookup_local("worker") is None


def test_lookup_local_after_seeding():
    table = RecoveryTable()
    table.declare_local("worker")
    assert table.lookup_local("worker") is None
    table.lookup_or_compute(RecoveryKey(Role.GUARD, "worker", local=True), lambda: True)
    assert table.lookup_local("worker") is True
    assert table.lookup_local("worker", Role.HANDLER) is None


def test_local_and_qualified_keys_do_not_collide():
    table = RecoveryTable()
    table.lookup_or_compute(RecoveryKey(Role.GUARD, "worker", local=True), lambda: True)
    assert table.get(RecoveryKey(Role.GUARD, "worker")) is None


def test_fork_local_shares_qualified_entries_only():
    root = RecoveryTable()
    first = root.fork_local()
    second = root.fork_local()
    first.declare_local("worker")
    first.lookup_or_compute(RecoveryKey(Role.GUARD, "worker", local=True), lambda: True)
    first.lookup_or_compute(RecoveryKey(Role.GUARD, "pkg.F"), lambda: True)

    assert second.lookup_local("worker") is None
    assert second.get(RecoveryKey(Role.GUARD, "pkg.F")) is True
    assert root.get(RecoveryKey(Role.GUARD, "pkg.F")) is True


def test_concurrent_first_lookups_compute_once():
    table = RecoveryTable()
    key = RecoveryKey(Role.GUARD, "pkg.Slow")
    calls = []
    results = []

    def compute():
        calls.append(1)
        time.sleep(0.05)
        return True

    def worker():
        results.append(table.lookup_or_compute(key, compute))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert results == [True] * 8
