"""Tests for vestake.services.snapshot_cache."""

import threading
from dataclasses import replace

import pytest

from builders import OWNER_A, key, make_position, make_snapshot
from vestake.enums import Grouping, Pool
from vestake.services.errors import DataNotInitializedError, MissingPositionError
from vestake.services.schemas.results import OwnerAccount, Snapshot
from vestake.services.snapshot_cache import SnapshotCache


def _snapshot(ts: int) -> Snapshot:
    return make_snapshot(timestamp=ts, positions=[make_position(key(10)), make_position(key(11))])


class TestUninitialized:
    def test_view_raises(self) -> None:
        cache: SnapshotCache = SnapshotCache()
        assert not cache.is_initialized
        with pytest.raises(DataNotInitializedError):
            cache.latest()

    def test_history_empty(self) -> None:
        assert SnapshotCache().history_timestamps() == []


class TestInstall:
    def test_latest_and_indices(self) -> None:
        cache: SnapshotCache = SnapshotCache()
        cache.install(_snapshot(1_000))
        assert cache.is_initialized
        assert cache.latest().timestamp == 1_000
        position = cache.lookup_position(key(10))
        assert position is not None and position.owner == OWNER_A
        assert cache.lookup_position(key(10), Grouping.IOT) is None
        owned = cache.positions_of_owner(OWNER_A)
        assert owned is not None
        assert [p.key for p in owned[Grouping.HNT]] == [key(10), key(11)]

    def test_history_pruned_relative_to_new_snapshot(self) -> None:
        cache: SnapshotCache = SnapshotCache(history_window_secs=960)
        for ts in (1_000, 1_500, 2_000):
            cache.install(_snapshot(ts))
        assert cache.history_timestamps() == [1_500, 2_000]
        assert cache.at(1_000) is None
        assert cache.at(1_500) is not None

    def test_window_boundary_is_exclusive(self) -> None:
        cache: SnapshotCache = SnapshotCache(history_window_secs=960)
        cache.install(_snapshot(1_000))
        cache.install(_snapshot(1_960))
        assert cache.history_timestamps() == [1_960]

    def test_unknown_timestamp_is_a_miss(self) -> None:
        cache: SnapshotCache = SnapshotCache()
        cache.install(_snapshot(1_000))
        assert cache.at(999) is None

    def test_dangling_owner_reference_keeps_previous_view(self) -> None:
        cache: SnapshotCache = SnapshotCache()
        good: Snapshot = _snapshot(1_000)
        cache.install(good)

        broken_account: OwnerAccount = OwnerAccount(owner=OWNER_A, positions={Grouping.HNT: (key(99),)})
        broken: Snapshot = replace(_snapshot(2_000), owners={OWNER_A: broken_account})
        with pytest.raises(MissingPositionError):
            cache.install(broken)
        assert cache.latest() is good
        assert cache.history_timestamps() == [1_000]


def _sized_snapshot(ts: int) -> Snapshot:
    """Snapshot whose position amounts are derived from *ts*, so readers can tell snapshots apart."""
    return make_snapshot(
        timestamp=ts,
        positions=[make_position(key(10), amount=ts), make_position(key(11), amount=2 * ts)],
    )


class TestConcurrentReaders:
    def _check_view(self, cache: SnapshotCache) -> None:
        view = cache.view()
        ts: int = view.latest.timestamp
        assert view.history[ts] is view.latest
        assert view.positions[Grouping.HNT][key(10)].locked_tokens == ts
        assert [p.locked_tokens for p in view.owner_positions[OWNER_A][Grouping.HNT]] == [ts, 2 * ts]
        embedded = view.latest.grouping(Grouping.HNT).positions
        totals = view.latest.pool(Grouping.HNT, Pool.NETWORK).totals
        assert totals.count == len(embedded)
        assert totals.locked_tokens == sum(p.locked_tokens for p in embedded) == 3 * ts

        historical = cache.at(ts)
        assert historical is not None and historical.timestamp == ts

        owned = cache.positions_of_owner(OWNER_A)
        assert owned is not None
        first, second = (p.locked_tokens for p in owned[Grouping.HNT])
        assert second == 2 * first

    def test_readers_never_see_a_mixed_view(self) -> None:
        snapshots: list[Snapshot] = [_sized_snapshot(ts) for ts in range(1, 301)]
        cache: SnapshotCache = SnapshotCache(history_window_secs=10_000)
        cache.install(snapshots[0])

        done: threading.Event = threading.Event()
        errors: list[BaseException] = []
        reads: list[int] = []

        def writer() -> None:
            try:
                for snapshot in snapshots[1:]:
                    cache.install(snapshot)
            finally:
                done.set()

        def reader() -> None:
            count: int = 0
            try:
                while not done.is_set() or count == 0:
                    self._check_view(cache)
                    count += 1
            except BaseException as e:
                errors.append(e)
            reads.append(count)

        threads: list[threading.Thread] = [threading.Thread(target=reader) for _ in range(4)]
        threads.append(threading.Thread(target=writer))
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        assert len(reads) == 4 and all(n > 0 for n in reads)
        assert cache.latest().timestamp == 300
        assert cache.history_timestamps() == list(range(1, 301))
