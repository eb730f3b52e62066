"""Shared fixtures: a populated snapshot cache and its query service."""

import pytest

from builders import (
    IOT_REGISTRAR,
    OWNER_B,
    SNAPSHOT_TS,
    key,
    make_delegation,
    make_epoch,
    make_position,
    make_snapshot,
)
from vestake.enums import LockupKind, SubNetwork
from vestake.services.export import ExportService
from vestake.services.query import QueryService
from vestake.services.schemas.results import Snapshot
from vestake.services.snapshot_cache import SnapshotCache


@pytest.fixture()
def snapshot() -> Snapshot:
    """Three veHNT positions (IOT-delegated, MOBILE-delegated, undelegated) and one veIOT position."""
    positions = [
        make_position(key(10), amount=100),
        make_position(key(11), amount=200),
        make_position(key(12), amount=300, kind=LockupKind.CONSTANT, start_ts=0, end_ts=1_000),
        make_position(key(13), amount=50, registrar=IOT_REGISTRAR),
    ]
    delegations = [
        make_delegation(key(60), key(10), SubNetwork.IOT, last_claimed_epoch=19_597),
        make_delegation(key(61), key(11), SubNetwork.MOBILE, last_claimed_epoch=19_599),
    ]
    epochs = tuple(make_epoch(e, start_ts=e * 86_400, issued=e < 19_600) for e in range(19_597, 19_601))
    return make_snapshot(
        timestamp=SNAPSHOT_TS,
        positions=positions,
        delegations=delegations,
        owners={key(11): OWNER_B, key(13): OWNER_B},
        epochs=epochs,
    )


@pytest.fixture()
def cache(snapshot: Snapshot) -> SnapshotCache:
    c: SnapshotCache = SnapshotCache(history_window_secs=960)
    c.install(snapshot)
    return c


@pytest.fixture()
def query(cache: SnapshotCache) -> QueryService:
    return QueryService(cache, page_limit=500, top_owners_limit=100, export_service=ExportService())
