"""Latest snapshot plus a short, timestamp-addressable history.

One CacheView object holds everything readers need. install() builds the
next view off to the side and swaps the reference under a lock, so readers
observe either the old view or the new one, never a mix.
"""

import threading
from collections.abc import Mapping
from dataclasses import dataclass

import structlog

from vestake.enums import Grouping
from vestake.services.errors import DataNotInitializedError, MissingPositionError
from vestake.services.schemas.results import OwnerAccount, Position, Snapshot

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_WINDOW_SECS: int = 16 * 60

OwnerPositions = Mapping[Grouping, tuple[Position, ...]]


@dataclass(frozen=True, slots=True)
class CacheView:
    latest: Snapshot
    history: Mapping[int, Snapshot]
    positions: Mapping[Grouping, Mapping[str, Position]]
    owner_positions: Mapping[str, OwnerPositions]

    def account(self, owner: str) -> OwnerAccount | None:
        return self.latest.owners.get(owner)


def _index_positions(snapshot: Snapshot) -> dict[Grouping, dict[str, Position]]:
    return {
        grouping: {position.key: position for position in data.positions}
        for grouping, data in snapshot.groupings.items()
    }


def _index_owners(
    snapshot: Snapshot,
    positions: Mapping[Grouping, Mapping[str, Position]],
) -> dict[str, OwnerPositions]:
    owners: dict[str, OwnerPositions] = {}
    for owner, account in snapshot.owners.items():
        resolved: dict[Grouping, tuple[Position, ...]] = {}
        for grouping, keys in account.positions.items():
            by_key: Mapping[str, Position] = positions.get(grouping, {})
            found: list[Position] = []
            for key in keys:
                position: Position | None = by_key.get(key)
                if position is None:
                    raise MissingPositionError(
                        f"expected to find {grouping.value} position {key} for account {owner}"
                    )
                found.append(position)
            resolved[grouping] = tuple(found)
        owners[owner] = resolved
    return owners


class SnapshotCache:
    """Single-writer, many-reader snapshot store. One instance per process."""

    def __init__(self, history_window_secs: int = DEFAULT_HISTORY_WINDOW_SECS) -> None:
        self.history_window_secs: int = history_window_secs
        self._lock: threading.Lock = threading.Lock()
        self._view: CacheView | None = None

    # ------------------------------------------------------------------
    # Writer
    # ------------------------------------------------------------------

    def install(self, snapshot: Snapshot) -> None:
        """Make *snapshot* the latest and prune history older than the window.

        Raises MissingPositionError, leaving the previous view installed, when
        an owner references a position the snapshot does not contain.
        """
        positions = _index_positions(snapshot)
        owner_positions = _index_owners(snapshot, positions)
        cutoff: int = snapshot.timestamp - self.history_window_secs

        with self._lock:
            previous: Mapping[int, Snapshot] = self._view.history if self._view else {}
            history: dict[int, Snapshot] = {
                ts: cached for ts, cached in previous.items() if ts > cutoff
            }
            history[snapshot.timestamp] = snapshot
            self._view = CacheView(
                latest=snapshot,
                history=history,
                positions=positions,
                owner_positions=owner_positions,
            )

        logger.info(
            "Installed snapshot",
            timestamp=snapshot.timestamp,
            history_entries=len(history),
            owners=len(owner_positions),
        )

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        with self._lock:
            return self._view is not None

    def view(self) -> CacheView:
        with self._lock:
            view: CacheView | None = self._view
        if view is None:
            raise DataNotInitializedError()
        return view

    def latest(self) -> Snapshot:
        return self.view().latest

    def at(self, timestamp: int) -> Snapshot | None:
        """Cached snapshot created at *timestamp*, None when absent or pruned."""
        return self.view().history.get(timestamp)

    def lookup_position(self, key: str, grouping: Grouping = Grouping.HNT) -> Position | None:
        return self.view().positions.get(grouping, {}).get(key)

    def positions_of_owner(self, owner: str) -> OwnerPositions | None:
        return self.view().owner_positions.get(owner)

    def history_timestamps(self) -> list[int]:
        with self._lock:
            view: CacheView | None = self._view
        return sorted(view.history) if view else []
