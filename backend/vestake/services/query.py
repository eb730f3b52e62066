"""Read-only query facade over the snapshot cache.

Every method takes one CacheView reference and works on it outside the
cache lock, so a response is always built from a single snapshot.
"""

from collections.abc import Sequence
from typing import TypeVar

import structlog

from vestake.enums import ExportKind, Grouping, Pool
from vestake.services._helpers import PRECISION_FACTOR, parse_pubkey, ts_to_iso, utc_day
from vestake.services._types import (
    AccountDict,
    DelegatedPageDict,
    DelegationDict,
    EpochSummaryDict,
    ExportDataDict,
    LockedBalancesDict,
    MetadataDict,
    PoolDict,
    PositionDict,
    PositionsPageDict,
    StatusDict,
    TopOwnerDict,
    TopOwnersDict,
    VehntBalanceDict,
)
from vestake.services.epoch_info import partial_epoch
from vestake.services.errors import InvalidPageError, PositionNotFoundError, SnapshotNotFoundError
from vestake.services.export import ExportService, legacy_position_to_dict
from vestake.services.refresh import RefreshScheduler
from vestake.services.schemas.results import (
    EpochSummary,
    LockedBalances,
    OwnerAccount,
    PoolData,
    Position,
    Snapshot,
)
from vestake.services.snapshot_cache import CacheView, SnapshotCache
from vestake.services.voting_weight import scale_down

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_LIMIT: int = 500
DEFAULT_TOP_OWNERS: int = 100


# ---- Serializers -------------------------------------------------------------


def position_to_dict(position: Position) -> PositionDict:
    delegation = position.delegation
    return PositionDict(
        position_key=position.key,
        owner=position.owner,
        mint=position.mint,
        locked_tokens=position.locked_tokens,
        start_ts=position.start_ts,
        genesis_end_ts=position.genesis_end_ts or 0,
        end_ts=position.end_ts,
        duration_s=position.duration_s,
        voting_weight=position.vehnt,
        lockup_type=position.lockup_kind.value,
        delegated=DelegationDict(
            delegated_position_key=delegation.key,
            sub_dao=delegation.sub_network.value,
            last_claimed_epoch=delegation.last_claimed_epoch,
            pending_rewards=delegation.pending_rewards,
        )
        if delegation
        else None,
    )


def pool_to_dict(pool: PoolData) -> PoolDict:
    totals = pool.totals
    stats = pool.stats
    return PoolDict(
        total={
            "count": totals.count,
            "vehnt": scale_down(totals.voting_weight),
            "hnt": totals.locked_tokens,
            "lockup": totals.lockup_secs,
            "fall_rate": scale_down(totals.fall_rate),
        },
        stats={
            "avg_vehnt": scale_down(stats.avg_voting_weight),
            "median_vehnt": scale_down(stats.median_voting_weight),
            "avg_hnt": stats.avg_locked_tokens,
            "median_hnt": stats.median_locked_tokens,
            "avg_lockup": stats.avg_lockup_secs,
            "median_lockup": stats.median_lockup_secs,
        }
        if stats
        else None,
    )


def balances_to_dict(balances: LockedBalances) -> LockedBalancesDict:
    return LockedBalancesDict(
        vehnt=VehntBalanceDict(
            total=scale_down(balances.vehnt),
            iot_delegated=scale_down(balances.iot_delegated),
            mobile_delegated=scale_down(balances.mobile_delegated),
            undelegated=scale_down(balances.undelegated),
        ),
        locked_hnt=balances.locked_hnt,
        pending_iot=balances.pending_iot,
        pending_mobile=balances.pending_mobile,
        veiot=scale_down(balances.veiot),
        locked_iot=balances.locked_iot,
        vemobile=scale_down(balances.vemobile),
        locked_mobile=balances.locked_mobile,
    )


def _scale_score(score: int | None) -> int | None:
    return None if score is None else score // PRECISION_FACTOR


def epoch_to_dict(summary: EpochSummary) -> EpochSummaryDict:
    return EpochSummaryDict(
        epoch=summary.epoch,
        iot_dc_burned=summary.iot_dc_burned,
        mobile_dc_burned=summary.mobile_dc_burned,
        iot_vehnt_at_epoch_start=summary.iot_weight_at_epoch_start,
        mobile_vehnt_at_epoch_start=summary.mobile_weight_at_epoch_start,
        iot_delegation_rewards_issued=summary.iot_delegation_rewards_issued,
        mobile_delegation_rewards_issued=summary.mobile_delegation_rewards_issued,
        iot_utility_score=_scale_score(summary.iot_utility_score),
        mobile_utility_score=_scale_score(summary.mobile_utility_score),
        epoch_start_at_ts=summary.epoch_start_ts,
        rewards_issued_at_ts=summary.rewards_issued_at_ts,
        rewards_issued_at=ts_to_iso(summary.rewards_issued_at_ts),
        initialized=summary.initialized,
    )


# ---- Service -----------------------------------------------------------------


class QueryService:
    """Serves positions, metadata, accounts and epochs from the installed snapshot."""

    def __init__(
        self,
        cache: SnapshotCache,
        scheduler: RefreshScheduler | None = None,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        top_owners_limit: int = DEFAULT_TOP_OWNERS,
        export_service: ExportService | None = None,
    ) -> None:
        self.cache: SnapshotCache = cache
        self.scheduler: RefreshScheduler | None = scheduler
        self.page_limit: int = page_limit
        self.top_owners_limit: int = top_owners_limit
        self.export_service: ExportService = export_service or ExportService()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _snapshot(self, timestamp: int | None = None) -> Snapshot:
        view: CacheView = self.cache.view()
        if timestamp is None:
            return view.latest
        snapshot: Snapshot | None = view.history.get(timestamp)
        if snapshot is None:
            raise SnapshotNotFoundError(f"Data not found for timestamp = {timestamp}")
        return snapshot

    def _page(self, items: Sequence[T], start: int, limit: int | None) -> list[T]:
        total: int = len(items)
        if start < 0 or start > total:
            raise InvalidPageError(
                f"Start index {start} is greater than the total number of positions {total}"
            )
        size: int = self.page_limit if limit is None else max(min(limit, self.page_limit), 0)
        return list(items[start : start + size])

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def positions(
        self,
        grouping: Grouping = Grouping.HNT,
        start: int = 0,
        limit: int | None = None,
        timestamp: int | None = None,
    ) -> PositionsPageDict:
        snapshot: Snapshot = self._snapshot(timestamp)
        positions: tuple[Position, ...] = snapshot.grouping(grouping).positions
        return PositionsPageDict(
            timestamp=snapshot.timestamp,
            positions=[position_to_dict(p) for p in self._page(positions, start, limit)],
            positions_total_len=len(positions),
        )

    def delegated_positions(
        self,
        start: int = 0,
        limit: int | None = None,
        timestamp: int | None = None,
    ) -> DelegatedPageDict:
        snapshot: Snapshot = self._snapshot(timestamp)
        delegated: tuple[Position, ...] = snapshot.grouping(Grouping.HNT).delegated_positions
        return DelegatedPageDict(
            timestamp=snapshot.timestamp,
            delegated_positions=[legacy_position_to_dict(p) for p in self._page(delegated, start, limit)],
            positions_total_len=len(delegated),
        )

    def position(self, grouping: Grouping, key: str) -> PositionDict:
        parse_pubkey(key)
        view: CacheView = self.cache.view()
        found: Position | None = view.positions.get(grouping, {}).get(key)
        if found is None:
            raise PositionNotFoundError(f'"{key}" is not a known position from the voter stake registry')
        return position_to_dict(found)

    def metadata(self, timestamp: int | None = None) -> MetadataDict:
        snapshot: Snapshot = self._snapshot(timestamp)
        return MetadataDict(
            timestamp=snapshot.timestamp,
            network=pool_to_dict(snapshot.pool(Grouping.HNT, Pool.NETWORK)),
            undelegated=pool_to_dict(snapshot.pool(Grouping.HNT, Pool.UNDELEGATED)),
            iot=pool_to_dict(snapshot.pool(Grouping.HNT, Pool.IOT)),
            mobile=pool_to_dict(snapshot.pool(Grouping.HNT, Pool.MOBILE)),
            veiot=pool_to_dict(snapshot.pool(Grouping.IOT, Pool.NETWORK)),
            vemobile=pool_to_dict(snapshot.pool(Grouping.MOBILE, Pool.NETWORK)),
        )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def top_owners(self, grouping: Grouping = Grouping.HNT, limit: int | None = None) -> TopOwnersDict:
        snapshot: Snapshot = self.cache.latest()
        size: int = self.top_owners_limit if limit is None else max(min(limit, self.top_owners_limit), 0)
        ranked: list[OwnerAccount] = sorted(
            snapshot.owners.values(),
            key=lambda account: account.balances.weight_for(grouping),
            reverse=True,
        )
        top: list[TopOwnerDict] = [
            TopOwnerDict(
                pubkey=account.owner,
                positions={
                    "vehnt": list(account.positions[Grouping.HNT]),
                    "veiot": list(account.positions[Grouping.IOT]),
                    "vemobile": list(account.positions[Grouping.MOBILE]),
                },
                balances=balances_to_dict(account.balances),
            )
            for account in ranked[:size]
        ]
        return TopOwnersDict(timestamp=snapshot.timestamp, top=top)

    def account(self, owner: str) -> AccountDict:
        parse_pubkey(owner)
        view: CacheView = self.cache.view()
        account: OwnerAccount | None = view.account(owner)
        owned = view.owner_positions.get(owner, {})
        return AccountDict(
            owner=owner,
            timestamp=view.latest.timestamp,
            balances=balances_to_dict(account.balances if account else LockedBalances()),
            positions={
                "vehnt": [position_to_dict(p) for p in owned.get(Grouping.HNT, ())],
                "veiot": [position_to_dict(p) for p in owned.get(Grouping.IOT, ())],
                "vemobile": [position_to_dict(p) for p in owned.get(Grouping.MOBILE, ())],
            },
        )

    # ------------------------------------------------------------------
    # Epochs, exports, status
    # ------------------------------------------------------------------

    def epoch_info(self) -> list[EpochSummaryDict]:
        """Complete epochs plus the in-progress one built from the latest delegated totals."""
        snapshot: Snapshot = self.cache.latest()
        epochs: tuple[EpochSummary, ...] = snapshot.epochs
        next_epoch: int = epochs[-1].epoch + 1 if epochs else utc_day(snapshot.timestamp)
        current: EpochSummary = partial_epoch(
            epoch=next_epoch,
            iot_weight=scale_down(snapshot.pool(Grouping.HNT, Pool.IOT).totals.voting_weight),
            mobile_weight=scale_down(snapshot.pool(Grouping.HNT, Pool.MOBILE).totals.voting_weight),
            start_ts=snapshot.timestamp,
        )
        return [epoch_to_dict(e) for e in (*epochs, current)]

    def export_csv(self, kind: ExportKind = ExportKind.POSITIONS) -> ExportDataDict:
        return self.export_service.render_csv(self.cache.latest(), kind)

    def status(self) -> StatusDict:
        initialized: bool = self.cache.is_initialized
        return StatusDict(
            initialized=initialized,
            latest_timestamp=self.cache.latest().timestamp if initialized else None,
            history_timestamps=self.cache.history_timestamps(),
            refresh=self.scheduler.status() if self.scheduler else None,
        )
