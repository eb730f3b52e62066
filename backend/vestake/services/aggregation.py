"""Aggregation of decoded positions into a self-consistent snapshot."""

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace

import structlog

from vestake.enums import Grouping, Pool, SubNetwork
from vestake.services.delegation_rewards import pending_reward
from vestake.services.errors import MissingMintConfigError, UnknownSubNetworkError
from vestake.services.schemas.chain import RawDelegation, RawPosition, VotingMintConfig
from vestake.services.schemas.results import (
    Delegation,
    EpochSummary,
    GroupingData,
    LockedBalances,
    OwnerAccount,
    PoolData,
    PoolStats,
    PoolTotals,
    Position,
    Snapshot,
)
from vestake.services.voting_weight import decay_info, weight_at

logger = structlog.get_logger(__name__)

HNT_POOLS: tuple[Pool, ...] = (Pool.NETWORK, Pool.IOT, Pool.MOBILE, Pool.UNDELEGATED)
SUB_NETWORK_POOLS: tuple[Pool, ...] = (Pool.NETWORK,)


def _median(values: list[int]) -> int:
    """Element at index len // 2 of the values sorted descending."""
    return sorted(values, reverse=True)[len(values) // 2]


@dataclass
class _PoolAccumulator:
    count: int = 0
    voting_weight: int = 0
    locked_tokens: int = 0
    lockup_secs: int = 0
    fall_rate: int = 0
    weights: list[int] = field(default_factory=list)
    amounts: list[int] = field(default_factory=list)
    lockups: list[int] = field(default_factory=list)

    def add(self, position: Position) -> None:
        self.count += 1
        self.voting_weight += position.voting_weight
        self.locked_tokens += position.locked_tokens
        self.lockup_secs += position.duration_s
        self.fall_rate += position.decay.pre_genesis_end_fall_rate
        self.weights.append(position.voting_weight)
        self.amounts.append(position.locked_tokens)
        self.lockups.append(position.duration_s)

    def build(self) -> PoolData:
        totals: PoolTotals = PoolTotals(
            count=self.count,
            voting_weight=self.voting_weight,
            locked_tokens=self.locked_tokens,
            lockup_secs=self.lockup_secs,
            fall_rate=self.fall_rate,
        )
        if self.count == 0:
            return PoolData(totals=totals, stats=None)
        return PoolData(
            totals=totals,
            stats=PoolStats(
                avg_voting_weight=self.voting_weight // self.count,
                median_voting_weight=_median(self.weights),
                avg_locked_tokens=self.locked_tokens // self.count,
                median_locked_tokens=_median(self.amounts),
                avg_lockup_secs=self.lockup_secs // self.count,
                median_lockup_secs=_median(self.lockups),
            ),
        )


def classify(position: Position) -> Pool:
    """Delegation pool of a veHNT position."""
    if position.delegation is None:
        return Pool.UNDELEGATED
    match position.delegation.sub_network:
        case SubNetwork.IOT:
            return Pool.IOT
        case SubNetwork.MOBILE:
            return Pool.MOBILE
    raise UnknownSubNetworkError(
        f"position {position.key} is delegated to an unknown sub-network"
    )


def fold_pools(grouping: Grouping, positions: Iterable[Position]) -> dict[Pool, PoolData]:
    """Single pass over *positions* into the grouping's pools."""
    pools: tuple[Pool, ...] = HNT_POOLS if grouping == Grouping.HNT else SUB_NETWORK_POOLS
    accumulators: dict[Pool, _PoolAccumulator] = {pool: _PoolAccumulator() for pool in pools}
    for position in positions:
        accumulators[Pool.NETWORK].add(position)
        if grouping == Grouping.HNT:
            accumulators[classify(position)].add(position)
    return {pool: acc.build() for pool, acc in accumulators.items()}


@dataclass
class _OwnerAccumulator:
    owner: str
    positions: dict[Grouping, list[str]] = field(default_factory=lambda: {g: [] for g in Grouping})
    totals: Counter[str] = field(default_factory=Counter)

    def add(self, position: Position) -> None:
        self.positions[position.grouping].append(position.key)
        totals = self.totals
        match position.grouping:
            case Grouping.IOT:
                totals["locked_iot"] += position.locked_tokens
                totals["veiot"] += position.voting_weight
            case Grouping.MOBILE:
                totals["locked_mobile"] += position.locked_tokens
                totals["vemobile"] += position.voting_weight
            case Grouping.HNT:
                totals["locked_hnt"] += position.locked_tokens
                totals["vehnt"] += position.voting_weight
                delegation: Delegation | None = position.delegation
                if delegation is None:
                    totals["undelegated"] += position.voting_weight
                elif delegation.sub_network == SubNetwork.IOT:
                    totals["iot_delegated"] += position.voting_weight
                    totals["pending_iot"] += delegation.pending_rewards
                elif delegation.sub_network == SubNetwork.MOBILE:
                    totals["mobile_delegated"] += position.voting_weight
                    totals["pending_mobile"] += delegation.pending_rewards

    def build(self) -> OwnerAccount:
        return OwnerAccount(
            owner=self.owner,
            positions={grouping: tuple(keys) for grouping, keys in self.positions.items()},
            balances=LockedBalances(**self.totals),
        )


class AggregationEngine:
    """Turns one decode of the ledger into a Snapshot.

    Every total, statistic and owner balance in the result is derived from the
    position lists embedded in that same Snapshot.
    """

    def __init__(
        self,
        timestamp: int,
        mints: Mapping[Grouping, str],
        mint_configs: Mapping[str, VotingMintConfig],
        registrar_to_mint: Mapping[str, str],
        epochs: Sequence[EpochSummary],
    ) -> None:
        self.timestamp: int = timestamp
        self.mints: Mapping[Grouping, str] = mints
        self.mint_configs: Mapping[str, VotingMintConfig] = mint_configs
        self.registrar_to_mint: Mapping[str, str] = registrar_to_mint
        self.epochs: tuple[EpochSummary, ...] = tuple(epochs)
        self._grouping_by_mint: dict[str, Grouping] = {mint: g for g, mint in mints.items()}

    # ------------------------------------------------------------------
    # Decoration
    # ------------------------------------------------------------------

    def _config_for(self, grouping: Grouping) -> VotingMintConfig | None:
        return self.mint_configs.get(self.mints[grouping])

    def decorate(
        self,
        positions: Iterable[RawPosition],
        owner_index: Mapping[str, str],
    ) -> dict[Grouping, list[tuple[RawPosition, Position]]]:
        """Compute weight and decay per position, grouped by mint, input order kept."""
        decorated: dict[Grouping, list[tuple[RawPosition, Position]]] = {g: [] for g in Grouping}
        for raw in positions:
            mint: str | None = self.registrar_to_mint.get(raw.registrar)
            if mint is None:
                logger.warning("No mint found for registrar", registrar=raw.registrar, position=raw.key)
                continue
            grouping: Grouping | None = self._grouping_by_mint.get(mint)
            config: VotingMintConfig | None = self.mint_configs.get(mint)
            if grouping is None or config is None:
                logger.warning("Unknown mint for position", mint=mint, position=raw.key)
                continue
            owner: str | None = owner_index.get(raw.key)
            if owner is None:
                logger.warning("Could not resolve owner for position", position=raw.key)
                continue

            position: Position = Position(
                key=raw.key,
                owner=owner,
                mint=raw.mint,
                grouping=grouping,
                locked_tokens=raw.amount_deposited_native,
                start_ts=raw.lockup.start_ts,
                end_ts=raw.lockup.end_ts,
                genesis_end_ts=raw.genesis_end or None,
                lockup_kind=raw.lockup.kind,
                voting_weight=weight_at(raw, config, self.timestamp),
                decay=decay_info(raw, config, self.timestamp),
            )
            decorated[grouping].append((raw, position))
        return decorated

    def attach_delegations(
        self,
        hnt: list[tuple[RawPosition, Position]],
        delegations: Iterable[RawDelegation],
    ) -> list[Position]:
        """Attach delegations with their pending rewards to veHNT positions."""
        index: dict[str, int] = {position.key: i for i, (_, position) in enumerate(hnt)}
        attached: list[Position] = [position for _, position in hnt]
        config: VotingMintConfig | None = self._config_for(Grouping.HNT)
        dropped: int = 0

        for delegation in delegations:
            i: int | None = index.get(delegation.position)
            if i is None:
                dropped += 1
                logger.warning(
                    "Dropping delegation for unknown position",
                    delegation=delegation.key,
                    position=delegation.position,
                    purged=delegation.purged,
                )
                continue
            if delegation.sub_network == SubNetwork.UNKNOWN:
                raise UnknownSubNetworkError(
                    f"delegation {delegation.key} references an unknown sub-network"
                )
            if config is None:
                raise MissingMintConfigError(f"no voting mint config for HNT mint {self.mints[Grouping.HNT]}")
            raw: RawPosition = hnt[i][0]
            attached[i] = replace(
                attached[i],
                delegation=Delegation(
                    key=delegation.key,
                    position_key=delegation.position,
                    sub_network=delegation.sub_network,
                    last_claimed_epoch=delegation.last_claimed_epoch,
                    pending_rewards=pending_reward(delegation, raw, self.epochs, config),
                    purged=delegation.purged,
                ),
            )

        if dropped:
            logger.warning("Delegations dropped", count=dropped)
        return attached

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def aggregate(
        self,
        positions: Iterable[RawPosition],
        delegations: Iterable[RawDelegation],
        owner_index: Mapping[str, str],
    ) -> Snapshot:
        decorated = self.decorate(positions, owner_index)
        by_grouping: dict[Grouping, list[Position]] = {
            Grouping.HNT: self.attach_delegations(decorated[Grouping.HNT], delegations),
            Grouping.IOT: [position for _, position in decorated[Grouping.IOT]],
            Grouping.MOBILE: [position for _, position in decorated[Grouping.MOBILE]],
        }

        groupings: dict[Grouping, GroupingData] = {}
        owners: dict[str, _OwnerAccumulator] = {}
        for grouping, grouped in by_grouping.items():
            groupings[grouping] = GroupingData(
                grouping=grouping,
                positions=tuple(grouped),
                pools=fold_pools(grouping, grouped),
                delegated_positions=tuple(p for p in grouped if p.delegation is not None),
            )
            for position in grouped:
                owners.setdefault(position.owner, _OwnerAccumulator(owner=position.owner)).add(position)
            logger.info("Aggregated positions", grouping=grouping.value, count=len(grouped))

        return Snapshot(
            timestamp=self.timestamp,
            groupings=groupings,
            owners={owner: acc.build() for owner, acc in owners.items()},
            epochs=self.epochs,
        )
