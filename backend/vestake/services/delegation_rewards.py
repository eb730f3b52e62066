"""Accrued, unclaimed delegation rewards of a veHNT position."""

from collections.abc import Sequence

from vestake.enums import SubNetwork
from vestake.services._helpers import FIRST_EPOCH_WITH_VEHNT, U64_MAX
from vestake.services.errors import (
    EpochContiguityError,
    EpochDataError,
    NumericOverflowError,
    RewardMathError,
    UnknownSubNetworkError,
)
from vestake.services.schemas.chain import RawDelegation, RawPosition, VotingMintConfig
from vestake.services.schemas.results import EpochSummary
from vestake.services.voting_weight import voting_power

# Delegation rewards did not exist before this epoch.
FIRST_REWARDABLE_EPOCH: int = FIRST_EPOCH_WITH_VEHNT


def _epoch_at(epochs: Sequence[EpochSummary], epoch: int) -> EpochSummary:
    index: int = epoch - epochs[0].epoch
    if index < 0 or index >= len(epochs) or epochs[index].epoch != epoch:
        found: int | None = epochs[index].epoch if 0 <= index < len(epochs) else None
        raise EpochContiguityError(
            f"expected epoch {epoch} at history index {index}, found {found}"
        )
    return epochs[index]


def last_issued_epoch(epochs: Sequence[EpochSummary]) -> int | None:
    """Index of the newest epoch whose delegation rewards were issued."""
    for summary in reversed(epochs):
        if summary.rewards_issued_at_ts is not None:
            return summary.epoch
    return None


def pending_reward(
    delegation: RawDelegation,
    position: RawPosition,
    epochs: Sequence[EpochSummary],
    config: VotingMintConfig,
    first_rewardable_epoch: int = FIRST_REWARDABLE_EPOCH,
) -> int:
    """Sum of the position's pro-rata share of every unclaimed, issued epoch.

    Epochs run from max(last_claimed + 1, first_rewardable_epoch) through the
    newest epoch in *epochs* whose rewards were issued. A scored epoch still
    waiting for issuance is left for the next refresh.
    """
    sub_network: SubNetwork = delegation.sub_network
    if sub_network == SubNetwork.UNKNOWN:
        raise UnknownSubNetworkError(
            f"delegation {delegation.key} for position {position.key} has no known sub-network"
        )
    last_epoch: int | None = last_issued_epoch(epochs)
    if last_epoch is None:
        return 0

    first_unclaimed: int = max(delegation.last_claimed_epoch + 1, first_rewardable_epoch)

    pending: int = 0
    for epoch in range(first_unclaimed, last_epoch + 1):
        summary: EpochSummary = _epoch_at(epochs, epoch)
        if summary.epoch_start_ts is None:
            raise EpochDataError(f"epoch {epoch} has no start timestamp")
        weight_at_start: int = summary.weight_at_start(sub_network)
        if weight_at_start == 0:
            raise RewardMathError(f"epoch {epoch} has zero {sub_network.value} weight at start")

        power: int = voting_power(position, config, summary.epoch_start_ts)
        pending += power * summary.rewards_issued(sub_network) // weight_at_start
        if pending > U64_MAX:
            raise NumericOverflowError(f"pending rewards of {delegation.key} exceed u64")
    return pending
