"""Sub-network epoch history used for delegation reward math."""

from collections.abc import Iterable
from dataclasses import replace

import structlog

from vestake.enums import SubNetwork
from vestake.services.errors import UnknownSubNetworkError
from vestake.services.schemas.chain import SubNetworkEpochInfo
from vestake.services.schemas.results import EpochSummary

logger = structlog.get_logger(__name__)


def is_complete(iot: SubNetworkEpochInfo, mobile: SubNetworkEpochInfo) -> bool:
    """Both sub-networks scored the epoch and both had delegated weight at its start."""
    return (
        iot.utility_score is not None
        and mobile.utility_score is not None
        and iot.voting_weight_at_epoch_start > 0
        and mobile.voting_weight_at_epoch_start > 0
    )


def summarize_epochs(infos: Iterable[SubNetworkEpochInfo]) -> list[EpochSummary]:
    """Join per-sub-network epoch infos into complete epochs, ordered by index.

    A newest complete epoch whose rewards are not issued yet has no start
    timestamp; it inherits the previous epoch's rewards_issued_at.
    """
    by_network: dict[SubNetwork, dict[int, SubNetworkEpochInfo]] = {
        SubNetwork.IOT: {},
        SubNetwork.MOBILE: {},
    }
    for info in infos:
        if info.sub_network not in by_network:
            raise UnknownSubNetworkError(f"epoch {info.epoch} reported for unknown sub-network")
        by_network[info.sub_network][info.epoch] = info

    iot_epochs: dict[int, SubNetworkEpochInfo] = by_network[SubNetwork.IOT]
    mobile_epochs: dict[int, SubNetworkEpochInfo] = by_network[SubNetwork.MOBILE]

    summaries: list[EpochSummary] = []
    skipped: int = 0
    for epoch in sorted(iot_epochs):
        iot: SubNetworkEpochInfo = iot_epochs[epoch]
        mobile: SubNetworkEpochInfo | None = mobile_epochs.get(epoch)
        if mobile is None or not is_complete(iot, mobile):
            skipped += 1
            continue
        summaries.append(
            EpochSummary(
                epoch=epoch,
                iot_dc_burned=iot.dc_burned,
                mobile_dc_burned=mobile.dc_burned,
                iot_weight_at_epoch_start=iot.voting_weight_at_epoch_start,
                mobile_weight_at_epoch_start=mobile.voting_weight_at_epoch_start,
                iot_delegation_rewards_issued=iot.delegation_rewards_issued,
                mobile_delegation_rewards_issued=mobile.delegation_rewards_issued,
                iot_utility_score=iot.utility_score,
                mobile_utility_score=mobile.utility_score,
                epoch_start_ts=iot.start_ts,
                rewards_issued_at_ts=iot.rewards_issued_at,
                initialized=iot.initialized and mobile.initialized,
            )
        )

    if len(summaries) >= 2 and summaries[-1].epoch_start_ts is None:
        summaries[-1] = replace(summaries[-1], epoch_start_ts=summaries[-2].rewards_issued_at_ts)

    logger.info("Summarized epochs", complete=len(summaries), skipped=skipped)
    return summaries


def partial_epoch(
    epoch: int,
    iot_weight: int,
    mobile_weight: int,
    start_ts: int,
) -> EpochSummary:
    """In-progress epoch built from the latest delegated totals (descaled)."""
    return EpochSummary(
        epoch=epoch,
        iot_dc_burned=0,
        mobile_dc_burned=0,
        iot_weight_at_epoch_start=iot_weight,
        mobile_weight_at_epoch_start=mobile_weight,
        iot_delegation_rewards_issued=0,
        mobile_delegation_rewards_issued=0,
        iot_utility_score=None,
        mobile_utility_score=None,
        epoch_start_ts=start_ts,
        rewards_issued_at_ts=None,
        initialized=False,
    )
