"""Tests for vestake.services.delegation_rewards."""

import pytest

from builders import key, make_config, make_delegation, make_epoch, make_epoch_info, make_position
from vestake.enums import LockupKind, SubNetwork
from vestake.services.delegation_rewards import last_issued_epoch, pending_reward
from vestake.services.epoch_info import summarize_epochs
from vestake.services.errors import (
    EpochContiguityError,
    EpochDataError,
    RewardMathError,
    UnknownSubNetworkError,
)
from vestake.services.schemas.chain import RawPosition, SubNetworkEpochInfo, VotingMintConfig
from vestake.services.schemas.results import EpochSummary

N: int = 19_500
CONFIG: VotingMintConfig = make_config(baseline=10**9)
POSITION: RawPosition = make_position(key(10), amount=500)


def _history(first: int, last: int, **kwargs: object) -> tuple[EpochSummary, ...]:
    return tuple(make_epoch(e, start_ts=e * 86_400, **kwargs) for e in range(first, last + 1))


class TestPendingReward:
    def test_five_unclaimed_epochs(self) -> None:
        epochs = _history(N + 1, N + 5, weight=1_000, rewards=1_000)
        delegation = make_delegation(key(60), POSITION.key, SubNetwork.IOT, last_claimed_epoch=N)
        assert pending_reward(delegation, POSITION, epochs, CONFIG) == 2_500

    def test_mobile_uses_mobile_figures(self) -> None:
        epochs = _history(N + 1, N + 3, weight=2_000, rewards=1_000)
        delegation = make_delegation(key(60), POSITION.key, SubNetwork.MOBILE, last_claimed_epoch=N)
        assert pending_reward(delegation, POSITION, epochs, CONFIG) == 3 * 250

    def test_newest_issued_epoch_is_included(self) -> None:
        epochs = _history(N + 1, N + 1)
        delegation = make_delegation(key(60), POSITION.key, last_claimed_epoch=N)
        assert pending_reward(delegation, POSITION, epochs, CONFIG) == 500

    def test_unissued_epoch_is_excluded(self) -> None:
        epochs = _history(N + 1, N + 2) + (make_epoch(N + 3, start_ts=(N + 3) * 86_400, issued=False),)
        delegation = make_delegation(key(60), POSITION.key, last_claimed_epoch=N)
        assert pending_reward(delegation, POSITION, epochs, CONFIG) == 2 * 500

    def test_nothing_issued_yet(self) -> None:
        epochs = (make_epoch(N + 1, issued=False),)
        delegation = make_delegation(key(60), POSITION.key, last_claimed_epoch=N)
        assert pending_reward(delegation, POSITION, epochs, CONFIG) == 0

    def test_fully_claimed(self) -> None:
        epochs = _history(N + 1, N + 6)
        delegation = make_delegation(key(60), POSITION.key, last_claimed_epoch=N + 6)
        assert pending_reward(delegation, POSITION, epochs, CONFIG) == 0

    def test_empty_history(self) -> None:
        delegation = make_delegation(key(60), POSITION.key, last_claimed_epoch=N)
        assert pending_reward(delegation, POSITION, (), CONFIG) == 0

    def test_starts_at_first_rewardable_epoch(self) -> None:
        epochs = _history(19_467, 19_470, weight=1_000, rewards=1_000)
        delegation = make_delegation(key(60), POSITION.key, last_claimed_epoch=0)
        assert pending_reward(delegation, POSITION, epochs, CONFIG) == 4 * 500

    def test_per_epoch_division_truncates(self) -> None:
        epochs = _history(N + 1, N + 3, weight=3, rewards=1)
        delegation = make_delegation(key(60), POSITION.key, last_claimed_epoch=N)
        # 500 * 1 // 3 == 166 per epoch, not 1000 // 3 over the range
        assert pending_reward(delegation, POSITION, epochs, CONFIG) == 3 * 166

    def test_expired_cliff_earns_nothing(self) -> None:
        cliff = make_position(key(11), amount=500, kind=LockupKind.CLIFF, start_ts=0, end_ts=100)
        epochs = _history(N + 1, N + 6)
        delegation = make_delegation(key(60), cliff.key, last_claimed_epoch=N)
        assert pending_reward(delegation, cliff, epochs, CONFIG) == 0


class TestPendingRewardErrors:
    def test_unknown_sub_network(self) -> None:
        delegation = make_delegation(key(60), POSITION.key, SubNetwork.UNKNOWN, last_claimed_epoch=N)
        with pytest.raises(UnknownSubNetworkError):
            pending_reward(delegation, POSITION, _history(N + 1, N + 3), CONFIG)

    def test_gap_in_history(self) -> None:
        epochs = (make_epoch(N + 1), make_epoch(N + 3), make_epoch(N + 4))
        delegation = make_delegation(key(60), POSITION.key, last_claimed_epoch=N)
        with pytest.raises(EpochContiguityError):
            pending_reward(delegation, POSITION, epochs, CONFIG)

    def test_missing_start_timestamp(self) -> None:
        epochs = (make_epoch(N + 1, start_ts=None), make_epoch(N + 2))
        delegation = make_delegation(key(60), POSITION.key, last_claimed_epoch=N)
        with pytest.raises(EpochDataError):
            pending_reward(delegation, POSITION, epochs, CONFIG)

    def test_zero_weight_at_start(self) -> None:
        epochs = (make_epoch(N + 1, weight=0), make_epoch(N + 2))
        delegation = make_delegation(key(60), POSITION.key, last_claimed_epoch=N)
        with pytest.raises(RewardMathError):
            pending_reward(delegation, POSITION, epochs, CONFIG)


class TestRewardsFromEpochInfos:
    def _issued(self, first: int, last: int) -> list[SubNetworkEpochInfo]:
        return [
            make_epoch_info(e, network, rewards_issued_at=(e + 1) * 86_400)
            for e in range(first, last + 1)
            for network in (SubNetwork.IOT, SubNetwork.MOBILE)
        ]

    def test_in_progress_epoch_is_not_credited(self) -> None:
        infos = self._issued(N + 1, N + 5) + [
            make_epoch_info(N + 6, SubNetwork.IOT, utility_score=None),
            make_epoch_info(N + 6, SubNetwork.MOBILE, utility_score=None),
        ]
        epochs = tuple(summarize_epochs(infos))
        assert epochs[-1].epoch == N + 5
        delegation = make_delegation(key(60), POSITION.key, last_claimed_epoch=N)
        assert pending_reward(delegation, POSITION, epochs, CONFIG) == 2_500

    def test_scored_but_unissued_epoch_is_not_credited(self) -> None:
        infos = self._issued(N + 1, N + 5) + [
            make_epoch_info(N + 6, SubNetwork.IOT),
            make_epoch_info(N + 6, SubNetwork.MOBILE),
        ]
        epochs = tuple(summarize_epochs(infos))
        assert epochs[-1].epoch == N + 6
        assert last_issued_epoch(epochs) == N + 5
        delegation = make_delegation(key(60), POSITION.key, SubNetwork.MOBILE, last_claimed_epoch=N)
        assert pending_reward(delegation, POSITION, epochs, CONFIG) == 2_500
