"""Tests for vestake.services.epoch_info."""

import pytest

from builders import make_epoch_info
from vestake.enums import SubNetwork
from vestake.services.epoch_info import is_complete, partial_epoch, summarize_epochs
from vestake.services.errors import UnknownSubNetworkError
from vestake.services.schemas.chain import SubNetworkEpochInfo
from vestake.services.schemas.results import EpochSummary

DAY: int = 86_400


def _pair(epoch: int, **kwargs: object) -> list[SubNetworkEpochInfo]:
    return [
        make_epoch_info(epoch, SubNetwork.IOT, **kwargs),
        make_epoch_info(epoch, SubNetwork.MOBILE, **kwargs),
    ]


class TestIsComplete:
    def test_complete(self) -> None:
        iot, mobile = _pair(19_500)
        assert is_complete(iot, mobile)

    def test_missing_utility_score(self) -> None:
        iot = make_epoch_info(19_500, SubNetwork.IOT, utility_score=None)
        mobile = make_epoch_info(19_500, SubNetwork.MOBILE)
        assert not is_complete(iot, mobile)

    def test_zero_weight(self) -> None:
        iot = make_epoch_info(19_500, SubNetwork.IOT)
        mobile = make_epoch_info(19_500, SubNetwork.MOBILE, weight=0)
        assert not is_complete(iot, mobile)


class TestSummarizeEpochs:
    def test_sorted_and_joined(self) -> None:
        infos = _pair(19_502, rewards_issued_at=19_503 * DAY) + _pair(19_501, rewards_issued_at=19_502 * DAY)
        summaries: list[EpochSummary] = summarize_epochs(infos)
        assert [s.epoch for s in summaries] == [19_501, 19_502]
        assert summaries[0].iot_dc_burned == 7
        assert summaries[0].epoch_start_ts == 19_501 * DAY

    def test_incomplete_epochs_skipped(self) -> None:
        infos = _pair(19_501, rewards_issued_at=1) + [
            make_epoch_info(19_502, SubNetwork.IOT),
        ]
        assert [s.epoch for s in summarize_epochs(infos)] == [19_501]

    def test_newest_epoch_inherits_previous_issue_time(self) -> None:
        infos = _pair(19_501, rewards_issued_at=19_502 * DAY + 60) + _pair(19_502)
        summaries: list[EpochSummary] = summarize_epochs(infos)
        assert summaries[-1].epoch_start_ts == 19_502 * DAY + 60
        assert summaries[-1].rewards_issued_at_ts is None

    def test_unknown_sub_network_rejected(self) -> None:
        infos = [make_epoch_info(19_501, SubNetwork.UNKNOWN)]
        with pytest.raises(UnknownSubNetworkError):
            summarize_epochs(infos)

    def test_empty(self) -> None:
        assert summarize_epochs([]) == []


class TestPartialEpoch:
    def test_fields(self) -> None:
        summary: EpochSummary = partial_epoch(19_600, iot_weight=10, mobile_weight=20, start_ts=123)
        assert summary.epoch == 19_600
        assert summary.iot_weight_at_epoch_start == 10
        assert summary.mobile_weight_at_epoch_start == 20
        assert summary.epoch_start_ts == 123
        assert summary.iot_utility_score is None
        assert not summary.initialized
