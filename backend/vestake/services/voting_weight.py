"""Time-decayed voting weight of a vote-escrow position.

All weights are precise integers scaled by PRECISION_FACTOR. The scale
is only removed at presentation (scale_down) or when a u64 voting power
is needed for reward math (voting_power).

    baseline  = shift(amount) * baseline_factor  * PRECISION / 10^9
    max_extra = shift(amount) * max_extra_factor * PRECISION / 10^9

    cliff:     0 once ts >= end, else baseline + max_extra * min(end - ts, sat) / sat
    constant:  baseline + max_extra * min(end - start, sat) / sat
    unlocked:  baseline

While a genesis bonus is active (ts < genesis_end) the whole sum is
multiplied by the mint's genesis_vote_power_multiplier.
"""

from vestake.enums import LockupKind
from vestake.services._helpers import PRECISION_FACTOR, SCALED_FACTOR_BASE, U64_MAX, U128_MAX
from vestake.services.errors import InvalidDecayConfigError, VotingWeightOverflowError
from vestake.services.schemas.chain import RawPosition, VotingMintConfig
from vestake.services.schemas.results import DecayInfo


def _checked(value: int, what: str) -> int:
    if value < 0 or value > U128_MAX:
        raise VotingWeightOverflowError(f"{what} out of u128 range: {value}")
    return value


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def shift_amount(amount: int, digit_shift: int) -> int:
    """Normalise a native token amount to the registrar's common decimals."""
    if digit_shift >= 0:
        return _checked(amount * 10**digit_shift, "shifted amount")
    return amount // 10 ** (-digit_shift)


def baseline_weight(amount: int, config: VotingMintConfig) -> int:
    shifted: int = shift_amount(amount, config.digit_shift)
    scaled: int = _checked(shifted * config.baseline_vote_weight_scaled_factor, "baseline weight")
    return _checked(scaled * PRECISION_FACTOR, "baseline weight") // SCALED_FACTOR_BASE


def max_extra_weight(amount: int, config: VotingMintConfig) -> int:
    shifted: int = shift_amount(amount, config.digit_shift)
    scaled: int = _checked(
        shifted * config.max_extra_lockup_vote_weight_scaled_factor, "max extra weight"
    )
    return _checked(scaled * PRECISION_FACTOR, "max extra weight") // SCALED_FACTOR_BASE


def _locked_weight(position: RawPosition, config: VotingMintConfig, timestamp: int) -> int:
    lockup = position.lockup
    match lockup.kind:
        case LockupKind.UNLOCKED:
            return 0
        case LockupKind.CONSTANT:
            secs: int = max(lockup.end_ts - lockup.start_ts, 0)
        case LockupKind.CLIFF:
            secs = max(lockup.end_ts - timestamp, 0)

    max_extra: int = max_extra_weight(position.amount_deposited_native, config)
    if max_extra == 0:
        return 0
    saturation: int = config.lockup_saturation_secs
    if saturation <= 0:
        raise InvalidDecayConfigError(
            f"lockup_saturation_secs is {saturation} for mint {config.mint} with non-zero extra weight"
        )
    return _checked(max_extra * min(secs, saturation), "locked weight") // saturation


def genesis_multiplier(position: RawPosition, config: VotingMintConfig, timestamp: int) -> int:
    multiplier: int = config.genesis_vote_power_multiplier
    if position.genesis_end and timestamp < position.genesis_end and multiplier > 0:
        return multiplier
    return 1


def _raw_weight(position: RawPosition, config: VotingMintConfig, timestamp: int, multiplier: int) -> int:
    baseline: int = baseline_weight(position.amount_deposited_native, config)
    locked: int = _locked_weight(position, config, timestamp)
    return _checked(_checked(baseline + locked, "voting weight") * multiplier, "voting weight")


def weight_at(position: RawPosition, config: VotingMintConfig, timestamp: int) -> int:
    """Precise voting weight of *position* at *timestamp*."""
    lockup = position.lockup
    if lockup.kind == LockupKind.CLIFF and timestamp >= lockup.end_ts:
        return 0
    return _raw_weight(position, config, timestamp, genesis_multiplier(position, config, timestamp))


def voting_power(position: RawPosition, config: VotingMintConfig, timestamp: int) -> int:
    """Descaled u64 weight, the unit sub-network epoch weights are recorded in."""
    power: int = scale_down(weight_at(position, config, timestamp))
    if power > U64_MAX:
        raise VotingWeightOverflowError(f"voting power of {position.key} exceeds u64: {power}")
    return power


def scale_down(value: int) -> int:
    return value // PRECISION_FACTOR


def decay_info(position: RawPosition, config: VotingMintConfig, timestamp: int) -> DecayInfo:
    """Fall rates around *timestamp* and the discrete steps still ahead.

    Only cliff lockups fall continuously. The genesis step applies to every
    lockup kind whose bonus is still active; a cliff whose bonus outlives the
    lockup folds the genesis step into the end step.
    """
    lockup = position.lockup
    multiplier: int = genesis_multiplier(position, config, timestamp)
    has_genesis: bool = multiplier > 1
    if lockup.kind == LockupKind.CLIFF and timestamp >= lockup.end_ts:
        return DecayInfo()

    post_rate: int = 0
    pre_rate: int = 0
    max_extra: int = max_extra_weight(position.amount_deposited_native, config)
    if lockup.kind == LockupKind.CLIFF and max_extra > 0:
        if config.lockup_saturation_secs <= 0:
            raise InvalidDecayConfigError(
                f"lockup_saturation_secs is {config.lockup_saturation_secs} for mint {config.mint}"
            )
        post_rate = _ceil_div(max_extra, config.lockup_saturation_secs)
        pre_rate = _checked(post_rate * multiplier, "fall rate")

    genesis_before_end: bool = has_genesis and (
        lockup.kind != LockupKind.CLIFF or position.genesis_end < lockup.end_ts
    )
    genesis_weight_correction: int = 0
    genesis_rate_correction: int = 0
    if genesis_before_end:
        boosted: int = _raw_weight(position, config, position.genesis_end, multiplier)
        plain: int = _raw_weight(position, config, position.genesis_end, 1)
        genesis_weight_correction = boosted - plain
        genesis_rate_correction = pre_rate - post_rate

    end_weight_correction: int = 0
    end_rate_correction: int = 0
    if lockup.kind == LockupKind.CLIFF:
        end_multiplier: int = 1 if genesis_before_end or not has_genesis else multiplier
        baseline: int = baseline_weight(position.amount_deposited_native, config)
        end_weight_correction = _checked(baseline * end_multiplier, "end correction")
        end_rate_correction = post_rate if end_multiplier == 1 else pre_rate

    return DecayInfo(
        has_genesis=has_genesis,
        pre_genesis_end_fall_rate=pre_rate if has_genesis else post_rate,
        post_genesis_end_fall_rate=post_rate,
        genesis_end_weight_correction=genesis_weight_correction,
        genesis_end_fall_rate_correction=genesis_rate_correction,
        end_weight_correction=end_weight_correction,
        end_fall_rate_correction=end_rate_correction,
    )
