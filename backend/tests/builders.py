"""Builders for domain objects and raw account bytes used across tests."""

import struct

from solders.pubkey import Pubkey

from vestake.enums import Grouping, LockupKind, SubNetwork
from vestake.services.aggregation import AggregationEngine
from vestake.services.decoder import (
    DELEGATED_POSITION_V0_DISCRIMINATOR,
    POSITION_V0_DISCRIMINATOR,
    POSITION_V0_SIZE,
    REGISTRAR_DISCRIMINATOR,
    SUB_DAO_EPOCH_INFO_V0_DISCRIMINATOR,
    SUB_DAO_EPOCH_INFO_V0_SIZE,
)
from vestake.services.schemas.chain import (
    Lockup,
    RawDelegation,
    RawPosition,
    SubNetworkEpochInfo,
    VotingMintConfig,
)
from vestake.services.schemas.results import EpochSummary, Snapshot


def key(n: int) -> str:
    """Deterministic, valid base58 pubkey."""
    return str(Pubkey(bytes([n]) * 32))


def raw_key(value: str) -> bytes:
    return bytes(Pubkey.from_string(value))


HNT_MINT: str = key(1)
IOT_MINT: str = key(2)
MOBILE_MINT: str = key(3)
HNT_REGISTRAR: str = key(4)
IOT_REGISTRAR: str = key(5)
IOT_SUB_DAO: str = key(20)
MOBILE_SUB_DAO: str = key(21)
OWNER_A: str = key(100)
OWNER_B: str = key(101)
SNAPSHOT_TS: int = 19_600 * 86_400

MINTS: dict[Grouping, str] = {
    Grouping.HNT: HNT_MINT,
    Grouping.IOT: IOT_MINT,
    Grouping.MOBILE: MOBILE_MINT,
}

SUB_NETWORKS: dict[str, SubNetwork] = {
    IOT_SUB_DAO: SubNetwork.IOT,
    MOBILE_SUB_DAO: SubNetwork.MOBILE,
}


# -- Domain objects ----------------------------------------------------------


def make_config(
    mint: str = HNT_MINT,
    baseline: int = 10**9,
    max_extra: int = 0,
    saturation: int = 100,
    genesis_multiplier: int = 0,
    digit_shift: int = 0,
) -> VotingMintConfig:
    """Scaled factors are over 10^9: baseline=10**9 gives one unit of weight per token."""
    return VotingMintConfig(
        mint=mint,
        baseline_vote_weight_scaled_factor=baseline,
        max_extra_lockup_vote_weight_scaled_factor=max_extra,
        genesis_vote_power_multiplier=genesis_multiplier,
        genesis_vote_power_multiplier_expiration_ts=0,
        lockup_saturation_secs=saturation,
        digit_shift=digit_shift,
    )


def make_position(
    position_key: str,
    amount: int = 100,
    kind: LockupKind = LockupKind.UNLOCKED,
    start_ts: int = 0,
    end_ts: int = 0,
    genesis_end: int = 0,
    registrar: str = HNT_REGISTRAR,
    mint: str | None = None,
) -> RawPosition:
    return RawPosition(
        key=position_key,
        registrar=registrar,
        mint=mint or position_key,
        lockup=Lockup(start_ts=start_ts, end_ts=end_ts, kind=kind),
        amount_deposited_native=amount,
        genesis_end=genesis_end,
    )


def make_delegation(
    delegation_key: str,
    position_key: str,
    sub_network: SubNetwork = SubNetwork.IOT,
    last_claimed_epoch: int = 0,
) -> RawDelegation:
    return RawDelegation(
        key=delegation_key,
        position=position_key,
        sub_network=sub_network,
        last_claimed_epoch=last_claimed_epoch,
    )


def make_epoch(
    epoch: int,
    weight: int = 1000,
    rewards: int = 1000,
    start_ts: int | None = 0,
    utility_score: int | None = 5 * 10**12,
    issued: bool = True,
) -> EpochSummary:
    """Epoch with identical IOT and MOBILE figures; rewards are issued at its start unless *issued* is False."""
    return EpochSummary(
        epoch=epoch,
        iot_dc_burned=10,
        mobile_dc_burned=20,
        iot_weight_at_epoch_start=weight,
        mobile_weight_at_epoch_start=weight,
        iot_delegation_rewards_issued=rewards,
        mobile_delegation_rewards_issued=rewards,
        iot_utility_score=utility_score,
        mobile_utility_score=utility_score,
        epoch_start_ts=start_ts,
        rewards_issued_at_ts=start_ts if issued else None,
        initialized=True,
    )


def make_epoch_info(
    epoch: int,
    sub_network: SubNetwork,
    weight: int = 1000,
    rewards: int = 1000,
    utility_score: int | None = 5 * 10**12,
    rewards_issued_at: int | None = None,
) -> SubNetworkEpochInfo:
    return SubNetworkEpochInfo(
        epoch=epoch,
        sub_network=sub_network,
        dc_burned=7,
        voting_weight_at_epoch_start=weight,
        delegation_rewards_issued=rewards,
        utility_score=utility_score,
        rewards_issued_at=rewards_issued_at,
        initialized=True,
    )


def make_engine(
    timestamp: int = 1_000,
    config: VotingMintConfig | None = None,
    epochs: tuple[EpochSummary, ...] = (),
) -> AggregationEngine:
    hnt: VotingMintConfig = config or make_config()
    iot: VotingMintConfig = make_config(mint=IOT_MINT)
    return AggregationEngine(
        timestamp=timestamp,
        mints=MINTS,
        mint_configs={HNT_MINT: hnt, IOT_MINT: iot},
        registrar_to_mint={HNT_REGISTRAR: HNT_MINT, IOT_REGISTRAR: IOT_MINT},
        epochs=epochs,
    )


def make_snapshot(
    timestamp: int = 1_000,
    positions: list[RawPosition] | None = None,
    delegations: list[RawDelegation] | None = None,
    owners: dict[str, str] | None = None,
    epochs: tuple[EpochSummary, ...] = (),
) -> Snapshot:
    """Snapshot aggregated from *positions*; every position is owned by OWNER_A unless *owners* says otherwise."""
    raw: list[RawPosition] = positions or []
    owner_index: dict[str, str] = {p.key: OWNER_A for p in raw}
    owner_index.update(owners or {})
    return make_engine(timestamp=timestamp, epochs=epochs).aggregate(raw, delegations or [], owner_index)


# -- Account bytes -----------------------------------------------------------

_LOCKUP_TAGS: dict[LockupKind, int] = {
    LockupKind.UNLOCKED: 0,
    LockupKind.CLIFF: 1,
    LockupKind.CONSTANT: 2,
}


def _pad(data: bytes, size: int) -> bytes:
    return data + bytes(max(size - len(data), 0))


def _u128(value: int) -> bytes:
    return struct.pack("<QQ", value & (2**64 - 1), value >> 64)


def encode_position(
    registrar: str,
    mint: str,
    amount: int,
    kind: LockupKind = LockupKind.CLIFF,
    start_ts: int = 0,
    end_ts: int = 0,
    genesis_end: int = 0,
) -> bytes:
    body: bytes = (
        POSITION_V0_DISCRIMINATOR
        + raw_key(registrar)
        + raw_key(mint)
        + struct.pack("<qqB", start_ts, end_ts, _LOCKUP_TAGS[kind])
        + struct.pack("<QBHq", amount, 0, 0, genesis_end)
        + struct.pack("<B", 255)
    )
    return _pad(body, POSITION_V0_SIZE)


def encode_registrar(governing_mint: str, configs: list[VotingMintConfig]) -> bytes:
    body: bytes = (
        REGISTRAR_DISCRIMINATOR
        + raw_key(key(30))
        + raw_key(key(31))
        + raw_key(governing_mint)
        + raw_key(key(32))
        + struct.pack("<q", 0)
        + struct.pack("<B", 1)
        + raw_key(key(33))
        + raw_key(key(34))
        + struct.pack("<BB", 254, 253)
        + bytes(4)
        + struct.pack("<QQQ", 0, 0, 0)
        + struct.pack("<I", len(configs))
    )
    for c in configs:
        body += raw_key(c.mint) + struct.pack(
            "<QQBqQb",
            c.baseline_vote_weight_scaled_factor,
            c.max_extra_lockup_vote_weight_scaled_factor,
            c.genesis_vote_power_multiplier,
            c.genesis_vote_power_multiplier_expiration_ts,
            c.lockup_saturation_secs,
            c.digit_shift,
        )
    return body


def encode_delegation(
    position: str,
    sub_dao: str,
    last_claimed_epoch: int,
    purged: bool = False,
) -> bytes:
    return (
        DELEGATED_POSITION_V0_DISCRIMINATOR
        + raw_key(key(40))
        + raw_key(position)
        + struct.pack("<Q", 100)
        + raw_key(sub_dao)
        + struct.pack("<Qq", last_claimed_epoch, 0)
        + struct.pack("<BB", int(purged), 255)
        + _u128(0)
    )


def encode_epoch_info(
    epoch: int,
    sub_dao: str,
    weight: int = 1000,
    rewards: int = 1000,
    utility_score: int | None = 5 * 10**12,
    rewards_issued_at: int | None = None,
) -> bytes:
    body: bytes = (
        SUB_DAO_EPOCH_INFO_V0_DISCRIMINATOR
        + struct.pack("<Q", epoch)
        + raw_key(sub_dao)
        + struct.pack("<QQ", 7, weight)
        + _u128(0)
        + _u128(0)
        + struct.pack("<Q", rewards)
    )
    body += b"\x01" + _u128(utility_score) if utility_score is not None else b"\x00"
    body += b"\x01" + struct.pack("<q", rewards_issued_at) if rewards_issued_at is not None else b"\x00"
    body += struct.pack("<BBQ", 255, 1, 0)
    return _pad(body, SUB_DAO_EPOCH_INFO_V0_SIZE)


def encode_token_account(mint: str, owner: str) -> bytes:
    return _pad(raw_key(mint) + raw_key(owner) + struct.pack("<Q", 1), 165)
