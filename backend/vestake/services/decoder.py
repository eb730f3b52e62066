"""Anchor/Borsh decoding of voter-stake-registry and sub-DAO accounts.

Every account starts with an 8-byte Anchor discriminator; integers are
little-endian. Only the fields the indexer needs are surfaced.
"""

import hashlib
import struct
from collections.abc import Mapping

from vestake.enums import LockupKind, SubNetwork
from vestake.services._helpers import encode_pubkey
from vestake.services.errors import DecodeError
from vestake.services.schemas.chain import (
    Lockup,
    RawDelegation,
    RawPosition,
    Registrar,
    SubNetworkEpochInfo,
    VotingMintConfig,
)


def account_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode()).digest()[:8]


POSITION_V0_DISCRIMINATOR: bytes = bytes([152, 131, 154, 46, 158, 42, 31, 233])
DELEGATED_POSITION_V0_DISCRIMINATOR: bytes = bytes([251, 212, 32, 100, 102, 1, 247, 81])
SUB_DAO_EPOCH_INFO_V0_DISCRIMINATOR: bytes = bytes([45, 249, 177, 20, 170, 251, 37, 37])
REGISTRAR_DISCRIMINATOR: bytes = account_discriminator("Registrar")

POSITION_V0_SIZE: int = 180
SUB_DAO_EPOCH_INFO_V0_SIZE: int = 204
TOKEN_ACCOUNT_OWNER_OFFSET: int = 32

_LOCKUP_KINDS: dict[int, LockupKind] = {
    0: LockupKind.UNLOCKED,
    1: LockupKind.CLIFF,
    2: LockupKind.CONSTANT,
}


class _Reader:
    """Sequential little-endian reader over account bytes."""

    def __init__(self, data: bytes, what: str) -> None:
        self.data: bytes = data
        self.what: str = what
        self.offset: int = 0

    def _unpack(self, fmt: str) -> int:
        size: int = struct.calcsize(fmt)
        if self.offset + size > len(self.data):
            raise DecodeError(
                f"{self.what}: need {size} bytes at offset {self.offset}, have {len(self.data) - self.offset}"
            )
        (value,) = struct.unpack_from(fmt, self.data, self.offset)
        self.offset += size
        return value

    def u8(self) -> int:
        return self._unpack("<B")

    def i8(self) -> int:
        return self._unpack("<b")

    def u16(self) -> int:
        return self._unpack("<H")

    def u32(self) -> int:
        return self._unpack("<I")

    def u64(self) -> int:
        return self._unpack("<Q")

    def i64(self) -> int:
        return self._unpack("<q")

    def u128(self) -> int:
        low: int = self.u64()
        high: int = self.u64()
        return (high << 64) | low

    def boolean(self) -> bool:
        return self.u8() != 0

    def pubkey(self) -> str:
        if self.offset + 32 > len(self.data):
            raise DecodeError(f"{self.what}: truncated pubkey at offset {self.offset}")
        raw: bytes = self.data[self.offset : self.offset + 32]
        self.offset += 32
        return encode_pubkey(raw)

    def option_tag(self) -> bool:
        tag: int = self.u8()
        if tag not in (0, 1):
            raise DecodeError(f"{self.what}: invalid option tag {tag} at offset {self.offset - 1}")
        return tag == 1


def _check_discriminator(data: bytes, expected: bytes, what: str) -> _Reader:
    if len(data) < 8:
        raise DecodeError(f"{what}: account data is {len(data)} bytes")
    if data[:8] != expected:
        raise DecodeError(f"{what}: discriminator mismatch {list(data[:8])}")
    reader: _Reader = _Reader(data, what)
    reader.offset = 8
    return reader


class PositionDecoder:
    """Decodes raw account bytes into typed records.

    `sub_networks` maps sub-DAO account keys to their sub-network; any other
    key decodes as SubNetwork.UNKNOWN.
    """

    def __init__(self, sub_networks: Mapping[str, SubNetwork]) -> None:
        self.sub_networks: Mapping[str, SubNetwork] = sub_networks

    def _sub_network(self, key: str) -> SubNetwork:
        return self.sub_networks.get(key, SubNetwork.UNKNOWN)

    def decode_position(self, key: str, data: bytes) -> RawPosition:
        r: _Reader = _check_discriminator(data, POSITION_V0_DISCRIMINATOR, f"PositionV0 {key}")
        registrar: str = r.pubkey()
        mint: str = r.pubkey()
        start_ts: int = r.i64()
        end_ts: int = r.i64()
        kind_tag: int = r.u8()
        kind: LockupKind | None = _LOCKUP_KINDS.get(kind_tag)
        if kind is None:
            raise DecodeError(f"PositionV0 {key}: unknown lockup kind {kind_tag}")
        amount: int = r.u64()
        r.u8()  # voting_mint_config_idx
        r.u16()  # num_active_votes
        genesis_end: int = r.i64()
        return RawPosition(
            key=key,
            registrar=registrar,
            mint=mint,
            lockup=Lockup(start_ts=start_ts, end_ts=end_ts, kind=kind),
            amount_deposited_native=amount,
            genesis_end=max(genesis_end, 0),
        )

    def decode_registrar(self, key: str, data: bytes) -> Registrar:
        r: _Reader = _check_discriminator(data, REGISTRAR_DISCRIMINATOR, f"Registrar {key}")
        r.pubkey()  # governance_program_id
        r.pubkey()  # realm
        governing_mint: str = r.pubkey()
        r.pubkey()  # realm_authority
        r.i64()  # time_offset
        if r.option_tag():
            r.pubkey()  # position_update_authority
        r.pubkey()  # collection
        r.u8()  # bump_seed
        r.u8()  # collection_bump_seed
        r.offset += 4 + 3 * 8  # reserved
        count: int = r.u32()
        configs: list[VotingMintConfig] = []
        for _ in range(count):
            configs.append(
                VotingMintConfig(
                    mint=r.pubkey(),
                    baseline_vote_weight_scaled_factor=r.u64(),
                    max_extra_lockup_vote_weight_scaled_factor=r.u64(),
                    genesis_vote_power_multiplier=r.u8(),
                    genesis_vote_power_multiplier_expiration_ts=r.i64(),
                    lockup_saturation_secs=r.u64(),
                    digit_shift=r.i8(),
                )
            )
        return Registrar(key=key, realm_governing_token_mint=governing_mint, voting_mints=tuple(configs))

    def decode_delegation(self, key: str, data: bytes) -> RawDelegation:
        r: _Reader = _check_discriminator(
            data, DELEGATED_POSITION_V0_DISCRIMINATOR, f"DelegatedPositionV0 {key}"
        )
        r.pubkey()  # mint
        position: str = r.pubkey()
        r.u64()  # hnt_amount
        sub_dao: str = r.pubkey()
        last_claimed_epoch: int = r.u64()
        r.i64()  # start_ts
        purged: bool = r.boolean()
        return RawDelegation(
            key=key,
            position=position,
            sub_network=self._sub_network(sub_dao),
            last_claimed_epoch=last_claimed_epoch,
            purged=purged,
        )

    def decode_epoch_info(self, key: str, data: bytes) -> SubNetworkEpochInfo:
        r: _Reader = _check_discriminator(
            data, SUB_DAO_EPOCH_INFO_V0_DISCRIMINATOR, f"SubDaoEpochInfoV0 {key}"
        )
        epoch: int = r.u64()
        sub_dao: str = r.pubkey()
        dc_burned: int = r.u64()
        weight_at_start: int = r.u64()
        r.u128()  # vehnt_in_closing_positions
        r.u128()  # fall_rates_from_closing_positions
        rewards_issued: int = r.u64()
        utility_score: int | None = r.u128() if r.option_tag() else None
        rewards_issued_at: int | None = r.i64() if r.option_tag() else None
        r.u8()  # bump_seed
        initialized: bool = r.boolean()
        return SubNetworkEpochInfo(
            epoch=epoch,
            sub_network=self._sub_network(sub_dao),
            dc_burned=dc_burned,
            voting_weight_at_epoch_start=weight_at_start,
            delegation_rewards_issued=rewards_issued,
            utility_score=utility_score,
            rewards_issued_at=rewards_issued_at,
            initialized=initialized,
        )

    @staticmethod
    def decode_token_account_owner(data: bytes) -> str:
        """Owner of an SPL token account (bytes 32..64)."""
        end: int = TOKEN_ACCOUNT_OWNER_OFFSET + 32
        if len(data) < end:
            raise DecodeError(f"token account: data is {len(data)} bytes")
        return encode_pubkey(data[TOKEN_ACCOUNT_OWNER_OFFSET:end])
