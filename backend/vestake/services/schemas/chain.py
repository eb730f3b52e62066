"""Chain-related data transfer objects, as produced by the account decoder."""

from dataclasses import dataclass

from vestake.enums import LockupKind, SubNetwork
from vestake.services._helpers import epoch_start_ts


@dataclass(frozen=True, slots=True)
class VotingMintConfig:
    mint: str
    baseline_vote_weight_scaled_factor: int
    max_extra_lockup_vote_weight_scaled_factor: int
    genesis_vote_power_multiplier: int
    genesis_vote_power_multiplier_expiration_ts: int
    lockup_saturation_secs: int
    digit_shift: int


@dataclass(frozen=True, slots=True)
class Registrar:
    key: str
    realm_governing_token_mint: str
    voting_mints: tuple[VotingMintConfig, ...]

    @property
    def primary_mint(self) -> VotingMintConfig | None:
        return self.voting_mints[0] if self.voting_mints else None


@dataclass(frozen=True, slots=True)
class Lockup:
    start_ts: int
    end_ts: int
    kind: LockupKind


@dataclass(frozen=True, slots=True)
class RawPosition:
    key: str
    registrar: str
    mint: str  # position NFT mint, used to resolve the owner
    lockup: Lockup
    amount_deposited_native: int
    genesis_end: int  # 0 when the position never had a genesis bonus


@dataclass(frozen=True, slots=True)
class RawDelegation:
    key: str
    position: str
    sub_network: SubNetwork
    last_claimed_epoch: int
    purged: bool = False


@dataclass(frozen=True, slots=True)
class SubNetworkEpochInfo:
    epoch: int
    sub_network: SubNetwork
    dc_burned: int
    voting_weight_at_epoch_start: int
    delegation_rewards_issued: int
    utility_score: int | None
    rewards_issued_at: int | None
    initialized: bool

    @property
    def start_ts(self) -> int | None:
        """Known only once rewards for the epoch were issued."""
        if self.rewards_issued_at is None:
            return None
        return epoch_start_ts(self.epoch)


@dataclass(frozen=True, slots=True)
class AccountData:
    key: str
    data: bytes
