"""Ingestion: pull VSR and sub-DAO accounts from the chain and build snapshots."""

import asyncio
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

import structlog

from config import ChainSettings, get_settings
from vestake.enums import Grouping, SubNetwork
from vestake.services._helpers import now_ts, utc_day
from vestake.services.aggregation import AggregationEngine
from vestake.services.chain_client import ChainClient
from vestake.services.decoder import (
    DELEGATED_POSITION_V0_DISCRIMINATOR,
    POSITION_V0_DISCRIMINATOR,
    POSITION_V0_SIZE,
    SUB_DAO_EPOCH_INFO_V0_DISCRIMINATOR,
    SUB_DAO_EPOCH_INFO_V0_SIZE,
    PositionDecoder,
)
from vestake.services.epoch_info import summarize_epochs
from vestake.services.errors import ChainClientError, DecodeError
from vestake.services.schemas.chain import (
    RawDelegation,
    RawPosition,
    Registrar,
    SubNetworkEpochInfo,
    VotingMintConfig,
)
from vestake.services.schemas.results import EpochSummary, Snapshot

logger = structlog.get_logger(__name__)


@dataclass
class PullResult:
    """Everything one refresh cycle read from the chain."""

    timestamp: int
    epochs: tuple[EpochSummary, ...]
    positions: list[RawPosition]
    registrars: dict[str, Registrar]
    owners: dict[str, str]
    delegations: list[RawDelegation]

    @property
    def registrar_to_mint(self) -> dict[str, str]:
        found: dict[str, str] = {}
        for key, registrar in self.registrars.items():
            primary: VotingMintConfig | None = registrar.primary_mint
            if primary is not None:
                found[key] = primary.mint
        return found

    @property
    def mint_configs(self) -> dict[str, VotingMintConfig]:
        configs: dict[str, VotingMintConfig] = {}
        for registrar in self.registrars.values():
            primary: VotingMintConfig | None = registrar.primary_mint
            if primary is not None:
                configs[primary.mint] = primary
        return configs


class IngestionService:
    """Reads positions, registrars, owners, delegations and epochs from one RPC endpoint.

    Owners and the epoch history are cached between cycles: owners are
    resolved once per position, and epochs are re-read only after the UTC
    day (the epoch index) moves on.
    """

    def __init__(
        self,
        client: ChainClient,
        decoder: PositionDecoder | None = None,
        settings: ChainSettings | None = None,
    ) -> None:
        self.client: ChainClient = client
        self.settings: ChainSettings = settings or get_settings().chain
        self.decoder: PositionDecoder = decoder or PositionDecoder(
            {
                self.settings.iot_sub_dao: SubNetwork.IOT,
                self.settings.mobile_sub_dao: SubNetwork.MOBILE,
            }
        )
        self._owners: dict[str, str] = {}
        self._epochs: tuple[EpochSummary, ...] = ()
        self._epochs_day: int | None = None

    @property
    def mints(self) -> dict[Grouping, str]:
        return {
            Grouping.HNT: self.settings.hnt_mint,
            Grouping.IOT: self.settings.iot_mint,
            Grouping.MOBILE: self.settings.mobile_mint,
        }

    # ------------------------------------------------------------------
    # Epochs
    # ------------------------------------------------------------------

    async def fetch_epoch_infos(self) -> list[SubNetworkEpochInfo]:
        accounts = await self.client.get_accounts_by_filter(
            self.settings.dao_program_id,
            size=SUB_DAO_EPOCH_INFO_V0_SIZE,
            prefix=SUB_DAO_EPOCH_INFO_V0_DISCRIMINATOR,
        )
        return [self.decoder.decode_epoch_info(a.key, a.data) for a in accounts]

    async def refresh_epochs(self, timestamp: int) -> tuple[EpochSummary, ...]:
        """Cached epoch history, re-read when the UTC day changes.

        A re-read is accepted only if the number of complete epochs changed;
        until then the read is repeated on every cycle of the new day.
        """
        day: int = utc_day(timestamp)
        if self._epochs_day == day:
            return self._epochs

        summaries: list[EpochSummary] = summarize_epochs(await self.fetch_epoch_infos())
        if self._epochs_day is None or len(summaries) != len(self._epochs):
            logger.info(
                "Epoch history updated",
                previous=len(self._epochs),
                current=len(summaries),
                day=day,
            )
            self._epochs = tuple(summaries)
            self._epochs_day = day
        return self._epochs

    # ------------------------------------------------------------------
    # Positions and registrars
    # ------------------------------------------------------------------

    async def fetch_positions(self) -> list[RawPosition]:
        accounts = await self.client.get_accounts_by_filter(
            self.settings.vsr_program_id,
            size=POSITION_V0_SIZE,
            prefix=POSITION_V0_DISCRIMINATOR,
        )
        return [self.decoder.decode_position(a.key, a.data) for a in accounts]

    async def fetch_registrars(self, keys: Iterable[str]) -> dict[str, Registrar]:
        ordered: list[str] = sorted(set(keys))
        found: dict[str, Registrar] = {}
        for key, data in zip(ordered, await self.client.get_multiple_accounts(ordered)):
            if data is None:
                logger.warning("Registrar account missing", registrar=key)
                continue
            found[key] = self.decoder.decode_registrar(key, data)
        return found

    async def fetch_delegations(self) -> list[RawDelegation]:
        accounts = await self.client.get_accounts_by_filter(
            self.settings.dao_program_id,
            prefix=DELEGATED_POSITION_V0_DISCRIMINATOR,
        )
        return [self.decoder.decode_delegation(a.key, a.data) for a in accounts]

    # ------------------------------------------------------------------
    # Owners
    # ------------------------------------------------------------------

    async def _largest_holder(self, mint: str) -> str | None:
        try:
            return await self.client.get_token_largest_account(mint)
        except ChainClientError as e:
            logger.warning("Could not find token account for position mint", mint=mint, error=str(e))
            return None

    async def resolve_owners(self, positions: Sequence[RawPosition]) -> dict[str, str]:
        """Owner wallet per position key, via the token account holding the position NFT."""
        live: set[str] = {p.key for p in positions}
        self._owners = {key: owner for key, owner in self._owners.items() if key in live}

        missing: list[RawPosition] = [p for p in positions if p.key not in self._owners]
        batch_size: int = self.client.batch_size
        for offset in range(0, len(missing), batch_size):
            batch: list[RawPosition] = missing[offset : offset + batch_size]
            holders: list[str | None] = list(
                await asyncio.gather(*(self._largest_holder(p.mint) for p in batch))
            )
            pairs: list[tuple[RawPosition, str]] = [
                (p, holder) for p, holder in zip(batch, holders) if holder is not None
            ]
            accounts: list[bytes | None] = await self.client.get_multiple_accounts(
                [holder for _, holder in pairs]
            )
            for (position, holder), data in zip(pairs, accounts):
                if data is None:
                    logger.warning("Token account missing", position=position.key, token_account=holder)
                    continue
                try:
                    self._owners[position.key] = self.decoder.decode_token_account_owner(data)
                except DecodeError as e:
                    logger.warning("Could not decode token account", position=position.key, error=str(e))

        logger.info("Resolved owners", positions=len(positions), newly_resolved=len(missing))
        return dict(self._owners)

    # ------------------------------------------------------------------
    # Supply
    # ------------------------------------------------------------------

    async def token_supplies(self) -> dict[Grouping, int]:
        return {grouping: await self.client.get_token_supply(mint) for grouping, mint in self.mints.items()}

    # ------------------------------------------------------------------
    # Full pull
    # ------------------------------------------------------------------

    async def pull(self, timestamp: int) -> PullResult:
        epochs: tuple[EpochSummary, ...] = await self.refresh_epochs(timestamp)
        positions: list[RawPosition] = await self.fetch_positions()
        registrars: dict[str, Registrar] = await self.fetch_registrars(p.registrar for p in positions)
        owners: dict[str, str] = await self.resolve_owners(positions)
        delegations: list[RawDelegation] = await self.fetch_delegations()
        logger.info(
            "Pulled chain data",
            positions=len(positions),
            registrars=len(registrars),
            delegations=len(delegations),
            epochs=len(epochs),
        )
        return PullResult(
            timestamp=timestamp,
            epochs=epochs,
            positions=positions,
            registrars=registrars,
            owners=owners,
            delegations=delegations,
        )


class SnapshotPipeline:
    """Pull callable for the RefreshScheduler: ingest, then aggregate into a Snapshot."""

    def __init__(self, ingestion: IngestionService, clock: Callable[[], int] = now_ts) -> None:
        self.ingestion: IngestionService = ingestion
        self._clock: Callable[[], int] = clock

    async def __call__(self) -> Snapshot:
        pulled: PullResult = await self.ingestion.pull(self._clock())
        engine: AggregationEngine = AggregationEngine(
            timestamp=pulled.timestamp,
            mints=self.ingestion.mints,
            mint_configs=pulled.mint_configs,
            registrar_to_mint=pulled.registrar_to_mint,
            epochs=pulled.epochs,
        )
        return engine.aggregate(pulled.positions, pulled.delegations, pulled.owners)
