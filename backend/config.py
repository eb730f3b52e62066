"""Application settings: single file, Pydantic-based.

Chain endpoints and program/mint addresses come from CHAIN_*, refresh
cadence from REFRESH_*, query limits from API_*. The defaults target
Helium on Solana mainnet.
"""

import logging
import sys
from functools import lru_cache
from pathlib import Path

import structlog
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _backend_root() -> Path:
    """Backend package root (backend/). config.py lives at backend/config.py."""
    return Path(__file__).resolve().parent


def _ensure_env_loaded() -> None:
    """Load .env from backend root (then project root). Idempotent."""
    root: Path = _backend_root()
    for candidate in (root / ".env", root.parent / ".env"):
        if candidate.exists():
            load_dotenv(candidate, override=False)


_ensure_env_loaded()


class ChainSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHAIN_",
        env_file=(str(_backend_root() / ".env"), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    rpc_url: str = Field(default="https://api.mainnet-beta.solana.com")
    rpc_timeout: float = Field(default=60.0)
    retry_attempts: int = Field(default=3)
    retry_delay: float = Field(default=1.0)
    batch_size: int = Field(default=100, description="Keys per getMultipleAccounts call")

    dao_program_id: str = Field(default="hdaoVTCqhfHHo75XdAMxBKdUqvq1i5bF23sisBqVgGR")
    vsr_program_id: str = Field(default="hvsrNC3NKbcryqDs2DocYHZ9yPKEVzdSjQG6RVtK1s8")

    hnt_mint: str = Field(default="hntyVP6YFm1Hg25TN9WGLqM12b8TQmcknKrdu1oxWux")
    iot_mint: str = Field(default="iotEVVZLEywoTn1QdwNPddxPWszn3zFhEot3MfL9fns")
    mobile_mint: str = Field(default="mb1eu7TzEc71KxDpsmsKoucSSuuoGLv1drys1oP2jh6")

    iot_sub_dao: str = Field(default="39Lw1RH6zt8AJvKn3BTxmUDofzduCM2J3kSaGDZ8L7Sk")
    mobile_sub_dao: str = Field(default="Gm9xDCJawDEKDrrQW6haw94gABaYzQwCq4ZQU8h8bd22")


class RefreshSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REFRESH_",
        env_file=(str(_backend_root() / ".env"), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    interval_secs: float = Field(default=300.0)
    immediate_retries: int = Field(default=3)
    backoff_secs: float = Field(default=30.0)
    history_window_secs: int = Field(default=16 * 60)


class ApiSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=(str(_backend_root() / ".env"), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, validation_alias="PORT")
    page_limit: int = Field(default=500, description="Default and maximum page size")
    top_owners: int = Field(default=100, description="Default and maximum number of top owners")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VESTAKE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    export_dir: Path = Field(default=Path("exports"))

    chain: ChainSettings = Field(default_factory=ChainSettings)
    refresh: RefreshSettings = Field(default_factory=RefreshSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Route stdlib and structlog output to stdout at the configured level."""
    name: str = (level or get_settings().log_level).upper()
    numeric: int = getattr(logging, name, logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
    )
