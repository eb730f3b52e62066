"""Enumeration types for the vote-escrow indexer."""

from enum import Enum


class SubNetwork(str, Enum):
    """Sub-network a veHNT position can delegate to."""

    IOT = "iot"
    MOBILE = "mobile"
    UNKNOWN = "unknown"


class LockupKind(str, Enum):
    """Lockup schedule of a position."""

    CLIFF = "cliff"  # fixed end, decays toward it
    CONSTANT = "constant"  # end keeps moving, never decays
    UNLOCKED = "unlocked"


class Grouping(str, Enum):
    """Vote-weight-bearing mint a position belongs to."""

    HNT = "vehnt"
    IOT = "veiot"
    MOBILE = "vemobile"


class Pool(str, Enum):
    """Aggregation bucket inside a grouping."""

    NETWORK = "network"
    IOT = "iot"
    MOBILE = "mobile"
    UNDELEGATED = "undelegated"


class RefreshState(str, Enum):
    """Refresh scheduler state."""

    IDLE = "idle"
    PULLING = "pulling"
    FAILED_BACKOFF = "failed_backoff"


class ExportKind(str, Enum):
    """CSV export flavour."""

    POSITIONS = "positions"
    DELEGATED = "delegated"
