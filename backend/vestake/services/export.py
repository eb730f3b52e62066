"""CSV export of the latest veHNT positions and delegated positions."""

import csv
import io
from collections.abc import Iterable
from pathlib import Path
from typing import TextIO

import structlog

from vestake.enums import ExportKind, Grouping
from vestake.services._types import ExportDataDict, LegacyPositionDict
from vestake.services.schemas.results import ExportResult, Position, Snapshot

logger = structlog.get_logger(__name__)


def legacy_position_to_dict(position: Position) -> LegacyPositionDict:
    """Flat row shape of a delegated veHNT position."""
    delegation = position.delegation
    if delegation is None:
        raise ValueError(f"position {position.key} is not delegated")
    return LegacyPositionDict(
        position_key=position.key,
        delegated_position_key=delegation.key,
        hnt_amount=position.locked_tokens,
        sub_dao=delegation.sub_network.value,
        last_claimed_epoch=delegation.last_claimed_epoch,
        start_ts=position.start_ts,
        genesis_end_ts=position.genesis_end_ts or 0,
        end_ts=position.end_ts,
        duration_s=position.duration_s,
        purged=delegation.purged,
        vehnt=position.vehnt,
        lockup_type=position.lockup_kind.value,
    )


class ExportService:
    """Renders snapshot positions as CSV, in memory or to a file."""

    POSITION_COLUMNS: list[str] = [
        "position_key",
        "owner",
        "hnt_amount",
        "start_ts",
        "genesis_end_ts",
        "end_ts",
        "duration_s",
        "vehnt",
        "lockup_type",
        "delegated_position_key",
        "delegated_sub_dao",
        "delegated_last_claimed_epoch",
        "delegated_pending_rewards",
    ]

    DELEGATED_COLUMNS: list[str] = list(LegacyPositionDict.__annotations__)

    def __init__(self, export_dir: str | Path = "exports") -> None:
        self.export_dir: Path = Path(export_dir)

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def _position_row(self, position: Position) -> list[object]:
        delegation = position.delegation
        return [
            position.key,
            position.owner,
            position.locked_tokens,
            position.start_ts,
            position.genesis_end_ts or 0,
            position.end_ts,
            position.duration_s,
            position.vehnt,
            position.lockup_kind.value,
            delegation.key if delegation else "",
            delegation.sub_network.value if delegation else "",
            delegation.last_claimed_epoch if delegation else "",
            delegation.pending_rewards if delegation else "",
        ]

    def _rows(self, snapshot: Snapshot, kind: ExportKind) -> tuple[list[str], Iterable[list[object]]]:
        hnt = snapshot.grouping(Grouping.HNT)
        if kind == ExportKind.POSITIONS:
            return self.POSITION_COLUMNS, (self._position_row(p) for p in hnt.positions)
        rows = (list(legacy_position_to_dict(p).values()) for p in hnt.delegated_positions)
        return self.DELEGATED_COLUMNS, rows

    @staticmethod
    def filename(snapshot: Snapshot, kind: ExportKind) -> str:
        prefix: str = "positions" if kind == ExportKind.POSITIONS else "delegated_positions"
        return f"{prefix}_{snapshot.timestamp}.csv"

    def _write(self, handle: TextIO, snapshot: Snapshot, kind: ExportKind) -> int:
        columns, rows = self._rows(snapshot, kind)
        writer = csv.writer(handle)
        writer.writerow(columns)
        count: int = 0
        for row in rows:
            writer.writerow(row)
            count += 1
        return count

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    def render_csv(self, snapshot: Snapshot, kind: ExportKind) -> ExportDataDict:
        buffer: io.StringIO = io.StringIO()
        count: int = self._write(buffer, snapshot, kind)
        return ExportDataDict(
            filename=self.filename(snapshot, kind),
            content=buffer.getvalue(),
            row_count=count,
        )

    def write_csv(
        self,
        snapshot: Snapshot,
        kind: ExportKind,
        output_path: Path | None = None,
    ) -> ExportResult:
        if output_path is None:
            output_path = self.export_dir / self.filename(snapshot, kind)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", newline="", encoding="utf-8") as f:
            count: int = self._write(f, snapshot, kind)

        logger.info("Exported CSV", kind=kind.value, path=str(output_path), rows=count)
        return ExportResult(output_path=output_path, row_count=count, kind=kind.value)
