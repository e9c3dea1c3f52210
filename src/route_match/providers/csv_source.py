"""CSV position reader: ``lat, lon, heading, speed, hdop[, timestamp]`` with a header row."""
from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, TextIO, Union

from route_match.core.models import PositionReport
from route_match.providers.base import PositionSource

log = logging.getLogger(__name__)

_MIN_FIELDS = 5


def _parse_row(row: List[str], seq: int) -> PositionReport:
    if len(row) < _MIN_FIELDS:
        raise ValueError(f"expected at least {_MIN_FIELDS} fields, got {len(row)}")
    lat, lon, heading, speed, hdop = (float(v.strip()) for v in row[:_MIN_FIELDS])

    timestamp: Optional[datetime] = None
    if len(row) > _MIN_FIELDS and row[_MIN_FIELDS].strip():
        timestamp = datetime.fromisoformat(row[_MIN_FIELDS].strip())

    return PositionReport(
        lat=lat, lon=lon, heading_deg=heading, speed_kmh=speed, hdop=hdop,
        seq=seq, timestamp=timestamp,
    )


def read_positions(stream: TextIO, source_name: str = "<stream>") -> List[PositionReport]:
    """
    Parse reports from an open text stream.

    The first row is a header. Blank rows are skipped; rows that fail to parse
    are logged and skipped. Range plausibility is left to the engine.
    A stream that cannot be decoded or tokenised raises ``ValueError``.
    """
    reports: List[PositionReport] = []
    reader = csv.reader(stream)

    seq = 0
    try:
        next(reader, None)  # header
        for row in reader:
            if not row or all(not c.strip() for c in row):
                continue
            try:
                reports.append(_parse_row(row, seq))
            except ValueError as e:
                log.warning("%s line %d skipped: %s (%s)", source_name, reader.line_num, ",".join(row), e)
                continue
            finally:
                seq += 1
    except (UnicodeDecodeError, csv.Error) as e:
        raise ValueError(f"{source_name}: unreadable CSV after line {reader.line_num}: {e}") from e

    log.info("read %d position reports from %s", len(reports), source_name)
    return reports


@dataclass
class CsvPositionSource(PositionSource):
    path: Union[str, Path]

    def get_positions(self) -> List[PositionReport]:
        p = Path(self.path)
        with p.open(encoding="utf-8", newline="") as fh:
            return read_positions(fh, source_name=p.name)


def iter_csv_files(directory: Union[str, Path]) -> List[Path]:
    """CSV files in ``directory`` sorted by name."""
    d = Path(directory)
    if not d.is_dir():
        raise FileNotFoundError(f"position directory not found: {d}")
    return sorted((p for p in d.iterdir() if p.suffix.lower() == ".csv"), key=lambda p: p.name)
