import datetime as dt
from numbers import Number
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import pandas as pd

from .. import to_utc
from .parsing import extract_wuid

EXCEL_EPOCH = dt.datetime(1899, 12, 30)
PREVIEW_ROWS = 5
PLAUSIBLE_YEARS = (2000, 2050)

# facility sheet header(s) for each importer field, first match wins
FACILITY_COLUMNS: dict[str, list[str]] = {
    "facility_sample_name": ["Library Name"],
    "library_id": ["Library Name", "Library ID"],
    "esp_id": ["ESP ID"],
    "index_sequence": ["Index Sequence"],
    "flowcell_lane": ["Flowcell Lane"],
    "species": ["Species"],
    "library_type": ["Library Type"],
    "sample_type": ["Illumina Sample Type", "Sample Type"],
    "total_reads": ["Total Reads"],
    "total_bases": ["Total Bases"],
    "pct_q30_r1": ["% >Q30 Read 1"],
    "pct_q30_r2": ["% >Q30 Read 2"],
    "avg_q_score_r1": ["Avg Q Score Read 1"],
    "avg_q_score_r2": ["Avg Q Score Read 2"],
    "phix_error_rate_r1": ["PhiX Error Rate Read 1"],
    "phix_error_rate_r2": ["PhiX Error Rate Read 2"],
    "pct_pass_filter_r1": ["% Pass Filter Clusters Read 1"],
    "pct_pass_filter_r2": ["% Pass Filter Clusters Read 2"],
    "date_complete": ["Date Complete"],
}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _lookup(row: Mapping[str, Any], keys: list[str]) -> Any:
    for key in keys:
        if not _is_blank(value := row.get(key)):
            return value
    return None


def map_row(row: Mapping[str, Any], library_type: Optional[str] = None) -> dict[str, Any]:
    """ Maps a facility sheet row (facility headers or snake_case keys) onto importer row fields. """
    mapped = {
        key: _lookup(row, headers + [key]) for key, headers in FACILITY_COLUMNS.items()
    }
    if library_type:
        mapped["library_type"] = library_type
    return mapped


def read_rows(df: pd.DataFrame, library_type: Optional[str] = None) -> list[dict[str, Any]]:
    records = df.astype(object).where(pd.notna(df), None).to_dict(orient="records")
    return [map_row(record, library_type=library_type) for record in records]


def parse_completion_date(value: Any) -> Optional[dt.datetime]:
    """ Accepts datetimes, Excel serial day numbers and date strings. """
    if _is_blank(value) or isinstance(value, bool):
        return None

    if isinstance(value, dt.datetime):
        return to_utc(value).replace(tzinfo=None) if value.tzinfo is not None else value
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day)
    if isinstance(value, Number):
        return EXCEL_EPOCH + dt.timedelta(days=float(value))

    try:
        timestamp = pd.to_datetime(str(value).strip())
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(timestamp):
        return None
    return parse_completion_date(timestamp.to_pydatetime())


@dataclass
class SamplePreview:
    row_index: int
    facility_sample_name: Optional[str]
    wuid: Optional[int]
    library_type: Optional[str]

    @property
    def has_wuid(self) -> bool:
        return self.wuid is not None


@dataclass
class SheetPreview:
    total_samples: int
    samples_with_wuid: int
    completion_date: Optional[dt.datetime]
    sample_previews: list[SamplePreview] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def preview(df: pd.DataFrame) -> SheetPreview:
    rows = read_rows(df)

    completion_date = None
    warnings = []
    if len(rows) > 0:
        raw_date = rows[0]["date_complete"]
        completion_date = parse_completion_date(raw_date)
        if completion_date is not None:
            if not (PLAUSIBLE_YEARS[0] <= completion_date.year <= PLAUSIBLE_YEARS[1]):
                warnings.append(f"Date looks suspicious: {completion_date.date().isoformat()}")
        elif raw_date is not None:
            warnings.append("Could not parse completion date from file")

    wuids = [extract_wuid(row["facility_sample_name"]) for row in rows]
    samples_with_wuid = sum(wuid is not None for wuid in wuids)
    if samples_with_wuid < len(rows):
        warnings.append(f"{len(rows) - samples_with_wuid} samples may not link to specimens (no WUID found)")

    previews = [
        SamplePreview(
            row_index=i + 1,
            facility_sample_name=row["facility_sample_name"],
            wuid=wuids[i],
            library_type=row["library_type"],
        ) for i, row in enumerate(rows[:PREVIEW_ROWS])
    ]

    return SheetPreview(
        total_samples=len(rows),
        samples_with_wuid=samples_with_wuid,
        completion_date=completion_date,
        sample_previews=previews,
        warnings=warnings,
    )
