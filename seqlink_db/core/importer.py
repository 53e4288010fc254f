from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, TYPE_CHECKING

import sqlalchemy as sa

from .. import models
from ..categories import LinkStatus
from ..tools.parsing import extract_wuid, parse_numeric, parse_count, build_fastq_path
from .RunMetadata import RunMetadata

if TYPE_CHECKING:
    from .DBHandler import DBHandler

# errors limited to the offending row, anything else aborts the batch.
# pysqlite raises a bare OverflowError for integers beyond 64 bit
ROW_RECOVERABLE_ERRORS = (sa.exc.IntegrityError, sa.exc.DataError, OverflowError)

QUALITY_FIELDS = (
    "pct_q30_r1", "pct_q30_r2",
    "avg_q_score_r1", "avg_q_score_r2",
    "phix_error_rate_r1", "phix_error_rate_r2",
    "pct_pass_filter_r1", "pct_pass_filter_r2",
)
TEXT_FIELDS = ("library_id", "esp_id", "index_sequence", "species", "library_type", "sample_type")


@dataclass
class RowError:
    row_index: int
    facility_sample_name: Optional[str]
    error: str


@dataclass
class ImportResult:
    run_id: int
    run_number: int
    success_count: int = 0
    linked_count: int = 0
    no_match_count: int = 0
    failed_count: int = 0
    errors: list[RowError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return dict(
            success_count=self.success_count,
            linked_count=self.linked_count,
            no_match_count=self.no_match_count,
            failed_count=self.failed_count,
            errors=[dict(row_index=e.row_index, facility_sample_name=e.facility_sample_name, error=e.error) for e in self.errors],
            run_id=self.run_id,
            run_number=self.run_number,
        )


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _float(value: Any) -> Optional[float]:
    if (parsed := parse_numeric(value)) is None:
        return None
    return float(parsed)


class SequencingImporter:
    """
    Imports one facility batch: registers the run and persists one sample per row, all inside a single
    transaction. Rows are processed sequentially in input order.

    Row outcomes:
        - no WUID in the facility sample name: reported in `errors`, nothing persisted
        - specimen found: persisted as linked
        - no specimen with that WUID: persisted as no_match
        - specimen lookup raised a database error: persisted as failed and reported in `errors`
        - insert raised IntegrityError/DataError: rolled back to the row's savepoint and reported in `errors`

    Run registration failures and any other exception roll back the whole batch and are re-raised.
    """

    def __init__(self, db: "DBHandler"):
        self.db = db

    def import_sequencing_data(
        self, rows: Sequence[Mapping[str, Any]], run_metadata: RunMetadata | Mapping[str, Any], actor_id: Optional[int] = None
    ) -> ImportResult:
        if not isinstance(run_metadata, RunMetadata):
            run_metadata = RunMetadata.from_dict(run_metadata)

        try:
            with self.db.transaction():
                run, _ = self.db.seq_runs.register(run_metadata, created_by=actor_id)
                result = ImportResult(run_id=run.id, run_number=run.run_number)

                for row_index, row in enumerate(rows, start=1):
                    self._import_row(run, row_index, row, result)
        except Exception as e:
            self.db.error(f"Sequencing import of run '{run_metadata.run_identifier}' failed, batch rolled back: {e}")
            raise

        self.db.info(
            f"Sequencing import completed: run_number={result.run_number}, success={result.success_count}, "
            f"linked={result.linked_count}, no_match={result.no_match_count}, failed={result.failed_count}"
        )
        return result

    def _resolve(self, wuid: int) -> models.LinkOutcome:
        try:
            with self.db.session.begin_nested():
                specimen_id = self.db.specimens.get_id_by_wuid(wuid)
        except sa.exc.SQLAlchemyError as e:
            return models.Failed(f"Error finding specimen: {e}")

        if specimen_id is None:
            return models.NoMatch(f"No specimen found with WUID {wuid}")
        return models.Linked(specimen_id=specimen_id, linked_at=self.db.timestamp())

    def _import_row(self, run: models.SequencingRun, row_index: int, row: Mapping[str, Any], result: ImportResult) -> None:
        facility_sample_name = _text(row.get("facility_sample_name"))

        if (wuid := extract_wuid(facility_sample_name)) is None:
            result.failed_count += 1
            result.errors.append(RowError(row_index, facility_sample_name, "Could not extract WUID from facility sample name"))
            return

        outcome = self._resolve(wuid)

        try:
            with self.db.session.begin_nested():
                self.db.seq_samples.create(
                    seq_run_id=run.id,
                    outcome=outcome,
                    facility_sample_name=facility_sample_name,
                    wuid=wuid,
                    flowcell_lane=parse_count(row.get("flowcell_lane")),
                    fastq_r1_path=build_fastq_path(run.base_directory, run.run_identifier, facility_sample_name, run.file_pattern_r1),
                    fastq_r2_path=build_fastq_path(run.base_directory, run.run_identifier, facility_sample_name, run.file_pattern_r2),
                    total_reads=parse_count(row.get("total_reads")),
                    total_bases=parse_count(row.get("total_bases")),
                    **{key: _text(row.get(key)) for key in TEXT_FIELDS},
                    **{key: _float(row.get(key)) for key in QUALITY_FIELDS},
                )
        except ROW_RECOVERABLE_ERRORS as e:
            reason = e.orig if isinstance(e, sa.exc.DBAPIError) else e
            self.db.warn(f"Row {row_index} ('{facility_sample_name}') could not be inserted: {reason}")
            result.failed_count += 1
            result.errors.append(RowError(row_index, facility_sample_name, f"Could not insert sample: {reason}"))
            return

        result.success_count += 1
        match outcome.status:
            case LinkStatus.LINKED:
                result.linked_count += 1
            case LinkStatus.NO_MATCH:
                result.no_match_count += 1
            case LinkStatus.FAILED:
                result.failed_count += 1
                result.errors.append(RowError(row_index, facility_sample_name, outcome.error))  # type: ignore[union-attr]
