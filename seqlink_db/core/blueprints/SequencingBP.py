from typing import Any, Mapping, Optional, Sequence

import pandas as pd

from ..DBBlueprint import DBBlueprint
from ..RunMetadata import RunMetadata
from ..importer import SequencingImporter, ImportResult
from ...tools import sheet
from .SeqRunBP import RunSummary


class SequencingBP(DBBlueprint):
    """ Service entry points of the sequencing ingestion and specimen-linking pipeline. """

    def import_sequencing_data(
        self, rows: Sequence[Mapping[str, Any]], run_metadata: RunMetadata | Mapping[str, Any], actor_id: Optional[int] = None
    ) -> ImportResult:
        return SequencingImporter(self.db).import_sequencing_data(rows, run_metadata, actor_id)

    @DBBlueprint.transaction
    def get_sequencing_runs(self) -> list[RunSummary]:
        return self.db.seq_runs.summaries()

    @DBBlueprint.transaction
    def get_sequencing_run(self, run_id: int) -> RunSummary | None:
        return self.db.seq_runs.summary(run_id)

    @DBBlueprint.transaction
    def get_run_sequencing_samples(self, run_id: int) -> list[dict[str, Any]]:
        return self.db.seq_samples.get_run_samples(run_id)

    @DBBlueprint.transaction
    def get_specimen_sequencing_data(self, specimen_id: int) -> list[dict[str, Any]]:
        return self.db.seq_samples.get_specimen_samples(specimen_id)

    def delete_sequencing_run(self, run_id: int, actor_id: Optional[int] = None) -> None:
        """ Raises exceptions.ElementDoesNotExist if there is no run with this id. """
        try:
            num_samples = self.db.seq_runs.delete(run_id)
        except Exception as e:
            self.db.error(f"Failed to delete sequencing run {run_id} (actor={actor_id}): {e}")
            raise
        self.db.info(f"Sequencing run {run_id} deleted by {actor_id} ({num_samples} samples)")

    def preview_sheet(self, df: pd.DataFrame) -> sheet.SheetPreview:
        return sheet.preview(df)
