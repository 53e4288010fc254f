import pandas as pd

from ... import categories
from ..DBBlueprint import DBBlueprint


class PandasBP(DBBlueprint):
    @DBBlueprint.transaction
    def get_run_samples(self, run_id: int, drop_empty_columns: bool = False) -> pd.DataFrame:
        query = self.db.seq_samples.run_samples_query(run_id)
        df = pd.read_sql(query, self.db.session.connection())

        df["link_status"] = categories.LinkStatus.map_series(df["link_status_id"])

        order = [
            "id", "wuid", "facility_sample_name", "library_id", "link_status", "specimen_id",
            "specimen_number", "tube_id", "project_number", "pi_name",
            "total_reads", "total_bases", "fastq_r1_path", "fastq_r2_path",
        ]
        order += [c for c in df.columns if c not in order]
        df = df[order]

        if drop_empty_columns:
            df = df.dropna(axis="columns", how="all")

        return df
