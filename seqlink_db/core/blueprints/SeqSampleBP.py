import math
from typing import Optional, Callable, Any

import sqlalchemy as sa
from sqlalchemy.orm import Query

from ... import models, PAGE_LIMIT
from ...categories import LinkStatus
from ..DBBlueprint import DBBlueprint

# display fields joined from the LIMS tables
_display_columns = [
    models.Specimen.specimen_number.label("specimen_number"),
    models.Specimen.tube_id.label("tube_id"),
    models.Project.project_number.label("project_number"),
    models.Collaborator.pi_name.label("pi_name"),
]


def _sample_row(row: sa.Row) -> dict[str, Any]:
    data = row._asdict()
    sample: models.SequencingSample = data.pop(models.SequencingSample.__name__)
    return sample.to_dict() | {"link_status": sample.link_status.key} | data


class SeqSampleBP(DBBlueprint):
    @classmethod
    def where(
        cls,
        query: Query,
        seq_run_id: Optional[int] = None,
        specimen_id: Optional[int] = None,
        wuid: Optional[int] = None,
        link_status: Optional[LinkStatus] = None,
        link_status_in: Optional[list[LinkStatus]] = None,
        custom_query: Callable[[Query], Query] | None = None,
    ) -> Query:
        if seq_run_id is not None:
            query = query.where(models.SequencingSample.seq_run_id == seq_run_id)

        if specimen_id is not None:
            query = query.where(models.SequencingSample.specimen_id == specimen_id)

        if wuid is not None:
            query = query.where(models.SequencingSample.wuid == wuid)

        if link_status is not None:
            query = query.where(models.SequencingSample.link_status_id == link_status.id)

        if link_status_in is not None:
            query = query.where(models.SequencingSample.link_status_id.in_([s.id for s in link_status_in]))

        if custom_query is not None:
            query = custom_query(query)

        return query

    @DBBlueprint.transaction
    def create(
        self, seq_run_id: int, outcome: models.LinkOutcome,
        facility_sample_name: Optional[str], wuid: Optional[int],
        library_id: Optional[str] = None, esp_id: Optional[str] = None,
        index_sequence: Optional[str] = None, flowcell_lane: Optional[int] = None,
        fastq_r1_path: Optional[str] = None, fastq_r2_path: Optional[str] = None,
        species: Optional[str] = None, library_type: Optional[str] = None, sample_type: Optional[str] = None,
        total_reads: Optional[int] = None, total_bases: Optional[int] = None,
        pct_q30_r1: Optional[float] = None, pct_q30_r2: Optional[float] = None,
        avg_q_score_r1: Optional[float] = None, avg_q_score_r2: Optional[float] = None,
        phix_error_rate_r1: Optional[float] = None, phix_error_rate_r2: Optional[float] = None,
        pct_pass_filter_r1: Optional[float] = None, pct_pass_filter_r2: Optional[float] = None,
        flush: bool = True
    ) -> models.SequencingSample:
        sample = models.SequencingSample(
            seq_run_id=seq_run_id,
            facility_sample_name=facility_sample_name,
            wuid=wuid,
            library_id=library_id,
            esp_id=esp_id,
            index_sequence=index_sequence,
            flowcell_lane=flowcell_lane,
            fastq_r1_path=fastq_r1_path,
            fastq_r2_path=fastq_r2_path,
            species=species,
            library_type=library_type,
            sample_type=sample_type,
            total_reads=total_reads,
            total_bases=total_bases,
            pct_q30_r1=pct_q30_r1,
            pct_q30_r2=pct_q30_r2,
            avg_q_score_r1=avg_q_score_r1,
            avg_q_score_r2=avg_q_score_r2,
            phix_error_rate_r1=phix_error_rate_r1,
            phix_error_rate_r2=phix_error_rate_r2,
            pct_pass_filter_r1=pct_pass_filter_r1,
            pct_pass_filter_r2=pct_pass_filter_r2,
            created_at=self.db.timestamp(),
        )
        sample.outcome = outcome
        self.db.session.add(sample)

        if flush:
            self.db.flush()
        return sample

    @DBBlueprint.transaction
    def get(self, sample_id: int) -> models.SequencingSample | None:
        return self.db.session.get(models.SequencingSample, sample_id)

    @DBBlueprint.transaction
    def find(
        self,
        seq_run_id: Optional[int] = None,
        specimen_id: Optional[int] = None,
        wuid: Optional[int] = None,
        link_status: Optional[LinkStatus] = None,
        link_status_in: Optional[list[LinkStatus]] = None,
        custom_query: Callable[[Query], Query] | None = None,
        limit: int | None = PAGE_LIMIT, offset: int | None = None,
        sort_by: Optional[str] = None, descending: bool = False,
        count_pages: bool = False,
    ) -> tuple[list[models.SequencingSample], int | None]:
        query = self.db.session.query(models.SequencingSample)
        query = SeqSampleBP.where(
            query,
            seq_run_id=seq_run_id,
            specimen_id=specimen_id,
            wuid=wuid,
            link_status=link_status,
            link_status_in=link_status_in,
            custom_query=custom_query,
        )

        if sort_by is not None:
            attr = getattr(models.SequencingSample, sort_by)
            if descending:
                attr = attr.desc()
            query = query.order_by(attr)

        n_pages = None if not count_pages else math.ceil(query.count() / limit) if limit is not None else None

        samples = query.limit(limit).offset(offset).all()
        return samples, n_pages

    def run_samples_query(self, run_id: int) -> sa.Select:
        return sa.select(
            models.SequencingSample, *_display_columns
        ).outerjoin(
            models.Specimen,
            models.Specimen.id == models.SequencingSample.specimen_id
        ).outerjoin(
            models.Project,
            models.Project.id == models.Specimen.project_id
        ).outerjoin(
            models.Collaborator,
            models.Collaborator.id == models.Project.collaborator_id
        ).where(
            models.SequencingSample.seq_run_id == run_id
        ).order_by(
            models.SequencingSample.wuid.asc(), models.SequencingSample.id.asc()
        )

    @DBBlueprint.transaction
    def get_run_samples(self, run_id: int) -> list[dict[str, Any]]:
        """ Samples of a run ordered by WUID, with specimen, project and collaborator display fields. """
        return [_sample_row(row) for row in self.db.session.execute(self.run_samples_query(run_id)).all()]

    @DBBlueprint.transaction
    def get_specimen_samples(self, specimen_id: int) -> list[dict[str, Any]]:
        query = sa.select(
            models.SequencingSample,
            models.SequencingRun.run_number.label("run_number"),
            models.SequencingRun.service_request_number.label("service_request_number"),
            models.SequencingRun.completion_date.label("completion_date"),
        ).outerjoin(
            models.SequencingRun,
            models.SequencingRun.id == models.SequencingSample.seq_run_id
        ).where(
            models.SequencingSample.specimen_id == specimen_id
        ).order_by(
            models.SequencingSample.created_at.desc(), models.SequencingSample.id.desc()
        )
        return [_sample_row(row) for row in self.db.session.execute(query).all()]
