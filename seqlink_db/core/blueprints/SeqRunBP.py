import math
from dataclasses import dataclass
from typing import Optional, Callable, Any

import sqlalchemy as sa
from sqlalchemy.orm import Query

from ... import models, PAGE_LIMIT
from ...categories import LinkStatus
from .. import exceptions
from ..DBBlueprint import DBBlueprint
from ..RunMetadata import RunMetadata, RunDefaults

RUN_NUMBER_COUNTER = "seq_run_number"
MAX_REGISTER_ATTEMPTS = 3


@dataclass
class RunSummary:
    run: models.SequencingRun
    sample_count: int
    linked_count: int
    no_match_count: int
    failed_count: int

    def to_dict(self) -> dict[str, Any]:
        return self.run.to_dict() | dict(
            sample_count=self.sample_count,
            linked_count=self.linked_count,
            no_match_count=self.no_match_count,
            failed_count=self.failed_count,
        )


def _status_count(status: LinkStatus, label: str):
    return sa.func.coalesce(
        sa.func.sum(sa.case((models.SequencingSample.link_status_id == status.id, 1), else_=0)), 0
    ).label(label)


class SeqRunBP(DBBlueprint):
    defaults: RunDefaults = RunDefaults()

    @classmethod
    def where(
        cls,
        query: Query,
        service_request_number: Optional[str] = None,
        flowcell_id: Optional[str] = None,
        sequencer_type: Optional[str] = None,
        custom_query: Callable[[Query], Query] | None = None,
    ) -> Query:
        if service_request_number is not None:
            query = query.where(models.SequencingRun.service_request_number == service_request_number)

        if flowcell_id is not None:
            query = query.where(models.SequencingRun.flowcell_id == flowcell_id)

        if sequencer_type is not None:
            query = query.where(models.SequencingRun.sequencer_type == sequencer_type)

        if custom_query is not None:
            query = custom_query(query)

        return query

    @DBBlueprint.transaction
    def create(
        self, run_number: int, service_request_number: Optional[str], flowcell_id: Optional[str],
        created_by: Optional[int] = None, pool_name: Optional[str] = None,
        completion_date=None, sequencer_type: Optional[str] = None,
        base_directory: Optional[str] = None,
        file_pattern_r1: Optional[str] = None, file_pattern_r2: Optional[str] = None,
        flush: bool = True
    ) -> models.SequencingRun:
        if not service_request_number and not flowcell_id:
            raise exceptions.InvalidValue("A sequencing run needs a service_request_number or a flowcell_id")

        seq_run = models.SequencingRun(
            run_number=run_number,
            service_request_number=service_request_number,
            flowcell_id=flowcell_id,
            pool_name=pool_name,
            completion_date=completion_date,
            sequencer_type=sequencer_type or self.defaults.sequencer_type,
            base_directory=base_directory,
            file_pattern_r1=file_pattern_r1 or self.defaults.file_pattern_r1,
            file_pattern_r2=file_pattern_r2 or self.defaults.file_pattern_r2,
            created_by=created_by,
            created_at=self.db.timestamp(),
        )
        self.db.session.add(seq_run)

        if flush:
            self.db.flush()
        return seq_run

    @DBBlueprint.transaction
    def get(self, run_id: int) -> models.SequencingRun | None:
        return self.db.session.get(models.SequencingRun, run_id)

    @DBBlueprint.transaction
    def find(
        self,
        service_request_number: Optional[str] = None,
        flowcell_id: Optional[str] = None,
        sequencer_type: Optional[str] = None,
        custom_query: Callable[[Query], Query] | None = None,
        limit: int | None = PAGE_LIMIT, offset: int | None = None,
        sort_by: Optional[str] = None, descending: bool = False,
        count_pages: bool = False,
    ) -> tuple[list[models.SequencingRun], int | None]:
        query = self.db.session.query(models.SequencingRun)
        query = SeqRunBP.where(
            query,
            service_request_number=service_request_number,
            flowcell_id=flowcell_id,
            sequencer_type=sequencer_type,
            custom_query=custom_query,
        )

        if sort_by is not None:
            attr = getattr(models.SequencingRun, sort_by)
            if descending:
                attr = attr.desc()
            query = query.order_by(attr)

        n_pages = None if not count_pages else math.ceil(query.count() / limit) if limit is not None else None

        seq_runs = query.limit(limit).offset(offset).all()
        return seq_runs, n_pages

    @DBBlueprint.transaction
    def find_by_keys(self, service_request_number: Optional[str], flowcell_id: Optional[str]) -> list[models.SequencingRun]:
        """ Runs whose service_request_number OR flowcell_id matches, ordered by id. """
        conditions = []
        if service_request_number:
            conditions.append(models.SequencingRun.service_request_number == service_request_number)
        if flowcell_id:
            conditions.append(models.SequencingRun.flowcell_id == flowcell_id)

        if len(conditions) == 0:
            return []

        return list(self.db.session.scalars(
            sa.select(models.SequencingRun).where(sa.or_(*conditions)).order_by(models.SequencingRun.id)
        ).all())

    @DBBlueprint.transaction
    def next_run_number(self) -> int:
        """ Atomically increments the run number counter, seeding it from max(run_number) on first use. """
        counter = models.IDCounter
        result = self.db.session.execute(
            sa.update(counter)
            .where(counter.name == RUN_NUMBER_COUNTER)
            .values(last_value=counter.last_value + 1)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:  # type: ignore[attr-defined]
            start = self.db.session.execute(
                sa.select(sa.func.coalesce(sa.func.max(models.SequencingRun.run_number), 0))
            ).scalar_one()
            self.db.session.add(models.IDCounter(name=RUN_NUMBER_COUNTER, last_value=start + 1))
            self.db.flush()
            return start + 1

        self.db.flush()
        return self.db.session.execute(
            sa.select(counter.last_value).where(counter.name == RUN_NUMBER_COUNTER)
        ).scalar_one()

    def _match(self, metadata: RunMetadata) -> models.SequencingRun | None:
        runs = self.find_by_keys(metadata.service_request_number, metadata.flowcell_id)

        if len(runs) == 0:
            return None

        if len(runs) > 1:
            raise exceptions.AmbiguousRunMatch(
                f"Service request '{metadata.service_request_number}' and flowcell '{metadata.flowcell_id}' "
                f"match different runs: {', '.join(str(run.run_number) for run in runs)}"
            )

        run = runs[0]
        mismatches = [
            key for key in ("service_request_number", "flowcell_id", "base_directory", "file_pattern_r1", "file_pattern_r2")
            if getattr(metadata, key) is not None and getattr(metadata, key) != getattr(run, key)
        ]
        if mismatches:
            self.db.warn(f"Run {run.run_number} already registered, ignoring differing metadata: {', '.join(mismatches)}")
        return run

    @DBBlueprint.transaction
    def register(self, metadata: RunMetadata, created_by: Optional[int] = None) -> tuple[models.SequencingRun, bool]:
        """
        Idempotent find-or-create of the run of a facility batch.

        An existing run matching the service_request_number or the flowcell_id is returned unchanged.
        Otherwise a new run is inserted in a savepoint; if a concurrent import inserted the same batch
        first (unique violation), the lookup is repeated and the winner returned.

        Returns:
            tuple[models.SequencingRun, bool]: the run and whether it was created by this call

        Raises:
            exceptions.InvalidValue: neither service_request_number nor flowcell_id given
            exceptions.AmbiguousRunMatch: the two keys match two different runs
        """
        if metadata.run_identifier is None:
            raise exceptions.InvalidValue("Run metadata needs a service_request_number or a flowcell_id")

        for attempt in range(1, MAX_REGISTER_ATTEMPTS + 1):
            if (run := self._match(metadata)) is not None:
                return run, False

            try:
                with self.db.session.begin_nested():
                    run = self.create(
                        run_number=self.next_run_number(),
                        service_request_number=metadata.service_request_number,
                        flowcell_id=metadata.flowcell_id,
                        created_by=created_by,
                        pool_name=metadata.pool_name,
                        completion_date=metadata.completion_date,
                        sequencer_type=metadata.sequencer_type,
                        base_directory=metadata.base_directory,
                        file_pattern_r1=metadata.file_pattern_r1,
                        file_pattern_r2=metadata.file_pattern_r2,
                    )
            except sa.exc.IntegrityError as e:
                self.db.warn(f"Conflict registering run '{metadata.run_identifier}' (attempt {attempt}): {e.orig}")
                continue

            self.db.info(f"Registered sequencing run {run.run_number} ('{metadata.run_identifier}')")
            return run, True

        raise exceptions.NotUniqueValue(f"Could not register run '{metadata.run_identifier}' after {MAX_REGISTER_ATTEMPTS} attempts")

    def _summary_query(self) -> sa.Select:
        return sa.select(
            models.SequencingRun,
            sa.func.count(models.SequencingSample.id).label("sample_count"),
            _status_count(LinkStatus.LINKED, "linked_count"),
            _status_count(LinkStatus.NO_MATCH, "no_match_count"),
            _status_count(LinkStatus.FAILED, "failed_count"),
        ).outerjoin(
            models.SequencingSample,
            models.SequencingSample.seq_run_id == models.SequencingRun.id
        ).group_by(models.SequencingRun.id)

    @DBBlueprint.transaction
    def summaries(self) -> list[RunSummary]:
        rows = self.db.session.execute(
            self._summary_query().order_by(models.SequencingRun.run_number.desc())
        ).all()
        return [RunSummary(*row) for row in rows]

    @DBBlueprint.transaction
    def summary(self, run_id: int) -> RunSummary | None:
        row = self.db.session.execute(
            self._summary_query().where(models.SequencingRun.id == run_id)
        ).first()
        return RunSummary(*row) if row is not None else None

    @DBBlueprint.transaction
    def delete(self, run_id: int) -> int:
        """ Deletes the run and all its samples in one unit of work, returns the number of deleted samples. """
        with self.db.transaction() as session:
            identifiers = session.execute(
                sa.select(models.SequencingRun.service_request_number, models.SequencingRun.flowcell_id)
                .where(models.SequencingRun.id == run_id)
            ).first()

            num_samples = session.execute(
                sa.delete(models.SequencingSample).where(models.SequencingSample.seq_run_id == run_id)
            ).rowcount  # type: ignore[attr-defined]

            num_runs = session.execute(
                sa.delete(models.SequencingRun).where(models.SequencingRun.id == run_id)
            ).rowcount  # type: ignore[attr-defined]

            if num_runs == 0 or identifiers is None:
                raise exceptions.ElementDoesNotExist(f"Sequencing run with id '{run_id}' does not exist")

            self.db.flush()

        self.db.info(f"Deleted sequencing run {run_id} (service_request={identifiers[0]}, flowcell={identifiers[1]}) with {num_samples} samples")
        return num_samples
