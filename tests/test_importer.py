from decimal import Decimal

import pytest
import sqlalchemy as sa

from seqlink_db import DBHandler, models, exceptions
from seqlink_db.categories import LinkStatus
from seqlink_db.core.importer import RowError

from .create_units import create_specimen, new_batch_key, run_metadata, sample_row


def _num_runs(db: DBHandler) -> int:
    return len(db.seq_runs.find(limit=None)[0])


def _num_samples(db: DBHandler) -> int:
    return len(db.seq_samples.find(limit=None)[0])


def test_import_end_to_end(db: DBHandler):
    specimen = create_specimen(db, 39552)
    sr = new_batch_key()

    result = db.sequencing.import_sequencing_data(
        rows=[
            sample_row("I13129_39552_Celiac_Leonard_Stool_01_GEMM_068_12M"),
            sample_row("I13129_99999_Celiac_Leonard_Stool_01_GEMM_068_12M"),
            sample_row("BadName"),
        ],
        run_metadata=run_metadata(service_request_number=sr),
        actor_id=1,
    )

    assert result.linked_count == 1
    assert result.no_match_count == 1
    assert result.failed_count == 1
    assert result.success_count == 2
    # rows without a WUID are only reported, never persisted
    assert result.errors == [RowError(3, "BadName", "Could not extract WUID from facility sample name")]

    run = db.seq_runs.get(result.run_id)
    assert run is not None
    assert run.run_number == result.run_number
    assert run.created_by == 1

    samples, _ = db.seq_samples.find(seq_run_id=run.id, limit=None, sort_by="wuid")
    assert len(samples) == 2

    linked, no_match = samples
    assert linked.wuid == 39552
    assert linked.link_status == LinkStatus.LINKED
    assert linked.specimen_id == specimen.id
    assert linked.linked_at is not None
    assert linked.linked is not None and linked.linked.tzinfo is not None
    assert linked.link_error is None
    assert linked.outcome == models.Linked(specimen_id=specimen.id, linked_at=linked.linked_at)

    assert no_match.wuid == 99999
    assert no_match.link_status == LinkStatus.NO_MATCH
    assert no_match.specimen_id is None
    assert no_match.linked_at is None
    assert no_match.linked is None
    assert no_match.link_error == "No specimen found with WUID 99999"
    assert no_match.outcome == models.NoMatch("No specimen found with WUID 99999")


def test_import_result_dict(db: DBHandler):
    result = db.sequencing.import_sequencing_data(
        [sample_row("BadName")], run_metadata(service_request_number=new_batch_key())
    )
    assert result.to_dict() == dict(
        success_count=0,
        linked_count=0,
        no_match_count=0,
        failed_count=1,
        errors=[dict(row_index=1, facility_sample_name="BadName", error="Could not extract WUID from facility sample name")],
        run_id=result.run_id,
        run_number=result.run_number,
    )


def test_import_normalizes_values_and_builds_paths(db: DBHandler):
    sr = new_batch_key()
    name = "I13129_39552_Celiac_Leonard_Stool_01"
    result = db.sequencing.import_sequencing_data(
        [
            sample_row(name),
            sample_row("I13129_39553_x", total_reads="as needed", total_bases="", pct_q30_r1=None, flowcell_lane=""),
        ],
        run_metadata(service_request_number=sr, base_directory="/data/runs/", file_pattern_r2="_2.fq.gz"),
    )
    samples, _ = db.seq_samples.find(seq_run_id=result.run_id, limit=None, sort_by="wuid")

    assert samples[0].total_reads == 1613040
    assert samples[0].total_bases == 243569040
    assert samples[0].flowcell_lane == 1
    assert samples[0].pct_q30_r1 == pytest.approx(92.51)
    assert samples[0].phix_error_rate_r2 == pytest.approx(0.3101)
    assert samples[0].library_id == "LIB059299"
    assert samples[0].fastq_r1_path == f"/data/runs/{sr}_{name}_R1.fastq.gz"
    assert samples[0].fastq_r2_path == f"/data/runs/{sr}_{name}_2.fq.gz"

    assert samples[1].total_reads is None
    assert samples[1].total_bases is None
    assert samples[1].pct_q30_r1 is None
    assert samples[1].flowcell_lane is None


def test_import_uses_flowcell_as_run_identifier(db: DBHandler):
    fc = new_batch_key()
    result = db.sequencing.import_sequencing_data(
        [sample_row("A_1_x")], run_metadata(flowcell_id=fc, base_directory="/data")
    )
    sample = db.seq_samples.find(seq_run_id=result.run_id, limit=None)[0][0]
    assert sample.fastq_r1_path == f"/data/{fc}_A_1_x_R1.fastq.gz"


def test_import_without_base_directory_has_no_paths(db: DBHandler):
    result = db.sequencing.import_sequencing_data(
        [sample_row("A_1_x")], run_metadata(service_request_number=new_batch_key(), base_directory=None)
    )
    sample = db.seq_samples.find(seq_run_id=result.run_id, limit=None)[0][0]
    assert sample.fastq_r1_path is None
    assert sample.fastq_r2_path is None


def test_reimport_reuses_run_and_duplicates_samples(db: DBHandler):
    sr = new_batch_key()
    rows = [sample_row("A_1_x"), sample_row("A_2_x")]

    first = db.sequencing.import_sequencing_data(rows, run_metadata(service_request_number=sr))
    second = db.sequencing.import_sequencing_data(rows, run_metadata(service_request_number=sr, base_directory="/other"))

    assert first.run_id == second.run_id
    assert first.run_number == second.run_number
    assert len(db.seq_samples.find(seq_run_id=first.run_id, limit=None)[0]) == 4
    run = db.seq_runs.get(first.run_id)
    assert run is not None
    assert run.base_directory == "/data/runs/"


def test_resolution_failure_is_recorded_per_row(db: DBHandler, monkeypatch):
    create_specimen(db, 11)
    get_id_by_wuid = db.specimens.get_id_by_wuid

    def flaky_get_id_by_wuid(wuid: int):
        if wuid == 12:
            raise sa.exc.OperationalError("SELECT", {}, Exception("server closed the connection unexpectedly"))
        return get_id_by_wuid(wuid)

    monkeypatch.setattr(db.specimens, "get_id_by_wuid", flaky_get_id_by_wuid)

    result = db.sequencing.import_sequencing_data(
        [sample_row("A_11_x"), sample_row("A_12_x"), sample_row("A_13_x")],
        run_metadata(service_request_number=new_batch_key()),
    )

    assert result.success_count == 3
    assert result.linked_count == 1
    assert result.no_match_count == 1
    assert result.failed_count == 1
    assert len(result.errors) == 1
    assert result.errors[0].row_index == 2
    assert result.errors[0].error.startswith("Error finding specimen:")

    failed = db.seq_samples.find(seq_run_id=result.run_id, link_status=LinkStatus.FAILED, limit=None)[0]
    assert len(failed) == 1
    assert failed[0].wuid == 12
    assert failed[0].specimen_id is None
    assert failed[0].linked_at is None
    assert "server closed the connection" in (failed[0].link_error or "")


def test_recoverable_insert_error_skips_row(db: DBHandler, monkeypatch):
    create = db.seq_samples.create

    def create_rejecting(**kwargs):
        if kwargs["wuid"] == 2:
            raise sa.exc.IntegrityError("INSERT", {}, Exception("value too long"))
        return create(**kwargs)

    monkeypatch.setattr(db.seq_samples, "create", create_rejecting)

    result = db.sequencing.import_sequencing_data(
        [sample_row("A_1_x"), sample_row("A_2_x"), sample_row("A_3_x")],
        run_metadata(service_request_number=new_batch_key()),
    )

    assert result.success_count == 2
    assert result.no_match_count == 2
    assert result.failed_count == 1
    assert result.errors[0].row_index == 2
    assert result.errors[0].facility_sample_name == "A_2_x"
    assert sorted(s.wuid for s in db.seq_samples.find(seq_run_id=result.run_id, limit=None)[0]) == [1, 3]


def test_fatal_insert_error_rolls_back_batch(db: DBHandler, monkeypatch):
    num_runs = _num_runs(db)
    num_samples = _num_samples(db)
    create = db.seq_samples.create

    def create_failing(**kwargs):
        if kwargs["wuid"] == 2:
            raise sa.exc.OperationalError("INSERT", {}, Exception("connection lost"))
        return create(**kwargs)

    monkeypatch.setattr(db.seq_samples, "create", create_failing)

    with pytest.raises(sa.exc.OperationalError):
        db.sequencing.import_sequencing_data(
            [sample_row("A_1_x"), sample_row("A_2_x"), sample_row("A_3_x")],
            run_metadata(service_request_number=new_batch_key()),
        )

    assert _num_runs(db) == num_runs
    assert _num_samples(db) == num_samples


def test_registration_failure_aborts_batch(db: DBHandler):
    sr = new_batch_key()
    fc = new_batch_key()
    db.sequencing.import_sequencing_data([sample_row("A_1_x")], run_metadata(service_request_number=sr))
    db.sequencing.import_sequencing_data([sample_row("A_1_x")], run_metadata(flowcell_id=fc))
    num_samples = _num_samples(db)

    with pytest.raises(exceptions.AmbiguousRunMatch):
        db.sequencing.import_sequencing_data([sample_row("A_2_x")], run_metadata(service_request_number=sr, flowcell_id=fc))

    with pytest.raises(exceptions.InvalidValue):
        db.sequencing.import_sequencing_data([sample_row("A_2_x")], run_metadata())

    assert _num_samples(db) == num_samples


def test_import_commits_own_transaction(fresh_db: DBHandler):
    result = fresh_db.sequencing.import_sequencing_data(
        [sample_row("A_1_x"), sample_row("BadName")],
        run_metadata(service_request_number="SR1"),
    )
    assert fresh_db._session is None

    fresh_db.open_session()
    assert len(fresh_db.seq_samples.find(seq_run_id=result.run_id, limit=None)[0]) == 1
    assert fresh_db.seq_runs.get(result.run_id) is not None
    fresh_db.close_session()


def test_fatal_error_leaves_nothing_committed(fresh_db: DBHandler, monkeypatch):
    create = fresh_db.seq_samples.create
    calls = []

    def create_failing(**kwargs):
        calls.append(kwargs["wuid"])
        if len(calls) == 2:
            raise sa.exc.OperationalError("INSERT", {}, Exception("connection lost"))
        return create(**kwargs)

    monkeypatch.setattr(fresh_db.seq_samples, "create", create_failing)

    with pytest.raises(sa.exc.OperationalError):
        fresh_db.sequencing.import_sequencing_data(
            [sample_row("A_1_x"), sample_row("A_2_x")],
            run_metadata(service_request_number="SR1"),
        )
    assert fresh_db._session is None

    fresh_db.open_session()
    assert _num_runs(fresh_db) == 0
    assert _num_samples(fresh_db) == 0
    fresh_db.close_session()


def test_import_empty_batch_registers_run(db: DBHandler):
    result = db.sequencing.import_sequencing_data([], run_metadata(service_request_number=new_batch_key()))
    assert result.success_count == 0
    assert result.failed_count == 0
    assert db.seq_runs.get(result.run_id) is not None


def test_non_finite_values_are_stored_as_null(db: DBHandler):
    result = db.sequencing.import_sequencing_data(
        [
            sample_row("A_1_x"),
            sample_row("A_2_x", total_reads=float("inf"), pct_q30_r1=float("-inf")),
            sample_row("A_3_x", total_bases=Decimal("NaN"), flowcell_lane="inf"),
        ],
        run_metadata(service_request_number=new_batch_key()),
    )

    assert result.success_count == 3
    assert result.failed_count == 0

    samples, _ = db.seq_samples.find(seq_run_id=result.run_id, limit=None, sort_by="wuid")
    assert samples[0].total_reads == 1613040
    assert samples[1].total_reads is None
    assert samples[1].pct_q30_r1 is None
    assert samples[2].total_bases is None
    assert samples[2].flowcell_lane is None


def test_out_of_range_wuid_is_not_extracted(db: DBHandler):
    result = db.sequencing.import_sequencing_data(
        [sample_row("A_1_x"), sample_row("A_99999999999999999999_x")],
        run_metadata(service_request_number=new_batch_key()),
    )

    assert result.success_count == 1
    assert result.errors == [
        RowError(2, "A_99999999999999999999_x", "Could not extract WUID from facility sample name")
    ]
    assert [s.wuid for s in db.seq_samples.find(seq_run_id=result.run_id, limit=None)[0]] == [1]


def test_oversized_count_skips_row(db: DBHandler):
    result = db.sequencing.import_sequencing_data(
        [sample_row("A_1_x", total_reads="1e30"), sample_row("A_2_x")],
        run_metadata(service_request_number=new_batch_key()),
    )

    assert result.success_count == 1
    assert result.failed_count == 1
    assert result.errors[0].row_index == 1
    assert result.errors[0].error.startswith("Could not insert sample:")
    assert [s.wuid for s in db.seq_samples.find(seq_run_id=result.run_id, limit=None)[0]] == [2]
