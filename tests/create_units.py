import uuid
from typing import Any, Optional

from seqlink_db import DBHandler, models


def create_collaborator(db: DBHandler) -> models.Collaborator:
    collaborator = models.Collaborator(pi_name=f"PI {uuid.uuid1().hex[:8]}", pi_institute="Institute")
    db.session.add(collaborator)
    db.flush()
    return collaborator


def create_project(db: DBHandler, collaborator: Optional[models.Collaborator] = None) -> models.Project:
    project = models.Project(
        project_number=uuid.uuid1().int % 1_000_000,
        disease="Celiac",
        collaborator_id=collaborator.id if collaborator is not None else None,
    )
    db.session.add(project)
    db.flush()
    return project


def create_specimen(db: DBHandler, specimen_number: int, project: Optional[models.Project] = None) -> models.Specimen:
    specimen = models.Specimen(
        specimen_number=specimen_number,
        tube_id=f"T{specimen_number}",
        project_id=project.id if project is not None else None,
    )
    db.session.add(specimen)
    db.flush()
    return specimen


def new_batch_key() -> str:
    return f"SR{uuid.uuid1().hex[:10].upper()}"


def run_metadata(
    service_request_number: Optional[str] = None, flowcell_id: Optional[str] = None, **kwargs: Any
) -> dict[str, Any]:
    metadata: dict[str, Any] = dict(
        service_request_number=service_request_number,
        flowcell_id=flowcell_id,
        pool_name="Pool_1",
        completion_date="2024-03-15",
        base_directory="/data/runs/",
    )
    metadata.update(kwargs)
    return metadata


def sample_row(facility_sample_name: Optional[str], **kwargs: Any) -> dict[str, Any]:
    row: dict[str, Any] = dict(
        facility_sample_name=facility_sample_name,
        library_id="LIB059299",
        esp_id="ESP1",
        index_sequence="TGCCGGTCAG-TTGTATCAGG",
        flowcell_lane="1",
        species="Human",
        library_type="WGS",
        sample_type="DNA",
        total_reads="1,613,040",
        total_bases="243,569,040",
        pct_q30_r1="92.51",
        pct_q30_r2="88.10",
        avg_q_score_r1="36.2",
        avg_q_score_r2="35.1",
        phix_error_rate_r1="0.2512",
        phix_error_rate_r2="0.3101",
        pct_pass_filter_r1="81.5",
        pct_pass_filter_r2="81.5",
    )
    row.update(kwargs)
    return row
