from typing import Optional, TYPE_CHECKING, ClassVar, Union
from datetime import datetime
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .. import localize
from ..categories import LinkStatus
from .Base import Base

if TYPE_CHECKING:
    from .SequencingRun import SequencingRun
    from .Specimen import Specimen


@dataclass(frozen=True)
class Linked:
    specimen_id: int
    linked_at: datetime

    status: ClassVar[LinkStatus] = LinkStatus.LINKED


@dataclass(frozen=True)
class NoMatch:
    reason: str

    status: ClassVar[LinkStatus] = LinkStatus.NO_MATCH


@dataclass(frozen=True)
class Failed:
    error: str

    status: ClassVar[LinkStatus] = LinkStatus.FAILED


LinkOutcome = Union[Linked, NoMatch, Failed]


class SequencingSample(Base):
    __tablename__ = "seq_sample"

    id: Mapped[int] = mapped_column(sa.Integer, default=None, primary_key=True)

    seq_run_id: Mapped[int] = mapped_column(sa.ForeignKey("seq_run.id"), nullable=False, index=True)
    seq_run: Mapped["SequencingRun"] = relationship("SequencingRun", back_populates="samples", lazy="select")

    # weak reference, the specimen may be deleted by the LIMS
    specimen_id: Mapped[Optional[int]] = mapped_column(sa.ForeignKey("specimen.id", ondelete="SET NULL"), nullable=True, default=None, index=True)
    specimen: Mapped[Optional["Specimen"]] = relationship("Specimen", back_populates="sequencing_samples", lazy="select")

    facility_sample_name: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, default=None)
    wuid: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True, default=None, index=True)
    library_id: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, default=None, index=True)
    esp_id: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, default=None)

    index_sequence: Mapped[Optional[str]] = mapped_column(sa.String(100), nullable=True, default=None)
    flowcell_lane: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True, default=None)
    fastq_r1_path: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True, default=None)
    fastq_r2_path: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True, default=None)

    species: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, default=None)
    library_type: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, default=None)
    sample_type: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, default=None)

    total_reads: Mapped[Optional[int]] = mapped_column(sa.BigInteger, nullable=True, default=None)
    total_bases: Mapped[Optional[int]] = mapped_column(sa.BigInteger, nullable=True, default=None)
    pct_q30_r1: Mapped[Optional[float]] = mapped_column(sa.Float, nullable=True, default=None)
    pct_q30_r2: Mapped[Optional[float]] = mapped_column(sa.Float, nullable=True, default=None)
    avg_q_score_r1: Mapped[Optional[float]] = mapped_column(sa.Float, nullable=True, default=None)
    avg_q_score_r2: Mapped[Optional[float]] = mapped_column(sa.Float, nullable=True, default=None)
    phix_error_rate_r1: Mapped[Optional[float]] = mapped_column(sa.Float, nullable=True, default=None)
    phix_error_rate_r2: Mapped[Optional[float]] = mapped_column(sa.Float, nullable=True, default=None)
    pct_pass_filter_r1: Mapped[Optional[float]] = mapped_column(sa.Float, nullable=True, default=None)
    pct_pass_filter_r2: Mapped[Optional[float]] = mapped_column(sa.Float, nullable=True, default=None)

    link_status_id: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False, index=True)
    link_error: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True, default=None)
    linked_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(), nullable=False)

    sortable_fields: ClassVar[list[str]] = ["id", "wuid", "facility_sample_name", "library_id", "link_status_id", "total_reads", "created_at"]

    @property
    def link_status(self) -> LinkStatus:
        return LinkStatus.get(self.link_status_id)

    @property
    def linked(self) -> Optional[datetime]:
        return localize(self.linked_at) if self.linked_at is not None else None

    @property
    def outcome(self) -> LinkOutcome:
        match self.link_status:
            case LinkStatus.LINKED:
                return Linked(specimen_id=self.specimen_id, linked_at=self.linked_at)  # type: ignore[arg-type]
            case LinkStatus.NO_MATCH:
                return NoMatch(reason=self.link_error or "")
            case _:
                return Failed(error=self.link_error or "")

    @outcome.setter
    def outcome(self, value: LinkOutcome):
        self.link_status_id = value.status.id
        if isinstance(value, Linked):
            self.specimen_id = value.specimen_id
            self.linked_at = value.linked_at
            self.link_error = None
        elif isinstance(value, NoMatch):
            self.specimen_id = None
            self.linked_at = None
            self.link_error = value.reason
        else:
            self.specimen_id = None
            self.linked_at = None
            self.link_error = value.error

    def __str__(self) -> str:
        return f"SequencingSample(id={self.id}, facility_sample_name={self.facility_sample_name}, wuid={self.wuid}, link_status={self.link_status})"

    def __repr__(self) -> str:
        return self.__str__()

    __table_args__ = (
        sa.CheckConstraint(
            f"(link_status_id = {LinkStatus.LINKED.id} AND linked_at IS NOT NULL AND link_error IS NULL) OR "
            f"(link_status_id IN ({LinkStatus.NO_MATCH.id}, {LinkStatus.FAILED.id}) AND linked_at IS NULL AND link_error IS NOT NULL)",
            name="ck_seq_sample_link_outcome",
        ),
    )
