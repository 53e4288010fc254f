from typing import ClassVar, Optional, TYPE_CHECKING
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .. import localize
from .Base import Base

if TYPE_CHECKING:
    from .SequencingSample import SequencingSample


class SequencingRun(Base):
    __tablename__ = "seq_run"

    DEFAULT_SEQUENCER_TYPE: ClassVar[str] = "NovaSeq"
    DEFAULT_FILE_PATTERN_R1: ClassVar[str] = "_R1.fastq.gz"
    DEFAULT_FILE_PATTERN_R2: ClassVar[str] = "_R2.fastq.gz"

    id: Mapped[int] = mapped_column(sa.Integer, default=None, primary_key=True)
    run_number: Mapped[int] = mapped_column(sa.Integer, nullable=False, unique=True, index=True)

    service_request_number: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, unique=True, default=None)
    flowcell_id: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, unique=True, default=None)
    pool_name: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, default=None)
    completion_date: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(), nullable=True, default=None)
    sequencer_type: Mapped[str] = mapped_column(sa.String(100), nullable=False, default=DEFAULT_SEQUENCER_TYPE)

    base_directory: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True, default=None)
    file_pattern_r1: Mapped[str] = mapped_column(sa.String(255), nullable=False, default=DEFAULT_FILE_PATTERN_R1)
    file_pattern_r2: Mapped[str] = mapped_column(sa.String(255), nullable=False, default=DEFAULT_FILE_PATTERN_R2)

    created_by: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(), nullable=False)

    samples: Mapped[list["SequencingSample"]] = relationship("SequencingSample", back_populates="seq_run", lazy="select")

    sortable_fields: ClassVar[list[str]] = ["id", "run_number", "service_request_number", "flowcell_id", "completion_date", "created_at"]

    @property
    def created(self) -> datetime:
        return localize(self.created_at)

    def created_str(self, fmt: str = "%Y-%m-%d %H:%M") -> str:
        return self.created.strftime(fmt)

    @property
    def run_identifier(self) -> str | None:
        return self.service_request_number or self.flowcell_id

    def __str__(self) -> str:
        return f"SequencingRun(id={self.id}, run_number={self.run_number}, service_request_number={self.service_request_number}, flowcell_id={self.flowcell_id})"

    def __repr__(self) -> str:
        return self.__str__()

    __table_args__ = (
        sa.CheckConstraint(
            "service_request_number IS NOT NULL OR flowcell_id IS NOT NULL",
            name="ck_seq_run_batch_key",
        ),
    )
