from typing import Optional, TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .Base import Base

if TYPE_CHECKING:
    from .Project import Project
    from .SequencingSample import SequencingSample


class Specimen(Base):
    """ Read-only mirror of the specimen table maintained by the LIMS. """
    __tablename__ = "specimen"

    id: Mapped[int] = mapped_column(sa.Integer, default=None, primary_key=True)
    specimen_number: Mapped[int] = mapped_column(sa.Integer, nullable=False, unique=True, index=True)
    tube_id: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, default=None)

    project_id: Mapped[Optional[int]] = mapped_column(sa.ForeignKey("project.id"), nullable=True, default=None)
    project: Mapped[Optional["Project"]] = relationship("Project", back_populates="specimens", lazy="select")

    sequencing_samples: Mapped[list["SequencingSample"]] = relationship("SequencingSample", back_populates="specimen", lazy="select", passive_deletes=True)

    def __str__(self) -> str:
        return f"Specimen(id={self.id}, specimen_number={self.specimen_number})"

    def __repr__(self) -> str:
        return self.__str__()
