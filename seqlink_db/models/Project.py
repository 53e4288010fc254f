from typing import Optional, TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .Base import Base

if TYPE_CHECKING:
    from .Collaborator import Collaborator
    from .Specimen import Specimen


class Project(Base):
    __tablename__ = "project"

    id: Mapped[int] = mapped_column(sa.Integer, default=None, primary_key=True)
    project_number: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True, unique=True, default=None)
    disease: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, default=None)

    collaborator_id: Mapped[Optional[int]] = mapped_column(sa.ForeignKey("collaborator.id"), nullable=True, default=None)
    collaborator: Mapped[Optional["Collaborator"]] = relationship("Collaborator", back_populates="projects", lazy="select")

    specimens: Mapped[list["Specimen"]] = relationship("Specimen", back_populates="project", lazy="select")

    def __str__(self) -> str:
        return f"Project(id={self.id}, project_number={self.project_number})"

    def __repr__(self) -> str:
        return self.__str__()
