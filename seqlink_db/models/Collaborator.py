from typing import Optional, TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .Base import Base

if TYPE_CHECKING:
    from .Project import Project


class Collaborator(Base):
    __tablename__ = "collaborator"

    id: Mapped[int] = mapped_column(sa.Integer, default=None, primary_key=True)
    pi_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    pi_institute: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True, default=None)

    projects: Mapped[list["Project"]] = relationship("Project", back_populates="collaborator", lazy="select")

    def __str__(self) -> str:
        return f"Collaborator(id={self.id}, pi_name={self.pi_name})"

    def __repr__(self) -> str:
        return self.__str__()
