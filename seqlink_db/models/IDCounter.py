import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from .Base import Base


class IDCounter(Base):
    __tablename__ = "id_counter"

    name: Mapped[str] = mapped_column(sa.String(32), primary_key=True)
    last_value: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
