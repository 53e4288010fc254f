from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    def to_dict(self) -> dict:
        return {column.key: getattr(self, column.key) for column in self.__mapper__.column_attrs}
