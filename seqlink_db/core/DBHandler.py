from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional, Union, TYPE_CHECKING

import loguru

import sqlalchemy as sa
from sqlalchemy import orm, event
from sqlalchemy.pool import StaticPool

from ..models.Base import Base
from .. import models

if TYPE_CHECKING:
    from .RunMetadata import RunDefaults


class DBHandler():
    Session: orm.scoped_session

    def __init__(
        self, logger: Optional["loguru.Logger"] = None,
        expire_on_commit: bool = False, auto_open: bool = False,
        run_defaults: Optional["RunDefaults"] = None,
    ):
        self._logger = logger if logger is not None else loguru.logger
        self._session: orm.Session | None = None
        self._engine: sa.Engine | None = None
        self.expire_on_commit = expire_on_commit
        self.__needs_commit = False
        self.auto_open = auto_open

        from .blueprints.SpecimenBP import SpecimenBP
        from .blueprints.SeqRunBP import SeqRunBP
        from .blueprints.SeqSampleBP import SeqSampleBP
        from .blueprints.SequencingBP import SequencingBP
        from .blueprints.PandasBP import PandasBP

        self.specimens = SpecimenBP("specimens", self)
        self.seq_runs = SeqRunBP("seq_runs", self)
        self.seq_samples = SeqSampleBP("seq_samples", self)
        self.sequencing = SequencingBP("sequencing", self)
        self.pd = PandasBP("pd", self)

        if run_defaults is not None:
            self.seq_runs.defaults = run_defaults

    def connect(
        self, user: str, password: str, host: str, db: str = "seqlink_db", port: Union[str, int] = 5432
    ) -> None:
        url = f"postgresql+psycopg://{user}:{password}@{host}:{port}/{db}"
        self.public_url = f"{url.split(':')[0]}://{host}:{port}/{db}"
        self._init_engine(sa.create_engine(url))

    def connect_sqlite(self, path: str = ":memory:") -> None:
        self.public_url = f"sqlite:///{path}"
        if path == ":memory:":
            engine = sa.create_engine(self.public_url, poolclass=StaticPool, connect_args={"check_same_thread": False})
        else:
            engine = sa.create_engine(self.public_url)

        # pysqlite emits its own BEGIN lazily, which breaks SAVEPOINT handling
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, _):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(connection):
            connection.exec_driver_sql("BEGIN")

        self._init_engine(engine)

    def _init_engine(self, engine: sa.Engine) -> None:
        self._engine = engine
        try:
            with self._engine.connect():
                pass
        except Exception as e:
            raise Exception(f"Could not connect to DB '{self.public_url}':\n{e}")

        self.info(f"Connected to DB '{self.public_url}'")

        self.session_factory = orm.sessionmaker(bind=self._engine, expire_on_commit=self.expire_on_commit)
        self.Session = orm.scoped_session(self.session_factory)

    @property
    def dialect(self) -> str:
        if self._engine is None:
            raise Exception("Not connected to a database.")
        return self._engine.dialect.name

    def info(self, *values: object) -> None:
        message = " ".join([str(value) for value in values])
        self._logger.opt(depth=1).info(message)

    def error(self, *values: object) -> None:
        message = " ".join([str(value) for value in values])
        self._logger.opt(depth=1).error(message)

    def warn(self, *values: object) -> None:
        message = " ".join([str(value) for value in values])
        self._logger.opt(depth=1).warning(message)

    def debug(self, *values: object) -> None:
        message = " ".join([str(value) for value in values])
        self._logger.opt(depth=1).debug(message)

    @property
    def session(self) -> orm.Session:
        if self._session is None:
            raise Exception("Session is not open.")
        return self._session

    def timestamp(self) -> datetime:
        """ naive utc, see seqlink_db.localize """
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def commit(self) -> None:
        if self._session is not None:
            self._session.commit()
            self.__needs_commit = False
        else:
            raise Exception("Session is not open, cannot commit changes.")

    def flush(self) -> None:
        if self._session is not None:
            self.__needs_commit = True
            self._session.flush()
        else:
            raise Exception("Session is not open, cannot flush changes.")

    def refresh(self, obj: object) -> None:
        if self._session is not None:
            self._session.refresh(obj)
        else:
            raise Exception("Session is not open, cannot refresh session state.")

    def create_tables(self) -> None:
        if self._engine is None:
            raise Exception("Not connected to a database.")

        inspector = sa.inspect(self._engine)
        if inspector.has_table(models.SequencingRun.__tablename__):
            self.warn("Tables already exist, skipping creation...")
            return

        try:
            with self._engine.begin() as conn:
                Base.metadata.create_all(conn)
                self.info("Successfully created all tables")
        except Exception as e:
            self.error(f"Failed to create tables: {str(e)}")
            raise RuntimeError("Database initialization failed") from e

    def open_session(self, autoflush: bool = False) -> None:
        if self._session is not None:
            self.warn("Session is already open")
            return
        self._session = self.Session(autoflush=autoflush)

    def close_session(self, commit: bool = True, rollback: bool = False) -> bool:
        """ returns True if db was modified """
        modified = False
        if self._session is None:
            self.warn("Session is already closed or was never opened.")
            return False

        try:
            if commit and not rollback:
                if self.needs_commit:
                    try:
                        self._session.commit()
                    except Exception:
                        self.error("Commit failed: - rolling back transaction.")
                        self._session.rollback()
                        raise
                    modified = True
            elif rollback:
                self.info("Rolling back transaction...")
                self._session.rollback()
            elif self.needs_commit:
                self.warn("Session was not committed, but changes were made. This may lead to data loss.")
        finally:
            self.__needs_commit = False
            self.Session.remove()
            self._session = None
        return modified

    def rollback(self) -> None:
        if self._session is None:
            self.error("Session is not open, cannot rollback.")
            raise Exception("Session is not open, cannot rollback.")
        self.info("Rolling back transaction...")
        self._session.rollback()
        self.__needs_commit = False

    @contextmanager
    def transaction(self) -> Iterator[orm.Session]:
        """
        All-or-nothing unit of work. Opens (and always releases) a session that is committed on success
        and rolled back on any exception. If a session is already open, the unit of work runs inside a
        SAVEPOINT of that session instead and only the savepoint is rolled back on failure.
        """
        if self._session is not None:
            with self._session.begin_nested():
                yield self._session
            self.__needs_commit = True
            return

        self.open_session()
        rollback = False
        try:
            yield self.session
            self.commit()
        except Exception:
            rollback = True
            raise
        finally:
            self.close_session(commit=False, rollback=rollback)

    def dispose(self) -> None:
        if self._session is not None:
            self.close_session()
        if self._engine is not None:
            self._engine.dispose()
            self.info("Connection closed.")

    @property
    def needs_commit(self) -> bool:
        if self._session is None:
            return False
        return self.__needs_commit or bool(self._session.dirty) or bool(self._session.new) or bool(self._session.deleted)
