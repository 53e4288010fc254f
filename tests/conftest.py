import os
import pytest

from seqlink_db import DBHandler
from seqlink_db.models.Base import Base


@pytest.fixture(scope="session")  # type: ignore
def _db(tmp_path_factory):
    db = DBHandler()
    if "POSTGRES_HOST" in os.environ:
        db.connect(
            user=os.environ["POSTGRES_USER"],
            password=os.environ["POSTGRES_PASSWORD"],
            host=os.environ["POSTGRES_HOST"],
            port=os.environ["POSTGRES_PORT"],
            db=os.environ["POSTGRES_DB"],
        )
        Base.metadata.drop_all(db._engine)
    else:
        db.connect_sqlite(str(tmp_path_factory.mktemp("db") / "seqlink.sqlite"))
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture(scope="function")  # type: ignore
def db(_db: DBHandler):
    _db.open_session()
    yield _db
    _db.close_session(rollback=True)


@pytest.fixture(scope="function")  # type: ignore
def fresh_db(tmp_path):
    """ Empty database without an open session, for tests of commit/rollback behaviour. """
    db = DBHandler()
    db.connect_sqlite(str(tmp_path / "fresh.sqlite"))
    db.create_tables()
    yield db
    db.dispose()
