from loguru import logger

from .core.DBHandler import DBHandler
from .config import DBConfig, load_config, setup_logging


def main():
    config = load_config()
    setup_logging(config)

    db_config = DBConfig.from_env()
    db = DBHandler(logger=logger, run_defaults=config.run_defaults)
    db.connect(
        user=db_config.user,
        password=db_config.password,
        host=db_config.host,
        port=db_config.port,
        db=db_config.db,
    )
    db.create_tables()
    db.dispose()


if __name__ == "__main__":
    main()
    exit(0)
