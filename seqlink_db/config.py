import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from loguru import logger

from .core.RunMetadata import RunDefaults


@dataclass
class DBConfig:
    user: str
    password: str
    host: str
    port: str = "5432"
    db: str = "seqlink_db"

    @classmethod
    def from_env(cls) -> "DBConfig":
        return cls(
            user=os.environ["POSTGRES_USER"],
            password=os.environ["POSTGRES_PASSWORD"],
            host=os.environ["POSTGRES_HOST"],
            port=os.environ.get("POSTGRES_PORT", "5432"),
            db=os.environ.get("POSTGRES_DB", "seqlink_db"),
        )


@dataclass
class Config:
    log_folder: Optional[Path] = None
    run_defaults: RunDefaults = field(default_factory=RunDefaults)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        defaults = RunDefaults()
        return cls(
            log_folder=Path(data["log_folder"]) if data.get("log_folder") else None,
            run_defaults=RunDefaults(
                sequencer_type=data.get("default_sequencer_type", defaults.sequencer_type),
                file_pattern_r1=data.get("default_file_pattern_r1", defaults.file_pattern_r1),
                file_pattern_r2=data.get("default_file_pattern_r2", defaults.file_pattern_r2),
            ),
        )


def load_config(path: Optional[str | Path] = None) -> Config:
    """ Reads the YAML file at `path` or $SEQLINK_CONFIG, empty config if neither is set. """
    if path is None and (path := os.environ.get("SEQLINK_CONFIG")) is None:
        return Config()

    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return Config.from_dict(data)


def setup_logging(config: Config) -> list[int]:
    """ Adds daily rotated log and error file sinks, returns the loguru handler ids. """
    if config.log_folder is None:
        return []

    config.log_folder.mkdir(parents=True, exist_ok=True)
    date = "{time:YYYY-MM-DD}"
    return [
        logger.add(config.log_folder / f"{date}.log", level="INFO", colorize=False, rotation="1 day"),
        logger.add(config.log_folder / f"{date}.err", level="ERROR", colorize=False, rotation="1 day"),
    ]
