from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Mapping, Optional

from ..models.SequencingRun import SequencingRun
from ..tools.sheet import parse_completion_date


@dataclass(frozen=True)
class RunDefaults:
    sequencer_type: str = SequencingRun.DEFAULT_SEQUENCER_TYPE
    file_pattern_r1: str = SequencingRun.DEFAULT_FILE_PATTERN_R1
    file_pattern_r2: str = SequencingRun.DEFAULT_FILE_PATTERN_R2


@dataclass(frozen=True)
class RunMetadata:
    """ Facility batch metadata of one sequencing run. Blank strings are stored as None. """
    service_request_number: Optional[str] = None
    flowcell_id: Optional[str] = None
    pool_name: Optional[str] = None
    completion_date: Optional[datetime] = None
    sequencer_type: Optional[str] = None
    base_directory: Optional[str] = None
    file_pattern_r1: Optional[str] = None
    file_pattern_r2: Optional[str] = None

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, str):
                object.__setattr__(self, f.name, value.strip() or None)

    @property
    def run_identifier(self) -> Optional[str]:
        return self.service_request_number or self.flowcell_id

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RunMetadata":
        names = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in names}
        if "completion_date" in values:
            values["completion_date"] = parse_completion_date(values["completion_date"])
        for key, value in values.items():
            if key != "completion_date" and value is not None and not isinstance(value, str):
                values[key] = str(value)
        return cls(**values)
