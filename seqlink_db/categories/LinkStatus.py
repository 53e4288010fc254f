from dataclasses import dataclass

from .ExtendedEnum import DBEnum, ExtendedEnum


@dataclass(eq=False, frozen=True)
class LinkStatusEnum(DBEnum):
    key: str
    label: str
    icon: str


class LinkStatus(ExtendedEnum):
    key: str
    label: str
    icon: str
    LINKED = LinkStatusEnum(1, "linked", "Linked", "🔗")
    NO_MATCH = LinkStatusEnum(2, "no_match", "No Match", "❔")
    FAILED = LinkStatusEnum(3, "failed", "Failed", "❌")

    @classmethod
    def from_key(cls, key: str) -> "LinkStatus":
        for status in cls:
            if status.key == key:
                return status
        raise ValueError(f"'{key}' is not a valid {cls.__name__} key")
