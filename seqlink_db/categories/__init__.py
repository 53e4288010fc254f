from .ExtendedEnum import ExtendedEnum, DBEnum  # noqa: F401
from .LinkStatus import LinkStatus, LinkStatusEnum  # noqa: F401
