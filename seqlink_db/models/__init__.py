from .Base import Base  # noqa: F401
from .Collaborator import Collaborator  # noqa: F401
from .Project import Project  # noqa: F401
from .Specimen import Specimen  # noqa: F401
from .SequencingRun import SequencingRun  # noqa: F401
from .SequencingSample import SequencingSample, LinkOutcome, Linked, NoMatch, Failed  # noqa: F401
from .IDCounter import IDCounter  # noqa: F401
