from .parsing import extract_wuid, parse_numeric, parse_count, build_fastq_path  # noqa: F401
from . import sheet  # noqa: F401
