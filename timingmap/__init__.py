"""
Timing Map

Parsing gate-level netlists and their delay files,
and merging the two into a single timing-annotated netlist.
"""

__version__ = "0.1.0"

import warnings
from pathlib import Path

# Configure warning format to be more concise (single line, no source code repetition)
# This applies globally whenever the timingmap package is imported
def _warning_on_one_line(message, category, filename, lineno, file=None, line=None):
    return f'{Path(filename).name}:{lineno}: {category.__name__}: {message}\n'

warnings.formatwarning = _warning_on_one_line


from .data import *
from .dialects import *
from .parse import (
    parse,
    parse_str,
    parse_files,
    parse_verilog,
    parse_sdf,
    default_dialect,
    ParseOptions,
    ErrorMode,
)
from .merge import (
    merge,
    merge_with_report,
    classify,
    normalize_name,
    Correlator,
    MergeOptions,
    MergeReport,
)
from .convert import convert, convert_str, ConversionIO
