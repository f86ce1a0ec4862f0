"""
# Netlist & Delay-File Conversion

The full pipeline: parse a netlist and its delay file, merge them,
and optionally write the annotated result as JSON.
The two parsers share nothing, and run concurrently; merging waits on both.
"""

# Std-Lib Imports
from pathlib import Path
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

# PyPi
from pydantic.dataclasses import dataclass

# Local Imports
from .data import AnnotatedNetlist, NetlistModel, NetlistDialects, TimingModel, write_json
from .parse import ParseOptions, ErrorMode, parse_files, parse_verilog, parse_sdf
from .merge import MergeOptions, merge


@dataclass
class ConversionIO:
    """Input and Output Paths for a Conversion"""

    verilog: Path  # Structural netlist
    sdf: Path  # Delay file
    dest: Optional[Path] = None  # JSON output, if any


def convert(
    src: ConversionIO,
    *,
    errormode: ErrorMode = ErrorMode.RAISE,
    merge_options: Optional[MergeOptions] = None,
) -> AnnotatedNetlist:
    """Convert a netlist file and its delay file into an annotated netlist,
    writing it to `src.dest` if provided."""

    netlist_options = ParseOptions(dialect=NetlistDialects.VERILOG, errormode=errormode)
    timing_options = ParseOptions(dialect=NetlistDialects.SDF, errormode=errormode)

    annotated = _run(
        lambda: parse_files(src.verilog, options=netlist_options),
        lambda: parse_files(src.sdf, options=timing_options),
        merge_options,
    )
    if src.dest is not None:
        write_json(annotated, src.dest)
    return annotated


def convert_str(
    verilog: str,
    sdf: str,
    *,
    errormode: ErrorMode = ErrorMode.RAISE,
    merge_options: Optional[MergeOptions] = None,
) -> AnnotatedNetlist:
    """Convert netlist and delay-file source text into an annotated netlist"""

    options = ParseOptions(errormode=errormode)
    return _run(
        lambda: parse_verilog(verilog, options=options),
        lambda: parse_sdf(sdf, options=options),
        merge_options,
    )


def _run(
    parse_netlist: Callable[[], NetlistModel],
    parse_timing: Callable[[], TimingModel],
    merge_options: Optional[MergeOptions],
) -> AnnotatedNetlist:
    """Run both parsers on a thread pool, and merge once both complete.
    A failure in either parser propagates, and no merge is attempted."""
    with ThreadPoolExecutor(max_workers=2) as pool:
        netlist_future = pool.submit(parse_netlist)
        timing_future = pool.submit(parse_timing)
        netlist = netlist_future.result()
        timing = timing_future.result()
    return merge(netlist, timing, options=merge_options)
