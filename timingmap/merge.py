"""
# Netlist / Delay-File Correlation

Attaches the timing data of a parsed delay file onto a copy of a parsed netlist,
matching delay-file cells to netlist instances by name.

Correlation is best-effort: unmatched instances and unsupported cell types are not errors.
Both are listed in the `MergeReport` returned by `merge_with_report`, for callers to report as they see fit.
"""

# Std-Lib Imports
from warnings import warn
from dataclasses import field
from typing import Callable, Dict, List, Optional, Tuple

# PyPi Imports
from pydantic.dataclasses import dataclass

# Local Imports
from .data import (
    AnnotatedNetlist,
    CellKind,
    Delays,
    Instance,
    NetlistModel,
    TimingModel,
    TimingRecord,
    clone_checks,
    clone_delays,
)


@dataclass
class MergeOptions:
    """Merge Options
    Cell-type names which select each `CellKind`."""

    sequential_types: List[str] = field(default_factory=lambda: ["DFF"])  # Delay-file `CELLTYPE`s
    lookup_types: List[str] = field(default_factory=lambda: ["LUT_K"])  # Delay-file `CELLTYPE`s
    interconnect_type: str = "fpga_interconnect"  # Netlist instance `type`
    warn_unsupported: bool = False  # Warn once per cell type skipped as `CellKind.OTHER`


@dataclass
class MergeReport:
    """Summary of a correlation run"""

    matched: List[str] = field(default_factory=list)  # Netlist instances with a timing record
    unmatched: List[str] = field(default_factory=list)  # Netlist instances without one
    unused: List[str] = field(default_factory=list)  # Timing records matching no instance
    unsupported: List[Tuple[str, str]] = field(default_factory=list)  # (instance, cell type) skipped


def normalize_name(name: str) -> str:
    """Correlation key of an instance name. Surrounding whitespace is dropped; matching is otherwise exact."""
    return name.strip()


def build_lookup(timing: TimingModel) -> Dict[str, TimingRecord]:
    """Map normalized instance names to timing records.
    On duplicate names, the last record in source order wins."""
    lookup = {}
    for record in timing.instances:
        lookup[normalize_name(record.instance_name)] = record
    return lookup


def classify(instance: Instance, record: TimingRecord, options: MergeOptions) -> CellKind:
    """Select the merge behavior for `instance`, matched to `record`.
    Sequential and lookup cells are named by the record's cell type;
    interconnect by the instance's own type."""
    if record.cell_type in options.sequential_types:
        return CellKind.SEQUENTIAL
    if record.cell_type in options.lookup_types:
        return CellKind.LOOKUP_TABLE
    if instance.type == options.interconnect_type:
        return CellKind.INTERCONNECT
    return CellKind.OTHER


def interconnect_delay(delays: Delays) -> Optional[float]:
    """The single net delay of an interconnect cell.
    The first path entry's value, fanned out to every connection; or the cell's scalar."""
    if isinstance(delays, list):
        return delays[0].delay if delays else None
    return delays


def attach_sequential(instance: Instance, record: TimingRecord) -> None:
    instance.delays = clone_delays(record.delays)
    instance.timing_checks = clone_checks(record.timing_checks)


def attach_lookup_table(instance: Instance, record: TimingRecord) -> None:
    # Timing checks are not propagated for lookup cells
    instance.delays = clone_delays(record.delays)


def attach_interconnect(instance: Instance, record: TimingRecord) -> None:
    delay = interconnect_delay(record.delays)
    if delay is None:
        return
    for conn in instance.connections:
        conn.delay = delay


def attach_nothing(instance: Instance, record: TimingRecord) -> None:
    pass


# Merge policy of each `CellKind`
policies: Dict[CellKind, Callable[[Instance, TimingRecord], None]] = {
    CellKind.SEQUENTIAL: attach_sequential,
    CellKind.LOOKUP_TABLE: attach_lookup_table,
    CellKind.INTERCONNECT: attach_interconnect,
    CellKind.OTHER: attach_nothing,
}

_missing = set(CellKind) - set(policies)
if _missing:
    raise RuntimeError(f"No merge policy for {sorted(k.name for k in _missing)}")


class Correlator:
    """
    # Correlation Engine
    Produces an annotated copy of a netlist. Never modifies its inputs,
    and shares no lists or records with them.
    """

    def __init__(self, options: Optional[MergeOptions] = None):
        self.options = options if options is not None else MergeOptions()

    def run(
        self, netlist: NetlistModel, timing: TimingModel
    ) -> Tuple[AnnotatedNetlist, MergeReport]:
        lookup = build_lookup(timing)
        result = netlist.clone()
        report = MergeReport()
        used = set()

        for _module, instance in result.all_instances():
            key = normalize_name(instance.name)
            record = lookup.get(key, None)
            if record is None:
                report.unmatched.append(instance.name)
                continue

            used.add(key)
            report.matched.append(instance.name)
            kind = classify(instance, record, self.options)
            if kind == CellKind.OTHER:
                report.unsupported.append((instance.name, record.cell_type))
            policies[kind](instance, record)

        report.unused = [name for name in lookup if name not in used]
        if self.options.warn_unsupported:
            for cell_type in dict.fromkeys(ct for _, ct in report.unsupported):
                warn(f"No timing attached for unsupported cell type `{cell_type}`")
        return result, report


def merge(
    netlist: NetlistModel,
    timing: TimingModel,
    *,
    options: Optional[MergeOptions] = None,
) -> AnnotatedNetlist:
    """Primary correlation entry point.
    Returns a timing-annotated copy of `netlist`."""
    result, _report = Correlator(options).run(netlist, timing)
    return result


def merge_with_report(
    netlist: NetlistModel,
    timing: TimingModel,
    *,
    options: Optional[MergeOptions] = None,
) -> Tuple[AnnotatedNetlist, MergeReport]:
    """Correlate, also returning the `MergeReport` of matched, unmatched and unsupported names."""
    return Correlator(options).run(netlist, timing)
