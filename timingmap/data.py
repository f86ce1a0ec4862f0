"""

# Timing-Map Data Model

All elements of the parsed structural netlist, the parsed delay-file,
and their merged combination, primarily in the form of dataclasses.

"""

# Std-Lib Imports
from enum import Enum
from pathlib import Path
from dataclasses import field, replace
from typing import Optional, Union, List, Dict, Any

# PyPi Imports
from pydantic import Field, AliasChoices, TypeAdapter
from pydantic.dataclasses import dataclass


class NetlistParseError(SyntaxError):
    """Netlist Parse Error
    Carries its source position the way the built-in `SyntaxError` does:
    `lineno`, `offset` (column) and the offending line as `text`."""

    def __init__(
        self,
        msg: str = "Parse error",
        *,
        line: Optional[int] = None,
        column: Optional[int] = None,
        text: Optional[str] = None,
        filename: Optional[str] = None,
    ):
        super().__init__(msg, (filename, line, column, text))

    @classmethod
    def throw(cls, *args, **kwargs):
        """Exception-raising debug wrapper. Breakpoint to catch `NetlistParseError`s."""
        raise cls(*args, **kwargs)


class VerilogSyntaxError(NetlistParseError):
    """Structural (Verilog) Netlist Syntax Error"""


class SdfSyntaxError(NetlistParseError):
    """Delay-File (SDF) Syntax Error"""


class NetlistDialects(Enum):
    """Enumerated, Supported Source Formats"""

    VERILOG = "verilog"
    SDF = "sdf"

    @staticmethod
    def get(spec: "NetlistFormatSpec") -> "NetlistDialects":
        """Get the format specified by `spec`, in either enum or string terms.
        Only does real work in the case when `spec` is a string, otherwise returns it unchanged."""
        if isinstance(spec, (NetlistDialects, str)):
            return NetlistDialects(spec)
        raise TypeError


# Type-alias for specifying format, either in enum or string terms
NetlistFormatSpec = Union[NetlistDialects, str]


class CellKind(Enum):
    """# Cell Kind
    Closed set of merge behaviors a matched instance can receive.
    Every member must have an entry in the correlation policy table."""

    SEQUENTIAL = "sequential"  # Flip-flops & registers. Delays and timing checks.
    LOOKUP_TABLE = "lookup_table"  # K-input LUTs. Delays only.
    INTERCONNECT = "interconnect"  # Routed wires. Per-connection net delays.
    OTHER = "other"  # Anything else. Nothing attached.


def aliased(alias: str, name: str, **kwargs) -> Any:
    """Field serialized as `alias`, and accepted under either `alias` or its Python `name`."""
    return Field(
        serialization_alias=alias,
        validation_alias=AliasChoices(alias, name),
        **kwargs,
    )


# Keep a list of datatypes defined here, primarily for our star-exports.
datatypes = []


def datatype(cls: type) -> type:
    """Register a class as a datatype, and convert it to a `pydantic.dataclasses.dataclass`."""
    cls = dataclass(cls)
    datatypes.append(cls)
    return cls


def clone_delays(delays: Optional["Delays"]) -> Optional["Delays"]:
    """Deep-copy a `Delays` value, either a scalar or a list of `PathDelay`s"""
    if isinstance(delays, list):
        return [d.clone() for d in delays]
    return delays


def clone_checks(checks: Optional[List["TimingCheck"]]) -> Optional[List["TimingCheck"]]:
    if checks is None:
        return None
    return [c.clone() for c in checks]


###
# Structural Netlist
###


@datatype
class Port:
    """Module Port Declaration"""

    name: str
    direction: Optional[str] = None  # "input", "output", "inout", or `None` if never declared
    msb: Optional[int] = None  # Vector range, `None` for scalar ports
    lsb: Optional[int] = None

    def clone(self) -> "Port":
        return replace(self)


@datatype
class Assign:
    """Continuous Assignment, `assign lhs = rhs;`"""

    lhs: str
    rhs: str

    def clone(self) -> "Assign":
        return replace(self)


@datatype
class PathDelay:
    """
    # Path Delay
    One delay declaration of a delay-file cell, e.g. an `IOPATH` timing arc.
    `rise` and `fall` hold the representative value of each source triple,
    and `delay` the single combined value used for correlation.
    """

    kind: str  # "IOPATH", "INTERCONNECT", "PORT" or "DEVICE"
    input: Optional[str] = None
    output: Optional[str] = None
    edge: Optional[str] = None  # "posedge" / "negedge" on the input, if any
    cond: Optional[str] = None  # Condition text of a `COND` wrapper
    rise: Optional[float] = None
    fall: Optional[float] = None
    delay: Optional[float] = None
    increment: bool = False  # INCREMENT rather than ABSOLUTE

    def clone(self) -> "PathDelay":
        return replace(self)


@datatype
class TimingCheck:
    """Timing Check
    Opaque constraint record: its kind, operand references, and values."""

    kind: str  # "SETUP", "HOLD", "WIDTH", ...
    ports: List[str] = field(default_factory=list)
    values: List[float] = field(default_factory=list)

    def clone(self) -> "TimingCheck":
        return replace(self, ports=list(self.ports), values=list(self.values))


# Delays are either a single whole-cell value, or a list of per-path entries
Delays = Union[float, List[PathDelay]]


@datatype
class Connection:
    """Named Port-to-Net Connection"""

    port: str
    net: str
    delay: Optional[float] = None  # Net delay, set by correlation on interconnect instances

    def clone(self) -> "Connection":
        return replace(self)


@datatype
class Instance:
    """Cell / Module Instance"""

    name: str  # Instance Name. Unique within its module.
    type: str  # Instantiated cell or module name
    connections: List[Connection] = field(default_factory=list)
    parameters: Dict[str, str] = field(default_factory=dict)  # `#(.NAME(value))` overrides

    # Timing annotations, attached by correlation
    delays: Optional[Delays] = None
    timing_checks: Optional[List[TimingCheck]] = aliased(
        "timingChecks", "timing_checks", default=None
    )

    def clone(self) -> "Instance":
        return replace(
            self,
            connections=[c.clone() for c in self.connections],
            parameters=dict(self.parameters),
            delays=clone_delays(self.delays),
            timing_checks=clone_checks(self.timing_checks),
        )


@datatype
class Module:
    """Module Definition"""

    name: str
    ports: List[Port] = field(default_factory=list)
    instances: List[Instance] = field(default_factory=list)
    nets: List[str] = field(default_factory=list)  # Declared wires & regs
    assigns: List[Assign] = field(default_factory=list)

    def clone(self) -> "Module":
        return replace(
            self,
            ports=[p.clone() for p in self.ports],
            instances=[i.clone() for i in self.instances],
            nets=list(self.nets),
            assigns=[a.clone() for a in self.assigns],
        )


@datatype
class NetlistModel:
    """
    # Structural Netlist
    Module definitions keyed by name, in source order.
    Also serves as the result of correlation, an `AnnotatedNetlist`.
    """

    modules: Dict[str, Module] = field(default_factory=dict)

    def clone(self) -> "NetlistModel":
        return NetlistModel(modules={k: m.clone() for k, m in self.modules.items()})

    def all_instances(self):
        """Iterator over (module, instance) pairs, in source order"""
        for module in self.modules.values():
            for instance in module.instances:
                yield module, instance


# The merged result shares the netlist's structure
AnnotatedNetlist = NetlistModel


###
# Delay File
###


@datatype
class SdfHeader:
    """Delay-File Header Entries"""

    version: Optional[str] = None  # SDFVERSION
    design: Optional[str] = None
    date: Optional[str] = None
    vendor: Optional[str] = None
    program: Optional[str] = None
    program_version: Optional[str] = aliased("programVersion", "program_version", default=None)
    divider: Optional[str] = None
    timescale: Optional[str] = None

    def clone(self) -> "SdfHeader":
        return replace(self)


@datatype
class TimingRecord:
    """
    # Timing Record
    The delays and timing checks of a single delay-file `CELL`.
    `instance_name` is kept verbatim; correlation normalizes it.
    """

    instance_name: str = aliased("instanceName", "instance_name")
    cell_type: str = aliased("cellType", "cell_type")
    delays: Delays = field(default_factory=list)
    timing_checks: List[TimingCheck] = aliased(
        "timingChecks", "timing_checks", default_factory=list
    )

    def clone(self) -> "TimingRecord":
        return replace(
            self,
            delays=clone_delays(self.delays),
            timing_checks=clone_checks(self.timing_checks),
        )


@datatype
class TimingModel:
    """# Parsed Delay File"""

    instances: List[TimingRecord] = field(default_factory=list)
    header: SdfHeader = field(default_factory=SdfHeader)

    def clone(self) -> "TimingModel":
        return TimingModel(
            instances=[r.clone() for r in self.instances],
            header=self.header.clone(),
        )


###
# Serialization
###


def to_json(arg, *, indent: Optional[int] = 2) -> str:
    """Dump any datatype defined here to a JSON string.
    Fields use their serialized (camel-case) names, and absent optional values are omitted."""
    adapter = TypeAdapter(type(arg))
    return adapter.dump_json(arg, by_alias=True, exclude_none=True, indent=indent).decode(
        "utf-8"
    )


def from_json(txt: Union[str, bytes], tp: type = NetlistModel):
    """Load a datatype of type `tp` from JSON string `txt`. Inverse of `to_json`."""
    return TypeAdapter(tp).validate_json(txt)


def write_json(obj, path: Union[str, Path]) -> None:
    """Write a datatype to JSON file `path`, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(to_json(obj))


def read_json(path: Union[str, Path], tp: type = NetlistModel):
    """Read a datatype of type `tp` from JSON file `path`."""
    with open(path, "r", encoding="utf-8") as f:
        return from_json(f.read(), tp)


# And solely export the defined datatypes
# (at least with star-imports, which are hard to avoid using with all these types)
__all__ = [tp.__name__ for tp in datatypes] + [
    "NetlistDialects",
    "NetlistFormatSpec",
    "NetlistParseError",
    "VerilogSyntaxError",
    "SdfSyntaxError",
    "CellKind",
    "Delays",
    "AnnotatedNetlist",
    "clone_delays",
    "clone_checks",
    "to_json",
    "from_json",
    "write_json",
    "read_json",
]
