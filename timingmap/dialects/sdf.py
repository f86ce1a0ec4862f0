"""
# SDF Delay-File Parsing

Standard Delay Format files, as written after place-and-route.
Parses the header, and each `CELL`'s `DELAY` and `TIMINGCHECK` blocks into a `TimingRecord`.
Everything else (`TIMINGENV`, `PATHPULSE`, `LABEL`, ...) is skipped as a balanced group.
"""

from typing import Optional, List, Tuple

# Local Imports
from ..data import *
from ..lex import Tokens, sdf_pat
from .base import DialectParser


# Header entries, and the `SdfHeader` fields they set
_header_fields = dict(
    SDFVERSION="version",
    DESIGN="design",
    DATE="date",
    VENDOR="vendor",
    PROGRAM="program",
    VERSION="program_version",
    DIVIDER="divider",
    TIMESCALE="timescale",
    VOLTAGE=None,
    PROCESS=None,
    TEMPERATURE=None,
)

# Delay definitions
_del_defs = ("IOPATH", "COND", "CONDELSE", "PORT", "INTERCONNECT", "NETDELAY", "DEVICE")

# Timing-check kinds
_tchk_kinds = (
    "SETUP",
    "HOLD",
    "SETUPHOLD",
    "RECOVERY",
    "REMOVAL",
    "RECREM",
    "SKEW",
    "BIDIRECTSKEW",
    "WIDTH",
    "PERIOD",
    "NOCHANGE",
)

# Leading words of a parenthesized timing-check operand, e.g. `(posedge clk)` or `(COND en D)`.
# The numeric edges `01` and `10` lex as numbers, and are read as values.
_operand_qualifiers = ("POSEDGE", "NEGEDGE", "0Z", "Z1", "1Z", "Z0", "COND")

# Cell-level blocks which are skipped
_skipped_blocks = ("TIMINGENV", "LABEL")


class SdfDialectParser(DialectParser):
    """SDF Delay-File Dialect"""

    enum = NetlistDialects.SDF
    pat = sdf_pat
    blocks = {Tokens.SLASHSTAR: Tokens.STARSLASH}
    error_cls = SdfSyntaxError

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Parenthesis nesting depth, through `self.cur`
        self.depth = 0
        # Depth of the innermost open `CELL`
        self.cell_depth = 0

    def advance(self) -> None:
        super().advance()
        self.depth += _depth_change(self.cur)

    def parse_root(self) -> TimingModel:
        """( DELAYFILE header* cell* )"""
        self.expect(Tokens.LPAREN)
        self.expect_keyword("DELAYFILE")
        model = TimingModel()

        while not self.match(Tokens.RPAREN):
            if self.nxt is None:
                self.fail("Unterminated `DELAYFILE`")
            self.expect(Tokens.LPAREN)
            kw = self.parse_keyword()
            if kw == "CELL":
                self.cell_depth = self.depth
                try:
                    record = self.parse_cell()
                except SdfSyntaxError as e:
                    self.recover(e, self.eat_rest_of_cell)
                    continue
                model.instances.append(record)
            elif kw in _header_fields:
                self.parse_header_entry(kw, model.header)
            else:
                self.fail(f"Unexpected `{kw}` in DELAYFILE")
        return model

    def parse_header_entry(self, kw: str, header: SdfHeader) -> None:
        """Header entries are stored as text, with any quotes removed"""
        parts = []
        while not self.match(Tokens.RPAREN):
            if self.nxt is None or self.nxt.tp == Tokens.LPAREN:
                self.fail(f"Malformed `{kw}` entry, got {self.describe(self.nxt)}")
            self.advance()
            parts.append(_unquote(self.cur.val))
        attr = _header_fields[kw]
        if attr is not None:
            setattr(header, attr, "".join(parts))

    def parse_cell(self) -> TimingRecord:
        """Cell contents, following `(CELL`: ( CELLTYPE "type" ) ( INSTANCE path? ) timing_spec* )"""
        self.expect(Tokens.LPAREN)
        self.expect_keyword("CELLTYPE")
        self.expect(Tokens.STRING)
        cell_type = _unquote(self.cur.val)
        self.expect(Tokens.RPAREN)

        self.expect(Tokens.LPAREN)
        self.expect_keyword("INSTANCE")
        instance_name = self.parse_instance_path()

        paths: List[PathDelay] = []
        checks: List[TimingCheck] = []
        while not self.match(Tokens.RPAREN):
            if self.nxt is None:
                self.fail(f"Unterminated `CELL` for instance `{instance_name}`")
            self.expect(Tokens.LPAREN)
            kw = self.parse_keyword()
            if kw == "DELAY":
                self.parse_delay(paths)
            elif kw == "TIMINGCHECK":
                self.parse_timing_checks(checks)
            elif kw in _skipped_blocks:
                self.skip_group()
            else:
                self.fail(f"Unexpected `{kw}` in CELL")

        return TimingRecord(
            instance_name=instance_name,
            cell_type=cell_type,
            delays=_cell_delays(paths),
            timing_checks=checks,
        )

    def parse_instance_path(self) -> str:
        """Instance path, through the closing paren of `(INSTANCE`. Taken verbatim; empty for the design's top."""
        parts = []
        while not self.match(Tokens.RPAREN):
            if self.nxt is None or self.nxt.tp == Tokens.LPAREN:
                self.fail(f"Malformed `INSTANCE`, got {self.describe(self.nxt)}")
            self.advance()
            parts.append(self.cur.val)
        return "".join(parts)

    def parse_delay(self, paths: List[PathDelay]) -> None:
        """DELAY contents: ( ABSOLUTE del_def* ) | ( INCREMENT del_def* ) | ( PATHPULSE ... )"""
        while not self.match(Tokens.RPAREN):
            if self.nxt is None:
                self.fail("Unterminated `DELAY`")
            self.expect(Tokens.LPAREN)
            kw = self.parse_keyword()
            if kw in ("ABSOLUTE", "INCREMENT"):
                while not self.match(Tokens.RPAREN):
                    if self.nxt is None:
                        self.fail(f"Unterminated `{kw}`")
                    self.expect(Tokens.LPAREN)
                    paths.append(self.parse_del_def(self.parse_keyword(), kw == "INCREMENT"))
            elif kw in ("PATHPULSE", "PATHPULSEPERCENT"):
                self.skip_group()
            else:
                self.fail(f"Unexpected `{kw}` in DELAY")

    def parse_del_def(self, kw: str, increment: bool, cond: Optional[str] = None) -> PathDelay:
        """Parse a delay definition, following its opening paren and keyword `kw`"""
        if kw == "COND":
            cond, inner = self.parse_cond()
            path = self.parse_del_def(inner, increment, cond)
            self.expect(Tokens.RPAREN)
            return path
        if kw == "CONDELSE":
            self.expect(Tokens.LPAREN)
            path = self.parse_del_def(self.parse_keyword(), increment, "ELSE")
            self.expect(Tokens.RPAREN)
            return path

        edge, input, output = None, None, None
        if kw == "IOPATH":
            edge, input = self.parse_port_spec()
            output = self.parse_port()
        elif kw == "INTERCONNECT":
            input = self.parse_port()
            output = self.parse_port()
        elif kw in ("PORT", "NETDELAY"):
            input = self.parse_port()
        elif kw == "DEVICE":
            if self.nxt and self.nxt.tp == Tokens.IDENT:
                output = self.parse_port()
        else:
            self.fail(f"Unexpected `{kw}` in delay definition")

        values = self.parse_rvalues()
        rise = values[0] if values else None
        fall = values[1] if len(values) > 1 else rise
        known = [v for v in (rise, fall) if v is not None]
        return PathDelay(
            kind=kw,
            input=input,
            output=output,
            edge=edge,
            cond=cond,
            rise=rise,
            fall=fall,
            delay=max(known) if known else None,
            increment=increment,
        )

    def parse_cond(self) -> Tuple[str, str]:
        """Condition of a `COND`, through the opening paren and keyword of its inner delay definition.
        Returns the condition text and that keyword."""
        self.match(Tokens.STRING)  # Optional condition name
        parts = []
        while True:
            if self.nxt is None:
                self.fail("Unterminated `COND`")
            if self.match(Tokens.LPAREN):
                pk = self.peek()
                if pk and pk.tp == Tokens.IDENT and pk.val.upper() in _del_defs:
                    return "".join(parts), self.parse_keyword()
                parts.append("(")
                continue
            self.advance()
            parts.append(self.cur.val)

    def parse_timing_checks(self, checks: List[TimingCheck]) -> None:
        """TIMINGCHECK contents"""
        while not self.match(Tokens.RPAREN):
            if self.nxt is None:
                self.fail("Unterminated `TIMINGCHECK`")
            self.expect(Tokens.LPAREN)
            kw = self.parse_keyword()
            if kw not in _tchk_kinds:
                self.fail(f"Unexpected `{kw}` in TIMINGCHECK")
            checks.append(self.parse_timing_check(kw))

    def parse_timing_check(self, kind: str) -> TimingCheck:
        """A single timing check, following its opening paren and keyword.
        Operands are kept as text, e.g. `D` or `posedge clock`; values by their representatives."""
        check = TimingCheck(kind=kind)
        while not self.match(Tokens.RPAREN):
            if self.nxt is None:
                self.fail(f"Unterminated `{kind}`")
            if self.match(Tokens.IDENT):
                check.ports.append(self.cur.val)
            elif self.match(Tokens.LPAREN):
                pk = self.peek()
                if pk and pk.tp == Tokens.IDENT and pk.val.upper() in ("SCOND", "CCOND"):
                    self.skip_group()
                elif pk and pk.tp == Tokens.IDENT and pk.val.upper() in _operand_qualifiers:
                    # Edge or condition qualified operand
                    check.ports.append(self.group_text())
                else:
                    value = self.parse_rvalue()
                    if value is not None:
                        check.values.append(value)
            else:
                self.fail(f"Unexpected {self.describe(self.nxt)} in `{kind}`")
        return check

    def parse_port_spec(self) -> Tuple[Optional[str], str]:
        """Port, optionally edge-qualified as `(posedge clk)`. Returns (edge, port)."""
        if not self.match(Tokens.LPAREN):
            return None, self.parse_port()
        self.expect_any(Tokens.IDENT, Tokens.NUMBER)  # posedge, negedge, 01, 10, ...
        edge = self.cur.val.lower()
        port = self.parse_port()
        self.expect(Tokens.RPAREN)
        return edge, port

    def parse_port(self) -> str:
        self.expect(Tokens.IDENT)
        return self.cur.val

    def parse_rvalues(self) -> List[Optional[float]]:
        """Parse the value list closing a delay definition, through its closing paren"""
        values = []
        while not self.match(Tokens.RPAREN):
            self.expect(Tokens.LPAREN)
            pk = self.peek()
            if pk and pk.tp == Tokens.IDENT and pk.val.upper() == "RETAIN":
                self.skip_group()
                continue
            values.append(self.parse_rvalue())
        return values

    def parse_rvalue(self) -> Optional[float]:
        """Parse a value `(v)`, triple `(min:typ:max)`, or empty `()`, following its opening paren.
        Returns the representative value: typical, else max, else min. `None` if empty."""
        if self.match(Tokens.LPAREN):
            # Pulse-limited form, `((value) (reject) (error))`. Keep the value.
            value = self.parse_rvalue()
            while not self.match(Tokens.RPAREN):
                self.expect(Tokens.LPAREN)
                self.parse_rvalue()
            return value

        triple = [None, None, None]
        idx = 0
        while not self.match(Tokens.RPAREN):
            if self.match(Tokens.COLON):
                idx += 1
                if idx > 2:
                    self.fail("Too many `:` in delay value")
            elif self.match(Tokens.NUMBER) and triple[idx] is None:
                triple[idx] = float(self.cur.val)
            else:
                self.fail(f"Expecting a numeric delay value, got {self.describe(self.nxt)}")
        if idx == 0:
            return triple[0]
        if idx != 2:
            self.fail("Expecting a `min:typ:max` delay value")
        mn, typ, mx = triple
        if typ is not None:
            return typ
        return mx if mx is not None else mn

    def group_text(self) -> str:
        """Text of a balanced group, following its opening paren, through its closing paren"""
        parts = []
        depth = self.depth
        while True:
            if self.nxt is None:
                self.fail("Unterminated parenthesized group")
            self.advance()
            if self.depth < depth:
                return " ".join(parts)
            parts.append(self.cur.val)

    def parse_keyword(self) -> str:
        """Parse an SDF keyword, returning it upper-cased"""
        self.expect(Tokens.IDENT)
        return self.cur.val.upper()

    def expect_keyword(self, word: str) -> None:
        if self.parse_keyword() != word:
            self.fail(f"Expecting `{word}`, got {self.cur.val!r}")

    def eat_rest_of_cell(self) -> None:
        """Ignore Tokens through the close of the current `CELL`.
        Largely used for error purposes."""
        while self.depth >= self.cell_depth and self.nxt is not None:
            self.advance()


def _depth_change(tok) -> int:
    if tok is None:
        return 0
    if tok.tp == Tokens.LPAREN:
        return 1
    if tok.tp == Tokens.RPAREN:
        return -1
    return 0


def _unquote(txt: str) -> str:
    if len(txt) >= 2 and txt[0] == txt[-1] == '"':
        return txt[1:-1]
    return txt


def _cell_delays(paths: List[PathDelay]) -> Delays:
    """A cell's only delay being a port-less `DEVICE` is a whole-cell scalar.
    All else is the list of per-path entries."""
    if len(paths) == 1:
        (only,) = paths
        if only.kind == "DEVICE" and only.output is None and only.delay is not None:
            return only.delay
    return paths
