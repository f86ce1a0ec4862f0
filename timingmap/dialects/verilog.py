"""
# Verilog Netlist Parsing

Structural, gate-level Verilog, as written by place-and-route tools:
modules of cell instances with named port connections, net declarations and continuous assignments.
Syntactic only; nets, ports and cell types are not checked for existence.
"""

from typing import Optional, List, Dict, Callable, Set, Tuple

# Local Imports
from ..data import *
from ..lex import Tokens, verilog_pat
from .base import DialectParser


# Keyword tokens which begin port-direction declarations
_directions = (Tokens.INPUT, Tokens.OUTPUT, Tokens.INOUT)
# Keyword tokens which begin net declarations
_net_types = (Tokens.WIRE, Tokens.REG, Tokens.TRI)
# Tokens which can begin an identifier
_idents = (Tokens.IDENT, Tokens.ESCAPED_IDENT)


class VerilogDialectParser(DialectParser):
    """Structural Verilog Netlist Dialect"""

    enum = NetlistDialects.VERILOG
    pat = verilog_pat
    blocks = {
        Tokens.SLASHSTAR: Tokens.STARSLASH,
        Tokens.ATTR_START: Tokens.ATTR_END,
    }
    error_cls = VerilogSyntaxError

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Instance names in the module currently being parsed
        self.instance_names: Set[str] = set()

    @classmethod
    def get_rules(cls) -> Dict[str, Callable]:
        """Get the module-item parsing rules, keyed by their leading token."""
        return {
            Tokens.INPUT: cls.parse_port_decl,
            Tokens.OUTPUT: cls.parse_port_decl,
            Tokens.INOUT: cls.parse_port_decl,
            Tokens.WIRE: cls.parse_net_decl,
            Tokens.REG: cls.parse_net_decl,
            Tokens.TRI: cls.parse_net_decl,
            Tokens.ASSIGN: cls.parse_assign,
            Tokens.IDENT: cls.parse_instances,
            Tokens.ESCAPED_IDENT: cls.parse_instances,
        }

    def parse_root(self) -> NetlistModel:
        """Parse a sequence of module definitions"""
        netlist = NetlistModel()
        while self.nxt is not None:
            try:
                if self.nxt.tp != Tokens.MODULE:
                    self.fail(f"Expecting `module`, got {self.describe(self.nxt)}")
                module = self.parse_module(netlist.modules)
            except VerilogSyntaxError as e:
                self.recover(e, self.eat_to_next_module)
                continue
            netlist.modules[module.name] = module
        return netlist

    def parse_module(self, seen: Dict[str, Module]) -> Module:
        """module name [#(...)] [( port, ... )] ; items* endmodule"""
        self.expect(Tokens.MODULE)
        name = self.parse_ident()
        if name in seen:
            self.fail(f"Duplicate module definition `{name}`")
        module = Module(name=name)
        self.instance_names = set()

        if self.match(Tokens.HASH):
            # Parameter-port list. Skipped.
            self.expect(Tokens.LPAREN)
            self.skip_group()
        if self.match(Tokens.LPAREN):
            module.ports = self.parse_port_list()
        self.expect(Tokens.SEMICOLON)

        rules = self.get_rules()
        while not self.match(Tokens.ENDMODULE):
            pk = self.peek()
            if pk is None:
                self.fail(f"Unterminated module `{name}`, expecting `endmodule`")
            if self.match(Tokens.SEMICOLON):
                continue  # Null statement
            try:
                if pk.tp not in rules:
                    self.fail(f"Unexpected token to begin statement: {self.describe(pk)}")
                rules[pk.tp](self, module)
            except VerilogSyntaxError as e:
                self.recover(e, self.eat_rest_of_statement)
        return module

    def parse_port_list(self) -> List[Port]:
        """Parse a module-header port list, following its opening paren.
        Handles both ANSI-style declarations (`input [3:0] a, b`) and bare names."""
        ports = []
        if self.match(Tokens.RPAREN):
            return ports
        direction, msb, lsb = None, None, None
        while True:
            tp = self.match_any(*_directions)
            if tp is not None:
                # New ANSI declaration. Following bare names inherit it.
                direction = tp.lower()
                self.match_any(*_net_types)
                self.match(Tokens.SIGNED)
                msb, lsb = self.parse_optional_range()
            ports.append(Port(name=self.parse_ident(), direction=direction, msb=msb, lsb=lsb))
            if self.match(Tokens.RPAREN):
                return ports
            self.expect(Tokens.COMMA)

    def parse_port_decl(self, module: Module) -> None:
        """Body port-direction declaration, e.g. `output [3:0] q, r;`"""
        direction = self.expect_any(*_directions).lower()
        self.match_any(*_net_types)
        self.match(Tokens.SIGNED)
        msb, lsb = self.parse_optional_range()
        existing = {p.name: p for p in module.ports}
        for name in self.parse_list(self.parse_ident, _at_semicolon, sep=Tokens.COMMA):
            port = existing.get(name)
            if port is None:
                port = Port(name=name, direction=direction, msb=msb, lsb=lsb)
                module.ports.append(port)
                existing[name] = port
            elif port.direction is not None:
                self.fail(f"Duplicate declaration of port `{name}` in module `{module.name}`")
            else:
                port.direction, port.msb, port.lsb = direction, msb, lsb
        self.expect(Tokens.SEMICOLON)

    def parse_net_decl(self, module: Module) -> None:
        """Net declaration, e.g. `wire [3:0] a, b = c;`"""
        self.expect_any(*_net_types)
        self.match(Tokens.SIGNED)
        self.parse_optional_range()
        while True:
            name = self.parse_ident()
            module.nets.append(name)
            if self.match(Tokens.EQUALS):  # Net-declaration assignment
                module.assigns.append(Assign(lhs=name, rhs=self.parse_expr()))
            if not self.match(Tokens.COMMA):
                break
        self.expect(Tokens.SEMICOLON)

    def parse_assign(self, module: Module) -> None:
        """Continuous assignment(s), `assign a = b, c = d;`"""
        self.expect(Tokens.ASSIGN)
        while True:
            lhs = self.parse_expr()
            self.expect(Tokens.EQUALS)
            module.assigns.append(Assign(lhs=lhs, rhs=self.parse_expr()))
            if not self.match(Tokens.COMMA):
                break
        self.expect(Tokens.SEMICOLON)

    def parse_instances(self, module: Module) -> None:
        """Instance statement: `Type [#(.P(v), ...)] name (.port(net), ...) [, name2 (...)] ;`"""
        tp = self.parse_ident()
        parameters = self.parse_param_overrides() if self.match(Tokens.HASH) else {}

        while True:
            name = self.parse_ident()
            if name in self.instance_names:
                self.fail(f"Duplicate instance `{name}` in module `{module.name}`")
            self.parse_optional_range()  # Instance arrays. Range ignored.
            self.expect(Tokens.LPAREN)
            connections = self.parse_connections()
            module.instances.append(
                Instance(
                    name=name,
                    type=tp,
                    connections=connections,
                    parameters=dict(parameters),
                )
            )
            self.instance_names.add(name)
            if not self.match(Tokens.COMMA):
                break
        self.expect(Tokens.SEMICOLON)

    def parse_param_overrides(self) -> Dict[str, str]:
        """Parameter overrides following `#`. Named `(.K(5))`, ordered `(5, 6)`, or a bare `#5`.
        Ordered values are keyed by their position."""
        if not self.match(Tokens.LPAREN):
            return {"0": self.parse_expr()}
        rv = {}
        if self.match(Tokens.RPAREN):
            return rv
        while True:
            if self.match(Tokens.DOT):
                key = self.parse_ident()
                self.expect(Tokens.LPAREN)
                rv[key] = "" if self.nxt and self.nxt.tp == Tokens.RPAREN else self.parse_expr()
                self.expect(Tokens.RPAREN)
            else:
                rv[str(len(rv))] = self.parse_expr()
            if self.match(Tokens.RPAREN):
                return rv
            self.expect(Tokens.COMMA)

    def parse_connections(self) -> List[Connection]:
        """Port connection list, following its opening paren.
        Either all named, `.port(net)`, or all ordered, in which case ports are keyed by position."""
        conns = []
        if self.match(Tokens.RPAREN):
            return conns
        named = self.nxt is not None and self.nxt.tp == Tokens.DOT
        while True:
            if named:
                self.expect(Tokens.DOT)
                port = self.parse_ident()
                self.expect(Tokens.LPAREN)
                net = "" if self.nxt and self.nxt.tp == Tokens.RPAREN else self.parse_expr()
                self.expect(Tokens.RPAREN)
            else:
                if self.nxt and self.nxt.tp == Tokens.DOT:
                    self.fail("Cannot mix named and ordered port connections")
                port = str(len(conns))
                net = "" if self.nxt and self.nxt.tp in (Tokens.COMMA, Tokens.RPAREN) else self.parse_expr()
            conns.append(Connection(port=port, net=net))
            if self.match(Tokens.RPAREN):
                return conns
            self.expect(Tokens.COMMA)

    def parse_expr(self) -> str:
        """Parse a connection-style expression, returning its normalized text.
        Covers identifiers with bit- and part-selects, numeric & string constants,
        concatenations and replications."""
        if self.match(Tokens.LBRACE):
            first = self.parse_expr()
            if self.nxt and self.nxt.tp == Tokens.LBRACE:
                # Replication, `{2{a}}`
                inner = self.parse_expr()
                self.expect(Tokens.RBRACE)
                return f"{{{first}{inner}}}"
            items = [first]
            while self.match(Tokens.COMMA):
                items.append(self.parse_expr())
            self.expect(Tokens.RBRACE)
            return "{" + ", ".join(items) + "}"
        if self.match_any(Tokens.SIZED_NUM, Tokens.INT, Tokens.REAL, Tokens.STRING):
            return self.cur.val
        if self.match(Tokens.MINUS):
            return "-" + self.parse_expr()
        name = self.parse_ident()
        while self.match(Tokens.LBRACKET):
            name += f"[{self.parse_select()}]"
        return name

    def parse_select(self) -> str:
        """Contents of a bit- or part-select, following its opening bracket, as text"""
        txt = ""
        while not self.match(Tokens.RBRACKET):
            if self.nxt is None or self.nxt.tp in (Tokens.SEMICOLON, Tokens.RPAREN):
                self.fail(f"Unterminated select, got {self.describe(self.nxt)}")
            self.advance()
            txt += self.cur.val
        return txt

    def parse_optional_range(self) -> Tuple[Optional[int], Optional[int]]:
        """Parse an optional `[msb:lsb]` range. Non-constant bounds parse, but are returned as `None`."""
        if not self.match(Tokens.LBRACKET):
            return None, None
        bounds = self.parse_select().split(":")
        if len(bounds) != 2:
            return None, None
        return _to_int(bounds[0]), _to_int(bounds[1])

    def parse_ident(self) -> str:
        """Parse an Identifier. Escaped identifiers drop their leading backslash."""
        tp = self.expect_any(*_idents)
        if tp == Tokens.ESCAPED_IDENT:
            return self.cur.val[1:]
        return self.cur.val

    def eat_rest_of_statement(self) -> None:
        """Ignore Tokens through the end of the current statement.
        Largely used for error purposes."""
        while self.nxt and self.nxt.tp not in (Tokens.SEMICOLON, Tokens.ENDMODULE):
            self.advance()
        self.match(Tokens.SEMICOLON)

    def eat_to_next_module(self) -> None:
        """Ignore Tokens up to the next `module` keyword"""
        while self.nxt and self.nxt.tp != Tokens.MODULE:
            self.advance()


def _at_semicolon(p: DialectParser) -> bool:
    return p.nxt is None or p.nxt.tp == Tokens.SEMICOLON


def _to_int(txt: str) -> Optional[int]:
    try:
        return int(txt.replace("_", ""))
    except ValueError:
        return None
