"""
# Dialect Parser Base Class
"""

# Std-Lib Imports
from warnings import warn
from typing import Iterable, Any, Optional, List, Callable

# Local Imports
from ..data import *
from ..lex import Lexer, Token, Tokens


class DialectParser:
    """Dialect-Parsing Base-Class
    Single-token-lookahead recursive descent, over the token stream of a `Lexer`."""

    enum = None  # `NetlistDialects` value
    pat = None  # Lexer pattern
    blocks = None  # Lexer block-comment delimiters
    error_cls = NetlistParseError  # Raised on syntax errors

    def __init__(self, lex: Lexer, options: Optional["ParseOptions"] = None):
        self.options = options
        # Initialize our state
        self.tokens = None
        self.cur = None
        self.nxt = None
        # Errors recovered from, in `ErrorMode.STORE`
        self.errors: List[NetlistParseError] = []
        self.root = None
        # Initialize our lexer
        self.lex = lex

    @classmethod
    def from_lines(cls, lines: Iterable[str], **kwargs) -> "DialectParser":
        """Create from a line iterator"""
        return cls(lex=Lexer(iter(lines), cls.pat, cls.blocks), **kwargs)

    @classmethod
    def from_str(cls, txt: str, **kwargs) -> "DialectParser":
        """Create from a multi-line input string"""
        return cls.from_lines(lines=txt.splitlines(keepends=True), **kwargs)

    @classmethod
    def from_enum(cls, dialect: "NetlistFormatSpec"):
        """Return a Dialect sub-class based on the `NetlistDialects` enum, or its string value."""
        from .verilog import VerilogDialectParser
        from .sdf import SdfDialectParser

        dialect = NetlistDialects.get(dialect)
        if dialect == NetlistDialects.VERILOG:
            return VerilogDialectParser
        if dialect == NetlistDialects.SDF:
            return SdfDialectParser
        raise ValueError(f"Unsupported dialect {dialect}")

    @property
    def storing_errors(self) -> bool:
        """Boolean indication of whether we recover from errors, rather than raising them"""
        from ..parse import ErrorMode

        return self.options is not None and self.options.errormode == ErrorMode.STORE

    def start(self) -> None:
        # Initialize our token generator
        self.tokens = self.lex.lex()
        # And queue up our lookahead tokens
        self.advance()

    def advance(self) -> None:
        self.cur = self.nxt
        self.nxt = next(self.tokens, None)

    def peek(self) -> Optional[Token]:
        """Peek at the next Token"""
        return self.nxt

    def match(self, tp: str) -> bool:
        """Boolean indication of whether our next token matches `tp`"""
        if self.nxt and tp == self.nxt.tp:
            self.advance()
            return True
        return False

    def match_any(self, *tp: str) -> Optional[str]:
        """Boolean indication of whether our next token matches *any* provided `tp`.
        Returns the matching `Tokens` (type) if successful, or `None` otherwise."""
        if not self.nxt:
            return None
        for t in tp:
            if self.nxt.tp == t:
                self.advance()
                return t
        return None

    def expect(self, *tp: str) -> None:
        """Assertion that our next token matches `tp`.
        Note this advances if successful, effectively discarding `self.cur`."""
        if not self.match_any(*tp):
            self.fail(f"Expecting one of {tp}, got {self.describe(self.nxt)}")

    def expect_any(self, *tp: str) -> str:
        """Assertion that our next token matches one of `tp`, and return the one it was."""
        rv = self.match_any(*tp)
        if rv is None:
            self.fail(f"Expecting one of {tp}, got {self.describe(self.nxt)}")
        return rv

    def parse(self, f: Optional[Callable[[], Any]] = None) -> Any:
        """Perform parsing. Succeeds if the entire input is parsable by function `f`.
        Defaults to `self.parse_root`."""
        self.start()
        func = f if f else self.parse_root
        self.root = func()
        if self.nxt is not None:  # Check whether there's more stuff
            self.fail(f"Unexpected trailing content {self.describe(self.nxt)}")
        return self.root

    def parse_root(self) -> Any:
        raise NotImplementedError

    def parse_list(self, parse_item, term, *, sep: Optional[str] = None) -> List[Any]:
        """Parse a list of entries possible by function `parse_item`,
        optionally separated by `sep` tokens, terminated in the condition `term(self)`."""
        rv = []
        while not term(self):
            if self.nxt is None:
                self.fail("Unexpected end of input")
            rv.append(parse_item())
            if sep is not None and not self.match(sep):
                break
        return rv

    def skip_group(self) -> None:
        """Skip a balanced parenthesized group, whose opening paren is `self.cur`."""
        depth = 1
        while depth:
            if self.nxt is None:
                self.fail("Unterminated parenthesized group")
            self.advance()
            if self.cur.tp == Tokens.LPAREN:
                depth += 1
            elif self.cur.tp == Tokens.RPAREN:
                depth -= 1

    @staticmethod
    def describe(tok: Optional[Token]) -> str:
        if tok is None:
            return "end of input"
        return f"{tok.tp} {tok.val!r}"

    def fail(self, msg: str = "Parse error") -> None:
        """Failure Debug Helper.
        Raises our `error_cls`, tagged with the position of the offending token."""
        tok = self.nxt or self.cur
        line = tok.line if tok else self.lex.line_num
        column = tok.col if tok else None
        self.error_cls.throw(
            msg,
            line=line,
            column=column,
            text=self.lex.line_text(line),
        )

    def recover(self, err: NetlistParseError, resync: Callable[[], None]) -> None:
        """Error Handling, in `ErrorMode.STORE`.
        Record and warn about `err`, then skip ahead via `resync`.
        Re-raises in all other modes, and for errors at end of input, i.e. unterminated structures."""
        if not self.storing_errors or self.nxt is None:
            raise err
        warn(f"Skipping malformed content: {err.msg}")
        self.errors.append(err)
        resync()
