"""
# Netlist & Delay-File Lexing
"""

# Std-Lib Imports
import re
from collections import deque
from typing import Iterable, Iterator, Optional, Dict

# PyPi Imports
from pydantic.dataclasses import dataclass


# Pattern for a Verilog simple identifier.
# An initial alpha character or underscore, followed by any number of chars, numbers, underscores and dollars.
ident_pattern = r"[A-Za-z_][A-Za-z0-9_$]*"

# Comment delimiters, shared by both formats
_comments = dict(
    DUBSLASH=r"\/\/",
    SLASHSTAR=r"\/\*",
    STARSLASH=r"\*\/",
)

# Verilog netlist tokens
_verilog_patterns1 = dict(
    **_comments,
    ATTR_START=r"\(\*(?!\))",  # Attribute instances, `(* keep *)`
    ATTR_END=r"\*\)",
    DIRECTIVE=r"`[A-Za-z_][A-Za-z0-9_]*[^\n]*",  # Compiler directives run to end-of-line
    ESCAPED_IDENT=r"\\\S+",  # Backslash-escaped identifiers, terminated by whitespace
    STRING=r"\"(\\.|[^\"\\])*\"",
    SIZED_NUM=r"(\d[\d_]*)?'[sS]?[bBoOdDhH][0-9a-fA-FxXzZ?_]+",  # 1'b0, 32'hDEAD_BEEF, 'b1
    REAL=r"\d[\d_]*\.\d[\d_]*([eE][+-]?\d+)?|\d[\d_]*[eE][+-]?\d+",
    INT=r"\d[\d_]*",
    LPAREN=r"\(",
    RPAREN=r"\)",
    LBRACKET=r"\[",
    RBRACKET=r"\]",
    LBRACE=r"\{",
    RBRACE=r"\}",
    COMMA=r"\,",
    SEMICOLON=r"\;",
    COLON=r"\:",
    DOT=r"\.",
    HASH=r"\#",
    EQUALS=r"\=",
    MINUS=r"\-",
    PLUS=r"\+",
)
_verilog_keywords = dict(
    MODULE=r"(module|macromodule)",
    ENDMODULE=r"endmodule",
    INPUT=r"input",
    OUTPUT=r"output",
    INOUT=r"inout",
    WIRE=r"wire",
    REG=r"reg",
    TRI=r"tri",
    SIGNED=r"signed",
    ASSIGN=r"assign",
)
_verilog_patterns2 = dict(
    IDENT=ident_pattern,
    WHITE=r"\s+",
    ERROR=r"[\s\S]",
)

# SDF delay-file tokens.
# SDF keywords are lexed as plain identifiers, and sorted out by the parser.
_sdf_patterns = dict(
    **_comments,
    LPAREN=r"\(",
    RPAREN=r"\)",
    COLON=r"\:",
    STRING=r"\"(\\.|[^\"\\])*\"",
    # Numbers, so long as they are not the start of an identifier like `1ps`
    NUMBER=r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?(?![A-Za-z0-9_$\\\[\]/.])",
    # Hierarchical identifiers, including dividers, bus-indices and backslash-escapes
    IDENT=r"(\\.|[A-Za-z0-9_$\[\]/.])+",
    STAR=r"\*",
    OP=r"[=!<>&|~^?]+",
    WHITE=r"\s+",
    ERROR=r"[\s\S]",
)


def _compile(*tables: Dict[str, str], keywords: Optional[Dict[str, str]] = None):
    """Build our overall regex pattern, a union of named groups, in priority order"""
    tokens = {}
    for table in tables[:1]:
        tokens.update({key: rf"(?P<{key}>{val})" for key, val in table.items()})
    for key, val in (keywords or {}).items():
        # Insert \b word-boundaries around keywords
        tokens[key] = rf"(?P<{key}>\b{val}\b)"
    for table in tables[1:]:
        # Add the lower-priority patterns last
        tokens.update({key: rf"(?P<{key}>{val})" for key, val in table.items()})
    return re.compile("|".join(tokens.values())), tokens


verilog_pat, _verilog_tokens = _compile(
    _verilog_patterns1, _verilog_patterns2, keywords=_verilog_keywords
)
sdf_pat, _sdf_tokens = _compile(_sdf_patterns)

# Create an enum-ish class of these token-types, across both formats
Tokens = type(
    "Tokens", (object,), {k: k for k in list(_verilog_tokens) + list(_sdf_tokens)}
)

# Token types which are dropped between every pair of significant tokens
_idle = (Tokens.WHITE, Tokens.DIRECTIVE)


@dataclass
class Token:
    """Lexer Token
    Includes type-annotation (as a string), the token's text value, and its source position."""

    tp: str  # Type Annotation. A value from `Tokens`.
    val: str  # Text Content Value
    line: int = 0  # Source line number, one-based
    col: int = 0  # Source column, one-based


class Lexer:
    """# Netlist Lexer
    Free-form: whitespace, newlines and comments are insignificant and never yielded.

    `blocks` maps each token-type which opens a multi-token comment onto its closing token-type.
    Line comments (`//`) run to the end of their line."""

    def __init__(
        self,
        lines: Iterator[str],
        pat: re.Pattern,
        blocks: Optional[Dict[str, str]] = None,
    ):
        self.lines = lines
        self.pat = pat
        self.blocks = blocks if blocks is not None else {Tokens.SLASHSTAR: Tokens.STARSLASH}
        self.line = next(self.lines, None)
        self.line_num = 1
        self.toks = iter(self.pat.scanner(self.line or "").match, None)
        # Buffer the last few lines, for error messages
        self.recent_lines = deque([(1, self.line or "")], maxlen=5)

    def line_text(self, line_num: int) -> Optional[str]:
        """Get the text of a recently-lexed line, if still buffered"""
        for num, txt in self.recent_lines:
            if num == line_num:
                return txt.rstrip("\r\n")
        return None

    def nxt(self) -> Optional[Token]:
        """Get our next Token, pulling new lines as necessary. `None` at end of input."""
        m = next(self.toks, None)
        while m is None:  # Grab a new line
            self.line = next(self.lines, None)
            if self.line is None:  # End of input
                return None
            self.line_num += 1
            self.recent_lines.append((self.line_num, self.line))
            self.toks = iter(self.pat.scanner(self.line).match, None)
            m = next(self.toks, None)
        return Token(m.lastgroup, m.group(), self.line_num, m.start() + 1)

    def eat_idle(self, token: Optional[Token]) -> Optional[Token]:
        """Consume whitespace, directives and comments, returning the next (potential) action-token."""
        while token:
            if token.tp in _idle:
                token = self.nxt()
            elif token.tp == Tokens.DUBSLASH:
                # Line comment. Skip the rest of this line.
                line_num = self.line_num
                token = self.nxt()
                while token and token.line == line_num:
                    token = self.nxt()
            elif token.tp in self.blocks:
                # Block comment or attribute. Skip through its closing token.
                closer = self.blocks[token.tp]
                token = self.nxt()
                while token and token.tp != closer:
                    token = self.nxt()
                token = self.nxt()
            else:
                return token
        return None

    def lex(self) -> Iterable[Token]:
        """Create an iterator over significant tokens"""
        token = self.eat_idle(self.nxt())
        while token:
            yield token
            token = self.eat_idle(self.nxt())
