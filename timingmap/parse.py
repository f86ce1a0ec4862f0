"""
# Netlist & Delay-File Parsing
"""

import os
from enum import Enum
from pathlib import Path
from dataclasses import replace
from typing import List, Optional, Sequence, Union
from pydantic.dataclasses import dataclass

# Local Imports
from .dialects import DialectParser, VerilogDialectParser
from .lex import Lexer, Tokens, verilog_pat
from .data import *


class ErrorMode(Enum):
    """Enumerated Error-Response Strategies"""

    RAISE = 0  # Raise any generated exceptions
    STORE = 1  # Warn, skip the offending statement or cell, and store the error


@dataclass
class ParseOptions:
    """Parse Options"""

    dialect: Optional[NetlistFormatSpec] = None  # Source format, as enum or string. Inferred if not provided.
    errormode: ErrorMode = ErrorMode.RAISE  # Error-handling mode


# Parse results, per dialect
Parsed = Union[NetlistModel, TimingModel]

# File suffixes of each dialect
suffixes = {
    ".v": NetlistDialects.VERILOG,
    ".vg": NetlistDialects.VERILOG,
    ".vm": NetlistDialects.VERILOG,
    ".sdf": NetlistDialects.SDF,
}


def parse(
    src: Union[str, os.PathLike, Sequence[os.PathLike]],
    *,
    options: Optional[ParseOptions] = None,
) -> Parsed:
    """
    Primary parsing entry point.
    Strings are parsed as source text, paths as files.
    Optional argument `options` sets all behavior laid out by the `ParseOptions` class.
    """
    if isinstance(src, str):
        return parse_str(src, options=options)
    return parse_files(src, options=options)


def parse_verilog(src: str, *, options: Optional[ParseOptions] = None) -> NetlistModel:
    """Parse structural Verilog netlist text"""
    options = replace(options or ParseOptions(), dialect=NetlistDialects.VERILOG)
    return parse_str(src, options=options)


def parse_sdf(src: str, *, options: Optional[ParseOptions] = None) -> TimingModel:
    """Parse SDF delay-file text"""
    options = replace(options or ParseOptions(), dialect=NetlistDialects.SDF)
    return parse_str(src, options=options)


def parse_str(src: str, *, options: Optional[ParseOptions] = None) -> Parsed:
    """Parse content from a string"""

    if options is None:
        options = ParseOptions()
    if options.dialect is None:
        options = replace(options, dialect=sniff_dialect(src))

    dcls = DialectParser.from_enum(options.dialect)
    return dcls.from_str(src, options=options).parse()


def parse_files(
    src: Union[os.PathLike, Sequence[os.PathLike]],
    *,
    options: Optional[ParseOptions] = None,
) -> Parsed:
    """Parse content from file or files `src`, all of a single dialect.
    Netlist files combine their modules; delay files concatenate their cells, in order."""

    if options is None:  # If not provided, create the default `ParseOptions`.
        options = ParseOptions()

    # Cover the cases of a single file
    if not isinstance(src, (list, tuple)):
        src = [src]
    paths = [Path(s) for s in src]
    if not paths:
        raise ValueError("No files to parse")

    # If a dialect has not been provided, infer it from the first file
    if options.dialect is None:
        options = replace(options, dialect=default_dialect(paths[0]))

    results = [FileParser(options).parse(p) for p in paths]
    return combine(results)


def sniff_dialect(src: str) -> NetlistDialects:
    """Infer the dialect of source text from its first significant token.
    Comments, attributes and directives are skipped; a delay file then opens with a paren, a netlist does not."""
    lex = Lexer(iter(src.splitlines(keepends=True)), verilog_pat, VerilogDialectParser.blocks)
    first = next(lex.lex(), None)
    if first is not None and first.tp == Tokens.LPAREN:
        return NetlistDialects.SDF
    return NetlistDialects.VERILOG


def default_dialect(path: os.PathLike) -> NetlistDialects:
    """Infer a default dialect from a file name, particularly its suffix."""

    p = Path(path).absolute()
    if not p.exists() or not p.is_file():
        raise FileNotFoundError(p)
    dialect = suffixes.get(p.suffix.lower(), None)
    if dialect is None:
        raise ValueError(f"Cannot infer a dialect for {p}, from its suffix {p.suffix!r}")
    return dialect


def combine(results: List[Parsed]) -> Parsed:
    """Combine the results of parsing several files"""
    first, *rest = results
    if isinstance(first, TimingModel):
        for r in rest:
            first.instances.extend(r.instances)
        return first
    for r in rest:
        for name, module in r.modules.items():
            if name in first.modules:
                raise VerilogSyntaxError(f"Duplicate module definition `{name}`")
            first.modules[name] = module
    return first


class FileParser:
    """Single-File Parser"""

    def __init__(self, options: ParseOptions):
        self.options = options
        self.dialect_parser = None

    @property
    def errors(self) -> List[NetlistParseError]:
        """Errors recovered from in `ErrorMode.STORE`"""
        if self.dialect_parser is None:
            return []
        return self.dialect_parser.errors

    def parse(self, path: os.PathLike) -> Parsed:
        """Parse the file at `path`."""
        p = Path(path).absolute()
        if not p.exists() or not p.is_file():
            raise FileNotFoundError(p)

        dcls = DialectParser.from_enum(self.options.dialect)
        with open(p, "r", encoding="utf-8") as f:
            self.dialect_parser = dcls.from_lines(f, options=self.options)
            try:
                return self.dialect_parser.parse()
            except NetlistParseError as e:
                # Tag the error with its source file
                e.filename = str(p)
                raise
