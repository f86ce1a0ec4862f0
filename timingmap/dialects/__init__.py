"""
# Dialect Parsers
"""

from .base import DialectParser
from .verilog import VerilogDialectParser
from .sdf import SdfDialectParser

__all__ = ["DialectParser", "VerilogDialectParser", "SdfDialectParser"]
