"""Reader and macro expander - Builds syntax trees and expands macros in them."""

from .parser import Parser
from .cst_nodes import *
from .errors import *
from .macro_expander import MacroExpander, MacroRegistry, Macro, expand_program

__all__ = ['Parser', 'MacroExpander', 'MacroRegistry', 'Macro', 'expand_program']
