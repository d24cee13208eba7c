"""
Macro expansion diagnostics.

Every user-facing failure carries the source position it was reported at and
aborts the current expansion pass.
"""

from typing import Optional
from .cst_nodes import SrcPos


class ExpansionError(Exception):
    """A fatal diagnostic raised while expanding macros."""

    def __init__(self, message: str, pos: Optional[SrcPos] = None):
        super().__init__(message)
        self.message = message
        self.pos = pos

    def __str__(self):
        if self.pos is not None:
            return f"{self.pos}: {self.message}"
        return self.message


class MalformedDefinition(ExpansionError):
    """def-macro is missing its name, literal list, or a well-formed rule."""


class MalformedPattern(ExpansionError):
    """A pattern position holds something other than an identifier or a list."""


class AmbiguousPattern(ExpansionError):
    """Two repeated sub-patterns without a literal delimiter between them."""


class DuplicateMacroName(ExpansionError):
    """A macro with this name is already defined in the pass."""

    def __init__(self, message: str, pos: Optional[SrcPos] = None, name: str = ""):
        super().__init__(message, pos)
        self.name = name


class NoRuleMatched(ExpansionError):
    """No rule of the invoked macro matched the arguments."""

    def __init__(self, message: str, pos: Optional[SrcPos] = None,
                 name: str = "", arguments: str = ""):
        super().__init__(message, pos)
        self.name = name
        self.arguments = arguments


class ArityMismatch(ExpansionError):
    """macro-quote applied to something other than exactly one element."""


class EmptySequenceFlatten(ExpansionError):
    """An ellipsis template position references no sequence variable."""


class RecursionLimitExceeded(ExpansionError):
    """Nested macro applications went deeper than the configured limit."""


class InternalExpansionError(RuntimeError):
    """The pattern model and the matcher disagree; this is an engine defect."""
