"""
Test fixtures and helpers for macro expansion tests.

The key abstractions are:

- read(): turns source text into top-level CST forms
- AssertExpansion: fluent API for checking what a program expands to

Usage:
    AssertExpansion("(my-add 1 2)") \\
        .with_macro("(def-macro my-add () ((a b) (+ a b)))") \\
        .expands_to("(+ 1 2)")
"""

import pytest
from typing import FrozenSet, List, Optional

from sexpc.compiler import SexpCompiler
from sexpc.lexer import Lexer
from sexpc.parser import Parser
from sexpc.parser.cst_nodes import CSTNode, program_to_source
from sexpc.parser.macro_expander import DEFAULT_MAX_DEPTH
from sexpc.parser.macro_matcher import Bindings, match_all
from sexpc.parser.macro_patterns import MacroPattern, parse_pattern


def read(source: str, filename: str = "<test>") -> List[CSTNode]:
    """Read source text into CST forms."""
    return Parser(Lexer(source, filename).tokenize(), filename).parse()


def read_one(source: str) -> CSTNode:
    """Read exactly one form."""
    forms = read(source)
    assert len(forms) == 1, f"Expected one form in {source!r}, got {len(forms)}"
    return forms[0]


def pattern(source: str, literals: FrozenSet[str] = frozenset()) -> MacroPattern:
    """Compile a pattern written as source text."""
    return parse_pattern(read_one(source), literals)


def bindings_for(pattern_source: str, args_source: str,
                 literals: FrozenSet[str] = frozenset()) -> Optional[Bindings]:
    """Match the elements of `args_source` against the elements of `pattern_source`."""
    return match_all(pattern(pattern_source, literals).patterns,
                     read_one(args_source).elements, literals)


class ExpansionAssertion:
    """Fluent assertion helper for expanding a program."""

    def __init__(self, source: str):
        self.source = source
        self.definitions: List[str] = []
        self.max_depth: Optional[int] = DEFAULT_MAX_DEPTH

    def with_macro(self, code: str) -> 'ExpansionAssertion':
        """Add a definition placed before the source."""
        self.definitions.append(code)
        return self

    def with_max_depth(self, max_depth: Optional[int]) -> 'ExpansionAssertion':
        self.max_depth = max_depth
        return self

    def _full_source(self) -> str:
        return "\n".join(self.definitions + [self.source])

    def expand(self) -> List[CSTNode]:
        compiler = SexpCompiler(max_depth=self.max_depth)
        return compiler.expand_string(self._full_source(), "<test>")

    def expands_to(self, expected: str) -> List[CSTNode]:
        """Assert that the program expands to the forms in `expected`."""
        actual = self.expand()
        assert actual == read(expected), \
            f"Expected:\n{expected}\nGot:\n{program_to_source(actual)}"
        return actual

    def vanishes(self) -> None:
        """Assert that nothing is left after expansion."""
        actual = self.expand()
        assert actual == [], f"Expected no output, got:\n{program_to_source(actual)}"

    def fails_with(self, error_class, fragment: Optional[str] = None):
        """Assert that expansion aborts with `error_class`; returns the error."""
        with pytest.raises(error_class) as info:
            self.expand()
        if fragment:
            assert fragment in str(info.value), \
                f"Expected {fragment!r} in error message, got {str(info.value)!r}"
        return info.value


def AssertExpansion(source: str) -> ExpansionAssertion:
    """Create an expansion assertion."""
    return ExpansionAssertion(source)

