"""
Compiled macro patterns.

A pattern mirrors the shape of the syntax it matches: identifiers bind (or,
when declared as syntax literals, must match verbatim), and call-form and
bracket-list patterns hold sub-pattern lists in which an element followed by
`...` repeats zero or more times.

Patterns are checked for ambiguous repeats once, when the macro is defined,
so the matcher can split arguments greedily.
"""

from enum import Enum, auto
from typing import List, Set, FrozenSet

from .cst_nodes import CSTNode, IdentNode, SExprNode, SequenceNode
from .errors import AmbiguousPattern, MalformedPattern


ELLIPSIS = "..."
ESCAPE_MARKER = "macro-escape"


class PatternType(Enum):
    """Macro pattern types."""
    IDENT = auto()
    SEXPR = auto()
    LIST = auto()


class MacroPattern:
    """Base class for compiled patterns."""

    def __init__(self, pattern_type: PatternType):
        self.pattern_type = pattern_type

    def is_ellipsis(self) -> bool:
        return False

    def contains_literal(self, literals: FrozenSet[str]) -> bool:
        """True if a syntax literal appears anywhere in this pattern."""
        raise NotImplementedError

    def variable_names(self, literals: FrozenSet[str]) -> Set[str]:
        """All names this pattern binds when it matches."""
        raise NotImplementedError

    def __eq__(self, other):
        if not isinstance(other, MacroPattern) or other.pattern_type != self.pattern_type:
            return NotImplemented
        return self._same(other)

    __hash__ = None


class IdentPattern(MacroPattern):
    """A pattern variable, a syntax literal, or the `...` marker."""

    def __init__(self, name: str):
        super().__init__(PatternType.IDENT)
        self.name = name

    def is_ellipsis(self) -> bool:
        return self.name == ELLIPSIS

    def contains_literal(self, literals: FrozenSet[str]) -> bool:
        return self.name in literals

    def variable_names(self, literals: FrozenSet[str]) -> Set[str]:
        if self.is_ellipsis() or self.name in literals:
            return set()
        return {self.name}

    def _same(self, other: 'IdentPattern') -> bool:
        return self.name == other.name

    def __repr__(self):
        return f"IdentPattern({self.name})"


class SequencePattern(MacroPattern):
    """A bracketed pattern holding a sub-pattern list.

    `escaped` is set when the list was written with a leading `macro-escape`
    marker; the marker itself is not kept in `patterns`.
    """

    def __init__(self, pattern_type: PatternType, patterns: List[MacroPattern],
                 escaped: bool = False):
        super().__init__(pattern_type)
        self.patterns = patterns
        self.escaped = escaped

    def contains_literal(self, literals: FrozenSet[str]) -> bool:
        return any(p.contains_literal(literals) for p in self.patterns)

    def variable_names(self, literals: FrozenSet[str]) -> Set[str]:
        names = set()
        for p in self.patterns:
            names |= p.variable_names(literals)
        return names

    def _same(self, other: 'SequencePattern') -> bool:
        return self.escaped == other.escaped and self.patterns == other.patterns

    def __repr__(self):
        return f"{self.__class__.__name__}({self.patterns!r})"


class SExprPattern(SequencePattern):
    """Matches a call-form: (p1 p2 ...)"""
    def __init__(self, patterns: List[MacroPattern], escaped: bool = False):
        super().__init__(PatternType.SEXPR, patterns, escaped)


class ListPattern(SequencePattern):
    """Matches a bracket list: [p1 p2 ...]"""
    def __init__(self, patterns: List[MacroPattern], escaped: bool = False):
        super().__init__(PatternType.LIST, patterns, escaped)


def unambiguous_sequences(patterns: List[MacroPattern], literals: FrozenSet[str]) -> bool:
    """Check that no two repeats in a pattern list can split arguments more than one way.

    A repeat stays open until a pattern containing a syntax literal closes it;
    a second `...` while one is still open is ambiguous.
    """
    open_repeat = False

    for p in patterns:
        if p.is_ellipsis():
            if open_repeat:
                return False
            open_repeat = True
        elif p.contains_literal(literals):
            open_repeat = False
    return True


def parse_pattern(tree: CSTNode, literals: FrozenSet[str]) -> MacroPattern:
    """Compile a raw pattern tree into a MacroPattern."""
    if isinstance(tree, IdentNode):
        if tree.name == ESCAPE_MARKER:
            tree.pos.error(MalformedPattern,
                           f"`{ESCAPE_MARKER}` may only start a pattern list")
        return IdentPattern(tree.name)

    if isinstance(tree, SequenceNode):
        elements = tree.elements
        escaped = bool(elements) and elements[0].ident_name() == ESCAPE_MARKER
        if escaped:
            elements = elements[1:]

        patterns = [parse_pattern(e, literals) for e in elements]

        if patterns and patterns[0].is_ellipsis():
            elements[0].pos.error(MalformedPattern, "Ellipsis must follow a pattern")

        if not escaped and not unambiguous_sequences(patterns, literals):
            tree.pos.error(AmbiguousPattern, "Ambiguous pattern")

        if isinstance(tree, SExprNode):
            return SExprPattern(patterns, escaped)
        return ListPattern(patterns, escaped)

    tree.pos.error(MalformedPattern, "Expected list or ident")

