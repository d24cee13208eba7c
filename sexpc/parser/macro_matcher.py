"""
Macro pattern matching.

Matches syntax trees against compiled patterns, producing the bindings a
template is instantiated with. Repeated sub-patterns (`p ...`) are matched
greedily; the ambiguity check done at definition time guarantees that the
greedy split is the only one that can succeed.
"""

from typing import Dict, List, Optional, FrozenSet

from .cst_nodes import (
    SrcPos, CSTNode, IdentNode, SExprNode, ListNode, LiteralNode, span_of,
)
from .errors import InternalExpansionError
from .macro_patterns import MacroPattern, IdentPattern, SExprPattern, ListPattern


class Bindings(dict):
    """Pattern variable name -> captured tree.

    `depths` records how many repeats a name was captured under: 0 for a
    singular match, 1 for a ListNode of matches, 2 for a list of lists, ...
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.depths: Dict[str, int] = {}

    def bind(self, name: str, value: CSTNode, depth: int = 0):
        self[name] = value
        self.depths[name] = depth

    def depth(self, name: str) -> int:
        return self.depths.get(name, 0)

    def is_sequence(self, name: str) -> bool:
        return self.depth(name) > 0

    def merge(self, other: 'Bindings'):
        for name, value in other.items():
            self.bind(name, value, other.depth(name))


def match_(pattern: MacroPattern, tree: CSTNode, literals: FrozenSet[str]) -> Optional[Bindings]:
    """Match one tree against one pattern. Returns None if it does not match."""
    if isinstance(tree, IdentNode):
        return _match_ident(pattern, tree, literals)
    if isinstance(tree, SExprNode):
        return _match_sequence(pattern, tree, SExprPattern, literals)
    if isinstance(tree, ListNode):
        return _match_sequence(pattern, tree, ListPattern, literals)
    if isinstance(tree, LiteralNode):
        return _bind_whole(pattern, tree, literals)
    raise TypeError(f"Not a CST node: {tree!r}")


def _match_ident(pattern: MacroPattern, tree: IdentNode,
                 literals: FrozenSet[str]) -> Optional[Bindings]:
    if not isinstance(pattern, IdentPattern):
        return None
    if pattern.name in literals:
        # Syntax literals match only themselves and bind nothing
        return Bindings() if pattern.name == tree.name else None
    return _bind_whole(pattern, tree, literals)


def _match_sequence(pattern: MacroPattern, tree, pattern_class,
                    literals: FrozenSet[str]) -> Optional[Bindings]:
    if isinstance(pattern, IdentPattern):
        return _bind_whole(pattern, tree, literals)
    if not isinstance(pattern, pattern_class):
        return None
    return match_all(pattern.patterns, tree.elements, literals, tree.pos)


def _bind_whole(pattern: MacroPattern, tree: CSTNode,
                literals: FrozenSet[str]) -> Optional[Bindings]:
    """A non-literal identifier pattern captures any tree."""
    if not isinstance(pattern, IdentPattern) or pattern.name in literals:
        return None
    bindings = Bindings()
    bindings.bind(pattern.name, tree)
    return bindings


def _is_repeated(patterns: List[MacroPattern], i: int) -> bool:
    return i + 1 < len(patterns) and patterns[i + 1].is_ellipsis()


def _min_arity(patterns: List[MacroPattern]) -> int:
    """Number of arguments `patterns` need at the very least."""
    return sum(1 for i, p in enumerate(patterns)
               if not p.is_ellipsis() and not _is_repeated(patterns, i))


def _repeat_end(rest: List[MacroPattern], args: List[CSTNode], start: int,
                literals: FrozenSet[str]) -> Optional[int]:
    """Index of the first argument after a repeat that begins at `start`.

    `rest` are the patterns following the repeat's ellipsis.
    """
    if rest and rest[0].contains_literal(literals):
        # The next pattern delimits the repeat: stop at the first argument it matches
        for j in range(start, len(args)):
            if match_(rest[0], args[j], literals) is not None:
                return j
        if not _is_repeated(rest, 0):
            return None
        # A repeated delimiter may occur zero times
        return _leave_trailing(rest, args, start)

    if any(p.is_ellipsis() for p in rest):
        # A later repeat follows; split at the first literal-bearing pattern,
        # giving back one argument per pattern in between
        for d, p in enumerate(rest):
            if not p.is_ellipsis() and p.contains_literal(literals):
                keep = _min_arity(rest[:d])
                for j in range(start, len(args)):
                    if match_(p, args[j], literals) is not None:
                        return j - keep if j - keep >= start else None
                if not _is_repeated(rest, d):
                    return None
                break

    return _leave_trailing(rest, args, start)


def _leave_trailing(rest: List[MacroPattern], args: List[CSTNode], start: int) -> Optional[int]:
    """Leave one argument for each non-repeated pattern in `rest`."""
    end = len(args) - _min_arity(rest)
    return end if end >= start else None


def match_repeat(pattern: MacroPattern, args: List[CSTNode], literals: FrozenSet[str],
                 pos: SrcPos) -> Optional[Bindings]:
    """Match each of `args` against `pattern`, zipping the captures into lists."""
    names = pattern.variable_names(literals)
    # Seeded up front so a zero-length repeat still binds every name to []
    columns: Dict[str, List[CSTNode]] = {name: [] for name in names}
    depths: Dict[str, int] = {name: 1 for name in names}

    for arg in args:
        bound = match_(pattern, arg, literals)
        if bound is None:
            return None
        if set(bound) != names:
            raise InternalExpansionError(
                f"{arg.pos}: pattern {pattern!r} bound {sorted(bound)}, expected {sorted(names)}"
            )
        for name in names:
            columns[name].append(bound[name])
            depths[name] = bound.depth(name) + 1

    span = span_of(args, pos)
    bindings = Bindings()
    for name in names:
        bindings.bind(name, ListNode(columns[name], span), depths[name])
    return bindings


def match_all(patterns: List[MacroPattern], args: List[CSTNode], literals: FrozenSet[str],
              pos: Optional[SrcPos] = None) -> Optional[Bindings]:
    """Match an argument sequence against a pattern list, left to right.

    `pos` is used as the position of empty sequence captures.
    """
    pos = pos or span_of(args, SrcPos())
    bindings = Bindings()
    p_i = 0
    a_i = 0

    while p_i < len(patterns):
        pattern = patterns[p_i]

        if pattern.is_ellipsis():
            # A stray marker, only possible in escaped pattern lists
            p_i += 1
            continue

        if _is_repeated(patterns, p_i):
            end = _repeat_end(patterns[p_i + 2:], args, a_i, literals)
            if end is None:
                return None
            repeated = match_repeat(pattern, args[a_i:end], literals, pos)
            if repeated is None:
                return None
            bindings.merge(repeated)
            a_i = end
            p_i += 2
            continue

        if a_i >= len(args):
            return None
        bound = match_(pattern, args[a_i], literals)
        if bound is None:
            return None
        bindings.merge(bound)
        a_i += 1
        p_i += 1

    # Arity must balance exactly
    if a_i != len(args):
        return None
    return bindings


def match_rule(pattern: MacroPattern, args: List[CSTNode], literals: FrozenSet[str],
               pos: SrcPos) -> Optional[Bindings]:
    """Match a rule's top-level pattern against an invocation's arguments."""
    if isinstance(pattern, IdentPattern):
        return _bind_whole(pattern, ListNode(args, span_of(args, pos)), literals)
    return match_all(pattern.patterns, args, literals, pos)
