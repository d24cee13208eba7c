"""
Concrete syntax tree node definitions.

Each node is one of four shapes: an identifier, a parenthesized call-form,
a bracketed literal sequence, or an atomic literal. Nodes are never mutated
after construction; expansion builds new trees.
"""

from dataclasses import dataclass
from typing import List, Optional, Any, Iterable
from enum import Enum, auto


@dataclass(frozen=True)
class SrcPos:
    """A span of source text, carried on every node for diagnostics."""
    filename: str = "<input>"
    line: int = 0
    column: int = 0
    end_line: int = 0
    end_column: int = 0

    def to(self, other: 'SrcPos') -> 'SrcPos':
        """Span from the start of this position to the end of `other`."""
        return SrcPos(self.filename, self.line, self.column, other.end_line, other.end_column)

    def error(self, kind, message: str, **details):
        """Report a fatal diagnostic of class `kind` at this position."""
        raise kind(message, self, **details)

    def __str__(self):
        return f"{self.filename}:{self.line}:{self.column}"


class NodeType(Enum):
    """CST node types."""
    IDENT = auto()     # foo
    SEXPR = auto()     # (head arg1 arg2 ...)
    LIST = auto()      # [item1 item2 ...]
    LITERAL = auto()   # 42, "text"


class CSTNode:
    """Base class for all CST nodes."""

    def __init__(self, node_type: NodeType, pos: Optional[SrcPos] = None,
                 expansion_site: Optional[SrcPos] = None):
        self.node_type = node_type
        self.pos = pos or SrcPos()
        # Position of the macro invocation that produced this node, if any
        self.expansion_site = expansion_site

    def ident_name(self) -> Optional[str]:
        """Return the identifier name if this is an identifier, else None."""
        return None

    def with_expansion_site(self, site: SrcPos) -> 'CSTNode':
        """Return a copy of this tree where every untagged node records `site`."""
        raise NotImplementedError

    def _same(self, other: 'CSTNode') -> bool:
        raise NotImplementedError

    def __eq__(self, other):
        # Structural equality; positions and expansion sites are ignored
        if not isinstance(other, CSTNode) or other.node_type != self.node_type:
            return NotImplemented
        return self._same(other)

    __hash__ = None

    def __repr__(self):
        return f"{self.__class__.__name__}({to_source(self)})"


class IdentNode(CSTNode):
    """Identifier/symbol node."""
    def __init__(self, name: str, pos: Optional[SrcPos] = None,
                 expansion_site: Optional[SrcPos] = None):
        super().__init__(NodeType.IDENT, pos, expansion_site)
        self.name = name

    def ident_name(self) -> Optional[str]:
        return self.name

    def with_expansion_site(self, site: SrcPos) -> 'IdentNode':
        return IdentNode(self.name, self.pos, self.expansion_site or site)

    def _same(self, other: 'IdentNode') -> bool:
        return self.name == other.name


class LiteralNode(CSTNode):
    """Opaque atomic literal: a number or a string."""
    def __init__(self, value: Any, pos: Optional[SrcPos] = None,
                 expansion_site: Optional[SrcPos] = None):
        super().__init__(NodeType.LITERAL, pos, expansion_site)
        self.value = value

    def with_expansion_site(self, site: SrcPos) -> 'LiteralNode':
        return LiteralNode(self.value, self.pos, self.expansion_site or site)

    def _same(self, other: 'LiteralNode') -> bool:
        return type(self.value) is type(other.value) and self.value == other.value


class SequenceNode(CSTNode):
    """Shared behaviour of the two bracketed shapes."""
    def __init__(self, node_type: NodeType, elements: List[CSTNode] = None,
                 pos: Optional[SrcPos] = None, expansion_site: Optional[SrcPos] = None):
        super().__init__(node_type, pos, expansion_site)
        self.elements = list(elements or [])

    def rebuild(self, elements: Iterable[CSTNode]) -> 'SequenceNode':
        """Same shape, position and site, new elements."""
        return self.__class__(list(elements), self.pos, self.expansion_site)

    def head_name(self) -> Optional[str]:
        """Name of the leading identifier, if there is one."""
        if self.elements:
            return self.elements[0].ident_name()
        return None

    def with_expansion_site(self, site: SrcPos) -> 'SequenceNode':
        return self.__class__([e.with_expansion_site(site) for e in self.elements],
                              self.pos, self.expansion_site or site)

    def _same(self, other: 'SequenceNode') -> bool:
        return self.elements == other.elements

    def __len__(self):
        return len(self.elements)


class SExprNode(SequenceNode):
    """Parenthesized call/special form: (head arg1 arg2 ...)"""
    def __init__(self, elements: List[CSTNode] = None, pos: Optional[SrcPos] = None,
                 expansion_site: Optional[SrcPos] = None):
        super().__init__(NodeType.SEXPR, elements, pos, expansion_site)


class ListNode(SequenceNode):
    """Bracketed literal sequence: [item1 item2 ...]

    Also the shape of a sequence capture produced by matching a repeated
    sub-pattern.
    """
    def __init__(self, elements: List[CSTNode] = None, pos: Optional[SrcPos] = None,
                 expansion_site: Optional[SrcPos] = None):
        super().__init__(NodeType.LIST, elements, pos, expansion_site)


def span_of(nodes: List[CSTNode], fallback: SrcPos) -> SrcPos:
    """Source span covering `nodes`, or `fallback` when there are none."""
    if not nodes:
        return fallback
    return nodes[0].pos.to(nodes[-1].pos)


def _string_to_source(value: str) -> str:
    escaped = (value.replace('\\', '\\\\')
                    .replace('"', '\\"')
                    .replace('\n', '\\n')
                    .replace('\t', '\\t'))
    return f'"{escaped}"'


def to_source(node: CSTNode) -> str:
    """Render a CST node back to source text."""
    if isinstance(node, IdentNode):
        return node.name
    if isinstance(node, LiteralNode):
        if isinstance(node.value, str):
            return _string_to_source(node.value)
        return str(node.value)
    if isinstance(node, SExprNode):
        return '(' + ' '.join(to_source(e) for e in node.elements) + ')'
    if isinstance(node, ListNode):
        return '[' + ' '.join(to_source(e) for e in node.elements) + ']'
    raise TypeError(f"Not a CST node: {node!r}")


def program_to_source(nodes: List[CSTNode]) -> str:
    """Render a sequence of top-level forms, one per line."""
    return ''.join(to_source(n) + '\n' for n in nodes)
