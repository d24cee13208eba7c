"""
Template substitution for macro rules.

Replaces pattern variables in a rule's template with the trees they were
bound to. A template element followed by `...` is instantiated once per
element of the sequence variables inside it.
"""

from typing import List, Optional

from .cst_nodes import CSTNode, IdentNode, SequenceNode
from .errors import ArityMismatch, EmptySequenceFlatten
from .macro_matcher import Bindings
from .macro_patterns import ELLIPSIS


QUOTE_MARKER = "macro-quote"


def _is_ellipsis(node: CSTNode) -> bool:
    return node.ident_name() == ELLIPSIS


def _is_quoted(node: CSTNode) -> bool:
    return isinstance(node, SequenceNode) and node.head_name() == QUOTE_MARKER


def subst_syntax_vars(template: CSTNode, bindings: Bindings) -> Optional[CSTNode]:
    """Instantiate `template` with `bindings`.

    Bound values are inserted as they are; they are not searched for further
    variables. Returns None only when the template is a variable that has no
    value in the current repetition.
    """
    if isinstance(template, IdentNode):
        if template.name in bindings:
            return bindings[template.name]
        return template

    if not isinstance(template, SequenceNode) or not template.elements:
        return template

    if _is_quoted(template):
        if len(template.elements) != 2:
            template.pos.error(
                ArityMismatch,
                f"Arity mismatch. Expected 1, found {len(template.elements) - 1}",
            )
        return template.elements[1]

    elements = template.elements
    substituted = []
    for i, child in enumerate(elements):
        if _is_ellipsis(child):
            continue
        if i + 1 < len(elements) and _is_ellipsis(elements[i + 1]):
            substituted.extend(flatten(child, bindings))
        else:
            result = subst_syntax_vars(child, bindings)
            if result is not None:
                substituted.append(result)
    return template.rebuild(substituted)


def max_sequence_len(template: CSTNode, bindings: Bindings) -> Optional[int]:
    """Length of the longest sequence variable in `template`, or None if there is none."""
    if isinstance(template, IdentNode):
        if bindings.is_sequence(template.name):
            return len(bindings[template.name])
        return None

    if isinstance(template, SequenceNode) and not _is_quoted(template):
        lengths = [n for n in (max_sequence_len(e, bindings) for e in template.elements)
                   if n is not None]
        return max(lengths) if lengths else None

    return None


def iteration_bindings(bindings: Bindings, i: int) -> Bindings:
    """Bindings for repetition `i`: each sequence variable stands for its i-th element.

    A sequence shorter than i + 1 repeats its last element; an empty one has
    no value at all.
    """
    result = Bindings()
    for name, value in bindings.items():
        depth = bindings.depth(name)
        if depth == 0:
            result.bind(name, value)
            continue
        items = value.elements
        if i < len(items):
            result.bind(name, items[i], depth - 1)
        elif items:
            result.bind(name, items[-1], depth - 1)
        else:
            result.bind(name, None)
    return result


def flatten(template: CSTNode, bindings: Bindings) -> List[CSTNode]:
    """Expand an ellipsis template into one instantiation per repetition.

        (c1 and c2) ...   ; c1 bound to [1 2 3], c2 bound to [a b c]
        => (1 and a) (2 and b) (3 and c)
    """
    length = max_sequence_len(template, bindings)
    if length is None:
        template.pos.error(EmptySequenceFlatten,
                           "Token tree contained no sequence syntax variables")

    instances = []
    for i in range(length):
        result = subst_syntax_vars(template, iteration_bindings(bindings, i))
        if result is not None:
            instances.append(result)
    return instances
