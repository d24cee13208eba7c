"""
Macro expansion engine for def-macro.

Handles macro definition storage and expansion of a whole program. Each
expansion pass owns one MacroRegistry; a macro is visible to every form
after its definition and to none before it.

    (def-macro name (literal ...) (pattern template) ...)

Rules are tried in order and the first whose pattern matches the invocation's
arguments is instantiated. The result is expanded again, so invocations
produced by a template are themselves expanded. Expansion is not hygienic:
identifiers a template introduces can capture or be captured by the caller's.
"""

import sys
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from .cst_nodes import CSTNode, IdentNode, SExprNode, SequenceNode, SrcPos, to_source
from .errors import (
    DuplicateMacroName, MalformedDefinition, NoRuleMatched, RecursionLimitExceeded,
)
from .macro_matcher import match_rule
from .macro_patterns import MacroPattern, parse_pattern
from .macro_templates import subst_syntax_vars


QUOTE = "quote"
DEF_MACRO = "def-macro"
RESERVED_FORMS = frozenset({QUOTE, DEF_MACRO})

# Nested macro applications allowed before giving up; None means unbounded
DEFAULT_MAX_DEPTH = 128


@dataclass(frozen=True)
class Macro:
    """A macro defined by a series of rules, which are pattern matching cases."""
    name: str
    literals: FrozenSet[str]
    rules: List[Tuple[MacroPattern, CSTNode]] = field(default_factory=list)
    pos: SrcPos = field(default_factory=SrcPos)


class MacroRegistry:
    """Macros defined so far in one expansion pass."""

    def __init__(self):
        self.macros: Dict[str, Macro] = {}

    def define(self, macro: Macro):
        """Store a macro definition. Names may only be defined once per pass."""
        if macro.name in self.macros:
            macro.pos.error(DuplicateMacroName,
                            f"Duplicate definition of macro `{macro.name}`",
                            name=macro.name)
        self.macros[macro.name] = macro

    def lookup(self, name: Optional[str]) -> Optional[Macro]:
        if name is None:
            return None
        return self.macros.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.macros

    def __len__(self):
        return len(self.macros)


def parse_definition(form: SExprNode) -> Macro:
    """Build a Macro from the parts of a (def-macro ...) form."""
    parts = form.elements[1:]

    if not parts:
        form.pos.error(MalformedDefinition, "Name missing in macro definition")
    name_tree = parts[0]
    if not isinstance(name_tree, IdentNode):
        name_tree.pos.error(MalformedDefinition, "Expected identifier")
    if name_tree.name in RESERVED_FORMS:
        name_tree.pos.error(MalformedDefinition,
                            f"`{name_tree.name}` is a reserved form and cannot be a macro")

    if len(parts) < 2:
        form.pos.error(MalformedDefinition, "Literals list missing in macro definition")
    literals_tree = parts[1]
    if not isinstance(literals_tree, SequenceNode):
        literals_tree.pos.error(MalformedDefinition, "Expected list")
    literals = set()
    for item in literals_tree.elements:
        if not isinstance(item, IdentNode):
            item.pos.error(MalformedDefinition, "Expected literal identifier")
        literals.add(item.name)
    literals = frozenset(literals)

    rules = []
    for rule in parts[2:]:
        if not isinstance(rule, SequenceNode):
            rule.pos.error(MalformedDefinition, "Expected list")
        if len(rule.elements) != 2:
            rule.pos.error(MalformedDefinition, "Expected pattern and template")
        pattern, template = rule.elements
        rules.append((parse_pattern(pattern, literals), template))

    return Macro(name_tree.name, literals, rules, form.pos)


def _default_log(message: str):
    print(f"[sexpc] {message}", file=sys.stderr)


class MacroExpander:
    """Expands def-macro definitions and macro invocations."""

    def __init__(self, verbose: bool = False, max_depth: Optional[int] = DEFAULT_MAX_DEPTH,
                 log: Optional[Callable[[str], None]] = None):
        self.verbose = verbose
        self.max_depth = max_depth
        self._log = log or _default_log

    def log(self, message: str):
        """Print log message if verbose mode is enabled."""
        if self.verbose:
            self._log(message)

    def expand_program(self, forms: List[CSTNode]) -> List[CSTNode]:
        """Expand all macros in an ordered sequence of top-level forms."""
        registry = MacroRegistry()
        expanded = []
        for form in forms:
            result = self.expand(form, registry)
            if result is not None:
                expanded.append(result)
        self.log(f"Expanded {len(forms)} forms into {len(expanded)} "
                 f"({len(registry)} macros defined)")
        return expanded

    def expand(self, tree: CSTNode, registry: MacroRegistry, depth: int = 0) -> Optional[CSTNode]:
        """
        Expand macros in a tree.

        Bracket lists are traversed like call-forms, so invocations inside
        them are expanded too. Returns None if the tree vanished, which is the case for definitions.
        """
        if not isinstance(tree, SequenceNode) or not tree.elements:
            return tree

        if isinstance(tree, SExprNode):
            head = tree.head_name()
            if head == QUOTE:
                return tree
            if head == DEF_MACRO:
                macro = parse_definition(tree)
                registry.define(macro)
                self.log(f"Defined macro {macro.name} ({len(macro.rules)} rules) at {tree.pos}")
                return None
            macro = registry.lookup(head)
            if macro is not None:
                return self.apply_macro(macro, tree, registry, depth)

        # Not a macro, expand the elements and drop the ones that vanish
        expanded = (self.expand(e, registry, depth) for e in tree.elements)
        return tree.rebuild(e for e in expanded if e is not None)

    def apply_macro(self, macro: Macro, invocation: SExprNode, registry: MacroRegistry,
                    depth: int) -> Optional[CSTNode]:
        """Instantiate the first matching rule of `macro` and expand the result."""
        if self.max_depth is not None and depth >= self.max_depth:
            invocation.pos.error(
                RecursionLimitExceeded,
                f"Macro `{macro.name}` exceeded the maximum expansion depth of {self.max_depth}",
            )

        args = invocation.elements[1:]
        for index, (pattern, template) in enumerate(macro.rules):
            bindings = match_rule(pattern, args, macro.literals, invocation.pos)
            if bindings is None:
                continue

            self.log(f"Expanding {macro.name} with rule {index + 1} at {invocation.pos}")
            substituted = subst_syntax_vars(template, bindings)
            substituted = substituted.with_expansion_site(invocation.pos)
            return self.expand(substituted, registry, depth + 1)

        arguments = ' '.join(to_source(a) for a in args)
        invocation.pos.error(
            NoRuleMatched,
            f"No rule matched in macro invocation `{macro.name}` with arguments ({arguments})",
            name=macro.name, arguments=arguments,
        )


def expand_program(forms: List[CSTNode], **options) -> List[CSTNode]:
    """Expand a program in a fresh pass; `options` are MacroExpander settings."""
    return MacroExpander(**options).expand_program(forms)
