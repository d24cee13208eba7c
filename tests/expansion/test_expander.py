"""
Tests for the expansion driver.

These tests verify that the expander correctly handles:
- Fixed-arity and variadic macros
- Rule order, syntax literals and bracket-list patterns
- Ambiguous and duplicate definitions
- Nested and recursive expansion, including macros defined by macros
- quote, definition visibility and programs without macros
- Expansion-site tagging
- The expansion depth limit
"""

import pytest
from .conftest import AssertExpansion, read, read_one

from sexpc.parser.errors import (
    AmbiguousPattern, DuplicateMacroName, ExpansionError, MalformedDefinition,
    MalformedPattern, NoRuleMatched, RecursionLimitExceeded,
)
from sexpc.parser.macro_expander import (
    MacroExpander, MacroRegistry, expand_program, parse_definition,
)


MY_ADD = "(def-macro my-add () ((a b) (+ a b)))"
LIST_OF = "(def-macro list-of () ((x ...) (vec x ...)))"
MY_AND = """
(def-macro my-and ()
  (() true)
  ((x) x)
  ((x y ...) (if x (my-and y ...) false)))
"""


class TestBasicExpansion:
    """Tests for single macro invocations."""

    def test_fixed_arity_macro(self):
        AssertExpansion("(my-add 1 2)").with_macro(MY_ADD).expands_to("(+ 1 2)")

    def test_variadic_macro(self):
        AssertExpansion("(list-of 1 2 3)").with_macro(LIST_OF).expands_to("(vec 1 2 3)")

    def test_variadic_macro_with_no_arguments(self):
        AssertExpansion("(list-of)").with_macro(LIST_OF).expands_to("(vec)")

    def test_first_matching_rule_wins(self):
        AssertExpansion("(m 1)") \
            .with_macro("(def-macro m () ((a) (first a)) ((a) (second a)))") \
            .expands_to("(first 1)")

    def test_later_rule_is_tried_when_earlier_fails(self):
        AssertExpansion("(m 1 2)") \
            .with_macro("(def-macro m () ((a) (one a)) ((a b) (two a b)))") \
            .expands_to("(two 1 2)")

    def test_syntax_literals_select_rules(self):
        AssertExpansion("(my-if x then 1 else 2)") \
            .with_macro("(def-macro my-if (then else) ((c then t else e) (cond c t e)))") \
            .expands_to("(cond x 1 2)")

    def test_bracket_patterns_and_templates(self):
        AssertExpansion("(lets [(a 1) (b 2)] (+ a b))") \
            .with_macro("(def-macro lets () (([(n v) ...] body) (let-values [n ...] [v ...] body)))") \
            .expands_to("(let-values [a b] [1 2] (+ a b))")

    def test_rules_written_in_brackets(self):
        AssertExpansion("(two 7)") \
            .with_macro("(def-macro two [] [(x) (pair x x)])") \
            .expands_to("(pair 7 7)")

    def test_whole_argument_list_pattern(self):
        AssertExpansion("(wrap 1 2)") \
            .with_macro("(def-macro wrap () (args (call args)))") \
            .expands_to("(call [1 2])")

    def test_macro_quote_in_template(self):
        AssertExpansion("(dots)") \
            .with_macro("(def-macro dots () (() (macro-quote (a ...))))") \
            .expands_to("(a ...)")

    @pytest.mark.parametrize("source,expected", [
        ("(m 1 2)", "(f 1 2)"),
        ("(m 1 2 X X)", "(f 1 2)"),
    ])
    def test_repeated_literal_after_repeat_is_optional(self, source, expected):
        AssertExpansion(source) \
            .with_macro("(def-macro m (X) ((a ... X ...) (f a ...)))") \
            .expands_to(expected)

    def test_escaped_pattern_is_accepted(self):
        AssertExpansion("(m 1 2 3)") \
            .with_macro("(def-macro m () ((macro-escape a ... b ...) (f [a ...] [b ...])))") \
            .expands_to("(f [1 2 3] [])")


class TestDefinitionErrors:
    """Tests for rejected definitions."""

    def test_ambiguous_pattern_fails_at_definition(self):
        error = AssertExpansion("(bad 1 2)") \
            .with_macro("(def-macro bad () ((a ... b ...) (f a ... b ...)))") \
            .fails_with(AmbiguousPattern, "Ambiguous pattern")
        assert error.pos.line == 1

    def test_duplicate_definition(self):
        error = AssertExpansion("(def-macro twice () ((b) b))") \
            .with_macro("(def-macro twice () ((a) a))") \
            .fails_with(DuplicateMacroName, "`twice`")
        assert error.name == "twice"
        assert error.pos.line == 2

    @pytest.mark.parametrize("source,fragment", [
        ("(def-macro)", "Name missing"),
        ("(def-macro 1 ())", "Expected identifier"),
        ("(def-macro m)", "Literals list missing"),
        ("(def-macro m x)", "Expected list"),
        ("(def-macro m (1))", "Expected literal identifier"),
        ("(def-macro m () x)", "Expected list"),
        ("(def-macro m () (a))", "Expected pattern and template"),
        ("(def-macro m () (a b c))", "Expected pattern and template"),
        ("(def-macro quote () (a a))", "reserved"),
    ])
    def test_malformed_definitions(self, source, fragment):
        AssertExpansion(source).fails_with(MalformedDefinition, fragment)

    def test_literal_pattern_is_malformed(self):
        AssertExpansion("(def-macro m () ((a 1) a))").fails_with(MalformedPattern)

    def test_errors_share_a_base_class(self):
        AssertExpansion("(def-macro)").fails_with(ExpansionError)


class TestInvocationErrors:
    """Tests for invocations no rule accepts."""

    def test_no_rule_matched_names_arguments(self):
        error = AssertExpansion("(pair 1 2 3)") \
            .with_macro("(def-macro pair () ((a) (one a)) ((a b) (two a b)))") \
            .fails_with(NoRuleMatched, "(1 2 3)")
        assert error.name == "pair"
        assert error.arguments == "1 2 3"
        assert error.pos.line == 2

    def test_literal_mismatch_matches_no_rule(self):
        AssertExpansion("(my-if x foo 1 bar 2)") \
            .with_macro("(def-macro my-if (then else) ((c then t else e) (cond c t e)))") \
            .fails_with(NoRuleMatched)

    def test_first_error_aborts_the_pass(self):
        AssertExpansion("(pair) (def-macro)") \
            .with_macro("(def-macro pair () ((a) a))") \
            .fails_with(NoRuleMatched)


class TestNestedExpansion:
    """Tests for re-expansion of generated code."""

    def test_template_invoking_another_macro(self):
        AssertExpansion("(A)") \
            .with_macro("(def-macro A () (() (B 1)))") \
            .with_macro("(def-macro B () ((x) (+ x 1)))") \
            .expands_to("(+ 1 1)")

    def test_macros_in_arguments_are_expanded(self):
        AssertExpansion("(my-add (my-add 1 2) 3)").with_macro(MY_ADD) \
            .expands_to("(+ (+ 1 2) 3)")

    def test_macros_inside_ordinary_forms(self):
        AssertExpansion("(print (my-add 1 2) [(my-add 3 4)])").with_macro(MY_ADD) \
            .expands_to("(print (+ 1 2) [(+ 3 4)])")

    def test_recursive_macro_terminates(self):
        AssertExpansion("(my-and a b c)").with_macro(MY_AND) \
            .expands_to("(if a (if b c false) false)")

    def test_macro_defining_macro(self):
        AssertExpansion("(make answer) (answer)") \
            .with_macro("(def-macro make () ((n) (def-macro n () (() 42))))") \
            .expands_to("42")

    def test_runaway_recursion_is_reported(self):
        AssertExpansion("(loop)") \
            .with_macro("(def-macro loop () (() (loop)))") \
            .fails_with(RecursionLimitExceeded, "`loop`")

    def test_depth_limit_is_configurable(self):
        AssertExpansion("(my-and a b c d)").with_macro(MY_AND) \
            .with_max_depth(2) \
            .fails_with(RecursionLimitExceeded, "depth of 2")


class TestProgramLevel:
    """Tests for whole-program passes."""

    def test_definitions_vanish(self):
        AssertExpansion(MY_ADD).vanishes()

    def test_macro_free_program_is_unchanged(self):
        source = '(def-fn f [x] (+ x 1)) [1 "two" 3.5] symbol (f (g))'
        assert expand_program(read(source)) == read(source)

    def test_expanding_output_again_changes_nothing(self):
        first = AssertExpansion("(list-of (my-add 1 2) 3)") \
            .with_macro(MY_ADD).with_macro(LIST_OF) \
            .expands_to("(vec (+ 1 2) 3)")
        assert expand_program(first) == first

    def test_quote_is_not_expanded(self):
        AssertExpansion("(quote (my-add 1 2)) '(my-add 3 4)").with_macro(MY_ADD) \
            .expands_to("(quote (my-add 1 2)) (quote (my-add 3 4))")

    def test_no_forward_references(self):
        AssertExpansion("(later 1)\n(def-macro later () ((x) (now x)))\n(later 2)") \
            .expands_to("(later 1) (now 2)")

    def test_each_pass_starts_with_an_empty_registry(self):
        expander = MacroExpander()
        expander.expand_program(read(MY_ADD))
        assert expander.expand_program(read("(my-add 1 2)")) == read("(my-add 1 2)")

    def test_expansion_is_not_hygienic(self):
        AssertExpansion("(swap tmp x)") \
            .with_macro("(def-macro swap () ((a b) (let tmp a (set a b) (set b tmp))))") \
            .expands_to("(let tmp tmp (set tmp x) (set x tmp))")


class TestExpansionSites:
    """Tests for provenance tagging of expanded code."""

    def test_expanded_nodes_carry_invocation_site(self):
        result = AssertExpansion("(print 0)\n  (my-add 1 2)").with_macro(MY_ADD) \
            .expands_to("(print 0) (+ 1 2)")
        assert result[0].expansion_site is None
        site = result[1].expansion_site
        assert (site.line, site.column) == (3, 3)
        assert all(e.expansion_site == site for e in result[1].elements)

    def test_nested_expansion_is_tagged_with_inner_invocation(self):
        result = AssertExpansion("(A)") \
            .with_macro("(def-macro A () (() (B 1)))") \
            .with_macro("(def-macro B () ((x) (+ x 1)))") \
            .expands_to("(+ 1 1)")
        # (B 1) is written inside the definition of A on line 1
        assert result[0].expansion_site.line == 1


class TestRegistry:
    """Tests for the registry and definition parsing used by the driver."""

    def test_parse_definition(self):
        macro = parse_definition(read_one("(def-macro m (=>) ((a => b) (f a b)) ((a) a))"))
        assert macro.name == "m"
        assert macro.literals == frozenset({"=>"})
        assert len(macro.rules) == 2
        assert macro.rules[1][1] == read_one("a")

    def test_registry_rejects_redefinition(self):
        registry = MacroRegistry()
        registry.define(parse_definition(read_one("(def-macro m () ((a) a))")))
        assert "m" in registry
        assert registry.lookup("m").name == "m"
        assert registry.lookup(None) is None
        with pytest.raises(DuplicateMacroName):
            registry.define(parse_definition(read_one("(def-macro m () ((a) a))")))

    def test_verbose_expander_logs_definitions_and_rules(self):
        messages = []
        expander = MacroExpander(verbose=True, log=messages.append)
        expander.expand_program(read(MY_ADD + " (my-add 1 2)"))
        assert any("Defined macro my-add" in m for m in messages)
        assert any("Expanding my-add with rule 1" in m for m in messages)

    def test_quiet_expander_does_not_log(self):
        messages = []
        MacroExpander(log=messages.append).expand_program(read(MY_ADD))
        assert messages == []
