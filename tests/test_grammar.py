import numpy as np
import pytest

from randomart.core import RANDOM, X, Y, ContractViolation, add, number, rule, sin, triple
from randomart.grammars.base import MAX_ATTEMPTS, Grammar, GrammarBranches
from randomart.grammars.conditional import ConditionalGrammar
from randomart.grammars.default import DefaultGrammar
from randomart.utils import fnv1a


class ScriptedRandom:
    """Stands in for the generator with a fixed list of draws."""

    def __init__(self, values: list[float]) -> None:
        self.values = list(values)
        self.draws = 0

    def next_float(self) -> np.float32:
        value = self.values[self.draws]
        self.draws += 1
        return np.float32(value)


def _branches(*alternates) -> GrammarBranches:
    branches = GrammarBranches()
    for template, probability in alternates:
        branches.add_alternate(template, probability)
    return branches


class TestGrammarBranches:
    def setup_method(self) -> None:
        self.branches = _branches((X, 0.25), (Y, 0.25), (number(1.0), 0.5))

    def test_cumulative_selection(self) -> None:
        assert self.branches.select(np.float32(0.0)).template == X
        assert self.branches.select(np.float32(0.25)).template == X
        assert self.branches.select(np.float32(0.3)).template == Y
        assert self.branches.select(np.float32(0.75)).template == number(1.0)

    def test_mass_below_draw_selects_nothing(self) -> None:
        branches = _branches((X, 0.2), (Y, 0.3))
        assert branches.select(np.float32(0.6)) is None

    def test_negative_probability_rejected(self) -> None:
        with pytest.raises(ContractViolation):
            GrammarBranches().add_alternate(X, -0.1)


class TestGenerate:
    @pytest.mark.parametrize("depth", [0, -1, -10])
    def test_depth_zero_fails_without_drawing(self, depth: int) -> None:
        grammar = DefaultGrammar(seed=1)
        for rule_index in range(len(grammar.rules)):
            assert grammar.generate(rule_index, depth) is None
        assert grammar.draws == 0

    def test_generator_is_required(self) -> None:
        with pytest.raises(TypeError):
            Grammar([_branches((X, 1.0))])

    def test_draws_follow_the_generator(self) -> None:
        rng = ScriptedRandom([0.1])
        grammar = Grammar([_branches((X, 1.0))], rng)
        assert grammar.draws == 0
        grammar.generate(0, 1)
        assert grammar.draws == rng.draws == 1
        assert not hasattr(grammar, "rng")

    def test_build_from_a_subclass_gives_a_plain_grammar(self) -> None:
        rules = [_branches((Y, 1.0))]
        grammar = DefaultGrammar.build(rules, seed=9)
        assert type(grammar) is Grammar
        assert len(grammar.rules) == 1
        assert grammar.generate(0, 1) == Y

    def test_depth_zero_skips_rule_lookup(self) -> None:
        grammar = Grammar.build([], seed=1)
        assert grammar.generate(7, 0) is None

    def test_retries_when_draw_lands_past_the_mass(self) -> None:
        rng = ScriptedRandom([0.9, 0.9, 0.2])
        grammar = Grammar([_branches((X, 0.5))], rng)
        assert grammar.generate(0, 1) == X
        assert rng.draws == 3

    def test_gives_up_after_max_attempts(self) -> None:
        rng = ScriptedRandom([0.9] * MAX_ATTEMPTS)
        grammar = Grammar([_branches((X, 0.5))], rng)
        assert grammar.generate(0, 1) is None
        assert rng.draws == MAX_ATTEMPTS
        assert grammar.stats["retry_exhausted"] == 1

    def test_random_becomes_a_number(self) -> None:
        rng = ScriptedRandom([0.1, 0.75])
        grammar = Grammar([_branches((RANDOM, 1.0))], rng)
        assert grammar.generate(0, 1) == number(0.5)
        assert rng.draws == 2

    def test_rule_crossing_consumes_depth(self) -> None:
        rules = [_branches((add(rule(1), rule(1)), 1.0)), _branches((X, 1.0))]
        assert Grammar.build(rules, seed=3).generate(0, 3) == add(X, X)
        assert Grammar.build(rules, seed=3).generate(0, 2) is None

    def test_draw_count_of_successful_generation(self) -> None:
        rules = [_branches((add(rule(1), rule(1)), 1.0)), _branches((X, 1.0))]
        grammar = Grammar.build(rules, seed=3)
        grammar.generate(0, 3)
        assert grammar.draws == 3

    def test_operand_failure_short_circuits(self) -> None:
        # Rule(1) fails at depth 0, so the Random operand is never drawn
        rules = [_branches((add(rule(1), RANDOM), 1.0)), _branches((X, 1.0))]
        grammar = Grammar.build(rules, seed=3)
        assert grammar.generate(0, 1) is None
        assert grammar.draws == MAX_ATTEMPTS

    def test_alternative_is_redrawn_after_failed_expansion(self) -> None:
        rules = [_branches((sin(rule(0)), 0.5), (Y, 0.5))]
        rng = ScriptedRandom([0.1, 0.9])
        grammar = Grammar(rules, rng)
        # sin(Rule(0)) at depth 0 fails, the second draw picks Y
        assert grammar.generate(0, 1) == Y
        assert rng.draws == 2

    def test_unbounded_recursion_terminates(self) -> None:
        grammar = Grammar.build([_branches((sin(rule(0)), 1.0))], seed=11)
        assert grammar.generate(0, 4) is None

    def test_invalid_rule_index(self) -> None:
        grammar = Grammar.build([_branches((X, 1.0))], seed=1)
        with pytest.raises(ContractViolation):
            grammar.generate(1, 3)
        with pytest.raises(ContractViolation):
            grammar.generate(-1, 3)

    def test_rule_reference_out_of_range(self) -> None:
        grammar = Grammar.build([_branches((sin(rule(4)), 1.0))], seed=1)
        with pytest.raises(ContractViolation):
            grammar.generate(0, 3)

    def test_empty_rule(self) -> None:
        grammar = Grammar.build([GrammarBranches()], seed=1)
        with pytest.raises(ContractViolation):
            grammar.generate(0, 3)

    def test_generated_trees_do_not_share_template_nodes(self) -> None:
        template = triple(X, Y, X)
        tree = Grammar.build([_branches((template, 1.0))], seed=5).generate(0, 1)
        assert tree == template
        assert tree is not template
        assert tree.args[0] is not template.args[0]


class TestDefaultGrammar:
    def test_rule_table(self) -> None:
        grammar = DefaultGrammar(seed=0)
        assert [len(branches) for branches in grammar.rules] == [1, 9, 3]
        total = sum(branch.probability for branch in grammar.rules[1].alternates)
        assert total == pytest.approx(1.0)

    def test_depth_four_is_too_shallow(self) -> None:
        # E -> C -> A needs three rule crossings and a terminal
        assert DefaultGrammar(seed=fnv1a("samarth kulkarni")).generate(0, 4) is None

    def test_depth_five_only_reaches_atoms(self) -> None:
        for seed in range(5):
            tree = DefaultGrammar(seed).generate(0, 5)
            if tree is None:
                continue
            assert tree.name == "Triple"
            assert all(channel.name in ("X", "Y", "Number") for channel in tree.args)

    def test_generated_trees_are_evaluable(self) -> None:
        trees = [DefaultGrammar(seed).generate(0, 12) for seed in range(5)]
        assert any(tree is not None for tree in trees)
        for tree in trees:
            if tree is None:
                continue
            assert tree.name == "Triple"
            assert tree.is_generated()
            for node in tree.walk():
                if node.name == "Number":
                    value = node.args[0]
                    assert -1.0 <= value < 1.0
                    assert float(np.float32(value)) == value
            tree.eval_rgb(0.25, -0.75)

    def test_same_seed_same_tree(self) -> None:
        seed = fnv1a("samarth kulkarni")
        first = DefaultGrammar(seed).generate(0, 16)
        second = DefaultGrammar(seed).generate(0, 16)
        assert first == second
        if first is not None:
            assert first.extract_channels_from_triple() == second.extract_channels_from_triple()

    def test_prior_draws_change_the_result_deterministically(self) -> None:
        grammar_a = DefaultGrammar(seed=42)
        grammar_b = DefaultGrammar(seed=42)
        grammar_a.generate(0, 10)
        grammar_b.generate(0, 10)
        assert grammar_a.generate(0, 10) == grammar_b.generate(0, 10)
        assert grammar_a.draws == grammar_b.draws

    def test_reference_label_at_full_depth(self) -> None:
        seed = fnv1a("samarth kulkarni")
        tree = DefaultGrammar(seed).generate(0, 40)
        assert tree is not None
        r, g, b = tree.extract_channels_from_triple()
        assert all(channel and "Rule" not in channel and "Random" not in channel for channel in (r, g, b))
        assert (r, g, b) == DefaultGrammar(seed).generate(0, 40).extract_channels_from_triple()


class TestConditionalGrammar:
    def test_rule_table(self) -> None:
        grammar = ConditionalGrammar(seed=0)
        assert [len(branches) for branches in grammar.rules] == [1, 10, 3, 2]
        total = sum(branch.probability for branch in grammar.rules[1].alternates)
        assert total == pytest.approx(1.0)

    def test_generates_conditionals(self) -> None:
        names = set()
        for seed in range(10):
            tree = ConditionalGrammar(seed).generate(0, 14)
            if tree is not None:
                assert tree.is_generated()
                names.update(node.name for node in tree.walk())
        assert "If" in names
        assert "Gt" in names
