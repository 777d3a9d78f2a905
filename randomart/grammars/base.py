# randomart/grammars/base.py
"""
Weighted grammars and the random tree generation algorithm.

A grammar is an ordered list of rules. Each rule is a GrammarBranches table of
alternatives, each alternative a template Node with a probability weight.
Templates may reference other rules with Rule(i) and ask for a random constant
with Random; generation replaces both, so a generated tree can be evaluated.

Generation is driven by a single pseudorandom stream owned by the grammar. The
sequence of draws, and therefore the generated tree, depends only on the rule
table, the starting rule, the depth budget and the draws already consumed, so a
freshly seeded grammar always reproduces the same tree.
"""
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..core import ContractViolation, LEAF_VARIANTS, Node
from ..utils import LinearCongruentialGenerator


MAX_ATTEMPTS = 100  # alternative draws per rule before generation gives up


@dataclass(frozen=True)
class GrammarBranch:
    template: Node
    probability: float


class GrammarBranches:
    """
    The ordered alternatives of one production rule.

    Order matters: an alternative is picked by walking the list and comparing a
    uniform draw against the running sum of the weights. Weights are used as
    given; they are not renormalized.
    """
    def __init__(self, alternates: Optional[List[GrammarBranch]] = None):
        self.alternates = list(alternates) if alternates is not None else []

    def add_alternate(self, template: Node, probability: float) -> "GrammarBranches":
        if probability < 0:
            raise ContractViolation(f"Branch probability must be non-negative, got {probability}")
        self.alternates.append(GrammarBranch(template, probability))
        return self

    def select(self, p) -> Optional[GrammarBranch]:
        """
        Returns the first alternative whose cumulative weight reaches p.

        The running sum is kept in float32. Returns None when the weights sum to
        less than p.
        """
        cumulative_probability = np.float32(0.0)
        for branch in self.alternates:
            cumulative_probability += np.float32(branch.probability)
            if cumulative_probability >= p:
                return branch
        return None

    def __len__(self):
        return len(self.alternates)

    def __repr__(self):
        return f"GrammarBranches({len(self.alternates)} alternates)"


class Grammar:
    """
    A weighted grammar that generates random expression trees.

    Subclasses describe a fixed rule table by overriding _register_rules();
    arbitrary tables can be used directly through Grammar.build().

    A grammar instance is not re-entrant: its pseudorandom stream must be
    consumed in one fixed order for generation to be reproducible.

    Attributes:
        rules (list): GrammarBranches indexed by rule number
        draws (int): Pseudorandom numbers consumed so far
        stats (Counter): Per-instance counts of 'depth_exhausted' and
            'retry_exhausted' failures, for diagnostics only

    Examples:
        >>> grammar = Grammar.build([GrammarBranches().add_alternate(Node("X"), 1.0)], seed=7)
        >>> grammar.generate(0, 1)
        X
    """
    def __init__(self, rules: List[GrammarBranches], rng):
        """
        Args:
            rules: Initial rule table; subclasses pass [] and register their own
            rng: Pseudorandom source exposing next_float() in [0, 1) and a
                draws counter
        """
        self.rules = list(rules)
        self._rng = rng
        self.stats = Counter()
        self._register_rules()

    @staticmethod
    def build(rules: List[GrammarBranches], seed: int) -> "Grammar":
        """Creates a plain Grammar over an arbitrary rule table."""
        return Grammar(rules, LinearCongruentialGenerator(seed))

    @property
    def draws(self) -> int:
        return self._rng.draws

    def _register_rules(self):
        """Hook for subclasses that define their own rule table."""

    def add_rule(self, branches: GrammarBranches) -> int:
        self.rules.append(branches)
        return len(self.rules) - 1

    def generate(self, rule_index: int, depth: int) -> Optional[Node]:
        """
        Generates a tree from a rule.

        Args:
            rule_index: Index of the starting rule
            depth: Remaining depth budget; every Rule crossing consumes budget

        Returns:
            A generated tree, or None when the budget ran out or MAX_ATTEMPTS
            draws all failed. Both are ordinary outcomes.

        Raises:
            ContractViolation: If rule_index is out of range or the rule has
                no alternatives
        """
        if depth <= 0:
            self.stats["depth_exhausted"] += 1
            return None
        if not 0 <= rule_index < len(self.rules):
            raise ContractViolation(
                f"Invalid rule index {rule_index}; grammar has {len(self.rules)} rules")
        branches = self.rules[rule_index]
        if not branches.alternates:
            raise ContractViolation(f"Rule {rule_index} has no alternatives")

        for _ in range(MAX_ATTEMPTS):
            p = self._rng.next_float()
            branch = branches.select(p)
            if branch is None:
                continue
            node = self._expand(branch.template, depth - 1)
            if node is not None:
                return node
        self.stats["retry_exhausted"] += 1
        return None

    def _expand(self, template: Node, depth: int) -> Optional[Node]:
        name = template.name
        if name in LEAF_VARIANTS:
            return Node(name, template.args)
        if name == "Random":
            value = self._rng.next_float() * np.float32(2.0) - np.float32(1.0)
            return Node("Number", (value,))
        if name == "Rule":
            if depth == 0:
                self.stats["depth_exhausted"] += 1
                return None
            return self.generate(template.args[0], depth - 1)

        children = []
        for child in template.args:
            expanded = self._expand(child, depth)
            if expanded is None:
                return None
            children.append(expanded)
        return Node(name, tuple(children))

    def __repr__(self):
        return f"{type(self).__name__}({len(self.rules)} rules, rng={self._rng!r})"
