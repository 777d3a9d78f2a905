# randomart/grammars/default.py
"""
The canonical RandomArt grammar.

    E ::= (C, C, C)
    C ::= A | Add(C, C) | Mult(C, C) | Sin(C) | Cos(C) | Exp(C) | Sqrt(C)
        | Div(C, C) | Mix(C, C, C, C)
    A ::= x | y | random number in [-1, 1]

Rule indices are E = 0, C = 1, A = 2; generation normally starts at rule 0.
"""
from ..core import RANDOM, X, Y, add, cos, div, exp, mix, mult, rule, sin, sqrt, triple
from ..utils import LinearCongruentialGenerator
from .base import Grammar, GrammarBranches


ENTRY, COLOUR, ATOM = 0, 1, 2


class DefaultGrammar(Grammar):
    """Grammar for the classic RandomArt colour programs."""
    def __init__(self, seed: int):
        super().__init__([], LinearCongruentialGenerator(seed))

    def _register_rules(self):
        c = rule(COLOUR)

        self.add_rule(GrammarBranches().add_alternate(triple(c, c, c), 1.0))

        colour = GrammarBranches()
        colour.add_alternate(rule(ATOM), 1.0 / 13.0)
        colour.add_alternate(add(c, c), 1.0 / 13.0)
        colour.add_alternate(mult(c, c), 1.0 / 13.0)
        colour.add_alternate(sin(c), 3.0 / 13.0)
        colour.add_alternate(cos(c), 3.0 / 13.0)
        colour.add_alternate(exp(c), 1.0 / 13.0)
        colour.add_alternate(sqrt(c), 1.0 / 13.0)
        colour.add_alternate(div(c, c), 1.0 / 13.0)
        colour.add_alternate(mix(c, c, c, c), 1.0 / 13.0)
        self.add_rule(colour)

        atom = GrammarBranches()
        atom.add_alternate(X, 1.0 / 3.0)
        atom.add_alternate(Y, 1.0 / 3.0)
        atom.add_alternate(RANDOM, 1.0 / 3.0)
        self.add_rule(atom)
