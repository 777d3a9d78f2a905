# randomart/grammars/conditional.py
"""
A RandomArt grammar with branching and banding operators.

Extends the canonical grammar with If, Gt and Modulo, which produce hard edges
and repeating bands instead of the smooth gradients of the default grammar.

    E ::= (C, C, C)
    C ::= A | Add(C, C) | Mult(C, C) | Sin(C) | Cos(C) | Exp(C) | Sqrt(C)
        | Modulo(C, C) | If(B, C, C) | Mix(C, C, C, C)
    A ::= x | y | random number in [-1, 1]
    B ::= Gt(C, C) | Gt(A, C)
"""
from ..core import (RANDOM, X, Y, add, cos, exp, gt, if_then_else, mix, modulo, mult,
                    rule, sin, sqrt, triple)
from ..utils import LinearCongruentialGenerator
from .base import Grammar, GrammarBranches


ENTRY, COLOUR, ATOM, CONDITION = 0, 1, 2, 3


class ConditionalGrammar(Grammar):
    """Grammar whose colour programs may branch on comparisons."""
    def __init__(self, seed: int):
        super().__init__([], LinearCongruentialGenerator(seed))

    def _register_rules(self):
        c, a = rule(COLOUR), rule(ATOM)

        self.add_rule(GrammarBranches().add_alternate(triple(c, c, c), 1.0))

        colour = GrammarBranches()
        colour.add_alternate(a, 2.0 / 14.0)
        colour.add_alternate(add(c, c), 1.0 / 14.0)
        colour.add_alternate(mult(c, c), 1.0 / 14.0)
        colour.add_alternate(sin(c), 2.0 / 14.0)
        colour.add_alternate(cos(c), 2.0 / 14.0)
        colour.add_alternate(exp(c), 1.0 / 14.0)
        colour.add_alternate(sqrt(c), 1.0 / 14.0)
        colour.add_alternate(modulo(c, c), 1.0 / 14.0)
        colour.add_alternate(if_then_else(rule(CONDITION), c, c), 2.0 / 14.0)
        colour.add_alternate(mix(c, c, c, c), 1.0 / 14.0)
        self.add_rule(colour)

        atom = GrammarBranches()
        atom.add_alternate(X, 1.0 / 3.0)
        atom.add_alternate(Y, 1.0 / 3.0)
        atom.add_alternate(RANDOM, 1.0 / 3.0)
        self.add_rule(atom)

        condition = GrammarBranches()
        condition.add_alternate(gt(c, c), 0.5)
        condition.add_alternate(gt(a, c), 0.5)
        self.add_rule(condition)
