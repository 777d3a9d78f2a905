# randomart/core.py
"""
Core functionality for the RandomArt renderer.

This module provides the expression trees that grammars generate and the
machinery that turns them into pictures. It includes:
- Node, the closed set of expression variants (templates and generated programs)
- Point and grid evaluation of a tree at (x, y) coordinates
- Canonical text rendering of a tree's colour channels for regression tests
- Pixel-grid rendering and PNG export

Evaluation has two failure modes that are kept apart. A division or modulo by a
divisor of magnitude at most 1e-6 leaves a point without a value; this soft
failure propagates upward and becomes 0.0 at the colour boundary. A placeholder
or a Triple reaching the scalar evaluator is a broken tree and raises
InvalidVariant.
"""
import functools
import os
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import imageio
import numpy as np

from .utils import Colour


## --- Core Constants ---
CANVAS_WIDTH_HEIGHT = 256  # Output image dimensions in pixels
DIVISOR_EPSILON = np.float32(1e-6)  # Div/Modulo fail at or below this magnitude
MIX_EPSILON = np.float32(1e-6)  # Keeps the Mix denominator away from zero

# number of arguments per variant; Number, Boolean and Rule carry a payload
ARITY = {
    "X": 0, "Y": 0, "Random": 0,
    "Number": 1, "Boolean": 1, "Rule": 1,
    "Sqrt": 1, "Sin": 1, "Cos": 1, "Exp": 1,
    "Add": 2, "Mult": 2, "Div": 2, "Modulo": 2, "Gt": 2,
    "If": 3, "Triple": 3,
    "Mix": 4,
}
PAYLOAD_VARIANTS = {"Number", "Boolean", "Rule"}
LEAF_VARIANTS = frozenset({"X", "Y", "Number", "Boolean"})
PLACEHOLDER_VARIANTS = frozenset({"Random", "Rule"})
_UNARY_FUNCTIONS = {"Sin": np.sin, "Cos": np.cos, "Exp": np.exp}


## --- Errors ---
class ContractViolation(RuntimeError):
    """A broken invariant in grammar construction or at a call site."""


class InvalidVariant(ContractViolation):
    """A node variant showed up where it can never be valid."""


def _check_payload(name: str, payload):
    if name == "Boolean":
        if not isinstance(payload, (bool, np.bool_)):
            raise InvalidVariant(f"Boolean expects a bool, got {payload!r}")
        return bool(payload)
    if isinstance(payload, (bool, np.bool_)):
        raise InvalidVariant(f"{name} expects a number, got {payload!r}")
    if name == "Rule":
        if not isinstance(payload, (int, np.integer)):
            raise InvalidVariant(f"Rule expects an integer index, got {payload!r}")
        return int(payload)
    if not isinstance(payload, (int, float, np.integer, np.floating)):
        raise InvalidVariant(f"Number expects a number, got {payload!r}")
    return float(payload)


def _format_number(value: float) -> str:
    """Shortest single-precision text, with exponents written as e-5 rather than e-05."""
    value = np.float32(value)
    if np.isnan(value):
        return "NaN"
    text = str(value)
    if "e" in text:
        mantissa, exponent = text.split("e")
        text = f"{mantissa}e{int(exponent)}"
    return text


## --- AST Representation ---
@dataclass(frozen=True, repr=False)
class Node:
    """
    A node of a RandomArt expression tree.

    The variant is selected by `name` and must be one of the keys of ARITY.
    Operators hold their operand Nodes in `args`; Number, Boolean and Rule hold a
    single payload (value, flag or rule index). Nodes are immutable and compare
    structurally, so two trees generated from the same seed compare equal.

    Template trees (stored in a grammar) may contain Random and Rule
    placeholders. Generated trees never do. Triple is only valid at the root.

    Attributes:
        name (str): Variant name, e.g. 'Add' or 'X'
        args (tuple): Operand nodes, or the payload for Number/Boolean/Rule

    Examples:
        >>> add(X, number(0.5))
        Add(X, Number(0.5))
        >>> triple(X, Y, sin(X)).extract_channels_from_triple()
        ('X', 'Y', 'Sin(X)')
    """
    name: str
    args: tuple = ()

    def __post_init__(self):
        if self.name not in ARITY:
            raise InvalidVariant(f"Unknown node variant: {self.name!r}")
        args = tuple(self.args)
        if len(args) != ARITY[self.name]:
            raise InvalidVariant(
                f"{self.name} takes {ARITY[self.name]} argument(s), got {len(args)}")
        if self.name in PAYLOAD_VARIANTS:
            args = (_check_payload(self.name, args[0]),)
        else:
            for child in args:
                if not isinstance(child, Node):
                    raise InvalidVariant(f"{self.name} operands must be Nodes, got {child!r}")
                if child.name == "Triple":
                    raise InvalidVariant("Triple is only valid as the root of a tree")
        object.__setattr__(self, "args", args)

    @property
    def children(self) -> tuple:
        return () if self.name in PAYLOAD_VARIANTS else self.args

    def walk(self) -> Iterator["Node"]:
        """Yields every node of the tree in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def num_nodes(self) -> int:
        return sum(1 for _ in self.walk())

    def is_generated(self) -> bool:
        """True when no Random or Rule placeholder is left in the tree."""
        return all(node.name not in PLACEHOLDER_VARIANTS for node in self.walk())

    def __repr__(self):
        if self.name == "Number":
            return f"Number({_format_number(self.args[0])})"
        if self.name == "Boolean":
            return f"Boolean({str(self.args[0]).lower()})"
        if self.name == "If":
            cond, then, elze = self.args
            return f"If {{ cond: {cond!r}, then: {then!r}, elze: {elze!r} }}"
        if not self.args:
            return self.name
        return f"{self.name}({', '.join(repr(arg) for arg in self.args)})"

    ## --- Evaluation ---
    def eval(self, x: float, y: float) -> Optional[float]:
        """
        Evaluates the tree at a single point.

        Args:
            x: Horizontal coordinate
            y: Vertical coordinate

        Returns:
            The value at (x, y), or None when a Div/Modulo divisor had magnitude
            at most 1e-6 somewhere on the evaluated path

        Raises:
            InvalidVariant: If the tree holds Random, Rule, Boolean or Triple

        Examples:
            >>> add(X, Y).eval(0.5, 0.25)
            0.375
            >>> div(X, Y).eval(1.0, 0.0) is None
            True
        """
        values, defined = self.eval_grid(x, y)
        if not defined:
            return None
        return float(values)

    def eval_grid(self, xs, ys) -> Tuple[np.ndarray, np.ndarray]:
        """
        Evaluates the tree at every point of a coordinate grid.

        Same semantics as eval(), computed in float32 over numpy arrays. The
        soft failure of eval() is reported through the `defined` mask instead
        of None; entries of `values` where `defined` is False are meaningless.

        Args:
            xs: Array-like of x coordinates
            ys: Array-like of y coordinates, broadcastable against xs

        Returns:
            (values, defined) arrays with the broadcast shape of xs and ys
        """
        xs, ys = np.broadcast_arrays(np.asarray(xs, dtype=np.float32),
                                     np.asarray(ys, dtype=np.float32))
        with np.errstate(all="ignore"):
            return self._eval_grid(xs, ys)

    def _eval_grid(self, xs, ys):
        name = self.name
        if name == "X":
            return xs, np.ones(xs.shape, dtype=bool)
        if name == "Y":
            return ys, np.ones(ys.shape, dtype=bool)
        if name == "Number":
            return np.full(xs.shape, self.args[0], dtype=np.float32), np.ones(xs.shape, dtype=bool)
        if name in ("Random", "Rule"):
            raise InvalidVariant(f"{self!r} must be expanded by a grammar before evaluation")
        if name in ("Boolean", "Triple"):
            raise InvalidVariant(f"{name} cannot be evaluated as a scalar: {self!r}")

        operands = [child._eval_grid(xs, ys) for child in self.args]
        values = [value for value, _ in operands]
        masks = [mask for _, mask in operands]

        if name == "If":
            cond, then, elze = values
            chosen = cond > 0.0
            defined = masks[0] & np.where(chosen, masks[1], masks[2])
            return np.where(chosen, then, elze), defined

        defined = functools.reduce(np.logical_and, masks)
        if name in _UNARY_FUNCTIONS:
            return _UNARY_FUNCTIONS[name](values[0]), defined
        if name == "Sqrt":
            # clamp after the root; fmax drops the NaN of a negative input, giving 0
            return np.fmax(np.sqrt(values[0]), np.float32(0.0)), defined
        if name == "Add":
            lhs, rhs = values
            return (lhs + rhs) / np.float32(2.0), defined
        if name == "Mult":
            lhs, rhs = values
            return lhs * rhs, defined
        if name in ("Div", "Modulo"):
            lhs, rhs = values
            usable = np.abs(rhs) > DIVISOR_EPSILON
            safe_rhs = np.where(usable, rhs, np.float32(1.0))
            result = lhs / safe_rhs if name == "Div" else np.fmod(lhs, safe_rhs)
            return result, defined & usable
        if name == "Gt":
            lhs, rhs = values
            return np.where(lhs > rhs, np.float32(1.0), np.float32(0.0)), defined
        if name == "Mix":
            a, b, c, d = values
            return (a * c + b * d) / (a + b + MIX_EPSILON), defined
        raise InvalidVariant(f"Unexpected node variant during evaluation: {self!r}")

    def eval_rgb(self, x: float, y: float) -> Colour:
        """
        Evaluates a Triple-rooted tree to a colour at (x, y).

        A channel without a value contributes 0.0; the other channels are
        unaffected. A tree not rooted at Triple yields black (0, 0, 0).
        """
        if self.name != "Triple":
            return Colour(0.0, 0.0, 0.0)
        channels = [channel.eval(x, y) for channel in self.args]
        r, g, b = (0.0 if value is None else value for value in channels)
        return Colour(r, g, b)

    def eval_rgb_grid(self, xs, ys) -> np.ndarray:
        """
        Grid version of eval_rgb().

        Returns:
            float32 array of shape broadcast(xs, ys).shape + (3,) holding the raw
            r, g, b channel values
        """
        xs, ys = np.broadcast_arrays(np.asarray(xs, dtype=np.float32),
                                     np.asarray(ys, dtype=np.float32))
        if self.name != "Triple":
            return np.zeros(xs.shape + (3,), dtype=np.float32)
        channels = []
        for channel in self.args:
            values, defined = channel.eval_grid(xs, ys)
            channels.append(np.where(defined, values, np.float32(0.0)))
        return np.stack(channels, axis=-1).astype(np.float32)

    def extract_channels_from_triple(self) -> Tuple[str, str, str]:
        """
        Renders the three channel subtrees of a Triple as canonical text.

        The rendering is deterministic and total over all variants, so the
        output of a seeded generation can be compared against stored strings.

        Raises:
            InvalidVariant: If the tree is not rooted at Triple
        """
        if self.name != "Triple":
            raise InvalidVariant(f"Expected the generated node to be a Triple, but found: {self!r}")
        r, g, b = (repr(channel) for channel in self.args)
        return r, g, b


## --- Node Builders ---
X = Node("X")
Y = Node("Y")
RANDOM = Node("Random")


def number(value: float) -> Node:
    return Node("Number", (value,))


def boolean(value: bool) -> Node:
    return Node("Boolean", (value,))


def rule(index: int) -> Node:
    return Node("Rule", (index,))


def sqrt(inner: Node) -> Node:
    return Node("Sqrt", (inner,))


def sin(inner: Node) -> Node:
    return Node("Sin", (inner,))


def cos(inner: Node) -> Node:
    return Node("Cos", (inner,))


def exp(inner: Node) -> Node:
    return Node("Exp", (inner,))


def add(lhs: Node, rhs: Node) -> Node:
    return Node("Add", (lhs, rhs))


def mult(lhs: Node, rhs: Node) -> Node:
    return Node("Mult", (lhs, rhs))


def div(lhs: Node, rhs: Node) -> Node:
    return Node("Div", (lhs, rhs))


def modulo(lhs: Node, rhs: Node) -> Node:
    return Node("Modulo", (lhs, rhs))


def gt(lhs: Node, rhs: Node) -> Node:
    return Node("Gt", (lhs, rhs))


def if_then_else(cond: Node, then: Node, elze: Node) -> Node:
    return Node("If", (cond, then, elze))


def mix(a: Node, b: Node, c: Node, d: Node) -> Node:
    return Node("Mix", (a, b, c, d))


def triple(r: Node, g: Node, b: Node) -> Node:
    return Node("Triple", (r, g, b))


## --- Image Rendering ---
def pixel_coordinates(canvas_dim: int = CANVAS_WIDTH_HEIGHT) -> Tuple[np.ndarray, np.ndarray]:
    """
    Builds the (xs, ys) sampling grid for a square canvas.

    Pixel column i maps to x = i / canvas_dim * 2 - 1 (rows likewise for y), so
    both axes cover [-1, 1).
    """
    coords = np.arange(canvas_dim, dtype=np.float32) / np.float32(canvas_dim)
    coords = coords * np.float32(2.0) - np.float32(1.0)
    return np.meshgrid(coords, coords)


def render_tree_to_image(tree: Node, canvas_dim: int = CANVAS_WIDTH_HEIGHT) -> np.ndarray:
    """
    Renders a generated tree to an RGB image.

    Channel values are mapped from [-1, 1] to [0, 1]. Non-finite values (NaN
    from Sqrt of a negative number, overflowing Exp) are replaced before the
    final clip so that every pixel is encodable.

    Args:
        tree: Generated tree, normally rooted at Triple
        canvas_dim: Output image size in pixels (square canvas)

    Returns:
        numpy array of shape (canvas_dim, canvas_dim, 3) with RGB values in [0, 1]

    Examples:
        >>> image = render_tree_to_image(triple(X, Y, number(0.0)), canvas_dim=64)
        >>> image.shape
        (64, 64, 3)
    """
    xs, ys = pixel_coordinates(canvas_dim)
    rgb = tree.eval_rgb_grid(xs, ys)
    rgb = np.nan_to_num(rgb, nan=0.0, posinf=1.0, neginf=-1.0)
    return np.clip((rgb + 1.0) / 2.0, 0.0, 1.0).astype(np.float32)


def export_image(image_array: np.ndarray, export_path: str):
    """
    Exports a rendered image array to a PNG file.

    Args:
        image_array: RGB image as numpy array with values in [0,1] range
        export_path: File path where the PNG should be saved
    """
    output_dir = os.path.dirname(export_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    imageio.imwrite(export_path, (image_array * 255).astype(np.uint8))
