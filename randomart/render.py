# randomart/render.py
import argparse
import os
import sys

import pandas as pd
from tqdm import tqdm

from .core import CANVAS_WIDTH_HEIGHT, render_tree_to_image, export_image
from .grammars.base import Grammar
from .grammars.conditional import ConditionalGrammar
from .grammars.default import DefaultGrammar
from .utils import fnv1a


DEFAULT_DEPTH = 40
GRAMMAR_CHOICES = ["default", "conditional"]


def build_grammar(name: str, seed: int) -> Grammar:
    """Instantiates one of the built-in grammars with a seed."""
    if name == "default":
        return DefaultGrammar(seed)
    elif name == "conditional":
        return ConditionalGrammar(seed)
    raise ValueError(f"Unknown grammar '{name}'. Choose from: {', '.join(GRAMMAR_CHOICES)}")


def generate_from_label(label: str, grammar: str = "default", depth: int = DEFAULT_DEPTH):
    """Seeds a fresh grammar from a text label and generates from the entry rule."""
    return build_grammar(grammar, fnv1a(label)).generate(0, depth)


## --- CSV Processing Utility ---
def render_from_csv(name: str, grammar: str = "default", depth: int = DEFAULT_DEPTH,
                    canvas_dim: int = CANVAS_WIDTH_HEIGHT, label_col: str = "seed_label"):
    """
    Batch renders one image per seed label listed in a CSV file.

    Rows may override the depth budget with a 'depth' column. A row whose
    grammar runs out of depth or attempts is reported and left without an image.

    Input:
        - Reads from: output/{name}.csv

    Output:
        - Images saved to: output/{name}/images/{row_index}.png
        - Updated CSV saved to: output/{name}/rendered.csv
    """
    input_csv_path = os.path.join("output", f"{name}.csv")
    if not os.path.exists(input_csv_path):
        raise FileNotFoundError(f"Input CSV not found: {input_csv_path}")

    df = pd.read_csv(input_csv_path)
    if label_col not in df.columns:
        raise KeyError(f"Column '{label_col}' not found in {input_csv_path}")

    image_output_dir = os.path.join("output", name, "images")
    os.makedirs(image_output_dir, exist_ok=True)

    render_filepaths = []
    for i, row in tqdm(df.iterrows(), desc="Rendering seeds", unit="image", total=len(df), leave=False):
        label = str(row[label_col])
        row_depth = int(row["depth"]) if "depth" in df.columns and pd.notna(row["depth"]) else depth
        tree = generate_from_label(label, grammar=grammar, depth=row_depth)
        if tree is None:
            print(f"⚠️ Grammar exhausted for row {i} ('{label}', depth {row_depth}); no image written.")
            render_filepaths.append("")
            continue
        output_path = os.path.join(image_output_dir, f"{i}.png")
        export_image(render_tree_to_image(tree, canvas_dim=canvas_dim), output_path)
        render_filepaths.append(output_path)

    df["render_filepath"] = render_filepaths
    rendered_csv_path = os.path.join("output", name, "rendered.csv")
    df.to_csv(rendered_csv_path, index=False)
    print(f"\n✅ Wrote updated CSV with filepaths to: {rendered_csv_path}")
    return df


def build_argparser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render RandomArt images from seeded random grammars.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    # --- Parser for rendering a single seed label ---
    parser_single = subparsers.add_parser("single", help="Render the image for one seed label.")
    parser_single.add_argument("label", type=str, help="Text label hashed into the grammar seed.")
    parser_single.add_argument("output", type=str, help="The path to save the output PNG image.")
    parser_single.add_argument("--size", type=int, default=CANVAS_WIDTH_HEIGHT, help="Canvas size in pixels.")

    # --- Parser for printing the channel programs ---
    parser_channels = subparsers.add_parser("channels", help="Print the r, g and b programs for a seed label.")
    parser_channels.add_argument("label", type=str, help="Text label hashed into the grammar seed.")

    # --- Parser for rendering from a CSV file ---
    parser_csv = subparsers.add_parser("csv", help="Render every seed label listed in a CSV file.")
    parser_csv.add_argument("name", type=str, help="Base name of the CSV in 'output/' (e.g., 'gallery').")
    parser_csv.add_argument("--col", type=str, default="seed_label", help="Column with seed labels.")
    parser_csv.add_argument("--size", type=int, default=CANVAS_WIDTH_HEIGHT, help="Canvas size in pixels.")

    for sub in (parser_single, parser_channels, parser_csv):
        sub.add_argument("--grammar", choices=GRAMMAR_CHOICES, default="default", help="Grammar to generate with.")
        sub.add_argument("--depth", type=int, default=DEFAULT_DEPTH, help="Depth budget for generation.")
    return parser


def main(argv=None) -> int:
    """Main execution function with command-line parsing."""
    args = build_argparser().parse_args(argv)

    try:
        if args.command == "single":
            print(f"Rendering '{args.label}' with the '{args.grammar}' grammar...")
            tree = generate_from_label(args.label, grammar=args.grammar, depth=args.depth)
            if tree is None:
                print(f"❌ Grammar exhausted at depth {args.depth}; try a larger --depth.", file=sys.stderr)
                return 1
            export_image(render_tree_to_image(tree, canvas_dim=args.size), args.output)
            print(f"✅ Image saved to: {args.output}")

        elif args.command == "channels":
            tree = generate_from_label(args.label, grammar=args.grammar, depth=args.depth)
            if tree is None:
                print(f"❌ Grammar exhausted at depth {args.depth}; try a larger --depth.", file=sys.stderr)
                return 1
            for channel in tree.extract_channels_from_triple():
                print(channel)

        elif args.command == "csv":
            print(f"Rendering CSV '{args.name}.csv' with the '{args.grammar}' grammar...")
            render_from_csv(args.name, grammar=args.grammar, depth=args.depth,
                            canvas_dim=args.size, label_col=args.col)
    except (KeyError, ValueError, OSError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
