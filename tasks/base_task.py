import pandas as pd
from abc import ABC, abstractmethod
from pathlib import Path
from PIL import Image, ImageDraw, ImageFont
from tqdm import tqdm

from randomart.core import CANVAS_WIDTH_HEIGHT, render_tree_to_image, export_image
from randomart.render import generate_from_label


class Task(ABC):
    """An abstract base class for generating batches of RandomArt images.

    A task lists the seed labels (and optionally per-row depth budgets) to render;
    this class generates a tree for each row, renders and saves the image, keeps
    the channel programs as metadata, and assembles a labelled contact sheet.
    """

    @property
    @abstractmethod
    def grammar(self) -> str:
        """Name of the grammar used for every row (e.g. 'default').

        This must be implemented by subclasses, typically as a class attribute.
        e.g., `grammar = "default"`
        """
        pass

    def __init__(self, task_name: str, data_dir: str = "data", depth: int = 40,
                 canvas_dim: int = CANVAS_WIDTH_HEIGHT, thumbnail_dim: int = 128,
                 columns: int = 4, **kwargs):
        """Initializes the Task instance, setting up paths and directories."""
        self.task_name = task_name
        self.data_dir = Path(data_dir)
        self.depth = depth
        self.canvas_dim = canvas_dim
        self.thumbnail_dim = thumbnail_dim
        self.columns = columns
        self._setup_paths()
        self._create_directories()

    def _setup_paths(self):
        """Initializes all necessary directory and file paths."""
        task_root = self.data_dir / self.task_name
        self.images_dir = task_root / "images"
        self.summary_dir = task_root / "summaries"
        self.metadata_path = task_root / "metadata.csv"

    def _create_directories(self):
        """Ensures that all required directories exist, creating them if necessary."""
        for path in [self.images_dir, self.summary_dir]:
            path.mkdir(parents=True, exist_ok=True)

    @abstractmethod
    def generate_programs(self) -> pd.DataFrame:
        """Generates the seed labels (column 'seed_label') and their metadata."""
        pass

    # --- Main Orchestration ---
    def run(self) -> pd.DataFrame:
        """
        Executes the full pipeline. If metadata.csv exists, load existing data.
        Otherwise, generate and render all images, then build the contact sheet.
        """
        if self.metadata_path.exists():
            print(f"✅ Found existing metadata at '{self.metadata_path}'. Skipping generation.")
            return pd.read_csv(self.metadata_path)
        print("🔍 No existing metadata found. Starting full generation pipeline...")
        # 1. Generate and render all images
        metadata_df = self._generate_and_render_images()
        # 2. Lay the rendered images out on a labelled grid
        self._generate_contact_sheet(metadata_df)
        return metadata_df

    # --- Step 1: Generation & Rendering ---
    def _row_depth(self, row: pd.Series) -> int:
        if "depth" in row.index and pd.notna(row["depth"]):
            return int(row["depth"])
        return self.depth

    def _generate_and_render_images(self) -> pd.DataFrame:
        """Generates a tree per row, renders it, and saves metadata."""
        df = self.generate_programs()
        records = []
        for i, row in tqdm(df.iterrows(), desc="Rendering images", unit="image", leave=False, total=len(df)):
            label = str(row["seed_label"])
            depth = self._row_depth(row)
            tree = generate_from_label(label, grammar=self.grammar, depth=depth)
            if tree is None:
                print(f"⚠️ Grammar exhausted for '{label}' at depth {depth}; skipping.")
                records.append({"depth": depth, "num_nodes": 0, "render_filepath": None})
                continue
            output_path = self.images_dir / f"{i}.png"
            export_image(render_tree_to_image(tree, canvas_dim=self.canvas_dim), str(output_path))
            r_program, g_program, b_program = tree.extract_channels_from_triple()
            records.append({
                "depth": depth,
                "r_program": r_program,
                "g_program": g_program,
                "b_program": b_program,
                "num_nodes": tree.num_nodes(),
                "render_filepath": str(output_path),
            })

        results_df = pd.DataFrame(records, index=df.index)
        df = df.drop(columns=[col for col in results_df.columns if col in df.columns])
        df = pd.concat([df, results_df], axis=1)
        df["grammar"] = self.grammar
        df.dropna(subset=["render_filepath"], inplace=True)
        df.to_csv(self.metadata_path, index=False)

        print(f"✅ Rendered {len(df)} images for task '{self.task_name}'")
        print(f"✅ Images saved to: {self.images_dir}")
        print(f"✅ Metadata saved to: {self.metadata_path}")
        return df

    # --- Step 2: Contact Sheet ---
    def _generate_contact_sheet(self, metadata_df: pd.DataFrame):
        """Saves a grid of labelled thumbnails of every rendered image."""
        if metadata_df.empty:
            return
        print("\n🖼️ Generating contact sheet")
        thumbs = []
        for _, row in metadata_df.iterrows():
            img = Image.open(row["render_filepath"]).convert("RGB")
            img = img.resize((self.thumbnail_dim, self.thumbnail_dim))
            caption = f"{row['seed_label']} (d={row['depth']})"
            thumbs.append(self._add_label_to_image(img, caption))
        rows = (len(thumbs) + self.columns - 1) // self.columns
        grid = Image.new("RGB", (self.columns * self.thumbnail_dim, rows * self.thumbnail_dim), "white")
        for i, img in enumerate(thumbs):
            grid.paste(img, ((i % self.columns) * self.thumbnail_dim, (i // self.columns) * self.thumbnail_dim))
        sheet_path = self.summary_dir / "contact_sheet.png"
        grid.save(sheet_path)
        print(f"✅ Contact sheet saved to: {sheet_path}")

    # --- Static Utility Methods ---
    @staticmethod
    def _add_label_to_image(image: Image.Image, label: str) -> Image.Image:
        """Writes a small white caption in the upper left corner of an image."""
        draw = ImageDraw.Draw(image)
        font = ImageFont.load_default()
        draw.text((4, 4), label, fill="white", font=font)
        return image
