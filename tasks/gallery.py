import itertools
import pandas as pd
from tasks.base_task import Task


class GalleryTask(Task):
    """
    A generation task that renders numbered variants of a few seed prefixes,
    e.g. 'sunset 0', 'sunset 1', ... for quick side-by-side browsing.
    """
    # --- specify the grammar for the task ---
    grammar = "default"

    def __init__(self, task_name=None, prefixes=("randomart",), n_variants=4, grammar=None, **kwargs):
        """Initializes the GalleryTask."""
        super().__init__(task_name=task_name or "gallery", **kwargs)
        self.prefixes = list(prefixes)
        self.n_variants = n_variants
        if grammar is not None:
            self.grammar = grammar

    def generate_programs(self):
        """Generates a DataFrame with one seed label per (prefix, variant) pair."""
        records = [
            {"prefix": prefix, "variant": variant, "seed_label": f"{prefix} {variant}"}
            for prefix, variant in itertools.product(self.prefixes, range(self.n_variants))
        ]
        print(f"✅ Generated {len(records)} seed labels ({len(self.prefixes)} prefixes × {self.n_variants} variants).")
        return pd.DataFrame(records)


if __name__ == "__main__":
    task = GalleryTask()
    task.run()
