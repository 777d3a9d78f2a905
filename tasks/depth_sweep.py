import pandas as pd
from tasks.base_task import Task


class DepthSweepTask(Task):
    """
    A generation task that renders one seed label at several depth budgets, to
    show how the budget bounds the size of the generated programs.
    """
    grammar = "default"

    def __init__(self, task_name=None, seed_label="samarth kulkarni", depths=(6, 10, 16, 24), grammar=None, **kwargs):
        super().__init__(task_name=task_name or "depth_sweep", **kwargs)
        self.seed_label = seed_label
        self.depths = [int(depth) for depth in depths]
        if grammar is not None:
            self.grammar = grammar

    def generate_programs(self):
        records = [{"seed_label": self.seed_label, "depth": depth} for depth in self.depths]
        print(f"✅ Sweeping '{self.seed_label}' over depths {self.depths}.")
        return pd.DataFrame(records)


if __name__ == "__main__":
    task = DepthSweepTask()
    task.run()
