from .cli import run
from .runtime import IterationSummary, run_iterations

__all__ = ["IterationSummary", "run", "run_iterations"]
