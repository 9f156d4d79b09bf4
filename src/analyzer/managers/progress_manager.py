# src/analyzer/managers/progress_manager.py
import sys
from tqdm import tqdm
import logging

logger = logging.getLogger(__name__)


class ProgressManager:
    """
    Manages the complete lifecycle of a tqdm progress bar for link probing.
    """

    def __init__(self, total: int, desc: str, unit: str = "it"):
        if total <= 0:
            total = 1

        self.pbar = tqdm(
            total=total,
            desc=desc,
            unit=f" {unit}",
            dynamic_ncols=True,
            smoothing=0.1,
            mininterval=0.5,
            postfix={"inaccessible": 0},
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}] {postfix}",
            file=sys.stderr
        )

    def advance(self, steps: int = 1, inaccessible_count: int = None):
        """Increments the bar (steps = verdicts received) and updates the counter."""
        if self.pbar:
            self.pbar.update(steps)
            if inaccessible_count is not None:
                self.pbar.set_postfix({"inaccessible": inaccessible_count}, refresh=False)

    def close(self, final_inaccessible: int = 0, cut_short: bool = False):
        """
        Closes the progress bar with the final status.

        Args:
            cut_short: True if the probing deadline expired before all links were checked.
        """
        if not self.pbar:
            return

        postfix = {"inaccessible": final_inaccessible}
        if cut_short:
            postfix["deadline"] = "expired"
        self.pbar.set_postfix(postfix, refresh=True)
        self.pbar.close()
        self.pbar = None
        logger.debug("ProgressManager: Progress bar closed.")
