from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.import_result import BatchProgress

"""Batch progress display with tqdm (TTY only).

``BatchProgressBar`` is a progress sink for ``ImportPipeline``: it is called
once per batch with a ``BatchProgress``. In non-TTY environments (CI, log
files) no bar is drawn so the output is not flooded with control sequences.
"""

__all__ = [
    "BatchProgressBar",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class BatchProgressBar:
    """tqdm progress bar over import batches."""

    def __init__(self, *, description: str = "Importing", enabled: bool | None = None) -> None:
        self.description = description
        self.enabled = is_tty_enabled() if enabled is None else enabled
        self.pbar: TqdmType[Any] | None = None
        self.seen: list[BatchProgress] = []

    def __call__(self, progress: BatchProgress) -> None:
        self.seen.append(progress)
        if not self.enabled:
            return
        if self.pbar is None:
            self.pbar = tqdm(
                total=progress.total_batches,
                desc=self.description,
                unit="batch",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            # 前バッチ完了分を進める
            self.pbar.update(1)
        self.pbar.set_postfix_str(progress.row_range)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.update(self.pbar.total - self.pbar.n)
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> BatchProgressBar:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
