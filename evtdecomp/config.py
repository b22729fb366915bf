"""Options controlling a decompilation run."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CommitPolicy(Enum):
    """What to do with a wildcard candidate when committing inferred types.

    ``SKIP_REMAINING`` abandons the rest of the batch, which is how the pass has
    always behaved.  ``SKIP_ONE`` drops only the wildcard candidate.
    """

    SKIP_REMAINING = "skip-remaining"
    SKIP_ONE = "skip-one"


@dataclass(frozen=True)
class DecompileOptions:
    """Customisation knobs for :func:`evtdecomp.decompiler.decompile_map`."""

    capture_prefix: str = "FunWord"
    max_inference_passes: int = 1024
    commit_policy: CommitPolicy = CommitPolicy.SKIP_REMAINING
    indent: str = "    "

    def capture_name(self, index: int) -> str:
        return f"{self.capture_prefix}_{index:X}"
