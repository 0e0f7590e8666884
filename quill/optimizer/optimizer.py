"""
IR optimizer driver for Quill.

Runs constant folding, dead-code elimination and common-subexpression
elimination in that order, each exactly once per `optimize` call. The
passes do not iterate to a fixed point; calling `optimize` again on its
own output may find more work.

Author: xwest
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Tuple

from ..ir.ir_nodes import Instruction
from .passes import fold_constants, eliminate_dead_code, eliminate_common_subexpressions

logger = logging.getLogger(__name__)


@dataclass
class PassStatistics:
    """Instruction counts around one pass."""
    name: str
    before: int
    after: int

    @property
    def removed(self) -> int:
        return self.before - self.after


Pass = Callable[[List[Instruction]], List[Instruction]]


class Optimizer:
    """Applies the fixed pass pipeline to an instruction list."""

    PASSES: Tuple[Tuple[str, Pass], ...] = (
        ("constant-folding", fold_constants),
        ("dead-code-elimination", eliminate_dead_code),
        ("common-subexpression-elimination", eliminate_common_subexpressions),
    )

    def __init__(self):
        self.statistics: List[PassStatistics] = []

    def optimize(self, instructions: List[Instruction]) -> List[Instruction]:
        """Return an optimized copy of `instructions`."""
        self.statistics = []
        current = list(instructions)
        for name, run_pass in self.PASSES:
            before = len(current)
            current = run_pass(current)
            self.statistics.append(PassStatistics(name, before, len(current)))
            logger.debug("%s: %d -> %d instructions", name, before, len(current))
        return current


def optimize(instructions: List[Instruction]) -> List[Instruction]:
    """Convenience function to run the pipeline once."""
    return Optimizer().optimize(instructions)
