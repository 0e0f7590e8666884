"""
Quill Optimizer Package

Constant folding, dead-code elimination and common-subexpression
elimination over the flat IR.

Author: xwest
"""

from .optimizer import Optimizer, PassStatistics, optimize
from .passes import fold_constants, eliminate_dead_code, eliminate_common_subexpressions

__all__ = [
    "Optimizer",
    "PassStatistics",
    "optimize",
    "fold_constants",
    "eliminate_dead_code",
    "eliminate_common_subexpressions",
]
