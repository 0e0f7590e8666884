"""
IR optimization passes for Quill.

Each pass takes an instruction list and returns a new one; inputs are
never mutated.

- constant folding: arithmetic on two numeric literals becomes an assign
- dead-code elimination: unread temporaries and untargeted labels go away
- common-subexpression elimination: repeated arithmetic inside a basic
  block is replaced by a copy of the earlier result

Author: xwest
"""

import logging
from typing import Dict, List, Set, Tuple

from ..interpreter.values import ieee_div, ieee_mod
from ..ir.ir_nodes import (
    Opcode, Const, Var, Operand, Instruction,
    ARITHMETIC_OPCODES, SIDE_EFFECT_OPCODES, BLOCK_BOUNDARY_OPCODES,
    is_temporary,
)

logger = logging.getLogger(__name__)


_FOLDERS = {
    Opcode.ADD: lambda a, b: a + b,
    Opcode.SUB: lambda a, b: a - b,
    Opcode.MUL: lambda a, b: a * b,
    Opcode.DIV: ieee_div,
    Opcode.MOD: ieee_mod,
}


def _is_numeric_literal(operand) -> bool:
    return isinstance(operand, Const) and operand.is_number


def fold_constants(instructions: List[Instruction]) -> List[Instruction]:
    """Replace arithmetic on two numeric literals with an assign of the result."""
    folded = []
    for instruction in instructions:
        if (instruction.opcode in ARITHMETIC_OPCODES
                and _is_numeric_literal(instruction.operand1)
                and _is_numeric_literal(instruction.operand2)):
            left = float(instruction.operand1.value)
            right = float(instruction.operand2.value)
            value = _FOLDERS[instruction.opcode](left, right)
            folded.append(Instruction(Opcode.ASSIGN, Const(value), result=instruction.result))
        else:
            folded.append(instruction)
    return folded


def eliminate_dead_code(instructions: List[Instruction]) -> List[Instruction]:
    """
    Drop instructions whose result is an unread temporary, and unused labels.

    Reads are collected once over the whole list, so a chain of dead
    temporaries only loses its last link per call.
    """
    read: Set[str] = set()
    targeted: Set[str] = set()
    for instruction in reversed(instructions):
        if instruction.opcode == Opcode.LABEL:
            continue
        read.update(instruction.reads())
        targeted.update(instruction.labels())

    kept = []
    for instruction in instructions:
        if instruction.opcode == Opcode.LABEL:
            if instruction.operand1.name in targeted:
                kept.append(instruction)
            continue
        defined = instruction.defines()
        if (instruction.opcode not in SIDE_EFFECT_OPCODES
                and is_temporary(defined)
                and defined not in read):
            continue
        kept.append(instruction)
    return kept


ExpressionKey = Tuple[Opcode, Operand, Operand]


def _invalidate(memo: Dict[ExpressionKey, str], name: str):
    """Forget every memoized expression that reads or is held in `name`."""
    stale = [
        key for key, holder in memo.items()
        if holder == name or Var(name) in (key[1], key[2])
    ]
    for key in stale:
        del memo[key]


def eliminate_common_subexpressions(instructions: List[Instruction]) -> List[Instruction]:
    """
    Reuse the result of an identical earlier arithmetic instruction.

    The memo is local to a basic block and is cleared at calls, which may
    rebind any global. Writing a name invalidates every entry that reads it.
    """
    memo: Dict[ExpressionKey, str] = {}
    rewritten = []

    for instruction in instructions:
        if instruction.opcode in BLOCK_BOUNDARY_OPCODES or instruction.opcode == Opcode.CALL:
            memo.clear()

        if instruction.opcode in ARITHMETIC_OPCODES:
            key = (instruction.opcode, instruction.operand1, instruction.operand2)
            previous = memo.get(key)
            _invalidate(memo, instruction.result)
            if previous is not None and previous != instruction.result:
                rewritten.append(Instruction(Opcode.ASSIGN, Var(previous), result=instruction.result))
                continue
            if Var(instruction.result) not in (instruction.operand1, instruction.operand2):
                memo[key] = instruction.result
            rewritten.append(instruction)
            continue

        defined = instruction.defines()
        if defined is not None:
            _invalidate(memo, defined)
        rewritten.append(instruction)

    return rewritten
