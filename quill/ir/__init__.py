"""
Quill Intermediate Representation Package

Flat three-address IR and the AST-to-IR generator.

Author: xwest
"""

from .ir_nodes import (
    Opcode, Const, Var, Label, Operand, Instruction,
    ARITHMETIC_OPCODES, BINARY_OPCODES, UNARY_OPCODES,
    SIDE_EFFECT_OPCODES, STORE_OPCODES, BLOCK_BOUNDARY_OPCODES,
    is_temporary, format_ir
)
from .ir_generator import IRGenerator, generate_ir

__all__ = [
    "Opcode",
    "Const",
    "Var",
    "Label",
    "Operand",
    "Instruction",
    "ARITHMETIC_OPCODES",
    "BINARY_OPCODES",
    "UNARY_OPCODES",
    "SIDE_EFFECT_OPCODES",
    "STORE_OPCODES",
    "BLOCK_BOUNDARY_OPCODES",
    "is_temporary",
    "format_ir",
    "IRGenerator",
    "generate_ir",
]
