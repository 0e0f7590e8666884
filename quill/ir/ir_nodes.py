"""
Quill Intermediate Representation (IR) Nodes

The IR is a flat list of three-address instructions
`{opcode, operand1, operand2, result}`. Operands are literal constants
(`Const`), symbolic names (`Var`, source variables or temporaries
`t0, t1, ...`) or jump targets (`Label`, `L0, L1, ...`). Control flow is
expressed with `label` pseudo-instructions and `goto`/`if_false` jumps.

Operand layout per opcode:

    assign        operand1=value                     result=name
    add .. or     operand1=left   operand2=right     result=temp
    neg pos not   operand1=value                     result=temp
    label         operand1=Label
    goto          operand1=Label
    if_false      operand1=test   operand2=Label
    function      operand1=Const(name) operand2=Const(param count)
    param                                            result=name
    end_function
    return        operand1=value or None
    push          operand1=value
    call          operand1=callee operand2=Const(argc) result=temp
    get_index     operand1=object operand2=index     result=temp
    get_member    operand1=object operand2=Const(key) result=temp
    set_index     operand1=value  operand2=index     result=container
    set_member    operand1=value  operand2=Const(key) result=container
    new_array     operand1=Const(count)              result=temp
    new_object                                       result=temp
    import        operand1=Const(path) operand2=Const(export) result=name

`set_index`/`set_member` use the result slot to name the container they
update; that slot is a use of the container, not a definition.

Author: xwest
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional, Union

from ..interpreter.values import format_number
from ..parser.ast_nodes import UndefinedType


class Opcode(Enum):
    """Enumeration of IR opcodes."""

    ASSIGN = "assign"

    # Arithmetic
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    MOD = "mod"

    # Comparison and logic
    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    AND = "and"
    OR = "or"

    # Unary
    NEG = "neg"
    POS = "pos"
    NOT = "not"

    # Control flow
    LABEL = "label"
    GOTO = "goto"
    IF_FALSE = "if_false"

    # Functions
    FUNCTION = "function"
    PARAM = "param"
    END_FUNCTION = "end_function"
    RETURN = "return"
    PUSH = "push"
    CALL = "call"

    # Containers
    GET_INDEX = "get_index"
    GET_MEMBER = "get_member"
    SET_INDEX = "set_index"
    SET_MEMBER = "set_member"
    NEW_ARRAY = "new_array"
    NEW_OBJECT = "new_object"

    # Modules
    IMPORT = "import"


ARITHMETIC_OPCODES = frozenset({Opcode.ADD, Opcode.SUB, Opcode.MUL, Opcode.DIV, Opcode.MOD})

BINARY_OPCODES = ARITHMETIC_OPCODES | frozenset({
    Opcode.EQ, Opcode.NE, Opcode.LT, Opcode.LE, Opcode.GT, Opcode.GE,
    Opcode.AND, Opcode.OR,
})

UNARY_OPCODES = frozenset({Opcode.NEG, Opcode.POS, Opcode.NOT})

# Instructions that must survive even when their result is never read
SIDE_EFFECT_OPCODES = frozenset({
    Opcode.LABEL, Opcode.GOTO, Opcode.IF_FALSE, Opcode.FUNCTION, Opcode.PARAM,
    Opcode.END_FUNCTION, Opcode.RETURN, Opcode.PUSH, Opcode.CALL,
    Opcode.SET_INDEX, Opcode.SET_MEMBER, Opcode.IMPORT,
})

# Instructions whose result slot names a container being updated
STORE_OPCODES = frozenset({Opcode.SET_INDEX, Opcode.SET_MEMBER})

# Opcodes that start a new basic block
BLOCK_BOUNDARY_OPCODES = frozenset({Opcode.LABEL, Opcode.FUNCTION, Opcode.END_FUNCTION})

BINARY_OPERATOR_OPCODES = {
    "+": Opcode.ADD,
    "-": Opcode.SUB,
    "*": Opcode.MUL,
    "/": Opcode.DIV,
    "%": Opcode.MOD,
    "==": Opcode.EQ,
    "!=": Opcode.NE,
    "<": Opcode.LT,
    "<=": Opcode.LE,
    ">": Opcode.GT,
    ">=": Opcode.GE,
    "&&": Opcode.AND,
    "||": Opcode.OR,
}

UNARY_OPERATOR_OPCODES = {
    "-": Opcode.NEG,
    "+": Opcode.POS,
    "!": Opcode.NOT,
}

_TEMPORARY = re.compile(r'^t\d+$')


def is_temporary(name: Optional[str]) -> bool:
    """True for compiler-generated temporaries (`t0`, `t1`, ...)."""
    return name is not None and _TEMPORARY.match(name) is not None


class Const:
    """Literal operand: float, str, bool, None or UNDEFINED."""

    __slots__ = ("value",)

    def __init__(self, value: Any):
        object.__setattr__(self, "value", value)

    def __setattr__(self, name, value):
        raise AttributeError("Const is immutable")

    def _key(self):
        # Type-tagged so Const(1.0) != Const(True) and -0.0 != 0.0
        return (type(self.value).__name__, repr(self.value))

    def __eq__(self, other) -> bool:
        return isinstance(other, Const) and self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    @property
    def is_number(self) -> bool:
        return isinstance(self.value, (int, float)) and not isinstance(self.value, bool)

    def __str__(self) -> str:
        value = self.value
        if isinstance(value, str):
            return repr(value)
        if isinstance(value, bool):
            return "true" if value else "false"
        if value is None:
            return "null"
        if isinstance(value, UndefinedType):
            return "undefined"
        if isinstance(value, (int, float)):
            return format_number(value)
        return str(value)

    def __repr__(self) -> str:
        return f"Const({self.value!r})"


@dataclass(frozen=True)
class Var:
    """Symbolic name: a source variable or a temporary."""
    name: str

    @property
    def is_temporary(self) -> bool:
        return is_temporary(self.name)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Label:
    """Jump target."""
    name: str

    def __str__(self) -> str:
        return self.name


Operand = Union[Const, Var, Label]


@dataclass(frozen=True)
class Instruction:
    """One three-address IR instruction."""
    opcode: Opcode
    operand1: Optional[Operand] = None
    operand2: Optional[Operand] = None
    result: Optional[str] = None

    def operands(self) -> List[Operand]:
        return [op for op in (self.operand1, self.operand2) if op is not None]

    def reads(self) -> List[str]:
        """Names this instruction reads (Var operands and stored-to containers)."""
        names = [op.name for op in self.operands() if isinstance(op, Var)]
        if self.opcode in STORE_OPCODES and self.result is not None:
            names.append(self.result)
        return names

    def defines(self) -> Optional[str]:
        """Name this instruction writes, if any."""
        if self.opcode in STORE_OPCODES:
            return None
        return self.result

    def labels(self) -> List[str]:
        return [op.name for op in self.operands() if isinstance(op, Label)]

    def __str__(self) -> str:
        if self.opcode == Opcode.LABEL:
            return f"{self.operand1}:"
        parts = [self.opcode.value]
        parts.extend(str(op) for op in self.operands())
        text = " ".join(parts)
        if self.result is not None:
            text += f" -> {self.result}"
        return text


def format_ir(instructions: Iterable[Instruction]) -> str:
    """Render an instruction list one per line, labels flush left."""
    lines = []
    for instruction in instructions:
        text = str(instruction)
        lines.append(text if instruction.opcode == Opcode.LABEL else "    " + text)
    return "\n".join(lines)


__all__ = [
    "Opcode", "Const", "Var", "Label", "Operand", "Instruction",
    "ARITHMETIC_OPCODES", "BINARY_OPCODES", "UNARY_OPCODES",
    "SIDE_EFFECT_OPCODES", "STORE_OPCODES", "BLOCK_BOUNDARY_OPCODES",
    "BINARY_OPERATOR_OPCODES", "UNARY_OPERATOR_OPCODES",
    "is_temporary", "format_ir",
]
