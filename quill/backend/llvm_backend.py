"""
LLVM Backend for Quill.

Builds textual LLVM IR from Quill IR with llvmlite. Every value is a
double: booleans become 1.0/0.0, null becomes 0.0 and undefined NaN.
Top-level names become module globals, function parameters and locals
live in stack slots. `print`/`println` lower to printf with `%g`.
Strings, containers and imports have no numeric lowering and raise
BackendError.

Author: xwest
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import llvmlite.ir as ll

from ..errors import BackendError
from ..ir.ir_nodes import Opcode, Const, Var, Operand, Instruction, is_temporary
from ..parser.ast_nodes import UndefinedType
from .base import Backend, FunctionUnit, split_functions, defined_names

logger = logging.getLogger(__name__)


DOUBLE = ll.DoubleType()
I32 = ll.IntType(32)
I8_PTR = ll.IntType(8).as_pointer()

PRINT_FUNCTIONS = frozenset({"print", "println"})
ENTRY_POINT = "main"

_ORDERED_COMPARISONS = {
    Opcode.EQ: "==",
    Opcode.LT: "<",
    Opcode.LE: "<=",
    Opcode.GT: ">",
    Opcode.GE: ">=",
}


@dataclass
class LLVMGenContext:
    """State for the function currently being built."""
    function: Any = None
    builder: Any = None
    slots: Dict[str, Any] = None
    blocks: Dict[str, Any] = None
    pending: List[Any] = None
    is_entry: bool = False

    def __post_init__(self):
        if self.slots is None:
            self.slots = {}
        if self.blocks is None:
            self.blocks = {}
        if self.pending is None:
            self.pending = []


class LLVMBackend(Backend):
    """
    Numeric LLVM backend.

    Produces a module with one LLVM function per Quill function (all
    parameters and results are doubles) and an `i32 main()` holding the
    top-level code.
    """

    name = "llvm"
    file_extension = ".ll"

    def __init__(self):
        self.module: Optional[ll.Module] = None
        self.functions: Dict[str, Any] = {}
        self.globals: Dict[str, Any] = {}
        self.context = LLVMGenContext()
        self._printf = None
        self._formats: Dict[str, Any] = {}

    def generate(self, instructions: List[Instruction], options: Optional[Dict[str, Any]] = None) -> str:
        """Return the textual LLVM module for `instructions`."""
        options = options or {}
        self.module = ll.Module(name=options.get("module_name", "quill"))
        self.functions = {}
        self.globals = {}
        self._printf = None
        self._formats = {}

        units, main = split_functions(instructions)

        for unit in units:
            if unit.name in self.functions:
                raise BackendError(f"function '{unit.name}' is defined twice")
            function_type = ll.FunctionType(DOUBLE, [DOUBLE] * len(unit.params))
            self.functions[unit.name] = ll.Function(self.module, function_type, self._symbol(unit.name))

        for name in defined_names(main):
            if is_temporary(name):
                continue
            variable = ll.GlobalVariable(self.module, DOUBLE, name=self._symbol(name))
            variable.linkage = "internal"
            variable.initializer = ll.Constant(DOUBLE, 0.0)
            self.globals[name] = variable

        for unit in units:
            self._generate_function(unit)

        entry = ll.Function(self.module, ll.FunctionType(I32, []), ENTRY_POINT)
        self._generate_body(entry, FunctionUnit(ENTRY_POINT, [], main), is_entry=True)

        logger.debug("llvm backend built %d functions and %d globals", len(units), len(self.globals))
        return str(self.module)

    def _symbol(self, name: str) -> str:
        if name in (ENTRY_POINT, "printf"):
            return f"quill.{name}"
        return name

    # ========================================================================
    # Functions
    # ========================================================================

    def _generate_function(self, unit: FunctionUnit):
        function = self.functions[unit.name]
        for argument, param in zip(function.args, unit.params):
            argument.name = param
        self._generate_body(function, unit, is_entry=False)

    def _generate_body(self, function, unit: FunctionUnit, is_entry: bool):
        entry_block = function.append_basic_block("entry")
        builder = ll.IRBuilder(entry_block)
        self.context = LLVMGenContext(function=function, builder=builder, is_entry=is_entry)

        local_names = list(unit.params)
        for name in defined_names(unit.body):
            if name in local_names:
                continue
            if name in self.globals and not is_temporary(name):
                continue
            local_names.append(name)
        for name in local_names:
            self.context.slots[name] = builder.alloca(DOUBLE, name=f"{name}.addr")
        if not is_entry:
            for argument, param in zip(function.args, unit.params):
                builder.store(argument, self.context.slots[param])

        for instruction in unit.body:
            if instruction.opcode == Opcode.LABEL:
                label = instruction.operand1.name
                self.context.blocks[label] = function.append_basic_block(label)

        for instruction in unit.body:
            self._generate_instruction(instruction)

        if not self.context.builder.block.is_terminated:
            self._return(None)

    def _return(self, value):
        builder = self.context.builder
        if self.context.is_entry:
            builder.ret(ll.Constant(I32, 0))
        else:
            builder.ret(value if value is not None else ll.Constant(DOUBLE, 0.0))

    def _start_unreachable_block(self):
        """Code after a jump or return goes into a fresh block with no predecessors."""
        block = self.context.function.append_basic_block()
        self.context.builder.position_at_end(block)

    # ========================================================================
    # Values
    # ========================================================================

    def _slot(self, name: str):
        slot = self.context.slots.get(name)
        if slot is None:
            slot = self.globals.get(name)
        if slot is None:
            raise BackendError(f"llvm backend: undefined name '{name}'")
        return slot

    def _value(self, operand: Operand):
        if isinstance(operand, Const):
            value = operand.value
            if isinstance(value, bool):
                return ll.Constant(DOUBLE, 1.0 if value else 0.0)
            if value is None:
                return ll.Constant(DOUBLE, 0.0)
            if isinstance(value, UndefinedType):
                return ll.Constant(DOUBLE, math.nan)
            if isinstance(value, (int, float)):
                return ll.Constant(DOUBLE, float(value))
            raise BackendError(f"llvm backend only handles numbers, got {operand}")
        if isinstance(operand, Var):
            if operand.name in self.functions and operand.name not in self.context.slots:
                raise BackendError(f"llvm backend cannot use function '{operand.name}' as a value")
            return self.context.builder.load(self._slot(operand.name), name=operand.name)
        raise BackendError(f"llvm backend cannot read operand {operand!r}")

    def _store(self, name: str, value):
        self.context.builder.store(value, self._slot(name))

    def _truthy(self, value):
        """Non-zero and not NaN."""
        return self.context.builder.fcmp_ordered("!=", value, ll.Constant(DOUBLE, 0.0))

    def _to_double(self, flag):
        return self.context.builder.uitofp(flag, DOUBLE)

    # ========================================================================
    # Instructions
    # ========================================================================

    def _generate_instruction(self, instruction: Instruction):
        builder = self.context.builder
        opcode = instruction.opcode

        if opcode == Opcode.ASSIGN:
            self._store(instruction.result, self._value(instruction.operand1))
        elif opcode == Opcode.ADD:
            self._binary(instruction, builder.fadd)
        elif opcode == Opcode.SUB:
            self._binary(instruction, builder.fsub)
        elif opcode == Opcode.MUL:
            self._binary(instruction, builder.fmul)
        elif opcode == Opcode.DIV:
            self._binary(instruction, builder.fdiv)
        elif opcode == Opcode.MOD:
            # frem is a truncated remainder
            self._binary(instruction, builder.frem)
        elif opcode in _ORDERED_COMPARISONS:
            left, right = self._value(instruction.operand1), self._value(instruction.operand2)
            flag = builder.fcmp_ordered(_ORDERED_COMPARISONS[opcode], left, right)
            self._store(instruction.result, self._to_double(flag))
        elif opcode == Opcode.NE:
            left, right = self._value(instruction.operand1), self._value(instruction.operand2)
            flag = builder.fcmp_unordered("!=", left, right)
            self._store(instruction.result, self._to_double(flag))
        elif opcode == Opcode.AND:
            left, right = self._value(instruction.operand1), self._value(instruction.operand2)
            self._store(instruction.result, builder.select(self._truthy(left), right, left))
        elif opcode == Opcode.OR:
            left, right = self._value(instruction.operand1), self._value(instruction.operand2)
            self._store(instruction.result, builder.select(self._truthy(left), left, right))
        elif opcode == Opcode.NEG:
            value = self._value(instruction.operand1)
            self._store(instruction.result, builder.fsub(ll.Constant(DOUBLE, -0.0), value))
        elif opcode == Opcode.POS:
            self._store(instruction.result, self._value(instruction.operand1))
        elif opcode == Opcode.NOT:
            value = self._value(instruction.operand1)
            flag = builder.fcmp_unordered("==", value, ll.Constant(DOUBLE, 0.0))
            self._store(instruction.result, self._to_double(flag))
        elif opcode == Opcode.LABEL:
            block = self.context.blocks[instruction.operand1.name]
            if not builder.block.is_terminated:
                builder.branch(block)
            builder.position_at_end(block)
        elif opcode == Opcode.GOTO:
            builder.branch(self._block(instruction.operand1.name))
            self._start_unreachable_block()
        elif opcode == Opcode.IF_FALSE:
            test = self._truthy(self._value(instruction.operand1))
            fallthrough = self.context.function.append_basic_block()
            builder.cbranch(test, fallthrough, self._block(instruction.operand2.name))
            builder.position_at_end(fallthrough)
        elif opcode == Opcode.RETURN:
            value = self._value(instruction.operand1) if instruction.operand1 is not None else None
            self._return(value)
            self._start_unreachable_block()
        elif opcode == Opcode.PUSH:
            self.context.pending.append(self._value(instruction.operand1))
        elif opcode == Opcode.CALL:
            self._call(instruction)
        else:
            raise BackendError(f"llvm backend does not support '{opcode.value}'")

    def _binary(self, instruction: Instruction, build):
        left = self._value(instruction.operand1)
        right = self._value(instruction.operand2)
        self._store(instruction.result, build(left, right))

    def _block(self, label: str):
        block = self.context.blocks.get(label)
        if block is None:
            raise BackendError(f"llvm backend: jump to unknown label {label}")
        return block

    def _take(self, count: int) -> List[Any]:
        pending = self.context.pending
        if count > len(pending):
            raise BackendError(f"llvm backend: call expects {count} pushed values, found {len(pending)}")
        if count == 0:
            return []
        taken = pending[-count:]
        del pending[-count:]
        return taken

    def _call(self, instruction: Instruction):
        builder = self.context.builder
        args = self._take(int(instruction.operand2.value))
        callee = instruction.operand1
        if not isinstance(callee, Var):
            raise BackendError("llvm backend can only call functions by name")

        if callee.name in PRINT_FUNCTIONS:
            fmt = " ".join(["%g"] * len(args)) + "\n"
            builder.call(self._get_printf(), [self._format_string(fmt)] + args)
            result = ll.Constant(DOUBLE, 0.0)
        elif callee.name in self.functions:
            function = self.functions[callee.name]
            expected = len(function.args)
            # Missing arguments are undefined (NaN), extras are dropped
            padded = list(args[:expected]) + [ll.Constant(DOUBLE, math.nan)] * (expected - len(args))
            result = builder.call(function, padded)
        else:
            raise BackendError(f"llvm backend: unknown function '{callee.name}'")

        if instruction.result is not None:
            self._store(instruction.result, result)

    def _get_printf(self):
        if self._printf is None:
            printf_type = ll.FunctionType(I32, [I8_PTR], var_arg=True)
            self._printf = ll.Function(self.module, printf_type, "printf")
        return self._printf

    def _format_string(self, text: str):
        variable = self._formats.get(text)
        if variable is None:
            data = bytearray(text.encode("utf-8") + b"\0")
            array_type = ll.ArrayType(ll.IntType(8), len(data))
            variable = ll.GlobalVariable(self.module, array_type, name=f".fmt.{len(self._formats)}")
            variable.linkage = "internal"
            variable.global_constant = True
            variable.initializer = ll.Constant(array_type, data)
            self._formats[text] = variable
        return self.context.builder.bitcast(variable, I8_PTR)
