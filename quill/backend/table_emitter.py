"""
Table-driven source emitter for Quill.

One emitter serves every textual target. A `TargetFormat` holds the
per-language templates (literals, operators, statements, control flow)
and the emitter walks the IR once, filling them in.

Functions are hoisted out of the flat stream and emitted first, imports
are hoisted to the top of the file. Targets without `goto` run any body
that contains labels inside a program-counter dispatch loop: each label
starts a numbered block, jumps set `_pc` and restart the loop.

Author: xwest
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from ..errors import BackendError
from ..interpreter.values import format_number
from ..ir.ir_nodes import (
    Opcode, Const, Var, Label, Operand, Instruction,
    BINARY_OPCODES, UNARY_OPCODES, is_temporary,
)
from ..parser.ast_nodes import UndefinedType
from .base import Backend, split_functions, defined_names

logger = logging.getLogger(__name__)


_PYTHON_BINARY = {
    Opcode.ADD: "{left} + {right}",
    Opcode.SUB: "{left} - {right}",
    Opcode.MUL: "{left} * {right}",
    Opcode.DIV: "{left} / {right}",
    Opcode.MOD: "{left} % {right}",
    Opcode.EQ: "{left} == {right}",
    Opcode.NE: "{left} != {right}",
    Opcode.LT: "{left} < {right}",
    Opcode.LE: "{left} <= {right}",
    Opcode.GT: "{left} > {right}",
    Opcode.GE: "{left} >= {right}",
    Opcode.AND: "{left} and {right}",
    Opcode.OR: "{left} or {right}",
}

_PYTHON_UNARY = {
    Opcode.NEG: "-{operand}",
    Opcode.POS: "+{operand}",
    Opcode.NOT: "not {operand}",
}


@dataclass(frozen=True)
class TargetFormat:
    """
    Templates describing one target language.

    Defaults describe Python; other targets override what differs.
    Templates are filled with `str.format`, so literal braces are doubled.
    """
    name: str
    extension: str
    header: Tuple[str, ...] = ()
    comment: str = "# {text}"
    indent: str = "    "

    # Literals
    true: str = "True"
    false: str = "False"
    null: str = "None"
    undefined: str = "None"
    infinity: str = "float('inf')"
    negative_infinity: str = "float('-inf')"
    nan: str = "float('nan')"
    float_numbers: bool = False
    string_escapes: Dict[str, str] = field(default_factory=dict)

    # Identifiers
    reserved_words: FrozenSet[str] = frozenset()
    builtins: Dict[str, str] = field(default_factory=dict)

    # Expressions
    binary: Dict[Opcode, str] = field(default_factory=lambda: dict(_PYTHON_BINARY))
    unary: Dict[Opcode, str] = field(default_factory=lambda: dict(_PYTHON_UNARY))
    call: str = "{callee}({args})"
    call_value: str = "{callee}({args})"
    new_array: str = "[{items}]"
    new_object: str = "{{}}"
    get_index: str = "{object}[{index}]"
    get_member: str = "{object}[{key}]"

    # Statements
    assign: str = "{target} = {value}"
    set_index: str = "{object}[{index}] = {value}"
    set_member: str = "{object}[{key}] = {value}"
    declare: Optional[str] = None
    declare_top_level: bool = False
    function_open: str = "def {name}({params}):"
    function_close: Optional[str] = None
    empty_body: Optional[str] = "pass"
    return_value: str = "return {value}"
    return_empty: str = "return"
    import_named: str = "from {module} import {export} as {name}"
    import_namespace: str = "import {module} as {name}"
    import_default: str = "from {module} import default as {name}"

    # Control flow
    cond_open: str = "if not ({test}):"
    cond_close: Optional[str] = None
    native_goto: bool = False
    goto: str = ""
    label: str = ""
    pc_init: str = "_pc = 0"
    loop_open: str = "while True:"
    loop_close: Optional[str] = None
    dispatch_first: str = "if _pc == {n}:"
    dispatch_next: str = "elif _pc == {n}:"
    dispatch_close: Optional[str] = None
    jump: Tuple[str, ...] = ("_pc = {n}", "continue")
    halt: str = "break"


class TableEmitter(Backend):
    """Backend that renders IR through a TargetFormat."""

    def __init__(self, target_format: TargetFormat):
        self.format = target_format
        self.name = target_format.name
        self.file_extension = target_format.extension
        self._lines: List[str] = []
        self._level = 0
        self._pending: List[str] = []

    def generate(self, instructions: List[Instruction], options: Optional[Dict[str, Any]] = None) -> str:
        """Render `instructions` as target source text."""
        options = options or {}
        fmt = self.format
        self._lines = []
        self._level = 0
        self._pending = []

        functions, main = split_functions(instructions)

        for line in fmt.header:
            self._write(line)
        if options.get("banner", True):
            self._write_comment(f"Generated by Quill for {fmt.name}")

        import_lines = []
        for instruction in list(main) + [i for unit in functions for i in unit.body]:
            if instruction.opcode == Opcode.IMPORT:
                line = self._render_import(instruction)
                if line not in import_lines:
                    import_lines.append(line)
        if import_lines:
            self._write("")
            for line in import_lines:
                self._write(line)

        for unit in functions:
            self._write("")
            self._write(fmt.function_open.format(
                name=self._name(unit.name),
                params=", ".join(self._name(p) for p in unit.params)))
            self._level += 1
            start = len(self._lines)
            self._emit_body(unit.body, unit.params, top_level=False)
            if len(self._lines) == start and fmt.empty_body:
                self._write(fmt.empty_body)
            self._level -= 1
            if fmt.function_close:
                self._write(fmt.function_close)

        self._write("")
        self._emit_body(main, [], top_level=True)

        logger.debug("%s emitter wrote %d lines for %d functions",
                     fmt.name, len(self._lines), len(functions))
        return "\n".join(self._lines).strip("\n") + "\n"

    # ========================================================================
    # Output helpers
    # ========================================================================

    def _write(self, line: str):
        if line:
            self._lines.append(self.format.indent * self._level + line)
        else:
            self._lines.append("")

    def _write_comment(self, text: str):
        self._write(self.format.comment.format(text=text))

    def _name(self, name: str) -> str:
        if name in self.format.reserved_words:
            return name + "_"
        return name

    def _quote(self, text: str) -> str:
        escapes = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t", "\r": "\\r"}
        escapes.update(self.format.string_escapes)
        return '"' + "".join(escapes.get(ch, ch) for ch in text) + '"'

    def _number(self, value: float) -> str:
        fmt = self.format
        if math.isnan(value):
            return fmt.nan
        if math.isinf(value):
            return fmt.infinity if value > 0 else fmt.negative_infinity
        if fmt.float_numbers:
            return repr(float(value))
        return format_number(value)

    def _operand(self, operand: Optional[Operand]) -> str:
        fmt = self.format
        if isinstance(operand, Var):
            return self._name(operand.name)
        if isinstance(operand, Const):
            value = operand.value
            if isinstance(value, bool):
                return fmt.true if value else fmt.false
            if value is None:
                return fmt.null
            if isinstance(value, UndefinedType):
                return fmt.undefined
            if isinstance(value, str):
                return self._quote(value)
            if isinstance(value, (int, float)):
                return self._number(float(value))
        raise BackendError(f"{fmt.name} backend cannot render operand {operand!r}")

    def _take(self, count: int) -> List[str]:
        """Pop the last `count` pushed values, oldest first."""
        if count > len(self._pending):
            raise BackendError(f"{self.format.name} backend: call expects {count} pushed values, found {len(self._pending)}")
        if count == 0:
            return []
        taken = self._pending[-count:]
        del self._pending[-count:]
        return taken

    def _render_import(self, instruction: Instruction) -> str:
        fmt = self.format
        path = instruction.operand1.value
        export = instruction.operand2.value
        module = path
        if module.startswith("./"):
            module = module[2:]
        if module.endswith(".ql"):
            module = module[:-3]
        module = module.replace("/", ".")
        if export == "*":
            template = fmt.import_namespace
        elif export == "default":
            template = fmt.import_default
        else:
            template = fmt.import_named
        return template.format(module=module, path=self._quote(path), export=export,
                               name=self._name(instruction.result))

    # ========================================================================
    # Bodies
    # ========================================================================

    def _emit_body(self, body: List[Instruction], params: List[str], top_level: bool):
        fmt = self.format
        body = [i for i in body if i.opcode != Opcode.IMPORT]

        if fmt.declare and (not top_level or fmt.declare_top_level):
            names = [self._name(n) for n in defined_names(body) if n not in params]
            if names:
                self._write(fmt.declare.format(names=", ".join(names)))

        has_labels = any(i.opcode == Opcode.LABEL for i in body)
        has_top_return = top_level and any(i.opcode == Opcode.RETURN for i in body)
        if not fmt.native_goto and (has_labels or has_top_return):
            self._emit_dispatch(body, top_level)
        else:
            for instruction in body:
                self._emit_instruction(instruction, top_level, {})

    def _emit_dispatch(self, body: List[Instruction], top_level: bool):
        fmt = self.format
        blocks: List[List[Instruction]] = [[]]
        block_of: Dict[str, int] = {}
        for instruction in body:
            if instruction.opcode == Opcode.LABEL:
                block_of[instruction.operand1.name] = len(blocks)
                blocks.append([])
            else:
                blocks[-1].append(instruction)

        self._write(fmt.pc_init)
        self._write(fmt.loop_open)
        self._level += 1
        for index, block in enumerate(blocks):
            template = fmt.dispatch_first if index == 0 else fmt.dispatch_next
            self._write(template.format(n=index))
            self._level += 1
            for instruction in block:
                self._emit_instruction(instruction, top_level, block_of)
            if not block or block[-1].opcode not in (Opcode.GOTO, Opcode.RETURN):
                if index + 1 < len(blocks):
                    self._write_jump(index + 1)
                else:
                    self._write(fmt.halt)
            self._level -= 1
        if fmt.dispatch_close:
            self._write(fmt.dispatch_close)
        self._level -= 1
        if fmt.loop_close:
            self._write(fmt.loop_close)

    def _write_jump(self, block: int):
        for line in self.format.jump:
            self._write(line.format(n=block))

    def _jump_to(self, label: Label, block_of: Dict[str, int]):
        if self.format.native_goto:
            self._write(self.format.goto.format(label=label.name))
            return
        if label.name not in block_of:
            raise BackendError(f"jump to unknown label {label.name}")
        self._write_jump(block_of[label.name])

    # ========================================================================
    # Instructions
    # ========================================================================

    def _emit_instruction(self, instruction: Instruction, top_level: bool, block_of: Dict[str, int]):
        fmt = self.format
        opcode = instruction.opcode
        target = self._name(instruction.result) if instruction.result is not None else None

        if opcode == Opcode.ASSIGN:
            self._write(fmt.assign.format(target=target, value=self._operand(instruction.operand1)))
        elif opcode in BINARY_OPCODES:
            value = fmt.binary[opcode].format(left=self._operand(instruction.operand1),
                                              right=self._operand(instruction.operand2))
            self._write(fmt.assign.format(target=target, value=value))
        elif opcode in UNARY_OPCODES:
            value = fmt.unary[opcode].format(operand=self._operand(instruction.operand1))
            self._write(fmt.assign.format(target=target, value=value))
        elif opcode == Opcode.LABEL:
            self._write(fmt.label.format(label=instruction.operand1.name))
        elif opcode == Opcode.GOTO:
            self._jump_to(instruction.operand1, block_of)
        elif opcode == Opcode.IF_FALSE:
            self._write(fmt.cond_open.format(test=self._operand(instruction.operand1)))
            self._level += 1
            self._jump_to(instruction.operand2, block_of)
            self._level -= 1
            if fmt.cond_close:
                self._write(fmt.cond_close)
        elif opcode == Opcode.RETURN:
            if top_level and not fmt.native_goto:
                self._write(fmt.halt)
            elif instruction.operand1 is None:
                self._write(fmt.return_empty)
            else:
                self._write(fmt.return_value.format(value=self._operand(instruction.operand1)))
        elif opcode == Opcode.PUSH:
            self._pending.append(self._operand(instruction.operand1))
        elif opcode == Opcode.CALL:
            args = ", ".join(self._take(int(instruction.operand2.value)))
            callee = instruction.operand1
            if isinstance(callee, Var) and not is_temporary(callee.name):
                call = fmt.call.format(callee=fmt.builtins.get(callee.name, self._name(callee.name)), args=args)
            else:
                call = fmt.call_value.format(callee=self._operand(callee), args=args)
            self._write(fmt.assign.format(target=target, value=call))
        elif opcode == Opcode.NEW_ARRAY:
            items = ", ".join(self._take(int(instruction.operand1.value)))
            self._write(fmt.assign.format(target=target, value=fmt.new_array.format(items=items)))
        elif opcode == Opcode.NEW_OBJECT:
            self._write(fmt.assign.format(target=target, value=fmt.new_object.format()))
        elif opcode == Opcode.GET_INDEX:
            value = fmt.get_index.format(object=self._operand(instruction.operand1),
                                         index=self._operand(instruction.operand2))
            self._write(fmt.assign.format(target=target, value=value))
        elif opcode == Opcode.GET_MEMBER:
            value = fmt.get_member.format(object=self._operand(instruction.operand1),
                                          key=self._operand(instruction.operand2))
            self._write(fmt.assign.format(target=target, value=value))
        elif opcode == Opcode.SET_INDEX:
            self._write(fmt.set_index.format(object=target,
                                             index=self._operand(instruction.operand2),
                                             value=self._operand(instruction.operand1)))
        elif opcode == Opcode.SET_MEMBER:
            self._write(fmt.set_member.format(object=target,
                                              key=self._operand(instruction.operand2),
                                              value=self._operand(instruction.operand1)))
        else:
            raise BackendError(f"{fmt.name} backend cannot emit '{opcode.value}'")
