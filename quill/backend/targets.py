"""
Per-language formats for the table-driven emitter.

Author: xwest
"""

import keyword

from ..ir.ir_nodes import Opcode
from .table_emitter import TargetFormat, TableEmitter


PYTHON_FORMAT = TargetFormat(
    name="python",
    extension=".py",
    header=("#!/usr/bin/env python3",),
    reserved_words=frozenset(keyword.kwlist),
    builtins={"println": "print", "len": "len", "str": "str", "abs": "abs", "min": "min", "max": "max"},
)


JAVASCRIPT_FORMAT = TargetFormat(
    name="javascript",
    extension=".js",
    comment="// {text}",
    indent="  ",
    true="true",
    false="false",
    null="null",
    undefined="undefined",
    infinity="Infinity",
    negative_infinity="-Infinity",
    nan="NaN",
    reserved_words=frozenset({
        "await", "case", "catch", "debugger", "default", "delete", "do", "enum",
        "export", "extends", "finally", "in", "instanceof", "new", "super",
        "switch", "this", "try", "typeof", "void", "with", "yield", "static",
        "arguments", "eval",
    }),
    builtins={"print": "console.log", "println": "console.log", "str": "String", "abs": "Math.abs",
              "floor": "Math.floor", "ceil": "Math.ceil", "sqrt": "Math.sqrt",
              "min": "Math.min", "max": "Math.max"},
    binary={
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
        Opcode.AND: "{left} && {right}",
        Opcode.OR: "{left} || {right}",
    },
    unary={Opcode.NEG: "-({operand})", Opcode.POS: "+({operand})", Opcode.NOT: "!({operand})"},
    assign="{target} = {value};",
    set_index="{object}[{index}] = {value};",
    set_member="{object}[{key}] = {value};",
    declare="let {names};",
    declare_top_level=True,
    function_open="function {name}({params}) {{",
    function_close="}",
    empty_body=None,
    return_value="return {value};",
    return_empty="return;",
    import_named="import {{ {export} as {name} }} from {path};",
    import_namespace="import * as {name} from {path};",
    import_default="import {name} from {path};",
    cond_open="if (!({test})) {{",
    cond_close="}",
    pc_init="let _pc = 0;",
    loop_open="while (true) {",
    loop_close="}",
    dispatch_first="if (_pc === {n}) {{",
    dispatch_next="}} else if (_pc === {n}) {{",
    dispatch_close="}",
    jump=("_pc = {n};", "continue;"),
    halt="break;",
)


RUBY_FORMAT = TargetFormat(
    name="ruby",
    extension=".rb",
    header=("#!/usr/bin/env ruby",),
    indent="  ",
    true="true",
    false="false",
    null="nil",
    undefined="nil",
    infinity="Float::INFINITY",
    negative_infinity="-Float::INFINITY",
    nan="Float::NAN",
    float_numbers=True,
    string_escapes={"#": "\\#"},
    reserved_words=frozenset({
        "alias", "begin", "case", "defined?", "do", "end", "ensure", "in", "module",
        "next", "redo", "rescue", "retry", "self", "super", "then", "undef",
        "unless", "until", "when", "yield", "not", "and", "or",
    }),
    builtins={"print": "puts", "println": "puts"},
    binary={
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
        Opcode.AND: "{left} && {right}",
        Opcode.OR: "{left} || {right}",
    },
    unary={Opcode.NEG: "-({operand})", Opcode.POS: "+({operand})", Opcode.NOT: "!({operand})"},
    call_value="{callee}.call({args})",
    function_open="def {name}({params})",
    function_close="end",
    empty_body="nil",
    import_named="require_relative {path}",
    import_namespace="require_relative {path}",
    import_default="require_relative {path}",
    cond_open="unless {test}",
    cond_close="end",
    loop_open="while true",
    loop_close="end",
    dispatch_first="if _pc == {n}",
    dispatch_next="elsif _pc == {n}",
    dispatch_close="end",
    jump=("_pc = {n}", "next"),
)


LUA_FORMAT = TargetFormat(
    name="lua",
    extension=".lua",
    comment="-- {text}",
    indent="  ",
    true="true",
    false="false",
    null="nil",
    undefined="nil",
    infinity="math.huge",
    negative_infinity="-math.huge",
    nan="(0/0)",
    reserved_words=frozenset({
        "and", "break", "do", "else", "elseif", "end", "false", "for", "function",
        "goto", "if", "in", "local", "nil", "not", "or", "repeat", "return", "then",
        "true", "until", "while",
    }),
    builtins={"println": "print", "str": "tostring", "abs": "math.abs", "floor": "math.floor",
              "ceil": "math.ceil", "sqrt": "math.sqrt", "min": "math.min", "max": "math.max"},
    binary={
        Opcode.ADD: "{left} + {right}",
        Opcode.SUB: "{left} - {right}",
        Opcode.MUL: "{left} * {right}",
        Opcode.DIV: "{left} / {right}",
        Opcode.MOD: "math.fmod({left}, {right})",
        Opcode.EQ: "{left} == {right}",
        Opcode.NE: "{left} ~= {right}",
        Opcode.LT: "{left} < {right}",
        Opcode.LE: "{left} <= {right}",
        Opcode.GT: "{left} > {right}",
        Opcode.GE: "{left} >= {right}",
        Opcode.AND: "{left} and {right}",
        Opcode.OR: "{left} or {right}",
    },
    unary={Opcode.NEG: "-({operand})", Opcode.POS: "({operand})", Opcode.NOT: "not ({operand})"},
    new_array="{{{items}}}",
    declare="local {names}",
    function_open="function {name}({params})",
    function_close="end",
    empty_body=None,
    return_value="do return {value} end",
    return_empty="do return end",
    import_named="local {name} = require({path})[\"{export}\"]",
    import_namespace="local {name} = require({path})",
    import_default="local {name} = require({path})",
    cond_open="if not ({test}) then",
    cond_close="end",
    native_goto=True,
    goto="goto {label}",
    label="::{label}::",
)




class PythonBackend(TableEmitter):
    def __init__(self):
        super().__init__(PYTHON_FORMAT)


class JavaScriptBackend(TableEmitter):
    def __init__(self):
        super().__init__(JAVASCRIPT_FORMAT)


class RubyBackend(TableEmitter):
    def __init__(self):
        super().__init__(RUBY_FORMAT)


class LuaBackend(TableEmitter):
    def __init__(self):
        super().__init__(LUA_FORMAT)
