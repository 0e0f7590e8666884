"""
Builtin functions and objects available to every Quill program.

Builtins are plain functions registered with the `builtin` decorator.
Each receives the running Evaluator (for output and for calling back
into Quill functions) and the list of evaluated arguments. Missing
arguments read as `undefined`; extra arguments are ignored.

Author: xwest
"""

import functools
import json
import math
import re
from typing import Any, Callable, Dict, List, Set

from .values import (
    UNDEFINED, UndefinedType, BuiltinFunction, Instance, is_number, type_of,
    truthy, to_number, to_string, to_display, same_value_zero, strict_equals,
    format_number
)
from .errors import QuillTypeError

BuiltinImpl = Callable[[Any, List[Any]], Any]

BUILTINS: Dict[str, BuiltinFunction] = {}
MATH_FUNCTIONS: Dict[str, BuiltinFunction] = {}
JSON_FUNCTIONS: Dict[str, BuiltinFunction] = {}
STRING_METHODS: Dict[str, BuiltinFunction] = {}


def builtin(name: str, registry: Dict[str, BuiltinFunction] = BUILTINS):
    """Register `fn` as the builtin `name` in `registry`."""
    def decorator(fn: BuiltinImpl) -> BuiltinImpl:
        registry[name] = BuiltinFunction(name, fn)
        return fn
    return decorator


def _arg(args: List[Any], index: int, default: Any = UNDEFINED) -> Any:
    return args[index] if index < len(args) else default


def _expect_list(name: str, value: Any) -> list:
    if not isinstance(value, list):
        raise QuillTypeError(f"{name}() expects an array, got {type_of(value)}")
    return value


def _expect_string(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise QuillTypeError(f"{name}() expects a string, got {type_of(value)}")
    return value


def _to_index(value: Any, length: int, default: int) -> int:
    """Resolve a slice bound, counting negative values from the end."""
    if isinstance(value, UndefinedType):
        return default
    number = to_number(value)
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return length if number > 0 else 0
    index = int(number)
    if index < 0:
        index = max(length + index, 0)
    return min(index, length)


# ============================================================================
# Output and conversion
# ============================================================================

@builtin("print")
def _print(evaluator, args):
    evaluator.write_line(" ".join(to_display(arg) for arg in args))
    return None


@builtin("println")
def _println(evaluator, args):
    return _print(evaluator, args)


@builtin("len")
def _len(evaluator, args):
    value = _arg(args, 0)
    if isinstance(value, (str, list, dict)):
        return float(len(value))
    return 0.0


@builtin("str")
def _str(evaluator, args):
    return to_string(_arg(args, 0))


_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')
_LEADING_FLOAT = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')


@builtin("int")
def _int(evaluator, args):
    value = _arg(args, 0)
    if is_number(value):
        if math.isnan(value) or math.isinf(value):
            return math.nan
        return float(math.trunc(value))
    match = _LEADING_INT.match(to_string(value))
    return float(int(match.group(1))) if match else math.nan


@builtin("float")
def _float(evaluator, args):
    value = _arg(args, 0)
    if is_number(value):
        return float(value)
    text = to_string(value).strip()
    if text.startswith(("Infinity", "+Infinity")):
        return math.inf
    if text.startswith("-Infinity"):
        return -math.inf
    match = _LEADING_FLOAT.match(text)
    return float(match.group(1)) if match else math.nan


@builtin("bool")
def _bool(evaluator, args):
    return truthy(_arg(args, 0))


@builtin("type")
def _type(evaluator, args):
    return type_of(_arg(args, 0))


# ============================================================================
# Arrays
# ============================================================================

@builtin("range")
def _range(evaluator, args):
    """range(end) -> 0..end-1; range(start, end[, step]) includes `end`."""
    if len(args) < 2:
        start, end = 0.0, to_number(_arg(args, 0)) - 1
    else:
        start, end = to_number(args[0]), to_number(args[1])
    step = to_number(_arg(args, 2, 1.0))
    if not step > 0:
        raise QuillTypeError("range() step must be a positive number")

    result = []
    value = start
    while value <= end:
        result.append(value)
        value += step
    return result


@builtin("map")
def _map(evaluator, args):
    items = _expect_list("map", _arg(args, 0))
    fn = _arg(args, 1)
    return [evaluator.call_value(fn, [item, float(i)]) for i, item in enumerate(items)]


@builtin("filter")
def _filter(evaluator, args):
    items = _expect_list("filter", _arg(args, 0))
    fn = _arg(args, 1)
    return [item for i, item in enumerate(items) if truthy(evaluator.call_value(fn, [item, float(i)]))]


@builtin("reduce")
def _reduce(evaluator, args):
    items = _expect_list("reduce", _arg(args, 0))
    fn = _arg(args, 1)
    if len(args) >= 3:
        accumulator, start = args[2], 0
    elif items:
        accumulator, start = items[0], 1
    else:
        raise QuillTypeError("reduce() of empty array with no initial value")
    for i in range(start, len(items)):
        accumulator = evaluator.call_value(fn, [accumulator, items[i], float(i)])
    return accumulator


@builtin("sort")
def _sort(evaluator, args):
    """Sorted copy; numbers sort numerically, anything else by string form."""
    items = list(_expect_list("sort", _arg(args, 0)))
    compare_fn = _arg(args, 1)

    if not isinstance(compare_fn, UndefinedType):
        def ordering(a, b):
            result = to_number(evaluator.call_value(compare_fn, [a, b]))
            if math.isnan(result) or result == 0:
                return 0
            return -1 if result < 0 else 1
        return sorted(items, key=functools.cmp_to_key(ordering))

    if all(is_number(item) for item in items):
        return sorted(items)
    return sorted(items, key=to_string)


@builtin("reverse")
def _reverse(evaluator, args):
    return list(reversed(_expect_list("reverse", _arg(args, 0))))


@builtin("join")
def _join(evaluator, args):
    items = _expect_list("join", _arg(args, 0))
    separator = _arg(args, 1)
    separator = "," if isinstance(separator, UndefinedType) else to_string(separator)
    return separator.join(
        "" if item is None or isinstance(item, UndefinedType) else to_string(item)
        for item in items
    )


@builtin("split")
def _split(evaluator, args):
    text = _expect_string("split", _arg(args, 0))
    separator = _arg(args, 1)
    if isinstance(separator, UndefinedType):
        return [text]
    separator = to_string(separator)
    if separator == "":
        return list(text)
    return text.split(separator)


@builtin("push")
def _push(evaluator, args):
    items = _expect_list("push", _arg(args, 0))
    items.extend(args[1:])
    return float(len(items))


@builtin("pop")
def _pop(evaluator, args):
    items = _expect_list("pop", _arg(args, 0))
    return items.pop() if items else UNDEFINED


@builtin("keys")
def _keys(evaluator, args):
    value = _arg(args, 0)
    if isinstance(value, dict):
        return list(value.keys())
    if isinstance(value, list):
        return [format_number(float(i)) for i in range(len(value))]
    return []


@builtin("values")
def _values(evaluator, args):
    value = _arg(args, 0)
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, list):
        return list(value)
    return []


@builtin("includes")
def _includes(evaluator, args):
    collection, item = _arg(args, 0), _arg(args, 1)
    if isinstance(collection, str):
        return to_string(item) in collection
    if isinstance(collection, list):
        return any(same_value_zero(element, item) for element in collection)
    raise QuillTypeError(f"includes() expects an array or string, got {type_of(collection)}")


@builtin("indexOf")
def _index_of(evaluator, args):
    collection, item = _arg(args, 0), _arg(args, 1)
    if isinstance(collection, str):
        return float(collection.find(to_string(item)))
    if isinstance(collection, list):
        for i, element in enumerate(collection):
            if strict_equals(element, item):
                return float(i)
        return -1.0
    raise QuillTypeError(f"indexOf() expects an array or string, got {type_of(collection)}")


@builtin("slice")
def _slice(evaluator, args):
    collection = _arg(args, 0)
    if not isinstance(collection, (str, list)):
        raise QuillTypeError(f"slice() expects an array or string, got {type_of(collection)}")
    length = len(collection)
    start = _to_index(_arg(args, 1), length, 0)
    end = _to_index(_arg(args, 2), length, length)
    return collection[start:end]


# ============================================================================
# Numbers
# ============================================================================

def _unary_math(name: str, fn: Callable[[float], float]):
    def impl(evaluator, args):
        return fn(to_number(_arg(args, 0)))
    impl.__name__ = name
    return impl


def _safe_sqrt(x: float) -> float:
    if math.isnan(x) or x < 0:
        return math.nan
    return math.sqrt(x)


def _js_round(x: float) -> float:
    if math.isnan(x) or math.isinf(x):
        return x
    return float(math.floor(x + 0.5))


def _rounding(fn: Callable[[float], int]) -> Callable[[float], float]:
    def apply(x: float) -> float:
        if math.isnan(x) or math.isinf(x):
            return x
        return float(fn(x))
    return apply


def _safe_log(x: float) -> float:
    if math.isnan(x) or x < 0:
        return math.nan
    if x == 0:
        return -math.inf
    return math.log(x)


def _safe_exp(x: float) -> float:
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


def _safe_trig(fn: Callable[[float], float]) -> Callable[[float], float]:
    def apply(x: float) -> float:
        if math.isnan(x) or math.isinf(x):
            return math.nan
        return fn(x)
    return apply


NUMERIC_FUNCTIONS = {
    "abs": abs,
    "floor": _rounding(math.floor),
    "ceil": _rounding(math.ceil),
    "round": _js_round,
    "sqrt": _safe_sqrt,
}

for _name, _fn in NUMERIC_FUNCTIONS.items():
    builtin(_name)(_unary_math(_name, _fn))
    builtin(_name, MATH_FUNCTIONS)(_unary_math(_name, _fn))

for _name, _fn in {"log": _safe_log, "exp": _safe_exp, "sin": _safe_trig(math.sin),
                   "cos": _safe_trig(math.cos), "tan": _safe_trig(math.tan)}.items():
    builtin(_name, MATH_FUNCTIONS)(_unary_math(_name, _fn))


def _extreme(pick: Callable[..., float], empty: float):
    def impl(evaluator, args):
        # A single array argument is spread, so max([1, 2]) == max(1, 2)
        values = args[0] if len(args) == 1 and isinstance(args[0], list) else args
        numbers = [to_number(v) for v in values]
        if not numbers:
            return empty
        if any(math.isnan(n) for n in numbers):
            return math.nan
        return pick(numbers)
    return impl


for _registry in (BUILTINS, MATH_FUNCTIONS):
    builtin("min", _registry)(_extreme(min, math.inf))
    builtin("max", _registry)(_extreme(max, -math.inf))


@builtin("pow", MATH_FUNCTIONS)
def _pow(evaluator, args):
    base, exponent = to_number(_arg(args, 0)), to_number(_arg(args, 1))
    try:
        return math.pow(base, exponent)
    except OverflowError:
        return math.inf
    except ValueError:
        return math.nan


# ============================================================================
# JSON
# ============================================================================

def _to_json_compatible(value: Any, active: Set[int]) -> Any:
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if is_number(value):
        if math.isnan(value) or math.isinf(value):
            return None
        return int(value) if value == int(value) else value
    if not isinstance(value, (list, dict)):
        return None

    if id(value) in active:
        raise QuillTypeError("JSON.stringify: cannot convert a circular structure")
    active.add(id(value))
    try:
        if isinstance(value, list):
            return [None if isinstance(item, UndefinedType) else _to_json_compatible(item, active)
                    for item in value]
        return {key: _to_json_compatible(item, active) for key, item in value.items()
                if not isinstance(item, UndefinedType)}
    finally:
        active.discard(id(value))


@builtin("stringify", JSON_FUNCTIONS)
def _json_stringify(evaluator, args):
    value = _arg(args, 0)
    if isinstance(value, UndefinedType):
        return UNDEFINED
    return json.dumps(_to_json_compatible(value, set()), separators=(",", ":"))


@builtin("parse", JSON_FUNCTIONS)
def _json_parse(evaluator, args):
    text = to_string(_arg(args, 0))
    try:
        return json.loads(text, parse_int=float, parse_float=float)
    except json.JSONDecodeError as e:
        raise QuillTypeError(f"JSON.parse: {e.msg} at position {e.pos}")


# ============================================================================
# String methods (reachable only through `"text".method()`)
# ============================================================================

@builtin("toUpperCase", STRING_METHODS)
def _upper(evaluator, args):
    return _expect_string("toUpperCase", _arg(args, 0)).upper()


@builtin("toLowerCase", STRING_METHODS)
def _lower(evaluator, args):
    return _expect_string("toLowerCase", _arg(args, 0)).lower()


@builtin("trim", STRING_METHODS)
def _trim(evaluator, args):
    return _expect_string("trim", _arg(args, 0)).strip()


# Method-call sugar: `arr.push(x)` calls `push(arr, x)`
ARRAY_METHOD_NAMES = (
    "push", "pop", "join", "includes", "indexOf", "slice",
    "map", "filter", "reduce", "sort", "reverse",
)
STRING_METHOD_NAMES = ("split", "includes", "indexOf", "slice")


def lookup_method(receiver: Any, name: str):
    """Builtin usable as a method of `receiver`, or None."""
    if isinstance(receiver, list) and name in ARRAY_METHOD_NAMES:
        return BUILTINS[name]
    if isinstance(receiver, str):
        if name in STRING_METHOD_NAMES:
            return BUILTINS[name]
        return STRING_METHODS.get(name)
    return None


def create_builtins() -> Dict[str, Any]:
    """Fresh builtin table; namespace objects are new dicts per call."""
    table: Dict[str, Any] = dict(BUILTINS)

    math_object: Dict[str, Any] = dict(MATH_FUNCTIONS)
    math_object["PI"] = math.pi
    math_object["E"] = math.e
    table["Math"] = math_object
    table["JSON"] = dict(JSON_FUNCTIONS)
    return table


def describe_value(value: Any) -> str:
    """Short description of a value for error messages."""
    if isinstance(value, Instance):
        return f"instance of {value.klass.name}"
    if isinstance(value, str):
        return f'"{value}"'
    return to_display(value)


__all__ = [
    "BUILTINS", "create_builtins", "lookup_method", "builtin", "describe_value",
]
