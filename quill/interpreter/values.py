"""
Runtime value model and coercion rules for Quill.

Quill values map onto Python objects:

    number     -> float (IEEE-754 double)
    string     -> str
    boolean    -> bool
    null       -> None
    undefined  -> UNDEFINED
    array      -> list
    object     -> dict (Instance for class instances)
    function   -> FunctionValue / BuiltinFunction / BoundMethod
    class      -> ClassValue

The helpers below implement the JavaScript-flavoured coercions the
evaluator and the constant folder share: truthiness, ToNumber, string
conversion, `+`, IEEE division and remainder, relational comparison and
the loose equality table.

Author: xwest
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, TYPE_CHECKING

from ..parser.ast_nodes import UNDEFINED, UndefinedType, Statement, VariableDeclaration

if TYPE_CHECKING:
    from .scope import Scope
    from .evaluator import Evaluator


@dataclass(eq=False)
class FunctionValue:
    """Function record captured once at declaration time."""
    name: str
    params: List[str]
    body: List[Statement]
    scope: 'Scope'

    def __repr__(self) -> str:
        return f"<function {self.name}>"


@dataclass(eq=False)
class BuiltinFunction:
    """Host-implemented function; `impl(evaluator, args)` returns a Quill value."""
    name: str
    impl: Callable[['Evaluator', List[Any]], Any]

    def __repr__(self) -> str:
        return f"<builtin {self.name}>"


@dataclass(eq=False)
class ClassValue:
    name: str
    superclass: Optional['ClassValue']
    properties: List[VariableDeclaration]
    methods: Dict[str, FunctionValue]
    scope: 'Scope'

    def find_method(self, name: str) -> Optional[FunctionValue]:
        """Look a method up along the superclass chain."""
        klass: Optional[ClassValue] = self
        while klass is not None:
            if name in klass.methods:
                return klass.methods[name]
            klass = klass.superclass
        return None

    def lineage(self) -> List['ClassValue']:
        """Classes from the root superclass down to this one."""
        chain = []
        klass: Optional[ClassValue] = self
        while klass is not None:
            chain.append(klass)
            klass = klass.superclass
        return list(reversed(chain))

    def __repr__(self) -> str:
        return f"<class {self.name}>"


class Instance(dict):
    """Object created by calling a class; properties live in the dict."""

    def __init__(self, klass: ClassValue):
        super().__init__()
        self.klass = klass

    # Identity semantics, like every other container
    __eq__ = object.__eq__
    __ne__ = object.__ne__
    __hash__ = object.__hash__


@dataclass(eq=False)
class BoundMethod:
    """A function paired with the receiver it was looked up on."""
    receiver: Any
    function: Any  # FunctionValue or BuiltinFunction

    @property
    def name(self) -> str:
        return self.function.name

    def __repr__(self) -> str:
        return f"<bound method {self.function.name}>"


CALLABLE_TYPES = (FunctionValue, BuiltinFunction, BoundMethod, ClassValue)


# ============================================================================
# Classification
# ============================================================================

def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_container(value: Any) -> bool:
    return isinstance(value, (list, dict))


def type_of(value: Any) -> str:
    """Name of a value's kind, as returned by the `type` builtin."""
    if value is None:
        return "null"
    if isinstance(value, UndefinedType):
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, ClassValue):
        return "class"
    if isinstance(value, CALLABLE_TYPES):
        return "function"
    return "object"


# ============================================================================
# Conversions
# ============================================================================

# Stands in for a container already being printed
CIRCULAR_PLACEHOLDER = "[Circular]"

_NUMERIC_STRING = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$')


def truthy(value: Any) -> bool:
    if value is None or isinstance(value, UndefinedType):
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return len(value) > 0
    return True


def to_number(value: Any) -> float:
    """ToNumber: strings parse as numeric literals, anything unparsable is NaN."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if is_number(value):
        return float(value)
    if value is None:
        return 0.0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        if _NUMERIC_STRING.match(text):
            return float(text)
        return math.nan
    if isinstance(value, list):
        return to_number(to_string(value))
    return math.nan


def format_number(value: float) -> str:
    """Render a number the way Quill prints it (`3` not `3.0`)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))
    return repr(float(value))


def to_string(value: Any, _active: Optional[Set[int]] = None) -> str:
    """
    String coercion used by `+`, `str()` and loose equality.

    An array that contains itself renders its inner occurrence as "".
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if value is None:
        return "null"
    if isinstance(value, UndefinedType):
        return "undefined"
    if isinstance(value, list):
        active = set() if _active is None else _active
        if id(value) in active:
            return ""
        active.add(id(value))
        try:
            return ",".join(
                "" if item is None or isinstance(item, UndefinedType) else to_string(item, active)
                for item in value
            )
        finally:
            active.discard(id(value))
    if isinstance(value, dict):
        return "[object Object]"
    return repr(value)


def to_display(value: Any, nested: bool = False, _active: Optional[Set[int]] = None) -> str:
    """Readable rendering used by `print`; containers show their contents."""
    if isinstance(value, str):
        return f'"{value}"' if nested else value
    if not isinstance(value, (list, dict)):
        return to_string(value)

    active = set() if _active is None else _active
    if id(value) in active:
        return CIRCULAR_PLACEHOLDER
    active.add(id(value))
    try:
        if isinstance(value, list):
            return "[" + ", ".join(to_display(item, True, active) for item in value) + "]"
        items = ", ".join(f"{key}: {to_display(item, True, active)}" for key, item in value.items())
        prefix = f"{value.klass.name} " if isinstance(value, Instance) else ""
        return prefix + "{" + items + "}"
    finally:
        active.discard(id(value))


def to_property_key(value: Any) -> str:
    return to_string(value)


# ============================================================================
# Arithmetic (IEEE-754)
# ============================================================================

def ieee_div(left: float, right: float) -> float:
    """Division where x/0 gives a signed infinity and 0/0 gives NaN."""
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def ieee_mod(left: float, right: float) -> float:
    """Truncated remainder (sign follows the dividend), NaN for x % 0."""
    if right == 0 or math.isnan(left) or math.isnan(right) or math.isinf(left):
        return math.nan
    if math.isinf(right):
        return left
    return math.fmod(left, right)


def arithmetic(operator: str, left: float, right: float) -> float:
    """Apply a numeric binary operator to two floats."""
    if operator == "+":
        return left + right
    if operator == "-":
        return left - right
    if operator == "*":
        return left * right
    if operator == "/":
        return ieee_div(left, right)
    if operator == "%":
        return ieee_mod(left, right)
    raise ValueError(f"Unknown arithmetic operator: {operator}")


def add(left: Any, right: Any) -> Any:
    """`+`: string concatenation when either side is a string or container."""
    if (isinstance(left, str) or isinstance(right, str)
            or is_container(left) or is_container(right)
            or isinstance(left, CALLABLE_TYPES) or isinstance(right, CALLABLE_TYPES)):
        return to_string(left) + to_string(right)
    return to_number(left) + to_number(right)


def compare(operator: str, left: Any, right: Any) -> bool:
    """Relational comparison; two strings compare lexicographically."""
    if isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        a, b = to_number(left), to_number(right)
        if math.isnan(a) or math.isnan(b):
            return False
    if operator == "<":
        return a < b
    if operator == "<=":
        return a <= b
    if operator == ">":
        return a > b
    if operator == ">=":
        return a >= b
    raise ValueError(f"Unknown comparison operator: {operator}")


# ============================================================================
# Equality
# ============================================================================

def _kind(value: Any) -> str:
    if value is None or isinstance(value, UndefinedType):
        return "nullish"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if is_container(value):
        return "container"
    return "callable"


def strict_equals(left: Any, right: Any) -> bool:
    """Same-kind comparison: NaN differs from itself, containers by identity."""
    if left is None or isinstance(left, UndefinedType):
        return left is right
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return left is right


def loose_equals(left: Any, right: Any) -> bool:
    """`==` following the pinned coercion table."""
    left_kind, right_kind = _kind(left), _kind(right)

    if left_kind == "nullish" or right_kind == "nullish":
        return left_kind == right_kind

    if left_kind == right_kind:
        return strict_equals(left, right)

    if left_kind == "boolean":
        return loose_equals(to_number(left), right)
    if right_kind == "boolean":
        return loose_equals(left, to_number(right))

    if {left_kind, right_kind} == {"number", "string"}:
        return to_number(left) == to_number(right)

    if left_kind == "container" and right_kind in ("number", "string"):
        return loose_equals(to_string(left), right)
    if right_kind == "container" and left_kind in ("number", "string"):
        return loose_equals(left, to_string(right))

    return False


def same_value_zero(left: Any, right: Any) -> bool:
    """Equality used by `includes`: like strict equality but NaN matches NaN."""
    if is_number(left) and is_number(right) and math.isnan(left) and math.isnan(right):
        return True
    return strict_equals(left, right)


def from_host(value: Any) -> Any:
    """Convert a Python value supplied by the host into a Quill value."""
    if value is None or isinstance(value, (bool, str, UndefinedType)):
        return value
    if is_number(value):
        return float(value)
    if isinstance(value, (list, tuple)):
        return [from_host(item) for item in value]
    if isinstance(value, dict):
        return {str(key): from_host(item) for key, item in value.items()}
    if isinstance(value, CALLABLE_TYPES):
        return value
    if callable(value):
        host_function = value
        name = getattr(value, "__name__", "host")
        return BuiltinFunction(name, lambda evaluator, args: from_host(host_function(*args)))
    return value


__all__ = [
    "UNDEFINED", "UndefinedType", "FunctionValue", "BuiltinFunction",
    "ClassValue", "Instance", "BoundMethod", "CALLABLE_TYPES",
    "is_number", "is_container", "type_of", "truthy", "to_number",
    "format_number", "to_string", "to_display", "to_property_key",
    "ieee_div", "ieee_mod", "arithmetic", "add", "compare",
    "strict_equals", "loose_equals", "same_value_zero", "from_host",
]
