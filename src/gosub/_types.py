"""Static types of the gosub language.

Only three basic kinds exist: int, string and bool. Named types declared with
`type Name Underlying` share the kind of their underlying type but are
distinct from it. Untyped constants (literals and constant expressions) take
a concrete type from the context they are used in.
"""

__all__ = [
    "Type",
    "INT",
    "STRING",
    "BOOL",
    "UNTYPED_INT",
    "UNTYPED_STRING",
    "UNTYPED_BOOL",
    "func_type",
    "named_type",
    "identical",
    "assignable",
    "convertible",
    "default",
    "zero_value",
    "common_type",
    "binary_result",
    "unary_result",
]


class Type:
    """Static type of a value.

    Args:
        name: (str) Type name used in messages
        kind: (str) One of "int", "string", "bool" or "func"
        params: (list[Type] | None) Parameter types of a func type
        result: (Type | None) Result type of a func type
        untyped: (bool) Whether this is the type of an untyped constant
    """

    def __init__(self, name, kind, params=None, result=None, untyped=False):
        self.name = name
        self.kind = kind
        self.params = list(params) if params is not None else None
        self.result = result
        self.untyped = untyped

    def __repr__(self):
        return f"Type<{self}>"

    def __str__(self):
        if self.kind == "func" and self.name == "func":
            params = ", ".join(str(p) for p in self.params)
            result = f" {self.result}" if self.result is not None else ""
            return f"func({params}){result}"
        return self.name


INT = Type("int", "int")
STRING = Type("string", "string")
BOOL = Type("bool", "bool")
UNTYPED_INT = Type("untyped int", "int", untyped=True)
UNTYPED_STRING = Type("untyped string", "string", untyped=True)
UNTYPED_BOOL = Type("untyped bool", "bool", untyped=True)

_DEFAULTS = {"int": INT, "string": STRING, "bool": BOOL}
_ZEROS = {"int": 0, "string": "", "bool": False}

_ARITHMETIC = {
    "+": ("int", "string"),
    "-": ("int",),
    "*": ("int",),
    "/": ("int",),
    "%": ("int",),
}
_COMPARE = {"==", "!=", "<", "<=", ">", ">="}
_ORDERED = ("int", "string")
_LOGICAL = {"&&", "||"}


def func_type(params, result):
    """Create the type of a function with given parameter and result types."""
    return Type("func", "func", params=params, result=result)


def named_type(name, underlying):
    """Create a distinct named type sharing the kind of underlying."""
    return Type(name, underlying.kind)


def identical(a, b):
    """Whether two types are the same type."""
    if a is b:
        return True
    if a.kind == "func" and b.kind == "func" and a.name == b.name == "func":
        if len(a.params) != len(b.params):
            return False
        if not all(identical(x, y) for x, y in zip(a.params, b.params)):
            return False
        if a.result is None or b.result is None:
            return a.result is b.result
        return identical(a.result, b.result)
    return False


def assignable(value, target):
    """Whether a value of type `value` can be stored where `target` is expected."""
    if value.untyped:
        return value.kind == target.kind and target.kind != "func"
    return identical(value, target)


def convertible(value, target):
    """Whether `T(x)` is allowed for x of type value and T of type target."""
    return value.kind == target.kind and target.kind != "func"


def default(type):
    """Concrete type an untyped constant takes when nothing else decides."""
    if type.untyped:
        return _DEFAULTS[type.kind]
    return type


def zero_value(type):
    """Initial value of a variable of the given type."""
    return _ZEROS.get(type.kind)


def common_type(left, right):
    """Common operand type of a binary operation, or None."""
    if left.untyped and right.untyped:
        return left if left.kind == right.kind else None
    if left.untyped:
        return right if assignable(left, right) else None
    if right.untyped:
        return left if assignable(right, left) else None
    return left if identical(left, right) else None


def binary_result(op, left, right):
    """Result type of a binary operation.

    Returns:
        (Type | None) Result type, None when the operands are invalid
    """
    operand = common_type(left, right)
    if operand is None:
        return None
    if op in _LOGICAL:
        return operand if operand.kind == "bool" else None
    if op in _COMPARE:
        if operand.kind == "func":
            return None
        if op not in ("==", "!=") and operand.kind not in _ORDERED:
            return None
        return UNTYPED_BOOL
    kinds = _ARITHMETIC.get(op)
    if kinds is None or operand.kind not in kinds:
        return None
    return operand


def unary_result(op, operand):
    """Result type of a unary operation, None when invalid."""
    if op in ("-", "+"):
        return operand if operand.kind == "int" else None
    if op == "!":
        return operand if operand.kind == "bool" else None
    return None
