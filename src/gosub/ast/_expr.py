"""Expression nodes"""

__all__ = ["Ident", "IntLit", "StringLit", "Unary", "Binary", "Call", "Selector"]

from ._node import Node


class Ident(Node):
    """Identifier reference."""

    def __init__(self, name):
        super().__init__()
        self.name = name

    def unparse(self):
        return self.name


class IntLit(Node):
    """Integer literal."""

    def __init__(self, value):
        super().__init__()
        self.value = value

    def unparse(self):
        return str(self.value)


class StringLit(Node):
    """String literal, holding the decoded value."""

    def __init__(self, value):
        super().__init__()
        self.value = value

    def unparse(self):
        return '"' + self.value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class Unary(Node):
    """Unary operator applied to an operand."""

    def __init__(self, op, operand):
        super().__init__([operand])
        self.op = op
        self.operand = operand

    def unparse(self):
        return f"{self.op}{self.operand.unparse()}"


class Binary(Node):
    """Binary operator."""

    def __init__(self, op, left, right):
        super().__init__([left, right])
        self.op = op
        self.left = left
        self.right = right

    def unparse(self):
        return f"{self.left.unparse()} {self.op} {self.right.unparse()}"


class Call(Node):
    """Function call or type conversion."""

    def __init__(self, func, args):
        super().__init__([func, *args])
        self.func = func
        self.args = list(args)

    def unparse(self):
        args = ", ".join(arg.unparse() for arg in self.args)
        return f"{self.func.unparse()}({args})"


class Selector(Node):
    """Qualified identifier `pkg.Name`."""

    def __init__(self, expr, name):
        super().__init__([expr])
        self.expr = expr
        self.name = name

    def unparse(self):
        return f"{self.expr.unparse()}.{self.name}"
