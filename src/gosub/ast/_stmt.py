"""Statement nodes"""

__all__ = [
    "Block",
    "ExprStmt",
    "Assign",
    "Define",
    "IncDec",
    "Return",
    "BranchStmt",
    "If",
    "For",
]

from ._node import Node


class Block(Node):
    """Braced statement list, which opens a new scope."""

    def __init__(self, stmts):
        super().__init__(stmts)

    @property
    def stmts(self):
        return self.kids


class ExprStmt(Node):
    """Expression evaluated for its side effects."""

    def __init__(self, expr):
        super().__init__([expr])
        self.expr = expr


class Assign(Node):
    """Assignment `a, b = x, y` or operator assignment `a += x`.

    Attributes:
        op: (str) Assignment operator, "=" or an operator like "+="
        targets: (list[Node]) Assigned expressions
        values: (list[Node]) Assigned values, same length as targets
    """

    def __init__(self, op, targets, values):
        super().__init__([*targets, *values])
        self.op = op
        self.targets = list(targets)
        self.values = list(values)


class Define(Node):
    """Short variable declaration `a, b := x, y`.

    Attributes:
        names: (list[Ident]) Declared or reassigned names
        values: (list[Node]) Values, same length as names
    """

    def __init__(self, names, values):
        super().__init__([*names, *values])
        self.names = list(names)
        self.values = list(values)


class IncDec(Node):
    """Increment or decrement statement."""

    def __init__(self, op, target):
        super().__init__([target])
        self.op = op
        self.target = target


class Return(Node):
    """Return statement with optional result."""

    def __init__(self, value):
        super().__init__([value])
        self.value = value


class BranchStmt(Node):
    """`break` or `continue` of the innermost loop."""

    def __init__(self, keyword):
        super().__init__()
        self.keyword = keyword


class If(Node):
    """If statement.

    Attributes:
        init: (Node | None) Simple statement run before the condition
        cond: (Node) Condition expression
        body: (Block) Statements run when the condition holds
        orelse: (Block | If | None) Else branch
    """

    def __init__(self, init, cond, body, orelse):
        super().__init__([init, cond, body, orelse])
        self.init = init
        self.cond = cond
        self.body = body
        self.orelse = orelse


class For(Node):
    """For loop. Every clause is optional; no condition loops forever."""

    def __init__(self, init, cond, post, body):
        super().__init__([init, cond, post, body])
        self.init = init
        self.cond = cond
        self.post = post
        self.body = body
