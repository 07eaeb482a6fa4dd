"""Build executable control flow graphs from the AST.

Statements become graph nodes linked through `next`, with `Branch` nodes
choosing between `tnext` and `fnext`. Expressions become small code objects
evaluated by the graph nodes. All names are resolved while building, either
to a local slot of the function frame or to a global slot of a package in
the shared frame, so running the graph does no lookups.

Running a graph is a plain loop, see `gosub.run_node`.
"""

__all__ = [
    "cfg",
    "gen_run",
    "gen_global_vars",
    "Nop",
    "Eval",
    "Store",
    "Branch",
    "ReturnNode",
    "BindFunc",
]

import logging

import gosub

logger = logging.getLogger(__name__)


def cfg(interp, root, import_path, pkg_name, scope):
    """Build the code of every function and global initializer of a file.

    Each FuncDecl gets its Function in `code`, each VarDecl with an
    initializer gets the initializer code in `code`. Package level symbols
    read by a declaration are collected into its `refs`.

    Args:
        interp: (Interp) Interpreter loading the package
        root: (File) AST root of the file
        import_path: (str) Registry key of the package
        pkg_name: (str) Package name
        scope: (Scope) Package scope, complete after global type analysis

    Returns:
        (list[Function]) The `init` functions of the file in source order

    Raises:
        CFGError: If a function body or initializer is invalid
    """
    inits = []
    for decl in root.decls:
        match decl:
            case gosub.ast.FuncDecl():
                if pkg_name == "main" and decl.name == "main" and (decl.params or decl.result):
                    raise gosub.CFGError(
                        "func main must have no arguments and no return values",
                        position=decl.position, symbol=decl.name,
                    )
                builder = Builder(interp, root, scope, decl.refs)
                decl.code = builder.build_func(decl)
                if decl.name == "init":
                    inits.append(decl.code)
            case gosub.ast.VarDecl() if decl.value is not None:
                builder = Builder(interp, root, scope, decl.refs)
                code, type = builder.build_value(decl.value)
                builder.check_assign(decl.value, type, decl.sym.type, "variable declaration")
                decl.code = code
    logger.debug(f"cfg {import_path}: {root.filename} has {len(inits)} init functions")
    return inits


def gen_run(root):
    """Generate the wrapper binding the functions of a file to their symbols.

    Returns:
        Entry node of the wrapper graph
    """
    entry = tail = Nop()
    for decl in root.decls:
        if not isinstance(decl, gosub.ast.FuncDecl):
            continue
        if decl.name in ("_", "init"):
            continue
        tail.next = BindFunc(decl.sym, decl.code)
        tail = tail.next
    return entry


def gen_global_vars(roots, scope):
    """Generate the graph initializing the package level variables.

    Variables are initialized in dependency order: a variable is initialized
    after every variable its initializer reads, directly or through the
    functions it calls. Among the variables that are ready, the earliest in
    file then declaration order goes first. Variables without initializer
    hold their zero value from the start.

    Returns:
        Entry node of the initialization graph

    Raises:
        CFGError: If the initializers depend on each other in a cycle
    """
    decls = []
    for root in roots:
        decls.extend(d for d in root.decls if isinstance(d, gosub.ast.VarDecl))
    funcs = {
        d.sym: d for root in roots for d in root.decls
        if isinstance(d, gosub.ast.FuncDecl)
    }

    done = {d.sym for d in decls if d.value is None}
    pending = [d for d in decls if d.value is not None]
    deps = {d.sym: _var_deps(d, funcs, scope) for d in pending}

    entry = tail = Nop()
    while pending:
        for decl in pending:
            if deps[decl.sym] <= done:
                break
        else:
            decl = pending[0]
            raise gosub.CFGError(
                f"initialization cycle: {decl.name} refers to itself",
                position=decl.position, symbol=decl.name,
            )
        pending.remove(decl)
        done.add(decl.sym)
        tail.next = Store([GlobalTarget(scope, decl.sym.index)], [decl.code])
        tail = tail.next
    return entry


def _var_deps(decl, funcs, scope):
    """Variables of the package read by an initializer, through calls too."""
    deps = set()
    seen = set()
    pending = list(decl.refs)
    while pending:
        sym = pending.pop()
        if sym in seen or sym.scope is not scope:
            continue
        seen.add(sym)
        if sym.kind in (gosub.SymKind.VAR, gosub.SymKind.CONST):
            deps.add(sym)
        elif sym.kind is gosub.SymKind.FUNC and sym in funcs:
            pending.extend(funcs[sym].refs)
    return deps


# Graph nodes


class Nop:
    """Node doing nothing, used as entry, join and jump point."""

    def __init__(self):
        self.next = None

    def __repr__(self):
        return f"{self.__class__.__name__}<>"

    def execute(self, frame):
        return self.next


class Eval(Nop):
    """Evaluate an expression for its side effects."""

    def __init__(self, code):
        super().__init__()
        self.code = code

    def execute(self, frame):
        self.code.evaluate(frame)
        return self.next


class Store(Nop):
    """Evaluate values then store them into targets, like `a, b = b, a`."""

    def __init__(self, targets, codes):
        super().__init__()
        self.targets = targets
        self.codes = codes

    def execute(self, frame):
        values = [code.evaluate(frame) for code in self.codes]
        for target, value in zip(self.targets, values):
            target.store(frame, value)
        return self.next


class Branch(Nop):
    """Continue with tnext when the condition holds, else with fnext."""

    def __init__(self, cond):
        super().__init__()
        self.cond = cond
        self.tnext = None
        self.fnext = None

    def execute(self, frame):
        if self.cond.evaluate(frame):
            return self.tnext
        return self.fnext


class ReturnNode(Nop):
    """Set the frame result and leave the function."""

    def __init__(self, code):
        super().__init__()
        self.code = code

    def execute(self, frame):
        if self.code is not None:
            frame.result = self.code.evaluate(frame)
        return None


class BindFunc(Nop):
    """Make a compiled function the value of its symbol."""

    def __init__(self, sym, function):
        super().__init__()
        self.sym = sym
        self.function = function

    def execute(self, frame):
        self.sym.value = self.function
        return self.next


# Assignment targets


class LocalTarget:
    def __init__(self, index):
        self.index = index

    def store(self, frame, value):
        frame.data[self.index] = value


class GlobalTarget:
    def __init__(self, scope, index):
        self.scope = scope
        self.index = index

    def store(self, frame, value):
        frame.globals.data[self.scope.base + self.index] = value


class DiscardTarget:
    def store(self, frame, value):
        pass


# Expression code


class Const:
    def __init__(self, value):
        self.value = value

    def evaluate(self, frame):
        return self.value


class Local:
    def __init__(self, index):
        self.index = index

    def evaluate(self, frame):
        return frame.data[self.index]


class Global:
    def __init__(self, scope, index):
        self.scope = scope
        self.index = index

    def evaluate(self, frame):
        return frame.globals.data[self.scope.base + self.index]


class FuncValue:
    def __init__(self, sym):
        self.sym = sym

    def evaluate(self, frame):
        return self.sym.value


def _div(left, right):
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


def _mod(left, right):
    return left - right * _div(left, right)


_BINARY = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _div,
    "%": _mod,
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
}

_UNARY = {
    "-": lambda a: -a,
    "+": lambda a: a,
    "!": lambda a: not a,
}


class BinaryOp:
    """Binary operator. Integer division truncates toward zero."""

    def __init__(self, op, left, right, position):
        self.op = op
        self.func = _BINARY[op]
        self.left = left
        self.right = right
        self.position = position

    def evaluate(self, frame):
        left = self.left.evaluate(frame)
        right = self.right.evaluate(frame)
        if self.op in ("/", "%") and right == 0:
            raise gosub.ExecutionError(
                "runtime error: integer divide by zero", position=self.position,
            )
        return self.func(left, right)


class AndOp:
    def __init__(self, left, right):
        self.left = left
        self.right = right

    def evaluate(self, frame):
        return self.left.evaluate(frame) and self.right.evaluate(frame)


class OrOp:
    def __init__(self, left, right):
        self.left = left
        self.right = right

    def evaluate(self, frame):
        return self.left.evaluate(frame) or self.right.evaluate(frame)


class UnaryOp:
    def __init__(self, op, operand):
        self.func = _UNARY[op]
        self.operand = operand

    def evaluate(self, frame):
        return self.func(self.operand.evaluate(frame))


class CallOp:
    """Call a compiled function value."""

    def __init__(self, func, args, position):
        self.func = func
        self.args = args
        self.position = position

    def evaluate(self, frame):
        function = self.func.evaluate(frame)
        args = [arg.evaluate(frame) for arg in self.args]
        if function is None:
            raise gosub.ExecutionError(
                "runtime error: call of function before it is bound",
                position=self.position,
            )
        return function.invoke(frame.globals, args)


class BuiltinCall:
    """Call a predeclared function."""

    def __init__(self, builtin, args, options, position):
        self.builtin = builtin
        self.args = args
        self.options = options
        self.position = position

    def evaluate(self, frame):
        args = [arg.evaluate(frame) for arg in self.args]
        try:
            return self.builtin.impl(self.options, args)
        except gosub.ExecutionError as e:
            raise e.annotate(position=self.position)


class Convert:
    """Type conversion between types of the same kind."""

    def __init__(self, operand):
        self.operand = operand

    def evaluate(self, frame):
        return self.operand.evaluate(frame)


# Builder


class _Local:
    def __init__(self, name, index, type):
        self.name = name
        self.index = index
        self.type = type


class _Loop:
    def __init__(self, continue_to):
        self.continue_to = continue_to
        self.breaks = []


def _link(tails, target):
    for node, attr in tails:
        setattr(node, attr, target)


class Builder:
    """Builds function bodies and initializers of one file.

    Statement builders return `(entry, tails)`: the first node of the
    statement and the list of `(node, attribute)` pairs still to be linked
    to whatever follows. A statement that never completes normally, like
    `return`, has no tails.

    Args:
        interp: (Interp) Interpreter, for builtin options and imports
        root: (File) AST root of the file
        scope: (Scope) Package scope
        refs: (set[Symbol]) Receives the package level symbols read
    """

    def __init__(self, interp, root, scope, refs):
        self.interp = interp
        self.root = root
        self.scope = scope
        self.refs = refs
        self.blocks = []
        self.loops = []
        self.nlocals = 0
        self.result = None

    def error(self, message, node):
        return gosub.CFGError(message, position=node.position)

    def build_func(self, decl):
        """Compile a function declaration into a Function."""
        function = gosub.Function(decl.name, len(decl.params))
        self.result = decl.sym.type.result if decl.sym.type is not None else None
        params = {}
        self.blocks.append(params)
        for param, type in zip(decl.params, decl.sym.type.params):
            index = self.nlocals
            self.nlocals += 1
            if param.name == "_":
                continue
            if param.name in params:
                raise self.error(f"duplicate argument {param.name}", param)
            params[param.name] = _Local(param.name, index, type)

        entry, tails = self.stmts(decl.body.stmts)
        self.blocks.pop()
        if self.result is not None and tails:
            raise gosub.CFGError(
                f"missing return in {decl.name}",
                position=_end_position(decl), symbol=decl.name,
            )
        function.entry = entry
        function.nlocals = self.nlocals
        return function

    # Names

    def lookup_local(self, name):
        for block in reversed(self.blocks):
            local = block.get(name)
            if local is not None:
                return local
        return None

    def declare_local(self, node, name, type):
        """Allocate a local slot in the current block."""
        index = self.nlocals
        self.nlocals += 1
        if name == "_":
            return _Local(name, index, type)
        block = self.blocks[-1]
        if name in block:
            raise self.error(f"{name} redeclared in this block", node)
        local = block[name] = _Local(name, index, type)
        return local

    def package_symbol(self, node):
        """Find the package level symbol for an Ident or Selector node."""
        if isinstance(node, gosub.ast.Selector):
            if not isinstance(node.expr, gosub.ast.Ident):
                raise self.error(f"invalid selector {node.unparse()}", node)
            pkg = self.root.imports.get(node.expr.name)
            if pkg is None or self.lookup_local(node.expr.name) is not None:
                raise self.error(f"undefined: {node.expr.name}", node)
            try:
                return gosub.qualified_symbol(self.interp, pkg, node.name)
            except LookupError as e:
                raise self.error(str(e), node) from None
        sym = self.scope.lookup(self.root, node.name)
        if sym is None:
            raise self.error(f"undefined: {node.name}", node)
        if sym.scope is self.scope and sym.kind in (gosub.SymKind.VAR, gosub.SymKind.CONST, gosub.SymKind.FUNC):
            self.refs.add(sym)
        return sym

    # Statements

    def block(self, block):
        self.blocks.append({})
        try:
            return self.stmts(block.stmts)
        finally:
            self.blocks.pop()

    def stmts(self, stmts):
        entry = Nop()
        tails = [(entry, "next")]
        for stmt in stmts:
            stmt_entry, stmt_tails = self.stmt(stmt)
            _link(tails, stmt_entry)
            tails = stmt_tails
        return entry, tails

    def stmt(self, node):
        match node:
            case gosub.ast.Block():
                return self.block(node)
            case gosub.ast.ExprStmt():
                if not isinstance(node.expr, gosub.ast.Call):
                    raise self.error(f"{node.expr.unparse()} (value) is not used", node)
                code, _ = self.build_expr(node.expr)
                return self.simple(Eval(code))
            case gosub.ast.VarDecl():
                return self.var_stmt(node)
            case gosub.ast.Define():
                return self.define(node)
            case gosub.ast.Assign():
                return self.assign(node)
            case gosub.ast.IncDec():
                one = gosub.ast.IntLit(1)
                one.position = node.position
                return self.op_assign(node, node.op[0], node.target, one)
            case gosub.ast.Return():
                return self.return_stmt(node)
            case gosub.ast.BranchStmt():
                return self.branch_stmt(node)
            case gosub.ast.If():
                self.blocks.append({})
                try:
                    return self.if_stmt(node)
                finally:
                    self.blocks.pop()
            case gosub.ast.For():
                self.blocks.append({})
                try:
                    return self.for_stmt(node)
                finally:
                    self.blocks.pop()
            case _:
                raise ValueError(f"Unhandled statement node: {node!r}")

    def simple(self, graph_node):
        return graph_node, [(graph_node, "next")]

    def var_stmt(self, node):
        type = None
        if node.type is not None:
            type = gosub.resolve_type(
                self.interp, self.root, self.scope, node.type, self.error, strict=True,
            )
        if node.value is not None:
            code, value_type = self.build_value(node.value)
            if type is None:
                type = gosub.default(value_type)
            else:
                self.check_assign(node.value, value_type, type, "variable declaration")
        else:
            code = Const(gosub.zero_value(type))
        if node.const:
            raise self.error("constant declarations are only supported at package level", node)
        local = self.declare_local(node, node.name, type)
        return self.simple(Store([LocalTarget(local.index)], [code]))

    def define(self, node):
        values = [self.build_value(v) for v in node.values]
        block = self.blocks[-1]
        targets = []
        new = False
        for name, (code, type) in zip(node.names, values):
            if name.name == "_":
                targets.append(DiscardTarget())
                continue
            local = block.get(name.name)
            if local is not None:
                self.check_assign(name, type, local.type, "assignment")
            else:
                new = True
                local = self.declare_local(name, name.name, gosub.default(type))
            targets.append(LocalTarget(local.index))
        if not new:
            raise self.error("no new variables on left side of :=", node)
        return self.simple(Store(targets, [code for code, _ in values]))

    def assign(self, node):
        if node.op != "=":
            return self.op_assign(node, node.op[:-1], node.targets[0], node.values[0])
        targets = []
        codes = []
        for target, value in zip(node.targets, node.values):
            code, value_type = self.build_value(value)
            store, target_type = self.target(target)
            if target_type is not None:
                self.check_assign(value, value_type, target_type, "assignment")
            targets.append(store)
            codes.append(code)
        return self.simple(Store(targets, codes))

    def op_assign(self, node, op, target, value):
        store, target_type = self.target(target)
        if target_type is None:
            raise self.error("cannot use _ as value", target)
        current, _ = self.build_value(target)
        code, value_type = self.build_value(value)
        result = gosub.binary_result(op, target_type, value_type)
        if result is None:
            raise self.error(
                f"invalid operation: {target.unparse()} {op}= {value.unparse()} "
                f"(mismatched types {target_type} and {value_type})", node,
            )
        return self.simple(Store([store], [BinaryOp(op, current, code, node.position)]))

    def target(self, node):
        """Assignment target for an expression and its type, None for `_`."""
        if isinstance(node, gosub.ast.Ident):
            if node.name == "_":
                return DiscardTarget(), None
            local = self.lookup_local(node.name)
            if local is not None:
                return LocalTarget(local.index), local.type
        elif not isinstance(node, gosub.ast.Selector):
            raise self.error(f"cannot assign to {node.unparse()}", node)
        sym = self.package_symbol(node)
        if sym.kind is gosub.SymKind.CONST:
            raise self.error(f"cannot assign to {node.unparse()} (constant)", node)
        if sym.kind is not gosub.SymKind.VAR:
            raise self.error(f"cannot assign to {node.unparse()}", node)
        return GlobalTarget(sym.scope, sym.index), sym.type

    def return_stmt(self, node):
        if node.value is None:
            if self.result is not None:
                raise self.error("not enough return values", node)
            return ReturnNode(None), []
        if self.result is None:
            raise self.error("too many return values", node)
        code, type = self.build_value(node.value)
        self.check_assign(node.value, type, self.result, "return statement")
        return ReturnNode(code), []

    def branch_stmt(self, node):
        if not self.loops:
            raise self.error(f"{node.keyword} is not in a loop", node)
        loop = self.loops[-1]
        jump = Nop()
        if node.keyword == "break":
            loop.breaks.append((jump, "next"))
        else:
            jump.next = loop.continue_to
        return jump, []

    def condition(self, node):
        code, type = self.build_value(node)
        if type.kind != "bool":
            raise self.error(f"non-boolean condition {node.unparse()} ({type})", node)
        return code

    def if_stmt(self, node):
        entry = Nop()
        tails = [(entry, "next")]
        if node.init is not None:
            init_entry, init_tails = self.stmt(node.init)
            _link(tails, init_entry)
            tails = init_tails
        branch = Branch(self.condition(node.cond))
        _link(tails, branch)

        body_entry, body_tails = self.block(node.body)
        branch.tnext = body_entry
        if node.orelse is None:
            return entry, body_tails + [(branch, "fnext")]
        else_entry, else_tails = self.stmt(node.orelse)
        branch.fnext = else_entry
        return entry, body_tails + else_tails

    def for_stmt(self, node):
        entry = Nop()
        tails = [(entry, "next")]
        if node.init is not None:
            init_entry, init_tails = self.stmt(node.init)
            _link(tails, init_entry)
            tails = init_tails
        head = Nop()
        _link(tails, head)

        exits = []
        body_from = (head, "next")
        if node.cond is not None:
            branch = Branch(self.condition(node.cond))
            head.next = branch
            body_from = (branch, "tnext")
            exits.append((branch, "fnext"))

        continue_to = head
        if node.post is not None:
            post_entry, post_tails = self.stmt(node.post)
            _link(post_tails, head)
            continue_to = post_entry

        loop = _Loop(continue_to)
        self.loops.append(loop)
        try:
            body_entry, body_tails = self.block(node.body)
        finally:
            self.loops.pop()
        _link([body_from], body_entry)
        _link(body_tails, continue_to)
        return entry, exits + loop.breaks

    # Expressions

    def check_assign(self, node, value_type, target_type, context):
        if not gosub.assignable(value_type, target_type):
            raise self.error(
                f"cannot use {node.unparse()} ({value_type}) as {target_type} "
                f"value in {context}", node,
            )

    def build_value(self, node):
        """Build an expression that must produce a value."""
        code, type = self.build_expr(node)
        if type is None:
            raise self.error(f"{node.unparse()} (no value) used as value", node)
        return code, type

    def build_expr(self, node):
        """Build expression code. Returns (code, type), type None for no value."""
        match node:
            case gosub.ast.IntLit():
                return Const(node.value), gosub.UNTYPED_INT
            case gosub.ast.StringLit():
                return Const(node.value), gosub.UNTYPED_STRING
            case gosub.ast.Ident() | gosub.ast.Selector():
                return self.name(node)
            case gosub.ast.Unary():
                operand, type = self.build_value(node.operand)
                result = gosub.unary_result(node.op, type)
                if result is None:
                    raise self.error(
                        f"invalid operation: operator {node.op} not defined on "
                        f"{node.operand.unparse()} ({type})", node,
                    )
                return UnaryOp(node.op, operand), result
            case gosub.ast.Binary():
                return self.binary(node)
            case gosub.ast.Call():
                return self.call(node)
            case _:
                raise ValueError(f"Unhandled expression node: {node!r}")

    def name(self, node):
        if isinstance(node, gosub.ast.Ident):
            if node.name == "_":
                raise self.error("cannot use _ as value", node)
            local = self.lookup_local(node.name)
            if local is not None:
                return Local(local.index), local.type
        sym = self.package_symbol(node)
        match sym.kind:
            case gosub.SymKind.VAR | gosub.SymKind.CONST:
                if sym.scope is None:
                    return Const(sym.value), sym.type
                return Global(sym.scope, sym.index), sym.type
            case gosub.SymKind.FUNC:
                return FuncValue(sym), sym.type
            case gosub.SymKind.TYPE:
                raise self.error(f"{node.unparse()} (type) is not an expression", node)
            case gosub.SymKind.BUILTIN:
                raise self.error(f"{node.unparse()} (built-in function) must be called", node)
            case gosub.SymKind.PKG:
                raise self.error(f"use of package {node.unparse()} without selector", node)

    def binary(self, node):
        left, left_type = self.build_value(node.left)
        right, right_type = self.build_value(node.right)
        result = gosub.binary_result(node.op, left_type, right_type)
        if result is None:
            if gosub.common_type(left_type, right_type) is None:
                reason = f"mismatched types {left_type} and {right_type}"
            else:
                reason = f"operator {node.op} not defined on {node.left.unparse()} ({left_type})"
            raise self.error(f"invalid operation: {node.unparse()} ({reason})", node)
        if node.op == "&&":
            return AndOp(left, right), result
        if node.op == "||":
            return OrOp(left, right), result
        return BinaryOp(node.op, left, right, node.position), result

    def call(self, node):
        func = node.func
        sym = None
        if isinstance(func, (gosub.ast.Ident, gosub.ast.Selector)):
            if not (isinstance(func, gosub.ast.Ident) and self.lookup_local(func.name)):
                sym = self.package_symbol(func)

        if sym is not None and sym.kind is gosub.SymKind.TYPE:
            if len(node.args) != 1:
                raise self.error(f"wrong argument count in conversion to {sym.type}", node)
            code, type = self.build_value(node.args[0])
            if not gosub.convertible(type, sym.type):
                raise self.error(
                    f"cannot convert {node.args[0].unparse()} ({type}) to type {sym.type}", node,
                )
            return Convert(code), sym.type

        if sym is not None and sym.kind is gosub.SymKind.BUILTIN:
            args = [self.build_value(arg) for arg in node.args]
            try:
                result = sym.value.check([type for _, type in args])
            except ValueError as e:
                raise self.error(str(e), node) from None
            codes = [code for code, _ in args]
            return BuiltinCall(sym.value, codes, self.interp.options, node.position), result

        code, type = self.build_value(func)
        if type.kind != "func":
            raise self.error(
                f"invalid operation: cannot call non-function {func.unparse()} ({type})", node,
            )
        if len(node.args) < len(type.params):
            raise self.error(f"not enough arguments in call to {func.unparse()}", node)
        if len(node.args) > len(type.params):
            raise self.error(f"too many arguments in call to {func.unparse()}", node)
        codes = []
        for arg, param_type in zip(node.args, type.params):
            arg_code, arg_type = self.build_value(arg)
            self.check_assign(arg, arg_type, param_type, f"argument to {func.unparse()}")
            codes.append(arg_code)
        return CallOp(code, codes, node.position), type.result


def _end_position(decl):
    """Position of the closing brace of a function."""
    position = decl.body.position
    return gosub.ast.SourcePosition(
        filename=position.filename,
        start_line=position.end_line,
        start_column=position.end_column,
    )
