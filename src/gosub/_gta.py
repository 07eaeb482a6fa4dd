"""Global type analysis.

Package level declarations are resolved in two phases so that source order
never constrains declaration order:

1. `gta` runs on each file as it is parsed. It declares every top level
   name, loads imported packages, and resolves types where it can. A
   declaration that depends on a name not yet declared or not yet resolved
   is returned for revisiting.
2. `gta_retry` runs once every file of the package went through phase one.
   It retries the revisit list until no more progress is made. Anything
   still unresolved is an error.

Function bodies and initializer expressions are not checked here beyond
what is needed to infer a type, the CFG builder does that.
"""

__all__ = ["gta", "gta_retry", "qualified_symbol", "resolve_type"]

import logging

import gosub

logger = logging.getLogger(__name__)


class _Pending(Exception):
    """Resolution needs a name that is not ready yet."""

    def __init__(self, name):
        super().__init__(name)
        self.name = name


def gta(interp, root, rpath, import_path, pkg_name, scope):
    """Declare the top level names of one file.

    Args:
        interp: (Interp) Interpreter loading the package
        root: (File) AST root of the file
        rpath: (str) Context for imports made by the file
        import_path: (str) Registry key of the package
        pkg_name: (str) Package name
        scope: (Scope) Package scope being filled

    Returns:
        (list[Node]) Declarations to revisit

    Raises:
        GTAError: For a redeclared name or an invalid declaration
        GosubError: Any error from loading an imported package
    """
    revisit = []
    for decl in root.decls:
        match decl:
            case gosub.ast.Import():
                _import(interp, root, rpath, decl, scope)
                continue
            case gosub.ast.TypeDecl():
                decl.sym = _declare(root, scope, decl, gosub.SymKind.TYPE)
            case gosub.ast.FuncDecl():
                decl.sym = _declare(root, scope, decl, gosub.SymKind.FUNC)
            case gosub.ast.VarDecl():
                kind = gosub.SymKind.CONST if decl.const else gosub.SymKind.VAR
                decl.sym = _declare(root, scope, decl, kind)
                scope.add_global(decl.sym)
        try:
            _resolve(interp, root, scope, decl)
        except _Pending as e:
            logger.debug(f"gta {import_path}: revisit {decl.name}, needs {e.name}")
            decl.missing = e.name
            revisit.append(decl)
    return revisit


def gta_retry(interp, nodes, import_path, pkg_name, scope):
    """Resolve the declarations left over by `gta`.

    Raises:
        UnresolvedDeclarationError: If a declaration cannot be resolved
    """
    pending = list(nodes)
    while pending:
        left = []
        for decl in pending:
            root = scope.arena[decl.file_id]
            try:
                _resolve(interp, root, scope, decl)
            except _Pending as e:
                decl.missing = e.name
                left.append(decl)
        if len(left) == len(pending):
            break
        pending = left

    if pending:
        decl = pending[0]
        root = scope.arena[decl.file_id]
        if scope.lookup(root, decl.missing) is None:
            message = f"undefined: {decl.missing}"
        else:
            message = f"cannot resolve {decl.name}: {decl.missing} is not resolved"
        raise gosub.UnresolvedDeclarationError(
            message,
            import_path=import_path,
            position=decl.position,
            symbol=decl.name,
        )


def qualified_symbol(interp, pkg_sym, name):
    """Find an exported symbol of an imported package.

    Raises:
        LookupError: Describing why the name cannot be used
    """
    scope = interp.package_scope(pkg_sym.value)
    sym = scope.syms.get(name) if scope is not None else None
    if sym is None:
        raise LookupError(f"undefined: {pkg_sym.name}.{name}")
    if not name[:1].isupper():
        raise LookupError(
            f"name {name} not exported by package {pkg_sym.pkg_name}"
        )
    return sym


def _import(interp, root, rpath, decl, scope):
    key = interp.package_key(rpath, decl.path)
    display = interp.import_src(rpath, decl.path, skip_test=True)
    name = decl.name or display
    if name == "_":
        return
    if name in root.imports or name in scope.syms:
        raise gosub.RedeclaredError(
            f"{name} redeclared in this block",
            position=decl.position, symbol=name,
        )
    sym = gosub.Symbol(gosub.SymKind.PKG, name, node=decl.id)
    sym.resolved = True
    sym.value = key
    sym.pkg_name = display
    root.imports[name] = sym


def _declare(root, scope, decl, kind):
    """Create the symbol of a declaration and enter it into the package block."""
    sym = gosub.Symbol(kind, decl.name, node=decl.id)
    if decl.name == "_" or (kind is gosub.SymKind.FUNC and decl.name == "init"):
        sym.scope = scope
        return sym
    other = scope.syms.get(decl.name)
    if other is not None:
        raise gosub.RedeclaredError(
            f"{decl.name} redeclared in this block, "
            f"other declaration at {other.decl.position}",
            position=decl.position, symbol=decl.name,
        )
    if decl.name in root.imports:
        raise gosub.RedeclaredError(
            f"{decl.name} already declared through import of package",
            position=decl.position, symbol=decl.name,
        )
    return scope.declare(sym)


def _resolve(interp, root, scope, decl):
    """Compute the type of a declared symbol, raising _Pending if not ready."""
    sym = decl.sym
    match decl:
        case gosub.ast.TypeDecl():
            underlying = resolve_type(interp, root, scope, decl.underlying, _gta_error)
            sym.type = gosub.named_type(decl.name, underlying)
        case gosub.ast.FuncDecl():
            params = [
                resolve_type(interp, root, scope, p.type, _gta_error)
                for p in decl.params
            ]
            result = None
            if decl.result is not None:
                result = resolve_type(interp, root, scope, decl.result, _gta_error)
            sym.type = gosub.func_type(params, result)
        case gosub.ast.VarDecl():
            if decl.type is not None:
                sym.type = resolve_type(interp, root, scope, decl.type, _gta_error)
            else:
                value_type = _expr_type(interp, root, scope, decl.value)
                sym.type = value_type if decl.const else gosub.default(value_type)
    sym.resolved = True


def _gta_error(message, node):
    return gosub.GTAError(message, position=node.position)


def resolve_type(interp, root, scope, type_name, error, strict=False):
    """Find the Type named by a TypeName node.

    Args:
        error: (callable) Receives (message, node) and returns the
            exception to raise for an invalid type name
        strict: (bool) Report undeclared names through error instead of
            treating them as pending

    Raises:
        _Pending: When the type is declared but not resolved yet, or not
            declared at all while resolving package level declarations
    """
    if type_name.package is not None:
        pkg = root.imports.get(type_name.package)
        if pkg is None:
            raise error(f"undefined: {type_name.package}", type_name)
        try:
            sym = qualified_symbol(interp, pkg, type_name.name)
        except LookupError as e:
            raise error(str(e), type_name) from None
    else:
        sym = scope.lookup(root, type_name.name)
        if sym is None:
            if strict:
                raise error(f"undefined: {type_name.name}", type_name)
            raise _Pending(type_name.name)
    if sym.kind is not gosub.SymKind.TYPE:
        raise error(f"{type_name.unparse()} is not a type", type_name)
    if not sym.resolved:
        raise _Pending(type_name.name)
    return sym.type


def _expr_type(interp, root, scope, expr):
    """Infer the type of an initializer expression."""
    match expr:
        case gosub.ast.IntLit():
            return gosub.UNTYPED_INT
        case gosub.ast.StringLit():
            return gosub.UNTYPED_STRING
        case gosub.ast.Ident():
            return _value_type(scope.lookup(root, expr.name), expr)
        case gosub.ast.Selector():
            return _value_type(_selector_symbol(interp, root, expr), expr)
        case gosub.ast.Unary():
            operand = _expr_type(interp, root, scope, expr.operand)
            return gosub.unary_result(expr.op, operand) or operand
        case gosub.ast.Binary():
            left = _expr_type(interp, root, scope, expr.left)
            right = _expr_type(interp, root, scope, expr.right)
            return gosub.binary_result(expr.op, left, right) or left
        case gosub.ast.Call():
            return _call_type(interp, root, scope, expr)
        case _:
            raise ValueError(f"Unhandled expression node: {expr!r}")


def _call_type(interp, root, scope, call):
    func = call.func
    if isinstance(func, gosub.ast.Ident):
        sym = scope.lookup(root, func.name)
        if sym is None:
            raise _Pending(func.name)
    elif isinstance(func, gosub.ast.Selector):
        sym = _selector_symbol(interp, root, func)
    else:
        raise gosub.GTAError(f"cannot call {func.unparse()}", position=call.position)

    if sym.kind is gosub.SymKind.TYPE:
        if not sym.resolved:
            raise _Pending(sym.name)
        return sym.type
    if sym.kind is gosub.SymKind.BUILTIN:
        types = [_expr_type(interp, root, scope, arg) for arg in call.args]
        try:
            result = sym.value.check(types)
        except ValueError as e:
            raise gosub.GTAError(str(e), position=call.position) from None
    elif sym.kind is gosub.SymKind.FUNC:
        if not sym.resolved:
            raise _Pending(sym.name)
        result = sym.type.result
    else:
        raise gosub.GTAError(
            f"invalid operation: cannot call non-function {func.unparse()}",
            position=call.position,
        )
    if result is None:
        raise gosub.GTAError(
            f"{call.unparse()} (no value) used as value", position=call.position,
        )
    return result


def _selector_symbol(interp, root, selector):
    if not isinstance(selector.expr, gosub.ast.Ident):
        raise gosub.GTAError(f"invalid selector {selector.unparse()}", position=selector.position)
    pkg = root.imports.get(selector.expr.name)
    if pkg is None:
        raise gosub.GTAError(f"undefined: {selector.expr.name}", position=selector.position)
    try:
        return qualified_symbol(interp, pkg, selector.name)
    except LookupError as e:
        raise gosub.GTAError(str(e), position=selector.position) from None


def _value_type(sym, expr):
    if sym is None:
        raise _Pending(expr.unparse())
    match sym.kind:
        case gosub.SymKind.VAR | gosub.SymKind.CONST | gosub.SymKind.FUNC:
            if not sym.resolved:
                raise _Pending(sym.name)
            return sym.type
        case gosub.SymKind.TYPE:
            raise gosub.GTAError(f"{expr.unparse()} (type) is not an expression", position=expr.position)
        case gosub.SymKind.BUILTIN:
            raise gosub.GTAError(f"{expr.unparse()} (built-in function) must be called", position=expr.position)
        case gosub.SymKind.PKG:
            raise gosub.GTAError(f"use of package {expr.unparse()} without selector", position=expr.position)
