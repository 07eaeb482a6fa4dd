"""Convert lark syntax trees into arena registered AST nodes."""

__all__ = ["build_ast"]

import ast as python_ast

import lark

import gosub

from ._decl import File, FuncDecl, Import, Param, TypeDecl, TypeName, VarDecl
from ._expr import Binary, Call, Ident, IntLit, Selector, StringLit, Unary
from ._node import SourcePosition
from ._stmt import (Assign, Block, BranchStmt, Define, ExprStmt, For, If,
                    IncDec, Return)


def build_ast(tree, filename, arena):
    """Build the AST for one parsed file.

    Args:
        tree: (lark.Tree) Tree returned by `gosub.parse`
        filename: (str) Source filename, recorded in node positions
        arena: (Arena) Arena that receives every created node

    Returns:
        (tuple[str, File]) Declared package name and the file root

    Raises:
        gosub.ASTError: If the tree describes an invalid construct
    """
    builder = _Builder(filename, arena)
    root = builder.file(tree)
    return root.package, root


class _Builder:
    """Conversion state for a single file."""

    def __init__(self, filename, arena):
        self.filename = filename
        self.arena = arena

    def error(self, message, tree):
        raise gosub.ASTError(message, position=self.position(tree))

    def position(self, tree):
        """Create the SourcePosition from a lark Tree or Token."""
        if isinstance(tree, lark.Token):
            source = tree
        elif isinstance(tree, lark.Tree):
            source = tree.meta
        else:
            return SourcePosition(filename=self.filename)
        line = getattr(source, "line", None)
        column = getattr(source, "column", None)
        return SourcePosition(
            filename=self.filename,
            start_line=line,
            start_column=column,
            end_line=getattr(source, "end_line", None) or line,
            end_column=getattr(source, "end_column", None) or column,
        )

    def node(self, node, tree):
        """Apply position from tree and register node in the arena."""
        node.position = self.position(tree)
        return self.arena.add(node)

    # Declarations

    def file(self, tree):
        kids = tree.children
        package = kids[0].children[0].value
        decls = []
        for kid in kids[1:]:
            decls.extend(self.decl(kid))
        root = self.node(File(package, self.filename, decls), tree)
        for decl in decls:
            decl.file_id = root.id
        return root

    def decl(self, tree):
        """Convert a top level declaration into a list of nodes."""
        match tree.data:
            case "import_decl":
                return [self.import_spec(spec) for spec in tree.children]
            case "type_decl":
                return [self.type_spec(spec) for spec in tree.children]
            case "var_decl":
                return self.var_decl(tree)
            case "const_decl":
                return self.var_decl(tree)
            case "func_decl":
                return [self.func_decl(tree)]
            case _:
                raise ValueError(f"Unhandled declaration rule: {tree.data}")

    def import_spec(self, tree):
        name, path = tree.children
        path_value = self.string_value(path)
        if not path_value:
            self.error("invalid import path: empty string", path)
        alias = name.value if name is not None else None
        return self.node(Import(alias, path_value), tree)

    def type_spec(self, tree):
        name, underlying = tree.children
        return self.node(TypeDecl(name.value, self.type_name(underlying)), tree)

    def type_name(self, tree):
        if tree is None:
            return None
        names = [token.value for token in tree.children]
        if len(names) == 2:
            return self.node(TypeName(names[1], names[0]), tree)
        return self.node(TypeName(names[0]), tree)

    def var_decl(self, tree):
        """Split var and const specs into one VarDecl per name."""
        const = tree.data == "const_decl"
        result = []
        for spec in tree.children:
            names = []
            type_tree = values_tree = None
            for kid in spec.children:
                if isinstance(kid, lark.Token):
                    names.append(kid)
                elif isinstance(kid, lark.Tree) and kid.data == "type_name":
                    type_tree = kid
                elif isinstance(kid, lark.Tree):
                    values_tree = kid
            values = self.expr_list(values_tree) if values_tree is not None else []
            if type_tree is None and not values:
                self.error("missing variable type or initialization", spec)
            if values and len(values) != len(names):
                self.error(
                    f"assignment mismatch: {len(names)} variable"
                    f"{'s' if len(names) != 1 else ''} but {len(values)} "
                    f"value{'s' if len(values) != 1 else ''}",
                    spec,
                )
            for i, name in enumerate(names):
                type_name = self.type_name(type_tree)
                value = values[i] if values else None
                decl = VarDecl(name.value, type_name, value, const=const)
                result.append(self.node(decl, name))
        return result

    def func_decl(self, tree):
        name, params_tree, result_tree, body_tree = tree.children
        params = []
        if params_tree is not None:
            for param in params_tree.children:
                *names, type_tree = param.children
                for token in names:
                    params.append(self.node(Param(token.value, self.type_name(type_tree)), token))
        result = self.type_name(result_tree)
        if name.value == "init" and (params or result is not None):
            self.error("func init must have no arguments and no return values", tree)
        body = self.block(body_tree)
        return self.node(FuncDecl(name.value, params, result, body), tree)

    # Statements

    def block(self, tree):
        stmts = []
        for kid in tree.children:
            converted = self.stmt(kid)
            if isinstance(converted, list):
                stmts.extend(converted)
            else:
                stmts.append(converted)
        return self.node(Block(stmts), tree)

    def stmt(self, tree):
        if tree is None:
            return None
        kids = tree.children
        match tree.data:
            case "var_decl" | "const_decl":
                return self.var_decl(tree)
            case "block":
                return self.block(tree)
            case "expr_stmt":
                return self.node(ExprStmt(self.expr(kids[0])), tree)
            case "assign":
                targets = self.expr_list(kids[0])
                values = self.expr_list(kids[2])
                op = kids[1].value
                if len(targets) != len(values):
                    self.error(
                        f"assignment mismatch: {len(targets)} variables but "
                        f"{len(values)} values", tree,
                    )
                if op != "=" and len(targets) != 1:
                    self.error(f"assignment operator {op} requires single-valued expressions", tree)
                return self.node(Assign(op, targets, values), tree)
            case "define":
                names = self.expr_list(kids[0])
                values = self.expr_list(kids[2])
                for name in names:
                    if not isinstance(name, Ident):
                        self.error(f"non-name {name.unparse()} on left side of :=", tree)
                if len(names) != len(values):
                    self.error(
                        f"assignment mismatch: {len(names)} variables but "
                        f"{len(values)} values", tree,
                    )
                return self.node(Define(names, values), tree)
            case "incdec":
                return self.node(IncDec(kids[1].value, self.expr(kids[0])), tree)
            case "return_stmt":
                value = self.expr(kids[1]) if kids[1] is not None else None
                return self.node(Return(value), tree)
            case "branch_stmt":
                return self.node(BranchStmt(kids[0].value), tree)
            case "if_stmt":
                cond, body, orelse = kids
                return self.if_stmt(tree, None, cond, body, orelse)
            case "if_init":
                init, cond, body, orelse = kids
                return self.if_stmt(tree, init, cond, body, orelse)
            case "for_loop":
                return self.node(For(None, None, None, self.block(kids[0])), tree)
            case "for_cond":
                return self.node(For(None, self.expr(kids[0]), None, self.block(kids[1])), tree)
            case "for_clause":
                init, cond, post, body = kids
                if post is not None and post.data == "define":
                    self.error("cannot declare in post statement of for loop", post)
                return self.node(For(
                    self.stmt(init),
                    self.expr(cond) if cond is not None else None,
                    self.stmt(post),
                    self.block(body),
                ), tree)
            case _:
                raise ValueError(f"Unhandled statement rule: {tree.data}")

    def if_stmt(self, tree, init, cond, body, orelse):
        orelse_node = None
        if orelse is not None:
            branch = orelse.children[0]
            if branch.data == "block":
                orelse_node = self.block(branch)
            else:
                orelse_node = self.stmt(branch)
        return self.node(If(
            self.stmt(init),
            self.expr(cond),
            self.block(body),
            orelse_node,
        ), tree)

    # Expressions

    def expr_list(self, tree):
        return [self.expr(kid) for kid in tree.children]

    def expr(self, tree):
        kids = tree.children
        match tree.data:
            case "int_lit":
                return self.node(IntLit(self.int_value(kids[0])), tree)
            case "string_lit":
                return self.node(StringLit(self.string_value(kids[0])), tree)
            case "ident":
                return self.node(Ident(kids[0].value), tree)
            case "unary":
                return self.node(Unary(kids[0].value, self.expr(kids[1])), tree)
            case "binary":
                left = self.expr(kids[0])
                right = self.expr(kids[2])
                return self.node(Binary(kids[1].value, left, right), tree)
            case "selector":
                return self.node(Selector(self.expr(kids[0]), kids[1].value), tree)
            case "call":
                func = self.expr(kids[0])
                args = [self.expr(arg) for arg in kids[1].children] if kids[1] is not None else []
                return self.node(Call(func, args), tree)
            case _:
                raise ValueError(f"Unhandled expression rule: {tree.data}")

    def int_value(self, token):
        """Convert an integer token using Go literal rules."""
        text = token.value.replace("_", "")
        try:
            if text[:2] in ("0x", "0X"):
                return int(text, 16)
            if len(text) > 1 and text.startswith("0"):
                return int(text, 8)
            return int(text)
        except ValueError:
            self.error(f"invalid integer literal {token.value}", token)

    def string_value(self, token):
        """Decode a string token, interpreted or raw."""
        text = token.value
        if text.startswith("`"):
            return text[1:-1].replace("\r", "")
        try:
            return python_ast.literal_eval(text)
        except (ValueError, SyntaxError):
            self.error(f"invalid string literal {text}", token)
