"""File and declaration nodes"""

__all__ = ["File", "Import", "TypeName", "TypeDecl", "VarDecl", "FuncDecl", "Param"]

from ._node import Node


class File(Node):
    """Root node of one source file.

    Kids are the import declarations followed by the top level declarations,
    in source order.

    Attributes:
        package: (str) Declared package name
        filename: (str) Path the source was read from
        imports: (dict) File block, {name: Symbol} for imported packages.
            Filled by global type analysis.
    """

    def __init__(self, package, filename, decls):
        super().__init__(decls)
        self.package = package
        self.filename = filename
        self.imports = {}

    @property
    def decls(self):
        return self.kids


class Import(Node):
    """Import declaration for a single package.

    Attributes:
        name: (str | None) Explicit package name, or None for the declared one
        path: (str) Import path
    """

    def __init__(self, name, path):
        super().__init__()
        self.name = name
        self.path = path
        self.file_id = None


class TypeName(Node):
    """Reference to a named type, optionally qualified by a package name."""

    def __init__(self, name, package=None):
        super().__init__()
        self.name = name
        self.package = package

    def unparse(self):
        if self.package:
            return f"{self.package}.{self.name}"
        return self.name


class TypeDecl(Node):
    """Type declaration `type Name Underlying`."""

    def __init__(self, name, underlying):
        super().__init__([underlying])
        self.name = name
        self.underlying = underlying
        self.file_id = None
        self.sym = None


class VarDecl(Node):
    """Variable or constant declaration of a single name.

    `var a, b = 1, 2` produces one VarDecl per name.

    Attributes:
        name: (str) Declared name, may be "_"
        type: (TypeName | None) Declared type
        value: (Node | None) Initializer expression
        const: (bool) Whether this declares a constant
        sym: (Symbol | None) Symbol record once declared
    """

    def __init__(self, name, type, value, const=False):
        super().__init__([type, value])
        self.name = name
        self.type = type
        self.value = value
        self.const = const
        self.file_id = None
        self.sym = None
        self.refs = set()


class Param(Node):
    """Function parameter."""

    def __init__(self, name, type):
        super().__init__([type])
        self.name = name
        self.type = type


class FuncDecl(Node):
    """Function declaration.

    Attributes:
        name: (str) Function name
        params: (list[Param]) Parameters
        result: (TypeName | None) Result type
        body: (Block) Function body
    """

    def __init__(self, name, params, result, body):
        super().__init__([*params, result, body])
        self.name = name
        self.params = list(params)
        self.result = result
        self.body = body
        self.file_id = None
        self.sym = None
        self.refs = set()
