"""Symbols and package scopes"""

__all__ = ["SymKind", "Symbol", "Scope"]

import enum

import gosub


class SymKind(enum.Enum):
    """What a name refers to."""

    VAR = "var"
    CONST = "const"
    FUNC = "func"
    TYPE = "type"
    PKG = "package"
    BUILTIN = "builtin"


class Symbol:
    """Record for a declared name.

    Symbols refer to their declaring node by arena id, never by holding the
    node itself.

    Args:
        kind: (SymKind) What the name refers to
        name: (str) Declared name
        type: (Type | None) Static type, None until resolved
        node: (int | None) Arena id of the declaring node
        scope: (Scope | None) Package scope that owns the symbol

    Attributes:
        resolved: (bool) Whether the type of the symbol is known
        index: (int | None) Global slot of a var or const, relative to the
            package base
        value: Function of a func, Builtin of a builtin, value of a universe
            constant, registry key of a package
        pkg_name: (str | None) Display name of an imported package
    """

    def __init__(self, kind, name, type=None, node=None, scope=None):
        self.kind = kind
        self.name = name
        self.type = type
        self.node = node
        self.scope = scope
        self.resolved = type is not None
        self.index = None
        self.value = None
        self.pkg_name = None

    def __repr__(self):
        where = f" in {self.scope.import_path}" if self.scope is not None else ""
        return f"Symbol<{self.kind.value} {self.name}{where}>"

    @property
    def decl(self):
        """Declaring node, looked up in the owning scope arena."""
        if self.node is None or self.scope is None:
            return None
        return self.scope.arena[self.node]


class Scope:
    """Package level declarations of one import path.

    A scope is filled by global type analysis and frozen once the package
    is registered. After that no declaration is accepted.

    Args:
        import_path: (str) Registry key of the package

    Attributes:
        syms: (dict[str, Symbol]) Package block
        arena: (Arena) Owner of every node parsed for the package
        slots: (list[Symbol]) Global slots in allocation order
        base: (int | None) Offset of the first slot in the shared frame,
            assigned at registration
    """

    def __init__(self, import_path):
        self.import_path = import_path
        self.syms = {}
        self.arena = gosub.ast.Arena()
        self.slots = []
        self.base = None
        self.frozen = False

    def __repr__(self):
        return f"Scope<{self.import_path} {len(self.syms)} syms>"

    def declare(self, sym):
        """Enter a symbol into the package block."""
        if self.frozen:
            raise gosub.RegistrationInconsistencyError(
                f"declaration of {sym.name!r} after package was registered",
                import_path=self.import_path, symbol=sym.name,
            )
        sym.scope = self
        self.syms[sym.name] = sym
        return sym

    def add_global(self, sym):
        """Allocate a global slot for a var or const. Returns the index."""
        sym.scope = self
        sym.index = len(self.slots)
        self.slots.append(sym)
        return sym.index

    def lookup(self, root, name):
        """Find a name visible at package level from the given file."""
        sym = root.imports.get(name)
        if sym is None:
            sym = self.syms.get(name)
        if sym is None:
            sym = gosub.UNIVERSE.get(name)
        return sym

    def zero_values(self):
        """Initial contents of the global slots."""
        return [
            gosub.zero_value(sym.type) if sym.type is not None else None
            for sym in self.slots
        ]

    def freeze(self):
        self.frozen = True
