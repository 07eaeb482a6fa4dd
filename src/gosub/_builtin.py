"""Predeclared identifiers of the universe block"""

__all__ = ["Builtin", "UNIVERSE", "format_value"]

import gosub


class Builtin:
    """Predeclared function implemented in Python.

    Args:
        name: (str) Name in the universe block
        check: (callable) Receives the argument types, returns the result
            type or raises ValueError describing the misuse
        impl: (callable) Receives (options, args) and returns the result
    """

    def __init__(self, name, check, impl):
        self.name = name
        self.check = check
        self.impl = impl

    def __repr__(self):
        return f"Builtin<{self.name}>"


def format_value(value):
    """Text of a value as print and println write it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _check_print(types):
    return None


def _println(options, args):
    options.stdout.write(" ".join(format_value(a) for a in args) + "\n")


def _print(options, args):
    options.stdout.write("".join(format_value(a) for a in args))


def _check_len(types):
    if len(types) != 1:
        raise ValueError(f"wrong number of arguments for len: got {len(types)}, want 1")
    if types[0].kind != "string":
        raise ValueError(f"invalid argument for len: {types[0]}")
    return gosub.INT


def _len(options, args):
    return len(args[0])


def _check_panic(types):
    if len(types) != 1:
        raise ValueError(f"wrong number of arguments for panic: got {len(types)}, want 1")
    return None


def _panic(options, args):
    raise gosub.ExecutionError(f"panic: {format_value(args[0])}")


def _universe():
    syms = {}
    for type in (gosub.INT, gosub.STRING, gosub.BOOL):
        syms[type.name] = gosub.Symbol(gosub.SymKind.TYPE, type.name, type)
    for name, value in (("true", True), ("false", False)):
        sym = gosub.Symbol(gosub.SymKind.CONST, name, gosub.UNTYPED_BOOL)
        sym.value = value
        syms[name] = sym
    for builtin in (
        Builtin("println", _check_print, _println),
        Builtin("print", _check_print, _print),
        Builtin("len", _check_len, _len),
        Builtin("panic", _check_panic, _panic),
    ):
        sym = gosub.Symbol(gosub.SymKind.BUILTIN, builtin.name)
        sym.resolved = True
        sym.value = builtin
        syms[builtin.name] = sym
    return syms


UNIVERSE = _universe()
