"""Tests for building code from function bodies and initializers."""

import gosub
import gosubtest


def main_with(body, decls=""):
    """Source of a main package whose main function holds body."""
    lines = "\n".join("    " + line for line in body.splitlines())
    return f"package main\n\n{decls}\nfunc main() {{\n{lines}\n}}\n"


@gosubtest.params(
    "body, decls, match",
    undefined=("println(z)", "", "undefined: z"),
    assign_constant=("c = 2", "const c = 1\n", r"cannot assign to c \(constant\)"),
    assign_func=("f = 2", "func f() {\n}\n", "cannot assign to f"),
    mismatch=('var n int = "one"', "", r'cannot use "one" \(untyped string\) as int value in variable declaration'),
    argument_type=('f("x")', "func f(n int) {\n}\n", "in argument to f"),
    not_enough=("f()", "func f(a int) {\n}\n", "not enough arguments in call to f"),
    too_many=("f(1, 2)", "func f(a int) {\n}\n", "too many arguments in call to f"),
    break_outside=("break", "", "break is not in a loop"),
    continue_outside=("continue", "", "continue is not in a loop"),
    no_new_vars=("x := 1\nx := 2", "", "no new variables on left side of :="),
    non_bool_if=("if 1 {\n}", "", "non-boolean condition"),
    non_bool_for=('for "s" {\n}', "", "non-boolean condition"),
    unused_value=("1 + 2", "", r"\(value\) is not used"),
    mismatched_types=('x := 1 + "a"', "", "mismatched types untyped int and untyped string"),
    operator_undefined=('x := "a" - "b"', "", "operator - not defined"),
    bad_unary=('x := -"a"', "", "operator - not defined"),
    op_assign_types=('x := 1\nx += "a"', "", "mismatched types int and untyped string"),
    cannot_convert=('x := T("a")', "type T int\n", "cannot convert"),
    local_const=("const k = 1", "", "constant declarations are only supported at package level"),
    redeclared_local=("var a = 1\nvar a = 2", "", "a redeclared in this block"),
    call_non_function=("x := 1\nx()", "", "cannot call non-function x"),
    no_value=("x := f()", "func f() {\n}\n", r"f\(\) \(no value\) used as value"),
    blank_value=("x := _", "", "cannot use _ as value"),
    len_int=("x := len(1)", "", "invalid argument for len"),
    type_value=("x := T", "type T int\n", r"T \(type\) is not an expression"),
)
def test_build_errors(key, body, decls, match):
    """Invalid function bodies raise CFGError."""
    gosubtest.load_error(gosub.CFGError, main_with(body, decls), match=match)


def test_missing_return():
    """A function with a result must not run off its end."""
    error = gosubtest.load_error(gosub.CFGError, '''package main

func sign(n int) int {
    if n < 0 {
        return -1
    } else if n > 0 {
        return 1
    }
}

func main() {
}
''', match="missing return in sign")
    assert error.symbol == "sign"
    assert error.position.start_line == 9


def test_terminating_if_else():
    """Both branches returning satisfies the result."""
    output = gosubtest.run_main('''package main

func sign(n int) int {
    if n < 0 {
        return -1
    } else {
        return 1
    }
}

func main() {
    println(sign(-5), sign(5))
}
''')
    assert output == "-1 1\n"


def test_return_counts():
    gosubtest.load_error(
        gosub.CFGError,
        "package main\n\nfunc f() {\n    return 1\n}\n\nfunc main() {\n}\n",
        match="too many return values",
    )
    gosubtest.load_error(
        gosub.CFGError,
        "package main\n\nfunc f() int {\n    return\n}\n\nfunc main() {\n}\n",
        match="not enough return values",
    )


def test_duplicate_argument():
    gosubtest.load_error(
        gosub.CFGError,
        "package main\n\nfunc f(a int, a int) {\n}\n\nfunc main() {\n}\n",
        match="duplicate argument a",
    )


def test_main_signature():
    gosubtest.load_error(
        gosub.CFGError,
        "package main\n\nfunc main(x int) {\n}\n",
        match="func main must have no arguments and no return values",
    )


def test_error_position():
    """Errors point at the offending expression."""
    error = gosubtest.load_error(gosub.CFGError, main_with("x := 1\nprintln(x, y)"))
    assert error.position.start_line == 6
    assert error.position.start_column == 16
    assert str(error).startswith("main.go:6:16: undefined: y")


def test_initialization_cycle():
    """Initializers that read themselves through functions are a cycle."""
    error = gosubtest.load_error(gosub.CFGError, '''package main

var a = f()

func f() int {
    return a
}

func main() {
}
''', match="initialization cycle")
    assert error.symbol == "a"


def test_block_scoping():
    """Inner blocks shadow outer names and release them afterwards."""
    output = gosubtest.run_main(main_with('''x := 1
{
    x := 2
    println(x)
}
if x := 3; x > 2 {
    println(x)
}
println(x)'''))
    assert output == "2\n3\n1\n"


def test_undefined_after_block():
    gosubtest.load_error(gosub.CFGError, main_with("{\n    y := 1\n}\nprintln(y)"), match="undefined: y")


def test_refs_collected():
    """Declarations record the package level symbols they read."""
    interp = gosubtest.make_interp(gosubtest.memfs())
    interp.eval('''package main

var a = 1

var b = twice()

func twice() int {
    return a * 2
}

func main() {
}
''', name="refs.go")
    scope = interp.package_scope("refs.go")
    b = scope.syms["b"].decl
    twice = scope.syms["twice"].decl
    assert {sym.name for sym in b.refs} == {"twice"}
    assert {sym.name for sym in twice.refs} == {"a"}
