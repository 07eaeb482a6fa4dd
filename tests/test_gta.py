"""Tests for global type analysis of package level declarations."""

import pytest

import gosub
import gosubtest


def test_forward_reference():
    """A function can use declarations that appear later in the file."""
    output = gosubtest.run_main('''package main

func main() {
    println(answer())
}

func answer() int {
    return value
}

var value = 42
''')
    assert output == "42\n"


@pytest.mark.parametrize("order", [("a.go", "b.go"), ("b.go", "a.go")])
def test_declarations_across_files(order):
    """File order within a package does not constrain declaration order."""
    sources = {
        "a.go": 'package main\n\nvar total = base + 2\n\nfunc main() {\n    println(total)\n}\n',
        "b.go": 'package main\n\nvar base Count = 40\n\ntype Count int\n',
    }
    fs = gosubtest.memfs(app={name: sources[name] for name in order})
    interp = gosubtest.make_interp(fs)
    interp.eval_path("app")
    assert gosubtest.output(interp) == "42\n"


@pytest.mark.parametrize("order", [("a.go", "b.go"), ("b.go", "a.go")])
def test_function_calls_across_files(order):
    """A function may call one declared in a file processed later."""
    sources = {
        "a.go": 'package main\n\nfunc f() int {\n    return g()\n}\n\nfunc main() {\n    println(f())\n}\n',
        "b.go": 'package main\n\nfunc g() int {\n    return 7\n}\n',
    }
    fs = gosubtest.memfs(app={name: sources[name] for name in order})
    interp = gosubtest.make_interp(fs)
    interp.eval_path("app")
    assert gosubtest.output(interp) == "7\n"


def test_initializer_depends_on_later_var():
    output = gosubtest.run_main('''package main

var x = y + 1

var y = 10

func main() {
    println(x, y)
}
''')
    assert output == "11 10\n"


def test_type_declared_after_use():
    output = gosubtest.run_main('''package main

var temp Celsius = 21

func warmer(c Celsius) Celsius {
    return c + 1
}

type Celsius int

func main() {
    println(warmer(temp))
}
''')
    assert output == "22\n"


def test_undefined_name():
    """A name that is never declared fails after the retry pass."""
    error = gosubtest.load_error(
        gosub.UnresolvedDeclarationError,
        "package main\n\nvar x = y\n\nfunc main() {\n}\n",
        match="undefined: y",
    )
    assert error.symbol == "x"
    assert error.position.start_line == 3
    assert error.filename == "main.go"
    assert isinstance(error, gosub.GTAError)


def test_undefined_type():
    gosubtest.load_error(
        gosub.UnresolvedDeclarationError,
        "package main\n\nvar x Missing\n\nfunc main() {\n}\n",
        match="undefined: Missing",
    )


def test_mutually_unresolved():
    """Declarations whose types depend on each other cannot resolve."""
    error = gosubtest.load_error(
        gosub.UnresolvedDeclarationError,
        "package main\n\nvar a = b\n\nvar b = a\n\nfunc main() {\n}\n",
        match="cannot resolve a: b is not resolved",
    )
    assert error.symbol == "a"


@gosubtest.params(
    "source, match",
    var_func=("package main\n\nvar x = 1\n\nfunc x() {\n}\n", "x redeclared in this block"),
    two_types=("package main\n\ntype T int\n\ntype T string\n", "T redeclared"),
    import_name=('package main\n\nimport "lib"\n\nvar lib = 1\n', "already declared through import"),
    two_mains=("package main\n\nfunc main() {\n}\n\nfunc main() {\n}\n", "main redeclared"),
)
def test_redeclared(key, source, match):
    """A name can be declared only once in the package block."""
    fs = gosubtest.memfs({
        "/go/src/lib/lib.go": "package lib\n",
        "/app/main.go": source,
    })
    interp = gosubtest.make_interp(fs, gopath=["/go"])
    with pytest.raises(gosub.RedeclaredError, match=match) as exc_info:
        interp.eval_path("/app")
    assert isinstance(exc_info.value, gosub.GTAError)


def test_redeclared_across_files():
    """Names clash across files of the same package too."""
    fs = gosubtest.memfs(app={
        "a.go": "package main\n\nvar shared = 1\n\nfunc main() {\n}\n",
        "b.go": "package main\n\nvar shared = 2\n",
    })
    interp = gosubtest.make_interp(fs)
    with pytest.raises(gosub.RedeclaredError) as exc_info:
        interp.eval_path("app")
    assert exc_info.value.filename == "app/b.go"
    assert "app/a.go:3" in str(exc_info.value)


def test_untyped_constant():
    """Untyped constants adapt to the type they are used with."""
    output = gosubtest.run_main('''package main

const limit = 3

type Level int

var level Level = limit

var count = limit * 2

func main() {
    println(level, count, limit)
}
''')
    assert output == "3 6 3\n"


def test_typed_constant():
    gosubtest.load_error(
        gosub.CFGError,
        'package main\n\nconst name string = 1\n\nfunc main() {\n}\n',
        match="cannot use 1",
    )


def test_blank_var_initialized():
    """Blank variables are not declared but still initialized."""
    output = gosubtest.run_main('''package main

var _ = note("first")

var _ = note("second")

func note(s string) int {
    println(s)
    return 0
}

func main() {
}
''')
    assert output == "first\nsecond\n"


def test_multiple_init_functions():
    """Several init functions run in order and are never declared."""
    output = gosubtest.run_main('''package main

func init() {
    println("one")
}

func init() {
    println("two")
}

func main() {
    println("main")
}
''')
    assert output == "one\ntwo\nmain\n"


def test_init_not_callable():
    gosubtest.load_error(
        gosub.CFGError,
        "package main\n\nfunc init() {\n}\n\nfunc main() {\n    init()\n}\n",
        match="undefined: init",
    )


@gosubtest.params(
    "source, match",
    no_value=("package main\n\nfunc f() {\n}\n\nvar x = f()\n", r"f\(\) \(no value\) used as value"),
    type_value=("package main\n\ntype T int\n\nvar x = T\n", r"T \(type\) is not an expression"),
    builtin_value=("package main\n\nvar x = len\n", "must be called"),
    package_value=('package main\n\nimport "lib"\n\nvar x = lib\n', "without selector"),
    unexported=('package main\n\nimport "lib"\n\nvar x = lib.hidden\n', "not exported"),
)
def test_invalid_initializer(key, source, match):
    """Initializers that cannot have a type fail analysis."""
    fs = gosubtest.memfs({
        "/go/src/lib/lib.go": "package lib\n\nvar hidden = 1\n",
        "/app/main.go": source + "\nfunc main() {\n}\n",
    })
    interp = gosubtest.make_interp(fs, gopath=["/go"])
    with pytest.raises(gosub.GTAError, match=match):
        interp.eval_path("/app")


def test_qualified_type():
    """Types of imported packages are used through their selector."""
    fs = gosubtest.memfs({
        "/go/src/units/units.go": "package units\n\ntype Meters int\n\nfunc Double(m Meters) Meters {\n    return m * 2\n}\n",
        "/app/main.go": '''package main

import "units"

var height units.Meters = 21

func main() {
    println(units.Double(height))
}
''',
    })
    interp = gosubtest.make_interp(fs, gopath=["/go"])
    interp.eval_path("/app")
    assert gosubtest.output(interp) == "42\n"
