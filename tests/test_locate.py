"""Tests for locating packages, memoization and import cycles."""

import os
import threading

import pytest

import gosub
import gosubtest

LIB = '''package lib

var Answer = 42

var hidden = 1

func Double(n int) int {
    return n * 2
}

func init() {
    println("init lib")
}
'''


@pytest.fixture
def fs():
    return gosubtest.memfs({"/go/src/lib/lib.go": LIB})


def test_import_idempotent(interp, fs):
    """A second import returns the cached name without filesystem access."""
    assert interp.import_src(gosub.MAIN_ID, "lib") == "lib"
    assert interp.import_src(gosub.MAIN_ID, "lib") == "lib"
    filename = os.path.join("/go", "src", "lib", "lib.go")
    assert fs.reads[filename] == 1
    assert fs.listings[os.path.join("/go", "src", "lib")] == 1
    assert gosubtest.output(interp) == "init lib\n"


def test_import_selector_access(interp):
    """Exported names of an imported package are reachable by selector."""
    interp.eval('''package main

import "lib"

func main() {
    println(lib.Answer, lib.Double(lib.Answer))
}
''', name="main.go")
    assert gosubtest.output(interp) == "init lib\n42 84\n"


def test_import_alias(interp):
    interp.eval('''package main

import l "lib"

var twice = l.Double(21)

func main() {
    println(twice)
}
''', name="main.go")
    assert gosubtest.output(interp) == "init lib\n42\n"


def test_import_blank(interp):
    """A blank import runs the package initialization only."""
    interp.eval('package main\n\nimport _ "lib"\n\nfunc main() {\n}\n', name="main.go")
    assert gosubtest.output(interp) == "init lib\n"


def test_import_unexported(interp):
    with pytest.raises(gosub.CFGError, match="not exported"):
        interp.eval('''package main

import "lib"

func main() {
    println(lib.hidden)
}
''', name="main.go")


def test_import_shared_between_importers(interp, fs):
    """Two importers of one package observe the same loaded package."""
    fs.add("/go/src/one/one.go", 'package one\n\nimport "lib"\n\nvar X = lib.Answer + 1\n')
    fs.add("/go/src/two/two.go", 'package two\n\nimport "lib"\n\nvar Y = lib.Answer + 2\n')
    interp.eval('''package main

import (
    "one"
    "two"
)

func main() {
    println(one.X, two.Y)
}
''', name="main.go")
    assert gosubtest.output(interp) == "init lib\n43 44\n"
    assert fs.reads[os.path.join("/go", "src", "lib", "lib.go")] == 1


def test_import_cycle(interp, fs):
    """A imports B imports A fails on the re-entrant request for A."""
    fs.add("/go/src/a/a.go", 'package a\n\nimport "b"\n')
    fs.add("/go/src/b/b.go", 'package b\n\nimport "a"\n')
    with pytest.raises(gosub.ImportCycleError) as exc_info:
        interp.import_src(gosub.MAIN_ID, "a")
    assert exc_info.value.import_path == "a"
    assert "import cycle not allowed" in str(exc_info.value)
    assert "a" not in interp.pkg_names
    assert "b" not in interp.pkg_names


def test_import_self(interp, fs):
    fs.add("/go/src/self/self.go", 'package self\n\nimport "self"\n')
    with pytest.raises(gosub.ImportCycleError):
        interp.import_src(gosub.MAIN_ID, "self")


def test_failed_import_stays_in_progress(interp, fs):
    """A failed import keeps its in-progress marker, a retry is a cycle."""
    fs.add("/go/src/broken/broken.go", "package broken\n\nvar x = missing\n")
    with pytest.raises(gosub.UnresolvedDeclarationError):
        interp.import_src(gosub.MAIN_ID, "broken")
    with pytest.raises(gosub.ImportCycleError):
        interp.import_src(gosub.MAIN_ID, "broken")
    assert "broken" in interp.rdir
    assert "broken" not in interp.src_pkg


def test_failed_import_does_not_undo_siblings(interp, fs):
    """Packages registered before a failure stay registered."""
    fs.add("/go/src/bad/bad.go", 'package bad\n\nimport "lib"\n\nvar x = nope\n')
    with pytest.raises(gosub.UnresolvedDeclarationError):
        interp.import_src(gosub.MAIN_ID, "bad")
    assert interp.pkg_names["lib"] == "lib"
    assert interp.import_src(gosub.MAIN_ID, "lib") == "lib"


def test_package_not_found(interp):
    with pytest.raises(gosub.PackageNotFoundError) as exc_info:
        interp.import_src(gosub.MAIN_ID, "nope")
    assert exc_info.value.import_path == "nope"
    assert isinstance(exc_info.value, gosub.LocationError)


def test_environment_not_configured(fs):
    """Without any configured package location absolute imports fail."""
    interp = gosubtest.make_interp(fs)
    with pytest.raises(gosub.EnvironmentNotConfiguredError):
        interp.import_src(gosub.MAIN_ID, "lib")


def test_relative_directory_missing(interp):
    with pytest.raises(gosub.PackageNotFoundError, match="cannot read package directory"):
        interp.import_src(gosub.MAIN_ID, "./missing")


def test_nested_relative_imports(fs):
    """Relative imports resolve against the directory of the importer."""
    fs.add("app/main.go", '''package main

import "./util"

func main() {
    println(util.Greeting())
}
''')
    fs.add("app/util/util.go", '''package util

import "./strs"

func Greeting() string {
    return strs.Join("hello", "world")
}
''')
    fs.add("app/util/strs/strs.go", '''package strs

func Join(a string, b string) string {
    return a + " " + b
}
''')
    interp = gosubtest.make_interp(fs)
    assert interp.eval_path("app") == "main"
    assert gosubtest.output(interp) == "hello world\n"
    keys = {os.path.normpath(k) for k in interp.pkg_names}
    assert keys == {"app", os.path.join("app", "util"), os.path.join("app", "util", "strs")}


def test_relative_spellings_share_entry(fs):
    """Two spellings of one directory load the package once."""
    fs.add("app/main.go", '''package main

import (
    "./a"
    "./b"
)

func main() {
    println(a.V, b.V)
}
''')
    fs.add("app/a/a.go", 'package a\n\nimport "../shared"\n\nvar V = shared.N\n')
    fs.add("app/b/b.go", 'package b\n\nimport "./../shared"\n\nvar V = shared.N + 1\n')
    fs.add("app/shared/shared.go", 'package shared\n\nvar N = 1\n\nfunc init() {\n    println("shared")\n}\n')
    interp = gosubtest.make_interp(fs)
    interp.eval_path("app")
    assert gosubtest.output(interp) == "shared\n1 2\n"


def test_registration_inconsistency(interp):
    """A symbol table without package name is an internal error."""
    interp.src_pkg["ghost"] = {}
    with pytest.raises(gosub.RegistrationInconsistencyError):
        interp.import_src(gosub.MAIN_ID, "ghost")


def test_errors_name_import_path(interp, fs):
    """Errors from nested imports keep the path that failed."""
    fs.add("/go/src/outer/outer.go", 'package outer\n\nimport "inner"\n')
    fs.add("/go/src/inner/inner.go", 'package inner\n\nvar x int = "s"\n')
    with pytest.raises(gosub.CFGError) as exc_info:
        interp.import_src(gosub.MAIN_ID, "outer")
    error = exc_info.value
    assert error.import_path == "inner"
    assert error.filename == os.path.join("/go", "src", "inner", "inner.go")
    assert error.position.start_line == 3
    assert "(import 'inner')" in str(error)


def test_relative_directory_named_main(fs):
    """A package directory called main resolves its imports inside itself."""
    fs.add("main/main.go", 'package main\n\nimport "./lib"\n\nfunc main() {\n    println(lib.Name)\n}\n')
    fs.add("main/lib/lib.go", 'package lib\n\nvar Name = "inner"\n')
    fs.add("lib/lib.go", 'package lib\n\nvar Name = "outer"\n')
    interp = gosubtest.make_interp(fs)
    assert interp.eval_path("main") == "main"
    assert gosubtest.output(interp) == "inner\n"
    assert os.path.join("main", "lib") in interp.pkg_names


def test_concurrent_eval_contexts():
    """Sources evaluated at once resolve imports against their own names."""
    source = 'package main\n\nimport "./lib"\n\nfunc main() {\n    println(lib.Name)\n}\n'
    fs = gosubtest.memfs({
        "a/lib/lib.go": 'package lib\n\nvar Name = "a"\n',
        "b/lib/lib.go": 'package lib\n\nvar Name = "b"\n',
    })
    started = threading.Event()
    resume = threading.Event()

    def hook(root, filename):
        if filename == "a/main.go":
            started.set()
            resume.wait(timeout=5)

    interp = gosubtest.make_interp(fs, ast_hook=hook)
    errors = []

    def load_a():
        try:
            interp.eval(source, name="a/main.go")
        except gosub.GosubError as e:
            errors.append(e)

    thread = threading.Thread(target=load_a)
    thread.start()
    try:
        assert started.wait(timeout=5)
        interp.eval(source, name="b/main.go")
    finally:
        resume.set()
        thread.join()

    assert errors == []
    assert gosubtest.output(interp) == "b\na\n"
    assert {os.path.join("a", "lib"), os.path.join("b", "lib")} <= set(interp.pkg_names)
