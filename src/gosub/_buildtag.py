"""File eligibility: file name rules and build constraints.

A directory can hold files that do not belong to the build for the
configured platform. File names ending in `_<os>`, `_<arch>` or
`_<os>_<arch>` only build for that platform, and a `//go:build` line before
the package clause gives a boolean expression over build tags.
"""

__all__ = ["skip_file", "build_ok", "eval_constraint", "KNOWN_OS", "KNOWN_ARCH"]

import lark

import gosub

KNOWN_OS = {
    "aix", "android", "darwin", "dragonfly", "freebsd", "illumos", "ios",
    "js", "linux", "netbsd", "openbsd", "plan9", "solaris", "wasip1",
    "windows",
}

KNOWN_ARCH = {
    "386", "amd64", "arm", "arm64", "loong64", "mips", "mips64", "mips64le",
    "mipsle", "ppc64", "ppc64le", "riscv64", "s390x", "wasm",
}

_UNIX_OS = {
    "aix", "android", "darwin", "dragonfly", "freebsd", "illumos", "ios",
    "linux", "netbsd", "openbsd", "solaris",
}

_parser = None


def skip_file(options, name, skip_test):
    """Decide from its name whether a directory entry is left out.

    Args:
        options: (Options) Build context
        name: (str) File name, without directory
        skip_test: (bool) Whether `_test.go` files are left out

    Returns:
        (bool) True when the file must not be loaded
    """
    if not name.endswith(".go"):
        return True
    if name.startswith((".", "_")):
        return True
    stem = name[:-3]
    if stem.endswith("_test"):
        if skip_test:
            return True
        stem = stem[:-5]
    parts = stem.split("_")
    if len(parts) >= 3 and parts[-2] in KNOWN_OS and parts[-1] in KNOWN_ARCH:
        return parts[-2] != options.goos or parts[-1] != options.goarch
    if len(parts) >= 2 and parts[-1] in KNOWN_OS:
        return parts[-1] != options.goos
    if len(parts) >= 2 and parts[-1] in KNOWN_ARCH:
        return parts[-1] != options.goarch
    return False


def build_ok(options, source):
    """Check the `//go:build` constraints of a source file.

    Only comment lines before the package clause are examined.

    Returns:
        (bool) True when the file belongs to the build
    """
    tags = _satisfied_tags(options)
    for line in source.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if not stripped.startswith("//"):
            break
        if stripped.startswith("//go:build"):
            expr = stripped[len("//go:build"):]
            if not eval_constraint(expr, tags):
                return False
    return True


def eval_constraint(expr, tags):
    """Evaluate a build constraint expression.

    Args:
        expr: (str) Expression like "linux && !cgo"
        tags: (set[str]) Satisfied tags

    Returns:
        (bool)

    Raises:
        ParseError: If the expression is malformed
    """
    global _parser
    if _parser is None:
        _parser = lark.Lark.open(
            "lark/constraint.lark", rel_to=__file__, parser="lalr"
        )
    try:
        tree = _parser.parse(expr.strip())
    except lark.exceptions.LarkError as e:
        raise gosub.ParseError(f"invalid build constraint {expr.strip()!r}") from e
    return _eval(tree, tags)


def _eval(tree, tags):
    match tree.data:
        case "tag":
            return tree.children[0].value in tags
        case "not_":
            return not _eval(tree.children[0], tags)
        case "and_":
            return _eval(tree.children[0], tags) and _eval(tree.children[1], tags)
        case "or_":
            return _eval(tree.children[0], tags) or _eval(tree.children[1], tags)
        case _:
            raise ValueError(f"Unhandled constraint rule: {tree.data}")


def _satisfied_tags(options):
    tags = {options.goos, options.goarch, "gosub"}
    if options.goos in _UNIX_OS:
        tags.add("unix")
    tags.update(options.build_tags)
    return tags
