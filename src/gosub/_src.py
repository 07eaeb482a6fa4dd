"""Load packages from source.

`import_src` is the whole import pipeline for one package:

1. Locate the directory of the import path and claim the path, which
   detects import cycles.
2. Parse every eligible file of the directory, in listing order.
3. Run global type analysis on each file as it is parsed, then retry the
   declarations that could not be resolved.
4. Build the code of every file and collect the `init` functions.
5. Register the package, growing the shared frame for its globals.
6. Execute: bind functions, initialize globals in dependency order, run
   the `init` functions and finally `main` for the entry package.

Imports found during step 3 re-enter the pipeline recursively.
"""

__all__ = [
    "MAIN_ID",
    "import_src",
    "eval_source",
    "effective_pkg",
    "is_path_relative",
    "import_context",
]

import logging
import os
import posixpath

import gosub

logger = logging.getLogger(__name__)

MAIN_ID = "main"


def is_path_relative(path):
    """Whether an import path starts with "./" or "../"."""
    return path.startswith(("./", "../"))


def import_context(directory):
    """Import context of the package in a directory.

    A directory spelled like MAIN_ID is prefixed with the current directory
    so the two stay apart.
    """
    if directory == MAIN_ID:
        return os.path.join(os.curdir, directory)
    return directory


def effective_pkg(root, path):
    """Express an import path relative to the root of its importer.

    Relative paths are joined to root. For absolute paths, the longest run
    of leading segments of path that equals the trailing segments of root is
    collapsed, then the remaining segments are appended to root.

    Args:
        root: (str) Import context, MAIN_ID for the entry package
        path: (str) Import path

    Returns:
        (str) Normalized slash separated path
    """
    if root == MAIN_ID:
        root = "."
    if is_path_relative(path) or not root:
        return posixpath.normpath(posixpath.join(root, path))

    root_segs = [s for s in root.split("/") if s and s != "."]
    path_segs = [s for s in path.split("/") if s and s != "."]
    overlap = 0
    for k in range(min(len(root_segs), len(path_segs)), 0, -1):
        if root_segs[-k:] == path_segs[:k]:
            overlap = k
            break
    segs = root_segs + path_segs[overlap:]
    result = "/".join(segs) or "."
    if root.startswith("/"):
        result = "/" + result.lstrip(".")
    return posixpath.normpath(result)


def import_src(interp, rpath, import_path, skip_test, run_main=False):
    """Load, register and execute the package of an import path.

    A path that was loaded before returns its package name right away,
    without touching the filesystem.

    Args:
        interp: (Interp) Interpreter to load into
        rpath: (str) Directory of the importing package, or MAIN_ID
        import_path: (str) Relative or absolute import path
        skip_test: (bool) Leave out `_test.go` files
        run_main: (bool) Run `main` when this is the entry package

    Returns:
        (str) Package name

    Raises:
        LocationError: If the package directory cannot be found or read
        ImportCycleError: If the path is already being loaded
        GosubError: Any error parsing, analysing or running the package
    """
    key = interp.package_key(rpath, import_path)
    name = interp.cached_name(key)
    if name is not None:
        return name

    try:
        directory = interp.package_dir(rpath, import_path)
    except gosub.GosubError as e:
        raise e.annotate(import_path=import_path)

    name = interp.claim(key, import_path)
    if name is not None:
        return name
    logger.debug(f"import {import_path!r} from {directory}")
    try:
        sources = _read_dir(interp, directory, skip_test)
        return _load(
            interp, key, rpath, import_path, import_context(directory),
            sources, skip_test, run_main,
        )
    except gosub.GosubError as e:
        raise e.annotate(import_path=import_path)
    finally:
        interp.release(key)


def eval_source(interp, source, filename):
    """Load a source string as a single file entry package and run it.

    Relative imports of the source resolve against the directory of
    filename.

    Returns:
        (str) Package name
    """
    key = posixpath.normpath(filename)
    name = interp.cached_name(key)
    if name is not None:
        return name
    name = interp.claim(key, filename)
    if name is not None:
        return name
    context = import_context(os.path.dirname(filename))
    try:
        return _load(
            interp, key, MAIN_ID, filename, context,
            [(filename, source)], True, True,
        )
    except gosub.GosubError as e:
        raise e.annotate(filename=filename)
    finally:
        interp.release(key)


def _read_dir(interp, directory, skip_test):
    """Yield (filename, source) for every eligible file of a directory."""
    options = interp.options
    filesystem = options.filesystem
    try:
        names = filesystem.listdir(directory)
    except OSError as e:
        raise gosub.PackageNotFoundError(
            f"cannot read package directory {directory}: {e}"
        ) from e

    for name in names:
        if gosub.skip_file(options, name, skip_test):
            continue
        filename = os.path.join(directory, name)
        try:
            data = filesystem.read(filename)
        except OSError as e:
            raise gosub.LocationError(f"cannot read {filename}: {e}", filename=filename) from e
        try:
            source = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise gosub.ParseError(f"invalid UTF-8 encoding: {e.reason}", filename=filename) from e
        if not gosub.build_ok(options, source):
            logger.debug(f"skip {filename}: build constraints not satisfied")
            continue
        yield filename, source


def _load(interp, key, rpath, import_path, context, sources, skip_test, run_main):
    """Run the pipeline on the sources of one package."""
    scope = gosub.Scope(key)
    sub_rpath = effective_pkg(rpath, import_path)
    revisit = {}
    roots = []
    pkg_name = None

    for filename, source in sources:
        tree = gosub.parse(source, filename)
        pname, root = gosub.ast.build_ast(tree, filename, scope.arena)
        _call_hook(interp.options, root, filename)

        if pkg_name is None:
            pkg_name = pname
        elif pkg_name != pname and skip_test:
            raise gosub.PackageNameConflictError(
                f"found packages {pkg_name} and {pname} in {os.path.dirname(filename) or '.'}",
                filename=filename,
            )
        roots.append(root)

        pending = gosub.gta(interp, root, context, key, pkg_name, scope)
        revisit.setdefault(sub_rpath, []).extend(pending)

    if not roots:
        raise gosub.PackageNotFoundError(f"no buildable source files in {context}")

    for nodes in revisit.values():
        gosub.gta_retry(interp, nodes, key, pkg_name, scope)

    inits = []
    for root in roots:
        inits.extend(gosub.cfg(interp, root, key, pkg_name, scope))

    interp.register_package(key, scope, pkg_name)
    logger.debug(f"registered {key!r} as package {pkg_name}")

    for root in roots:
        interp.run(gosub.gen_run(root), gosub.Frame())

    interp.run(gosub.gen_global_vars(roots, scope), interp.frame)

    main = scope.syms.get(MAIN_ID)
    if run_main and pkg_name == MAIN_ID and skip_test and main is not None:
        if main.kind is gosub.SymKind.FUNC:
            inits.append(main.value)

    for function in inits:
        interp.run(function, interp.frame)
    return pkg_name


def _call_hook(options, root, filename):
    """Pass a file AST to the diagnostic hook, never failing the import."""
    if options.ast_hook is None:
        return
    try:
        options.ast_hook(root, filename)
    except Exception:
        logger.exception(f"ast hook failed for {filename}")
