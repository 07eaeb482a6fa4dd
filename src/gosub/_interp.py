"""Interpreter context shared by every package load."""

__all__ = ["Interp", "DEFAULT_SOURCE_NAME"]

import logging
import os
import posixpath
import threading

import gosub

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_NAME = "_.go"


class Interp:
    """Interpreter and state for gosub.

    An interpreter holds the import registry, the package scopes and the
    shared frame of globals. Several threads can load packages into one
    interpreter; all mutation of shared state goes through the methods
    here, which take `mutex`. The frame has its own lock, nested inside.

    Args:
        options: (Options | None) Configuration, read from the environment
            when not given

    Attributes:
        src_pkg: (dict) {key: symbol table} of registered packages
        pkg_names: (dict) {key: package name} of registered packages
        scopes: (dict) {key: Scope} of registered packages
        rdir: (dict) {key: thread id} of every package load ever started
        frame: (Frame) Shared frame holding all globals
    """

    def __init__(self, options=None):
        if options is None:
            options = gosub.Options.from_environ()
        self.options = options
        self.discovery = options.discovery or gosub.default_discovery(options)
        self.mutex = threading.RLock()
        self._changed = threading.Condition(self.mutex)
        self.src_pkg = {}
        self.pkg_names = {}
        self.scopes = {}
        self.rdir = {}
        self.loaded = set()
        self.failed = set()
        self._waiting = {}
        self.frame = gosub.Frame()

    def __repr__(self):
        return f"Interp<{len(self.src_pkg)} packages>"

    def __hash__(self):
        return id(self)

    # Entry points

    def import_src(self, rpath, import_path, skip_test=True, run_main=False):
        """Load a package. See `gosub.import_src`."""
        return gosub.import_src(self, rpath, import_path, skip_test, run_main)

    def eval_path(self, path):
        """Load and run the entry package in a directory or a single file.

        Returns:
            (str) Package name
        """
        filesystem = self.options.filesystem
        if not filesystem.isdir(path):
            try:
                data = filesystem.read(path)
            except OSError as e:
                raise gosub.PackageNotFoundError(f"cannot read {path}: {e}", filename=path) from e
            try:
                source = data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise gosub.ParseError(f"invalid UTF-8 encoding: {e.reason}", filename=path) from e
            return self.eval(source, name=path)
        pkg_dir = os.path.normpath(path)
        parent = gosub.import_context(os.path.dirname(pkg_dir))
        base = os.path.basename(pkg_dir)
        return self.import_src(parent, "./" + base, skip_test=True, run_main=True)

    def eval(self, source, name=DEFAULT_SOURCE_NAME):
        """Load and run source text as a single file entry package.

        Evaluating the same name twice returns the package loaded the first
        time.

        Returns:
            (str) Package name
        """
        return gosub.eval_source(self, source, name)

    def run(self, code, frame):
        """Execute a Function or graph node against a frame."""
        if isinstance(code, gosub.Function):
            return code.invoke(frame.globals)
        gosub.run_node(code, frame)
        return None

    # Paths

    def package_key(self, rpath, import_path):
        """Registry key of an import path.

        Relative imports are keyed by their normalized directory, so two
        spellings of one directory share a registry entry. MAIN_ID stands
        for the current directory. Absolute imports are keyed by the import
        path.
        """
        if gosub.is_path_relative(import_path):
            base = os.curdir if rpath == gosub.MAIN_ID else rpath
            return os.path.normpath(os.path.join(base, import_path))
        return posixpath.normpath(import_path)

    def package_dir(self, rpath, import_path):
        """Directory holding the sources of an import path.

        Raises:
            LocationError: If discovery cannot find an absolute path
        """
        if gosub.is_path_relative(import_path):
            return self.package_key(rpath, import_path)
        return self.discovery.find(import_path)

    # Registry

    def cached_name(self, key):
        """Package name of a loaded package, None when not loaded.

        Raises:
            RegistrationInconsistencyError: If the registry has a symbol
                table without a package name
        """
        with self.mutex:
            if key in self.src_pkg and key not in self.pkg_names:
                raise gosub.RegistrationInconsistencyError(
                    f"inconsistent knowledge about {key}", import_path=key,
                )
            if key in self.loaded:
                return self.pkg_names[key]
            return None

    def claim(self, key, import_path):
        """Mark a package as being loaded by the current thread.

        When another thread is loading the package, wait for it to finish.

        Returns:
            (str | None) Package name when another thread loaded it, None
            when the current thread now owns the load

        Raises:
            ImportCycleError: If the package is being loaded by this thread,
                failed to load before, or waiting would deadlock
        """
        me = threading.get_ident()
        with self._changed:
            while True:
                if key in self.loaded:
                    return self.pkg_names[key]
                owner = self.rdir.get(key)
                if owner is None:
                    self.rdir[key] = me
                    return None
                if owner == me or key in self.failed or self._would_deadlock(me, owner):
                    raise gosub.ImportCycleError(
                        f"import cycle not allowed\n\timports {import_path}",
                        import_path=import_path,
                    )
                logger.debug(f"wait for {key!r} loaded by another thread")
                self._waiting[me] = key
                try:
                    self._changed.wait()
                finally:
                    del self._waiting[me]

    def _would_deadlock(self, me, owner):
        """Whether owner waits, directly or through others, on this thread."""
        seen = set()
        thread = owner
        while thread in self._waiting and thread not in seen:
            seen.add(thread)
            thread = self.rdir.get(self._waiting[thread])
            if thread == me:
                return True
        return False

    def release(self, key):
        """End the load of a package started with `claim`.

        A package that got registered counts as loaded even when running
        its initialization failed. Otherwise it is marked failed, and the
        in-progress marker stays.
        """
        with self._changed:
            if key in self.src_pkg:
                self.loaded.add(key)
            else:
                self.failed.add(key)
            self._changed.notify_all()

    def register_package(self, key, scope, pkg_name):
        """Install a package and allocate its globals in the shared frame.

        Raises:
            RegistrationInconsistencyError: If the key is already registered
        """
        with self.mutex:
            if key in self.src_pkg:
                raise gosub.RegistrationInconsistencyError(
                    f"package {key} is already registered", import_path=key,
                )
            scope.base = self.frame.grow(scope.zero_values())
            scope.freeze()
            self.scopes[key] = scope
            self.src_pkg[key] = scope.syms
            self.pkg_names[key] = pkg_name

    def package_scope(self, key):
        """Scope of a registered package, None when not registered."""
        with self.mutex:
            return self.scopes.get(key)
