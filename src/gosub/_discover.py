"""Directory discovery for absolute import paths.

Relative imports are resolved by the import pipeline itself. Absolute,
module style paths ("strings", "example.com/lib/text") are handed to a
discovery strategy that knows where packages live:

- PathDiscovery searches a list of package roots, the package index
- ToolDirDiscovery searches the tree around a configured tool directory
- ChainDiscovery tries strategies in order and reports why none matched
"""

__all__ = [
    "Discovery",
    "PathDiscovery",
    "ToolDirDiscovery",
    "ChainDiscovery",
    "default_discovery",
    "search_up_dir_path",
    "search_dirs",
]

import logging
import os
import posixpath

import gosub

logger = logging.getLogger(__name__)


class Discovery:
    """Strategy mapping an absolute import path to a source directory.

    This is a base class that should not be instantiated directly.
    """

    def find(self, import_path):
        """Find the directory holding the package sources.

        Args:
            import_path: (str) Absolute import path

        Returns:
            (str) Directory path

        Raises:
            PackageNotFoundError: The strategy has no such package
        """
        raise NotImplementedError(f"{self.__class__.__name__}.find() not implemented")


class PathDiscovery(Discovery):
    """Search configured package roots.

    Each root is tried as `root/src/<import_path>` and then as
    `root/<import_path>`.

    Args:
        paths: (list[str]) Package roots, in priority order
        filesystem: (FileSystem) Filesystem to search
    """

    def __init__(self, paths, filesystem):
        self.paths = list(paths)
        self.filesystem = filesystem

    def __repr__(self):
        return f"PathDiscovery<{os.pathsep.join(self.paths)}>"

    def candidates(self, import_path):
        """(list[str]) Directories that would hold the package."""
        result = []
        for root in self.paths:
            result.append(os.path.join(root, "src", import_path))
            result.append(os.path.join(root, import_path))
        return result

    def find(self, import_path):
        searched = self.candidates(import_path)
        for candidate in searched:
            if self.filesystem.isdir(candidate):
                return candidate
        raise gosub.PackageNotFoundError(
            f"cannot find package {import_path!r} in any of:\n"
            + "\n".join(f"  - {p}" for p in searched)
        )


class ToolDirDiscovery(Discovery):
    """Search the directory tree around a tool directory.

    The search first walks up from `tool_dir` to the nearest directory named
    `anchor`, so only that tree is walked instead of the whole filesystem.
    The walk then looks for a directory whose trailing path segments equal
    the import path.

    Args:
        tool_dir: (str) Configured tool directory
        filesystem: (FileSystem) Filesystem to search
        anchor: (str) Name of the directory to search below
        case_sensitive: (bool) Whether the anchor name must match case
    """

    def __init__(self, tool_dir, filesystem, anchor="go", case_sensitive=False):
        self.tool_dir = tool_dir
        self.filesystem = filesystem
        self.anchor = anchor
        self.case_sensitive = case_sensitive

    def __repr__(self):
        return f"ToolDirDiscovery<{self.tool_dir}>"

    def find(self, import_path):
        top = search_up_dir_path(self.tool_dir, self.anchor, self.case_sensitive)
        logger.debug(f"search {import_path!r} below {top}")
        return search_dirs(self.filesystem, top, import_path)


class ChainDiscovery(Discovery):
    """Try several strategies in order, first match wins.

    Args:
        strategies: (list[Discovery]) Configured strategies

    Raises:
        EnvironmentNotConfiguredError: When there are no strategies
        PackageNotFoundError: When no strategy finds the package
    """

    def __init__(self, strategies):
        self.strategies = list(strategies)

    def __repr__(self):
        return f"ChainDiscovery<{', '.join(repr(s) for s in self.strategies)}>"

    def find(self, import_path):
        if not self.strategies:
            raise gosub.EnvironmentNotConfiguredError(
                f"import source {import_path!r} could not be found: no package "
                f"location is configured. Set GOSUBPATH and/or GOSUBTOOLDIR, "
                f"or pass gopath/tool_dir in the interpreter Options."
            )
        reasons = []
        for strategy in self.strategies:
            try:
                return strategy.find(import_path)
            except gosub.PackageNotFoundError as e:
                reasons.append(e.message)
        raise gosub.PackageNotFoundError("\n".join(reasons))


def default_discovery(options):
    """Build the discovery chain described by interpreter options."""
    strategies = []
    if options.gopath:
        strategies.append(PathDiscovery(options.gopath, options.filesystem))
    if options.tool_dir:
        strategies.append(ToolDirDiscovery(options.tool_dir, options.filesystem))
    return ChainDiscovery(strategies)


def search_up_dir_path(initial, target, case_sensitive=False):
    """Walk up a directory path to find a directory with the target name.

    Args:
        initial: (str) Path to start from, inclusive
        target: (str) Directory name to find
        case_sensitive: (bool) Whether names must match case

    Returns:
        (str) Path of the matching directory

    Raises:
        PackageNotFoundError: If no parent directory has the target name
    """
    path = os.path.normpath(initial)
    wanted = target if case_sensitive else target.lower()
    while True:
        head, name = os.path.split(path)
        if not case_sensitive:
            name = name.lower()
        if name == wanted:
            return path
        if not name or head == path:
            raise gosub.PackageNotFoundError(
                f"the target directory {target!r} is not within the path {initial!r}"
            )
        path = head


def search_dirs(filesystem, initial, import_path):
    """Walk a directory tree looking for the directory of an import path.

    The subdirectories of a directory are checked before the walk descends
    into them, in listing order. A directory matches when its trailing path
    segments equal the segments of the import path.

    Returns:
        (str) First matching directory

    Raises:
        PackageNotFoundError: If no directory below initial matches
    """
    wanted = [s for s in posixpath.normpath(import_path).split("/") if s]
    pending = [initial]
    while pending:
        directory = pending.pop()
        try:
            names = filesystem.listdir(directory)
        except OSError:
            continue
        subdirs = []
        for name in names:
            path = os.path.join(directory, name)
            if filesystem.isdir(path):
                subdirs.append(path)
        for path in subdirs:
            segments = path.replace(os.sep, "/").split("/")
            if segments[-len(wanted):] == wanted:
                return path
        pending.extend(reversed(subdirs))
    raise gosub.PackageNotFoundError(
        f"the target path {import_path!r} is not within the path {initial!r}"
    )
