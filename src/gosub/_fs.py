"""Filesystem access used while locating and reading package sources.

The import pipeline never touches `os` directly. Everything goes through a
filesystem object so packages can also be served from memory.
"""

__all__ = ["FileSystem", "OSFileSystem", "MemoryFileSystem"]

import collections
import os
import posixpath


class FileSystem:
    """Interface for the filesystem used by an interpreter.

    This is a base class that should not be instantiated directly.
    """

    def listdir(self, path):
        """List the entry names of a directory.

        Callers must not assume any particular order unless the
        implementation documents one.

        Raises:
            OSError: If the directory cannot be listed
        """
        raise NotImplementedError(f"{self.__class__.__name__}.listdir() not implemented")

    def read(self, path):
        """Read the contents of a file as bytes.

        Raises:
            OSError: If the file cannot be read
        """
        raise NotImplementedError(f"{self.__class__.__name__}.read() not implemented")

    def isdir(self, path):
        """(bool) Whether path names an existing directory."""
        raise NotImplementedError(f"{self.__class__.__name__}.isdir() not implemented")


class OSFileSystem(FileSystem):
    """Operating system filesystem. Directory listings are sorted by name."""

    def listdir(self, path):
        return sorted(os.listdir(path or "."))

    def read(self, path):
        with open(path, "rb") as stream:
            return stream.read()

    def isdir(self, path):
        return os.path.isdir(path or ".")

    def __repr__(self):
        return "OSFileSystem<>"


class MemoryFileSystem(FileSystem):
    """Files held in memory, keyed by slash separated path.

    Directories exist implicitly when some file lives below them. Listings
    keep the order files were added in, which lets callers control the
    order a package's files are processed in.

    Args:
        files: (dict | None) Initial {path: str | bytes} contents

    Attributes:
        reads: (Counter) Number of reads per normalized path
        listings: (Counter) Number of listings per normalized path
    """

    def __init__(self, files=None):
        self.files = {}
        self.reads = collections.Counter()
        self.listings = collections.Counter()
        for path, content in (files or {}).items():
            self.add(path, content)

    def __repr__(self):
        return f"MemoryFileSystem<{len(self.files)} files>"

    def add(self, path, content):
        """Add or replace a file."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.files[_norm(path)] = content
        return self

    def listdir(self, path):
        path = _norm(path)
        self.listings[path] += 1
        names = []
        for name in self._children(path):
            if name not in names:
                names.append(name)
        if not names:
            raise FileNotFoundError(f"No such directory: {path!r}")
        return names

    def read(self, path):
        path = _norm(path)
        self.reads[path] += 1
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(f"No such file: {path!r}") from None

    def isdir(self, path):
        path = _norm(path)
        if path in self.files:
            return False
        for _ in self._children(path):
            return True
        return False

    def _children(self, path):
        """Yield the first path segment below path for every file under it."""
        if path == ".":
            prefix = ""
        elif path == "/":
            prefix = "/"
        else:
            prefix = path + "/"
        for key in self.files:
            if prefix == "" and key.startswith("/"):
                continue
            if key.startswith(prefix):
                yield key[len(prefix):].split("/", 1)[0]


def _norm(path):
    path = path.replace(os.sep, "/") if os.sep != "/" else path
    return posixpath.normpath(path or ".")
