"""Interpreter configuration.

Options are plain data. They can be built directly, or read from the
process environment with `Options.from_environ`:

- GOSUBPATH: package roots searched for absolute imports (os.pathsep separated)
- GOSUBTOOLDIR: tool directory used as the fallback search location
- GOSUBOS, GOSUBARCH: target platform for file name and build constraints
- GOSUBTAGS: extra build tags (comma separated)
"""

__all__ = ["Options", "host_os", "host_arch"]

import os
import platform
import sys
from dataclasses import dataclass, field
from typing import Any, Callable

import gosub


def host_os():
    """Platform name of the running host, spelled the Go way."""
    name = sys.platform
    if name.startswith("win"):
        return "windows"
    if name.startswith("freebsd"):
        return "freebsd"
    return name


_ARCHES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
}


def host_arch():
    """Machine architecture of the running host, spelled the Go way."""
    machine = platform.machine().lower()
    return _ARCHES.get(machine, machine)


@dataclass
class Options:
    """Configuration for an `Interp`.

    Attributes:
        gopath: Package roots searched for absolute import paths
        tool_dir: Tool directory, searched when no package root holds a path
        goos: Target operating system for build constraints
        goarch: Target architecture for build constraints
        build_tags: Extra tags satisfied by build constraints
        filesystem: Filesystem package sources are read from
        stdout: Stream used by print and println
        ast_hook: Optional callable receiving (ast_root, filename) per file
        discovery: Directory discovery strategy, built from gopath and
            tool_dir when not given
    """

    gopath: list[str] = field(default_factory=list)
    tool_dir: str = ""
    goos: str = field(default_factory=host_os)
    goarch: str = field(default_factory=host_arch)
    build_tags: list[str] = field(default_factory=list)
    filesystem: Any = field(default_factory=lambda: gosub.OSFileSystem())
    stdout: Any = field(default_factory=lambda: sys.stdout)
    ast_hook: Callable | None = None
    discovery: Any = None

    @classmethod
    def from_environ(cls, environ=None, **overrides):
        """Create options from environment variables.

        Args:
            environ: Mapping to read instead of `os.environ`
            **overrides: Fields that take precedence over the environment

        Returns:
            Options
        """
        if environ is None:
            environ = os.environ
        values = {}
        paths = environ.get("GOSUBPATH", "")
        if paths:
            values["gopath"] = [p for p in paths.split(os.pathsep) if p]
        if environ.get("GOSUBTOOLDIR"):
            values["tool_dir"] = environ["GOSUBTOOLDIR"]
        if environ.get("GOSUBOS"):
            values["goos"] = environ["GOSUBOS"]
        if environ.get("GOSUBARCH"):
            values["goarch"] = environ["GOSUBARCH"]
        tags = environ.get("GOSUBTAGS", "")
        if tags:
            values["build_tags"] = [t.strip() for t in tags.split(",") if t.strip()]
        values.update(overrides)
        return cls(**values)
