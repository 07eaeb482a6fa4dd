"""Error classes and helpers"""

__all__ = [
    "GosubError",
    "LocationError",
    "PackageNotFoundError",
    "EnvironmentNotConfiguredError",
    "ImportCycleError",
    "ParseError",
    "ASTError",
    "PackageNameConflictError",
    "GTAError",
    "UnresolvedDeclarationError",
    "RedeclaredError",
    "CFGError",
    "RegistrationInconsistencyError",
    "ExecutionError",
]


class GosubError(Exception):
    """Base class for errors raised while loading or running a package.

    Every error can name the import path, file, source position and symbol
    it relates to. Context that is not known where the error is raised is
    filled in by callers further up the import pipeline with `annotate`.

    Args:
        message: (str) Error description
        import_path: (str | None) Import path being loaded
        filename: (str | None) Source file the error relates to
        position: (SourcePosition | None) Position in the source file
        symbol: (str | None) Name of the declaration involved

    Attributes:
        message: (str) Error description without context
    """

    def __init__(self, message, *, import_path=None, filename=None,
                 position=None, symbol=None):
        self.message = message
        self.import_path = import_path
        self.filename = filename
        self.position = position
        self.symbol = symbol
        if filename is None and position is not None:
            self.filename = getattr(position, "filename", None)
        super().__init__(self._format())

    def annotate(self, import_path=None, filename=None, position=None):
        """Fill in context that was unknown where the error was raised."""
        if self.import_path is None and import_path is not None:
            self.import_path = import_path
        if self.position is None and position is not None:
            self.position = position
            if self.filename is None:
                self.filename = getattr(position, "filename", None)
        if self.filename is None and filename is not None:
            self.filename = filename
        self.args = (self._format(),)
        return self

    def _format(self):
        text = self.message
        location = None
        if self.position is not None and getattr(self.position, "start_line", None):
            location = str(self.position)
        elif self.filename:
            location = self.filename
        if location:
            text = f"{location}: {text}"
        if self.import_path:
            text = f"{text} (import {self.import_path!r})"
        return text

    def __str__(self):
        return self._format()


class LocationError(GosubError):
    """Package source directory could not be located or read."""


class PackageNotFoundError(LocationError):
    """No configured search location holds the import path."""


class EnvironmentNotConfiguredError(LocationError):
    """No package search location is configured at all."""


class ImportCycleError(GosubError):
    """Import path imports itself, directly or transitively."""


class ParseError(GosubError):
    """Exception raised for parsing errors.

    Args:
        message: (str) Error description
        position: (SourcePosition | None) Optional position where error occurred

    Attributes:
        message: (str) Error description
        position: (SourcePosition | None) Position where error occurred
    """

    def __init__(self, message, position=None, **context):
        super().__init__(message, position=position, **context)


class ASTError(GosubError):
    """Syntax tree is well formed but describes an invalid construct."""


class PackageNameConflictError(GosubError):
    """Files of one directory declare different package names."""


class GTAError(GosubError):
    """Error resolving package level declarations."""


class UnresolvedDeclarationError(GTAError):
    """Declaration still depends on an unknown identifier after retry."""


class RedeclaredError(GTAError):
    """Name declared twice in the same package block."""


class CFGError(GosubError):
    """Error building executable code for a syntax tree."""


class RegistrationInconsistencyError(GosubError):
    """Import registry disagrees with itself. Never expected."""


class ExecutionError(GosubError):
    """Error raised while running generated code."""
