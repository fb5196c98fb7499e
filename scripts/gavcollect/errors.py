"""Exception hierarchy for descriptor resolution.

Only ``RepositoryUnavailable`` is meant to escape a resolution run. The other
errors are raised at the point of failure and caught by the resolver, which
records a diagnostic and moves on to the next candidate.
"""

from pathlib import Path
from typing import Optional


class GavCollectError(Exception):
    """Base class for all errors raised by this package."""


class DescriptorNotFound(GavCollectError):
    """The descriptor path does not exist or is not a regular file."""

    def __init__(self, path: Path):
        super().__init__(f"descriptor not found: {path}")
        self.path = path


class DescriptorParseError(GavCollectError):
    """The descriptor exists but is not well-formed XML.

    Attributes:
        path: The offending file.
        cause: The underlying parser exception.
        partial: A ``RawDescriptor`` salvaged from the raw text (identity and
            parent only), or ``None`` if nothing usable was found.
    """

    def __init__(self, path: Path, cause: Exception, partial=None):
        super().__init__(f"malformed descriptor {path}: {cause}")
        self.path = path
        self.cause = cause
        self.partial = partial


class InvalidCoordinate(GavCollectError, ValueError):
    """A coordinate failed validation and must not be stored."""

    def __init__(self, message: str, subject: Optional[str] = None):
        super().__init__(message)
        self.subject = subject


class MissingRequiredField(InvalidCoordinate):
    """groupId, artifactId or version is blank."""


class UnresolvedPlaceholder(InvalidCoordinate):
    """A field still carries a ``${...}`` reference after interpolation."""


class RepositoryUnavailable(GavCollectError):
    """The local repository root exists but cannot be read as a directory."""

    def __init__(self, root: Path):
        super().__init__(f"local repository is not a readable directory: {root}")
        self.root = root
