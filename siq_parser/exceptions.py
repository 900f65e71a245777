"""Errors raised by the package parser."""


class PackageError(RuntimeError):
    """Base error for a package that cannot be parsed."""


class InvalidFormatError(PackageError):
    """The archive is unreadable or its root document is missing/unparsable."""
