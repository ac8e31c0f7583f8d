"""Exception types shared across medshelf."""

from __future__ import annotations


class MedshelfError(Exception):
    """Base class for medshelf errors."""


class InvalidFormat(MedshelfError, ValueError):
    """A month/year value or its text form is malformed."""


class InvalidRecord(MedshelfError, ValueError):
    """A medicine record failed validation (blank name, unknown field, ...)."""


class StorageUnavailable(MedshelfError):
    """The backing database could not be opened or written."""


class LabelReadError(MedshelfError, ValueError):
    """A package photo could not be read into label fields."""
