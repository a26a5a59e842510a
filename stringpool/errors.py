from typing import Optional


class PoolError(Exception):
    """Base class for all stringpool failures."""


class TemplateError(PoolError):
    """
    Raised by the placeholder template codec.

    `type` mirrors the class name so validation issues can carry it as a code.
    """
    type = "TemplateError"

    def __init__(self, message: str, template: Optional[str] = None):
        super().__init__(message)
        self.template = template


class MalformedTemplate(TemplateError):
    type = "MalformedTemplate"


class UnresolvedPlaceholder(TemplateError):
    type = "UnresolvedPlaceholder"

    def __init__(self, message: str, template: Optional[str] = None, index: Optional[int] = None):
        super().__init__(message, template)
        self.index = index


class NonContiguousIndices(TemplateError):
    type = "NonContiguousIndices"


class PlaceholderCountMismatch(TemplateError):
    type = "PlaceholderCountMismatch"

    def __init__(self, message: str, template: Optional[str] = None,
                 expected: int = 0, found: int = 0):
        super().__init__(message, template)
        self.expected = expected
        self.found = found


class PoolLoadError(PoolError):
    """The interchange document could not be read or decoded."""


class PoolSaveError(PoolError):
    """The interchange document could not be written."""


class InvalidStatusTransition(PoolError):
    def __init__(self, current, requested):
        super().__init__(f"Cannot move a unit from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested


class UnknownUnitError(PoolError, KeyError):
    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self):
        return f"No translation unit with key '{self.key}'"


class ScanError(PoolError):
    """A scanner failed before delivering its complete occurrence set."""
