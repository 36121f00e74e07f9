from __future__ import annotations


class UnknownSourceError(KeyError):
    """Raised when a clip source name has not been registered with the library."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f'Source "{self.name}" not registered'


class RetargetMissingRootError(ValueError):
    """The target skeleton has no bone for the source root, or the clip has no root position track."""
