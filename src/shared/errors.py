"""Exception hierarchy shared across the viewer."""

from __future__ import annotations


class MapiusError(Exception):
    """Base class for viewer errors."""


class ConfigurationError(MapiusError):
    """Settings or map-source catalog cannot be used; startup must abort."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        self.source = source
        if source:
            message = f'{source}: {message}'
        super().__init__(message)
