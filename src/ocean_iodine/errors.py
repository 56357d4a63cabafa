"""Error hierarchy for ocean_iodine."""

from __future__ import annotations

from typing import Any, Mapping, Optional


class IodineEmissionError(Exception):
    """Base exception for ocean_iodine failures."""

    def __init__(
        self,
        message: str,
        *,
        user_message: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.user_message = message if user_message is None else user_message
        self.context = dict(context) if context else {}

    def log_message(self) -> str:
        if not self.context:
            return str(self)
        return f"{self}: {self.context}"


class ConfigurationError(IodineEmissionError):
    """Configuration loading, validation, or species resolution error."""


class InstanceNotFoundError(IodineEmissionError):
    """No live instance is registered under the requested id."""


class UpstreamError(IodineEmissionError):
    """A host collaborator (fields, species, accumulation) failed."""


__all__ = [
    "IodineEmissionError",
    "ConfigurationError",
    "InstanceNotFoundError",
    "UpstreamError",
]
