"""Application-level exception types for Shehab."""

from __future__ import annotations


class ShehabError(Exception):
    """Base exception for Shehab."""


class ConfigurationError(ShehabError):
    """Base exception for configuration and startup validation errors."""


class ModelNotConfiguredError(ConfigurationError):
    """Raised when model configuration is missing."""


class InvalidModelFormatError(ConfigurationError):
    """Raised when model format is not provider:model."""


class DuplicateToolError(ShehabError):
    """Raised when a tool name is registered twice."""


class UnknownToolError(ShehabError, KeyError):
    """Raised when a tool name is not in the registry."""

    def __str__(self) -> str:
        return f"unknown tool: {self.args[0]}" if self.args else "unknown tool"


class ModelUnavailableError(ShehabError):
    """Raised when the language model call fails (network, timeout, quota, bad response)."""


class MalformedToolArgumentsError(ShehabError):
    """Raised when structured tool call arguments are not a JSON object."""
