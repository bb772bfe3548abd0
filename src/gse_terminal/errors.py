"""Exception types raised across the research terminal."""

from __future__ import annotations


class TerminalError(Exception):
    """Base class for all research terminal errors."""


class ValidationError(TerminalError, ValueError):
    """The query was empty or whitespace-only; no request was made."""


class RequestError(TerminalError):
    """The call to the AI search provider failed (network or provider error)."""


class StructuredDataParseError(TerminalError, ValueError):
    """The JSON block embedded in the AI response could not be decoded."""


class ConfigError(TerminalError, ValueError):
    """A required setting (the provider credential) is missing."""


class SessionBusyError(TerminalError):
    """A search was submitted while another one is still in flight."""
