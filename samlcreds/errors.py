"""
Exception hierarchy for samlcreds.

Every failure that can end a role-assumption attempt is expressed as a
subclass of SamlCredsError so the attempt boundary can report it once and
reset remembered state.
"""

from typing import Optional


class SamlCredsError(Exception):
    """Base class for all samlcreds errors."""


class ConfigurationError(SamlCredsError):
    """Raised when a required external input is missing (e.g. no GitHub token)."""


class ProtocolError(SamlCredsError):
    """Raised when the identity provider or STS returns a structurally invalid response."""


class ChallengeError(SamlCredsError):
    """Raised when a 2-factor challenge cannot be completed."""


class NoRolesAvailableError(SamlCredsError):
    """Raised when the identity provider lists no roles for the current identity."""


class SelectionCancelledError(SamlCredsError):
    """Raised when the user declines to pick a role."""


class CredentialStoreError(SamlCredsError):
    """Raised when the AWS config or credentials file cannot be read or written."""


class MalformedArnError(SamlCredsError, ValueError):
    """Raised when a role ARN does not have the expected arn:partition:service:region:account:resource shape."""


class TransportError(SamlCredsError):
    """
    Raised when a call to the identity provider or STS fails at the transport level.

    Attributes:
        status_code: HTTP status code, if a response was received
        detail: Server-supplied error message, if one was returned
    """

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return self.detail
        return super().__str__()
