"""
Shared data types and models for samlcreds.

This module contains the data classes passed between the identity provider
client, the 2-factor flow, the role assumption flow and the credential store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from .enums import TotpMethod

# Type aliases for JSON-serializable data
JsonDict = Dict[str, Any]
"""Type for JSON dictionaries returned by the identity provider."""


@dataclass(frozen=True)
class RoleSelection:
    """
    A requested role.

    org and provider disambiguate roles that share an ARN across identity sources.
    """
    role_arn: str
    org: Optional[str] = None
    provider: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"roleArn": self.role_arn, "org": self.org, "provider": self.provider}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["RoleSelection"]:
        role_arn = data.get("roleArn")
        if not role_arn:
            return None
        return cls(role_arn=role_arn, org=data.get("org"), provider=data.get("provider"))


@dataclass
class AvailableRole:
    """A role the authenticated identity is allowed to assume."""
    role: str
    org: Optional[str] = None
    provider: Optional[str] = None

    def to_selection(self) -> RoleSelection:
        return RoleSelection(role_arn=self.role, org=self.org, provider=self.provider)


@dataclass
class Identity:
    """The GitHub identity behind the identity provider session."""
    id: str
    name: str


@dataclass
class Challenge:
    """
    A pending 2-factor requirement returned instead of a SAML assertion.

    Attributes:
        org: Organization that requires 2-factor authentication
        invitation: Enrollment invitation, only present for first-time enrollment
        recipient: Where codes are delivered (email address, app account name)
        methods: Allowed delivery methods, in server order
    """
    org: str
    invitation: Optional[str] = None
    recipient: Optional[str] = None
    methods: List[TotpMethod] = field(default_factory=list)


@dataclass
class SamlCredentials:
    """SAML assertion plus the opaque STS parameters the identity provider supplies."""
    sdk_options: Dict[str, Any]
    saml_response: str


AssumeRoleResult = Union[Challenge, SamlCredentials]
"""Result of asking the identity provider to assume a role."""


@dataclass
class EnrollmentState:
    """Carried across a failed verification so method and recipient are not asked again."""
    method: TotpMethod
    recipient: Optional[str] = None


@dataclass
class EnrollResponse:
    """Response of the identity provider's enroll/verify operation."""
    method: Optional[TotpMethod] = None
    uri: Optional[str] = None
    recipient: Optional[str] = None
    verified: Optional[bool] = None


@dataclass
class TotpQr:
    """Scannable enrollment artifact derived from a provisioning URI."""
    uri: str
    secret: str
    ascii: str

    @property
    def formatted_secret(self) -> str:
        """Secret in groups of four characters for manual entry."""
        return " ".join(self.secret[i:i + 4] for i in range(0, len(self.secret), 4))


@dataclass
class TemporaryCredentials:
    """Short-lived AWS credentials issued by STS."""
    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: datetime

    def to_credential_process(self) -> JsonDict:
        """Format for the AWS CLI credential_process protocol."""
        return {
            "Version": 1,
            "AccessKeyId": self.access_key_id,
            "SecretAccessKey": self.secret_access_key,
            "SessionToken": self.session_token,
            "Expiration": self.expiration.isoformat(),
        }


@dataclass
class Done:
    """A finished attempt carrying the issued credentials."""
    credentials: TemporaryCredentials


@dataclass
class NeedsChallenge:
    """
    An attempt suspended on a 2-factor challenge.

    resume_with continues the same attempt once a proof code is known.
    """
    challenge: Challenge
    resume_with: Callable[[str], "Attempt"]


Attempt = Union[Done, NeedsChallenge]
"""Outcome of a single step of the role assumption flow."""
