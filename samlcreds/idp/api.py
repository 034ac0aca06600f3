"""
SAML.to identity provider HTTP client.

Wraps the identity provider's REST API: identity lookup, role listing, role
assumption (SAML assertion or 2-factor challenge) and TOTP enrollment.
"""

import logging
import os
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ..config import SamlCredsConfig
from ..constants import (
    API_KEY_HEADER,
    ASSUME_ROLE_PATH,
    GITHUB_TOKEN_ENV,
    IDENTITY_PATH,
    ROLES_PATH,
    TOTP_ENROLL_PATH,
    TWO_FACTOR_HEADER,
    USER_AGENT,
)
from ..enums import TotpMethod
from ..errors import ConfigurationError, ProtocolError, TransportError
from ..types import (
    AssumeRoleResult,
    AvailableRole,
    Challenge,
    EnrollResponse,
    Identity,
    JsonDict,
    SamlCredentials,
)

logger = logging.getLogger(__name__)


def _parse_method(value: Any) -> Optional[TotpMethod]:
    if value is None:
        return None
    try:
        return TotpMethod(str(value).lower())
    except ValueError as e:
        raise ProtocolError(f"Unsupported 2-factor method '{value}'") from e


class IdpClient:
    """
    Client for a single identity provider session.

    Each client carries a fixed set of headers: the caller identity, the bearer
    token and, when a 2-factor proof is available, the proof code.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        two_factor_code: Optional[str] = None,
        repository: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 30,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()
        self.headers: Dict[str, str] = {
            "user-agent": USER_AGENT,
            "authorization": f"Bearer {access_token}",
            "accept": "application/json",
        }
        if two_factor_code:
            self.headers[TWO_FACTOR_HEADER] = two_factor_code
        # Origin header for Codespaces identity
        if repository:
            self.headers["origin"] = repository
        if api_key:
            self.headers[API_KEY_HEADER] = api_key

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[JsonDict] = None,
    ) -> JsonDict:
        """
        Perform a request and decode the JSON response.

        Raises:
            TransportError: If the request fails or returns a non-2xx status
            ProtocolError: If the response body is not a JSON object
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            response = self.http.request(
                method,
                url,
                headers=self.headers,
                params=params,
                json=json_body,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            raise TransportError(
                f"Request to {path} failed with status {status_code}",
                status_code=status_code,
                detail=self._error_detail(e.response),
            ) from e
        except requests.RequestException as e:
            raise TransportError(f"Unable to reach identity provider: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ProtocolError(f"Identity provider returned a non-JSON response for {path}") from e
        if not isinstance(data, dict):
            raise ProtocolError(f"Identity provider returned an unexpected response for {path}")
        return data

    @staticmethod
    def _error_detail(response: Optional[requests.Response]) -> Optional[str]:
        if response is None:
            return None
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return None

    def get_identity(self) -> Identity:
        data = self._request("GET", IDENTITY_PATH)
        return Identity(id=str(data.get("id", "")), name=str(data.get("name", "")))

    def list_roles(self) -> List[AvailableRole]:
        """List the roles the authenticated identity may assume."""
        data = self._request("GET", ROLES_PATH)
        results = data.get("results") or []
        if not isinstance(results, list) or not all(isinstance(entry, dict) for entry in results):
            raise ProtocolError("Identity provider returned malformed role results")
        return [
            AvailableRole(role=entry["role"], org=entry.get("org"), provider=entry.get("provider"))
            for entry in results
            if entry.get("role")
        ]

    def assume_role(
        self,
        role_arn: str,
        org: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> AssumeRoleResult:
        """
        Exchange a role for a SAML assertion.

        Returns:
            Challenge if a 2-factor code is required, otherwise SamlCredentials

        Raises:
            ProtocolError: If the response has neither a challenge nor both sdkOptions and samlResponse
        """
        params: Dict[str, str] = {}
        if org:
            params["org"] = org
        if provider:
            params["provider"] = provider

        data = self._request("POST", ASSUME_ROLE_PATH.format(role=quote(role_arn, safe="")), params=params)

        challenge = data.get("challenge")
        if challenge:
            if not isinstance(challenge, dict):
                raise ProtocolError("Identity provider returned a malformed 2-factor challenge")
            methods = challenge.get("methods") or []
            if not isinstance(methods, list):
                raise ProtocolError("Identity provider returned a malformed 2-factor challenge")
            return Challenge(
                org=challenge.get("org", ""),
                invitation=challenge.get("invitation"),
                recipient=challenge.get("recipient"),
                methods=[m for m in (_parse_method(v) for v in methods) if m],
            )

        sdk_options = data.get("sdkOptions")
        saml_response = data.get("samlResponse")
        if not sdk_options:
            raise ProtocolError("Missing SDK Options")
        if not isinstance(sdk_options, dict):
            raise ProtocolError("Malformed SDK Options")
        if not saml_response or not isinstance(saml_response, str):
            raise ProtocolError("Missing SAML Response")
        return SamlCredentials(sdk_options=dict(sdk_options), saml_response=saml_response)

    def totp_enroll(
        self,
        org: str,
        method: TotpMethod,
        invitation: Optional[str] = None,
    ) -> EnrollResponse:
        """
        Start TOTP enrollment, or verify it when the client carries a code.
        """
        body: JsonDict = {}
        if invitation:
            body["invitation"] = invitation
        path = TOTP_ENROLL_PATH.format(org=quote(org, safe=""), method=method.value)
        data = self._request("POST", path, json_body=body)
        return EnrollResponse(
            method=_parse_method(data.get("method")),
            uri=data.get("uri"),
            recipient=data.get("recipient"),
            verified=data.get("verified"),
        )


class IdpClientFactory:
    """
    Creates identity provider clients for the configured GitHub identity.

    The GitHub token comes from configuration, then the GITHUB_TOKEN
    environment variable. The first time a token is seen it is validated by
    fetching the identity behind it.
    """

    def __init__(self, config: SamlCredsConfig, http: Optional[requests.Session] = None) -> None:
        self.config = config
        self.http = http or requests.Session()
        self.access_token: Optional[str] = None
        self.identity: Optional[Identity] = None

    def _resolve_token(self) -> str:
        token = self.config.github_token or os.environ.get(GITHUB_TOKEN_ENV)
        if not token:
            raise ConfigurationError(
                f"No GitHub token configured. Set github_token in the config file or {GITHUB_TOKEN_ENV}."
            )
        return token

    def _client(self, access_token: str, two_factor_code: Optional[str]) -> IdpClient:
        return IdpClient(
            base_url=self.config.resolved_api_base_url,
            access_token=access_token,
            two_factor_code=two_factor_code,
            repository=self.config.repository,
            api_key=self.config.api_key if self.config.dev else None,
            timeout=self.config.http_timeout,
            http=self.http,
        )

    def authenticate(self) -> Identity:
        """
        Validate the configured token and remember it.

        Raises:
            ConfigurationError: If no token is configured or the identity cannot be fetched
        """
        token = self._resolve_token()
        if self.identity is not None and token == self.access_token:
            return self.identity
        try:
            identity = self._client(token, None).get_identity()
        except (TransportError, ProtocolError) as e:
            raise ConfigurationError(f"Unable to fetch GitHub Identity: {e}") from e
        self.access_token = token
        self.identity = identity
        logger.debug(f"Validated GitHub token for {identity.name} ({identity.id})")
        return identity

    def idp(self, two_factor_code: Optional[str] = None) -> IdpClient:
        """Return a client for the authenticated identity, optionally carrying a 2-factor code."""
        self.authenticate()
        return self._client(self._resolve_token(), two_factor_code)
