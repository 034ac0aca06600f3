"""AWS STS SAML exchange."""

import logging
from typing import Any, Dict, Optional

from boto3.session import Session
from botocore.exceptions import BotoCoreError, ClientError
from mypy_boto3_sts.client import STSClient
from mypy_boto3_sts.type_defs import AssumeRoleWithSAMLResponseTypeDef

from ..constants import STS_ENDPOINT_URL
from ..errors import ProtocolError, TransportError
from ..types import TemporaryCredentials

logger = logging.getLogger(__name__)


def exchange_saml_assertion(
    sdk_options: Dict[str, Any],
    saml_response: str,
    region: str,
    base_session: Optional[Session] = None
) -> TemporaryCredentials:
    """
    Exchange a SAML assertion for temporary credentials.

    Args:
        sdk_options: AssumeRoleWithSAML parameters supplied by the identity provider (RoleArn, PrincipalArn, ...)
        saml_response: Base64 encoded SAML assertion
        region: Region for the STS client
        base_session: Session used to create the STS client (defaults to boto3.Session())

    Returns:
        Temporary credentials with their expiration

    Raises:
        TransportError: If STS rejects the request or cannot be reached
        ProtocolError: If the response is missing credentials or any credential field
    """
    try:
        if base_session is None:
            base_session = Session()
        sts: STSClient = base_session.client("sts", region_name=region, endpoint_url=STS_ENDPOINT_URL)
        resp: AssumeRoleWithSAMLResponseTypeDef = sts.assume_role_with_saml(
            **sdk_options,
            SAMLAssertion=saml_response
        )
    except ClientError as e:
        error = e.response.get('Error', {})
        logger.debug(f"AssumeRoleWithSAML failed with {error.get('Code', 'Unknown')}")
        raise TransportError(
            f"AWS STS error: {e}",
            status_code=e.response.get('ResponseMetadata', {}).get('HTTPStatusCode'),
            detail=error.get('Message'),
        ) from e
    except BotoCoreError as e:
        raise TransportError(f"AWS STS request failed: {e}") from e

    creds = resp.get("Credentials")
    if not creds:
        raise ProtocolError("Missing Credentials")

    access_key_id = creds.get("AccessKeyId")
    secret_access_key = creds.get("SecretAccessKey")
    session_token = creds.get("SessionToken")
    expiration = creds.get("Expiration")
    if not access_key_id or not secret_access_key or not session_token or not expiration:
        raise ProtocolError("Missing Access Key Id, Secret Access Key, Session Token or Expiration")

    return TemporaryCredentials(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=session_token,
        expiration=expiration
    )
