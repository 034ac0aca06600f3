"""
SAML.to identity provider integration.

This package provides the HTTP client used to list roles, exchange a role for
a SAML assertion and enroll in or verify 2-factor authentication.
"""

from .api import IdpClient, IdpClientFactory

__all__ = [
    "IdpClient",
    "IdpClientFactory",
]
