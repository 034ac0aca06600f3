"""AWS integration for samlcreds."""

from .sts import exchange_saml_assertion

__all__ = [
    "exchange_saml_assertion",
]
