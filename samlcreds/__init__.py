"""Exchange a SAML.to identity for temporary AWS credentials."""

__version__ = "0.1.0"
