"""
Constants module for endpoints, file locations and state keys.

This module contains the fixed values shared by the identity provider client,
the credential store and the role assumption flow.
"""

import platform

from . import __version__

# Identity provider endpoints
IDP_BASE_URL = "https://sso.saml.to/github"
IDP_DEV_BASE_URL = "https://sso-nonlive.saml.to/github"

IDENTITY_PATH = "/api/v1/identity"
ROLES_PATH = "/api/v1/roles"
ASSUME_ROLE_PATH = "/api/v1/roles/{role}/assume"
TOTP_ENROLL_PATH = "/api/v1/totp/{org}/enroll/{method}"

# Request headers
USER_AGENT = (
    f"samlcreds/{__version__} ({platform.system().lower()}; {platform.machine()}) "
    f"Python/{platform.python_version()}"
)
TWO_FACTOR_HEADER = "x-2fa-code"
API_KEY_HEADER = "x-api-key"

DEFAULT_HTTP_TIMEOUT = 30

# STS
STS_ENDPOINT_URL = "https://sts.amazonaws.com"
DEFAULT_REGION = "us-east-1"

# AWS CLI shared files
AWS_CONFIG_FILE_ENV = "AWS_CONFIG_FILE"
AWS_SHARED_CREDENTIALS_FILE_ENV = "AWS_SHARED_CREDENTIALS_FILE"
AWS_DIR_NAME = ".aws"
AWS_CONFIG_FILENAME = "config"
AWS_CREDENTIALS_FILENAME = "credentials"
DEFAULT_PROFILE_NAME = "default"
PROFILE_SECTION_PREFIX = "profile "

# GitHub token fallback
GITHUB_TOKEN_ENV = "GITHUB_TOKEN"

# Remembered state
LAST_ROLE_SELECTION_KEY = "assumeAws.lastRoleSelection"
STATE_DIR_NAME = "samlcreds"
STATE_FILENAME = "state.json"

# 2-factor codes are 1 to 10 decimal digits
TOTP_CODE_PATTERN = r"^\d{1,10}$"
DEFAULT_TOTP_MAX_ATTEMPTS = 5

# Prefix for user-facing messages
MESSAGE_PREFIX = "[samlcreds]"
