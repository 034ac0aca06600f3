"""
Enumerations for samlcreds.

This module contains all enum types used throughout the application
to replace magic strings and improve type safety.
"""

from enum import Enum


class TotpMethod(str, Enum):
    """Delivery channels for a one-time 2-factor code."""
    APP = "app"
    EMAIL = "email"


class RememberRole(str, Enum):
    """Scope in which the last successfully assumed role is remembered."""
    NONE = "None"
    SESSION = "Session"
    GLOBAL = "Global"


class ProfileNamePolicy(str, Enum):
    """Built-in profile naming policies. Any other value is a literal profile name."""
    DEFAULT_PROFILE = "Default Profile"
    ROLE_ARN = "Role ARN"
    ROLE_NAME = "Role Name"
    ACCOUNT_ID = "Account ID"
    NONE = "None"


class ChallengeState(str, Enum):
    """States of the 2-factor enrollment/verification flow."""
    SELECTING_METHOD = "selecting_method"
    ENROLLING = "enrolling"
    AWAITING_CODE = "awaiting_code"
    VERIFYING = "verifying"
    SUCCEEDED = "succeeded"
    RETRYING = "retrying"
    CANCELLED = "cancelled"
