"""
Profile naming policy.

Maps a configured naming policy and a role selection to the AWS CLI profile
name credentials are written under.
"""

from .constants import DEFAULT_PROFILE_NAME
from .enums import ProfileNamePolicy
from .errors import MalformedArnError
from .types import RoleSelection

# arn:partition:service:region:account-id:resource
ARN_ACCOUNT_ID_INDEX = 4


def generate_profile_name(policy: str, selection: RoleSelection) -> str:
    """
    Compute the profile name for a role selection.

    Args:
        policy: One of the ProfileNamePolicy values, or a literal profile name
        selection: The role being assumed

    Returns:
        Profile name

    Raises:
        MalformedArnError: If the Account ID policy is used with an ARN that has no account field
    """
    role_arn = selection.role_arn

    if policy == ProfileNamePolicy.DEFAULT_PROFILE.value:
        return DEFAULT_PROFILE_NAME

    if policy == ProfileNamePolicy.ROLE_NAME.value:
        return role_arn.split("/")[-1] or role_arn

    if policy == ProfileNamePolicy.ROLE_ARN.value:
        return role_arn

    if policy == ProfileNamePolicy.ACCOUNT_ID.value:
        parts = role_arn.split(":")
        if len(parts) <= ARN_ACCOUNT_ID_INDEX:
            raise MalformedArnError(f"Unable to extract an account ID from role ARN '{role_arn}'")
        return parts[ARN_ACCOUNT_ID_INDEX]

    return policy
