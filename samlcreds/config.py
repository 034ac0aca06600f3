from typing import Optional
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_REGION,
    DEFAULT_TOTP_MAX_ATTEMPTS,
    IDP_BASE_URL,
    IDP_DEV_BASE_URL,
)
from .enums import ProfileNamePolicy, RememberRole


class SamlCredsConfig(BaseModel):
    # Falls back to GITHUB_TOKEN when unset
    github_token: Optional[str] = None
    # Sent as the origin header for Codespaces identities
    repository: Optional[str] = None
    region: str = DEFAULT_REGION
    # Role ARN to assume at startup; prompts for a role when unset
    role: Optional[str] = None
    # Naming policy (see ProfileNamePolicy) or a literal profile name
    profile_name: str = ProfileNamePolicy.DEFAULT_PROFILE.value
    auto_refresh: bool = True
    assume_role_at_startup: bool = True
    remember_role: RememberRole = RememberRole.NONE
    dev: bool = False
    api_key: Optional[str] = None
    api_base_url: Optional[str] = None
    http_timeout: float = Field(default=DEFAULT_HTTP_TIMEOUT, gt=0)
    # 0 disables the limit on incorrect 2-factor codes
    totp_max_attempts: int = Field(default=DEFAULT_TOTP_MAX_ATTEMPTS, ge=0)
    # Override AWS_CONFIG_FILE / AWS_SHARED_CREDENTIALS_FILE
    aws_config_file: Optional[str] = None
    aws_credentials_file: Optional[str] = None
    state_file: Optional[str] = None

    @property
    def resolved_api_base_url(self) -> str:
        if self.api_base_url:
            return self.api_base_url
        return IDP_DEV_BASE_URL if self.dev else IDP_BASE_URL

    @property
    def persists_profile(self) -> bool:
        return self.profile_name != ProfileNamePolicy.NONE.value
