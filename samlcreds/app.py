"""
Command surface.

SamlCredsApp wires configuration, the identity provider, the credential store
and the refresh timer together and exposes the two commands a front end
offers: assume a role and stop refreshing.
"""

import logging
from pathlib import Path
from typing import Optional

from .assume import RoleAssumer
from .config import SamlCredsConfig
from .credential_store import CredentialStore
from .errors import ConfigurationError
from .idp.api import IdpClientFactory
from .output import OutputHandler
from .prompts import ConsolePrompter, Prompter
from .scheduler import RefreshScheduler
from .state import JsonFileStateStore, MemoryStateStore, RememberedSelection, default_state_file
from .types import RoleSelection, TemporaryCredentials

logger = logging.getLogger(__name__)


class SamlCredsApp:
    """Long-lived application object for one process."""

    def __init__(
        self,
        config: SamlCredsConfig,
        prompter: Optional[Prompter] = None,
        idp_factory: Optional[IdpClientFactory] = None,
        store: Optional[CredentialStore] = None,
        scheduler: Optional[RefreshScheduler] = None,
        remembered: Optional[RememberedSelection] = None,
    ) -> None:
        self.config = config
        self.idp_factory = idp_factory or IdpClientFactory(config)
        self.scheduler = scheduler or RefreshScheduler()
        state_file = Path(config.state_file).expanduser() if config.state_file else default_state_file()
        self.assumer = RoleAssumer(
            config=config,
            idp_factory=self.idp_factory,
            prompter=prompter or ConsolePrompter(),
            remembered=remembered or RememberedSelection(
                config.remember_role, MemoryStateStore(), JsonFileStateStore(state_file)
            ),
            store=store or CredentialStore.from_environment(
                config.aws_config_file, config.aws_credentials_file
            ),
            scheduler=self.scheduler,
        )

    def initialize(self) -> bool:
        """
        Validate the GitHub token up front.

        Returns:
            True if the identity was fetched, False if a warning was shown instead
        """
        try:
            identity = self.idp_factory.authenticate()
        except ConfigurationError as e:
            OutputHandler.warning(f"Unable to initialize: {e}")
            return False
        OutputHandler.info(f"Logged into GitHub as {identity.name} ({identity.id})")
        return True

    def assume_role(
        self,
        role_arn: Optional[str] = None,
        org: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> Optional[TemporaryCredentials]:
        """Assume role_arn, or the remembered role, or a role picked by the user."""
        selection = RoleSelection(role_arn=role_arn, org=org, provider=provider) if role_arn else None
        return self.assumer.assume_role(selection)

    def stop_refresh(self) -> bool:
        """Cancel the pending credential refresh, if any."""
        return self.scheduler.stop()

    def activate(
        self,
        role_arn: Optional[str] = None,
        org: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> Optional[TemporaryCredentials]:
        """
        Start up: validate the identity, then assume a role if configured to.

        An explicit role_arn always triggers an assumption.
        """
        self.initialize()
        role_arn = role_arn or self.config.role
        if not role_arn and not self.config.assume_role_at_startup:
            logger.info("assume_role_at_startup is disabled, nothing to do")
            return None
        return self.assume_role(role_arn, org, provider)
