"""
Role assumption flow.

Resolves which role to assume, exchanges it with the identity provider for a
SAML assertion (answering a 2-factor challenge when asked), trades the
assertion for STS credentials, writes them to the AWS CLI files and schedules
the next refresh.

Remembered selection is cleared when an attempt starts and written back only
when the attempt succeeds.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .config import SamlCredsConfig
from .credential_store import CredentialStore, ProfileCredentials
from .aws.sts import exchange_saml_assertion
from .errors import (
    CredentialStoreError,
    NoRolesAvailableError,
    SamlCredsError,
    SelectionCancelledError,
    TransportError,
)
from .idp.api import IdpClientFactory
from .output import OutputHandler
from .profile_names import generate_profile_name
from .prompts import Prompter
from .scheduler import RefreshScheduler, format_duration
from .state import RememberedSelection
from .totp import ChallengeFlow
from .types import (
    Attempt,
    Challenge,
    Done,
    NeedsChallenge,
    RoleSelection,
    TemporaryCredentials,
)

logger = logging.getLogger(__name__)

SamlExchange = Callable[[Dict[str, Any], str, str], TemporaryCredentials]
"""(sdk_options, saml_response, region) -> credentials"""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def refresh_delay_seconds(expiration: datetime, now: datetime) -> float:
    """
    Half of the remaining credential lifetime, in seconds.

    Naive datetimes are treated as UTC.
    """
    if expiration.tzinfo is None:
        expiration = expiration.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (expiration - now).total_seconds() / 2


class RoleAssumer:
    """
    Orchestrates a role assumption attempt end to end.

    assume_role() is the entry point and the error boundary. attempt() runs
    one pass of the flow and returns either Done or NeedsChallenge so a
    challenge can be answered without nesting calls.
    """

    def __init__(
        self,
        config: SamlCredsConfig,
        idp_factory: IdpClientFactory,
        prompter: Prompter,
        remembered: RememberedSelection,
        store: CredentialStore,
        scheduler: RefreshScheduler,
        exchange: SamlExchange = exchange_saml_assertion,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config
        self.idp_factory = idp_factory
        self.prompter = prompter
        self.remembered = remembered
        self.store = store
        self.scheduler = scheduler
        self.exchange = exchange
        self.clock = clock

    def assume_role(
        self,
        selection: Optional[RoleSelection] = None,
        is_refresh: bool = False,
    ) -> Optional[TemporaryCredentials]:
        """
        Assume a role, reporting any failure once.

        Args:
            selection: Role to assume; falls back to the remembered role, then prompts
            is_refresh: True when invoked by the refresh timer (suppresses notifications)

        Returns:
            The issued credentials, or None if the attempt failed or was cancelled
        """
        self.scheduler.cancel()
        try:
            outcome = self.attempt(selection, is_refresh=is_refresh)
            while isinstance(outcome, NeedsChallenge):
                code = self._answer_challenge(outcome.challenge)
                if code is None:
                    logger.info("2-factor challenge cancelled")
                    return None
                outcome = outcome.resume_with(code)
            return outcome.credentials
        except SamlCredsError as e:
            self._report_failure(e)
            return None
        except Exception as e:
            # Runs on the refresh timer thread too, which must never die on an error
            self._report_failure(e)
            return None

    def _report_failure(self, error: Exception) -> None:
        self._forget_selection()
        logger.debug("Role assumption failed", exc_info=True)
        if isinstance(error, TransportError) and error.detail:
            OutputHandler.warning(f"Unable to assume AWS role: {error.detail}")
        else:
            OutputHandler.warning(f"Unable to assume AWS role: {error}")

    def _answer_challenge(self, challenge: Challenge) -> Optional[str]:
        flow = ChallengeFlow(self.idp_factory, self.prompter, max_attempts=self.config.totp_max_attempts)
        return flow.run(challenge)

    def _forget_selection(self) -> None:
        try:
            self.remembered.clear()
        except CredentialStoreError as e:
            logger.warning(f"Unable to clear remembered role: {e}")

    def attempt(
        self,
        selection: Optional[RoleSelection] = None,
        two_factor_code: Optional[str] = None,
        is_refresh: bool = False,
    ) -> Attempt:
        """
        Run one pass of the flow.

        Raises:
            SamlCredsError: On any failure; the caller's boundary reports it
        """
        if selection is None:
            selection = self.remembered.get()

        self.remembered.clear()

        if selection is None:
            selection = self._select_role(two_factor_code)

        idp = self.idp_factory.idp(two_factor_code)
        result = idp.assume_role(selection.role_arn, selection.org, selection.provider)

        if isinstance(result, Challenge):
            chosen = selection

            def resume_with(code: str) -> Attempt:
                return self.attempt(chosen, two_factor_code=code, is_refresh=is_refresh)

            return NeedsChallenge(challenge=result, resume_with=resume_with)

        if not is_refresh:
            OutputHandler.info(f'Assumed AWS Role "{selection.role_arn}"')

        now = self.clock()
        credentials = self.exchange(result.sdk_options, result.saml_response, self.config.region)

        self.remembered.set(selection)
        self._persist(selection, credentials, is_refresh)
        self._schedule(selection, credentials, now, is_refresh)

        return Done(credentials=credentials)

    def _select_role(self, two_factor_code: Optional[str]) -> RoleSelection:
        roles = self.idp_factory.idp(two_factor_code).list_roles()
        if not roles:
            raise NoRolesAvailableError("No roles available")

        selection = self.prompter.choose_role(roles)
        if selection is None:
            raise SelectionCancelledError("No role selected")
        return selection

    def _persist(self, selection: RoleSelection, credentials: TemporaryCredentials, is_refresh: bool) -> None:
        if not self.config.persists_profile:
            logger.debug("Profile naming policy is None, credentials are returned to the caller only")
            return

        profile_name = generate_profile_name(self.config.profile_name, selection)
        self.store.upsert_profile(
            profile_name,
            ProfileCredentials(
                region=self.config.region,
                access_key_id=credentials.access_key_id,
                secret_access_key=credentials.secret_access_key,
                session_token=credentials.session_token,
            ),
        )
        if not is_refresh:
            OutputHandler.info(f'AWS Profile "{profile_name}" has been updated')

    def _schedule(
        self,
        selection: RoleSelection,
        credentials: TemporaryCredentials,
        now: datetime,
        is_refresh: bool,
    ) -> None:
        if not self.config.auto_refresh:
            return

        delay = refresh_delay_seconds(credentials.expiration, now)
        self.scheduler.arm(delay, lambda: self.refresh(selection))
        if not is_refresh:
            OutputHandler.info(f"Credentials will refresh every {format_duration(delay)}")

    def refresh(self, selection: RoleSelection) -> None:
        """Timer callback: re-assume the same role without a 2-factor code."""
        logger.info(f"Refreshing credentials for {selection.role_arn}")
        self.assume_role(selection, is_refresh=True)
