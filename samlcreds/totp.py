"""
2-factor (TOTP) enrollment and verification.

When the identity provider answers a role request with a challenge, this flow
obtains a one-time code from the user, enrolling them first if the challenge
carries an invitation, and returns the code so the role request can be
repeated with it as proof.
"""

import io
import logging
from typing import List, Optional
from urllib.parse import parse_qs, urlparse

import qrcode

from .constants import DEFAULT_TOTP_MAX_ATTEMPTS
from .enums import ChallengeState, TotpMethod
from .errors import ChallengeError, ProtocolError
from .idp.api import IdpClientFactory
from .output import OutputHandler
from .prompts import Prompter
from .types import Challenge, EnrollmentState, TotpQr

logger = logging.getLogger(__name__)


def generate_totp_qr(uri: str) -> TotpQr:
    """
    Build the scannable enrollment artifact for an otpauth:// provisioning URI.

    Args:
        uri: Provisioning URI returned by enrollment

    Returns:
        TotpQr with the URI's secret parameter and an ASCII QR rendering of the raw URI
    """
    secret = parse_qs(urlparse(uri).query).get("secret", [""])[0]

    qr = qrcode.QRCode(border=1)
    qr.add_data(uri)
    qr.make(fit=True)
    out = io.StringIO()
    qr.print_ascii(out=out, invert=True)

    return TotpQr(uri=uri, secret=secret, ascii=out.getvalue())


class ChallengeFlow:
    """
    Drives a single 2-factor challenge to a verified code.

    States: SELECTING_METHOD -> ENROLLING -> AWAITING_CODE -> VERIFYING ->
    SUCCEEDED | RETRYING | CANCELLED. RETRYING loops back to AWAITING_CODE
    with the same method and the latest known recipient.

    Attributes:
        transitions: Every state entered, in order
    """

    def __init__(
        self,
        idp_factory: IdpClientFactory,
        prompter: Prompter,
        max_attempts: int = DEFAULT_TOTP_MAX_ATTEMPTS,
    ) -> None:
        self.idp_factory = idp_factory
        self.prompter = prompter
        self.max_attempts = max_attempts
        self.transitions: List[ChallengeState] = []
        self._enrollment_shown = False

    def _enter(self, state: ChallengeState) -> None:
        logger.debug(f"2-factor challenge state: {state.value}")
        self.transitions.append(state)

    def _dismiss_enrollment(self) -> None:
        if self._enrollment_shown:
            self.prompter.dismiss_enrollment()
            self._enrollment_shown = False

    def run(self, challenge: Challenge) -> Optional[str]:
        """
        Obtain a code that satisfies the challenge.

        Args:
            challenge: Challenge returned by the identity provider

        Returns:
            The accepted code, or None if the user cancelled

        Raises:
            ProtocolError: If the challenge has no methods or enrollment returns no URI
            ChallengeError: If too many incorrect codes were entered
        """
        if not challenge.methods:
            raise ProtocolError(
                f"Unable to enroll in 2-Factor Authentication. {challenge.org} requires Two Factor auth, "
                f"however the allowed challenge methods are missing."
            )

        try:
            return self._run(challenge)
        finally:
            self._dismiss_enrollment()

    def _run(self, challenge: Challenge) -> Optional[str]:
        enrollment = self._start(challenge)
        if enrollment is None:
            self._enter(ChallengeState.CANCELLED)
            return None

        failed_attempts = 0
        while True:
            self._enter(ChallengeState.AWAITING_CODE)
            code = self.prompter.prompt_code(self._code_message(challenge, enrollment))
            if not code:
                self._enter(ChallengeState.CANCELLED)
                return None

            # A routine re-challenge is verified by the role request itself
            if not challenge.invitation:
                self._enter(ChallengeState.SUCCEEDED)
                return code

            self._enter(ChallengeState.VERIFYING)
            response = self.idp_factory.idp(code).totp_enroll(
                challenge.org, enrollment.method, invitation=challenge.invitation
            )
            if response.verified:
                self._enter(ChallengeState.SUCCEEDED)
                return code

            self._enter(ChallengeState.RETRYING)
            OutputHandler.warning("The code is incorrect. Please try again.")
            self._dismiss_enrollment()

            failed_attempts += 1
            if self.max_attempts and failed_attempts >= self.max_attempts:
                raise ChallengeError(f"Too many incorrect 2-factor codes for {challenge.org}")

            enrollment = EnrollmentState(
                method=enrollment.method,
                recipient=response.recipient or enrollment.recipient,
            )

    def _start(self, challenge: Challenge) -> Optional[EnrollmentState]:
        """Select a method and enroll when invited, otherwise use the first offered method."""
        if not challenge.invitation:
            return EnrollmentState(method=challenge.methods[0], recipient=challenge.recipient)

        self._enter(ChallengeState.SELECTING_METHOD)
        if len(challenge.methods) == 1:
            method: Optional[TotpMethod] = challenge.methods[0]
        else:
            method = self.prompter.choose_totp_method(challenge.methods)
        if method is None:
            return None

        self._enter(ChallengeState.ENROLLING)
        response = self.idp_factory.idp().totp_enroll(challenge.org, method, invitation=challenge.invitation)
        if not response.uri:
            raise ProtocolError("Missing TOTP URI")

        qr = None
        if (response.method or method) == TotpMethod.APP:
            qr = generate_totp_qr(response.uri)
        self.prompter.show_enrollment(challenge.org, response.recipient, qr)
        self._enrollment_shown = True

        return EnrollmentState(method=method, recipient=response.recipient)

    @staticmethod
    def _code_message(challenge: Challenge, enrollment: EnrollmentState) -> str:
        recipient = enrollment.recipient or challenge.org
        if enrollment.method == TotpMethod.APP:
            return f"Please enter the code in your Authenticator App for {recipient}:"
        return f"Please enter the code sent to {recipient} via {enrollment.method.value}:"
