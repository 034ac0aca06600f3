"""
Tests for samlcreds.totp module.

Tests the 2-factor enrollment and verification flow.
"""

from typing import List, Optional
from unittest.mock import MagicMock, patch

import pytest

from samlcreds.enums import ChallengeState, TotpMethod
from samlcreds.errors import ChallengeError, ProtocolError
from samlcreds.totp import ChallengeFlow, generate_totp_qr
from samlcreds.types import Challenge, EnrollResponse

TOTP_URI = "otpauth://totp/SAML.to:octocat?secret=JBSWY3DPEHPK3PXP&issuer=SAML.to"


def make_flow(codes: List[Optional[str]], method_choice: Optional[TotpMethod] = TotpMethod.APP,
              max_attempts: int = 5) -> ChallengeFlow:
    """Build a ChallengeFlow with mocked identity provider and prompter."""
    idp_factory = MagicMock()
    prompter = MagicMock()
    prompter.prompt_code.side_effect = codes
    prompter.choose_totp_method.return_value = method_choice
    return ChallengeFlow(idp_factory, prompter, max_attempts=max_attempts)


class TestGenerateTotpQr:
    """Test generate_totp_qr function."""

    def test_extracts_secret(self) -> None:
        qr = generate_totp_qr(TOTP_URI)
        assert qr.secret == "JBSWY3DPEHPK3PXP"
        assert qr.uri == TOTP_URI
        assert qr.ascii.strip()

    def test_formatted_secret_groups_of_four(self) -> None:
        qr = generate_totp_qr(TOTP_URI)
        assert qr.formatted_secret == "JBSW Y3DP EHPK 3PXP"

    def test_missing_secret_is_empty(self) -> None:
        assert generate_totp_qr("otpauth://totp/x?issuer=y").secret == ""


class TestChallengeWithoutInvitation:
    """Test routine re-challenges (no enrollment)."""

    def test_code_passed_through_without_verification(self) -> None:
        """Test that the code is accepted at face value without a verify round-trip."""
        flow = make_flow(["123456"])
        challenge = Challenge(org="acme", recipient="octocat", methods=[TotpMethod.APP, TotpMethod.EMAIL])

        assert flow.run(challenge) == "123456"
        flow.idp_factory.idp.assert_not_called()
        flow.prompter.choose_totp_method.assert_not_called()
        flow.prompter.prompt_code.assert_called_once_with(
            "Please enter the code in your Authenticator App for octocat:"
        )
        assert flow.transitions == [ChallengeState.AWAITING_CODE, ChallengeState.SUCCEEDED]

    def test_email_prompt_message(self) -> None:
        flow = make_flow(["42"])
        challenge = Challenge(org="acme", recipient="me@example.com", methods=[TotpMethod.EMAIL])

        flow.run(challenge)

        flow.prompter.prompt_code.assert_called_once_with(
            "Please enter the code sent to me@example.com via email:"
        )

    def test_empty_code_cancels(self) -> None:
        flow = make_flow([""])
        challenge = Challenge(org="acme", methods=[TotpMethod.APP])

        assert flow.run(challenge) is None
        assert flow.transitions[-1] == ChallengeState.CANCELLED

    def test_missing_methods_raises(self) -> None:
        flow = make_flow(["123456"])
        with pytest.raises(ProtocolError) as exc_info:
            flow.run(Challenge(org="acme", methods=[]))
        assert "acme requires Two Factor auth" in str(exc_info.value)


class TestEnrollment:
    """Test first-time enrollment with an invitation."""

    def test_single_method_is_auto_selected(self) -> None:
        """Test that one offered method does not suspend for a method choice."""
        flow = make_flow(["123456"])
        idp = flow.idp_factory.idp.return_value
        idp.totp_enroll.side_effect = [
            EnrollResponse(method=TotpMethod.EMAIL, uri=TOTP_URI, recipient="me@example.com"),
            EnrollResponse(method=TotpMethod.EMAIL, verified=True),
        ]
        challenge = Challenge(org="acme", invitation="inv-1", methods=[TotpMethod.EMAIL])

        assert flow.run(challenge) == "123456"
        flow.prompter.choose_totp_method.assert_not_called()
        flow.prompter.show_enrollment.assert_called_once_with("acme", "me@example.com", None)

    def test_multiple_methods_suspend_once(self) -> None:
        """Test that several offered methods suspend exactly once before enrolling."""
        flow = make_flow(["123456"], method_choice=TotpMethod.EMAIL)
        idp = flow.idp_factory.idp.return_value
        idp.totp_enroll.side_effect = [
            EnrollResponse(method=TotpMethod.EMAIL, uri=TOTP_URI, recipient="me@example.com"),
            EnrollResponse(verified=True),
        ]
        challenge = Challenge(org="acme", invitation="inv-1", methods=[TotpMethod.APP, TotpMethod.EMAIL])

        flow.run(challenge)

        flow.prompter.choose_totp_method.assert_called_once_with([TotpMethod.APP, TotpMethod.EMAIL])
        assert idp.totp_enroll.call_args_list[0].args == ("acme", TotpMethod.EMAIL)
        assert idp.totp_enroll.call_args_list[0].kwargs == {"invitation": "inv-1"}
        assert flow.transitions[:2] == [ChallengeState.SELECTING_METHOD, ChallengeState.ENROLLING]

    def test_declined_method_selection_cancels(self) -> None:
        flow = make_flow(["123456"], method_choice=None)
        challenge = Challenge(org="acme", invitation="inv-1", methods=[TotpMethod.APP, TotpMethod.EMAIL])

        assert flow.run(challenge) is None
        flow.idp_factory.idp.assert_not_called()
        flow.prompter.prompt_code.assert_not_called()
        assert flow.transitions == [ChallengeState.SELECTING_METHOD, ChallengeState.CANCELLED]

    def test_app_enrollment_shows_qr_code(self) -> None:
        """Test that App enrollment presents a QR artifact derived from the provisioning URI."""
        flow = make_flow(["123456"], method_choice=TotpMethod.APP)
        idp = flow.idp_factory.idp.return_value
        idp.totp_enroll.side_effect = [
            EnrollResponse(method=TotpMethod.APP, uri=TOTP_URI, recipient="octocat"),
            EnrollResponse(verified=True),
        ]
        challenge = Challenge(org="acme", invitation="inv-1", methods=[TotpMethod.APP, TotpMethod.EMAIL])

        assert flow.run(challenge) == "123456"

        org, recipient, qr = flow.prompter.show_enrollment.call_args.args
        assert (org, recipient) == ("acme", "octocat")
        assert qr.secret == "JBSWY3DPEHPK3PXP"
        flow.prompter.dismiss_enrollment.assert_called_once()

    def test_verification_uses_code(self) -> None:
        """Test that verification re-invokes enroll with a client carrying the code."""
        flow = make_flow(["123456"])
        idp = flow.idp_factory.idp.return_value
        idp.totp_enroll.side_effect = [
            EnrollResponse(method=TotpMethod.EMAIL, uri=TOTP_URI, recipient="me@example.com"),
            EnrollResponse(verified=True),
        ]
        challenge = Challenge(org="acme", invitation="inv-1", methods=[TotpMethod.EMAIL])

        flow.run(challenge)

        assert [c.args for c in flow.idp_factory.idp.call_args_list] == [(), ("123456",)]
        assert flow.transitions[-2:] == [ChallengeState.VERIFYING, ChallengeState.SUCCEEDED]

    def test_missing_uri_raises(self) -> None:
        flow = make_flow(["123456"])
        flow.idp_factory.idp.return_value.totp_enroll.return_value = EnrollResponse(method=TotpMethod.EMAIL)
        challenge = Challenge(org="acme", invitation="inv-1", methods=[TotpMethod.EMAIL])

        with pytest.raises(ProtocolError) as exc_info:
            flow.run(challenge)
        assert "Missing TOTP URI" in str(exc_info.value)


class TestVerificationRetry:
    """Test the verify-failure loop."""

    @patch("samlcreds.totp.OutputHandler")
    def test_incorrect_code_retries_with_server_recipient(self, mock_output: MagicMock) -> None:
        """Test that verified false re-prompts with the same method and the response's recipient."""
        flow = make_flow(["111111", "222222"], method_choice=TotpMethod.APP)
        idp = flow.idp_factory.idp.return_value
        idp.totp_enroll.side_effect = [
            EnrollResponse(method=TotpMethod.APP, uri=TOTP_URI, recipient="octocat"),
            EnrollResponse(verified=False, recipient="octocat@acme"),
            EnrollResponse(verified=True),
        ]
        challenge = Challenge(org="acme", invitation="inv-1", methods=[TotpMethod.APP, TotpMethod.EMAIL])

        assert flow.run(challenge) == "222222"

        flow.prompter.choose_totp_method.assert_called_once()
        prompts = [c.args[0] for c in flow.prompter.prompt_code.call_args_list]
        assert prompts == [
            "Please enter the code in your Authenticator App for octocat:",
            "Please enter the code in your Authenticator App for octocat@acme:",
        ]
        assert idp.totp_enroll.call_args_list[2].args == ("acme", TotpMethod.APP)
        assert ChallengeState.RETRYING in flow.transitions
        mock_output.warning.assert_called_once_with("The code is incorrect. Please try again.")
        # Enrollment artifact torn down before retrying, and only once
        flow.prompter.dismiss_enrollment.assert_called_once()

    @patch("samlcreds.totp.OutputHandler")
    def test_retry_falls_back_to_previous_recipient(self, mock_output: MagicMock) -> None:
        flow = make_flow(["111111", "222222"])
        idp = flow.idp_factory.idp.return_value
        idp.totp_enroll.side_effect = [
            EnrollResponse(method=TotpMethod.EMAIL, uri=TOTP_URI, recipient="me@example.com"),
            EnrollResponse(verified=False),
            EnrollResponse(verified=True),
        ]
        challenge = Challenge(org="acme", invitation="inv-1", methods=[TotpMethod.EMAIL])

        flow.run(challenge)

        assert flow.prompter.prompt_code.call_args_list[1].args[0] == (
            "Please enter the code sent to me@example.com via email:"
        )

    @patch("samlcreds.totp.OutputHandler")
    def test_empty_code_after_failure_cancels(self, mock_output: MagicMock) -> None:
        flow = make_flow(["111111", None])
        idp = flow.idp_factory.idp.return_value
        idp.totp_enroll.side_effect = [
            EnrollResponse(method=TotpMethod.EMAIL, uri=TOTP_URI, recipient="me@example.com"),
            EnrollResponse(verified=False),
        ]
        challenge = Challenge(org="acme", invitation="inv-1", methods=[TotpMethod.EMAIL])

        assert flow.run(challenge) is None
        assert flow.transitions[-1] == ChallengeState.CANCELLED

    @patch("samlcreds.totp.OutputHandler")
    def test_attempt_limit(self, mock_output: MagicMock) -> None:
        """Test that too many incorrect codes raise ChallengeError."""
        flow = make_flow(["1", "2"], max_attempts=2)
        idp = flow.idp_factory.idp.return_value
        idp.totp_enroll.side_effect = [
            EnrollResponse(method=TotpMethod.EMAIL, uri=TOTP_URI, recipient="me@example.com"),
            EnrollResponse(verified=False),
            EnrollResponse(verified=False),
        ]
        challenge = Challenge(org="acme", invitation="inv-1", methods=[TotpMethod.EMAIL])

        with pytest.raises(ChallengeError):
            flow.run(challenge)

    @patch("samlcreds.totp.OutputHandler")
    def test_zero_max_attempts_is_unbounded(self, mock_output: MagicMock) -> None:
        codes: List[Optional[str]] = [str(i) for i in range(1, 8)]
        flow = make_flow(codes, max_attempts=0)
        idp = flow.idp_factory.idp.return_value
        idp.totp_enroll.side_effect = (
            [EnrollResponse(method=TotpMethod.EMAIL, uri=TOTP_URI, recipient="me@example.com")]
            + [EnrollResponse(verified=False)] * 6
            + [EnrollResponse(verified=True)]
        )
        challenge = Challenge(org="acme", invitation="inv-1", methods=[TotpMethod.EMAIL])

        assert flow.run(challenge) == "7"
