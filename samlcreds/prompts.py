"""
User interaction for role selection and 2-factor prompts.

The role assumption and 2-factor flows only talk to a Prompter, so they can be
driven from a terminal, a test, or any other front end.
"""

import getpass
import re
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, TypeVar

from .constants import TOTP_CODE_PATTERN
from .enums import TotpMethod
from .output import OutputHandler
from .types import AvailableRole, RoleSelection, TotpQr

T = TypeVar('T')

METHOD_LABELS = {
    TotpMethod.APP: "Authenticator App",
    TotpMethod.EMAIL: "Email",
}


def is_valid_code(text: str) -> bool:
    """Return True if text is a 1 to 10 digit 2-factor code."""
    return re.match(TOTP_CODE_PATTERN, text) is not None


class Prompter(ABC):
    """Front end for every question the flows need answered."""

    @abstractmethod
    def choose_role(self, roles: List[AvailableRole]) -> Optional[RoleSelection]:
        """Ask which role to assume. None means the user declined."""

    @abstractmethod
    def choose_totp_method(self, methods: List[TotpMethod]) -> Optional[TotpMethod]:
        """Ask how 2-factor codes should be delivered. None means the user declined."""

    @abstractmethod
    def prompt_code(self, message: str) -> Optional[str]:
        """
        Ask for a 2-factor code.

        Implementations only return codes that pass is_valid_code. None or an
        empty string means the user declined.
        """

    @abstractmethod
    def show_enrollment(self, org: str, recipient: Optional[str], qr: Optional[TotpQr]) -> None:
        """Present enrollment details, including the QR code for authenticator apps."""

    @abstractmethod
    def dismiss_enrollment(self) -> None:
        """Tear down whatever show_enrollment presented."""


class ConsolePrompter(Prompter):
    """Terminal prompts using numbered menus."""

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        secret_input_fn: Callable[[str], str] = getpass.getpass,
    ) -> None:
        self.input_fn = input_fn
        self.secret_input_fn = secret_input_fn

    def _choose(self, title: str, labels: Sequence[str], items: Sequence[T]) -> Optional[T]:
        print(title)
        for index, label in enumerate(labels, start=1):
            print(f"  [{index}] {label}")
        while True:
            try:
                answer = self.input_fn("Selection (blank to cancel): ").strip()
            except EOFError:
                return None
            if not answer:
                return None
            if answer.isdigit() and 1 <= int(answer) <= len(items):
                return items[int(answer) - 1]
            OutputHandler.warning(f"Enter a number between 1 and {len(items)}")

    def choose_role(self, roles: List[AvailableRole]) -> Optional[RoleSelection]:
        labels = [f"{r.role}  {r.org} ({r.provider})" for r in roles]
        role = self._choose("Select an AWS Role:", labels, roles)
        return role.to_selection() if role else None

    def choose_totp_method(self, methods: List[TotpMethod]) -> Optional[TotpMethod]:
        labels = [METHOD_LABELS.get(m, m.value) for m in methods]
        return self._choose("By which method would you like to provide 2-factor codes?", labels, methods)

    def prompt_code(self, message: str) -> Optional[str]:
        while True:
            try:
                code = self.secret_input_fn(f"{message} ").strip()
            except EOFError:
                return None
            if not code:
                return None
            if is_valid_code(code):
                return code
            OutputHandler.warning("Invalid code")

    def show_enrollment(self, org: str, recipient: Optional[str], qr: Optional[TotpQr]) -> None:
        OutputHandler.section_header(f"{org} requires 2-Factor Authentication")
        if qr is None:
            if recipient:
                print(f"Codes will be sent to {recipient}")
            return
        print("Scan this QR Code using an Authenticator App:\n")
        print(qr.ascii)
        print("Or enter this code manually:")
        print(f"  {qr.formatted_secret}\n")

    def dismiss_enrollment(self) -> None:
        # Nothing to tear down in a terminal
        pass
