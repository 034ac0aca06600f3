"""
Centralized output handling with consistent formatting.

All user-facing notifications go through OutputHandler so every message
carries the same prefix and warnings land on stderr.
"""

import sys

from .constants import MESSAGE_PREFIX


class OutputHandler:
    """Centralized output handling with consistent formatting."""

    @staticmethod
    def info(message: str) -> None:
        """
        Print an informational message.

        Args:
            message: Message text
        """
        print(f"{MESSAGE_PREFIX} {message}")

    @staticmethod
    def warning(message: str) -> None:
        """
        Print a warning to stderr.

        Args:
            message: Message text
        """
        print(f"{MESSAGE_PREFIX} {message}", file=sys.stderr)

    @staticmethod
    def error(title: str, error: Exception) -> None:
        """
        Print formatted error message.

        Args:
            title: Error title
            error: Exception that occurred
        """
        print(f"\n🚨 {title}:\n{error}\n", file=sys.stderr)

    @staticmethod
    def section_header(title: str) -> None:
        """
        Print section header with divider.

        Args:
            title: Section title
        """
        print("\n" + "=" * 80)
        print(title)
        print("=" * 80)
