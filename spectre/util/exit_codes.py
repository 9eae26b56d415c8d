"""Documented exit codes for the Spectre command line tools.

Exit codes follow UNIX conventions:
- 0: Success
- 1: General/unspecified error
- 2: Invalid command-line arguments or usage
- 3-5: Application-specific errors

Usage:
    from spectre.util.exit_codes import ExitCode
    sys.exit(ExitCode.SINK_UNAVAILABLE)
"""

from __future__ import annotations

import argparse
import sys


class ExitCode:
    """Exit code constants for Spectre processes.

    Attributes:
        SUCCESS: Normal termination, no errors.
        GENERAL_ERROR: Unspecified runtime error.
        INVALID_ARGS: Command-line argument validation failed.
        SINK_UNAVAILABLE: The export target could not be opened at startup.
        PRODUCER_FAILED: The sweep tool could not be started or died.
        NO_DATA: A render request matched no stored samples.
    """

    SUCCESS: int = 0
    GENERAL_ERROR: int = 1
    INVALID_ARGS: int = 2
    SINK_UNAVAILABLE: int = 3
    PRODUCER_FAILED: int = 4
    NO_DATA: int = 5

    @classmethod
    def message(cls, code: int) -> str:
        """Return a human-readable message for an exit code."""
        messages = {
            cls.SUCCESS: "Success",
            cls.GENERAL_ERROR: "General error",
            cls.INVALID_ARGS: "Invalid arguments",
            cls.SINK_UNAVAILABLE: "Sample sink unavailable",
            cls.PRODUCER_FAILED: "Sweep tool failed",
            cls.NO_DATA: "No data",
        }
        return messages.get(code, f"Unknown exit code {code}")


class ArgumentParser(argparse.ArgumentParser):
    """argparse parser whose usage errors exit with ExitCode.INVALID_ARGS."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(ExitCode.INVALID_ARGS, f"{self.prog}: error: {message}\n")
