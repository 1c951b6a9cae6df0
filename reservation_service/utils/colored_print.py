"""
Console output helpers used before logging is configured
"""

import sys

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
CYAN = "\033[96m"
BOLD = "\033[1m"
RESET = "\033[0m"


def _emit(message: str, color: str, bold: bool = False, stream=None):
    stream = stream or sys.stdout
    if stream.isatty():
        message = f"{BOLD if bold else ''}{color}{message}{RESET}"
    print(message, file=stream)


def print_step(message: str):
    _emit(message, CYAN, bold=True)


def print_warning(message: str):
    _emit(message, YELLOW)


def print_error(message: str):
    _emit(message, RED, stream=sys.stderr)


def print_success(message: str):
    _emit(f"✅ {message}", GREEN, bold=True)


def print_failure(message: str):
    _emit(f"❌ {message}", RED, bold=True, stream=sys.stderr)
