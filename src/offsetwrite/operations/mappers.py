"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and CLI command wrappers
to ensure consistent error handling across all Typer commands.
"""
from __future__ import annotations

import typer
from typing import Callable, TypeVar

T = TypeVar('T')

EXIT_CODES = {
    "NotFound": 1,
    "ValidationError": 2,
    "ValueError": 2,
    "InvalidManifest": 2,
    "SourceNotSeekable": 2,
    "TransportFailure": 3,
    "ReadFailure": 4,
    "BackendError": 5,
    "ComposeRejected": 5,
    "AlreadyExists": 6,
    "DeleteIncomplete": 7,
}


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    - 0: Success
    - 1: Key not found (NotFound)
    - 2: Invalid input (ValueError, InvalidManifest, SourceNotSeekable)
    - 3: Network failure (TransportFailure) or unknown error
    - 4: Local read failure (ReadFailure)
    - 5: Backend rejected the request (BackendError, ComposeRejected)
    - 6: Destination exists (AlreadyExists)
    - 7: Prefix delete left keys behind (DeleteIncomplete)

    Args:
        exc: Exception to map

    Returns:
        Exit code (1-7, with 3 as fallback for unknown exceptions)
    """
    return EXIT_CODES.get(type(exc).__name__, 3)


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exceptions to appropriate
    exit codes using typer.Exit. The error message goes to stderr.

    Args:
        func: Function to execute

    Returns:
        Function result if successful

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except Exception as e:
        if type(e).__name__ == "DeleteIncomplete" and hasattr(e, 'failed'):
            from .printers import print_failed_keys
            print_failed_keys(e.failed)
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=exit_code_for(e)) from e
