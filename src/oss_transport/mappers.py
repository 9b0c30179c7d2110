"""
Error mapping for CLI commands.

Maps exceptions to exit codes so every command reports failures the same way.
"""
from __future__ import annotations

import httpx
import typer
from typing import Callable, TypeVar

T = TypeVar('T')

EXIT_CODES = {
    "NotFoundError": 1,
    "ValueError": 2,
    "TransportError": 3,
    "AccessDeniedError": 5,
    "StreamProtocolError": 6,
}

NETWORK_EXIT_CODE = 4
FALLBACK_EXIT_CODE = 3


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to exit code.

    Exit codes:
    - 0: Success
    - 1: Bucket or object not found (NotFoundError)
    - 2: Invalid arguments or configuration (ValueError)
    - 3: Any other server error (TransportError) or unknown error
    - 4: Network failure (httpx.RequestError and subclasses)
    - 5: Access denied (AccessDeniedError)
    - 6: Streaming body producer failed (StreamProtocolError)

    The most specific class in the exception's MRO wins, so subclasses of
    a mapped exception inherit its code.
    """
    # httpx network errors also derive from a class named TransportError
    if isinstance(exc, httpx.RequestError):
        return NETWORK_EXIT_CODE
    for cls in type(exc).__mro__:
        if cls.__name__ in EXIT_CODES:
            return EXIT_CODES[cls.__name__]
    return FALLBACK_EXIT_CODE


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exceptions to exit codes using
    typer.Exit, printing the error to stderr.

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        request_id = getattr(e, "request_id", None)
        if request_id:
            typer.echo(f"Request id: {request_id}", err=True)
        raise typer.Exit(code=exit_code_for(e)) from e
