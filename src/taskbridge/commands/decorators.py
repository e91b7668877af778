"""Decorators for command functions."""

import asyncio
import functools
import time
from collections.abc import Callable

import typer

from taskbridge.exceptions import TaskBridgeError
from taskbridge.utils import exit_codes
from taskbridge.utils.logger import get_logger
from taskbridge.utils.ui.formatters import format_error


def command_wrapper(_func: Callable | None = None):
    """Run a command (sync or async), log it, and map errors to exit codes.

    ``TaskBridgeError`` prints its public message and exits with the error's
    exit code. Anything else is logged with its traceback and exits 1.
    """

    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger("cli")
            cmd = func.__name__
            start = time.monotonic()
            logger.info("command started: %s", cmd)
            try:
                if asyncio.iscoroutinefunction(func):
                    result = asyncio.run(func(*args, **kwargs))
                else:
                    result = func(*args, **kwargs)

                elapsed = time.monotonic() - start
                logger.info("command completed: %s (%.3fs)", cmd, elapsed)
                return result

            except TaskBridgeError as e:
                elapsed = time.monotonic() - start
                logger.error(
                    "command failed: %s (%.3fs) - %s: %s [%s]",
                    cmd,
                    elapsed,
                    type(e).__name__,
                    e,
                    exit_codes.get_exit_code_name(e.exit_code),
                )
                format_error(e.public_message)
                raise typer.Exit(code=e.exit_code) from e

            except (typer.Exit, typer.Abort):
                # Re-raise Typer's own exits (like --help, Exit(0), or a declined prompt)
                raise

            except Exception as e:
                elapsed = time.monotonic() - start
                logger.error(
                    "command failed: %s (%.3fs) - %s", cmd, elapsed, e, exc_info=True
                )
                format_error(f"An unexpected error occurred: {e}")
                raise typer.Exit(code=exit_codes.ERROR_GENERAL) from e

        return wrapper

    if _func is None:
        return decorator
    return decorator(_func)
