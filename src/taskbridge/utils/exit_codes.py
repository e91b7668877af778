"""
Exit codes for TaskBridge CLI.

Semantic exit codes so scripts and schedulers can tell what went wrong
without parsing output.
"""

# Success
SUCCESS = 0

# General error (unspecified)
ERROR_GENERAL = 1

# Invalid arguments or validation error
ERROR_INVALID_ARGS = 2

# Authentication failure (expired authorization, revoked refresh token, etc.)
ERROR_AUTH_FAILURE = 3

# Network or provider error (unreachable, rate limited, 5xx)
ERROR_NETWORK = 4

# No provider account connected
ERROR_NOT_CONNECTED = 5

# Another sync is already running
ERROR_BUSY = 6


def get_exit_code_name(code: int) -> str:
    """Get the name of an exit code for display purposes."""
    code_names = {
        SUCCESS: "SUCCESS",
        ERROR_GENERAL: "ERROR_GENERAL",
        ERROR_INVALID_ARGS: "ERROR_INVALID_ARGS",
        ERROR_AUTH_FAILURE: "ERROR_AUTH_FAILURE",
        ERROR_NETWORK: "ERROR_NETWORK",
        ERROR_NOT_CONNECTED: "ERROR_NOT_CONNECTED",
        ERROR_BUSY: "ERROR_BUSY",
    }
    return code_names.get(code, f"UNKNOWN({code})")
