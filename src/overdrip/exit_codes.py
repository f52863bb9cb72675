"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~overdrip.exceptions.OverdripError` subclass.
Shell wrappers can inspect the exit code to tell a rejected login from a
network failure without parsing stderr.

Example::

    $ overdrip login
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- the token endpoint was unreachable
"""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_AUTH_FAILURE = 3
"""The login flow failed."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C."""
