"""Process exit statuses for the ``fetchcache`` CLI.

Every :class:`~fetchcache.exceptions.FetchCacheError` subclass names one of
these as its ``exit_code``, so scripts can branch on ``$?``::

    $ fetchcache get https://api.example.com/users/42
    $ echo $?
    4
"""

EXIT_SUCCESS = 0

EXIT_GENERIC_FAILURE = 1
"""Anything without a more specific code, including bad configuration."""

EXIT_INVALID_USAGE = 2
"""Bad arguments, or a resource with no URL to fetch."""

EXIT_AUTH_FAILURE = 3
"""HTTP 401 or 403."""

EXIT_NOT_FOUND = 4
"""HTTP 404."""

EXIT_SERVER_ERROR = 5
"""HTTP 5xx, or any 4xx not listed above."""

EXIT_CONNECTION_ERROR = 6
"""The request never got a response: refused, timed out, DNS failure."""

EXIT_STORAGE_ERROR = 8
"""The cache backend failed for a reason other than quota."""
