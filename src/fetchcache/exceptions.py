"""Exception hierarchy for fetchcache.

All exceptions inherit from :class:`FetchCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`fetchcache.exit_codes`.
The CLI entry point in :func:`fetchcache.app.main` catches
``FetchCacheError`` and exits with the appropriate code.

Of these, only :class:`LiveFetchError` is caught and reported by
:meth:`~fetchcache.interceptor.FetchInterceptor.fetch`.  Quota pressure and
a corrupt persisted blob are recovered inside the cache layer; any other
backend failure surfaces as :class:`PersistenceError`.

Subclass hierarchy::

    FetchCacheError (exit 1)
    +-- LiveFetchError          (exit 5)
    |   +-- InvalidUsageError   (exit 2)
    |   +-- AuthError           (exit 3)
    |   +-- NotFoundError       (exit 4)
    |   +-- ServerError         (exit 5)
    |   +-- ConnectionError_    (exit 6)
    +-- PersistenceError        (exit 8)
    |   +-- SerializationError  (exit 8)
    +-- ConfigError             (exit 1)
    +-- PayloadShapeError       (exit 2, also a TypeError)
"""

from fetchcache.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
    EXIT_STORAGE_ERROR,
)


class FetchCacheError(Exception):
    """Root of the hierarchy; ``str(exc)`` is what the CLI prints.

    Pass *exit_code* to override the class default for one instance.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class LiveFetchError(FetchCacheError):
    """Raised when the live fetch behind the cache fails.

    This is the only error the interceptor surfaces to its caller.  It is
    never retried by the cache layer and never produces a cache write.
    """

    exit_code = EXIT_SERVER_ERROR


class InvalidUsageError(LiveFetchError):
    """Raised when a live fetch cannot even be attempted (e.g. no URL to request)."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(LiveFetchError):
    """Raised when the server answers HTTP 401 or 403."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(LiveFetchError):
    """Raised when the server answers HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(LiveFetchError):
    """Raised for HTTP 5xx and any other unmapped error status."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(LiveFetchError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class PersistenceError(FetchCacheError):
    """Raised when the storage backend fails for a reason other than quota."""

    exit_code = EXIT_STORAGE_ERROR


class SerializationError(PersistenceError):
    """Raised when a cached value cannot be encoded into the persisted blob.

    Indicates an integration bug (a non-JSON value was cached).  The
    in-memory store has already been updated when this is raised.
    """


class ConfigError(FetchCacheError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE


class PayloadShapeError(FetchCacheError, TypeError):
    """Raised by a resource's ``parse`` when the payload has the wrong shape.

    A :class:`TypeError` as well, e.g. a JSON array fetched into a single
    record.  Nothing is cached when this is raised.
    """

    exit_code = EXIT_INVALID_USAGE
