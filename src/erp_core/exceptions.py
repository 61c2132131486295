"""Domain-specific exceptions for the ERP reporting core.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from ErpCoreError for easy catching.

Expected "no data" outcomes are NOT exceptions: report services return
``None`` or a result with ``success=False`` for those, and leave the HTTP
status decision to the caller.
"""


class ErpCoreError(Exception):
    """Base exception for all ERP reporting core errors.

    Users can catch this exception to handle any error raised by the package.
    """

    pass


class ConfigError(ErpCoreError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - ERP credentials or endpoint URLs are missing
    - Environment values cannot be parsed (timeouts, sweep bounds)
    - A store location is unusable
    """

    pass


class ERPUnavailableError(ErpCoreError):
    """Raised when the ERP cannot be reached or rejects authentication.

    This exception is raised when:
    - The login endpoint returns no session cookie
    - The network connection to the ERP fails for every attempt
    """

    pass


class ParseError(ErpCoreError):
    """Raised when a document (HTML or PDF text) has no recognizable structure.

    Parsers degrade row by row and only raise this for inputs that are not a
    report at all, e.g. an unreadable PDF upload.
    """

    pass


class StoreError(ErpCoreError):
    """Raised when the document store cannot read or write a document."""

    pass
