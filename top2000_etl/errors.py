"""Exceptions raised by the leaderboard ETL."""

import sys


class UnexpectedContentTypeError(Exception):
    """
    Exception raised when an unexpected content type is encountered in a HTTP response's
    'Content-Type' header.

    This exception is used to indicate that a response from an HTTP request has a content type
    that is not handled by the application. It is typically raised when a function expects a
    specific content type (like 'text/html' or 'application/json') but encounters a different one.

    Attributes:
        message (str): An optional error message that can provide additional context about the
            content type issue.
    """

    def __init__(
        self,
        message="Expected content type of 'text/html', 'application/json' or 'text/javascript'.",
    ):
        super().__init__(message)


class IngestionError(Exception):
    """
    Base class for failures of a single ingestion run.

    Every ingestion failure is terminal for the run that raised it. Nothing is retried internally;
    the snapshot cache decides whether a stale snapshot can be served instead.

    Attributes:
        message (str): An optional error message describing the failure.
    """

    def __init__(self, message="Ingestion of the ranking source failed."):
        super().__init__(message)


class SourceUnavailableError(IngestionError):
    """
    Exception raised when the source document cannot be fetched.

    Covers transport failures as well as non-success HTTP statuses.
    """

    def __init__(self, message="The ranking source document could not be fetched."):
        super().__init__(message)


class MalformedSourceError(IngestionError):
    """
    Exception raised when the source response is not the structured content that was expected,
    e.g. the parse API answered without a rendered text body.
    """

    def __init__(self, message="The ranking source response has an unexpected structure."):
        super().__init__(message)


class NoQualifyingTableError(IngestionError):
    """Exception raised when no table in the document looks like the ranking grid."""

    def __init__(self, message="No table in the source document qualifies as the ranking grid."):
        super().__init__(message)


class EmptyResultError(IngestionError):
    """Exception raised when the ranking grid was found but no row survived parsing."""

    def __init__(self, message="The ranking grid did not contain any valid rows."):
        super().__init__(message)


class RateLimitedError(Exception):
    """
    Exception raised when the metadata catalog signals that requests are being rate limited.

    This exception never leaves the metadata resolver. It is the signal that makes the resolver
    back off and retry the whole list of query variants.

    Attributes:
        retry_after (float | None): The delay requested by the catalog, if it sent one.
    """

    def __init__(self, message="The metadata catalog is rate limiting requests.", retry_after=None):
        super().__init__(message)
        self.retry_after = retry_after


class UnsupportedPythonVersionError(Exception):
    """
    Exception raised when the Python version is not supported.

    This exception is used to signal that the running version of Python does not meet the
    application's minimum version requirement. It is raised during startup to prevent runtime
    errors associated with version incompatibilities.

    Attributes:
        message (str): An optional error message that can provide additional context about the
            Python version issue.
    """

    def __init__(self, message=f"Python version {sys.version} is not supported."):
        super().__init__(message)
