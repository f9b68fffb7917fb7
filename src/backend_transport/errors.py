"""
Error taxonomy and classification for backend_transport.

Every failure that leaves the transport is a TransportError subclass whose
message is short and never includes a response body.
"""
import json
import logging
from typing import Any, Dict, Optional

import httpx

from .types import ErrorKind


logger = logging.getLogger(__name__)

HTML_MARKERS = ("<!doctype html", "<html")


class TransportError(Exception):
    """Base class for classified transport errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
        kind: Optional[ErrorKind] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.data = dict(data or {})
        if status_code is not None:
            self.data.setdefault("status_code", status_code)
        if kind is not None:
            self.kind = kind

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"message={self.message!r}, status_code={self.status_code!r})"
        )


class ValidationError(TransportError):
    """Malformed request; never retried."""

    kind = ErrorKind.VALIDATION


class NetworkError(TransportError):
    """Connection-level failure (unreachable host, reset, timeout)."""

    kind = ErrorKind.NETWORK


class HttpStatusError(TransportError):
    """Non-2xx response not covered by a more specific class."""

    kind = ErrorKind.HTTP_STATUS


class MalformedResponseError(TransportError):
    """Response that is not the expected JSON (e.g. an HTML error page)."""

    kind = ErrorKind.MALFORMED_RESPONSE


class ExternalServiceError(TransportError):
    """Backend reported an internal failure."""

    kind = ErrorKind.EXTERNAL_SERVICE


class ConfigurationError(TransportError):
    """Invalid or missing settings."""

    kind = ErrorKind.CONFIGURATION


class RequestCancelledError(TransportError):
    """Call aborted by the caller or by transport shutdown."""

    kind = ErrorKind.CANCELLED


def _content_type(response: httpx.Response) -> str:
    return response.headers.get("content-type", "").split(";")[0].strip().lower()


def looks_like_html(response: httpx.Response) -> bool:
    """
    Check whether a response carries an HTML document.

    The declared content type wins; the body prefix is only inspected when no
    content type is declared or it is a generic text type.

    Args:
        response: The HTTP response

    Returns:
        Whether the response is an HTML page
    """
    content_type = _content_type(response)
    if content_type in ("text/html", "application/xhtml+xml"):
        return True
    if content_type in ("application/json",) or content_type.endswith("+json"):
        return False
    head = response.text[:256].lstrip().lower()
    return head.startswith(HTML_MARKERS)


def classify_response(
    response: httpx.Response,
    verb: str,
    path: str,
) -> Optional[TransportError]:
    """
    Classify a non-2xx response.

    Args:
        response: The HTTP response
        verb: Request verb (for error context)
        path: Request path (for error context)

    Returns:
        The classified error, or None for a 2xx response
    """
    status = response.status_code
    if 200 <= status < 300:
        return None

    data = {"verb": verb, "path": path}

    if looks_like_html(response):
        return MalformedResponseError(
            f"API endpoint not found ({status})", status_code=status, data=data
        )
    if status in (400, 422):
        return ValidationError(
            f"Request rejected as invalid ({status})", status_code=status, data=data
        )
    if status >= 500:
        return ExternalServiceError(
            f"Backend service error ({status})", status_code=status, data=data
        )
    return HttpStatusError(
        f"HTTP {status} from {verb} {path}", status_code=status, data=data
    )


def parse_json_body(response: httpx.Response, verb: str, path: str) -> Any:
    """
    Decode the JSON body of a successful response.

    Args:
        response: The HTTP response (2xx)
        verb: Request verb (for error context)
        path: Request path (for error context)

    Returns:
        The decoded body, or None for an empty body

    Raises:
        MalformedResponseError: If the body is HTML or not valid JSON
    """
    text = response.text
    if not text.strip():
        return None

    data = {"verb": verb, "path": path}
    if looks_like_html(response):
        raise MalformedResponseError(
            "Service unavailable: unexpected response format",
            status_code=response.status_code,
            data=data,
        )
    try:
        return json.loads(text)
    except ValueError as e:
        raise MalformedResponseError(
            "Service unavailable: unexpected response format",
            status_code=response.status_code,
            data=data,
        ) from e


def classify_error(
    error: BaseException,
    verb: str = "",
    path: str = "",
) -> TransportError:
    """
    Convert any exception raised while sending into a TransportError.

    Args:
        error: The raised exception
        verb: Request verb (for error context)
        path: Request path (for error context)

    Returns:
        The classified error, with the original chained as __cause__
    """
    if isinstance(error, TransportError):
        return error

    data = {"verb": verb, "path": path, "original_error": type(error).__name__}

    if isinstance(error, httpx.HTTPStatusError):
        classified = classify_response(error.response, verb, path)
        if classified is not None:
            classified.__cause__ = error
            return classified

    if isinstance(error, (httpx.TransportError, ConnectionError, TimeoutError, OSError)):
        classified = NetworkError(f"Network error during {verb} {path}".rstrip(), data=data)
        classified.__cause__ = error
        return classified

    logger.error(f"classify_error: unexpected {type(error).__name__} during {verb} {path}")
    classified = TransportError(
        f"Unexpected error during {verb} {path}".rstrip(),
        data=data,
        kind=ErrorKind.INTERNAL,
    )
    classified.__cause__ = error
    return classified
