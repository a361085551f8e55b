"""Error taxonomy for spark storage and model endpoint failures."""

import errno
import socket
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional


class ErrorKind(Enum):
    """Classification of a failed generation."""
    HOST_UNREACHABLE = "host_unreachable"
    CONNECTION_REFUSED = "connection_refused"
    OTHER_NETWORK = "other_network"
    HTTP_STATUS = "http_status"
    INVALID_RESPONSE = "invalid_response"
    UPSTREAM_ERROR = "upstream_error"
    INVALID_URL = "invalid_url"


class MotionError(Exception):
    """Base class for all Motion errors."""


class StorageUnavailable(MotionError):
    """The watched root (or its cloud container) is not accessible."""

    def __init__(self, root: Path):
        self.root = root
        super().__init__(f"Spark storage not available: {root}")


class GenerationError(MotionError):
    """A model endpoint call failed; ``user_message`` is shown as-is."""

    kind: ErrorKind = ErrorKind.OTHER_NETWORK

    def __init__(self, user_message: str):
        self.user_message = user_message
        super().__init__(user_message)


class HostUnreachable(GenerationError):
    kind = ErrorKind.HOST_UNREACHABLE

    def __init__(self):
        super().__init__(
            "Cannot connect to the model server.\n\n"
            "Make sure:\n"
            "1. The server is running (e.g. 'ollama serve')\n"
            "2. The URL is correct"
        )


class ConnectionRefused(GenerationError):
    kind = ErrorKind.CONNECTION_REFUSED

    def __init__(self):
        super().__init__(
            "Connection refused.\n\n"
            "The model server might not be running. Try:\n"
            "- ollama serve\n"
            "- Check it is serving on the expected port (default: 11434)"
        )


class OtherNetworkError(GenerationError):
    kind = ErrorKind.OTHER_NETWORK

    def __init__(self, description: str):
        self.description = description
        super().__init__(f"Network error: {description}")


class HTTPStatusError(GenerationError):
    kind = ErrorKind.HTTP_STATUS

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body}")


class InvalidResponseFormat(GenerationError):
    kind = ErrorKind.INVALID_RESPONSE

    def __init__(self, body: str, reason: str = "Invalid JSON response"):
        self.body = body
        super().__init__(f"{reason}: {body}")


class UpstreamReportedError(GenerationError):
    kind = ErrorKind.UPSTREAM_ERROR

    def __init__(self, message: str):
        self.upstream_message = message
        super().__init__(f"Model server error: {message}")


class InvalidEndpointURL(GenerationError):
    kind = ErrorKind.INVALID_URL

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid endpoint URL: {url!r}")


def _cause_chain(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def classify_transport_error(exc: BaseException) -> GenerationError:
    """
    Map a transport-level exception (httpx wraps the OS error) onto the
    generation error taxonomy by walking its cause chain.
    """
    for err in _cause_chain(exc):
        if isinstance(err, socket.gaierror):
            return HostUnreachable()
        if isinstance(err, ConnectionRefusedError):
            return ConnectionRefused()
        if isinstance(err, OSError) and err.errno == errno.ECONNREFUSED:
            return ConnectionRefused()

    # httpcore flattens some OS errors into plain messages
    text = " ".join(str(err) for err in _cause_chain(exc)).lower()
    if ("name or service not known" in text
            or "nodename nor servname" in text
            or "temporary failure in name resolution" in text
            or "getaddrinfo failed" in text):
        return HostUnreachable()
    if "connection refused" in text or "errno 111" in text or "errno 61" in text:
        return ConnectionRefused()

    return OtherNetworkError(str(exc) or exc.__class__.__name__)
