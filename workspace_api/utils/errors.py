import json

import requests

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class RequestError(Exception):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        method: str | None = None,
        url: str | None = None,
        raw_response: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.method = method
        self.url = url
        self.raw_response = raw_response

    def __str__(self) -> str:
        return (
            f"Request Error: StatusCode={self.status_code}, Method={self.method}, "
            f"URL={self.url}, Message={self.message}"
        )


class TransportError(RequestError):
    """The request never produced a response (DNS, TLS, connection reset, timeout)."""


class HTTPStatusError(RequestError):
    @property
    def retryable(self) -> bool:
        return self.status_code in RETRYABLE_STATUS_CODES

    @classmethod
    def from_response(cls, response: requests.Response) -> "HTTPStatusError":
        request = response.request
        return cls(
            _error_message(response),
            status_code=response.status_code,
            method=request.method if request is not None else None,
            url=response.url or (request.url if request is not None else None),
            raw_response=response.text,
        )


class DecodeError(RequestError):
    """A successful response carried a body that is not valid JSON."""


class ConfigurationError(ValueError):
    pass


class NotFoundError(LookupError):
    pass


def _error_message(response: requests.Response) -> str:
    content_type = response.headers.get("Content-Type", "")
    body = response.text
    if "json" in content_type:
        try:
            payload = json.loads(body)
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            error = payload.get("error")
            # Google nests the detail under "error"
            if isinstance(error, dict) and error.get("message"):
                return error["message"]
            for key in ("message", "errorSummary", "error_description", "error"):
                if isinstance(payload.get(key), str) and payload[key]:
                    return payload[key]
        return body or f"Unexpected error (Status: {response.status_code})"
    if "text/plain" in content_type and body:
        return body
    return f"Unexpected error (Status: {response.status_code})"
