import json
from typing import Any, Dict, Optional

import requests
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from workspace_api.utils.errors import DecodeError, HTTPStatusError, TransportError
from workspace_api.utils.logger import app_logger as logger

ALLOWED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")


def _should_retry(error: BaseException) -> bool:
    if isinstance(error, TransportError):
        return True
    return isinstance(error, HTTPStatusError) and error.retryable


def clean_query(query: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    params = {}
    for key, value in (query or {}).items():
        if value is None or value == "" or value == []:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            value = [str(v) for v in value]
        params[key] = value
    return params


class HTTPClient:
    def __init__(
        self,
        session: requests.Session,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 60,
        max_retries: int = 3,
        wait_min: float = 2,
        wait_max: float = 5,
    ) -> None:
        self.session = session
        self.headers = headers or {}
        self.timeout = timeout
        self.max_retries = max_retries
        self.wait_min = wait_min
        self.wait_max = wait_max

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=self.wait_min, max=self.wait_max),
            retry=retry_if_exception(_should_retry),
            reraise=True,
        )

    def request(
        self,
        method: str,
        url: str,
        query: Optional[Dict[str, Any]] = None,
        body: Any = None,
    ) -> requests.Response:
        method = method.upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")
        params = clean_query(query)
        for attempt in self._retrying():
            with attempt:
                return self._send(method, url, params, body)

    def _send(
        self, method: str, url: str, params: Dict[str, Any], body: Any
    ) -> requests.Response:
        logger.debug(f"{method} {url} {params if params else ''}")
        try:
            response = self.session.request(
                method,
                url,
                params=params or None,
                json=body,
                headers=self.headers or None,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Error sending {method} {url}: {e}")
            raise TransportError(str(e), method=method, url=url) from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        if not 200 <= response.status_code < 300:
            error = HTTPStatusError.from_response(response)
            if error.retryable:
                logger.warning(f"Retryable status {response.status_code} from {url}")
            else:
                logger.error(f"Request failed: {error}")
            raise error
        return response

    @staticmethod
    def decode(response: requests.Response) -> Any:
        body = response.content
        if not body or not body.strip():
            return {}
        logger.trace(f"Response body: {response.text}")
        try:
            return json.loads(body)
        except ValueError as e:
            raise DecodeError(
                f"Invalid JSON in response: {e}",
                status_code=response.status_code,
                method=response.request.method if response.request else None,
                url=response.url,
                raw_response=response.text,
            ) from e
