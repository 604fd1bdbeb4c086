import logging
from typing import Any, Dict, Optional

import requests

from .config import ClientConfig
from .exceptions import APIError, AuthenticationError, TransportError, ValidationError

logger = logging.getLogger(__name__)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason or "Request failed"

    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, dict):
                return str(first.get("msg") or first.get("message") or first)
            return str(first)
        if body.get("message"):
            return str(body["message"])
        if body.get("error"):
            error = body["error"]
            if isinstance(error, dict):
                return str(error.get("message", error))
            return str(error)
    return response.reason or "Request failed"


def _error_list(response: requests.Response):
    try:
        body = response.json()
    except ValueError:
        return []
    if isinstance(body, dict) and isinstance(body.get("errors"), list):
        return body["errors"]
    return []


class Dispatcher:
    """
    Performs HTTP calls against the Guild API and maps the outcome to a
    decoded JSON value, None for a missing resource, or an SDK exception.
    """

    def __init__(self, config: Optional[ClientConfig] = None, session: Optional[requests.Session] = None):
        """
        Args:
            config: Client configuration; defaults to ClientConfig().
            session: requests-compatible session. A new one is created if omitted.
        """
        self.config = config or ClientConfig()
        if session is None:
            session = requests.Session()
            session.headers.update({
                "Accept": "application/json",
                "User-Agent": self.config.user_agent
            })
        # A caller-supplied session keeps its own headers.
        self.session = session

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Send a request and decode the response.

        Args:
            method: HTTP method.
            path: API path, relative to the configured base URL.
            json: Optional JSON body.
            params: Optional query string parameters.

        Returns:
            The decoded JSON body, or None for 404 and empty bodies.

        Raises:
            TransportError: The request never produced an HTTP response.
            ValidationError: HTTP 400.
            AuthenticationError: HTTP 401 or 403.
            APIError: Any other non-2xx status or an undecodable body.
        """
        url = self.config.url(path)
        logger.debug("%s %s", method, url)

        try:
            response = self.session.request(
                method,
                url,
                json=json,
                params=params,
                timeout=self.config.timeout
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise TransportError(f"{method} {url} failed: {e}", url=url) from e

        status = response.status_code
        logger.debug("%s %s -> %d", method, url, status)

        if status == 404:
            return None

        if not response.ok:
            message = _error_message(response)
            logger.warning("%s %s rejected with %d: %s", method, url, status, message)
            if status == 400:
                raise ValidationError(message, _error_list(response))
            if status in (401, 403):
                raise AuthenticationError(message, status)
            raise APIError(f"Guild API error ({status}): {message}", status)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"Malformed JSON in response to {method} {path}", status) from e

    def close(self):
        self.session.close()
