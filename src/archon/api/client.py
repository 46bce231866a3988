import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from ..config import REQUEST_TIMEOUT
from ..domain.errors import ApiError, TransportError

logger = logging.getLogger(__name__)


class ApiClient:
    """HTTP client for the Archon API, bound to one base URL and (optionally) one bearer token."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        insecure: bool = False,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.client = httpx.Client(verify=not insecure, timeout=timeout, transport=transport)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def send(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        content: Optional[str] = None,
    ) -> httpx.Response:
        """send a request and return the raw response, whatever its status."""
        if not path.startswith("/"):
            path = "/" + path
        url = f"{self.base_url}{path}"

        request_headers = {"Content-Type": "application/json"}
        if self.token:
            request_headers["Authorization"] = f"Bearer {self.token}"
        if headers:
            request_headers.update(headers)

        logger.debug("%s %s", method.upper(), url)
        try:
            return self.client.request(
                method.upper(),
                url,
                json=body if content is None else None,
                content=content,
                headers=request_headers,
                params=_clean_params(params) if params else None,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Request failed: {e}") from e

    def request(self, method: str, path: str, body: Any = None, **kwargs) -> Any:
        """
        send a request and decode the response.

        returns:
            decoded JSON, or the body text for non-JSON responses

        raises:
            ApiError: for any non-2xx response
            TransportError: if no response was received
        """
        response = self.send(method, path, body, **kwargs)

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            if not response.is_success:
                raise ApiError(
                    status=response.status_code,
                    message=f"HTTP {response.status_code}: {response.reason_phrase}",
                    error=response.text,
                )
            return response.text

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            payload = data if isinstance(data, dict) else {}
            raise ApiError(
                status=response.status_code,
                message=payload.get("message") or payload.get("error") or f"HTTP {response.status_code}",
                error=payload.get("error"),
                details=payload.get("details"),
            )

        return data

    def get(self, path: str, **kwargs) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, body: Any = None, **kwargs) -> Any:
        return self.request("POST", path, body, **kwargs)

    def put(self, path: str, body: Any = None, **kwargs) -> Any:
        return self.request("PUT", path, body, **kwargs)

    def patch(self, path: str, body: Any = None, **kwargs) -> Any:
        return self.request("PATCH", path, body, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        return self.request("DELETE", path, **kwargs)


def _clean_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    # None and "" mean "not filtered", so they are left off the query string
    return {k: v for k, v in params.items() if v is not None and v != ""}
