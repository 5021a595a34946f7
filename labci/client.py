"""HTTP transport for the hosting platform's REST API."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import quote

import requests

from . import __version__
from .errors import APIError, ConfigError
from .logger import get_logger

logger = get_logger()

ProjectID = Union[int, str]


@dataclass
class Page:
    """Pagination state read from the X-* response headers."""

    current: int = 1
    total: int = 0
    next: Optional[int] = None
    per_page: Optional[int] = None
    total_items: Optional[int] = None

    @classmethod
    def from_headers(cls, headers) -> "Page":
        return cls(
            current=_int_header(headers, "X-Page") or 1,
            total=_int_header(headers, "X-Total-Pages") or 0,
            next=_int_header(headers, "X-Next-Page"),
            per_page=_int_header(headers, "X-Per-Page"),
            total_items=_int_header(headers, "X-Total"),
        )

    @property
    def is_last(self) -> bool:
        return self.current == self.total or not self.next


def _int_header(headers, name: str) -> Optional[int]:
    raw = headers.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def project_path(project: ProjectID) -> str:
    """Return the API path of a project given its id or 'group/name' path."""
    return f"projects/{quote(str(project), safe='')}"


def _endpoint_kind(path: str) -> str:
    parts = [p for p in path.split("/") if p]
    if len(parts) > 2 and parts[0] == "projects":
        return parts[2]
    return parts[0] if parts else "root"


def _error_message(resp: requests.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        msg = body.get("message") or body.get("error")
        if msg is not None:
            return msg if isinstance(msg, str) else str(msg)
    return None


class GitLabClient:
    """
    Authenticated client for the platform's v4 REST API.

    Each call issues exactly one request; failures are raised as APIError
    and never retried.
    """

    def __init__(
        self,
        host: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        api_version: str = "v4",
        session: Optional[requests.Session] = None,
    ):
        if not host:
            raise ConfigError("GitLab host is not configured. Set GITLAB_HOST or pass --host.")
        if "://" not in host:
            host = f"https://{host}"
        self.host = host.rstrip("/")
        self.base_url = f"{self.host}/api/{api_version}"
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            # Session() already carries python-requests/x.y
            session.headers["User-Agent"] = f"labci/{__version__}"
        self.session = session
        if token:
            self.session.headers["PRIVATE-TOKEN"] = token

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "GitLabClient":
        return cls(
            host=settings.get("host"),
            token=settings.get("token"),
            timeout=settings.get("timeout", 30.0),
            api_version=settings.get("api_version", "v4"),
        )

    def __enter__(self) -> "GitLabClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        stream: bool = False,
    ) -> requests.Response:
        """Send one request and raise APIError on any failure.

        Raises:
            APIError: On HTTP status >= 400, timeout or connection failure
        """
        url = self.url(path)
        kind = _endpoint_kind(path)
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        logger.debug("API request", method=method, url=url, params=params)
        logger.record_request(kind)
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json,
                stream=stream,
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            detail = _error_message(e.response) if e.response is not None else None
            logger.record_failure(kind, f"HTTPError_{status}")
            if status == 404:
                logger.warning("API resource not found", method=method, url=url, status=404)
                raise APIError(
                    f"{method} {url}: 404 {detail or 'Not Found'}",
                    status=404, url=url, method=method,
                ) from e
            logger.error("API request failed", method=method, url=url, status=status, detail=detail)
            raise APIError(
                f"{method} {url}: {status} {detail or 'request failed'}",
                status=status, url=url, method=method,
            ) from e
        except requests.exceptions.Timeout as e:
            logger.record_failure(kind, "Timeout")
            logger.warning("API request timed out", method=method, url=url)
            raise APIError(f"{method} {url}: request timed out", url=url, method=method) from e
        except requests.exceptions.RequestException as e:
            logger.record_failure(kind, "RequestException")
            logger.error("API request error", method=method, url=url, error=str(e))
            raise APIError(f"{method} {url}: {e}", url=url, method=method) from e

        logger.record_success(kind)
        return resp

    def _json(self, resp: requests.Response, method: str, path: str) -> Any:
        """Decode a response body, raising APIError when it is not JSON."""
        try:
            return resp.json()
        except ValueError as e:
            url = self.url(path)
            logger.error(
                "API response is not JSON",
                method=method, url=url, status=resp.status_code,
                content_type=resp.headers.get("Content-Type"),
            )
            raise APIError(
                f"{method} {url}: invalid JSON response",
                status=resp.status_code, url=url, method=method,
            ) from e

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._json(self.request("GET", path, params=params), "GET", path)

    def get_page(self, path: str, params: Optional[Dict[str, Any]] = None) -> Tuple[Any, Page]:
        """GET a paginated collection, returning the items and the page state."""
        resp = self.request("GET", path, params=params)
        return self._json(resp, "GET", path), Page.from_headers(resp.headers)

    def post(
        self,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        resp = self.request("POST", path, params=params, json=json)
        if not resp.content:
            return None
        return self._json(resp, "POST", path)

    def delete(self, path: str) -> None:
        self.request("DELETE", path)

    def stream(self, path: str):
        """Return the response body as a binary file-like object.

        The caller owns the body and must close it to release the connection.
        """
        resp = self.request("GET", path, stream=True)
        resp.raw.decode_content = True
        return resp.raw
