"""Algolia REST client: record count and build logs for one index."""
import json
import logging
import os
from typing import Any, Optional
from urllib.parse import quote

import requests
from dotenv import load_dotenv
from requests.adapters import HTTPAdapter

load_dotenv()

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


ALGOLIA_HOST = (os.getenv("ALGOLIA_HOST") or "").strip().rstrip("/")
ALGOLIA_REQUEST_TIMEOUT = _int_env("ALGOLIA_REQUEST_TIMEOUT", 10)
ALGOLIA_MAX_RETRIES = _int_env("ALGOLIA_MAX_RETRIES", 2)
ALGOLIA_LOG_PAGE_SIZE = max(1, min(1000, _int_env("ALGOLIA_LOG_PAGE_SIZE", 1000)))

COUNT_QUERY_PARAMS = "hitsPerPage=0&getRankingInfo=0&query=*"


class RemoteIndexError(Exception):
    """Base class for failures talking to the index service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FatalRemoteError(RemoteIndexError):
    """Not worth retrying: the setup has to be fixed by the user."""


class AuthenticationError(FatalRemoteError):
    pass


class IndexNotFoundError(FatalRemoteError):
    pass


class TransientRemoteError(RemoteIndexError):
    """Timeouts, dropped connections, throttling and 5xx answers."""


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return (response.text or "no body")[:500]


def classify_response(response: requests.Response, index_name: str) -> None:
    """Raise the matching RemoteIndexError for a non-2xx response."""
    status = response.status_code
    if 200 <= status < 300:
        return
    message = _error_message(response)
    if status in (401, 403):
        raise AuthenticationError(
            f"Algolia rejected the application ID or API key (HTTP {status}): {message}",
            status_code=status,
        )
    if status == 404:
        raise IndexNotFoundError(
            f"Index {index_name!r} not found (HTTP 404): {message}", status_code=status
        )
    if status in (408, 429) or status >= 500:
        raise TransientRemoteError(f"HTTP {status}: {message}", status_code=status)
    raise FatalRemoteError(f"HTTP {status}: {message}", status_code=status)


class AlgoliaClient:
    """Thin wrapper over the Algolia search and logs endpoints.

    Use as a context manager so the underlying session is closed."""

    def __init__(
        self,
        app_id: str,
        api_key: str,
        index_name: str,
        session: Optional[requests.Session] = None,
        timeout: int = ALGOLIA_REQUEST_TIMEOUT,
    ):
        self.index_name = index_name
        self.base_url = (ALGOLIA_HOST or f"https://{app_id}-dsn.algolia.net") + "/1/"
        self.timeout = timeout
        self.session = session or requests.Session()
        if session is None and ALGOLIA_MAX_RETRIES > 0:
            self.session.mount("https://", HTTPAdapter(max_retries=ALGOLIA_MAX_RETRIES))
        self.session.headers.update({
            "x-algolia-application-id": app_id,
            "x-algolia-api-key": api_key,
            "content-type": "application/json",
            "accept": "application/json",
        })

    def __enter__(self) -> "AlgoliaClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = self.base_url + path
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.InvalidHeader as e:
            # the exception text carries the header value, i.e. possibly the API key
            raise FatalRemoteError(
                "Invalid application ID or API key: header values must not contain "
                "leading/trailing whitespace or control characters"
            ) from e
        except (
            requests.exceptions.InvalidURL,
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
            requests.exceptions.URLRequired,
        ) as e:
            raise FatalRemoteError(f"Invalid Algolia URL {url!r} (check APP_ID / ALGOLIA_HOST): {e}") from e
        except requests.RequestException as e:
            logger.debug("Algolia request failed: %s %s error=%s", method, path, e)
            raise TransientRemoteError(f"{method} {path} failed: {e}") from e
        logger.debug("Algolia response: %s %s status=%s", method, path, r.status_code)
        classify_response(r, self.index_name)
        try:
            return r.json()
        except ValueError as e:
            raise TransientRemoteError(
                f"{method} {path} returned invalid JSON: {e}", status_code=r.status_code
            ) from e

    def total_records(self) -> int:
        """Return nbHits for an empty match-all query on the index."""
        path = f"indexes/{quote(self.index_name, safe='')}/query"
        data = self._request("POST", path, data=json.dumps({"params": COUNT_QUERY_PARAMS}))
        value = data.get("nbHits") if isinstance(data, dict) else None
        if isinstance(value, bool) or not isinstance(value, int):
            return 0
        return value

    def get_logs(self) -> list[dict]:
        """Return the most recent page of build logs for the index, newest first."""
        params = {
            "indexName": self.index_name,
            "type": "build",
            "offset": 0,
            "length": ALGOLIA_LOG_PAGE_SIZE,
        }
        data = self._request("GET", "logs", params=params)
        logs = data.get("logs") if isinstance(data, dict) else None
        if not isinstance(logs, list):
            return []
        return [log for log in logs if isinstance(log, dict)]
