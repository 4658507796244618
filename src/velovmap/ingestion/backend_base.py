from __future__ import annotations

# `json.dumps` is used only for safe, truncated debug output in error messages.
import json
# `logging` reports non-JSON payloads without leaking whole responses into logs.
import logging
# Each worker thread gets its own `requests.Session`.
import threading
# Typing helpers keep our interfaces explicit while we still operate on JSON dicts.
from typing import Any, Mapping, MutableMapping, Optional

# `requests` performs HTTP calls; we wrap it to centralize retries, headers, and error handling.
import requests
# `HTTPAdapter` lets us mount a retry policy onto a `requests.Session`.
from requests.adapters import HTTPAdapter
# `Retry` implements backoff for transient failures (rate limits, 5xx), without manual sleep loops.
from urllib3.util.retry import Retry

from velovmap.config.models import BackendSettings


logger = logging.getLogger(__name__)


# Non-2xx answers from the forecast backend (and non-JSON bodies) end up here.
class BackendRequestError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# `BackendClient` is a minimal HTTP client for the station/forecast backend.
class BackendClient:
    """
    Blocking JSON client for the forecast backend.

    - One `requests.Session` per worker thread (keep-alive, shared retry policy);
      async callers run requests through `asyncio.to_thread`, and a Session is not
      guaranteed thread-safe.
    - Paths may carry a pre-encoded query string; it is sent as-is.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_s: float = 10.0,
        max_retries: int = 2,
        backoff_factor: float = 0.3,
        user_agent: str = "velovmap/0.1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        # Normalize `base_url` so later path joins are consistent (avoid double slashes).
        self._base_url = base_url.rstrip("/")
        # A single timeout keeps a slow backend from freezing a marker refresh forever.
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._backoff_factor = backoff_factor
        self._user_agent = user_agent

        # Tests inject a session double that every thread shares; production builds one per thread.
        self._shared_session = session
        if session is not None:
            session.headers.update({"User-Agent": user_agent})
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._lock = threading.Lock()

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        # A stable User-Agent helps identify map traffic in backend logs.
        session.headers.update({"User-Agent": self._user_agent})
        retry = Retry(
            total=self._max_retries,
            connect=self._max_retries,
            read=self._max_retries,
            status=self._max_retries,
            backoff_factor=self._backoff_factor,
            # Retry only on status codes that are likely transient.
            status_forcelist=(429, 500, 502, 503, 504),
            # The backend is read-only from our side.
            allowed_methods=("GET",),
            respect_retry_after_header=True,
            # Do not raise inside urllib3; we surface a single `BackendRequestError` with context.
            raise_on_status=False,
        )
        session.mount("https://", HTTPAdapter(max_retries=retry))
        session.mount("http://", HTTPAdapter(max_retries=retry))
        return session

    def session_for_thread(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._new_session()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    @classmethod
    def from_settings(cls, settings: BackendSettings) -> "BackendClient":
        return cls(
            base_url=settings.base_url,
            timeout_s=settings.timeout_s,
            max_retries=settings.max_retries,
            backoff_factor=settings.backoff_factor,
            user_agent=settings.user_agent,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def build_url(self, path: str) -> str:
        # Ensure callers can pass either "/path" or "path" without creating a double slash.
        return f"{self._base_url}/{path.lstrip('/')}"

    def get_json(self, path: str, *, headers: Optional[Mapping[str, str]] = None) -> Any:
        url = self.build_url(path)
        req_headers: MutableMapping[str, str] = {"Accept": "application/json"}
        if headers:
            req_headers.update(headers)

        # Transport failures (`requests.RequestException`) propagate; the caller owns recovery.
        resp = self.session_for_thread().get(url, headers=req_headers, timeout=self._timeout_s)
        # Redirects that were not followed count as failures too.
        if not 200 <= resp.status_code < 300:
            raise BackendRequestError(
                f"Backend request failed ({resp.status_code}) url={url} body={resp.text[:500]}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            logger.debug("Non-JSON body from %s: %s", url, json.dumps(resp.text[:200]))
            raise BackendRequestError(f"Backend returned non-JSON body url={url}") from exc

    def close(self) -> None:
        if self._shared_session is not None:
            self._shared_session.close()
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def __enter__(self) -> "BackendClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
