from __future__ import annotations

import random
import threading
import time
from dataclasses import dataclass
from urllib.parse import urlparse

import requests
from requests import Response
from requests.adapters import HTTPAdapter

from .config import MIN_FETCH_TIMEOUT_MS


DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_6) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
]

_CHUNK_SIZE = 16384

_REFERERS = (
    ("made-in-china", "https://www.made-in-china.com/"),
    ("indiamart", "https://dir.indiamart.com/"),
    ("alibaba", "https://www.alibaba.com/"),
)


@dataclass(frozen=True)
class FetchResult:
    url: str
    status_code: int | None
    ok: bool
    text: str | None
    error: str | None
    elapsed_ms: int


class HttpClient:
    """Single-shot GET with browser-like headers. Never raises; no retries."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 3.5,
        proxy_url: str | None = None,
        user_agents: list[str] | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._proxy_url = proxy_url
        self._user_agents = user_agents or DEFAULT_USER_AGENTS
        self._local = threading.local()

    def _session(self) -> requests.Session:
        sess = getattr(self._local, "session", None)
        if isinstance(sess, requests.Session):
            return sess
        s = requests.Session()
        adapter = HTTPAdapter(pool_connections=16, pool_maxsize=16)
        s.mount("http://", adapter)
        s.mount("https://", adapter)
        self._local.session = s
        return s

    def _headers(self, url: str) -> dict[str, str]:
        headers = {
            "User-Agent": random.choice(self._user_agents),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        netloc = self._netloc(url)
        for hint, referer in _REFERERS:
            if hint in netloc:
                headers["Referer"] = referer
                break
        return headers

    @staticmethod
    def _netloc(url: str) -> str:
        try:
            return urlparse(url).netloc.lower()
        except Exception:
            return ""

    def _proxies(self) -> dict[str, str] | None:
        if not self._proxy_url:
            return None
        return {"http": self._proxy_url, "https": self._proxy_url}

    def _timeout(self, timeout_ms: int | None) -> float:
        ms = timeout_ms if timeout_ms is not None else int(self._timeout_seconds * 1000)
        return max(MIN_FETCH_TIMEOUT_MS, int(ms)) / 1000.0

    def fetch_text(self, url: str, *, timeout_ms: int | None = None) -> FetchResult:
        started = time.perf_counter()
        timeout = self._timeout(timeout_ms)
        # requests applies the timeout per socket read; the deadline bounds the whole body.
        deadline = started + timeout
        try:
            resp: Response = self._session().get(
                url,
                headers=self._headers(url),
                proxies=self._proxies(),
                timeout=(timeout, timeout),
                allow_redirects=True,
                stream=True,
            )
        except Exception as e:
            return self._failed(url, None, f"{type(e).__name__}: {e}", started)

        try:
            if not 200 <= resp.status_code < 300:
                return self._failed(str(resp.url or url), resp.status_code, f"HTTP {resp.status_code}", started)
            chunks: list[bytes] = []
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                if chunk:
                    chunks.append(chunk)
                if time.perf_counter() > deadline:
                    raise requests.Timeout(f"body exceeded {int(timeout * 1000)} ms")
            encoding = resp.encoding or resp.apparent_encoding or "utf-8"
            text = b"".join(chunks).decode(encoding, errors="replace")
        except Exception as e:
            return self._failed(str(resp.url or url), resp.status_code, f"{type(e).__name__}: {e}", started)
        finally:
            resp.close()

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        return FetchResult(
            url=str(resp.url or url),
            status_code=resp.status_code,
            ok=True,
            text=text,
            error=None,
            elapsed_ms=elapsed_ms,
        )

    @staticmethod
    def _failed(url: str, status_code: int | None, error: str, started: float) -> FetchResult:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        return FetchResult(url=url, status_code=status_code, ok=False, text=None, error=error, elapsed_ms=elapsed_ms)

    def fetch_html(self, url: str, timeout_ms: int | None = 3500) -> str:
        res = self.fetch_text(url, timeout_ms=timeout_ms)
        if not res.ok or not res.text:
            return ""
        return res.text
