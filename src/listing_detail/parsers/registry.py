from __future__ import annotations

from typing import Protocol
from urllib.parse import urlparse

from ..browser import BrowserAutomation
from ..models import ProductDetail
from .alibaba import AlibabaParser, AlibabaParserConfig
from .indiamart import IndiaMartParser
from .made_in_china import MadeInChinaParser


class DetailParser(Protocol):
    @property
    def platform(self) -> str: ...

    def parse(self, html: str, *, url: str) -> ProductDetail | None: ...


_MADE_IN_CHINA = MadeInChinaParser()
_INDIAMART = IndiaMartParser()
_ALIBABA = AlibabaParser()


def platform_for_url(url: str | None) -> str | None:
    if not url:
        return None
    try:
        host = (urlparse(url).hostname or "").lower()
    except Exception:
        return None
    if not host:
        return None
    # "made-in-china" hosts must be checked before the broader alibaba match.
    if "made-in-china" in host:
        return "made-in-china"
    if "alibaba" in host:
        return "alibaba"
    if "indiamart" in host:
        return "indiamart"
    return None


def get_parser_for_url(
    url: str | None,
    *,
    browser: BrowserAutomation | None = None,
    headless_timeout_ms: int = 30000,
) -> DetailParser | None:
    platform = platform_for_url(url)
    if platform == "made-in-china":
        return _MADE_IN_CHINA
    if platform == "indiamart":
        return _INDIAMART
    if platform == "alibaba":
        if browser is None:
            return _ALIBABA
        return AlibabaParser(AlibabaParserConfig(headless_timeout_ms=headless_timeout_ms), browser=browser)
    return None
