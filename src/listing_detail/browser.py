from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Protocol

from .config import DetailConfig
from .http_client import DEFAULT_USER_AGENTS


@dataclass(frozen=True)
class SkuHint:
    label: str
    hero_url: str | None = None


class BrowserAutomation(Protocol):
    def selected_sku(self, url: str, *, timeout_ms: int) -> SkuHint | None: ...


# Runs in the page; reads the currently selected SKU chip and the hero image.
_SELECTED_SKU_JS = """
() => {
  const chip = document.querySelector('[data-testid="last-sku-first-item"]');
  const span = chip ? chip.querySelector('span') : null;
  const label = ((span && span.textContent) || (chip && chip.textContent) || '').trim();
  const og = document.querySelector('meta[property="og:image"]');
  const hero = og ? og.getAttribute('content') : null;
  return { label, hero };
}
"""


def _warn(msg: str) -> None:
    print(f"[browser] {msg}", file=sys.stderr)


class PlaywrightBrowser:
    """Headless Chromium via Playwright. Any failure yields no hint."""

    def __init__(self, *, user_agent: str | None = None, settle_ms: int = 1000) -> None:
        self._user_agent = user_agent or DEFAULT_USER_AGENTS[0]
        self._settle_ms = settle_ms

    def selected_sku(self, url: str, *, timeout_ms: int) -> SkuHint | None:
        try:
            from playwright.sync_api import sync_playwright
        except ImportError:
            _warn("playwright not installed; install the 'browser' extra and run `playwright install chromium`")
            return None

        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(
                    headless=True,
                    args=["--disable-dev-shm-usage", "--no-sandbox", "--disable-setuid-sandbox"],
                )
                try:
                    context = browser.new_context(user_agent=self._user_agent)
                    page = context.new_page()
                    page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
                    page.wait_for_timeout(self._settle_ms)
                    data = page.evaluate(_SELECTED_SKU_JS) or {}
                finally:
                    browser.close()
        except Exception as e:
            _warn(f"selected_sku failed for {url}: {type(e).__name__}: {e}")
            return None

        label = str(data.get("label") or "").strip()
        if not label:
            return None
        hero = data.get("hero")
        return SkuHint(label=label, hero_url=str(hero) if hero else None)


def browser_from_env(config: DetailConfig) -> BrowserAutomation | None:
    if not config.headless:
        return None
    return PlaywrightBrowser()
