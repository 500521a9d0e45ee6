"""Appendix page engine driving headless Chromium through Playwright.

One browser process is launched lazily and shared by every job; each page
render gets its own isolated, offline browser context that is always closed
afterwards, even when the render is cancelled by a timeout.  Requires the
``browser`` optional dependency::

    pip install incident-pdf[browser]
    playwright install chromium
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from incident_pdf.core.config import RenderConfig
from incident_pdf.exceptions import RenderError
from incident_pdf.pdf.html_templates import SectionDocument

log = logging.getLogger(__name__)

_PDF_FORMATS = {"a4": "A4", "letter": "Letter"}


class BrowserPool:
    """Owns the single shared Chromium process."""

    def __init__(self, config: RenderConfig) -> None:
        self._config = config
        self._lock = asyncio.Lock()
        self._playwright: Any = None
        self._browser: Any = None

    async def browser(self) -> Any:
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            if self._playwright is None:
                try:
                    from playwright.async_api import async_playwright
                except ImportError as exc:
                    raise RenderError(
                        "playwright is required for the chromium engine. "
                        "Install with: pip install incident-pdf[browser]"
                    ) from exc
                self._playwright = await async_playwright().start()

            launch_kwargs: dict[str, Any] = {
                "headless": True,
                "args": list(self._config.chromium_args),
            }
            if self._config.chromium_executable:
                launch_kwargs["executable_path"] = self._config.chromium_executable
            self._browser = await self._playwright.chromium.launch(**launch_kwargs)
            log.info("browser_launched | version=%s", self._browser.version)
            return self._browser

    async def close(self) -> None:
        async with self._lock:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None


class ChromiumEngine:
    """Renders the HTML of a ``SectionDocument`` to a one-page PDF."""

    name = "chromium"

    def __init__(self, config: RenderConfig | None = None, pool: BrowserPool | None = None) -> None:
        self._config = config or RenderConfig()
        self._pool = pool or BrowserPool(self._config)

    async def render(self, document: SectionDocument) -> bytes:
        browser = await self._pool.browser()
        context = await browser.new_context(java_script_enabled=False, offline=True)
        try:
            page = await context.new_page()
            await page.set_content(document.html, wait_until="load")
            return await page.pdf(
                format=_PDF_FORMATS[self._config.page_size],
                print_background=True,
                prefer_css_page_size=True,
                page_ranges="1",
            )
        finally:
            await context.close()

    async def close(self) -> None:
        await self._pool.close()
