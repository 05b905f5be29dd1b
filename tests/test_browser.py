"""Tests for the headless browser tier, with Playwright mocked out."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from civic_trace.providers import browser


def _mock_browser(page=None, context_error=None):
    page = page or _mock_page()
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    mock = MagicMock()
    if context_error:
        mock.new_context = AsyncMock(side_effect=context_error)
    else:
        mock.new_context = AsyncMock(return_value=context)
    mock.close = AsyncMock()
    return mock


def _mock_page(links=None, goto_error=None):
    page = MagicMock()
    page.goto = AsyncMock(side_effect=goto_error)
    page.wait_for_load_state = AsyncMock()
    page.eval_on_selector_all = AsyncMock(return_value=links or [])
    return page


class TestBrowserSession:

    @pytest.mark.asyncio
    async def test_closes_on_success(self):
        page = _mock_page(links=[{"href": "https://oversight.gov/acme", "text": " Acme Corp "}])
        mock = _mock_browser(page)

        results = await browser.search(["oversight.gov"], "Acme Corp", launch=AsyncMock(return_value=mock))

        mock.close.assert_awaited_once()
        page.goto.assert_awaited_once_with("https://oversight.gov/search?q=Acme+Corp")
        page.wait_for_load_state.assert_awaited_once_with("networkidle")
        assert results[0].title == "Acme Corp"
        assert results[0].source == "oversight.gov_browser"
        assert (results[0].confidence, results[0].tier_hit) == (0.6, 4)

    @pytest.mark.asyncio
    async def test_closes_when_context_fails(self):
        mock = _mock_browser(context_error=RuntimeError("context crashed"))

        results = await browser.search(["oversight.gov"], "Acme", launch=AsyncMock(return_value=mock))

        assert results == []
        mock.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_navigation_failure_is_per_domain(self):
        page = _mock_page(links=[{"href": "https://childwelfare.gov/a", "text": "Acme"}])
        page.goto = AsyncMock(side_effect=[TimeoutError("nav timeout"), None])
        mock = _mock_browser(page)

        results = await browser.search(
            ["legislature.gov", "childwelfare.gov"], "Acme", launch=AsyncMock(return_value=mock),
        )

        assert page.goto.await_count == 2
        assert [r.source for r in results] == ["childwelfare.gov_browser"]
        mock.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_launch_failure(self):
        launch = AsyncMock(side_effect=RuntimeError("no chromium"))
        assert await browser.search(["oversight.gov"], "Acme", launch=launch) == []

    @pytest.mark.asyncio
    async def test_session_reraises_after_close(self):
        mock = _mock_browser()
        with pytest.raises(ValueError):
            async with browser.browser_session(AsyncMock(return_value=mock)):
                raise ValueError("inside")
        mock.close.assert_awaited_once()


class TestLinksToResults:

    def test_skips_incomplete_links(self):
        links = [
            {"href": "https://a.gov/1", "text": "One"},
            {"href": "", "text": "no href"},
            {"href": "https://a.gov/2", "text": "   "},
            {"text": "missing href"},
        ]
        results = browser.links_to_results(links, "a.gov")
        assert [r.link for r in results] == ["https://a.gov/1"]
