# File: tests/test_navigator.py
import asyncio

import pytest
from fakes import WASM_MODULE, FakeContext, FakeResponse, SitePage, StalledResponse
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from script_scout.capture.interceptor import ResponseInterceptor
from script_scout.capture.models import NavigationError, NavigationErrorKind
from script_scout.capture.navigator import (
    WAIT_UNTIL,
    NavigationController,
    classify_navigation_error,
)


def make_controller(session, config):
    interceptor = ResponseInterceptor(session, config)
    controller = NavigationController(session, config, interceptor)
    waits = []

    async def _record(seconds):
        waits.append(seconds)

    controller._wait = _record
    return controller, interceptor, waits


@pytest.mark.parametrize(
    "exc,kind",
    [
        (Exception("net::ERR_CONNECTION_RESET at https://a.com/"), NavigationErrorKind.CONNECTION_RESET),
        (Exception("net::ERR_TIMED_OUT"), NavigationErrorKind.TIMEOUT),
        (Exception("net::ERR_NAME_NOT_RESOLVED at https://nope.invalid/"), NavigationErrorKind.DNS_FAILURE),
        (Exception("net::ERR_SSL_PROTOCOL_ERROR"), NavigationErrorKind.TLS_FAILURE),
        (Exception("net::ERR_CERT_AUTHORITY_INVALID"), NavigationErrorKind.TLS_FAILURE),
        (PlaywrightTimeoutError("Timeout 60000ms exceeded."), NavigationErrorKind.TIMEOUT),
        (asyncio.TimeoutError(), NavigationErrorKind.TIMEOUT),
        (Exception("net::ERR_ABORTED"), NavigationErrorKind.OTHER),
    ],
)
def test_classify_navigation_error(exc, kind):
    assert classify_navigation_error(exc) is kind


# --------------------------------------------------------------------------- #
#                                   Retry                                     #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_retry_uses_linear_backoff_then_gives_up(session, make_config):
    config = make_config(retry_backoff=2.0, navigation_retries=3)
    controller, _, waits = make_controller(session, config)
    context = FakeContext({"https://a.com/": SitePage(failures=None)})
    page = await context.new_page()

    with pytest.raises(NavigationError) as info:
        await controller.navigate_with_retry(page, "https://a.com/")

    assert len(page.goto_calls) == 3
    assert waits == [2.0, 4.0]
    assert info.value.kind is NavigationErrorKind.CONNECTION_RESET
    assert info.value.attempts == 3


@pytest.mark.asyncio()
async def test_retry_succeeds_after_transient_failure(session, make_config):
    config = make_config(retry_backoff=2.0, navigation_timeout=30)
    controller, _, waits = make_controller(session, config)
    context = FakeContext({"https://a.com/": SitePage(failures=1)})
    page = await context.new_page()

    response = await controller.navigate_with_retry(page, "https://a.com/")

    assert response.status == 200
    assert waits == [2.0]
    assert page.goto_calls[-1] == {"url": "https://a.com/", "wait_until": WAIT_UNTIL, "timeout": 30000}


# --------------------------------------------------------------------------- #
#                                 Page loop                                   #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_failed_page_is_recorded_and_loop_continues(session, make_config):
    config = make_config(max_pages=3)
    controller, interceptor, _ = make_controller(session, config)
    context = FakeContext(
        {
            "https://a.com/": SitePage(html='<a href="/down">d</a><a href="/ok">o</a>'),
            "https://a.com/down": SitePage(failures=None),
            "https://a.com/ok": SitePage(),
        }
    )
    context.on("response", interceptor.on_response)
    interceptor.start()
    try:
        await controller.run(context)
    finally:
        await interceptor.stop()

    assert session.visited == {"https://a.com/", "https://a.com/down", "https://a.com/ok"}
    assert [f.url for f in session.failures] == ["https://a.com/down"]
    assert session.failures[0].attempts == config.navigation_retries
    assert all(page.closed for page in context.pages)


@pytest.mark.asyncio()
async def test_budget_limits_visits_breadth_first(session, make_config):
    config = make_config(max_pages=2)
    controller, interceptor, _ = make_controller(session, config)
    context = FakeContext(
        {
            "https://a.com/": SitePage(html='<a href="/one">1</a><a href="/two">2</a>'),
            "https://a.com/one": SitePage(html='<a href="/deep">x</a>'),
            "https://a.com/two": SitePage(),
            "https://a.com/deep": SitePage(),
        }
    )
    interceptor.start()
    try:
        await controller.run(context)
    finally:
        await interceptor.stop()

    assert [p.goto_calls[0]["url"] for p in context.pages] == ["https://a.com/", "https://a.com/one"]
    # the last page of the budget does not harvest
    assert list(session.to_visit) == ["https://a.com/two"]


@pytest.mark.asyncio()
async def test_harvest_keeps_same_origin_links_only(session, config):
    controller, _, _ = make_controller(session, config)
    html = (
        '<a href="/about#team">About</a>'
        '<a href="https://a.com/about">About again</a>'
        '<a href="https://b.com/x">Elsewhere</a>'
        '<a href="http://a.com/plain">Other scheme</a>'
        '<a href="https://a.com:8443/port">Other port</a>'
        '<a href="mailto:me@a.com">Mail</a>'
    )
    context = FakeContext({"https://a.com/": SitePage(html=html)})
    page = await context.new_page()
    await page.goto("https://a.com/")
    session.to_visit.clear()
    session.visited.add("https://a.com/")

    added = await controller.harvest_links(page, "https://a.com/")

    assert added == ["https://a.com/about"]
    assert list(session.to_visit) == ["https://a.com/about"]


@pytest.mark.asyncio()
async def test_pending_wasm_is_drained_before_next_page(session, config, output_dir):
    controller, interceptor, _ = make_controller(session, config)
    late = FakeResponse(
        "https://a.com/late.wasm", WASM_MODULE, "application/wasm", "fetch",
        errors=[RuntimeError("body not ready")],
    )
    context = FakeContext({"https://a.com/": SitePage(responses=[late])})
    context.on("response", interceptor.on_response)
    interceptor.start()
    try:
        await controller.visit(context, "https://a.com/")
    finally:
        await interceptor.stop()

    assert not session.pending
    assert (output_dir / "a.com" / "wasm" / "late.wasm").read_bytes() == WASM_MODULE
    assert context.pages[0].closed


@pytest.mark.asyncio()
async def test_settle_waits_are_applied_in_order(session, make_config):
    config = make_config(settle_time=5, wasm_settle_time=2)
    controller, interceptor, waits = make_controller(session, config)
    context = FakeContext({"https://a.com/": SitePage()})
    interceptor.start()
    try:
        await controller.visit(context, "https://a.com/")
    finally:
        await interceptor.stop()

    assert waits == [5, 2]


@pytest.mark.asyncio()
async def test_stalled_bodies_do_not_hold_the_page_open(session, make_config, output_dir):
    config = make_config(max_pages=2, pending_timeout=0.05)
    controller, interceptor, _ = make_controller(session, config)
    stream = StalledResponse("https://a.com/events", b"data: 1\n\n", "text/event-stream", "fetch")
    stuck_wasm = StalledResponse("https://a.com/game.wasm", WASM_MODULE, "application/wasm", "fetch")
    context = FakeContext(
        {
            "https://a.com/": SitePage(html='<a href="/next">next</a>', responses=[stream, stuck_wasm]),
            "https://a.com/next": SitePage(
                responses=[FakeResponse("https://a.com/app.js", b"let a = 1;", "application/javascript", "script")]
            ),
        }
    )
    context.on("response", interceptor.on_response)
    interceptor.start()
    try:
        await asyncio.wait_for(controller.run(context), timeout=3)
    finally:
        await interceptor.stop()
        stream.release.set()
        stuck_wasm.release.set()
        await asyncio.sleep(0.01)

    assert all(page.closed for page in context.pages)
    assert session.visited == {"https://a.com/", "https://a.com/next"}
    assert not session.pending
    assert session.saved == {"https://a.com/app.js"}
    assert stream.body_calls == 1
    # one immediate read, one retry from the pending drain
    assert stuck_wasm.body_calls == 2
    assert not (output_dir / "a.com" / "wasm").exists()
