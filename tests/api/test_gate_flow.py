import pytest

from readgate.client import GateClient
from readgate.domain.engagement.clock import ManualClock, ManualTimerSource
from readgate.domain.engagement.geometry import StaticPage
from readgate.domain.engagement.state import ShowReason
from readgate.domain.gate import policy

STORY_URL = "https://news.example/2026/10/long-read"


@pytest.mark.asyncio
async def test_reader_scrolls_submits_and_stays_unlocked(api_client, leads):
    client = GateClient(api_client)
    boot = await client.bootstrap(STORY_URL)
    assert boot.eligible
    assert boot.settings.scroll_depth_percent == 30

    clock = ManualClock()
    timers = ManualTimerSource(clock)
    detector = client.detector(boot, StaticPage(viewport=800, document=4000), clock=clock, timers=timers)
    detector.start(0)
    assert not detector.on_scroll(150)
    timers.advance(700)
    assert detector.on_scroll(400)
    await detector.wait_until_revealed()
    assert detector.show_reason is ShowReason.HEURISTIC
    assert detector.token

    clock.advance(3_000)
    outcome = await detector.submit("a@b.com", True, client.submit, page_url=STORY_URL, page_title="Long read")
    assert outcome.success
    assert outcome.status_code == 200
    assert outcome.message == policy.SUCCESS_MESSAGE
    assert detector.unlocked
    assert api_client.cookies.get("rg_unlocked") == "1"
    assert len(leads.records) == 1
    assert leads.records[0].page_title == "Long read"

    again = await client.bootstrap(STORY_URL)
    assert not again.eligible
    with pytest.raises(ValueError):
        client.detector(again, StaticPage(viewport=800, document=4000))


@pytest.mark.asyncio
async def test_fast_submit_is_refused_and_modal_stays(api_client, leads):
    client = GateClient(api_client)
    boot = await client.bootstrap(STORY_URL)
    clock = ManualClock()
    timers = ManualTimerSource(clock)
    detector = client.detector(boot, StaticPage(viewport=800, document=4000), clock=clock, timers=timers)
    detector.start(0)
    timers.advance(12_000)
    await detector.wait_until_revealed()
    detector.on_interaction()

    clock.advance(1_000)
    outcome = await detector.submit("a@b.com", True, client.submit)
    assert not outcome.success
    assert outcome.status_code == 400
    assert outcome.message == policy.GENERIC_MESSAGE
    assert detector.visible

    clock.advance(2_000)
    outcome = await detector.submit("a@b.com", True, client.submit)
    assert outcome.success
    assert len(leads.records) == 1


@pytest.mark.asyncio
async def test_token_fetch_without_nonce_yields_none(api_client):
    client = GateClient(api_client)
    assert await client.fetch_token() is None
