import asyncio
import random
from dataclasses import replace

import pytest

from bouncer.workflows import roster as roster_module
from bouncer.workflows.errors import PageFetchError
from bouncer.workflows.roster import RosterCrawler

WIKI = "http://wiki.example.org"


def _index_html(slugs) -> str:
    return "<ul>" + "".join(f'<li><a href="/char/{slug}">{slug}</a></li>' for slug in slugs) + "</ul>"


def _install_fake_wiki(monkeypatch, pages, *, seed=0, failing=()):
    """Serve ``pages`` (url -> body) with random latency; track concurrency."""

    rng = random.Random(seed)
    stats = {"in_flight": 0, "max_in_flight": 0, "requests": []}

    async def fake_fetch_page(session, url, *, timeout):
        stats["requests"].append(url)
        stats["in_flight"] += 1
        stats["max_in_flight"] = max(stats["max_in_flight"], stats["in_flight"])
        try:
            await asyncio.sleep(rng.uniform(0, 0.01))
            if url in failing:
                raise PageFetchError(url, "connection reset")
            return pages[url]
        finally:
            stats["in_flight"] -= 1

    monkeypatch.setattr(roster_module, "fetch_page", fake_fetch_page)
    return stats


def _wiki_with_characters(count: int):
    slugs = [f"Char{i}" for i in range(count)]
    pages = {f"{WIKI}/Active": _index_html(slugs)}
    expected = {}
    for i, slug in enumerate(slugs):
        url = f"{WIKI}/char/{slug}"
        if i % 7 == 3:
            pages[url] = "<p>No game identity listed.</p>"
            continue
        pages[url] = f"<p>On MUSH as: Name{i}</p>"
        expected[f"Name{i}"] = url
    return pages, expected


def test_list_wiki_pages_joins_base_and_keeps_duplicates(monkeypatch, make_settings) -> None:
    pages = {f"{WIKI}/Active": _index_html(["Ann", "Bea", "Ann"])}
    _install_fake_wiki(monkeypatch, pages)
    crawler = RosterCrawler(make_settings())

    urls = asyncio.run(crawler.list_wiki_pages(session=None))

    assert urls == [f"{WIKI}/char/Ann", f"{WIKI}/char/Bea", f"{WIKI}/char/Ann"]


def test_build_roster_across_batches(monkeypatch, make_settings) -> None:
    pages, expected = _wiki_with_characters(35)
    stats = _install_fake_wiki(monkeypatch, pages)
    crawler = RosterCrawler(make_settings())

    roster = asyncio.run(crawler.build_roster(session=object()))

    assert roster == expected
    assert stats["max_in_flight"] <= 10
    # index + one request per character page
    assert len(stats["requests"]) == 36


@pytest.mark.parametrize("seed", [1, 2, 3, 4])
def test_roster_independent_of_completion_order(monkeypatch, make_settings, seed) -> None:
    pages, expected = _wiki_with_characters(23)
    _install_fake_wiki(monkeypatch, pages, seed=seed)

    roster = asyncio.run(RosterCrawler(make_settings()).build_roster(session=object()))

    assert roster == expected


def test_batch_size_bounds_concurrency(monkeypatch, make_settings) -> None:
    pages, expected = _wiki_with_characters(12)
    stats = _install_fake_wiki(monkeypatch, pages)
    settings = make_settings()
    settings = replace(settings, timing=replace(settings.timing, batch_size=3))

    roster = asyncio.run(RosterCrawler(settings).build_roster(session=object()))

    assert roster == expected
    assert stats["max_in_flight"] <= 3


def test_page_failure_aborts_by_default(monkeypatch, make_settings) -> None:
    pages, _ = _wiki_with_characters(15)
    bad = f"{WIKI}/char/Char12"
    _install_fake_wiki(monkeypatch, pages, failing={bad})

    with pytest.raises(PageFetchError) as excinfo:
        asyncio.run(RosterCrawler(make_settings()).build_roster(session=object()))
    assert excinfo.value.url == bad


def test_soft_fail_records_failures(monkeypatch, make_settings) -> None:
    pages, expected = _wiki_with_characters(15)
    bad = f"{WIKI}/char/Char12"
    expected.pop("Name12")
    _install_fake_wiki(monkeypatch, pages, failing={bad})
    crawler = RosterCrawler(make_settings(), soft_fail=True)

    roster = asyncio.run(crawler.build_roster(session=object()))

    assert roster == expected
    assert crawler.failures == [(bad, "connection reset")]


def test_index_failure_is_fatal_even_with_soft_fail(monkeypatch, make_settings) -> None:
    _install_fake_wiki(monkeypatch, {}, failing={f"{WIKI}/Active"})

    with pytest.raises(PageFetchError):
        asyncio.run(RosterCrawler(make_settings(), soft_fail=True).build_roster(session=object()))


def test_duplicate_names_last_delivery_wins(monkeypatch, make_settings) -> None:
    pages = {
        f"{WIKI}/Active": _index_html(["A", "B"]),
        f"{WIKI}/char/A": "On MUSH as: Same",
        f"{WIKI}/char/B": "On MUSH as: Same",
    }
    _install_fake_wiki(monkeypatch, pages)

    roster = asyncio.run(RosterCrawler(make_settings()).build_roster(session=object()))

    assert list(roster) == ["Same"]
    assert roster["Same"] in {f"{WIKI}/char/A", f"{WIKI}/char/B"}


def test_each_batch_finishes_before_the_next_starts(monkeypatch, make_settings) -> None:
    pages, expected = _wiki_with_characters(25)
    slow = {f"{WIKI}/char/Char{i}" for i in (0, 10, 20)}
    events = []

    async def fake_fetch_page(session, url, *, timeout):
        events.append(("start", url))
        await asyncio.sleep(0.05 if url in slow else 0)
        events.append(("end", url))
        return pages[url]

    monkeypatch.setattr(roster_module, "fetch_page", fake_fetch_page)

    roster = asyncio.run(RosterCrawler(make_settings()).build_roster(session=object()))

    assert roster == expected
    urls = [f"{WIKI}/char/Char{i}" for i in range(25)]
    batches = [urls[0:10], urls[10:20], urls[20:25]]
    for current, following in zip(batches, batches[1:]):
        last_end = max(events.index(("end", url)) for url in current)
        first_start = min(events.index(("start", url)) for url in following)
        assert last_end < first_start
