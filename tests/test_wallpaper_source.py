"""Tests for the WallpaperSource base: lifecycle, paging and retrieval."""

import asyncio

import pytest

from conftest import ListSource, list_config, make_images
from core.errors import SourceError, SourceErrorType
from core.models import UNKNOWN
from core.wallpaper_source import PageCache, WallpaperSource, page_count, to_int


def ids(images):
    return [image.id for image in images]


# ============ Helpers ============


def test_to_int():
    assert to_int("12") == 12
    assert to_int(3.7) == 3
    assert to_int("3.0") == 3
    assert to_int(None) is None
    assert to_int("abc", 5) == 5


def test_page_count():
    assert page_count(100, 24) == 5
    assert page_count(96, 24) == 4
    assert page_count("48", "24") == 2
    assert page_count(0, 24) == UNKNOWN
    assert page_count(None, 24) == UNKNOWN
    assert page_count(10, 0) == UNKNOWN


def test_page_cache_take_advances_cursor():
    cache = PageCache()
    cache.replace(make_images("a", "b", "c"))
    assert ids(cache.take(2)) == ["a", "b"]
    assert cache.remaining == 1
    assert ids(cache.take(5)) == ["c"]
    assert cache.take(1) == []
    cache.clear()
    assert len(cache) == 0 and cache.cursor == 0


def test_build_query_skips_empty_and_joins_lists():
    query = WallpaperSource.build_query({
        "q": "sea", "empty": "", "none": None, "tags": ["a", "b"], "flag": True,
    })
    assert query == "q=sea&tags=a%2Cb&flag=true"


def test_build_endpoint_url(http):
    source = ListSource(list_config(), http)
    source.base_url = "https://api.example"
    source.endpoints = {"detail": "/w/{id}", "abs": "https://other.example/x"}
    assert source.build_endpoint_url("detail", id="abc") == "https://api.example/w/abc"
    assert source.build_endpoint_url("abs") == "https://other.example/x"


def test_missing_endpoint_is_a_configuration_error(http):
    source = ListSource(list_config(), http)
    with pytest.raises(SourceError) as excinfo:
        source.build_endpoint_url("nope")
    assert excinfo.value.kind is SourceErrorType.CONFIGURATION


def test_resolved_defaults_are_written_back_to_config(http):
    config = list_config()
    config.name = ""
    source = ListSource(config, http)
    assert config.name == "ListSource"
    assert config.description == "Images listed in the config"
    assert source.params == config.params


# ============ Lifecycle ============


@pytest.mark.asyncio
async def test_enable_probes_once(http):
    source = ListSource(list_config(pages=[["a"]]), http)
    assert await source.try_enable()
    assert await source.try_enable()
    assert source.enabled and source.initialized
    assert source.probes == 1
    assert source.total_pages == 1


@pytest.mark.asyncio
async def test_failed_probe_leaves_source_disabled(http):
    source = ListSource(list_config(fail_probe="authentication"), http)
    assert not await source.try_enable()
    assert not source.enabled
    assert not source.initialized
    assert source.last_error.kind is SourceErrorType.AUTHENTICATION


@pytest.mark.asyncio
async def test_disable_resets_paging(http):
    source = ListSource(list_config(pages=[["a"], ["b"]]), http)
    await source.try_enable()
    await source.get_images(1)
    assert source.current_page == 2
    assert await source.try_disable()
    assert not source.enabled and not source.initialized
    assert source.current_page == 1
    assert source.total_pages == UNKNOWN
    assert len(source.cache) == 0


# ============ Retrieval ============


@pytest.mark.asyncio
async def test_get_images_drains_across_refreshes_without_repeats(http):
    source = ListSource(list_config(endless=True), http)
    await source.try_enable()
    images = await source.get_images(5)
    assert ids(images) == ["p1", "p2", "p3", "p4", "p5"]
    assert source.fetched_pages == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_get_images_uses_cache_before_fetching(http):
    source = ListSource(list_config(pages=[["a", "b", "c", "d"]]), http)
    await source.try_enable()
    assert ids(await source.get_images(2)) == ["a", "b"]
    assert ids(await source.get_images(2)) == ["c", "d"]
    assert source.fetched_pages == [1]


@pytest.mark.asyncio
async def test_bounded_listing_wraps_to_first_page(http):
    source = ListSource(list_config(pages=[["a", "b"], ["c"]]), http)
    await source.try_enable()
    images = await source.get_images(5)
    assert ids(images) == ["a", "b", "c", "a", "b"]
    assert source.fetched_pages == [1, 2, 1]


@pytest.mark.asyncio
async def test_empty_provider_returns_none(http):
    source = ListSource(list_config(pages=[]), http)
    await source.try_enable()
    assert await source.get_images(3) is None
    assert source.current_page == 1


@pytest.mark.asyncio
async def test_fetch_error_returns_none_and_records_error(http):
    source = ListSource(list_config(pages=[["a"]], fail_fetch="rate-limit"), http)
    await source.try_enable()
    assert await source.get_images(1) is None
    assert source.last_error.kind is SourceErrorType.RATE_LIMIT
    assert len(source.cache) == 0


@pytest.mark.asyncio
async def test_short_result_when_provider_runs_dry(http):
    source = ListSource(list_config(pages=[["a", "b"]]), http)
    await source.try_enable()
    # Pretend the provider reports no bound so the empty page 2 ends retrieval
    source.total_pages = UNKNOWN
    images = await source.get_images(5)
    assert ids(images) == ["a", "b"]


@pytest.mark.asyncio
async def test_images_are_stamped_with_source_id(http):
    source = ListSource(list_config(source_id="mine", pages=[["a"]]), http)
    await source.try_enable()
    images = await source.get_images(1)
    assert images[0].source_id == "mine"


@pytest.mark.asyncio
async def test_concurrent_refreshes_share_one_fetch(http):
    class SlowSource(ListSource):
        async def _fetch_page(self, page):
            await asyncio.sleep(0.01)
            return await super()._fetch_page(page)

    source = SlowSource(list_config(endless=True), http)
    await source.try_enable()
    results = await asyncio.gather(*(source.refresh_cache() for _ in range(3)))
    assert results == [True, True, True]
    assert source.fetched_pages == [1]


@pytest.mark.asyncio
async def test_concurrent_get_images_never_duplicate(http):
    class SlowSource(ListSource):
        async def _fetch_page(self, page):
            await asyncio.sleep(0.005)
            return await super()._fetch_page(page)

    source = SlowSource(list_config(endless=True), http)
    await source.try_enable()
    batches = await asyncio.gather(*(source.get_images(2) for _ in range(3)))
    seen = [image.id for batch in batches for image in batch]
    assert len(seen) == 6
    assert len(set(seen)) == 6
