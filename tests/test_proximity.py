"""Tests for proximity ranking"""

import asyncio

import pytest

from services.cache import InMemoryResolutionCache, NullResolutionCache
from services.geocoding import (
    AddressResolver,
    Coordinates,
    FailureKind,
    ProviderUnavailable,
    RateLimited,
)
from services.neighbourhoods import Confidence, NeighbourhoodTaxonomy, ProximityEngine

ORIGIN = Coordinates(latitude=-36.85, longitude=174.76)


def _ten_entry_taxonomy():
    def region(name, numbers):
        return {
            "name": name,
            "neighbourhoods": {
                f"n{i}": {"name": f"Neighbourhood {i}", "suburbs": [f"Suburb {i}"], "type": "t"}
                for i in numbers
            },
        }

    return NeighbourhoodTaxonomy({
        "country": "New Zealand",
        "country_code": "NZ",
        "regions": {
            "north": region("North", range(0, 5)),
            "south": region("South", range(5, 10)),
        },
    })


def _centroid_query(entry):
    return f"{entry.suburbs[0]}, {entry.region}, New Zealand"


@pytest.fixture
def ten():
    return _ten_entry_taxonomy()


@pytest.fixture
def place_all(provider, ten):
    """Put every centroid ~55 km north of the origin unless overridden"""
    def place(overrides=None):
        overrides = overrides or {}
        for entry in ten:
            lat_offset = overrides.get(entry.key, 0.5)
            if isinstance(lat_offset, Exception):
                provider.fail_forward(_centroid_query(entry), lat_offset)
            else:
                provider.add_forward(_centroid_query(entry), ORIGIN.latitude + lat_offset, ORIGIN.longitude)
    return place


def _engine(provider, cache=None, **kwargs):
    return ProximityEngine(AddressResolver(provider, cache or InMemoryResolutionCache()), "New Zealand", **kwargs)


@pytest.mark.asyncio
async def test_only_entries_within_radius_are_returned(provider, ten, place_all):
    """Two of ten entries resolve within 5 km"""
    place_all({"n3": 0.03, "n7": 0.01})

    results = await _engine(provider).rank(ORIGIN, ten.all_entries(), radius_km=5)

    assert [r.id for r in results] == ["south-n7", "north-n3"]
    assert results[0].distance_km == pytest.approx(1.11, abs=0.01)
    assert results[1].distance_km == pytest.approx(3.34, abs=0.01)
    assert all(r.confidence == Confidence.EXACT for r in results)


@pytest.mark.asyncio
async def test_unfiltered_ranking_is_sorted_and_complete(provider, ten, place_all):
    place_all({f"n{i}": 0.1 * (10 - i) for i in range(10)})

    results = await _engine(provider).rank(ORIGIN, ten.all_entries(), radius_km=0)

    assert len(results) == 10
    distances = [r.distance_km for r in results]
    assert distances == sorted(distances)
    assert results[0].id == "south-n9"
    assert results[0].centroid == Coordinates(latitude=ORIGIN.latitude + 0.1, longitude=ORIGIN.longitude)


@pytest.mark.asyncio
async def test_equal_distances_keep_declaration_order(provider, ten, place_all):
    place_all({f"n{i}": 0.02 for i in range(10)})

    results = await _engine(provider).rank(ORIGIN, ten.all_entries())

    assert [r.id for r in results] == [e.id for e in ten]


@pytest.mark.asyncio
async def test_failed_centroid_in_origin_region_is_estimated_nearby(provider, ten, place_all):
    place_all({"n1": ProviderUnavailable("down")})

    results = await _engine(provider).rank(ORIGIN, ten.all_entries(), radius_km=5, origin_region="north")

    assert len(results) == 1
    only = results[0]
    assert only.id == "north-n1"
    assert only.distance_km == 2.5
    assert only.is_estimated
    assert only.failure == FailureKind.PROVIDER_UNAVAILABLE
    assert only.centroid is None


@pytest.mark.asyncio
async def test_failed_centroid_elsewhere_falls_outside_radius(provider, ten, place_all):
    place_all({"n1": 0.01, "n8": RateLimited("slow down")})

    results = await _engine(provider).rank(ORIGIN, ten.all_entries(), radius_km=5, origin_region="north")

    assert [r.id for r in results] == ["north-n1"]


@pytest.mark.asyncio
async def test_estimates_without_radius(provider, ten, place_all):
    place_all({"n8": RateLimited("slow down")})
    engine = _engine(provider)

    results = await engine.rank(ORIGIN, ten.all_entries(), origin_region="north")

    estimated = [r for r in results if r.is_estimated]
    assert [r.id for r in estimated] == ["south-n8"]
    assert estimated[0].distance_km == 50
    assert estimated[0].failure == FailureKind.RATE_LIMITED
    assert engine.estimate_distance(ten.get("south-n8"), 5, "north") == 25


@pytest.mark.asyncio
async def test_one_failure_does_not_affect_other_entries(provider, ten, place_all):
    place_all({"n0": ProviderUnavailable("down"), "n1": 0.01})

    results = await _engine(provider).rank(ORIGIN, ten.all_entries())

    by_id = {r.id: r for r in results}
    assert len(by_id) == 10
    assert by_id["north-n0"].is_estimated
    assert sum(1 for r in results if r.is_estimated) == 1
    assert by_id["north-n1"].confidence == Confidence.EXACT


@pytest.mark.asyncio
async def test_centroids_come_from_cache_on_repeat(provider, ten, place_all):
    place_all()
    engine = _engine(provider)

    await engine.rank(ORIGIN, ten.all_entries())
    await engine.rank(ORIGIN, ten.all_entries(), radius_km=10)

    assert len(provider.forward_calls) == 10


@pytest.mark.asyncio
async def test_outstanding_lookups_are_bounded(provider, ten, place_all):
    place_all()
    provider.delay = 0.01

    await _engine(provider, NullResolutionCache(), concurrency=3).rank(ORIGIN, ten.all_entries())

    assert len(provider.forward_calls) == 10
    assert provider.max_in_flight == 3


@pytest.mark.asyncio
async def test_concurrent_rankings_share_the_bound(provider, ten, place_all):
    place_all()
    provider.delay = 0.01
    engine = _engine(provider, NullResolutionCache(), concurrency=3)

    await asyncio.gather(
        engine.rank(ORIGIN, ten.all_entries()),
        engine.rank(ORIGIN, ten.all_entries(), radius_km=100),
    )

    assert len(provider.forward_calls) == 20
    assert provider.max_in_flight == 3


@pytest.mark.asyncio
async def test_cancelled_ranking_leaves_no_lookups_running(provider, ten, place_all):
    place_all()
    provider.delay = 10
    engine = _engine(provider, concurrency=3)

    task = asyncio.create_task(engine.rank(ORIGIN, ten.all_entries()))
    while provider.in_flight == 0:
        await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert provider.in_flight == 0
    assert len(provider.forward_calls) == 3


@pytest.mark.asyncio
async def test_no_candidates(provider):
    assert await _engine(provider).rank(ORIGIN, []) == []


@pytest.mark.asyncio
async def test_negative_radius_is_rejected(provider, ten):
    with pytest.raises(ValueError):
        await _engine(provider).rank(ORIGIN, ten.all_entries(), radius_km=-1)


def test_invalid_engine_settings(provider):
    with pytest.raises(ValueError):
        _engine(provider, concurrency=0)
    with pytest.raises(ValueError):
        _engine(provider, other_region_margin_km=0)


def test_centroid_query_uses_first_suburb(provider, taxonomy):
    entry = taxonomy.get("wellington-southern-wellington")
    assert _engine(provider).centroid_query(entry) == "Island Bay, Wellington, New Zealand"
