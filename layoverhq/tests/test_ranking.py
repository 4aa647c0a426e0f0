import logging

from conftest import make_offer, make_segment

from layoverhq.ranking import RankedResults, SortKey, rank_offers
from layoverhq.scoring import score


def offers_fixture():
    return [
        make_offer("pricey-fast", total=1800.0, outbound=[make_segment("LOS", "ATL", "2025-08-21T08:00:00", 300)]),
        make_offer("cheap-slow", total=200.0, outbound=[make_segment("LOS", "ATL", "2025-08-21T08:00:00", 1500)]),
        make_offer("middle", total=600.0, outbound=[make_segment("LOS", "ATL", "2025-08-21T08:00:00", 700)]),
        make_offer("cheap-slow-twin", total=200.0, outbound=[make_segment("LOS", "ATL", "2025-08-21T08:00:00", 1500)]),
        make_offer("no-price", total=None, outbound=[make_segment("LOS", "ATL", "2025-08-21T08:00:00", 200)]),
    ]


def ids(offers):
    return [o.id for o in offers]


def test_price_ascending_is_stable_and_keeps_unpriced_last():
    ranked = rank_offers(offers_fixture(), SortKey.PRICE)
    assert ids(ranked) == ["cheap-slow", "cheap-slow-twin", "middle", "pricey-fast", "no-price"]


def test_duration_ascending_uses_outbound_minutes():
    ranked = rank_offers(offers_fixture(), "duration")
    assert ids(ranked) == ["no-price", "pricey-fast", "middle", "cheap-slow", "cheap-slow-twin"]


def test_score_descending():
    ranked = rank_offers(offers_fixture(), SortKey.SCORE)
    scores = [score(o) for o in ranked]
    assert scores == sorted(scores, reverse=True)
    # equal scores keep input order
    assert ids(ranked).index("cheap-slow") < ids(ranked).index("cheap-slow-twin")


def test_sorting_twice_gives_same_order():
    offers = offers_fixture()
    for key in SortKey:
        assert rank_offers(offers, key) == rank_offers(offers, key)


def test_resort_starts_from_source_order():
    offers = offers_fixture()
    by_price = RankedResults(source=offers, sort_key=SortKey.PRICE)
    resorted = by_price.sorted_by(SortKey.SCORE)

    assert resorted.ranked == RankedResults(source=offers, sort_key=SortKey.SCORE).ranked
    assert resorted.source == tuple(offers)


def test_preview_and_show_all():
    offers = [
        make_offer(f"o{i}", total=100.0 + i * 10) for i in range(13)
    ]
    results = RankedResults(source=offers, sort_key=SortKey.PRICE)

    assert len(results.preview) == 10
    assert results.displayed == results.preview
    assert results.hidden_count == 3
    expanded = results.expanded()
    assert len(expanded.displayed) == 13
    assert expanded.hidden_count == 0
    assert len(results) == 13


def test_changing_key_reranks_beyond_preview():
    offers = [make_offer(f"o{i}", total=1000.0 - i * 10) for i in range(12)]
    results = RankedResults(source=offers, sort_key=SortKey.DURATION, preview_size=3)
    by_price = results.sorted_by("price")

    assert ids(by_price.preview) == ["o11", "o10", "o9"]
    assert len(by_price.ranked) == 12


def test_reranking_does_not_repeat_incomplete_data_warnings(caplog):
    results = RankedResults(source=offers_fixture())
    with caplog.at_level(logging.DEBUG, logger="layoverhq.scoring"):
        results.sorted_by("price").sorted_by("score")
    incomplete = [r for r in caplog.records if "incomplete data" in r.getMessage()]
    assert incomplete
    assert all(r.levelno == logging.DEBUG for r in incomplete)


def test_direct_score_still_warns_on_incomplete_data(caplog):
    with caplog.at_level(logging.WARNING, logger="layoverhq.scoring"):
        score(make_offer("no-price", total=None))
    assert "scored with incomplete data: price.total" in caplog.text
