import json

import pytest

from shoedeals.logic import daily_deals


def _catalog(make_deal, count):
    return [
        make_deal(
            i,
            sale_price=float(40 + i),
            original_price=float(100 + 3 * i),
            discount_percent=round(100 * (60 + 2 * i) / (100 + 3 * i)),
        )
        for i in range(count)
    ]


def test_date_seed_sums_character_codes():
    assert daily_deals.date_seed("2026-10-18") == 494


def test_seeded_random_is_sine_based():
    rng = daily_deals.SeededRandom(1)
    assert rng.random() == pytest.approx(0.709848078965, abs=1e-9)
    assert rng.seed == 2


def test_same_day_same_pool_is_reproducible(make_deal):
    catalog = _catalog(make_deal, 40)
    first = daily_deals.select_daily_deals("2026-10-18", catalog)
    second = daily_deals.select_daily_deals("2026-10-18", list(catalog))
    assert json.dumps(first) == json.dumps(second)
    assert first["daySeedUTC"] == "2026-10-18"


def test_selects_twelve_distinct_quality_deals(make_deal):
    catalog = _catalog(make_deal, 40)
    catalog.append(make_deal(99, image_url="https://img.example.com/no-image.png", discount_percent=90))
    result = daily_deals.select_daily_deals("2026-10-18", catalog)
    urls = [d["listingURL"] for d in result["deals"]]
    assert len(urls) == 12
    assert len(set(urls)) == 12
    assert catalog[-1].listing_url not in urls


def test_small_pool_returns_whole_pool_shuffled(make_deal):
    catalog = _catalog(make_deal, 5)
    result = daily_deals.select_daily_deals("2026-10-18", catalog)
    assert sorted(d["listingURL"] for d in result["deals"]) == sorted(d.listing_url for d in catalog)
    assert result["poolSize"] == 5


def test_falls_back_to_all_imaged_deals(make_deal):
    marked_down = _catalog(make_deal, 4)
    full_price = [
        make_deal(50 + i, sale_price=100.0, original_price=100.0, discount_percent=None) for i in range(10)
    ]
    no_image = [make_deal(80 + i, image_url=None) for i in range(5)]
    result = daily_deals.select_daily_deals("2026-10-18", marked_down + full_price + no_image)
    assert result["poolSize"] == 14
    assert len(result["deals"]) == 12
    no_image_urls = {d.listing_url for d in no_image}
    assert not no_image_urls & {d["listingURL"] for d in result["deals"]}


def test_range_deals_are_flattened(make_deal):
    ranged = make_deal(
        0,
        sale_price=None,
        original_price=None,
        discount_percent=None,
        sale_price_low=70.0,
        sale_price_high=90.0,
        original_price_low=120.0,
        original_price_high=140.0,
        discount_percent_up_to=50,
    )
    result = daily_deals.select_daily_deals("2026-10-18", [ranged])
    (shown,) = result["deals"]
    assert shown["salePrice"] == 70.0
    assert shown["originalPrice"] == 140.0
    assert shown["discountPercent"] == 50
    assert shown["isRange"] is True


def test_shuffle_is_a_permutation(make_deal):
    deals = [make_deal(i) for i in range(10)]
    shuffled = daily_deals.shuffle(deals, daily_deals.SeededRandom(494))
    assert sorted(d.listing_url for d in shuffled) == sorted(d.listing_url for d in deals)


def test_usable_image():
    from shoedeals.logic.schema import CanonicalDeal

    base = dict(
        listing_name="X Runner",
        brand="Brooks",
        model="X",
        store="Nike",
        listing_url="https://x/1",
        gender="mens",
        shoe_type="road",
        sale_price=50.0,
        original_price=100.0,
        discount_percent=50,
    )
    assert daily_deals.has_usable_image(CanonicalDeal(image_url="https://img/x.jpg", **base))
    assert not daily_deals.has_usable_image(CanonicalDeal(image_url="/img/x.jpg", **base))
    assert not daily_deals.has_usable_image(CanonicalDeal(image_url="https://img/placeholder.png", **base))
    assert not daily_deals.has_usable_image(CanonicalDeal(image_url=None, **base))


def test_same_url_at_two_stores_are_separate_picks(make_deal):
    catalog = _catalog(make_deal, 11)
    shared = catalog[0].listing_url
    catalog.append(make_deal(0, store="Holabird Sports", listing_url=shared))
    result = daily_deals.select_daily_deals("2026-10-18", catalog)
    picked = [(d["store"], d["listingURL"]) for d in result["deals"]]
    assert len(picked) == 12
    assert len(set(picked)) == 12
    assert ("Running Warehouse", shared) in picked
    assert ("Holabird Sports", shared) in picked
