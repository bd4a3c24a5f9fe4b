from shoedeals.logic.dedupe import dedupe_deals


def test_first_occurrence_wins(make_deal):
    first = make_deal(1, sale_price=70.0, discount_percent=30)
    dup = make_deal(1, listing_url="  https://www.runningwarehouse.com/p/1 ")
    other_store = make_deal(1, store="Holabird Sports")
    result = dedupe_deals([first, dup, other_store, make_deal(2)])
    assert result == [first, other_store, make_deal(2)]


def test_empty_url_listings_are_always_kept(make_deal):
    a = make_deal(1, listing_url="")
    b = make_deal(1, listing_url="")
    assert dedupe_deals([a, b], strict=False) == [a, b]


def test_strict_mode_collapses_empty_url_duplicates(make_deal):
    a = make_deal(1, listing_url="")
    b = make_deal(1, listing_url="", listing_name="TEST RUNNER 1")
    c = make_deal(1, listing_url="", image_url="https://img.example.com/other.jpg")
    assert dedupe_deals([a, b, c], strict=True) == [a, c]


def test_dedupe_is_idempotent(make_deal):
    deals = [make_deal(i % 3) for i in range(9)] + [make_deal(5, listing_url="")] * 2
    once = dedupe_deals(deals, strict=False)
    assert dedupe_deals(once, strict=False) == once
    assert len(once) == 5
