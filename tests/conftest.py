import pendulum
import pytest

from shoedeals.logic.schema import CanonicalDeal
from shoedeals.utils.blob import LocalBlobStore

NOW = pendulum.datetime(2026, 10, 18, 12, 0, 0, tz="UTC")


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture()
def make_raw():
    """Factory for raw snapshot listings using the canonical field names."""

    def _make(idx=0, **overrides):
        raw = {
            "listingName": f"Brooks Ghost {15 + idx} Men's Running Shoe",
            "brand": "Brooks",
            "model": f"Ghost {15 + idx}",
            "salePrice": 99.95,
            "originalPrice": 140.0,
            "listingURL": f"https://www.runningwarehouse.com/product/ghost-{idx}.html",
            "imageURL": f"https://img.runningwarehouse.com/ghost-{idx}.jpg",
            "gender": "mens",
            "shoeType": "road",
        }
        raw.update(overrides)
        return raw

    return _make


@pytest.fixture()
def make_deal():
    """Factory for single-price canonical deals."""

    def _make(idx=0, **overrides):
        fields = {
            "listing_name": f"Test Runner {idx}",
            "brand": "Brooks",
            "model": f"Runner {idx}",
            "store": "Running Warehouse",
            "listing_url": f"https://www.runningwarehouse.com/p/{idx}",
            "image_url": f"https://img.example.com/{idx}.jpg",
            "gender": "mens",
            "shoe_type": "road",
            "sale_price": 80.0,
            "original_price": 100.0,
            "discount_percent": 20,
        }
        fields.update(overrides)
        return CanonicalDeal(**fields)

    return _make
