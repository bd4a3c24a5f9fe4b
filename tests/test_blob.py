import io
import json

import pytest
from botocore.exceptions import ClientError

from shoedeals.utils import blob


class FakeS3:
    def __init__(self):
        self.objects = {}
        self.puts = []

    def put_object(self, **kwargs):
        self.puts.append(kwargs)
        self.objects[(kwargs["Bucket"], kwargs["Key"])] = kwargs["Body"]

    def get_object(self, Bucket, Key):
        try:
            return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}
        except KeyError:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject") from None


def test_local_store_replaces_whole_object(blob_store):
    blob_store.put_json("deals.json", {"deals": [1, 2, 3]})
    location = blob_store.put_json("deals.json", {"deals": []})
    assert blob_store.get_json("deals.json") == {"deals": []}
    assert location.endswith("deals.json")
    assert not list(blob_store.root.glob("*.tmp"))


def test_local_store_missing_key(blob_store):
    with pytest.raises(blob.BlobStoreError):
        blob_store.get_json("scraper-data.json")


def test_local_store_corrupt_json(blob_store):
    blob_store.root.mkdir(parents=True)
    (blob_store.root / "scraper-data.json").write_text("{not json")
    with pytest.raises(blob.BlobStoreError):
        blob_store.get_json("scraper-data.json")


def test_s3_store_round_trip():
    fake = FakeS3()
    store = blob.S3BlobStore("deals-bucket", prefix="/prod/", client=fake)
    location = store.put_json("deals.json", {"totalDeals": 1})
    assert location == "s3://deals-bucket/prod/deals.json"
    assert fake.puts[0]["CacheControl"] == "no-store, max-age=0"
    assert json.loads(fake.puts[0]["Body"]) == {"totalDeals": 1}
    assert store.get_json("deals.json") == {"totalDeals": 1}
    with pytest.raises(blob.BlobStoreError):
        store.get_json("missing.json")


def test_create_blob_store_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("BLOB_PROVIDER", "local")
    monkeypatch.setenv("BLOB_LOCAL_DIR", str(tmp_path))
    store = blob.create_blob_store()
    assert isinstance(store, blob.LocalBlobStore)
    assert store.root == tmp_path

    monkeypatch.setenv("BLOB_PROVIDER", "s3")
    monkeypatch.delenv("AWS_S3_BUCKET", raising=False)
    with pytest.raises(blob.BlobStoreError):
        blob.create_blob_store()
