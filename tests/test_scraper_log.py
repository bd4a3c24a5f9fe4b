from shoedeals.ingest.models import FetchResult, SourceDescriptor, SourceMetadata
from shoedeals.logic.scraper_log import build_day_entry, prune_scraper_log, update_scraper_log


def _entry(day, marker="run"):
    return {"dayUTC": day, "generatedAt": f"{day}T09:00:00Z", "scrapers": [{"id": "nike", "ok": True, "note": marker}]}


def test_build_day_entry_reports_each_source():
    ok = SourceMetadata(source_id="nike", store="Nike")
    ok.merge(
        FetchResult.success(
            SourceDescriptor("nike", "Nike", "https://s/nike.json"),
            [{"title": "a"}, {"title": "b"}],
            snapshot_timestamp=None,
            duration_ms=1200,
            via="firecrawl",
        )
    )
    failed = SourceMetadata(source_id="puma", store="PUMA")
    failed.merge(FetchResult.failure(SourceDescriptor("puma", "PUMA", "https://s/puma.json"), "Request failed with status code 404"))

    entry = build_day_entry("2026-10-18", "2026-10-18T12:00:00Z", {"nike": ok, "puma": failed})
    nike, puma = entry["scrapers"]
    assert entry["dayUTC"] == "2026-10-18"
    assert nike == {
        "id": "nike",
        "store": "Nike",
        "ok": True,
        "count": 2,
        "durationMs": 1200,
        "via": "firecrawl",
        "error": None,
        "staleExcluded": False,
        "ageDays": None,
    }
    assert puma["ok"] is False
    assert puma["error"] == "Request failed with status code 404"


def test_same_day_entry_is_replaced():
    previous = {"days": [_entry("2026-10-17"), _entry("2026-10-18", "first")]}
    updated = update_scraper_log(previous, _entry("2026-10-18", "second"), generated_at="now")
    assert [d["dayUTC"] for d in updated["days"]] == ["2026-10-17", "2026-10-18"]
    assert updated["days"][-1]["scrapers"][0]["note"] == "second"
    assert updated["lastUpdated"] == "now"


def test_rerun_on_same_day_is_idempotent():
    previous = {"days": [_entry("2026-10-16")]}
    once = update_scraper_log(previous, _entry("2026-10-18"), generated_at="now")
    twice = update_scraper_log(once, _entry("2026-10-18"), generated_at="now")
    assert once == twice


def test_keeps_thirty_most_recent_days_sorted():
    days = [_entry(f"2026-09-{d:02d}") for d in range(30, 0, -1)]
    updated = update_scraper_log({"days": days}, _entry("2026-10-01"), generated_at="now")
    kept = [d["dayUTC"] for d in updated["days"]]
    assert len(kept) == 30
    assert kept[0] == "2026-09-02"
    assert kept[-1] == "2026-10-01"
    assert kept == sorted(kept)


def test_unreadable_history_starts_fresh():
    for previous in (None, "garbage", {"days": "nope"}, {"other": 1}):
        updated = update_scraper_log(previous, _entry("2026-10-18"), generated_at="now")
        assert [d["dayUTC"] for d in updated["days"]] == ["2026-10-18"]


def test_prune_removes_matching_records():
    log = {
        "days": [
            {"dayUTC": "2026-10-17", "scrapers": [{"id": "a", "error": "Request failed with status code 404"}, {"id": "b"}]},
            {"dayUTC": "2026-10-18", "scrapers": [{"id": "a", "error": "timeout"}]},
        ]
    }
    cleaned, removed = prune_scraper_log(log, lambda s: s.get("error") == "Request failed with status code 404")
    assert removed == 1
    assert [s["id"] for s in cleaned["days"][0]["scrapers"]] == ["b"]
    assert len(cleaned["days"][1]["scrapers"]) == 1
