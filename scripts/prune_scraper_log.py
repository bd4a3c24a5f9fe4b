"""Remove scraper records with a given error from the rolling scraper log."""

from __future__ import annotations

import argparse

from dotenv import load_dotenv

DEFAULT_ERROR = "Request failed with status code 404"


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--error", default=DEFAULT_ERROR, help="exact error text to drop")
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    load_dotenv()
    from shoedeals.jobs.merge import SCRAPER_LOG_KEY
    from shoedeals.logic.scraper_log import prune_scraper_log
    from shoedeals.utils.blob import create_blob_store
    from shoedeals.utils.dates import isoformat, now_utc

    store = create_blob_store()
    log, removed = prune_scraper_log(store.get_json(SCRAPER_LOG_KEY), lambda s: s.get("error") == args.error)
    if args.dry_run:
        print(f"Would remove {removed} records")
        return
    log["lastUpdated"] = isoformat(now_utc())
    store.put_json(SCRAPER_LOG_KEY, log)
    print(f"Removed {removed} records")


if __name__ == "__main__":
    main()
