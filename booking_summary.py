"""Print a summary of a meeting-booking export and save the stats files.

Usage: python booking_summary.py [bookings.json|bookings.csv] [--output DIR]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from booking_stats import (
    compute_booking_stats,
    load_bookings,
    print_summary_report,
    save_stats_files,
)

logger = logging.getLogger(__name__)


def main(path: str = "bookings.json", output_dir: str = "booking_analytics") -> None:
    """Load the export at *path*, report its stats and write them to *output_dir*.

    Exits with status 1 if the export is missing or unreadable.
    """
    try:
        bookings = load_bookings(path)
    except FileNotFoundError:
        logger.error("Booking export not found: %s", path)
        sys.exit(1)
    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON in %s: %s", path, exc)
        sys.exit(1)
    except ValueError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    stats = compute_booking_stats(bookings)
    save_stats_files(stats, output_dir)
    print_summary_report(stats)
    print(f"\nStats have been saved to the '{output_dir}' directory:")
    print("1. booking_stats.json - Full statistics snapshot")
    print("2. top_departments.csv - Departments ranked by bookings")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("path", nargs="?", default="bookings.json",
                        help="Booking export (.json or .csv)")
    parser.add_argument("--output", default="booking_analytics",
                        help="Directory for the stats files")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log skipped bookings")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    main(args.path, args.output)
