# usagewatch/cron/ingest_activity_report.py

"""
Reporting-process entry point.
Reads a JSON document of activity reports and feeds it to the extension:

    {"reports": [{"context": "App Usage",
                  "segments": [{"start_time": "2025-07-02T10:00:00",
                                "end_time": "2025-07-02T10:05:00",
                                "per_app_duration": {"com.burbn.instagram": 300}}]}]}
"""

import argparse
import json
import logging
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

from usagewatch.schemas.usage import ActivityReportPayload

logger = logging.getLogger(__name__)

TRIGGERS = ("interval-start", "interval-end", "threshold")


def load_reports(path):
    with open(path, "r", encoding="utf-8") as f:
        document = json.load(f)
    return [ActivityReportPayload.model_validate(r) for r in document.get("reports", [])]


def ingest(reports, trigger="interval-end", event=None, store=None):
    from usagewatch.database import SharedBase, shared_engine
    from usagewatch.reporting.extension import ActivityReportExtension
    from usagewatch.services.shared_state import AggregatorStateHandle, SharedStateStore

    if store is None:
        SharedBase.metadata.create_all(bind=shared_engine)
        store = SharedStateStore()

    extension = ActivityReportExtension(AggregatorStateHandle(store))

    if trigger == "threshold":
        segments = [segment for report in reports for segment in report.segments]
        return extension.event_did_reach_threshold(event, iter(segments))

    by_context = {}
    for report in reports:
        by_context.setdefault(report.context, []).extend(report.segments)
    # each context's segments are handed over as a one-shot stream
    streams = {context: iter(segments) for context, segments in by_context.items()}

    if trigger == "interval-start":
        extension.interval_did_start(streams)
    else:
        extension.interval_did_end(streams)
    return True


def main(argv=None):
    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Ingest device activity reports into the shared store")
    parser.add_argument("path", help="JSON file with activity reports")
    parser.add_argument("--trigger", choices=TRIGGERS, default="interval-end")
    parser.add_argument("--event", default=None, help="Threshold event name (with --trigger threshold)")
    args = parser.parse_args(argv)

    if args.trigger == "threshold" and not args.event:
        parser.error("--event is required with --trigger threshold")

    try:
        reports = load_reports(args.path)
    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"Could not read activity reports from {args.path}: {e}")
        return 1

    ingest(reports, trigger=args.trigger, event=args.event)
    return 0


if __name__ == "__main__":
    sys.exit(main())
