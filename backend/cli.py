import argparse
import json
import logging
import sys

from models.data_models import LOG_TYPES
from models.errors import LogAnalyzerError
from services.aggregator import DEFAULT_TOP_N, ReportAggregator
from services.pipeline import DEFAULT_WORKERS, ERROR_POLICIES, ERROR_POLICY_BLOCK, LogProcessor
from utils.helpers import configure_logging

logger = logging.getLogger(__name__)


# ---------------- CLI ----------------

def positive_int(value):
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return number


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Server Log Analyzer: parse a log file and print a report summary"
    )
    parser.add_argument("log_file")
    parser.add_argument("--log-type", choices=LOG_TYPES, default="apache")
    parser.add_argument("--workers", type=positive_int, default=DEFAULT_WORKERS)
    parser.add_argument("--top", type=int, default=DEFAULT_TOP_N)
    parser.add_argument("--timeout", type=float, default=None, help="Abort ingestion after N seconds")
    parser.add_argument(
        "--error-policy",
        choices=ERROR_POLICIES,
        default=ERROR_POLICY_BLOCK,
    )
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    parser.add_argument("--log-level", default="WARNING")

    return parser.parse_args(argv)


# ---------------- Output ----------------

def print_summary(summary, stats, errors):
    print("=== Report Summary ===")
    print(f"Total requests:    {summary.total_requests}")
    print(f"Unique IPs:        {summary.unique_ips}")
    print(f"Avg response time: {summary.avg_response_time:.3f}s")
    print(f"Error rate:        {summary.error_rate:.2f}%")

    print("\n=== Top Paths ===")
    for p in summary.top_paths:
        print(f"{p.count:>8}  {p.percentage:6.2f}%  {p.path}")

    print("\n=== Top IPs ===")
    for i in summary.top_ips:
        print(f"{i.count:>8}  {i.percentage:6.2f}%  {i.ip}")

    print("\n=== Status Codes ===")
    for code, count in sorted(summary.status_code_breakdown.items()):
        print(f"{code:>8}  {count}")

    print("\n=== Hourly Traffic ===")
    for h in summary.hourly_traffic:
        print(f"{h.hour:02d}:00  {h.count}")

    print("\n=== Processing ===")
    print(f"Parsed: {stats.total}  Errors: {stats.error_count}")
    for err in errors[:10]:
        print(f"  {err}")


# ---------------- Main ----------------

def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    aggregator = ReportAggregator(top_n=args.top)
    try:
        with LogProcessor(worker_count=args.workers, error_policy=args.error_policy) as processor:
            with open(args.log_file, "rb") as stream:
                result = processor.collect(stream, args.log_type, timeout=args.timeout)
            stats = processor.get_stats()
    except (OSError, LogAnalyzerError) as exc:
        logger.error("Failed to process %s: %s", args.log_file, exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    summary = aggregator.compute_summary(result.entries)

    if args.json:
        print(json.dumps(
            {
                "summary": summary.to_dict(),
                "processing": stats.to_dict(),
                "errors": [err.to_dict() for err in result.errors],
            },
            indent=2,
        ))
    else:
        print_summary(summary, stats, result.errors)

    return 0


if __name__ == "__main__":
    sys.exit(main())
