# main.py
"""
CLI entrypoint for the notifier.

- Supports two modes:
  * dummy: read findings from a JSON file (a finding, an EventBridge/SNS event, or a list)
  * aws: pull current findings from GuardDuty using boto3.Session
- Produces JSON, CSV, and HTML previews and prints a colorful summary table.
- With --send, posts every notification to the Slack webhook (WEBHOOK_URL or --webhook-url).
"""

import argparse
import logging
import os
from typing import List

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config import DEFAULT_AWS_REGION, WEBHOOK_URL_ENV, severity_bands_from_env
from models import OutboundMessage
from notifier.errors import NotifierError
from notifier.guardduty import fetch_findings_live
from notifier.pipeline import build_messages
from notifier.slack import SlackWebhook
from utils import configure_logging, load_json_file, save_report, print_summary_and_report_path

logger = logging.getLogger("guardduty_notifier")


def render_dummy(file_path: str) -> List[OutboundMessage]:
    """
    Render notifications from a local JSON file. No AWS access is required.
    """
    logger.info("Running in dummy mode using file: %s", file_path)
    data = load_json_file(file_path)
    return build_messages(data, severity_bands_from_env())


def render_aws(region: str = None, min_severity: float = None) -> List[OutboundMessage]:
    """
    Render notifications for the live findings of every detector in a region.

    Credentials are expected to come from the environment (e.g. aws-vault).
    """
    # Resolve region: CLI -> env -> config default
    region = region or os.environ.get("AWS_REGION") or DEFAULT_AWS_REGION
    logger.info("Running in live AWS mode (region=%s)", region)

    session = boto3.Session(region_name=region)
    client = session.client("guardduty")
    findings = fetch_findings_live(client, min_severity=min_severity)
    if not findings:
        logger.info("No matching findings")
        return []
    return build_messages(findings, severity_bands_from_env())


def send_all(messages: List[OutboundMessage], webhook_url: str) -> None:
    webhook = SlackWebhook(webhook_url)
    for m in messages:
        webhook.send(m)
    logger.info("Sent %d notification(s)", len(messages))


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Render GuardDuty findings as Slack notifications."
    )
    p.add_argument(
        "--mode",
        choices=["dummy", "aws"],
        required=True,
        help="Run mode: dummy (JSON file) or aws (live GuardDuty)",
    )
    p.add_argument(
        "--file",
        help="Path to a JSON finding or event (required for dummy mode)",
    )
    p.add_argument(
        "--region",
        help="AWS region (optional)",
    )
    p.add_argument(
        "--min-severity",
        type=float,
        help="Only fetch findings at or above this severity (aws mode)",
    )
    p.add_argument(
        "--report-dir",
        default="reports",
        help="Directory to save previews (default: reports)",
    )
    p.add_argument(
        "--print-table",
        action="store_true",
        help="Print the full notifications table to stdout",
    )
    p.add_argument(
        "--send",
        action="store_true",
        help="Post notifications to the Slack webhook",
    )
    p.add_argument(
        "--webhook-url",
        help=f"Slack webhook URL (default: ${WEBHOOK_URL_ENV})",
    )
    p.add_argument(
        "--log-level",
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.log_level)

    webhook_url = args.webhook_url or os.environ.get(WEBHOOK_URL_ENV, "")
    if args.send and not webhook_url:
        raise SystemExit(f"--send requires --webhook-url or {WEBHOOK_URL_ENV}")

    try:
        if args.mode == "dummy":
            if not args.file:
                raise SystemExit("dummy mode requires --file path to JSON")
            messages = render_dummy(args.file)
            extra = {"source_file": args.file}
        else:
            messages = render_aws(region=args.region, min_severity=args.min_severity)
            extra = {"region": args.region or os.environ.get("AWS_REGION") or DEFAULT_AWS_REGION}
    except (ClientError, BotoCoreError) as e:
        raise SystemExit(f"AWS API error: {e}")
    except (NotifierError, ValueError, FileNotFoundError) as e:
        raise SystemExit(f"Error: {e}")

    report_paths = save_report(messages, mode=args.mode, extra=extra, out_dir=args.report_dir)
    print_summary_and_report_path(messages, report_paths, print_full_table=args.print_table)

    if args.send:
        try:
            send_all(messages, webhook_url)
        except NotifierError as e:
            raise SystemExit(f"Dispatch failed: {e}")


if __name__ == "__main__":
    main()
