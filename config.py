# config.py
"""
Central configuration and tunable constants.

- Severity bands, colours and mentions are centralized for easy tuning.
- The known finding categories table is the main extension point: add a
  threat purpose or resource namespace here when GuardDuty ships new types.
- Environment variables are only read by the entrypoints (main.py, handler).
"""

import os
from typing import Dict, FrozenSet, List, Optional, Tuple

# Environment variable names
WEBHOOK_URL_ENV = "WEBHOOK_URL"
LOG_LEVEL_ENV = "LOG_LEVEL"
SEVERITY_THRESHOLDS_ENV = "SEVERITY_THRESHOLDS"

DEFAULT_LOG_LEVEL = "INFO"

# Same region model as before: boto3 needs one, credentials come from the environment.
DEFAULT_AWS_REGION = "eu-west-2"

# Severity scale: 0 (informational) to 10 (critical).
# Each entry is (inclusive lower bound, tier name); the first band starts at 0.
SEVERITY_BANDS: List[Tuple[float, str]] = [
    (0.0, "informational"),
    (1.0, "low"),
    (4.0, "medium"),
    (7.0, "high"),
    (8.5, "critical"),
]
SEVERITY_MIN = 0.0
SEVERITY_MAX = 10.0

TIER_COLOURS: Dict[str, str] = {
    "critical": "#DF4661",  # red
    "high": "#DB6B30",  # orange
    "medium": "#FED141",  # yellow
    "low": "#00A3E0",  # blue
    "informational": "#BABABA",  # silver
}

TIER_MENTIONS: Dict[str, str] = {
    "critical": "@channel",
    "high": "@channel",
    "medium": "@here",
    "low": "",
    "informational": "",
}

TIER_ICONS: Dict[str, str] = {
    "critical": ":rotating_light:",
    "high": ":red_circle:",
    "medium": ":large_orange_circle:",
    "low": ":large_blue_circle:",
    "informational": ":information_source:",
}

PURPOSE_ICONS: Dict[str, str] = {
    "Backdoor": ":door:",
    "CredentialAccess": ":key:",
    "CryptoCurrency": ":moneybag:",
    "Exfiltration": ":outbox_tray:",
    "Impact": ":boom:",
    "PrivilegeEscalation": ":arrow_double_up:",
    "Recon": ":mag:",
    "Trojan": ":space_invader:",
    "UnauthorizedAccess": ":no_entry:",
}

# Known GuardDuty threat purposes and the resource namespaces they are issued for.
KNOWN_FINDING_CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "Backdoor": ("EC2", "Lambda", "Runtime"),
    "Behavior": ("EC2",),
    "CredentialAccess": ("IAMUser", "Kubernetes", "RDS"),
    "CryptoCurrency": ("EC2", "Lambda", "Runtime"),
    "DefenseEvasion": ("EC2", "IAMUser", "Runtime"),
    "Discovery": ("IAMUser", "Kubernetes", "RDS", "Runtime", "S3"),
    "Execution": ("EC2", "ECS", "Kubernetes", "Runtime"),
    "Exfiltration": ("IAMUser", "S3"),
    "Impact": ("EC2", "IAMUser", "Kubernetes", "Runtime", "S3"),
    "InitialAccess": ("IAMUser",),
    "Object": ("S3",),
    "PenTest": ("IAMUser", "S3"),
    "Persistence": ("IAMUser", "Kubernetes", "Runtime"),
    "Policy": ("IAMUser", "Kubernetes", "S3"),
    "PrivilegeEscalation": ("IAMUser", "Kubernetes", "Runtime"),
    "Recon": ("EC2", "IAMUser"),
    "Stealth": ("IAMUser", "S3"),
    "Trojan": ("EC2", "Lambda"),
    "UnauthorizedAccess": ("EC2", "IAMUser", "Lambda", "RDS", "Runtime", "S3"),
}

# Documentation pages per lower-cased resource namespace. Not all are the namespace itself.
DOCS_BASE_URL = "https://docs.aws.amazon.com/guardduty/latest/ug/guardduty_finding-types-"
DOCS_GROUPS: Dict[str, str] = {
    "iamuser": "iam",
    "ec2": "ec2",
    "s3": "s3",
    "kubernetes": "kubernetes",
}

# Slack attachment field values are truncated to this many characters.
MAX_FIELD_LENGTH = 1000
TIMESTAMP_FORMAT = "%a %d %b %Y %H:%M:%S UTC"

FOOTER = "GuardDuty Notifier"
FOOTER_ICON = "https://a.slack-edge.com/80588/img/services/outgoing-webhook_48.png"

WEBHOOK_TIMEOUT_SECONDS = 10.0

# GetFindings accepts at most 50 ids per call.
GET_FINDINGS_BATCH_SIZE = 50


def known_category_pairs(table: Optional[Dict[str, Tuple[str, ...]]] = None) -> FrozenSet[Tuple[str, str]]:
    """
    Flatten a purpose -> namespaces table into a set of (purpose, namespace) pairs.
    """
    table = KNOWN_FINDING_CATEGORIES if table is None else table
    return frozenset(
        (purpose, namespace)
        for purpose, namespaces in table.items()
        for namespace in namespaces
    )


def severity_bands_from_env(environ: Optional[Dict[str, str]] = None) -> List[Tuple[float, str]]:
    """
    Return severity bands, replacing the lower bounds from SEVERITY_THRESHOLDS if set.

    The variable holds four ascending thresholds, e.g. "1,4,7,8.5", which become the
    lower bounds of the low, medium, high and critical bands.
    """
    environ = os.environ if environ is None else environ
    raw = environ.get(SEVERITY_THRESHOLDS_ENV, "").strip()
    if not raw:
        return list(SEVERITY_BANDS)
    try:
        thresholds = [float(part) for part in raw.split(",")]
    except ValueError as e:
        raise ValueError(f"{SEVERITY_THRESHOLDS_ENV} must be comma-separated numbers: {raw!r}") from e
    if len(thresholds) != len(SEVERITY_BANDS) - 1:
        raise ValueError(
            f"{SEVERITY_THRESHOLDS_ENV} needs {len(SEVERITY_BANDS) - 1} thresholds, got {len(thresholds)}"
        )
    if thresholds != sorted(thresholds):
        raise ValueError(f"{SEVERITY_THRESHOLDS_ENV} thresholds must be ascending: {raw!r}")
    tiers = [tier for _, tier in SEVERITY_BANDS]
    return [(SEVERITY_MIN, tiers[0])] + list(zip(thresholds, tiers[1:]))
