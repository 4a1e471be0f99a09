"""
Live GuardDuty access.

- Pulls raw finding dicts (PascalCase, as returned by GetFindings) for rendering.
- Functions take a boto3 GuardDuty client; callers handle ClientError if credentials
  or permissions are missing.
"""

import logging
from typing import Any, Dict, List, Optional

from config import GET_FINDINGS_BATCH_SIZE

logger = logging.getLogger(__name__)


def list_detector_ids(client) -> List[str]:
    """
    Return the ids of every detector in the client's region.
    """
    ids: List[str] = []
    for page in client.get_paginator("list_detectors").paginate():
        ids.extend(page.get("DetectorIds", []))
    return ids


def finding_criteria(min_severity: Optional[float] = None, include_archived: bool = False) -> Dict[str, Any]:
    """
    Server-side filter. GuardDuty compares severity as an integer, so the bound is
    floored here and the exact threshold is applied by fetch_findings_live.
    """
    criterion: Dict[str, Any] = {}
    if not include_archived:
        criterion["service.archived"] = {"Equals": ["false"]}
    if min_severity is not None:
        criterion["severity"] = {"GreaterThanOrEqual": int(min_severity)}
    return {"Criterion": criterion}


def list_finding_ids(client, detector_id: str, min_severity: Optional[float] = None,
                     include_archived: bool = False) -> List[str]:
    ids: List[str] = []
    paginator = client.get_paginator("list_findings")
    pages = paginator.paginate(
        DetectorId=detector_id,
        FindingCriteria=finding_criteria(min_severity, include_archived),
    )
    for page in pages:
        ids.extend(page.get("FindingIds", []))
    return ids


def get_findings(client, detector_id: str, finding_ids: List[str]) -> List[Dict[str, Any]]:
    """
    Fetch full findings in batches of GET_FINDINGS_BATCH_SIZE, preserving id order.
    """
    findings: List[Dict[str, Any]] = []
    for start in range(0, len(finding_ids), GET_FINDINGS_BATCH_SIZE):
        batch = finding_ids[start:start + GET_FINDINGS_BATCH_SIZE]
        resp = client.get_findings(DetectorId=detector_id, FindingIds=batch)
        findings.extend(resp.get("Findings", []))
    return findings


def _severity(finding: Dict[str, Any]) -> float:
    value = finding.get("Severity", finding.get("severity", 0.0))
    return value if isinstance(value, (int, float)) and not isinstance(value, bool) else 0.0


def fetch_findings_live(client, min_severity: Optional[float] = None,
                        include_archived: bool = False) -> List[Dict[str, Any]]:
    """
    High-level live fetch: every detector, every matching finding.
    """
    findings: List[Dict[str, Any]] = []
    detector_ids = list_detector_ids(client)
    if not detector_ids:
        logger.warning("No GuardDuty detectors found; is GuardDuty enabled in this region?")
    for detector_id in detector_ids:
        ids = list_finding_ids(client, detector_id, min_severity, include_archived)
        logger.info("Detector %s: %d finding(s)", detector_id, len(ids))
        findings.extend(get_findings(client, detector_id, ids))
    if min_severity is not None:
        findings = [f for f in findings if _severity(f) >= min_severity]
    return findings
