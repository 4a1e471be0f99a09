"""
Unwrapping of the envelopes GuardDuty findings arrive in.

Supported shapes, outermost first:
- SNS-triggered Lambda event: {"Records": [{"Sns": {"Message": "<json string>"}}]}
- EventBridge event: {"detail-type": "GuardDuty Finding", "detail": {...}}
- GetFindings response or export: {"Findings": [...]} / {"findings": [...]}
- a JSON list of any of the above, or a bare finding
"""

import json
from typing import Any, List, Mapping

from notifier.errors import DeserializationError


def _is_lambda_sns_event(obj: Mapping[str, Any]) -> bool:
    return isinstance(obj.get("Records"), list)


def sns_messages(event: Mapping[str, Any]) -> List[Any]:
    """
    Decode the JSON message string carried by every SNS record of a Lambda event.
    """
    records = event.get("Records")
    if not isinstance(records, list) or not records:
        raise DeserializationError("event has no SNS records", field="Records")
    messages = []
    for i, record in enumerate(records):
        sns = record.get("Sns") if isinstance(record, Mapping) else None
        message = sns.get("Message") if isinstance(sns, Mapping) else None
        field = f"Records[{i}].Sns.Message"
        if not isinstance(message, str) or not message.strip():
            raise DeserializationError("missing SNS message", field=field)
        try:
            messages.append(json.loads(message))
        except json.JSONDecodeError as e:
            raise DeserializationError(f"unparseable payload: {e.msg}", field=field) from e
    return messages


def findings_from_event(obj: Any) -> List[Mapping[str, Any]]:
    """
    Return the raw finding payloads wrapped in `obj`, in order.

    An event that unwraps to no findings at all is rejected as an empty payload.
    The payloads themselves are not validated here; see deserialize_finding.
    """
    payloads = _unwrap(obj)
    if not payloads:
        raise DeserializationError("empty payload")
    return payloads


def _unwrap(obj: Any) -> List[Mapping[str, Any]]:
    if isinstance(obj, list):
        payloads: List[Mapping[str, Any]] = []
        for item in obj:
            payloads.extend(_unwrap(item))
        return payloads
    if not isinstance(obj, Mapping) or not obj:
        raise DeserializationError("empty payload")
    if _is_lambda_sns_event(obj):
        return _unwrap(sns_messages(obj))
    if "detail" in obj:
        detail = obj["detail"]
        if not isinstance(detail, Mapping):
            raise DeserializationError("expected object", field="detail")
        return [detail]
    for key in ("Findings", "findings"):
        if key in obj:
            findings = obj[key]
            if not isinstance(findings, list):
                raise DeserializationError("expected list", field=key)
            return list(findings)
    return [obj]
