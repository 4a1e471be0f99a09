"""Payload -> Finding -> presentation -> OutboundMessage."""

from typing import Any, List, Mapping, Optional, Sequence, Tuple

from models import OutboundMessage
from notifier.deserialize import deserialize_finding
from notifier.envelope import findings_from_event
from notifier.presentation import present
from notifier.render import render


def build_message(payload: Any, bands: Optional[Sequence[Tuple[float, str]]] = None) -> OutboundMessage:
    """
    Render one finding payload. Raises DeserializationError for unusable payloads.
    """
    finding = deserialize_finding(payload)
    return render(finding, present(finding.severity, finding.taxonomy, bands))


def build_messages(event: Any, bands: Optional[Sequence[Tuple[float, str]]] = None) -> List[OutboundMessage]:
    """
    Render every finding in an event. All payloads are validated before any message
    is returned, so one bad finding fails the whole batch.
    """
    payloads: List[Mapping[str, Any]] = findings_from_event(event)
    return [build_message(p, bands) for p in payloads]
