# models.py
"""
Data models used by the notifier.

- Findings and their classification are frozen dataclasses built once per event.
- The resource sub-structure is a tagged union keyed by GuardDuty resource namespace,
  with GenericResource as the catch-all for namespaces without a dedicated shape.
- OutboundMessage is transport-neutral; notifier.slack turns it into a webhook payload.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class TypeTaxonomy:
    """
    Result of classifying a finding type such as "Backdoor:EC2/C&CActivity.B!DNS".

    Fields:
    - threat_purpose: segment before the first ":" (e.g. "Backdoor")
    - resource_namespace: segment between ":" and the first "/" after it (e.g. "EC2")
    - artifact: everything after that "/" (e.g. "C&CActivity.B!DNS")
    - recognized: True only when the shape is valid and the purpose/namespace pair is known
    - raw: the type string exactly as received
    """
    threat_purpose: str
    resource_namespace: str
    artifact: str
    recognized: bool
    raw: str = ""


@dataclass(frozen=True)
class InstanceResource:
    instance_id: str
    instance_type: str = ""
    availability_zone: str = ""
    image_id: str = ""
    tags: Tuple[Tuple[str, str], ...] = ()
    namespace: str = field(default="EC2", init=False)


@dataclass(frozen=True)
class AccessKeyResource:
    user_name: str
    user_type: str = ""
    access_key_id: str = ""
    principal_id: str = ""
    namespace: str = field(default="IAMUser", init=False)


@dataclass(frozen=True)
class KubernetesResource:
    cluster_name: str
    workload_name: str = ""
    workload_namespace: str = ""
    workload_type: str = ""
    username: str = ""
    namespace: str = field(default="Kubernetes", init=False)


@dataclass(frozen=True)
class S3BucketResource:
    bucket_names: Tuple[str, ...]
    namespace: str = field(default="S3", init=False)


@dataclass(frozen=True)
class GenericResource:
    """Any resource shape without a dedicated model; details are flattened key/values."""
    resource_type: str
    details: Dict[str, str] = field(default_factory=dict)
    namespace: str = ""


Resource = Union[InstanceResource, AccessKeyResource, KubernetesResource, S3BucketResource, GenericResource]


@dataclass(frozen=True)
class Finding:
    """
    A single GuardDuty finding, validated and classified.

    Fields:
    - id: finding id, unique per event
    - type: raw taxonomy string (e.g. "PrivilegeEscalation:Kubernetes/PrivilegedContainer")
    - severity: numeric severity, normally 0-10
    - title / description: human-authored summary, may be empty
    - account_id / region: where the finding was raised
    - resource: one of the Resource variants
    - first_seen / last_seen: timezone-aware event timestamps (last_seen >= first_seen)
    - count: number of occurrences, at least 1
    - taxonomy: classification of `type`
    - arn, partition, created_at, updated_at, archived: provider metadata when present
    """
    id: str
    type: str
    severity: float
    title: str
    description: str
    account_id: str
    region: str
    resource: Resource
    first_seen: datetime
    last_seen: datetime
    count: int
    taxonomy: TypeTaxonomy
    arn: Optional[str] = None
    partition: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    archived: Optional[bool] = None


class ColorTier(Enum):
    INFORMATIONAL = "informational"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class PresentationAttributes:
    color_tier: ColorTier
    color: str
    display_label: str
    icon_ref: str
    mention: str = ""


@dataclass(frozen=True)
class MessageField:
    name: str
    value: str
    inline: bool = True


@dataclass(frozen=True)
class OutboundMessage:
    """
    Rendered notification, independent of the destination's wire format.

    Fields appear in a fixed order so repeated renders of the same finding are identical.
    """
    title: str
    color: str
    fields: Tuple[MessageField, ...]
    fallback: str = ""
    pretext: str = ""
    footer: Optional[str] = None
    footer_icon: Optional[str] = None
    link: Optional[str] = None
    timestamp: Optional[datetime] = None
