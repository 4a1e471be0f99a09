"""
Rendering of a classified Finding into an OutboundMessage.

- Fields are always emitted in FIELD_ORDER.
- Resources are summarized by a formatter per resource namespace; anything without a
  formatter (GenericResource) is dumped as key/value lines so it is never omitted.
- Pure: no I/O. notifier.slack handles delivery.
"""

import logging
from typing import Callable, Dict, List, Optional

from config import (
    DOCS_BASE_URL,
    DOCS_GROUPS,
    FOOTER,
    FOOTER_ICON,
    MAX_FIELD_LENGTH,
    TIMESTAMP_FORMAT,
)
from models import (
    AccessKeyResource,
    Finding,
    GenericResource,
    InstanceResource,
    KubernetesResource,
    MessageField,
    OutboundMessage,
    PresentationAttributes,
    Resource,
    S3BucketResource,
    TypeTaxonomy,
)

logger = logging.getLogger(__name__)

FIELD_ORDER = (
    "Severity",
    "Region",
    "Account",
    "Resource",
    "First Seen",
    "Last Seen",
    "Occurrence Count",
    "Description",
)


def truncate(value: str, limit: int = MAX_FIELD_LENGTH) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 1] + "…"


# --- Resource formatters --------------------------------------------------

def format_instance(resource: InstanceResource) -> str:
    line = f"Instance: {resource.instance_id}"
    if resource.instance_type:
        line += f" ({resource.instance_type})"
    if resource.availability_zone:
        line += f" in {resource.availability_zone}"
    lines = [line]
    if resource.image_id:
        lines.append(f"Image: {resource.image_id}")
    if resource.tags:
        lines.append("Tags: " + ", ".join(f"{k}={v}" for k, v in resource.tags))
    return "\n".join(lines)


def format_access_key(resource: AccessKeyResource) -> str:
    line = f"User: {resource.user_name}"
    if resource.user_type:
        line += f" ({resource.user_type})"
    lines = [line]
    if resource.access_key_id:
        lines.append(f"Access key: {resource.access_key_id}")
    if resource.principal_id:
        lines.append(f"Principal: {resource.principal_id}")
    return "\n".join(lines)


def format_kubernetes(resource: KubernetesResource) -> str:
    lines = [f"EKS cluster: {resource.cluster_name}"]
    if resource.workload_name:
        workload = resource.workload_name
        if resource.workload_namespace:
            workload = f"{resource.workload_namespace}/{workload}"
        if resource.workload_type:
            workload = f"{resource.workload_type} {workload}"
        lines.append(f"Workload: {workload}")
    if resource.username:
        lines.append(f"Kubernetes user: {resource.username}")
    return "\n".join(lines)


def format_s3(resource: S3BucketResource) -> str:
    label = "Bucket" if len(resource.bucket_names) == 1 else "Buckets"
    return f"{label}: " + ", ".join(resource.bucket_names)


def format_generic(resource: GenericResource) -> str:
    lines = []
    if resource.resource_type:
        lines.append(f"Resource type: {resource.resource_type}")
    lines.extend(f"{k}: {v}" for k, v in resource.details.items())
    return "\n".join(lines) or "No resource details"


RESOURCE_FORMATTERS: Dict[str, Callable] = {
    "EC2": format_instance,
    "IAMUser": format_access_key,
    "Kubernetes": format_kubernetes,
    "S3": format_s3,
}


def format_resource(resource: Resource) -> str:
    if isinstance(resource, GenericResource):
        return format_generic(resource)
    formatter = RESOURCE_FORMATTERS.get(resource.namespace)
    if formatter is None:
        return format_generic(GenericResource(resource_type=type(resource).__name__))
    return formatter(resource)


# --- Message --------------------------------------------------------------

def finding_link(taxonomy: TypeTaxonomy) -> Optional[str]:
    """
    Return the GuardDuty documentation URL for a finding type, or None.

    "PrivilegeEscalation:Kubernetes/PrivilegedContainer" links to
    ...finding-types-kubernetes.html#privilegeescalation-kubernetes-privilegedcontainer.
    Namespaces missing from config.DOCS_GROUPS get no link rather than a guessed one.
    """
    if not (taxonomy.threat_purpose and taxonomy.resource_namespace and taxonomy.artifact):
        return None
    group = DOCS_GROUPS.get(taxonomy.resource_namespace.lower())
    if group is None:
        logger.warning("No documentation group for finding namespace %r", taxonomy.resource_namespace)
        return None
    anchor = f"{taxonomy.threat_purpose}-{group}-{taxonomy.artifact}".lower()
    return f"{DOCS_BASE_URL}{group}.html#{anchor}"


def format_timestamp(value) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def build_title(finding: Finding, presentation: PresentationAttributes) -> str:
    summary = finding.title or finding.type
    return (
        f"{presentation.icon_ref} {presentation.display_label}: {summary} "
        f"({finding.account_id} / {finding.region})"
    )


def build_fields(finding: Finding, presentation: PresentationAttributes) -> List[MessageField]:
    values = {
        "Severity": f"{finding.severity:g} ({presentation.color_tier.label})",
        "Region": finding.region,
        "Account": finding.account_id,
        "Resource": format_resource(finding.resource),
        "First Seen": format_timestamp(finding.first_seen),
        "Last Seen": format_timestamp(finding.last_seen),
        "Occurrence Count": str(finding.count),
        "Description": finding.description or "No description provided",
    }
    wide = {"Resource", "Description"}
    return [
        MessageField(name=name, value=truncate(values[name]), inline=name not in wide)
        for name in FIELD_ORDER
    ]


def render(finding: Finding, presentation: PresentationAttributes) -> OutboundMessage:
    """
    Build the notification for a finding. Never raises for a deserialized Finding.
    """
    pretext = f"*Finding in {finding.region} from account {finding.account_id}*"
    if presentation.mention:
        pretext += f" {presentation.mention}"
    return OutboundMessage(
        title=build_title(finding, presentation),
        color=presentation.color,
        fields=tuple(build_fields(finding, presentation)),
        fallback=f"GuardDuty:{finding.type} in {finding.account_id} {finding.region}",
        pretext=pretext,
        footer=FOOTER,
        footer_icon=FOOTER_ICON,
        link=finding_link(finding.taxonomy),
        timestamp=finding.updated_at or finding.last_seen,
    )
