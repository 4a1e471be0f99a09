"""
Strict deserialization of GuardDuty finding payloads into Finding objects.

Payloads come either from EventBridge (camelCase keys, e.g. "accountId") or from the
GuardDuty API (PascalCase keys, e.g. "AccountId"); the pydantic input models below
accept both spellings for every field. Mandatory fields are never defaulted: a missing
or mistyped one raises DeserializationError naming the field. Extra fields are ignored.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from pydantic import (
    AliasChoices,
    AliasGenerator,
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel, to_pascal

from models import (
    AccessKeyResource,
    Finding,
    GenericResource,
    InstanceResource,
    KubernetesResource,
    Resource,
    S3BucketResource,
    TypeTaxonomy,
)
from notifier.errors import DeserializationError
from notifier.taxonomy import classify

logger = logging.getLogger(__name__)


def lookup(mapping: Mapping[str, Any], name: str, default: Any = None) -> Any:
    """
    Return mapping[name], trying the camelCase then PascalCase spelling.
    """
    for key in (to_camel(name), to_pascal(name)):
        if key in mapping:
            return mapping[key]
    return default


class GuardDutyPayload(BaseModel):
    """Base for input models: camelCase or PascalCase keys, extras ignored."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        alias_generator=AliasGenerator(
            validation_alias=lambda name: AliasChoices(to_camel(name), to_pascal(name)),
        ),
    )


# --- Finding --------------------------------------------------------------

class FindingInput(GuardDutyPayload):
    id: StrictStr
    type: StrictStr
    severity: StrictFloat
    title: StrictStr
    description: StrictStr
    account_id: StrictStr
    region: StrictStr
    resource: Dict[str, Any]
    arn: Optional[StrictStr] = None
    partition: Optional[StrictStr] = None
    created_at: Optional[AwareDatetime] = None
    updated_at: Optional[AwareDatetime] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _severity_not_bool(cls, value: Any) -> Any:
        # bool is an int subclass; True is not a severity
        if isinstance(value, bool):
            raise ValueError("expected number, got bool")
        return value

    @field_validator("arn", "partition", "created_at", "updated_at", mode="wrap")
    @classmethod
    def _drop_malformed_metadata(cls, value: Any, handler, info: ValidationInfo) -> Any:
        try:
            return handler(value)
        except ValidationError:
            logger.warning("Ignoring malformed optional field %s: %r", info.field_name, value)
            return None


class ServiceInput(GuardDutyPayload):
    event_first_seen: AwareDatetime
    event_last_seen: AwareDatetime
    count: StrictInt = Field(ge=1)
    archived: Optional[StrictBool] = None

    @field_validator("event_first_seen", "event_last_seen", mode="before")
    @classmethod
    def _timestamp_text(cls, value: Any) -> Any:
        # ISO-8601 strings or datetimes only; epoch numbers are not GuardDuty timestamps
        if not isinstance(value, (str, datetime)):
            raise ValueError(f"expected timestamp string, got {type(value).__name__}")
        return value

    @field_validator("event_last_seen")
    @classmethod
    def _not_before_first_seen(cls, value: datetime, info: ValidationInfo) -> datetime:
        first_seen = info.data.get("event_first_seen")
        if first_seen is not None and value < first_seen:
            raise ValueError(f"{value.isoformat()} is before eventFirstSeen {first_seen.isoformat()}")
        return value

    @field_validator("archived", mode="wrap")
    @classmethod
    def _drop_malformed_archived(cls, value: Any, handler) -> Any:
        try:
            return handler(value)
        except ValidationError:
            return None


# --- Resource variants ----------------------------------------------------

class _Tag(GuardDutyPayload):
    key: str = ""
    value: str = ""


class _InstanceDetails(GuardDutyPayload):
    instance_id: str = Field(min_length=1)
    instance_type: str = ""
    availability_zone: str = ""
    image_id: str = ""
    tags: List[_Tag] = []


class InstanceResourceInput(GuardDutyPayload):
    instance_details: _InstanceDetails

    def to_resource(self) -> Resource:
        d = self.instance_details
        return InstanceResource(
            instance_id=d.instance_id,
            instance_type=d.instance_type,
            availability_zone=d.availability_zone,
            image_id=d.image_id,
            tags=tuple((t.key, t.value) for t in d.tags),
        )


class _AccessKeyDetails(GuardDutyPayload):
    user_name: str = Field(min_length=1)
    user_type: str = ""
    access_key_id: str = ""
    principal_id: str = ""


class AccessKeyResourceInput(GuardDutyPayload):
    access_key_details: _AccessKeyDetails

    def to_resource(self) -> Resource:
        d = self.access_key_details
        return AccessKeyResource(
            user_name=d.user_name,
            user_type=d.user_type,
            access_key_id=d.access_key_id,
            principal_id=d.principal_id,
        )


class _EksClusterDetails(GuardDutyPayload):
    name: str = Field(min_length=1)


class _KubernetesWorkloadDetails(GuardDutyPayload):
    name: str = ""
    namespace: str = ""
    type: str = ""


class _KubernetesUserDetails(GuardDutyPayload):
    username: str = ""


class _KubernetesDetails(GuardDutyPayload):
    kubernetes_workload_details: _KubernetesWorkloadDetails = _KubernetesWorkloadDetails()
    kubernetes_user_details: _KubernetesUserDetails = _KubernetesUserDetails()


class KubernetesResourceInput(GuardDutyPayload):
    eks_cluster_details: _EksClusterDetails
    kubernetes_details: _KubernetesDetails = _KubernetesDetails()

    def to_resource(self) -> Resource:
        workload = self.kubernetes_details.kubernetes_workload_details
        return KubernetesResource(
            cluster_name=self.eks_cluster_details.name,
            workload_name=workload.name,
            workload_namespace=workload.namespace,
            workload_type=workload.type,
            username=self.kubernetes_details.kubernetes_user_details.username,
        )


class _S3BucketDetail(GuardDutyPayload):
    name: str = Field(min_length=1)


class S3BucketResourceInput(GuardDutyPayload):
    s3_bucket_details: List[_S3BucketDetail] = Field(min_length=1)

    def to_resource(self) -> Resource:
        return S3BucketResource(bucket_names=tuple(b.name for b in self.s3_bucket_details))


RESOURCE_MODELS: Dict[str, Type[GuardDutyPayload]] = {
    "EC2": InstanceResourceInput,
    "IAMUser": AccessKeyResourceInput,
    "Kubernetes": KubernetesResourceInput,
    "S3": S3BucketResourceInput,
}


def flatten(value: Any, prefix: str = "") -> Dict[str, str]:
    """
    Flatten nested mappings and lists into dotted keys with string values.

    Empty values (None, "", {}, []) are dropped.
    """
    flat: Dict[str, str] = {}
    if isinstance(value, Mapping):
        for k, v in value.items():
            flat.update(flatten(v, f"{prefix}.{k}" if prefix else str(k)))
    elif isinstance(value, (list, tuple)):
        for i, v in enumerate(value):
            flat.update(flatten(v, f"{prefix}[{i}]"))
    elif value is not None and value != "":
        flat[prefix] = str(value)
    return flat


def parse_resource(resource: Mapping[str, Any], taxonomy: TypeTaxonomy) -> Resource:
    """
    Build the resource variant for the finding's namespace, or a GenericResource.
    """
    model = RESOURCE_MODELS.get(taxonomy.resource_namespace)
    if model is not None:
        try:
            return model.model_validate(resource).to_resource()
        except ValidationError:
            logger.warning(
                "Resource for %s finding lacks the expected details; rendering generically",
                taxonomy.resource_namespace,
            )
    resource_type = lookup(resource, "resourceType", "")
    details = {
        k: v for k, v in flatten(resource).items()
        if k not in ("resourceType", "ResourceType")
    }
    return GenericResource(
        resource_type=resource_type if isinstance(resource_type, str) else "",
        details=details,
        namespace=taxonomy.resource_namespace,
    )


# --- Entry point ----------------------------------------------------------

def _field_path(loc, prefix: str = "") -> Optional[str]:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    if not path:
        return prefix.rstrip(".") or None
    return prefix + path


def _validate(model: Type[BaseModel], data: Any, prefix: str = "") -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        reason = "missing mandatory field" if error["type"] == "missing" else error["msg"]
        raise DeserializationError(reason, field=_field_path(error["loc"], prefix)) from e


def _decode(payload: Union[Mapping[str, Any], str, bytes, None]) -> Mapping[str, Any]:
    if payload is None:
        raise DeserializationError("empty payload")
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DeserializationError("unparseable payload: not valid UTF-8") from e
    if isinstance(payload, str):
        if not payload.strip():
            raise DeserializationError("empty payload")
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise DeserializationError(f"unparseable payload: {e.msg} (line {e.lineno} column {e.colno})") from e
    if not isinstance(payload, Mapping):
        raise DeserializationError(f"expected a finding object, got {type(payload).__name__}")
    if not payload:
        raise DeserializationError("empty payload")
    return payload


def deserialize_finding(payload: Union[Mapping[str, Any], str, bytes, None]) -> Finding:
    """
    Validate a raw finding payload and return a classified Finding.

    `eventFirstSeen`, `eventLastSeen` and `count` are read from the "service" block
    when the payload has one (GuardDuty layout), otherwise from the top level.
    Malformed optional metadata (arn, partition, createdAt, updatedAt, archived) is
    dropped with a warning rather than failing the finding.

    Raises DeserializationError on any structural problem.
    """
    data = _decode(payload)

    finding = _validate(FindingInput, data)
    service_data = lookup(data, "service")
    if service_data is not None:
        service = _validate(ServiceInput, service_data, prefix="service.")
    else:
        service = _validate(ServiceInput, data)

    taxonomy = classify(finding.type)
    return Finding(
        id=finding.id,
        type=finding.type,
        severity=finding.severity,
        title=finding.title,
        description=finding.description,
        account_id=finding.account_id,
        region=finding.region,
        resource=parse_resource(finding.resource, taxonomy),
        first_seen=service.event_first_seen,
        last_seen=service.event_last_seen,
        count=service.count,
        taxonomy=taxonomy,
        arn=finding.arn,
        partition=finding.partition,
        created_at=finding.created_at,
        updated_at=finding.updated_at,
        archived=service.archived,
    )
