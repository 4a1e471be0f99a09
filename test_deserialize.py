# tests/test_deserialize.py
"""
Unit tests for strict finding deserialization.
- Valid payloads (camelCase and PascalCase) round-trip into Finding unchanged.
- Every missing or mistyped mandatory field raises DeserializationError naming it.
"""
import copy
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from models import (
    AccessKeyResource,
    GenericResource,
    InstanceResource,
    KubernetesResource,
    S3BucketResource,
)
from notifier.deserialize import deserialize_finding, flatten
from notifier.errors import DeserializationError
from utils import load_json_file

SAMPLES = Path(__file__).parent / "samples"


def kubernetes_detail():
    return load_json_file(str(SAMPLES / "kubernetes_privileged_container.json"))["detail"]


def test_kubernetes_finding_round_trips():
    payload = kubernetes_detail()
    f = deserialize_finding(payload)
    assert f.id == payload["id"]
    assert f.type == "PrivilegeEscalation:Kubernetes/PrivilegedContainer"
    assert f.severity == 8.0
    assert f.title == payload["title"]
    assert f.description == payload["description"]
    assert f.account_id == "123456789012"
    assert f.region == "eu-west-2"
    assert f.count == 2
    assert f.first_seen == datetime(2022, 3, 18, 19, 21, 28, tzinfo=timezone.utc)
    assert f.last_seen == datetime(2022, 3, 18, 19, 22, 41, tzinfo=timezone.utc)
    assert f.arn == payload["arn"]
    assert f.partition == "aws"
    assert f.archived is False
    assert f.taxonomy.recognized
    assert f.resource == KubernetesResource(
        cluster_name="prod-cluster",
        workload_name="debug-shell",
        workload_namespace="default",
        workload_type="pods",
        username="system:serviceaccount:ci:deployer",
    )


def test_iam_finding_parses_access_key():
    f = deserialize_finding(load_json_file(str(SAMPLES / "iam_anomalous_behavior.json")))
    assert isinstance(f.resource, AccessKeyResource)
    assert f.resource.user_name == "ci-bot"
    assert f.resource.access_key_id == "ASIAEXAMPLEKEY123456"


def test_pascal_case_api_payload():
    payload = {
        "Id": "abc",
        "Type": "UnauthorizedAccess:EC2/SSHBruteForce",
        "Severity": 2,
        "Title": "SSH brute force",
        "Description": "",
        "AccountId": "111122223333",
        "Region": "us-west-2",
        "Resource": {
            "ResourceType": "Instance",
            "InstanceDetails": {
                "InstanceId": "i-123",
                "InstanceType": "t2.micro",
                "Tags": [{"Key": "Name", "Value": "bastion"}],
            },
        },
        "Service": {
            "EventFirstSeen": "2024-02-01T10:00:00Z",
            "EventLastSeen": "2024-02-01T10:00:00Z",
            "Count": 1,
        },
    }
    f = deserialize_finding(payload)
    assert f.description == ""
    assert f.resource == InstanceResource(
        instance_id="i-123", instance_type="t2.micro", tags=(("Name", "bastion"),)
    )


def test_json_string_and_bytes_payloads():
    text = json.dumps(kubernetes_detail())
    assert deserialize_finding(text).id == deserialize_finding(text.encode("utf-8")).id


def test_flat_layout_without_service_block():
    payload = kubernetes_detail()
    service = payload.pop("service")
    payload.update(
        eventFirstSeen=service["eventFirstSeen"],
        eventLastSeen=service["eventLastSeen"],
        count=service["count"],
    )
    assert deserialize_finding(payload).count == 2


def test_extra_fields_are_ignored():
    payload = kubernetes_detail()
    payload["somethingNew"] = {"nested": True}
    assert deserialize_finding(payload).id == payload["id"]


@pytest.mark.parametrize("field", [
    "id", "type", "severity", "title", "description", "accountId", "region", "resource",
])
def test_missing_top_level_field_is_named(field):
    payload = kubernetes_detail()
    del payload[field]
    with pytest.raises(DeserializationError) as exc:
        deserialize_finding(payload)
    assert exc.value.field == field


@pytest.mark.parametrize("field", ["eventFirstSeen", "eventLastSeen", "count"])
def test_missing_service_field_is_named(field):
    payload = kubernetes_detail()
    del payload["service"][field]
    with pytest.raises(DeserializationError) as exc:
        deserialize_finding(payload)
    assert exc.value.field == f"service.{field}"


@pytest.mark.parametrize("field, value", [
    ("severity", "8"),
    ("severity", True),
    ("id", 123),
    ("title", None),
    ("accountId", 123456789012),
    ("resource", "EKSCluster"),
    ("service", []),
])
def test_wrong_primitive_type_is_rejected(field, value):
    payload = kubernetes_detail()
    payload[field] = value
    with pytest.raises(DeserializationError) as exc:
        deserialize_finding(payload)
    assert exc.value.field == field


@pytest.mark.parametrize("count", [0, -3, 1.5, "2", True])
def test_invalid_count(count):
    payload = kubernetes_detail()
    payload["service"]["count"] = count
    with pytest.raises(DeserializationError) as exc:
        deserialize_finding(payload)
    assert exc.value.field == "service.count"


def test_invalid_timestamp():
    payload = kubernetes_detail()
    payload["service"]["eventFirstSeen"] = "yesterday"
    with pytest.raises(DeserializationError) as exc:
        deserialize_finding(payload)
    assert exc.value.field == "service.eventFirstSeen"


def test_last_seen_before_first_seen():
    payload = kubernetes_detail()
    payload["service"]["eventLastSeen"] = "2022-03-18T19:00:00.000Z"
    with pytest.raises(DeserializationError) as exc:
        deserialize_finding(payload)
    assert exc.value.field == "service.eventLastSeen"


@pytest.mark.parametrize("payload", [None, {}, "", "   ", b""])
def test_empty_payload(payload):
    with pytest.raises(DeserializationError) as exc:
        deserialize_finding(payload)
    assert exc.value.reason == "empty payload"
    assert exc.value.field is None


def test_unparseable_payload():
    with pytest.raises(DeserializationError) as exc:
        deserialize_finding("{not json")
    assert exc.value.reason.startswith("unparseable payload")


def test_non_object_payload():
    with pytest.raises(DeserializationError):
        deserialize_finding([kubernetes_detail()])


def test_unknown_namespace_gets_generic_resource():
    f = deserialize_finding(load_json_file(str(SAMPLES / "unknown_category.json")))
    assert not f.taxonomy.recognized
    assert isinstance(f.resource, GenericResource)
    assert f.resource.resource_type == "BedrockModel"
    assert f.resource.namespace == "Bedrock"
    assert f.resource.details["bedrockDetails.modelId"] == "anthropic.example-model"
    assert "bedrockDetails.invocations[0].caller" in f.resource.details


def test_known_namespace_without_details_falls_back_to_generic():
    payload = kubernetes_detail()
    payload["resource"] = {"resourceType": "EKSCluster", "somethingElse": "x"}
    f = deserialize_finding(payload)
    assert isinstance(f.resource, GenericResource)
    assert f.resource.details == {"somethingElse": "x"}


def test_s3_buckets():
    payload = copy.deepcopy(kubernetes_detail())
    payload["type"] = "Policy:S3/BucketBlockPublicAccessDisabled"
    payload["resource"] = {
        "resourceType": "S3Bucket",
        "s3BucketDetails": [{"name": "logs"}, {"name": "assets"}],
    }
    f = deserialize_finding(payload)
    assert f.resource == S3BucketResource(bucket_names=("logs", "assets"))


def test_flatten_drops_empty_values():
    assert flatten({"a": {"b": 1, "c": None}, "d": ["x", ""], "e": {}}) == {"a.b": "1", "d[0]": "x"}


def test_malformed_optional_timestamps_are_dropped(caplog):
    payload = kubernetes_detail()
    payload["updatedAt"] = "not-a-date"
    payload["createdAt"] = "2022-13-45T00:00:00Z"
    f = deserialize_finding(payload)
    assert f.updated_at is None
    assert f.created_at is None
    assert "updated_at" in caplog.text


def test_naive_event_timestamp_is_rejected():
    payload = kubernetes_detail()
    payload["service"]["eventFirstSeen"] = "2022-03-18T19:21:28"
    with pytest.raises(DeserializationError) as exc:
        deserialize_finding(payload)
    assert exc.value.field == "service.eventFirstSeen"
