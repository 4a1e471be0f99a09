# tests/test_guardduty.py
"""
Tests for the live GuardDuty source.
- Uses moto to mock detector discovery.
- Uses botocore's Stubber for ListFindings/GetFindings, which moto does not serve.
"""
import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber
from moto import mock_aws

import main
from notifier.guardduty import fetch_findings_live, finding_criteria, get_findings, list_detector_ids
from notifier.pipeline import build_messages


@pytest.fixture
def aws_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


def stub_client():
    return boto3.client(
        "guardduty",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def api_finding(finding_id, severity=5.0):
    return {
        "AccountId": "111122223333",
        "Arn": f"arn:aws:guardduty:us-east-1:111122223333:detector/det/finding/{finding_id}",
        "CreatedAt": "2024-03-01T10:00:00.000Z",
        "Id": finding_id,
        "Partition": "aws",
        "Region": "us-east-1",
        "Resource": {
            "ResourceType": "Instance",
            "InstanceDetails": {
                "InstanceId": "i-0123456789abcdef0",
                "InstanceType": "m5.large",
                "AvailabilityZone": "us-east-1b",
                "Tags": [{"Key": "Name", "Value": "worker"}],
            },
        },
        "SchemaVersion": "2.0",
        "Service": {
            "ServiceName": "guardduty",
            "DetectorId": "det",
            "Archived": False,
            "Count": 3,
            "EventFirstSeen": "2024-03-01T09:00:00.000Z",
            "EventLastSeen": "2024-03-01T09:45:00.000Z",
        },
        "Severity": severity,
        "Title": "Unprotected port on EC2 instance is being probed.",
        "Description": "EC2 instance has an unprotected port which is being probed by a known malicious host.",
        "Type": "Recon:EC2/PortProbeUnprotectedPort",
        "UpdatedAt": "2024-03-01T10:05:00.000Z",
    }


@mock_aws
def test_list_detector_ids(aws_credentials):
    client = boto3.client("guardduty", region_name="us-east-1")
    assert list_detector_ids(client) == []
    detector_id = client.create_detector(Enable=True)["DetectorId"]
    assert list_detector_ids(client) == [detector_id]


def test_fetch_and_render_live_findings():
    client = stub_client()
    with Stubber(client) as stubber:
        stubber.add_response("list_detectors", {"DetectorIds": ["det"]})
        stubber.add_response("list_findings", {"FindingIds": ["f1", "f2"]})
        stubber.add_response(
            "get_findings",
            {"Findings": [api_finding("f1"), api_finding("f2", 8.0)]},
            {"DetectorId": "det", "FindingIds": ["f1", "f2"]},
        )
        findings = fetch_findings_live(client, min_severity=4)
        stubber.assert_no_pending_responses()

    messages = build_messages(findings)
    assert messages[0].title.startswith(":mag: Medium Recon: Unprotected port")
    assert messages[1].title.startswith(":mag: High Recon: ")
    assert "Instance: i-0123456789abcdef0 (m5.large) in us-east-1b" in messages[0].fields[3].value


def test_get_findings_batches_of_fifty():
    client = stub_client()
    ids = [f"f{i}" for i in range(120)]
    with Stubber(client) as stubber:
        for start in (0, 50, 100):
            stubber.add_response(
                "get_findings",
                {"Findings": []},
                {"DetectorId": "det", "FindingIds": ids[start:start + 50]},
            )
        assert get_findings(client, "det", ids) == []
        stubber.assert_no_pending_responses()


def test_client_error_propagates():
    client = stub_client()
    with Stubber(client) as stubber:
        stubber.add_client_error("list_detectors", service_error_code="AccessDeniedException", http_status_code=403)
        with pytest.raises(ClientError):
            fetch_findings_live(client)


def test_finding_criteria():
    assert finding_criteria() == {"Criterion": {"service.archived": {"Equals": ["false"]}}}
    assert finding_criteria(7, include_archived=True) == {"Criterion": {"severity": {"GreaterThanOrEqual": 7}}}


def test_fractional_min_severity_is_applied_exactly():
    client = stub_client()
    with Stubber(client) as stubber:
        stubber.add_response("list_detectors", {"DetectorIds": ["det"]})
        stubber.add_response(
            "list_findings",
            {"FindingIds": ["f1", "f2"]},
            {
                "DetectorId": "det",
                "FindingCriteria": {"Criterion": {
                    "service.archived": {"Equals": ["false"]},
                    "severity": {"GreaterThanOrEqual": 8},
                }},
            },
        )
        stubber.add_response(
            "get_findings",
            {"Findings": [api_finding("f1", 8.0), api_finding("f2", 8.7)]},
            {"DetectorId": "det", "FindingIds": ["f1", "f2"]},
        )
        findings = fetch_findings_live(client, min_severity=8.5)
        stubber.assert_no_pending_responses()

    assert [f["Id"] for f in findings] == ["f2"]


@mock_aws
def test_render_aws_without_findings_is_empty(aws_credentials):
    assert main.render_aws(region="us-east-1") == []
