"""Tests for import reconciliation and infrastructure provisioning."""

from __future__ import annotations

import logging

import pytest

from cloudsectest._errors import ExternalCallFailed, IncompleteProvisioning
from cloudsectest._models import ProvisionedOutputs, ReconcileOutcome, RunConfig
from cloudsectest._provisioner import (
    AwsResourceProbe,
    default_import_targets,
    provision_infrastructure,
    reconcile_imports,
)
from cloudsectest.tests.fakes import FakeCloud, FakeEngine, FakeProbe, FakeRunner


def test_default_import_targets_use_deterministic_names(config: RunConfig) -> None:
    targets = {target.address: target.resource_id for target in default_import_targets(config)}
    assert targets == {
        "aws_s3_bucket.db_backups": "demo-1-db-backups",
        "aws_key_pair.mongodb_key": "Simple-AWS-Env",
        "aws_iam_role.ec2_role": "demo-1-ec2-role",
        "aws_iam_instance_profile.ec2_profile": "demo-1-ec2-profile",
        "module.eks.aws_eks_cluster.this[0]": "demo-1-eks-cluster",
    }


def test_fresh_account_imports_nothing(
    config: RunConfig, engine: FakeEngine, probe: FakeProbe
) -> None:
    engine.init()
    outcomes = reconcile_imports(engine, probe, default_import_targets(config))
    assert set(outcomes.values()) == {ReconcileOutcome.ABSENT}
    assert engine.imports == []


def test_partial_run_resources_are_imported_before_apply(
    config: RunConfig, cloud: FakeCloud, engine: FakeEngine, probe: FakeProbe
) -> None:
    # first run created the bucket and role, then died before recording them
    cloud.resources.update({"demo-1-db-backups", "demo-1-ec2-role"})

    outputs = provision_infrastructure(engine, probe, default_import_targets(config))

    assert outputs == ProvisionedOutputs(
        database_address="10.0.1.25",
        bucket_url="https://demo-1-db-backups.s3.amazonaws.com",
    )
    assert sorted(engine.imports) == ["aws_iam_role.ec2_role", "aws_s3_bucket.db_backups"]
    assert engine.events[0] == "init"
    assert engine.events[-1] == "apply"


def test_second_run_finds_everything_tracked(
    config: RunConfig, engine: FakeEngine, probe: FakeProbe
) -> None:
    targets = default_import_targets(config)
    provision_infrastructure(engine, probe, targets)

    engine.init()
    outcomes = reconcile_imports(engine, probe, targets)

    assert set(outcomes.values()) == {ReconcileOutcome.TRACKED}
    assert engine.imports == [], "tracked resources must never be re-imported"
    provision_infrastructure(engine, probe, targets)


def test_import_failure_is_a_warning_and_apply_decides(
    config: RunConfig,
    cloud: FakeCloud,
    engine: FakeEngine,
    probe: FakeProbe,
    caplog: pytest.LogCaptureFixture,
) -> None:
    cloud.resources.add("demo-1-ec2-role")
    engine.fail_imports = True

    with caplog.at_level(logging.WARNING), pytest.raises(ExternalCallFailed, match="apply"):
        provision_infrastructure(engine, probe, default_import_targets(config))

    assert "Failed to import aws_iam_role.ec2_role" in caplog.text
    assert "apply" in engine.events


def test_missing_outputs_raise_incomplete_provisioning(
    config: RunConfig, engine: FakeEngine, probe: FakeProbe
) -> None:
    engine.outputs_payload = {"mongodb_ip": {"value": "10.0.1.25"}}
    with pytest.raises(IncompleteProvisioning) as excinfo:
        provision_infrastructure(engine, probe, default_import_targets(config))
    assert excinfo.value.missing == ("s3_bucket_url",)


def test_aws_resource_probe_appends_region(runner: FakeRunner) -> None:
    runner.respond("aws", "iam", "get-role", stderr="NoSuchEntity", return_code=254)
    probe = AwsResourceProbe("us-west-2", runner)

    assert probe.exists(("s3api", "head-bucket", "--bucket", "demo-1-db-backups"))
    assert not probe.exists(("iam", "get-role", "--role-name", "demo-1-ec2-role"))
    assert runner.argvs[0] == (
        "aws",
        "s3api",
        "head-bucket",
        "--bucket",
        "demo-1-db-backups",
        "--region",
        "us-west-2",
    )
