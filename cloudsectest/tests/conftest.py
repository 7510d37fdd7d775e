"""Shared fixtures for the cloudsectest test suite."""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest

from cloudsectest._models import RunConfig
from cloudsectest._provisioner import default_import_targets
from cloudsectest.tests.fakes import (
    FakeCloud,
    FakeCluster,
    FakeEngine,
    FakeProbe,
    FakeRegistry,
    FakeRunner,
)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def config() -> RunConfig:
    return RunConfig(
        region="us-west-2",
        prefix="demo-1",
        secret="password123",
        account_id="123456789012",
    )


@pytest.fixture
def cloud() -> FakeCloud:
    return FakeCloud()


@pytest.fixture
def registry(cloud: FakeCloud) -> FakeRegistry:
    return FakeRegistry(cloud)


@pytest.fixture
def engine(cloud: FakeCloud, config: RunConfig) -> FakeEngine:
    managed = {
        target.address: target.resource_id
        for target in default_import_targets(config)
    }
    return FakeEngine(cloud, managed)


@pytest.fixture
def probe(cloud: FakeCloud) -> FakeProbe:
    return FakeProbe(cloud)


@pytest.fixture
def cluster(cloud: FakeCloud) -> FakeCluster:
    return FakeCluster(cloud)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep ``CLOUDSECTEST_*`` variables from the host out of every test."""
    for key in list(os.environ):
        if key.startswith("CLOUDSECTEST_"):
            monkeypatch.delenv(key)
    yield
