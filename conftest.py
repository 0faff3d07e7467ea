"""Shared pytest fixtures for eksconverge tests.

This module provides common fixtures used across test files:
- eksconverge_root: Sets EKSCONVERGE_ROOT environment variable
- services: AWSServices bundle of MagicMock clients
- fast_settings: Settings that poll without real delays
- desired_cluster / observed_cluster: a matching pair of cluster specs
- client_error: factory for botocore ClientError instances
"""

import pathlib
import typing
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

import eksconverge
import eksconverge.config
import eksconverge.services

# ============================================================================
# Environment Setup Fixtures
# ============================================================================


@pytest.fixture
def eksconverge_root(monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> pathlib.Path:
    """Set EKSCONVERGE_ROOT environment variable to a temporary directory.

    Usage:
        def test_something(eksconverge_root):
            paths = Paths()
            assert paths.root == eksconverge_root
    """
    monkeypatch.setenv("EKSCONVERGE_ROOT", str(tmp_path))
    return tmp_path


@pytest.fixture
def fast_settings() -> eksconverge.config.Settings:
    """Settings with a tiny poll interval so stack polling tests run quickly."""
    return eksconverge.config.Settings(stack_poll_interval=0.001)


# ============================================================================
# Provider Client Fixtures
# ============================================================================


@pytest.fixture
def services() -> eksconverge.services.AWSServices:
    """An AWSServices bundle whose clients are MagicMocks.

    Usage:
        def test_something(services):
            services.eks.create_nodegroup.side_effect = client_error("InvalidParameterException")
    """
    return eksconverge.services.AWSServices(eks=MagicMock(), cloudformation=MagicMock(), ec2=MagicMock())


@pytest.fixture
def client_error() -> typing.Callable[..., ClientError]:
    """Build a ClientError the way botocore raises them."""

    def _client_error(code: str, message: str = "", operation_name: str = "Operation") -> ClientError:
        return ClientError(
            error_response={"Error": {"Code": code, "Message": message}},
            operation_name=operation_name,
        )

    return _client_error


# ============================================================================
# Cluster Spec Fixtures
# ============================================================================


@pytest.fixture
def desired_cluster() -> eksconverge.ClusterSpec:
    return eksconverge.ClusterSpec(
        display_name="snoopy",
        region="us-west-2",
        kubernetes_version="1.29",
        tags={"team": "beagles", "env": "test"},
        logging_types=("api", "audit"),
        public_access=True,
        private_access=True,
        public_access_sources=("10.0.0.0/8",),
    )


@pytest.fixture
def observed_cluster(desired_cluster: eksconverge.ClusterSpec) -> eksconverge.ClusterSpec:
    """An observed spec that already matches desired_cluster."""
    return eksconverge.ClusterSpec(
        display_name=desired_cluster.display_name,
        region=desired_cluster.region,
        kubernetes_version=desired_cluster.kubernetes_version,
        tags=dict(desired_cluster.tags),
        logging_types=desired_cluster.logging_types,
        public_access=desired_cluster.public_access,
        private_access=desired_cluster.private_access,
        public_access_sources=desired_cluster.public_access_sources,
    )


@pytest.fixture
def cluster_status() -> eksconverge.ClusterStatus:
    return eksconverge.ClusterStatus(
        subnets=("subnet-aaa", "subnet-bbb"),
        security_groups=("sg-123",),
        managed_launch_template_id="lt-0123456789",
    )
