import dataclasses
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

import eksconverge
import eksconverge.clusters
import eksconverge.errors

ROLE_ARN = "arn:aws:iam::123456789012:role/eks-service"


class TestNewClusterInput:
    def test_full_spec(self, desired_cluster, cluster_status):
        request = eksconverge.clusters.new_cluster_input(desired_cluster, cluster_status, ROLE_ARN)

        assert request == {
            "name": "snoopy",
            "roleArn": ROLE_ARN,
            "resourcesVpcConfig": {
                "securityGroupIds": ["sg-123"],
                "subnetIds": ["subnet-aaa", "subnet-bbb"],
                "publicAccessCidrs": ["10.0.0.0/8"],
                "endpointPrivateAccess": True,
                "endpointPublicAccess": True,
            },
            "logging": {"clusterLogging": [{"types": ["api", "audit"], "enabled": True}]},
            "tags": {"team": "beagles", "env": "test"},
            "version": "1.29",
        }

    def test_minimal_spec(self, cluster_status):
        cluster = eksconverge.ClusterSpec(display_name="woodstock")

        request = eksconverge.clusters.new_cluster_input(cluster, cluster_status, ROLE_ARN)

        assert request["resourcesVpcConfig"]["publicAccessCidrs"] == ["0.0.0.0/0"]
        assert "endpointPublicAccess" not in request["resourcesVpcConfig"]
        assert "endpointPrivateAccess" not in request["resourcesVpcConfig"]
        assert request["logging"] == {"clusterLogging": [{"types": [], "enabled": False}]}
        assert "tags" not in request
        assert "version" not in request
        assert "encryptionConfig" not in request

    def test_secrets_encryption(self, desired_cluster, cluster_status):
        cluster = dataclasses.replace(
            desired_cluster, secrets_encryption=True, kms_key="arn:aws:kms:us-west-2:1:key/abc"
        )

        request = eksconverge.clusters.new_cluster_input(cluster, cluster_status, ROLE_ARN)

        assert request["encryptionConfig"] == [
            {"provider": {"keyArn": "arn:aws:kms:us-west-2:1:key/abc"}, "resources": ["secrets"]},
        ]


class TestCreateCluster:
    def test_success(self, desired_cluster, cluster_status):
        eks = MagicMock()
        eks.create_cluster.return_value = {"cluster": {"name": "snoopy", "status": "CREATING"}}

        res = eksconverge.clusters.create_cluster(eks, desired_cluster, cluster_status, ROLE_ARN)

        assert res["cluster"]["status"] == "CREATING"
        _, kwargs = eks.create_cluster.call_args
        assert kwargs["name"] == "snoopy"
        assert kwargs["roleArn"] == ROLE_ARN

    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            pytest.param("ResourceInUseException", "already exists or is in use", id="conflict"),
            pytest.param("InvalidParameterException", "error creating cluster", id="other"),
        ],
    )
    def test_error_is_wrapped(self, desired_cluster, cluster_status, client_error, code, expected):
        eks = MagicMock()
        eks.create_cluster.side_effect = client_error(code)

        with pytest.raises(eksconverge.errors.ClusterCreateError, match=expected) as exc_info:
            eksconverge.clusters.create_cluster(eks, desired_cluster, cluster_status, ROLE_ARN)

        assert isinstance(exc_info.value.__cause__, ClientError)


def test_describe_cluster():
    eks = MagicMock()
    eks.describe_cluster.return_value = {"cluster": {"name": "snoopy"}}

    assert eksconverge.clusters.describe_cluster(eks, "snoopy") == {"cluster": {"name": "snoopy"}}
    eks.describe_cluster.assert_called_once_with(name="snoopy")


class TestObservedSpecFromCluster:
    def test_maps_describe_output(self, desired_cluster):
        describe_output = {
            "cluster": {
                "name": "snoopy",
                "arn": "arn:aws:eks:us-west-2:123456789012:cluster/snoopy",
                "version": "1.29",
                "tags": {"team": "beagles", "env": "test"},
                "resourcesVpcConfig": {
                    "endpointPublicAccess": True,
                    "endpointPrivateAccess": True,
                    "publicAccessCidrs": ["10.0.0.0/8"],
                },
                "logging": {
                    "clusterLogging": [
                        {"types": ["api", "audit"], "enabled": True},
                        {"types": ["authenticator", "controllerManager", "scheduler"], "enabled": False},
                    ]
                },
            }
        }

        observed = eksconverge.clusters.observed_spec_from_cluster(describe_output, region="us-west-2")

        assert dataclasses.replace(observed, secrets_encryption=None) == desired_cluster
        assert observed.secrets_encryption is False
        assert observed.kms_key is None

    def test_encryption(self):
        describe_output = {
            "cluster": {
                "name": "snoopy",
                "encryptionConfig": [
                    {"provider": {"keyArn": "arn:aws:kms:us-east-1:1:key/abc"}, "resources": ["secrets"]},
                ],
            }
        }

        observed = eksconverge.clusters.observed_spec_from_cluster(describe_output)

        assert observed.secrets_encryption is True
        assert observed.kms_key == "arn:aws:kms:us-east-1:1:key/abc"
        assert observed.logging_types == ()
        assert observed.public_access is None
