from __future__ import annotations

import typing

import pulumi
from botocore.exceptions import BotoCoreError, ClientError

import eksconverge
import eksconverge.errors
import eksconverge.updates


def cluster_logging(logging_types: typing.Sequence[str]) -> dict[str, typing.Any]:
    return {
        "clusterLogging": [
            {
                "types": list(logging_types),
                "enabled": len(logging_types) > 0,
            }
        ]
    }


def new_cluster_input(
    cluster: eksconverge.ClusterSpec,
    status: eksconverge.ClusterStatus,
    role_arn: str,
) -> dict[str, typing.Any]:
    vpc_config: dict[str, typing.Any] = {
        "securityGroupIds": list(status.security_groups),
        "subnetIds": list(status.subnets),
        "publicAccessCidrs": eksconverge.updates.public_access_cidrs(cluster.public_access_sources),
    }
    if cluster.private_access is not None:
        vpc_config["endpointPrivateAccess"] = cluster.private_access
    if cluster.public_access is not None:
        vpc_config["endpointPublicAccess"] = cluster.public_access

    request: dict[str, typing.Any] = {
        "name": cluster.display_name,
        "roleArn": role_arn,
        "resourcesVpcConfig": vpc_config,
        "logging": cluster_logging(cluster.logging_types),
    }

    if len(cluster.tags) > 0:
        request["tags"] = dict(cluster.tags)

    if cluster.kubernetes_version is not None:
        request["version"] = cluster.kubernetes_version

    if cluster.secrets_encryption:
        request["encryptionConfig"] = [
            {
                "provider": {"keyArn": cluster.kms_key},
                "resources": [eksconverge.SECRETS_RESOURCE],
            }
        ]

    return request


def create_cluster(
    eks: typing.Any,
    cluster: eksconverge.ClusterSpec,
    status: eksconverge.ClusterStatus,
    role_arn: str,
    *,
    classifier: eksconverge.errors.ErrorClassifier = eksconverge.errors.DEFAULT_CLASSIFIER,
) -> dict[str, typing.Any]:
    pulumi.log.info(f"creating cluster [{cluster.display_name}]")
    try:
        return eks.create_cluster(**new_cluster_input(cluster, status, role_arn))
    except (BotoCoreError, ClientError) as err:
        if classifier.is_conflict(err):
            msg = f"cluster [{cluster.display_name}] already exists or is in use: {err}"
        else:
            msg = f"error creating cluster [{cluster.display_name}]: {err}"
        raise eksconverge.errors.ClusterCreateError(msg) from err


def describe_cluster(eks: typing.Any, display_name: str) -> dict[str, typing.Any]:
    return eks.describe_cluster(name=display_name)


def observed_spec_from_cluster(
    describe_output: dict[str, typing.Any],
    region: str = "us-east-1",
) -> eksconverge.ClusterSpec:
    """Map a ``describe_cluster`` response onto the comparison baseline."""
    cluster = describe_output["cluster"]
    vpc_config = cluster.get("resourcesVpcConfig", {})

    logging_types: list[str] = []
    for setup in cluster.get("logging", {}).get("clusterLogging", []):
        if setup.get("enabled"):
            logging_types.extend(setup.get("types", []))

    encryption = cluster.get("encryptionConfig", [])
    kms_key = None
    if len(encryption) > 0:
        kms_key = encryption[0].get("provider", {}).get("keyArn")

    return eksconverge.ClusterSpec(
        display_name=cluster["name"],
        region=region,
        kubernetes_version=cluster.get("version"),
        tags=dict(cluster.get("tags", {})),
        logging_types=tuple(logging_types),
        public_access=vpc_config.get("endpointPublicAccess"),
        private_access=vpc_config.get("endpointPrivateAccess"),
        public_access_sources=tuple(vpc_config.get("publicAccessCidrs", [])),
        secrets_encryption=len(encryption) > 0,
        kms_key=kms_key,
    )
