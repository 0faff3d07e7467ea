from __future__ import annotations

import dataclasses
import typing

import pulumi
from botocore.exceptions import BotoCoreError, ClientError

import eksconverge
import eksconverge.errors
import eksconverge.junkdrawer


@dataclasses.dataclass
class SyncResult:
    cluster_name: str
    version: bool = False
    tags: bool = False
    logging_types: bool = False
    access: bool = False
    public_access_sources: bool = False

    @property
    def updated(self) -> tuple[str, ...]:
        return tuple(
            field.name
            for field in dataclasses.fields(self)
            if field.name != "cluster_name" and getattr(self, field.name)
        )

    @property
    def converged(self) -> bool:
        return len(self.updated) == 0


def _update_error(cluster: eksconverge.ClusterSpec, what: str, err: Exception) -> eksconverge.errors.ClusterUpdateError:
    msg = f"error updating cluster [{cluster.display_name}] {what}: {err}"
    return eksconverge.errors.ClusterUpdateError(msg)


def update_cluster_version(
    eks: typing.Any,
    desired: eksconverge.ClusterSpec,
    observed: eksconverge.ClusterSpec,
) -> bool:
    if desired.kubernetes_version is None or observed.kubernetes_version == desired.kubernetes_version:
        return False

    pulumi.log.info(f"updating kubernetes version for cluster [{desired.display_name}]")
    try:
        eks.update_cluster_version(name=desired.display_name, version=desired.kubernetes_version)
    except (BotoCoreError, ClientError) as err:
        raise _update_error(desired, "kubernetes version", err) from err

    return True


def update_cluster_tags(
    eks: typing.Any,
    desired: eksconverge.ClusterSpec,
    observed: eksconverge.ClusterSpec,
    cluster_arn: str,
) -> bool:
    updated = False

    if tags := eksconverge.junkdrawer.key_values_to_update(desired.tags, observed.tags):
        try:
            eks.tag_resource(resourceArn=cluster_arn, tags=tags)
        except (BotoCoreError, ClientError) as err:
            msg = f"error tagging cluster [{desired.display_name}]: {err}"
            raise eksconverge.errors.ClusterUpdateError(msg) from err
        updated = True

    if keys := eksconverge.junkdrawer.keys_to_delete(desired.tags, observed.tags):
        try:
            eks.untag_resource(resourceArn=cluster_arn, tagKeys=keys)
        except (BotoCoreError, ClientError) as err:
            msg = f"error untagging cluster [{desired.display_name}]: {err}"
            raise eksconverge.errors.ClusterUpdateError(msg) from err
        updated = True

    return updated


def logging_types_update(
    logging_types: typing.Sequence[str],
    observed_logging_types: typing.Sequence[str],
) -> dict[str, typing.Any] | None:
    """Build the ``logging`` payload that moves ``observed`` to ``desired``.

    Returns ``None`` when the two already agree.
    """
    desired_types = list(dict.fromkeys(logging_types))
    observed_types = list(dict.fromkeys(observed_logging_types))

    to_disable = [t for t in observed_types if t not in desired_types]
    to_enable = [t for t in desired_types if t not in observed_types]

    cluster_logging = []
    if to_disable:
        cluster_logging.append({"types": to_disable, "enabled": False})
    if to_enable:
        cluster_logging.append({"types": to_enable, "enabled": True})

    if len(cluster_logging) == 0:
        return None

    return {"clusterLogging": cluster_logging}


def update_cluster_logging_types(
    eks: typing.Any,
    desired: eksconverge.ClusterSpec,
    observed: eksconverge.ClusterSpec,
) -> bool:
    logging = logging_types_update(desired.logging_types, observed.logging_types)
    if logging is None:
        return False

    try:
        eks.update_cluster_config(name=desired.display_name, logging=logging)
    except (BotoCoreError, ClientError) as err:
        raise _update_error(desired, "logging types", err) from err

    return True


def update_cluster_access(
    eks: typing.Any,
    desired: eksconverge.ClusterSpec,
    observed: eksconverge.ClusterSpec,
) -> bool:
    public_update = desired.public_access is not None and bool(observed.public_access) != desired.public_access
    private_update = desired.private_access is not None and bool(observed.private_access) != desired.private_access
    if not (public_update or private_update):
        return False

    # Both flags go in one request; sent separately EKS can reject the
    # intermediate state where both endpoints are disabled.
    try:
        eks.update_cluster_config(
            name=desired.display_name,
            resourcesVpcConfig=eksconverge.junkdrawer.compact(
                {
                    "endpointPublicAccess": desired.public_access,
                    "endpointPrivateAccess": desired.private_access,
                }
            ),
        )
    except (BotoCoreError, ClientError) as err:
        raise _update_error(desired, "public/private access", err) from err

    return True


def filter_public_access_sources(sources: typing.Sequence[str] | None) -> list[str] | None:
    """Normalize "open to everyone" to ``None``.

    An empty list and a lone ``0.0.0.0/0`` mean the same thing to EKS.
    """
    if not sources:
        return None

    if len(sources) == 1 and sources[0] == eksconverge.ALL_OPEN:
        return None

    return list(sources)


def public_access_cidrs(sources: typing.Sequence[str] | None) -> list[str]:
    if not sources:
        return [eksconverge.ALL_OPEN]

    return list(sources)


def update_cluster_public_access_sources(
    eks: typing.Any,
    desired: eksconverge.ClusterSpec,
    observed: eksconverge.ClusterSpec,
) -> bool:
    if eksconverge.junkdrawer.string_slices_equal(
        filter_public_access_sources(desired.public_access_sources),
        filter_public_access_sources(observed.public_access_sources),
    ):
        return False

    try:
        eks.update_cluster_config(
            name=desired.display_name,
            resourcesVpcConfig={"publicAccessCidrs": public_access_cidrs(desired.public_access_sources)},
        )
    except (BotoCoreError, ClientError) as err:
        raise _update_error(desired, "public access sources", err) from err

    return True


def sync_cluster(
    eks: typing.Any,
    desired: eksconverge.ClusterSpec,
    observed: eksconverge.ClusterSpec,
    cluster_arn: str,
) -> SyncResult:
    """Run every facet update once, in a fixed order, and report which acted."""
    res = SyncResult(cluster_name=desired.display_name)

    res.version = update_cluster_version(eks, desired, observed)
    res.tags = update_cluster_tags(eks, desired, observed, cluster_arn)
    res.logging_types = update_cluster_logging_types(eks, desired, observed)
    res.access = update_cluster_access(eks, desired, observed)
    res.public_access_sources = update_cluster_public_access_sources(eks, desired, observed)

    return res
