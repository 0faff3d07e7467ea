from __future__ import annotations

import threading
import typing

import pulumi
from botocore.exceptions import BotoCoreError, ClientError

import eksconverge
import eksconverge.config
import eksconverge.errors
import eksconverge.junkdrawer
import eksconverge.launch_templates
import eksconverge.services
import eksconverge.stacks
import eksconverge.templates


def _launch_template_version(lt: eksconverge.LaunchTemplate) -> str | None:
    if not lt.version:
        return None

    return str(lt.version)


def resolve_node_role(
    cloudformation: typing.Any,
    cluster: eksconverge.ClusterSpec,
    status: eksconverge.ClusterStatus,
    node_group: eksconverge.NodeGroupSpec,
    *,
    settings: eksconverge.config.Settings | None = None,
    cancel: threading.Event | None = None,
    classifier: eksconverge.errors.ErrorClassifier = eksconverge.errors.DEFAULT_CLASSIFIER,
) -> str:
    """Return the IAM role the node group's instances run as.

    An explicit role on the node group wins. Otherwise the cluster's
    generated role is reused, and only when there is none yet is the
    node-instance-role stack provisioned.
    """
    if node_group.node_role:
        return node_group.node_role

    if status.generated_node_role != "":
        return status.generated_node_role

    settings = settings or eksconverge.config.Settings()
    result = eksconverge.stacks.provision_stack(
        cloudformation,
        eksconverge.StackRequest(
            stack_name=settings.node_role_stack_name(cluster.display_name),
            display_name=cluster.display_name,
            template_body=eksconverge.templates.node_instance_role_template_body(cluster.region),
            capabilities=(eksconverge.Capabilities.CAPABILITY_IAM,),
        ),
        settings=settings,
        cancel=cancel,
        classifier=classifier,
    )

    return result.output(eksconverge.NODE_INSTANCE_ROLE_OUTPUT)


def build_nodegroup_input(
    cluster: eksconverge.ClusterSpec,
    status: eksconverge.ClusterStatus,
    node_group: eksconverge.NodeGroupSpec,
    lt: eksconverge.LaunchTemplate,
    node_role: str,
) -> dict[str, typing.Any]:
    request: dict[str, typing.Any] = {
        "clusterName": cluster.display_name,
        "nodegroupName": node_group.nodegroup_name,
        "scalingConfig": eksconverge.junkdrawer.compact(
            {
                "desiredSize": node_group.desired_size,
                "maxSize": node_group.max_size,
                "minSize": node_group.min_size,
            }
        ),
        "capacityType": str(node_group.capacity_type),
        "launchTemplate": eksconverge.junkdrawer.compact(
            {
                "id": lt.id,
                "version": _launch_template_version(lt),
            }
        ),
        "subnets": list(node_group.subnets or status.subnets),
        "nodeRole": node_role,
    }

    if len(node_group.labels) > 0:
        request["labels"] = dict(node_group.labels)

    if node_group.request_spot_instances:
        request["instanceTypes"] = list(node_group.spot_instance_types)

    if not node_group.image_id:
        ami_type = eksconverge.AMIType.AL2_X86_64_GPU if node_group.gpu else eksconverge.AMIType.AL2_X86_64
        request["amiType"] = str(ami_type)

    return request


def _cleanup_launch_template_version(ec2: typing.Any, template_id: str, version: str | None) -> None:
    if version is None:
        return

    try:
        eksconverge.launch_templates.delete_launch_template_versions(ec2, template_id, [version])
    except (BotoCoreError, ClientError) as err:
        pulumi.log.warn(f"could not delete launch template [{template_id}] version [{version}]: {err}")


def create_node_group(
    services: eksconverge.services.AWSServices,
    cluster: eksconverge.ClusterSpec,
    status: eksconverge.ClusterStatus,
    node_group: eksconverge.NodeGroupSpec,
    *,
    settings: eksconverge.config.Settings | None = None,
    cancel: threading.Event | None = None,
    classifier: eksconverge.errors.ErrorClassifier = eksconverge.errors.DEFAULT_CLASSIFIER,
) -> eksconverge.NodeGroupResult:
    """Submit a node group creation request for ``node_group``.

    Without a launch template of its own the node group gets a fresh version
    of the cluster's managed template. When EKS rejects the request that
    version is deleted again and :class:`eksconverge.errors.NodeGroupCreateError`
    is raised, still carrying the version and node role so the caller can
    record them.
    """
    lt = node_group.launch_template
    if lt is None:
        lt = eksconverge.launch_templates.create_launch_template_version(
            services.ec2, status.managed_launch_template_id, node_group
        )

    version = _launch_template_version(lt)
    created_version = version if node_group.launch_template is None else None

    try:
        node_role = resolve_node_role(
            services.cloudformation,
            cluster,
            status,
            node_group,
            settings=settings,
            cancel=cancel,
            classifier=classifier,
        )
    except eksconverge.errors.StackCreateError:
        _cleanup_launch_template_version(services.ec2, lt.id, created_version)
        raise

    request = build_nodegroup_input(cluster, status, node_group, lt, node_role)

    pulumi.log.info(f"creating nodegroup [{node_group.nodegroup_name}] for cluster [{cluster.display_name}]")
    try:
        services.eks.create_nodegroup(**request)
    except (BotoCoreError, ClientError) as err:
        _cleanup_launch_template_version(services.ec2, lt.id, created_version)
        msg = f"error creating nodegroup [{node_group.nodegroup_name}] for cluster [{cluster.display_name}]: {err}"
        raise eksconverge.errors.NodeGroupCreateError(
            msg,
            launch_template_version=version or "",
            node_role=node_role,
        ) from err

    return eksconverge.NodeGroupResult(
        nodegroup_name=node_group.nodegroup_name,
        launch_template_version=version or "",
        node_role=node_role,
    )
