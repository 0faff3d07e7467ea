from __future__ import annotations

import base64
import typing

import pulumi
from botocore.exceptions import BotoCoreError, ClientError

import eksconverge
import eksconverge.config
import eksconverge.errors
import eksconverge.junkdrawer


def ensure_managed_template(
    ec2: typing.Any,
    display_name: str,
    managed_template_id: str,
    *,
    settings: eksconverge.config.Settings | None = None,
    classifier: eksconverge.errors.ErrorClassifier = eksconverge.errors.DEFAULT_CLASSIFIER,
) -> str:
    """Return the id of the cluster's managed launch template, creating it if absent.

    An empty ``managed_template_id`` or a describe error saying the template
    does not exist both lead to creation. Any other describe error is raised
    without creating anything.
    """
    settings = settings or eksconverge.config.Settings()

    if managed_template_id != "":
        try:
            ec2.describe_launch_templates(LaunchTemplateIds=[managed_template_id])
        except (BotoCoreError, ClientError) as err:
            if not classifier.does_not_exist(err):
                msg = f"error checking for existing launch template [{managed_template_id}]: {err}"
                raise eksconverge.errors.LaunchTemplateError(msg) from err
            pulumi.log.info(f"managed launch template [{managed_template_id}] is gone, recreating it")
        else:
            return managed_template_id

    try:
        lt = create_managed_template(ec2, settings.launch_template_name(display_name))
    except (BotoCoreError, ClientError) as err:
        msg = f"error creating launch template for cluster [{display_name}]: {err}"
        raise eksconverge.errors.LaunchTemplateError(msg) from err

    pulumi.log.info(f"created managed launch template [{lt.id}] for cluster [{display_name}]")
    return lt.id


def create_managed_template(ec2: typing.Any, name: str) -> eksconverge.LaunchTemplate:
    # A launch template cannot be created without a version, so version 1
    # carries placeholder user data. It stays the default version and is
    # never handed to a node group.
    response = ec2.create_launch_template(
        LaunchTemplateName=name,
        LaunchTemplateData={"UserData": eksconverge.LAUNCH_TEMPLATE_PLACEHOLDER_USER_DATA},
        TagSpecifications=eksconverge.junkdrawer.tag_specs(
            {eksconverge.TagKeys.MANAGED_LAUNCH_TEMPLATE: eksconverge.TagValues.MANAGED_LAUNCH_TEMPLATE},
            resource_type="launch-template",
        ),
    )
    lt = response["LaunchTemplate"]

    return eksconverge.LaunchTemplate(
        id=lt["LaunchTemplateId"],
        name=lt.get("LaunchTemplateName", ""),
        version=lt.get("LatestVersionNumber"),
    )


def image_root_device_name(ec2: typing.Any, image_id: str) -> str | None:
    try:
        response = ec2.describe_images(ImageIds=[image_id])
    except (BotoCoreError, ClientError) as err:
        msg = f"error describing image [{image_id}]: {err}"
        raise eksconverge.errors.LaunchTemplateError(msg) from err

    images = response.get("Images", [])
    if len(images) == 0:
        msg = f"no images returned for id [{image_id}]"
        raise eksconverge.errors.ImageNotFoundError(msg)

    return images[0].get("RootDeviceName")


def encode_user_data(node_group: eksconverge.NodeGroupSpec) -> str | None:
    if not node_group.user_data:
        return None

    if eksconverge.MULTIPART_MIME_MARKER not in node_group.user_data:
        msg = f"userdata for nodegroup [{node_group.nodegroup_name}] is not of mime type multipart/mixed"
        raise eksconverge.errors.UserDataError(msg)

    return base64.b64encode(node_group.user_data.encode()).decode()


def build_launch_template_data(ec2: typing.Any, node_group: eksconverge.NodeGroupSpec) -> dict[str, typing.Any]:
    image_id = node_group.image_id or None
    user_data = encode_user_data(node_group)

    device_name = eksconverge.DEFAULT_STORAGE_DEVICE_NAME
    if image_id is not None:
        device_name = image_root_device_name(ec2, image_id) or device_name

    data = eksconverge.junkdrawer.compact(
        {
            "ImageId": image_id,
            "KeyName": node_group.ec2_ssh_key or None,
            "UserData": user_data,
            "BlockDeviceMappings": [
                {
                    "DeviceName": device_name,
                    "Ebs": eksconverge.junkdrawer.compact({"VolumeSize": node_group.disk_size}),
                }
            ],
        }
    )

    tag_specs = eksconverge.junkdrawer.tag_specs(node_group.resource_tags)
    if len(tag_specs) > 0:
        data["TagSpecifications"] = tag_specs

    # spot node groups carry their candidate types on the node group request
    if not node_group.request_spot_instances and node_group.instance_type:
        data["InstanceType"] = node_group.instance_type

    return data


def create_launch_template_version(
    ec2: typing.Any,
    template_id: str,
    node_group: eksconverge.NodeGroupSpec,
) -> eksconverge.LaunchTemplate:
    data = build_launch_template_data(ec2, node_group)

    try:
        response = ec2.create_launch_template_version(LaunchTemplateId=template_id, LaunchTemplateData=data)
    except (BotoCoreError, ClientError) as err:
        msg = f"error creating launch template version for nodegroup [{node_group.nodegroup_name}]: {err}"
        raise eksconverge.errors.LaunchTemplateError(msg) from err

    version = response["LaunchTemplateVersion"]

    return eksconverge.LaunchTemplate(
        id=version["LaunchTemplateId"],
        name=version.get("LaunchTemplateName", ""),
        version=version.get("VersionNumber"),
    )


def delete_launch_template_versions(
    ec2: typing.Any,
    template_id: str,
    versions: typing.Iterable[str],
) -> dict[str, typing.Any]:
    return ec2.delete_launch_template_versions(LaunchTemplateId=template_id, Versions=list(versions))
