from __future__ import annotations

import dataclasses
import enum
import typing

ALL_OPEN = "0.0.0.0/0"
DEFAULT_STORAGE_DEVICE_NAME = "/dev/xvda"
DISPLAY_NAME_TAG_KEY = "displayName"
LAUNCH_TEMPLATE_PLACEHOLDER_USER_DATA = "cGxhY2Vob2xkZXIK"
MULTIPART_MIME_MARKER = "Content-Type: multipart/mixed"
NODE_INSTANCE_ROLE_OUTPUT = "NodeInstanceRole"
SECRETS_RESOURCE = "secrets"


class StackStatus(enum.StrEnum):
    CREATE_IN_PROGRESS = "CREATE_IN_PROGRESS"
    CREATE_COMPLETE = "CREATE_COMPLETE"
    CREATE_FAILED = "CREATE_FAILED"
    ROLLBACK_IN_PROGRESS = "ROLLBACK_IN_PROGRESS"
    ROLLBACK_COMPLETE = "ROLLBACK_COMPLETE"
    ROLLBACK_FAILED = "ROLLBACK_FAILED"


class CapacityType(enum.StrEnum):
    ON_DEMAND = "ON_DEMAND"
    SPOT = "SPOT"


class AMIType(enum.StrEnum):
    AL2_X86_64 = "AL2_x86_64"
    AL2_X86_64_GPU = "AL2_x86_64_GPU"


class Capabilities(enum.StrEnum):
    CAPABILITY_IAM = "CAPABILITY_IAM"
    CAPABILITY_NAMED_IAM = "CAPABILITY_NAMED_IAM"


class TagKeys(enum.StrEnum):
    MANAGED_LAUNCH_TEMPLATE = "eksconverge-managed-template"


class TagValues(enum.StrEnum):
    MANAGED_LAUNCH_TEMPLATE = "do-not-modify-or-delete"


class ErrorCodes(enum.StrEnum):
    ALREADY_EXISTS = "AlreadyExistsException"
    RESOURCE_IN_USE = "ResourceInUseException"
    RESOURCE_NOT_FOUND = "ResourceNotFoundException"
    VERSION_NOT_FOUND = "VersionNotFound"


class AWSCloudFormationParameter(typing.TypedDict):
    Description: str
    Type: str
    AllowedPattern: str


class AWSCloudFormationResource(typing.TypedDict):
    Type: str
    Properties: dict[str, typing.Any]


class AWSCloudFormationOutput(typing.TypedDict):
    Description: str
    Value: typing.Any


class AWSCloudFormationTemplate(typing.TypedDict):
    AWSTemplateFormatVersion: str
    Description: str
    Parameters: dict[str, AWSCloudFormationParameter]
    Resources: dict[str, AWSCloudFormationResource]
    Outputs: typing.NotRequired[dict[str, AWSCloudFormationOutput]]


class AWSCloudFormationParametersInput(typing.TypedDict):
    ParameterKey: str
    ParameterValue: str


class AWSTag(typing.TypedDict):
    Key: str
    Value: str


class AWSTagSpecification(typing.TypedDict):
    ResourceType: str
    Tags: list[AWSTag]


@dataclasses.dataclass(frozen=True)
class LaunchTemplate:
    id: str
    name: str = ""
    # None or 0 means "use the template's default version"
    version: int | None = None


@dataclasses.dataclass(frozen=True)
class NodeGroupSpec:
    nodegroup_name: str
    min_size: int | None = None
    max_size: int | None = None
    desired_size: int | None = None
    disk_size: int | None = None
    instance_type: str | None = None
    request_spot_instances: bool = False
    spot_instance_types: tuple[str, ...] = ()
    image_id: str | None = None
    gpu: bool = False
    user_data: str | None = None
    ec2_ssh_key: str | None = None
    subnets: tuple[str, ...] = ()
    node_role: str | None = None
    labels: dict[str, str] = dataclasses.field(default_factory=dict)
    resource_tags: dict[str, str] = dataclasses.field(default_factory=dict)
    launch_template: LaunchTemplate | None = None

    @property
    def capacity_type(self) -> CapacityType:
        return CapacityType.SPOT if self.request_spot_instances else CapacityType.ON_DEMAND


@dataclasses.dataclass(frozen=True)
class ClusterSpec:
    """Declared (or last observed) configuration of a managed cluster.

    The same shape serves as the desired spec and as the observed upstream
    baseline it is compared against. ``None`` on the access flags means
    "not declared", which the synchronizer never acts on.
    """

    display_name: str
    region: str = "us-east-1"
    kubernetes_version: str | None = None
    tags: dict[str, str] = dataclasses.field(default_factory=dict)
    logging_types: tuple[str, ...] = ()
    public_access: bool | None = None
    private_access: bool | None = None
    public_access_sources: tuple[str, ...] = ()
    secrets_encryption: bool | None = None
    kms_key: str | None = None
    node_groups: tuple[NodeGroupSpec, ...] = ()


@dataclasses.dataclass(frozen=True)
class ClusterStatus:
    """Values the caller persists between reconcile passes."""

    subnets: tuple[str, ...] = ()
    security_groups: tuple[str, ...] = ()
    managed_launch_template_id: str = ""
    generated_node_role: str = ""


@dataclasses.dataclass(frozen=True)
class StackRequest:
    stack_name: str
    display_name: str
    template_body: str
    capabilities: tuple[str, ...] = ()
    parameters: tuple[AWSCloudFormationParametersInput, ...] = ()


@dataclasses.dataclass(frozen=True)
class StackResult:
    stack_name: str
    status: str
    outputs: tuple[tuple[str, str], ...] = ()
    description: dict[str, typing.Any] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_stack(cls, stack_name: str, stack: dict[str, typing.Any]) -> StackResult:
        return cls(
            stack_name=stack_name,
            status=stack["StackStatus"],
            outputs=tuple((o["OutputKey"], o["OutputValue"]) for o in stack.get("Outputs", [])),
            description=stack,
        )

    def output(self, key: str) -> str:
        for output_key, output_value in self.outputs:
            if output_key == key:
                return output_value

        return ""


@dataclasses.dataclass(frozen=True)
class NodeGroupResult:
    nodegroup_name: str
    launch_template_version: str = ""
    node_role: str = ""
