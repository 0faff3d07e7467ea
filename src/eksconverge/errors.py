from __future__ import annotations

from botocore.exceptions import ClientError

from eksconverge import ErrorCodes

DOES_NOT_EXIST = "does not exist"


class EKSConvergeError(Exception):
    pass


class ClusterCreateError(EKSConvergeError):
    pass


class ClusterUpdateError(EKSConvergeError):
    pass


class StackCreateError(EKSConvergeError):
    pass


class StackTimeoutError(StackCreateError, TimeoutError):
    pass


class LaunchTemplateError(EKSConvergeError):
    pass


class UserDataError(LaunchTemplateError, ValueError):
    pass


class ImageNotFoundError(LaunchTemplateError):
    pass


class NodeGroupCreateError(EKSConvergeError):
    """Raised when the node group request is rejected.

    Carries the launch template version and node role that were resolved
    before the rejection so the caller can still record them on status.
    """

    def __init__(self, msg: str, launch_template_version: str = "", node_role: str = ""):
        super().__init__(msg)
        self.launch_template_version = launch_template_version
        self.node_role = node_role


def error_code(err: BaseException | None) -> str:
    if not isinstance(err, ClientError):
        return ""

    return err.response.get("Error", {}).get("Code", "")


def is_conflict(err: BaseException | None) -> bool:
    return error_code(err) == ErrorCodes.RESOURCE_IN_USE


def not_found(err: BaseException | None) -> bool:
    code = error_code(err)
    return code == ErrorCodes.RESOURCE_NOT_FOUND or ErrorCodes.VERSION_NOT_FOUND in code


def does_not_exist(err: BaseException | None) -> bool:
    # The describe and delete APIs report a missing object and a malformed
    # request the same way, so the message text is the only discriminant.
    if err is None:
        return False

    return DOES_NOT_EXIST in str(err)


def already_exists(err: BaseException | None) -> bool:
    return error_code(err) == ErrorCodes.ALREADY_EXISTS


class ErrorClassifier:
    """Control-flow predicates over provider errors.

    Components call these through an instance rather than the module
    functions so that a stricter classifier (for instance one keyed on a
    structured code once the provider exposes one) can be passed in.
    """

    def is_conflict(self, err: BaseException | None) -> bool:
        return is_conflict(err)

    def not_found(self, err: BaseException | None) -> bool:
        return not_found(err)

    def does_not_exist(self, err: BaseException | None) -> bool:
        return does_not_exist(err)

    def already_exists(self, err: BaseException | None) -> bool:
        return already_exists(err)


DEFAULT_CLASSIFIER = ErrorClassifier()
