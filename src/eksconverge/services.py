from __future__ import annotations

import dataclasses
import typing

import boto3


@dataclasses.dataclass(frozen=True)
class AWSServices:
    """The three provider clients the engine talks to.

    Any object exposing the same methods as the boto3 clients works here,
    which is how the tests substitute mocks.
    """

    eks: typing.Any
    cloudformation: typing.Any
    ec2: typing.Any

    @classmethod
    def from_region(cls, region: str, exe_env: dict[str, str] | None = None) -> AWSServices:
        session = boto3.Session(
            aws_access_key_id=exe_env.get("AWS_ACCESS_KEY_ID") if exe_env else None,
            aws_secret_access_key=exe_env.get("AWS_SECRET_ACCESS_KEY") if exe_env else None,
            aws_session_token=exe_env.get("AWS_SESSION_TOKEN") if exe_env else None,
            region_name=region,
        )

        return cls(
            eks=session.client("eks"),
            cloudformation=session.client("cloudformation"),
            ec2=session.client("ec2"),
        )
