from __future__ import annotations

import functools
import json

import botocore.loaders
import botocore.regions
from botocore.exceptions import UnknownRegionError

import eksconverge

DEFAULT_EC2_SERVICE_ENDPOINT = "ec2.amazonaws.com"

NODE_MANAGED_POLICIES = (
    "AmazonEKSWorkerNodePolicy",
    "AmazonEKS_CNI_Policy",
    "AmazonEC2ContainerRegistryReadOnly",
)


@functools.cache
def _endpoint_resolver() -> botocore.regions.EndpointResolver:
    return botocore.regions.EndpointResolver(botocore.loaders.create_loader().load_data("endpoints"))


def ec2_service_endpoint(region: str) -> str:
    """Return the EC2 service principal host for ``region``'s partition."""
    resolver = _endpoint_resolver()
    try:
        partition = resolver.get_partition_for_region(region)
    except UnknownRegionError:
        return DEFAULT_EC2_SERVICE_ENDPOINT

    dns_suffix = resolver.get_partition_dns_suffix(partition)
    if not dns_suffix:
        return DEFAULT_EC2_SERVICE_ENDPOINT

    return f"ec2.{dns_suffix}"


def node_instance_role_template(region: str) -> eksconverge.AWSCloudFormationTemplate:
    return {
        "AWSTemplateFormatVersion": "2010-09-09",
        "Description": "Amazon EKS - Node Group Role",
        "Parameters": {},
        "Resources": {
            eksconverge.NODE_INSTANCE_ROLE_OUTPUT: {
                "Type": "AWS::IAM::Role",
                "Properties": {
                    "AssumeRolePolicyDocument": {
                        "Version": "2012-10-17",
                        "Statement": [
                            {
                                "Effect": "Allow",
                                "Principal": {"Service": [ec2_service_endpoint(region)]},
                                "Action": ["sts:AssumeRole"],
                            }
                        ],
                    },
                    "ManagedPolicyArns": [
                        {"Fn::Sub": f"arn:${{AWS::Partition}}:iam::aws:policy/{policy}"}
                        for policy in NODE_MANAGED_POLICIES
                    ],
                    "Path": "/",
                },
            },
        },
        "Outputs": {
            eksconverge.NODE_INSTANCE_ROLE_OUTPUT: {
                "Description": "The node instance role",
                "Value": {"Fn::GetAtt": [eksconverge.NODE_INSTANCE_ROLE_OUTPUT, "Arn"]},
            },
        },
    }


def node_instance_role_template_body(region: str) -> str:
    return json.dumps(node_instance_role_template(region), indent=2)
