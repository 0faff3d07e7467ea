from __future__ import annotations

import copy
import dataclasses
import os
import pathlib
import typing
import warnings

import deepmerge  # type: ignore
import yaml

import eksconverge
import eksconverge.paths

DEFAULT_STACK_POLL_INTERVAL = 5.0

# Node group values replace defaults outright; only label and tag maps merge.
NODE_GROUP_MERGER = deepmerge.Merger(
    [(list, ["override"]), (dict, ["merge"]), (set, ["override"])],
    ["override"],
    ["override"],
)


@dataclasses.dataclass(frozen=True)
class Settings:
    stack_poll_interval: float = DEFAULT_STACK_POLL_INTERVAL
    # None waits on a stack for as long as it stays CREATE_IN_PROGRESS
    stack_timeout: float | None = None
    launch_template_name_format: str = "eksconverge-managed-lt-{display_name}"
    node_role_stack_name_format: str = "{display_name}-node-instance-role"

    @classmethod
    def from_env(cls, environ: typing.Mapping[str, str] | None = None) -> Settings:
        environ = os.environ if environ is None else environ
        spec: dict[str, typing.Any] = {}

        if "EKSCONVERGE_STACK_POLL_INTERVAL" in environ:
            spec["stack_poll_interval"] = _positive_float(
                "EKSCONVERGE_STACK_POLL_INTERVAL", environ["EKSCONVERGE_STACK_POLL_INTERVAL"]
            )

        if environ.get("EKSCONVERGE_STACK_TIMEOUT", "") != "":
            spec["stack_timeout"] = _positive_float("EKSCONVERGE_STACK_TIMEOUT", environ["EKSCONVERGE_STACK_TIMEOUT"])

        return cls(**spec)

    def launch_template_name(self, display_name: str) -> str:
        return self.launch_template_name_format.format(display_name=display_name)

    def node_role_stack_name(self, display_name: str) -> str:
        return self.node_role_stack_name_format.format(display_name=display_name)


def _positive_float(name: str, value: str) -> float:
    try:
        parsed = float(value)
    except ValueError:
        msg = f"{name} must be a number, got {value!r}"
        raise ValueError(msg) from None

    if parsed <= 0:
        msg = f"{name} must be greater than zero, got {value!r}"
        raise ValueError(msg)

    return parsed


def _underscore_keys(d: dict[str, typing.Any]) -> dict[str, typing.Any]:
    return {key.replace("-", "_"): value for key, value in d.items()}


def load_node_group_dict(
    node_group_dict: dict[str, typing.Any],
    defaults: dict[str, typing.Any] | None = None,
) -> eksconverge.NodeGroupSpec:
    spec: dict[str, typing.Any] = copy.deepcopy(_underscore_keys(defaults or {}))
    NODE_GROUP_MERGER.merge(spec, _underscore_keys(node_group_dict))

    for key in ("spot_instance_types", "subnets"):
        if key in spec:
            spec[key] = tuple(spec[key] or ())

    if spec.get("launch_template") is not None:
        spec["launch_template"] = eksconverge.LaunchTemplate(**_underscore_keys(spec["launch_template"]))

    return eksconverge.NodeGroupSpec(**spec)


def load_cluster_dict(
    cluster_dict: dict[str, typing.Any],
    name: str = "",
) -> tuple[eksconverge.ClusterSpec, eksconverge.ClusterStatus]:
    spec = _underscore_keys(cluster_dict.get("spec", {}))
    status = _underscore_keys(cluster_dict.get("status", {}) or {})

    if "display_name" not in spec:
        if name == "":
            msg = "cluster config has no 'spec.display_name' and no directory name to fall back on"
            raise ValueError(msg)

        warnings.warn(
            f"'spec.display_name' missing from cluster config; using directory name {name!r}",
            stacklevel=2,
        )
        spec["display_name"] = name

    defaults = spec.pop("node_group_defaults", None) or {}
    spec["node_groups"] = tuple(load_node_group_dict(ng, defaults) for ng in spec.get("node_groups", None) or [])

    for key in ("logging_types", "public_access_sources"):
        if key in spec:
            spec[key] = tuple(spec[key] or ())

    spec["tags"] = dict(spec.get("tags", None) or {})

    for key in ("subnets", "security_groups"):
        if key in status:
            status[key] = tuple(status[key] or ())

    return eksconverge.ClusterSpec(**spec), eksconverge.ClusterStatus(**status)


def load_cluster_config(
    path: pathlib.Path | str,
) -> tuple[eksconverge.ClusterSpec, eksconverge.ClusterStatus]:
    path = pathlib.Path(path)
    cfg_dict = yaml.safe_load(path.read_text()) or {}

    return load_cluster_dict(cfg_dict, name=path.parent.name)


def load_named_cluster_config(
    name: str,
    paths: eksconverge.paths.Paths | None = None,
) -> tuple[eksconverge.ClusterSpec, eksconverge.ClusterStatus]:
    return load_cluster_config((paths or eksconverge.paths.Paths()).cluster_yaml(name))
