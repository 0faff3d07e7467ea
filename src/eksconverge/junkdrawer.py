from __future__ import annotations

import typing

import eksconverge


def key_values_to_update(desired: typing.Mapping[str, str], observed: typing.Mapping[str, str]) -> dict[str, str]:
    """Tags present in ``desired`` that are missing from or differ in ``observed``."""
    return {key: value for key, value in desired.items() if key not in observed or observed[key] != value}


def keys_to_delete(desired: typing.Mapping[str, str], observed: typing.Mapping[str, str]) -> list[str]:
    """Keys present in ``observed`` but absent from ``desired``."""
    return [key for key in observed if key not in desired]


def string_slices_equal(a: typing.Sequence[str] | None, b: typing.Sequence[str] | None) -> bool:
    # positional: the same items in a different order count as a change
    return list(a or ()) == list(b or ())


def tags_list(tags: typing.Mapping[str, str]) -> list[eksconverge.AWSTag]:
    return [{"Key": key, "Value": value} for key, value in tags.items()]


def tag_specs(
    tags: typing.Mapping[str, str],
    resource_type: str = "instance",
) -> list[eksconverge.AWSTagSpecification]:
    if len(tags) == 0:
        return []

    return [{"ResourceType": resource_type, "Tags": tags_list(tags)}]


def compact(d: dict[str, typing.Any]) -> dict[str, typing.Any]:
    """Drop unset values; boto3 rejects explicit ``None`` parameters."""
    return {key: value for key, value in d.items() if value is not None}
