"""
Conversion between ACLPolicy and its JSON text form.

The same schema is used for the database column and for policy files, so a
value read from one can be written to the other unchanged.
"""

import json
import logging
from ipaddress import ip_interface
from pathlib import Path
from typing import Any, Union

import yaml

from policyctl.errors import DecodeError, FileReadError
from policyctl.models.acl_policy import ACL, ACLPolicy, ACLTest, AutoApprovers, SSH, HostPrefix

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


# =============================================================================
# Encoding
# =============================================================================


def _acl_to_dict(acl: ACL) -> dict:
    return {
        "action": acl.action,
        "proto": acl.protocol,
        "src": list(acl.sources),
        "dst": list(acl.destinations),
    }


def _test_to_dict(test: ACLTest) -> dict:
    data = {"src": test.source, "accept": list(test.accept)}
    if test.deny:
        data["deny"] = list(test.deny)
    return data


def _ssh_to_dict(ssh: SSH) -> dict:
    data = {
        "action": ssh.action,
        "src": list(ssh.sources),
        "dst": list(ssh.destinations),
        "users": list(ssh.users),
    }
    if ssh.check_period:
        data["checkPeriod"] = ssh.check_period
    return data


def policy_to_dict(policy: ACLPolicy) -> dict[str, Any]:
    """Build the JSON-ready dict of a policy, keys in schema order."""
    return {
        "groups": {name: list(members) for name, members in policy.groups.items()},
        "hosts": {name: str(prefix) for name, prefix in policy.hosts.items()},
        "tagOwners": {tag: list(owners) for tag, owners in policy.tag_owners.items()},
        "acls": [_acl_to_dict(acl) for acl in policy.acls],
        "tests": [_test_to_dict(test) for test in policy.tests],
        "autoApprovers": {
            "routes": {
                route: list(approvers)
                for route, approvers in policy.auto_approvers.routes.items()
            },
            "exitNode": list(policy.auto_approvers.exit_node),
        },
        "ssh": [_ssh_to_dict(ssh) for ssh in policy.ssh],
    }


def encode(policy: ACLPolicy, pretty: bool = False, indent: int = 2) -> str:
    """
    Encode a policy as JSON text.

    Args:
        policy: The policy to encode.
        pretty: Indent the output for humans instead of the compact column form.
        indent: Indentation width used when pretty is set.

    Returns:
        The JSON text.
    """
    data = policy_to_dict(policy)
    if pretty:
        return json.dumps(data, indent=indent, ensure_ascii=False)
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


# =============================================================================
# Decoding
# =============================================================================


def _join(location: str, key: Union[str, int]) -> str:
    if isinstance(key, int):
        return f"{location}[{key}]"
    return f"{location}.{key}" if location else key


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    return type(value).__name__


def _string(value: Any, location: str, default: str = "") -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        raise DecodeError(f"expected string, got {_type_name(value)}", location)
    return value


def _object(value: Any, location: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DecodeError(f"expected object, got {_type_name(value)}", location)
    for key in value:
        if not isinstance(key, str):
            raise DecodeError(f"expected string key, got {_type_name(key)}", location)
    return value


def _array(value: Any, location: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError(f"expected array, got {_type_name(value)}", location)
    return value


def _string_list(value: Any, location: str) -> list[str]:
    items = _array(value, location)
    return [_string(item, _join(location, i)) for i, item in enumerate(items)]


def _string_list_map(value: Any, location: str) -> dict[str, list[str]]:
    data = _object(value, location)
    return {
        key: _string_list(items, _join(location, key))
        for key, items in data.items()
    }


def _parse_prefix(value: Any, location: str) -> HostPrefix:
    """Parse an address with prefix length, e.g. 100.64.0.1/32."""
    text = _string(value, location)
    _, sep, bits = text.partition("/")
    if not sep or not bits.isdigit():
        raise DecodeError(f"invalid prefix {text!r}: missing prefix length", location)
    if len(bits) > 1 and bits.startswith("0"):
        raise DecodeError(f"invalid prefix {text!r}: leading zero in prefix length", location)
    try:
        return ip_interface(text)
    except ValueError as e:
        raise DecodeError(f"invalid prefix {text!r}: {e}", location) from e


def _parse_acl(value: Any, location: str) -> ACL:
    data = _object(value, location)
    return ACL(
        action=_string(data.get("action"), _join(location, "action")),
        protocol=_string(data.get("proto"), _join(location, "proto")),
        sources=_string_list(data.get("src"), _join(location, "src")),
        destinations=_string_list(data.get("dst"), _join(location, "dst")),
    )


def _parse_test(value: Any, location: str) -> ACLTest:
    data = _object(value, location)
    return ACLTest(
        source=_string(data.get("src"), _join(location, "src")),
        accept=_string_list(data.get("accept"), _join(location, "accept")),
        deny=_string_list(data.get("deny"), _join(location, "deny")),
    )


def _parse_auto_approvers(value: Any, location: str) -> AutoApprovers:
    data = _object(value, location)
    return AutoApprovers(
        routes=_string_list_map(data.get("routes"), _join(location, "routes")),
        exit_node=_string_list(data.get("exitNode"), _join(location, "exitNode")),
    )


def _parse_ssh(value: Any, location: str) -> SSH:
    data = _object(value, location)
    return SSH(
        action=_string(data.get("action"), _join(location, "action")),
        sources=_string_list(data.get("src"), _join(location, "src")),
        destinations=_string_list(data.get("dst"), _join(location, "dst")),
        users=_string_list(data.get("users"), _join(location, "users")),
        check_period=_string(data.get("checkPeriod"), _join(location, "checkPeriod")),
    )


def policy_from_dict(data: Any) -> ACLPolicy:
    """
    Build an ACLPolicy from decoded JSON data.

    Unknown keys are ignored; absent or null sections become empty.

    Raises:
        DecodeError: If the data is not an object or a field has the wrong type.
    """
    if not isinstance(data, dict):
        raise DecodeError(f"expected object at top level, got {_type_name(data)}")

    hosts = _object(data.get("hosts"), "hosts")
    acls = _array(data.get("acls"), "acls")
    tests = _array(data.get("tests"), "tests")

    # "sshs" is accepted as an alias of "ssh"
    ssh_key = "ssh" if "ssh" in data else "sshs"
    sshs = _array(data.get(ssh_key), ssh_key)

    return ACLPolicy(
        groups=_string_list_map(data.get("groups"), "groups"),
        hosts={name: _parse_prefix(value, _join("hosts", name)) for name, value in hosts.items()},
        tag_owners=_string_list_map(data.get("tagOwners"), "tagOwners"),
        acls=[_parse_acl(item, _join("acls", i)) for i, item in enumerate(acls)],
        tests=[_parse_test(item, _join("tests", i)) for i, item in enumerate(tests)],
        auto_approvers=_parse_auto_approvers(data.get("autoApprovers"), "autoApprovers"),
        ssh=[_parse_ssh(item, _join(ssh_key, i)) for i, item in enumerate(sshs)],
    )


def decode(text: str) -> ACLPolicy:
    """Decode JSON text into an ACLPolicy."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON: {e}") from e
    return policy_from_dict(data)


def decode_column(value: Any) -> ACLPolicy:
    """
    Decode the stored column value.

    The driver may hand back either raw bytes or a string for the same
    column; both go through the same JSON decode.

    Raises:
        DecodeError: If the value is neither bytes nor str, or is not a valid policy.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        try:
            text = bytes(value).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"invalid UTF-8 in stored policy: {e}") from e
        return decode(text)
    if isinstance(value, str):
        return decode(value)
    raise DecodeError(f"unexpected data type {_type_name(value)}")


def decode_file(path: Union[str, Path]) -> ACLPolicy:
    """
    Load a policy file.

    Files ending in .yaml or .yml are read as YAML, everything else as JSON.

    Raises:
        FileReadError: If the file is missing or unreadable.
        DecodeError: If the file content is not a valid policy.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise FileReadError(str(path), str(e)) from e

    logger.debug(f"Read {len(content)} bytes from {path}")

    try:
        if path.suffix.lower() in YAML_SUFFIXES:
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError as e:
                raise DecodeError(f"invalid YAML: {e}") from e
            return policy_from_dict(data)
        return decode(content)
    except DecodeError as e:
        error = DecodeError(f"Unmarshal config failed: {e}")
        error.location = e.location
        raise error from e
