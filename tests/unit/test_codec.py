"""
Tests for the policy codec.
"""

import json
import os
import tempfile
from ipaddress import ip_interface

import pytest

from policyctl.codec import decode, decode_column, decode_file, encode, policy_to_dict
from policyctl.errors import DecodeError, FileReadError
from policyctl.models import ACL, ACLPolicy, ACLTest, AutoApprovers, SSH


SAMPLE_POLICY_JSON = """
{
  "groups": {
    "group:admin": ["alice@example.com", "bob@example.com"]
  },
  "hosts": {
    "router": "192.168.1.1/24",
    "server6": "fd7a:115c:a1e0::1/128"
  },
  "tagOwners": {
    "tag:web": ["group:admin"]
  },
  "acls": [
    {"action": "accept", "proto": "tcp", "src": ["group:admin"], "dst": ["router:22"]},
    {"action": "accept", "src": ["*"], "dst": ["*:*"]}
  ],
  "tests": [
    {"src": "alice@example.com", "accept": ["router:22"], "deny": ["server6:80"]}
  ],
  "autoApprovers": {
    "routes": {"10.0.0.0/8": ["tag:web"]},
    "exitNode": ["group:admin"]
  },
  "ssh": [
    {
      "action": "check",
      "src": ["group:admin"],
      "dst": ["tag:web"],
      "users": ["root"],
      "checkPeriod": "12h"
    }
  ]
}
"""


def sample_policy() -> ACLPolicy:
    return ACLPolicy(
        groups={"group:admin": ["alice@example.com", "bob@example.com"]},
        hosts={
            "router": ip_interface("192.168.1.1/24"),
            "server6": ip_interface("fd7a:115c:a1e0::1/128"),
        },
        tag_owners={"tag:web": ["group:admin"]},
        acls=[
            ACL(action="accept", protocol="tcp", sources=["group:admin"], destinations=["router:22"]),
            ACL(action="accept", protocol="", sources=["*"], destinations=["*:*"]),
        ],
        tests=[ACLTest(source="alice@example.com", accept=["router:22"], deny=["server6:80"])],
        auto_approvers=AutoApprovers(
            routes={"10.0.0.0/8": ["tag:web"]},
            exit_node=["group:admin"],
        ),
        ssh=[
            SSH(
                action="check",
                sources=["group:admin"],
                destinations=["tag:web"],
                users=["root"],
                check_period="12h",
            )
        ],
    )


class TestDecode:
    """Tests for decoding JSON text."""

    def test_decode_full_policy(self):
        """Test decoding every section of a policy."""
        policy = decode(SAMPLE_POLICY_JSON)
        assert policy == sample_policy()

    def test_host_keeps_address_and_prefix(self):
        """Test that host bits are kept as written."""
        policy = decode(SAMPLE_POLICY_JSON)
        router = policy.hosts["router"]
        assert str(router.ip) == "192.168.1.1"
        assert router.network.prefixlen == 24

    def test_empty_object(self):
        """Test that absent sections decode to empty containers."""
        policy = decode("{}")
        assert policy == ACLPolicy()
        assert policy.groups == {}
        assert policy.acls == []
        assert policy.auto_approvers.routes == {}
        assert policy.auto_approvers.exit_node == []

    def test_null_sections(self):
        """Test that null sections decode to empty containers."""
        policy = decode('{"groups": null, "acls": null, "autoApprovers": null}')
        assert policy == ACLPolicy()

    def test_unknown_keys_ignored(self):
        """Test that unrecognized keys are ignored."""
        policy = decode('{"randomizeClientPort": true, "groups": {"g": ["a"]}}')
        assert policy.groups == {"g": ["a"]}

    def test_sshs_alias(self):
        """Test that "sshs" is read like "ssh"."""
        policy = decode('{"sshs": [{"action": "accept", "users": ["root"]}]}')
        assert policy.ssh == [SSH(action="accept", users=["root"])]

    def test_invalid_cidr(self):
        """Test that a malformed host prefix is rejected."""
        with pytest.raises(DecodeError) as exc_info:
            decode('{"hosts": {"a": "not-a-cidr"}}')
        assert exc_info.value.location == "hosts.a"

    def test_host_without_prefix_length(self):
        """Test that a bare address is rejected."""
        with pytest.raises(DecodeError):
            decode('{"hosts": {"a": "10.0.0.1"}}')

    def test_host_prefix_out_of_range(self):
        """Test that a prefix longer than the address is rejected."""
        with pytest.raises(DecodeError):
            decode('{"hosts": {"a": "10.0.0.1/33"}}')

    def test_host_prefix_leading_zero(self):
        """Test that a zero-padded prefix length is rejected."""
        with pytest.raises(DecodeError) as exc_info:
            decode('{"hosts": {"a": "10.0.0.1/024"}}')
        assert exc_info.value.location == "hosts.a"

    def test_host_prefix_zero(self):
        """Test that a single zero prefix length is valid."""
        policy = decode('{"hosts": {"any": "0.0.0.0/0"}}')
        assert str(policy.hosts["any"]) == "0.0.0.0/0"

    def test_acls_not_a_list(self):
        """Test that a non-array rule list is rejected."""
        with pytest.raises(DecodeError) as exc_info:
            decode('{"acls": "not-a-list"}')
        assert exc_info.value.location == "acls"

    def test_non_string_member(self):
        """Test that a non-string where a string is expected is rejected."""
        with pytest.raises(DecodeError) as exc_info:
            decode('{"acls": [{"action": "accept", "src": ["ok", 5]}]}')
        assert exc_info.value.location == "acls[0].src[1]"
        assert "acls[0].src[1]" in str(exc_info.value)

    def test_non_json(self):
        """Test that non-JSON text is rejected."""
        with pytest.raises(DecodeError):
            decode("this is not json")

    def test_top_level_not_object(self):
        """Test that a JSON array at top level is rejected."""
        with pytest.raises(DecodeError):
            decode("[1, 2, 3]")

    def test_decode_error_is_value_error(self):
        """Test that DecodeError can be caught as ValueError."""
        with pytest.raises(ValueError):
            decode("{")


class TestEncode:
    """Tests for encoding policies."""

    def test_key_order(self):
        """Test that keys follow the schema order."""
        data = json.loads(encode(ACLPolicy()))
        assert list(data.keys()) == [
            "groups",
            "hosts",
            "tagOwners",
            "acls",
            "tests",
            "autoApprovers",
            "ssh",
        ]

    def test_empty_policy_encodes_empty_containers(self):
        """Test that an empty policy still emits every section."""
        data = json.loads(encode(ACLPolicy()))
        assert data["groups"] == {}
        assert data["acls"] == []
        assert data["autoApprovers"] == {"routes": {}, "exitNode": []}

    def test_optional_fields_omitted(self):
        """Test that empty deny and checkPeriod are left out."""
        policy = ACLPolicy(
            tests=[ACLTest(source="a", accept=["b:80"])],
            ssh=[SSH(action="accept", users=["root"])],
        )
        data = policy_to_dict(policy)
        assert "deny" not in data["tests"][0]
        assert "checkPeriod" not in data["ssh"][0]

    def test_rule_keys(self):
        """Test the wire names of rule fields."""
        data = policy_to_dict(sample_policy())
        assert data["acls"][0] == {
            "action": "accept",
            "proto": "tcp",
            "src": ["group:admin"],
            "dst": ["router:22"],
        }
        assert data["hosts"]["router"] == "192.168.1.1/24"

    def test_pretty_output(self):
        """Test two-space indentation of pretty output."""
        text = encode(ACLPolicy(groups={"g": ["a"]}), pretty=True)
        assert text.startswith('{\n  "groups": {\n    "g": [\n      "a"\n')

    def test_compact_output(self):
        """Test that column output has no whitespace between tokens."""
        text = encode(ACLPolicy())
        assert "\n" not in text
        assert text.startswith('{"groups":{},"hosts":{}')

    def test_round_trip(self):
        """Test that decode(encode(p)) equals p."""
        policy = sample_policy()
        assert decode(encode(policy)) == policy
        assert decode(encode(policy, pretty=True)) == policy

    def test_round_trip_empty(self):
        """Test round trip of an empty policy."""
        assert decode(encode(ACLPolicy())) == ACLPolicy()


class TestDecodeColumn:
    """Tests for the storage-boundary decode."""

    def test_bytes_and_str_equivalent(self):
        """Test that bytes and str of the same text decode identically."""
        text = encode(sample_policy())
        from_str = decode_column(text)
        from_bytes = decode_column(text.encode("utf-8"))
        assert from_str == from_bytes == sample_policy()

    def test_memoryview(self):
        """Test that buffer types decode like bytes."""
        text = encode(sample_policy())
        assert decode_column(memoryview(text.encode("utf-8"))) == sample_policy()

    def test_unexpected_type(self):
        """Test that other storage types are rejected."""
        with pytest.raises(DecodeError) as exc_info:
            decode_column(42)
        assert "unexpected data type" in str(exc_info.value)

    def test_invalid_utf8(self):
        """Test that undecodable bytes are rejected."""
        with pytest.raises(DecodeError):
            decode_column(b"\xff\xfe{}")


class TestDecodeFile:
    """Tests for loading policy files."""

    def test_json_file(self):
        """Test loading a JSON policy file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "policy.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write(SAMPLE_POLICY_JSON)

            assert decode_file(path) == sample_policy()

    def test_yaml_file(self):
        """Test loading a YAML policy file."""
        content = """
groups:
  "group:admin": ["alice@example.com"]
hosts:
  router: 192.168.1.1/24
acls:
  - action: accept
    proto: tcp
    src: ["group:admin"]
    dst: ["router:22"]
"""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "policy.yaml")
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)

            policy = decode_file(path)

        assert policy.groups == {"group:admin": ["alice@example.com"]}
        assert str(policy.hosts["router"]) == "192.168.1.1/24"
        assert policy.acls[0].protocol == "tcp"

    def test_missing_file(self):
        """Test that a missing file raises FileReadError."""
        with pytest.raises(FileReadError):
            decode_file("/nonexistent/path/policy.json")

    def test_malformed_file(self):
        """Test that a malformed file raises DecodeError."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "policy.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write('{"hosts": {"a": "not-a-cidr"}}')

            with pytest.raises(DecodeError) as exc_info:
                decode_file(path)

        assert str(exc_info.value).startswith("Unmarshal config failed")
        assert exc_info.value.location == "hosts.a"
