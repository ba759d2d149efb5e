"""
Access-control policy data model.

The policy document follows the Tailscale ACL layout: groups, host aliases,
tag owners, rules, tests, auto approvers and SSH rules. Every section is
optional and defaults to an empty container.
"""

from dataclasses import dataclass, field
from ipaddress import IPv4Interface, IPv6Interface
from typing import Union

HostPrefix = Union[IPv4Interface, IPv6Interface]


@dataclass
class ACL:
    """A basic rule of the policy."""

    action: str = ""
    protocol: str = ""
    sources: list[str] = field(default_factory=list)
    destinations: list[str] = field(default_factory=list)


@dataclass
class ACLTest:
    """Self-check declaration; stored but never evaluated."""

    source: str = ""
    accept: list[str] = field(default_factory=list)
    deny: list[str] = field(default_factory=list)


@dataclass
class AutoApprovers:
    """Identities whose advertised routes or exit node status are approved automatically."""

    routes: dict[str, list[str]] = field(default_factory=dict)
    exit_node: list[str] = field(default_factory=list)


@dataclass
class SSH:
    """Who can ssh into which machines."""

    action: str = ""
    sources: list[str] = field(default_factory=list)
    destinations: list[str] = field(default_factory=list)
    users: list[str] = field(default_factory=list)
    check_period: str = ""


@dataclass
class ACLPolicy:
    """Access-control policy stored on an organization."""

    groups: dict[str, list[str]] = field(default_factory=dict)
    hosts: dict[str, HostPrefix] = field(default_factory=dict)
    tag_owners: dict[str, list[str]] = field(default_factory=dict)
    acls: list[ACL] = field(default_factory=list)
    tests: list[ACLTest] = field(default_factory=list)
    auto_approvers: AutoApprovers = field(default_factory=AutoApprovers)
    ssh: list[SSH] = field(default_factory=list)
