# policyctl Models
from policyctl.models.database import Base, init_db, create_db_engine, create_session_factory
from policyctl.models.acl_policy import ACL, ACLPolicy, ACLTest, AutoApprovers, SSH
from policyctl.models.organization import ACLPolicyType, Organization

__all__ = [
    "Base",
    "init_db",
    "create_db_engine",
    "create_session_factory",
    "ACL",
    "ACLPolicy",
    "ACLTest",
    "AutoApprovers",
    "SSH",
    "ACLPolicyType",
    "Organization",
]
