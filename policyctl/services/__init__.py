# policyctl Services
from policyctl.services.policy_store import PolicyStore

__all__ = ["PolicyStore"]
