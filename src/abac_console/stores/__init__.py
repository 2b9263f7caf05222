"""Policy stores the authoring form can submit to."""

from abac_console.stores.policy_file import FilePolicyStore, PolicyStore

__all__ = ["FilePolicyStore", "PolicyStore"]
