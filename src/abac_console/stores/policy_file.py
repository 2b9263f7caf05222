"""Local policy store - a JSON file of policies.

Used for offline authoring and for evaluating policies with the local
engine (`abac-console policy test --local`).

File format:
    {"version": "1", "policies": [<Policy camelCase>, ...]}

Features:
- Secure file permissions (0o700 for directory, 0o600 for file)
- Atomic writes (temp file + rename)
- Detailed validation error messages
- Duplicate policyId rejected on create, like the platform API
"""

from __future__ import annotations

__all__ = [
    "FilePolicyStore",
    "PolicyFile",
    "PolicyStore",
]

import json
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from abac_console.exceptions import PolicyStoreError
from abac_console.pdp.policy import Policy, canonical_policy_id
from abac_console.utils.file_helpers import (
    atomic_write_text,
    load_validated_json,
    set_secure_permissions,
)


@runtime_checkable
class PolicyStore(Protocol):
    """Anything a policy can be submitted to.

    Implemented by client.http.ABACClient (platform API) and
    FilePolicyStore (local file).
    """

    def create_policy(self, policy: Policy) -> Policy | None:
        """Persist a new policy. Raises on rejection."""
        ...


class PolicyFile(BaseModel):
    """On-disk layout of the local policy store."""

    version: str = "1"
    policies: list[Policy] = Field(default_factory=list)


class FilePolicyStore:
    """Policies persisted in a local JSON file.

    Updates replace the whole policy; there is no partial patching.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> PolicyFile:
        """Load the policy file (empty store if the file doesn't exist).

        Raises:
            PolicyStoreError: If the file is unreadable or invalid.
        """
        if not self.path.exists():
            return PolicyFile()
        try:
            return load_validated_json(
                self.path,
                PolicyFile,
                file_type="policy",
                recovery_hint="Fix the policy file or remove it to start over.",
            )
        except ValueError as e:
            raise PolicyStoreError(str(e)) from e

    def save(self, policy_file: PolicyFile) -> None:
        """Write the policy file atomically with secure permissions."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        set_secure_permissions(self.path.parent, is_directory=True)
        data = policy_file.model_dump(mode="json", by_alias=True, exclude_none=True)
        atomic_write_text(self.path, json.dumps(data, indent=2) + "\n", prefix=".policy_", secure=True)

    def list_policies(self) -> list[Policy]:
        return list(self.load().policies)

    def get(self, policy_id: str) -> Policy | None:
        wanted = canonical_policy_id(policy_id)
        return next((p for p in self.list_policies() if p.policy_id == wanted), None)

    def create_policy(self, policy: Policy) -> Policy:
        """Add a policy.

        Raises:
            PolicyStoreError: If a policy with the same policyId exists.
        """
        current = self.load()
        if any(p.policy_id == policy.policy_id for p in current.policies):
            raise PolicyStoreError(f"Policy {policy.policy_id} already exists")
        self.save(current.model_copy(update={"policies": [*current.policies, policy]}))
        return policy

    def replace_policy(self, policy: Policy) -> Policy:
        """Replace an existing policy wholesale.

        Raises:
            PolicyStoreError: If no policy with that policyId exists.
        """
        current = self.load()
        if not any(p.policy_id == policy.policy_id for p in current.policies):
            raise PolicyStoreError(f"Policy {policy.policy_id} not found")
        policies = [policy if p.policy_id == policy.policy_id else p for p in current.policies]
        self.save(current.model_copy(update={"policies": policies}))
        return policy

    def delete_policy(self, policy_id: str) -> None:
        """Remove a policy.

        Raises:
            PolicyStoreError: If no policy with that policyId exists.
        """
        wanted = canonical_policy_id(policy_id)
        current = self.load()
        remaining = [p for p in current.policies if p.policy_id != wanted]
        if len(remaining) == len(current.policies):
            raise PolicyStoreError(f"Policy {wanted} not found")
        self.save(current.model_copy(update={"policies": remaining}))

    def toggle_policy(self, policy_id: str) -> Policy:
        """Flip a policy's active flag and return the updated policy."""
        existing = self.get(policy_id)
        if existing is None:
            raise PolicyStoreError(f"Policy {canonical_policy_id(policy_id)} not found")
        return self.replace_policy(existing.model_copy(update={"is_active": not existing.is_active}))
