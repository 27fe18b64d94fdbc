"""
auth/gate.py -- Role-based access decisions per resource class.

The gate is stateless and takes an already-authenticated Principal. It never
re-validates credentials or session existence.

Role lattice: two tiers, admin includes user. Each resource class names the
minimum role it needs:

    users -> user   (user, admin allowed)
    admin -> admin  (admin only)

ResourceClass.unknown is a distinct failure (UnknownResource), not a deny.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass

from auth.errors import InsufficientRole, UnknownResource
from auth.models import Principal, ResourceClass, Role

_MINIMUM_ROLE: dict[ResourceClass, Role] = {
    ResourceClass.users: Role.user,
    ResourceClass.admin: Role.admin,
}

_DENY_REASON: dict[ResourceClass, str] = {
    ResourceClass.users: "Insufficient role",
    ResourceClass.admin: "Admin role required",
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None


ALLOW = Decision(allowed=True)


class AccessGate:
    def check(self, principal: Principal, resource: ResourceClass) -> Decision:
        """Decide whether `principal` may access `resource`.

        Raises UnknownResource for ResourceClass.unknown regardless of role.
        """
        minimum = _MINIMUM_ROLE.get(resource)
        if minimum is None:
            raise UnknownResource()
        if principal.role.includes(minimum):
            return ALLOW
        return Decision(allowed=False, reason=_DENY_REASON[resource])

    def enforce(self, principal: Principal, resource: ResourceClass) -> None:
        """Like check(), but raise InsufficientRole on deny."""
        decision = self.check(principal, resource)
        if not decision.allowed:
            raise InsufficientRole(decision.reason)
