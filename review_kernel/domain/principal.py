"""
Principals and role flags (``review_kernel.domain.principal``).

Responsibility
--------------
Identity value objects.  ``Principal`` is what the identity provider hands
the engine; ``PrincipalRef`` is the slimmer reference stored on a record
(approvers, assigned attorneys); ``RoleFlags`` is the request-scoped
capability object the role resolver computes once per transition attempt
and passes to every guard by parameter.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PrincipalRef:
    """A user as referenced from a stored record."""

    id: str
    email: str = ""
    display_name: str = ""

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValueError("principal id cannot be empty")


@dataclass(frozen=True)
class Principal:
    """The current user with resolved group memberships."""

    id: str
    email: str
    display_name: str
    groups: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValueError("principal id cannot be empty")

    def as_ref(self) -> PrincipalRef:
        return PrincipalRef(id=self.id, email=self.email, display_name=self.display_name)

    def in_group(self, group: str) -> bool:
        return group in self.groups


@dataclass(frozen=True)
class RoleGroups:
    """Names of the directory groups that confer each role."""

    submitters: str = "LW - Submitters"
    legal_admin: str = "LW - Legal Admin"
    attorney_assigner: str = "LW - Attorney Assigner"
    attorneys: str = "LW - Attorneys"
    compliance_users: str = "LW - Compliance Users"
    admin: str = "LW - Admin"

    def __post_init__(self) -> None:
        names = (
            self.submitters,
            self.legal_admin,
            self.attorney_assigner,
            self.attorneys,
            self.compliance_users,
            self.admin,
        )
        if any(not n or not n.strip() for n in names):
            raise ValueError("group names cannot be empty")
        if len(set(names)) != len(names):
            raise ValueError(f"group names must be distinct: {names}")


@dataclass(frozen=True)
class RoleFlags:
    """Capabilities of one principal with respect to one record.

    Contract: frozen; computed by ``review_engines.roles.resolve_roles``.
    Non-goals: carries no identity.  Guards receive the user id separately.
    """

    is_submitter: bool = False
    is_owner: bool = False
    is_attorney: bool = False
    is_legal_admin: bool = False
    is_attorney_assigner: bool = False
    is_compliance_user: bool = False
    is_admin: bool = False

    @property
    def is_reviewer(self) -> bool:
        return self.is_attorney or self.is_compliance_user

    @property
    def has_any_role(self) -> bool:
        return any(
            (
                self.is_submitter,
                self.is_owner,
                self.is_attorney,
                self.is_legal_admin,
                self.is_attorney_assigner,
                self.is_compliance_user,
                self.is_admin,
            )
        )
