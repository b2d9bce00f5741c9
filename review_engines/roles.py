"""
review_engines.roles -- Principal and role resolver.

Responsibility:
    Turn (principal, record, group bindings) into the ``RoleFlags``
    capability object every guard receives.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Pure function of its three inputs; nothing about the user beyond group
      membership and identity is consulted.
    - Ownership is record-scoped: the author, or the principal recorded as
      having submitted the request.
"""

from __future__ import annotations

from review_kernel.domain.principal import Principal, RoleFlags, RoleGroups
from review_kernel.domain.request import Request


def resolve_roles(
    principal: Principal,
    request: Request,
    groups: RoleGroups | None = None,
) -> RoleFlags:
    """Compute the role flags of ``principal`` for ``request``."""
    groups = groups or RoleGroups()
    return RoleFlags(
        is_submitter=principal.in_group(groups.submitters),
        is_owner=request.is_owner(principal.id),
        is_attorney=principal.in_group(groups.attorneys),
        is_legal_admin=principal.in_group(groups.legal_admin),
        is_attorney_assigner=principal.in_group(groups.attorney_assigner),
        is_compliance_user=principal.in_group(groups.compliance_users),
        is_admin=principal.in_group(groups.admin),
    )
