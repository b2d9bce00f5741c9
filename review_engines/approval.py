"""
review_engines.approval -- Approval requirement evaluator.

Responsibility:
    Decide whether the approvals attached to a request satisfy the
    mandatory-approval rules checked at submission time, and report every
    violated rule as its own field error.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import review_kernel/domain/ types.

Rules:
    1. When Communications approval is required, exactly one Communications
       approval must be present.
    2. Unless the request is communications-only, at least one
       non-Communications approval must be present.
    3. Every present approval needs an approver, an approval date that is not
       after today, and at least one attached document.  Other approvals also
       need a title.
    No approval type may appear twice.

Invariants enforced:
    - No early exit: every violation is collected so a form can attach each
      message to its field.
    - Purity: "today" and document presence are passed in.  Document presence
      comes from the attachment collaborator, resolved by the service layer.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Sequence

from review_kernel.domain.request import Approval, ApprovalType
from review_kernel.domain.results import FieldError

MSG_COMMUNICATIONS_REQUIRED = "Communications approval is required"
MSG_COMMUNICATIONS_DUPLICATE = "Only one Communications approval is allowed"
MSG_ADDITIONAL_REQUIRED = "At least one additional approval is required"
MSG_APPROVER_REQUIRED = "Approver is required"
MSG_DATE_REQUIRED = "Approval date is required"
MSG_DATE_IN_FUTURE = "Approval date cannot be in the future"
MSG_TITLE_REQUIRED = "Approval title is required"

DEFAULT_APPROVAL_TITLE_MAX = 100


@dataclass(frozen=True)
class ApprovalRequirements:
    """Which approval slots must be filled, derived from the two request flags."""

    communications_required: bool
    non_communications_required: bool

    @property
    def minimum_count(self) -> int:
        return int(self.communications_required) + int(self.non_communications_required)


@dataclass(frozen=True)
class ApprovalEvaluation:
    requirements: ApprovalRequirements
    violations: tuple[FieldError, ...] = ()

    @property
    def satisfied(self) -> bool:
        return not self.violations


def required_approvals(
    requires_communications_approval: bool,
    communications_only: bool,
) -> ApprovalRequirements:
    """The requirement set for the current flag combination.

    The set changes as the submitter toggles either flag on the form.
    """
    return ApprovalRequirements(
        communications_required=requires_communications_approval,
        non_communications_required=not communications_only,
    )


def _documents_message(approval_type: ApprovalType) -> str:
    return f"At least one document is required for {approval_type.value} approval"


def _check_approval(
    index: int,
    approval: Approval,
    documents_attached: Mapping[ApprovalType, bool],
    today: date,
    title_max: int,
) -> list[FieldError]:
    prefix = f"approvals[{index}]"
    errors: list[FieldError] = []
    if approval.approver is None or not approval.approver.id.strip():
        errors.append(FieldError(f"{prefix}.approver", MSG_APPROVER_REQUIRED))
    if approval.approval_date is None:
        errors.append(FieldError(f"{prefix}.approval_date", MSG_DATE_REQUIRED))
    elif approval.approval_date > today:
        errors.append(FieldError(f"{prefix}.approval_date", MSG_DATE_IN_FUTURE))
    if not documents_attached.get(approval.approval_type, False):
        errors.append(
            FieldError(f"{prefix}.documents", _documents_message(approval.approval_type))
        )
    if approval.approval_type is ApprovalType.OTHER:
        title = (approval.title or "").strip()
        if not title:
            errors.append(FieldError(f"{prefix}.title", MSG_TITLE_REQUIRED))
        elif len(title) > title_max:
            errors.append(
                FieldError(
                    f"{prefix}.title",
                    f"Approval title cannot exceed {title_max} characters",
                )
            )
    return errors


def evaluate_approval_requirements(
    approvals: Sequence[Approval],
    requires_communications_approval: bool,
    communications_only: bool,
    documents_attached: Mapping[ApprovalType, bool],
    today: date,
    title_max: int = DEFAULT_APPROVAL_TITLE_MAX,
) -> ApprovalEvaluation:
    """Evaluate every approval rule and collect all violations.

    Args:
        approvals: The approvals currently on the request.
        requires_communications_approval: Request flag; rule 1 applies when set.
        communications_only: Request flag; rule 2 is skipped when set.
        documents_attached: Per approval slot, whether a document is attached.
        today: The submission date in the business calendar's timezone.
        title_max: Maximum length of an Other approval's title.
    """
    requirements = required_approvals(requires_communications_approval, communications_only)
    violations: list[FieldError] = []

    counts = Counter(a.approval_type for a in approvals)
    communications = counts.get(ApprovalType.COMMUNICATIONS, 0)

    if requirements.communications_required and communications == 0:
        violations.append(FieldError("approvals.communications", MSG_COMMUNICATIONS_REQUIRED))
    if communications > 1:
        violations.append(FieldError("approvals.communications", MSG_COMMUNICATIONS_DUPLICATE))

    non_communications = [t for t in counts if t is not ApprovalType.COMMUNICATIONS]
    if requirements.non_communications_required and not non_communications:
        violations.append(FieldError("approvals", MSG_ADDITIONAL_REQUIRED))

    seen: set[ApprovalType] = set()
    for index, approval in enumerate(approvals):
        kind = approval.approval_type
        if kind in seen and kind is not ApprovalType.COMMUNICATIONS:
            # Reported on every repeat, addressed to the repeating slot
            violations.append(
                FieldError(
                    f"approvals[{index}].approval_type",
                    f"Only one {kind.value} approval is allowed",
                )
            )
        seen.add(kind)
        violations.extend(_check_approval(index, approval, documents_attached, today, title_max))

    return ApprovalEvaluation(requirements=requirements, violations=tuple(violations))
