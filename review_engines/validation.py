"""
review_engines.validation -- Per-transition conditional validation.

Responsibility:
    Check a proposed payload against the rule table of its action and return
    one ``FieldError`` per violated rule.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  "Today" and attachment
    presence arrive in the ``ValidationContext``.

Invariants enforced:
    - Rules are data: each ``FieldRule`` names a field, a predicate that
      holds for valid input, an optional ``when`` condition, and a message.
      Conditional requirements (rush rationale iff rush, tracking id iff
      Foreside retail) are ``when`` clauses, not branches.
    - No early exit: every rule in the table runs and every failure is
      returned.
    - Validation runs only after the guard has allowed the action.
    - Edits after submission keep the request submittable and never change
      the review audience (that belongs to attorney assignment).

Failure modes:
    - TypeError (from ``coerce_payload``) when the payload type does not
      match the action.  That is a caller bug, not a validation failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable, Protocol

from review_engines.approval import evaluate_approval_requirements
from review_kernel.domain.limits import FieldLimits
from review_kernel.domain.payloads import DraftChanges, coerce_payload
from review_kernel.domain.request import ApprovalType, Request
from review_kernel.domain.results import FieldError
from review_kernel.domain.workflow import (
    RequestStatus,
    ReviewAudience,
    ReviewOutcome,
    WorkflowAction,
)


@dataclass(frozen=True)
class AttachmentSnapshot:
    """Which documents are attached right now, as reported by the attachment collaborator."""

    request_documents: bool = False
    approval_documents: frozenset[ApprovalType] = frozenset()

    def as_mapping(self) -> dict[ApprovalType, bool]:
        return {t: t in self.approval_documents for t in ApprovalType}


@dataclass(frozen=True)
class ValidationContext:
    request: Request
    today: date
    limits: FieldLimits = FieldLimits()
    attachments: AttachmentSnapshot = AttachmentSnapshot()


Check = Callable[[Any, ValidationContext], bool]
Message = str | Callable[[FieldLimits], str]


class Rule(Protocol):
    field: str

    def evaluate(self, subject: Any, ctx: ValidationContext) -> tuple[FieldError, ...]:
        ...


@dataclass(frozen=True)
class FieldRule:
    """A single predicate on one field.

    ``check`` returns True for valid input.  When ``when`` is given the rule
    only applies if it returns True.
    """

    field: str
    check: Check
    message: Message
    when: Check | None = None

    def evaluate(self, subject: Any, ctx: ValidationContext) -> tuple[FieldError, ...]:
        if self.when is not None and not self.when(subject, ctx):
            return ()
        if self.check(subject, ctx):
            return ()
        text = self.message(ctx.limits) if callable(self.message) else self.message
        return (FieldError(self.field, text),)


@dataclass(frozen=True)
class ComputedRule:
    """A rule that produces its own list of errors (used for nested collections)."""

    field: str
    produce: Callable[[Any, ValidationContext], Iterable[FieldError]]

    def evaluate(self, subject: Any, ctx: ValidationContext) -> tuple[FieldError, ...]:
        return tuple(self.produce(subject, ctx))


# ---------------------------------------------------------------------------
# Predicate builders
# ---------------------------------------------------------------------------


def _value(subject: Any, name: str) -> Any:
    return getattr(subject, name)


def _text(subject: Any, name: str) -> str:
    return getattr(subject, name) or ""


def _has_text(name: str) -> Check:
    return lambda s, ctx: bool(_text(s, name).strip())


def required_text(field: str, message: Message, when: Check | None = None) -> FieldRule:
    return FieldRule(field, _has_text(field), message, when)


def min_length(
    field: str,
    limit: str,
    message: Message,
    strip: bool = True,
    when: Check | None = None,
) -> FieldRule:
    """At least ``limits.<limit>`` characters."""

    def check(s: Any, ctx: ValidationContext) -> bool:
        value = _text(s, field)
        return len(value.strip() if strip else value) >= getattr(ctx.limits, limit)

    return FieldRule(field, check, message, when)


def max_length(field: str, limit: str, message: Message) -> FieldRule:
    """At most ``limits.<limit>`` characters.  An absent value passes."""
    return FieldRule(
        field,
        lambda s, ctx: len(_text(s, field)) <= getattr(ctx.limits, limit),
        message,
    )


def is_instance(field: str, kind: type, message: Message) -> FieldRule:
    return FieldRule(field, lambda s, ctx: isinstance(_value(s, field), kind), message)


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


def _target_date_not_past(s: Request, ctx: ValidationContext) -> bool:
    return s.target_return_date >= ctx.today


def _approval_errors(s: Request, ctx: ValidationContext) -> Iterable[FieldError]:
    evaluation = evaluate_approval_requirements(
        s.approvals,
        requires_communications_approval=s.requires_communications_approval,
        communications_only=s.communications_only,
        documents_attached=ctx.attachments.as_mapping(),
        today=ctx.today,
        title_max=ctx.limits.approval_title_max,
    )
    return evaluation.violations


def _is_rush(s: Request, ctx: ValidationContext) -> bool:
    return bool(s.is_rush_request)


DRAFT_RULES: tuple[Rule, ...] = (
    max_length("title", "title_max", lambda lim: f"Request title cannot exceed {lim.title_max} characters"),
    max_length("purpose", "purpose_max", lambda lim: f"Purpose cannot exceed {lim.purpose_max} characters"),
    max_length(
        "rush_rationale",
        "rush_rationale_max",
        lambda lim: f"Rush rationale cannot exceed {lim.rush_rationale_max} characters",
    ),
)

_TITLE_RULES: tuple[Rule, ...] = (
    min_length("title", "title_min", lambda lim: f"Request title must be at least {lim.title_min} characters"),
    max_length("title", "title_max", lambda lim: f"Request title cannot exceed {lim.title_max} characters"),
)

_PURPOSE_RULES: tuple[Rule, ...] = (
    min_length("purpose", "purpose_min", lambda lim: f"Purpose must be at least {lim.purpose_min} characters"),
    max_length("purpose", "purpose_max", lambda lim: f"Purpose cannot exceed {lim.purpose_max} characters"),
)

_TARGET_DATE_REQUIRED = FieldRule(
    "target_return_date",
    lambda s, ctx: s.target_return_date is not None,
    "Target return date is required",
)

_TARGET_DATE_PAST_MESSAGE = "Target return date cannot be in the past"

_RUSH_RULES: tuple[Rule, ...] = (
    required_text("rush_rationale", "Rush rationale is required for rush requests", when=_is_rush),
    max_length(
        "rush_rationale",
        "rush_rationale_max",
        lambda lim: f"Rush rationale cannot exceed {lim.rush_rationale_max} characters",
    ),
)

_DISTRIBUTION_RULE = FieldRule(
    "distribution_methods",
    lambda s, ctx: any(m and m.strip() for m in s.distribution_methods),
    "At least one distribution method is required",
)

SUBMIT_RULES: tuple[Rule, ...] = (
    *_TITLE_RULES,
    *_PURPOSE_RULES,
    _TARGET_DATE_REQUIRED,
    FieldRule(
        "target_return_date",
        _target_date_not_past,
        _TARGET_DATE_PAST_MESSAGE,
        when=lambda s, ctx: s.target_return_date is not None,
    ),
    *_RUSH_RULES,
    _DISTRIBUTION_RULE,
    is_instance("review_audience", ReviewAudience, "Review audience is required"),
    ComputedRule("approvals", _approval_errors),
    FieldRule(
        "attachments",
        lambda s, ctx: ctx.attachments.request_documents,
        "At least one attachment is required",
    ),
)


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatusScopedRule:
    """Applies ``rule`` only while ``applies`` holds for the stored request."""

    rule: Rule
    applies: Callable[[Request], bool]

    @property
    def field(self) -> str:
        return self.rule.field

    def evaluate(self, subject: Any, ctx: ValidationContext) -> tuple[FieldError, ...]:
        if not self.applies(ctx.request):
            return ()
        return self.rule.evaluate(subject, ctx)


def _is_draft(request: Request) -> bool:
    return request.is_new or request.status is RequestStatus.DRAFT


def _is_submitted(request: Request) -> bool:
    return not _is_draft(request)


def _target_date_changed(s: Request, ctx: ValidationContext) -> bool:
    return s.target_return_date is not None and s.target_return_date != ctx.request.target_return_date


# Submitted content keeps meeting the Submit rules.  The target date is only
# re-checked against today when it changes, and the audience is set at
# submission or attorney assignment, never by an edit.
SUBMITTED_EDIT_RULES: tuple[Rule, ...] = (
    *_TITLE_RULES,
    *_PURPOSE_RULES,
    _TARGET_DATE_REQUIRED,
    FieldRule(
        "target_return_date",
        _target_date_not_past,
        _TARGET_DATE_PAST_MESSAGE,
        when=_target_date_changed,
    ),
    *_RUSH_RULES,
    _DISTRIBUTION_RULE,
    FieldRule(
        "review_audience",
        lambda s, ctx: s.review_audience == ctx.request.review_audience,
        "Review audience can only be changed when an attorney is assigned",
    ),
    ComputedRule("approvals", _approval_errors),
)

EDIT_RULES: tuple[Rule, ...] = (
    *(StatusScopedRule(rule, _is_draft) for rule in DRAFT_RULES),
    *(StatusScopedRule(rule, _is_submitted) for rule in SUBMITTED_EDIT_RULES),
)


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------


def _effective_audience(s: Any, ctx: ValidationContext) -> ReviewAudience | None:
    return s.review_audience or ctx.request.review_audience


ASSIGNMENT_RULES: tuple[Rule, ...] = (
    FieldRule(
        "review_audience",
        lambda s, ctx: _effective_audience(s, ctx) is not None,
        "Review audience is required",
    ),
    FieldRule(
        "attorney",
        lambda s, ctx: s.attorney is not None,
        "Please select an attorney to assign",
        when=lambda s, ctx: (
            _effective_audience(s, ctx) is not None
            and _effective_audience(s, ctx).includes_legal
        ),
    ),
    max_length("notes", "notes_max", lambda lim: f"Notes cannot exceed {lim.notes_max} characters"),
)

REFERRAL_RULES: tuple[Rule, ...] = (
    max_length("notes", "notes_max", lambda lim: f"Notes cannot exceed {lim.notes_max} characters"),
)


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

_REVIEW_NOTES_MAX = max_length(
    "notes",
    "review_notes_max",
    lambda lim: f"Review notes cannot exceed {lim.review_notes_max} characters",
)

LEGAL_REVIEW_RULES: tuple[Rule, ...] = (
    is_instance("outcome", ReviewOutcome, "Review outcome is required"),
    _REVIEW_NOTES_MAX,
)

COMPLIANCE_REVIEW_RULES: tuple[Rule, ...] = (
    is_instance("outcome", ReviewOutcome, "Review outcome is required"),
    _REVIEW_NOTES_MAX,
    is_instance("is_foreside_review_required", bool, "Foreside review flag is required"),
    is_instance("is_retail_use", bool, "Retail use flag is required"),
)

RESUBMIT_RULES: tuple[Rule, ...] = (
    max_length(
        "notes",
        "resubmit_notes_max",
        lambda lim: f"Resubmission notes cannot exceed {lim.resubmit_notes_max} characters",
    ),
)


# ---------------------------------------------------------------------------
# Closeout
# ---------------------------------------------------------------------------


def _foreside_retail(s: Any, ctx: ValidationContext) -> bool:
    return ctx.request.requires_foreside_documents


CLOSEOUT_RULES: tuple[Rule, ...] = (
    required_text(
        "tracking_id",
        "Tracking ID is required when Foreside review is required and the request is for retail use",
        when=_foreside_retail,
    ),
    max_length(
        "tracking_id",
        "tracking_id_max",
        lambda lim: f"Tracking ID cannot exceed {lim.tracking_id_max} characters",
    ),
    max_length("notes", "notes_max", lambda lim: f"Closeout notes cannot exceed {lim.notes_max} characters"),
)

FORESIDE_RULES: tuple[Rule, ...] = (
    max_length("notes", "notes_max", lambda lim: f"Foreside notes cannot exceed {lim.notes_max} characters"),
)


# ---------------------------------------------------------------------------
# Side paths
# ---------------------------------------------------------------------------


def _reason_rules(label: str) -> tuple[Rule, ...]:
    return (
        required_text("reason", f"{label} reason is required"),
        min_length(
            "reason",
            "reason_min",
            lambda lim: f"{label} reason must be at least {lim.reason_min} characters",
            strip=False,
            when=_has_text("reason"),
        ),
        max_length(
            "reason",
            "reason_max",
            lambda lim: f"{label} reason cannot exceed {lim.reason_max} characters",
        ),
    )


CANCEL_RULES = _reason_rules("Cancel")
HOLD_RULES = _reason_rules("Hold")


RULESETS: dict[WorkflowAction, tuple[Rule, ...]] = {
    WorkflowAction.SAVE_DRAFT: DRAFT_RULES,
    WorkflowAction.EDIT: EDIT_RULES,
    WorkflowAction.SUBMIT: SUBMIT_RULES,
    WorkflowAction.ASSIGN_ATTORNEY: ASSIGNMENT_RULES,
    WorkflowAction.COMMITTEE_ASSIGN_ATTORNEY: ASSIGNMENT_RULES,
    WorkflowAction.SEND_TO_COMMITTEE: REFERRAL_RULES,
    WorkflowAction.SUBMIT_LEGAL_REVIEW: LEGAL_REVIEW_RULES,
    WorkflowAction.SUBMIT_COMPLIANCE_REVIEW: COMPLIANCE_REVIEW_RULES,
    WorkflowAction.RESUBMIT_LEGAL_REVIEW: RESUBMIT_RULES,
    WorkflowAction.RESUBMIT_COMPLIANCE_REVIEW: RESUBMIT_RULES,
    WorkflowAction.CLOSEOUT: CLOSEOUT_RULES,
    WorkflowAction.COMPLETE_FORESIDE_DOCUMENTS: FORESIDE_RULES,
    WorkflowAction.CANCEL: CANCEL_RULES,
    WorkflowAction.HOLD: HOLD_RULES,
    WorkflowAction.RESUME: (),
}


def validation_subject(action: WorkflowAction, payload: Any, request: Request) -> Any:
    """What the rules of ``action`` read: the merged record for draft edits, else the payload."""
    if isinstance(payload, DraftChanges):
        return payload.apply_to(request)
    return payload


def validate(
    action: WorkflowAction,
    payload: Any,
    ctx: ValidationContext,
) -> tuple[FieldError, ...]:
    """Run every rule for ``action`` and return all violations in table order."""
    payload = coerce_payload(action, payload)
    subject = validation_subject(action, payload, ctx.request)
    errors: list[FieldError] = []
    for rule in RULESETS.get(action, ()):
        errors.extend(rule.evaluate(subject, ctx))
    return tuple(errors)
