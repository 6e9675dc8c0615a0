"""
Two-Stage Draft Validation

Checks a transaction draft before the user confirms it, typically one
suggested from a bank SMS.

STAGE 1 - REFERENCE VALIDATION:
- Amount must be positive
- Pillar must exist
- Sub-category, if given, must exist and belong to the pillar

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Budget overrun detection
- Duplicate detection against the ledger

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from smart_wallet.models.ledger import AppState, TransactionDraft, TransactionType, find_by_id
from smart_wallet.models.validation import ValidationIssue, ValidationResult


class TransactionDraftValidator:
    """Validates a draft against the current wallet state."""

    def __init__(self, future_tolerance_days: int = 1):
        self._future_tolerance = timedelta(days=future_tolerance_days)

    def _validate_references(
        self,
        draft: TransactionDraft,
        state: AppState,
    ) -> list[ValidationIssue]:
        issues = []

        if draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount shown in the message",
            ))

        if find_by_id(state.pillars, draft.pillar_id) is None:
            issues.append(ValidationIssue(
                field="pillar_id",
                issue_type="unknown_reference",
                message=f"Pillar '{draft.pillar_id}' does not exist",
                severity="error",
                suggested_fix="Pick one of your pillars",
            ))

        if draft.sub_category_id:
            sub = find_by_id(state.sub_categories, draft.sub_category_id)
            if sub is None:
                issues.append(ValidationIssue(
                    field="sub_category_id",
                    issue_type="unknown_reference",
                    message=f"Sub-category '{draft.sub_category_id}' does not exist",
                    severity="error",
                    suggested_fix="Pick a sub-category or leave it empty",
                ))
            elif sub.pillar_id != draft.pillar_id:
                issues.append(ValidationIssue(
                    field="sub_category_id",
                    issue_type="inconsistent",
                    message=f"Sub-category '{sub.name}' belongs to another pillar",
                    severity="error",
                    suggested_fix="Pick a sub-category of the selected pillar",
                ))

        return issues

    def _validate_semantic(
        self,
        draft: TransactionDraft,
        state: AppState,
    ) -> list[ValidationIssue]:
        issues = []

        if draft.date > datetime.now() + self._future_tolerance:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({draft.date.date()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        pillar = find_by_id(state.pillars, draft.pillar_id)
        if draft.type == TransactionType.EXPENSE and pillar is not None and pillar.budget > 0:
            spent = sum(
                (
                    t.amount for t in state.transactions
                    if t.type == TransactionType.EXPENSE
                    and t.pillar_id == pillar.id
                    and t.date.year == draft.date.year
                    and t.date.month == draft.date.month
                ),
                Decimal("0"),
            )
            if spent + draft.amount > pillar.budget:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="over_budget",
                    message=f"This takes '{pillar.name}' over its monthly budget",
                    severity="warning",
                ))

        for existing in state.transactions:
            if (
                existing.amount == draft.amount
                and existing.type == draft.type
                and existing.date.date() == draft.date.date()
                and existing.description.casefold() == draft.description.casefold()
            ):
                issues.append(ValidationIssue(
                    field="duplicate",
                    issue_type="potential_duplicate",
                    message=(
                        f"A {draft.type.value.lower()} of {draft.amount} on "
                        f"{draft.date.date()} is already recorded"
                    ),
                    severity="warning",
                    suggested_fix="Please verify this isn't a duplicate entry",
                ))
                break

        return issues

    def validate(self, draft: TransactionDraft, state: AppState) -> ValidationResult:
        """Run both stages and collect every issue found."""
        issues = self._validate_references(draft, state)
        if not any(issue.severity == "error" for issue in issues):
            issues.extend(self._validate_semantic(draft, state))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to non-technical users.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed! Please review the details below."

        lines = []

        if result.has_errors:
            lines.append("❌ This transaction cannot be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        lines.append("")
        if result.is_valid:
            lines.append("You can still proceed, but please review carefully.")
        else:
            lines.append("Please fix the issues above before continuing.")

        return "\n".join(lines)
