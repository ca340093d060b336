"""
Core Data Models for Settle Up

These models define the shapes that flow between storage, validation and
the settlement engine:
1. Participants (app users and invite-only contacts)
2. Expenses and their weighted splits
3. Derived balances and suggested settlements
4. Validation results for expense authoring

DESIGN DECISION: Money is Decimal, never float.
Rounding to cents happens in one place (settleup.engine.money) so the
engine never has to compare binary floating point amounts.

The models are deliberately permissive about split sums.
Checking that splits add up is the validator's job, not the model's.
"""

from datetime import date as date_type
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    SETTLEMENT is reserved for expenses recorded when a debt is paid off.
    """
    FOOD = "food"
    GROCERIES = "groceries"
    RENT = "rent"
    UTILITIES = "utilities"
    TRANSPORT = "transport"
    ENTERTAINMENT = "entertainment"
    TRAVEL = "travel"
    SHOPPING = "shopping"
    SETTLEMENT = "settlement"
    OTHER = "other"


class SettlementStatus(str, Enum):
    """Lifecycle of a settlement."""
    PENDING = "pending"
    COMPLETED = "completed"


class ExpenseInvolvement(str, Enum):
    """How the viewpoint user is involved in a single expense."""
    LENT = "lent"                  # Viewpoint user paid
    OWES = "owes"                  # Someone else paid, user has a share
    NOT_INVOLVED = "not_involved"  # No share, or a zero share


# =============================================================================
# PARTICIPANTS
# =============================================================================

class AppUser(BaseModel):
    """A registered user of the app."""
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: Literal["app_user"] = "app_user"
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    username: Optional[str] = Field(default=None, max_length=100)
    avatar_url: Optional[str] = None


class ExternalContact(BaseModel):
    """
    A friend who is not (yet) an app user.

    DESIGN DECISION: email is required here. An invite-only contact
    without an address could never be invited, so it is not representable.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: Literal["external"] = "external"
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    avatar_url: Optional[str] = None


Participant = Annotated[
    Union[AppUser, ExternalContact],
    Field(discriminator="kind"),
]

# Engine functions accept participant models or bare ids
ParticipantRef = Union[str, AppUser, ExternalContact]


def participant_id(participant: ParticipantRef) -> str:
    """Return the id of a participant model, or the id itself."""
    if isinstance(participant, str):
        return participant
    return participant.id


# =============================================================================
# EXPENSES
# =============================================================================

class ExpenseSplit(BaseModel):
    """The share of one expense allocated to one participant."""

    participant_id: str = Field(..., min_length=1)
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Share of the expense, in the expense's currency"
    )
    percentage: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Share as a percentage of the total, if known"
    )


class Expense(BaseModel):
    """
    A shared expense.

    payer_id need not appear in splits. When it does, that split is the
    payer's own share.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    description: str = Field(
        default="",
        max_length=200,
        description="What the expense was for"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Total amount paid"
    )
    date: date_type = Field(
        default_factory=date_type.today,
        description="Date of the expense"
    )
    payer_id: str = Field(
        ...,
        min_length=1,
        description="Participant who paid"
    )
    splits: list[ExpenseSplit] = Field(default_factory=list)
    category: ExpenseCategory = Field(default=ExpenseCategory.OTHER)
    notes: Optional[str] = Field(default=None, max_length=1000)
    proof_of_payment_url: Optional[str] = None

    @property
    def split_total(self) -> Decimal:
        """Sum of all split amounts."""
        return sum((split.amount for split in self.splits), Decimal("0"))

    def split_for(self, participant: str) -> Optional[ExpenseSplit]:
        """First split belonging to a participant, if any."""
        for split in self.splits:
            if split.participant_id == participant:
                return split
        return None


# =============================================================================
# DERIVED VALUES
# =============================================================================

class Balance(BaseModel):
    """
    Signed net amount for one participant.

    Positive: the participant owes the viewpoint user.
    Negative: the viewpoint user owes the participant.
    """

    participant_id: str
    amount: Decimal


class Settlement(BaseModel):
    """
    A suggested or recorded payment: from_id pays to_id.

    No generated id, so planner output is identical across runs.
    Recorded settlements are keyed by their (from_id, to_id) pair.
    """

    from_id: str
    to_id: str
    amount: Decimal = Field(..., gt=0)
    status: SettlementStatus = Field(default=SettlementStatus.PENDING)
    proof_of_payment_url: Optional[str] = None


class BalanceSummary(BaseModel):
    """Totals shown on a balance sheet."""

    total_owed_to_you: Decimal
    total_you_owe: Decimal

    @property
    def net(self) -> Decimal:
        return self.total_owed_to_you - self.total_you_owe


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'split_mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of validating an expense before it is saved."""

    expense_id: UUID = Field(
        ...,
        description="ID of the expense being validated"
    )
    is_valid: bool = Field(
        ...,
        description="True when there are no error-level issues"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
