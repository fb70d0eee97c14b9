"""Scaffold module - model-proposed file plans, reviewed and applied atomically."""

from scaffoldplane.scaffold.engine import (
    ScaffoldEngine,
    ScaffoldOutcome,
    ScaffoldProposal,
    ScaffoldState,
)
from scaffoldplane.scaffold.plan import FilePlan, ParsedPlan, PlannedFile, RejectedPath, parse_plan
from scaffoldplane.scaffold.review import (
    AutoApproveDecider,
    DeclineDecider,
    ReviewDecider,
    ReviewItem,
)
from scaffoldplane.scaffold.transaction import ApplyTransaction, FileWrite, TransactionResult
from scaffoldplane.scaffold.validation import SanitizedFile, ValidatedPlan, validate_plan

__all__ = [
    "ApplyTransaction",
    "AutoApproveDecider",
    "DeclineDecider",
    "FilePlan",
    "FileWrite",
    "ParsedPlan",
    "PlannedFile",
    "RejectedPath",
    "ReviewDecider",
    "ReviewItem",
    "SanitizedFile",
    "ScaffoldEngine",
    "ScaffoldOutcome",
    "ScaffoldProposal",
    "ScaffoldState",
    "TransactionResult",
    "ValidatedPlan",
    "parse_plan",
    "validate_plan",
]
