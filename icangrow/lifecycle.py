"""
iCanGrow API — Lifecycle States & Transition Tables
=====================================================

What:  Closed sets of status values for every entity, plus the allowed
       next-states for the ones that move through a lifecycle.
Why:   Status columns are plain strings in the store. Validating the value
       (request schemas type their fields with these enums) and the move
       (services call TransitionTable.check) in one module keeps every
       service from inventing its own rules.

Usage:
    EBR_DISPOSITION.check(record.pass_fail_status, PassFailStatus.PASS)
    # → raises InvalidTransitionError if the move is not in the table
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Union

from icangrow.exceptions import InvalidTransitionError

StatusValue = Union[str, Enum, None]


def _value(status: StatusValue) -> Optional[str]:
    return getattr(status, "value", status)


# ── Identity ──────────────────────────────────────────────────────────────

class Role(str, Enum):
    ADMIN = "admin"
    GROWER = "grower"
    CULTIVATION_LEAD = "cultivation_lead"
    QA_MANAGER = "qa_manager"
    PACKAGING_DISPATCH = "packaging_dispatch"
    ENVIRONMENTAL_TECH = "environmental_tech"


class ProfileStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


# ── Cultivation ───────────────────────────────────────────────────────────

class GrowthStage(str, Enum):
    CLONING = "cloning"
    VEGETATIVE = "vegetative"
    FLOWERING = "flowering"
    HARVEST = "harvest"
    DRYING = "drying"
    PACKAGING = "packaging"


class BatchStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class CycleStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class BatchStageStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


# ── Quality ───────────────────────────────────────────────────────────────

class PassFailStatus(str, Enum):
    PENDING = "pending"
    PASS = "pass"
    FAIL = "fail"
    CONDITIONAL = "conditional"


class ComplianceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ChecklistCategory(str, Enum):
    DOCUMENTATION = "documentation"
    DEVIATIONS = "deviations"
    ENVIRONMENTAL = "environmental"
    QUALITY = "quality"
    PACKAGING = "packaging"
    TESTING = "testing"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DeviationStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class CapaActionType(str, Enum):
    CORRECTIVE = "corrective"
    PREVENTIVE = "preventive"
    BOTH = "both"


class CapaStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SopStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    SUPERSEDED = "superseded"
    OBSOLETE = "obsolete"


class TrainingStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    EXPIRED = "expired"


class EnvironmentalStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    ALERT = "alert"


class AuditStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class QmsRecordType(str, Enum):
    CHECKLIST = "checklist"
    INSPECTION = "inspection"
    DEVIATION = "deviation"
    CORRECTIVE_ACTION = "corrective_action"
    PREVENTIVE_ACTION = "preventive_action"
    AUDIT_FINDING = "audit_finding"


class QmsRecordStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CLOSED = "closed"


# ── Supply chain ──────────────────────────────────────────────────────────

class SupplierApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class PurchaseOrderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class DispatchStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class LotStatus(str, Enum):
    AVAILABLE = "available"
    APPROVED = "approved"
    QUARANTINE = "quarantine"
    DEPLETED = "depleted"


# ══════════════════════════════════════════════════════════════════════════
# Transition Tables
# ══════════════════════════════════════════════════════════════════════════

class TransitionTable:
    """
    Allowed next-states per current state for one entity.

    A state listed with an empty set is terminal. A state missing from the
    table (legacy free-form values) cannot transition anywhere.
    """

    def __init__(self, entity: str, transitions: Mapping[StatusValue, Iterable[StatusValue]]):
        self.entity = entity
        self._transitions: Dict[str, FrozenSet[str]] = {
            _value(current): frozenset(_value(t) for t in targets)
            for current, targets in transitions.items()
        }

    def allowed(self, current: StatusValue, target: StatusValue) -> bool:
        return _value(target) in self._transitions.get(_value(current), frozenset())

    def check(self, current: StatusValue, target: StatusValue) -> None:
        if not self.allowed(current, target):
            raise InvalidTransitionError(self.entity, _value(current), _value(target))

    def targets(self, current: StatusValue) -> FrozenSet[str]:
        return self._transitions.get(_value(current), frozenset())


# A disposition may be repeated (pass → pass refreshes approval metadata) but
# never flipped; moving back to pending goes through EbrService.reopen.
EBR_DISPOSITION = TransitionTable("eBR record", {
    PassFailStatus.PENDING: {PassFailStatus.PASS, PassFailStatus.FAIL, PassFailStatus.CONDITIONAL},
    PassFailStatus.CONDITIONAL: {PassFailStatus.PASS, PassFailStatus.FAIL},
    PassFailStatus.PASS: {PassFailStatus.PASS},
    PassFailStatus.FAIL: {PassFailStatus.FAIL},
})

BATCH_TRANSITIONS = TransitionTable("batch", {
    BatchStatus.ACTIVE: {BatchStatus.COMPLETED, BatchStatus.ARCHIVED},
    BatchStatus.COMPLETED: {BatchStatus.ARCHIVED, BatchStatus.ACTIVE},
    BatchStatus.ARCHIVED: set(),
})

CYCLE_TRANSITIONS = TransitionTable("growth cycle", {
    CycleStatus.PLANNING: {CycleStatus.ACTIVE, CycleStatus.ARCHIVED},
    CycleStatus.ACTIVE: {CycleStatus.COMPLETED, CycleStatus.ARCHIVED},
    CycleStatus.COMPLETED: {CycleStatus.ARCHIVED},
    CycleStatus.ARCHIVED: set(),
})

BATCH_STAGE_TRANSITIONS = TransitionTable("batch stage", {
    BatchStageStatus.PENDING: {BatchStageStatus.ACTIVE},
    BatchStageStatus.ACTIVE: {BatchStageStatus.COMPLETED},
    BatchStageStatus.COMPLETED: set(),
})

DEVIATION_TRANSITIONS = TransitionTable("deviation", {
    DeviationStatus.OPEN: {DeviationStatus.IN_PROGRESS, DeviationStatus.RESOLVED, DeviationStatus.CLOSED},
    DeviationStatus.IN_PROGRESS: {DeviationStatus.RESOLVED, DeviationStatus.CLOSED},
    DeviationStatus.RESOLVED: {DeviationStatus.CLOSED, DeviationStatus.OPEN},  # re-open on recurrence
    DeviationStatus.CLOSED: set(),
})

CAPA_TRANSITIONS = TransitionTable("CAPA", {
    CapaStatus.OPEN: {CapaStatus.IN_PROGRESS, CapaStatus.COMPLETED, CapaStatus.CANCELLED},
    CapaStatus.IN_PROGRESS: {CapaStatus.COMPLETED, CapaStatus.CANCELLED},
    CapaStatus.COMPLETED: set(),
    CapaStatus.CANCELLED: set(),
})

SOP_TRANSITIONS = TransitionTable("SOP", {
    SopStatus.DRAFT: {SopStatus.REVIEW, SopStatus.APPROVED, SopStatus.OBSOLETE},
    SopStatus.REVIEW: {SopStatus.DRAFT, SopStatus.APPROVED, SopStatus.OBSOLETE},
    SopStatus.APPROVED: {SopStatus.SUPERSEDED, SopStatus.OBSOLETE},
    SopStatus.SUPERSEDED: {SopStatus.OBSOLETE},
    SopStatus.OBSOLETE: set(),
})

TRAINING_TRANSITIONS = TransitionTable("training record", {
    TrainingStatus.SCHEDULED: {TrainingStatus.IN_PROGRESS, TrainingStatus.COMPLETED, TrainingStatus.EXPIRED},
    TrainingStatus.IN_PROGRESS: {TrainingStatus.COMPLETED, TrainingStatus.EXPIRED},
    TrainingStatus.COMPLETED: {TrainingStatus.EXPIRED},
    TrainingStatus.EXPIRED: {TrainingStatus.SCHEDULED},
})

AUDIT_TRANSITIONS = TransitionTable("audit", {
    AuditStatus.PLANNED: {AuditStatus.IN_PROGRESS, AuditStatus.COMPLETED, AuditStatus.CANCELLED},
    AuditStatus.IN_PROGRESS: {AuditStatus.COMPLETED, AuditStatus.CANCELLED},
    AuditStatus.COMPLETED: set(),
    AuditStatus.CANCELLED: set(),
})

SUPPLIER_APPROVAL_TRANSITIONS = TransitionTable("supplier", {
    SupplierApprovalStatus.PENDING: {
        SupplierApprovalStatus.APPROVED,
        SupplierApprovalStatus.REJECTED,
        SupplierApprovalStatus.ARCHIVED,
    },
    SupplierApprovalStatus.APPROVED: {SupplierApprovalStatus.REJECTED, SupplierApprovalStatus.ARCHIVED},
    SupplierApprovalStatus.REJECTED: {SupplierApprovalStatus.APPROVED, SupplierApprovalStatus.ARCHIVED},
    SupplierApprovalStatus.ARCHIVED: set(),
})

PURCHASE_ORDER_TRANSITIONS = TransitionTable("purchase order", {
    PurchaseOrderStatus.PENDING: {PurchaseOrderStatus.APPROVED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.APPROVED: {PurchaseOrderStatus.DELIVERED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.DELIVERED: set(),
    PurchaseOrderStatus.CANCELLED: set(),
})

DISPATCH_TRANSITIONS = TransitionTable("dispatch", {
    DispatchStatus.DRAFT: {DispatchStatus.CONFIRMED, DispatchStatus.CANCELLED},
    DispatchStatus.CONFIRMED: {DispatchStatus.DELIVERED},
    DispatchStatus.DELIVERED: set(),
    DispatchStatus.CANCELLED: set(),
})

LOT_TRANSITIONS = TransitionTable("inventory lot", {
    LotStatus.AVAILABLE: {LotStatus.APPROVED, LotStatus.QUARANTINE, LotStatus.DEPLETED},
    LotStatus.APPROVED: {LotStatus.AVAILABLE, LotStatus.QUARANTINE, LotStatus.DEPLETED},
    LotStatus.QUARANTINE: {LotStatus.AVAILABLE},
    LotStatus.DEPLETED: set(),
})
