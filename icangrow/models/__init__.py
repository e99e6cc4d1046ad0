"""
ORM models. Importing this package registers every table on Base.metadata
(Alembic autogenerate and the test schema both rely on that).
"""

from icangrow.models.audit_log import AuditLog
from icangrow.models.commerce import (
    Client,
    Dispatch,
    DispatchItem,
    PurchaseOrder,
    PurchaseOrderItem,
    Supplier,
)
from icangrow.models.cultivation import Batch, BatchStage, GrowthCycle, Stage, Strain
from icangrow.models.ebr import EbrChecklistItem, EbrRecord
from icangrow.models.inventory import InventoryLot, StockLevel, StockMovement
from icangrow.models.production import DailyLog, FinishedGood, PackagingRun, WasteRecord
from icangrow.models.profile import Profile, UserInvitation
from icangrow.models.quality import (
    Audit,
    Capa,
    Deviation,
    EnvironmentalReading,
    QmsRecord,
    Sop,
    TrainingRecord,
)

__all__ = [
    "Audit",
    "AuditLog",
    "Batch",
    "BatchStage",
    "Capa",
    "Client",
    "DailyLog",
    "Deviation",
    "Dispatch",
    "DispatchItem",
    "EbrChecklistItem",
    "EbrRecord",
    "EnvironmentalReading",
    "FinishedGood",
    "GrowthCycle",
    "InventoryLot",
    "PackagingRun",
    "Profile",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "QmsRecord",
    "Sop",
    "Stage",
    "StockLevel",
    "StockMovement",
    "Strain",
    "Supplier",
    "TrainingRecord",
    "UserInvitation",
    "WasteRecord",
]
