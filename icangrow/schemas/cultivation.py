"""
Request/response models for strains, growth cycles, batches and stages.

Covers /api/v1/erp/* and /api/v1/stages.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from icangrow.lifecycle import BatchStageStatus, BatchStatus, CycleStatus, GrowthStage
from icangrow.schemas.common import RequestModel


# ══════════════════════════════════════════════════════════════════════════
# Strains
# ══════════════════════════════════════════════════════════════════════════


class StrainCreate(RequestModel):
    name: str = Field(min_length=1, max_length=100)
    genetics: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    flowering_time_days: Optional[int] = Field(default=None, ge=1, le=365)
    is_active: bool = True


class StrainUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    genetics: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    flowering_time_days: Optional[int] = Field(default=None, ge=1, le=365)
    is_active: Optional[bool] = None


class StrainResponse(BaseModel):
    id: uuid.UUID
    name: str
    genetics: Optional[str] = None
    description: Optional[str] = None
    flowering_time_days: Optional[int] = None
    is_active: bool
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ══════════════════════════════════════════════════════════════════════════
# Growth Cycles
# ══════════════════════════════════════════════════════════════════════════


class CycleStrain(BaseModel):
    """One entry of GrowthCycle.strains."""

    strain_id: uuid.UUID
    is_primary: bool = False


class GrowthCycleCreate(RequestModel):
    name: str = Field(min_length=1, max_length=100)
    facility_location: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: Optional[date] = None
    status: CycleStatus = CycleStatus.PLANNING
    strains: List[CycleStrain] = Field(min_length=1)
    notes: Optional[str] = None


class GrowthCycleUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    facility_location: Optional[str] = Field(default=None, min_length=1, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[CycleStatus] = None
    strains: Optional[List[CycleStrain]] = Field(default=None, min_length=1)
    notes: Optional[str] = None


class GrowthCycleResponse(BaseModel):
    id: uuid.UUID
    name: str
    facility_location: str
    start_date: date
    end_date: Optional[date] = None
    status: str
    strains: List[CycleStrain] = []
    notes: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ══════════════════════════════════════════════════════════════════════════
# Batches
# ══════════════════════════════════════════════════════════════════════════


class BatchCreate(RequestModel):
    """
    `strain` may be a strain name or a strain id; BatchService resolves it
    and checks that it belongs to the cycle.
    """

    name: str = Field(min_length=1, max_length=100)
    strain: str = Field(min_length=1, max_length=100)
    cycle_id: uuid.UUID
    room: str = Field(min_length=1, max_length=100)
    plant_count: int = Field(default=0, ge=0)
    progress: int = Field(default=0, ge=0, le=100)
    current_stage: GrowthStage = GrowthStage.CLONING
    status: BatchStatus = BatchStatus.ACTIVE
    start_date: Optional[date] = None
    clone_date: Optional[date] = None
    expected_harvest_date: Optional[date] = None
    notes: Optional[str] = None


class BatchUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    strain: Optional[str] = Field(default=None, min_length=1, max_length=100)
    cycle_id: Optional[uuid.UUID] = None
    room: Optional[str] = Field(default=None, min_length=1, max_length=100)
    plant_count: Optional[int] = Field(default=None, ge=0)
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    current_stage: Optional[GrowthStage] = None
    status: Optional[BatchStatus] = None
    start_date: Optional[date] = None
    clone_date: Optional[date] = None
    expected_harvest_date: Optional[date] = None
    notes: Optional[str] = None


class BatchResponse(BaseModel):
    id: uuid.UUID
    name: str
    strain: str
    strain_id: Optional[uuid.UUID] = None
    cycle_id: uuid.UUID
    room: str
    plant_count: int
    progress: int
    current_stage: str
    status: str
    start_date: Optional[date] = None
    clone_date: Optional[date] = None
    expected_harvest_date: Optional[date] = None
    notes: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BatchSummary(BaseModel):
    """Batch fields joined onto eBR list rows."""

    id: uuid.UUID
    name: str
    strain: str
    current_stage: str
    status: str
    room: str

    model_config = ConfigDict(from_attributes=True)


# ══════════════════════════════════════════════════════════════════════════
# Stages & Batch Stages
# ══════════════════════════════════════════════════════════════════════════


class StageCreate(RequestModel):
    name: str = Field(min_length=1, max_length=50)
    display_name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    default_duration_days: Optional[int] = Field(default=None, ge=0)
    stage_order: int = Field(default=0, ge=0)
    requirements: List[str] = []
    is_active: bool = True


class StageUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    default_duration_days: Optional[int] = Field(default=None, ge=0)
    stage_order: Optional[int] = Field(default=None, ge=0)
    requirements: Optional[List[str]] = None
    is_active: Optional[bool] = None


class StageResponse(BaseModel):
    id: uuid.UUID
    name: str
    display_name: str
    description: Optional[str] = None
    default_duration_days: Optional[int] = None
    stage_order: int
    requirements: List[str] = []
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BatchStageCreate(RequestModel):
    stage_id: uuid.UUID
    status: BatchStageStatus = BatchStageStatus.PENDING
    stage_weight: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class BatchStageBulkCreate(RequestModel):
    stages: List[BatchStageCreate] = Field(min_length=1)


class BatchStageUpdate(RequestModel):
    status: Optional[BatchStageStatus] = None
    stage_weight: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class BatchStageResponse(BaseModel):
    id: uuid.UUID
    batch_id: uuid.UUID
    stage_id: uuid.UUID
    status: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    stage_weight: Optional[float] = None
    notes: Optional[str] = None
    stage: Optional[StageResponse] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
