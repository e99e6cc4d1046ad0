"""Initial schema

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

Creates every table of the ERP/QMS store: identity, cultivation, eBR,
quality records, audits, production records, inventory and commerce.
Tables are created in foreign-key order and dropped in reverse.

Rollback: downgrade() drops all tables (destructive).
"""

from typing import List, Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True, comment="Unique identifier")


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _timestamps() -> List[sa.Column]:
    return [_created_at(), sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)]


def _profile_fk(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=nullable)


def _created_at_index(table: str) -> None:
    op.create_index(f"ix_{table}_created_at", table, ["created_at"])


TABLES = (
    "profiles",
    "user_invitations",
    "strains",
    "growth_cycles",
    "batches",
    "stages",
    "batch_stages",
    "qms_ebr",
    "ebr_review_checklist",
    "deviations",
    "capas",
    "sops",
    "training_records",
    "environmental_monitoring",
    "audits",
    "qms_records",
    "daily_logs",
    "packaging_runs",
    "finished_goods_inventory",
    "waste_records",
    "audit_logs",
    "inventory_lots",
    "stock_levels",
    "stock_movements",
    "suppliers",
    "purchase_orders",
    "purchase_order_items",
    "clients",
    "dispatches",
    "dispatch_items",
)


def upgrade() -> None:
    # ── Identity ──────────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        _id(),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(100), nullable=True),
        sa.Column(
            "role",
            sa.String(50),
            nullable=True,
            comment="admin, grower, cultivation_lead, qa_manager, packaging_dispatch, environmental_tech",
        ),
        sa.Column("status", sa.String(20), nullable=False, comment="pending, active, inactive, suspended"),
        sa.Column("facility", sa.String(100), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "user_invitations",
        _id(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("token", sa.String(128), nullable=False, unique=True),
        sa.Column("role", sa.String(50), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        _profile_fk("invited_by", nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_user_invitations_email", "user_invitations", ["email"])

    # ── Cultivation ───────────────────────────────────────────────────────
    op.create_table(
        "strains",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("genetics", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("flowering_time_days", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _profile_fk("created_by"),
        *_timestamps(),
    )

    op.create_table(
        "growth_cycles",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("facility_location", sa.String(100), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("strains", sa.JSON(), nullable=False, comment='[{"strain_id": "...", "is_primary": true}, ...]'),
        sa.Column("notes", sa.Text(), nullable=True),
        _profile_fk("created_by"),
        *_timestamps(),
    )

    op.create_table(
        "batches",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("strain", sa.String(100), nullable=False),
        sa.Column("strain_id", sa.Uuid(), sa.ForeignKey("strains.id"), nullable=True),
        sa.Column("cycle_id", sa.Uuid(), sa.ForeignKey("growth_cycles.id"), nullable=False),
        sa.Column("room", sa.String(100), nullable=False),
        sa.Column("plant_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0", comment="0-100"),
        sa.Column("current_stage", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("clone_date", sa.Date(), nullable=True),
        sa.Column("expected_harvest_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _profile_fk("created_by"),
        *_timestamps(),
    )
    op.create_index("idx_batches_cycle_id", "batches", ["cycle_id"])

    op.create_table(
        "stages",
        _id(),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("default_duration_days", sa.Integer(), nullable=True),
        sa.Column("stage_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("requirements", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "batch_stages",
        _id(),
        sa.Column("batch_id", sa.Uuid(), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("stage_id", sa.Uuid(), sa.ForeignKey("stages.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stage_weight", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_batch_stages_batch_id", "batch_stages", ["batch_id"])

    # ── Electronic batch records ──────────────────────────────────────────
    op.create_table(
        "qms_ebr",
        _id(),
        sa.Column("ebr_number", sa.String(50), nullable=False, unique=True),
        sa.Column("batch_id", sa.Uuid(), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("batch_name", sa.String(100), nullable=False),
        sa.Column("strain", sa.String(100), nullable=False),
        sa.Column("current_stage", sa.String(20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("total_plant_count", sa.Integer(), nullable=True),
        sa.Column("compliance_status", sa.String(20), nullable=False),
        sa.Column("pass_fail_status", sa.String(20), nullable=False),
        sa.Column("compliance_score", sa.Float(), nullable=True, comment="0-100"),
        _profile_fk("approved_by"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("requires_reprocessing", sa.Boolean(), nullable=True),
        _profile_fk("reviewed_by"),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("packaging_complete", sa.Boolean(), nullable=True),
        sa.Column("stage_reviews_complete", sa.Boolean(), nullable=True),
        sa.Column("waste_recorded", sa.Boolean(), nullable=True),
        sa.Column("daily_logs_count", sa.Integer(), nullable=True),
        sa.Column("critical_deviations_count", sa.Integer(), nullable=True),
        sa.Column("environmental_alerts_count", sa.Integer(), nullable=True),
        sa.Column("failed_hygiene_checks_count", sa.Integer(), nullable=True),
        sa.Column("final_weight", sa.Float(), nullable=True),
        sa.Column("completion_date", sa.Date(), nullable=True),
        _profile_fk("created_by", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("batch_id", name="uq_qms_ebr_batch_id"),
    )

    op.create_table(
        "ebr_review_checklist",
        _id(),
        sa.Column("ebr_id", sa.Uuid(), sa.ForeignKey("qms_ebr.id"), nullable=False),
        sa.Column("checklist_item", sa.Text(), nullable=False),
        sa.Column("item_category", sa.String(30), nullable=False),
        sa.Column("is_compliant", sa.Boolean(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("evidence_urls", sa.JSON(), nullable=True),
        _profile_fk("reviewer_id", nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_ebr_checklist_ebr_id", "ebr_review_checklist", ["ebr_id"])

    # ── Quality records ───────────────────────────────────────────────────
    op.create_table(
        "deviations",
        _id(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("batch_id", sa.Uuid(), sa.ForeignKey("batches.id"), nullable=True),
        sa.Column("stage_id", sa.Uuid(), sa.ForeignKey("stages.id"), nullable=True),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=True),
        _profile_fk("assignee"),
        sa.Column("root_cause", sa.Text(), nullable=True),
        sa.Column("corrective_action", sa.Text(), nullable=True),
        sa.Column("preventive_action", sa.Text(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("auto_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        _profile_fk("reported_by", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_deviations_batch_id", "deviations", ["batch_id"])

    op.create_table(
        "capas",
        _id(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("deviation_id", sa.Uuid(), sa.ForeignKey("deviations.id"), nullable=True),
        sa.Column("action_type", sa.String(20), nullable=False),
        _profile_fk("assignee"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("effectiveness_review", sa.Text(), nullable=True),
        sa.Column("completion_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_date", sa.Date(), nullable=True),
        _profile_fk("created_by", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_capas_deviation_id", "capas", ["deviation_id"])

    op.create_table(
        "sops",
        _id(),
        sa.Column("sop_number", sa.String(50), nullable=False, unique=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("version", sa.String(20), nullable=False, server_default="1.0"),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=True),
        sa.Column("review_date", sa.Date(), nullable=True),
        _profile_fk("approved_by"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        _profile_fk("created_by", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_sops_category", "sops", ["category"])

    op.create_table(
        "training_records",
        _id(),
        _profile_fk("user_id", nullable=False),
        sa.Column("sop_id", sa.Uuid(), sa.ForeignKey("sops.id"), nullable=True),
        sa.Column("training_type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        _profile_fk("trainer_id"),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("completion_date", sa.Date(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("certificate_url", sa.String(500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_training_records_user_id", "training_records", ["user_id"])

    op.create_table(
        "environmental_monitoring",
        _id(),
        sa.Column("room_name", sa.String(100), nullable=False),
        sa.Column("batch_id", sa.Uuid(), sa.ForeignKey("batches.id"), nullable=True),
        sa.Column("stage_id", sa.Uuid(), sa.ForeignKey("stages.id"), nullable=True),
        sa.Column("temperature", sa.Float(), nullable=True),
        sa.Column("humidity", sa.Float(), nullable=True),
        sa.Column("co2_level", sa.Float(), nullable=True),
        sa.Column("ph_level", sa.Float(), nullable=True),
        sa.Column("ec_level", sa.Float(), nullable=True),
        sa.Column("light_level", sa.Float(), nullable=True),
        sa.Column("target_range_min", sa.Float(), nullable=True),
        sa.Column("target_range_max", sa.Float(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("sensor_id", sa.String(100), nullable=True),
        sa.Column("source", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("linked_deviation_id", sa.Uuid(), sa.ForeignKey("deviations.id"), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        _profile_fk("recorded_by", nullable=False),
        _created_at(),
    )
    op.create_index("ix_environmental_monitoring_room_name", "environmental_monitoring", ["room_name"])
    op.create_index("ix_environmental_monitoring_batch_id", "environmental_monitoring", ["batch_id"])

    # ── Audits ────────────────────────────────────────────────────────────
    op.create_table(
        "audits",
        _id(),
        sa.Column("audit_number", sa.String(50), nullable=False, unique=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("auditor", sa.String(100), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("completed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("scope", sa.Text(), nullable=True),
        sa.Column("objectives", sa.Text(), nullable=True),
        sa.Column("criteria", sa.Text(), nullable=True),
        sa.Column("location", sa.String(100), nullable=True),
        sa.Column("results", sa.Text(), nullable=True),
        sa.Column("recommendations", sa.Text(), nullable=True),
        sa.Column("findings_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("open_findings", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("documents", sa.JSON(), nullable=True),
        sa.Column("batch_id", sa.Uuid(), sa.ForeignKey("batches.id"), nullable=True),
        sa.Column("cycle_id", sa.Uuid(), sa.ForeignKey("growth_cycles.id"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _profile_fk("created_by", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_audits_scheduled_date", "audits", ["scheduled_date"])

    op.create_table(
        "qms_records",
        _id(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("record_type", sa.String(30), nullable=False),
        sa.Column("reference_number", sa.String(50), nullable=True, unique=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("severity", sa.String(20), nullable=True),
        sa.Column("batch_id", sa.Uuid(), sa.ForeignKey("batches.id"), nullable=True),
        sa.Column("cycle_id", sa.Uuid(), sa.ForeignKey("growth_cycles.id"), nullable=True),
        sa.Column("stage_id", sa.Uuid(), sa.ForeignKey("stages.id"), nullable=True),
        sa.Column("parent_record_id", sa.Uuid(), sa.ForeignKey("qms_records.id"), nullable=True),
        _profile_fk("assigned_to"),
        _profile_fk("reviewed_by"),
        _profile_fk("approved_by"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("completed_date", sa.Date(), nullable=True),
        sa.Column("attachments", sa.JSON(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=True),
        _profile_fk("created_by", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_qms_records_record_type", "qms_records", ["record_type"])
    op.create_index("ix_qms_records_batch_id", "qms_records", ["batch_id"])

    # ── Production records ────────────────────────────────────────────────
    op.create_table(
        "daily_logs",
        _id(),
        sa.Column("batch_id", sa.Uuid(), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("stage", sa.String(20), nullable=False),
        sa.Column("stage_id", sa.Uuid(), sa.ForeignKey("stages.id"), nullable=True),
        sa.Column("plant_count", sa.Integer(), nullable=True),
        sa.Column("previous_plant_count", sa.Integer(), nullable=True),
        sa.Column("plant_variance", sa.Float(), nullable=True),
        sa.Column("plant_variance_percentage", sa.Float(), nullable=True),
        sa.Column("temperature", sa.Float(), nullable=True),
        sa.Column("humidity", sa.Float(), nullable=True),
        sa.Column("ph_level", sa.Float(), nullable=True),
        sa.Column("co2_level", sa.Float(), nullable=True),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("actions", sa.Text(), nullable=True),
        sa.Column("actions_taken", sa.Text(), nullable=True),
        sa.Column("issues", sa.Text(), nullable=True),
        sa.Column("issues_raised", sa.Text(), nullable=True),
        sa.Column("activity_types", sa.JSON(), nullable=True),
        sa.Column("photos", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _profile_fk("logged_by", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_daily_logs_batch_id", "daily_logs", ["batch_id"])
    op.create_index("ix_daily_logs_date", "daily_logs", ["date"])

    op.create_table(
        "packaging_runs",
        _id(),
        sa.Column("batch_id", sa.Uuid(), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("coa_id", sa.Uuid(), nullable=True),
        sa.Column("moisture_percentage", sa.Float(), nullable=True),
        sa.Column("visual_inspection_pass", sa.Boolean(), nullable=False),
        sa.Column("packaging_integrity", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("attachments", sa.JSON(), nullable=True),
        _profile_fk("approved_by"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        _profile_fk("created_by", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_packaging_runs_batch_id", "packaging_runs", ["batch_id"])

    op.create_table(
        "finished_goods_inventory",
        _id(),
        sa.Column("batch_id", sa.Uuid(), sa.ForeignKey("batches.id"), nullable=True),
        sa.Column("coa_id", sa.Uuid(), nullable=True),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("strain", sa.String(100), nullable=False),
        sa.Column("unit_type", sa.String(20), nullable=False, server_default="grams"),
        sa.Column("quantity_available", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quantity_reserved", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("price_per_gram", sa.Float(), nullable=True),
        sa.Column("cost_per_gram", sa.Float(), nullable=True),
        sa.Column("production_cost", sa.Float(), nullable=True),
        sa.Column("total_cost", sa.Float(), nullable=True),
        sa.Column("qa_status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("quarantine_status", sa.String(50), nullable=True),
        sa.Column("storage_location", sa.String(100), nullable=True),
        sa.Column("package_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("thc_percentage", sa.Float(), nullable=True),
        sa.Column("cbd_percentage", sa.Float(), nullable=True),
        _profile_fk("created_by", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_finished_goods_inventory_batch_id", "finished_goods_inventory", ["batch_id"])

    op.create_table(
        "waste_records",
        _id(),
        sa.Column("batch_id", sa.Uuid(), sa.ForeignKey("batches.id"), nullable=False),
        sa.Column("waste_type", sa.String(100), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(20), nullable=False),
        sa.Column("reason", sa.String(500), nullable=False),
        sa.Column("disposal_method", sa.String(100), nullable=False),
        sa.Column("disposal_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("photos", sa.JSON(), nullable=True),
        _profile_fk("created_by", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_waste_records_batch_id", "waste_records", ["batch_id"])

    op.create_table(
        "audit_logs",
        _id(),
        _profile_fk("user_id", nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=False),
        sa.Column("resource_id", sa.String(64), nullable=True),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        _created_at(),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])

    # ── Inventory ─────────────────────────────────────────────────────────
    op.create_table(
        "inventory_lots",
        _id(),
        sa.Column("lot_code", sa.String(50), nullable=False, unique=True),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("product_type", sa.String(50), nullable=False),
        sa.Column("strain", sa.String(100), nullable=False),
        sa.Column("batch_id", sa.Uuid(), sa.ForeignKey("batches.id"), nullable=True),
        sa.Column("facility", sa.String(100), nullable=False),
        sa.Column("stage", sa.String(20), nullable=False, server_default="packaging"),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False, server_default="0"),
        sa.Column("unit_of_measure", sa.String(20), nullable=False, server_default="units"),
        sa.Column("coa_approved", sa.Boolean(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        _profile_fk("created_by"),
        *_timestamps(),
    )

    op.create_table(
        "stock_levels",
        _id(),
        sa.Column("lot_id", sa.Uuid(), sa.ForeignKey("inventory_lots.id"), nullable=False, unique=True),
        sa.Column("facility", sa.String(100), nullable=False),
        sa.Column("available_quantity", sa.Float(), nullable=False, server_default="0"),
        sa.Column("reserved_quantity", sa.Float(), nullable=False, server_default="0"),
    )

    op.create_table(
        "stock_movements",
        _id(),
        sa.Column("lot_id", sa.Uuid(), sa.ForeignKey("inventory_lots.id"), nullable=False),
        sa.Column("movement_type", sa.String(20), nullable=False, comment="adjust, quarantine, release, dispatch"),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit_of_measure", sa.String(20), nullable=False, server_default="units"),
        sa.Column("from_facility", sa.String(100), nullable=True),
        sa.Column("to_facility", sa.String(100), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("reference_type", sa.String(50), nullable=True),
        sa.Column("reference_id", sa.Uuid(), nullable=True),
        _profile_fk("performed_by", nullable=False),
        _created_at(),
    )
    op.create_index("ix_stock_movements_lot_id", "stock_movements", ["lot_id"])

    # ── Commerce ──────────────────────────────────────────────────────────
    op.create_table(
        "suppliers",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("contact_person", sa.String(100), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("supplier_type", sa.String(50), nullable=False),
        sa.Column("license_number", sa.String(100), nullable=True),
        sa.Column("materials_supplied", sa.JSON(), nullable=True),
        sa.Column("payment_terms", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("approval_status", sa.String(20), nullable=False),
        _profile_fk("approved_by"),
        sa.Column("approval_date", sa.Date(), nullable=True),
        sa.Column("certification_expiry", sa.Date(), nullable=True),
        sa.Column("quality_rating", sa.Float(), nullable=True),
        sa.Column("delivery_rating", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _profile_fk("created_by"),
        *_timestamps(),
    )

    op.create_table(
        "purchase_orders",
        _id(),
        sa.Column("po_number", sa.String(50), nullable=False, unique=True),
        sa.Column("supplier_id", sa.Uuid(), sa.ForeignKey("suppliers.id"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("expected_delivery_date", sa.Date(), nullable=True),
        sa.Column("delivery_address", sa.Text(), nullable=True),
        sa.Column("delivery_instructions", sa.Text(), nullable=True),
        sa.Column("payment_terms", sa.String(100), nullable=True),
        sa.Column("subtotal", sa.Float(), nullable=False, server_default="0"),
        sa.Column("vat_percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("vat_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        _profile_fk("approved_by"),
        sa.Column("approval_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("fulfilled_at", sa.DateTime(timezone=True), nullable=True),
        _profile_fk("created_by"),
        *_timestamps(),
    )

    op.create_table(
        "purchase_order_items",
        _id(),
        sa.Column("po_id", sa.Uuid(), sa.ForeignKey("purchase_orders.id"), nullable=False),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("qty", sa.Float(), nullable=False),
        sa.Column("price_per_unit", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("received_qty", sa.Float(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _created_at(),
    )
    op.create_index("ix_purchase_order_items_po_id", "purchase_order_items", ["po_id"])

    op.create_table(
        "clients",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("company", sa.String(200), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("client_type", sa.String(50), nullable=False),
        sa.Column("license_number", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _profile_fk("created_by"),
        *_timestamps(),
    )

    op.create_table(
        "dispatches",
        _id(),
        sa.Column("dispatch_number", sa.String(50), nullable=False, unique=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("origin_facility", sa.String(100), nullable=False),
        sa.Column("carrier", sa.String(100), nullable=True),
        sa.Column("driver_name", sa.String(100), nullable=True),
        sa.Column("license_plate", sa.String(20), nullable=True),
        sa.Column("vehicle_info", sa.String(200), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        _profile_fk("created_by", nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "dispatch_items",
        _id(),
        sa.Column("dispatch_id", sa.Uuid(), sa.ForeignKey("dispatches.id"), nullable=False),
        sa.Column("lot_id", sa.Uuid(), sa.ForeignKey("inventory_lots.id"), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit_of_measure", sa.String(20), nullable=False, server_default="units"),
        sa.Column("available_at_selection", sa.Float(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_dispatch_items_dispatch_id", "dispatch_items", ["dispatch_id"])

    # Every table except stock_levels carries an indexed created_at
    for table in TABLES:
        if table != "stock_levels":
            _created_at_index(table)


def downgrade() -> None:
    for table in reversed(TABLES):
        op.drop_table(table)
