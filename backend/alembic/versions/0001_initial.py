"""initial schema with default sla config and priority rules

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-12 09:00:00.000000

"""
import uuid

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ISSUE_TYPES = (
    "pothole", "road_damage", "broken_footpath", "speed_breaker", "missing_signboard",
    "garbage", "illegal_dumping", "dead_animal", "public_toilet",
    "streetlight", "power_outage", "loose_wires", "transformer_fault",
    "drainage", "water_leak", "sewer_overflow", "flooding",
    "fallen_tree", "park_damage", "tree_cutting", "encroachment",
    "traffic_signal", "parking_violation", "accident_prone",
    "fire_hazard", "gas_leak", "building_collapse",
    "other",
)
REPORT_STATUSES = ("pending", "in_progress", "resolved", "rejected", "reopened")
REPORT_PRIORITIES = ("critical", "high", "medium", "low")
AUDIT_ACTIONS = ("INSERT", "UPDATE", "DELETE")

SLA_DEFAULTS = (
    ("critical", 2, 24, 4, 12),
    ("high", 8, 72, 24, 48),
    ("medium", 24, 168, 72, 120),
    ("low", 72, 336, 168, 240),
)
ISSUE_WEIGHT_DEFAULTS = (
    ("pothole", 0.7, "Road hazard - moderate risk"),
    ("streetlight", 0.8, "Safety critical - night visibility"),
    ("drainage", 0.6, "Infrastructure issue"),
    ("garbage", 0.4, "Sanitation issue"),
    ("road_damage", 0.75, "Road hazard - higher risk"),
    ("other", 0.3, "General issue"),
)


def upgrade() -> None:
    issue_type = postgresql.ENUM(*ISSUE_TYPES, name="issue_type")
    report_status = postgresql.ENUM(*REPORT_STATUSES, name="report_status")
    report_priority = postgresql.ENUM(*REPORT_PRIORITIES, name="report_priority")
    audit_action = postgresql.ENUM(*AUDIT_ACTIONS, name="audit_action")

    issue_type_col = postgresql.ENUM(*ISSUE_TYPES, name="issue_type", create_type=False)
    report_status_col = postgresql.ENUM(*REPORT_STATUSES, name="report_status", create_type=False)
    report_priority_col = postgresql.ENUM(*REPORT_PRIORITIES, name="report_priority", create_type=False)
    audit_action_col = postgresql.ENUM(*AUDIT_ACTIONS, name="audit_action", create_type=False)

    bind = op.get_bind()
    issue_type.create(bind, checkfirst=True)
    report_status.create(bind, checkfirst=True)
    report_priority.create(bind, checkfirst=True)
    audit_action.create(bind, checkfirst=True)

    op.create_table(
        "civic_reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("submitter_id", sa.String(length=64), nullable=False),
        sa.Column("issue_type", issue_type_col, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("municipality", sa.String(length=255), nullable=True),
        sa.Column("ward_id", sa.String(length=64), nullable=True),
        sa.Column("department", sa.String(length=255), nullable=True),
        sa.Column("status", report_status_col, nullable=False),
        sa.Column("priority", report_priority_col, nullable=False),
        sa.Column("priority_score", sa.Float(), nullable=True),
        sa.Column("ai_confidence", sa.Float(), nullable=False, server_default=sa.text("0.5")),
        sa.Column("ai_detected_type", sa.String(length=64), nullable=True),
        sa.Column("sla_due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("escalation_level", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_duplicate", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("duplicate_of", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("duplicate_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("assigned_to", sa.String(length=64), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["duplicate_of"], ["civic_reports.id"]),
    )
    op.create_index(op.f("ix_civic_reports_submitter_id"), "civic_reports", ["submitter_id"], unique=False)
    op.create_index(op.f("ix_civic_reports_issue_type"), "civic_reports", ["issue_type"], unique=False)
    op.create_index(op.f("ix_civic_reports_status"), "civic_reports", ["status"], unique=False)
    op.create_index(op.f("ix_civic_reports_sla_due_at"), "civic_reports", ["sla_due_at"], unique=False)
    op.create_index(
        "ix_civic_reports_status_priority_created",
        "civic_reports",
        ["status", "priority", "created_at"],
        unique=False,
    )
    op.create_index("ix_civic_reports_location", "civic_reports", ["latitude", "longitude"], unique=False)
    op.create_index("ix_civic_reports_assigned", "civic_reports", ["assigned_to", "status"], unique=False)

    op.create_table(
        "report_updates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("report_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=False),
        sa.Column("status", report_status_col, nullable=True),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["report_id"], ["civic_reports.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_report_updates_report_id"), "report_updates", ["report_id"], unique=False)

    op.create_table(
        "sla_config",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("priority", report_priority_col, nullable=False),
        sa.Column("response_time_hours", sa.Integer(), nullable=False),
        sa.Column("resolution_time_hours", sa.Integer(), nullable=False),
        sa.Column("escalation_level_1_hours", sa.Integer(), nullable=False),
        sa.Column("escalation_level_2_hours", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("priority", name="uq_sla_config_priority"),
    )

    op.create_table(
        "priority_rules",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("factor_type", sa.String(length=64), nullable=False),
        sa.Column("factor_value", sa.String(length=128), nullable=False),
        sa.Column("priority_weight", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("factor_type", "factor_value", name="uq_priority_rules_factor"),
        sa.CheckConstraint("priority_weight >= 0 AND priority_weight <= 1", name="ck_priority_rules_weight_range"),
    )

    op.create_table(
        "user_rate_limits",
        sa.Column("submitter_id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("reports_today", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("reports_this_hour", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_report_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("daily_reset_at", sa.Date(), nullable=False),
        sa.Column("hourly_reset_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_trusted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("trust_reason", sa.Text(), nullable=True),
        sa.Column("spam_score", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_blocked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("blocked_reason", sa.Text(), nullable=True),
        sa.Column("blocked_until", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "escalations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("report_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("from_level", sa.Integer(), nullable=False),
        sa.Column("to_level", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("escalated_by", sa.String(length=64), nullable=False, server_default="system"),
        sa.Column("notified_users", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["report_id"], ["civic_reports.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_escalations_report_id"), "escalations", ["report_id"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("table_name", sa.String(length=64), nullable=False),
        sa.Column("record_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", audit_action_col, nullable=False),
        sa.Column("old_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("new_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("changed_fields", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("changed_by", sa.String(length=64), nullable=False),
        sa.Column("user_role", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_table_record", "audit_logs", ["table_name", "record_id"], unique=False)
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"], unique=False)

    op.create_table(
        "citizen_feedback",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("report_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("submitter_id", sa.String(length=64), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("feedback_text", sa.Text(), nullable=True),
        sa.Column("is_satisfied", sa.Boolean(), nullable=True),
        sa.Column("would_recommend", sa.Boolean(), nullable=True),
        sa.Column("response_time_rating", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["report_id"], ["civic_reports.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("report_id", name="uq_citizen_feedback_report_id"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_citizen_feedback_rating"),
    )

    op.create_table(
        "scheduler_locks",
        sa.Column("name", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("holder", sa.String(length=128), nullable=True),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
    )

    sla_table = sa.table(
        "sla_config",
        sa.column("id", postgresql.UUID(as_uuid=True)),
        sa.column("priority", report_priority_col),
        sa.column("response_time_hours", sa.Integer()),
        sa.column("resolution_time_hours", sa.Integer()),
        sa.column("escalation_level_1_hours", sa.Integer()),
        sa.column("escalation_level_2_hours", sa.Integer()),
    )
    op.bulk_insert(
        sla_table,
        [
            {
                "id": uuid.uuid4(),
                "priority": priority,
                "response_time_hours": response,
                "resolution_time_hours": resolution,
                "escalation_level_1_hours": level_1,
                "escalation_level_2_hours": level_2,
            }
            for priority, response, resolution, level_1, level_2 in SLA_DEFAULTS
        ],
    )

    rules_table = sa.table(
        "priority_rules",
        sa.column("id", postgresql.UUID(as_uuid=True)),
        sa.column("factor_type", sa.String()),
        sa.column("factor_value", sa.String()),
        sa.column("priority_weight", sa.Float()),
        sa.column("description", sa.Text()),
        sa.column("is_active", sa.Boolean()),
    )
    op.bulk_insert(
        rules_table,
        [
            {
                "id": uuid.uuid4(),
                "factor_type": "issue_type",
                "factor_value": issue,
                "priority_weight": weight,
                "description": description,
                "is_active": True,
            }
            for issue, weight, description in ISSUE_WEIGHT_DEFAULTS
        ],
    )


def downgrade() -> None:
    op.drop_table("scheduler_locks")
    op.drop_table("citizen_feedback")
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_table_record", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index(op.f("ix_escalations_report_id"), table_name="escalations")
    op.drop_table("escalations")
    op.drop_table("user_rate_limits")
    op.drop_table("priority_rules")
    op.drop_table("sla_config")
    op.drop_index(op.f("ix_report_updates_report_id"), table_name="report_updates")
    op.drop_table("report_updates")
    op.drop_index("ix_civic_reports_assigned", table_name="civic_reports")
    op.drop_index("ix_civic_reports_location", table_name="civic_reports")
    op.drop_index("ix_civic_reports_status_priority_created", table_name="civic_reports")
    op.drop_index(op.f("ix_civic_reports_sla_due_at"), table_name="civic_reports")
    op.drop_index(op.f("ix_civic_reports_status"), table_name="civic_reports")
    op.drop_index(op.f("ix_civic_reports_issue_type"), table_name="civic_reports")
    op.drop_index(op.f("ix_civic_reports_submitter_id"), table_name="civic_reports")
    op.drop_table("civic_reports")

    bind = op.get_bind()
    sa.Enum(*AUDIT_ACTIONS, name="audit_action").drop(bind, checkfirst=True)
    sa.Enum(*REPORT_PRIORITIES, name="report_priority").drop(bind, checkfirst=True)
    sa.Enum(*REPORT_STATUSES, name="report_status").drop(bind, checkfirst=True)
    sa.Enum(*ISSUE_TYPES, name="issue_type").drop(bind, checkfirst=True)
