"""create service request workflow schema

Revision ID: 5a7c2e9d1b40
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "5a7c2e9d1b40"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("emp_no", sa.String(length=50), nullable=False, unique=True),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="employee"),
        sa.Column("title", sa.String(length=100), nullable=True),
        sa.Column("department", sa.String(length=100), nullable=True),
        sa.Column("manager_emp_no", sa.String(length=50), sa.ForeignKey("users.emp_no"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "category_policies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("module", sa.String(length=20), nullable=False),
        sa.Column("sub_category", sa.String(length=100), nullable=False),
        sa.Column("requires_approval", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("processing_queue", sa.String(length=100), nullable=False),
        sa.Column("specialist_queue", sa.String(length=100), nullable=False),
        sa.Column("requires_user_confirmation", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("auto_close_on_breach", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approval_sla_hours", sa.Integer(), nullable=True),
        sa.Column("processing_sla_hours", sa.Integer(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="999"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("module", "sub_category", name="uq_category_policies_module_sub_category"),
    )

    op.create_table(
        "policy_approvers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("policy_id", sa.Integer(), sa.ForeignKey("category_policies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("level", sa.String(length=8), nullable=False),
        sa.Column("emp_no", sa.String(length=50), sa.ForeignKey("users.emp_no"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.UniqueConstraint("policy_id", "level", name="uq_policy_approvers_policy_level"),
    )
    op.create_index("ix_policy_approvers_policy_id", "policy_approvers", ["policy_id"])
    op.create_index("ix_policy_approvers_emp_no", "policy_approvers", ["emp_no"])

    op.create_table(
        "queue_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("module", sa.String(length=20), nullable=False),
        sa.Column("queue", sa.String(length=100), nullable=False),
        sa.Column("emp_no", sa.String(length=50), sa.ForeignKey("users.emp_no"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("module", "queue", "emp_no", name="uq_queue_members_module_queue_emp"),
    )
    op.create_index("ix_queue_members_module", "queue_members", ["module"])
    op.create_index("ix_queue_members_queue", "queue_members", ["queue"])
    op.create_index("ix_queue_members_emp_no", "queue_members", ["emp_no"])

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_number", sa.String(length=20), nullable=True, unique=True),
        sa.Column("module", sa.String(length=20), nullable=False),
        sa.Column("sub_category", sa.String(length=100), nullable=False),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("urgency", sa.String(length=16), nullable=False),
        sa.Column("requester_id", sa.String(length=50), nullable=False),
        sa.Column("requester_name", sa.String(length=100), nullable=False),
        sa.Column("requester_email", sa.String(length=255), nullable=False),
        sa.Column("requester_department", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=40), nullable=False),
        sa.Column("requires_approval", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approval_level_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_approval_level", sa.String(length=8), nullable=False, server_default="NONE"),
        sa.Column("approval_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("routed_to", sa.String(length=20), nullable=True),
        sa.Column("processing_queue", sa.String(length=100), nullable=True),
        sa.Column("specialist_queue", sa.String(length=100), nullable=True),
        sa.Column("routed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_to_id", sa.String(length=50), nullable=True),
        sa.Column("assigned_to_name", sa.String(length=100), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_by", sa.String(length=100), nullable=True),
        sa.Column("assignment_notes", sa.Text(), nullable=True),
        sa.Column("assignment_queue", sa.String(length=100), nullable=True),
        sa.Column("progress_status", sa.String(length=20), nullable=False, server_default="Not Started"),
        sa.Column("progress_notes", sa.Text(), nullable=True),
        sa.Column("pause_reason", sa.Text(), nullable=True),
        sa.Column("resolved_by", sa.String(length=100), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("requires_user_confirmation", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("user_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmation_feedback", sa.Text(), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_by", sa.String(length=100), nullable=True),
        sa.Column("closing_note", sa.Text(), nullable=True),
        sa.Column("closing_reason", sa.String(length=32), nullable=True),
        sa.Column("reopen_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_reopened_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_sla_hours", sa.Integer(), nullable=False, server_default="24"),
        sa.Column("processing_sla_hours", sa.Integer(), nullable=False, server_default="48"),
        sa.Column("auto_close_on_breach", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processing_deadline", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tickets_ticket_number", "tickets", ["ticket_number"])
    op.create_index("ix_tickets_requester_id", "tickets", ["requester_id"])
    op.create_index("ix_tickets_status", "tickets", ["status"])
    op.create_index("ix_tickets_routed_to", "tickets", ["routed_to"])
    op.create_index("ix_tickets_assigned_to_id", "tickets", ["assigned_to_id"])
    op.create_index("ix_tickets_processing_deadline", "tickets", ["processing_deadline"])

    op.create_table(
        "ticket_approval_levels",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("level", sa.String(length=8), nullable=False),
        sa.Column("approver_id", sa.String(length=50), nullable=True),
        sa.Column("approver_name", sa.String(length=100), nullable=True),
        sa.Column("approver_email", sa.String(length=255), nullable=True),
        sa.Column("decision", sa.String(length=16), nullable=False, server_default="Pending"),
        sa.Column("decided_by", sa.String(length=100), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("opened_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("ticket_id", "level", name="uq_ticket_approval_levels_ticket_level"),
    )
    op.create_index("ix_ticket_approval_levels_ticket_id", "ticket_approval_levels", ["ticket_id"])

    op.create_table(
        "ticket_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("actor_id", sa.String(length=50), nullable=False),
        sa.Column("actor_name", sa.String(length=100), nullable=False),
        sa.Column("actor_role", sa.String(length=32), nullable=True),
        sa.Column("previous_status", sa.String(length=40), nullable=True),
        sa.Column("new_status", sa.String(length=40), nullable=True),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("subject_id", sa.String(length=50), nullable=True),
        sa.Column("subject_name", sa.String(length=100), nullable=True),
        sa.Column("previous_subject_id", sa.String(length=50), nullable=True),
        sa.Column("previous_subject_name", sa.String(length=100), nullable=True),
        sa.Column("cycle", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_ticket_events_ticket_id", "ticket_events", ["ticket_id"])

    op.create_table(
        "ticket_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_role", sa.String(length=32), nullable=False),
        sa.Column("sender_id", sa.String(length=50), nullable=True),
        sa.Column("sender_name", sa.String(length=100), nullable=False),
        sa.Column("message_type", sa.String(length=32), nullable=False, server_default="message"),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_ticket_messages_ticket_id", "ticket_messages", ["ticket_id"])

    op.create_table(
        "notification_outbox",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_key", sa.String(length=200), nullable=False, unique=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id"), nullable=True),
        sa.Column("ticket_number", sa.String(length=20), nullable=True),
        sa.Column("recipient_role", sa.String(length=32), nullable=False),
        sa.Column("recipient_id", sa.String(length=50), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_notification_outbox_event_type", "notification_outbox", ["event_type"])
    op.create_index("ix_notification_outbox_ticket_id", "notification_outbox", ["ticket_id"])
    op.create_index("ix_notification_outbox_recipient_id", "notification_outbox", ["recipient_id"])
    op.create_index("ix_notification_outbox_status", "notification_outbox", ["status"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_id", sa.Integer(), nullable=True),
        sa.Column("ticket_number", sa.String(length=20), nullable=True),
        sa.Column("actor_id", sa.String(length=50), nullable=False),
        sa.Column("actor_role", sa.String(length=32), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("severity", sa.String(length=16), nullable=False, server_default="info"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_audit_logs_ticket_id", "audit_logs", ["ticket_id"])
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("notification_outbox")
    op.drop_table("ticket_messages")
    op.drop_table("ticket_events")
    op.drop_table("ticket_approval_levels")
    op.drop_table("tickets")
    op.drop_table("queue_members")
    op.drop_table("policy_approvers")
    op.drop_table("category_policies")
    op.drop_table("users")
