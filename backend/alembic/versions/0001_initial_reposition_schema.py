"""Initial schema: users, repositions and their workflow tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("area", sa.String(30), nullable=False, server_default="patronaje"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_area", "users", ["area"])

    op.create_table(
        "repositions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("folio", sa.String(30), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        # Requester
        sa.Column("requester_name", sa.String(255), nullable=False),
        sa.Column("requester_area", sa.String(30), nullable=False),
        sa.Column("request_date", sa.Date()),
        sa.Column("request_number", sa.String(50)),
        sa.Column("sheet_number", sa.String(50)),
        sa.Column("cut_date", sa.Date()),
        # Damage report
        sa.Column("damage_cause", sa.String(255)),
        sa.Column("accident_type", sa.String(100)),
        sa.Column("other_accident", sa.String(255)),
        sa.Column("damage_description", sa.Text()),
        # Product
        sa.Column("garment_model", sa.String(100)),
        sa.Column("fabric", sa.String(100)),
        sa.Column("color", sa.String(100)),
        sa.Column("piece_type", sa.String(100)),
        sa.Column("fabric_consumption", sa.Float(), server_default="0"),
        # Rework
        sa.Column("redo_description", sa.Text()),
        sa.Column("materials_involved", sa.Text()),
        sa.Column("urgency", sa.String(20), server_default="intermedio"),
        sa.Column("observations", sa.Text()),
        # Workflow
        sa.Column("current_area", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pendiente"),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("approved_by", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("approved_at", sa.DateTime()),
        sa.Column("completed_at", sa.DateTime()),
        sa.CheckConstraint("fabric_consumption >= 0", name="ck_repositions_fabric_consumption"),
    )
    op.create_index("ix_repositions_folio", "repositions", ["folio"], unique=True)
    op.create_index("ix_repositions_current_area", "repositions", ["current_area"])
    op.create_index("ix_repositions_status", "repositions", ["status"])
    op.create_index("ix_repositions_created_by", "repositions", ["created_by"])
    op.create_index("ix_repositions_created_at", "repositions", ["created_at"])

    op.create_table(
        "reposition_pieces",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("reposition_id", sa.String(36), sa.ForeignKey("repositions.id"), nullable=False),
        sa.Column("size", sa.String(20), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("original_folio", sa.String(50)),
    )
    op.create_index("ix_reposition_pieces_reposition_id", "reposition_pieces", ["reposition_id"])

    op.create_table(
        "reposition_products",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("reposition_id", sa.String(36), sa.ForeignKey("repositions.id"), nullable=False),
        sa.Column("garment_model", sa.String(100), nullable=False),
        sa.Column("fabric", sa.String(100)),
        sa.Column("color", sa.String(100)),
        sa.Column("piece_type", sa.String(100)),
        sa.Column("fabric_consumption", sa.Float(), server_default="0"),
    )
    op.create_index("ix_reposition_products_reposition_id", "reposition_products", ["reposition_id"])

    op.create_table(
        "reposition_contrast_fabrics",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "reposition_id", sa.String(36), sa.ForeignKey("repositions.id"),
            nullable=False, unique=True,
        ),
        sa.Column("fabric", sa.String(100), nullable=False),
        sa.Column("color", sa.String(100)),
        sa.Column("consumption", sa.Float(), server_default="0"),
    )

    op.create_table(
        "reposition_transfers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("reposition_id", sa.String(36), sa.ForeignKey("repositions.id"), nullable=False),
        sa.Column("from_area", sa.String(30), nullable=False),
        sa.Column("to_area", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text()),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("processed_by", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("processed_at", sa.DateTime()),
    )
    op.create_index("ix_reposition_transfers_reposition_id", "reposition_transfers", ["reposition_id"])
    op.create_index("ix_reposition_transfers_to_area", "reposition_transfers", ["to_area"])
    op.create_index("ix_reposition_transfers_status", "reposition_transfers", ["status"])

    op.create_table(
        "reposition_timers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("reposition_id", sa.String(36), sa.ForeignKey("repositions.id"), nullable=False),
        sa.Column("area", sa.String(30), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        # Stopwatch
        sa.Column("start_time", sa.DateTime()),
        sa.Column("end_time", sa.DateTime()),
        sa.Column("is_running", sa.Boolean(), nullable=False, server_default=sa.false()),
        # Manual entry
        sa.Column("manual_start_time", sa.String(5)),
        sa.Column("manual_end_time", sa.String(5)),
        sa.Column("manual_date", sa.String(10)),
        sa.Column("elapsed_minutes", sa.Integer()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_reposition_timers_reposition_id", "reposition_timers", ["reposition_id"])
    # One running stopwatch per (reposition, area)
    op.create_index(
        "uq_reposition_timers_running",
        "reposition_timers",
        ["reposition_id", "area"],
        unique=True,
        postgresql_where=sa.text("is_running"),
    )

    op.create_table(
        "reposition_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("reposition_id", sa.String(36), sa.ForeignKey("repositions.id"), nullable=False),
        sa.Column("action", sa.String(40), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("from_area", sa.String(30)),
        sa.Column("to_area", sa.String(30)),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_reposition_history_reposition_id", "reposition_history", ["reposition_id"])
    op.create_index("ix_reposition_history_action", "reposition_history", ["action"])
    op.create_index("ix_reposition_history_created_at", "reposition_history", ["created_at"])

    op.create_table(
        "reposition_materials",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "reposition_id", sa.String(36), sa.ForeignKey("repositions.id"),
            nullable=False, unique=True,
        ),
        sa.Column("is_paused", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pause_reason", sa.Text()),
        sa.Column("paused_by", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("paused_at", sa.DateTime()),
        sa.Column("resumed_by", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("resumed_at", sa.DateTime()),
        sa.Column("material_status", sa.String(20), nullable=False, server_default="disponible"),
        sa.Column("missing_materials", sa.Text()),
        sa.Column("notes", sa.Text()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("reposition_id", sa.String(36), sa.ForeignKey("repositions.id"), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False, unique=True),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("path", sa.String(500), nullable=False),
        sa.Column("uploaded_by", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_documents_reposition_id", "documents", ["reposition_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("reposition_id", sa.String(36), sa.ForeignKey("repositions.id")),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_reposition_id", "notifications", ["reposition_id"])

    op.create_table(
        "folio_sequences",
        sa.Column("prefix", sa.String(20), primary_key=True),
        sa.Column("last_value", sa.Integer(), nullable=False, server_default="0"),
    )


def downgrade() -> None:
    op.drop_table("folio_sequences")
    op.drop_table("notifications")
    op.drop_table("documents")
    op.drop_table("reposition_materials")
    op.drop_table("reposition_history")
    op.drop_index("uq_reposition_timers_running", table_name="reposition_timers")
    op.drop_table("reposition_timers")
    op.drop_table("reposition_transfers")
    op.drop_table("reposition_contrast_fabrics")
    op.drop_table("reposition_products")
    op.drop_table("reposition_pieces")
    op.drop_table("repositions")
    op.drop_table("users")
