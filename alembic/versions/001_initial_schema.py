"""Initial schema — participants, flows, flow_transitions, endorsements.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # -- Participants (OPERATIONAL) --
    op.create_table(
        "participants",
        sa.Column("participant_id", sa.String(100), primary_key=True),
        sa.Column("display_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("skill", sa.String(20), nullable=False),
        sa.Column("trust", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    # -- Flows (OPERATIONAL) --
    op.create_table(
        "flows",
        sa.Column("flow_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("stage", sa.String(20), nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_flows_stage", "flows", ["stage"])

    # -- Audit (IMMUTABLE) --
    op.create_table(
        "flow_transitions",
        sa.Column("record_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("flow_id", UUID(as_uuid=True),
                  sa.ForeignKey("flows.flow_id"), nullable=False),
        sa.Column("from_stage", sa.String(20), nullable=False),
        sa.Column("to_stage", sa.String(20), nullable=False),
        sa.Column("participant_id", sa.String(100), nullable=False),
        sa.Column("role_id", sa.String(50), nullable=False),
        sa.Column("participation_level", sa.String(20), nullable=False),
        sa.Column("used_ai", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("adoption_zone", sa.String(50), nullable=True),
        sa.Column("endorsed_by", JSONB, nullable=False),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_flow_transitions_flow_ts", "flow_transitions", ["flow_id", "timestamp"],
    )

    op.create_table(
        "endorsements",
        sa.Column("endorsement_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("flow_id", UUID(as_uuid=True),
                  sa.ForeignKey("flows.flow_id"), nullable=False),
        sa.Column("stage", sa.String(20), nullable=False),
        sa.Column("participant_id", sa.String(100), nullable=False),
        sa.Column("role_id", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_endorsements_flow_stage", "endorsements", ["flow_id", "stage"])


def downgrade() -> None:
    op.drop_index("ix_endorsements_flow_stage", table_name="endorsements")
    op.drop_table("endorsements")
    op.drop_index("ix_flow_transitions_flow_ts", table_name="flow_transitions")
    op.drop_table("flow_transitions")
    op.drop_index("ix_flows_stage", table_name="flows")
    op.drop_table("flows")
    op.drop_table("participants")
