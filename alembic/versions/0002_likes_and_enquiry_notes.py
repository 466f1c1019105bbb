from alembic import op
import sqlalchemy as sa

revision = "0002_likes_and_enquiry_notes"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade():
    op.add_column("enquiries", sa.Column("admin_notes", sa.Text(), nullable=False, server_default=""))

    op.create_table(
        "likes",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("property_unit_id", sa.String(), sa.ForeignKey("property_units.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id", "property_unit_id", name="uq_likes_user_unit"),
    )
    op.create_index("ix_likes_user_id", "likes", ["user_id"])
    op.create_index("ix_likes_property_unit_id", "likes", ["property_unit_id"])


def downgrade():
    op.drop_table("likes")
    op.drop_column("enquiries", "admin_notes")
