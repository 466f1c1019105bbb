from alembic import op
import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("updated_by", sa.String(), nullable=True),
    ]


def _listing_columns():
    return [
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("city", sa.String(length=120), nullable=False),
        sa.Column("coordinates", sa.JSON(), nullable=False),
        sa.Column("map_url", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("approval_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("rejection_reason", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reviewed_by", sa.String(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("owner_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("username", sa.String(length=40), nullable=False, unique=True),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("phone_number", sa.String(length=30), nullable=False),
        sa.Column("user_type", sa.String(length=20), nullable=False, server_default="buyer"),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("company", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("office_address", sa.JSON(), nullable=False),
        sa.Column("about", sa.Text(), nullable=False, server_default=""),
        sa.Column("agent_approval_status", sa.String(length=20), nullable=True),
        sa.Column("agent_applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("agent_reviewed_by", sa.String(), nullable=True),
        sa.Column("agent_reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("agent_status_reason", sa.Text(), nullable=False, server_default=""),
        sa.Column("agent_review_notes", sa.Text(), nullable=False, server_default=""),
        *_audit_columns(),
    )
    op.create_index("ix_users_agent_approval_status", "users", ["agent_approval_status"])

    op.create_table(
        "api_keys",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("key_prefix", sa.String(length=16), nullable=False),
        sa.Column("key_hash", sa.Text(), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_api_keys_user_id", "api_keys", ["user_id"])
    op.create_index("ix_api_keys_key_prefix", "api_keys", ["key_prefix"])

    op.create_table(
        "agents",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("agent_id", sa.String(length=40), nullable=False, unique=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("phone_number", sa.String(length=30), nullable=False),
        sa.Column("company", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("office_address", sa.JSON(), nullable=False),
        sa.Column("license_number", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("experience_years", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("specialization_areas", sa.JSON(), nullable=False),
        sa.Column("bio", sa.Text(), nullable=False, server_default=""),
        sa.Column("profile_photo", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("approved_by", sa.String(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
    )
    op.create_index("ix_agents_email", "agents", ["email"])
    op.create_index("ix_agents_is_active", "agents", ["is_active"])

    op.create_table(
        "counters",
        sa.Column("name", sa.String(length=80), primary_key=True),
        sa.Column("seq", sa.BigInteger(), nullable=False, server_default="0"),
    )

    op.create_table(
        "properties",
        sa.Column("id", sa.String(), primary_key=True),
        *_listing_columns(),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("property_location", sa.String(length=300), nullable=False),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("for_sale", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("attributes", sa.JSON(), nullable=False),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("nearby", sa.JSON(), nullable=False),
        *_audit_columns(),
    )
    op.create_index("ix_properties_city", "properties", ["city"])
    op.create_index("ix_properties_approval_status", "properties", ["approval_status"])
    op.create_index("ix_properties_owner_id", "properties", ["owner_id"])
    op.create_index("ix_properties_category", "properties", ["category"])

    op.create_table(
        "property_units",
        sa.Column("id", sa.String(), primary_key=True),
        *_listing_columns(),
        sa.Column("parent_property_id", sa.String(), sa.ForeignKey("properties.id"), nullable=True),
        sa.Column("unit_number", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("address", sa.String(length=300), nullable=False),
        sa.Column("price_amount", sa.Float(), nullable=False),
        sa.Column("price_currency", sa.String(length=8), nullable=False, server_default="INR"),
        sa.Column("price_per_unit", sa.String(length=10), nullable=False, server_default="total"),
        sa.Column("property_type", sa.String(length=40), nullable=False),
        sa.Column("listing_type", sa.String(length=10), nullable=False, server_default="sale"),
        sa.Column("availability", sa.String(length=20), nullable=False, server_default="available"),
        sa.Column("specifications", sa.JSON(), nullable=False),
        sa.Column("unit_features", sa.JSON(), nullable=False),
        sa.Column("owner_details", sa.JSON(), nullable=False),
        sa.Column("slug", sa.String(length=260), nullable=False, unique=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        *_audit_columns(),
    )
    op.create_index("ix_property_units_city", "property_units", ["city"])
    op.create_index("ix_property_units_approval_status", "property_units", ["approval_status"])
    op.create_index("ix_property_units_owner_id", "property_units", ["owner_id"])
    op.create_index("ix_property_units_property_type", "property_units", ["property_type"])
    op.create_index("ix_property_units_listing_type", "property_units", ["listing_type"])
    op.create_index("ix_property_units_availability", "property_units", ["availability"])

    op.create_table(
        "property_batches",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("batch_code", sa.String(length=80), nullable=False, unique=True),
        sa.Column("batch_name", sa.String(length=100), nullable=False),
        sa.Column("location_name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("batch_type", sa.String(length=30), nullable=False, server_default="location_based"),
        sa.Column("image", sa.JSON(), nullable=False),
        sa.Column("location_coordinates", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("property_unit_ids", sa.JSON(), nullable=False),
        sa.Column("stats", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("owner_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="0"),
        *_audit_columns(),
    )
    op.create_index("ix_property_batches_location_name", "property_batches", ["location_name"])
    op.create_index("ix_property_batches_is_active", "property_batches", ["is_active"])
    op.create_index("ix_property_batches_owner_id", "property_batches", ["owner_id"])

    op.create_table(
        "click_events",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("user_name", sa.String(length=120), nullable=True),
        sa.Column("session_id", sa.String(length=120), nullable=False),
        sa.Column("item_type", sa.String(length=20), nullable=False),
        sa.Column("item_value", sa.String(length=500), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=False),
        sa.Column("page_url", sa.String(length=1000), nullable=False),
        sa.Column("property_id", sa.String(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("country", sa.String(length=80), nullable=False, server_default="Unknown"),
        sa.Column("city", sa.String(length=120), nullable=False, server_default="Unknown"),
        sa.Column("device_type", sa.String(length=10), nullable=False, server_default="desktop"),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_click_events_user_id", "click_events", ["user_id"])
    op.create_index("ix_click_events_session_id", "click_events", ["session_id"])
    op.create_index("ix_click_events_property_id", "click_events", ["property_id"])
    op.create_index("ix_click_events_occurred_at", "click_events", ["occurred_at"])
    op.create_index("ix_click_events_type_occurred", "click_events", ["item_type", "occurred_at"])

    op.create_table(
        "enquiries",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("phone_number", sa.String(length=30), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="new"),
        *_audit_columns(),
    )
    op.create_index("ix_enquiries_user_id", "enquiries", ["user_id"])
    op.create_index("ix_enquiries_status", "enquiries", ["status"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("target_type", sa.String(length=120), nullable=True),
        sa.Column("target_id", sa.String(length=200), nullable=True),
        sa.Column("detail", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])


def downgrade():
    for table in (
        "audit_logs",
        "enquiries",
        "click_events",
        "property_batches",
        "property_units",
        "properties",
        "counters",
        "agents",
        "api_keys",
        "users",
    ):
        op.drop_table(table)
