"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

host_kind = sa.Enum("DISCOVERED", "MANAGED", name="hostkind")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_organizations_id", "organizations", ["id"])
    op.create_index("ix_organizations_name", "organizations", ["name"], unique=True)

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_locations_id", "locations", ["id"])
    op.create_index("ix_locations_name", "locations", ["name"], unique=True)

    op.create_table(
        "hostgroups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("operatingsystem", sa.String(255), nullable=True),
        sa.Column("architecture", sa.String(50), nullable=True),
        sa.Column("domain", sa.String(255), nullable=True),
        sa.Column("root_pass", sa.String(255), nullable=True),
        sa.Column("kernel_url", sa.String(500), nullable=True),
        sa.Column("initrd_url", sa.String(500), nullable=True),
        sa.Column("kernel_append", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_hostgroups_id", "hostgroups", ["id"])
    op.create_index("ix_hostgroups_name", "hostgroups", ["name"], unique=True)

    op.create_table(
        "discovery_rules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("search", sa.Text(), nullable=False),
        sa.Column("hostname", sa.String(255), nullable=True),
        sa.Column("hostgroup_id", sa.Integer(), sa.ForeignKey("hostgroups.id"), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("max_count", sa.Integer(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_discovery_rules_id", "discovery_rules", ["id"])
    op.create_index("ix_discovery_rules_name", "discovery_rules", ["name"], unique=True)
    op.create_index("ix_discovery_rules_hostgroup_id", "discovery_rules", ["hostgroup_id"])
    op.create_index("ix_discovery_rules_priority", "discovery_rules", ["priority"])
    op.create_index("ix_discovery_rules_enabled", "discovery_rules", ["enabled"])

    op.create_table(
        "discovery_rule_organizations",
        sa.Column("discovery_rule_id", sa.Integer(),
                  sa.ForeignKey("discovery_rules.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("organization_id", sa.Integer(),
                  sa.ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_table(
        "discovery_rule_locations",
        sa.Column("discovery_rule_id", sa.Integer(),
                  sa.ForeignKey("discovery_rules.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("location_id", sa.Integer(),
                  sa.ForeignKey("locations.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "hosts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("kind", host_kind, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("mac", sa.String(17), nullable=False),
        sa.Column("ip", sa.String(45), nullable=True),
        sa.Column("memory", sa.Integer(), nullable=False),
        sa.Column("cpu_count", sa.Integer(), nullable=False),
        sa.Column("disk_count", sa.Integer(), nullable=False),
        sa.Column("disks_size", sa.Integer(), nullable=False),
        sa.Column("facts", sa.JSON(), nullable=False),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=True),
        sa.Column("hostgroup_id", sa.Integer(), sa.ForeignKey("hostgroups.id"), nullable=True),
        sa.Column("discovery_rule_id", sa.Integer(),
                  sa.ForeignKey("discovery_rules.id", ondelete="SET NULL"), nullable=True),
        sa.Column("build", sa.Boolean(), nullable=False),
        sa.Column("provision_method", sa.String(50), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("last_report", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_hosts_id", "hosts", ["id"])
    op.create_index("ix_hosts_kind", "hosts", ["kind"])
    op.create_index("ix_hosts_name", "hosts", ["name"], unique=True)
    op.create_index("ix_hosts_mac", "hosts", ["mac"], unique=True)
    op.create_index("ix_hosts_ip", "hosts", ["ip"])
    op.create_index("ix_hosts_organization_id", "hosts", ["organization_id"])
    op.create_index("ix_hosts_location_id", "hosts", ["location_id"])
    op.create_index("ix_hosts_hostgroup_id", "hosts", ["hostgroup_id"])
    op.create_index("ix_hosts_discovery_rule_id", "hosts", ["discovery_rule_id"])

    op.create_table(
        "api_keys",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key_hash", sa.String(255), nullable=False),
        sa.Column("label", sa.String(255), nullable=True),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_api_keys_id", "api_keys", ["id"])
    op.create_index("ix_api_keys_key_hash", "api_keys", ["key_hash"], unique=True)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("actor_id", sa.Integer(), sa.ForeignKey("api_keys.id", ondelete="SET NULL"), nullable=True),
        sa.Column("actor_source", sa.String(50), nullable=False),
        sa.Column("actor_role", sa.String(50), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=True),
        sa.Column("resource_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(255), nullable=True),
    )
    op.create_index("ix_activity_logs_id", "activity_logs", ["id"])
    op.create_index("ix_activity_logs_timestamp", "activity_logs", ["timestamp"])
    op.create_index("ix_activity_logs_actor_id", "activity_logs", ["actor_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_resource_type", "activity_logs", ["resource_type"])
    op.create_index("ix_activity_logs_resource_id", "activity_logs", ["resource_id"])


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_table("api_keys")
    op.drop_table("hosts")
    op.drop_table("discovery_rule_locations")
    op.drop_table("discovery_rule_organizations")
    op.drop_table("discovery_rules")
    op.drop_table("hostgroups")
    op.drop_table("locations")
    op.drop_table("organizations")
    host_kind.drop(op.get_bind(), checkfirst=True)
