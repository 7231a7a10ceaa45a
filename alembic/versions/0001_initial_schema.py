"""initial schema: identities, studios, profiles, invitations, templates, forms, archive, audit

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17 09:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "auth_identities",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("invited_at", sa.DateTime(), nullable=True),
        sa.Column("last_sign_in_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_auth_identities_email", "auth_identities", ["email"], unique=True)

    op.create_table(
        "studios",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("owner_id", sa.String(36), sa.ForeignKey("auth_identities.id"), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("address_street", sa.String(255), nullable=True),
        sa.Column("address_city", sa.String(255), nullable=True),
        sa.Column("address_province", sa.String(255), nullable=True),
        sa.Column("address_postal_code", sa.String(20), nullable=True),
        sa.Column("address_country", sa.String(2), nullable=False),
        sa.Column("partita_iva", sa.String(11), nullable=True),
        sa.Column("codice_fiscale", sa.String(16), nullable=True),
        sa.Column("business_name", sa.String(255), nullable=True),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_studios_id", "studios", ["id"])
    op.create_index("ix_studios_slug", "studios", ["slug"])
    op.create_index("ix_studios_owner_id", "studios", ["owner_id"])

    op.create_table(
        "user_profiles",
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("auth_identities.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("studio_id", sa.Integer(), sa.ForeignKey("studios.id"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("invited_by", sa.String(36), sa.ForeignKey("auth_identities.id"), nullable=True),
        sa.Column("invited_at", sa.DateTime(), nullable=True),
        sa.Column("accepted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_user_profiles_role", "user_profiles", ["role"])
    op.create_index("ix_user_profiles_studio_id", "user_profiles", ["studio_id"])
    op.create_index("ix_user_profiles_status", "user_profiles", ["status"])

    op.create_table(
        "studio_invitations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "studio_id",
            sa.Integer(),
            sa.ForeignKey("studios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("invited_email", sa.String(255), nullable=False),
        sa.Column("invited_by", sa.String(36), sa.ForeignKey("auth_identities.id"), nullable=False),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("accepted_at", sa.DateTime(), nullable=True),
        sa.Column("declined_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_studio_invitations_id", "studio_invitations", ["id"])
    op.create_index("ix_studio_invitations_studio_id", "studio_invitations", ["studio_id"])
    op.create_index("ix_studio_invitations_invited_email", "studio_invitations", ["invited_email"])
    op.create_index("ix_studio_invitations_status", "studio_invitations", ["status"])
    op.create_index("ix_studio_invitations_token", "studio_invitations", ["token"], unique=True)

    op.create_table(
        "templates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "studio_id",
            sa.Integer(),
            sa.ForeignKey("studios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("schema", sa.JSON(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("auth_identities.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_templates_id", "templates", ["id"])
    op.create_index("ix_templates_studio_id", "templates", ["studio_id"])
    op.create_index("ix_templates_slug", "templates", ["slug"])

    op.create_table(
        "forms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "studio_id",
            sa.Integer(),
            sa.ForeignKey("studios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("template_id", sa.Integer(), sa.ForeignKey("templates.id"), nullable=False),
        sa.Column("client_name", sa.String(255), nullable=False),
        sa.Column("client_email", sa.String(255), nullable=True),
        sa.Column("client_phone", sa.String(50), nullable=True),
        sa.Column("client_fiscal_code", sa.String(16), nullable=True),
        sa.Column("form_data", sa.JSON(), nullable=False),
        sa.Column("signatures", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("form_number", sa.String(50), nullable=True, unique=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("auth_identities.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("signed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_forms_id", "forms", ["id"])
    op.create_index("ix_forms_studio_id", "forms", ["studio_id"])
    op.create_index("ix_forms_template_id", "forms", ["template_id"])
    op.create_index("ix_forms_client_name", "forms", ["client_name"])
    op.create_index("ix_forms_status", "forms", ["status"])
    op.create_index("ix_forms_created_at", "forms", ["created_at"])

    op.create_table(
        "archived_pdfs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "studio_id",
            sa.Integer(),
            sa.ForeignKey("studios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "form_id",
            sa.Integer(),
            sa.ForeignKey("forms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("template_id", sa.Integer(), sa.ForeignKey("templates.id"), nullable=False),
        sa.Column("file_path", sa.String(1024), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("file_hash", sa.String(128), nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("client_name", sa.String(255), nullable=False),
        sa.Column("client_email", sa.String(255), nullable=True),
        sa.Column("client_fiscal_code", sa.String(16), nullable=True),
        sa.Column("form_date", sa.Date(), nullable=False),
        sa.Column("form_type", sa.String(255), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("is_encrypted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("auth_identities.id"), nullable=True),
    )
    op.create_index("ix_archived_pdfs_id", "archived_pdfs", ["id"])
    op.create_index("ix_archived_pdfs_studio_id", "archived_pdfs", ["studio_id"])
    op.create_index("ix_archived_pdfs_form_id", "archived_pdfs", ["form_id"])
    op.create_index("ix_archived_pdfs_client_name", "archived_pdfs", ["client_name"])
    op.create_index("ix_archived_pdfs_form_date", "archived_pdfs", ["form_date"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("studio_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(64), nullable=True),
        sa.Column("entity_id", sa.String(64), nullable=True),
        sa.Column("meta", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_studio_id", "audit_logs", ["studio_id"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])


def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("archived_pdfs")
    op.drop_table("forms")
    op.drop_table("templates")
    op.drop_table("studio_invitations")
    op.drop_table("user_profiles")
    op.drop_table("studios")
    op.drop_table("auth_identities")
