"""Création de la table patient_records.

Rôle (fonctionnel) :
- Trace de chaque prédiction servie : record patient (JSONB) + résultat normalisé
  (modèle, label, probabilité, confiance, source distante / synthétisée, fallback).
- Table en écriture seule pour l’API (store-and-forget).

Revision ID: 5c2e81d04a7f
Revises:
Create Date: 2026-10-16
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Identifiants Alembic
revision: str = "5c2e81d04a7f"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Application des changements de schéma."""
    op.create_table(
        "patient_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("features", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("model_identifier", sa.String(length=50), nullable=False),
        sa.Column("model_accuracy", sa.Float(), nullable=False),
        sa.Column("prediction", sa.String(length=20), nullable=False),
        sa.Column("raw_prediction", sa.String(length=50), nullable=True),
        sa.Column("probability", sa.Float(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("risk_score", sa.Float(), nullable=False),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("used_fallback", sa.Boolean(), nullable=False),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_patient_records"),
    )
    op.create_index("ix_patient_records_created_at", "patient_records", ["created_at"], unique=False)
    op.create_index(
        "ix_patient_records_date_model",
        "patient_records",
        ["created_at", "model_identifier"],
        unique=False,
    )


def downgrade() -> None:
    """Retour arrière des changements de schéma."""
    op.drop_index("ix_patient_records_date_model", table_name="patient_records")
    op.drop_index("ix_patient_records_created_at", table_name="patient_records")
    op.drop_table("patient_records")
