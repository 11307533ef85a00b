from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, Index, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base

"""
Model PatientRecord.

Rôle (fonctionnel) :
- Trace d’une prédiction : record patient reçu (features, JSONB) + résultat produit.
- Écriture “store-and-forget” : la table n’est jamais relue par le flux de prédiction.

Champs principaux :
- features : FeatureRecord tel que reçu (mesures cliniques + champs libres).
- model_identifier / model_accuracy : modèle ayant produit le résultat et son accuracy registry.
- prediction / probability / confidence / risk_score : résultat normalisé.
- source / used_fallback : distant ou synthétisé, cascade utilisée ou non.

Index :
- (created_at, model_identifier) pour les exports / suivis par modèle.
"""


class PatientRecord(Base):
    __tablename__ = "patient_records"

    # Identifiant généré (renvoyé au client : patient_record_id)
    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    features: Mapped[dict] = mapped_column(JSONB, nullable=False)

    model_identifier: Mapped[str] = mapped_column(String(50), nullable=False)
    model_accuracy: Mapped[float] = mapped_column(Float, nullable=False)

    # positive / negative + label brut du service ("CKD", "notckd"…)
    prediction: Mapped[str] = mapped_column(String(20), nullable=False)
    raw_prediction: Mapped[str | None] = mapped_column(String(50), nullable=True)

    probability: Mapped[float] = mapped_column(Float, nullable=False)   # 0..1
    confidence: Mapped[float] = mapped_column(Float, nullable=False)    # 0..100
    risk_score: Mapped[float] = mapped_column(Float, nullable=False)    # 0..100

    source: Mapped[str] = mapped_column(String(20), nullable=False)     # remote / synthesized
    used_fallback: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)

    __table_args__ = (Index("ix_patient_records_date_model", "created_at", "model_identifier"),)
