from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.request_id import get_request_id
from app.ml.model_registry import ModelDescriptor
from app.ml.types import FeatureRecord, PredictionOutcome
from app.models.patient_record import PatientRecord

"""
Record Store.

Rôle (fonctionnel) :
- Persiste chaque prédiction (record patient + résultat) dans patient_records.
- Retourne l’identifiant généré (patient_record_id renvoyé au client).

Politique d’échec :
- Une écriture ratée ne fait JAMAIS échouer la prédiction : on logue, on rollback,
  on retourne None ; l’API annote alors la réponse ("Prediction saved locally only").
"""

log = logging.getLogger("app.records")


class RecordStore:
    async def save(
        self,
        db: Optional[AsyncSession],
        record: FeatureRecord,
        outcome: PredictionOutcome,
        descriptor: ModelDescriptor,
    ) -> Optional[uuid.UUID]:
        if db is None:
            return None

        row = PatientRecord(
            id=uuid.uuid4(),
            features=dict(record),
            model_identifier=outcome.model_identifier,
            model_accuracy=descriptor.accuracy,
            prediction=outcome.label,
            raw_prediction=outcome.raw_label,
            probability=outcome.probability,
            confidence=outcome.confidence,
            risk_score=outcome.risk_score,
            source=outcome.source,
            used_fallback=outcome.used_fallback,
            request_id=get_request_id(),
            created_at=datetime.now(timezone.utc),
        )

        try:
            db.add(row)
            await db.commit()
        except Exception:
            log.warning("patient record not saved", exc_info=True, extra={"model": outcome.model_identifier})
            try:
                await db.rollback()
            except Exception:
                log.debug("rollback failed after save error", exc_info=True)
            return None

        log.info("patient record saved", extra={"record_id": str(row.id), "model": outcome.model_identifier})
        return row.id
