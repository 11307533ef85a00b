"""
app.models

Package ORM (SQLAlchemy) : entités persistées en base.

- PatientRecord : trace de chaque prédiction (record patient + résultat).
"""

from app.models.patient_record import PatientRecord

__all__ = ["PatientRecord"]
