from __future__ import annotations

import math
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

"""
Schemas Prédiction (Pydantic).

Rôle (fonctionnel) :
- PatientFeatures : record patient accepté par tous les endpoints de prédiction.
  - champs CKD connus typés (numériques / catégoriels), tous optionnels ;
  - champs supplémentaires acceptés et transmis tels quels aux services modèles (extra="allow").
- PredictionResponse / ComparisonResponse : contrat de sortie (format historique de l’app mobile).

Notes :
- Aucun champ n’est requis ni borné : un champ absent ou illisible ("?", texte) est traité
  comme absent et prend une valeur neutre dans l’estimateur local.
- Les valeurs catégorielles numériques (0/1) sont converties en texte.
"""

_NUMERIC = ("age", "bp", "sg", "al", "su", "bgr", "bu", "sc", "sod", "pot", "hemo", "pcv", "wbcc", "rbcc")
_CATEGORICAL = ("htn", "dm", "cad", "appet", "pe", "ane", "rbc", "pc", "pcc", "ba")


class PatientFeatures(BaseModel):
    """Mesures cliniques (dataset CKD UCI) : noms courts historiques."""
    model_config = ConfigDict(extra="allow")

    # numériques
    age: Optional[float] = None
    bp: Optional[float] = None      # tension (mm/Hg)
    sg: Optional[float] = None      # densité urinaire
    al: Optional[float] = None      # albumine
    su: Optional[float] = None      # sucre
    bgr: Optional[float] = None     # glycémie
    bu: Optional[float] = None      # urée sanguine
    sc: Optional[float] = None      # créatinine sérique
    sod: Optional[float] = None
    pot: Optional[float] = None
    hemo: Optional[float] = None
    pcv: Optional[float] = None
    wbcc: Optional[float] = None
    rbcc: Optional[float] = None

    # catégorielles
    htn: Optional[str] = None
    dm: Optional[str] = None
    cad: Optional[str] = None
    appet: Optional[str] = None
    pe: Optional[str] = None
    ane: Optional[str] = None
    rbc: Optional[str] = None
    pc: Optional[str] = None
    pcc: Optional[str] = None
    ba: Optional[str] = None

    @field_validator(*_NUMERIC, mode="before")
    @classmethod
    def _unreadable_number_is_missing(cls, v: Any) -> Any:
        # marqueur "?" du dataset UCI, texte libre, booléen, NaN : valeur absente
        if v is None or isinstance(v, bool):
            return None
        try:
            number = float(v)
        except (TypeError, ValueError):
            return None
        return number if math.isfinite(number) else None

    @field_validator(*_CATEGORICAL, mode="before")
    @classmethod
    def _categorical_to_text(cls, v: Any) -> Any:
        if isinstance(v, bool):
            return "yes" if v else "no"
        if isinstance(v, (int, float)):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    def to_record(self) -> dict[str, Any]:
        """Dict transmis aux modèles : champs renseignés + extras."""
        return self.model_dump(exclude_none=True)


class PredictionResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    success: bool = True
    risk_score: float                 # 0..100
    risk_label: str                   # "HIGH RISK: CKD Detected" / "LOW RISK: No CKD"
    result: str
    prediction: str                   # positive / negative
    probability: float
    confidence: float                 # 0..100
    model: str
    model_display: str
    accuracy: str                     # pourcentage, ex: "98.7"
    source: str                       # remote / synthesized
    used_fallback: bool
    recommendation: str
    patient_record_id: Optional[UUID] = None
    note: Optional[str] = None
    timestamp: str


class ComparisonEntryOut(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model: str
    model_display: str
    accuracy: str
    status: str                       # success / failed
    prediction: Optional[str] = None
    probability: Optional[float] = None
    confidence: Optional[float] = None
    source: Optional[str] = None
    error: Optional[str] = None


class ComparisonResponse(BaseModel):
    success: bool = True
    comparison_table: list[ComparisonEntryOut]
    best_model: Optional[ComparisonEntryOut] = None
    failed: int
    timestamp: str


class ModelOut(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model: str
    model_display: str
    accuracy: str
    rank: int
    remote: bool
    is_best: bool
