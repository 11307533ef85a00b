import sys
import json
import asyncio
import argparse

# Windows: compat event loop (évite certains soucis avec drivers async PostgreSQL)
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from app.core.settings import settings
from app.ml.model_registry import get_registry
from app.ml.remote_client import RemoteModelClient
from app.ml.types import freeze_record
from app.schemas.predictions import PatientFeatures
from app.services.prediction_service import PredictionService

"""
Script CLI: predict_one

Rôle (fonctionnel) :
- Lit un record patient JSON (fichier ou stdin).
- Exécute une prédiction sans passer par l’API :
  - par défaut : meilleur modèle + cascade (dispatch)
  - --model xgboost : un modèle précis
  - --compare : tous les modèles en parallèle
- Affiche le résultat (rien n’est persisté).

Usage typique :
    python -m scripts.predict_one patient.json
    echo '{"age": 70, "sc": 1.8}' | python -m scripts.predict_one --compare
"""


def _parse_args(argv=None):
    p = argparse.ArgumentParser(description="Prédiction CKD ponctuelle (debug).")
    p.add_argument("path", nargs="?", help="Fichier JSON du record patient (stdin si absent)")
    p.add_argument("--model", help="Identifiant du modèle (ex: xgboost)")
    p.add_argument("--compare", action="store_true", help="Comparer tous les modèles")
    return p.parse_args(argv)


def _load(path):
    if path:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    return json.load(sys.stdin)


async def main(argv=None):
    args = _parse_args(argv)
    record = freeze_record(PatientFeatures.model_validate(_load(args.path)).to_record())

    client = RemoteModelClient(timeout=settings.MODEL_TIMEOUT_SECONDS)
    svc = PredictionService.from_settings(settings, get_registry(), client)
    try:
        if args.compare:
            report = await svc.compare_all(record)
            for entry in report:
                o = entry.outcome
                if o:
                    print(f"{entry.descriptor.identifier:<14} {o.label:<9} p={o.probability:.3f} ({o.source})")
                else:
                    print(f"{entry.descriptor.identifier:<14} FAILED    {entry.error}")
            print("Best:", report.best.descriptor.identifier if report.best else "-")
            return

        if args.model:
            outcome = await svc.predict_with(args.model, record)
        else:
            outcome = await svc.dispatch(record)

        print("Model:", outcome.model_identifier)
        print("Prediction:", outcome.label, f"(p={outcome.probability:.3f}, confidence={outcome.confidence:.1f}%)")
        print("Source:", outcome.source, "| fallback:", outcome.used_fallback)
    finally:
        await client.close()


if __name__ == "__main__":
    asyncio.run(main())
