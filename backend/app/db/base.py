from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

"""
DB Base.

Rôle (fonctionnel) :
- Classe Base SQLAlchemy commune aux modèles ORM (models/*).
- Metadata partagée avec Alembic (target_metadata dans alembic/env.py).
- Convention de nommage explicite : noms d’index / contraintes stables entre
  autogenerate et migrations écrites à la main.
"""

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Classe racine ORM (SQLAlchemy Declarative)."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
