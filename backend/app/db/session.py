from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.settings import Settings, settings

"""
DB Session.

Rôle (fonctionnel) :
- Initialise l’engine SQLAlchemy en mode async (runtime FastAPI).
- Fournit une factory de sessions AsyncSession (AsyncSessionLocal).
- Expose `get_db()` comme dépendance FastAPI.

Notes :
- L’engine ne se connecte qu’au premier usage : l’API démarre même si la base est absente
  (les prédictions restent servies, la persistance est best-effort).
- expire_on_commit=False : les objets restent lisibles après commit (id généré).
- Connexion bornée par DB_CONNECT_TIMEOUT_SECONDS : un hôte injoignable ne bloque pas
  la réponse pendant le délai par défaut d’asyncpg (60 s).
"""


def engine_options(cfg: Settings) -> dict:
    """Options de l’engine ; timeout de connexion asyncpg borné (persistance best-effort)."""
    return {
        "echo": False,
        "pool_pre_ping": True,
        "connect_args": {"timeout": cfg.DB_CONNECT_TIMEOUT_SECONDS},
    }


engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db():
    """Dépendance FastAPI : yield une session DB et garantit sa fermeture."""
    async with AsyncSessionLocal() as session:
        yield session
