"""
app.db

Package base de données : base déclarative + session async.

- session : engine async et dépendance FastAPI Depends(get_db).
- migrations : Alembic (backend/alembic), côté sync via DATABASE_URL_SYNC.
"""
