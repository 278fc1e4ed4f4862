"""
Connexion SQLAlchemy, utilisée seulement si DATABASE_URL est renseignée.
Sans URL, l'application tourne sur le stockage fichier JSON.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """Crée le moteur ; SQLite exige check_same_thread=False sous FastAPI (threadpool)."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
