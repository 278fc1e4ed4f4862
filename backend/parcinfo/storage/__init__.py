"""
Sélection du stockage au démarrage : SQL si DATABASE_URL est renseignée, sinon fichier JSON.
"""

import logging

from parcinfo.storage.base import InviteTokenStore, SessionStore, Store, UserStore
from parcinfo.storage.file_store import FileStore

logger = logging.getLogger(__name__)

__all__ = ["FileStore", "InviteTokenStore", "SessionStore", "Store", "UserStore", "create_store"]


def create_store(database_url: str, data_file: str) -> Store:
    if database_url and database_url.strip():
        # Import local : SQLAlchemy ne charge les modèles que si le mode SQL est utilisé
        from parcinfo.storage.sql_store import SqlStore

        logger.info("Stockage SQL activé")
        return SqlStore(database_url.strip())

    logger.info("Stockage fichier JSON activé (%s)", data_file)
    return FileStore(data_file)
