"""
Planificateur APScheduler pour le nettoyage périodique des sessions et invitations expirées.

Les sessions expirées sont aussi supprimées à la volée lors de leur validation ;
ce job évite que celles qui ne sont plus jamais présentées s'accumulent.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from parcinfo.services import invite_service, session_service

logger = logging.getLogger(__name__)


def cleanup_expired(store) -> None:
    """Tâche planifiée : supprime sessions et invitations expirées."""
    try:
        session_service.cleanup_expired_sessions(store)
        invite_service.cleanup_expired_invite_tokens(store)
    except Exception as exc:
        logger.error("Erreur lors du nettoyage des sessions / invitations : %s", exc)


def start_scheduler(store, interval_minutes: int) -> BackgroundScheduler:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        cleanup_expired,
        trigger="interval",
        minutes=interval_minutes,
        args=[store],
        id="auth_cleanup",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler démarré : nettoyage toutes les %d minutes.", interval_minutes)
    return scheduler


def stop_scheduler(scheduler: BackgroundScheduler) -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
