"""
Liens et emails d'invitation.

Avec SENDGRID_API_KEY, l'email part par le relais SMTP SendGrid
(utilisateur "apikey", mot de passe = clé API). Sans clé, rien n'est envoyé :
l'administrateur reçoit le lien pour le transmettre lui-même.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from parcinfo.config import settings

logger = logging.getLogger(__name__)


def is_email_enabled() -> bool:
    return bool(settings.SENDGRID_API_KEY)


def build_invite_link(token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/invite/{token}"


def build_invite_message(first_name: Optional[str], last_name: Optional[str], token: str) -> str:
    """Message prêt à copier (messagerie, email manuel…)."""
    name = " ".join(part for part in (first_name, last_name) if part) or "et bienvenue"
    return (
        f"Bonjour {name} !\n\n"
        "Un compte a été créé pour vous dans ParcInfo, la gestion du parc informatique.\n"
        "Pour finaliser votre inscription et choisir votre mot de passe, ouvrez ce lien :\n\n"
        f"{build_invite_link(token)}\n\n"
        f"Ce lien est valable {settings.INVITE_TTL_HOURS} heures."
    )


def send_invite_email(to_email: str, first_name: Optional[str], last_name: Optional[str], token: str) -> None:
    """
    Envoie l'invitation par email (texte + HTML).
    Lève une exception en cas d'échec SMTP.
    """
    link = build_invite_link(token)
    msg = MIMEMultipart("alternative")
    msg["From"] = settings.EMAIL_FROM
    msg["To"] = to_email
    msg["Subject"] = "ParcInfo — Activez votre compte"

    html_content = f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: auto;">
        <h2 style="color: #1a73e8;">ParcInfo — Activation du compte</h2>
        <p>Bonjour {first_name or ''} {last_name or ''},</p>
        <p>Un compte a été créé pour vous. Choisissez votre mot de passe en cliquant sur le lien ci-dessous.</p>
        <p style="text-align: center; margin: 24px 0;">
          <a href="{link}" style="background: #1a73e8; color: #fff; padding: 12px 20px; text-decoration: none;">
            Définir mon mot de passe
          </a>
        </p>
        <p>Ce lien est valable {settings.INVITE_TTL_HOURS} heures et ne peut servir qu'une fois.</p>
        <hr style="border: none; border-top: 1px solid #eee;" />
        <p style="font-size: 12px; color: #888;">
          Ce message est généré automatiquement par ParcInfo. Ne pas répondre à cet email.
        </p>
      </body>
    </html>
    """

    msg.attach(MIMEText(build_invite_message(first_name, last_name, token), "plain", "utf-8"))
    msg.attach(MIMEText(html_content, "html", "utf-8"))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        server.login("apikey", settings.SENDGRID_API_KEY)
        server.send_message(msg)

    logger.info("Email d'invitation envoyé à %s", to_email)
