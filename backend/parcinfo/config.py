"""
Configuration centrale de l'application via variables d'environnement.
Charger depuis un fichier .env en développement.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Stockage : vide pour le fichier JSON local, sinon URL SQLAlchemy
    DATABASE_URL: str = ""
    DATA_FILE: str = "data/parcinfo.json"

    # Sessions et invitations
    SESSION_TTL_DAYS: int = 7
    INVITE_TTL_HOURS: int = 24

    # Mots de passe
    BCRYPT_ROUNDS: int = 12
    PASSWORD_MIN_LENGTH: int = 6
    LOGIN_MIN_DURATION_MS: int = 300  # plancher anti timing-attack

    # 2FA (TOTP RFC 6238)
    TOTP_ISSUER: str = "ParcInfo"
    TOTP_VALID_WINDOW: int = 1  # ±1 pas de 30 s
    BACKUP_CODE_COUNT: int = 10

    # Rate limiting (fenêtre fixe par IP)
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT_MAX: int = 5
    LOGIN_RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    INVITE_RATE_LIMIT_MAX: int = 10
    INVITE_RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    API_RATE_LIMIT_MAX: int = 100
    API_RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    # Invitations par email : sans clé SendGrid, le token est rendu à l'admin
    APP_URL: str = "http://localhost:5000"
    SENDGRID_API_KEY: str = ""
    SMTP_HOST: str = "smtp.sendgrid.net"
    SMTP_PORT: int = 587
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "parcinfo@example.com"

    # Nettoyage périodique des sessions et invitations expirées
    SCHEDULER_ENABLED: bool = True
    CLEANUP_INTERVAL_MINUTES: int = 60

    # Compte admin créé au démarrage en développement si aucun utilisateur
    BOOTSTRAP_ADMIN_USERNAME: str = "admin"
    BOOTSTRAP_ADMIN_EMAIL: str = "admin@example.com"
    BOOTSTRAP_ADMIN_PASSWORD: str = ""

    # Environnement
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
