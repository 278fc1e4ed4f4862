"""
Modèles SQLAlchemy pour les sessions et les jetons d'invitation.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String

from parcinfo.database import Base


class SessionRow(Base):
    """Session opaque : le jeton est la clé primaire."""
    __tablename__ = "sessions"

    id = Column(String(128), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)


class InviteTokenRow(Base):
    __tablename__ = "invite_tokens"

    token = Column(String(128), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
