"""Remember token database table model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, Index, String, Text
from sqlmodel import Field, SQLModel

from src.app.core.models.identity import Provider


class RememberTokenTable(SQLModel, table=True):
    """Database persistence model for remember-me tokens.

    The token value is the primary key, so it is unique and indexed. The
    identity index is unique: one identity holds at most one token, and of
    two concurrent issues for the same identity the later insert fails. The
    expiry index serves the sweep. Timestamps are stored as naive UTC.
    """

    __tablename__ = "remember_tokens"
    __table_args__ = (
        Index(
            "ix_remember_tokens_identity", "external_id", "provider", unique=True
        ),
    )

    token: str = Field(sa_column=Column(String(64), primary_key=True))
    external_id: str = Field(sa_column=Column(String(255), nullable=False))
    provider: Provider = Field(
        sa_column=Column(
            Enum(
                Provider,
                name="remember_token_provider",
                values_callable=lambda members: [m.value for m in members],
            ),
            nullable=False,
        )
    )
    email: str = Field(sa_column=Column(String(255), nullable=False))
    display_name: str = Field(sa_column=Column(String(255), nullable=False))
    avatar_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    expires_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False, index=True)
    )
    created_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    last_used_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
