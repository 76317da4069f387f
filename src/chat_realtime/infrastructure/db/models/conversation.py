from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_realtime.infrastructure.db.base import Base


class ConversationModel(Base):
    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(160), primary_key=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    parent_id: Mapped[str | None] = mapped_column(
        String(160),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=True,
    )
    # Set only for private conversations, in canonical order.
    peer_low: Mapped[str | None] = mapped_column(String(64), nullable=True)
    peer_high: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )

    # relationships
    members = relationship("MemberModel", back_populates="conversation", lazy="noload")

    __table_args__ = (
        UniqueConstraint("peer_low", "peer_high", name="uq_conversations_private_pair"),
        Index("ix_conversations_parent", "parent_id"),
    )
