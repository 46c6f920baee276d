"""Known servers and the backup tasks that report status."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from guardit.models.base import Base, TimestampMixin


class Server(Base, TimestampMixin):
    """A host grouping one or more backup tasks."""

    __tablename__ = "servers"

    server_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_seen: Mapped[datetime | None]

    tasks: Mapped[list[BackupTask]] = relationship(back_populates="server")

    def __repr__(self) -> str:
        return f"<Server {self.server_id}>"


class BackupTask(Base, TimestampMixin):
    """A recurring backup job whose lifecycle is reported via status pushes."""

    __tablename__ = "backup_tasks"

    task_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(255))
    task_type: Mapped[str] = mapped_column(String(50), default="backup")
    description: Mapped[str | None] = mapped_column(Text)
    server_id: Mapped[str | None] = mapped_column(
        String(255), ForeignKey("servers.server_id", ondelete="SET NULL"), index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_seen: Mapped[datetime | None]

    server: Mapped[Server | None] = relationship(back_populates="tasks")

    def __repr__(self) -> str:
        return f"<BackupTask {self.task_id} active={self.is_active}>"
