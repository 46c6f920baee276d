"""Append-only status history and the daily aggregates derived from it."""

from datetime import date, datetime

from sqlalchemy import JSON, Date, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from guardit.models.base import Base


class StatusEvent(Base):
    """One persisted status report. Never updated after insert."""

    __tablename__ = "status_history"

    # Autoincrement id doubles as the server-assigned sequence number
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("backup_tasks.task_id", ondelete="CASCADE"), index=True
    )
    status: Mapped[str] = mapped_column(String(50))
    message: Mapped[str | None] = mapped_column(Text)
    progress: Mapped[int | None] = mapped_column(Integer)
    data: Mapped[dict | list | None] = mapped_column(JSON, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(default=func.now(), index=True)
    last_update: Mapped[str | None] = mapped_column(String(32))

    def __repr__(self) -> str:
        return f"<StatusEvent {self.task_id} {self.status} @ {self.timestamp}>"


class DailyMetric(Base):
    """Run counts for one task on one UTC date, recomputed wholesale."""

    __tablename__ = "daily_metrics"
    __table_args__ = (UniqueConstraint("task_id", "date", name="uq_daily_metrics_task_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("backup_tasks.task_id", ondelete="CASCADE"), index=True
    )
    day: Mapped[date] = mapped_column("date", Date, index=True)
    total_runs: Mapped[int] = mapped_column(Integer, default=0)
    successful_runs: Mapped[int] = mapped_column(Integer, default=0)
    failed_runs: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    def __repr__(self) -> str:
        return f"<DailyMetric {self.task_id} {self.day} {self.successful_runs}/{self.total_runs}>"
