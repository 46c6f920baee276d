import enum
from datetime import datetime

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from guardit.models.base import Base


class AlertStatus(str, enum.Enum):
    """Alert lifecycle states."""

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class KeywordRule(Base):
    """Case-insensitive literal scanned for in status messages."""

    __tablename__ = "alert_keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    keyword: Mapped[str] = mapped_column(String(255), unique=True)
    alert_type: Mapped[str] = mapped_column(String(50))
    severity: Mapped[int] = mapped_column(Integer, default=1)  # higher = more urgent
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    def __repr__(self) -> str:
        return f"<KeywordRule {self.keyword!r} -> {self.alert_type}/{self.severity}>"


class Alert(Base):
    """Alert raised by a keyword match on a status message."""

    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("backup_tasks.task_id", ondelete="CASCADE"), index=True
    )
    alert_type: Mapped[str] = mapped_column(String(50))
    keyword: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)
    severity: Mapped[int] = mapped_column(Integer)
    status: Mapped[AlertStatus] = mapped_column(
        Enum(
            AlertStatus,
            values_callable=lambda e: [x.value for x in e],
            name="alertstatus",
            native_enum=False,
        ),
        default=AlertStatus.ACTIVE,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(default=func.now(), index=True)
    acknowledged_at: Mapped[datetime | None]
    resolved_at: Mapped[datetime | None]

    def __repr__(self) -> str:
        return f"<Alert {self.task_id} {self.alert_type}:{self.keyword} {self.status.value}>"
