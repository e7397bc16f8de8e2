from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, create_engine, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from tubebrief.utils.logger import logger

def _now() -> datetime:
    return datetime.now(timezone.utc)

class Base(DeclarativeBase):
    pass

class UsageLog(Base):
    __tablename__ = "usage_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    endpoint: Mapped[str] = mapped_column(String(50), index=True)
    video_url: Mapped[Optional[str]] = mapped_column(Text)
    video_title: Mapped[Optional[str]] = mapped_column(Text)
    video_author: Mapped[Optional[str]] = mapped_column(Text)
    video_duration: Mapped[Optional[int]] = mapped_column(Integer)
    format: Mapped[Optional[str]] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    processing_time_ms: Mapped[Optional[int]] = mapped_column(Integer)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45))
    user_agent: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "endpoint": self.endpoint,
            "videoUrl": self.video_url,
            "videoTitle": self.video_title,
            "videoAuthor": self.video_author,
            "videoDuration": self.video_duration,
            "format": self.format,
            "status": self.status,
            "errorMessage": self.error_message,
            "processingTimeMs": self.processing_time_ms,
            "ipAddress": self.ip_address,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }

class SummaryRecord(Base):
    __tablename__ = "summary_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    usage_log_id: Mapped[Optional[int]] = mapped_column(ForeignKey("usage_logs.id"))
    video_url: Mapped[str] = mapped_column(Text, index=True)
    video_title: Mapped[Optional[str]] = mapped_column(Text)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    key_points: Mapped[Optional[list]] = mapped_column(JSON)
    transcript_length: Mapped[Optional[int]] = mapped_column(Integer)
    transcript_source: Mapped[Optional[str]] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

class UsageRepository:
    """Usage and summary logging.

    Write failures are logged and swallowed: the service works the same with
    a broken or missing database.
    """

    def __init__(self, database_url: str):
        self.engine = create_engine(database_url, pool_pre_ping=True)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)

    def start(self, endpoint: str, video_url: Optional[str] = None, format: Optional[str] = None,
              ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> Optional[int]:
        try:
            with self.Session.begin() as session:
                log = UsageLog(endpoint=endpoint, video_url=video_url, format=format,
                               ip_address=ip_address, user_agent=user_agent)
                session.add(log)
                session.flush()
                return log.id
        except SQLAlchemyError as e:
            logger.warning(f"Failed to write usage log: {e}")
            return None

    def complete(self, log_id: Optional[int], status: str, processing_time_ms: Optional[int] = None,
                 error_message: Optional[str] = None, video_title: Optional[str] = None,
                 video_author: Optional[str] = None, video_duration: Optional[int] = None) -> None:
        if log_id is None:
            return
        try:
            with self.Session.begin() as session:
                log = session.get(UsageLog, log_id)
                if log is None:
                    return
                log.status = status
                log.processing_time_ms = processing_time_ms
                log.error_message = error_message
                log.video_title = video_title or log.video_title
                log.video_author = video_author or log.video_author
                log.video_duration = video_duration if video_duration is not None else log.video_duration
                log.completed_at = _now()
        except SQLAlchemyError as e:
            logger.warning(f"Failed to update usage log {log_id}: {e}")

    def save_summary(self, log_id: Optional[int], video_url: str, video_title: Optional[str],
                     summary: Optional[str], key_points: Optional[List[str]],
                     transcript_length: int, transcript_source: str) -> None:
        try:
            with self.Session.begin() as session:
                session.add(SummaryRecord(
                    usage_log_id=log_id,
                    video_url=video_url,
                    video_title=video_title,
                    summary=summary,
                    key_points=key_points,
                    transcript_length=transcript_length,
                    transcript_source=transcript_source,
                ))
        except SQLAlchemyError as e:
            logger.warning(f"Failed to save summary for {video_url}: {e}")

    def recent(self, limit: int = 50, endpoint: Optional[str] = None) -> List[UsageLog]:
        stmt = select(UsageLog).order_by(UsageLog.created_at.desc(), UsageLog.id.desc()).limit(limit)
        if endpoint:
            stmt = stmt.where(UsageLog.endpoint == endpoint)
        with self.Session() as session:
            return list(session.scalars(stmt))

    def summaries(self, video_url: str) -> List[SummaryRecord]:
        stmt = select(SummaryRecord).where(SummaryRecord.video_url == video_url).order_by(SummaryRecord.id.desc())
        with self.Session() as session:
            return list(session.scalars(stmt))

    def stats(self) -> Dict[str, Any]:
        with self.Session() as session:
            rows = session.execute(
                select(UsageLog.endpoint, UsageLog.status, func.count(UsageLog.id), func.avg(UsageLog.processing_time_ms))
                .group_by(UsageLog.endpoint, UsageLog.status)
            ).all()
        by_endpoint: Dict[str, Dict[str, Any]] = {}
        total = 0
        for endpoint, status, count, avg_ms in rows:
            entry = by_endpoint.setdefault(endpoint, {"total": 0, "statuses": {}, "avgProcessingTimeMs": None})
            entry["total"] += count
            entry["statuses"][status] = count
            if status == "success" and avg_ms is not None:
                entry["avgProcessingTimeMs"] = round(float(avg_ms))
            total += count
        return {"total": total, "endpoints": by_endpoint}
