"""Franchise import job model: one row per directory refresh run."""

from sqlalchemy import Column, String, Integer, DateTime, Text, Index

from merchant_directory.models.base import Base, UUIDMixin

JOB_RUNNING = "running"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"

TRIGGER_CRON = "cron"
TRIGGER_MANUAL = "manual"


class ImportJob(UUIDMixin, Base):
    __tablename__ = "franchise_import_jobs"

    status = Column(String(20), nullable=False, default=JOB_RUNNING, index=True)  # running, completed, failed
    processed_count = Column(Integer, nullable=False, default=0)
    total_count = Column(Integer)

    started_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True))
    error_message = Column(Text)

    trigger = Column(String(20), nullable=False)  # cron, manual
    requested_by = Column(String(255))

    __table_args__ = (
        Index("idx_import_job_status_started", "status", "started_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in (JOB_COMPLETED, JOB_FAILED)
