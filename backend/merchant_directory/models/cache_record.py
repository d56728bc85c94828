"""Franchise cache model: normalized directory rows tagged with their import job."""

from sqlalchemy import Column, String, Boolean, Integer, Text, ForeignKey, Index, JSON, Uuid

from merchant_directory.models.base import Base


class CacheRecord(Base):
    __tablename__ = "franchise_cache"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Franchise fields as reported upstream
    fid = Column(String(64), index=True)
    name = Column(String(255))
    company = Column(String(255))
    company_address = Column(Text)
    source_created_at = Column(String(64))
    source_updated_at = Column(String(64))

    outlets = Column(JSON, nullable=False, default=list)
    raw_payload = Column(JSON)

    # Computed once at ingestion time
    outlet_count = Column(Integer, nullable=False, default=0)
    active_outlet_count = Column(Integer, nullable=False, default=0)

    # Generation bookkeeping
    import_index = Column(Integer, nullable=False)
    job_id = Column(Uuid(as_uuid=True), ForeignKey("franchise_import_jobs.id"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_franchise_cache_active_index", "is_active", import_index.desc()),
    )
