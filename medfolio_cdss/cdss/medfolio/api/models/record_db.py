from sqlalchemy import JSON, String, DateTime, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base

class Record(Base):
    __tablename__ = "records"
    __table_args__ = (
        UniqueConstraint("collection", "doc_id", name="uq_records_collection_doc_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Collection path, e.g. "patients" or "patients/<id>/prescriptions"
    collection: Mapped[str] = mapped_column(String(512), nullable=False, index=True)

    doc_id: Mapped[str] = mapped_column(String(128), nullable=False)

    # Document body
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
