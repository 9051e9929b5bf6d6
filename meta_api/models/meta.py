"""
Meta Entry Model

One row per stored meta value. A key registered with single=False may
have several rows for the same parent; rows are addressed by their id
(the entry id), never by key.

meta_value is a JSON column so that structured values written by other
code remain representable; the API itself only writes scalars.
"""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String

from meta_api.database import Base


class MetaEntryRow(Base):
    __tablename__ = "meta_entries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Parent entity, e.g. ("post", 12)
    entity_type = Column(String(20), nullable=False)
    entity_id = Column(Integer, nullable=False)

    meta_key = Column(String(255), nullable=False)
    meta_value = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_meta_entries_parent_key", "entity_type", "entity_id", "meta_key"),
        Index("ix_meta_entries_type_key", "entity_type", "meta_key"),
    )

    def __repr__(self) -> str:
        return f"<MetaEntryRow(id={self.id}, {self.entity_type}:{self.entity_id}, key={self.meta_key})>"
