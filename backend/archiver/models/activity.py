from sqlalchemy import Column, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship
from archiver.database import Base


class ActivityLog(Base):
    __tablename__ = "activity_log"
    __table_args__ = (Index("idx_activity_timestamp", "timestamp"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(Text, nullable=False)
    # Weak reference: nulled, never cascaded, when the document goes away
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)
    timestamp = Column(Text, nullable=False)

    document = relationship("Document")
