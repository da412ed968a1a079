from sqlalchemy import Column, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship
from archiver.database import Base


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("idx_documents_category", "category_id"),
        Index("idx_documents_uploaded", "uploaded_at"),
        Index("idx_documents_status", "status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    document_number = Column(Text)
    description = Column(Text)
    document_date = Column(Text)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False)
    file_path = Column(Text, nullable=False)
    file_type = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, default="ACTIVE")
    uploaded_at = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)

    category = relationship("Category", back_populates="documents")
