from sqlalchemy import Column, Integer, Text
from sqlalchemy.orm import relationship
from archiver.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    color = Column(Text)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    documents = relationship("Document", back_populates="category", passive_deletes="all")
