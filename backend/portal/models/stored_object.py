from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from portal.database import Base


class StoredObject(Base):
    __tablename__ = "stored_objects"

    application_id = Column(Integer, ForeignKey("applications.id", ondelete="CASCADE"), primary_key=True)
    slot = Column(Text, primary_key=True)
    object_key = Column(Text, nullable=False)
    committed_at = Column(Text, nullable=False)

    application = relationship("Application", back_populates="stored_objects")
