from sqlalchemy import Column, Integer, Text
from sqlalchemy.orm import relationship
from portal.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    role = Column(Text, nullable=False, default="CANDIDATE")
    locale = Column(Text, nullable=False, default="fr")
    created_at = Column(Text, nullable=False)

    application = relationship("Application", back_populates="user", uselist=False)
