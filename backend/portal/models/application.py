from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from portal.database import Base


class Application(Base):
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    first_name = Column(Text)
    last_name = Column(Text)
    date_of_birth = Column(Text)
    city = Column(Text)
    region = Column(Text)
    phone_number = Column(Text)
    guardian_full_name = Column(Text)
    guardian_phone_number = Column(Text)
    high_school = Column(Text)
    school_level = Column(Text)
    mathematics_average = Column(Text)
    general_average = Column(Text)
    has_competed = Column(Boolean, nullable=False, default=False)
    competitions = Column(Text)
    motivations = Column(Text)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    user = relationship("User", back_populates="application")
    status = relationship(
        "ApplicationStatus", back_populates="application", uselist=False, cascade="all, delete-orphan"
    )
    stored_objects = relationship("StoredObject", back_populates="application", cascade="all, delete-orphan")

    def stored_object(self, slot: str):
        for ref in self.stored_objects:
            if ref.slot == slot:
                return ref
        return None

    def object_key(self, slot: str) -> str | None:
        ref = self.stored_object(slot)
        return ref.object_key if ref else None


class ApplicationStatus(Base):
    __tablename__ = "application_status"

    application_id = Column(Integer, ForeignKey("applications.id", ondelete="CASCADE"), primary_key=True)
    status = Column(Text, nullable=False, default="DRAFT")
    report_status = Column(Text, nullable=False, default="PENDING")
    updated_at = Column(Text, nullable=False)

    application = relationship("Application", back_populates="status")
