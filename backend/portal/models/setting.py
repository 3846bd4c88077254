from sqlalchemy import Column, Text
from portal.database import Base


class PortalSetting(Base):
    __tablename__ = "portal_settings"

    key = Column(Text, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)
