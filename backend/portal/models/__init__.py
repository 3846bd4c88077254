from portal.models.user import User
from portal.models.application import Application, ApplicationStatus
from portal.models.stored_object import StoredObject
from portal.models.setting import PortalSetting

__all__ = ["User", "Application", "ApplicationStatus", "StoredObject", "PortalSetting"]
