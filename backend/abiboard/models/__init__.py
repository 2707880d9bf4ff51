# Re-export all models for convenient imports
from abiboard.models.user import User, UserRole, Gender
from abiboard.models.profile import Profile, ProfileStatus
from abiboard.models.profile_field import ProfileField, FieldType
from abiboard.models.field_value import FieldValue
from abiboard.models.system_setting import SystemSetting
from abiboard.models.student_activity import StudentActivity, ActivityAction

__all__ = [
    # User
    "User",
    "UserRole",
    "Gender",
    # Profile
    "Profile",
    "ProfileStatus",
    "FieldValue",
    # Field registry
    "ProfileField",
    "FieldType",
    # Admin
    "SystemSetting",
    # Activity
    "StudentActivity",
    "ActivityAction",
]
