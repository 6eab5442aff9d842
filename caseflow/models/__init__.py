# Import models here so Alembic can discover them via metadata
from .base import Base  # noqa: F401
from .user import User  # noqa: F401
from .application import Application  # noqa: F401
from .application_action import ApplicationAction  # noqa: F401
from .system_setting import SystemSetting  # noqa: F401
from .application_number_counter import ApplicationNumberCounter  # noqa: F401
