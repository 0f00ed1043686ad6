# usagewatch/models/__init__.py
from usagewatch.models.users import User
from usagewatch.models.notification_logs import NotificationLog
from usagewatch.models.deleted_apps import DeletedApp
from usagewatch.models.app_restrictions import AppRestriction
from usagewatch.models.new_app_detections import NewAppDetection
from usagewatch.models.shared_state import SharedStateEntry
