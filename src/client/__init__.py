from src.client.api_client import TaskAPIClient
from src.client.notifications import APSchedulerBackend, NotificationBackend, ReminderScheduler
from src.client.reminder_store import ReminderStore
from src.client.session import CredentialStore, SessionContext
from src.client.workflow import TaskWorkflow


__all__ = [
    "APSchedulerBackend",
    "CredentialStore",
    "NotificationBackend",
    "ReminderScheduler",
    "ReminderStore",
    "SessionContext",
    "TaskAPIClient",
    "TaskWorkflow",
]
