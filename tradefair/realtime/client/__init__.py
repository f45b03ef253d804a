"""Client side of the realtime transaction-notification channel."""

from .conf import ClientSettings
from .conf import ReconnectPolicy
from .connection import ConnectionHandle
from .connection import ConnectionManager
from .connection import ConnectionState
from .dispatcher import AdminTransactionUpdate
from .dispatcher import EventDispatcher
from .dispatcher import TransactionUpdate
from .dispatcher import UnrecognizedUpdate
from .dispatcher import UpdateEvent
from .provider import NotificationContext
from .provider import NotificationContextError
from .provider import NotificationProvider
from .provider import use_notifications

__all__ = [
    "AdminTransactionUpdate",
    "ClientSettings",
    "ConnectionHandle",
    "ConnectionManager",
    "ConnectionState",
    "EventDispatcher",
    "NotificationContext",
    "NotificationContextError",
    "NotificationProvider",
    "ReconnectPolicy",
    "TransactionUpdate",
    "UnrecognizedUpdate",
    "UpdateEvent",
    "use_notifications",
]
