"""Registry side: package list client and change stream consumer."""

from .client import RegistryClient
from .models import ChangeNotification, Package, PackageAuthor
from .stream import ChangeStreamConsumer, ServerSentEvent, iter_sse_events

__all__ = [
    "ChangeNotification",
    "ChangeStreamConsumer",
    "Package",
    "PackageAuthor",
    "RegistryClient",
    "ServerSentEvent",
    "iter_sse_events",
]
