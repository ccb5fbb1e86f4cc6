from trove_client.device import DeviceIdentity
from trove_client.offline_queue import OfflineQueue
from trove_client.storage import JsonFileStore
from trove_client.sync import SyncTriggers
from trove_client.transport import HttpTransport, TransportError

__all__ = [
    "DeviceIdentity",
    "HttpTransport",
    "JsonFileStore",
    "OfflineQueue",
    "SyncTriggers",
    "TransportError",
]
