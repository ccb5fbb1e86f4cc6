import socket
import uuid

from trove_client.storage import JsonFileStore

DEVICE_ID_KEY = "uniqueDeviceId"


class DeviceIdentity:
    """Stable per-installation id: generated once, then read back from the store."""

    def __init__(self, store: JsonFileStore):
        self.store = store

    def get_device_id(self) -> str:
        device_id = self.store.get_item(DEVICE_ID_KEY)
        if not device_id:
            name = socket.gethostname() or "device"
            device_id = f"{name}-{uuid.uuid4()}"
            self.store.set_item(DEVICE_ID_KEY, device_id)
        return device_id
