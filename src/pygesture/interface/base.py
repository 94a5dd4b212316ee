from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
import threading


@dataclass(frozen=True)
class LinkDescriptor:
    """Identity of the glove's notification link.

    The UUIDs identify the service and notify characteristic the firmware
    exposes; the ZMQ transport carries them as metadata only.
    """
    device_name: str = "ESP32_Gesture"
    service_uuid: str = "4fafc201-1fb5-459e-8fcc-c5c9c331914b"
    characteristic_uuid: str = "beb5483e-36e1-4688-b7f5-ea07361b26a8"
    encoding: str = "utf-8"


DEFAULT_LINK = LinkDescriptor()


class BaseLink(ABC):
    """Minimal lifecycle surface shared by both ends of the frame link."""

    def __init__(self, descriptor: Optional[LinkDescriptor] = None) -> None:
        self.descriptor = descriptor or DEFAULT_LINK
        self.ready_event = threading.Event()
        self.streaming = False

    @abstractmethod
    def start(self) -> None:
        ...

    @abstractmethod
    def stop(self, timeout: Optional[float] = None) -> None:
        ...

    @property
    @abstractmethod
    def link_active(self) -> bool:
        """True while the other end is known to be connected."""
        ...

    def close(self) -> None:
        self.stop()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
