from .base import BaseLink, LinkDescriptor, DEFAULT_LINK
from ._codec import WireFrame, encode_frame, decode_frame, try_decode_frame
from ._zmq_link import FramePublisher, FrameSubscriber
from ._device import GestureDevice, FramePlayback

__all__ = [
    "BaseLink",
    "LinkDescriptor",
    "DEFAULT_LINK",
    "WireFrame",
    "encode_frame",
    "decode_frame",
    "try_decode_frame",
    "FramePublisher",
    "FrameSubscriber",
    "GestureDevice",
    "FramePlayback",
]
