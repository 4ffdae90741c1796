from .models import InspectionEvent, InspectionEventType
from .emitter import InspectionEventEmitter, NullEventEmitter
from .memory_emitter import MemoryQueueEventEmitter

__all__ = [
    "InspectionEvent",
    "InspectionEventType",
    "InspectionEventEmitter",
    "NullEventEmitter",
    "MemoryQueueEventEmitter",
]
