"""Domain package exports for value objects, ports and pure helpers."""

from .delivery_slots import DeliverySlotCache, generate_delivery_slots
from .dependency_graph import DependentCell, FieldChange, ResolutionTicket
from .entities import (
    BookingSession,
    DeliverySlot,
    District,
    Mandal,
    MasterDataRecord,
    SessionStatus,
    Stockyard,
    User,
    Village,
)
from .errors import (
    FormValidationError,
    NetworkError,
    StaleResultDiscarded,
    SubmissionError,
)
from .ports import GatewayPort, UseCaseError

__all__ = [
    "BookingSession",
    "DeliverySlot",
    "DeliverySlotCache",
    "DependentCell",
    "District",
    "FieldChange",
    "FormValidationError",
    "GatewayPort",
    "Mandal",
    "MasterDataRecord",
    "NetworkError",
    "ResolutionTicket",
    "SessionStatus",
    "StaleResultDiscarded",
    "Stockyard",
    "SubmissionError",
    "UseCaseError",
    "User",
    "Village",
    "generate_delivery_slots",
]
