from booking_engine.conversation.entity_extractor import EntityExtractor, extract_entities
from booking_engine.conversation.slot_manager import SlotName, apply_patch, get_next_empty_slot
from booking_engine.conversation.state_machine import (
    SessionState,
    SessionStateMachine,
    TransitionTrigger,
)

__all__ = [
    "SessionStateMachine",
    "SessionState",
    "TransitionTrigger",
    "EntityExtractor",
    "extract_entities",
    "SlotName",
    "apply_patch",
    "get_next_empty_slot",
]
