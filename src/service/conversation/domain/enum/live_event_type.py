from enum import StrEnum


class LiveEventType(StrEnum):
    MESSAGE_RECEIVED = 'message_received'
    TYPING_START = 'typing_start'
    TYPING_STOP = 'typing_stop'
    PRESENCE_CHANGED = 'presence_changed'
    READ_RECEIPT = 'read_receipt'
    SESSION_EXPIRED = 'session_expired'
