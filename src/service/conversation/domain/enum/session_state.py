from enum import StrEnum


class SessionState(StrEnum):
    """Within retention (OPEN) vs past retention (READ_ONLY, history only)"""

    OPEN = 'open'
    READ_ONLY = 'read_only'
