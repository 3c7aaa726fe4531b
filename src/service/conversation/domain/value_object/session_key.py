import attrs

from src.platform.exception.exceptions import InvalidArgumentError


@attrs.define(frozen=True)
class SessionKey:
    """
    Uniqueness key of a conversation: the unordered participant pair plus the
    optional product it is about. (A, B, P) and (B, A, P) are the same key.
    """

    participants: frozenset[str]
    product_id: str | None = None

    @classmethod
    def of(cls, first_id: str, second_id: str, product_id: str | None = None) -> 'SessionKey':
        if first_id == second_id:
            raise InvalidArgumentError('Cannot start a conversation with yourself')
        return cls(participants=frozenset((first_id, second_id)), product_id=product_id or None)
