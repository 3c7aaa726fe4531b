import attrs

from src.platform.exception.exceptions import AuthenticationError
from src.platform.types import is_valid_object_id, normalize_object_id


@attrs.define(frozen=True)
class Principal:
    """Authenticated caller, rebuilt from the identity token on every request (no lookup)"""

    id: str
    email: str = ''
    name: str = ''

    @classmethod
    def from_claims(cls, claims: dict) -> 'Principal':
        principal_id = claims.get('sub')
        if not is_valid_object_id(principal_id):
            raise AuthenticationError('Invalid token subject')
        return cls(
            id=normalize_object_id(str(principal_id)),
            email=str(claims.get('email') or ''),
            name=str(claims.get('name') or ''),
        )
