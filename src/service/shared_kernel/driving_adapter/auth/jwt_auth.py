"""
Identity verification

Tokens are issued by the external identity service; this side only verifies the
signature and rebuilds the principal from the claims (no lookup).
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import jwt

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import AuthenticationError
from src.service.shared_kernel.domain.entity.principal_entity import Principal


class JwtAuth:
    def __init__(self) -> None:
        self.secret = settings.SECRET_KEY.get_secret_value()
        self.algorithm = settings.ALGORITHM
        self.token_expire_days = 7

    def create_jwt_token(self, principal: Principal) -> str:
        """Mint a token the way the identity service does (used by tests and local tooling)"""
        payload = {
            'sub': principal.id,
            'exp': datetime.now(timezone.utc) + timedelta(days=self.token_expire_days),
            'iat': datetime.now(timezone.utc),
            'email': principal.email,
            'name': principal.name,
        }

        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError:
            raise AuthenticationError('Invalid token')

    def get_principal_from_jwt(self, token: Optional[str]) -> Principal:
        if not token:
            raise AuthenticationError('Not authenticated')

        payload = self.decode_jwt_token(token)
        return Principal.from_claims(payload)


def extract_token(*, authorization: Optional[str], cookie_token: Optional[str]) -> Optional[str]:
    if authorization:
        scheme, _, credentials = authorization.partition(' ')
        if scheme.lower() == 'bearer' and credentials:
            return credentials.strip()
    return cookie_token
