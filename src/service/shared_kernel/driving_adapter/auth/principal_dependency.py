from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import Cookie, Depends, Header

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.service.shared_kernel.domain.entity.principal_entity import Principal
from src.service.shared_kernel.driving_adapter.auth.jwt_auth import JwtAuth, extract_token


@inject
async def get_current_principal(
    jwt_auth: JwtAuth = Depends(Provide[Container.jwt_auth]),
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Cookie(None, alias=settings.AUTH_COOKIE_NAME),
) -> Principal:
    """Resolve the caller from a bearer token, falling back to the auth cookie"""
    return jwt_auth.get_principal_from_jwt(
        extract_token(authorization=authorization, cookie_token=token)
    )
