"""FastAPI dependencies guarding routes with SSO or API key authentication."""

import logging

from fastapi import Depends, Request

from app.config import settings
from app.dependencies import get_api_key_validator
from app.errors import UnauthorizedError
from app.services.auth import ApiKeyValidator, AuthContext

logger = logging.getLogger(__name__)


def _header(request: Request, name: str) -> str:
    return request.headers.get(name, "").strip()


async def require_sso(request: Request) -> AuthContext:
    """The upstream SSO proxy already verified the identity; presence is enough."""
    identity_id = _header(request, settings.identity_header_name)
    if not identity_id:
        raise UnauthorizedError("Unauthorized: Missing identity ID")

    logger.debug("SSO authentication successful for identity: %s", identity_id)
    context = AuthContext(identity_id=identity_id, is_api_key_auth=False)
    request.state.auth = context
    return context


async def require_api_key(
    request: Request,
    validator: ApiKeyValidator = Depends(get_api_key_validator),
) -> AuthContext:
    api_key = _header(request, settings.api_key_header_name)
    if not api_key:
        raise UnauthorizedError("Unauthorized: Missing API key")

    check = await validator.validate(api_key)
    if not check.is_valid:
        raise UnauthorizedError("Unauthorized: Invalid API key")

    logger.debug("API key authentication successful: %s", check.id)
    context = AuthContext(api_key_id=check.id, is_api_key_auth=True)
    request.state.auth = context
    return context


async def require_any_auth(
    request: Request,
    validator: ApiKeyValidator = Depends(get_api_key_validator),
) -> AuthContext:
    """Identity header wins; otherwise an API key; otherwise 401 untouched."""
    if _header(request, settings.identity_header_name):
        return await require_sso(request)
    if _header(request, settings.api_key_header_name):
        return await require_api_key(request, validator)
    raise UnauthorizedError("Unauthorized: Missing authentication credentials")
