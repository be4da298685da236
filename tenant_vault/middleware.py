"""
aiohttp integration: a tenant-bound field cipher on every request.

    app = web.Application(middlewares=[field_encryption_middleware(encryptor)])

    async def handler(request):
        cipher = get_field_cipher(request)
        patient = cipher.decrypt_fields(row, PATIENT_FIELDS)

Requests without an organization get an :class:`UnboundTenantCipher`, which
raises on any encryption call instead of guessing a tenant.
"""
import logging
from typing import Any, Callable, Optional, Union

from aiohttp import web

from .crypto.engine import FieldEncryptor, TenantCipher, UnboundTenantCipher

logger = logging.getLogger("tenant_vault.middleware")

FIELD_CIPHER_KEY = "field_cipher"
ORGANIZATION_KEY = "organization_id"

TenantGetter = Callable[[web.Request], Optional[Any]]


def organization_from_request(request: web.Request) -> Optional[str]:
    """Default tenant getter: ``request["organization_id"]``, set by auth."""
    org = request.get(ORGANIZATION_KEY)
    if org is None or org == "":
        return None
    return str(org)


def field_encryption_middleware(
    encryptor: FieldEncryptor,
    tenant_getter: Optional[TenantGetter] = None,
):
    """Build a middleware storing a field cipher under ``request["field_cipher"]``.

    Args:
        encryptor: Engine shared by every request.
        tenant_getter: Callable returning the request's tenant id, or None.
    """
    getter = tenant_getter or organization_from_request

    @web.middleware
    async def middleware(request: web.Request, handler):
        tenant_id = getter(request)
        if tenant_id:
            request[FIELD_CIPHER_KEY] = encryptor.for_tenant(str(tenant_id))
        else:
            logger.debug("No organization on request %s; cipher unbound", request.path)
            request[FIELD_CIPHER_KEY] = UnboundTenantCipher()
        return await handler(request)

    return middleware


def get_field_cipher(request: web.Request) -> Union[TenantCipher, UnboundTenantCipher]:
    """Return the cipher bound by :func:`field_encryption_middleware`.

    Raises:
        RuntimeError: If the middleware is not installed.
    """
    try:
        return request[FIELD_CIPHER_KEY]
    except KeyError:
        raise RuntimeError(
            "field_encryption_middleware is not installed on this application"
        ) from None
