"""
Bearer-token authentication against the identity provider.
"""
from __future__ import annotations

from shop.domain.exceptions import Forbidden, Unauthorized
from shop.infra.identity import get_identity_verifier
from shop.infra.models import CustomerORM
from shop.infra.repositories import CustomerRepository


def bearer_token(request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("Authentication token is required")
    return token.strip()


def authenticate(request) -> CustomerORM:
    """Resolve the calling customer, registering it on first sight."""
    customer = getattr(request, "customer", None)
    if customer is not None:
        return customer

    identity = get_identity_verifier().verify(bearer_token(request))
    customer = CustomerRepository().get_or_create_for_identity(
        identity.uid,
        name=identity.name,
        email=identity.email,
        phone=identity.phone,
    )
    request.customer = customer
    return customer


def require_admin(request) -> CustomerORM:
    customer = authenticate(request)
    if not customer.is_admin:
        raise Forbidden("Admin access required")
    return customer
