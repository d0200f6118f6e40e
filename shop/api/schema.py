"""
GraphQL schema definition using Ariadne.

Read-only views of the caller's account; all writes go through the REST API.
"""
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from uuid import UUID

from ariadne import (
    QueryType,
    ScalarType,
    format_error as default_format_error,
    load_schema_from_path,
    make_executable_schema,
)

from shop.api.auth import authenticate
from shop.api.serializers import cart_to_list, customer_to_dict, order_to_dict
from shop.domain.exceptions import ShopError
from shop.services.cart import CartService
from shop.services.orders import OrderService

type_defs = load_schema_from_path(Path(__file__).parent / "schema.graphql")

query = QueryType()


@query.field("me")
def resolve_me(_, info):
    return customer_to_dict(authenticate(info.context["request"]))


@query.field("cart")
def resolve_cart(_, info):
    customer = authenticate(info.context["request"])
    return cart_to_list(CartService().get(customer))


@query.field("myOrders")
def resolve_my_orders(_, info):
    customer = authenticate(info.context["request"])
    return [order_to_dict(order) for order in OrderService().list_orders(customer)]


@query.field("order")
def resolve_order(_, info, id):
    customer = authenticate(info.context["request"])
    return order_to_dict(OrderService().get_order(customer, id))


def format_error(error, debug: bool = False) -> dict:
    """Attach the domain error code to GraphQL errors."""
    formatted = default_format_error(error, debug)
    original = getattr(error, "original_error", None)
    if isinstance(original, ShopError):
        formatted.setdefault("extensions", {})["code"] = original.code
    return formatted


# Define custom scalars
decimal_scalar = ScalarType("Decimal")
uuid_scalar = ScalarType("UUID")
datetime_scalar = ScalarType("DateTime")


@decimal_scalar.serializer
def serialize_decimal(value):
    return str(value)


@decimal_scalar.value_parser
def parse_decimal_value(value):
    return Decimal(str(value))


@uuid_scalar.serializer
def serialize_uuid(value):
    return str(value)


@uuid_scalar.value_parser
def parse_uuid_value(value):
    """Parse UUID from string."""
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


@datetime_scalar.serializer
def serialize_datetime(value):
    """Serialize DateTime to ISO format string."""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


schema = make_executable_schema(
    type_defs,
    query,
    datetime_scalar,
    decimal_scalar,
    uuid_scalar,
)
