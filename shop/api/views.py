"""
JSON REST views and the GraphQL endpoint.
"""
import json
import logging
from functools import wraps
from uuid import UUID

from ariadne import graphql_sync
from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from shop.api.auth import authenticate, require_admin
from shop.api.middleware import ErrorHandler
from shop.api.schema import format_error, schema
from shop.api.serializers import cart_to_list, customer_to_dict, order_to_dict, wishlist_to_list
from shop.domain.exceptions import Forbidden, ShopError, ValidationError
from shop.services.admin_orders import UNSET, OrderAdminService
from shop.services.cart import CartService
from shop.services.checkout import CheckoutService
from shop.services.orders import OrderService
from shop.services.reconciliation import PaymentReconciler
from shop.services.wishlist import WishlistService

logger = logging.getLogger(__name__)


def api_view(*methods):
    """CSRF-exempt JSON view restricted to ``methods``; domain errors become JSON."""
    def decorator(func):
        @csrf_exempt
        @require_http_methods(list(methods))
        @wraps(func)
        def wrapper(request, *args, **kwargs):
            try:
                return func(request, *args, **kwargs)
            except ShopError as e:
                return ErrorHandler.handle_error(e)
        return wrapper
    return decorator


def read_json(request) -> dict:
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Invalid JSON") from None
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _uuid(value, label: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {label}: {value}") from None


# Auth

@api_view("GET")
def me(request):
    customer = authenticate(request)
    return JsonResponse({"user": customer_to_dict(customer)})


# Cart

@api_view("GET", "POST", "DELETE")
def cart(request):
    customer = authenticate(request)
    service = CartService()

    if request.method == "POST":
        data = read_json(request)
        if not data.get("productId"):
            raise ValidationError("Product ID is required")
        entries = service.add(customer, _uuid(data["productId"], "product id"), data.get("quantity", 1))
        return JsonResponse({"cart": cart_to_list(entries)})

    if request.method == "DELETE":
        service.clear(customer.id)
        return JsonResponse({"message": "Cart cleared successfully", "cart": []})

    return JsonResponse({"cart": cart_to_list(service.get(customer))})


@api_view("PUT", "DELETE")
def cart_item(request, item_id):
    customer = authenticate(request)
    service = CartService()

    if request.method == "DELETE":
        entries = service.remove(customer, item_id)
    else:
        entries = service.update_quantity(customer, item_id, read_json(request).get("quantity"))
    return JsonResponse({"cart": cart_to_list(entries)})


# Wishlist

@api_view("GET")
def wishlist(request):
    customer = authenticate(request)
    return JsonResponse({"wishlist": wishlist_to_list(WishlistService().get(customer))})


@api_view("POST")
def wishlist_add(request):
    customer = authenticate(request)
    data = read_json(request)
    if not data.get("productId"):
        raise ValidationError("Product ID is required")
    entries = WishlistService().add(customer, _uuid(data["productId"], "product id"))
    return JsonResponse({"wishlist": wishlist_to_list(entries)})


@api_view("DELETE")
def wishlist_remove(request, product_id):
    customer = authenticate(request)
    return JsonResponse({"wishlist": wishlist_to_list(WishlistService().remove(customer, product_id))})


# Orders

@api_view("GET", "POST")
def orders(request):
    customer = authenticate(request)

    if request.method == "GET":
        customer_orders = OrderService().list_orders(customer)
        return JsonResponse([order_to_dict(order) for order in customer_orders], safe=False)

    data = read_json(request)
    result = CheckoutService().create_order(
        customer,
        items=data.get("items"),
        shipping_address=data.get("shippingAddress"),
        payment_method=data.get("paymentMethod"),
    )
    payload = {"order": order_to_dict(result.order)}
    if result.checkout_url:
        payload["checkoutUrl"] = result.checkout_url
        payload["sessionId"] = result.session_id
    return JsonResponse(payload, status=201)


@api_view("GET")
def order_detail(request, order_id):
    customer = authenticate(request)
    return JsonResponse(order_to_dict(OrderService().get_order(customer, order_id)))


@api_view("POST")
def payment_slip(request, order_id):
    customer = authenticate(request)
    order = OrderService().upload_payment_slip(customer, order_id, request.FILES.get("paymentSlip"))
    return JsonResponse(order_to_dict(order))


@api_view("POST")
def verify_payment_session(request):
    customer = authenticate(request)
    order, payment_status = PaymentReconciler().verify_and_finalize(read_json(request).get("sessionId"))
    if order.customer_id != customer.id and not customer.is_admin:
        raise Forbidden("Not authorized")
    return JsonResponse({"order": order_to_dict(order), "paymentStatus": payment_status})


@api_view("POST")
def payment_webhook(request):
    signature = request.headers.get("Stripe-Signature", "")
    return JsonResponse(PaymentReconciler().handle_webhook(request.body, signature))


# Admin

@api_view("GET")
def admin_orders(request):
    require_admin(request)
    all_orders = OrderAdminService().list_orders()
    return JsonResponse([order_to_dict(order, include_customer=True) for order in all_orders], safe=False)


@api_view("PUT")
def admin_order_status(request, order_id):
    require_admin(request)
    order = OrderAdminService().update_order_status(order_id, read_json(request).get("orderStatus"))
    return JsonResponse(order_to_dict(order, include_customer=True))


@api_view("PUT")
def admin_order_payment(request, order_id):
    require_admin(request)
    order = OrderAdminService().verify_payment(order_id, read_json(request).get("paymentStatus"))
    return JsonResponse(order_to_dict(order, include_customer=True))


@api_view("PUT")
def admin_order_tracking(request, order_id):
    require_admin(request)
    data = read_json(request)
    order = OrderAdminService().update_tracking(
        order_id,
        tracking_number=data.get("trackingNumber", UNSET),
        status=data.get("status"),
        location=data.get("location"),
        description=data.get("description"),
    )
    return JsonResponse(order_to_dict(order, include_customer=True))


@api_view("GET")
def admin_order_history(request, order_id):
    require_admin(request)
    return JsonResponse({"events": OrderAdminService().get_history(order_id)})


# GraphQL

class GiftShopGraphQLView:
    """GraphQL view with structured logging."""

    def dispatch(self, request):
        if request.method == "GET":
            return JsonResponse({"message": "GraphQL endpoint. Use POST for queries."})

        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse(
                {"error": {"code": "VALIDATION_ERROR", "message": "Invalid JSON"}},
                status=400,
            )

        success, result = graphql_sync(
            schema,
            data,
            context_value={"request": request},
            debug=settings.DEBUG,
            error_formatter=format_error,
        )
        logger.info(
            "graphql_response",
            extra={
                "request_id": getattr(request, "request_id", None),
                "operation": data.get("operationName") if isinstance(data, dict) else None,
                "status": "ok" if success and "errors" not in result else "errors",
            },
        )
        return JsonResponse(result, status=200 if success else 400)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def graphql_view(request):
    """GraphQL endpoint."""
    return GiftShopGraphQLView().dispatch(request)
