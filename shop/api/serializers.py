"""
JSON representations of domain objects (camelCase keys, decimals as strings).
"""
from shop.domain.order import Order
from shop.infra.models import CartItemORM, CustomerORM, ProductORM, WishlistItemORM


def customer_to_dict(customer: CustomerORM) -> dict:
    return {
        "id": customer.id,
        "name": customer.name,
        "email": customer.email,
        "phone": customer.phone,
        "role": customer.role,
    }


def product_to_dict(product: ProductORM) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "price": product.unit_price,
        "originalPrice": product.original_price,
        "discountPrice": product.discount_price,
        "shippingFee": product.shipping_fee,
        "stock": product.stock,
    }


def cart_to_list(entries: list[CartItemORM]) -> list[dict]:
    return [
        {
            "id": entry.id,
            "quantity": entry.quantity,
            "product": product_to_dict(entry.product),
        }
        for entry in entries
    ]


def wishlist_to_list(entries: list[WishlistItemORM]) -> list[dict]:
    """Saved products, oldest first."""
    return [product_to_dict(entry.product) for entry in entries]


def order_to_dict(order: Order, include_customer: bool = False) -> dict:
    data = {
        "id": order.id,
        "customerId": order.customer_id,
        "items": [
            {
                "product": {"id": item.product_id, "name": item.product_name},
                "quantity": item.quantity,
                "price": item.price,
                "subtotal": item.subtotal,
            }
            for item in order.items
        ],
        "shippingAddress": order.shipping_address.to_dict(),
        "paymentMethod": order.payment_method.value,
        "paymentStatus": order.payment_status.value,
        "orderStatus": order.order_status.value,
        "subtotal": order.subtotal,
        "shippingFee": order.shipping_fee,
        "totalAmount": order.total_amount,
        "paymentSlip": order.payment_slip,
        "paymentSessionId": order.payment_session_id,
        "trackingNumber": order.tracking_number,
        "trackingHistory": [
            {
                "id": entry.id,
                "status": entry.status,
                "location": entry.location,
                "description": entry.description,
                "timestamp": entry.timestamp,
            }
            for entry in order.tracking_history
        ],
        "finalized": order.is_finalized,
        "createdAt": order.created_at,
        "updatedAt": order.updated_at,
    }
    if include_customer:
        data["customer"] = order.customer_summary
    return data
