from django.urls import path

from shop.api import views

urlpatterns = [
    path("auth/me", views.me),
    path("cart", views.cart),
    path("cart/<uuid:item_id>", views.cart_item),
    path("wishlist", views.wishlist),
    path("wishlist/add", views.wishlist_add),
    path("wishlist/remove/<uuid:product_id>", views.wishlist_remove),
    path("orders", views.orders),
    path("orders/verify-stripe", views.verify_payment_session),
    path("orders/stripe-webhook", views.payment_webhook),
    path("orders/<uuid:order_id>", views.order_detail),
    path("orders/<uuid:order_id>/payment-slip", views.payment_slip),
    path("admin/orders", views.admin_orders),
    path("admin/orders/<uuid:order_id>/status", views.admin_order_status),
    path("admin/orders/<uuid:order_id>/payment", views.admin_order_payment),
    path("admin/orders/<uuid:order_id>/tracking", views.admin_order_tracking),
    path("admin/orders/<uuid:order_id>/history", views.admin_order_history),
]
