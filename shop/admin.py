from django.contrib import admin

from shop.infra.event_store import EventStore
from shop.infra.models import (
    CartItemORM,
    CustomerORM,
    OrderItemORM,
    OrderORM,
    ProductORM,
    TrackingEntryORM,
    WishlistItemORM,
)


@admin.register(CustomerORM)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "email", "role", "created_at")
    list_filter = ("role",)
    search_fields = ("name", "email", "identity_uid")


@admin.register(ProductORM)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "original_price", "discount_price", "shipping_fee", "stock", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name",)


@admin.register(CartItemORM)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "product", "quantity", "created_at")
    search_fields = ("customer__name", "product__name")


@admin.register(WishlistItemORM)
class WishlistItemAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "product", "created_at")
    search_fields = ("customer__name", "product__name")


class OrderItemInline(admin.TabularInline):
    model = OrderItemORM
    extra = 0
    readonly_fields = ("product", "quantity", "price", "position")
    can_delete = False


class TrackingEntryInline(admin.TabularInline):
    model = TrackingEntryORM
    extra = 0
    readonly_fields = ("status", "location", "description", "timestamp", "sequence_number")
    can_delete = False


@admin.register(OrderORM)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "payment_method", "payment_status", "order_status", "total_amount", "created_at")
    list_filter = ("payment_method", "payment_status", "order_status", "created_at")
    search_fields = ("id", "customer__name", "tracking_number")
    # Status changes go through the API so they follow the transition rules
    readonly_fields = (
        "customer", "payment_method", "payment_status", "order_status",
        "subtotal", "shipping_fee", "total_amount", "payment_session_id", "finalized_at",
    )
    inlines = (OrderItemInline, TrackingEntryInline)


@admin.register(EventStore)
class EventStoreAdmin(admin.ModelAdmin):
    list_display = ("aggregate_id", "event_type", "sequence_number", "created_at")
    list_filter = ("event_type", "created_at")
    search_fields = ("aggregate_id",)
    readonly_fields = ("id", "aggregate_id", "aggregate_type", "event_type", "event_version", "event_data", "sequence_number")
