from __future__ import annotations

from uuid import uuid4

from django.db import models


ROLE_CHOICES = (
    ("user", "Customer"),
    ("admin", "Administrator"),
)

PAYMENT_METHOD_CHOICES = (
    ("cash_on_delivery", "Cash on delivery"),
    ("bank_transfer", "Bank transfer"),
    ("card", "Card"),
)

PAYMENT_STATUS_CHOICES = (
    ("pending", "Pending"),
    ("paid", "Paid"),
    ("failed", "Failed"),
)

ORDER_STATUS_CHOICES = (
    ("pending", "Pending"),
    ("processing", "Processing"),
    ("shipped", "Shipped"),
    ("delivered", "Delivered"),
    ("cancelled", "Cancelled"),
)


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class CustomerORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    identity_uid = models.CharField(max_length=128, unique=True)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default="user")

    class Meta:
        verbose_name = "customer"

    def __str__(self):
        return self.name

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class ProductORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    original_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    # Charged once per order line, regardless of quantity
    shipping_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    stock = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = "product"
        indexes = [
            models.Index(fields=("is_active",)),
        ]

    def __str__(self):
        return self.name

    @property
    def unit_price(self):
        """Price a buyer pays right now."""
        if self.discount_price is not None:
            return self.discount_price
        return self.original_price


class CartItemORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    customer = models.ForeignKey(
        CustomerORM,
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        verbose_name = "cart item"
        constraints = [
            models.UniqueConstraint(fields=("customer", "product"), name="unique_cart_product"),
        ]
        indexes = [
            models.Index(fields=("customer", "created_at")),
        ]


class OrderORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    customer = models.ForeignKey(
        CustomerORM,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    shipping_name = models.CharField(max_length=255)
    shipping_phone = models.CharField(max_length=32)
    shipping_address = models.CharField(max_length=512)
    shipping_city = models.CharField(max_length=128)
    shipping_postal_code = models.CharField(max_length=32)
    payment_method = models.CharField(max_length=32, choices=PAYMENT_METHOD_CHOICES)
    payment_status = models.CharField(max_length=16, choices=PAYMENT_STATUS_CHOICES, default="pending")
    order_status = models.CharField(max_length=16, choices=ORDER_STATUS_CHOICES, default="pending")
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    shipping_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_slip = models.CharField(max_length=1024, null=True, blank=True)
    payment_session_id = models.CharField(max_length=255, null=True, blank=True, unique=True)
    tracking_number = models.CharField(max_length=128, null=True, blank=True)
    finalized_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = "order"
        indexes = [
            models.Index(fields=("customer", "-created_at")),
            models.Index(fields=("payment_status", "order_status")),
        ]


class OrderItemORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=12, decimal_places=2)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = "order item"
        ordering = ["position"]
        indexes = [
            models.Index(fields=("order",)),
        ]


class TrackingEntryORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="tracking_history",
    )
    status = models.CharField(max_length=128)
    location = models.CharField(max_length=255, blank=True, default="")
    description = models.TextField(blank=True, default="")
    timestamp = models.DateTimeField()
    sequence_number = models.PositiveIntegerField()

    class Meta:
        verbose_name = "tracking entry"
        ordering = ["sequence_number"]
        indexes = [
            models.Index(fields=("order", "sequence_number")),
        ]


class WishlistItemORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    customer = models.ForeignKey(
        CustomerORM,
        on_delete=models.CASCADE,
        related_name="wishlist_items",
    )
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.CASCADE,
        related_name="wishlist_items",
    )

    class Meta:
        verbose_name = "wishlist item"
        constraints = [
            models.UniqueConstraint(fields=("customer", "product"), name="unique_wishlist_product"),
        ]
        indexes = [
            models.Index(fields=("customer", "created_at")),
        ]
