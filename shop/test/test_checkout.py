"""
Tests for order creation and finalization.
"""
from decimal import Decimal
from uuid import uuid4

from django.test import TestCase

from shop.domain.exceptions import (
    ExternalServiceFailure,
    InsufficientStock,
    NotFound,
    ValidationError,
)
from shop.domain.order import OrderStatus, PaymentMethod, PaymentStatus
from shop.infra.event_store import EventStoreRepository
from shop.infra.models import CartItemORM, OrderORM, ProductORM
from shop.infra.repositories import OrderRepository, ProductRepository
from shop.services.checkout import CheckoutService, parse_order_lines
from shop.services.fulfillment import OrderFulfillment
from shop.services.inventory import InventoryLedger
from shop.test.fakes import (
    ADDRESS,
    FakePaymentGateway,
    make_customer,
    make_product,
    order_lines,
    put_in_cart,
)


class StaleProductRepository(ProductRepository):
    """Serves product rows read before a concurrent checkout took the stock."""

    def __init__(self, snapshots):
        self.snapshots = {product.id: product for product in snapshots}

    def get_active(self, product_id):
        return self.snapshots.get(product_id)

    def get_stock(self, product_id):
        product = self.snapshots.get(product_id)
        return product.stock if product else None


class RecordingLedger(InventoryLedger):
    """Remembers every availability check it answers."""

    def __init__(self):
        super().__init__()
        self.checked = []

    def check_availability(self, product_id, requested_qty):
        self.checked.append((product_id, requested_qty))
        return super().check_availability(product_id, requested_qty)


def stock_of(product):
    return ProductORM.objects.get(id=product.id).stock


class ParseOrderLinesTest(TestCase):

    def test_empty(self):
        for items in (None, [], "abc"):
            with self.assertRaises(ValidationError):
                parse_order_lines(items)

    def test_invalid_product_id(self):
        with self.assertRaises(ValidationError):
            parse_order_lines([{"productId": "not-a-uuid", "quantity": 1}])

    def test_invalid_quantity(self):
        for quantity in (0, -2, "2", 1.5, None):
            with self.assertRaises(ValidationError):
                parse_order_lines([{"productId": str(uuid4()), "quantity": quantity}])

    def test_repeated_products_are_merged(self):
        product_id = uuid4()
        lines = parse_order_lines([
            {"productId": str(product_id), "quantity": 1},
            {"productId": str(product_id), "quantity": 2},
        ])
        self.assertEqual(lines, [(product_id, 3)])


class CheckoutServiceTest(TestCase):

    def setUp(self):
        FakePaymentGateway.reset()
        self.gateway = FakePaymentGateway()
        self.service = CheckoutService(payment_gateway=self.gateway)
        self.customer = make_customer()
        self.gift_box = make_product(price="1000.00", shipping_fee="200.00", stock=10)

    def checkout(self, *pairs, payment_method="cash_on_delivery", service=None):
        return (service or self.service).create_order(
            self.customer,
            items=order_lines(*pairs),
            shipping_address=ADDRESS,
            payment_method=payment_method,
        )

    def test_cash_on_delivery_order(self):
        put_in_cart(self.customer, self.gift_box, 2)

        result = self.checkout((self.gift_box, 2))
        order = result.order

        self.assertIsNone(result.checkout_url)
        self.assertEqual(order.total_amount, Decimal("2200.00"))
        self.assertEqual(order.subtotal, Decimal("2000.00"))
        self.assertEqual(order.shipping_fee, Decimal("200.00"))
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)
        self.assertEqual(order.order_status, OrderStatus.PENDING)
        self.assertTrue(order.is_finalized)
        self.assertEqual(stock_of(self.gift_box), 8)
        self.assertFalse(CartItemORM.objects.filter(customer=self.customer).exists())

    def test_bank_transfer_order_is_finalized_at_checkout(self):
        result = self.checkout((self.gift_box, 1), payment_method="bank_transfer")
        self.assertEqual(result.order.payment_method, PaymentMethod.BANK_TRANSFER)
        self.assertTrue(result.order.is_finalized)
        self.assertEqual(stock_of(self.gift_box), 9)

    def test_discount_price_and_per_line_shipping(self):
        candle = make_product(name="Candle", price="500.00", discount_price="400.00", shipping_fee="150.00")

        order = self.checkout((self.gift_box, 1), (candle, 3)).order

        self.assertEqual(order.subtotal, Decimal("2200.00"))
        self.assertEqual(order.shipping_fee, Decimal("350.00"))
        self.assertEqual(order.total_amount, Decimal("2550.00"))
        prices = {item.product_id: item.price for item in order.items}
        self.assertEqual(prices[candle.id], Decimal("400.00"))

    def test_totals_are_frozen(self):
        order = self.checkout((self.gift_box, 2)).order

        ProductORM.objects.filter(id=self.gift_box.id).update(
            original_price=Decimal("5000.00"), shipping_fee=Decimal("900.00")
        )

        reloaded = OrderRepository().get_by_id(order.id)
        self.assertEqual(reloaded.total_amount, Decimal("2200.00"))
        self.assertEqual(reloaded.items[0].price, Decimal("1000.00"))

    def test_insufficient_stock_creates_nothing(self):
        scarce = make_product(name="Vase", stock=1)
        put_in_cart(self.customer, scarce, 1)

        with self.assertRaises(InsufficientStock):
            self.checkout((self.gift_box, 1), (scarce, 2))

        self.assertEqual(OrderORM.objects.count(), 0)
        self.assertEqual(stock_of(self.gift_box), 10)
        self.assertEqual(stock_of(scarce), 1)
        self.assertTrue(CartItemORM.objects.filter(customer=self.customer).exists())

    def test_unknown_product(self):
        ghost = make_product(name="Ghost")
        ghost_id = ghost.id
        ghost.delete()
        with self.assertRaises(NotFound):
            self.service.create_order(
                self.customer,
                items=[{"productId": str(ghost_id), "quantity": 1}],
                shipping_address=ADDRESS,
                payment_method="cod",
            )
        self.assertEqual(OrderORM.objects.count(), 0)

    def test_missing_address_or_method(self):
        with self.assertRaises(ValidationError):
            self.service.create_order(self.customer, order_lines((self.gift_box, 1)), None, "cod")
        with self.assertRaises(ValidationError):
            self.service.create_order(self.customer, order_lines((self.gift_box, 1)), ADDRESS, "barter")
        self.assertEqual(OrderORM.objects.count(), 0)

    def test_last_unit_goes_to_one_order(self):
        last = make_product(name="Last One", stock=1)
        # Both requests priced the order while one unit was still in stock
        stale = StaleProductRepository([ProductORM.objects.get(id=last.id)])
        slow = CheckoutService(product_repo=stale, payment_gateway=self.gateway)

        self.checkout((last, 1))
        with self.assertRaises(InsufficientStock):
            self.checkout((last, 1), service=slow)

        self.assertEqual(OrderORM.objects.count(), 1)
        self.assertEqual(stock_of(last), 0)

    def test_availability_is_checked_through_the_ledger(self):
        ledger = RecordingLedger()
        service = CheckoutService(ledger=ledger, payment_gateway=self.gateway)
        scarce = make_product(name="Vase", stock=1)

        with self.assertRaises(InsufficientStock):
            self.checkout((self.gift_box, 2), (scarce, 3), service=service)

        self.assertEqual(ledger.checked, [(self.gift_box.id, 2), (scarce.id, 3)])
        self.assertEqual(OrderORM.objects.count(), 0)

    def test_order_created_log_context(self):
        with self.assertLogs("shop.services.checkout", level="INFO") as logs:
            order = self.checkout((self.gift_box, 2)).order

        record = next(r for r in logs.records if r.getMessage() == "order_created")
        self.assertEqual(record.order_id, str(order.id))
        self.assertEqual(record.amount, Decimal("2200.00"))
        self.assertEqual(record.payment_method, "cash_on_delivery")
        self.assertFalse(hasattr(record, "status"))

    def test_sequential_orders_for_last_unit(self):
        last = make_product(name="Last One", stock=1)
        self.checkout((last, 1))
        with self.assertRaises(InsufficientStock):
            self.checkout((last, 1))
        self.assertEqual(OrderORM.objects.count(), 1)

    def test_order_created_event(self):
        order = self.checkout((self.gift_box, 1)).order
        event_types = [e["event_type"] for e in EventStoreRepository().get_events(order.id)]
        self.assertEqual(event_types, ["OrderCreated", "OrderFinalized"])


class CardCheckoutTest(TestCase):

    def setUp(self):
        FakePaymentGateway.reset()
        self.service = CheckoutService(payment_gateway=FakePaymentGateway())
        self.customer = make_customer()
        self.gift_box = make_product(stock=5)
        put_in_cart(self.customer, self.gift_box, 2)

    def create(self):
        return self.service.create_order(
            self.customer,
            items=order_lines((self.gift_box, 2)),
            shipping_address=ADDRESS,
            payment_method="stripe",
        )

    def test_card_order_waits_for_payment(self):
        result = self.create()

        self.assertTrue(result.checkout_url.startswith("https://checkout.example.test/"))
        self.assertEqual(result.order.payment_session_id, result.session_id)
        self.assertEqual(result.order.payment_method, PaymentMethod.CARD)
        self.assertFalse(result.order.is_finalized)
        self.assertEqual(stock_of(self.gift_box), 5)
        self.assertTrue(CartItemORM.objects.filter(customer=self.customer).exists())

        session = FakePaymentGateway.sessions[result.session_id]
        self.assertEqual(session.metadata["order_id"], str(result.order.id))
        self.assertEqual(session.metadata["original_amount"], "2200.00")

    def test_gateway_failure_removes_order(self):
        FakePaymentGateway.fail_with = ExternalServiceFailure("Payment processing failed: card declined")

        with self.assertRaises(ExternalServiceFailure):
            self.create()

        self.assertEqual(OrderORM.objects.count(), 0)
        self.assertEqual(stock_of(self.gift_box), 5)

    def test_unexpected_gateway_error_is_wrapped(self):
        FakePaymentGateway.fail_with = RuntimeError("socket closed")

        with self.assertRaises(ExternalServiceFailure) as context:
            self.create()

        self.assertIn("socket closed", context.exception.message)
        self.assertEqual(OrderORM.objects.count(), 0)

    def test_session_without_url_removes_order(self):
        FakePaymentGateway.return_url = False
        with self.assertRaises(ExternalServiceFailure):
            self.create()
        self.assertEqual(OrderORM.objects.count(), 0)


class OrderFulfillmentTest(TestCase):

    def test_finalize_runs_once(self):
        customer = make_customer()
        product = make_product(stock=5)
        FakePaymentGateway.reset()
        order = CheckoutService(payment_gateway=FakePaymentGateway()).create_order(
            customer, order_lines((product, 2)), ADDRESS, "card"
        ).order

        fulfillment = OrderFulfillment()
        self.assertTrue(fulfillment.finalize(order))
        self.assertFalse(fulfillment.finalize(order))
        self.assertEqual(stock_of(product), 3)
