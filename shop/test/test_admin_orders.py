"""
Tests for administrator order operations and customer order access.
"""
from uuid import uuid4

from django.core.files.storage import InMemoryStorage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase

from shop.domain.exceptions import Forbidden, InvalidTransition, NotFound, ValidationError
from shop.domain.order import OrderStatus, PaymentStatus
from shop.infra.media import MediaStorage
from shop.infra.models import ProductORM
from shop.services.admin_orders import OrderAdminService
from shop.services.checkout import CheckoutService
from shop.services.orders import OrderService
from shop.test.fakes import ADDRESS, FakePaymentGateway, make_customer, make_product, order_lines


def place(customer, product, payment_method="cod", quantity=1):
    FakePaymentGateway.reset()
    return CheckoutService(payment_gateway=FakePaymentGateway()).create_order(
        customer, order_lines((product, quantity)), ADDRESS, payment_method
    ).order


class OrderAdminServiceTest(TestCase):

    def setUp(self):
        self.service = OrderAdminService()
        self.customer = make_customer()
        self.product = make_product(stock=10)
        self.order = place(self.customer, self.product, quantity=2)

    def test_status_progression(self):
        order = self.service.update_order_status(self.order.id, "processing")
        self.assertEqual(order.order_status, OrderStatus.PROCESSING)
        order = self.service.update_order_status(self.order.id, "shipped")
        self.assertEqual(order.order_status, OrderStatus.SHIPPED)

    def test_invalid_transition(self):
        with self.assertRaises(InvalidTransition):
            self.service.update_order_status(self.order.id, "delivered")

    def test_unknown_status(self):
        with self.assertRaises(ValidationError):
            self.service.update_order_status(self.order.id, "lost")

    def test_unknown_order(self):
        with self.assertRaises(NotFound):
            self.service.update_order_status(uuid4(), "processing")

    def test_same_status_records_nothing(self):
        self.service.update_order_status(self.order.id, "pending")
        event_types = [e["event_type"] for e in self.service.get_history(self.order.id)]
        self.assertNotIn("OrderStatusChanged", event_types)

    def test_admin_payment_does_not_touch_stock(self):
        order = self.service.verify_payment(self.order.id, "paid")

        self.assertEqual(order.payment_status, PaymentStatus.PAID)
        self.assertEqual(order.order_status, OrderStatus.PROCESSING)
        self.assertEqual(ProductORM.objects.get(id=self.product.id).stock, 8)

    def test_bank_transfer_confirmed_by_admin(self):
        order = place(self.customer, self.product, payment_method="bank_transfer")
        stock_before = ProductORM.objects.get(id=self.product.id).stock

        order = self.service.verify_payment(order.id, "paid")

        self.assertEqual(order.order_status, OrderStatus.PROCESSING)
        self.assertEqual(ProductORM.objects.get(id=self.product.id).stock, stock_before)

    def test_card_payment_cannot_be_set_by_admin(self):
        card_order = place(self.customer, self.product, payment_method="card")
        with self.assertRaises(ValidationError):
            self.service.verify_payment(card_order.id, "paid")

    def test_tracking_number_and_entries(self):
        order = self.service.update_tracking(self.order.id, tracking_number=" TRK-100 ")
        self.assertEqual(order.tracking_number, "TRK-100")

        self.service.update_tracking(self.order.id, status="Dispatched", location="Colombo")
        order = self.service.update_tracking(self.order.id, status="Out for delivery", description="With courier")

        self.assertEqual(order.tracking_number, "TRK-100")
        self.assertEqual(
            [(e.status, e.location) for e in order.tracking_history],
            [("Dispatched", "Colombo"), ("Out for delivery", "")],
        )
        self.assertIsNotNone(order.tracking_history[0].timestamp)

    def test_clear_tracking_number(self):
        self.service.update_tracking(self.order.id, tracking_number="TRK-100")
        order = self.service.update_tracking(self.order.id, tracking_number="")
        self.assertIsNone(order.tracking_number)

    def test_tracking_requires_number_or_status(self):
        with self.assertRaises(ValidationError):
            self.service.update_tracking(self.order.id)

    def test_tracking_rejects_non_text_fields(self):
        with self.assertRaises(ValidationError):
            self.service.update_tracking(self.order.id, status="Dispatched", location=5)
        with self.assertRaises(ValidationError):
            self.service.update_tracking(self.order.id, status="Dispatched", description={"note": "x"})
        with self.assertRaises(ValidationError):
            self.service.update_tracking(self.order.id, tracking_number=12345)
        self.assertEqual(self.service.get_history(self.order.id)[-1]["event_type"], "OrderFinalized")

    def test_history(self):
        self.service.update_order_status(self.order.id, "processing")
        events = self.service.get_history(self.order.id)

        self.assertEqual(
            [e["event_type"] for e in events],
            ["OrderCreated", "OrderFinalized", "OrderStatusChanged"],
        )
        self.assertEqual(events[-1]["data"]["new_status"], "processing")
        self.assertEqual([e["sequence_number"] for e in events], [1, 2, 3])

    def test_history_unknown_order(self):
        with self.assertRaises(NotFound):
            self.service.get_history(uuid4())


class OrderServiceTest(TestCase):

    def setUp(self):
        self.service = OrderService(media=MediaStorage(InMemoryStorage(base_url="/media/")))
        self.customer = make_customer()
        self.product = make_product(stock=10)

    def slip(self, content_type="image/png", size=16):
        return SimpleUploadedFile("slip.png", b"x" * size, content_type=content_type)

    def test_list_only_own_orders(self):
        mine = place(self.customer, self.product)
        place(make_customer(), self.product)

        self.assertEqual([o.id for o in self.service.list_orders(self.customer)], [mine.id])

    def test_get_order_of_someone_else(self):
        order = place(make_customer(), self.product)
        with self.assertRaises(Forbidden):
            self.service.get_order(self.customer, order.id)

    def test_admin_sees_any_order(self):
        order = place(self.customer, self.product)
        admin = make_customer(role="admin")
        self.assertEqual(self.service.get_order(admin, order.id).id, order.id)

    def test_get_missing_order(self):
        with self.assertRaises(NotFound):
            self.service.get_order(self.customer, uuid4())

    def test_upload_payment_slip(self):
        order = place(self.customer, self.product, payment_method="bank_transfer")

        updated = self.service.upload_payment_slip(self.customer, order.id, self.slip())

        self.assertTrue(updated.payment_slip.startswith("/media/payment-slips/"))
        self.assertTrue(updated.payment_slip.endswith(".png"))
        event_types = [e["event_type"] for e in OrderAdminService().get_history(order.id)]
        self.assertIn("PaymentSlipUploaded", event_types)

    def test_payment_slip_requires_bank_transfer(self):
        order = place(self.customer, self.product, payment_method="cod")
        with self.assertRaises(ValidationError):
            self.service.upload_payment_slip(self.customer, order.id, self.slip())

    def test_payment_slip_must_be_image(self):
        order = place(self.customer, self.product, payment_method="bank_transfer")
        with self.assertRaises(ValidationError):
            self.service.upload_payment_slip(self.customer, order.id, self.slip(content_type="application/pdf"))
        with self.assertRaises(ValidationError):
            self.service.upload_payment_slip(self.customer, order.id, None)

    def test_payment_slip_size_limit(self):
        order = place(self.customer, self.product, payment_method="bank_transfer")
        with self.settings(SHOP_PAYMENT_SLIP_MAX_BYTES=8):
            with self.assertRaises(ValidationError):
                self.service.upload_payment_slip(self.customer, order.id, self.slip(size=9))

    def test_payment_slip_for_someone_elses_order(self):
        order = place(make_customer(), self.product, payment_method="bank_transfer")
        with self.assertRaises(Forbidden):
            self.service.upload_payment_slip(self.customer, order.id, self.slip())
