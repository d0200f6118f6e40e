"""
Tests for cart operations.
"""
from uuid import uuid4

from django.test import TestCase

from shop.domain.exceptions import InsufficientStock, NotFound, ValidationError
from shop.infra.models import CartItemORM
from shop.services.cart import CartService
from shop.test.fakes import make_customer, make_product, put_in_cart


class CartServiceTest(TestCase):

    def setUp(self):
        self.service = CartService()
        self.customer = make_customer()
        self.product = make_product(stock=5)

    def test_add_creates_entry(self):
        entries = self.service.add(self.customer, self.product.id, 2)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].quantity, 2)
        self.assertEqual(entries[0].product.id, self.product.id)

    def test_add_merges_into_existing_entry(self):
        self.service.add(self.customer, self.product.id, 2)
        entries = self.service.add(self.customer, self.product.id, 3)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].quantity, 5)

    def test_add_checks_cumulative_quantity(self):
        self.service.add(self.customer, self.product.id, 4)
        with self.assertRaises(InsufficientStock):
            self.service.add(self.customer, self.product.id, 2)
        self.assertEqual(CartItemORM.objects.get(customer=self.customer).quantity, 4)

    def test_add_inactive_product(self):
        hidden = make_product(name="Retired", is_active=False)
        with self.assertRaises(NotFound):
            self.service.add(self.customer, hidden.id, 1)

    def test_add_invalid_quantity(self):
        with self.assertRaises(ValidationError):
            self.service.add(self.customer, self.product.id, 0)

    def test_update_quantity(self):
        entry = put_in_cart(self.customer, self.product, 1)
        entries = self.service.update_quantity(self.customer, entry.id, 5)
        self.assertEqual(entries[0].quantity, 5)

    def test_update_quantity_above_stock(self):
        entry = put_in_cart(self.customer, self.product, 1)
        with self.assertRaises(InsufficientStock):
            self.service.update_quantity(self.customer, entry.id, 6)

    def test_cannot_touch_another_customers_entry(self):
        entry = put_in_cart(make_customer(), self.product, 1)
        with self.assertRaises(NotFound):
            self.service.update_quantity(self.customer, entry.id, 2)
        with self.assertRaises(NotFound):
            self.service.remove(self.customer, entry.id)

    def test_remove(self):
        entry = put_in_cart(self.customer, self.product, 1)
        self.assertEqual(self.service.remove(self.customer, entry.id), [])

    def test_remove_missing_entry(self):
        with self.assertRaises(NotFound):
            self.service.remove(self.customer, uuid4())

    def test_clear(self):
        put_in_cart(self.customer, self.product, 1)
        put_in_cart(self.customer, make_product(name="Candle"), 2)
        self.assertEqual(self.service.clear(self.customer.id), 2)
        self.assertEqual(self.service.get(self.customer), [])
