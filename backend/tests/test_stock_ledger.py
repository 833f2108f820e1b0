# Overview: Pytest coverage for stock ledger reads, deductions and adjustments.

"""
Stock Ledger Tests

Every quantity change must leave exactly one balanced StockMovement, stock
may never go negative, and a batch deduction is all-or-nothing.
"""

import pytest
from conftest import make_product
from saleflow.models import StockMovement, StockRecord
from saleflow.services import stock_ledger
from saleflow.services.stock_ledger import (
    InsufficientStockError,
    InvalidStockOperationError,
    ProductNotFoundError,
    StockRecordNotFoundError,
    StockUpdate,
)


def _movements(db_session, product):
    return (
        db_session.query(StockMovement)
        .filter_by(product_id=product.id)
        .order_by(StockMovement.created_at.asc(), StockMovement.new_quantity.asc())
        .all()
    )


class TestReads:
    def test_get_quantity_after_seed(self, db_session, tenant_a, product_a):
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 10

    def test_get_quantity_missing_record(self, db_session, tenant_a):
        product = make_product(db_session, tenant_a, sku="NS-1", name="Never Stocked", price_cents=10)
        assert stock_ledger.get_quantity(product.id, tenant_a.id) is None

    def test_check_availability(self, db_session, tenant_a, product_a):
        assert stock_ledger.check_availability(product_a.id, tenant_a.id, 10) is True
        assert stock_ledger.check_availability(product_a.id, tenant_a.id, 11) is False

    def test_check_availability_missing_record_is_false(self, db_session, tenant_a):
        product = make_product(db_session, tenant_a, sku="NS-2", name="Never Stocked", price_cents=10)
        assert stock_ledger.check_availability(product.id, tenant_a.id, 1) is False

    def test_quantity_is_tenant_scoped(self, db_session, tenant_a, tenant_b, product_a):
        assert stock_ledger.get_quantity(product_a.id, tenant_b.id) is None

    def test_quantity_is_location_scoped(self, db_session, tenant_a, product_a):
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id, "backroom") is None


class TestDeduct:
    def test_deduct_decrements_and_audits(self, db_session, tenant_a, product_a):
        movement = stock_ledger.deduct(StockUpdate(
            product_id=product_a.id, tenant_id=tenant_a.id, quantity=3, reference="txn-1",
        ))

        assert movement.quantity_change == -3
        assert movement.old_quantity == 10
        assert movement.new_quantity == 7
        assert movement.reason == "sale"
        assert movement.reference == "txn-1"
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 7

    def test_deduct_to_exactly_zero(self, db_session, tenant_a, product_a):
        stock_ledger.deduct(StockUpdate(product_id=product_a.id, tenant_id=tenant_a.id, quantity=10))
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 0

    def test_deduct_more_than_on_hand(self, db_session, tenant_a, product_a):
        with pytest.raises(InsufficientStockError) as exc_info:
            stock_ledger.deduct(StockUpdate(product_id=product_a.id, tenant_id=tenant_a.id, quantity=11))

        assert exc_info.value.requested == 11
        assert exc_info.value.available == 10
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 10

    def test_deduct_missing_record(self, db_session, tenant_a):
        product = make_product(db_session, tenant_a, sku="NS-3", name="Never Stocked", price_cents=10)
        with pytest.raises(StockRecordNotFoundError):
            stock_ledger.deduct(StockUpdate(product_id=product.id, tenant_id=tenant_a.id, quantity=1))

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_deduct_rejects_non_positive(self, db_session, tenant_a, product_a, quantity):
        with pytest.raises(InvalidStockOperationError):
            stock_ledger.deduct(StockUpdate(product_id=product_a.id, tenant_id=tenant_a.id, quantity=quantity))
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 10


class TestBulkDeduct:
    def test_all_items_deducted_together(self, db_session, tenant_a, product_a, product_b):
        movements = stock_ledger.bulk_deduct([
            StockUpdate(product_id=product_a.id, tenant_id=tenant_a.id, quantity=2),
            StockUpdate(product_id=product_b.id, tenant_id=tenant_a.id, quantity=4),
        ])

        assert len(movements) == 2
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 8
        assert stock_ledger.get_quantity(product_b.id, tenant_a.id) == 6

    def test_one_shortfall_rolls_back_whole_batch(self, db_session, tenant_a, product_a, product_b):
        before = db_session.query(StockMovement).count()

        with pytest.raises(InsufficientStockError):
            stock_ledger.bulk_deduct([
                StockUpdate(product_id=product_a.id, tenant_id=tenant_a.id, quantity=2),
                StockUpdate(product_id=product_b.id, tenant_id=tenant_a.id, quantity=99),
            ])

        db_session.expire_all()
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 10
        assert stock_ledger.get_quantity(product_b.id, tenant_a.id) == 10
        assert db_session.query(StockMovement).count() == before

    def test_missing_record_rolls_back_whole_batch(self, db_session, tenant_a, product_a):
        unstocked = make_product(db_session, tenant_a, sku="NS-4", name="Never Stocked", price_cents=10)

        with pytest.raises(StockRecordNotFoundError):
            stock_ledger.bulk_deduct([
                StockUpdate(product_id=product_a.id, tenant_id=tenant_a.id, quantity=1),
                StockUpdate(product_id=unstocked.id, tenant_id=tenant_a.id, quantity=1),
            ])

        db_session.expire_all()
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 10

    def test_same_product_twice_sees_first_write(self, db_session, tenant_a, product_a):
        movements = stock_ledger.bulk_deduct([
            StockUpdate(product_id=product_a.id, tenant_id=tenant_a.id, quantity=4),
            StockUpdate(product_id=product_a.id, tenant_id=tenant_a.id, quantity=4),
        ])

        assert [m.new_quantity for m in movements] == [6, 2]
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 2

    def test_same_product_twice_beyond_stock_fails(self, db_session, tenant_a, product_a):
        with pytest.raises(InsufficientStockError):
            stock_ledger.bulk_deduct([
                StockUpdate(product_id=product_a.id, tenant_id=tenant_a.id, quantity=6),
                StockUpdate(product_id=product_a.id, tenant_id=tenant_a.id, quantity=6),
            ])

        db_session.expire_all()
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 10

    def test_empty_batch_is_a_no_op(self, db_session):
        assert stock_ledger.bulk_deduct([]) == []


class TestAdjust:
    def test_restock(self, db_session, tenant_a, product_a):
        movement = stock_ledger.adjust(product_a.id, tenant_a.id, None, 5, reason="restock")

        assert movement.reason == "restock"
        assert movement.quantity_change == 5
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 15

    def test_negative_delta(self, db_session, tenant_a, product_a):
        stock_ledger.adjust(product_a.id, tenant_a.id, None, -4)
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 6

    def test_cannot_go_negative(self, db_session, tenant_a, product_a):
        with pytest.raises(InsufficientStockError):
            stock_ledger.adjust(product_a.id, tenant_a.id, None, -11)

        db_session.expire_all()
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 10

    def test_zero_delta_rejected(self, db_session, tenant_a, product_a):
        with pytest.raises(InvalidStockOperationError):
            stock_ledger.adjust(product_a.id, tenant_a.id, None, 0)

    @pytest.mark.parametrize("reason", ["theft", "sale"])
    def test_unknown_or_sale_reason_rejected(self, db_session, tenant_a, product_a, reason):
        """Only deductions write sale movements."""
        with pytest.raises(InvalidStockOperationError):
            stock_ledger.adjust(product_a.id, tenant_a.id, None, 1, reason=reason)
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 10

    def test_positive_delta_creates_missing_record(self, db_session, tenant_a):
        product = make_product(db_session, tenant_a, sku="NS-5", name="New Line", price_cents=10)

        movement = stock_ledger.adjust(product.id, tenant_a.id, "backroom", 3, reason="restock")

        assert movement.old_quantity == 0
        assert movement.location_id == "backroom"
        assert stock_ledger.get_quantity(product.id, tenant_a.id, "backroom") == 3

    def test_negative_delta_on_missing_record(self, db_session, tenant_a):
        product = make_product(db_session, tenant_a, sku="NS-6", name="New Line", price_cents=10)
        with pytest.raises(StockRecordNotFoundError):
            stock_ledger.adjust(product.id, tenant_a.id, None, -1)


class TestSetAbsolute:
    def test_overwrites_quantity(self, db_session, tenant_a, product_a):
        movement = stock_ledger.set_absolute(product_a.id, tenant_a.id, None, 4)

        assert movement.reason == "adjustment"
        assert movement.old_quantity == 10
        assert movement.quantity_change == -6
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 4

    def test_unchanged_quantity_is_still_audited(self, db_session, tenant_a, product_a):
        before = len(_movements(db_session, product_a))
        movement = stock_ledger.set_absolute(product_a.id, tenant_a.id, None, 10)

        assert movement.quantity_change == 0
        assert len(_movements(db_session, product_a)) == before + 1

    def test_negative_rejected(self, db_session, tenant_a, product_a):
        with pytest.raises(InvalidStockOperationError):
            stock_ledger.set_absolute(product_a.id, tenant_a.id, None, -1)


class TestMovementLog:
    def test_every_change_has_one_balanced_movement(self, db_session, tenant_a, product_a):
        stock_ledger.deduct(StockUpdate(product_id=product_a.id, tenant_id=tenant_a.id, quantity=2))
        stock_ledger.adjust(product_a.id, tenant_a.id, None, 5, reason="restock")
        stock_ledger.set_absolute(product_a.id, tenant_a.id, None, 1)

        movements = _movements(db_session, product_a)
        # Seed + three changes
        assert len(movements) == 4
        for m in movements:
            assert m.old_quantity + m.quantity_change == m.new_quantity

        record = db_session.query(StockRecord).filter_by(product_id=product_a.id).one()
        assert record.quantity == 1
        assert sum(m.quantity_change for m in movements) == record.quantity

    def test_list_movements_is_tenant_scoped(self, db_session, tenant_a, tenant_b, product_a):
        assert stock_ledger.list_movements(product_a.id, tenant_b.id) == []
        assert len(stock_ledger.list_movements(product_a.id, tenant_a.id)) == 1

    def test_list_movements_newest_first(self, db_session, tenant_a, product_a):
        stock_ledger.adjust(product_a.id, tenant_a.id, None, 1, reason="restock")
        stock_ledger.adjust(product_a.id, tenant_a.id, None, 2, reason="restock")
        stock_ledger.adjust(product_a.id, tenant_a.id, None, 3, reason="restock")

        movements = stock_ledger.list_movements(product_a.id, tenant_a.id)
        assert [m.new_quantity for m in movements] == [16, 13, 11, 10]


class TestTenantScoping:
    """The ledger only writes stock for products owned by the tenant."""

    def _records(self, db_session, tenant, product):
        return db_session.query(StockRecord).filter_by(tenant_id=tenant.id, product_id=product.id).all()

    def test_set_absolute_for_other_tenants_product(self, db_session, tenant_a, tenant_b, product_a):
        with pytest.raises(ProductNotFoundError):
            stock_ledger.set_absolute(product_a.id, tenant_b.id, None, 7)

        db_session.expire_all()
        assert self._records(db_session, tenant_b, product_a) == []

    def test_adjust_for_other_tenants_product(self, db_session, tenant_a, tenant_b, product_a):
        with pytest.raises(ProductNotFoundError):
            stock_ledger.adjust(product_a.id, tenant_b.id, None, 3, reason="restock")

        db_session.expire_all()
        assert self._records(db_session, tenant_b, product_a) == []
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 10

    def test_unknown_product(self, db_session, tenant_a):
        with pytest.raises(ProductNotFoundError):
            stock_ledger.set_absolute("no-such-product", tenant_a.id, None, 5)
        assert db_session.query(StockMovement).filter_by(product_id="no-such-product").count() == 0
