"""Sale pipeline schema: catalog, stock ledger, sales, patterns, reconciliation

Revision ID: 20261019_sale_pipeline
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_sale_pipeline"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str, nullable: bool = False):
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=None if nullable else sa.text("(CURRENT_TIMESTAMP)"),
        nullable=nullable,
    )


def upgrade():
    op.create_table(
        "tenants",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_tenants"),
    )
    op.create_index("ix_tenants_code", "tenants", ["code"], unique=True)
    op.create_index("ix_tenants_is_active", "tenants", ["is_active"])

    op.create_table(
        "products",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("barcode", sa.String(128), nullable=True),
        sa.Column("category", sa.String(128), nullable=True),
        sa.Column("cost_price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("selling_price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tax_rate", sa.Numeric(5, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], name="fk_products_tenant_id_tenants"),
        sa.PrimaryKeyConstraint("id", name="pk_products"),
        sa.UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        sa.CheckConstraint("cost_price_cents >= 0", name="ck_products_cost_price_non_negative"),
        sa.CheckConstraint("selling_price_cents >= 0", name="ck_products_selling_price_non_negative"),
    )
    op.create_index("ix_products_tenant_id", "products", ["tenant_id"])
    op.create_index("ix_products_tenant_barcode", "products", ["tenant_id", "barcode"])
    op.create_index("ix_products_tenant_active", "products", ["tenant_id", "is_active"])

    op.create_table(
        "customers",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("loyalty_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_spent_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_visits", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _timestamp("last_visit_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], name="fk_customers_tenant_id_tenants"),
        sa.PrimaryKeyConstraint("id", name="pk_customers"),
        sa.UniqueConstraint("tenant_id", "email", name="uq_customers_tenant_email"),
    )
    op.create_index("ix_customers_tenant_id", "customers", ["tenant_id"])
    op.create_index("ix_customers_is_active", "customers", ["is_active"])
    op.create_index("ix_customers_tenant_active", "customers", ["tenant_id", "is_active"])

    op.create_table(
        "stock_records",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("product_id", sa.String(36), nullable=False),
        sa.Column("location_id", sa.String(64), nullable=False, server_default="main"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _timestamp("last_updated"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], name="fk_stock_records_tenant_id_tenants"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], name="fk_stock_records_product_id_products"),
        sa.PrimaryKeyConstraint("id", name="pk_stock_records"),
        sa.UniqueConstraint("product_id", "tenant_id", "location_id", name="uq_stock_product_tenant_location"),
        sa.CheckConstraint("quantity >= 0", name="ck_stock_records_quantity_non_negative"),
    )
    op.create_index("ix_stock_records_tenant_id", "stock_records", ["tenant_id"])
    op.create_index("ix_stock_records_product_id", "stock_records", ["product_id"])

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("product_id", sa.String(36), nullable=False),
        sa.Column("location_id", sa.String(64), nullable=False),
        sa.Column("quantity_change", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(16), nullable=False),
        sa.Column("old_quantity", sa.Integer(), nullable=False),
        sa.Column("new_quantity", sa.Integer(), nullable=False),
        sa.Column("reference", sa.String(64), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], name="fk_stock_movements_tenant_id_tenants"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], name="fk_stock_movements_product_id_products"),
        sa.PrimaryKeyConstraint("id", name="pk_stock_movements"),
        sa.CheckConstraint(
            "old_quantity + quantity_change = new_quantity",
            name="ck_stock_movements_movement_balances",
        ),
    )
    op.create_index("ix_stock_movements_tenant_id", "stock_movements", ["tenant_id"])
    op.create_index("ix_stock_movements_product_id", "stock_movements", ["product_id"])
    op.create_index("ix_stock_movements_reason", "stock_movements", ["reason"])
    op.create_index("ix_stock_movements_reference", "stock_movements", ["reference"])
    op.create_index(
        "ix_stock_movements_tenant_product_created",
        "stock_movements",
        ["tenant_id", "product_id", "created_at"],
    )

    op.create_table(
        "sale_transactions",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("transaction_number", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.String(36), nullable=True),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("tax_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_cents", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="completed"),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], name="fk_sale_transactions_tenant_id_tenants"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], name="fk_sale_transactions_customer_id_customers"),
        sa.PrimaryKeyConstraint("id", name="pk_sale_transactions"),
        sa.UniqueConstraint("tenant_id", "transaction_number", name="uq_sale_transactions_tenant_number"),
        sa.CheckConstraint(
            "total_cents = subtotal_cents + tax_cents - discount_cents",
            name="ck_sale_transactions_totals_balance",
        ),
    )
    op.create_index("ix_sale_transactions_tenant_id", "sale_transactions", ["tenant_id"])
    op.create_index("ix_sale_transactions_customer_id", "sale_transactions", ["customer_id"])
    op.create_index("ix_sale_transactions_status", "sale_transactions", ["status"])
    op.create_index(
        "ix_sale_transactions_tenant_status_created",
        "sale_transactions",
        ["tenant_id", "status", "created_at"],
    )

    op.create_table(
        "sale_line_items",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("transaction_id", sa.String(36), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(36), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["transaction_id"], ["sale_transactions.id"],
            name="fk_sale_line_items_transaction_id_sale_transactions",
        ),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], name="fk_sale_line_items_product_id_products"),
        sa.PrimaryKeyConstraint("id", name="pk_sale_line_items"),
        sa.UniqueConstraint("transaction_id", "line_number", name="uq_sale_line_items_transaction_line"),
        sa.CheckConstraint("quantity > 0", name="ck_sale_line_items_quantity_positive"),
        sa.CheckConstraint("subtotal_cents = unit_price_cents * quantity", name="ck_sale_line_items_line_balances"),
    )
    op.create_index("ix_sale_line_items_transaction_id", "sale_line_items", ["transaction_id"])
    op.create_index("ix_sale_line_items_product_id", "sale_line_items", ["product_id"])

    op.create_table(
        "transaction_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("sequence_type", sa.String(32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], name="fk_transaction_sequences_tenant_id_tenants"),
        sa.PrimaryKeyConstraint("id", name="pk_transaction_sequences"),
        sa.UniqueConstraint("tenant_id", "sequence_type", name="uq_transaction_sequences_tenant_type"),
    )
    op.create_index("ix_transaction_sequences_tenant_id", "transaction_sequences", ["tenant_id"])

    op.create_table(
        "purchase_patterns",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("product_id", sa.String(36), nullable=False),
        sa.Column("purchase_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _timestamp("last_purchased_at", nullable=True),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], name="fk_purchase_patterns_tenant_id_tenants"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], name="fk_purchase_patterns_product_id_products"),
        sa.PrimaryKeyConstraint("id", name="pk_purchase_patterns"),
        sa.UniqueConstraint("product_id", "tenant_id", name="uq_purchase_patterns_product_tenant"),
    )
    op.create_index("ix_purchase_patterns_tenant_id", "purchase_patterns", ["tenant_id"])
    op.create_index("ix_purchase_patterns_tenant_count", "purchase_patterns", ["tenant_id", "purchase_count"])

    op.create_table(
        "co_purchase_patterns",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("product_a_id", sa.String(36), nullable=False),
        sa.Column("product_b_id", sa.String(36), nullable=False),
        sa.Column("co_purchase_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], name="fk_co_purchase_patterns_tenant_id_tenants"),
        sa.ForeignKeyConstraint(["product_a_id"], ["products.id"], name="fk_co_purchase_patterns_product_a_id_products"),
        sa.ForeignKeyConstraint(["product_b_id"], ["products.id"], name="fk_co_purchase_patterns_product_b_id_products"),
        sa.PrimaryKeyConstraint("id", name="pk_co_purchase_patterns"),
        sa.UniqueConstraint("tenant_id", "product_a_id", "product_b_id", name="uq_co_purchase_tenant_pair"),
    )
    op.create_index("ix_co_purchase_patterns_tenant_id", "co_purchase_patterns", ["tenant_id"])
    op.create_index("ix_co_purchase_tenant_b", "co_purchase_patterns", ["tenant_id", "product_b_id"])

    op.create_table(
        "reconciliation_flags",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("transaction_id", sa.String(36), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("is_resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        _timestamp("resolved_at", nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], name="fk_reconciliation_flags_tenant_id_tenants"),
        sa.ForeignKeyConstraint(
            ["transaction_id"], ["sale_transactions.id"],
            name="fk_reconciliation_flags_transaction_id_sale_transactions",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_reconciliation_flags"),
    )
    op.create_index("ix_reconciliation_flags_tenant_id", "reconciliation_flags", ["tenant_id"])
    op.create_index("ix_reconciliation_flags_transaction_id", "reconciliation_flags", ["transaction_id"])
    op.create_index(
        "ix_reconciliation_flags_tenant_resolved",
        "reconciliation_flags",
        ["tenant_id", "is_resolved"],
    )


def downgrade():
    op.drop_table("reconciliation_flags")
    op.drop_table("co_purchase_patterns")
    op.drop_table("purchase_patterns")
    op.drop_table("transaction_sequences")
    op.drop_table("sale_line_items")
    op.drop_table("sale_transactions")
    op.drop_table("stock_movements")
    op.drop_table("stock_records")
    op.drop_table("customers")
    op.drop_table("products")
    op.drop_table("tenants")
