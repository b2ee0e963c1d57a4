"""Initial pallet ledger schema."""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        DO $$
        BEGIN
            IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'location_type') THEN
                CREATE TYPE location_type AS ENUM ('carrier', 'processing_facility');
            END IF;
            IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'order_status') THEN
                CREATE TYPE order_status AS ENUM ('open', 'collected', 'cancelled');
            END IF;
        END
        $$;
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS location (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            address TEXT NOT NULL DEFAULT '',
            post_code TEXT NOT NULL DEFAULT '',
            city TEXT NOT NULL DEFAULT '',
            location_type location_type NOT NULL
        )
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS product (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            pallet_size INTEGER NOT NULL DEFAULT 0,
            CONSTRAINT product_pallet_size_non_negative CHECK (pallet_size >= 0)
        )
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS location_price (
            id SERIAL PRIMARY KEY,
            location_id INTEGER NOT NULL REFERENCES location(id),
            price NUMERIC(12, 2) NOT NULL,
            valid_from DATE NOT NULL,
            CONSTRAINT check_price_non_negative CHECK (price >= 0)
        )
        """
    )

    # Append-only snapshot ledger; id doubles as the insertion sequence.
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS storage (
            id SERIAL PRIMARY KEY,
            location_id INTEGER NOT NULL REFERENCES location(id),
            product_id INTEGER NOT NULL REFERENCES product(id),
            pallet_amount INTEGER NOT NULL,
            recorded_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT check_pallet_amount_non_negative CHECK (pallet_amount >= 0)
        )
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS orders (
            id SERIAL PRIMARY KEY,
            location_id INTEGER NOT NULL REFERENCES location(id),
            ordered_at TIMESTAMPTZ NOT NULL,
            status order_status NOT NULL DEFAULT 'open'
        )
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS order_row (
            order_id INTEGER NOT NULL REFERENCES orders(id),
            product_id INTEGER NOT NULL REFERENCES product(id),
            pallet_amount INTEGER NOT NULL,
            PRIMARY KEY (order_id, product_id),
            CONSTRAINT check_order_pallet_amount_pos CHECK (pallet_amount > 0)
        )
        """
    )

    index_statements = [
        "CREATE INDEX IF NOT EXISTS ix_location_price_location_valid_from "
        "ON location_price (location_id, valid_from)",
        "CREATE INDEX IF NOT EXISTS ix_storage_location_product_recorded "
        "ON storage (location_id, product_id, recorded_at)",
        "CREATE INDEX IF NOT EXISTS idx_orders_status ON orders (status)",
    ]

    for statement in index_statements:
        op.execute(statement)


def downgrade() -> None:
    for statement in [
        "DROP TABLE IF EXISTS order_row",
        "DROP TABLE IF EXISTS orders",
        "DROP TABLE IF EXISTS storage",
        "DROP TABLE IF EXISTS location_price",
        "DROP TABLE IF EXISTS product",
        "DROP TABLE IF EXISTS location",
        "DROP TYPE IF EXISTS order_status",
        "DROP TYPE IF EXISTS location_type",
    ]:
        op.execute(statement)
