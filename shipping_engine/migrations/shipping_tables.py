"""
Database migration for the shipping engine tables

Creates:
- carriers: Carrier registry
- carrier_services: Named shipping products per carrier
- shipping_zones: Geographic eligibility regions
- shipping_rates: Priced offers per zone and carrier service
- shipments: Fulfillment records and lifecycle status

Idempotent: safe to run on every startup.
"""
import logging
from sqlalchemy import text

logger = logging.getLogger(__name__)

TABLES = [
    ("carriers", """
        CREATE TABLE IF NOT EXISTS carriers (
            id SERIAL PRIMARY KEY,
            code VARCHAR(50) NOT NULL UNIQUE,
            name VARCHAR(100) NOT NULL,
            display_name VARCHAR(100) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """),
    ("carrier_services", """
        CREATE TABLE IF NOT EXISTS carrier_services (
            id SERIAL PRIMARY KEY,
            carrier_id INTEGER NOT NULL REFERENCES carriers(id),
            name VARCHAR(100) NOT NULL,
            code VARCHAR(50) NOT NULL,
            shipping_method VARCHAR(20) NOT NULL DEFAULT 'standard',
            estimated_days INTEGER NOT NULL DEFAULT 0,
            tracking_url_template VARCHAR(500),
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """),
    ("shipping_zones", """
        CREATE TABLE IF NOT EXISTS shipping_zones (
            id SERIAL PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            country_codes JSON NOT NULL,
            regions JSON,
            postal_codes JSON,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            sort_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """),
    ("shipping_rates", """
        CREATE TABLE IF NOT EXISTS shipping_rates (
            id SERIAL PRIMARY KEY,
            zone_id INTEGER NOT NULL REFERENCES shipping_zones(id),
            carrier_service_id INTEGER NOT NULL REFERENCES carrier_services(id),
            min_weight DOUBLE PRECISION,
            max_weight DOUBLE PRECISION,
            min_order_amount DOUBLE PRECISION,
            max_order_amount DOUBLE PRECISION,
            base_cost DOUBLE PRECISION NOT NULL DEFAULT 0,
            per_kg_cost DOUBLE PRECISION,
            free_shipping_threshold DOUBLE PRECISION,
            estimated_days INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CONSTRAINT ck_shipping_rates_weight_bounds
                CHECK (min_weight IS NULL OR max_weight IS NULL OR min_weight <= max_weight),
            CONSTRAINT ck_shipping_rates_order_bounds
                CHECK (min_order_amount IS NULL OR max_order_amount IS NULL OR min_order_amount <= max_order_amount)
        )
    """),
    ("shipments", """
        CREATE TABLE IF NOT EXISTS shipments (
            id SERIAL PRIMARY KEY,
            order_id VARCHAR(64) NOT NULL,
            carrier_service_id INTEGER NOT NULL REFERENCES carrier_services(id),
            tracking_number VARCHAR(100),
            tracking_url VARCHAR(500),
            label_url VARCHAR(500),
            status VARCHAR(20) NOT NULL DEFAULT 'PENDING',
            shipping_address JSON NOT NULL,
            package_info JSON NOT NULL,
            shipping_cost DOUBLE PRECISION NOT NULL,
            estimated_delivery_date TIMESTAMP WITH TIME ZONE,
            actual_delivery_date TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """),
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS ix_carriers_active ON carriers(is_active)",
    "CREATE INDEX IF NOT EXISTS ix_carrier_services_carrier_id ON carrier_services(carrier_id)",
    "CREATE INDEX IF NOT EXISTS ix_carrier_services_active ON carrier_services(is_active)",
    "CREATE INDEX IF NOT EXISTS ix_shipping_zones_active_order ON shipping_zones(is_active, sort_order)",
    "CREATE INDEX IF NOT EXISTS ix_shipping_rates_zone_active ON shipping_rates(zone_id, is_active)",
    "CREATE INDEX IF NOT EXISTS ix_shipping_rates_carrier_service_id ON shipping_rates(carrier_service_id)",
    "CREATE INDEX IF NOT EXISTS ix_shipments_order_id ON shipments(order_id)",
    "CREATE INDEX IF NOT EXISTS ix_shipments_tracking_number ON shipments(tracking_number)",
    "CREATE INDEX IF NOT EXISTS ix_shipments_status ON shipments(status)",
]


async def migrate_shipping_tables(engine):
    """
    Create shipping tables and indexes if they don't exist.

    Tables are created in dependency order inside one transaction.
    """
    logger.info("Starting shipping tables migration...")

    async with engine.begin() as conn:
        for table_name, ddl in TABLES:
            await conn.execute(text(ddl))
            logger.info(f"Created/verified {table_name} table")

        for idx_sql in INDEXES:
            await conn.execute(text(idx_sql))

    logger.info("Shipping tables migration complete")
