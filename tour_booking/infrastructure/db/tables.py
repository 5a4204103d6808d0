from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
)

metadata = MetaData()

agencies = Table(
    "agencies",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("contact_email", String(255)),
    Column("stripe_account_id", String(64), unique=True),
    Column("fee_percentage", Numeric(5, 2), nullable=False, default=0),
    Column("processor_fee_amount", Integer, nullable=False, default=0),
    Column("charges_enabled", Boolean, nullable=False, default=False),
    Column("payouts_enabled", Boolean, nullable=False, default=False),
    Column("active", Boolean, nullable=False, default=False),
    Column("updated_at", DateTime),
)

turnos = Table(
    "turnos",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("max_capacity", Integer, nullable=False),
    Column("occupied", Integer, nullable=False, default=0),
    CheckConstraint("occupied >= 0 AND occupied <= max_capacity", name="ck_turnos_occupied_range"),
)

reservations = Table(
    "reservations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("booking_code", String(50), nullable=False, unique=True),
    Column("turno_id", Integer, nullable=False, index=True),
    Column("agency_id", Integer, nullable=False, index=True),
    Column("customer_id", Integer),
    Column("customer_email", String(255)),
    Column("customer_name", String(255)),
    Column("language", String(5), nullable=False, default="es"),
    Column("state", String(16), nullable=False, index=True),
    Column("total_amount", Integer, nullable=False),
    Column("currency", String(3), nullable=False),
    Column("payment_intent_id", String(64)),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime),
    Column("expires_at", DateTime),
    Column("cancelled_at", DateTime),
    # ids nunca reutilizados: un hold barrido puede volver con su id original
    sqlite_autoincrement=True,
)

reservation_items = Table(
    "reservation_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reservation_id", Integer, nullable=False, index=True),
    Column("position", Integer, nullable=False),
    Column("item_type", String(16), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Integer, nullable=False),
    Column("total", Integer, nullable=False),
    Column("catalog_ref_id", Integer),
)

payments = Table(
    "payments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reservation_id", Integer, nullable=False, index=True),
    Column("agency_id", Integer),
    Column("stripe_session_id", String(128), index=True),
    Column("stripe_payment_intent_id", String(64), index=True),
    Column("amount", Integer, nullable=False),
    Column("currency", String(3), nullable=False),
    Column("platform_fee", Integer),
    Column("status", String(16), nullable=False),
    Column("external_status", String(32)),
    Column("receipt_url", String(500)),
    Column("customer_email", String(255)),
    Column("customer_name", String(255)),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime),
)

refunds = Table(
    "refunds",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reservation_id", Integer, nullable=False, index=True),
    Column("payment_id", Integer),
    Column("stripe_refund_id", String(64), nullable=False, unique=True),
    Column("amount", Integer, nullable=False),
    Column("currency", String(3), nullable=False),
    Column("status", String(16), nullable=False),
    Column("authorized_by", String(255), nullable=False),
    Column("reason", String(500)),
    Column("used_fallback", Boolean, nullable=False, default=False),
    Column("fallback_reason", String(255)),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime),
)

abandoned_carts = Table(
    "abandoned_carts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reservation_id", Integer, nullable=False, index=True),
    Column("booking_code", String(50), nullable=False, unique=True),
    Column("turno_id", Integer, nullable=False),
    Column("agency_id", Integer, nullable=False),
    Column("customer_id", Integer),
    Column("customer_email", String(255)),
    Column("customer_name", String(255)),
    Column("language", String(5), nullable=False, default="es"),
    Column("state", String(16), nullable=False),
    Column("total_amount", Integer, nullable=False),
    Column("currency", String(3), nullable=False),
    Column("payment_intent_id", String(64)),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime),
    Column("expires_at", DateTime),
    Column("items", JSON, nullable=False),
    Column("abandoned_at", DateTime, nullable=False),
)

processed_webhook_events = Table(
    "processed_webhook_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("event_id", String(255), nullable=False, unique=True),
    Column("event_type", String(100), nullable=False),
    Column("success", Boolean, nullable=False, default=True),
    Column("outcome", String(500)),
    Column("processed_at", DateTime, nullable=False),
)
