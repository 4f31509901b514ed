from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import check_password_hash, generate_password_hash

from sqlalchemy.dialects.postgresql import JSONB

db = SQLAlchemy()


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    first_name = db.Column(db.String(80), nullable=True)
    last_name = db.Column(db.String(80), nullable=True)
    email = db.Column(db.String(120), unique=True, nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="partner")
    is_approved = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    partner = db.relationship("Partner", back_populates="user", uselist=False)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)


class Partner(db.Model):
    __tablename__ = "partners"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False)
    user = db.relationship("User", back_populates="partner")

    business_name = db.Column(db.String(200), nullable=True)
    description = db.Column(db.Text, nullable=True)
    pricing_tier = db.Column(db.String(30), nullable=False, default="basic")
    # Snapshot of the tier entitlements at assignment time
    fixed_payment = db.Column(db.Float, nullable=False, default=0)
    commission_rate = db.Column(db.Float, nullable=False, default=0)
    max_product_requests = db.Column(db.Integer, nullable=False, default=0)
    features = db.Column(JSONB, nullable=True)

    total_sales = db.Column(db.Float, nullable=False, default=0)
    monthly_sales = db.Column(db.Float, nullable=False, default=0)
    monthly_cost = db.Column(db.Float, nullable=False, default=0)
    monthly_units = db.Column(db.Integer, nullable=False, default=0)
    # first day of the month the monthly_* counters belong to
    figures_month = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class PartnerRegistrationRequest(db.Model):
    __tablename__ = "partner_registration_requests"

    id = db.Column(db.Integer, primary_key=True)
    login = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30), nullable=False)
    address = db.Column(db.Text, nullable=False)
    product_category = db.Column(db.String(100), nullable=False)
    investment_amount = db.Column(db.Float, nullable=False)
    product_quantity = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")
    rejection_reason = db.Column(db.Text, nullable=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)


class PartnerActivation(db.Model):
    """Legal details submitted by a partner together with the tier they chose."""

    __tablename__ = "partner_activations"

    id = db.Column(db.Integer, primary_key=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False)
    partner = db.relationship("Partner", backref=db.backref("activations", lazy=True))

    company_name = db.Column(db.String(200), nullable=True)
    legal_form = db.Column(db.String(10), nullable=True)
    tax_id = db.Column(db.String(30), nullable=True)
    bank_account = db.Column(db.String(40), nullable=True)
    bank_name = db.Column(db.String(120), nullable=True)
    mfo = db.Column(db.String(10), nullable=True)
    legal_address = db.Column(db.Text, nullable=True)
    company_documents = db.Column(JSONB, nullable=True)

    chosen_tier = db.Column(db.String(30), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")
    rejection_reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(64), unique=True, nullable=False)
    price = db.Column(db.Float, nullable=False)
    cost_price = db.Column(db.Float, nullable=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    reserved_quantity = db.Column(db.Integer, nullable=False, default=0)
    sold_quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    uzum_market_sku = db.Column(db.String(64), nullable=True)
    yandex_market_sku = db.Column(db.String(64), nullable=True)

    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False)
    partner = db.relationship("Partner", backref=db.backref("products", lazy=True))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class ProductRequest(db.Model):
    __tablename__ = "product_requests"

    id = db.Column(db.Integer, primary_key=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False)
    partner = db.relationship("Partner", backref=db.backref("product_requests", lazy=True))
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    product = db.relationship("Product")

    product_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    expected_quantity = db.Column(db.Integer, nullable=False)
    estimated_price = db.Column(db.Float, nullable=True)
    supplier_info = db.Column(db.Text, nullable=True)
    urgency_level = db.Column(db.String(10), nullable=False, default="normal")

    admin_notes = db.Column(db.Text, nullable=True)
    final_quantity = db.Column(db.Integer, nullable=True)
    final_price = db.Column(db.Float, nullable=True)

    status = db.Column(db.String(30), nullable=False, default="pending")
    reviewed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False)
    partner = db.relationship("Partner", backref=db.backref("orders", lazy=True))
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product = db.relationship("Product")
    customer_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total_amount = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ChatMessage(db.Model):
    __tablename__ = "chat_messages"

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    receiver_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    sender = db.relationship("User", foreign_keys=[sender_id])
    receiver = db.relationship("User", foreign_keys=[receiver_id])


class MarketplaceIntegration(db.Model):
    __tablename__ = "marketplace_integrations"

    id = db.Column(db.Integer, primary_key=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False)
    partner = db.relationship(
        "Partner", backref=db.backref("marketplace_integrations", lazy=True)
    )
    marketplace = db.Column(db.String(20), nullable=False)
    store_name = db.Column(db.String(200), nullable=False)
    store_id = db.Column(db.String(64), nullable=True)
    # Fernet token, see utils.crypto
    api_key = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    auto_sync = db.Column(db.Boolean, nullable=False, default=False)
    sync_frequency = db.Column(db.Integer, nullable=False, default=24)
    last_sync_at = db.Column(db.DateTime, nullable=True)
    last_sync_status = db.Column(db.String(20), nullable=True)
    sync_errors = db.Column(JSONB, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class ActivityLog(db.Model):
    __tablename__ = "activity_logs"

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    action = db.Column(db.String(80), nullable=False)
    category = db.Column(db.String(40), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    details = db.Column(JSONB, nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
