"""
SQLAlchemy ORM Models
Database table definitions for the PicX marketplace.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Column, String, Integer, Boolean, TIMESTAMP, Date,
    ForeignKey, Numeric, Text, Index, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

ROLE_BUYER = "buyer"
ROLE_ARTIST = "artist"
ROLE_ADMIN = "admin"
USER_ROLES = (ROLE_BUYER, ROLE_ARTIST, ROLE_ADMIN)

ORDER_PENDING = "pending"
ORDER_PAID = "paid"

TX_PENDING = "pending"
TX_COMPLETED = "completed"
TX_FAILED = "failed"

WITHDRAW_PENDING = "pending"
WITHDRAW_APPROVED = "approved"
WITHDRAW_REJECTED = "rejected"


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what TIMESTAMP columns hand back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """
    User model.

    Buyers, artists and admins share this table; `role` tells them apart.
    """
    __tablename__ = 'users'

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False,
                   comment='Lowercased email address used for login')
    password_hash = Column(String(255), nullable=False,
                           comment='Bcrypt hashed password')
    role = Column(String(20), nullable=False, default=ROLE_BUYER,
                  comment='buyer, artist or admin')
    phone = Column(String(20), nullable=True)
    address = Column(String(255), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True,
                       comment='False when banned by an admin')
    email_verified = Column(Boolean, nullable=False, default=False)
    last_login = Column(TIMESTAMP, nullable=True)

    # Payout details
    bank_name = Column(String(100), nullable=True)
    bank_account_number = Column(String(50), nullable=True)
    momo_number = Column(String(20), nullable=True)

    # One-time codes
    email_otp = Column(String(10), nullable=True)
    email_otp_expiry = Column(TIMESTAMP, nullable=True)
    reset_code = Column(String(10), nullable=True)
    reset_code_expiry = Column(TIMESTAMP, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    artist_profile = relationship("ArtistProfile", back_populates="user", uselist=False,
                                  cascade="all, delete-orphan")
    products = relationship("Product", back_populates="artist")
    wallet = relationship("Wallet", back_populates="user", uselist=False)

    def __repr__(self):
        return f"<User(user_id={self.user_id}, email={self.email}, role={self.role})>"


class ArtistProfile(Base):
    """Public profile of an artist, keyed by the artist's user id."""
    __tablename__ = 'artist_profiles'

    artist_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), primary_key=True)
    bio = Column(Text, nullable=True)
    profile_picture = Column(String(255), nullable=True)
    specialization = Column(String(100), nullable=True)
    experience_years = Column(Integer, nullable=True)
    website_url = Column(String(255), nullable=True)
    social_media_links = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="artist_profile")

    def __repr__(self):
        return f"<ArtistProfile(artist_id={self.artist_id})>"


class Category(Base):
    __tablename__ = 'categories'

    category_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    parent_category_id = Column(Integer, ForeignKey('categories.category_id'), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category(category_id={self.category_id}, name={self.name})>"


class Product(Base):
    """
    Artwork listed for sale.

    Prices are stored in thousands of VND.
    """
    __tablename__ = 'products'

    product_id = Column(Integer, primary_key=True, autoincrement=True)
    artist_id = Column(Integer, ForeignKey('users.user_id'), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey('categories.category_id'), nullable=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(18, 2), nullable=False)
    image_key = Column(String(255), nullable=True, index=True,
                       comment='S3 object key of the main image')
    additional_images = Column(Text, nullable=True,
                               comment='JSON list of extra S3 object keys')
    dimensions = Column(String(100), nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)
    tags = Column(String(500), nullable=True, comment='Comma separated tags')
    like_count = Column(Integer, nullable=False, default=0)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    artist = relationship("User", back_populates="products")
    category = relationship("Category", back_populates="products")
    cart_items = relationship("Cart", back_populates="product", cascade="all, delete-orphan")
    favorites = relationship("Favorite", back_populates="product", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="product", cascade="all, delete-orphan")
    reports = relationship("Report", back_populates="product", cascade="all, delete-orphan")
    order_details = relationship("OrderDetail", back_populates="product")

    def __repr__(self):
        return f"<Product(product_id={self.product_id}, title={self.title})>"


class Cart(Base):
    __tablename__ = 'carts'

    cart_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False)
    product_id = Column(Integer, ForeignKey('products.product_id', ondelete='CASCADE'), nullable=False)
    added_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    product = relationship("Product", back_populates="cart_items")

    __table_args__ = (
        UniqueConstraint('user_id', 'product_id', name='uq_carts_user_product'),
    )

    def __repr__(self):
        return f"<Cart(cart_id={self.cart_id}, user_id={self.user_id}, product_id={self.product_id})>"


class Favorite(Base):
    __tablename__ = 'favorites'

    favorite_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False)
    product_id = Column(Integer, ForeignKey('products.product_id', ondelete='CASCADE'), nullable=False)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    product = relationship("Product", back_populates="favorites")

    __table_args__ = (
        UniqueConstraint('user_id', 'product_id', name='uq_favorites_user_product'),
    )

    def __repr__(self):
        return f"<Favorite(favorite_id={self.favorite_id}, user_id={self.user_id}, product_id={self.product_id})>"


class Comment(Base):
    __tablename__ = 'comments'

    comment_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False)
    product_id = Column(Integer, ForeignKey('products.product_id', ondelete='CASCADE'),
                        nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    user = relationship("User")
    product = relationship("Product", back_populates="comments")
    replies = relationship("CommentReply", back_populates="comment", cascade="all, delete-orphan",
                           order_by="CommentReply.created_at")


class CommentReply(Base):
    __tablename__ = 'comment_replies'

    reply_id = Column(Integer, primary_key=True, autoincrement=True)
    comment_id = Column(Integer, ForeignKey('comments.comment_id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    user = relationship("User")
    comment = relationship("Comment", back_populates="replies")


class Order(Base):
    """
    Buyer order.

    `total_amount` is the sum of the detail prices captured at creation.
    """
    __tablename__ = 'orders'

    order_id = Column(Integer, primary_key=True, autoincrement=True)
    buyer_id = Column(Integer, ForeignKey('users.user_id'), nullable=False, index=True)
    total_amount = Column(Numeric(18, 2), nullable=False)
    status = Column(String(20), nullable=False, default=ORDER_PENDING)
    order_date = Column(TIMESTAMP, nullable=False, default=utcnow)

    buyer = relationship("User")
    details = relationship("OrderDetail", back_populates="order", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="order", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Order(order_id={self.order_id}, buyer_id={self.buyer_id}, status={self.status})>"


class OrderDetail(Base):
    __tablename__ = 'order_details'

    order_detail_id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey('orders.order_id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.product_id'), nullable=False, index=True)
    total_price = Column(Numeric(18, 2), nullable=False)

    order = relationship("Order", back_populates="details")
    product = relationship("Product", back_populates="order_details")


class Payment(Base):
    __tablename__ = 'payments'

    payment_id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey('orders.order_id', ondelete='CASCADE'), nullable=False)
    payment_method = Column(String(50), nullable=False)
    payment_provider = Column(String(50), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    payment_date = Column(TIMESTAMP, nullable=False, default=utcnow)
    amount = Column(Numeric(18, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="VND")
    payment_details = Column(Text, nullable=True)

    order = relationship("Order", back_populates="payments")


class Chat(Base):
    __tablename__ = 'chats'

    chat_id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(Integer, ForeignKey('users.user_id'), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey('users.user_id'), nullable=False, index=True)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    sent_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])


class Notification(Base):
    __tablename__ = 'notifications'

    notification_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    entity_type = Column(String(50), nullable=True, comment='Kind of entity the notification refers to')
    entity_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class Report(Base):
    """User report about an artwork, reviewed by admins."""
    __tablename__ = 'reports'

    report_id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey('products.product_id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False)
    content = Column(Text, nullable=False)
    is_approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User")
    product = relationship("Product", back_populates="reports")

    __table_args__ = (
        UniqueConstraint('product_id', 'user_id', name='uq_reports_product_user'),
    )


class FinancialReport(Base):
    """Per-artist sales summary for one period."""
    __tablename__ = 'financial_reports'

    report_id = Column(Integer, primary_key=True, autoincrement=True)
    artist_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    total_sales = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    total_commission = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    net_earnings = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    commission_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("10.00"))
    generated_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    __table_args__ = (
        Index('idx_financial_reports_artist_period', 'artist_id', 'period_start', 'period_end',
              unique=True),
    )

    def __repr__(self):
        return (
            f"<FinancialReport(artist_id={self.artist_id}, "
            f"period={self.period_start}..{self.period_end})>"
        )


class Wallet(Base):
    __tablename__ = 'wallets'

    wallet_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), unique=True, nullable=False)
    balance = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))

    user = relationship("User", back_populates="wallet")
    transactions = relationship("WalletTransaction", back_populates="wallet",
                                cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Wallet(wallet_id={self.wallet_id}, user_id={self.user_id}, balance={self.balance})>"


class WalletTransaction(Base):
    """
    Wallet ledger entry.

    Amounts are signed; only `completed` entries count towards the balance.
    """
    __tablename__ = 'wallet_transactions'

    transaction_id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_id = Column(Integer, ForeignKey('wallets.wallet_id', ondelete='CASCADE'), nullable=False, index=True)
    amount = Column(Numeric(18, 2), nullable=False)
    transaction_type = Column(String(20), nullable=False,
                              comment='deposit, purchase, sale, withdraw or refund')
    status = Column(String(20), nullable=False, default=TX_COMPLETED)
    description = Column(String(255), nullable=True)
    external_transaction_id = Column(String(100), nullable=True, index=True,
                                     comment='PayOS order code for deposits')
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    wallet = relationship("Wallet", back_populates="transactions")


class WithdrawRequest(Base):
    __tablename__ = 'withdraw_requests'

    request_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False, index=True)
    amount_requested = Column(Numeric(18, 2), nullable=False)
    amount_received = Column(Numeric(18, 2), nullable=False,
                             comment='Payout after commission')
    status = Column(String(20), nullable=False, default=WITHDRAW_PENDING)
    requested_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    processed_at = Column(TIMESTAMP, nullable=True)

    user = relationship("User")
