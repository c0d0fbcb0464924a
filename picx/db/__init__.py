"""
Database ORM Models
SQLAlchemy ORM models for the PicX database.
"""

from .models import (
    Base,
    User,
    ArtistProfile,
    Category,
    Product,
    Cart,
    Favorite,
    Comment,
    CommentReply,
    Order,
    OrderDetail,
    Payment,
    Chat,
    Notification,
    Report,
    FinancialReport,
    Wallet,
    WalletTransaction,
    WithdrawRequest,
)

__all__ = [
    "Base",
    "User",
    "ArtistProfile",
    "Category",
    "Product",
    "Cart",
    "Favorite",
    "Comment",
    "CommentReply",
    "Order",
    "OrderDetail",
    "Payment",
    "Chat",
    "Notification",
    "Report",
    "FinancialReport",
    "Wallet",
    "WalletTransaction",
    "WithdrawRequest",
]
