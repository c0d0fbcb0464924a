"""
Order, payment, wallet and withdrawal schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OrderItemRequest(BaseModel):
    product_id: int


class OrderCreateRequest(BaseModel):
    items: List[OrderItemRequest] = Field(default_factory=list)


class OrderCreateResponse(BaseModel):
    message: str
    order_id: int
    total_amount: float


class OrderDetailResponse(BaseModel):
    order_detail_id: int
    product_id: int
    product_title: Optional[str] = None
    image_url: Optional[str] = None
    artist_id: Optional[int] = None
    artist_name: Optional[str] = None
    total_price: float


class PaymentResponse(BaseModel):
    payment_id: int
    payment_method: str
    payment_provider: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_date: datetime
    amount: float
    currency: str

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    order_id: int
    buyer_id: int
    buyer_name: Optional[str] = None
    total_amount: float
    status: str
    order_date: datetime
    details: List[OrderDetailResponse]
    payments: List[PaymentResponse] = Field(default_factory=list)


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]


class PayOrderResponse(BaseModel):
    message: str
    order_id: int
    payment: PaymentResponse
    balance: float


class ArtistSummary(BaseModel):
    user_id: int
    name: str
    email: str

    model_config = {"from_attributes": True}


class WalletTransactionResponse(BaseModel):
    transaction_id: int
    amount: float
    transaction_type: str
    status: str
    description: Optional[str] = None
    external_transaction_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class WalletResponse(BaseModel):
    wallet_id: int
    balance: float
    transactions: List[WalletTransactionResponse]


class DepositRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Amount in thousands of VND")


class DepositResponse(BaseModel):
    message: str
    payment_url: str
    transaction_id: int
    order_code: int


class PayOSWebhookRequest(BaseModel):
    """PayOS webhook payload."""

    code: str
    desc: Optional[str] = None
    success: Optional[bool] = None
    data: Dict[str, Any]
    signature: str


class WithdrawCreateRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Amount in thousands of VND")


class WithdrawRequestResponse(BaseModel):
    request_id: int
    user_id: int
    user_name: Optional[str] = None
    user_role: Optional[str] = None
    amount_requested: float
    amount_received: float
    status: str
    requested_at: datetime
    processed_at: Optional[datetime] = None
