"""Pydantic request and response models shared by the API routes.

Request bodies are deliberately lenient: every field is optional and
loosely typed so that missing or malformed input reaches the service
layer, which answers with the storefront's own 400 messages instead of
FastAPI's generic 422.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LenientBody(BaseModel):
    """Base for request bodies: accepts camelCase or snake_case, keeps unknown keys."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_mapping(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ============================================================================
# Common responses
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response model."""

    success: bool = Field(default=False)
    message: str = Field(..., description="Customer-facing error message")
    error_code: Optional[str] = Field(default=None, description="Error code for client handling")
    error: Optional[str] = Field(default=None, description="Error summary (server errors)")
    detail: Optional[str] = Field(default=None, description="Detailed error information")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "message": "Insufficient stock. Only 2 item(s) available.",
                "error_code": "ERR_STOCK_001",
            }
        }
    )


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int


class HealthResponse(BaseModel):
    status: str
    version: str


class ReadinessResponse(BaseModel):
    status: str
    checks: dict


# ============================================================================
# Auth
# ============================================================================


class SignupRequest(LenientBody):
    username: Optional[str] = None
    password: Optional[str] = None
    security_question: Optional[str] = Field(default=None, alias="securityQuestion")
    security_answer: Optional[str] = Field(default=None, alias="securityAnswer")


class LoginRequest(LenientBody):
    username: Optional[str] = None
    password: Optional[str] = None


class SecurityQuestionRequest(LenientBody):
    username: Optional[str] = None


class ResetPasswordRequest(LenientBody):
    username: Optional[str] = None
    security_answer: Optional[str] = Field(default=None, alias="securityAnswer")
    new_password: Optional[str] = Field(default=None, alias="newPassword")


class AuthUserInfo(BaseModel):
    id: int
    username: str
    role: str


class LoginResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    role: str
    user: AuthUserInfo
    accountStatus: str
    suspension: Optional[dict] = None


# ============================================================================
# Catalogue and engagement
# ============================================================================


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str

    model_config = {"from_attributes": True}


class RatingRequest(LenientBody):
    product_id: Any = Field(default=None, alias="productId")
    rating: Any = None


class CommentCreate(LenientBody):
    product_id: Any = Field(default=None, alias="productId")
    comment_text: Optional[str] = Field(default=None, alias="commentText")


# ============================================================================
# Checkout
# ============================================================================


class BuyNowSessionCreate(LenientBody):
    product_id: Any = Field(default=None, alias="productId")
    selected_size: Any = Field(default=None, alias="selectedSize")
    quantity: Any = 1


class BuyNowSessionUpdate(LenientBody):
    selected_size: Any = Field(default=None, alias="selectedSize")
    quantity: Any = None


class OrderCreate(LenientBody):
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    shipping_type: Optional[str] = Field(default=None, alias="shippingType")
    shipping_charge: Any = Field(default=None, alias="shippingCharge")
    gift_box: Optional[bool] = Field(default=None, alias="giftBox")
    bargain_discount: Any = Field(default=None, alias="bargainDiscount")
    bargain_final_price: Any = Field(default=None, alias="bargainFinalPrice")
    bargain_chat_log: Optional[List[Any]] = Field(default=None, alias="bargainChatLog")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    customer_first_name: Optional[str] = Field(default=None, alias="customerFirstName")
    customer_last_name: Optional[str] = Field(default=None, alias="customerLastName")
    customer_province: Optional[str] = Field(default=None, alias="customerProvince")
    customer_city: Optional[str] = Field(default=None, alias="customerCity")
    customer_address: Optional[str] = Field(default=None, alias="customerAddress")
    customer_phone: Optional[str] = Field(default=None, alias="customerPhone")


# ============================================================================
# Admin
# ============================================================================


class OrderStatusUpdate(LenientBody):
    status: Optional[str] = None


class StockAdjustRequest(LenientBody):
    delta: Any = None


class BlockUserRequest(LenientBody):
    reason: Optional[str] = None


class SuspendUserRequest(LenientBody):
    days: Any = None
    reason: Optional[str] = None
