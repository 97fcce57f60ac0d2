# tribe_api/schemas.py
from datetime import datetime
from typing import List, Optional, Literal
from pydantic import BaseModel, EmailStr, Field

RoleName = Literal["admin", "user"]


# ===== auth =====
class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: Optional[str] = None

class SignInRequest(BaseModel):
    email: EmailStr
    password: str

class PasswordResetRequest(BaseModel):
    email: EmailStr

class PasswordResetConfirm(BaseModel):
    token: str
    password: str = Field(min_length=6)

class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

class ProfileOut(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    wordpress_user_id: Optional[int] = None
    wordpress_username: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class AuthStateOut(BaseModel):
    user_id: str
    email: str
    role: RoleName
    is_admin: bool
    profile: ProfileOut

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: AuthStateOut


# ===== products =====
class ProductCard(BaseModel):
    id: int
    woocommerce_id: int
    name: str
    short_description: Optional[str] = None
    image_url: Optional[str] = None
    product_url: Optional[str] = None
    categories: List[str] = []
    product_type: str
    type_label: str
    in_stock: bool
    has_discount: bool
    display_price: float
    regular_price: float
    discount_percentage: int
    price_label: str
    regular_price_label: Optional[str] = None
    discount_label: Optional[str] = None
    cta: str


# ===== coach =====
class CoachMessageIn(BaseModel):
    text: str

class CoachMessageOut(BaseModel):
    id: str
    text: str
    sender: Literal["user", "ai"]
    timestamp: datetime

class FollowUpAction(BaseModel):
    label: str
    url: str

class CoachSessionOut(BaseModel):
    session_id: str
    state: Literal["active", "ended"]
    loading: bool
    result: Optional[str] = None
    follow_up: Optional[FollowUpAction] = None
    messages: List[CoachMessageOut]


# ===== admin =====
class RoleUpdate(BaseModel):
    role: RoleName

class UserWithRole(BaseModel):
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    role: RoleName

class ChatHistoryItem(BaseModel):
    id: int
    user_id: str
    message: str
    response: Optional[str] = None
    session_id: Optional[str] = None
    created_at: Optional[datetime] = None
    user_name: str

class AdminStats(BaseModel):
    total_users: int = 0
    total_messages: int = 0
    today_messages: int = 0
    weekly_users: int = 0

class WordPressSettings(BaseModel):
    wordpress_url: str = ""
    wordpress_api_key: str = ""
    wordpress_api_secret: str = ""
