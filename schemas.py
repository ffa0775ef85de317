# schemas.py
from enum import Enum
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field, AnyUrl, AfterValidator, StringConstraints, TypeAdapter, ValidationError, ValidationInfo, field_validator
from typing import Annotated, List, Optional
from datetime import datetime

# Shared enumerations, used by every listing validator
class Category(str, Enum):
    ELECTRONICS = "Electronics"
    FASHION = "Fashion & Apparel"
    HOME = "Home & Furniture"
    VEHICLES = "Vehicles"
    BOOKS = "Books & Education"
    SPORTS = "Sports & Recreation"
    HEALTH = "Health & Beauty"
    COLLECTIBLES = "Collectibles & Art"

class Condition(str, Enum):
    NEW = "New"
    LIKE_NEW = "Like New"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    USED = "Used"

_url_adapter = TypeAdapter(AnyUrl)

def _check_url(value: str) -> str:
    # Validate only; the caller's string is stored as given
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise ValueError("The image must be a valid URL.")
    return value

ImageUrl = Annotated[str, AfterValidator(_check_url)]

# Blank input counts as missing
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
CommentBody = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)]

PRICE_DIGITS = 12
PRICE_PLACES = 2

# Token schemas
class Token(BaseModel):
    access_token: str
    token_type: str
    expires_in: int

class TokenData(BaseModel):
    user_id: Optional[int] = None
    jti: Optional[str] = None
    expires_at: Optional[datetime] = None

# User schemas
class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr

class UserCreate(UserBase):
    password: str = Field(..., min_length=6, max_length=72)
    password_confirmation: str

    @field_validator("password_confirmation")
    @classmethod
    def passwords_match(cls, value, info: ValidationInfo):
        if value != info.data.get("password"):
            raise ValueError("The password confirmation does not match.")
        return value

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserResponse(UserBase):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True

class TokenResponse(Token):
    user: UserResponse

class UserEnvelope(BaseModel):
    message: str
    user: UserResponse

# Comment schemas
class CommentCreate(BaseModel):
    body: CommentBody

class CommentResponse(BaseModel):
    id: int
    listing_id: int
    user_id: int
    body: str
    created_at: datetime
    user: UserResponse

    class Config:
        from_attributes = True

class CommentEnvelope(BaseModel):
    message: str
    comment: CommentResponse

# Listing schemas
class ListingCreate(BaseModel):
    title: Title
    description: RequiredText
    price: Decimal = Field(..., ge=0, max_digits=PRICE_DIGITS, decimal_places=PRICE_PLACES)
    images: Optional[List[ImageUrl]] = None
    category: Category
    condition: Condition
    location: Optional[str] = Field(None, max_length=255)

    class Config:
        use_enum_values = True

class ListingUpdate(BaseModel):
    """Partial update: only fields present in the request body are applied."""

    title: Optional[Title] = None
    description: Optional[RequiredText] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=PRICE_DIGITS, decimal_places=PRICE_PLACES)
    images: Optional[List[ImageUrl]] = None
    category: Optional[Category] = None
    condition: Optional[Condition] = None
    location: Optional[str] = Field(None, max_length=255)

    class Config:
        use_enum_values = True

    @field_validator("title", "description", "price", "category", "condition")
    @classmethod
    def not_null(cls, value):
        # Only runs for values actually supplied
        if value is None:
            raise ValueError("This field may not be null.")
        return value

class ListingResponse(BaseModel):
    id: int
    user_id: int
    owner_id: int
    title: str
    description: str
    price: float
    images: List[str] = []
    category: str
    condition: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user: UserResponse

    class Config:
        from_attributes = True

    @field_validator("images", mode="before")
    @classmethod
    def images_default(cls, value):
        return value or []

class ListingEnvelope(BaseModel):
    message: str
    listing: ListingResponse

# Generic responses
class MessageResponse(BaseModel):
    message: str

class ImageUploadResponse(BaseModel):
    url: str
