from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models import QueueStatus


class QueueRequest(BaseModel):
    # both optional here so a missing field is reported by the endpoint's own 400
    url: Optional[str] = None
    deviceId: Optional[str] = None


class QueueResponse(BaseModel):
    ok: bool = True
    queueItemId: str
    duplicate: Optional[bool] = None


class QueueItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    device_id: str
    url: str
    status: QueueStatus
    created_at: datetime
    updated_at: datetime


class QueueStatusOut(BaseModel):
    waiting: int
    active: int
    delayed: int
    paused: bool
    completed: int
    failed: int
    jobCounts: Dict[str, int]


class HealthOut(BaseModel):
    status: str
    message: str
    timestamp: str


class ExtractedProduct(BaseModel):
    """One record of the extraction model's JSON array. Lengths match the products/categories columns."""

    name: str = Field(max_length=512)
    category: str = Field(max_length=255)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=32)
    mentioned_context: Optional[str] = None

    @field_validator("name", "category")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class ExtractedCategory(BaseModel):
    name: str
    description: Optional[str] = None
    products: List[ExtractedProduct] = Field(default_factory=list)


class ShoppingOption(BaseModel):
    title: Optional[str] = None
    link: str
    price: Optional[str] = None
    source: Optional[str] = None
    source_icon: Optional[str] = None
    thumbnail: Optional[str] = None
    delivery: Optional[str] = None


class CategoryIn(BaseModel):
    name: str
    description: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    device_id: str
    name: str
    description: Optional[str]
    icon: str = "folder"
    created_at: datetime


class ShoppingUrlOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    url: str
    price: Optional[str]
    source: Optional[str]
    source_icon: Optional[str]
    thumbnail: Optional[str]
    delivery: Optional[str]
    created_at: datetime


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    category_id: str
    name: str
    description: Optional[str]
    mentioned_content: Optional[str]
    icon: Optional[str]
    tiktok_url: Optional[str]
    created_at: datetime


class ProductDetailOut(ProductOut):
    shopping_urls: List[ShoppingUrlOut] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None


class ErrorOut(BaseModel):
    success: bool = False
    error: str
    detail: Optional[Any] = None
