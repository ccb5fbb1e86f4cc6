# app/models/models.py
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class QueueStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class JobState(str, enum.Enum):
    WAITING = "waiting"
    DELAYED = "delayed"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Device(Base):
    __tablename__ = "devices"

    id = Column(String(255), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    queue_items = relationship("QueueItem", back_populates="device", cascade="all, delete-orphan")
    categories = relationship("Category", back_populates="device", cascade="all, delete-orphan")


class QueueItem(Base):
    __tablename__ = "queue_items"
    __table_args__ = (UniqueConstraint("device_id", "url", name="uq_queue_items_device_url"),)

    id = Column(String(36), primary_key=True, default=new_id)
    device_id = Column(String(255), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String(2048), nullable=False)
    status = Column(
        Enum(QueueStatus, name="queue_status", values_callable=_enum_values),
        nullable=False,
        default=QueueStatus.PENDING,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    device = relationship("Device", back_populates="queue_items")


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("device_id", "name", name="uq_categories_device_name"),)

    id = Column(String(36), primary_key=True, default=new_id)
    device_id = Column(String(255), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    device = relationship("Device", back_populates="categories")
    products = relationship("Product", back_populates="category", cascade="all, delete-orphan")


class Product(Base):
    __tablename__ = "products"

    # deterministic, see crud.product_id_for
    id = Column(String(64), primary_key=True)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(512), nullable=False)
    description = Column(Text, nullable=True)
    mentioned_content = Column(Text, nullable=True)
    icon = Column(String(32), nullable=True)
    tiktok_url = Column(String(2048), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    category = relationship("Category", back_populates="products")
    shopping_urls = relationship("ShoppingUrl", back_populates="product", cascade="all, delete-orphan")


class ShoppingUrl(Base):
    __tablename__ = "shopping_urls"

    id = Column(String(128), primary_key=True)
    product_id = Column(String(64), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String(2048), nullable=False)
    price = Column(String(64), nullable=True)
    source = Column(String(255), nullable=True)
    source_icon = Column(String(2048), nullable=True)
    thumbnail = Column(String(2048), nullable=True)
    delivery = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    product = relationship("Product", back_populates="shopping_urls")


class Job(Base):
    """A unit of work in the job broker. `id` is the job identity."""

    __tablename__ = "jobs"
    __table_args__ = (Index("ix_jobs_queue_state_run_at", "queue", "state", "run_at"),)

    id = Column(String(512), primary_key=True)
    queue = Column(String(64), nullable=False)
    name = Column(String(64), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    state = Column(
        Enum(JobState, name="job_state", values_callable=_enum_values),
        nullable=False,
        default=JobState.WAITING,
    )
    attempts = Column(Integer, nullable=False, default=1)
    attempts_made = Column(Integer, nullable=False, default=0)
    failed_reason = Column(Text, nullable=True)
    return_value = Column(JSON, nullable=True)
    run_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)


class JobQueue(Base):
    __tablename__ = "job_queues"

    name = Column(String(64), primary_key=True)
    paused = Column(Boolean, nullable=False, default=False)
