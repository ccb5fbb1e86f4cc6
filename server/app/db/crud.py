import hashlib
import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError, QueueItemNotFoundError, ValidationError
from app.db import dialect_insert
from app.models import Category, Device, Product, QueueItem, QueueStatus, ShoppingUrl
from app.models.models import new_id, utcnow
from app.schemas.schemas import ExtractedCategory, ExtractedProduct, ShoppingOption
from app.worker.state import transition

# ---------------------------------------------------------------------------
# devices / queue items
# ---------------------------------------------------------------------------

async def ensure_device(db: AsyncSession, device_id: str) -> None:
    """Create the Device row if it is missing. Existing rows are never touched."""
    stmt = (
        dialect_insert(db, Device)
        .values(id=device_id, created_at=utcnow())
        .on_conflict_do_nothing(index_elements=["id"])
    )
    await db.execute(stmt)


async def create_queue_item(db: AsyncSession, device_id: str, url: str) -> Tuple[QueueItem, bool]:
    """
    Insert a PENDING QueueItem for (device_id, url).
    Returns (item, created); created is False when the pair already existed.
    """
    now = utcnow()
    stmt = (
        dialect_insert(db, QueueItem)
        .values(
            id=new_id(),
            device_id=device_id,
            url=url,
            status=QueueStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        .on_conflict_do_nothing(index_elements=["device_id", "url"])
        .returning(QueueItem.id)
    )
    inserted_id = (await db.execute(stmt)).scalar_one_or_none()

    item = await db.scalar(
        select(QueueItem).where(QueueItem.device_id == device_id, QueueItem.url == url)
    )
    return item, inserted_id is not None


async def get_queue_item(db: AsyncSession, item_id: str, with_device: bool = False) -> QueueItem:
    stmt = select(QueueItem).where(QueueItem.id == item_id)
    if with_device:
        stmt = stmt.options(selectinload(QueueItem.device))
    item = await db.scalar(stmt)
    if item is None:
        raise QueueItemNotFoundError(f"QueueItem {item_id} does not exist")
    return item


async def set_status(db: AsyncSession, item_id: str, status: QueueStatus) -> QueueItem:
    """Apply one state-machine transition and commit it."""
    item = await get_queue_item(db, item_id)
    transition(item, status)
    item.updated_at = utcnow()
    await db.commit()
    return item


# ---------------------------------------------------------------------------
# extraction persistence
# ---------------------------------------------------------------------------

def product_id_for(category_id: str, name: str) -> str:
    """Stable product id for a (category, product name) pair."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{category_id}:{name.strip()}"))


async def list_active_categories(db: AsyncSession, device_id: str) -> List[Category]:
    result = await db.execute(
        select(Category)
        .where(Category.device_id == device_id, Category.is_deleted.is_(False))
        .order_by(Category.name)
    )
    return list(result.scalars())


async def upsert_category(
    db: AsyncSession, device_id: str, name: str, description: Optional[str] = None
) -> Category:
    """Create the device-scoped category if new, otherwise return the existing row unchanged."""
    stmt = (
        dialect_insert(db, Category)
        .values(
            id=new_id(),
            device_id=device_id,
            name=name,
            description=description or None,
            is_deleted=False,
            created_at=utcnow(),
        )
        .on_conflict_do_nothing(index_elements=["device_id", "name"])
    )
    await db.execute(stmt)
    return await db.scalar(
        select(Category).where(Category.device_id == device_id, Category.name == name)
    )


async def upsert_product(
    db: AsyncSession, category: Category, product: ExtractedProduct, source_url: str
) -> str:
    """Insert the product under its deterministic id; the first stored version is kept."""
    product_id = product_id_for(category.id, product.name)
    stmt = (
        dialect_insert(db, Product)
        .values(
            id=product_id,
            category_id=category.id,
            name=product.name,
            description=product.description,
            mentioned_content=product.mentioned_context,
            icon=product.icon,
            tiktok_url=source_url,
            is_deleted=False,
            created_at=utcnow(),
        )
        .on_conflict_do_nothing(index_elements=["id"])
    )
    await db.execute(stmt)
    return product_id


async def store_extraction(
    db: AsyncSession,
    device_id: str,
    source_url: str,
    categories: Iterable[ExtractedCategory],
) -> List[str]:
    """
    Upsert every extracted category and product for one job.
    Runs inside the caller's transaction; nothing is committed here.
    Returns the ids of the stored (or already existing) products.
    """
    product_ids: List[str] = []
    for extracted in categories:
        category = await upsert_category(db, device_id, extracted.name, extracted.description)
        for product in extracted.products:
            product_ids.append(await upsert_product(db, category, product, source_url))
    return product_ids


# ---------------------------------------------------------------------------
# device-scoped reads/writes used by the CRUD routes
# ---------------------------------------------------------------------------

async def get_category(db: AsyncSession, device_id: str, category_id: str) -> Category:
    category = await db.scalar(
        select(Category).where(
            Category.id == category_id,
            Category.device_id == device_id,
            Category.is_deleted.is_(False),
        )
    )
    if category is None:
        raise NotFoundError("Category not found")
    return category


async def create_category(
    db: AsyncSession, device_id: str, name: str, description: Optional[str]
) -> Category:
    name = name.strip()
    if not name:
        raise ValidationError("Category name is required.")
    await ensure_device(db, device_id)
    existing = await db.scalar(
        select(Category).where(Category.device_id == device_id, Category.name == name)
    )
    if existing is not None:
        if not existing.is_deleted:
            raise ValidationError(f"Category '{name}' already exists.")
        existing.is_deleted = False
        existing.description = description
        await db.commit()
        return existing

    category = Category(device_id=device_id, name=name, description=description)
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


async def update_category(db: AsyncSession, device_id: str, category_id: str, **changes) -> Category:
    category = await get_category(db, device_id, category_id)
    for field, value in changes.items():
        if value is not None:
            setattr(category, field, value)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationError(f"Category '{changes.get('name')}' already exists.")
    await db.refresh(category)
    return category


async def soft_delete_category(db: AsyncSession, device_id: str, category_id: str) -> None:
    category = await get_category(db, device_id, category_id)
    category.is_deleted = True
    await db.execute(
        update(Product).where(Product.category_id == category.id).values(is_deleted=True)
    )
    await db.commit()


def _device_products(device_id: str):
    return (
        select(Product)
        .join(Category, Product.category_id == Category.id)
        .where(
            Category.device_id == device_id,
            Category.is_deleted.is_(False),
            Product.is_deleted.is_(False),
        )
    )


async def list_products(
    db: AsyncSession, device_id: str, category_id: Optional[str] = None
) -> List[Product]:
    stmt = _device_products(device_id)
    if category_id is not None:
        stmt = stmt.where(Product.category_id == category_id)
    result = await db.execute(stmt.order_by(Product.created_at.desc()))
    return list(result.scalars())


async def get_product(db: AsyncSession, device_id: str, product_id: str) -> Product:
    product = await db.scalar(
        _device_products(device_id)
        .where(Product.id == product_id)
        .options(selectinload(Product.shopping_urls))
        .execution_options(populate_existing=True)
    )
    if product is None:
        raise NotFoundError("Product not found")
    return product


async def update_product(db: AsyncSession, device_id: str, product_id: str, **changes) -> Product:
    product = await get_product(db, device_id, product_id)
    if changes.get("category_id"):
        # moving is only allowed into one of the caller's own categories
        try:
            await get_category(db, device_id, changes["category_id"])
        except NotFoundError:
            raise ValidationError("Invalid category")
    for field, value in changes.items():
        if value is not None:
            setattr(product, field, value)
    await db.commit()
    return await get_product(db, device_id, product_id)


async def delete_product(db: AsyncSession, device_id: str, product_id: str) -> None:
    product = await get_product(db, device_id, product_id)
    await db.delete(product)
    await db.commit()


def shopping_url_id(product_id: str, link: str) -> str:
    return f"{product_id}-{hashlib.sha1(link.encode('utf-8')).hexdigest()}"


async def store_shopping_urls(
    db: AsyncSession, product_id: str, options: Iterable[ShoppingOption]
) -> int:
    """Upsert shopping links for a product, keeping the first stored version of each."""
    stored = 0
    for option in options:
        stmt = (
            dialect_insert(db, ShoppingUrl)
            .values(
                id=shopping_url_id(product_id, option.link),
                product_id=product_id,
                url=option.link,
                price=option.price,
                source=option.source,
                source_icon=option.source_icon,
                thumbnail=option.thumbnail,
                delivery=option.delivery,
                created_at=utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["id"])
        )
        await db.execute(stmt)
        stored += 1
    await db.commit()
    return stored


# ---------------------------------------------------------------------------
# retention
# ---------------------------------------------------------------------------

async def delete_rows_before(db: AsyncSession, cutoff: datetime) -> Tuple[int, int]:
    """Delete Products and QueueItems created before `cutoff`. Returns (products, queue_items)."""
    products = await db.execute(
        delete(Product).where(Product.created_at < cutoff).returning(Product.id)
    )
    removed_products = len(products.all())
    items = await db.execute(
        delete(QueueItem).where(QueueItem.created_at < cutoff).returning(QueueItem.id)
    )
    removed_items = len(items.all())
    await db.commit()
    return removed_products, removed_items
