from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_device_id
from app.db import crud
from app.db.db import get_db
from app.models import Category
from app.schemas.schemas import CategoryIn, CategoryOut, CategoryUpdate
from app.services.icons import category_icon

router = APIRouter()


def to_category_out(category: Category) -> CategoryOut:
    out = CategoryOut.model_validate(category)
    out.icon = category_icon(category.name)
    return out


@router.post("", status_code=201, response_model=CategoryOut)
async def create_category(
    body: CategoryIn,
    device_id: str = Depends(get_device_id),
    db: AsyncSession = Depends(get_db),
):
    category = await crud.create_category(db, device_id, body.name, body.description)
    return to_category_out(category)


@router.get("", response_model=List[CategoryOut])
async def list_categories(device_id: str = Depends(get_device_id), db: AsyncSession = Depends(get_db)):
    return [to_category_out(c) for c in await crud.list_active_categories(db, device_id)]


@router.get("/{category_id}", response_model=CategoryOut)
async def get_category(
    category_id: str,
    device_id: str = Depends(get_device_id),
    db: AsyncSession = Depends(get_db),
):
    return to_category_out(await crud.get_category(db, device_id, category_id))


@router.patch("/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: str,
    body: CategoryUpdate,
    device_id: str = Depends(get_device_id),
    db: AsyncSession = Depends(get_db),
):
    category = await crud.update_category(db, device_id, category_id, **body.model_dump(exclude_unset=True))
    return to_category_out(category)


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    device_id: str = Depends(get_device_id),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete; the category's products are hidden with it."""
    await crud.soft_delete_category(db, device_id, category_id)
    return {"deleted": True}
