from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_device_id
from app.db import crud
from app.db.db import get_db
from app.schemas.schemas import ProductDetailOut, ProductOut, ProductUpdate

router = APIRouter()


@router.get("", response_model=List[ProductOut])
async def list_products(device_id: str = Depends(get_device_id), db: AsyncSession = Depends(get_db)):
    return await crud.list_products(db, device_id)


@router.get("/by-category/{category_id}", response_model=List[ProductOut])
async def list_products_by_category(
    category_id: str,
    device_id: str = Depends(get_device_id),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_products(db, device_id, category_id=category_id)


@router.get("/{product_id}", response_model=ProductDetailOut)
async def get_product(
    product_id: str,
    device_id: str = Depends(get_device_id),
    db: AsyncSession = Depends(get_db),
):
    return await crud.get_product(db, device_id, product_id)


@router.patch("/{product_id}", response_model=ProductDetailOut)
async def update_product(
    product_id: str,
    body: ProductUpdate,
    device_id: str = Depends(get_device_id),
    db: AsyncSession = Depends(get_db),
):
    return await crud.update_product(db, device_id, product_id, **body.model_dump(exclude_unset=True))


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    device_id: str = Depends(get_device_id),
    db: AsyncSession = Depends(get_db),
):
    await crud.delete_product(db, device_id, product_id)
    return {"deleted": True, "success": True}
