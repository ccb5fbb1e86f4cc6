from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_device_id, get_shopping_lookup
from app.db import crud
from app.db.db import get_db
from app.schemas.schemas import ShoppingUrlOut

router = APIRouter()


@router.get("/{product_id}", response_model=List[ShoppingUrlOut])
async def get_shopping_urls(
    product_id: str,
    device_id: str = Depends(get_device_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Shopping links stored for one of the caller's products.
    """
    product = await crud.get_product(db, device_id, product_id)
    return product.shopping_urls


@router.post("/{product_id}/lookup", response_model=List[ShoppingUrlOut])
async def lookup_shopping_urls(
    product_id: str,
    device_id: str = Depends(get_device_id),
    db: AsyncSession = Depends(get_db),
    lookup=Depends(get_shopping_lookup),
):
    """
    Search Google Shopping for the product name and store the links found.
    """
    product = await crud.get_product(db, device_id, product_id)
    options = await lookup(product.name)
    await crud.store_shopping_urls(db, product.id, options)

    product = await crud.get_product(db, device_id, product_id)
    return product.shopping_urls
