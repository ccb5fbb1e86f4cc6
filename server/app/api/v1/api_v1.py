from fastapi import APIRouter

from app.api.v1 import categories, products, queue, shopping, status

api_router = APIRouter()

api_router.include_router(queue.router, prefix="/queue", tags=["queue"])
api_router.include_router(status.router, prefix="/status", tags=["status"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(shopping.router, prefix="/shopping", tags=["shopping"])
