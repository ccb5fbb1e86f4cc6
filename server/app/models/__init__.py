from app.models.models import (
    Category,
    Device,
    Job,
    JobQueue,
    JobState,
    Product,
    QueueItem,
    QueueStatus,
    ShoppingUrl,
)

__all__ = [
    "Category",
    "Device",
    "Job",
    "JobQueue",
    "JobState",
    "Product",
    "QueueItem",
    "QueueStatus",
    "ShoppingUrl",
]
