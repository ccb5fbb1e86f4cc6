import asyncio
import logging
from typing import List

from serpapi import GoogleSearch

from app.core.config import settings
from app.core.exceptions import ShoppingLookupError
from app.schemas.schemas import ShoppingOption

logger = logging.getLogger(__name__)


def _google_shopping_search_sync(query: str, num: int) -> dict:
    params = {
        "api_key": settings.SERPAI_KEY,
        "engine": "google_shopping",
        "google_domain": "google.com",
        "q": query,
        "hl": "en",
        "num": num,
        "location": settings.LOCATION
    }

    search = GoogleSearch(params)
    return search.get_dict()


async def google_shopping_search(query: str, num: int = 5) -> dict:
    # GoogleSearch is blocking, keep it off the event loop
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _google_shopping_search_sync, query, num)


def to_shopping_options(result: dict, limit: int) -> List[ShoppingOption]:
    items = result.get("shopping_results") or result.get("inline_shopping_results") or []

    options = []
    for item in items:
        link = item.get("link") or item.get("product_link")
        if not link:
            continue
        options.append(ShoppingOption(
            title=item.get("title"),
            link=link,
            price=item.get("price") or (str(item["extracted_price"]) if item.get("extracted_price") is not None else None),
            source=item.get("source"),
            source_icon=item.get("source_icon"),
            thumbnail=item.get("thumbnail") or item.get("serpapi_thumbnail"),
            delivery=item.get("delivery"),
        ))
        if len(options) >= limit:
            break
    return options


async def fetch_shopping_urls(query: str, limit: int = None) -> List[ShoppingOption]:
    """
    Look up shopping links for a product name.
    """
    if not settings.SERPAI_KEY:
        raise ShoppingLookupError("Missing SERPAI_KEY")

    limit = limit or settings.SHOPPING_RESULTS
    try:
        result = await google_shopping_search(query=query, num=limit)
    except Exception as e:
        raise ShoppingLookupError(f"Shopping lookup failed for {query!r}: {e}") from e

    if result.get("error"):
        raise ShoppingLookupError(result["error"])

    options = to_shopping_options(result, limit)
    logger.info("Found %d shopping links for %r", len(options), query)
    return options
