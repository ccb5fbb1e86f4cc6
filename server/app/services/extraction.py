"""
Product extraction with Gemini.

The model gets the transcript plus the device's known categories and is asked
for a bare JSON array of products. Whatever comes back is validated record by
record; output that is not JSON at all is treated as "no products".
"""
import json
import logging
import re
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.exceptions import ExtractionError
from app.schemas.schemas import ExtractedCategory, ExtractedProduct

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*|\s*```")


def build_prompt(transcript: str, categories: Iterable, max_products: int = 5) -> str:
    categories = list(categories)
    names = ", ".join(c.name for c in categories)
    descriptions = "\n".join(f"{c.name}: {c.description or ''}" for c in categories)

    category_rule = f"one of: {names}, or a short new category name" if names else "a short category name"

    return f"""
You are a product-extraction expert.
From the TikTok transcript below, extract up to {max_products} relevant products.
Fewer, more precise products are better than many vague ones.

Each product must follow this exact JSON structure:

[
  {{
    "name": "Product name",
    "category": "{category_rule}",
    "description": "Short description (one sentence)",
    "icon": "emoji or icon",
    "mentioned_context": "How the creator mentioned the product"
  }}
]

Known categories and their descriptions:
{descriptions or "(none yet)"}

--- TRANSCRIPT ---
{transcript}
--- END TRANSCRIPT ---
Return just the JSON array, nothing else (no markdown fences, no commentary)."""


def group_by_category(products: Iterable[ExtractedProduct]) -> List[ExtractedCategory]:
    grouped: Dict[str, ExtractedCategory] = {}
    for product in products:
        if product.category not in grouped:
            grouped[product.category] = ExtractedCategory(name=product.category)
        grouped[product.category].products.append(product)
    return list(grouped.values())


def parse_extraction(raw_text: Optional[str]) -> List[ExtractedCategory]:
    """Parse the model's reply into categories. Malformed output yields []."""
    text = _CODE_FENCE.sub("", raw_text or "").strip()
    if not text:
        return []

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Extraction output is not valid JSON, treating as empty")
        return []

    if isinstance(parsed, dict):
        parsed = parsed.get("products", [parsed])
    if not isinstance(parsed, list):
        logger.warning("Extraction output is %s, expected a list", type(parsed).__name__)
        return []

    products = []
    for record in parsed:
        if not isinstance(record, dict):
            continue
        try:
            products.append(ExtractedProduct.model_validate(record))
        except PydanticValidationError as e:
            logger.warning("Dropping invalid product record %r: %s", record, e.errors()[0]["msg"])

    return group_by_category(products)


class GeminiExtractor:
    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None,
                 max_products: Optional[int] = None, model=None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model_name = model_name or settings.GEMINI_MODEL
        self.max_products = max_products or settings.MAX_PRODUCTS
        self.model = model

    def _get_model(self):
        if self.model is None:
            if not self.api_key:
                raise ExtractionError("Missing GEMINI_API_KEY")
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self.model = genai.GenerativeModel(self.model_name)
        return self.model

    async def extract_products(self, transcript: str, categories: Iterable) -> List[ExtractedCategory]:
        if not transcript or not transcript.strip():
            logger.info("Empty transcript, nothing to extract")
            return []

        prompt = build_prompt(transcript, categories, self.max_products)
        response = await self._get_model().generate_content_async(prompt)

        try:
            raw_text = response.text
        except ValueError:
            # blocked or empty candidates
            logger.warning("Gemini returned no text, treating as empty")
            return []

        result = parse_extraction(raw_text)
        logger.info(
            "Extracted %d products in %d categories",
            sum(len(c.products) for c in result),
            len(result),
        )
        return result
