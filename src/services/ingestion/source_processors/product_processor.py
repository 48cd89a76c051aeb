"""Source processor for store products and product variations.

Formats a :class:`~src.models.content.ContentItem` of a product-family type
into the labelled plain-text block that gets chunked and embedded.  Field
order is fixed so that ``id`` and ``url`` always land in the first chunk,
where the chat layer expects to find them.

Expected ``attributes`` keys (all optional)::

    url, image, in_stock, average_rating, price, regular_price,
    sale_price, categories, tags, attributes, description,
    short_description, sku

Variations additionally use ``parent_name``, ``manage_stock``,
``stock_status`` and ``stock_quantity``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from src.models.content import ContentItem, ContentType, is_product_type, type_value
from src.utils.text_normalizer import strip_html, trim_words

logger = structlog.get_logger(logger_name=__name__)

_SHORT_DESCRIPTION_WORDS = 20


def _join(values: Any) -> str:
    if isinstance(values, str):
        return values
    return ", ".join(str(v) for v in values or [] if str(v))


def _attribute_lines(attributes: Any) -> list[str]:
    """Render ``{name: values}`` attributes; ``|``-separated strings are split."""
    if not isinstance(attributes, Mapping):
        return []
    lines: list[str] = []
    for name, value in attributes.items():
        if isinstance(value, Mapping):
            value = value.get("value", "")
        if isinstance(value, str):
            value = [v.strip() for v in value.split("|") if v.strip()]
        rendered = _join(value)
        if rendered:
            lines.append(f"{name}: {rendered}")
    return lines


class ProductProcessor:
    """Formats products and variations for embedding."""

    def format(self, item: ContentItem) -> str:
        """Return the embedding text for *item*, or ``""`` if it is not a product."""
        content_type = type_value(item.content_type)
        if content_type == ContentType.PRODUCT_VARIATION.value:
            return self.format_variation(item)
        if is_product_type(content_type):
            return self.format_product(item)
        return ""

    def format_product(self, item: ContentItem) -> str:
        attrs = item.attributes
        content = f"id: {item.content_id}\n\n"
        content += f"url: {attrs.get('url', '')}\n\n"
        content += f"image: {attrs.get('image', '')}\n\n"
        content += f"name: {item.title}\n\n"
        content += f"in_stock: {'Yes' if attrs.get('in_stock', True) else 'No'}\n\n"
        content += f"average_rating: {attrs.get('average_rating', 0)}\n\n"

        content += f"Regular Price: {attrs.get('regular_price', '')}\n"
        if attrs.get("sale_price") not in (None, ""):
            content += f"Sale Price: {attrs['sale_price']}\n"
        content += f"price: {attrs.get('price', '')}\n\n"

        categories = _join(attrs.get("categories"))
        if categories:
            content += f"Categories: {categories}\n\n"
        tags = _join(attrs.get("tags"))
        if tags:
            content += f"Tags: {tags}\n\n"

        attribute_lines = _attribute_lines(attrs.get("attributes"))
        if attribute_lines:
            content += "Attributes:\n" + "\n".join(attribute_lines) + "\n\n"

        description = strip_html(attrs.get("description", ""))
        if description:
            content += f"description:\n{description}\n\n"
        short = trim_words(strip_html(attrs.get("short_description", "")), _SHORT_DESCRIPTION_WORDS)
        if short:
            content += f"Short Description:\n{short}\n\n"

        if attrs.get("sku"):
            content += f"SKU: {attrs['sku']}\n\n"

        logger.debug("product_formatted", content_id=item.content_id, chars=len(content))
        return content

    def format_variation(self, item: ContentItem) -> str:
        attrs = item.attributes
        parent = attrs.get("parent_name")
        if not parent:
            logger.warning("variation_without_parent", content_id=item.content_id)
            return ""

        content = f"Product: {parent}\n\nType: Variation\n\n"
        attribute_lines = _attribute_lines(attrs.get("attributes"))
        if attribute_lines:
            content += "Attributes:\n" + "\n".join(attribute_lines) + "\n\n"

        content += f"Regular Price: {attrs.get('regular_price', '')}\n"
        if attrs.get("sale_price") not in (None, ""):
            content += f"Sale Price: {attrs['sale_price']}\n"
        content += "\n"

        if attrs.get("sku"):
            content += f"SKU: {attrs['sku']}\n\n"
        if attrs.get("manage_stock"):
            content += f"Stock Status: {attrs.get('stock_status', '')}\n"
            content += f"Stock Quantity: {attrs.get('stock_quantity', '')}\n\n"

        description = strip_html(attrs.get("description", ""))
        if description:
            content += f"Description:\n{description}\n\n"
        return content
