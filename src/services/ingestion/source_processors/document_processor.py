"""Source processor for posts, pages and the store-settings singleton.

Posts and pages become::

    Title: ...
    Categories: ...      (when present)
    Tags: ...            (when present)
    Content:
    ...
    Excerpt:             (when present)
    ...

The settings singleton concatenates the operator's contact details and
free-form business information under fixed headings, so that questions
like "how do I reach you?" match it.
"""

from __future__ import annotations

import structlog

from src.interfaces.settings_source import EngineConfig
from src.models.content import ContentItem
from src.utils.text_normalizer import strip_html

logger = structlog.get_logger(logger_name=__name__)


class DocumentProcessor:
    """Formats posts, pages and store settings for embedding."""

    def format(self, item: ContentItem) -> str:
        attrs = item.attributes
        content = f"Title: {item.title}\n\n"

        categories = ", ".join(str(c) for c in attrs.get("categories") or [])
        if categories:
            content += f"Categories: {categories}\n\n"
        tags = ", ".join(str(t) for t in attrs.get("tags") or [])
        if tags:
            content += f"Tags: {tags}\n\n"

        content += f"Content:\n{strip_html(attrs.get('content', ''))}\n\n"

        excerpt = strip_html(attrs.get("excerpt", ""))
        if excerpt:
            content += f"Excerpt:\n{excerpt}\n\n"

        logger.debug(
            "document_formatted",
            content_type=item.content_type,
            content_id=item.content_id,
            chars=len(content),
        )
        return content

    @staticmethod
    def format_settings(config: EngineConfig) -> str:
        """Return the settings singleton text, or ``""`` when both fields are blank."""
        content = ""
        if config.contact_info.strip():
            content += f"CONTACT INFORMATION:\n{config.contact_info.strip()}\n\n"
        if config.custom_content.strip():
            content += f"BUSINESS INFORMATION:\n{config.custom_content.strip()}\n\n"
        return content
