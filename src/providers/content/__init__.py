"""Content source implementations.

JsonContentSource serves CMS items exported to a JSON file, which lets the
CLI and tests drive batch ingestion without a live CMS.
"""

from src.providers.content.json_content_source import JsonContentSource

__all__ = ["JsonContentSource"]
