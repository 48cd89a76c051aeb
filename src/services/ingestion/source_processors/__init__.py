"""Source processors for the ingestion pipeline.

Each processor converts one source format into the plain text that is
chunked and embedded:

- **ProductProcessor**  -- Products and product variations
- **DocumentProcessor** -- Posts, pages and the store-settings singleton
- **HTMLProcessor**     -- Crawled web pages (BeautifulSoup + trafilatura)
- **PDFProcessor**      -- Uploaded PDF documents via PyMuPDF
"""

from src.services.ingestion.source_processors.document_processor import (
    DocumentProcessor,
)
from src.services.ingestion.source_processors.html_processor import HTMLProcessor
from src.services.ingestion.source_processors.pdf_processor import PDFProcessor
from src.services.ingestion.source_processors.product_processor import (
    ProductProcessor,
)

__all__ = [
    "DocumentProcessor",
    "HTMLProcessor",
    "PDFProcessor",
    "ProductProcessor",
]
