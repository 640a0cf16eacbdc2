"""Base class for analytics document storage backends."""

from abc import ABC, abstractmethod
from pathlib import Path

SELLER_ANALYTICS_KEY = "seller_analytics"
PRICING_SUMMARY_KEY = "pricing_summary"

DEFAULT_OUTPUT_DIR = Path(__file__).parent.parent.parent / "output"


class AnalyticsNotFoundError(LookupError):
    """Raised when a requested document has never been written."""


class AnalyticsStorage(ABC):
    """Abstract JSON document store. Backends are interchangeable."""

    name: str

    @abstractmethod
    def read_document(self, key: str) -> dict:
        """Return the stored document or raise AnalyticsNotFoundError."""
        ...

    @abstractmethod
    def write_document(self, key: str, data: dict) -> None:
        """Replace the stored document wholesale."""
        ...

    def read_seller_analytics(self) -> dict:
        return self.read_document(SELLER_ANALYTICS_KEY)

    def write_seller_analytics(self, aggregate: dict) -> None:
        self.write_document(SELLER_ANALYTICS_KEY, aggregate)
