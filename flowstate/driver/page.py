"""
Page model for the flow driver.

The driver never touches markup. A host application describes the current
page (file name, query parameters, landing flag), the triggering elements,
and supplies a PageHost that performs redirects and shows errors.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import urlsplit

from flowstate.core.composer import RawVariables, parse_query

logger = logging.getLogger(__name__)

DEFAULT_PAGE = "index.html"


def page_from_path(path: str) -> str:
    """Last path segment; a directory path (trailing "/") or the root is index.html."""
    if not path or path.endswith("/"):
        return DEFAULT_PAGE
    return path.rsplit("/", 1)[-1]


@dataclass
class PageContext:
    """Where the user currently is."""

    page: str = DEFAULT_PAGE
    query: Dict[str, str] = field(default_factory=dict)
    is_landing: bool = False

    @classmethod
    def from_url(
        cls,
        url: str,
        landing: Optional[bool] = None,
        landing_page: str = DEFAULT_PAGE,
    ) -> "PageContext":
        """
        Build a context from a URL or relative path such as "step2.html?casting_id=42".

        Args:
            url: Page URL or path
            landing: Force the landing flag; by default the page is the
                landing page when its file name equals landing_page
            landing_page: File name of the flow's landing page
        """
        parts = urlsplit(url)
        page = page_from_path(parts.path)
        return cls(
            page=page,
            query=parse_query(parts.query),
            is_landing=(page == landing_page) if landing is None else landing,
        )


@dataclass
class Trigger:
    """
    Declarations carried by a form, a submit button, or an action button.

    request_variables may be a mapping or a JSON object string.
    """

    request_variables: RawVariables = None
    next_step_fallback: Optional[str] = None
    waiting_message: Optional[str] = None


@dataclass
class FormSubmission:
    """A submitted form: its field values, the form element, and the submitter."""

    fields: Dict[str, Any] = field(default_factory=dict)
    form: Trigger = field(default_factory=Trigger)
    submitter: Optional[Trigger] = None


class PageHost(ABC):
    """Side effects the driver asks of the hosting page."""

    @abstractmethod
    def redirect(self, destination: str) -> None:
        """Full navigation to a relative page path."""
        ...

    @abstractmethod
    def show_error(self, message: str) -> None:
        ...

    def clear_error(self) -> None:
        self.show_error("")


class RecordingHost(PageHost):
    """A headless host that remembers redirects and errors."""

    def __init__(self):
        self.redirects: List[str] = []
        self.errors: List[str] = []
        self.error_message = ""

    @property
    def location(self) -> Optional[str]:
        return self.redirects[-1] if self.redirects else None

    def redirect(self, destination: str) -> None:
        logger.info(f"Redirecting to {destination}")
        self.redirects.append(destination)

    def show_error(self, message: str) -> None:
        self.error_message = message
        if message:
            self.errors.append(message)
