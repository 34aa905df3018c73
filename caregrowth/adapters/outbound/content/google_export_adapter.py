"""Content acquisition for Google Docs, Sheets, Slides, PDFs and plain text.

Public Google documents are read through their export endpoints, trying a
fixed list of formats until one returns enough text. Drive files can also be
read by id through the Drive v3 API when an access token is configured.
"""

import csv
import io
import logging
import re
from typing import Any

import requests
from bs4 import BeautifulSoup
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ....common.retry import retry_with_backoff
from ....core.domain import Document
from ....core.domain.exceptions import ContentFetchError
from ....core.domain.utils import normalize_text
from ....core.ports.content_port import ContentFetcherPort

logger = logging.getLogger(__name__)

# Constants
REQUEST_TIMEOUT = 30
MIN_CONTENT_LENGTH = 50

EXPORT_URL = "https://docs.google.com/{kind}/d/{doc_id}/export?format={fmt}"
DRIVE_FILE_URL = "https://www.googleapis.com/drive/v3/files/{file_id}"

# Priority order: plain text and CSV before the HTML fallbacks
EXPORT_FORMATS: list[tuple[str, str]] = [
    ("document", "txt"),
    ("spreadsheets", "csv"),
    ("presentation", "txt"),
    ("document", "html"),
    ("spreadsheets", "html"),
    ("presentation", "html"),
]

ID_PATTERNS: list[tuple[str | None, re.Pattern[str]]] = [
    ("document", re.compile(r"/document/d/([a-zA-Z0-9_-]+)")),
    ("spreadsheets", re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")),
    ("presentation", re.compile(r"/presentation/d/([a-zA-Z0-9_-]+)")),
    (None, re.compile(r"[?&]id=([a-zA-Z0-9_-]+)")),
]

GOOGLE_APPS_EXPORT_TYPES = {
    "application/vnd.google-apps.document": "text/plain",
    "application/vnd.google-apps.spreadsheet": "text/csv",
    "application/vnd.google-apps.presentation": "text/plain",
}


class RetryableHTTPError(requests.HTTPError):
    """HTTP 429 or 5xx response worth retrying."""


def parse_document_url(url: str) -> tuple[str | None, str] | None:
    """Extract ``(kind, doc_id)`` from a Google share URL.

    ``kind`` is None for ``?id=`` style links where the document type is unknown.
    """
    for kind, pattern in ID_PATTERNS:
        match = pattern.search(url or "")
        if match:
            return kind, match.group(1)
    return None


def export_urls(url: str) -> list[str]:
    """Export URLs to try for a share URL, in priority order."""
    parsed = parse_document_url(url)
    if parsed is None:
        return []
    kind, doc_id = parsed
    return [
        EXPORT_URL.format(kind=fmt_kind, doc_id=doc_id, fmt=fmt)
        for fmt_kind, fmt in EXPORT_FORMATS
        if kind is None or fmt_kind == kind
    ]


def html_to_text(html: str) -> str:
    """Visible text of an HTML export."""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "head"]):
        tag.decompose()
    return normalize_text(soup.get_text(separator=" "))


def csv_to_text(body: str) -> str:
    """Flatten CSV to one line per row with cells separated by spaces."""
    lines = []
    for row in csv.reader(io.StringIO(body)):
        cells = [cell.strip() for cell in row if cell.strip()]
        if cells:
            lines.append(" ".join(cells))
    return "\n".join(lines)


def pdf_to_text(data: bytes) -> str:
    """Text of every page of a PDF, separated by blank lines."""
    reader = PdfReader(io.BytesIO(data))
    parts = []
    for page in reader.pages:
        text = page.extract_text()
        if text:
            normalized = normalize_text(text)
            if normalized:
                parts.append(normalized)
    return "\n\n".join(parts)


class GoogleExportAdapter(ContentFetcherPort):
    """Fetches document text over HTTP.

    Every individual format failure is logged at DEBUG and skipped; only when
    all formats fail does ``fetch_text`` return None.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        access_token: str = "",
        timeout: float = REQUEST_TIMEOUT,
        min_content_length: int = MIN_CONTENT_LENGTH,
        max_attempts: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        """Initialize the adapter.

        Args:
            session: HTTP session to reuse. A new one is created if omitted.
            access_token: OAuth token for Drive API reads, if available.
            timeout: Per-request timeout in seconds.
            min_content_length: Stripped length a body must exceed to count.
            max_attempts: Attempts per URL for transient failures.
            base_delay: First backoff delay in seconds.
        """
        self.session = session or requests.Session()
        self.access_token = access_token
        self.timeout = timeout
        self.min_content_length = min_content_length
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    def __enter__(self) -> "GoogleExportAdapter":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager and close session."""
        self.close()

    def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            self.session.close()

    def fetch_text(self, document: Document) -> str | None:
        """Plain text of a linked document, or None when nothing usable was found."""
        text = self.fetch_from_url(document.url) if document.url else None
        if text is None and self.access_token and document.mime_type:
            parsed = parse_document_url(document.url)
            file_id = parsed[1] if parsed else document.id
            text = self.fetch_drive_file(file_id, document.mime_type)

        if text is None:
            logger.warning("No content found for document %s (%s)", document.id, document.title)
        return text

    def fetch_from_url(self, url: str) -> str | None:
        """Try each export format for a share URL, or the URL itself for direct links."""
        candidates = export_urls(url) or [url]
        for candidate in candidates:
            text = self._try_url(candidate)
            if text is not None:
                logger.info("Extracted %d characters from %s", len(text), candidate)
                return text
        return None

    def fetch_drive_file(self, file_id: str, mime_type: str) -> str | None:
        """Read a Drive file by id through the Drive v3 API.

        Raises:
            ContentFetchError: If the access token is rejected.
        """
        url = DRIVE_FILE_URL.format(file_id=file_id)
        export_type = GOOGLE_APPS_EXPORT_TYPES.get(mime_type)
        if export_type:
            url = f"{url}/export"
            params = {"mimeType": export_type}
        else:
            params = {"alt": "media"}

        return self._try_url(
            url,
            params=params,
            headers={"Authorization": f"Bearer {self.access_token}"},
            mime_type=export_type or mime_type,
        )

    def _get(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        if response.status_code == 401 and headers and "Authorization" in headers:
            raise ContentFetchError(
                "Google Drive rejected the configured access token",
                context={"url": url, "status": 401},
            )
        if response.status_code == 429 or response.status_code >= 500:
            raise RetryableHTTPError(f"HTTP {response.status_code} from {url}", response=response)
        response.raise_for_status()
        return response

    def _try_url(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        mime_type: str | None = None,
    ) -> str | None:
        try:
            response = retry_with_backoff(
                lambda: self._get(url, params=params, headers=headers),
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                retry_on=(RetryableHTTPError, requests.ConnectionError, requests.Timeout),
                operation_name=f"GET {url}",
            )
        except requests.RequestException as exc:
            logger.debug("Fetch failed for %s: %s", url, exc)
            return None

        try:
            text = self._extract(response, url, mime_type).strip()
        except PdfReadError as exc:
            logger.debug("Could not read PDF from %s: %s", url, exc)
            return None

        if len(text) <= self.min_content_length:
            logger.debug("Content too short (%d chars) from %s", len(text), url)
            return None
        return text

    @staticmethod
    def _extract(response: requests.Response, url: str, mime_type: str | None = None) -> str:
        content_type = mime_type or response.headers.get("Content-Type", "")
        if "pdf" in content_type or url.lower().endswith(".pdf"):
            return pdf_to_text(response.content)
        if "format=html" in url or "html" in content_type:
            return html_to_text(response.text)
        if "format=csv" in url or "csv" in content_type:
            return csv_to_text(response.text)
        return response.text
