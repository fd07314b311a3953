"""Page inspector - title extraction and coarse page classification.

Runs only on alive domains whose body we managed to read. Real-world
pages are messy: wrong or missing charset declarations, GBK pages served
as "text/html" with no charset, truncated markup. None of that is allowed
to abort a probe - a garbled title is fine, classification still runs on
whatever text we could recover.
"""

import logging
import re
from typing import Mapping, Optional, Sequence

from bs4 import BeautifulSoup, UnicodeDammit
from bs4.dammit import EncodingDetector

from subprobe.util.types import PageInfo, UNKNOWN_PAGE_TYPE
from subprobe.scanner.page_rules import DEFAULT_RULES, PageRule

logger = logging.getLogger(__name__)

_CHARSET_RE = re.compile(r'charset\s*=\s*["\']?([\w.:-]+)', re.IGNORECASE)
_WHITESPACE_RE = re.compile(r'\s+')

# Tried after any declared charset. gb18030 is a superset of GBK/GB2312 and
# recovers most Chinese titles that arrive without a usable declaration.
FALLBACK_ENCODINGS = ('utf-8', 'gb18030')


def charset_from_content_type(content_type: str) -> Optional[str]:
    """Pull the charset parameter out of a Content-Type header value."""
    if not content_type:
        return None
    match = _CHARSET_RE.search(content_type)
    return match.group(1).lower() if match else None


def decode_body(body: bytes, content_type: str = "") -> str:
    """Best-effort decode of a response body to text.

    Order: header charset, in-document declaration, utf-8, gb18030.
    Never raises - undecodable bytes become replacement characters.
    """
    if not body:
        return ""

    known = []
    declared = charset_from_content_type(content_type)
    if declared:
        known.append(declared)
    in_document = EncodingDetector.find_declared_encoding(body, is_html=True)
    if in_document and in_document not in known:
        known.append(in_document)

    try:
        dammit = UnicodeDammit(body, known_definite_encodings=known,
                               user_encodings=list(FALLBACK_ENCODINGS),
                               is_html=True)
        if dammit.unicode_markup is not None:
            return dammit.unicode_markup
    except (LookupError, UnicodeError, TypeError) as e:
        logger.debug(f"Charset detection failed: {e}")

    return body.decode('utf-8', errors='replace')


def _clean(text: str) -> str:
    return _WHITESPACE_RE.sub(' ', text).strip()


def extract_title(html: str) -> str:
    """Return the page title, or an empty string if the page has none.

    Looks at <title>, then og:title, then the first <h1>.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, 'html.parser')

    if soup.title:
        title = _clean(soup.title.get_text())
        if title:
            return title

    og = soup.find('meta', attrs={'property': 'og:title'})
    if og and og.get('content'):
        title = _clean(og['content'])
        if title:
            return title

    h1 = soup.find('h1')
    if h1:
        return _clean(h1.get_text())

    return ""


class PageInspector:
    """Classifies a page body into a coarse type and extracts its title.

    The rule list is ordered data (see page_rules); the first rule that
    matches wins, and UNKNOWN_PAGE_TYPE is returned when none do.
    Deterministic: the same bytes always give the same PageInfo.
    """

    def __init__(self, rules: Optional[Sequence[PageRule]] = None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)

    def inspect(self, body: bytes, content_type: str = "",
                headers: Optional[Mapping[str, str]] = None) -> PageInfo:
        """Build PageInfo for a response body.

        Args:
            body: Raw (possibly truncated) response bytes
            content_type: Content-Type header, used for the charset hint
            headers: Response headers with lowercased names
        """
        headers = {k.lower(): v for k, v in (headers or {}).items()}
        if content_type and 'content-type' not in headers:
            headers['content-type'] = content_type

        text = decode_body(body or b"", content_type)

        try:
            title = extract_title(text)
        except Exception as e:
            # html.parser is lenient but not bulletproof on binary junk
            logger.debug(f"Title extraction failed: {type(e).__name__}: {e}")
            title = ""

        return PageInfo(type=self.classify(text, title, headers), title=title)

    def classify(self, text: str, title: str = "",
                 headers: Optional[Mapping[str, str]] = None) -> str:
        """Return the name of the first matching rule, else UNKNOWN_PAGE_TYPE."""
        lowered_body = (text or "").lower()
        lowered_title = (title or "").lower()
        headers = headers or {}

        for rule in self.rules:
            if rule.matches(lowered_body, lowered_title, headers):
                return rule.name
        return UNKNOWN_PAGE_TYPE
