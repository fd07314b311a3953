"""Target normalization - turning raw domain lines into probe-ready targets.

Domain lists come from files people paste together by hand, so a line may be:

    "www.Example.COM."            bare hostname, mixed case, trailing dot
    "https://app.example.com/x"   a full URL with a path
    "api.example.com:8443"        host:port
    "münchen.example.com"         an internationalized name

parse_target() reduces all of these to a ProbeTarget (scheme, host, port)
or returns None when the line can't possibly be a reachable host. An invalid
target is reported as "invalid domain" without ever touching the network.

VALIDATION RULES:
1. Scheme, if present, must be http or https
2. Punycode: IDN (Unicode) hosts are converted to ASCII-safe Punycode
3. Lowercase and strip trailing dots
4. Host must be an IP literal or a legal DNS name (RFC 1035, '_' tolerated)
5. Port, if present, must be 1..65535
"""

import ipaddress
import re
import logging
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = ('https', 'http')
DEFAULT_SCHEME_ORDER = ('https', 'http')

_LABEL_RE = re.compile(r'^[a-z0-9_-]+$')
# Only a scheme at the very start counts; '?next=https://x' in a path doesn't
_SCHEME_RE = re.compile(r'^([a-zA-Z][a-zA-Z0-9+.-]*)://')


@dataclass(frozen=True)
class ProbeTarget:
    """A validated host to probe, with the scheme the user asked for (if any)."""
    host: str
    port: Optional[int] = None
    scheme: Optional[str] = None

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ':' in self.host else self.host
        return f"{host}:{self.port}" if self.port else host

    def schemes(self) -> List[str]:
        """Schemes to try, in order. Explicit scheme means no fallback."""
        if self.scheme:
            return [self.scheme]
        return list(DEFAULT_SCHEME_ORDER)

    def url(self, scheme: Optional[str] = None) -> str:
        scheme = scheme or self.scheme or DEFAULT_SCHEME_ORDER[0]
        return f"{scheme}://{self.netloc}/"


def parse_target(raw: str) -> Optional[ProbeTarget]:
    """Normalize a raw domain line into a ProbeTarget.

    Returns None if the input is empty or malformed.

    Examples:
        parse_target("WWW.Example.COM.")          -> ProbeTarget("www.example.com")
        parse_target("http://a.example.com/path") -> ProbeTarget("a.example.com", scheme="http")
        parse_target("a.example.com:8443")        -> ProbeTarget("a.example.com", port=8443)
        parse_target("bad!!domain")               -> None
    """
    if not raw or not isinstance(raw, str):
        return None

    raw = raw.strip()
    if not raw or any(c.isspace() for c in raw):
        return None

    scheme = None
    match = _SCHEME_RE.match(raw)
    if match:
        scheme = match.group(1).lower()
        if scheme not in SUPPORTED_SCHEMES:
            logger.debug(f"Unsupported scheme in {raw!r}")
            return None
    else:
        raw = f"//{raw}"

    try:
        parts = urlsplit(raw)
        host = parts.hostname
        port = parts.port
    except ValueError:
        # Bad port or bracketed IPv6 garbage
        return None

    if parts.username or parts.password:
        return None
    if not host:
        return None
    if port is not None and not (1 <= port <= 65535):
        return None

    host = host.rstrip('.')
    if not host:
        return None

    if _is_ip_literal(host):
        return ProbeTarget(host=host, port=port, scheme=scheme)

    # Punycode for internationalized names
    try:
        host = host.encode('idna').decode('ascii')
    except UnicodeError:
        logger.debug(f"Punycode conversion failed for {host!r}")
        return None

    host = host.lower()
    if not _is_valid_dns_name(host):
        logger.debug(f"Invalid DNS name format: {host!r}")
        return None

    return ProbeTarget(host=host, port=port, scheme=scheme)


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


def _is_valid_dns_name(fqdn: str) -> bool:
    """Validate DNS name format per RFC 1035.

    Rules:
    - Labels separated by dots, each 1-63 characters
    - Total length: <=253 characters
    - Characters: a-z, 0-9, hyphen (not at start/end), underscore
    Single-label names (intranet hosts) are accepted.
    """
    if not fqdn or len(fqdn) > 253:
        return False

    for label in fqdn.split('.'):
        if not (1 <= len(label) <= 63):
            return False
        if label.startswith('-') or label.endswith('-'):
            return False
        if not _LABEL_RE.match(label):
            return False

    return True
