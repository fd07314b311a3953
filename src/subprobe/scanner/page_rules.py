"""Page type rules - the catalog the page inspector classifies against.

Rules are plain data and evaluated in order; the first match wins.
That order is part of the contract: the same page must always land in the
same bucket, so specific platform signatures come before generic
shapes like "login page" or "static site".

The default set can be replaced with a JSON file:

    [
      {"name": "grafana", "body": ["grafana-app"], "title": ["grafana"]},
      {"name": "cdn edge", "headers": {"server": "cloudflare"}}
    ]
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageRule:
    """A single page type signature.

    Matches when any body/title/header pattern is found (case-insensitive
    substring) and none of the body_absent patterns are present.
    """
    name: str
    body: Tuple[str, ...] = ()
    title: Tuple[str, ...] = ()
    headers: Tuple[Tuple[str, str], ...] = ()
    body_absent: Tuple[str, ...] = field(default=())

    def matches(self, body: str, title: str, headers: Mapping[str, str]) -> bool:
        """Check this rule against lowered body/title and lower-keyed headers."""
        if any(p in body for p in self.body_absent):
            return False
        if any(p in body for p in self.body):
            return True
        if any(p in title for p in self.title):
            return True
        for name, pattern in self.headers:
            # An empty pattern means "header present"
            if name in headers and pattern in headers[name].lower():
                return True
        return False


def _patterns(rule: str, field_name: str, value) -> Tuple[str, ...]:
    # A bare string would iterate into single characters
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"Page rule {rule!r}: {field_name} must be a list of strings")
    if not all(isinstance(p, str) and p for p in value):
        raise ValueError(f"Page rule {rule!r}: {field_name} patterns must be non-empty strings")
    return tuple(p.lower() for p in value)


def make_rule(name: str,
              body: Sequence[str] = (),
              title: Sequence[str] = (),
              headers: Mapping[str, str] = None,
              body_absent: Sequence[str] = ()) -> PageRule:
    """Build a PageRule, lowering every pattern once up front.

    Raises ValueError for a missing name, patterns that aren't lists of
    strings, or headers that aren't a name -> substring mapping.
    """
    if not name or not isinstance(name, str):
        raise ValueError("Page rule needs a name")

    headers = {} if headers is None else headers
    if not isinstance(headers, Mapping):
        raise ValueError(f"Page rule {name!r}: headers must map header names to substrings")
    for key, pattern in headers.items():
        if not (isinstance(key, str) and key and isinstance(pattern, str)):
            raise ValueError(f"Page rule {name!r}: header patterns must be strings")

    rule = PageRule(
        name=name,
        body=_patterns(name, "body", body),
        title=_patterns(name, "title", title),
        headers=tuple((k.lower(), v.lower()) for k, v in headers.items()),
        body_absent=_patterns(name, "body_absent", body_absent),
    )
    if not (rule.body or rule.title or rule.headers):
        raise ValueError(f"Page rule {name!r} has no patterns")
    return rule


# ============================================================================
# DEFAULT RULES (priority order)
# ============================================================================

DEFAULT_RULES: List[PageRule] = [
    # Server defaults and listings first - they often mention platforms too
    make_rule("directory listing",
              title=["index of /", "directory listing for"]),
    make_rule("nginx default",
              title=["welcome to nginx"],
              body=["<h1>welcome to nginx!</h1>"]),
    make_rule("apache default",
              title=["apache2 ubuntu default page", "apache2 debian default page",
                     "test page for the apache", "apache http server test page"],
              body=["it works!</h1>"]),
    make_rule("iis default",
              title=["iis windows server", "iis7", "iis8", "internet information services"]),
    make_rule("tomcat default",
              title=["apache tomcat/"],
              body=["if you're seeing this, you've successfully installed tomcat"]),

    # CMS
    make_rule("wordpress",
              body=["wp-content/", "wp-includes/", 'content="wordpress']),
    make_rule("joomla",
              body=['content="joomla', "/media/jui/", "/components/com_"]),
    make_rule("drupal",
              body=["drupal.settings", 'content="drupal', "/sites/default/files/"],
              headers={"x-generator": "drupal"}),

    # Well-known admin and devops panels
    make_rule("jenkins",
              title=["dashboard [jenkins]", "sign in [jenkins]"],
              headers={"x-jenkins": ""}),
    make_rule("gitlab",
              title=["gitlab"],
              body=["gon.gitlab_url", 'content="gitlab']),
    make_rule("grafana",
              title=["grafana"],
              body=["grafana-app", "window.grafanabootdata"]),
    make_rule("kibana",
              title=["kibana"],
              headers={"kbn-name": ""}),
    make_rule("phpmyadmin",
              title=["phpmyadmin"],
              body=["pma_navigation", "phpmyadmin"]),

    # API surfaces
    make_rule("api docs",
              title=["swagger ui", "redoc", "api documentation"],
              body=["swagger-ui", "openapi", '"swagger":']),
    make_rule("api",
              headers={"content-type": "json"}),

    # Generic page shapes
    make_rule("login page",
              title=["login", "log in", "sign in", "登录"],
              body=['type="password"', "type='password'", "type=password"]),
    make_rule("error page",
              title=["404", "not found", "403 forbidden", "500 internal server error",
                     "error", "错误"]),
    make_rule("under construction",
              title=["under construction", "coming soon"],
              body=["under construction", "coming soon"]),
    make_rule("static site",
              body=["<html"],
              body_absent=["<form"]),
]


def load_rules(path: Path) -> List[PageRule]:
    """Load an ordered rule list from a JSON file.

    Raises ValueError on malformed entries - a broken rules file should
    stop the run before any probing happens, not silently misclassify.
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        raw = json.load(f)

    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a JSON list of rules")

    rules = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValueError(f"{path}: rule #{i} is not an object")
        try:
            rules.append(make_rule(
                name=entry.get('name', ''),
                body=entry.get('body', []),
                title=entry.get('title', []),
                headers=entry.get('headers', {}),
                body_absent=entry.get('body_absent', []),
            ))
        except (TypeError, AttributeError, ValueError) as e:
            raise ValueError(f"{path}: rule #{i}: {e}")

    logger.info(f"Loaded {len(rules)} page rules from {path}")
    return rules
