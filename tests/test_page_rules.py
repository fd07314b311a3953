import json

import pytest

from subprobe.scanner.page_rules import (
    DEFAULT_RULES, load_rules, make_rule,
)
from subprobe.scanner.page_inspector import PageInspector


def _default_rule(name):
    return next(r for r in DEFAULT_RULES if r.name == name)


def test_default_rule_names_are_unique():
    names = [r.name for r in DEFAULT_RULES]
    assert len(names) == len(set(names))


def test_platforms_outrank_generic_shapes():
    names = [r.name for r in DEFAULT_RULES]
    assert names.index("wordpress") < names.index("login page")
    assert names.index("nginx default") < names.index("static site")
    assert names[-1] == "static site"


def test_make_rule_lowers_patterns():
    rule = make_rule("Admin", title=["ADMIN Panel"], headers={"X-Powered-By": "PHP"})
    assert rule.title == ("admin panel",)
    assert rule.headers == (("x-powered-by", "php"),)


def test_make_rule_rejects_empty_rules():
    with pytest.raises(ValueError):
        make_rule("nothing")
    with pytest.raises(ValueError):
        make_rule("", body=["x"])


def test_body_absent_blocks_match():
    rule = _default_rule("static site")
    assert rule.matches("<html><p>hi</p></html>", "", {})
    assert not rule.matches("<html><form></form></html>", "", {})


def test_load_rules_preserves_order(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps([
        {"name": "status page", "title": ["status"]},
        {"name": "cdn edge", "headers": {"Server": "cloudflare"}},
        {"name": "bare", "body": ["<html"], "body_absent": ["<script"]},
    ]), encoding="utf-8")

    rules = load_rules(path)
    assert [r.name for r in rules] == ["status page", "cdn edge", "bare"]
    assert rules[1].matches("", "", {"server": "cloudflare"})
    assert rules[2].body_absent == ("<script",)


@pytest.mark.parametrize("content", [
    '{"name": "not a list"}',
    '["just a string"]',
    '[{"name": "no patterns"}]',
    '[{"title": ["missing name"]}]',
    '[{"name": "bad headers", "headers": ["x"]}]',
    '[{"name": "grafana", "body": "grafana-app"}]',
    '[{"name": "x", "title": "admin"}]',
    '[{"name": "x", "title": ["admin", 3]}]',
    '[{"name": "x", "body": [""]}]',
    '[{"name": "x", "title": ["a"], "body_absent": "form"}]',
    '[{"name": "x", "headers": {"server": 1}}]',
    '[{"name": 5, "title": ["a"]}]',
])
def test_load_rules_rejects_malformed(tmp_path, content):
    path = tmp_path / "rules.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_rules(path)


def test_load_rules_invalid_json(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text("[{", encoding="utf-8")
    # json.JSONDecodeError is a ValueError
    with pytest.raises(ValueError):
        load_rules(path)


def test_string_patterns_are_rejected_not_split():
    with pytest.raises(ValueError):
        make_rule("grafana", body="grafana-app")
    with pytest.raises(ValueError):
        make_rule("x", headers=[("server", "nginx")])


def test_rejected_rules_file_never_reaches_classification(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text('[{"name": "grafana", "body": "grafana-app"}]', encoding="utf-8")
    with pytest.raises(ValueError, match="body must be a list"):
        load_rules(path)
    # With the defaults a plain page is not mistaken for grafana
    assert PageInspector().inspect(b"<html><p>hello</p></html>").type == "static site"
