"""Tests for anchor resolution (app_builder.mutations.anchors)."""

from __future__ import annotations

import re

import pytest

from app_builder.mutations.anchors import AnchorResolver, Span, block_anchor, describe

pytestmark = pytest.mark.unit


@pytest.fixture
def resolver() -> AnchorResolver:
    return AnchorResolver()


class TestLiteralAnchors:
    def test_first_occurrence_wins(self, resolver):
        text = "gem 'a'\ngem 'b'\ngem 'a'\n"
        assert resolver.resolve(text, "gem 'a'") == Span(0, 7)

    def test_absent_literal(self, resolver):
        assert resolver.resolve("nothing here", "gem 'puma'") is None

    def test_empty_literal_rejected(self, resolver):
        with pytest.raises(ValueError):
            resolver.resolve("text", "")

    def test_regex_metacharacters_are_literal(self, resolver):
        text = "config.assets.enabled = true"
        span = resolver.resolve(text, "assets.enabled")
        assert span == Span(7, 21)
        assert resolver.resolve("assetsXenabled", "assets.enabled") is None


class TestPatternAnchors:
    def test_search_returns_first_match(self, resolver):
        text = "end\nfoo\nend\n"
        span = resolver.resolve(text, re.compile(r"^end", re.MULTILINE))
        assert span == Span(0, 3)

    def test_pattern_not_found(self, resolver):
        assert resolver.resolve("abc", re.compile(r"\d+")) is None

    def test_pattern_span_covers_match(self, resolver):
        text = "x whitelist_attributes  =  true y"
        span = resolver.resolve(text, re.compile(r"whitelist_attributes\s*=\s*true"))
        assert text[span.start : span.end] == "whitelist_attributes  =  true"


class TestBlockAnchor:
    def test_greedy_to_last_end(self, resolver):
        text = "App.routes.draw do\n  resources :a do\n  end\n  # root\nend\n"
        anchor = block_anchor(r"routes\.draw do", r"end")
        span = resolver.resolve(text, anchor)
        assert text[span.start : span.end] == text[4:-1]

    def test_spans_lines(self):
        anchor = block_anchor("start", "stop")
        assert anchor.flags & re.DOTALL


class TestDescribe:
    def test_literal(self):
        assert describe("gem 'x'") == "\"gem 'x'\""

    def test_pattern(self):
        assert describe(re.compile(r"^end")) == "/^end/"
