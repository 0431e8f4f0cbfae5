"""
Tests for model name resolution.
"""
from grappa import should

from nimbridge.resolver import (
    LARGE_MODEL,
    MEDIUM_MODEL,
    MODEL_ALIASES,
    SMALL_MODEL,
    resolve_model,
)


def test_exact_aliases():
    resolve_model("gpt-4") | should.equal(MEDIUM_MODEL)
    resolve_model("gpt-3.5-turbo") | should.equal(SMALL_MODEL)
    resolve_model("gpt-4o") | should.equal("deepseek-ai/deepseek-v3.1")
    resolve_model("claude-3-opus") | should.equal(LARGE_MODEL)
    resolve_model("claude-3-haiku") | should.equal(SMALL_MODEL)


def test_namespaced_names_pass_through():
    resolve_model("foo/bar") | should.equal("foo/bar")
    resolve_model("mistralai/mixtral-8x22b-instruct") | should.equal(
        "mistralai/mixtral-8x22b-instruct"
    )


def test_unknown_name_falls_back_to_small_tier():
    resolve_model("unknown-xyz") | should.equal(SMALL_MODEL)
    resolve_model("") | should.equal(SMALL_MODEL)


def test_heuristics_are_case_insensitive():
    resolve_model("Claude-Opus-Next") | should.equal(LARGE_MODEL)
    resolve_model("MY-ULTRA-MODEL") | should.equal(LARGE_MODEL)
    resolve_model("claude-3-5-Sonnet") | should.equal(MEDIUM_MODEL)
    resolve_model("Gemini-1.5-flash") | should.equal(MEDIUM_MODEL)


def test_large_tier_wins_over_medium_tier():
    # "gpt-4o-mini" contains both "gpt-4o" and "gpt-4"; the large rule is checked first
    resolve_model("gpt-4o-mini") | should.equal(LARGE_MODEL)
    resolve_model("sonnet-405b") | should.equal(LARGE_MODEL)
    resolve_model("llama-70b-chat") | should.equal(MEDIUM_MODEL)


def test_alias_table_is_consulted_before_heuristics():
    aliases = {"house-opus": "acme/tiny"}
    resolve_model("house-opus", aliases) | should.equal("acme/tiny")
    resolve_model("other-opus", aliases) | should.equal(LARGE_MODEL)


def test_native_models_map_to_themselves():
    for name, target in MODEL_ALIASES.items():
        if "/" in name:
            resolve_model(name) | should.equal(target)
            target | should.equal(name)
