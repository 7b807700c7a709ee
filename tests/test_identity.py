"""Tests for document id derivation."""

import hashlib

from hypothesis import given, strategies as st

from kbsearch.codecs.capability import CAPABILITY_CODEC
from kbsearch.codecs.pattern import PATTERN_CODEC
from kbsearch.codecs.policy import POLICY_CODEC
from kbsearch.search.identity import derive_id, is_document_id


def test_capability_id_known_answer():
    assert derive_id("SQL.devopstoolkit.live", "capability-") == "d259727c-73e4-4ff0-eac6-54051c1d0c38"
    assert CAPABILITY_CODEC.document_id("SQL.devopstoolkit.live") == "d259727c-73e4-4ff0-eac6-54051c1d0c38"


def test_id_is_formatted_sha256_prefix():
    digest = hashlib.sha256(b"pattern-Stateful app").hexdigest()
    document_id = derive_id("Stateful app", "pattern-")
    assert document_id.replace("-", "") == digest[:32]
    assert [len(part) for part in document_id.split("-")] == [8, 4, 4, 4, 12]


def test_domains_use_distinct_prefixes():
    ids = {codec.document_id("shared-name") for codec in (CAPABILITY_CODEC, PATTERN_CODEC, POLICY_CODEC)}
    assert len(ids) == 3
    assert PATTERN_CODEC.document_id("shared-name") == derive_id("shared-name", "pattern-")
    assert POLICY_CODEC.document_id("shared-name") == derive_id("shared-name", "policy-")


@given(st.text())
def test_derive_id_is_deterministic(key):
    assert derive_id(key, "capability-") == derive_id(key, "capability-")


@given(st.text(), st.text())
def test_distinct_keys_give_distinct_ids(first, second):
    if first != second:
        assert derive_id(first, "pattern-") != derive_id(second, "pattern-")


@given(st.text())
def test_derived_ids_are_document_ids(key):
    assert is_document_id(derive_id(key, "policy-"))


def test_is_document_id_rejects_natural_keys():
    assert not is_document_id("sql.example.org")
    assert not is_document_id("")
    assert not is_document_id("12345678123456781234567812345678")
    assert is_document_id("6f1c3f4e-8a57-5b8e-9d3a-2c1e7b0f4a90")
    assert is_document_id("d259727c-73e4-4ff0-eac6-54051c1d0c38")
