import json

import pytest

from hslookup.llm.groq_client import LLMCallError, LLMUnavailableError
from hslookup.tariff.cas import (
    REASON_AI_DEFAULT,
    REASON_CAS_LIST,
    REASON_CAS_NUMBER,
    get_cas_table,
    lookup_cas,
    match_cas_table,
)
from hslookup.tariff.errors import InvalidInputError


def test_bundled_table_loads():
    table = get_cas_table()
    assert len(table) == 22
    assert {e.cas for e in table} >= {"50-00-0", "64-17-5", "7664-93-9"}


def test_exact_cas_number_wins():
    matches = match_cas_table("7664-93-9")
    assert [(e.cas, reason) for e, reason in matches] == [("7664-93-9", REASON_CAS_NUMBER)]


@pytest.mark.parametrize(
    "query, first",
    [
        ("axit sunfuric", "7664-93-9"),
        ("Axít sunfuric", "7664-93-9"),
        ("caustic soda", "1310-73-2"),
        ("oxy già", "7722-84-1"),
        ("ethanol", "64-17-5"),
    ],
)
def test_name_matches_rank_full_matches_first(query, first):
    matches = match_cas_table(query)
    assert matches[0][0].cas == first
    assert {reason for _, reason in matches} == {REASON_CAS_LIST}


def test_generic_word_is_capped_at_five_in_table_order():
    matches = match_cas_table("acid")
    assert [e.cas for e, _ in matches] == ["64-19-7", "77-92-9", "7647-01-0", "7664-93-9", "7664-38-2"]


def test_partial_token_overlap_needs_enough_hits():
    assert [e.cas for e, _ in match_cas_table("sodium hydroxide solid flakes")] == ["1310-73-2"]
    assert match_cas_table("sodium pellets granular") == []


def test_local_lookup_does_not_need_a_key():
    response = lookup_cas("Formaldehyde")
    assert response.source == "local"
    first = response.suggestions[0]
    assert (first.cas, first.hs_code, first.formula) == ("50-00-0", "2912.11", "CH2O")


def test_blank_query_is_rejected():
    with pytest.raises(InvalidInputError):
        lookup_cas("  ")


def test_unknown_name_without_key_is_unavailable():
    with pytest.raises(LLMUnavailableError):
        lookup_cas("tetrahydrocannabinol")


def test_unknown_name_goes_to_llm(llm, fake_groq):
    fake_groq.queue(
        json.dumps(
            {
                "suggestions": [
                    {"cas": "1972-08-3", "name_en": "Dronabinol", "reason": "Common synonym"},
                    {"cas": "", "name_en": "Missing number"},
                    {"cas": "123-45-6"},
                ]
            }
        )
    )
    response = lookup_cas("tetrahydrocannabinol")
    assert response.source == "groq"
    assert [s.cas for s in response.suggestions] == ["1972-08-3"]
    assert response.suggestions[0].reason == "Common synonym"
    assert "tetrahydrocannabinol" in fake_groq.calls[0]["messages"][1]["content"]
    assert fake_groq.calls[0]["max_tokens"] == 300


def test_llm_gets_one_strict_retry(llm, fake_groq):
    fake_groq.queue("I am not sure.", '[{"cas": "1972-08-3", "name_vi": "Dronabinol"}]')
    response = lookup_cas("tetrahydrocannabinol")
    assert [s.reason for s in response.suggestions] == [REASON_AI_DEFAULT]
    assert len(fake_groq.calls) == 2
    assert "JSON array" in fake_groq.calls[1]["messages"][0]["content"]


def test_llm_failure_propagates(llm, fake_groq):
    fake_groq.queue(RuntimeError("upstream 500"))
    with pytest.raises(LLMCallError):
        lookup_cas("tetrahydrocannabinol")
