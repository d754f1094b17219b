import pytest

from reply_bridge.services.correlation import (
    build_reply_to_address,
    extract_correlation_id,
    new_correlation_id,
)


def test_extract_correlation_id_from_tagged_address() -> None:
    assert extract_correlation_id("user+ABC123@domain.com") == "ABC123"
    assert extract_correlation_id('"Bridge" <notify+a1-b_2@example.org>') == "a1-b_2"


def test_extract_correlation_id_absent_without_tag() -> None:
    assert extract_correlation_id("user@domain.com") is None
    assert extract_correlation_id("user+@domain.com") is None
    assert extract_correlation_id("") is None


def test_reply_to_round_trip() -> None:
    correlation_id = new_correlation_id()
    address = build_reply_to_address("notify@example.org", correlation_id)
    assert address == f"notify+{correlation_id}@example.org"
    assert extract_correlation_id(address) == correlation_id


def test_reply_to_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        build_reply_to_address("notify@example.org", "not valid!")
    with pytest.raises(ValueError):
        build_reply_to_address("no-at-sign", "abc")
