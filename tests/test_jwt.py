"""Tests for bearer token helpers."""

import pytest

from usagewatch.utils.jwt import issue_owner_token, read_owner_id


def test_owner_id_from_token():
    assert read_owner_id(issue_owner_token("owner1")) == "owner1"


def test_tampered_signature():
    header, payload, _ = issue_owner_token("owner1").split(".")
    with pytest.raises(ValueError):
        read_owner_id(f"{header}.{payload}.forged")


def test_expired():
    with pytest.raises(ValueError):
        read_owner_id(issue_owner_token("owner1", ttl_seconds=-60))


def test_garbage():
    with pytest.raises(ValueError):
        read_owner_id("garbage")
