"""Tests for gateway token resolution."""

import pytest

from src.services.gateway_credentials import is_placeholder_token, resolve_token


@pytest.mark.parametrize(
    "token",
    [None, "", "   ", "SEU_TOKEN", "seu_token_aqui", "YOUR_TOKEN_HERE", "xxx-xxx", "<PLACEHOLDER>"],
)
def test_placeholders(token):
    assert is_placeholder_token(token) is True


def test_real_token_is_not_placeholder():
    assert is_placeholder_token("9f1c2a7e55b0") is False


def test_instance_token_wins():
    assert resolve_token(" inst-123 ", "cfg-456") == "inst-123"


def test_placeholder_instance_token_falls_back_to_configured():
    assert resolve_token("SEU_TOKEN", "cfg-456") == "cfg-456"
    assert resolve_token(None, "cfg-456") == "cfg-456"


def test_nothing_usable():
    assert resolve_token("YOUR_TOKEN", "") is None
    assert resolve_token(None, None) is None
