"""
Tests for Telegram Mini App initData verification and the auth dependency.
"""

import time
from urllib.parse import parse_qsl, urlencode

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.auth.verify import (
    DEV_IDENTITY,
    auth_dependency,
    build_data_check_string,
    compute_init_data_hash,
    is_init_data_fresh,
    parse_identity_claim,
    verify_init_data,
)
from app.config import Settings
from app.models.domain.profile_domain import IdentityClaim

USER = {"id": 42, "first_name": "Ada", "last_name": "Lovelace", "username": "ada", "is_premium": True}

FLIP_TOKEN = "777:flip-token"
_FLIP_FIELDS = [("auth_date", "1700000000"), ("query_id", "AAH1"), ("user", '{"id":1,"first_name":"Z"}')]
SIGNED_PAYLOAD = urlencode(
    _FLIP_FIELDS + [("hash", compute_init_data_hash(build_data_check_string(_FLIP_FIELDS), FLIP_TOKEN))]
)


def test_valid_signature_verifies(init_data_factory, bot_token):
    init_data = init_data_factory(USER)
    assert verify_init_data(init_data, bot_token) is True


def test_field_order_does_not_matter(init_data_factory, bot_token):
    pairs = parse_qsl(init_data_factory(USER))
    reordered = urlencode(list(reversed(pairs)))
    assert verify_init_data(reordered, bot_token) is True


def test_tampered_field_is_rejected(init_data_factory, bot_token):
    pairs = dict(parse_qsl(init_data_factory(USER)))
    pairs["user"] = pairs["user"].replace('"id":42', '"id":43')
    assert verify_init_data(urlencode(pairs), bot_token) is False


def _flip(payload: str, index: int) -> str:
    # never a hex digit, so percent-escapes cannot decode to the same byte
    replacement = "y" if payload[index] == "x" else "x"
    return payload[:index] + replacement + payload[index + 1 :]


def test_fixed_payload_verifies_before_flipping():
    assert verify_init_data(SIGNED_PAYLOAD, FLIP_TOKEN) is True


@pytest.mark.parametrize("index", range(len(SIGNED_PAYLOAD)))
def test_any_single_character_change_is_rejected(index):
    assert verify_init_data(_flip(SIGNED_PAYLOAD, index), FLIP_TOKEN) is False


@pytest.mark.parametrize("digest", ["%C3%A9", "%E2%9C%93" * 32, "caf%C3%A9"])
def test_non_ascii_hash_is_rejected_without_raising(digest, bot_token):
    assert verify_init_data(f"auth_date=1&hash={digest}", bot_token) is False


def test_wrong_bot_token_is_rejected(init_data_factory):
    init_data = init_data_factory(USER)
    assert verify_init_data(init_data, "999:other-token") is False


def test_missing_hash_is_rejected(bot_token):
    assert verify_init_data("auth_date=1&user=%7B%7D", bot_token) is False


def test_duplicate_hash_is_rejected(init_data_factory, bot_token):
    init_data = init_data_factory(USER)
    digest = dict(parse_qsl(init_data))["hash"]
    assert verify_init_data(f"{init_data}&hash={digest}", bot_token) is False


@pytest.mark.parametrize("init_data", [None, "", "not a query string&&=", "=&="])
def test_malformed_input_never_raises(init_data, bot_token):
    assert verify_init_data(init_data, bot_token) is False


def test_missing_bot_token_rejects_everything(init_data_factory):
    assert verify_init_data(init_data_factory(USER), None) is False


def test_data_check_string_is_sorted_and_excludes_hash():
    pairs = [("user", "{}"), ("hash", "abc"), ("auth_date", "10"), ("query_id", "q")]
    assert build_data_check_string(pairs) == "auth_date=10\nquery_id=q\nuser={}"


def test_identity_claim_parsed_from_user_field(init_data_factory):
    claim = parse_identity_claim(init_data_factory(USER))

    assert claim == IdentityClaim(
        account_id=42,
        display_name="Ada Lovelace",
        is_premium_tier=True,
        username="ada",
        language_code=None,
    )


def test_identity_claim_without_last_name_or_username(init_data_factory):
    claim = parse_identity_claim(init_data_factory({"id": 7, "first_name": "Bo"}))

    assert claim.display_name == "Bo"
    assert claim.username is None
    assert claim.is_premium_tier is False


@pytest.mark.parametrize("user_value", ["not-json", "5", '{"first_name":"NoId"}'])
def test_unusable_user_field_yields_no_claim(signer, user_value):
    init_data = signer({"auth_date": "1", "user": user_value})
    assert parse_identity_claim(init_data) is None


def test_freshness_window(signer):
    now = 1_700_000_000
    init_data = signer({"auth_date": str(now - 100)})

    assert is_init_data_fresh(init_data, max_age_s=3600, now=now) is True
    assert is_init_data_fresh(init_data, max_age_s=60, now=now) is False
    assert is_init_data_fresh(init_data, max_age_s=0, now=now) is True


def test_missing_auth_date_is_stale(signer):
    assert is_init_data_fresh(signer({"user": "{}"}), max_age_s=60) is False


# ---------------------------------------------------------------------------
# auth_dependency at the HTTP boundary
# ---------------------------------------------------------------------------


@pytest.fixture
def client(monkeypatch, bot_token):
    monkeypatch.setattr("app.auth.verify.settings.BOT_TOKEN", bot_token)
    monkeypatch.setattr("app.auth.verify.settings.INIT_DATA_MAX_AGE_S", 86400)

    app = FastAPI()

    @app.get("/whoami")
    async def whoami(claim: IdentityClaim = Depends(auth_dependency)):
        return {"accountId": claim.account_id, "displayName": claim.display_name}

    return TestClient(app)


def test_valid_header_authenticates(client, init_data_factory):
    response = client.get("/whoami", headers={"X-Telegram-Init-Data": init_data_factory(USER)})

    assert response.status_code == 200
    assert response.json() == {"accountId": 42, "displayName": "Ada Lovelace"}


def test_invalid_header_is_401_with_challenge(client):
    response = client.get("/whoami", headers={"X-Telegram-Init-Data": "auth_date=1&hash=deadbeef"})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "tma"


def test_expired_header_is_401(client, init_data_factory):
    stale = init_data_factory(USER, auth_date=int(time.time()) - 2 * 86400)
    response = client.get("/whoami", headers={"X-Telegram-Init-Data": stale})

    assert response.status_code == 401


def test_missing_header_uses_dev_identity_in_development(client, monkeypatch):
    monkeypatch.setattr("app.auth.verify.settings.environment", "development")
    monkeypatch.setattr("app.auth.verify.settings.DEV_AUTH_BYPASS", True)

    response = client.get("/whoami")

    assert response.status_code == 200
    assert response.json()["accountId"] == DEV_IDENTITY.account_id


@pytest.mark.parametrize("environment,bypass", [("production", True), ("development", False)])
def test_missing_header_is_401_without_bypass(client, monkeypatch, environment, bypass):
    monkeypatch.setattr("app.auth.verify.settings.environment", environment)
    monkeypatch.setattr("app.auth.verify.settings.DEV_AUTH_BYPASS", bypass)

    response = client.get("/whoami")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "tma"


def test_non_ascii_hash_header_is_401(client):
    response = client.get("/whoami", headers={"X-Telegram-Init-Data": "auth_date=1&hash=%C3%A9"})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "tma"


def test_dev_bypass_is_off_by_default():
    assert Settings.model_fields["DEV_AUTH_BYPASS"].default is False


def test_missing_header_is_401_in_development_with_default_bypass(client, monkeypatch):
    monkeypatch.setattr("app.auth.verify.settings.environment", "development")
    monkeypatch.setattr(
        "app.auth.verify.settings.DEV_AUTH_BYPASS", Settings.model_fields["DEV_AUTH_BYPASS"].default
    )

    response = client.get("/whoami")

    assert response.status_code == 401
