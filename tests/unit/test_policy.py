# Assumptions:
# - Using pytest for testing framework
# - Policies evaluated against plain claim dicts at a fixed "now"

from dataclasses import FrozenInstanceError, replace

import pytest

from oktaguard.auth.errors import (
    InvalidAudienceError,
    InvalidClientIdError,
    InvalidIssuerError,
    MalformedTokenError,
    TokenExpiredError,
    TokenNotYetValidError,
)
from oktaguard.auth.policy import DEFAULT_LEEWAY, ClaimsPolicy

from .conftest import AUDIENCE, ISSUER, NOW, make_claims


@pytest.fixture
def policy():
    return ClaimsPolicy(issuer=ISSUER, audiences=frozenset({AUDIENCE, "api://test"}))


class TestClaimsPolicy:
    """Test cases for claims policy evaluation"""

    def test_defaults(self):
        policy = ClaimsPolicy(issuer=ISSUER)

        assert policy.leeway == DEFAULT_LEEWAY == 120
        assert policy.validate_aud is True
        assert policy.validate_exp is True
        assert policy.validate_nbf is False
        assert policy.audiences == frozenset()
        assert policy.client_id is None

    def test_is_immutable(self, policy):
        with pytest.raises(FrozenInstanceError):
            policy.leeway = 0

    def test_valid_claims(self, policy):
        policy.evaluate(make_claims(), now=NOW)

    # Issuer

    def test_issuer_mismatch(self, policy):
        with pytest.raises(InvalidIssuerError) as exc_info:
            policy.evaluate(make_claims(iss="https://evil.example.com"), now=NOW)

        assert exc_info.value.details["expected"] == ISSUER

    def test_issuer_trailing_slash_tolerated(self, policy):
        policy.evaluate(make_claims(iss=ISSUER + "/"), now=NOW)

    def test_issuer_absent_is_not_checked(self, policy):
        claims = make_claims()
        del claims["iss"]

        policy.evaluate(claims, now=NOW)

    # Audience

    def test_audience_list_intersects(self, policy):
        policy.evaluate(make_claims(aud=["api://default"]), now=NOW)

    def test_audience_list_disjoint(self, policy):
        with pytest.raises(InvalidAudienceError):
            policy.evaluate(make_claims(aud=["api://other"]), now=NOW)

    def test_audience_string(self, policy):
        policy.evaluate(make_claims(aud="api://test"), now=NOW)

    def test_audience_missing(self, policy):
        with pytest.raises(InvalidAudienceError):
            policy.evaluate(make_claims(aud=None), now=NOW)

    def test_audience_wrong_type(self, policy):
        with pytest.raises(InvalidAudienceError):
            policy.evaluate(make_claims(aud=42), now=NOW)

    def test_empty_audience_set_always_fails(self):
        policy = ClaimsPolicy(issuer=ISSUER)

        with pytest.raises(InvalidAudienceError, match="No acceptable audience"):
            policy.evaluate(make_claims(), now=NOW)

    def test_audience_check_disabled(self):
        policy = ClaimsPolicy(issuer=ISSUER, validate_aud=False)

        policy.evaluate(make_claims(aud="api://anything"), now=NOW)

    # Expiration

    def test_expired_beyond_leeway(self, policy):
        claims = make_claims(exp=NOW - DEFAULT_LEEWAY - 1)

        with pytest.raises(TokenExpiredError):
            policy.evaluate(claims, now=NOW)

    def test_expired_at_leeway_boundary_is_accepted(self, policy):
        policy.evaluate(make_claims(exp=NOW - DEFAULT_LEEWAY), now=NOW)

    def test_expired_within_leeway_is_accepted(self, policy):
        policy.evaluate(make_claims(exp=NOW - 30), now=NOW)

    def test_zero_leeway(self, policy):
        strict = replace(policy, leeway=0)

        strict.evaluate(make_claims(exp=NOW), now=NOW)
        with pytest.raises(TokenExpiredError):
            strict.evaluate(make_claims(exp=NOW - 1), now=NOW)

    def test_missing_exp(self, policy):
        claims = make_claims()
        del claims["exp"]

        with pytest.raises(TokenExpiredError, match="no exp"):
            policy.evaluate(claims, now=NOW)

    def test_non_numeric_exp(self, policy):
        with pytest.raises(MalformedTokenError):
            policy.evaluate(make_claims(exp="tomorrow"), now=NOW)

    def test_expiration_check_disabled(self):
        policy = ClaimsPolicy(issuer=ISSUER, validate_aud=False, validate_exp=False)

        policy.evaluate(make_claims(exp=NOW - 86400), now=NOW)

    # Not before

    def test_nbf_ignored_by_default(self, policy):
        policy.evaluate(make_claims(nbf=NOW + 86400), now=NOW)

    def test_nbf_in_future_beyond_leeway(self):
        policy = ClaimsPolicy(issuer=ISSUER, validate_aud=False, validate_nbf=True)

        with pytest.raises(TokenNotYetValidError):
            policy.evaluate(make_claims(nbf=NOW + DEFAULT_LEEWAY + 1), now=NOW)

    def test_nbf_at_leeway_boundary_is_accepted(self):
        policy = ClaimsPolicy(issuer=ISSUER, validate_aud=False, validate_nbf=True)

        policy.evaluate(make_claims(nbf=NOW + DEFAULT_LEEWAY), now=NOW)

    def test_nbf_absent_is_accepted(self):
        policy = ClaimsPolicy(issuer=ISSUER, validate_aud=False, validate_nbf=True)

        policy.evaluate(make_claims(), now=NOW)

    # Client id

    def test_client_id_match(self):
        policy = ClaimsPolicy(issuer=ISSUER, validate_aud=False, client_id="0oa1client")

        policy.evaluate(make_claims(), now=NOW)

    def test_client_id_mismatch(self):
        policy = ClaimsPolicy(issuer=ISSUER, validate_aud=False, client_id="0oa2other")

        with pytest.raises(InvalidClientIdError):
            policy.evaluate(make_claims(), now=NOW)

    def test_client_id_claim_absent(self):
        policy = ClaimsPolicy(issuer=ISSUER, validate_aud=False, client_id="0oa2other")

        policy.evaluate(make_claims(cid=None), now=NOW)

    # Ordering

    def test_first_failure_wins(self):
        policy = ClaimsPolicy(
            issuer=ISSUER,
            audiences=frozenset({AUDIENCE}),
            client_id="0oa2other",
            validate_nbf=True,
        )
        claims = make_claims(
            iss="https://evil.example.com",
            aud="api://other",
            exp=NOW - 10_000,
            nbf=NOW + 10_000,
        )

        with pytest.raises(InvalidIssuerError):
            policy.evaluate(claims, now=NOW)

        claims["iss"] = ISSUER
        with pytest.raises(InvalidAudienceError):
            policy.evaluate(claims, now=NOW)

        claims["aud"] = AUDIENCE
        with pytest.raises(TokenExpiredError):
            policy.evaluate(claims, now=NOW)

        claims["exp"] = NOW + 3600
        with pytest.raises(TokenNotYetValidError):
            policy.evaluate(claims, now=NOW)

        claims["nbf"] = NOW
        with pytest.raises(InvalidClientIdError):
            policy.evaluate(claims, now=NOW)
