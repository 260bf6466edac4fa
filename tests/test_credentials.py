from __future__ import annotations

import pytest

from aem_mcp.auth import (
    AuthenticationMissing,
    BasicCredentials,
    TokenCredentials,
    require_target,
    resolve_credentials,
)
from aem_mcp.auth.credentials import prefers_basic_auth, resolve_endpoint
from aem_mcp.config import AEMSettings
from aem_mcp.errors import ConfigurationError

CLOUD = "https://author-p1-e2.adobeaemcloud.com"


def test_token_from_parameters_wins_over_environment() -> None:
    env = AEMSettings(author_url="http://env.test", token="env-token")

    resolved = resolve_credentials({"token": "param-token"}, env)

    assert not isinstance(resolved, AuthenticationMissing)
    assert resolved.endpoint == "http://env.test"
    assert resolved.credentials == TokenCredentials("param-token")


def test_basic_preferred_for_cloud_host_even_with_token() -> None:
    env = AEMSettings(token="tok", username="admin", password="pw")

    resolved = resolve_credentials({"authorUrl": CLOUD + "/"}, env)

    assert not isinstance(resolved, AuthenticationMissing)
    assert resolved.endpoint == CLOUD
    assert resolved.credentials == BasicCredentials("admin", "pw")


def test_token_preferred_for_other_hosts() -> None:
    env = AEMSettings(token="tok", username="admin", password="pw")

    resolved = resolve_credentials({"authorUrl": "http://localhost:4502"}, env)

    assert isinstance(resolved.credentials, TokenCredentials)


def test_basic_used_when_no_token() -> None:
    resolved = resolve_credentials({"username": "u", "password": "p"}, AEMSettings())

    assert resolved.credentials == BasicCredentials("u", "p")


def test_username_without_password_is_not_enough() -> None:
    resolved = resolve_credentials({"username": "u"}, AEMSettings())

    assert isinstance(resolved, AuthenticationMissing)


def test_missing_authentication_enumerates_environment() -> None:
    resolved = resolve_credentials({}, AEMSettings(username="admin"))

    assert isinstance(resolved, AuthenticationMissing)
    assert resolved.missing == ("AEM_TOKEN", "AEM_PASSWORD")
    assert "AEM_TOKEN=false" in resolved.message
    assert "AEM_USERNAME=true" in resolved.message
    assert "AEM_PASSWORD=false" in resolved.message


def test_basic_auth_hosts_are_configurable() -> None:
    env = AEMSettings(
        token="tok", username="u", password="p", basic_auth_hosts=("intranet.example",)
    )

    on_cloud = resolve_credentials({"authorUrl": CLOUD}, env)
    on_intranet = resolve_credentials({"authorUrl": "https://aem.intranet.example"}, env)

    assert isinstance(on_cloud.credentials, TokenCredentials)
    assert isinstance(on_intranet.credentials, BasicCredentials)


def test_prefers_basic_auth_is_case_insensitive() -> None:
    assert prefers_basic_auth("https://AUTHOR.AdobeAEMCloud.com", ("adobeaemcloud.com",))
    assert not prefers_basic_auth("https://author.example.com", ("",))


def test_endpoint_fallback_order() -> None:
    env = AEMSettings(author_url="http://env.test")

    assert resolve_endpoint({"authorUrl": "http://a.test", "server": "http://s.test"}, env) == (
        "http://a.test"
    )
    assert resolve_endpoint({"server": "http://s.test/"}, env) == "http://s.test"
    assert resolve_endpoint({}, env) == "http://env.test"
    assert resolve_endpoint({}, AEMSettings()) == "http://localhost:4502"


def test_require_target_raises_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Authentication required"):
        require_target({}, AEMSettings())


def test_credential_repr_masks_secrets() -> None:
    assert "s3cret" not in repr(TokenCredentials("s3cret"))
    assert "s3cret" not in repr(BasicCredentials("admin", "s3cret"))
    assert TokenCredentials("x").scheme == "bearer"
    assert BasicCredentials("a", "b").scheme == "basic"
