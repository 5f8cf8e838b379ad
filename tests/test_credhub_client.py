"""Tests for the CredHub HTTP client with urlopen patched out."""

import io
import json
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs, urlparse

import pytest

from credhub_broker.broker import AlreadyProvisionedError, BindingAlreadyExistsError, CredentialBroker
from credhub_broker.config import BrokerConfig
from credhub_broker.store import (
    CredentialAlreadyExistsError,
    CredentialNotFoundError,
    CredentialStoreError,
    CredHubClient,
    CredHubClientConfig,
    StoreUnavailableError,
    WriteMode,
    create_credhub_client,
)

BASE_URL = "https://credhub.example.com:8844"


def make_client(**overrides):
    options = {"api_base_url": BASE_URL, "access_token": "token-123", "retry_backoff_base": 0.0, "max_retries": 2}
    options.update(overrides)
    return CredHubClient(CredHubClientConfig(**options))


def ok(status=200, body=None):
    response = MagicMock()
    response.status = status
    response.read.return_value = json.dumps(body).encode("utf-8") if body is not None else b""
    response.__enter__.return_value = response
    return response


def http_error(code, body=b""):
    return HTTPError(BASE_URL, code, "error", hdrs=None, fp=io.BytesIO(body))


def sent_request(mock_urlopen, index=0):
    return mock_urlopen.call_args_list[index].args[0]


def query_of(request):
    return {name: values[0] for name, values in parse_qs(urlparse(request.full_url).query).items()}


@patch("credhub_broker.store.credhub_client.urlopen")
def test_write_sends_json_credential_with_mode(mock_urlopen):
    mock_urlopen.side_effect = [http_error(404), ok(body={"name": "/k", "value": {"foo": "bar"}})]
    client = make_client()

    client.write("/k", {"foo": "bar"}, WriteMode.NO_OVERWRITE)

    lookup = sent_request(mock_urlopen, 0)
    assert lookup.get_method() == "GET"
    assert query_of(lookup) == {"name": "/k", "current": "true"}

    request = sent_request(mock_urlopen, 1)
    assert request.get_method() == "PUT"
    assert request.full_url == f"{BASE_URL}/api/v1/data"
    assert request.get_header("Authorization") == "Bearer token-123"
    assert json.loads(request.data) == {"name": "/k", "type": "json", "value": {"foo": "bar"}, "mode": "no-overwrite"}


@patch("credhub_broker.store.credhub_client.urlopen")
def test_no_overwrite_write_on_existing_credential_sends_no_put(mock_urlopen):
    mock_urlopen.return_value = ok(body={"data": [{"name": "/k", "type": "json", "value": {"foo": "bar"}}]})

    with pytest.raises(CredentialAlreadyExistsError):
        make_client().write("/k", {"foo": "bar"}, WriteMode.NO_OVERWRITE)

    assert mock_urlopen.call_count == 1
    assert sent_request(mock_urlopen).get_method() == "GET"


@patch("credhub_broker.store.credhub_client.urlopen")
def test_no_overwrite_write_returning_other_value_means_existing_credential(mock_urlopen):
    # Another writer created the name between the lookup and the PUT
    mock_urlopen.side_effect = [http_error(404), ok(body={"name": "/k", "value": {"foo": "original"}})]

    with pytest.raises(CredentialAlreadyExistsError):
        make_client().write("/k", {"foo": "bar"}, WriteMode.NO_OVERWRITE)


@patch("credhub_broker.store.credhub_client.urlopen")
def test_no_overwrite_lookup_failure_is_reported(mock_urlopen):
    mock_urlopen.side_effect = http_error(403)

    with pytest.raises(CredentialStoreError) as exc_info:
        make_client().write("/k", {"foo": "bar"}, WriteMode.NO_OVERWRITE)

    assert not isinstance(exc_info.value, CredentialAlreadyExistsError)
    assert mock_urlopen.call_count == 1


@patch("credhub_broker.store.credhub_client.urlopen")
def test_overwrite_write_ignores_returned_value(mock_urlopen):
    mock_urlopen.return_value = ok(body={"name": "/k", "value": {"foo": "bar"}})

    make_client().write("/k", {"foo": "bar"}, WriteMode.OVERWRITE)

    assert mock_urlopen.call_count == 1
    assert json.loads(sent_request(mock_urlopen).data)["mode"] == "overwrite"


@patch("credhub_broker.store.credhub_client.urlopen")
def test_read_latest_returns_current_value(mock_urlopen):
    mock_urlopen.return_value = ok(body={"data": [{"name": "/k", "type": "json", "value": {"foo": "bar"}}]})

    assert make_client().read_latest("/k") == {"foo": "bar"}

    request = sent_request(mock_urlopen)
    assert request.get_method() == "GET"
    assert query_of(request) == {"name": "/k", "current": "true"}


@patch("credhub_broker.store.credhub_client.urlopen")
def test_read_latest_maps_404_to_not_found(mock_urlopen):
    mock_urlopen.side_effect = http_error(404, b'{"error": "not found"}')

    with pytest.raises(CredentialNotFoundError):
        make_client().read_latest("/k")


@patch("credhub_broker.store.credhub_client.urlopen")
def test_delete_treats_404_as_success(mock_urlopen):
    mock_urlopen.side_effect = http_error(404)

    make_client().delete("/k")

    assert sent_request(mock_urlopen).get_method() == "DELETE"


@patch("credhub_broker.store.credhub_client.urlopen")
def test_delete_reports_forbidden(mock_urlopen):
    mock_urlopen.side_effect = http_error(403)

    with pytest.raises(CredentialStoreError) as exc_info:
        make_client().delete("/k")

    assert not isinstance(exc_info.value, StoreUnavailableError)
    assert exc_info.value.key == "/k"


@patch("credhub_broker.store.credhub_client.urlopen")
def test_grant_permission_posts_actor_and_operations(mock_urlopen):
    mock_urlopen.return_value = ok(status=201, body={})

    make_client().grant_permission("/k", "mtls-app:app-123", {"read"})

    request = sent_request(mock_urlopen)
    assert request.get_method() == "POST"
    assert request.full_url == f"{BASE_URL}/api/v1/permissions"
    assert json.loads(request.data) == {
        "credential_name": "/k",
        "permissions": [{"actor": "mtls-app:app-123", "operations": ["read"]}],
    }


@patch("credhub_broker.store.credhub_client.urlopen")
def test_revoke_permissions_deletes_each_actor(mock_urlopen):
    listing = {"credential_name": "/k", "permissions": [{"actor": "mtls-app:one", "operations": ["read"]}, {"actor": "mtls-app:two", "operations": ["read"]}]}
    mock_urlopen.side_effect = [ok(body=listing), ok(status=204), http_error(404)]

    make_client().revoke_permissions("/k")

    deletes = [sent_request(mock_urlopen, i) for i in (1, 2)]
    assert [request.get_method() for request in deletes] == ["DELETE", "DELETE"]
    assert [query_of(request)["actor"] for request in deletes] == ["mtls-app:one", "mtls-app:two"]


@patch("credhub_broker.store.credhub_client.urlopen")
def test_revoke_permissions_on_unknown_credential_succeeds(mock_urlopen):
    mock_urlopen.side_effect = http_error(404)

    make_client().revoke_permissions("/k")

    assert mock_urlopen.call_count == 1


@patch("credhub_broker.store.credhub_client.urlopen")
def test_server_errors_are_retried(mock_urlopen):
    mock_urlopen.side_effect = [http_error(502), URLError("connection refused"), ok(body={"data": [{"value": {"a": 1}}]})]
    client = make_client()

    assert client.read_latest("/k") == {"a": 1}
    assert mock_urlopen.call_count == 3


@patch("credhub_broker.store.credhub_client.urlopen")
def test_exhausted_retries_raise_store_unavailable(mock_urlopen):
    mock_urlopen.side_effect = URLError("connection refused")
    client = make_client(max_retries=1)

    with pytest.raises(StoreUnavailableError) as exc_info:
        client.delete("/k")

    assert mock_urlopen.call_count == 2
    assert "connection refused" in str(exc_info.value)


@patch("credhub_broker.store.credhub_client.urlopen")
def test_client_errors_are_not_retried(mock_urlopen):
    mock_urlopen.side_effect = http_error(401)

    with pytest.raises(CredentialStoreError):
        make_client().grant_permission("/k", "mtls-app:app", ["read"])

    assert mock_urlopen.call_count == 1


def test_create_credhub_client_applies_options():
    client = create_credhub_client(BASE_URL, access_token="abc", timeout_seconds=5, skip_tls_validation=True)

    assert client.config.api_base_url == BASE_URL
    assert client.config.access_token == "abc"
    assert client.config.timeout_seconds == 5
    assert client._ssl_context.check_hostname is False


class FakeCredHub:
    """Stateful stand-in for the CredHub data and permissions endpoints.

    A no-overwrite PUT on an existing name answers 200 with the stored
    credential, as CredHub does.
    """

    def __init__(self):
        self.credentials = {}
        self.permissions = {}

    def __call__(self, request, timeout=None, context=None):
        url = urlparse(request.full_url)
        query = {name: values[0] for name, values in parse_qs(url.query).items()}
        body = json.loads(request.data) if request.data else None
        method = request.get_method()

        if url.path == "/api/v1/data":
            return self._data(method, query, body)
        return self._permissions(method, query, body)

    def _data(self, method, query, body):
        name = query.get("name") or body["name"]
        if method == "GET":
            if name not in self.credentials:
                raise http_error(404)
            return ok(body={"data": [{"name": name, "type": "json", "value": self.credentials[name]}]})
        if method == "PUT":
            if body["mode"] == "overwrite" or name not in self.credentials:
                self.credentials[name] = body["value"]
            return ok(body={"name": name, "type": "json", "value": self.credentials[name]})
        if name not in self.credentials:
            raise http_error(404)
        del self.credentials[name]
        return ok(status=204)

    def _permissions(self, method, query, body):
        if method == "POST":
            for entry in body["permissions"]:
                self.permissions.setdefault(body["credential_name"], {})[entry["actor"]] = entry["operations"]
            return ok(status=201, body={})
        name = query["credential_name"]
        if name not in self.permissions:
            raise http_error(404)
        if method == "GET":
            listing = [{"actor": actor, "operations": ops} for actor, ops in self.permissions[name].items()]
            return ok(body={"credential_name": name, "permissions": listing})
        if self.permissions[name].pop(query["actor"], None) is None:
            raise http_error(404)
        return ok(status=204)


@pytest.fixture
def credhub():
    fake = FakeCredHub()
    with patch("credhub_broker.store.credhub_client.urlopen", side_effect=fake):
        yield fake


def test_no_overwrite_write_of_identical_value_is_rejected(credhub):
    client = make_client()
    client.write("/k", {"foo": "bar"}, WriteMode.NO_OVERWRITE)

    with pytest.raises(CredentialAlreadyExistsError):
        client.write("/k", {"foo": "bar"}, WriteMode.NO_OVERWRITE)

    assert credhub.credentials == {"/k": {"foo": "bar"}}


def test_duplicate_provision_with_same_parameters_is_rejected(credhub):
    broker = CredentialBroker(store=make_client(), config=BrokerConfig())
    broker.provision("i1", "svc", {"foo": "bar"})

    with pytest.raises(AlreadyProvisionedError):
        broker.provision("i1", "svc", {"foo": "bar"})


def test_duplicate_bind_grants_no_second_actor(credhub):
    broker = CredentialBroker(store=make_client(), config=BrokerConfig())
    broker.provision("i1", "svc", {"foo": "bar"})
    binding = broker.bind("i1", "b1", "svc", "mtls-app:app-1")
    binding_key = binding.credentials["credhub-ref"]

    with pytest.raises(BindingAlreadyExistsError):
        broker.bind("i1", "b1", "svc", "mtls-app:app-2")

    assert credhub.permissions == {binding_key: {"mtls-app:app-1": ["read"]}}
    assert credhub.credentials[binding_key] == {"foo": "bar"}


def test_unbind_against_credhub_removes_grant_and_record(credhub):
    broker = CredentialBroker(store=make_client(), config=BrokerConfig())
    broker.provision("i1", "svc", {"foo": "bar"})
    binding_key = broker.bind("i1", "b1", "svc", "mtls-app:app-1").credentials["credhub-ref"]

    broker.unbind("i1", "b1", "svc")

    assert credhub.permissions == {binding_key: {}}
    assert binding_key not in credhub.credentials
    broker.bind("i1", "b1", "svc", "mtls-app:app-1")
