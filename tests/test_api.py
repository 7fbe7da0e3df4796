"""
Unit tests for the mailing list API module.

Tests the MailingListAPI class against a mocked requests session.
"""

from unittest.mock import MagicMock

import pytest
import requests

from qualtrics_sync.api.mailing_list_api import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT,
    TOKEN_HEADER,
    MailingListAPI,
    MailingListAPIError,
)
from qualtrics_sync.sync.contact import ContactRecord

LIST_URL = f"{DEFAULT_BASE_URL}/mailinglists/ML_1/contacts"


def make_response(body=None, status_code=200, content_type="application/json"):
    response = MagicMock()
    response.status_code = status_code
    response.headers = {"content-type": content_type} if content_type else {}
    response.json.return_value = body if body is not None else {}
    return response


def make_api(*responses):
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    return MailingListAPI("secret-token", session=session), session


def page(elements, next_page=None):
    return make_response({"result": {"elements": elements, "nextPage": next_page}})


class TestMailingListAPIInitialization:
    """Tests for MailingListAPI initialization."""

    def test_init_sets_token_header(self):
        """Test that the token is sent on every request."""
        api, session = make_api()
        assert session.headers[TOKEN_HEADER] == "secret-token"
        assert api.base_url == DEFAULT_BASE_URL
        assert api.timeout == DEFAULT_TIMEOUT

    def test_init_strips_trailing_slash(self):
        """Test that a trailing slash on the base URL is removed."""
        session = MagicMock()
        session.headers = {}
        api = MailingListAPI("t", base_url="https://x.qualtrics.com/API/v3/", session=session)
        assert api.base_url == "https://x.qualtrics.com/API/v3"

    def test_init_requires_token(self):
        """Test that an empty token is rejected."""
        with pytest.raises(ValueError):
            MailingListAPI("", session=MagicMock())

    def test_default_session(self):
        """Test that a requests session is created when none is given."""
        api = MailingListAPI("t")
        assert isinstance(api.session, requests.Session)
        assert api.session.headers[TOKEN_HEADER] == "t"


class TestListContacts:
    """Tests for list_contacts pagination."""

    def test_single_page(self):
        """Test listing a list that fits one page."""
        api, session = make_api(
            page([{"id": "MLRP_1", "externalDataReference": "A1", "email": "a@x.com"}])
        )

        contacts = api.list_contacts("ML_1")

        assert len(contacts) == 1
        assert contacts[0].id == "MLRP_1"
        assert contacts[0].external_reference == "A1"
        session.request.assert_called_once_with(
            "GET", LIST_URL, json=None, timeout=DEFAULT_TIMEOUT
        )

    def test_follows_next_page(self):
        """Test that nextPage URLs are followed until null."""
        next_url = f"{LIST_URL}?skipToken=abc"
        api, session = make_api(
            page([{"id": "1", "externalDataReference": "A"}], next_url),
            page([{"id": "2", "externalDataReference": "B"}]),
        )

        contacts = api.list_contacts("ML_1")

        assert [c.id for c in contacts] == ["1", "2"]
        assert session.request.call_count == 2
        assert session.request.call_args_list[1].args == ("GET", next_url)

    def test_empty_list(self):
        """Test listing an empty mailing list."""
        api, _ = make_api(page([]))
        assert api.list_contacts("ML_1") == []

    def test_failed_page_raises(self):
        """Test that a failure on a later page fails the whole listing."""
        api, _ = make_api(
            page([{"id": "1", "externalDataReference": "A"}], f"{LIST_URL}?p=2"),
            make_response(status_code=500),
        )
        with pytest.raises(MailingListAPIError) as exc_info:
            api.list_contacts("ML_1")
        assert exc_info.value.status_code == 500


class TestResponseValidation:
    """Tests for status, content type and body checks."""

    def test_non_200_status(self):
        """Test that any status other than 200 is a failure."""
        api, _ = make_api(make_response(status_code=404))
        with pytest.raises(MailingListAPIError, match="Status Code: 404"):
            api.list_contacts("ML_1")

    def test_non_json_content_type(self):
        """Test that a non-JSON response is a failure."""
        api, _ = make_api(make_response(content_type="text/html"))
        with pytest.raises(MailingListAPIError, match="Content Type: text/html"):
            api.list_contacts("ML_1")

    def test_json_content_type_with_charset(self):
        """Test that a charset suffix on the content type is accepted."""
        api, _ = make_api(
            make_response(
                {"result": {"elements": [], "nextPage": None}},
                content_type="application/json; charset=utf-8",
            )
        )
        assert api.list_contacts("ML_1") == []

    def test_invalid_json_body(self):
        """Test that an undecodable body is a failure."""
        response = make_response()
        response.json.side_effect = ValueError("Expecting value")
        api, _ = make_api(response)
        with pytest.raises(MailingListAPIError, match="invalid JSON"):
            api.list_contacts("ML_1")

    def test_non_object_body(self):
        """Test that a JSON body other than an object is a failure."""
        api, _ = make_api(make_response(["MLRP_1"]))
        with pytest.raises(MailingListAPIError, match="expected a JSON object, got list"):
            api.create_contact("ML_1", ContactRecord("A1", "a@x.com", "Ada", "L"))

    def test_transport_error(self):
        """Test that connection errors are wrapped."""
        api, session = make_api()
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(MailingListAPIError, match="refused"):
            api.list_contacts("ML_1")


class TestContactMutations:
    """Tests for create, update and delete."""

    def test_create_contact(self):
        """Test that create posts the create-shaped body."""
        api, session = make_api(make_response({"result": {"id": "MLRP_new"}}))
        contact = ContactRecord("A1", "a@x.com", "Ada", "L", {"dept": "CS", "x": ""})

        new_id = api.create_contact("ML_1", contact)

        assert new_id == "MLRP_new"
        session.request.assert_called_once_with(
            "POST",
            LIST_URL,
            json={
                "externalDataRef": "A1",
                "email": "a@x.com",
                "firstName": "Ada",
                "lastName": "L",
                "embeddedData": {"dept": "CS"},
            },
            timeout=DEFAULT_TIMEOUT,
        )

    def test_update_contact(self):
        """Test that update puts to the contact URL without the id in the body."""
        api, session = make_api(make_response({"meta": {}}))
        contact = ContactRecord("A1", "a@x.com", "Ada", "L", {"old": ""}, id="MLRP_1")

        api.update_contact("ML_1", contact)

        method, url = session.request.call_args.args
        body = session.request.call_args.kwargs["json"]
        assert method == "PUT"
        assert url == f"{LIST_URL}/MLRP_1"
        assert body["externalDataReference"] == "A1"
        assert body["embeddedData"] == {"old": ""}
        assert "id" not in body

    def test_delete_contact(self):
        """Test that delete targets the contact URL."""
        api, session = make_api(make_response({"meta": {}}))

        api.delete_contact("ML_1", ContactRecord("A1", id="MLRP_1"))

        session.request.assert_called_once_with(
            "DELETE", f"{LIST_URL}/MLRP_1", json=None, timeout=DEFAULT_TIMEOUT
        )

    @pytest.mark.parametrize("method", ["update_contact", "delete_contact"])
    def test_missing_id_is_rejected(self, method):
        """Test that a record without an id is rejected before any request."""
        api, session = make_api()
        with pytest.raises(MailingListAPIError, match="Qualtrics ID undefined for A1"):
            getattr(api, method)("ML_1", ContactRecord("A1"))
        session.request.assert_not_called()
