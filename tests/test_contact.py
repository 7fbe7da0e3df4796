"""
Unit tests for the ContactRecord data model.

Tests API response parsing, create/update payloads, required field checks,
and copying.
"""

import pytest

from qualtrics_sync.sync.contact import (
    COMPARED_FIELDS,
    REQUIRED_FIELDS,
    ContactRecord,
    sort_key,
)


class TestContactRecordBasics:
    """Tests for basic ContactRecord instantiation and attributes."""

    def test_create_with_only_external_reference(self):
        """Test that every other field has an empty default."""
        contact = ContactRecord(external_reference='A1')
        assert contact.external_reference == 'A1'
        assert contact.email == ''
        assert contact.first_name == ''
        assert contact.last_name == ''
        assert contact.embedded_data is None
        assert contact.id is None

    def test_repr_contains_key_fields(self):
        """Test that repr shows the external reference, id and email."""
        contact = ContactRecord('A1', email='a@example.com', id='MLRP_1')
        text = repr(contact)
        assert "'A1'" in text
        assert "'MLRP_1'" in text
        assert "'a@example.com'" in text

    def test_sort_key_is_external_reference(self):
        """Test that the sort key is the exact external reference."""
        assert sort_key(ContactRecord('b2')) == 'b2'

    def test_required_fields(self):
        """Test the fields required for creation."""
        assert REQUIRED_FIELDS == (
            'external_reference', 'email', 'first_name', 'last_name'
        )

    def test_compared_fields_wire_names(self):
        """Test the wire names of the compared fields."""
        assert COMPARED_FIELDS['external_reference'] == 'externalDataReference'
        assert COMPARED_FIELDS['first_name'] == 'firstName'
        assert COMPARED_FIELDS['last_name'] == 'lastName'


class TestFromApiResponse:
    """Tests for parsing mailing list API elements."""

    def test_parse_full_element(self):
        """Test parsing an element with every field."""
        element = {
            'id': 'MLRP_abc',
            'firstName': 'Ada',
            'lastName': 'Lovelace',
            'email': 'ada@example.com',
            'externalDataReference': 'A1',
            'embeddedData': {'dept': 'CS'},
            'language': 'EN',
            'unsubscribed': False,
            'responseHistory': [],
            'emailHistory': [],
        }
        contact = ContactRecord.from_api_response(element)

        assert contact.id == 'MLRP_abc'
        assert contact.first_name == 'Ada'
        assert contact.last_name == 'Lovelace'
        assert contact.email == 'ada@example.com'
        assert contact.external_reference == 'A1'
        assert contact.embedded_data == {'dept': 'CS'}

    def test_remote_metadata_is_dropped(self):
        """Test that language and history fields are not kept."""
        contact = ContactRecord.from_api_response(
            {'externalDataReference': 'A1', 'language': 'EN'}
        )
        assert not hasattr(contact, 'language')

    def test_empty_embedded_data_becomes_none(self):
        """Test that {} embedded data is stored as None."""
        contact = ContactRecord.from_api_response(
            {'externalDataReference': 'A1', 'embeddedData': {}}
        )
        assert contact.embedded_data is None

    def test_null_fields_become_empty_strings(self):
        """Test that null top-level fields become empty strings."""
        contact = ContactRecord.from_api_response(
            {'externalDataReference': 'A1', 'email': None, 'firstName': None}
        )
        assert contact.email == ''
        assert contact.first_name == ''

    def test_embedded_values_are_strings(self):
        """Test that non-string embedded values are converted to strings."""
        contact = ContactRecord.from_api_response(
            {'externalDataReference': 'A1', 'embeddedData': {'n': 3, 'x': None}}
        )
        assert contact.embedded_data == {'n': '3', 'x': ''}


class TestPayloads:
    """Tests for create and update request bodies."""

    def test_create_payload_uses_external_data_ref(self):
        """Test that create uses the externalDataRef key."""
        contact = ContactRecord('A1', 'a@example.com', 'Ada', 'Lovelace')
        payload = contact.to_create_payload()

        assert payload == {
            'externalDataRef': 'A1',
            'email': 'a@example.com',
            'firstName': 'Ada',
            'lastName': 'Lovelace',
        }
        assert 'externalDataReference' not in payload

    def test_create_payload_drops_empty_embedded_values(self):
        """Test that empty embedded values are not sent on create."""
        contact = ContactRecord(
            'A1', 'a@example.com', 'Ada', 'Lovelace',
            embedded_data={'dept': 'CS', 'room': ''},
        )
        assert contact.to_create_payload()['embeddedData'] == {'dept': 'CS'}

    def test_create_payload_omits_all_empty_embedded_data(self):
        """Test that embeddedData is omitted when every value is empty."""
        contact = ContactRecord(
            'A1', 'a@example.com', 'Ada', 'Lovelace', embedded_data={'room': ''}
        )
        assert 'embeddedData' not in contact.to_create_payload()

    def test_create_payload_does_not_modify_contact(self):
        """Test that building the payload leaves embedded data intact."""
        contact = ContactRecord('A1', embedded_data={'room': ''})
        contact.to_create_payload()
        assert contact.embedded_data == {'room': ''}

    def test_update_payload_keeps_clear_markers(self):
        """Test that empty embedded values are sent on update."""
        contact = ContactRecord(
            'A1', 'a@example.com', 'Ada', 'Lovelace',
            embedded_data={'dept': 'CS', 'old': ''}, id='MLRP_1',
        )
        payload = contact.to_update_payload()

        assert payload['externalDataReference'] == 'A1'
        assert payload['embeddedData'] == {'dept': 'CS', 'old': ''}

    def test_update_payload_never_contains_id(self):
        """Test that the id is not part of the update body."""
        contact = ContactRecord('A1', id='MLRP_1')
        assert 'id' not in contact.to_update_payload()


class TestRequiredFields:
    """Tests for missing_required_fields."""

    def test_complete_contact_has_no_missing_fields(self):
        """Test that a complete contact is eligible."""
        contact = ContactRecord('A1', 'a@example.com', 'Ada', 'Lovelace')
        assert contact.missing_required_fields() == []

    def test_missing_email_and_last_name(self):
        """Test that empty required fields are reported in order."""
        contact = ContactRecord('A1', first_name='Ada')
        assert contact.missing_required_fields() == ['email', 'last_name']

    @pytest.mark.parametrize('field_name', ['email', 'first_name', 'last_name'])
    def test_each_required_field(self, field_name):
        """Test that each required field is checked."""
        values = {'email': 'a@example.com', 'first_name': 'Ada', 'last_name': 'L'}
        values[field_name] = ''
        contact = ContactRecord('A1', **values)
        assert contact.missing_required_fields() == [field_name]


class TestCopy:
    """Tests for deep copying."""

    def test_copy_is_independent(self):
        """Test that changing the copy's embedded data leaves the original."""
        original = ContactRecord('A1', embedded_data={'dept': 'CS'})
        duplicate = original.copy()
        duplicate.embedded_data['dept'] = 'Math'
        duplicate.id = 'MLRP_1'

        assert original.embedded_data == {'dept': 'CS'}
        assert original.id is None
        assert duplicate == ContactRecord(
            'A1', embedded_data={'dept': 'Math'}, id='MLRP_1'
        )
