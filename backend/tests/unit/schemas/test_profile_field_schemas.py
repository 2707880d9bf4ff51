"""
Unit Tests for Profile Field Schemas
"""
import pytest
from pydantic import ValidationError

from abiboard.models.profile_field import FieldType
from abiboard.schemas.profile_field import (
    ProfileFieldCreate,
    ProfileFieldReorder,
    ProfileFieldUpdate,
)


class TestProfileFieldCreate:

    def test_valid_field(self):
        field = ProfileFieldCreate(key='favoriteTeacher', type='TEXT', label='  Lieblingslehrer  ')

        assert field.type == FieldType.TEXT
        assert field.label == 'Lieblingslehrer'
        assert field.required is False
        assert field.order is None

    @pytest.mark.parametrize('key', ['Quote', '1quote', 'my_quote', 'my-quote', 'zitat ', ''])
    def test_invalid_keys(self, key):
        with pytest.raises(ValidationError):
            ProfileFieldCreate(key=key, type='TEXT', label='Zitat')

    def test_key_error_message(self):
        with pytest.raises(ValidationError) as exc_info:
            ProfileFieldCreate(key='My_Key', type='TEXT', label='Zitat')

        assert 'Kleinbuchstaben' in str(exc_info.value)

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            ProfileFieldCreate(key='birthday', type='DATE', label='Geburtstag')

    def test_blank_label(self):
        with pytest.raises(ValidationError):
            ProfileFieldCreate(key='quote', type='TEXT', label='   ')

    @pytest.mark.parametrize('attribute, value', [
        ('max_length', 0),
        ('max_files', 11),
        ('max_files', 0),
        ('rows', 21),
    ])
    def test_limits(self, attribute, value):
        with pytest.raises(ValidationError):
            ProfileFieldCreate(key='quote', type='TEXTAREA', label='Zitat', **{attribute: value})


class TestProfileFieldUpdate:

    def test_partial_update(self):
        update = ProfileFieldUpdate(label='Neues Label')

        assert update.model_dump(exclude_unset=True) == {'label': 'Neues Label'}

    def test_blank_label(self):
        with pytest.raises(ValidationError) as exc_info:
            ProfileFieldUpdate(label='   ')

        assert 'Bezeichnung' in str(exc_info.value)

    def test_label_is_stripped(self):
        assert ProfileFieldUpdate(label='  Zitat  ').label == 'Zitat'

    def test_label_may_be_omitted(self):
        assert ProfileFieldUpdate(required=True).label is None

    def test_type_cannot_change(self):
        with pytest.raises(ValidationError) as exc_info:
            ProfileFieldUpdate.model_validate({'type': 'TEXTAREA'})

        assert 'Feldtyp' in str(exc_info.value)

    def test_key_cannot_change(self):
        with pytest.raises(ValidationError) as exc_info:
            ProfileFieldUpdate.model_validate({'key': 'other', 'label': 'X'})

        assert 'Schlüssel' in str(exc_info.value)


class TestProfileFieldReorder:

    def test_empty_reorder_rejected(self):
        with pytest.raises(ValidationError):
            ProfileFieldReorder(field_orders=[])

    def test_reorder(self):
        reorder = ProfileFieldReorder(field_orders=[{'id': 'a', 'order': 2}, {'id': 'b', 'order': 1}])

        assert [item.id for item in reorder.field_orders] == ['a', 'b']
