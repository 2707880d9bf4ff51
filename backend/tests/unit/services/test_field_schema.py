"""
Unit Tests for the draft ruleset built from field definitions
"""
import pytest

from abiboard.core.exceptions import ValidationError
from abiboard.models.profile_field import FieldType, ProfileField
from abiboard.services.field_schema import build_draft_ruleset


def make_field(key, field_type, label=None, order=1, active=True, required=False, **kwargs):
    return ProfileField(
        key=key,
        type=field_type,
        label=label or key.capitalize(),
        order=order,
        active=active,
        required=required,
        **kwargs
    )


@pytest.fixture
def fields():
    return [
        make_field('imageUrl', FieldType.SINGLE_IMAGE, 'Profilbild', order=1, required=True),
        make_field('quote', FieldType.TEXTAREA, 'Lieblingszitat', order=2, max_length=10, required=True),
        make_field('nickname', FieldType.TEXT, 'Spitzname', order=3, max_length=5),
        make_field('memoryImages', FieldType.MULTI_IMAGE, 'Erinnerungsfotos', order=4, max_files=2),
    ]


class TestDraftLeniency:

    def test_empty_payload_passes(self, fields):
        assert build_draft_ruleset(fields).validate({}) == {}

    def test_required_fields_may_be_empty(self, fields):
        data = build_draft_ruleset(fields).validate({'quote': '', 'imageUrl': None})

        assert data == {'quote': '', 'imageUrl': None}

    def test_only_sent_keys_are_returned(self, fields):
        data = build_draft_ruleset(fields).validate({'nickname': 'Max'})

        assert data == {'nickname': 'Max'}

    def test_unknown_keys_are_dropped(self, fields):
        data = build_draft_ruleset(fields).validate({'unknown': 'x', 'quote': 'Hi'})

        assert data == {'quote': 'Hi'}


class TestLimits:

    def test_text_at_limit_passes(self, fields):
        data = build_draft_ruleset(fields).validate({'quote': 'x' * 10})

        assert data['quote'] == 'x' * 10

    def test_text_over_limit_fails_with_label(self, fields):
        with pytest.raises(ValidationError) as exc:
            build_draft_ruleset(fields).validate({'quote': 'x' * 11})

        assert exc.value.message == 'Lieblingszitat darf maximal 10 Zeichen lang sein.'
        assert exc.value.details == {'field': 'quote'}

    def test_multi_image_over_limit_fails(self, fields):
        with pytest.raises(ValidationError) as exc:
            build_draft_ruleset(fields).validate({'memoryImages': ['/a', '/b', '/c']})

        assert exc.value.message == 'Erinnerungsfotos: Maximal 2 Bilder erlaubt.'

    def test_multi_image_default_limit_is_three(self):
        ruleset = build_draft_ruleset([make_field('photos', FieldType.MULTI_IMAGE, 'Fotos')])

        assert ruleset.validate({'photos': ['/a', '/b', '/c']}) == {'photos': ['/a', '/b', '/c']}
        with pytest.raises(ValidationError):
            ruleset.validate({'photos': ['/a', '/b', '/c', '/d']})

    def test_null_multi_image_becomes_empty_list(self, fields):
        assert build_draft_ruleset(fields).validate({'memoryImages': None}) == {'memoryImages': []}

    def test_first_violation_only(self, fields):
        with pytest.raises(ValidationError) as exc:
            build_draft_ruleset(fields).validate({'quote': 'x' * 11, 'nickname': 'x' * 6})

        # Fields are checked in display order
        assert exc.value.message.startswith('Lieblingszitat')

    def test_wrong_type_reports_label(self, fields):
        with pytest.raises(ValidationError) as exc:
            build_draft_ruleset(fields).validate({'nickname': 42})

        assert exc.value.message == 'Spitzname: Ungültiger Wert.'


class TestRegistryChanges:

    def test_inactive_fields_are_ignored(self, fields):
        fields[1].active = False

        data = build_draft_ruleset(fields).validate({'quote': 'x' * 500})

        assert data == {}

    def test_rebuilt_ruleset_sees_new_limit(self, fields):
        ruleset = build_draft_ruleset(fields)
        fields[2].max_length = 20

        with pytest.raises(ValidationError):
            ruleset.validate({'nickname': 'x' * 10})
        assert build_draft_ruleset(fields).validate({'nickname': 'x' * 10})

    def test_keys_shadowing_model_attributes(self):
        ruleset = build_draft_ruleset([
            make_field('json', FieldType.TEXT, 'Json', order=1),
            make_field('copy', FieldType.TEXT, 'Copy', order=2, max_length=3),
        ])

        assert ruleset.validate({'json': 'a', 'copy': 'b'}) == {'json': 'a', 'copy': 'b'}

    def test_unknown_type_is_skipped(self):
        field = make_field('birthday', FieldType.TEXT, 'Geburtstag')
        field.type = 'DATE'

        assert build_draft_ruleset([field]).keys == []
