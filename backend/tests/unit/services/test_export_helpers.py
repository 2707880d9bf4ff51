"""
Unit Tests for TSV export helpers
"""
import pytest

from abiboard.models.user import User
from abiboard.services.export import (
    archive_path,
    assign_folder_names,
    build_tsv,
    escape_tsv_value,
    sanitize_filename,
)


class TestEscape:

    @pytest.mark.parametrize('value, expected', [
        (None, ''),
        ('plain', 'plain'),
        ('tab\there', '"tab\there"'),
        ('line\nbreak', '"line\nbreak"'),
        ('carriage\rreturn', '"carriage\rreturn"'),
        ('say "hi"', '"say ""hi"""'),
    ])
    def test_escape(self, value, expected):
        assert escape_tsv_value(value) == expected

    def test_build_tsv_has_bom_and_newlines(self):
        tsv = build_tsv(['A', 'B'], [['1', '2'], ['x\ty', '']])

        assert tsv == '\ufeffA\tB\n1\t2\n"x\ty"\t'


class TestFilenames:

    @pytest.mark.parametrize('name, expected', [
        ('Müller_Jörg', 'mueller_joerg'),
        ('Straße', 'strasse'),
        ('Ärger  & Co.', 'aerger_co'),
        ('__x__', 'x'),
        ('memoryImages', 'memoryimages'),
    ])
    def test_sanitize(self, name, expected):
        assert sanitize_filename(name) == expected

    def test_archive_path(self):
        assert archive_path('mueller_anna', 'imageUrl', '/uploads/profiles/u/a.png') == \
            'steckbrief_bilder/mueller_anna/imageurl.png'
        assert archive_path('mueller_anna', 'memoryImages', '/uploads/profiles/u/b.webp', 2) == \
            'steckbrief_bilder/mueller_anna/memoryimages_2.webp'

    def test_archive_path_defaults_to_jpg(self):
        assert archive_path('a', 'imageUrl', '/uploads/profiles/u/noext').endswith('imageurl.jpg')

    def test_duplicate_folder_names(self):
        students = [
            User(id='1', first_name='Anna', last_name='Müller'),
            User(id='2', first_name='Anna', last_name='Müller'),
            User(id='3', first_name='Ben', last_name='Schmidt'),
            User(id='4', first_name='Anna', last_name='Müller'),
        ]

        assert assign_folder_names(students) == {
            '1': 'mueller_anna',
            '2': 'mueller_anna_2',
            '3': 'schmidt_ben',
            '4': 'mueller_anna_3',
        }
