"""
Unit Tests for image validation and storage
"""
import pytest

from conftest import make_image
from abiboard.core.config import settings
from abiboard.services.file_upload import (
    FILE_TOO_LARGE_MESSAGE,
    INVALID_TYPE_MESSAGE,
    UNREADABLE_IMAGE_MESSAGE,
    delete_image_file,
    generate_unique_filename,
    resolve_reference,
    save_image_file,
    validate_image_file,
)


class TestValidateImage:

    @pytest.mark.parametrize('fmt, content_type, extension', [
        ('PNG', 'image/png', '.png'),
        ('JPEG', 'image/jpeg', '.jpg'),
        ('WEBP', 'image/webp', '.webp'),
    ])
    def test_valid_images(self, fmt, content_type, extension):
        result = validate_image_file(make_image(fmt), content_type)

        assert result.valid is True
        assert result.error is None
        assert result.extension == extension

    def test_disallowed_content_type(self):
        result = validate_image_file(make_image('GIF'), 'image/gif')

        assert result.valid is False
        assert result.error == INVALID_TYPE_MESSAGE

    def test_gif_declared_as_png(self):
        result = validate_image_file(make_image('GIF'), 'image/png')

        assert result.valid is False
        assert result.error == INVALID_TYPE_MESSAGE

    def test_not_an_image(self):
        result = validate_image_file(b'definitely not an image', 'image/png')

        assert result.valid is False
        assert result.error == UNREADABLE_IMAGE_MESSAGE

    def test_too_large(self):
        result = validate_image_file(b'0' * (settings.MAX_IMAGE_SIZE + 1), 'image/png')

        assert result.valid is False
        assert result.error == FILE_TOO_LARGE_MESSAGE


class TestStorage:

    def test_unique_filename_format(self):
        name = generate_unique_filename('imageUrl', '.png')

        prefix, timestamp, random_part = name[:-len('.png')].split('-')
        assert prefix == 'imageUrl'
        assert timestamp.isdigit()
        assert len(random_part) == 12
        assert name.endswith('.png')

    @pytest.mark.asyncio
    async def test_save_and_delete(self):
        data = make_image('PNG')

        reference = await save_image_file(data, 'user-1', 'imageUrl', '.png')

        assert reference.startswith('/uploads/profiles/user-1/imageUrl-')
        path = resolve_reference(reference)
        assert path.read_bytes() == data

        assert await delete_image_file(reference) is True
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_delete_missing_file_does_not_raise(self):
        assert await delete_image_file('/uploads/profiles/user-1/missing.png') is False

    @pytest.mark.parametrize('reference', [
        '/uploads/../secret.txt',
        '/uploads/profiles/../../etc/passwd',
        '/etc/passwd',
        '',
        '/uploads/',
    ])
    def test_references_outside_upload_dir(self, reference):
        assert resolve_reference(reference) is None

    def test_reference_maps_into_upload_dir(self):
        path = resolve_reference('/uploads/profiles/u/a.png')

        assert path == (settings.UPLOAD_DIR / 'profiles' / 'u' / 'a.png').resolve()
