"""
Integration Tests for the complete Steckbrief flow
"""
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from conftest import make_image
from abiboard.models import FieldValue, Profile, ProfileStatus

PROFILE_URL = '/api/v1/profile'
ADMIN_FIELDS_URL = '/api/v1/admin/profile-fields'


async def create_quote_field(client: AsyncClient, admin_headers: dict) -> dict:
    response = await client.post(ADMIN_FIELDS_URL, json={
        'key': 'quote',
        'type': 'TEXTAREA',
        'label': 'Lieblingszitat',
        'max_length': 500,
        'required': True,
    }, headers=admin_headers)
    assert response.status_code == 201
    return response.json()


class TestSubmissionFlow:
    """Draft, submit, retract and edit again"""

    @pytest.mark.asyncio
    async def test_complete_lifecycle(self, client: AsyncClient, admin_headers, student_headers, db_session):
        await create_quote_field(client, admin_headers)

        # Empty required field is fine while drafting
        response = await client.patch(PROFILE_URL, json={'quote': ''}, headers=student_headers)
        assert response.status_code == 200

        response = await client.post(f'{PROFILE_URL}/submit', headers=student_headers)
        assert response.status_code == 400
        assert response.json()['error']['details']['errors'] == ['Lieblingszitat ist ein Pflichtfeld.']

        # Fill in and submit
        response = await client.patch(PROFILE_URL, json={'quote': 'Carpe diem'}, headers=student_headers)
        assert response.json()['values']['quote'] == 'Carpe diem'

        response = await client.post(f'{PROFILE_URL}/submit', headers=student_headers)
        assert response.status_code == 200
        assert response.json()['status'] == 'SUBMITTED'
        submitted_at = datetime.fromisoformat(response.json()['submitted_at'])

        profile = await client.get(PROFILE_URL, headers=student_headers)
        assert profile.json()['status'] == 'SUBMITTED'
        assert datetime.fromisoformat(profile.json()['submitted_at']) == submitted_at

        # Editing a submitted profile changes nothing
        response = await client.patch(PROFILE_URL, json={'quote': 'Heimlich geändert'}, headers=student_headers)
        assert response.status_code == 409
        profile = await client.get(PROFILE_URL, headers=student_headers)
        assert profile.json()['values']['quote'] == 'Carpe diem'

        # Retract and edit again
        response = await client.post(f'{PROFILE_URL}/retract', headers=student_headers)
        assert response.status_code == 200
        assert response.json()['status'] == 'DRAFT'
        assert response.json()['submitted_at'] is None

        response = await client.patch(PROFILE_URL, json={'quote': 'Veni, vidi, vici'}, headers=student_headers)
        assert response.status_code == 200
        assert response.json()['values']['quote'] == 'Veni, vidi, vici'

        stored = await db_session.scalar(select(Profile))
        assert stored.status == ProfileStatus.DRAFT

    @pytest.mark.asyncio
    async def test_saving_same_value_twice(self, client: AsyncClient, admin_headers, student_headers, db_session):
        await create_quote_field(client, admin_headers)

        first = await client.patch(PROFILE_URL, json={'quote': 'Carpe diem'}, headers=student_headers)
        second = await client.patch(PROFILE_URL, json={'quote': 'Carpe diem'}, headers=student_headers)

        assert first.json()['values'] == second.json()['values']
        rows = (await db_session.execute(select(FieldValue))).scalars().all()
        assert len(rows) == 1
        assert rows[0].text_value == 'Carpe diem'


class TestImageLimits:
    """Too many images in one request leave the stored images untouched"""

    @pytest.mark.asyncio
    async def test_rejected_upload_keeps_prior_state(self, client: AsyncClient, admin_headers, student_headers, default_fields):
        memory_images = next(f for f in default_fields if f.key == 'memoryImages')
        response = await client.patch(
            f'{ADMIN_FIELDS_URL}/{memory_images.id}',
            json={'max_files': 3},
            headers=admin_headers,
        )
        assert response.status_code == 200

        first = await client.patch(
            PROFILE_URL,
            files=[('new_memoryImages', ('1.png', make_image('PNG'), 'image/png'))],
            headers=student_headers,
        )
        prior = first.json()['values']['memoryImages']
        assert len(prior) == 1

        response = await client.patch(
            PROFILE_URL,
            data={'existing_memoryImages': '[]'},
            files=[
                ('new_memoryImages', (f'{i}.png', make_image('PNG'), 'image/png'))
                for i in range(4)
            ],
            headers=student_headers,
        )
        assert response.status_code == 400

        profile = await client.get(PROFILE_URL, headers=student_headers)
        assert profile.json()['values']['memoryImages'] == prior


class TestDeadlineFlow:
    """After the deadline nothing can change"""

    @pytest.mark.asyncio
    async def test_everything_rejected_after_deadline(self, client: AsyncClient, student_headers, default_fields, db_session, set_deadline, png_bytes):
        set_deadline(timedelta(days=1))
        await client.patch(PROFILE_URL, json={'quote': 'Vorher'}, headers=student_headers)

        set_deadline(timedelta(seconds=-1))

        attempts = [
            client.patch(PROFILE_URL, json={'quote': 'Nachher'}, headers=student_headers),
            client.patch(
                PROFILE_URL,
                files={'image_imageUrl': ('me.png', png_bytes, 'image/png')},
                headers=student_headers,
            ),
            client.post(f'{PROFILE_URL}/submit', headers=student_headers),
            client.post(f'{PROFILE_URL}/retract', headers=student_headers),
        ]
        for attempt in attempts:
            response = await attempt
            assert response.status_code == 403
            assert response.json()['error']['code'] == 'DEADLINE_EXPIRED'

        profile = await client.get(PROFILE_URL, headers=student_headers)
        assert profile.json()['status'] == 'DRAFT'
        assert profile.json()['values']['quote'] == 'Vorher'
        assert profile.json()['values']['imageUrl'] is None

        rows = (await db_session.execute(select(FieldValue))).scalars().all()
        assert len(rows) == 1
