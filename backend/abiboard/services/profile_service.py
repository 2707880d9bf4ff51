"""
Profile Service - Draft saves and submission of student profiles

Handles:
- Loading a student's profile and its field values
- Draft saves (JSON or multipart with image uploads)
- Submit / retract via the submission state machine
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import FormData, UploadFile

from abiboard.core.exceptions import ConflictError, InvalidImageError, ValidationError
from abiboard.core.logging_config import logger
from abiboard.core.types import utcnow
from abiboard.models.field_value import FieldValue
from abiboard.models.profile import Profile
from abiboard.models.profile_field import FieldType, ProfileField, TEXT_FIELD_TYPES
from abiboard.models.student_activity import ActivityAction
from abiboard.models.user import User
from abiboard.services import submission
from abiboard.services.activity import log_student_activity
from abiboard.services.deadline import SubmissionWindow
from abiboard.services.field_registry import field_registry_service
from abiboard.services.field_schema import build_draft_ruleset
from abiboard.services.field_values import (
    FieldPayload,
    image_references,
    payload_from_data,
    read_payload,
    write_payload,
)
from abiboard.services.file_upload import delete_image_file, save_image_file, validate_image_file
from abiboard.services.required_fields import check_required_fields


INVALID_REFERENCE_MESSAGE = "{label}: Ungültige Bildreferenz."
INVALID_PAYLOAD_MESSAGE = "Ungültige Anfrage."
CONCURRENT_SAVE_MESSAGE = "Der Steckbrief wurde gleichzeitig geändert. Bitte versuche es erneut."


# ==================== Draft update input ====================

@dataclass
class UploadedImage:
    filename: str
    content_type: Optional[str]
    data: bytes


@dataclass
class DraftUpdate:
    """
    Parsed draft save request.

    ``values`` holds text values and image references by field key.
    ``kept`` lists the images of a multi-image field the client keeps,
    ``new_images`` the files it adds and ``single_images`` replacement
    files for single-image fields. Keys absent everywhere stay unchanged.
    """
    values: Dict[str, Any] = field(default_factory=dict)
    kept: Dict[str, List[str]] = field(default_factory=dict)
    new_images: Dict[str, List[UploadedImage]] = field(default_factory=dict)
    single_images: Dict[str, UploadedImage] = field(default_factory=dict)


def draft_update_from_json(body: Any) -> DraftUpdate:
    """``{key: text | reference | null | [references]}``"""
    if not isinstance(body, dict):
        raise ValidationError(INVALID_PAYLOAD_MESSAGE)
    return DraftUpdate(values=dict(body))


async def _read_upload(upload: UploadFile) -> UploadedImage:
    data = await upload.read()
    return UploadedImage(
        filename=upload.filename or "upload",
        content_type=upload.content_type,
        data=data,
    )


async def draft_update_from_form(form: FormData) -> DraftUpdate:
    """
    Parse a multipart draft save.

    Text fields are sent by key; ``image_<key>`` replaces a single image,
    ``clear_<key>`` removes it, ``existing_<key>`` is a JSON list of kept
    references and ``new_<key>`` carries added files of a multi-image field.
    """
    update = DraftUpdate()

    for name, value in form.multi_items():
        if isinstance(value, UploadFile):
            if name.startswith("image_"):
                if value.filename:
                    update.single_images[name[len("image_"):]] = await _read_upload(value)
            elif name.startswith("new_"):
                if value.filename:
                    update.new_images.setdefault(name[len("new_"):], []).append(await _read_upload(value))
            continue

        if name.startswith("clear_"):
            if value in ("true", "1", "on"):
                update.values[name[len("clear_"):]] = None
        elif name.startswith("existing_"):
            try:
                kept = json.loads(value or "[]")
            except json.JSONDecodeError:
                raise ValidationError(INVALID_PAYLOAD_MESSAGE, field=name)
            if not isinstance(kept, list) or not all(isinstance(ref, str) for ref in kept):
                raise ValidationError(INVALID_PAYLOAD_MESSAGE, field=name)
            update.kept[name[len("existing_"):]] = kept
        else:
            update.values[name] = value

    return update


# ==================== Service ====================

class ProfileService:
    """Service for a student's own profile"""

    async def get_or_create_profile(self, db: AsyncSession, user: User) -> Profile:
        """Profiles are created on first access"""
        profile = await db.scalar(select(Profile).where(Profile.user_id == user.id))
        if profile:
            return profile

        profile = Profile(user_id=user.id)
        db.add(profile)
        try:
            await db.commit()
        except IntegrityError:
            # Created by a parallel request
            await db.rollback()
            return await db.scalar(select(Profile).where(Profile.user_id == user.id))

        await db.refresh(profile)
        logger.log_profile_event("created", profile.id, user_id=str(user.id))
        return profile

    async def load_rows(self, db: AsyncSession, profile: Profile) -> Dict[str, FieldValue]:
        """Stored value rows by field id, including rows of inactive fields"""
        result = await db.execute(select(FieldValue).where(FieldValue.profile_id == profile.id))
        return {row.field_id: row for row in result.scalars().all()}

    async def load_values(
        self,
        db: AsyncSession,
        profile: Profile,
        fields: Optional[List[ProfileField]] = None,
    ) -> Dict[str, FieldPayload]:
        """Payloads of the active fields by key"""
        if fields is None:
            fields = await field_registry_service.list_fields(db, active_only=True)
        rows = await self.load_rows(db, profile)
        return {f.key: read_payload(f, rows.get(f.id)) for f in fields if f.active}

    # ==================== Draft save ====================

    async def prepare_draft_save(self, db: AsyncSession, user: User, window: SubmissionWindow) -> Profile:
        """Deadline and state checks, run before the request body is read"""
        window.ensure_open()
        profile = await self.get_or_create_profile(db, user)
        submission.ensure_editable(profile, window)
        return profile

    async def save_draft(
        self,
        db: AsyncSession,
        user: User,
        profile: Profile,
        update: DraftUpdate,
        window: SubmissionWindow,
    ) -> Dict[str, FieldPayload]:
        """
        Save a partial draft.

        Everything is validated before the first file is written. All
        values are stored in one transaction; on failure the files written
        by this call are removed again. Images dropped from a field are
        deleted only after the commit.
        """
        submission.ensure_editable(profile, window)

        fields = await field_registry_service.list_fields(db, active_only=True)
        fields_by_key = {f.key: f for f in fields}
        rows = await self.load_rows(db, profile)
        current = {f.key: read_payload(f, rows.get(f.id)) for f in fields}

        data = self._collect_draft_data(update, fields_by_key, current)
        validated = build_draft_ruleset(fields).validate(data)
        self._validate_uploads(update, fields_by_key)

        written: List[str] = []
        removed: Set[str] = set()
        try:
            new_payloads = await self._store_uploads(user, update, fields_by_key, validated, written)

            for key, payload in new_payloads.items():
                f = fields_by_key[key]
                row = rows.get(f.id)
                if row is None:
                    row = FieldValue(profile_id=profile.id, field_id=f.id)
                    db.add(row)
                write_payload(row, payload)
                row.updated_at = utcnow()

                removed.update(set(image_references(current[key])) - set(image_references(payload)))

            profile.updated_at = utcnow()
            await db.commit()
        except Exception as e:
            await db.rollback()
            for reference in written:
                await delete_image_file(reference)
            if isinstance(e, IntegrityError):
                raise ConflictError(CONCURRENT_SAVE_MESSAGE)
            raise

        for reference in removed:
            await delete_image_file(reference)

        logger.log_profile_event(
            "draft_saved",
            profile.id,
            user_id=str(user.id),
            fields=sorted(new_payloads),
            uploaded=len(written),
        )
        merged = dict(current)
        merged.update(new_payloads)
        return merged

    def _collect_draft_data(
        self,
        update: DraftUpdate,
        fields_by_key: Mapping[str, ProfileField],
        current: Mapping[str, FieldPayload],
    ) -> Dict[str, Any]:
        """
        Merge the request into one dict per field key for validation.

        New uploads are represented by their file names here and replaced by
        stored references once the files are written.
        """
        data: Dict[str, Any] = {}

        for key, value in update.values.items():
            f = fields_by_key.get(key)
            if f is None:
                continue
            if f.type == FieldType.SINGLE_IMAGE:
                stored = image_references(current[key])
                if value not in (None, "") and (not isinstance(value, str) or value not in stored):
                    raise ValidationError(INVALID_REFERENCE_MESSAGE.format(label=f.label), field=key)
                data[key] = value or None
            elif f.type == FieldType.MULTI_IMAGE:
                data[key] = self._kept_references(f, value, current[key])
            else:
                data[key] = value

        for key, kept in update.kept.items():
            f = fields_by_key.get(key)
            if f is None or f.type != FieldType.MULTI_IMAGE:
                continue
            data[key] = self._kept_references(f, kept, current[key])

        for key, uploads in update.new_images.items():
            f = fields_by_key.get(key)
            if f is None or f.type != FieldType.MULTI_IMAGE or not uploads:
                continue
            # Without an explicit list the stored images are kept
            base = data.get(key, list(image_references(current[key])))
            data[key] = list(base) + [upload.filename for upload in uploads]

        for key, upload in update.single_images.items():
            f = fields_by_key.get(key)
            if f is None or f.type != FieldType.SINGLE_IMAGE:
                continue
            data[key] = upload.filename

        return data

    def _kept_references(self, f: ProfileField, value: Any, payload: FieldPayload) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            # Left for the ruleset to reject
            return value
        stored = set(image_references(payload))
        for reference in value:
            if not isinstance(reference, str) or reference not in stored:
                raise ValidationError(INVALID_REFERENCE_MESSAGE.format(label=f.label), field=f.key)
        return list(value)

    def _validate_uploads(self, update: DraftUpdate, fields_by_key: Mapping[str, ProfileField]) -> None:
        uploads = [(key, upload) for key, upload in update.single_images.items()]
        uploads += [(key, upload) for key, items in update.new_images.items() for upload in items]

        for key, upload in uploads:
            f = fields_by_key.get(key)
            if f is None:
                continue
            result = validate_image_file(upload.data, upload.content_type)
            if not result.valid:
                raise InvalidImageError(f"{f.label}: {result.error}", field=key)

    async def _store_uploads(
        self,
        user: User,
        update: DraftUpdate,
        fields_by_key: Mapping[str, ProfileField],
        validated: Dict[str, Any],
        written: List[str],
    ) -> Dict[str, FieldPayload]:
        """Write uploaded files and build the final payload per field"""
        payloads: Dict[str, FieldPayload] = {}

        for key, raw in validated.items():
            f = fields_by_key[key]

            if f.type == FieldType.SINGLE_IMAGE and key in update.single_images:
                raw = await self._store_one(user, key, update.single_images[key], written)

            elif f.type == FieldType.MULTI_IMAGE and update.new_images.get(key):
                uploads = update.new_images[key]
                kept = list(raw)[: len(raw) - len(uploads)]
                raw = kept + [await self._store_one(user, key, upload, written) for upload in uploads]

            payloads[key] = payload_from_data(f, raw)

        return payloads

    async def _store_one(self, user: User, key: str, upload: UploadedImage, written: List[str]) -> str:
        result = validate_image_file(upload.data, upload.content_type)
        reference = await save_image_file(upload.data, str(user.id), key, result.extension)
        written.append(reference)
        return reference

    # ==================== Submission ====================

    async def submit(self, db: AsyncSession, user: User, window: SubmissionWindow) -> Profile:
        """
        Submit the profile. Resubmitting an already submitted profile is
        accepted and renews the submission timestamp.
        """
        window.ensure_open()
        profile = await self.get_or_create_profile(db, user)

        fields = await field_registry_service.list_fields(db, active_only=True)
        values = await self.load_values(db, profile, fields)
        missing = check_required_fields(fields, values)

        submission.submit(profile, window, missing)
        await db.commit()

        logger.log_profile_event("submitted", profile.id, user_id=str(user.id))
        await log_student_activity(db, user.id, ActivityAction.SUBMIT)
        # The activity helper may roll back the session, which expires the profile
        await db.refresh(profile)
        return profile

    async def retract(self, db: AsyncSession, user: User, window: SubmissionWindow) -> Profile:
        window.ensure_open()
        profile = await self.get_or_create_profile(db, user)

        submission.retract(profile, window)
        await db.commit()

        logger.log_profile_event("retracted", profile.id, user_id=str(user.id))
        await log_student_activity(db, user.id, ActivityAction.RETRACT)
        # The activity helper may roll back the session, which expires the profile
        await db.refresh(profile)
        return profile


profile_service = ProfileService()


def render_values(fields: List[ProfileField], values: Mapping[str, FieldPayload]) -> Dict[str, Any]:
    """JSON values for the client; missing text renders as an empty string"""
    rendered: Dict[str, Any] = {}
    for f in fields:
        payload = values.get(f.key)
        value = payload.to_json() if payload is not None else None
        if f.type in TEXT_FIELD_TYPES and value is None:
            value = ""
        if f.type == FieldType.MULTI_IMAGE and value is None:
            value = []
        rendered[f.key] = value
    return rendered
