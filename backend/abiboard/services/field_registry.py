"""
Field Registry Service - Admin management of profile field definitions

Handles:
- Listing, creating and updating field definitions
- Bulk reordering as one transaction
- Seeding the default fields and copying legacy profile columns
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, func
from typing import Dict, List, Optional

from abiboard.core.exceptions import ConflictError, FieldNotFoundError
from abiboard.core.logging_config import logger
from abiboard.models.field_value import FieldValue
from abiboard.models.profile import Profile
from abiboard.models.profile_field import FieldType, ProfileField, MUTABLE_FIELD_ATTRIBUTES, TEXT_FIELD_TYPES
from abiboard.schemas.profile_field import ProfileFieldCreate, ProfileFieldUpdate, FieldOrder
from abiboard.services.field_values import SingleImageValue, TextValue, write_payload


DUPLICATE_KEY_MESSAGE = "Ein Feld mit diesem Schlüssel existiert bereits."

# Attributes that cannot be cleared with an explicit null
NON_NULLABLE_ATTRIBUTES = {"label", "required", "order", "active"}

DEFAULT_FIELDS: List[Dict] = [
    {
        "key": "imageUrl",
        "type": FieldType.SINGLE_IMAGE,
        "label": "Profilbild",
        "order": 1,
    },
    {
        "key": "quote",
        "type": FieldType.TEXTAREA,
        "label": "Lieblingszitat",
        "placeholder": 'z.B. "Carpe Diem"',
        "max_length": 500,
        "rows": 3,
        "order": 2,
    },
    {
        "key": "plansAfter",
        "type": FieldType.TEXTAREA,
        "label": "Pläne nach dem Abi",
        "max_length": 1000,
        "rows": 4,
        "order": 3,
    },
    {
        "key": "memory",
        "type": FieldType.TEXTAREA,
        "label": "Schönste Erinnerung",
        "max_length": 1000,
        "rows": 4,
        "order": 4,
    },
    {
        "key": "memoryImages",
        "type": FieldType.MULTI_IMAGE,
        "label": "Erinnerungsfotos",
        "max_files": 3,
        "order": 5,
    },
]

# Field key -> legacy Profile column it replaces
LEGACY_PROFILE_COLUMNS = {
    "imageUrl": "image_url",
    "quote": "quote",
    "plansAfter": "plans_after",
    "memory": "memory",
}


class FieldRegistryService:
    """Service for the ordered registry of profile fields"""

    # ==================== READ ====================

    async def list_fields(self, db: AsyncSession, active_only: bool = False) -> List[ProfileField]:
        query = select(ProfileField)
        if active_only:
            query = query.where(ProfileField.active.is_(True))
        query = query.order_by(ProfileField.order, ProfileField.created_at)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_field(self, db: AsyncSession, field_id: str) -> ProfileField:
        field = await db.get(ProfileField, str(field_id))
        if not field:
            raise FieldNotFoundError(str(field_id))
        return field

    async def get_field_by_key(self, db: AsyncSession, key: str) -> Optional[ProfileField]:
        return await db.scalar(select(ProfileField).where(ProfileField.key == key))

    # ==================== WRITE ====================

    async def create_field(self, db: AsyncSession, data: ProfileFieldCreate) -> ProfileField:
        """
        Create a field definition.

        Raises ConflictError if the key is taken. Without an explicit order
        the field is appended after the current last field.
        """
        if await self.get_field_by_key(db, data.key):
            raise ConflictError(DUPLICATE_KEY_MESSAGE, field="key")

        order = data.order
        if order is None:
            max_order = await db.scalar(select(func.max(ProfileField.order)))
            order = (max_order or 0) + 1

        field = ProfileField(
            key=data.key,
            type=data.type,
            label=data.label,
            placeholder=data.placeholder,
            max_length=data.max_length,
            max_files=data.max_files,
            rows=data.rows,
            required=data.required,
            order=order,
            active=True,
        )
        db.add(field)

        try:
            await db.commit()
        except IntegrityError:
            # Concurrent create with the same key
            await db.rollback()
            raise ConflictError(DUPLICATE_KEY_MESSAGE, field="key")

        await db.refresh(field)
        logger.info(f"[Fields] Created field {field.key} ({field.type.value})")
        return field

    async def update_field(self, db: AsyncSession, field_id: str, data: ProfileFieldUpdate) -> ProfileField:
        """Apply the mutable attributes present in ``data``"""
        field = await self.get_field(db, field_id)

        changes = data.model_dump(exclude_unset=True)
        for attribute, value in changes.items():
            if attribute not in MUTABLE_FIELD_ATTRIBUTES:
                continue
            if value is None and attribute in NON_NULLABLE_ATTRIBUTES:
                continue
            setattr(field, attribute, value)

        await db.commit()
        await db.refresh(field)

        logger.info(f"[Fields] Updated field {field.key}: {sorted(changes)}")
        return field

    async def reorder_fields(self, db: AsyncSession, field_orders: List[FieldOrder]) -> List[ProfileField]:
        """Apply all new positions or none of them"""
        ids = [str(item.id) for item in field_orders]
        result = await db.execute(select(ProfileField).where(ProfileField.id.in_(ids)))
        fields = {field.id: field for field in result.scalars().all()}

        for field_id in ids:
            if field_id not in fields:
                raise FieldNotFoundError(field_id)

        for item in field_orders:
            fields[str(item.id)].order = item.order

        await db.commit()
        logger.info(f"[Fields] Reordered {len(ids)} fields")
        return await self.list_fields(db)

    # ==================== STARTUP ====================

    async def seed_default_fields(self, db: AsyncSession) -> int:
        """Create the default fields when the registry is empty"""
        existing = await db.scalar(select(func.count(ProfileField.id)))
        if existing:
            return 0

        for definition in DEFAULT_FIELDS:
            db.add(ProfileField(**definition))
        await db.commit()

        logger.info(f"[Fields] Seeded {len(DEFAULT_FIELDS)} default fields")
        return len(DEFAULT_FIELDS)

    async def migrate_legacy_values(self, db: AsyncSession) -> int:
        """
        Copy legacy profile columns into field values.

        Only profiles without a value row for the matching field are
        touched, so running this on every startup is safe.
        """
        fields = {}
        for key in LEGACY_PROFILE_COLUMNS:
            field = await self.get_field_by_key(db, key)
            if field:
                fields[key] = field
        if not fields:
            return 0

        result = await db.execute(select(Profile))
        profiles = result.scalars().all()

        existing_rows = await db.execute(select(FieldValue.profile_id, FieldValue.field_id))
        existing = {(row.profile_id, row.field_id) for row in existing_rows.all()}

        migrated = 0
        for profile in profiles:
            for key, field in fields.items():
                legacy = getattr(profile, LEGACY_PROFILE_COLUMNS[key])
                if not legacy or (profile.id, field.id) in existing:
                    continue

                if field.type == FieldType.SINGLE_IMAGE:
                    payload = SingleImageValue(legacy)
                elif field.type in TEXT_FIELD_TYPES:
                    payload = TextValue(legacy)
                else:
                    continue

                row = FieldValue(profile_id=profile.id, field_id=field.id)
                write_payload(row, payload)
                db.add(row)
                migrated += 1

        if migrated:
            await db.commit()
            logger.info(f"[Fields] Migrated {migrated} legacy profile values")
        return migrated


field_registry_service = FieldRegistryService()
