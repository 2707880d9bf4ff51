"""
Profile Export Service - Print production output

Builds the TSV used by InDesign data merge and the ZIP archive holding the
images it references. Image cells in the TSV contain the path of the file
inside the archive, so both exports share the folder naming below.
"""

import asyncio
import io
import re
import zipfile
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from abiboard.core.logging_config import logger
from abiboard.models.field_value import FieldValue
from abiboard.models.profile import Profile
from abiboard.models.profile_field import FieldType, ProfileField, IMAGE_FIELD_TYPES
from abiboard.models.user import Gender, User, UserRole
from abiboard.services.field_registry import field_registry_service
from abiboard.services.field_values import FieldPayload, MultiImageValue, SingleImageValue, TextValue, read_payload
from abiboard.services.file_upload import resolve_reference


BOM = "\ufeff"
IMAGE_ARCHIVE_ROOT = "steckbrief_bilder"
DEFAULT_IMAGE_EXTENSION = ".jpg"

TSV_FILENAME = "steckbriefe.tsv"
ZIP_FILENAME = "steckbrief_bilder.zip"

STATIC_HEADERS = ["Vorname", "Nachname", "Geschlecht", "Status"]

GENDER_CODES = {Gender.MALE: "m", Gender.FEMALE: "w"}

UMLAUTS = {"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"}


# ==================== TSV helpers ====================

def escape_tsv_value(value: Optional[str]) -> str:
    """Quote values containing tabs, line breaks or quotes; quotes are doubled"""
    if value is None:
        return ""
    text = str(value)
    if any(char in text for char in ("\t", "\n", "\r", '"')):
        return '"' + text.replace('"', '""') + '"'
    return text


def build_tsv(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """TSV with a UTF-8 BOM, lines separated by \\n"""
    lines = ["\t".join(escape_tsv_value(cell) for cell in headers)]
    lines += ["\t".join(escape_tsv_value(cell) for cell in row) for row in rows]
    return BOM + "\n".join(lines)


def sanitize_filename(name: str) -> str:
    name = name.lower()
    for umlaut, replacement in UMLAUTS.items():
        name = name.replace(umlaut, replacement)
    name = re.sub(r"[^a-z0-9]", "_", name)
    name = re.sub(r"_+", "_", name)
    return name.strip("_")


def image_extension(reference: str) -> str:
    return PurePosixPath(reference).suffix or DEFAULT_IMAGE_EXTENSION


def archive_path(folder: str, field_key: str, reference: str, index: Optional[int] = None) -> str:
    """steckbrief_bilder/<folder>/<key>[_<index>]<ext>"""
    name = sanitize_filename(field_key)
    if index is not None:
        name = f"{name}_{index}"
    return f"{IMAGE_ARCHIVE_ROOT}/{folder}/{name}{image_extension(reference)}"


def assign_folder_names(students: Sequence[User]) -> Dict[str, str]:
    """One folder per student, duplicates get _2, _3, ..."""
    used: Dict[str, int] = {}
    folders: Dict[str, str] = {}
    for student in students:
        base = sanitize_filename(f"{student.last_name}_{student.first_name}")
        count = used.get(base, 0)
        used[base] = count + 1
        folders[student.id] = f"{base}_{count + 1}" if count else base
    return folders


# ==================== Export data ====================

@dataclass
class StudentExportRow:
    student: User
    profile: Optional[Profile]
    folder: str
    values: Dict[str, FieldPayload]


class ProfileExportService:
    """Reads profiles for export; never writes"""

    async def _load_rows(self, db: AsyncSession, fields: List[ProfileField]) -> List[StudentExportRow]:
        result = await db.execute(
            select(User)
            .where(User.role == UserRole.STUDENT, User.is_active.is_(True))
            .order_by(User.last_name, User.first_name)
        )
        students = list(result.scalars().all())

        profiles_result = await db.execute(select(Profile))
        profiles = {p.user_id: p for p in profiles_result.scalars().all()}

        values_result = await db.execute(select(FieldValue))
        stored: Dict[Tuple[str, str], FieldValue] = {
            (row.profile_id, row.field_id): row for row in values_result.scalars().all()
        }

        folders = assign_folder_names(students)
        rows = []
        for student in students:
            profile = profiles.get(student.id)
            values = {
                f.key: read_payload(f, stored.get((profile.id, f.id)) if profile else None)
                for f in fields
            }
            rows.append(StudentExportRow(student, profile, folders[student.id], values))
        return rows

    # ==================== TSV ====================

    def build_headers(self, fields: List[ProfileField]) -> List[str]:
        headers = list(STATIC_HEADERS)
        for f in fields:
            if f.type == FieldType.MULTI_IMAGE:
                headers += [f"@{f.label}_{i}" for i in range(1, f.effective_max_files + 1)]
            elif f.type == FieldType.SINGLE_IMAGE:
                headers.append(f"@{f.label}")
            else:
                headers.append(f.label)
        return headers

    def build_row(self, row: StudentExportRow, fields: List[ProfileField]) -> List[str]:
        student = row.student
        cells = [
            student.first_name,
            student.last_name,
            GENDER_CODES.get(student.gender, ""),
            row.profile.status.value if row.profile else "",
        ]

        for f in fields:
            payload = row.values[f.key]
            if isinstance(payload, TextValue):
                cells.append(payload.text or "")
            elif isinstance(payload, SingleImageValue):
                cells.append(archive_path(row.folder, f.key, payload.reference) if payload.reference else "")
            elif isinstance(payload, MultiImageValue):
                # Extra images beyond max_files have no column
                for i in range(f.effective_max_files):
                    if i < len(payload.references):
                        cells.append(archive_path(row.folder, f.key, payload.references[i], i + 1))
                    else:
                        cells.append("")
        return cells

    async def export_tsv(self, db: AsyncSession) -> str:
        fields = await field_registry_service.list_fields(db, active_only=True)
        rows = await self._load_rows(db, fields)

        tsv = build_tsv(self.build_headers(fields), [self.build_row(row, fields) for row in rows])
        logger.info(f"[Export] Profile TSV with {len(rows)} students, {len(fields)} fields")
        return tsv

    # ==================== Images ====================

    async def collect_image_entries(self, db: AsyncSession, fields: List[ProfileField]) -> List[Tuple[str, str]]:
        """(reference, archive path) of every stored image"""
        entries: List[Tuple[str, str]] = []
        for row in await self._load_rows(db, fields):
            for f in fields:
                payload = row.values[f.key]
                if isinstance(payload, SingleImageValue) and payload.reference:
                    entries.append((payload.reference, archive_path(row.folder, f.key, payload.reference)))
                elif isinstance(payload, MultiImageValue):
                    for i, reference in enumerate(payload.references[: f.effective_max_files], start=1):
                        entries.append((reference, archive_path(row.folder, f.key, reference, i)))
        return entries

    async def image_fields(self, db: AsyncSession) -> List[ProfileField]:
        fields = await field_registry_service.list_fields(db, active_only=True)
        return [f for f in fields if f.type in IMAGE_FIELD_TYPES]

    async def export_images_zip(self, db: AsyncSession, fields: List[ProfileField]) -> bytes:
        """ZIP of all profile images; files missing on disk are skipped"""
        entries = await self.collect_image_entries(db, fields)

        def create_zip_sync() -> Tuple[bytes, int]:
            buffer = io.BytesIO()
            written = 0
            with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
                for reference, arcname in entries:
                    path = resolve_reference(reference)
                    if path is None or not path.is_file():
                        logger.warning(f"[Export] Missing image file: {reference}")
                        continue
                    zf.write(path, arcname)
                    written += 1
            return buffer.getvalue(), written

        data, written = await asyncio.get_running_loop().run_in_executor(None, create_zip_sync)
        logger.info(f"[Export] Image archive with {written} of {len(entries)} files")
        return data


profile_export_service = ProfileExportService()
