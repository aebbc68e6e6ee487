import logging
import os
import uuid
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import UploadFile

from errors import ValidationError

load_dotenv()

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
UPLOADS_DIR = os.getenv("UPLOADS_DIR") or os.path.join(BASE_DIR, "uploads")
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "50"))
MAX_PREVIEW_IMAGES = 5
UPLOADS_URL_PREFIX = "/uploads"

ZIP_TYPES = {"application/zip", "application/x-zip-compressed"}
IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif"}

EXTENSIONS = {
    "application/zip": ".zip",
    "application/x-zip-compressed": ".zip",
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
}

CHUNK = 1024 * 1024

os.makedirs(UPLOADS_DIR, exist_ok=True)


@dataclass
class StoredFile:
    url: str
    path: str
    size: int


def human_size(size: int) -> str:
    return f"{size / (1024 * 1024):.2f} MB"


def save_upload(file: UploadFile, allowed_types: set, field: str, dst_dir: Optional[str] = None) -> StoredFile:
    """Copy an upload under a generated name; MIME type and size are the only checks."""
    dst_dir = dst_dir or UPLOADS_DIR
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type not in allowed_types:
        raise ValidationError(f"Unsupported file type: {content_type or 'unknown'}", field=field)

    limit = MAX_UPLOAD_MB * 1024 * 1024
    name = f"{uuid.uuid4()}{EXTENSIONS[content_type]}"
    dst_path = os.path.join(dst_dir, name)
    written = 0
    with open(dst_path, "wb") as out:
        while True:
            chunk = file.file.read(CHUNK)
            if not chunk:
                break
            written += len(chunk)
            if written > limit:
                break
            out.write(chunk)
    if written > limit:
        os.remove(dst_path)
        raise ValidationError(f"File too large (max {MAX_UPLOAD_MB} MB)", field=field, filename=file.filename)

    return StoredFile(url=f"{UPLOADS_URL_PREFIX}/{name}", path=dst_path, size=written)


def save_template_files(template_file: UploadFile, preview_images: List[UploadFile], dst_dir: Optional[str] = None):
    """Returns (template StoredFile, [preview StoredFile]); nothing stays on disk if one fails."""
    if len(preview_images) > MAX_PREVIEW_IMAGES:
        raise ValidationError(f"At most {MAX_PREVIEW_IMAGES} preview images", field="previewImages")

    stored: List[StoredFile] = []
    try:
        archive = save_upload(template_file, ZIP_TYPES, "templateFile", dst_dir)
        stored.append(archive)
        for image in preview_images:
            stored.append(save_upload(image, IMAGE_TYPES, "previewImages", dst_dir))
    except ValidationError:
        remove_files(stored)
        raise
    return archive, stored[1:]


def remove_files(files: List[StoredFile]) -> None:
    for f in files:
        try:
            os.remove(f.path)
        except FileNotFoundError:
            logger.warning("upload already removed: %s", f.path)
