from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from assetvault.core.config import settings
from assetvault.core.errors import ValidationError

OUTPUT_IMAGE_MIME = "image/webp"
OUTPUT_IMAGE_EXTENSION = ".webp"

IMAGE_EXTENSIONS: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

DOCUMENT_EXTENSIONS: dict[str, str] = {
    "application/pdf": ".pdf",
    "text/plain": ".txt",
    "text/csv": ".csv",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "application/vnd.ms-excel": ".xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.apple.numbers": ".numbers",
    "application/x-iwork-numbers-sffnumbers": ".numbers",
    "application/vnd.ms-powerpoint": ".ppt",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": ".pptx",
    "application/vnd.apple.keynote": ".key",
    "application/x-iwork-keynote-sffkey": ".key",
    "application/rtf": ".rtf",
    "text/rtf": ".rtf",
    "application/vnd.oasis.opendocument.text": ".odt",
    "application/vnd.oasis.opendocument.spreadsheet": ".ods",
    "application/vnd.oasis.opendocument.presentation": ".odp",
}

IMAGE_TYPE_ERROR = "Only JPG, PNG or WebP images are allowed"
DOCUMENT_TYPE_ERROR = (
    "File type not allowed. Use PDF, text, word processor, spreadsheet or presentation documents"
)


def normalize_mime(mime_type: str | None) -> str:
    return str(mime_type or "").split(";", 1)[0].strip().lower()


def is_allowed_image_type(mime_type: str | None) -> bool:
    return normalize_mime(mime_type) in IMAGE_EXTENSIONS


def is_allowed_document_type(mime_type: str | None) -> bool:
    return normalize_mime(mime_type) in DOCUMENT_EXTENSIONS


def validate_image_type(mime_type: str | None) -> str:
    mime = normalize_mime(mime_type)
    if mime not in IMAGE_EXTENSIONS:
        raise ValidationError(IMAGE_TYPE_ERROR)
    return mime


def validate_document_type(mime_type: str | None) -> str:
    mime = normalize_mime(mime_type)
    if mime not in DOCUMENT_EXTENSIONS:
        raise ValidationError(DOCUMENT_TYPE_ERROR)
    return mime


def check_upload_size(size: int, max_bytes: int, label: str) -> None:
    if size <= 0:
        raise ValidationError("The file is empty")
    if size > max_bytes:
        max_mb = max_bytes // (1024 * 1024)
        raise ValidationError(f"{label} cannot be larger than {max_mb} MB")


def extension_from_file_name(file_name: str | None) -> str:
    name = str(file_name or "").strip()
    idx = name.rfind(".")
    if idx == -1 or idx == len(name) - 1:
        return ""
    return name[idx:].lower()


def document_extension(mime_type: str | None, file_name: str | None) -> str:
    return (
        DOCUMENT_EXTENSIONS.get(normalize_mime(mime_type))
        or extension_from_file_name(file_name)
        or ".bin"
    )


@dataclass(slots=True, frozen=True)
class TransformedImage:
    data: bytes
    mime_type: str
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.data)


def transform_image(data: bytes, max_dimension: int | None = None, quality: int | None = None) -> TransformedImage:
    """Fit the image inside a square of ``max_dimension`` and re-encode it as WebP.

    Smaller images are never enlarged. EXIF orientation is applied first so the
    stored pixels are upright.
    """
    dim = int(max_dimension or settings.image_max_dimension)
    q = int(quality or settings.image_webp_quality)
    try:
        with Image.open(BytesIO(data)) as src:
            src.load()
            img = ImageOps.exif_transpose(src)
            img.thumbnail((dim, dim), Image.Resampling.LANCZOS)
            if img.mode not in ("RGB", "RGBA"):
                has_alpha = "A" in img.getbands() or "transparency" in img.info
                img = img.convert("RGBA" if has_alpha else "RGB")
            out = BytesIO()
            img.save(out, format="WEBP", quality=q)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise ValidationError("The image could not be read, it may be corrupted") from exc

    return TransformedImage(data=out.getvalue(), mime_type=OUTPUT_IMAGE_MIME, width=img.width, height=img.height)
