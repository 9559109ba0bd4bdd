from __future__ import annotations

import base64
import binascii
import io
import logging
import math
import re
import struct
from dataclasses import dataclass
from typing import Any, Mapping

from PIL import Image
from reportlab.pdfbase import pdfmetrics

from signdesk.core.config import settings
from signdesk.core.errors import InvalidPayload, MissingField, PageOutOfRange, UnsupportedFormat
from signdesk.models.document import SignatureKind
from signdesk.services.coordinates import Point, Size

logger = logging.getLogger("signdesk.sign")

SUPPORTED_IMAGE_FORMATS = {"png", "jpeg"}

_FORMAT_ALIASES = {"png": "png", "jpeg": "jpeg", "jpg": "jpeg", "pjpeg": "jpeg"}

_KIND_ALIASES = {
    "draw": SignatureKind.DRAW,
    "drawn-image": SignatureKind.DRAW,
    "upload": SignatureKind.UPLOAD,
    "uploaded-image": SignatureKind.UPLOAD,
    "text": SignatureKind.TEXT,
    "typed-text": SignatureKind.TEXT,
}

# camelCase keys sent by the browser client.
_FIELD_ALIASES = {
    "signatureData": "signature_data",
    "signaturePosition": "position",
    "pdfPageDimensions": "page_dimensions",
    "pageNumber": "page_number",
    "signatureType": "signature_type",
    "signatureFileExtension": "image_format",
    "displayWidth": "display_width",
    "displayHeight": "display_height",
}

_DATA_URL_RE = re.compile(r"^data:image/(?P<subtype>[A-Za-z0-9.+-]+);base64,(?P<body>.*)$", re.DOTALL)

_MAGIC = (
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"\xff\xd8\xff", "jpeg"),
    (b"GIF87a", "gif"),
    (b"GIF89a", "gif"),
    (b"BM", "bmp"),
    (b"II*\x00", "tiff"),
    (b"MM\x00*", "tiff"),
)


@dataclass(frozen=True)
class PlacementRequest:
    signature_data: str
    position: Point
    page_dimensions: Size
    page_number: int
    signature_type: SignatureKind
    image_format: str | None = None
    display_width: float | None = None
    display_height: float | None = None


@dataclass(frozen=True)
class TextArtifact:
    text: str
    font_name: str
    font_size: float
    width: float
    height: float
    descent: float

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)


@dataclass(frozen=True)
class ImageArtifact:
    data: bytes
    image_format: str
    pixel_width: int
    pixel_height: int
    display: Size

    @property
    def size(self) -> Size:
        return self.display


Artifact = TextArtifact | ImageArtifact


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_number(container: Mapping[str, Any], key: str, label: str) -> float:
    value = container.get(key)
    if value is None:
        raise MissingField(f"Missing {label}.")
    if not _is_number(value):
        raise MissingField(f"Invalid {label}. Must be a number.")
    if not math.isfinite(value):
        raise InvalidPayload(f"Invalid {label}. Must be a finite number.")
    return float(value)


def _require_mapping(payload: Mapping[str, Any], key: str, label: str) -> Mapping[str, Any]:
    value = payload.get(key)
    if value is None:
        raise MissingField(f"Missing {label}.")
    if not isinstance(value, Mapping):
        raise MissingField(f"Invalid {label}. Must be an object.")
    return value


def _optional_dimension(payload: Mapping[str, Any], key: str) -> float | None:
    value = payload.get(key)
    if value is None:
        return None
    if not _is_number(value) or not math.isfinite(value) or value <= 0:
        raise InvalidPayload(f"Invalid {key}. Must be a positive number.")
    return float(value)


def normalize_image_format(value: str) -> str:
    cleaned = value.strip().lower().lstrip(".")
    normalized = _FORMAT_ALIASES.get(cleaned)
    if normalized is None:
        raise UnsupportedFormat(
            f"Unsupported signature image format {cleaned!r}. Only PNG and JPEG are supported."
        )
    return normalized


def parse_placement_request(payload: Mapping[str, Any]) -> PlacementRequest:
    """
    Validate a raw placement payload.

    Every check here runs before any storage access, so a rejected request
    leaves the document and its files untouched.
    """
    if not isinstance(payload, Mapping):
        raise InvalidPayload("Signature request must be a JSON object.")
    data = {_FIELD_ALIASES.get(key, key): value for key, value in payload.items()}

    raw_kind = data.get("signature_type")
    if raw_kind is None:
        raise MissingField("Missing signature type.")
    if not isinstance(raw_kind, str):
        raise MissingField("Invalid signature type. Must be a string.")
    kind = _KIND_ALIASES.get(raw_kind.strip().lower().replace("_", "-"))
    if kind is None:
        raise InvalidPayload('Invalid signature type. Must be "draw", "upload", or "text".')

    signature_data = data.get("signature_data")
    if signature_data is None:
        raise MissingField("Missing signature data.")
    if not isinstance(signature_data, str) or not signature_data.strip():
        raise InvalidPayload("Signature data must be a non-empty string.")

    position_raw = _require_mapping(data, "position", "signature position")
    position = Point(
        x=_require_number(position_raw, "x", "signature position x"),
        y=_require_number(position_raw, "y", "signature position y"),
    )

    dimensions_raw = _require_mapping(data, "page_dimensions", "page dimensions")
    dimensions = Size(
        width=_require_number(dimensions_raw, "width", "page width"),
        height=_require_number(dimensions_raw, "height", "page height"),
    )
    if dimensions.width <= 0 or dimensions.height <= 0:
        raise InvalidPayload("Page dimensions must be positive numbers.")

    display_width = _optional_dimension(data, "display_width")
    display_height = _optional_dimension(data, "display_height")
    if (display_width is not None and display_width > dimensions.width) or (
        display_height is not None and display_height > dimensions.height
    ):
        raise InvalidPayload("Signature display size cannot exceed the rendered page dimensions.")

    page_number = data.get("page_number")
    if page_number is None:
        raise MissingField("Missing page number.")
    if (
        not _is_number(page_number)
        or not math.isfinite(page_number)
        or float(page_number) != int(page_number)
    ):
        raise MissingField("Invalid page number. Must be a positive integer.")
    page_number = int(page_number)
    if page_number < 1:
        raise PageOutOfRange(f"Page number {page_number} is out of bounds.")

    image_format: str | None = None
    if kind.is_image:
        raw_format = data.get("image_format")
        if raw_format is None:
            match = _DATA_URL_RE.match(signature_data.strip())
            raw_format = match.group("subtype") if match else None
        if raw_format is None:
            raise MissingField("Missing signature image format for image signatures.")
        if not isinstance(raw_format, str):
            raise MissingField("Invalid signature image format. Must be a string.")
        image_format = normalize_image_format(raw_format)

    return PlacementRequest(
        signature_data=signature_data.strip() if kind.is_image else signature_data,
        position=position,
        page_dimensions=dimensions,
        page_number=page_number,
        signature_type=kind,
        image_format=image_format,
        display_width=display_width,
        display_height=display_height,
    )


def sniff_image_format(data: bytes) -> str | None:
    for magic, name in _MAGIC:
        if data.startswith(magic):
            return name
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return None


def decode_data_url(value: str) -> tuple[str, bytes]:
    match = _DATA_URL_RE.match(value)
    if not match:
        raise InvalidPayload(
            "Image signature data must be a valid data URL (e.g., data:image/png;base64,...)."
        )
    subtype = normalize_image_format(match.group("subtype"))
    body = re.sub(r"\s+", "", match.group("body"))
    if not body:
        raise InvalidPayload("Image signature data is empty.")
    try:
        raw = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidPayload("Image signature data is not valid base64.") from exc
    if not raw:
        raise InvalidPayload("Image signature data is empty.")
    return subtype, raw


def _display_size(request: PlacementRequest, pixel_width: int, pixel_height: int) -> Size:
    aspect = pixel_height / pixel_width
    width, height = request.display_width, request.display_height
    if width and height:
        return Size(width, height)
    if height:
        return Size(height / aspect, height)
    width = width or settings.image_display_width
    return Size(width, width * aspect)


def resolve_text(text: str) -> TextArtifact:
    font_name = settings.text_signature_font
    font_size = settings.text_signature_font_size
    width = pdfmetrics.stringWidth(text, font_name, font_size)
    ascent, descent = pdfmetrics.getAscentDescent(font_name, font_size)
    return TextArtifact(
        text=text,
        font_name=font_name,
        font_size=font_size,
        width=width,
        height=ascent - descent,
        descent=descent,
    )


def resolve_image(request: PlacementRequest) -> ImageArtifact:
    declared, raw = decode_data_url(request.signature_data)
    detected = sniff_image_format(raw)
    if detected is None:
        raise InvalidPayload("Signature image could not be decoded.")
    if detected not in SUPPORTED_IMAGE_FORMATS:
        raise UnsupportedFormat(
            f"Unsupported signature image format {detected!r}. Only PNG and JPEG are supported."
        )
    if detected != declared or detected != request.image_format:
        logger.warning(
            "Signature image declared as %s/%s but decoded as %s",
            request.image_format,
            declared,
            detected,
        )

    # load() decodes every pixel, so truncated data raises here.
    try:
        with Image.open(io.BytesIO(raw)) as image:
            image.load()
            pixel_width, pixel_height = image.size
    except (OSError, SyntaxError, ValueError, struct.error, Image.DecompressionBombError) as exc:
        raise InvalidPayload("Signature image could not be decoded.") from exc
    if pixel_width <= 0 or pixel_height <= 0:
        raise InvalidPayload("Signature image has no visible area.")

    return ImageArtifact(
        data=raw,
        image_format=detected,
        pixel_width=int(pixel_width),
        pixel_height=int(pixel_height),
        display=_display_size(request, int(pixel_width), int(pixel_height)),
    )


def resolve_artifact(request: PlacementRequest) -> Artifact:
    if request.signature_type is SignatureKind.TEXT:
        return resolve_text(request.signature_data)
    return resolve_image(request)
