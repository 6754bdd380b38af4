from __future__ import annotations
import base64
import binascii
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .errors import ValidationError
from .schemas import ImageBlob
from .settings import settings


_FORMAT_TO_MEDIA_TYPE = {
	"JPEG": "image/jpeg",
	"PNG": "image/png",
	"GIF": "image/gif",
	"WEBP": "image/webp",
}


def sniff_media_type(data: bytes) -> str:
	"""Media type from the image bytes themselves; browsers mislabel uploads often enough."""
	try:
		with Image.open(BytesIO(data)) as img:
			fmt = img.format
	except (UnidentifiedImageError, OSError) as exc:
		raise ValidationError("File is not a readable image", step="upload") from exc
	media_type = _FORMAT_TO_MEDIA_TYPE.get(fmt or "")
	if media_type is None:
		raise ValidationError(f"Unsupported image format: {fmt}", step="upload")
	return media_type


def load_image(data: bytes) -> ImageBlob:
	if not data:
		raise ValidationError("Empty image", step="upload")
	if len(data) > settings.max_image_bytes:
		raise ValidationError(f"Image exceeds {settings.max_image_bytes} bytes", step="upload")
	return ImageBlob(data=data, media_type=sniff_media_type(data))


def decode_base64_image(encoded: str) -> ImageBlob:
	payload = encoded or ""
	# tolerate data URLs ("data:image/png;base64,....")
	if payload.startswith("data:") and "," in payload:
		payload = payload.split(",", 1)[1]
	try:
		raw = base64.b64decode(payload, validate=True)
	except (binascii.Error, ValueError) as exc:
		raise ValidationError("Image data is not valid base64", step="upload") from exc
	return load_image(raw)
