"""Import of screenshots captured by the browser-navigation helper.

The helper emits `{"captures": [...]}`. Only the image bytes and a section
grouping matter here; persona and correctness fields are carried through
untouched for display.
"""

from __future__ import annotations
import json
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import Field
from pydantic import ValidationError as SchemaError

from .errors import ValidationError
from .images import decode_base64_image
from .schemas import ImageBlob, WireModel


DEFAULT_GROUP = "Captured Flow"


class Capture(WireModel):
	id: Optional[str] = None
	image: str
	media_type: Optional[str] = None
	content_type: str = "unknown"
	flow_id: Optional[str] = None
	description: str = ""
	persona: Optional[str] = None
	is_correct: Optional[bool] = None
	attempt: Optional[int] = None


class CaptureImport(WireModel):
	captures: List[Capture] = Field(min_length=1)


def parse_capture_import(document: Union[str, bytes, Mapping[str, Any]]) -> CaptureImport:
	if isinstance(document, (str, bytes)):
		try:
			document = json.loads(document)
		except json.JSONDecodeError as exc:
			raise ValidationError("Invalid JSON format for capture import", step="import") from exc
	if not isinstance(document, Mapping) or not isinstance(document.get("captures"), list):
		raise ValidationError("Invalid format: expected { captures: [...] }", step="import")
	try:
		return CaptureImport.model_validate(document)
	except SchemaError as exc:
		first = exc.errors()[0]
		where = ".".join(str(p) for p in first.get("loc", ()))
		raise ValidationError(f"Invalid capture at {where}: {first.get('msg')}", step="import") from exc


def group_captures(
	imported: CaptureImport,
	assignments: Optional[Mapping[str, str]] = None,
) -> Dict[str, List[ImageBlob]]:
	"""Decode capture images and bucket them into named sections.

	`assignments` maps a capture id (or its index as a string) to a section
	name; unassigned captures fall back to their flow id.
	"""
	assignments = assignments or {}
	groups: Dict[str, List[ImageBlob]] = {}
	for i, capture in enumerate(imported.captures):
		name = (
			assignments.get(capture.id or "")
			or assignments.get(str(i))
			or capture.flow_id
			or DEFAULT_GROUP
		)
		groups.setdefault(name, []).append(decode_base64_image(capture.image))
	return groups
