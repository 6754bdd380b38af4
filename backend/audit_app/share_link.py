"""Legacy share links.

Scores travel in the URL as `?r=4,0,2`: one integer per principle in catalog
order, 0 for unrated. Old links in the wild depend on this exact format and on
the catalog order, so neither may change.
"""

from __future__ import annotations
from typing import Dict, Mapping, Optional, Sequence
from urllib.parse import urlencode

from .catalog import PRINCIPLE_IDS
from .settings import settings


def encode_legacy(ratings: Mapping[str, Optional[int]], order: Sequence[str] = PRINCIPLE_IDS) -> str:
	return ",".join(str(ratings.get(pid) or 0) for pid in order)


def decode_legacy(encoded: str, order: Sequence[str] = PRINCIPLE_IDS) -> Dict[str, Optional[int]]:
	parts = (encoded or "").split(",")
	ratings: Dict[str, Optional[int]] = {}
	for i, pid in enumerate(order):
		raw = parts[i].strip() if i < len(parts) else ""
		try:
			value = int(raw)
		except ValueError:
			value = 0
		ratings[pid] = value if 1 <= value <= 5 else None
	return ratings


def legacy_share_url(ratings: Mapping[str, Optional[int]], base_url: Optional[str] = None) -> str:
	base = (base_url or settings.public_base_url).rstrip("/")
	# commas stay literal to match links produced by older clients
	return f"{base}/audit?{urlencode({'r': encode_legacy(ratings)}, safe=',')}"
