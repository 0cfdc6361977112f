"""Record identifiers.

Ids are ``<kind>_<uuid4 hex>``; the prefix names the record kind.
"""

from __future__ import annotations

import uuid
from typing import Literal

IdKind = Literal["res", "hl", "trk", "ms", "fc", "req"]


def new_id(kind: IdKind) -> str:
    return f"{kind}_{uuid.uuid4().hex}"


__all__ = ["IdKind", "new_id"]
