from __future__ import annotations

import uuid


def new_uuid() -> str:
    """Primary keys are string UUIDs so ids can be minted before insert."""
    return str(uuid.uuid4())
