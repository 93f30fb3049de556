"""
Identifier helpers.
"""

import uuid


def generate_id(prefix: str) -> str:
    """Short random identifier such as ``node_1f2e3d4c5b6a``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"
