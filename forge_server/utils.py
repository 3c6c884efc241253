"""Shared utility functions."""
import re
import uuid
from datetime import datetime, timezone

import yaml


def gen_id(prefix: str = "") -> str:
    """Generate a short prefixed ID."""
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def now_ms() -> int:
    """Get current timestamp in milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def slugify(title: str) -> str:
    """URL-safe slug of at most 50 characters."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:50]


def gen_node_id(node_type: str, title: str) -> str:
    """Readable node ID like 'task-route-pcb-3f9a1c2b'."""
    slug = slugify(title) or "node"
    return f"{node_type}-{slug}-{uuid.uuid4().hex[:8]}"


def iso_to_ms(value) -> int | None:
    """Convert an ISO-8601 string (or datetime) to epoch milliseconds."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


_FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*(?:\n|$)(.*)", re.DOTALL)


def parse_frontmatter(content: str) -> tuple[dict, str]:
    """Parse YAML frontmatter from markdown content.

    Returns (metadata_dict, body_content).
    If no frontmatter, returns ({}, content).
    Raises yaml.YAMLError on malformed frontmatter.
    """
    m = _FRONTMATTER_RE.match(content)
    if not m:
        return {}, content

    meta = yaml.safe_load(m.group(1)) or {}
    if not isinstance(meta, dict):
        raise yaml.YAMLError("frontmatter is not a mapping")
    return meta, m.group(2).strip()
