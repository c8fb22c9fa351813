"""
Cache key derivation.

Keys come from logical identity only, so identical requests collide.
"""

from __future__ import annotations

import hashlib
import json
import re

from unified_kms.models import KnowledgeRecord, SearchFilters, SearchOptions

_WHITESPACE = re.compile(r"\s+")


def knowledge_key(record: KnowledgeRecord) -> str:
    return (
        f"knowledge:owner:{record.owner_id or '-'}:group:{record.group_id or '-'}"
        f":category:{record.category.value}:id:{record.id}"
    )


def normalize_query(text: str) -> str:
    return _WHITESPACE.sub(" ", text.strip().lower())


def search_key(
    text: str,
    filters: SearchFilters | None = None,
    options: SearchOptions | None = None,
) -> str:
    """Hash of the normalized query plus canonical filters and result shape."""
    filters = filters or SearchFilters()
    options = options or SearchOptions()
    payload = {
        "query": normalize_query(text),
        "filters": filters.model_dump(mode="json", exclude_none=True),
        "max_results": options.max_results,
        "include_links": options.include_links,
    }
    raw = json.dumps(payload, ensure_ascii=False, sort_keys=True)
    return f"search:{hashlib.sha256(raw.encode('utf-8')).hexdigest()}"
