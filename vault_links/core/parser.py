"""Note parsing: frontmatter, tags, wiki/markdown links, and title.

Parsing is regex and line based. Everything outside this module consumes
:class:`~vault_links.data_models.Note` and :class:`~vault_links.data_models.Link`
objects, so a real markdown tokenizer can replace these helpers without touching
the index, move, or validation logic.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Optional
from urllib.parse import unquote

import frontmatter
import yaml

from vault_links.core.vault_operations import (
    canonical_identity,
    identity_name,
    is_external_target,
)
from vault_links.data_models import MARKDOWN, WIKI, Link, Note, ParseWarning

logger = logging.getLogger(__name__)

# [[target]], [[target|alias]], [[target#anchor|alias]]
WIKILINK_RE = re.compile(r"\[\[([^\[\]\n]+?)\]\]")
# [display](target)
MARKDOWN_LINK_RE = re.compile(r"\[([^\[\]\n]*)\]\(([^()\n]+)\)")
# #tag or #nested/tag; not inside words, URLs, headings, or link anchors
INLINE_TAG_RE = re.compile(r"(?<![\w#/&\[(])#([^\s#]\S*)")
TITLE_RE = re.compile(r"^#\s+(.+?)\s*$", re.MULTILINE)

_TAG_TRAILING_PUNCTUATION = ".,;:!?)]}\"'"
_YAML_HANDLER = frontmatter.YAMLHandler()


# ==============================================================================
# FRONTMATTER
# ==============================================================================


def _flatten_value(key: str, value: Any) -> tuple[bool, Any]:
    """Reduce a YAML value to the flat scalar/array model.

    Returns ``(keep, value)``; nested mappings are not kept.
    """
    if isinstance(value, Mapping):
        return False, None
    if isinstance(value, (datetime, date)):
        return True, value.isoformat()
    if isinstance(value, (list, tuple)):
        items: list[str] = []
        for item in value:
            if isinstance(item, (Mapping, list, tuple)):
                continue
            if isinstance(item, (datetime, date)):
                item = item.isoformat()
            items.append(str(item).strip())
        return True, items
    return True, value


def parse_frontmatter(text: str, note: str = "") -> tuple[dict[str, Any], str, list[ParseWarning]]:
    """Split a leading ``---`` fenced YAML block from the body.

    Malformed blocks never raise: they degrade to "no frontmatter" and the whole
    text becomes the body, with a :class:`ParseWarning` describing the problem.

    Args:
        text: Raw note text.
        note: Note identity used in warnings.

    Returns:
        ``(metadata, body, warnings)``.
    """
    if not text or not _YAML_HANDLER.detect(text):
        return {}, text, []

    warnings: list[ParseWarning] = []
    try:
        raw_block, content = _YAML_HANDLER.split(text)
    except ValueError:
        # No closing fence: the opening line is an ordinary rule.
        warnings.append(ParseWarning(note, "Frontmatter block has no closing fence; treated as body text"))
        return {}, text, warnings

    try:
        raw_metadata = _YAML_HANDLER.load(raw_block)
    except yaml.YAMLError as exc:
        warnings.append(ParseWarning(note, f"Frontmatter contains invalid YAML: {exc}"))
        return {}, text, warnings

    if raw_metadata is None:
        raw_metadata = {}
    if not isinstance(raw_metadata, Mapping):
        warnings.append(
            ParseWarning(
                note,
                f"Frontmatter block is a {type(raw_metadata).__name__}, not a mapping; treated as body text",
            )
        )
        return {}, text, warnings

    metadata: dict[str, Any] = {}
    for key, value in raw_metadata.items():
        keep, flattened = _flatten_value(str(key), value)
        if not keep:
            warnings.append(ParseWarning(note, f"Nested frontmatter mapping '{key}' is not supported; ignored"))
            continue
        metadata[str(key)] = flattened

    return metadata, content.strip(), warnings


def frontmatter_tags(metadata: Mapping[str, Any]) -> list[str]:
    """Return the tags declared in frontmatter (list, or comma-separated string)."""
    raw = metadata.get("tags")
    if isinstance(raw, list):
        values = raw
    elif isinstance(raw, str):
        values = re.split(r"[,\s]+", raw)
    else:
        return []

    tags: list[str] = []
    for value in values:
        tag = str(value).strip().lstrip("#")
        if tag and tag not in tags:
            tags.append(tag)
    return tags


# ==============================================================================
# TAGS / TITLE
# ==============================================================================


def extract_inline_tags(body: str) -> Counter[str]:
    """Count inline ``#tag`` occurrences in order of first appearance.

    Trailing sentence punctuation is not part of a tag, and purely numeric tokens
    (``#1``) are not tags.
    """
    counts: Counter[str] = Counter()
    for match in INLINE_TAG_RE.finditer(body):
        tag = match.group(1).rstrip(_TAG_TRAILING_PUNCTUATION).rstrip("/")
        if not tag or tag.replace("/", "").isdigit():
            continue
        counts[tag] += 1
    return counts


def extract_title(body: str) -> Optional[str]:
    """Return the first H1 heading text in ``body``, if any."""
    match = TITLE_RE.search(body)
    if match:
        return match.group(1).strip()
    return None


# ==============================================================================
# LINKS
# ==============================================================================


def wiki_link_from_match(match: re.Match[str]) -> Link:
    """Build a :class:`Link` from a :data:`WIKILINK_RE` match."""
    inner = match.group(1)
    target_part, has_alias, alias = inner.partition("|")
    path_part, has_anchor, anchor = target_part.partition("#")
    return Link(
        type=WIKI,
        text=match.group(0),
        target=inner,
        link_path=path_part.strip(),
        display=alias if has_alias else target_part,
        alias=alias if has_alias else None,
        anchor=anchor if has_anchor else None,
    )


def markdown_link_from_match(match: re.Match[str]) -> Link:
    """Build a :class:`Link` from a :data:`MARKDOWN_LINK_RE` match.

    Targets with a URL scheme or without a ``.md`` suffix are flagged external and
    never resolved.
    """
    raw_target = match.group(2).strip()
    inner = raw_target
    if inner.startswith("<") and inner.endswith(">"):
        inner = inner[1:-1]
    path_part, has_anchor, anchor = inner.partition("#")
    decoded = unquote(path_part).strip()
    external = is_external_target(inner) or not decoded.lower().endswith(".md")
    return Link(
        type=MARKDOWN,
        text=match.group(0),
        target=raw_target,
        link_path=decoded,
        display=match.group(1),
        anchor=anchor if has_anchor else None,
        external=external,
    )


def extract_links(body: str) -> list[Link]:
    """Collect wiki links, then markdown links, in document order within each kind."""
    links = [wiki_link_from_match(match) for match in WIKILINK_RE.finditer(body)]
    links.extend(markdown_link_from_match(match) for match in MARKDOWN_LINK_RE.finditer(body))
    return links


# ==============================================================================
# NOTES
# ==============================================================================


def parse_note(path: str, raw_text: str) -> Note:
    """Parse raw note text into a :class:`Note`.

    Args:
        path: Vault-relative path of the file (``.md`` suffix optional).
        raw_text: Full UTF-8 text of the file.

    Returns:
        A populated :class:`Note`. Links are not resolved yet; the link index does
        that against the vault's current file set.
    """
    identity = canonical_identity(path)
    metadata, body, warnings = parse_frontmatter(raw_text, identity)
    for warning in warnings:
        logger.warning("Note '%s': %s", identity, warning.message)

    inline_counts = extract_inline_tags(body)
    tags = list(dict.fromkeys([*frontmatter_tags(metadata), *inline_counts]))

    return Note(
        identity=identity,
        path=path.replace("\\", "/"),
        title=extract_title(body) or identity_name(identity),
        content=raw_text,
        body=body,
        frontmatter=metadata,
        tags=tags,
        tag_counts=dict(inline_counts),
        links=extract_links(body),
        warnings=warnings,
    )
