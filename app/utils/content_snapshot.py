"""
Content snapshot builder for homework assignments.

A snapshot is an immutable, ordered tuple of content blocks. Only two block
kinds exist: ``TextBlock`` and ``MediaBlock``. Every consumer goes through
``block_from_dict`` / ``block_to_dict`` so an unknown kind is rejected instead
of being silently dropped.
"""

import json
import math
import re
import uuid
from dataclasses import dataclass
from typing import Tuple, Union

from app.utils.errors import ValidationError

BLOCK_TEXT = 'TEXT'
BLOCK_MEDIA = 'MEDIA'

PLACEHOLDER_TEXT = 'Legacy homework'
PLACEHOLDER_TITLE = 'Homework (legacy)'
TITLE_MAX_LENGTH = 120

_WHITESPACE = re.compile(r'\s+')


@dataclass(frozen=True)
class Attachment:
    id: str
    url: str
    file_name: str = ''
    size: Union[int, float] = 0

    def to_dict(self):
        return {'id': self.id, 'url': self.url, 'fileName': self.file_name, 'size': self.size}


@dataclass(frozen=True)
class TextBlock:
    id: str
    content: str

    type = BLOCK_TEXT


@dataclass(frozen=True)
class MediaBlock:
    id: str
    attachments: Tuple[Attachment, ...]

    type = BLOCK_MEDIA


ContentBlock = Union[TextBlock, MediaBlock]


def _new_id():
    return str(uuid.uuid4())


def _coerce_size(value):
    """Non-negative byte size; anything unreadable counts as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if not math.isfinite(number) or number <= 0:
        return 0
    return int(number) if number.is_integer() else number


def parse_attachments(raw, new_id=_new_id):
    """
    Parse a loosely-typed attachment list.

    ``raw`` may be a JSON string, an already-decoded list, or anything else.
    Malformed input yields an empty list, never an error. Entries that are not
    objects or lack a non-empty ``url`` are dropped; missing or repeated ids
    are replaced with fresh ones.
    """
    if raw is None or raw == '':
        return []
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (ValueError, RecursionError):
            return []
    if not isinstance(raw, (list, tuple)):
        return []

    attachments = []
    seen_ids = set()
    for item in raw:
        if not isinstance(item, dict):
            continue
        url = item.get('url')
        if not isinstance(url, str) or not url.strip():
            continue
        attachment_id = item.get('id')
        if not isinstance(attachment_id, str) or not attachment_id or attachment_id in seen_ids:
            attachment_id = new_id()
        seen_ids.add(attachment_id)
        file_name = item.get('fileName', item.get('file_name'))
        attachments.append(Attachment(
            id=attachment_id,
            url=url.strip(),
            file_name=file_name if isinstance(file_name, str) else '',
            size=_coerce_size(item.get('size')),
        ))
    return attachments


def build_snapshot(text, attachments_raw, new_id=_new_id):
    """Build the ordered block tuple: TEXT before MEDIA, placeholder TEXT when both are empty."""
    blocks = []
    normalized = (text or '').strip() if isinstance(text, str) else ''
    if normalized:
        blocks.append(TextBlock(id=new_id(), content=normalized))

    attachments = parse_attachments(attachments_raw, new_id=new_id)
    if attachments:
        blocks.append(MediaBlock(id=new_id(), attachments=tuple(attachments)))

    if not blocks:
        blocks.append(TextBlock(id=new_id(), content=PLACEHOLDER_TEXT))
    return tuple(blocks)


def has_content(text, attachments_raw):
    """True when the input would produce at least one real (non-placeholder) block."""
    if isinstance(text, str) and text.strip():
        return True
    return bool(parse_attachments(attachments_raw))


def derive_title(text, placeholder=PLACEHOLDER_TITLE):
    normalized = _WHITESPACE.sub(' ', text if isinstance(text, str) else '').strip()
    if not normalized:
        return placeholder
    if len(normalized) <= TITLE_MAX_LENGTH:
        return normalized
    return normalized[:TITLE_MAX_LENGTH - 3] + '...'


def block_to_dict(block):
    if isinstance(block, TextBlock):
        return {'id': block.id, 'type': BLOCK_TEXT, 'content': block.content}
    if isinstance(block, MediaBlock):
        return {
            'id': block.id,
            'type': BLOCK_MEDIA,
            'attachments': [a.to_dict() for a in block.attachments],
        }
    raise ValidationError(f'Unknown content block: {block!r}')


def block_from_dict(data):
    if not isinstance(data, dict):
        raise ValidationError('Content block must be an object')
    block_type = data.get('type')
    block_id = data.get('id') or _new_id()
    if block_type == BLOCK_TEXT:
        content = data.get('content')
        if not isinstance(content, str) or not content:
            raise ValidationError('TEXT block requires non-empty content')
        return TextBlock(id=block_id, content=content)
    if block_type == BLOCK_MEDIA:
        attachments = tuple(parse_attachments(data.get('attachments')))
        if not attachments:
            raise ValidationError('MEDIA block requires at least one attachment')
        return MediaBlock(id=block_id, attachments=attachments)
    raise ValidationError(f'Unknown content block type: {block_type!r}')


def dump_snapshot(blocks):
    return json.dumps([block_to_dict(b) for b in blocks], ensure_ascii=False)


def load_snapshot(raw):
    if not raw:
        return ()
    try:
        data = json.loads(raw)
    except ValueError:
        raise ValidationError('Stored content snapshot is not valid JSON')
    if not isinstance(data, list):
        raise ValidationError('Stored content snapshot must be a list')
    return tuple(block_from_dict(item) for item in data)


def snapshot_text(blocks):
    """Concatenated TEXT content of a snapshot, placeholder excluded."""
    parts = []
    for block in blocks:
        if isinstance(block, TextBlock):
            if block.content != PLACEHOLDER_TEXT:
                parts.append(block.content)
        elif not isinstance(block, MediaBlock):
            raise ValidationError(f'Unknown content block: {block!r}')
    return '\n\n'.join(parts)


def snapshot_attachments(blocks):
    attachments = []
    for block in blocks:
        if isinstance(block, MediaBlock):
            attachments.extend(a.to_dict() for a in block.attachments)
        elif not isinstance(block, TextBlock):
            raise ValidationError(f'Unknown content block: {block!r}')
    return attachments
