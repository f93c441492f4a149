"""
Metadata Parser
---------------
Turns the free text a user sends after an upload into a tag map.

Lines shaped like ``key: value`` become lower-cased tags. Text without any
such line is kept whole as ``description``.
"""

import re
from datetime import datetime, timezone

KEY_VALUE_PATTERN = re.compile(r'^([a-zA-Z][A-Za-z0-9_-]*)\s*:\s*(.+)$', re.IGNORECASE | re.MULTILINE)


def capture_timestamp(now=None):
    """ISO-8601 UTC timestamp with millisecond precision"""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_metadata(text, now=None):
    """
    Parse document metadata from a user's message.

    ``rawText`` and ``timestamp`` are written first, so a structured line
    using a reserved key (``timestamp: ...``, ``folder: ...``) replaces them.

    Args:
        text: The message body
        now: Capture time (defaults to the current UTC time)

    Returns:
        dict: The tag map
    """
    metadata = {
        'rawText': text,
        'timestamp': capture_timestamp(now)
    }

    has_structured_data = False
    for match in KEY_VALUE_PATTERN.finditer(text):
        key = match.group(1).lower().strip()
        metadata[key] = match.group(2).strip()
        has_structured_data = True

    if not has_structured_data:
        metadata['description'] = text.strip()

    return metadata
