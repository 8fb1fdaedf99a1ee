"""Response decoding and rendering helpers.

This module bridges the HTTP client layer and the output layer.
:func:`extract_response_data` decodes an :class:`httpx.Response` body, and
:func:`render_result` hands decoded data to
:class:`~rmqadmin.output.OutputManager` as a table (lists of objects) or as
a formatted document (everything else).

See Also:
    :mod:`rmqadmin.output` -- the output manager that renders data.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import httpx

from rmqadmin.output import get_output


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts to parse the body as JSON first.  If that fails (e.g. the
    response is HTML or plain text), returns the raw text.  Returns
    ``None`` for responses with no content.
    """
    if not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        pass

    return response.text


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def table_columns(rows: Sequence[dict[str, Any]], preferred: Sequence[str] = ()) -> list[str]:
    """Pick table columns: *preferred* ones present in the data, else scalar keys of the first row."""
    if not rows:
        return list(preferred)
    present = [c for c in preferred if any(c in row for row in rows)]
    if present:
        return present
    return [k for k, v in rows[0].items() if not isinstance(v, (dict, list))]


def render_result(data: Any, columns: Sequence[str] = (), title: Optional[str] = None) -> None:
    """Render decoded API data to stdout.

    Lists of objects become tables; any other value is formatted as a
    document. ``None`` (empty body) prints nothing.
    """
    if data is None:
        return
    output = get_output()
    if isinstance(data, list) and all(isinstance(item, dict) for item in data):
        headers = table_columns(data, columns)
        rows = [[_cell(item.get(h)) for h in headers] for item in data]
        output.print_table(headers, rows, title=title)
    else:
        output.format_response(data)
