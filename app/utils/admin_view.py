"""Server-rendered admin dashboard.

Buttons post the signal ``id`` (never its list position) so acting on a page
rendered before other approvals/rejections still targets the right record.
"""

from __future__ import annotations

import json
from html import escape
from typing import Any, Iterable, Mapping

_SCRIPT = """
<script>
  function moderate(action, id) {
    fetch('/admin/' + action, {
      method: 'POST',
      body: JSON.stringify({ id: id }),
      headers: { 'Content-Type': 'application/json' },
      credentials: 'same-origin'
    }).then(function (res) {
      if (!res.ok) { alert(action + ' failed (' + res.status + ')'); }
      location.reload();
    });
  }
</script>
"""


def _text(value: Any, fallback: str) -> str:
    if value is None or value == "":
        return escape(fallback)
    return escape(str(value), quote=True)


def _location(record: Mapping[str, Any]) -> str | None:
    access = record.get("access")
    if isinstance(access, Mapping) and access.get("place"):
        return str(access["place"])
    if record.get("location"):
        return str(record["location"])
    if record.get("lat") is not None and record.get("lon") is not None:
        return f"{record['lat']}, {record['lon']}"
    return None


def render_pending_item(record: Mapping[str, Any]) -> str:
    signal_id = str(record.get("id", ""))
    # JS string literal inside an HTML attribute
    id_arg = escape(json.dumps(signal_id), quote=True)
    parts = [
        f"<strong>{_text(record.get('title'), 'Untitled')}</strong>",
        f"({_text(record.get('startTime'), 'No time')})",
    ]
    location = _location(record)
    if location:
        parts.append(f"@ {escape(location)}")
    if record.get("topic"):
        parts.append(f"[{_text(record.get('topic'), '')}]")
    buttons = (
        f'<button onclick="moderate(\'approve\', {id_arg})">Approve</button> '
        f'<button onclick="moderate(\'reject\', {id_arg})">Reject</button>'
    )
    return f'<li data-id="{escape(signal_id, quote=True)}">{" ".join(parts)} {buttons}</li>'


def render_admin_dashboard(pending: Iterable[Mapping[str, Any]], counts: Mapping[str, int]) -> str:
    """Render the approval dashboard as a standalone HTML page.

    Args:
        pending: Pending records in queue order.
        counts: Collection sizes keyed by collection name.

    Returns:
        HTML document string.
    """

    items = "".join(render_pending_item(record) for record in pending)
    body = f"<ul>{items}</ul>" if items else "<p>No signals awaiting review.</p>"
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        "<title>Admin Approval Dashboard</title></head><body>"
        "<h1>Admin Approval Dashboard</h1>"
        f"<p>Pending: {int(counts.get('pending', 0))} | "
        f"Approved: {int(counts.get('approved', 0))}</p>"
        f"{body}{_SCRIPT}</body></html>"
    )
