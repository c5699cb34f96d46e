import html
from typing import Iterable, Optional
from urllib.parse import quote

from file_vault.app.models.stored_file import StoredFile

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
LISTING_TITLE = "File Vault Lite"

_UNITS = (
    ("GB", 1024 ** 3),
    ("MB", 1024 ** 2),
    ("KB", 1024),
)


def human_readable_size(size: int) -> str:
    """Format a byte count using the largest 1024-based unit that keeps it >= 1."""
    for unit, threshold in _UNITS:
        if size >= threshold:
            return f"{size / threshold:.2f} {unit}"
    return f"{float(size):.2f} B"


def render_file_item(stored_file: StoredFile) -> str:
    name = html.escape(stored_file.name)
    href = f"/download?filename={quote(stored_file.name, safe='')}"
    return (
        f'<li><a href="{html.escape(href)}">{name}</a> '
        f'({human_readable_size(stored_file.size)}, {stored_file.modified.strftime(TIMESTAMP_FORMAT)})</li>'
    )


def render_listing(files: Iterable[StoredFile], error: Optional[str] = None) -> str:
    """Render the catalog as an HTML fragment.

    Files are rendered in the order given. When ``error`` is set the entries
    collected before the failure are still shown, followed by the error text.
    """
    lines = [f"<h1>{LISTING_TITLE}</h1>", "<ul>"]
    lines.extend(render_file_item(stored_file) for stored_file in files)
    lines.append("</ul>")
    if error is not None:
        lines.append(f"Error: {html.escape(error)}")
    return "\n".join(lines) + "\n"
