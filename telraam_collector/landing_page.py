"""Static index.html listing every collected JSON file."""

import html
import logging
from pathlib import Path
from typing import Dict, List, Tuple

from .storage import DAILY_DIR, DEVICE_DIR_PREFIX, PersistenceStore
from .timeutils import utc_now_iso

logger = logging.getLogger(__name__)

LANDING_PAGE_NAME = "index.html"

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>Telraam Data Downloads</title>
  <style>
    body {{ font-family: system-ui, -apple-system, sans-serif; color: #0f172a; margin: 0; padding: 24px; background: #f1f5f9; }}
    .container {{ max-width: 960px; margin: 0 auto; background: #fff; border-radius: 16px; padding: 24px 28px; border: 1px solid #e2e8f0; }}
    .meta {{ display: flex; gap: 16px; color: #475569; font-size: 14px; margin: 12px 0 20px; }}
    input[type="search"] {{ width: 100%; padding: 10px 12px; border-radius: 10px; border: 1px solid #cbd5e1; margin-bottom: 20px; }}
    .list {{ list-style: none; padding-left: 0; display: grid; gap: 8px; }}
    .list a {{ padding: 8px 12px; border-radius: 10px; background: #f8fafc; color: #0f172a; text-decoration: none; border: 1px solid #e2e8f0; word-break: break-all; }}
    summary {{ cursor: pointer; font-weight: 600; }}
    .count {{ color: #64748b; font-weight: 500; font-size: 13px; }}
    .tag {{ margin-left: 8px; padding: 2px 8px; border-radius: 999px; background: #e2e8f0; font-size: 12px; }}
  </style>
</head>
<body>
  <main class="container">
    <h1>Telraam Data Downloads</h1>
    <p>Browse and download the latest collected JSON files. Updated automatically after each collection run.</p>
    <div class="meta">
      <span><strong>Files:</strong> {file_count}</span>
      <span><strong>Last updated:</strong> {updated}</span>
    </div>
    <input id="filter" type="search" placeholder="Filter by path (e.g. device_9000008311 daily)" />
{sections}
  </main>
  <script>
    const input = document.getElementById('filter');
    const items = Array.from(document.querySelectorAll('[data-path]'));
    const groups = Array.from(document.querySelectorAll('details'));
    input.addEventListener('input', () => {{
      const q = input.value.toLowerCase().trim();
      items.forEach((item) => {{
        item.style.display = !q || item.dataset.path.includes(q) ? '' : 'none';
      }});
      groups.forEach((group) => {{
        const visible = Array.from(group.querySelectorAll('li')).some((li) => li.style.display !== 'none');
        group.style.display = visible ? '' : 'none';
      }});
    }});
  </script>
</body>
</html>
"""


def group_links(links: List[str]) -> List[Tuple[str, List[Tuple[str, str]]]]:
    """
    Group relative links into page sections.

    Links under a ``device_*`` directory get one section per device, tagged
    ``daily`` or ``monthly``. Everything else lands in a root section tagged
    ``metadata``.

    Args:
        links: Paths relative to the docs root, e.g. ``data/device_1/2024-06.json``

    Returns:
        List of (title, [(path, tag), ...]) with the root section first
    """
    devices: Dict[str, List[Tuple[str, str]]] = {}
    root_items: List[Tuple[str, str]] = []

    for link in links:
        parts = link.split("/")
        device = next((p for p in parts[:-1] if p.startswith(DEVICE_DIR_PREFIX)), None)
        if device is None:
            root_items.append((link, "metadata"))
            continue
        tag = "daily" if DAILY_DIR in parts[:-1] else "monthly"
        devices.setdefault(device, []).append((link, tag))

    sections = []
    if root_items:
        sections.append(("Root & metadata", sorted(root_items)))
    for device in sorted(devices):
        sections.append((device, sorted(devices[device])))
    return sections


def render_landing_page(links: List[str], updated: str) -> str:
    rendered = []
    for title, items in group_links(links):
        rows = "\n".join(
            f'          <li data-path="{html.escape(path.lower())}">'
            f'<a href="{html.escape(path)}">{html.escape(path)}</a>'
            f'<span class="tag">{tag}</span></li>'
            for path, tag in items
        )
        rendered.append(
            "    <details open>\n"
            f'      <summary>{html.escape(title)} <span class="count">({len(items)})</span></summary>\n'
            '        <ul class="list">\n'
            f"{rows}\n"
            "        </ul>\n"
            "    </details>"
        )
    return PAGE_TEMPLATE.format(
        file_count=len(links),
        updated=html.escape(updated),
        sections="\n".join(rendered),
    )


def generate_landing_page(store: PersistenceStore) -> Path:
    """
    Write ``index.html`` next to the data directory.

    Args:
        store: Storage whose data directory is listed

    Returns:
        Path to the written page
    """
    docs_root = store.data_dir.resolve().parent
    links = sorted(
        path.resolve().relative_to(docs_root).as_posix() for path in store.json_files()
    )

    output_path = docs_root / LANDING_PAGE_NAME
    store.files.write_text(
        output_path,
        render_landing_page(links, utc_now_iso()),
        "writing landing page",
    )
    logger.info(f"Updated landing page with {len(links)} JSON file(s) at {output_path}")
    return output_path
