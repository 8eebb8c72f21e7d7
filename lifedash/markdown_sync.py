"""One-way projection of the tasks table into a markdown document.

Only the ``## Next Actions`` section is owned here; every other line of the
document is kept as-is. Edits made by hand inside the owned section are
overwritten on the next sync (last writer wins, no conflict detection).
"""

import logging
import re

from .logs import log_event
from .store import TASKS_TABLE

SECTION_HEADING = '## Next Actions (Synced from Dashboard)'
SECTION_MARKER = '## Next Actions'
COMPLETED_HEADING = '### Recently Completed'
DEFAULT_COMPLETED_LIMIT = 5

# Headings that end the owned section: level 1 or 2.
SECTION_END_PATTERN = re.compile(r'^#{1,2}(\s|$)')


def task_label(task):
    """Checklist text collapsed onto a single line."""
    label = task.get('description') or task.get('title') or ''
    return ' '.join(str(label).split())


def render_task_section(tasks, completed_limit=DEFAULT_COMPLETED_LIMIT):
    active = [t for t in tasks if t.get('status') != 'completed']
    completed = [t for t in tasks if t.get('status') == 'completed']
    recent = completed[-completed_limit:] if completed_limit > 0 else []

    lines = [SECTION_HEADING]
    lines.extend(f'- [ ] {task_label(t)}' for t in active)
    if recent:
        lines.append('')
        lines.append(COMPLETED_HEADING)
        lines.extend(f'- [x] {task_label(t)}' for t in recent)
    return '\n'.join(lines) + '\n'


def replace_section(document, section):
    """Swap the owned section in ``document`` for ``section``, or append it."""
    lines = document.splitlines(keepends=True)

    start = None
    for index, line in enumerate(lines):
        if line.startswith(SECTION_MARKER):
            start = index
            break

    if start is None:
        if not document:
            return section
        separator = '\n' if document.endswith('\n') else '\n\n'
        return document + separator + section

    end = len(lines)
    for index in range(start + 1, len(lines)):
        if SECTION_END_PATTERN.match(lines[index]):
            end = index
            break

    return ''.join(lines[:start]) + section + ''.join(lines[end:])


class TaskMarkdownSync:
    """Store write listener that rewrites the task section after each tasks write."""

    def __init__(self, path, completed_limit=DEFAULT_COMPLETED_LIMIT):
        self.path = path
        self.completed_limit = completed_limit

    def __call__(self, table, records):
        if table != TASKS_TABLE:
            return
        self.sync(records)

    def sync(self, tasks):
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                document = f.read()
            updated = replace_section(document, render_task_section(tasks, self.completed_limit))
            with open(self.path, 'w', encoding='utf-8') as f:
                f.write(updated)
        except (OSError, UnicodeDecodeError) as exc:
            log_event(logging.ERROR, 'markdown_sync_failed', path=self.path, error=exc)
            return False
        log_event(logging.INFO, 'markdown_synced', path=self.path, tasks=len(tasks))
        return True
