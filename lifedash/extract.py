"""Best-effort extraction of structured records from human-edited markdown.

Every parser here is a line-oriented state machine. Malformed input yields a
partial or empty result; nothing raises on arbitrary text.
"""

import enum
import re

INVENTORY_HEADER_MARKER = '| Item Name |'
INVENTORY_FIELDS = ('name', 'variant', 'stock', 'price', 'status', 'notes')

WEEK_PATTERN = re.compile(r'^##\s+Week\s+(\d+)\s+\(([^)]+)\)')
DAY_PATTERN = re.compile(r'^###\s+([A-Za-z]+)\s+(\d{1,2})\s+\(([^)]+)\)')
DAY_ITEM_PATTERN = re.compile(r'^-\s+\*\*(.+?):\*\*\s*(.*)$')
SEPARATOR_PATTERN = re.compile(r'^\|\s*:?-{3,}')
EMPHASIS_PATTERN = re.compile(r'(\*\*|__)')

DEFAULT_PROJECT_STATUS = 'Concept Phase'
DEFAULT_PROJECT_CATEGORY = 'Uncategorized'


class State(enum.Enum):
    SEEKING = 'seeking'
    IN_TABLE = 'in_table'
    IN_WEEK = 'in_week'
    IN_DAY = 'in_day'


def _lines(text):
    if not isinstance(text, str):
        return []
    return text.splitlines()


def strip_emphasis(value):
    return EMPHASIS_PATTERN.sub('', value).strip()


# ---------------------------------------------------------------------------
# Pipe tables (inventory)
# ---------------------------------------------------------------------------

def parse_inventory(text):
    items = []
    state = State.SEEKING

    for line in _lines(text):
        if state is State.SEEKING:
            if INVENTORY_HEADER_MARKER in line:
                state = State.IN_TABLE
            continue

        if not line.strip():
            state = State.SEEKING
            continue
        if SEPARATOR_PATTERN.match(line) or not line.startswith('|'):
            continue

        cells = [cell.strip() for cell in line.split('|')]
        cells = [cell for cell in cells if cell]
        if len(cells) < len(INVENTORY_FIELDS):
            continue
        item = dict(zip(INVENTORY_FIELDS, cells))
        item['name'] = strip_emphasis(item['name'])
        items.append(item)

    return items


# ---------------------------------------------------------------------------
# Headings and bullets (content calendar)
# ---------------------------------------------------------------------------

def parse_content_calendar(text):
    """Group ``### <Month> <day> (<weekday>)`` days under ``## Week <n> (<range>)``.

    A day belongs to the most recent week heading above it. Days that appear
    before any week heading are dropped, and any other level-2 heading closes
    the current week.
    """
    calendar = {'title': '', 'releaseDate': '', 'weeks': []}
    state = State.SEEKING
    week = None
    day = None

    for line in _lines(text):
        if not calendar['title'] and line.startswith('# '):
            calendar['title'] = line[2:].strip()
            continue
        if (state is State.SEEKING and not calendar['weeks']
                and not calendar['releaseDate'] and 'Release Date:' in line):
            calendar['releaseDate'] = strip_emphasis(line.split('Release Date:', 1)[1])
            continue

        week_match = WEEK_PATTERN.match(line)
        if week_match:
            week = {
                'number': int(week_match.group(1)),
                'dateRange': week_match.group(2).strip(),
                'days': [],
            }
            calendar['weeks'].append(week)
            day = None
            state = State.IN_WEEK
            continue

        if line.startswith('## ') or line.startswith('# '):
            week = day = None
            state = State.SEEKING
            continue

        if state is State.SEEKING:
            continue

        day_match = DAY_PATTERN.match(line)
        if day_match:
            day = {
                'month': day_match.group(1),
                'date': int(day_match.group(2)),
                'dayOfWeek': day_match.group(3).strip(),
                'content': {},
            }
            week['days'].append(day)
            state = State.IN_DAY
            continue

        if line.startswith('### '):
            day = None
            state = State.IN_WEEK
            continue

        if state is State.IN_DAY:
            item_match = DAY_ITEM_PATTERN.match(line)
            if item_match:
                day['content'][item_match.group(1).strip()] = item_match.group(2).strip()

    return calendar


# ---------------------------------------------------------------------------
# Section maps (memory / notes)
# ---------------------------------------------------------------------------

def parse_sections(text):
    sections = {}
    current = None

    for line in _lines(text):
        if line.startswith('## '):
            current = line[3:].strip()
            sections[current] = []
            continue
        stripped = line.strip()
        if current is None or not stripped or line.startswith('*'):
            continue
        sections[current].append(stripped)

    return sections


# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

def parse_project_metadata(text):
    project = {
        'title': '',
        'status': DEFAULT_PROJECT_STATUS,
        'category': DEFAULT_PROJECT_CATEGORY,
    }
    for line in _lines(text):
        if line.startswith('# '):
            project['title'] = line[2:].strip()
        if 'Status:' in line:
            project['status'] = strip_emphasis(line.split('Status:', 1)[1]) or project['status']
        if 'Category:' in line:
            project['category'] = strip_emphasis(line.split('Category:', 1)[1]) or project['category']
    return project
