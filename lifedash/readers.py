"""Read-only views computed from the store or from workspace markdown.

A missing or unreadable source produces empty data, never an error.
"""

import logging
import os
from datetime import datetime

from .config import workspace_path
from .extract import (
    parse_content_calendar,
    parse_inventory,
    parse_project_metadata,
    parse_sections,
)
from .logs import log_event

SKIPPED_DIRS = {'node_modules'}
ANALYTICS_SKIPPED_DIRS = {'node_modules', 'dashboard'}
UPCOMING_LIMIT = 5


def read_text(path):
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as exc:
        log_event(logging.DEBUG, 'source_unavailable', path=path, error=exc)
        return ''


def iso_mtime(path):
    return datetime.fromtimestamp(os.path.getmtime(path)).isoformat()


def list_markdown_files(directory):
    try:
        names = os.listdir(directory)
    except OSError:
        return []
    return sorted(
        name for name in names
        if name.endswith('.md') and not name.startswith('.')
        and os.path.isfile(os.path.join(directory, name))
    )


# ---------------------------------------------------------------------------
# Store-backed views
# ---------------------------------------------------------------------------

def task_views(tasks):
    return {
        'active': [t for t in tasks if t.get('status') != 'completed'],
        'completed': [t for t in tasks if t.get('status') == 'completed'],
        'all': tasks,
    }


def parse_iso_datetime(value):
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def sort_streams(streams):
    def key(stream):
        scheduled = parse_iso_datetime(stream.get('scheduledDate'))
        return (scheduled is None, scheduled or datetime.min)
    return sorted(streams, key=key)


def upcoming_streams(streams, now=None, limit=UPCOMING_LIMIT):
    now = now or datetime.now()
    upcoming = []
    for stream in sort_streams(streams):
        scheduled = parse_iso_datetime(stream.get('scheduledDate'))
        if scheduled is None or scheduled < now:
            continue
        if stream.get('status') == 'cancelled':
            continue
        upcoming.append(stream)
    return upcoming[:limit]


# ---------------------------------------------------------------------------
# Markdown-backed views
# ---------------------------------------------------------------------------

def read_inventory(config):
    raw = read_text(workspace_path(config, 'inventory_file'))
    return {'items': parse_inventory(raw), 'raw': raw}


def read_content_calendar(config):
    return parse_content_calendar(read_text(workspace_path(config, 'calendar_file')))


def read_memory_sections(config):
    return {'sections': parse_sections(read_text(workspace_path(config, 'memory_file')))}


def list_projects(config):
    projects_dir = workspace_path(config, 'projects_dir')
    projects = []
    for filename in list_markdown_files(projects_dir):
        path = os.path.join(projects_dir, filename)
        project = {'filename': filename}
        project.update(parse_project_metadata(read_text(path)))
        try:
            project['lastModified'] = iso_mtime(path)
        except OSError:
            project['lastModified'] = None
        projects.append(project)
    return {'projects': projects}


def list_journal(config):
    journal_dir = workspace_path(config, 'journal_dir')
    entries = []
    for filename in list_markdown_files(journal_dir):
        entries.append({
            'filename': filename,
            'date': filename[:-len('.md')],
            'content': read_text(os.path.join(journal_dir, filename)),
        })
    entries.sort(key=lambda e: e['date'], reverse=True)
    return {'entries': entries}


def scan_assets(config):
    assets_dir = workspace_path(config, 'assets_dir')
    categories = {}
    for root, dirs, files in os.walk(assets_dir):
        dirs[:] = sorted(d for d in dirs if not d.startswith('.') and d not in SKIPPED_DIRS)
        category = os.path.relpath(root, assets_dir)
        category = '' if category == '.' else category.replace(os.sep, '/')
        for name in sorted(files):
            if name.startswith('.'):
                continue
            path = os.path.join(root, name)
            try:
                stat = os.stat(path)
            except OSError:
                continue
            categories.setdefault(category, []).append({
                'name': name,
                'size': stat.st_size,
                'modified': datetime.fromtimestamp(stat.st_mtime).isoformat(),
                'type': os.path.splitext(name)[1],
            })
    return {'categories': categories}


def workspace_analytics(config, store):
    workspace_dir = config['workspace_dir']
    memory_file = os.path.abspath(workspace_path(config, 'memory_file'))
    projects_dir = os.path.abspath(workspace_path(config, 'projects_dir'))
    stats = {
        'totalFiles': 0,
        'totalSize': 0,
        'projectCount': 0,
        'memoryEntries': 0,
        'lastActivity': None,
        'taskCount': len(store.read_table('tasks')),
        'financeCount': len(store.read_table('finances')),
    }
    latest = None

    for root, dirs, files in os.walk(workspace_dir):
        dirs[:] = [d for d in dirs if not d.startswith('.') and d not in ANALYTICS_SKIPPED_DIRS]
        for name in files:
            if not name.endswith('.md'):
                continue
            path = os.path.abspath(os.path.join(root, name))
            try:
                stat = os.stat(path)
            except OSError:
                continue
            stats['totalFiles'] += 1
            stats['totalSize'] += stat.st_size
            if os.path.commonpath([projects_dir, path]) == projects_dir:
                stats['projectCount'] += 1
            if path == memory_file:
                stats['memoryEntries'] = len([l for l in read_text(path).splitlines() if l.strip()])
            if latest is None or stat.st_mtime > latest:
                latest = stat.st_mtime

    if latest is not None:
        stats['lastActivity'] = datetime.fromtimestamp(latest).isoformat()
    return stats
