"""Dashboard configuration: a JSON file with normalized values and env overrides."""

import json
import os
import re

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_CONFIG_FILE = os.path.join(BASE_DIR, 'dashboard_config.json')
STARTUP_LOG_FILE = os.path.join(BASE_DIR, 'server.log')

TABLE_NAME_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
DEFAULT_SNAPSHOT_TABLES = ['tasks', 'finances']


def config_file_path():
    return normalize_path(os.getenv('LIFEDASH_CONFIG')) or DEFAULT_CONFIG_FILE


# ---------------------------------------------------------------------------
# Normalizers
# ---------------------------------------------------------------------------

def normalize_path(value):
    if not isinstance(value, str):
        return ''
    trimmed = value.strip()
    if not trimmed:
        return ''
    return os.path.abspath(os.path.expanduser(trimmed))


def normalize_relative(value, default):
    if not isinstance(value, str) or not value.strip():
        return default
    return value.strip()


def normalize_int(value, default, minimum=None, maximum=None):
    if isinstance(value, bool):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = default
    if minimum is not None:
        parsed = max(minimum, parsed)
    if maximum is not None:
        parsed = min(maximum, parsed)
    return parsed


def normalize_table_list(values, default):
    if isinstance(values, str):
        values = values.split(',')
    if not isinstance(values, list):
        return list(default)
    cleaned = []
    for item in values:
        if not isinstance(item, str):
            continue
        name = item.strip()
        if TABLE_NAME_PATTERN.match(name) and name not in cleaned:
            cleaned.append(name)
    return cleaned or list(default)


def is_valid_table_name(name):
    return isinstance(name, str) and bool(TABLE_NAME_PATTERN.match(name))


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------

def default_config():
    return {
        'data_dir': os.path.join(BASE_DIR, 'data'),
        'workspace_dir': os.path.expanduser('~/.openclaw/workspace'),
        'projects_file': 'PROJECTS.md',
        'inventory_file': 'INVENTORY.md',
        'calendar_file': 'content_calendar.md',
        'memory_file': 'MEMORY.md',
        'projects_dir': 'projects',
        'journal_dir': os.path.join('memory', 'journal'),
        'assets_dir': 'assets',
        'static_dir': os.path.join(BASE_DIR, 'client', 'build'),
        'cli_command': 'openclaw',
        'cli_timeout_seconds': 60,
        'completed_task_limit': 5,
        'snapshot_tables': list(DEFAULT_SNAPSHOT_TABLES),
    }


def normalized_config(data):
    defaults = default_config()
    return {
        'data_dir': normalize_path(data.get('data_dir')) or defaults['data_dir'],
        'workspace_dir': normalize_path(data.get('workspace_dir')) or defaults['workspace_dir'],
        'projects_file': normalize_relative(data.get('projects_file'), defaults['projects_file']),
        'inventory_file': normalize_relative(data.get('inventory_file'), defaults['inventory_file']),
        'calendar_file': normalize_relative(data.get('calendar_file'), defaults['calendar_file']),
        'memory_file': normalize_relative(data.get('memory_file'), defaults['memory_file']),
        'projects_dir': normalize_relative(data.get('projects_dir'), defaults['projects_dir']),
        'journal_dir': normalize_relative(data.get('journal_dir'), defaults['journal_dir']),
        'assets_dir': normalize_relative(data.get('assets_dir'), defaults['assets_dir']),
        'static_dir': normalize_path(data.get('static_dir')) or defaults['static_dir'],
        'cli_command': normalize_relative(data.get('cli_command'), defaults['cli_command']),
        'cli_timeout_seconds': normalize_int(
            data.get('cli_timeout_seconds'),
            defaults['cli_timeout_seconds'],
            minimum=1,
            maximum=3600
        ),
        'completed_task_limit': normalize_int(
            data.get('completed_task_limit'),
            defaults['completed_task_limit'],
            minimum=0,
            maximum=100
        ),
        'snapshot_tables': normalize_table_list(
            data.get('snapshot_tables'),
            defaults['snapshot_tables']
        ),
    }


def load_config(path=None):
    config_path = path or config_file_path()
    defaults = default_config()

    if not os.path.exists(config_path):
        config = normalized_config(defaults)
        try:
            save_config(config, config_path)
        except OSError:
            pass
        return config

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except (OSError, ValueError):
        return normalized_config(defaults)
    if not isinstance(raw, dict):
        return normalized_config(defaults)
    return normalized_config(raw)


def save_config(config, path=None):
    config_path = path or config_file_path()
    os.makedirs(os.path.dirname(config_path), exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def workspace_path(config, key):
    """Resolve a workspace-relative config entry to an absolute path."""
    return os.path.join(config['workspace_dir'], config[key])
