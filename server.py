#!/usr/bin/env python3
"""
Life Dashboard - Flask API Server
Serves JSON-file tables, markdown-derived views and the bundled front-end.
Task writes are mirrored into the workspace PROJECTS.md "Next Actions" section.
MCP tools are served via FastMCP on port 5051 (streamable-HTTP transport).
"""

import json
import os
import threading
from datetime import datetime

from dotenv import load_dotenv

from lifedash.agent_tools import MCP_PORT, MCP_SERVER_NAME, create_mcp_server
from lifedash.app import build_store, create_app
from lifedash.config import STARTUP_LOG_FILE, load_config, workspace_path
from lifedash.logs import configure_logging


def mcp_server_config():
    return {
        'mcpServers': {
            MCP_SERVER_NAME: {
                'url': f'http://localhost:{MCP_PORT}/mcp',
                'type': 'http',
            }
        }
    }


def write_startup_log(web_url, config):
    timestamp = datetime.now().isoformat(timespec='seconds')
    lines = [
        f"[{timestamp}] Life Dashboard running at {web_url}",
        f"Data dir: {config['data_dir']}",
        f"Workspace: {config['workspace_dir']}",
        f"Synced tasks: {workspace_path(config, 'projects_file')}",
        f"MCP server: http://localhost:{MCP_PORT}/mcp",
        f"MCP server config: {json.dumps(mcp_server_config(), ensure_ascii=True)}",
        ""
    ]
    try:
        with open(STARTUP_LOG_FILE, 'a', encoding='utf-8') as f:
            f.write('\n'.join(lines))
    except OSError:
        pass


if __name__ == '__main__':
    load_dotenv()
    configure_logging()

    host = os.getenv('LIFEDASH_HOST', '0.0.0.0')
    port = int(os.getenv('LIFEDASH_PORT', '3000'))
    web_url = f'http://localhost:{port}'
    config = load_config()
    store = build_store(config)
    app = create_app(config, store=store)

    print(f"Life Dashboard web UI:  {web_url}")
    print(f"MCP server:             http://localhost:{MCP_PORT}/mcp")
    print(f"Data dir:               {config['data_dir']}")
    print(f"Workspace:              {config['workspace_dir']}")
    write_startup_log(web_url, config)

    # Run FastMCP (streamable-HTTP) in a background daemon thread
    mcp = create_mcp_server(store)
    mcp_thread = threading.Thread(
        target=lambda: mcp.run(transport='streamable-http'),
        daemon=True,
        name='mcp-server',
    )
    mcp_thread.start()

    app.run(host=host, port=port, debug=False, use_reloader=False, threaded=True)
