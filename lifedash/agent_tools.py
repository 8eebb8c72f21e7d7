"""Agent-facing task and expense tools, served over MCP (streamable-HTTP)."""

from mcp.server.fastmcp import FastMCP

from .errors import NotFound

MCP_SERVER_NAME = 'lifedash-mcp'
MCP_PORT = 5051
PRIORITY_OPTIONS = {'low', 'medium', 'high', 'urgent'}


def add_task(store, description, priority='medium'):
    description = (description or '').strip()
    if not description:
        raise ValueError('description is required')
    priority = (priority or 'medium').strip().lower()
    if priority not in PRIORITY_OPTIONS:
        raise ValueError(f'Invalid priority: {priority}')
    return store.create_record('tasks', {
        'description': description,
        'priority': priority,
        'status': 'pending',
        'source': 'agent',
    })


def log_expense(store, title, amount, category='other'):
    title = (title or '').strip()
    if not title:
        raise ValueError('title is required')
    try:
        amount = float(amount)
    except (TypeError, ValueError) as exc:
        raise ValueError(f'Invalid amount: {amount!r}') from exc
    return store.create_record('finances', {
        'title': title,
        'amount': amount,
        'type': 'expense',
        'category': (category or 'other').strip() or 'other',
        'source': 'agent',
    })


def list_tasks(store, status=None):
    tasks = store.read_table('tasks')
    if status:
        tasks = [t for t in tasks if t.get('status') == status.strip()]
    return tasks


def update_task(store, task_id, status):
    status = (status or '').strip()
    if not status:
        raise ValueError('status is required')
    try:
        return store.update_record('tasks', task_id, {'status': status})
    except NotFound as exc:
        raise ValueError('task not found') from exc


def create_mcp_server(store, host='127.0.0.1', port=MCP_PORT):
    mcp = FastMCP(MCP_SERVER_NAME, host=host, port=port)

    @mcp.tool(name='add_task')
    def add_task_tool(description: str, priority: str = 'medium') -> dict:
        """Add a task to the dashboard.

        Args:
            description: Task description text.
            priority: low, medium, high or urgent. Default: medium.
        """
        return {'task': add_task(store, description, priority)}

    @mcp.tool(name='log_expense')
    def log_expense_tool(title: str, amount: float, category: str = 'other') -> dict:
        """Record an expense in the finances table.

        Args:
            title: What the money was spent on.
            amount: Amount spent.
            category: Expense category. Default: other.
        """
        return {'expense': log_expense(store, title, amount, category)}

    @mcp.tool(name='list_tasks')
    def list_tasks_tool(status: str | None = None) -> dict:
        """List dashboard tasks, optionally filtered by status (e.g. pending, completed)."""
        tasks = list_tasks(store, status)
        return {'tasks': tasks, 'count': len(tasks)}

    @mcp.tool(name='update_task')
    def update_task_tool(task_id: str, status: str) -> dict:
        """Set the status of an existing task.

        Args:
            task_id: Task ID as returned by add_task or list_tasks.
            status: New status, usually pending or completed.
        """
        return {'task': update_task(store, task_id, status)}

    return mcp
