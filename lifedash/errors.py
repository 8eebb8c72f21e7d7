class DashboardError(Exception):
    pass


class InvalidTableName(DashboardError):
    def __init__(self, name):
        super().__init__(f'Invalid table name: {name!r}')
        self.name = name


class NotFound(DashboardError):
    def __init__(self, table, record_id):
        super().__init__(f'No record {record_id!r} in table {table!r}')
        self.table = table
        self.record_id = record_id


class CommandError(DashboardError):
    """The external CLI failed, timed out or could not be started."""

    def __init__(self, message, stderr='', returncode=None):
        super().__init__(message)
        self.stderr = stderr or ''
        self.returncode = returncode

    @property
    def is_authorization_failure(self):
        text = f'{self} {self.stderr}'.lower()
        return 'unauthorized' in text
