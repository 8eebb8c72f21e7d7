"""External CLI boundary.

Arguments are passed as a list and never interpreted by a shell, so task text
can go straight into ``--message``. The generated job name is still trimmed to
plain characters to keep it readable in the CLI's listings.
"""

import json
import logging
import re
import subprocess
import time

from .errors import CommandError
from .logs import log_event

JOB_NAME_UNSAFE = re.compile(r'[^A-Za-z0-9 ]')
JOB_NAME_TASK_LENGTH = 20
AUTH_GUIDANCE = 'Gateway auth required. Run: openclaw doctor --fix'


def job_name(task, timestamp_ms=None):
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    safe_task = JOB_NAME_UNSAFE.sub('', task or '')[:JOB_NAME_TASK_LENGTH]
    return f'dash-{safe_task}-{timestamp_ms}'


class CommandRunner:
    def __init__(self, command='openclaw', cwd=None, timeout=60):
        self.command = command
        self.cwd = cwd
        self.timeout = timeout

    def run(self, args):
        argv = [self.command] + [str(a) for a in args]
        log_event(logging.INFO, 'cli_invoked', args=' '.join(argv[1:3]))
        try:
            result = subprocess.run(
                argv,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as exc:
            log_event(logging.WARNING, 'cli_failed', reason='timeout', timeout=self.timeout)
            raise CommandError(f'Command timed out after {self.timeout}s: {self.command}') from exc
        except OSError as exc:
            log_event(logging.WARNING, 'cli_failed', reason='unavailable', error=exc)
            raise CommandError(f'Command could not be started: {exc}') from exc

        if result.returncode != 0:
            stderr = (result.stderr or '').strip()
            log_event(logging.WARNING, 'cli_failed', returncode=result.returncode)
            raise CommandError(
                stderr or f'Command failed with exit code {result.returncode}',
                stderr=stderr,
                returncode=result.returncode
            )
        return result.stdout or ''

    # ------------------------------------------------------------------
    # CLI operations
    # ------------------------------------------------------------------

    def status(self):
        return self.run(['status'])

    def list_jobs(self):
        output = self.run(['cron', 'list', '--json'])
        try:
            jobs = json.loads(output)
        except ValueError:
            log_event(logging.WARNING, 'cli_output_unparsable', command='cron list')
            return []
        return jobs

    def spawn_job(self, task, agent_id=None):
        name = job_name(task)
        args = [
            'cron', 'add',
            '--name', name,
            '--at', '1s',
            '--message', task,
            '--session', 'isolated',
            '--announce',
        ]
        if agent_id:
            args += ['--agent', agent_id]
        return {'result': self.run(args), 'jobId': name}

    def kill_job(self, target):
        return self.run(['subagents', 'kill', '--target', target])
