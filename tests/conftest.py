import pytest

from lifedash.app import create_app
from lifedash.commands import CommandRunner
from lifedash.config import normalized_config
from lifedash.markdown_sync import TaskMarkdownSync
from lifedash.notify import Broadcaster
from lifedash.store import MemoryBackend, RecordStore


class FakeRunner(CommandRunner):
    """Records CLI argument lists instead of executing them."""

    def __init__(self, output='', error=None):
        super().__init__('openclaw')
        self.output = output
        self.error = error
        self.calls = []

    def run(self, args):
        self.calls.append(list(args))
        if self.error is not None:
            raise self.error
        return self.output


class StepClock:
    def __init__(self, start=1700000000000):
        self.value = start

    def __call__(self):
        return self.value


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / 'workspace'
    root.mkdir()
    (root / 'PROJECTS.md').write_text('# Projects\n\nSome notes.\n', encoding='utf-8')
    return root


@pytest.fixture
def config(tmp_path, workspace):
    return normalized_config({
        'data_dir': str(tmp_path / 'data'),
        'workspace_dir': str(workspace),
        'static_dir': str(tmp_path / 'static'),
    })


@pytest.fixture
def store(workspace):
    store = RecordStore(MemoryBackend())
    store.add_listener(TaskMarkdownSync(str(workspace / 'PROJECTS.md')))
    return store


@pytest.fixture
def broadcaster():
    return Broadcaster()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def app(config, store, broadcaster, runner):
    app = create_app(config, store=store, broadcaster=broadcaster, runner=runner)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
