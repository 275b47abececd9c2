import io
import json
from datetime import datetime, timezone

import pytest

from milesync.config import default_config
from milesync.errors import APIError, NetworkError, NotFoundError
from milesync.logging import StructuredLogger
from milesync.models import ACTIVE, Milestone
from milesync.orchestrator import sync_milestones, write_summary
from milesync.provider import MilestoneProvider
from milesync.schedule import DATE_FORMAT

NOW = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


class _RecordingProvider(MilestoneProvider):
    name = 'recording'
    date_format = DATE_FORMAT
    active_state = 'active'

    def __post_init__(self):
        super().__post_init__()
        self.remote = {'active': [], 'closed': []}
        self.fail = {}
        self.fail_titles = {}
        self.created = []
        self.reopened = []

    @classmethod
    def api_root(cls, base_url):
        return base_url

    @classmethod
    def auth_headers(cls, token):
        return {}

    def resolve_project_id(self, project, namespace):
        if project != 'app':
            raise NotFoundError('project not found')
        return '42'

    def _milestones_path(self, project_id):
        return f'projects/{project_id}/milestones'

    def _to_milestone(self, record):
        return Milestone(record['title'], record['due_date'])

    def list_milestones(self, project_id, state):
        if state in self.fail:
            raise self.fail[state]
        return list(self.remote[state])

    def _create_one(self, project_id, milestone):
        if 'create' in self.fail:
            raise self.fail['create']
        if milestone.title in self.fail_titles:
            raise self.fail_titles[milestone.title]
        self.created.append(milestone.title)

    def _reactivate_one(self, project_id, milestone):
        if 'reactivate' in self.fail:
            raise self.fail['reactivate']
        if milestone.title in self.fail_titles:
            raise self.fail_titles[milestone.title]
        self.reopened.append(milestone.remote_id)


def _cfg(**overrides):
    cfg = default_config()
    cfg.base_url = 'https://gitlab.test'
    cfg.namespace = 'team'
    cfg.project = 'app'
    cfg.token = 'tok'
    cfg.advance = 5
    for k, v in overrides.items():
        setattr(cfg, k, v)
    return cfg


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def logger(log_stream):
    return StructuredLogger(name='milesync.test.orchestrator', level='DEBUG', stream=log_stream)


@pytest.fixture
def provider(fake_session, logger):
    p = _RecordingProvider(
        base_url='https://gitlab.test', token='tok', session=fake_session(), logger=logger
    )
    p.remote[ACTIVE] = [Milestone('2024-01-01', '2024-01-01'), Milestone('2024-01-02', '2024-01-02')]
    p.remote['closed'] = [
        Milestone('2024-01-03', '2024-01-03', remote_id='30', state='closed'),
        Milestone('2023-12-01', '2023-12-01', remote_id='31', state='closed'),
    ]
    return p


def test_sync_creates_missing_and_reopens_closed(provider, logger, log_stream):
    summary = sync_milestones(_cfg(), provider, logger, now=NOW)
    assert provider.created == ['2024-01-04', '2024-01-05']
    assert provider.reopened == ['30']
    assert summary['created'] == ['2024-01-04', '2024-01-05']
    assert summary['reactivated'] == ['2024-01-03']
    assert summary['project_id'] == '42'
    assert summary['errors'] == []
    assert summary['desired'] == ['2024-01-01', '2024-01-02', '2024-01-03', '2024-01-04', '2024-01-05']
    out = log_stream.getvalue()
    assert 'New milestones:' in out
    assert 'Title: 2024-01-04 - Due Date: 2024-01-04' in out


def test_second_run_is_a_no_op(provider, logger):
    sync_milestones(_cfg(), provider, logger, now=NOW)
    provider.remote[ACTIVE] += [Milestone(t, t) for t in provider.created]
    provider.remote[ACTIVE].append(Milestone('2024-01-03', '2024-01-03'))
    provider.remote['closed'] = []
    provider.created.clear()
    summary = sync_milestones(_cfg(), provider, logger, now=NOW)
    assert provider.created == []
    assert summary['planned_create'] == [] and summary['planned_reactivate'] == []


def test_dry_run_sends_no_mutations(provider, logger, log_stream):
    summary = sync_milestones(_cfg(), provider, logger, dry_run=True, now=NOW)
    assert provider.created == [] and provider.reopened == []
    assert [m['title'] for m in summary['planned_create']] == ['2024-01-04', '2024-01-05']
    assert [m['remote_id'] for m in summary['planned_reactivate']] == ['30']
    assert summary['created'] == []
    assert '[DRY]' in log_stream.getvalue()


def test_active_fetch_failure_skips_creation(provider, logger):
    provider.fail[ACTIVE] = NetworkError('connection reset')
    summary = sync_milestones(_cfg(), provider, logger, now=NOW)
    assert provider.created == []
    assert provider.reopened == ['30']
    assert [e['step'] for e in summary['errors']] == ['fetch_active']
    assert summary['errors'][0]['category'] == 'network'


def test_closed_fetch_failure_skips_creation(provider, logger):
    # 2024-01-03 exists as a closed milestone; creating it would clash
    provider.fail['closed'] = APIError('boom', status=500)
    summary = sync_milestones(_cfg(), provider, logger, now=NOW)
    assert provider.created == []
    assert summary['planned_create'] == []
    assert summary['created'] == []
    assert summary['reactivated'] == []
    assert [e['step'] for e in summary['errors']] == ['fetch_closed']


def test_create_failure_is_recorded_and_reactivation_continues(provider, logger):
    provider.fail['create'] = APIError('validation failed', status=422)
    summary = sync_milestones(_cfg(), provider, logger, now=NOW)
    assert summary['created'] == []
    assert summary['reactivated'] == ['2024-01-03']
    assert summary['errors'][0]['step'] == 'create'
    assert summary['errors'][0]['type'] == 'APIError'


def test_unknown_project_aborts(provider, logger):
    with pytest.raises(NotFoundError):
        sync_milestones(_cfg(project='ghost'), provider, logger, now=NOW)
    assert provider.created == []


def test_write_summary(tmp_path, provider, logger):
    summary = sync_milestones(_cfg(), provider, logger, dry_run=True, now=NOW)
    target = write_summary(summary, tmp_path / 'out' / 'summary.json')
    data = json.loads(target.read_text())
    assert data['dry_run'] is True
    assert data['provider'] == 'recording'


def test_partial_creation_is_reported(provider, logger):
    # creations are 2024-01-04..06; the last POST is rejected
    provider.fail_titles['2024-01-06'] = APIError('title taken', status=400)
    summary = sync_milestones(_cfg(advance=6), provider, logger, now=NOW)
    assert provider.created == ['2024-01-04', '2024-01-05']
    assert summary['created'] == ['2024-01-04', '2024-01-05']
    assert [e['step'] for e in summary['errors']] == ['create']
    assert summary['reactivated'] == ['2024-01-03']


def test_partial_reactivation_is_reported(provider, logger):
    provider.remote['closed'] = [
        Milestone('2024-01-03', '2024-01-03', remote_id='30', state='closed'),
        Milestone('2024-01-04', '2024-01-04', remote_id='40', state='closed'),
        Milestone('2024-01-05', '2024-01-05', remote_id='50', state='closed'),
    ]
    provider.fail_titles['2024-01-05'] = NetworkError('connection reset')
    summary = sync_milestones(_cfg(), provider, logger, now=NOW)
    assert provider.reopened == ['30', '40']
    assert summary['reactivated'] == ['2024-01-03', '2024-01-04']
    assert summary['created'] == []
    assert [e['step'] for e in summary['errors']] == ['reactivate']
