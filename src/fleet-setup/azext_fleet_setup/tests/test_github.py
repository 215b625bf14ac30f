# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

import base64
import datetime
import unittest
from unittest import mock

from azure.cli.core.util import CLIError

from azext_fleet_setup import _github


def _completed(returncode=0, stdout='', stderr=''):
    proc = mock.MagicMock()
    proc.returncode = returncode
    proc.stdout = stdout
    proc.stderr = stderr
    return proc


@mock.patch('azext_fleet_setup._github.shutil.which', return_value='/usr/bin/gh')
@mock.patch('azext_fleet_setup._github.subprocess.run')
class TestRunGh(unittest.TestCase):

    def test_returns_stripped_stdout(self, run_mock, _):
        run_mock.return_value = _completed(stdout='octocat\n')
        self.assertEqual(_github.get_login(), 'octocat')
        args = run_mock.call_args[0][0]
        self.assertEqual(args, ['/usr/bin/gh', 'api', 'user', '--jq', '.login'])

    def test_parses_json(self, run_mock, _):
        run_mock.return_value = _completed(stdout='[{"databaseId": 7}]')
        self.assertEqual(_github.run_gh(['run', 'list'], parse_json=True), [{'databaseId': 7}])

    def test_empty_json_output_is_none(self, run_mock, _):
        run_mock.return_value = _completed(stdout='')
        self.assertIsNone(_github.run_gh(['api', 'x'], parse_json=True))

    def test_failure_raises_with_stderr(self, run_mock, _):
        run_mock.return_value = _completed(returncode=1, stderr='HTTP 404: Not Found\n')
        with self.assertRaisesRegex(CLIError, 'HTTP 404'):
            _github.run_gh(['repo', 'view', 'octo/missing'])

    def test_unauthenticated(self, run_mock, _):
        run_mock.return_value = _completed(returncode=1, stderr='You are not logged into any GitHub hosts.')
        with self.assertRaisesRegex(CLIError, 'gh auth login'):
            _github.ensure_authenticated()

    def test_secret_goes_through_stdin(self, run_mock, _):
        run_mock.return_value = _completed()
        _github.secret_set('octo/fleet', 'AZURE_CLIENT_ID', 'app-id')
        args, kwargs = run_mock.call_args
        self.assertEqual(args[0], ['/usr/bin/gh', 'secret', 'set', 'AZURE_CLIENT_ID', '--repo', 'octo/fleet'])
        self.assertEqual(kwargs['input'], 'app-id')

    def test_secret_failure(self, run_mock, _):
        run_mock.return_value = _completed(returncode=1, stderr='forbidden')
        with self.assertRaises(CLIError):
            _github.secret_set('octo/fleet', 'AZURE_CLIENT_ID', 'app-id')

    def test_repo_create_from_template(self, run_mock, _):
        run_mock.return_value = _completed(stdout='https://github.com/octo/fleet')
        _github.repo_create('octo/fleet', visibility='public', template='octo/template')
        self.assertEqual(run_mock.call_args[0][0][1:],
                         ['repo', 'create', 'octo/fleet', '--public', '--template', 'octo/template'])

    def test_repo_create_with_readme(self, run_mock, _):
        run_mock.return_value = _completed()
        _github.repo_create('octo/fleet', add_readme=True)
        self.assertEqual(run_mock.call_args[0][0][1:], ['repo', 'create', 'octo/fleet', '--private', '--add-readme'])

    def test_workflow_run_skips_empty_inputs(self, run_mock, _):
        run_mock.return_value = _completed()
        _github.workflow_run('octo/fleet', 'fleet-update.yml', ref='main',
                             inputs={'upgradeType': 'NodeImageOnly', 'kubernetesVersion': None})
        self.assertEqual(run_mock.call_args[0][0][1:],
                         ['workflow', 'run', 'fleet-update.yml', '--repo', 'octo/fleet', '--ref', 'main',
                          '-f', 'upgradeType=NodeImageOnly'])

    def test_put_file_encodes_content(self, run_mock, _):
        run_mock.return_value = _completed(stdout='{"content": {"path": "a.yml"}}')
        _github.put_file('octo/fleet', '.github/workflows/a.yml', 'name: x\n', 'Add workflow', branch='main')
        args = run_mock.call_args[0][0]
        self.assertIn('repos/octo/fleet/contents/.github/workflows/a.yml', args)
        encoded = base64.b64encode(b'name: x\n').decode('utf-8')
        self.assertIn('content={}'.format(encoded), args)
        self.assertIn('branch=main', args)


class TestGhLookup(unittest.TestCase):

    @mock.patch('azext_fleet_setup._github.shutil.which', return_value=None)
    def test_missing_executable(self, _):
        with self.assertRaisesRegex(CLIError, 'Can not find gh'):
            _github.run_gh(['auth', 'status'])

    def test_qualify_repo_keeps_owner(self):
        self.assertEqual(_github.qualify_repo('octo/fleet'), 'octo/fleet')
        self.assertEqual(_github.qualify_repo('fleet', login='octocat'), 'octocat/fleet')

    @mock.patch('azext_fleet_setup._github.get_login', return_value='octocat')
    def test_qualify_repo_uses_login(self, _):
        self.assertEqual(_github.qualify_repo('fleet'), 'octocat/fleet')


class TestFindDispatchedRun(unittest.TestCase):

    def setUp(self):
        self.dispatched_at = datetime.datetime(2026, 3, 1, 12, 0, 0, 500000, tzinfo=datetime.timezone.utc)

    def test_picks_oldest_run_after_dispatch(self):
        runs = [
            {'databaseId': 3, 'createdAt': '2026-03-01T12:00:09Z'},
            {'databaseId': 2, 'createdAt': '2026-03-01T12:00:00Z'},
            {'databaseId': 1, 'createdAt': '2026-03-01T11:58:00Z'},
        ]
        self.assertEqual(_github.find_dispatched_run(runs, self.dispatched_at)['databaseId'], 2)

    def test_no_run_yet(self):
        runs = [{'databaseId': 1, 'createdAt': '2026-03-01T11:58:00Z'}, {'databaseId': 4}]
        self.assertIsNone(_github.find_dispatched_run(runs, self.dispatched_at))


if __name__ == '__main__':
    unittest.main()
