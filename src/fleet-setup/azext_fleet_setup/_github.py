# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

"""
Thin wrappers over the GitHub CLI (`gh`). Every call shells out to the
executable found on PATH and relies on its own authentication.
"""

import base64
import shutil
import subprocess

import dateutil.parser
from knack.log import get_logger

from azure.cli.core.util import CLIError
from azure.cli.core.util import shell_safe_json_parse

logger = get_logger(__name__)

GH_INSTALL_URL = 'https://cli.github.com/'


def which(binary='gh'):
    return shutil.which(binary)


def _gh_path():
    path = which('gh')
    if not path:
        raise CLIError('Can not find gh executable in PATH. Install the GitHub CLI from {} '
                       'and run "gh auth login".'.format(GH_INSTALL_URL))
    return path


def run_gh(args, parse_json=False):
    """Run a gh command and return its stdout, parsed as JSON when asked."""
    cmd = [_gh_path()] + list(args)
    logger.debug('Running: gh %s', ' '.join(args))
    proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                          universal_newlines=True, check=False)
    if proc.returncode != 0:
        message = (proc.stderr or proc.stdout or '').strip()
        raise CLIError('gh {} failed ({}): {}'.format(args[0] if args else '', proc.returncode, message))
    output = proc.stdout.strip()
    if parse_json:
        return shell_safe_json_parse(output) if output else None
    return output


def ensure_authenticated():
    proc = subprocess.run([_gh_path(), 'auth', 'status'], stdout=subprocess.PIPE,
                          stderr=subprocess.PIPE, universal_newlines=True, check=False)
    if proc.returncode != 0:
        raise CLIError('The GitHub CLI is not authenticated. Run "gh auth login" and try again.')


def get_login():
    return run_gh(['api', 'user', '--jq', '.login'])


def qualify_repo(repo, login=None):
    """Returns OWNER/NAME, filling the owner from the authenticated user."""
    if '/' in repo:
        return repo
    return '{}/{}'.format(login or get_login(), repo)


def repo_create(repo, visibility='private', template=None, add_readme=False):
    args = ['repo', 'create', repo, '--{}'.format(visibility)]
    if template:
        args.extend(['--template', template])
    elif add_readme:
        args.append('--add-readme')
    return run_gh(args)


def repo_delete(repo):
    # requires the delete_repo scope: gh auth refresh -s delete_repo
    return run_gh(['repo', 'delete', repo, '--yes'])


def put_file(repo, path, content, message, branch=None):
    """Commit a single file through the repository contents API."""
    args = ['api', '--method', 'PUT', 'repos/{}/contents/{}'.format(repo, path),
            '-f', 'message={}'.format(message),
            '-f', 'content={}'.format(base64.b64encode(content.encode('utf-8')).decode('utf-8'))]
    if branch:
        args.extend(['-f', 'branch={}'.format(branch)])
    return run_gh(args, parse_json=True)


def secret_set(repo, name, value):
    # the value goes through stdin so it never shows up in the process list
    cmd = [_gh_path(), 'secret', 'set', name, '--repo', repo]
    logger.debug('Running: gh secret set %s --repo %s', name, repo)
    proc = subprocess.run(cmd, input=value, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                          universal_newlines=True, check=False)
    if proc.returncode != 0:
        raise CLIError('gh secret set {} failed ({}): {}'.format(name, proc.returncode, proc.stderr.strip()))


def variable_set(repo, name, value):
    return run_gh(['variable', 'set', name, '--body', value, '--repo', repo])


def workflow_run(repo, workflow, ref=None, inputs=None):
    args = ['workflow', 'run', workflow, '--repo', repo]
    if ref:
        args.extend(['--ref', ref])
    for key, value in (inputs or {}).items():
        if value is not None:
            args.extend(['-f', '{}={}'.format(key, value)])
    return run_gh(args)


def run_list(repo, workflow, limit=10):
    return run_gh(['run', 'list', '--repo', repo, '--workflow', workflow,
                   '--event', 'workflow_dispatch', '--limit', str(limit),
                   '--json', 'databaseId,createdAt,status,conclusion,url,headBranch'],
                  parse_json=True) or []


def find_dispatched_run(runs, dispatched_at):
    """Picks the oldest run created at or after the dispatch time.

    GitHub timestamps have second precision, so the dispatch time is compared
    with its microseconds dropped.
    """
    dispatched_at = dispatched_at.replace(microsecond=0)
    candidates = []
    for run in runs:
        created = run.get('createdAt')
        if not created:
            continue
        if dateutil.parser.isoparse(created) >= dispatched_at:
            candidates.append(run)
    if not candidates:
        return None
    return min(candidates, key=lambda r: dateutil.parser.isoparse(r['createdAt']))


def run_watch(repo, run_id):
    """Streams the run's progress to the terminal; returns the gh exit code."""
    return subprocess.call([_gh_path(), 'run', 'watch', str(run_id), '--repo', repo, '--exit-status'])
