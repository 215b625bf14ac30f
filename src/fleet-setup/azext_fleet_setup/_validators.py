# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

import re

from azure.cli.core.azclierror import (
    InvalidArgumentValueError,
    MutuallyExclusiveArgumentError,
    RequiredArgumentMissingError,
)

from ._consts import (
    UPGRADE_TYPE_CONTROL_PLANE_ONLY,
    UPGRADE_TYPE_FULL,
    UPGRADE_TYPE_NODE_IMAGE_ONLY,
)

_K8S_VERSION_RE = re.compile(r'^[vV]?(\d+\.\d+(?:\.\d+)?)$')
_FLEET_NAME_RE = re.compile(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?$')
_SUFFIX_RE = re.compile(r'^[a-z0-9]{1,8}$')
_REPO_PART_RE = re.compile(r'^[A-Za-z0-9_.-]+$')
_CREDENTIAL_PART_RE = re.compile(r'^[A-Za-z0-9_./-]+$')


def normalize_location(location):
    return location.lower().replace(' ', '') if location else location


def validate_k8s_version(namespace):
    """Validates a string as a possible Kubernetes version. An empty string is also valid, which tells
    the server to use its default version."""
    if namespace.kubernetes_version:
        found = _K8S_VERSION_RE.findall(namespace.kubernetes_version)
        if found:
            namespace.kubernetes_version = found[0]
        else:
            raise InvalidArgumentValueError('--kubernetes-version should be the full version number, '
                                            'such as "1.29.2" or "1.29"')


def validate_fleet_name(namespace):
    name = namespace.fleet_name
    if name is None:
        return
    if len(name) > 63 or not _FLEET_NAME_RE.match(name):
        raise InvalidArgumentValueError('--fleet-name must be 1-63 lowercase alphanumeric characters or '
                                        'hyphens, starting and ending with an alphanumeric character')


def validate_suffix(namespace):
    if namespace.suffix is not None and not _SUFFIX_RE.match(namespace.suffix):
        raise InvalidArgumentValueError('--suffix must be 1-8 lowercase alphanumeric characters')


def parse_member_locations(values):
    """Splits comma separated values into normalized regions, rejecting repeated ones."""
    locations = []
    for value in values:
        for location in value.split(','):
            location = normalize_location(location.strip())
            if not location:
                continue
            if location in locations:
                raise InvalidArgumentValueError(
                    'Member location "{}" is listed more than once; each region hosts '
                    'a single member cluster'.format(location))
            locations.append(location)
    return locations


def validate_member_locations(namespace):
    if namespace.member_locations:
        namespace.member_locations = parse_member_locations(namespace.member_locations)


def validate_node_count(namespace):
    if namespace.node_count is not None and int(namespace.node_count) < 1:
        raise InvalidArgumentValueError('--node-count must be at least 1')


def validate_repo(namespace):
    repo = namespace.repo
    if repo is None:
        return
    parts = repo.split('/')
    if len(parts) > 2 or not all(parts) or not all(_REPO_PART_RE.match(p) for p in parts):
        raise InvalidArgumentValueError('--repo must be "NAME" or "OWNER/NAME" using letters, '
                                        'digits, ".", "-" or "_"')
    if len(parts[-1]) > 100:
        raise InvalidArgumentValueError('GitHub repository names are limited to 100 characters')


def validate_template(namespace):
    template = getattr(namespace, 'template', None)
    if template is None:
        return
    parts = template.split('/')
    if len(parts) != 2 or not all(_REPO_PART_RE.match(p) for p in parts):
        raise InvalidArgumentValueError('--template must be "OWNER/NAME" of a GitHub template repository')


def validate_federated_subject(namespace):
    if namespace.branch and namespace.environment:
        raise MutuallyExclusiveArgumentError('Specify either --branch or --environment, but not both.')
    for value in (namespace.branch, namespace.environment):
        if value and not _CREDENTIAL_PART_RE.match(value):
            raise InvalidArgumentValueError('Invalid branch or environment name "{}"'.format(value))


def validate_update_run(namespace):
    """Checks the Kubernetes version against the requested upgrade type."""
    validate_k8s_version(namespace)
    upgrade_type = namespace.upgrade_type
    if upgrade_type in (UPGRADE_TYPE_FULL, UPGRADE_TYPE_CONTROL_PLANE_ONLY) and not namespace.kubernetes_version:
        raise RequiredArgumentMissingError(
            '--kubernetes-version is required when --upgrade-type is {}'.format(upgrade_type))
    if upgrade_type == UPGRADE_TYPE_NODE_IMAGE_ONLY and namespace.kubernetes_version:
        raise MutuallyExclusiveArgumentError(
            '--kubernetes-version cannot be used when --upgrade-type is {}'.format(upgrade_type))
