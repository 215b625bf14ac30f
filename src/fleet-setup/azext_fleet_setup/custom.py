# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

import binascii
import datetime
import errno
import json
import os
import re
import time
from collections import OrderedDict

from knack.log import get_logger

from azure.cli.core._profile import Profile
from azure.cli.core.azclierror import (
    InvalidArgumentValueError,
    RequiredArgumentMissingError,
    ResourceNotFoundError,
)
from azure.cli.core.commands import LongRunningOperation
from azure.cli.core.commands.client_factory import get_subscription_id
from azure.cli.core.profiles import ResourceType
from azure.cli.core.util import CLIError
from azure.cli.core.util import sdk_no_wait
from azure.core.exceptions import ResourceNotFoundError as AzureResourceNotFoundError
from azure.mgmt.core.tools import parse_resource_id

from . import _github
from ._client_factory import (
    cf_fleet_members,
    cf_fleets,
    cf_graph_client,
    cf_managed_clusters,
    cf_providers,
    cf_resource_groups,
)
from ._consts import (
    CONFIG_SECTION,
    CONTAINER_SERVICE_NAMESPACE,
    DEFAULT_BRANCH,
    DEFAULT_MEMBER_LOCATIONS,
    DEFAULT_NODE_COUNT,
    DEFAULT_NODE_VM_SIZE,
    DEFAULT_WORKFLOW_FILE,
    FLEETS_RESOURCE_TYPE,
    GITHUB_OIDC_AUDIENCE,
    GITHUB_OIDC_ISSUER,
    MANAGED_CLUSTERS_RESOURCE_TYPE,
    SECRET_CLIENT_ID,
    SECRET_SUBSCRIPTION_ID,
    SECRET_TENANT_ID,
    TAG_APP_ID,
    TAG_REPO,
    TAG_SUBJECT,
    UPGRADE_TYPE_FULL,
    VARIABLE_FLEET_NAME,
    VARIABLE_RESOURCE_GROUP,
)
from ._validators import normalize_location, parse_member_locations
from ._workflow import build_update_run_workflow, render_workflow

logger = get_logger(__name__)

# how long to look for a dispatched run before handing back without its id
RUN_LOOKUP_ATTEMPTS = 5
RUN_LOOKUP_INTERVAL = 3


def _get_config_value(cli_ctx, key, fallback=None):
    return cli_ctx.config.get(CONFIG_SECTION, key, fallback)


def _get_member_locations(cli_ctx, member_locations):
    if member_locations:
        return member_locations
    configured = _get_config_value(cli_ctx, 'member_locations')
    if configured:
        return parse_member_locations(re.split(r'\s+', configured))
    return list(DEFAULT_MEMBER_LOCATIONS)


def _get_tenant_id(cli_ctx, subscription_id):
    return Profile(cli_ctx=cli_ctx).get_subscription(subscription=subscription_id)['tenantId']


def _random_suffix():
    return binascii.b2a_hex(os.urandom(3)).decode('utf-8')


def _get_default_dns_prefix(name, resource_group_name, subscription_id):
    # Use subscription id to provide uniqueness and prevent DNS name clashes
    name_part = re.sub('[^A-Za-z0-9-]', '', name)[0:10]
    if not name_part[0].isalpha():
        name_part = (str('a') + name_part)[0:10]
    resource_group_part = re.sub('[^A-Za-z0-9-]', '', resource_group_name)[0:16]
    return '{}-{}-{}'.format(name_part, resource_group_part, subscription_id[0:6])


def _cluster_name(location, suffix):
    # doubles as the fleet member name, which is capped at 50 characters
    return 'aks-{}-{}'.format(normalize_location(location), suffix)[0:50].rstrip('-')


def _version_key(version):
    parts = []
    for part in str(version).lstrip('vV').split('.'):
        match = re.match(r'\d+', part)
        parts.append(int(match.group(0)) if match else 0)
    return tuple(parts)


def register_providers(cli_ctx):
    providers = cf_providers(cli_ctx)
    provider = providers.get(CONTAINER_SERVICE_NAMESPACE)
    if provider.registration_state != 'Registered':
        logger.warning('Registering resource provider %s', CONTAINER_SERVICE_NAMESPACE)
        providers.register(CONTAINER_SERVICE_NAMESPACE)
    else:
        logger.info('%s is already registered', CONTAINER_SERVICE_NAMESPACE)
    return provider


def _check_locations_supported(provider, resource_type, locations):
    supported = None
    for provider_type in provider.resource_types or []:
        if provider_type.resource_type.lower() == resource_type.lower():
            supported = {normalize_location(l) for l in provider_type.locations or []}
            break
    if not supported:
        logger.info('No location list published for %s/%s', CONTAINER_SERVICE_NAMESPACE, resource_type)
        return
    unsupported = [l for l in locations if normalize_location(l) not in supported]
    if unsupported:
        raise InvalidArgumentValueError(
            '{}/{} is not available in: {}. Supported locations: {}'.format(
                CONTAINER_SERVICE_NAMESPACE, resource_type, ', '.join(unsupported), ', '.join(sorted(supported))))


def _list_versions(cli_ctx, location):
    result = cf_managed_clusters(cli_ctx).list_kubernetes_versions(location)
    versions = []
    for version in getattr(result, 'values', None) or []:
        patches = sorted((version.patch_versions or {}).keys(), key=_version_key, reverse=True)
        versions.append(OrderedDict([
            ('version', version.version),
            ('latestPatch', patches[0] if patches else version.version),
            ('isPreview', bool(version.is_preview)),
            ('isDefault', bool(version.is_default)),
        ]))
    if not versions:
        raise ResourceNotFoundError(
            'No Kubernetes versions are available in "{}". Check that the region supports AKS, '
            'or pass --kubernetes-version explicitly.'.format(location))
    return sorted(versions, key=lambda v: _version_key(v['version']), reverse=True)


def _select_default_version(versions, location):
    for version in versions:
        if not version['isPreview']:
            return version['latestPatch']
    raise ResourceNotFoundError(
        'Only preview Kubernetes versions are available in "{}"; pass --kubernetes-version '
        'to use one of them.'.format(location))


def fleet_setup_get_versions(cmd, location):
    """List the Kubernetes versions available in a region, newest first.
    :param location: Azure region to query.
    :type location: str
    """
    return _list_versions(cmd.cli_ctx, location)


def _resolve_location(groups, resource_group_name, location):
    """Returns the location to use and whether the resource group already exists."""
    exists = groups.check_existence(resource_group_name)
    if exists:
        rg = groups.get(resource_group_name)
        if location is None:
            location = rg.location
        elif normalize_location(location) != normalize_location(rg.location):
            logger.warning('Resource group %s is in %s; the fleet will be created in %s',
                           resource_group_name, rg.location, location)
    if not location:
        raise RequiredArgumentMissingError(
            'No location given. Pass --location or set a default with "az config set defaults.location=<region>".')
    return normalize_location(location), exists


def _build_managed_cluster(cmd, name, resource_group_name, subscription_id, location,
                           kubernetes_version, node_count, node_vm_size, tags):
    ManagedCluster, ManagedClusterAgentPoolProfile, ManagedClusterIdentity = cmd.get_models(
        'ManagedCluster', 'ManagedClusterAgentPoolProfile', 'ManagedClusterIdentity',
        resource_type=ResourceType.MGMT_CONTAINERSERVICE, operation_group='managed_clusters')
    agent_pool_profile = ManagedClusterAgentPoolProfile(
        name='nodepool1',
        count=int(node_count),
        vm_size=node_vm_size,
        os_type='Linux',
        mode='System',
    )
    return ManagedCluster(
        location=location,
        tags=tags,
        dns_prefix=_get_default_dns_prefix(name, resource_group_name, subscription_id),
        kubernetes_version=kubernetes_version,
        agent_pool_profiles=[agent_pool_profile],
        identity=ManagedClusterIdentity(type='SystemAssigned'),
        enable_rbac=True,
    )


def fleet_setup_create(cmd, resource_group_name,  # pylint: disable=too-many-locals
                       location=None,
                       fleet_name=None,
                       suffix=None,
                       member_locations=None,
                       kubernetes_version=None,
                       node_count=DEFAULT_NODE_COUNT,
                       node_vm_size=DEFAULT_NODE_VM_SIZE,
                       tags=None):
    """Create a fleet and one member AKS cluster per region, then join them to the fleet.
    :param resource_group_name: Resource group for the fleet and its member clusters.
     Created when it does not exist.
    :type resource_group_name: str
    :param location: Region of the fleet resource. Defaults to the resource group's location.
    :type location: str
    :param fleet_name: Name of the fleet. Defaults to "fleet-<suffix>".
    :type fleet_name: str
    :param suffix: Short random string appended to generated names.
    :type suffix: str
    :param member_locations: Regions hosting the member clusters, one cluster per region.
    :type member_locations: list
    :param kubernetes_version: Kubernetes version for every member cluster. Defaults to the
     newest generally available version in the fleet region.
    :type kubernetes_version: str
    """
    cli_ctx = cmd.cli_ctx
    suffix = suffix or _random_suffix()
    fleet_name = fleet_name or 'fleet-{}'.format(suffix)
    member_locations = _get_member_locations(cli_ctx, member_locations)

    groups = cf_resource_groups(cli_ctx)
    location, group_exists = _resolve_location(groups, resource_group_name, location)
    subscription_id = get_subscription_id(cli_ctx)

    provider = register_providers(cli_ctx)
    _check_locations_supported(provider, FLEETS_RESOURCE_TYPE, [location])
    _check_locations_supported(provider, MANAGED_CLUSTERS_RESOURCE_TYPE, member_locations)

    if not kubernetes_version:
        kubernetes_version = _select_default_version(_list_versions(cli_ctx, location), location)
        logger.warning('Using Kubernetes version %s', kubernetes_version)

    if group_exists:
        logger.info('Using existing resource group %s', resource_group_name)
    else:
        ResourceGroup = cmd.get_models('ResourceGroup', resource_type=ResourceType.MGMT_RESOURCE_RESOURCES)
        logger.warning('Creating resource group %s in %s', resource_group_name, location)
        groups.create_or_update(resource_group_name, ResourceGroup(location=location, tags=tags))

    from azure.mgmt.containerservicefleet.models import Fleet, FleetMember
    logger.warning('Creating fleet %s', fleet_name)
    fleet = LongRunningOperation(cli_ctx)(
        cf_fleets(cli_ctx).begin_create_or_update(resource_group_name, fleet_name,
                                                  Fleet(location=location, tags=tags)))

    # provisioning runs on the Azure side, so start every cluster before waiting on any
    clusters_client = cf_managed_clusters(cli_ctx)
    pollers = []
    for member_location in member_locations:
        name = _cluster_name(member_location, suffix)
        mc = _build_managed_cluster(cmd, name, resource_group_name, subscription_id, member_location,
                                    kubernetes_version, node_count, node_vm_size, tags)
        # print payload for debugging
        logger.debug(json.dumps(mc.serialize(), indent=2, sort_keys=True))
        logger.warning('Creating cluster %s in %s', name, member_location)
        pollers.append((member_location, clusters_client.begin_create_or_update(
            resource_group_name=resource_group_name, resource_name=name, parameters=mc)))
    clusters = [(member_location, LongRunningOperation(cli_ctx)(poller)) for member_location, poller in pollers]

    members_client = cf_fleet_members(cli_ctx)
    members = []
    for member_location, cluster in clusters:
        logger.warning('Joining %s to fleet %s', cluster.name, fleet_name)
        member = LongRunningOperation(cli_ctx)(
            members_client.begin_create(resource_group_name, fleet_name, cluster.name,
                                        FleetMember(cluster_resource_id=cluster.id)))
        members.append(OrderedDict([
            ('name', member.name),
            ('location', member_location),
            ('clusterResourceId', cluster.id),
        ]))

    return OrderedDict([
        ('resourceGroup', resource_group_name),
        ('fleetId', fleet.id),
        ('fleetName', fleet_name),
        ('location', location),
        ('kubernetesVersion', kubernetes_version),
        ('members', members),
    ])


def _member_summary(member, cluster):
    summary = OrderedDict([
        ('name', member.name),
        ('clusterResourceId', member.cluster_resource_id),
        ('provisioningState', member.provisioning_state),
        ('location', None),
        ('kubernetesVersion', None),
        ('nodeImageVersion', None),
    ])
    if cluster is None:
        return summary
    summary['location'] = cluster.location
    summary['kubernetesVersion'] = cluster.current_kubernetes_version or cluster.kubernetes_version
    pools = cluster.agent_pool_profiles or []
    system_pools = [p for p in pools if getattr(p, 'mode', None) == 'System'] or pools
    if system_pools:
        summary['nodeImageVersion'] = system_pools[0].node_image_version
    return summary


def fleet_setup_show(cmd, resource_group_name, fleet_name):
    """Show the fleet's member clusters with the versions they report."""
    cli_ctx = cmd.cli_ctx
    clients = {}
    results = []
    for member in cf_fleet_members(cli_ctx).list_by_fleet(resource_group_name, fleet_name):
        parsed = parse_resource_id(member.cluster_resource_id)
        subscription = parsed['subscription']
        if subscription not in clients:
            clients[subscription] = cf_managed_clusters(cli_ctx, subscription_id=subscription)
        try:
            cluster = clients[subscription].get(parsed['resource_group'], parsed['name'])
        except AzureResourceNotFoundError:
            logger.warning('Member %s points at cluster %s which no longer exists',
                           member.name, member.cluster_resource_id)
            cluster = None
        summary = _member_summary(member, cluster)
        if cluster is not None and not (summary['kubernetesVersion'] and summary['nodeImageVersion']):
            logger.warning('Member %s has not reported its versions yet', member.name)
        results.append(summary)
    return results


def build_federated_subject(repo, branch=None, environment=None):
    if environment:
        return 'repo:{}:environment:{}'.format(repo, environment)
    ref = branch or DEFAULT_BRANCH
    if not ref.startswith('refs/'):
        ref = 'refs/heads/{}'.format(ref)
    return 'repo:{}:ref:{}'.format(repo, ref)


def _federated_credential_name(repo, branch=None, environment=None):
    name = '{}-{}'.format(repo.replace('/', '-'), environment or branch or DEFAULT_BRANCH)
    return re.sub('[^A-Za-z0-9_-]', '-', name)[0:120]


def _record_on_group(cmd, groups, resource_group_name, tags, **values):
    # written as each resource appears so "delete" can find it after a partial failure
    ResourceGroupPatchable = cmd.get_models('ResourceGroupPatchable',
                                            resource_type=ResourceType.MGMT_RESOURCE_RESOURCES)
    tags.update(values)
    groups.update(resource_group_name, ResourceGroupPatchable(tags=dict(tags)))


def fleet_setup_github_create(cmd, resource_group_name, fleet_name, repo,  # pylint: disable=too-many-locals
                              template=None,
                              visibility='private',
                              branch=None,
                              environment=None,
                              display_name=None,
                              role='Contributor'):
    """Create a GitHub repository that can run fleet update runs through OIDC.
    :param repo: Repository to create, "NAME" or "OWNER/NAME".
    :type repo: str
    :param template: Template repository to create it from. Without one, the repository is
     created with a README and the generated update run workflow.
    :type template: str
    :param branch: Branch trusted by the federated credential. Defaults to "main".
    :type branch: str
    :param environment: GitHub environment trusted by the federated credential instead of a branch.
    :type environment: str
    :param role: Role granted to the service principal on the resource group.
    :type role: str
    """
    from azure.cli.command_modules.role.custom import create_role_assignment

    cli_ctx = cmd.cli_ctx
    template = template or _get_config_value(cli_ctx, 'template')

    groups = cf_resource_groups(cli_ctx)
    rg = groups.get(resource_group_name)
    tags = dict(rg.tags or {})
    # fail before touching GitHub when the fleet is missing
    cf_fleets(cli_ctx).get(resource_group_name, fleet_name)

    _github.ensure_authenticated()
    repo = _github.qualify_repo(repo)
    subscription_id = get_subscription_id(cli_ctx)
    tenant_id = _get_tenant_id(cli_ctx, subscription_id)

    logger.warning('Creating GitHub repository %s', repo)
    if template:
        _github.repo_create(repo, visibility=visibility, template=template)
    else:
        _github.repo_create(repo, visibility=visibility, add_readme=True)
    _record_on_group(cmd, groups, resource_group_name, tags, **{TAG_REPO: repo})
    if not template:
        workflow_file = _get_config_value(cli_ctx, 'workflow', DEFAULT_WORKFLOW_FILE)
        _github.put_file(repo, '.github/workflows/{}'.format(workflow_file),
                         render_workflow(build_update_run_workflow()),
                         'Add fleet update run workflow')

    display_name = display_name or '{}-github'.format(fleet_name)
    graph_client = cf_graph_client(cli_ctx)
    logger.warning('Creating application and service principal %s', display_name)
    app = graph_client.application_create({'displayName': display_name})
    _record_on_group(cmd, groups, resource_group_name, tags, **{TAG_APP_ID: app['appId']})
    service_principal = graph_client.service_principal_create({'appId': app['appId']})

    logger.warning('Granting %s on %s', role, rg.id)
    create_role_assignment(cmd, role=role, assignee_object_id=service_principal['id'],
                           assignee_principal_type='ServicePrincipal', scope=rg.id)

    subject = build_federated_subject(repo, branch=branch, environment=environment)
    logger.warning('Creating federated credential for %s', subject)
    graph_client.application_federated_identity_credential_create(app['id'], {
        'name': _federated_credential_name(repo, branch=branch, environment=environment),
        'issuer': GITHUB_OIDC_ISSUER,
        'subject': subject,
        'audiences': [GITHUB_OIDC_AUDIENCE],
        'description': 'GitHub Actions for fleet {}'.format(fleet_name),
    })

    for name, value in ((SECRET_CLIENT_ID, app['appId']),
                        (SECRET_TENANT_ID, tenant_id),
                        (SECRET_SUBSCRIPTION_ID, subscription_id)):
        _github.secret_set(repo, name, value)
    for name, value in ((VARIABLE_RESOURCE_GROUP, resource_group_name),
                        (VARIABLE_FLEET_NAME, fleet_name)):
        _github.variable_set(repo, name, value)

    _record_on_group(cmd, groups, resource_group_name, tags, **{TAG_SUBJECT: subject})

    return OrderedDict([
        ('repository', repo),
        ('appId', app['appId']),
        ('servicePrincipalObjectId', service_principal['id']),
        ('tenantId', tenant_id),
        ('subscriptionId', subscription_id),
        ('subject', subject),
    ])


def fleet_setup_github_workflow(cmd, path=None):
    """Write the update run workflow file.
    :param path: File to write. Use "-" to print the YAML to stdout instead.
    :type path: str
    """
    content = render_workflow(build_update_run_workflow())
    if path == '-':
        print(content)
        return
    if not path:
        path = os.path.join('.github', 'workflows',
                            _get_config_value(cmd.cli_ctx, 'workflow', DEFAULT_WORKFLOW_FILE))

    directory = os.path.dirname(path)
    if directory and not os.path.exists(directory):
        try:
            os.makedirs(directory)
        except OSError as ex:
            if ex.errno != errno.EEXIST:
                raise
    with open(path, 'w') as stream:
        stream.write(content)
    logger.warning('Wrote workflow to %s', path)


def _warn_on_subject_mismatch(cli_ctx, resource_group_name, repo, ref):
    tags = cf_resource_groups(cli_ctx).get(resource_group_name).tags or {}
    subject = tags.get(TAG_SUBJECT)
    if not subject or ':environment:' in subject:
        return
    if not ref:
        # gh dispatches on the repository's default branch, which is not known here
        logger.info('No --ref given, not checking the federated credential subject %s', subject)
        return
    if ref.startswith('refs/'):
        candidates = [ref]
    else:
        # a bare ref names either a branch or a tag
        candidates = ['refs/heads/{}'.format(ref), 'refs/tags/{}'.format(ref)]
    presented = ['repo:{}:ref:{}'.format(repo, c) for c in candidates]
    if subject not in presented:
        logger.warning('The federated credential trusts "%s" but this run presents "%s"; the Azure login '
                       'step will be rejected. Re-run "az fleet-setup github create" for this ref or add '
                       'a matching federated credential.', subject, presented[0])


def fleet_setup_github_run(cmd, repo,
                           workflow=None,
                           upgrade_type=UPGRADE_TYPE_FULL,
                           kubernetes_version=None,
                           node_image_selection='Latest',
                           ref=None,
                           watch=False,
                           resource_group_name=None):
    """Dispatch the update run workflow and optionally watch it to completion.
    :param repo: Repository hosting the workflow, "NAME" or "OWNER/NAME".
    :type repo: str
    :param watch: Stream the run's progress and fail when the run fails.
    :type watch: bool
    """
    workflow = workflow or _get_config_value(cmd.cli_ctx, 'workflow', DEFAULT_WORKFLOW_FILE)
    _github.ensure_authenticated()
    repo = _github.qualify_repo(repo)
    if resource_group_name:
        _warn_on_subject_mismatch(cmd.cli_ctx, resource_group_name, repo, ref)

    dispatched_at = datetime.datetime.now(datetime.timezone.utc)
    _github.workflow_run(repo, workflow, ref=ref, inputs=OrderedDict([
        ('upgradeType', upgrade_type),
        ('kubernetesVersion', kubernetes_version),
        ('nodeImageSelection', node_image_selection),
    ]))
    logger.warning('Dispatched %s on %s', workflow, repo)

    run = None
    for attempt in range(RUN_LOOKUP_ATTEMPTS):
        run = _github.find_dispatched_run(_github.run_list(repo, workflow), dispatched_at)
        if run is not None:
            break
        if attempt + 1 < RUN_LOOKUP_ATTEMPTS:
            time.sleep(RUN_LOOKUP_INTERVAL)

    result = OrderedDict([
        ('repository', repo),
        ('workflow', workflow),
        ('runId', None),
        ('url', None),
        ('status', 'queued'),
        ('conclusion', None),
    ])
    if run is None:
        logger.warning('The run has not shown up yet; find it with "gh run list --repo %s --workflow %s"',
                       repo, workflow)
        if watch:
            raise CLIError('Could not find the dispatched run to watch.')
        return result

    result['runId'] = run.get('databaseId')
    result['url'] = run.get('url')
    result['status'] = run.get('status')
    result['conclusion'] = run.get('conclusion') or None
    if watch:
        exit_code = _github.run_watch(repo, result['runId'])
        if exit_code != 0:
            raise CLIError('Workflow run {} did not succeed: {}'.format(result['runId'], result['url']))
        result['status'] = 'completed'
        result['conclusion'] = 'success'
    return result


def fleet_setup_delete(cmd, resource_group_name, repo=None, app_id=None, no_wait=False):
    """Tear down the GitHub repository, the application and the resource group.
    :param repo: Repository to delete. Defaults to the one recorded on the resource group.
    :type repo: str
    :param app_id: Application (client) id to delete. Defaults to the one recorded on the
     resource group.
    :type app_id: str
    :param no_wait: Start deleting the resource group but return immediately.
    :type no_wait: bool
    """
    cli_ctx = cmd.cli_ctx
    groups = cf_resource_groups(cli_ctx)
    if not groups.check_existence(resource_group_name):
        raise ResourceNotFoundError('Resource group "{}" does not exist'.format(resource_group_name))
    tags = groups.get(resource_group_name).tags or {}
    repo = repo or tags.get(TAG_REPO)
    app_id = app_id or tags.get(TAG_APP_ID)

    if repo:
        _github.ensure_authenticated()
        repo = _github.qualify_repo(repo)
        logger.warning('Deleting GitHub repository %s', repo)
        _github.repo_delete(repo)

    if app_id:
        graph_client = cf_graph_client(cli_ctx)
        apps = list(graph_client.application_list(filter="appId eq '{}'".format(app_id)))
        if apps:
            # removing the application removes its service principal too
            logger.warning('Deleting application %s', app_id)
            graph_client.application_delete(apps[0]['id'])
        else:
            logger.warning('Application %s not found, skipping', app_id)

    logger.warning('Deleting resource group %s', resource_group_name)
    return sdk_no_wait(no_wait, groups.begin_delete, resource_group_name)
