# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

from collections import OrderedDict


def fleet_setup_members_table_format(results):
    """Keep the verification columns in a predictable order for --output=table format."""
    table_results = []
    for result in results:
        table_result = OrderedDict()
        for item in ['name', 'location', 'provisioningState', 'kubernetesVersion', 'nodeImageVersion']:
            table_result[item] = result.get(item)
        table_results.append(table_result)
    return table_results


def fleet_setup_versions_table_format(results):
    return [OrderedDict([('version', r['version']),
                         ('latestPatch', r['latestPatch']),
                         ('preview', 'yes' if r['isPreview'] else ''),
                         ('default', 'yes' if r['isDefault'] else '')]) for r in results]


def fleet_setup_create_table_format(result):
    """Flatten the member list of a create result for --output=table format."""
    # move the fleet level values onto each member row
    table_results = []
    for member in result.get('members', []):
        table_result = OrderedDict()
        table_result['fleetName'] = result.get('fleetName')
        table_result['resourceGroup'] = result.get('resourceGroup')
        table_result['kubernetesVersion'] = result.get('kubernetesVersion')
        table_result['member'] = member.get('name')
        table_result['location'] = member.get('location')
        table_results.append(table_result)
    return table_results


def load_command_table(self, _):

    with self.command_group('fleet-setup', is_preview=True) as g:
        g.custom_command('create', 'fleet_setup_create', table_transformer=fleet_setup_create_table_format)
        g.custom_show_command('show', 'fleet_setup_show', table_transformer=fleet_setup_members_table_format)
        g.custom_command('get-versions', 'fleet_setup_get_versions',
                         table_transformer=fleet_setup_versions_table_format)
        g.custom_command('delete', 'fleet_setup_delete', supports_no_wait=True, confirmation=True)

    with self.command_group('fleet-setup github', is_preview=True) as g:
        g.custom_command('create', 'fleet_setup_github_create')
        g.custom_command('workflow', 'fleet_setup_github_workflow')
        g.custom_command('run', 'fleet_setup_github_run')
