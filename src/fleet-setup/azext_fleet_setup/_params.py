# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

from argcomplete.completers import FilesCompleter

from azure.cli.core.commands.parameters import (
    file_type,
    get_enum_type,
    get_location_type,
    get_three_state_flag,
    resource_group_name_type,
    tags_type,
)

from ._consts import (
    DEFAULT_NODE_COUNT,
    DEFAULT_NODE_VM_SIZE,
    NODE_IMAGE_SELECTIONS,
    REPO_VISIBILITIES,
    UPGRADE_TYPE_FULL,
    UPGRADE_TYPES,
)
from ._validators import (
    validate_federated_subject,
    validate_fleet_name,
    validate_k8s_version,
    validate_member_locations,
    validate_node_count,
    validate_repo,
    validate_suffix,
    validate_template,
    validate_update_run,
)


def load_arguments(self, _):

    with self.argument_context('fleet-setup') as c:
        c.argument('resource_group_name', resource_group_name_type)
        c.argument('location', get_location_type(self.cli_ctx))
        c.argument('fleet_name', options_list=['--fleet-name'], validator=validate_fleet_name,
                   help='Name of the fleet.')
        c.argument('repo', options_list=['--repo'], validator=validate_repo,
                   help='GitHub repository, "NAME" or "OWNER/NAME". Without an owner the '
                        'authenticated GitHub user is assumed.')

    with self.argument_context('fleet-setup create') as c:
        c.argument('tags', tags_type)
        c.argument('suffix', validator=validate_suffix,
                   help='Short lowercase string appended to generated names. Random when omitted.')
        c.argument('member_locations', options_list=['--member-locations', '-m'], nargs='+',
                   validator=validate_member_locations,
                   help='Space-separated regions, one member cluster per region.')
        c.argument('kubernetes_version', options_list=['--kubernetes-version', '-k'],
                   validator=validate_k8s_version)
        c.argument('node_count', options_list=['--node-count', '-c'], type=int,
                   default=DEFAULT_NODE_COUNT, validator=validate_node_count)
        c.argument('node_vm_size', options_list=['--node-vm-size', '-s'], default=DEFAULT_NODE_VM_SIZE)

    with self.argument_context('fleet-setup delete') as c:
        c.argument('app_id', options_list=['--app-id'],
                   help='Application (client) id of the GitHub Actions identity.')

    with self.argument_context('fleet-setup github create') as c:
        c.argument('template', validator=validate_template,
                   help='Template repository, "OWNER/NAME".')
        c.argument('visibility', arg_type=get_enum_type(REPO_VISIBILITIES), default='private')
        c.argument('branch', validator=validate_federated_subject,
                   help='Branch the federated credential trusts. Defaults to "main".')
        c.argument('environment', options_list=['--environment', '-e'],
                   help='GitHub environment the federated credential trusts instead of a branch.')
        c.argument('display_name', help='Display name of the Entra application.')
        c.argument('role', help='Role granted on the resource group.')

    with self.argument_context('fleet-setup github workflow') as c:
        c.argument('path', options_list=['--file', '-f'], type=file_type, completer=FilesCompleter(),
                   help='Workflow file to write. Use "-" to print to stdout.')

    with self.argument_context('fleet-setup github run') as c:
        c.argument('resource_group_name', resource_group_name_type, required=False,
                   help='Resource group created by "fleet-setup create"; used to check the '
                        'federated credential subject before dispatching.')
        c.argument('workflow', help='Workflow file name or id.')
        c.argument('upgrade_type', arg_type=get_enum_type(UPGRADE_TYPES), default=UPGRADE_TYPE_FULL,
                   validator=validate_update_run)
        c.argument('kubernetes_version', options_list=['--kubernetes-version', '-k'])
        c.argument('node_image_selection', arg_type=get_enum_type(NODE_IMAGE_SELECTIONS), default='Latest')
        c.argument('ref', help='Branch or tag to run the workflow from.')
        c.argument('watch', arg_type=get_three_state_flag(), help='Watch the run until it completes.')
