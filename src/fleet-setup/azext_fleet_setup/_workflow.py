# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

import yaml

from ._consts import (
    NODE_IMAGE_SELECTIONS,
    SECRET_CLIENT_ID,
    SECRET_SUBSCRIPTION_ID,
    SECRET_TENANT_ID,
    UPGRADE_TYPE_FULL,
    UPGRADE_TYPES,
    VARIABLE_FLEET_NAME,
    VARIABLE_RESOURCE_GROUP,
)

_UPDATE_RUN_SCRIPT = """\
RUN_NAME="run-${GITHUB_RUN_ID}-${GITHUB_RUN_ATTEMPT}"
ARGS=(--resource-group "$RESOURCE_GROUP" --fleet-name "$FLEET_NAME" --name "$RUN_NAME"
      --upgrade-type "$UPGRADE_TYPE"
      --node-image-selection "$NODE_IMAGE_SELECTION")
if [ -n "$KUBERNETES_VERSION" ]; then
  ARGS+=(--kubernetes-version "$KUBERNETES_VERSION")
fi
az fleet updaterun create "${ARGS[@]}"
az fleet updaterun start --resource-group "$RESOURCE_GROUP" --fleet-name "$FLEET_NAME" --name "$RUN_NAME"
"""


class _WorkflowDumper(yaml.SafeDumper):
    pass


def _str_presenter(dumper, data):
    if '\n' in data:
        return dumper.represent_scalar('tag:yaml.org,2002:str', data, style='|')
    return dumper.represent_scalar('tag:yaml.org,2002:str', data)


_WorkflowDumper.add_representer(str, _str_presenter)


def build_update_run_workflow(name='Fleet update run'):
    """Returns the workflow as a dict, ready for YAML serialization."""
    return {
        'name': name,
        'on': {
            'workflow_dispatch': {
                'inputs': {
                    'upgradeType': {
                        'description': 'Which parts of the member clusters to upgrade',
                        'required': True,
                        'default': UPGRADE_TYPE_FULL,
                        'type': 'choice',
                        'options': list(UPGRADE_TYPES),
                    },
                    'kubernetesVersion': {
                        'description': 'Target Kubernetes version (Full and ControlPlaneOnly only)',
                        'required': False,
                        'type': 'string',
                    },
                    'nodeImageSelection': {
                        'description': 'Node image to roll out',
                        'required': True,
                        'default': NODE_IMAGE_SELECTIONS[0],
                        'type': 'choice',
                        'options': list(NODE_IMAGE_SELECTIONS),
                    },
                },
            },
        },
        'permissions': {
            'id-token': 'write',
            'contents': 'read',
        },
        'jobs': {
            'update-run': {
                'runs-on': 'ubuntu-latest',
                'env': {
                    'RESOURCE_GROUP': '${{{{ vars.{} }}}}'.format(VARIABLE_RESOURCE_GROUP),
                    'FLEET_NAME': '${{{{ vars.{} }}}}'.format(VARIABLE_FLEET_NAME),
                },
                'steps': [
                    {
                        'name': 'Azure login',
                        'uses': 'azure/login@v2',
                        'with': {
                            'client-id': '${{{{ secrets.{} }}}}'.format(SECRET_CLIENT_ID),
                            'tenant-id': '${{{{ secrets.{} }}}}'.format(SECRET_TENANT_ID),
                            'subscription-id': '${{{{ secrets.{} }}}}'.format(SECRET_SUBSCRIPTION_ID),
                        },
                    },
                    {
                        'name': 'Install fleet extension',
                        'run': 'az extension add --name fleet --upgrade --yes',
                    },
                    {
                        'name': 'Create and start update run',
                        'shell': 'bash',
                        # inputs reach the script as environment variables, never as expanded text
                        'env': {
                            'UPGRADE_TYPE': '${{ inputs.upgradeType }}',
                            'KUBERNETES_VERSION': '${{ inputs.kubernetesVersion }}',
                            'NODE_IMAGE_SELECTION': '${{ inputs.nodeImageSelection }}',
                        },
                        'run': _UPDATE_RUN_SCRIPT,
                    },
                ],
            },
        },
    }


def render_workflow(workflow):
    return yaml.dump(workflow, Dumper=_WorkflowDumper, default_flow_style=False, sort_keys=False)
