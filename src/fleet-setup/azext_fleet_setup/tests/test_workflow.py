# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

import unittest

import yaml

from azext_fleet_setup._workflow import build_update_run_workflow, render_workflow


class TestUpdateRunWorkflow(unittest.TestCase):

    def setUp(self):
        self.rendered = render_workflow(build_update_run_workflow())
        self.workflow = yaml.safe_load(self.rendered)

    def test_dispatch_inputs(self):
        inputs = self.workflow['on']['workflow_dispatch']['inputs']
        self.assertEqual(inputs['upgradeType']['options'], ['Full', 'ControlPlaneOnly', 'NodeImageOnly'])
        self.assertEqual(inputs['upgradeType']['default'], 'Full')
        self.assertFalse(inputs['kubernetesVersion']['required'])
        self.assertEqual(inputs['nodeImageSelection']['options'], ['Latest', 'Consistent'])

    def test_oidc_permissions(self):
        self.assertEqual(self.workflow['permissions'], {'id-token': 'write', 'contents': 'read'})

    def test_login_uses_repository_secrets(self):
        job = self.workflow['jobs']['update-run']
        login = job['steps'][0]
        self.assertEqual(login['uses'], 'azure/login@v2')
        self.assertEqual(login['with']['client-id'], '${{ secrets.AZURE_CLIENT_ID }}')
        self.assertEqual(job['env']['FLEET_NAME'], '${{ vars.FLEET_NAME }}')

    def test_update_run_script_is_a_literal_block(self):
        script = self.workflow['jobs']['update-run']['steps'][2]['run']
        self.assertIn('az fleet updaterun create', script)
        self.assertIn('az fleet updaterun start', script)
        self.assertIn('run: |', self.rendered)

    def test_inputs_are_passed_through_env(self):
        step = self.workflow['jobs']['update-run']['steps'][2]
        self.assertEqual(step['env']['UPGRADE_TYPE'], '${{ inputs.upgradeType }}')
        self.assertEqual(step['env']['KUBERNETES_VERSION'], '${{ inputs.kubernetesVersion }}')
        self.assertEqual(step['env']['NODE_IMAGE_SELECTION'], '${{ inputs.nodeImageSelection }}')
        self.assertNotIn('${{', step['run'])
        self.assertIn('--upgrade-type "$UPGRADE_TYPE"', step['run'])

    def test_keys_keep_their_order(self):
        self.assertEqual(list(self.workflow), ['name', 'on', 'permissions', 'jobs'])


if __name__ == '__main__':
    unittest.main()
