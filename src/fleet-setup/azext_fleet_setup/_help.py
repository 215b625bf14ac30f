# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

from knack.help_files import helps  # pylint: disable=unused-import


helps['fleet-setup'] = """
type: group
short-summary: Stand up a Kubernetes Fleet Manager with member clusters and drive update runs from GitHub Actions.
long-summary: |
  Settings can be stored with "az config set fleet_setup.<key>=<value>":
    template          GitHub template repository used by "github create".
    member_locations  Space or comma separated member regions used by "create".
    workflow          Update run workflow file name (default fleet-update.yml).
"""

helps['fleet-setup create'] = """
type: command
short-summary: Create a fleet and one member AKS cluster per region, and join the clusters to the fleet.
long-summary: |
  The resource group is created when it does not exist. Without --kubernetes-version the newest
  generally available version in the fleet region is used for every member cluster.
parameters:
  - name: --member-locations -m
    type: string
    short-summary: Regions hosting the member clusters.
    long-summary: Defaults to the fleet_setup.member_locations setting, then to eastus2 westus2 northeurope.
  - name: --kubernetes-version -k
    type: string
    short-summary: Kubernetes version of the member clusters.
    populator-commands:
      - "`az fleet-setup get-versions`"
  - name: --node-count -c
    type: int
    short-summary: Number of nodes in each cluster's system pool.
  - name: --node-vm-size -s
    type: string
    short-summary: Size of the nodes in each cluster's system pool.
examples:
  - name: Create a fleet with three member clusters.
    text: az fleet-setup create -g MyResourceGroup -l eastus2 -m eastus2 westus2 northeurope
  - name: Create a fleet with a fixed name suffix and Kubernetes version.
    text: az fleet-setup create -g MyResourceGroup -l eastus2 --suffix demo1 -k 1.29.2
"""

helps['fleet-setup show'] = """
type: command
short-summary: Show the fleet's member clusters with the Kubernetes and node image versions they report.
examples:
  - name: Check that every member reports its versions.
    text: az fleet-setup show -g MyResourceGroup --fleet-name MyFleet -o table
"""

helps['fleet-setup get-versions'] = """
type: command
short-summary: List the Kubernetes versions available in a region, newest first.
long-summary: |
  An empty list means AKS offers no versions in the region; pick another region.
examples:
  - name: List versions available in westus2.
    text: az fleet-setup get-versions -l westus2 -o table
"""

helps['fleet-setup delete'] = """
type: command
short-summary: Delete the GitHub repository, the GitHub Actions identity and the resource group.
long-summary: |
  The repository and application id default to the values "github create" recorded on the
  resource group. Deleting a repository needs the delete_repo scope: "gh auth refresh -s delete_repo".
examples:
  - name: Tear everything down without prompting.
    text: az fleet-setup delete -g MyResourceGroup --yes
"""

helps['fleet-setup github'] = """
type: group
short-summary: Wire a GitHub repository to the fleet through an OIDC federated credential.
long-summary: Requires the GitHub CLI (gh) on PATH, authenticated with "gh auth login".
"""

helps['fleet-setup github create'] = """
type: command
short-summary: Create a repository, a service principal with a federated credential, and the repository secrets and variables.
long-summary: |
  Secrets AZURE_CLIENT_ID, AZURE_TENANT_ID and AZURE_SUBSCRIPTION_ID and variables RESOURCE_GROUP and
  FLEET_NAME are set on the repository. No client secret is created; GitHub Actions signs in through
  the federated credential, whose subject must match the branch or environment the workflow runs from.
examples:
  - name: Create a repository from a template, trusting the main branch.
    text: az fleet-setup github create -g MyResourceGroup --fleet-name MyFleet --repo fleet-updates --template MyOrg/fleet-template
  - name: Create a repository with the generated workflow, trusting a GitHub environment.
    text: az fleet-setup github create -g MyResourceGroup --fleet-name MyFleet --repo MyOrg/fleet-updates -e production
"""

helps['fleet-setup github workflow'] = """
type: command
short-summary: Write the GitHub Actions workflow that creates and starts a fleet update run.
examples:
  - name: Write the workflow into the current repository checkout.
    text: az fleet-setup github workflow
  - name: Print the workflow.
    text: az fleet-setup github workflow --file -
"""

helps['fleet-setup github run'] = """
type: command
short-summary: Dispatch the update run workflow.
long-summary: |
  Full and ControlPlaneOnly upgrades need --kubernetes-version; NodeImageOnly upgrades must not
  pass one. If the Azure login step fails, check that the federated credential subject matches
  the ref the workflow ran from.
examples:
  - name: Upgrade every member cluster to 1.30.1 and watch the run.
    text: az fleet-setup github run --repo fleet-updates -k 1.30.1 --watch
  - name: Roll out the latest node images only.
    text: az fleet-setup github run --repo fleet-updates --upgrade-type NodeImageOnly
"""
