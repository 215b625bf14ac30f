# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

CONFIG_SECTION = "fleet_setup"

CONTAINER_SERVICE_NAMESPACE = "Microsoft.ContainerService"
FLEETS_RESOURCE_TYPE = "fleets"
MANAGED_CLUSTERS_RESOURCE_TYPE = "managedClusters"

DEFAULT_MEMBER_LOCATIONS = ["eastus2", "westus2", "northeurope"]
DEFAULT_NODE_VM_SIZE = "Standard_D2s_v3"
DEFAULT_NODE_COUNT = 1
DEFAULT_WORKFLOW_FILE = "fleet-update.yml"
DEFAULT_BRANCH = "main"

UPGRADE_TYPE_FULL = "Full"
UPGRADE_TYPE_CONTROL_PLANE_ONLY = "ControlPlaneOnly"
UPGRADE_TYPE_NODE_IMAGE_ONLY = "NodeImageOnly"
UPGRADE_TYPES = [UPGRADE_TYPE_FULL, UPGRADE_TYPE_CONTROL_PLANE_ONLY, UPGRADE_TYPE_NODE_IMAGE_ONLY]

NODE_IMAGE_SELECTIONS = ["Latest", "Consistent"]

REPO_VISIBILITIES = ["private", "public", "internal"]

# OIDC trust between GitHub Actions and Entra ID
GITHUB_OIDC_ISSUER = "https://token.actions.githubusercontent.com"
GITHUB_OIDC_AUDIENCE = "api://AzureADTokenExchange"

SECRET_CLIENT_ID = "AZURE_CLIENT_ID"
SECRET_TENANT_ID = "AZURE_TENANT_ID"
SECRET_SUBSCRIPTION_ID = "AZURE_SUBSCRIPTION_ID"
VARIABLE_RESOURCE_GROUP = "RESOURCE_GROUP"
VARIABLE_FLEET_NAME = "FLEET_NAME"

# resource group tags recording the GitHub wiring
TAG_REPO = "fleetSetupRepo"
TAG_APP_ID = "fleetSetupAppId"
TAG_SUBJECT = "fleetSetupSubject"
