# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

from azure.cli.core.commands.client_factory import get_mgmt_service_client
from azure.cli.core.profiles import ResourceType


def cf_resource_client(cli_ctx, subscription_id=None):
    return get_mgmt_service_client(cli_ctx, ResourceType.MGMT_RESOURCE_RESOURCES,
                                   subscription_id=subscription_id)


def cf_resource_groups(cli_ctx, subscription_id=None):
    return cf_resource_client(cli_ctx, subscription_id=subscription_id).resource_groups


def cf_providers(cli_ctx, subscription_id=None):
    return cf_resource_client(cli_ctx, subscription_id=subscription_id).providers


def cf_managed_clusters(cli_ctx, subscription_id=None):
    return get_mgmt_service_client(cli_ctx, ResourceType.MGMT_CONTAINERSERVICE,
                                   subscription_id=subscription_id).managed_clusters


def cf_fleet_client(cli_ctx, subscription_id=None):
    from azure.mgmt.containerservicefleet import ContainerServiceFleetMgmtClient
    return get_mgmt_service_client(cli_ctx, ContainerServiceFleetMgmtClient,
                                   subscription_id=subscription_id)


def cf_fleets(cli_ctx, subscription_id=None):
    return cf_fleet_client(cli_ctx, subscription_id=subscription_id).fleets


def cf_fleet_members(cli_ctx, subscription_id=None):
    return cf_fleet_client(cli_ctx, subscription_id=subscription_id).fleet_members


def cf_graph_client(cli_ctx):
    from azure.cli.command_modules.role import graph_client_factory
    return graph_client_factory(cli_ctx)
