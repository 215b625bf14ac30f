# --------------------------------------------------------------------------------------------
# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for license information.
# --------------------------------------------------------------------------------------------

from azure.cli.core import AzCommandsLoader

from azext_fleet_setup._help import helps  # pylint: disable=unused-import


class FleetSetupCommandsLoader(AzCommandsLoader):

    def __init__(self, cli_ctx=None):
        from azure.cli.core.commands import CliCommandType
        fleet_setup_custom = CliCommandType(operations_tmpl='azext_fleet_setup.custom#{}')
        super().__init__(cli_ctx=cli_ctx, custom_command_type=fleet_setup_custom)

    def load_command_table(self, args):
        from azext_fleet_setup.commands import load_command_table
        load_command_table(self, args)
        return self.command_table

    def load_arguments(self, command):
        from azext_fleet_setup._params import load_arguments
        load_arguments(self, command)


COMMAND_LOADER_CLS = FleetSetupCommandsLoader
