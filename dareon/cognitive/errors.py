"""
Typed failures of the command pipeline.

Each error carries a stable `code`, the HTTP `status_code` the API answers
with, and a user-facing `message`. They are raised by the resolver and the
executor and translated into responses by CommandService only.
"""

from typing import Optional


class CommandError(Exception):
    code = "CommandError"
    status_code = 400
    default_message = "Command failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class EmptyCommand(CommandError):
    code = "EmptyCommand"
    default_message = "Please provide a command"


class UnrecognizedCommand(CommandError):
    code = "UnrecognizedCommand"
    default_message = "Could not understand command"


class UnsupportedIntent(CommandError):
    code = "UnsupportedIntent"
    default_message = "Unsupported command"


class IntegrationNotConnected(CommandError):
    code = "IntegrationNotConnected"
    default_message = "Integration not connected"


class InvalidSortKey(CommandError):
    code = "InvalidSortKey"
    default_message = "Invalid sort criteria"


class InvalidProvider(CommandError):
    code = "InvalidProvider"
    default_message = "Unknown email provider"


class InvalidSource(CommandError):
    code = "InvalidSource"
    default_message = "Unknown file source"


class EmptySearchQuery(CommandError):
    code = "EmptySearchQuery"
    default_message = "Please provide a search term"


class ExecutionFailed(CommandError):
    code = "ExecutionFailed"
    status_code = 500
    default_message = "Failed to process command"
