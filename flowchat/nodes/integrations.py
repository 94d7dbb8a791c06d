"""Descriptions for integrations that run through their endpoint.

These give the model readable tool schemas for the common integrations;
the request itself is handled by ProxyNode.
"""

from __future__ import annotations

from .base import NodeProperty, NodePropertyOption, NodeTypeDescription


def _text(name: str, display_name: str, description: str, required: bool = False) -> NodeProperty:
    return NodeProperty(
        display_name=display_name,
        name=name,
        type="string",
        required=required,
        description=description,
    )


def _action(description: str, options: list[NodePropertyOption] | None = None) -> NodeProperty:
    return NodeProperty(
        display_name="Action",
        name="action",
        type="options",
        required=True,
        description=description,
        options=options,
    )


INTEGRATION_DESCRIPTIONS: list[NodeTypeDescription] = [
    NodeTypeDescription(
        name="gmail",
        display_name="Send Email (Gmail)",
        description="Send an email using Gmail",
        icon="fa:envelope",
        properties=[
            _text("to", "To", "Recipient email address", required=True),
            _text("subject", "Subject", "Email subject", required=True),
            _text("body", "Body", "Email body content", required=True),
        ],
    ),
    NodeTypeDescription(
        name="resend",
        display_name="Send Email (Resend)",
        description="Send an email using Resend",
        icon="fa:envelope",
        properties=[
            _text("to", "To", "Recipient email address", required=True),
            _text("subject", "Subject", "Email subject", required=True),
            _text("body", "Body", "Email body (HTML supported)", required=True),
            _text("from", "From", "Sender email address"),
        ],
    ),
    NodeTypeDescription(
        name="notion",
        display_name="Notion",
        description="Create or update a page in Notion",
        icon="fa:book",
        properties=[
            _action("Operation type"),
            _text("title", "Title", "Page title"),
            _text("content", "Content", "Page content"),
        ],
    ),
    NodeTypeDescription(
        name="google-sheets",
        display_name="Google Sheets",
        description="Read or write data in Google Sheets spreadsheets",
        icon="fa:table",
        properties=[
            NodeProperty(
                display_name="Action",
                name="operation",
                type="options",
                required=True,
                description="The operation to perform",
                options=[
                    NodePropertyOption(name="Export Sheet", value="exportSheet"),
                    NodePropertyOption(name="Insert Row", value="insertRow"),
                    NodePropertyOption(name="Find Rows", value="findRows"),
                    NodePropertyOption(name="Update Row", value="updateRow"),
                    NodePropertyOption(name="Delete Row", value="deleteRow"),
                ],
            ),
            _text("spreadsheetId", "Spreadsheet ID", "The Google Spreadsheet ID", required=True),
            _text("worksheetName", "Worksheet Name", "Name of the worksheet tab"),
            _text("values", "Values", "Values to insert/update (JSON array)"),
        ],
    ),
    NodeTypeDescription(
        name="google-calendar",
        display_name="Google Calendar",
        description="Create, update, or list calendar events",
        icon="fa:calendar",
        properties=[
            _action("Calendar operation"),
            _text("title", "Event Title", "Title of the event"),
            _text("description", "Description", "Event description"),
            _text("startTime", "Start Time", "Event start time (ISO format)"),
            _text("endTime", "End Time", "Event end time (ISO format)"),
        ],
    ),
    NodeTypeDescription(
        name="hubspot",
        display_name="HubSpot",
        description="Manage contacts, deals, and companies in HubSpot CRM",
        icon="fa:address-book",
        properties=[
            _action("HubSpot operation"),
            _text("data", "Data", "Data payload (JSON)"),
        ],
    ),
    NodeTypeDescription(
        name="airtable",
        display_name="Airtable",
        description="Read or write records in Airtable",
        icon="fa:table",
        properties=[
            _action("Airtable operation"),
            _text("data", "Data", "Record data (JSON)"),
        ],
    ),
    NodeTypeDescription(
        name="code-execution",
        display_name="Code Execution",
        description="Execute custom JavaScript code",
        icon="fa:code",
        properties=[
            _text("code", "Code", "JavaScript code to execute", required=True),
        ],
    ),
    NodeTypeDescription(
        name="trello",
        display_name="Trello",
        description="Manage cards, lists, and boards in Trello",
        icon="fa:trello",
        properties=[
            _action("Trello operation"),
            _text("name", "Name", "Card or list name"),
            _text("description", "Description", "Card description"),
        ],
    ),
]
