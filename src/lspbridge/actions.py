"""Constructors for code actions and lens commands.

Nothing here touches session state; callers register what they build.
"""

from __future__ import annotations

from lsprotocol.types import (
    CodeAction,
    CodeActionKind,
    Command,
    Diagnostic,
    Range,
    TextEdit,
    WorkspaceEdit,
)

FIX_COMMAND = "lspbridge.fix"
REPORT_FALSE_POSITIVE_COMMAND = "lspbridge.reportFalsePositive"
REPORT_CONFUSION_COMMAND = "lspbridge.reportConfusion"
OPEN_URL_COMMAND = "lspbridge.openURL"
PUBLISH_FINDINGS_COMMAND = "lspbridge.publishFindings"

INFO_KIND = "info"


def fix_title(replacement: str) -> str:
    return f"Fix: replace it with {replacement}"


def false_positive_title(message: str) -> str:
    return f"Report it as false alarm ({message})."


def confusion_title(message: str) -> str:
    return f"I don't understand this warning message ({message})."


def replace(
    title: str,
    range_: Range,
    replacement: str,
    target_uri: str,
    diagnostic: Diagnostic | None,
) -> CodeAction:
    """Quick fix replacing ``range_`` in ``target_uri`` with ``replacement``."""
    edit = WorkspaceEdit(changes={target_uri: [TextEdit(range=range_, new_text=replacement)]})
    return CodeAction(
        title=title,
        kind=CodeActionKind.QuickFix,
        diagnostics=[diagnostic] if diagnostic is not None else None,
        edit=edit,
    )


def invoke_command(
    title: str,
    target_uri: str,
    diagnostic: Diagnostic | None,
    command_id: str,
) -> CodeAction:
    arguments: list[object] = [target_uri]
    if diagnostic is not None:
        arguments.append(diagnostic)
    return CodeAction(
        title=title,
        diagnostics=[diagnostic] if diagnostic is not None else None,
        command=Command(title=title, command=command_id, arguments=arguments),
    )


def wrap_command(command: Command, diagnostic: Diagnostic) -> CodeAction:
    return CodeAction(
        title=command.title,
        kind=INFO_KIND,
        diagnostics=[diagnostic],
        command=command,
    )


def fix_lens_command(target_uri: str, range_: Range, replacement: str) -> Command:
    return Command(
        title="fix",
        command=FIX_COMMAND,
        arguments=[target_uri, range_, replacement],
    )
