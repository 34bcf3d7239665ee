"""Interactive user prompts for sealing secrets.

This module provides functions for collecting secret parameters
and plaintext entries from users via interactive prompts.
"""

import re
from pathlib import Path

import click
import questionary

from kubeseal_client import console
from kubeseal_client.models import Scope, SecretParams
from kubeseal_client.styles import POINTER, PROMPT_STYLE, QMARK

# Kubernetes DNS subdomain name validation (RFC 1123)
_DNS_SUBDOMAIN_MAX_LENGTH = 253
_DNS_SUBDOMAIN_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"

_SCOPE_CHOICES = [
    {"name": "strict (bound to namespace and name)", "value": Scope.STRICT.value},
    {"name": "namespace-wide (any name in the namespace)", "value": Scope.NAMESPACE_WIDE.value},
    {"name": "cluster-wide (any name, any namespace)", "value": Scope.CLUSTER_WIDE.value},
]


def validate_k8s_name(name: str) -> bool | str:
    """Validate a Kubernetes resource name (DNS subdomain).

    Args:
        name: The name to validate.

    Returns:
        True if valid, or an error message string if invalid.

    """
    if not name:
        return "Name cannot be empty"
    if len(name) > _DNS_SUBDOMAIN_MAX_LENGTH:
        return f"Name must be {_DNS_SUBDOMAIN_MAX_LENGTH} characters or less"
    if not re.match(_DNS_SUBDOMAIN_PATTERN, name):
        return "Name must consist of lowercase alphanumeric characters, '-' or '.', and must start and end with an alphanumeric character"
    return True


def parse_literal(entry: str) -> tuple[str, bytes]:
    """Split a ``key=value`` entry; the value may itself contain '='."""
    key, _, value = entry.partition("=")
    return key.strip(), value.encode()


def collect_secret_parameters(
    namespaces: list[str],
    *,
    scope: Scope | None = None,
) -> SecretParams:
    """Interactively collect parameters for sealing a new secret.

    Args:
        namespaces: Namespaces for autocomplete. Empty in detached mode,
            where a plain text prompt is used.
        scope: Preselected scope; prompted for when None.

    Returns:
        SecretParams with namespace, name and scope.

    """
    if namespaces:
        namespace = questionary.autocomplete(
            "Select or type namespace (Tab to show options)",
            choices=namespaces,
            validate=validate_k8s_name,
            style=PROMPT_STYLE,
            qmark=QMARK,
        ).unsafe_ask()
    else:
        namespace = questionary.text(
            "Provide namespace for the new secret",
            validate=validate_k8s_name,
            style=PROMPT_STYLE,
            qmark=QMARK,
        ).unsafe_ask()

    secret_name = questionary.text(
        "Provide name for the new secret",
        validate=validate_k8s_name,
        style=PROMPT_STYLE,
        qmark=QMARK,
    ).unsafe_ask()

    if scope is None:
        scope = Scope(
            questionary.select(
                "Select sealing scope",
                choices=_SCOPE_CHOICES,
                style=PROMPT_STYLE,
                pointer=POINTER,
                qmark=QMARK,
            ).unsafe_ask()
        )

    return SecretParams(name=secret_name, namespace=namespace, scope=scope)


def _prompt_literal_entry() -> tuple[str, bytes]:
    entry = questionary.text(
        "Enter key=value",
        validate=lambda x: True if "=" in x else "Must be in key=value format",
        style=PROMPT_STYLE,
        qmark=QMARK,
    ).unsafe_ask()
    key, value = parse_literal(entry)
    console.success(f"Added literal: {console.highlight(key)}")
    return key, value


def _prompt_bulk_literals() -> dict[str, bytes]:
    """Prompt for bulk literal entries (one per line).

    Returns:
        Values by key for every line containing '='.

    """
    bulk_input = questionary.text(
        "Enter key=value pairs (one per line, Esc+Enter to finish)",
        multiline=True,
        style=PROMPT_STYLE,
        qmark=QMARK,
    ).unsafe_ask()

    lines = [line.strip() for line in bulk_input.splitlines() if line.strip()]
    entries = dict(parse_literal(line) for line in lines if "=" in line)

    skipped = sum(1 for line in lines if "=" not in line)
    if skipped:
        console.warning(f"Skipped {skipped} line(s) missing '=' separator")

    if entries:
        console.success(f"Added {console.highlight(str(len(entries)))} literal(s)")
    return entries


def _prompt_file_entry() -> tuple[str, bytes]:
    """Prompt for a file entry; the file name becomes the key.

    Raises:
        click.ClickException: If the selected file does not exist.

    """
    entry = questionary.path(
        "Select file",
        style=PROMPT_STYLE,
        qmark=QMARK,
    ).unsafe_ask()

    path = Path(entry)
    if not path.is_file():
        raise click.ClickException(f"File not found: {entry}")

    console.success(f"Added file: {console.highlight(entry)}")
    return path.name, path.read_bytes()


def collect_secret_entries() -> dict[str, bytes]:
    """Interactively collect plaintext entries from the user.

    Returns:
        Plaintext values by data key.

    """
    entries: dict[str, bytes] = {}

    while True:
        if entries:
            console.info(f"Current entries: {console.highlight(str(len(entries)))}")

        entry_type = questionary.select(
            "Add secret entry",
            choices=[
                {"name": "📝 Literal (key=value)", "value": "literal"},
                {"name": "📝 Bulk literals (one per line)", "value": "bulk"},
                {"name": "📁 From file", "value": "file"},
                {"name": "✓ Done adding entries", "value": "done", "disabled": not entries},
            ],
            style=PROMPT_STYLE,
            pointer=POINTER,
            qmark=QMARK,
        ).unsafe_ask()

        if entry_type == "done":
            break
        if entry_type == "literal":
            key, value = _prompt_literal_entry()
            entries[key] = value
        elif entry_type == "bulk":
            entries.update(_prompt_bulk_literals())
        else:
            key, value = _prompt_file_entry()
            entries[key] = value

    return entries
