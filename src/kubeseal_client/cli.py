#!/usr/bin/env python
"""Command-line interface for kubeseal-client.

This module provides the main CLI entry point, handling argument parsing,
interactive input, and rendering the results of the sealing and controller
operations. Interactive prompts run before the event loop is started; each
network action then runs inside a single ``asyncio.run`` call.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, TypeVar

import click
import yaml
from icecream import ic

from kubeseal_client import __version__, console
from kubeseal_client.config import load_plugin_config, save_plugin_config
from kubeseal_client.controller import HEALTH_REFRESH_SECONDS
from kubeseal_client.core.kubeseal import Kubeseal
from kubeseal_client.exceptions import ClusterConnectionError, SecretParsingError
from kubeseal_client.models import PluginConfig, Scope, SecretParams
from kubeseal_client.result import Err, Result
from kubeseal_client.secrets.parsing import parse_secret_file, secret_from_manifest, write_manifest
from kubeseal_client.secrets.prompts import collect_secret_entries, collect_secret_parameters

T = TypeVar("T")


def _unwrap(result: Result[T, Any]) -> T:
    """Return the value of a result, or abort the command with its error."""
    if isinstance(result, Err):
        raise click.ClickException(str(result.error))
    return result.value


def _load_manifest(file: str) -> dict[str, Any]:
    try:
        manifest = parse_secret_file(file)
    except SecretParsingError as e:
        raise click.ClickException(str(e)) from None
    if manifest is None:
        raise click.ClickException(f"Secret file '{file}' is empty")
    return manifest


def effective_config(
    stored: PluginConfig,
    controller_name: str | None,
    controller_namespace: str | None,
    controller_port: int | None,
) -> PluginConfig:
    """Apply command-line overrides on top of the stored configuration."""
    return PluginConfig(
        controller_name=controller_name or stored.controller_name,
        controller_namespace=controller_namespace or stored.controller_namespace,
        controller_port=controller_port or stored.controller_port,
    )


async def seal_secret(
    kubeseal: Kubeseal,
    secret_params: SecretParams,
    data: dict[str, bytes],
    *,
    apply: bool = False,
) -> None:
    """Seal the collected entries, write ``<name>.yaml`` and optionally apply it.

    Args:
        kubeseal: Kubeseal instance to seal with.
        secret_params: Name, namespace and scope of the secret.
        data: Plaintext values by data key.
        apply: Also submit the manifest to the cluster.

    Raises:
        click.ClickException: If sealing or applying fails.

    """
    console.step("Sealing secret")
    output_file = f"{secret_params.name}.yaml"

    async with kubeseal:
        with console.spinner("Sealing secret..."):
            manifest = _unwrap(await kubeseal.seal(secret_params, data))
        write_manifest(manifest, output_file)

        if apply:
            with console.spinner("Applying SealedSecret to the cluster..."):
                _unwrap(await kubeseal.apply(manifest))
            console.success(f"Applied {console.highlight(f'{secret_params.namespace}/{secret_params.name}')}")

    console.newline()
    console.summary_panel(
        "Sealed Secret Created",
        {
            "Name": secret_params.name,
            "Namespace": secret_params.namespace,
            "Scope": secret_params.scope.value,
            "Keys": ", ".join(sorted(data)),
            "API version": manifest["apiVersion"],
            "Output": output_file,
        },
    )


async def edit_secret(kubeseal: Kubeseal, file: str, existing: dict[str, Any], data: dict[str, bytes]) -> None:
    """Seal new entries into an existing SealedSecret file in place."""
    console.action(f"Updating {console.highlight(file)}")
    async with kubeseal:
        manifest = _unwrap(await kubeseal.merge(existing, data))
    write_manifest(manifest, file)
    console.success("Done")


async def fetch_certificate(kubeseal: Kubeseal) -> None:
    """Save the controller certificate for later use in detached mode."""
    console.action("Downloading certificate from the controller...")
    async with kubeseal:
        certificate = _unwrap(await kubeseal.fetch_certificate())

    output_file = f"{kubeseal.current_context_name}-kubeseal-cert.crt"
    Path(output_file).write_text(certificate)
    console.success(f"Saved to {console.highlight(output_file)}")


async def show_health(kubeseal: Kubeseal, *, watch: bool, interval: float) -> bool:
    """Print the controller health once, or repeatedly when watching.

    Returns:
        Whether the last check found the controller healthy.

    """
    async with kubeseal:
        if not watch:
            status = await kubeseal.health()
            console.health_panel(status)
            return status.healthy

        healthy = False
        async for status in kubeseal.watch_health(interval):
            console.health_panel(status)
            healthy = status.healthy
        return healthy


async def verify_secret(kubeseal: Kubeseal, manifest: dict[str, Any]) -> bool:
    async with kubeseal:
        with console.spinner("Asking the controller to verify..."):
            return _unwrap(await kubeseal.verify(manifest))


async def rotate_secret(kubeseal: Kubeseal, file: str, manifest: dict[str, Any]) -> None:
    """Re-encrypt a SealedSecret with the controller's newest key and write it back."""
    async with kubeseal:
        with console.spinner("Re-encrypting with the active controller key..."):
            rotated = _unwrap(await kubeseal.rotate(manifest))

    document = yaml.safe_load(rotated)
    if not isinstance(document, dict):
        raise click.ClickException("Controller returned an unexpected rotation response")
    write_manifest(document, file)
    console.success(f"Re-encrypted {console.highlight(file)}")


async def show_api_version(kubeseal: Kubeseal) -> None:
    async with kubeseal:
        version = _unwrap(await kubeseal.detect_api_version())
    console.info(f"SealedSecret API version: {console.highlight(version)}")


@click.command(help="Seal secrets for the Kubernetes sealed-secrets controller")
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option("--debug", required=False, is_flag=True, help="print debug information")
@click.option("--select", required=False, is_flag=True, default=False, help="prompt for context select")
@click.option("--cert", "-c", required=False, help="certificate to seal secret with (detached mode)")
@click.option("--scope", type=click.Choice([s.value for s in Scope]), required=False, help="sealing scope")
@click.option("--from-file", "from_file", required=False, help="Secret manifest to seal")
@click.option("--edit", "-e", required=False, help="SealedSecret file to add entries to")
@click.option("--apply", required=False, is_flag=True, help="submit the sealed secret to the cluster")
@click.option("--fetch", required=False, is_flag=True, help="download the controller certificate")
@click.option("--health", required=False, is_flag=True, help="check controller health")
@click.option("--watch", required=False, is_flag=True, help="keep checking controller health")
@click.option("--interval", type=float, default=HEALTH_REFRESH_SECONDS, show_default=True, help="seconds between health checks")
@click.option("--verify", required=False, help="SealedSecret file to verify with the controller")
@click.option("--rotate", required=False, help="SealedSecret file to re-encrypt with the newest key")
@click.option("--api-version", "api_version", required=False, is_flag=True, help="print the detected SealedSecret API version")
@click.option("--controller-name", required=False, help="controller service name")
@click.option("--controller-namespace", required=False, help="controller service namespace")
@click.option("--controller-port", type=int, required=False, help="controller service port")
@click.option("--save-config", required=False, is_flag=True, help="store the controller settings for later runs")
def cli(
    version: bool,
    debug: bool,
    select: bool,
    cert: str | None,
    scope: str | None,
    from_file: str | None,
    edit: str | None,
    apply: bool,
    fetch: bool,
    health: bool,
    watch: bool,
    interval: float,
    verify: str | None,
    rotate: str | None,
    api_version: bool,
    controller_name: str | None,
    controller_namespace: str | None,
    controller_port: int | None,
    save_config: bool,
) -> None:
    """Process CLI arguments and execute the appropriate action."""
    if not debug:
        ic.disable()

    if version:
        click.echo(__version__)
        return

    plugin_config = effective_config(load_plugin_config(), controller_name, controller_namespace, controller_port)
    ic(plugin_config)
    if save_config:
        path = save_plugin_config(plugin_config)
        console.success(f"Saved controller settings to {console.highlight(str(path))}")

    selected_scope = Scope(scope) if scope else None

    try:
        kubeseal = Kubeseal(select_context=select, config=plugin_config, certificate=cert)

        if fetch:
            asyncio.run(fetch_certificate(kubeseal))
            return

        if health:
            try:
                healthy = asyncio.run(show_health(kubeseal, watch=watch, interval=interval))
            except KeyboardInterrupt:
                console.newline()
                return
            if not healthy:
                sys.exit(1)
            return

        if verify:
            if not asyncio.run(verify_secret(kubeseal, _load_manifest(verify))):
                raise click.ClickException(f"Controller could not decrypt {verify}")
            console.success(f"{console.highlight(verify)} can be decrypted by the controller")
            return

        if rotate:
            asyncio.run(rotate_secret(kubeseal, rotate, _load_manifest(rotate)))
            return

        if api_version:
            asyncio.run(show_api_version(kubeseal))
            return

        if edit:
            existing = _load_manifest(edit)
            asyncio.run(edit_secret(kubeseal, edit, existing, collect_secret_entries()))
            return

        if from_file:
            try:
                secret_params, data = secret_from_manifest(_load_manifest(from_file), selected_scope or Scope.STRICT)
            except SecretParsingError as e:
                raise click.ClickException(str(e)) from None
        else:
            secret_params = collect_secret_parameters(kubeseal.namespaces_list, scope=selected_scope)
            data = collect_secret_entries()
        ic(secret_params)
        asyncio.run(seal_secret(kubeseal, secret_params, data, apply=apply))
    except ClusterConnectionError as e:
        console.error(f"Cluster connection failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    cli()
