"""Kubernetes cluster access.

This module provides the Cluster class, which selects a kubeconfig
context and turns its credentials into an asynchronous HTTP client for
the API server.
"""

import ssl

import click
import httpx
import questionary
from icecream import ic
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import MaxRetryError

from kubeseal_client import console
from kubeseal_client.exceptions import ClusterConnectionError
from kubeseal_client.styles import POINTER, PROMPT_STYLE, QMARK

# Overall per-request timeout for API server calls; the health check applies its own deadline
_REQUEST_TIMEOUT_SECONDS = 30.0


class Cluster:
    """Manages the connection to a Kubernetes cluster.

    Attributes:
        context: The active Kubernetes context name.
        configuration: Client configuration loaded from the kubeconfig.

    """

    def __init__(self, *, select_context: bool) -> None:
        """Initialize Cluster with context selection.

        Args:
            select_context: If True, prompt user to select a context.
                           If False, use the current context.
                           Must be passed as a keyword argument.

        Raises:
            ClusterConnectionError: If the kubeconfig cannot be loaded.

        """
        self.context: str = self._set_context(select_context=select_context)
        try:
            config.load_kube_config(context=self.context)
        except ConfigException as e:
            raise ClusterConnectionError(f"Failed to load context '{self.context}': {e}") from e
        self.configuration: client.Configuration = client.Configuration.get_default_copy()

    @staticmethod
    def _set_context(*, select_context: bool) -> str:
        """Set the Kubernetes context to use.

        Args:
            select_context: If True, prompt user to select a context.
                           Must be passed as a keyword argument.

        Returns:
            The selected or current context name.

        Raises:
            ClusterConnectionError: If kubeconfig is invalid or missing.
            click.Abort: If user cancels context selection.

        """
        try:
            contexts, current_context = config.list_kube_config_contexts()
        except ConfigException as e:
            raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e
        if select_context:
            context_names: list[str] = [context["name"] for context in contexts]
            context: str | None = questionary.select(
                "Select context to work with",
                choices=context_names,
                style=PROMPT_STYLE,
                pointer=POINTER,
                qmark=QMARK,
            ).ask()
            if context is None:
                console.warning("Context selection cancelled.")
                raise click.Abort()
        else:
            context = str(current_context["name"])
        console.action(f"Working with {console.highlight(context)} cluster")
        return context

    @staticmethod
    def get_all_namespaces() -> list[str]:
        """Get all namespaces in the cluster.

        A user whose role cannot list namespaces gets an empty list; the
        namespace prompt then falls back to free text.

        Returns:
            List of namespace names.

        Raises:
            ClusterConnectionError: If the cluster is unreachable.

        """
        try:
            ns_list = [ns.metadata.name for ns in client.CoreV1Api().list_namespace().items]
        except MaxRetryError as e:
            raise ClusterConnectionError(f"Failed to connect to the Kubernetes cluster: {e.reason}") from e
        except ApiException as e:
            console.warning(f"Unable to list namespaces ({e.status} {e.reason}), enter the namespace manually")
            return []
        ic(ns_list)

        return ns_list

    @property
    def api_server(self) -> str:
        """The API server URL of the active context."""
        return str(self.configuration.host or "")

    def _ssl_context(self) -> ssl.SSLContext:
        cfg = self.configuration
        if cfg.verify_ssl:
            context = ssl.create_default_context(cafile=cfg.ssl_ca_cert or None)
        else:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        if cfg.cert_file:
            context.load_cert_chain(cfg.cert_file, cfg.key_file or None)
        return context

    def http_client(self, **kwargs: object) -> httpx.AsyncClient:
        """Create an async HTTP client authenticated against the API server.

        Args:
            **kwargs: Extra arguments for ``httpx.AsyncClient`` (e.g. ``transport``).

        Returns:
            A client whose base URL is the API server. The caller closes it.

        Raises:
            ClusterConnectionError: If the context has no server address or its
                TLS material cannot be loaded.

        """
        if not self.api_server:
            raise ClusterConnectionError(f"Context '{self.context}' does not define an API server")

        try:
            verify = self._ssl_context()
        except (OSError, ssl.SSLError) as e:
            raise ClusterConnectionError(f"Failed to load TLS credentials for '{self.context}': {e}") from e

        headers: dict[str, str] = {}
        token = self.configuration.get_api_key_with_prefix("authorization")
        if token:
            headers["Authorization"] = token

        ic(self.api_server, sorted(headers))
        return httpx.AsyncClient(
            base_url=self.api_server,
            verify=verify,
            headers=headers,
            timeout=_REQUEST_TIMEOUT_SECONDS,
            **kwargs,  # type: ignore[arg-type]
        )

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Cluster(context={self.context!r}, api_server={self.api_server!r})"
