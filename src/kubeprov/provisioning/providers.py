"""Provider table: Terraform working directory and required credentials per cloud."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from kubeprov.config.models import CloudProvider
from kubeprov.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class ProviderSpec:
    """Static description of one cloud provider."""

    provider: CloudProvider
    workdir: str  # relative to TerraformConfig.examples_dir
    credential_vars: tuple[str, ...]


PROVIDERS: dict[CloudProvider, ProviderSpec] = {
    CloudProvider.AWS: ProviderSpec(
        provider=CloudProvider.AWS,
        workdir="aws",
        credential_vars=("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"),
    ),
    CloudProvider.DIGITALOCEAN: ProviderSpec(
        provider=CloudProvider.DIGITALOCEAN,
        workdir="digitalocean",
        credential_vars=("DIGITALOCEAN_TOKEN",),
    ),
    CloudProvider.HETZNER: ProviderSpec(
        provider=CloudProvider.HETZNER,
        workdir="hetzner",
        credential_vars=("HCLOUD_TOKEN",),
    ),
}


def get_provider(provider: CloudProvider | str) -> ProviderSpec:
    """Look up a provider by enum member or name."""
    try:
        return PROVIDERS[CloudProvider(provider)]
    except ValueError as exc:
        supported = ", ".join(p.value for p in CloudProvider)
        msg = f"Unsupported provider '{provider}' (supported: {supported})"
        raise ConfigurationError(msg) from exc


def check_credentials(spec: ProviderSpec, lookup: Mapping[str, str]) -> dict[str, str]:
    """Return the provider's credentials, or raise if any is missing or empty."""
    missing = [name for name in spec.credential_vars if not lookup.get(name)]
    if missing:
        msg = (
            f"credential missing: unable to provision on {spec.provider.value}, "
            f"{' and '.join(missing)} cannot be empty"
        )
        raise ConfigurationError(msg)
    return {name: lookup[name] for name in spec.credential_vars}
