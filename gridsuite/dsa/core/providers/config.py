# gridsuite/dsa/core/providers/config.py
"""
Engine configuration.

Example ``config/providers.yaml``::

    providers:
      - name: Dynawo
        class_path: my_engines.dynawo:DynawoSecurityAnalysisProvider
        version: ">=1.0"
        config:
          launcher: ${DYNAWO_LAUNCHER:-dynawo.sh}
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from packaging.specifiers import SpecifierSet
from packaging.version import Version

from gridsuite.dsa.core.loader import import_attr, load_yaml_files, substitute_env_vars
from gridsuite.dsa.core.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSpec:
    name: str
    class_path: str
    version: str = ""
    enabled: bool = True
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProvidersConfig:
    providers: list[ProviderSpec] = field(default_factory=list)


def load_providers_config(patterns: Iterable[str]) -> ProvidersConfig:
    """Merge the ``providers`` sections of all files; later files win by name."""
    by_name: dict[str, ProviderSpec] = {}

    for doc in load_yaml_files(patterns):
        for raw in substitute_env_vars(doc.get("providers") or []):
            if "name" not in raw or "class_path" not in raw:
                raise ValueError(f"Provider entry needs 'name' and 'class_path': {raw}")
            spec = ProviderSpec(
                name=raw["name"],
                class_path=raw["class_path"],
                version=str(raw.get("version") or ""),
                enabled=bool(raw.get("enabled", True)),
                config=dict(raw.get("config") or {}),
            )
            by_name[spec.name] = spec

    return ProvidersConfig(providers=list(by_name.values()))


def load_and_register_providers(*, registry: ProviderRegistry, cfg: ProvidersConfig) -> None:
    for spec in cfg.providers:
        if not spec.enabled:
            logger.info("Provider %s disabled", spec.name)
            continue

        try:
            target = import_attr(spec.class_path)
        except Exception:
            logger.exception("Failed importing provider %s", spec.class_path)
            raise

        # A class or factory is built with its config, an object is used as is
        if isinstance(target, type) or not hasattr(target, "run_async"):
            provider = target(**spec.config)
        else:
            provider = target

        if provider.name != spec.name:
            raise ValueError(f"Provider name mismatch: {spec.name} vs {provider.name}")

        if spec.version and Version(provider.version) not in SpecifierSet(spec.version):
            raise ValueError(
                f"Provider '{provider.name}' version {provider.version} does not satisfy {spec.version}"
            )

        registry.register(provider)
