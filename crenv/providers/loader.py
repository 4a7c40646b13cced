"""
crenv Providers - Provider bundle loading.

A bundle is referenced as ``package.module:attribute``. The attribute is
either a ProviderSet or a zero-argument callable returning one.
"""

from __future__ import annotations

import importlib
import os

from loguru import logger

from crenv.core.exceptions import ProviderLoadError
from crenv.providers.base import ProviderSet

PROVIDERS_ENV_VAR = "CRENV_PROVIDERS"


def load_provider_set(reference: str | None = None) -> ProviderSet:
    """
    Import a provider bundle.

    Args:
        reference: ``module:attribute``. Defaults to ``$CRENV_PROVIDERS``.

    Returns:
        The ProviderSet.

    Raises:
        ProviderLoadError: Missing reference, failed import or wrong type.
    """
    reference = reference or os.environ.get(PROVIDERS_ENV_VAR, "")
    if not reference:
        raise ProviderLoadError(
            f"no provider bundle configured, pass --providers or set {PROVIDERS_ENV_VAR}=module:attr"
        )

    module_path, _, attribute = reference.partition(":")
    if not module_path or not attribute:
        raise ProviderLoadError(
            f"invalid provider reference '{reference}', expected module:attr",
            {"reference": reference},
        )

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ProviderLoadError(
            f"failed to import provider module '{module_path}': {e}",
            {"reference": reference},
        ) from e

    try:
        target = getattr(module, attribute)
    except AttributeError:
        raise ProviderLoadError(
            f"module '{module_path}' has no attribute '{attribute}'",
            {"reference": reference},
        ) from None

    providers = target() if callable(target) and not isinstance(target, ProviderSet) else target
    if not isinstance(providers, ProviderSet):
        raise ProviderLoadError(
            f"'{reference}' did not produce a ProviderSet (got {type(providers).__name__})",
            {"reference": reference},
        )

    logger.debug(f"🔌 Loaded provider bundle {reference}")
    return providers
