"""License setup for a local analysis run."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, MutableMapping
from typing import Any

from qodana_runner.core.config import LicenseSettings
from qodana_runner.domain.models import LicenseSetupResult, LicenseToken, ProductInfo
from qodana_runner.domain.timing import LicenseTimingPolicy
from qodana_runner.integrations.license_client import (
    LicenseAuthorizationError,
    LicenseClient,
    LicenseError,
    LicenseRetryExhaustedError,
    extract_license_key,
)

logger = logging.getLogger(__name__)


def setup_license_token(env: Mapping[str, str] | None = None) -> LicenseToken:
    """Read the analysis and license-only tokens for this run."""

    return LicenseToken.from_env(env)


def _log_license_failure(exc: LicenseError) -> None:
    if isinstance(exc, LicenseAuthorizationError):
        logger.warning(
            "License token was rejected (%s). Check QODANA_TOKEN or "
            "QODANA_LICENSE_ONLY_TOKEN; continuing without a license key.",
            exc,
        )
    elif isinstance(exc, LicenseRetryExhaustedError):
        logger.warning(
            "License service unreachable: %s Last error: %s. "
            "Continuing without a license key.",
            exc,
            exc.details.get("error"),
        )
    else:
        logger.warning("Could not obtain a license key: %s", exc)


def setup_license(
    raw_token: str,
    *,
    settings: LicenseSettings | None = None,
    policy: LicenseTimingPolicy | None = None,
    env: MutableMapping[str, str] | None = None,
    product: ProductInfo | None = None,
    **client_kwargs: Any,
) -> LicenseSetupResult:
    """Fetch a license key for ``raw_token`` and export it for the engine.

    Failures never abort the run: the engine can still start unlicensed.
    """

    output = os.environ if env is None else env
    if product is not None and product.eap:
        logger.info("EAP build detected, skipping license request")
        return LicenseSetupResult(skipped=True)
    if not raw_token:
        logger.debug("No token configured, running without a license key")
        return LicenseSetupResult(skipped=True)

    resolved = settings or LicenseSettings.from_env(env)
    client = LicenseClient(
        endpoint=resolved.endpoint,
        policy=policy or LicenseTimingPolicy.from_env(env),
        uri=resolved.uri,
        **client_kwargs,
    )
    try:
        payload = client.request_license_data(raw_token)
    except LicenseError as exc:
        _log_license_failure(exc)
        return LicenseSetupResult(error_code=exc.code, error_message=str(exc))

    key = extract_license_key(payload, key_field=resolved.key_field)
    if not key:
        logger.warning("License response did not contain a license key")
        return LicenseSetupResult(error_code="key_missing")
    output[resolved.output_variable] = key
    logger.info("License key obtained")
    return LicenseSetupResult(key=key)
