"""
Per-request settings overrides (safe subset).

The API can send `settings_overrides` to tune the fairness policy for a single
meeting search. This module:
- validates the override payload against a whitelist,
- deep-merges the safe subset onto current settings,
- re-validates with Pydantic to ensure types/ranges remain correct.

Security note:
Quota limits, the expiry instant, provider credentials and file paths can never be
overridden per request.
"""

from __future__ import annotations

# Overrides come from JSON payloads (dict-like objects), so typing stays flexible here
# and the error messages carry the full dotted path of the offending key.
from typing import Any, Mapping

from fairmeet.config.settings import Settings

# A value of True means "allow any keys under this subtree".
# A nested dict means "only allow the listed keys, recursively".
ALLOWED_SETTINGS_OVERRIDES_TREE: dict[str, Any] = {
    "scoring": True,
    "search": {
        "radius_m": True,
        "max_results": True,
    },
    "simulation": {
        "average_speed_kmh": True,
    },
}


def _merge_into(base: dict[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively overlay `patch` on a copy of `base` (mappings merge, scalars replace)."""
    out = dict(base)
    for key, value in patch.items():
        current = out.get(key)
        out[key] = (
            _merge_into(dict(current), value)
            if isinstance(value, Mapping) and isinstance(current, Mapping)
            else value
        )
    return out


def _check_against_whitelist(
    overrides: Mapping[str, Any], allowed_tree: Mapping[str, Any], prefix: str = ""
) -> dict[str, Any]:
    checked: dict[str, Any] = {}
    for key, value in overrides.items():
        dotted = f"{prefix}{key}"
        rule = allowed_tree.get(key)
        if rule is None:
            raise ValueError(f"settings_overrides contains a disallowed key: '{dotted}'")
        if rule is True:
            checked[key] = value
        elif isinstance(value, Mapping):
            checked[key] = _check_against_whitelist(value, rule, prefix=f"{dotted}.")
        else:
            raise ValueError(f"settings_overrides key '{dotted}' must be a mapping")
    return checked


def apply_settings_overrides(settings: Settings, overrides: Mapping[str, Any] | None) -> Settings:
    """Return `settings` with the whitelisted `overrides` applied (re-validated).

    The cached `settings` object is never mutated.

    Raises:
        ValueError: If the payload touches a disallowed key or fails validation.
    """
    if not overrides:
        return settings
    safe = _check_against_whitelist(overrides, ALLOWED_SETTINGS_OVERRIDES_TREE)
    # pydantic.ValidationError subclasses ValueError, so the API maps both to a 400.
    return Settings.model_validate(_merge_into(settings.model_dump(mode="python"), safe))
