"""
Parameter resolution for the migration stack.

`resolve_parameters` turns a flat configuration mapping into a validated
`StackParameters` record. Provider naming limits are checked here, up front,
so that a bad name fails the construction pass instead of the deployment.
"""

from __future__ import annotations

import logging
import re
from dataclasses import fields
from typing import Any, Dict, Iterable, Mapping, Tuple

from .defaults import DEFAULT_PARAMETERS
from .errors import ConfigurationError
from .models import StackParameters

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "org_name",
    "project_name",
    "environment",
    "region",
    "account",
    "secret_name",
    "import_bucket_name",
    "export_bucket_name",
    "database_name",
    "db_cluster_identifier",
    "port",
)

SUPPORTED_LOG_TYPES = ("audit", "error", "general", "slowquery")
MONITORING_INTERVALS = (0, 1, 5, 10, 15, 30, 60)

_BOOL_FIELDS = {"exclude_punctuation", "require_each_included_type", "deletion_protection"}
_INT_FIELDS = {"port", "password_length", "instances", "monitoring_interval", "backup_retention_period"}
_LIST_FIELDS = {"cloudwatch_logs_exports"}

_ACCOUNT_RE = re.compile(r"^\d{12}$")
_REGION_RE = re.compile(r"^[a-z]{2}(-[a-z]+)+-\d+$")
_NAME_PART_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
_BUCKET_RE = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")
_IP_RE = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")
_CLUSTER_RE = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")
_SECRET_RE = re.compile(r"^[A-Za-z0-9/_+=.@-]+$")
_DATABASE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,63}$")
_DAY = r"(mon|tue|wed|thu|fri|sat|sun)"
_HHMM = r"([01]\d|2[0-3]):[0-5]\d"
_MAINTENANCE_RE = re.compile(rf"^{_DAY}:{_HHMM}-{_DAY}:{_HHMM}$")
_BACKUP_RE = re.compile(rf"^{_HHMM}-{_HHMM}$")


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off"}:
            return False
    raise ConfigurationError(f"expected a boolean, got {value!r}", field=name)


def _coerce_int(name: str, value: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise ConfigurationError(f"expected an integer, got {value!r}", field=name)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ConfigurationError(f"expected an integer, got {value!r}", field=name)


def _coerce_list(name: str, value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        return tuple(item.strip() for item in value.split(",") if item.strip())
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ConfigurationError(f"expected a list of strings, got {value!r}", field=name)


def _coerce_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"expected a string, got {value!r}", field=name)
    return value.strip()


def _normalize(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Fill optional fields from defaults and coerce every field to its type."""
    missing = [
        name for name in REQUIRED_FIELDS
        if raw.get(name) is None or (isinstance(raw.get(name), str) and not raw[name].strip())
    ]
    if missing:
        raise ConfigurationError(f"missing required fields: {', '.join(missing)}", field=missing[0])

    merged: Dict[str, Any] = dict(DEFAULT_PARAMETERS)
    merged.update({k: v for k, v in raw.items() if v is not None})
    if raw.get("region_name") is None:
        merged["region_name"] = merged["region"]

    normalized: Dict[str, Any] = {}
    for f in fields(StackParameters):
        value = merged.get(f.name)
        if value is None:
            raise ConfigurationError("field is required", field=f.name)
        if f.name in _BOOL_FIELDS:
            normalized[f.name] = _coerce_bool(f.name, value)
        elif f.name in _INT_FIELDS:
            normalized[f.name] = _coerce_int(f.name, value)
        elif f.name in _LIST_FIELDS:
            normalized[f.name] = _coerce_list(f.name, value)
        elif f.name == "account" and isinstance(value, int) and not isinstance(value, bool):
            normalized[f.name] = f"{value:012d}"
        else:
            normalized[f.name] = _coerce_str(f.name, value)

    unknown = sorted(set(raw) - set(normalized))
    if unknown:
        logger.warning("ignoring unknown configuration fields: %s", ", ".join(unknown))
    return normalized


def _check(condition: bool, field: str, message: str) -> None:
    if not condition:
        raise ConfigurationError(message, field=field)


def _check_range(params: StackParameters, name: str, low: int, high: int) -> None:
    value = getattr(params, name)
    _check(low <= value <= high, name, f"must be between {low} and {high}, got {value}")


def _check_bucket_name(field: str, bucket_name: str) -> None:
    _check(
        bool(_BUCKET_RE.match(bucket_name)) and ".." not in bucket_name and not _IP_RE.match(bucket_name),
        field,
        f"derived bucket name {bucket_name!r} is not a valid S3 bucket name (3-63 lower-case characters)",
    )


def _validate_secret_template(params: StackParameters) -> None:
    try:
        template = params.secret_template
    except ValueError as e:
        raise ConfigurationError(f"not valid JSON: {e}", field="secret_string_template") from e
    _check(isinstance(template, dict), "secret_string_template", "must be a JSON object")
    _check("username" in template, "secret_string_template", 'must pre-seed a "username" field')
    _check(
        params.generate_string_key not in template,
        "secret_string_template",
        f"must not pre-seed the generated field {params.generate_string_key!r}",
    )


def validate_parameters(params: StackParameters) -> None:
    """Raise `ConfigurationError` for the first field that breaks a provider constraint."""
    _check(bool(_ACCOUNT_RE.match(params.account)), "account", "must be a 12-digit AWS account id")
    _check(bool(_REGION_RE.match(params.region)), "region", f"not a region name: {params.region!r}")

    for name in ("org_name", "project_name", "environment", "region_name", "import_bucket_name", "export_bucket_name"):
        _check(
            bool(_NAME_PART_RE.match(getattr(params, name))),
            name,
            "only lower-case letters, digits and single hyphens are allowed",
        )

    _check(
        params.import_bucket_name != params.export_bucket_name,
        "export_bucket_name",
        "import and export buckets must have different base names",
    )
    for bucket in params.bucket_roles:
        _check_bucket_name(f"{bucket.role.value}_bucket_name", params.bucket_name(bucket))

    cluster_name = params.cluster_name
    _check(
        len(cluster_name) <= 63
        and bool(_CLUSTER_RE.match(cluster_name))
        and "--" not in cluster_name
        and not cluster_name.endswith("-"),
        "db_cluster_identifier",
        f"derived cluster identifier {cluster_name!r} must be 1-63 letters, digits or hyphens, "
        "start with a letter, and contain no '--' or trailing hyphen",
    )

    _check(
        len(params.secret_full_name) <= 512 and bool(_SECRET_RE.match(params.secret_full_name)),
        "secret_name",
        f"derived secret name {params.secret_full_name!r} contains invalid characters or is too long",
    )
    _check(
        len(params.security_group_name) <= 255 and not params.security_group_name.startswith("sg-"),
        "org_name",
        f"derived security group name {params.security_group_name!r} is invalid",
    )
    _check(bool(_DATABASE_RE.match(params.database_name)), "database_name", "must start with a letter (max 64 chars)")

    _check(bool(params.generate_string_key), "generate_string_key", "must not be empty")
    _validate_secret_template(params)

    _check_range(params, "port", 1, 65535)
    _check_range(params, "instances", 1, 16)
    _check_range(params, "password_length", 1, 4096)
    _check_range(params, "backup_retention_period", 1, 35)
    _check(
        params.monitoring_interval in MONITORING_INTERVALS,
        "monitoring_interval",
        f"must be one of {', '.join(str(i) for i in MONITORING_INTERVALS)}",
    )
    _check(
        bool(_MAINTENANCE_RE.match(params.preferred_maintenance_window)),
        "preferred_maintenance_window",
        "expected ddd:hh:mm-ddd:hh:mm",
    )
    _check(bool(_BACKUP_RE.match(params.preferred_backup_window)), "preferred_backup_window", "expected hh:mm-hh:mm")

    unsupported = _unsupported(params.cloudwatch_logs_exports, SUPPORTED_LOG_TYPES)
    _check(not unsupported, "cloudwatch_logs_exports", f"unsupported log types: {', '.join(unsupported)}")


def _unsupported(values: Iterable[str], supported: Iterable[str]) -> list:
    allowed = set(supported)
    return [v for v in values if v not in allowed]


def resolve_parameters(raw: Mapping[str, Any]) -> StackParameters:
    """
    Validate and normalize a flat configuration mapping.

    Args:
        raw: snake_case configuration fields; optional fields fall back to
            the stack defaults and `region_name` falls back to `region`

    Returns:
        Immutable StackParameters with derived names available

    Raises:
        ConfigurationError: a required field is absent or a value (or a name
            derived from it) violates a provider constraint
    """
    params = StackParameters(**_normalize(raw))
    validate_parameters(params)
    logger.debug("resolved parameters for prefix %s", params.name_prefix)
    return params
