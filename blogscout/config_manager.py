"""Layered configuration loader and CLI for BlogScout."""
from __future__ import annotations

import argparse
import json
import os
import shutil
import sys
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional, Sequence

from dotenv import dotenv_values
from pydantic import ValidationError

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for Py <3.11
    import tomli as tomllib  # type: ignore[no-redef]

try:
    import tomli_w
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    tomli_w = None  # type: ignore[assignment]

from blogscout.config_schema import Config, DEFAULT_CONFIG, iter_field_docs

DEFAULT_ENV_PREFIX = "BLOGSCOUT"
DEFAULT_CONFIG_FILENAME = "config.toml"
DEFAULT_ENV_FILENAME = ".env"
BACKUP_DIRNAME = "backups"


@dataclass(frozen=True)
class ConfigValueOrigin:
    """Where a single configuration value came from."""

    layer: str
    source: str
    env_var: str | None = None

    def render(self) -> str:
        details = [item for item in (self.env_var, self.source) if item]
        if details:
            return f"{self.layer} ({', '.join(details)})"
        return self.layer


@dataclass
class ConfigMetadata:
    """Aggregated metadata returned alongside the loaded configuration."""

    config_path: Path
    env_path: Optional[Path]
    env_prefix: str
    provenance: Dict[str, ConfigValueOrigin] = field(default_factory=dict)

    def describe_sources(self) -> list[str]:
        return [
            "defaults: built into blogscout.config_schema",
            f"config file: {self.config_path}",
            f".env file: {self.env_path}" if self.env_path else ".env file: not found",
            f"environment prefix: {self.env_prefix}__*",
        ]


class ConfigError(RuntimeError):
    """Raised when configuration loading or validation fails."""


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _default_paths() -> tuple[Path, Path]:
    root = _project_root()
    return root / DEFAULT_CONFIG_FILENAME, root / DEFAULT_ENV_FILENAME


def _is_secret(path: str) -> bool:
    lowered = path.lower()
    return any(token in lowered for token in ("password", "secret", "token", "database_url"))


@dataclass
class _Layer:
    """Flattened ``dotted.path -> value`` overrides contributed by one source."""

    name: str
    source: str
    values: Dict[str, Any] = field(default_factory=dict)
    env_vars: Dict[str, str] = field(default_factory=dict)

    def origin_of(self, path: str) -> ConfigValueOrigin:
        return ConfigValueOrigin(
            layer=self.name, source=self.source, env_var=self.env_vars.get(path)
        )


def _flatten_mapping(mapping: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten_mapping(value, path))
        else:
            flat[path] = value
    return flat


def _env_layer(
    items: Mapping[str, Optional[str]], prefix: str, *, name: str, source: str
) -> _Layer:
    layer = _Layer(name=name, source=source)
    for key, value in items.items():
        if value is None or not key.startswith(prefix + "__"):
            continue
        path_key, parsed_value = _parse_env_override(key, value, prefix)
        layer.values[path_key] = parsed_value
        layer.env_vars[path_key] = key
    return layer


def _stack_layers(
    layers: Sequence[_Layer],
) -> tuple[Dict[str, Any], Dict[str, ConfigValueOrigin]]:
    """Apply ``layers`` in order; later layers win key by key."""

    merged: Dict[str, Any] = {}
    provenance: Dict[str, ConfigValueOrigin] = {}
    for layer in layers:
        for path_key, value in layer.values.items():
            _assign_path(merged, path_key, value)
            provenance[path_key] = layer.origin_of(path_key)
    return merged, provenance


def _coerce_text(value: str) -> Any:
    text = value.strip()
    if not text:
        return ""
    lowered = text.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        pass
    if text[0] in "[{" and text[-1] in "]}":
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text
    return text


def _parse_env_override(raw_key: str, raw_value: str, prefix: str) -> tuple[str, Any]:
    if not raw_key.startswith(prefix + "__"):
        raise ConfigError(
            f"Environment override '{raw_key}' does not start with prefix {prefix}__"
        )
    segments = [segment for segment in raw_key[len(prefix) + 2 :].split("__") if segment]
    if not segments:
        raise ConfigError(f"Environment override '{raw_key}' is missing key segments")
    return ".".join(segment.lower() for segment in segments), _coerce_text(raw_value)


def _assign_path(target: MutableMapping[str, Any], path: str, value: Any) -> None:
    segments = path.split(".")
    current: MutableMapping[str, Any] = target
    for segment in segments[:-1]:
        next_value = current.get(segment)
        if not isinstance(next_value, MutableMapping):
            next_value = {}
            current[segment] = next_value
        current = next_value
    current[segments[-1]] = value


# Reading and writing TOML
# ========================


def _load_toml(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError) as exc:
        raise ConfigError(f"Cannot read configuration file {path}: {exc}") from exc


def _toml_ready(value: Any) -> Any:
    if value is None:
        # No null in TOML; blank strings load back as unset.
        return ""
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, list):
        return [_toml_ready(item) for item in value]
    return value


def _config_sections(config: Config) -> Dict[str, Dict[str, Any]]:
    """``{section: {field: value}}`` for every field of ``config``."""

    sections: Dict[str, Dict[str, Any]] = {}
    for path_key, value in _flatten_mapping(config.model_dump(mode="python")).items():
        section, _, name = path_key.partition(".")
        sections.setdefault(section, {})[name] = _toml_ready(value)
    return sections


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, list):
        return "[" + ", ".join(_literal(item) for item in value) + "]"
    return json.dumps(str(value))


def _render_toml(sections: Mapping[str, Mapping[str, Any]]) -> str:
    if tomli_w is not None:
        return tomli_w.dumps(sections)
    blocks = []
    for section, values in sections.items():
        lines = [f"[{section}]"]
        lines.extend(f"{name} = {_literal(value)}" for name, value in values.items())
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n"


def _backup(path: Path) -> Optional[Path]:
    if not path.exists():
        return None
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    backup = path.parent / BACKUP_DIRNAME / f"{path.name}.{stamp}.bak"
    backup.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(path, backup)
    return backup


def _format_validation_error(
    error: ValidationError,
    provenance: Mapping[str, ConfigValueOrigin],
) -> ConfigError:
    problems: list[str] = []
    for issue in error.errors():
        dotted = ".".join(str(part) for part in issue.get("loc", ())) or "<root>"
        line = f"{dotted}: {issue.get('msg', 'invalid value')}"
        if issue.get("input") is not None and not _is_secret(dotted):
            line += f" (got {issue['input']!r})"
        origin = provenance.get(dotted)
        if origin is not None:
            line += f" [{origin.render()}]"
        problems.append(line)
    return ConfigError("Invalid configuration:\n  " + "\n  ".join(problems))


def load_config(
    path: Path | None = None,
    *,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Merge defaults, the TOML file, the .env file and the environment."""

    config_path = path if path else _default_paths()[0]
    env_path = config_path.parent / DEFAULT_ENV_FILENAME
    has_env_file = env_path.exists()

    layers = [
        _Layer(
            name="defaults",
            source="DEFAULT_CONFIG",
            values=_flatten_mapping(DEFAULT_CONFIG.model_dump(mode="python")),
        ),
        _Layer(
            name="file",
            source=str(config_path),
            values=_flatten_mapping(_load_toml(config_path)),
        ),
    ]
    if has_env_file:
        layers.append(
            _env_layer(
                dotenv_values(env_path, verbose=False),
                env_prefix,
                name="env-file",
                source=str(env_path),
            )
        )
    layers.append(
        _env_layer(
            os.environ if environ is None else environ,
            env_prefix,
            name="env",
            source="process",
        )
    )

    merged, provenance = _stack_layers(layers)
    try:
        config = Config.model_validate(merged)
    except ValidationError as exc:
        raise _format_validation_error(exc, provenance) from exc
    config._metadata = ConfigMetadata(  # type: ignore[attr-defined]
        config_path=config_path,
        env_path=env_path if has_env_file else None,
        env_prefix=env_prefix,
        provenance=provenance,
    )
    return config


def save_config(config: Config, path: Path | None = None) -> Path:
    """Write ``config`` atomically; an existing file is first copied to ``backups/``."""

    metadata: ConfigMetadata | None = getattr(config, "_metadata", None)
    target = path or (metadata.config_path if metadata else _default_paths()[0])
    target.parent.mkdir(parents=True, exist_ok=True)
    descriptor, staging = tempfile.mkstemp(
        prefix=".blogscout-config-", suffix=".toml", dir=str(target.parent)
    )
    try:
        with os.fdopen(descriptor, "w", encoding="utf-8") as handle:
            handle.write(_render_toml(_config_sections(config)))
        _backup(target)
        os.replace(staging, target)
    except OSError as exc:
        Path(staging).unlink(missing_ok=True)
        raise ConfigError(f"Could not write {target}: {exc}") from exc
    return target


# CLI helpers
# ===========


def _explain(config: Config, key: str) -> str:
    metadata: ConfigMetadata | None = getattr(config, "_metadata", None)
    if metadata is None:
        raise ConfigError("Configuration was not produced by load_config")
    current = _flatten_mapping(config.model_dump(mode="python"))
    if key not in current:
        raise ConfigError(f"Unknown configuration key: {key}")
    shown = "***masked***" if _is_secret(key) else repr(current[key])
    origin = metadata.provenance.get(key)
    return f"{key} = {shown}\nsource: {origin.render() if origin else 'unknown'}"


def _parse_assignments(items: Sequence[str]) -> Dict[str, Any]:
    updates: Dict[str, Any] = {}
    for item in items:
        key, separator, raw_value = item.partition("=")
        if not separator or not key.strip():
            raise ConfigError(f"Expected KEY=VALUE, got '{item}'")
        updates[key.strip()] = _coerce_text(raw_value)
    return updates


def _apply_updates(config: Config, updates: Mapping[str, Any]) -> tuple[Config, list[str]]:
    """Validate ``updates`` on top of ``config``; return the new config and a change log."""

    metadata: ConfigMetadata | None = getattr(config, "_metadata", None)
    before = _flatten_mapping(config.model_dump(mode="python"))
    unknown = sorted(set(updates) - set(before))
    if unknown:
        raise ConfigError(f"Unknown configuration key: {', '.join(unknown)}")

    provenance = dict(metadata.provenance) if metadata else {}
    cli_layer = _Layer(name="cli", source="runtime", values=dict(updates))
    merged, _ = _stack_layers(
        [_Layer(name="current", source="config", values=before), cli_layer]
    )
    provenance.update({key: cli_layer.origin_of(key) for key in updates})
    try:
        updated = Config.model_validate(merged)
    except ValidationError as exc:
        raise _format_validation_error(exc, provenance) from exc

    if metadata is not None:
        updated._metadata = ConfigMetadata(  # type: ignore[attr-defined]
            config_path=metadata.config_path,
            env_path=metadata.env_path,
            env_prefix=metadata.env_prefix,
            provenance=provenance,
        )
    after = _flatten_mapping(updated.model_dump(mode="python"))
    changes = []
    for key in sorted(before):
        if before[key] == after[key]:
            continue
        if _is_secret(key):
            changes.append(f"{key}: ***masked*** -> ***masked***")
        else:
            changes.append(f"{key}: {before[key]!r} -> {after[key]!r}")
    return updated, changes


def _schema_markdown() -> str:
    rows = ["| Field | Type | Default | Description |", "| --- | --- | --- | --- |"]
    for entry in iter_field_docs(DEFAULT_CONFIG):
        if entry["is_nested"]:
            continue
        default = "" if entry["default"] is None else entry["default"]
        rows.append(f"| {entry['name']} | {entry['type']} | {default} | {entry['description']} |")
    return "\n".join(rows)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Inspect and edit BlogScout configuration")
    parser.add_argument("--config", type=Path, help="TOML file to load (default: ./config.toml)")
    parser.add_argument("--env-prefix", default=DEFAULT_ENV_PREFIX)
    actions = parser.add_mutually_exclusive_group(required=True)
    actions.add_argument("--validate", action="store_true", help="Load and validate every layer")
    actions.add_argument("--dump-defaults", action="store_true", help="Write the defaults as TOML")
    actions.add_argument("--print-schema", action="store_true", help="Markdown table of fields")
    actions.add_argument("--show-sources", action="store_true", help="List layers in precedence order")
    actions.add_argument("--explain", metavar="KEY", help="Show a value and the layer that set it")
    actions.add_argument("--set", nargs="+", metavar="KEY=VALUE", help="Validate and persist updates")
    args = parser.parse_args(argv)

    if args.dump_defaults:
        sys.stdout.write(_render_toml(_config_sections(DEFAULT_CONFIG)))
        return 0
    if args.print_schema:
        print(_schema_markdown())
        return 0

    try:
        config = load_config(args.config, env_prefix=args.env_prefix)
        if args.validate:
            print("Configuration OK")
        elif args.show_sources:
            print("Active configuration sources:")
            for line in config._metadata.describe_sources():  # type: ignore[attr-defined]
                print(f"- {line}")
        elif args.explain:
            print(_explain(config, args.explain))
        else:
            updated, changes = _apply_updates(config, _parse_assignments(args.set))
            target = save_config(updated, args.config)
            for change in changes:
                print(change)
            print(f"Saved configuration to {target}")
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
