"""Configuration for todo-expand.

Settings are resolved from several sources. Precedence, highest first:
1. CLI flags
2. Environment variables
3. Explicit --config file (replaces 4 and 5 when given)
4. Project config (.todoexpandrc.yaml, nearest parent directory)
5. Global config (~/.config/todo-expand/config.yaml)
6. Built-in defaults
"""

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError, conint

from todoexpand import global_config
from todoexpand.cache.paths import find_cache_path
from todoexpand.user_config import find_project_config


class BriefStyle(str, Enum):
    """Verbosity of the generated briefs."""

    SUCCINCT = "succinct"
    VERBOSE = "verbose"


# ============================================================
# DEFAULT VALUES
# ============================================================

DEFAULT_SECTIONS = ("Context", "Goal", "Steps", "Constraints", "Acceptance")
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_ENDPOINT = "https://api.openai.com/v1/responses"

API_KEY_ENV_VAR = "OPENAI_API_KEY"
MODEL_ENV_VAR = "OPENAI_MODEL"
STYLE_ENV_VAR = "TODO_EXPAND_STYLE"
SECTIONS_ENV_VAR = "TODO_EXPAND_SECTIONS"
DRY_RUN_ENV_VAR = "TODO_EXPAND_DRY"

NonNegativeInt = conint(ge=0, strict=True)


class ResolvedConfig(BaseModel):
    """Fully resolved, read-only configuration for one invocation."""

    model_config = ConfigDict(frozen=True)

    include: tuple[str, ...] = ("ts", "tsx", "js", "jsx")
    exclude: tuple[str, ...] = ("node_modules", "build", "dist", ".git")
    style: BriefStyle = BriefStyle.SUCCINCT
    sections: tuple[str, ...] = DEFAULT_SECTIONS
    model: str = DEFAULT_MODEL
    endpoint: str = DEFAULT_ENDPOINT
    timeout: int = 45000  # ms per request attempt
    concurrency: int = 1
    context_lines: int = 12
    cache: bool = True
    format: bool = True
    strict: bool = False
    print: bool = False
    max_file_kb: int = 512
    verbose_logs: bool = False
    retries: int = 2  # attempts after the first
    retry_backoff_ms: int = 500
    per_file_timeout_ms: int = 120000
    cache_path: Optional[Path] = None


class ConfigFile(BaseModel):
    """Schema of a global or project config file. Every key is optional.

    Keys may use snake_case or the camelCase names of the JSON config format.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    include: Optional[list[StrictStr]] = None
    exclude: Optional[list[StrictStr]] = None
    style: Optional[BriefStyle] = None
    sections: Optional[list[StrictStr]] = None
    model: Optional[StrictStr] = None
    endpoint: Optional[StrictStr] = None
    timeout: Optional[NonNegativeInt] = None
    concurrency: Optional[NonNegativeInt] = None
    context_lines: Optional[NonNegativeInt] = Field(None, alias="contextLines")
    cache: Optional[StrictBool] = None
    format: Optional[StrictBool] = None
    strict: Optional[StrictBool] = None
    print: Optional[StrictBool] = None
    max_file_kb: Optional[NonNegativeInt] = Field(None, alias="maxFileKB")
    verbose_logs: Optional[StrictBool] = Field(None, alias="verboseLogs")
    retries: Optional[NonNegativeInt] = None
    retry_backoff_ms: Optional[NonNegativeInt] = Field(None, alias="retryBackoffMs")
    per_file_timeout_ms: Optional[NonNegativeInt] = Field(None, alias="perFileTimeoutMs")


# Accepted spellings of every key, mapped to the field name
_KEY_TO_FIELD = {}
for _name, _info in ConfigFile.model_fields.items():
    _KEY_TO_FIELD[_name] = _name
    if _info.alias:
        _KEY_TO_FIELD[_info.alias] = _name


@dataclass
class ConfigValidation:
    """Validated values from one config source plus any problems found."""

    values: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class ConfigResult:
    """Outcome of load_config()."""

    config: ResolvedConfig
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    sources: dict[str, Path] = field(default_factory=dict)


def validate_config_data(raw: Any, source: str) -> ConfigValidation:
    """Validate a parsed config object.

    Unknown keys produce warnings and are ignored. Keys with invalid values
    produce errors and are dropped; the remaining keys are kept.

    Args:
        raw: The parsed YAML/JSON document.
        source: Name of the source, used as a prefix in messages.

    Returns:
        The validated values keyed by field name.
    """
    result = ConfigValidation()

    if not isinstance(raw, dict):
        result.errors.append(f"{source}: Configuration must be a mapping")
        return result

    data = {}
    for key, value in raw.items():
        if key == "$schema":
            continue
        if key not in _KEY_TO_FIELD:
            result.warnings.append(f"{source}: Unknown configuration key '{key}' (will be ignored)")
            continue
        data[key] = value

    try:
        parsed = ConfigFile.model_validate(data)
    except ValidationError as e:
        invalid_fields = set()
        for error in e.errors():
            key = str(error["loc"][0])
            invalid_fields.add(_KEY_TO_FIELD.get(key, key))
            result.errors.append(f"{source}: '{key}' {error['msg']}")
        data = {k: v for k, v in data.items() if _KEY_TO_FIELD[k] not in invalid_fields}
        parsed = ConfigFile.model_validate(data)

    result.values = parsed.model_dump(exclude_none=True)
    return result


def load_config_file(path: Path) -> Optional[ConfigValidation]:
    """Load and validate a YAML or JSON config file.

    Args:
        path: Path to the config file.

    Returns:
        The validation result, or None if the file does not exist.
    """
    if not path.exists():
        return None

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        return ConfigValidation(errors=[f"{path}: Failed to parse config: {e}"])

    return validate_config_data(raw or {}, str(path))


def split_list(value: str) -> list[str]:
    """Split a comma-separated option into trimmed, non-empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def load_env_config() -> dict[str, Any]:
    """Collect settings from environment variables that are set and non-empty."""
    values: dict[str, Any] = {}

    model = os.environ.get(MODEL_ENV_VAR, "").strip()
    if model:
        values["model"] = model

    style = os.environ.get(STYLE_ENV_VAR, "").strip()
    if style in (BriefStyle.SUCCINCT.value, BriefStyle.VERBOSE.value):
        values["style"] = BriefStyle(style)

    sections = os.environ.get(SECTIONS_ENV_VAR, "").strip()
    if sections:
        values["sections"] = split_list(sections)

    return values


def _merge(*layers: dict[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for layer in layers:
        merged.update({k: v for k, v in layer.items() if v is not None})
    return merged


def load_config(
    cwd: Path,
    cli: Optional[dict[str, Any]] = None,
    config_path: Optional[Path] = None,
) -> ConfigResult:
    """Load and resolve configuration from files, environment and CLI flags.

    Args:
        cwd: Working directory used to find the project config and cache.
        cli: Values from CLI flags, keyed by field name. None means unset.
        config_path: Explicit config file replacing global and project files.

    Returns:
        The resolved configuration with warnings, errors and the files used.
    """
    warnings: list[str] = []
    errors: list[str] = []
    sources: dict[str, Path] = {}
    layers: list[dict[str, Any]] = []

    def _collect(kind: str, path: Path) -> None:
        loaded = load_config_file(path)
        if loaded is None:
            if kind == "override":
                errors.append(f"Config file not found: {path}")
            return
        warnings.extend(loaded.warnings)
        errors.extend(loaded.errors)
        layers.append(loaded.values)
        if loaded.values or kind == "override":
            sources[kind] = path

    if config_path is not None:
        _collect("override", config_path)
    else:
        _collect("global", global_config.get_config_file_path())
        project_path = find_project_config(cwd)
        if project_path is not None:
            _collect("project", project_path)

    merged = _merge(*layers, load_env_config(), cli or {})

    style = BriefStyle(merged.get("style", BriefStyle.SUCCINCT))
    if "verbose_logs" not in merged:
        merged["verbose_logs"] = style is BriefStyle.VERBOSE

    for key in ("include", "exclude", "sections"):
        if key in merged:
            merged[key] = tuple(merged[key])

    config = ResolvedConfig(**merged, cache_path=find_cache_path(cwd))
    return ConfigResult(config=config, warnings=warnings, errors=errors, sources=sources)


def get_api_key() -> Optional[str]:
    """Get the completion API key from the environment or credentials file."""
    api_key = os.environ.get(API_KEY_ENV_VAR)
    if api_key:
        return api_key
    try:
        return global_config.get_credential(API_KEY_ENV_VAR)
    except global_config.GlobalConfigError:
        return None


def render_config(config: ResolvedConfig, sources: dict[str, Path]) -> str:
    """Render the resolved configuration and its sources for --print-config.

    Args:
        config: The resolved configuration.
        sources: Config files that contributed, keyed by kind.

    Returns:
        A markdown report. The API key is never printed.
    """
    lines = ["# Resolved Configuration", "", "## Sources (in precedence order):"]
    lines.append("- CLI flags")
    lines.append("- Environment variables")
    if "override" in sources:
        lines.append(f"- Override: {sources['override']}")
    if "project" in sources:
        lines.append(f"- Project: {sources['project']}")
    if "global" in sources:
        lines.append(f"- Global: {sources['global']}")
    lines.append("- Built-in defaults")
    lines.append("")
    lines.append("## Final Configuration:")
    lines.append("```json")
    if os.environ.get(API_KEY_ENV_VAR):
        lines.append(f"// Note: {API_KEY_ENV_VAR} is set (not shown for security)")
    lines.append(json.dumps(config.model_dump(mode="json", exclude={"cache_path"}), indent=2))
    lines.append("```")
    return "\n".join(lines)
