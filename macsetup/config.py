from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .lib.defaults import Preference

DEFAULT_MANIFEST = Path(__file__).resolve().parent / "manifests" / "default.yaml"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class PackageGroup:
    name: str
    fatal: bool = True
    enabled: bool = True
    taps: List[str] = field(default_factory=list)
    formulae: List[str] = field(default_factory=list)
    casks: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ZshPlugin:
    name: str
    url: str


def deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Mappings merge recursively; lists and scalars from overlay replace."""

    out = copy.deepcopy(base)
    for k, v in overlay.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


def _str_list(value: Any, where: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"{where} must be a list")
    return [str(v).strip() for v in value if str(v).strip()]


@dataclass(frozen=True)
class SetupConfig:
    raw: Dict[str, Any]

    def section(self, name: str) -> Dict[str, Any]:
        value = self.raw.get(name) or {}
        if not isinstance(value, dict):
            raise ConfigError(f"{name} must be a mapping")
        return value

    def enabled(self, name: str) -> bool:
        return bool(self.section(name).get("enabled", True))

    def fatal(self, name: str, default: bool) -> bool:
        return bool(self.section(name).get("fatal", default))

    @property
    def home(self) -> Path:
        return Path(os.path.expanduser(str(self.raw.get("home") or "~")))

    def expand(self, path: str) -> Path:
        p = str(path)
        if p == "~":
            return self.home
        if p.startswith("~/"):
            return self.home / p[2:]
        return Path(p)

    @property
    def zprofile(self) -> Path:
        return self.expand(self.section("paths").get("zprofile") or "~/.zprofile")

    @property
    def zshrc(self) -> Path:
        return self.expand(self.section("paths").get("zshrc") or "~/.zshrc")

    @property
    def command_timeout_s(self) -> Optional[float]:
        value = self.section("timeouts").get("command_s", 1800)
        return float(value) if value else None

    @property
    def confirmation_timeout_s(self) -> Optional[float]:
        value = self.section("timeouts").get("confirmation_s", 1800)
        return float(value) if value else None

    @property
    def brew_prefix(self) -> str:
        return str(self.section("homebrew").get("prefix") or "/opt/homebrew")

    @property
    def preferences(self) -> List[Preference]:
        items = self.section("macos_defaults").get("preferences") or []
        if not isinstance(items, list):
            raise ConfigError("macos_defaults.preferences must be a list")
        prefs: List[Preference] = []
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                raise ConfigError(f"macos_defaults.preferences[{i}] must be a mapping")
            try:
                prefs.append(
                    Preference(
                        domain=str(item["domain"]),
                        key=str(item["key"]),
                        type=str(item.get("type", "string")),
                        value=item.get("value"),
                    )
                )
            except KeyError as e:
                raise ConfigError(f"macos_defaults.preferences[{i}] missing {e.args[0]}") from e
            except ValueError as e:
                raise ConfigError(f"macos_defaults.preferences[{i}]: {e}") from e
        return prefs

    @property
    def restart_apps(self) -> List[str]:
        return _str_list(self.section("macos_defaults").get("restart_apps"), "macos_defaults.restart_apps")

    @property
    def git_settings(self) -> Dict[str, str]:
        settings = self.section("git").get("settings") or {}
        if not isinstance(settings, dict):
            raise ConfigError("git.settings must be a mapping")
        return {str(k): str(v) for k, v in settings.items() if v is not None and str(v).strip()}

    @property
    def package_groups(self) -> List[PackageGroup]:
        items = self.raw.get("package_groups") or []
        if not isinstance(items, list):
            raise ConfigError("package_groups must be a list")
        groups: List[PackageGroup] = []
        for i, item in enumerate(items):
            if not isinstance(item, dict) or not item.get("name"):
                raise ConfigError(f"package_groups[{i}] must be a mapping with a name")
            where = f"package_groups[{item['name']}]"
            groups.append(
                PackageGroup(
                    name=str(item["name"]),
                    fatal=bool(item.get("fatal", True)),
                    enabled=bool(item.get("enabled", True)),
                    taps=_str_list(item.get("taps"), f"{where}.taps"),
                    formulae=_str_list(item.get("formulae"), f"{where}.formulae"),
                    casks=_str_list(item.get("casks"), f"{where}.casks"),
                )
            )
        return groups

    @property
    def zsh_plugins(self) -> List[ZshPlugin]:
        items = self.section("zsh").get("plugins") or []
        if not isinstance(items, list):
            raise ConfigError("zsh.plugins must be a list")
        plugins: List[ZshPlugin] = []
        for i, item in enumerate(items):
            if not isinstance(item, dict) or not item.get("name") or not item.get("url"):
                raise ConfigError(f"zsh.plugins[{i}] needs name and url")
            plugins.append(ZshPlugin(name=str(item["name"]), url=str(item["url"])))
        return plugins

    def validate(self) -> None:
        """Fail early on malformed tables rather than mid-run."""
        self.preferences
        self.package_groups
        self.zsh_plugins
        self.git_settings
        self.zshrc_settings
        for name in ("paths", "timeouts", "xcode", "homebrew", "macos_defaults", "git", "zsh", "rust", "nvm"):
            self.section(name)

    @property
    def zshrc_settings(self) -> Dict[str, Any]:
        value = self.section("zsh").get("zshrc") or {}
        if not isinstance(value, dict):
            raise ConfigError("zsh.zshrc must be a mapping")
        return value


def _load_yaml(p: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {p}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping/dict: {p}")
    return data


def load_config(path: Optional[str] = None, *, manifest: Path = DEFAULT_MANIFEST) -> SetupConfig:
    """Load the bundled manifest and deep-merge an optional user overlay."""

    raw = _load_yaml(manifest)
    if path:
        p = Path(path).expanduser()
        if not p.exists():
            raise ConfigError(f"Config file not found: {path}")
        if p.suffix.lower() not in {".yaml", ".yml"}:
            raise ConfigError("config must be YAML")
        raw = deep_merge(raw, _load_yaml(p))

    cfg = SetupConfig(raw=raw)
    cfg.validate()
    return cfg
