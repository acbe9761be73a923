"""yamlcmd core - config loading, variable resolution, command grammar."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

GLOBAL_DIR = Path.home() / ".yamlcmd"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"

CWD_CONFIG_CANDIDATES = [
    "yamlcmd.yaml",
    "yamlcmd.yml",
    ".yamlcmd.yaml",
    ".yamlcmd.yml",
    "config.yaml",
]

DEFAULT_TIMEOUT = 30

_PLACEHOLDER_RE = re.compile(r"\$([a-zA-Z_]+)")
_MANDATORY_RE = re.compile(r"^<([^<>]+)>$")
_OPTIONAL_RE = re.compile(r"^\[([^\[\]]+)\]$")


class ConfigurationError(Exception):
    """The configuration document cannot be turned into commands."""


# ── Config loading ───────────────────────────────────────────────────────


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else default."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (hard, no fallthrough if missing)
      2. yamlcmd.yaml / .yamlcmd.yaml (variants) or config.yaml in CWD
      3. ~/.yamlcmd/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def load_config(config_path: str | Path | None) -> dict:
    """Load the YAML config document.

    Returns a dict with ``variables``, ``headers``, ``commands``,
    ``timeout`` and ``_config_dir``. Raises ConfigurationError when the
    file is missing, unparsable, or has no ``commands`` mapping.
    """
    if config_path is None:
        raise ConfigurationError(
            "No config file found. Searched: "
            + ", ".join(CWD_CONFIG_CANDIDATES + [str(GLOBAL_CONFIG)]),
        )
    path = Path(config_path)
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config root must be a mapping: {path}")
    if "commands" not in data:
        raise ConfigurationError(f"Missing 'commands' section in {path}")
    if not isinstance(data["commands"], dict):
        raise ConfigurationError(f"'commands' must be a mapping in {path}")

    config_dir = path.resolve().parent
    env = load_env(data.get("env_file"), config_dir)

    variables = _mapping_section(data, "variables", path)
    headers = _mapping_section(data, "headers", path)

    timeout = data.get("timeout")
    if timeout is None:
        timeout = DEFAULT_TIMEOUT
    elif isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0:
        raise ConfigurationError(f"'timeout' must be a number in {path}")

    return {
        "variables": {k: resolve_value(str(v), env) for k, v in variables.items()},
        "headers": {k: str(v) for k, v in headers.items()},
        "commands": data["commands"],
        "timeout": timeout,
        "_config_dir": config_dir,
    }


def _mapping_section(data: dict, key: str, path: Path) -> dict:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{key}' must be a mapping in {path}")
    return {str(k): "" if v is None else v for k, v in section.items()}


def load_env(env_file: str | None, base_dir: str | Path = ".") -> dict[str, str]:
    """Load .env file and merge it over os.environ."""
    env = dict(os.environ)
    if env_file:
        dotenv_path = Path(base_dir) / env_file
        if dotenv_path.exists():
            dotenv_vars = dotenv_values(str(dotenv_path))
            env.update({k: v for k, v in dotenv_vars.items() if v is not None})
    return env


def resolve_value(value: str | None, env: dict[str, str]) -> str | None:
    """Resolve $VAR and ${VAR} environment references in a config value.

    Unknown names are left untouched so that they can still act as
    command placeholders later on.
    """
    if value is None:
        return None

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, m.group(0))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


# ── Placeholders ─────────────────────────────────────────────────────────


def resolve_placeholders(template: str, scope: dict[str, Any]) -> str:
    """Replace every ``$name`` token with its value from scope.

    Names are letters and underscores only. Absent or empty values
    resolve to an empty string.
    """

    def _replace(m: re.Match) -> str:
        value = scope.get(m.group(1))
        return str(value) if value else ""

    return _PLACEHOLDER_RE.sub(_replace, template)


def build_scope(
    variables: dict[str, Any],
    session: dict[str, Any],
    arguments: dict[str, Any],
) -> dict[str, Any]:
    """Layer static variables, session values and arguments (last wins)."""
    scope: dict[str, Any] = {}
    scope.update(variables)
    scope.update(session)
    scope.update(arguments)
    return scope


# ── Command definitions ──────────────────────────────────────────────────


class CommandDefinition:
    """What one configured command does when invoked."""

    _STR_FIELDS = ("endpoint", "response", "execute", "description")

    def __init__(
        self,
        name: str,
        endpoint: str | None = None,
        body: Any = None,
        response: str | None = None,
        set: dict[str, str] | None = None,  # noqa: A002
        execute: str | None = None,
        description: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.name = name
        self.endpoint = endpoint
        self.body = body
        self.response = response
        self.set = set or {}
        self.execute = execute
        self.description = description
        self.headers = headers or {}

    @classmethod
    def from_dict(cls, name: str, data: dict | None) -> "CommandDefinition":
        """Validate a raw ``commands`` entry and build a definition."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Command '{name}' must be a mapping")

        for key in cls._STR_FIELDS:
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigurationError(f"Command '{name}': '{key}' must be a string")

        endpoint = data.get("endpoint")
        if endpoint is not None and " " not in endpoint.strip():
            raise ConfigurationError(
                f"Command '{name}': endpoint must look like 'METHOD URL', got '{endpoint}'",
            )

        for key in ("set", "headers"):
            value = data.get(key)
            if value is not None and not isinstance(value, dict):
                raise ConfigurationError(f"Command '{name}': '{key}' must be a mapping")

        return cls(
            name,
            endpoint=endpoint.strip() if endpoint else None,
            body=data.get("body"),
            response=data.get("response"),
            set={str(k): str(v) for k, v in (data.get("set") or {}).items()},
            execute=data.get("execute"),
            description=data.get("description"),
            headers={str(k): str(v) for k, v in (data.get("headers") or {}).items()},
        )


class CommandSpec:
    """Structured form of a command name like ``get user <id> [fields]``."""

    def __init__(
        self,
        name: str,
        parent: str,
        subcommand: str | None = None,
        mandatory: list[str] | None = None,
        optional: list[str] | None = None,
    ):
        self.name = name
        self.parent = parent
        self.subcommand = subcommand
        self.mandatory = mandatory or []
        self.optional = optional or []

    @property
    def arguments(self) -> list[str]:
        return self.mandatory + self.optional

    def __repr__(self):
        return (
            f"CommandSpec({self.name!r}, parent={self.parent!r}, "
            f"subcommand={self.subcommand!r}, mandatory={self.mandatory!r}, "
            f"optional={self.optional!r})"
        )


class CommandNode:
    """A top-level command with its own definition and its subcommands."""

    def __init__(self, name: str):
        self.name = name
        self.spec: CommandSpec | None = None
        self.definition: CommandDefinition | None = None
        self.subcommands: dict[str, tuple[CommandSpec, CommandDefinition]] = {}
        self.shadowed: list[str] = []


def parse_command_name(name: str) -> CommandSpec:
    """Parse ``parent [words...] <mandatory>... [optional]...``.

    Plain words after the parent form the subcommand name (joined with
    ``-`` when there are several). Raises ConfigurationError when a
    mandatory argument follows an optional one or a name repeats.
    """
    tokens = name.split()
    if not tokens:
        raise ConfigurationError("Command name must not be empty")

    parent = tokens[0]
    words: list[str] = []
    mandatory: list[str] = []
    optional: list[str] = []

    for tok in tokens[1:]:
        m = _MANDATORY_RE.match(tok)
        if m:
            if optional:
                raise ConfigurationError(
                    f"Command '{name}': mandatory <{m.group(1)}> follows an optional argument",
                )
            mandatory.append(m.group(1).rstrip("?"))
            continue
        m = _OPTIONAL_RE.match(tok)
        if m:
            optional.append(m.group(1).rstrip("?"))
            continue
        words.append(tok)

    seen: set[str] = set()
    for arg in mandatory + optional:
        if not arg:
            raise ConfigurationError(f"Command '{name}': empty argument name")
        if arg in seen:
            raise ConfigurationError(f"Command '{name}': duplicate argument '{arg}'")
        seen.add(arg)

    return CommandSpec(
        name,
        parent,
        subcommand="-".join(words) if words else None,
        mandatory=mandatory,
        optional=optional,
    )


def build_command_tree(config: dict) -> dict[str, CommandNode]:
    """Group every configured command under its parent token.

    The first entry without subcommand words supplies the parent's
    arguments and definition; later ones are recorded in ``shadowed``.
    """
    commands = config.get("commands")
    if commands is None:
        raise ConfigurationError("Missing 'commands' section")
    if not isinstance(commands, dict):
        raise ConfigurationError("'commands' must be a mapping")

    tree: dict[str, CommandNode] = {}
    for name, raw in commands.items():
        spec = parse_command_name(str(name))
        definition = CommandDefinition.from_dict(str(name), raw)
        node = tree.setdefault(spec.parent, CommandNode(spec.parent))

        if spec.subcommand is None:
            if node.spec is None:
                node.spec = spec
                node.definition = definition
            else:
                node.shadowed.append(spec.name)
        elif spec.subcommand in node.subcommands:
            node.shadowed.append(spec.name)
        else:
            node.subcommands[spec.subcommand] = (spec, definition)

    return tree
