"""yamlcmd CLI - turn a YAML command document into a command-line program."""

import json

import click

from yamlcmd.core import (
    CommandDefinition,
    CommandNode,
    CommandSpec,
    ConfigurationError,
    build_command_tree,
    load_config,
    resolve_config_path,
)
from yamlcmd.runner import run_command
from yamlcmd.session import SessionStore, SessionStoreError

TOOL_HELP = """\
yamlcmd — CLI generated from a YAML command document.

Every entry under `commands` in the config becomes a command. Commands
call HTTP endpoints and/or run shell commands, with $variables filled in
from the config, the saved session, and the command-line arguments.

\b
CONFIG FILE
───────────
  Resolution order:
    1. -c/--config flag or YAMLCMD_CONFIG
    2. yamlcmd.yaml, .yamlcmd.yaml (or .yml), config.yaml in CWD
    3. ~/.yamlcmd/config.yaml

\b
  variables:
    base: https://api.example.com
  headers:
    Authorization: Bearer $token
  commands:
    login <user> <pass>:
      endpoint: POST $base/login
      body: {username: $user, password: $pass}
      set:
        token: $data.access_token
      response: Logged in as $data.user.name
    get <id>:
      endpoint: GET $base/items/$id
      response: "$data.id: $data.title"
    get list:
      endpoint: GET $base/items
    hello [name]:
      response: Hello $name

\b
COMMAND NAMES
─────────────
  parent [subcommand words] <mandatory>... [optional]...

\b
VARIABLES
─────────
  Precedence (last wins): config variables, saved session, arguments.
  Values captured by `set` are saved to ~/.yamlcmd_session.json and
  reused by later invocations.
"""

_TREE_KEY = "yamlcmd.tree"
_CONFIG_KEY = "yamlcmd.config"


class CommandGroup(click.Group):
    """A parent command that has its own arguments and subcommands.

    When the first argument names a subcommand the parent's positional
    arguments are not consumed, so ``get list`` and ``get 42`` can both
    be dispatched from the same ``get``.
    """

    def _subcommand_key(self):
        return f"yamlcmd.subcommand.{self.name}"

    def parse_args(self, ctx, args):
        ctx.meta[self._subcommand_key()] = bool(args) and args[0] in self.commands
        return super().parse_args(ctx, args)

    def get_params(self, ctx):
        params = super().get_params(ctx)
        if ctx.meta.get(self._subcommand_key()):
            return [p for p in params if not isinstance(p, click.Argument)]
        return params


class ConfigGroup(click.Group):
    """Root group whose commands come from the config document."""

    def _tree(self, ctx) -> dict[str, CommandNode]:
        root = ctx.find_root()
        if _TREE_KEY not in root.meta:
            config_path = resolve_config_path(root.params.get("config_file"))
            try:
                config = load_config(config_path)
                tree = build_command_tree(config)
            except ConfigurationError as e:
                raise click.ClickException(str(e)) from e
            for node in tree.values():
                for name in node.shadowed:
                    click.echo(
                        f"WARNING: '{name}' duplicates an earlier definition "
                        f"under '{node.name}' and is ignored.",
                        err=True,
                    )
            root.meta[_CONFIG_KEY] = config
            root.meta[_TREE_KEY] = tree
        return root.meta[_TREE_KEY]

    def list_commands(self, ctx):
        root = ctx.find_root()
        if _TREE_KEY not in root.meta:
            # help stays readable before any config exists
            if ctx.resilient_parsing:
                return []
            if resolve_config_path(root.params.get("config_file")) is None:
                return []
        return list(self._tree(ctx))

    def get_command(self, ctx, cmd_name):
        node = self._tree(ctx).get(cmd_name)
        if node is None:
            return None
        return _build_node_command(node)


# ── Registration ─────────────────────────────────────────────────────────


def _build_arguments(spec: CommandSpec | None):
    """Return click arguments plus a map from click name to variable name."""
    if spec is None:
        return [], {}
    params = []
    names = {}
    for arg in spec.mandatory:
        param = click.Argument([arg], required=True)
        params.append(param)
        names[param.name] = arg
    for arg in spec.optional:
        param = click.Argument([arg], required=False)
        params.append(param)
        names[param.name] = arg
    return params, names


def _make_callback(definition: CommandDefinition | None, names: dict[str, str]):
    @click.pass_context
    def callback(ctx, **kwargs):
        if ctx.invoked_subcommand is not None or definition is None:
            return
        arguments = {
            names[key]: value for key, value in kwargs.items() if value is not None
        }
        root = ctx.find_root()
        try:
            status = run_command(
                definition,
                arguments,
                root.meta[_CONFIG_KEY],
                ctx.obj["store"],
                verbose=ctx.obj["verbose"],
            )
        except SessionStoreError as e:
            raise click.ClickException(str(e)) from e
        ctx.exit(status)

    return callback


def _help_text(definition: CommandDefinition | None, spec: CommandSpec | None):
    if definition is None or spec is None:
        return None
    return definition.description or f"Execute {spec.name}"


def _build_command(spec: CommandSpec, definition: CommandDefinition, name: str):
    params, names = _build_arguments(spec)
    return click.Command(
        name,
        params=params,
        callback=_make_callback(definition, names),
        help=_help_text(definition, spec),
    )


def _build_node_command(node: CommandNode) -> click.Command:
    """Build the click command (or group) for one parent token."""
    if not node.subcommands:
        return _build_command(node.spec, node.definition, node.name)

    params, names = _build_arguments(node.spec)
    group = CommandGroup(
        node.name,
        params=params,
        callback=_make_callback(node.definition, names),
        help=_help_text(node.definition, node.spec),
        invoke_without_command=node.definition is not None,
    )
    for sub_name, (spec, definition) in node.subcommands.items():
        group.add_command(_build_command(spec, definition, sub_name))
    return group


# ── Entry point ──────────────────────────────────────────────────────────


@click.group(
    cls=ConfigGroup,
    help=TOOL_HELP,
    invoke_without_command=True,
    context_settings={"max_content_width": 88},
)
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    envvar="YAMLCMD_CONFIG",
    is_eager=True,
    help="Config file path. Default: yamlcmd.yaml or config.yaml in CWD, "
    "then ~/.yamlcmd/config.yaml.",
)
@click.option(
    "--session-file",
    default=None,
    envvar="YAMLCMD_SESSION",
    help="Session file path. Default: ~/.yamlcmd_session.json.",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Print request line, status and timing to stderr.",
)
@click.option(
    "--list",
    "show_list",
    is_flag=True,
    default=False,
    help="List configured commands.",
)
@click.option(
    "--show-session",
    is_flag=True,
    default=False,
    help="Print saved session variables as JSON.",
)
@click.option(
    "--clear-session",
    is_flag=True,
    default=False,
    help="Delete saved session variables.",
)
@click.pass_context
def main(ctx, config_file, session_file, verbose, show_list, show_session, clear_session):
    """Run a command from the YAML command document."""
    store = SessionStore(session_file)
    ctx.obj = {"store": store, "verbose": verbose}

    if ctx.invoked_subcommand is not None:
        return

    if clear_session:
        _cmd_clear_session(store)
        return

    if show_session:
        _cmd_show_session(store)
        return

    if show_list:
        _cmd_list(ctx)
        return

    # Nothing matched, show help
    click.echo(ctx.get_help())
    ctx.exit(1)


# ── Built-in options ─────────────────────────────────────────────────────


def _cmd_clear_session(store):
    if store.clear():
        click.echo(f"Session cleared: {store.path}")
    else:
        click.echo("No saved session.")


def _cmd_show_session(store):
    try:
        data = store.load()
    except SessionStoreError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps(data, indent=2))


def _cmd_list(ctx):
    tree = main._tree(ctx)
    if not tree:
        click.echo("No commands configured.")
        return
    click.echo(f"{len(tree)} commands:\n")
    for node in tree.values():
        if node.spec is not None:
            _echo_entry(node.spec, node.definition, indent="  ")
        else:
            click.echo(f"  {node.name}")
        for spec, definition in node.subcommands.values():
            _echo_entry(spec, definition, indent="    ")
        click.echo()


def _echo_entry(spec, definition, indent):
    desc = definition.description or ""
    label = f"{indent}{spec.name} — {desc}" if desc else f"{indent}{spec.name}"
    click.echo(label)
    detail_parts = []
    if definition.endpoint:
        detail_parts.append(definition.endpoint)
    if definition.execute:
        detail_parts.append(f"exec: {definition.execute}")
    if definition.set:
        detail_parts.append(f"sets: {', '.join(definition.set)}")
    if detail_parts:
        click.echo(f"{indent}  {' | '.join(detail_parts)}")
