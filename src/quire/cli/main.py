"""
Main CLI entry point for Quire.

Provides the command-line interface using Click. Commands load the
template store from the configured root (or --root) and inspect,
render, or check it.

Exit codes:
    0 - success
    1 - template not found, or check found problems
    2 - the store or the config could not be loaded
"""

import json as _json
import logging as _logging
import typing as _typing

import click as _click
import pydantic as _pydantic
import rich.console as _rich_console
import rich.logging as _rich_logging

import quire
import quire.config as config
import quire.constants as constants
import quire.templates as templates

_logger = _logging.getLogger(__name__)

# Custom Click context settings for better help formatting
CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}

EXIT_PROBLEMS = 1
EXIT_LOAD_FAILED = 2

_KIND_OPTION = _click.Choice(list(constants.TEMPLATE_KINDS))


def _configure_logging(level: str) -> None:
    """Route log records to stderr through rich."""
    handler = _rich_logging.RichHandler(
        console=_rich_console.Console(stderr=True),
        show_path=False,
        show_time=False,
    )
    _logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def _load_store(ctx: _click.Context) -> templates.TemplateStore:
    """Load the store for a command, exiting with EXIT_LOAD_FAILED on fatal errors."""
    settings: config.Settings = ctx.obj["settings"]
    try:
        return templates.TemplateStore.from_settings(settings)
    except (templates.TemplateRootNotFoundError, templates.DuplicateNameError) as e:
        _click.echo(f"Error: {e}", err=True)
        raise SystemExit(EXIT_LOAD_FAILED) from None


def _require_template(
    store: templates.TemplateStore,
    name: str,
    kind: str | None,
    json_output: bool = False,
) -> templates.Template:
    try:
        return store.require(name, kind)
    except templates.TemplateNotFoundError as e:
        if json_output:
            _click.echo(_json.dumps({"error": str(e)}))
        else:
            _click.echo(f"Error: {e}", err=True)
        raise SystemExit(EXIT_PROBLEMS) from None


def _parse_assignments(pairs: tuple[str, ...]) -> dict[str, str]:
    values: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise _click.BadParameter(f"expected KEY=VALUE, got '{pair}'", param_hint="--set")
        values[key.strip()] = value
    return values


@_click.group(context_settings=CONTEXT_SETTINGS)
@_click.version_option(quire.__version__, "-v", "--version", prog_name="quire")
@_click.option(
    "--root",
    type=_click.Path(file_okay=False, path_type=str),
    default=None,
    help="Template root directory (default: settings root or current directory)",
)
@_click.option("--verbose", is_flag=True, help="Enable debug logging")
@_click.pass_context
def cli(ctx: _click.Context, root: str | None, verbose: bool) -> None:
    """Quire - load, render and check slash command and skill templates."""
    try:
        settings = config.Settings()
    except (config.ConfigFileError, _pydantic.ValidationError) as e:
        _click.echo(f"Error: {e}", err=True)
        raise SystemExit(EXIT_LOAD_FAILED) from None

    if root is not None:
        settings.root = root

    _configure_logging("debug" if verbose else settings.logging.level)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


# =============================================================================
# Inspection Commands
# =============================================================================


@cli.command(name="list")
@_click.option("--kind", type=_KIND_OPTION, default=None, help="Only list one collection")
@_click.option("--json", "json_output", is_flag=True, help="JSON output")
@_click.pass_context
def list_cmd(ctx: _click.Context, kind: str | None, json_output: bool) -> None:
    """List all templates."""
    store = _load_store(ctx)
    items = store.templates(kind)

    if json_output:
        _click.echo(_json.dumps([t.to_dict() for t in items], indent=2))
        return

    if not items:
        _click.echo(f"No templates found under {store.root}")
        return

    _click.echo(f"Templates in {store.root} ({len(items)}):")
    _click.echo(f"{'Name':<30} {'Kind':<8} {'Description'}")
    _click.echo("-" * 70)
    for t in items:
        _click.echo(f"{t.name:<30} {t.kind:<8} {t.description}")

    if store.issues:
        _click.echo()
        _click.echo(f"Skipped {len(store.issues)} invalid file(s); run 'quire check' for details.")


@cli.command(name="show")
@_click.argument("name")
@_click.option("--kind", type=_KIND_OPTION, default=None, help="Collection to look in")
@_click.option("--body", is_flag=True, help="Show full template body")
@_click.option("--json", "json_output", is_flag=True, help="JSON output")
@_click.pass_context
def show_cmd(
    ctx: _click.Context,
    name: str,
    kind: str | None,
    body: bool,
    json_output: bool,
) -> None:
    """Show details for a template."""
    store = _load_store(ctx)
    template = _require_template(store, name, kind, json_output)

    if json_output:
        data = template.to_dict()
        if body:
            data["body"] = template.body
        _click.echo(_json.dumps(data, indent=2))
        return

    _click.echo(f"{template.kind.capitalize()}: {template.name}")
    _click.echo(f"  Description: {template.description}")
    _click.echo(f"  Path: {template.path}")
    _click.echo(f"  Body lines: {template.body_line_count}")
    if isinstance(template, templates.Skill):
        if template.author:
            _click.echo(f"  Author: {template.author}")
        if template.version:
            _click.echo(f"  Version: {template.version}")

    if template.placeholders:
        _click.echo()
        _click.echo("Placeholders:")
        for p in template.placeholders:
            _click.echo(f"  - {p.raw} ({p.kind})")

    if template.references:
        _click.echo()
        _click.echo("References:")
        for ref in template.references:
            _click.echo(f"  - {ref}")

    if body:
        _click.echo()
        _click.echo("--- Body ---")
        _click.echo(template.body)


# =============================================================================
# Rendering
# =============================================================================


@cli.command(name="render")
@_click.argument("name")
@_click.argument("args", nargs=-1)
@_click.option("--kind", type=_KIND_OPTION, default=None, help="Collection to look in")
@_click.option(
    "--set",
    "assignments",
    multiple=True,
    metavar="KEY=VALUE",
    help="Placeholder value (repeatable); overrides values from ARGS",
)
@_click.pass_context
def render_cmd(
    ctx: _click.Context,
    name: str,
    args: tuple[str, ...],
    kind: str | None,
    assignments: tuple[str, ...],
) -> None:
    """Print a template with its placeholders filled in.

    ARGS fill $ARGUMENTS and $1..$9. Placeholders without a value are
    printed verbatim.
    """
    settings: config.Settings = ctx.obj["settings"]
    values = _parse_assignments(assignments)
    store = _load_store(ctx)
    template = _require_template(store, name, kind)

    if settings.behavior.strict_references:
        resolution = templates.resolve_references(template, store)
        if not resolution.ok:
            for broken in resolution.broken:
                _click.echo(f"Error: {broken}", err=True)
            raise SystemExit(EXIT_PROBLEMS)

    merged: dict[str, str] = {}
    if args:
        merged.update(templates.argument_values(args))
    merged.update(values)

    for p in templates.unresolved(template, merged):
        _logger.info("Leaving %s unresolved", p.raw)

    _click.echo(templates.interpolate(template, merged))


# =============================================================================
# References
# =============================================================================


@cli.command(name="refs")
@_click.argument("name")
@_click.option("--kind", type=_KIND_OPTION, default=None, help="Collection to look in")
@_click.option("--transitive", is_flag=True, help="Follow references recursively")
@_click.option("--json", "json_output", is_flag=True, help="JSON output")
@_click.pass_context
def refs_cmd(
    ctx: _click.Context,
    name: str,
    kind: str | None,
    transitive: bool,
    json_output: bool,
) -> None:
    """Show the templates a template references."""
    store = _load_store(ctx)
    template = _require_template(store, name, kind, json_output)
    resolution = templates.resolve_references(template, store)
    reachable = templates.walk_references(template, store) if transitive else None

    if json_output:
        data = resolution.to_dict()
        if reachable is not None:
            data["reachable"] = [{"name": t.name, "kind": t.kind} for t in reachable]
        _click.echo(_json.dumps(data, indent=2))
        return

    if not template.references:
        _click.echo(f"{template.name} has no references.")
        return

    for target in resolution.resolved:
        _click.echo(f"  ✓ {target.name} ({target.kind})")
    for broken in resolution.broken:
        _click.echo(f"  ✗ {broken.name} (missing)")

    if reachable is not None:
        _click.echo()
        _click.echo(f"Reachable ({len(reachable)}):")
        for target in reachable:
            _click.echo(f"  - {target.name} ({target.kind})")


@cli.command(name="check")
@_click.option("--json", "json_output", is_flag=True, help="JSON output")
@_click.pass_context
def check_cmd(ctx: _click.Context, json_output: bool) -> None:
    """Check the template tree for invalid files and broken references."""
    store = _load_store(ctx)
    broken = templates.find_broken_references(store)
    issues = store.issues

    if json_output:
        _click.echo(_json.dumps({
            "root": str(store.root),
            "templates": len(store),
            "issues": [issue.to_dict() for issue in issues],
            "broken_references": [b.to_dict() for b in broken],
        }, indent=2))
    else:
        _click.echo(f"Checked {len(store)} templates in {store.root}")
        for issue in issues:
            _click.echo(f"  ✗ {issue}")
        for b in broken:
            _click.echo(f"  ✗ {b}")
        if not issues and not broken:
            _click.echo("  ✓ No problems found")

    if issues or broken:
        raise SystemExit(EXIT_PROBLEMS)


# =============================================================================
# Config Commands
# =============================================================================


@cli.group(name="config")
def config_group() -> None:
    """Configuration commands."""
    pass


@config_group.command(name="show")
@_click.option("--json", "json_output", is_flag=True, help="JSON output")
@_click.pass_context
def config_show(ctx: _click.Context, json_output: bool) -> None:
    """Show the effective configuration."""
    settings: config.Settings = ctx.obj["settings"]
    data = settings.to_dict()

    if json_output:
        _click.echo(_json.dumps(data, indent=2))
        return

    _click.echo(f"Root: {data['root']}")
    _click.echo(f"Config Dir: {data['config_dir']}")
    for section in ("layout", "behavior", "logging"):
        _click.echo(f"{section}:")
        for key, value in data[section].items():
            _click.echo(f"  {key}: {value}")
    for path, value in data["unknown_fields"].items():
        _click.echo(f"⚠ Unknown config key {path} = {value!r}")


def main() -> None:
    """Main entry point with correct program name."""
    cli(prog_name="quire")


if __name__ == "__main__":
    main()
