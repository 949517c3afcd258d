"""Command line interface for assetroute."""

from __future__ import annotations

import asyncio
import difflib
from pathlib import Path
from typing import Any, List, Optional, Sequence

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree

from assetroute.classification import ClassificationEngine
from assetroute.classification.models import AssetCategory, ClassificationResult
from assetroute.config import (
    AssetRouteConfig,
    ConfigError,
    ConfigManager,
    FolderStructurePreset,
    MusicMode,
    assign_nested,
    resolve_with_precedence,
)
from assetroute.logging_config import configure_logging
from assetroute.queue import (
    ConflictResolution,
    DecisionKind,
    ProcessingQueue,
    ProcessOutcome,
    QueueError,
    RootResolution,
)
from assetroute.routing import PathResolver, ProjectReference, RoutingError
from assetroute.state import HistoryRecord, HistoryRepository, StateError
from assetroute.templates import (
    CustomFolderTemplate,
    DeployConfig,
    FolderAnalysisClient,
    FolderNode,
    TemplateError,
    TemplateStore,
    deploy,
    scan_folder_tree,
)

console = Console()

_CATEGORY_CHOICES = [category.value for category in AssetCategory if category.is_known]


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Raises:
        SystemExit: When JSON output is active.
        click.ClickException: Otherwise.
    """
    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)
    raise click.ClickException(message) from original


def _load_config(*, verbose: bool = False) -> tuple[ConfigManager, AssetRouteConfig]:
    manager = ConfigManager()
    try:
        config = manager.load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_logging(config.logging, verbose=verbose)
    return manager, config


def _build_engine(config: AssetRouteConfig) -> ClassificationEngine:
    folder = config.routing.youtube_4k_folder
    return ClassificationEngine(
        config.classification,
        youtube_4k_folder=Path(folder) if folder else None,
    )


def _build_resolver(config: AssetRouteConfig) -> PathResolver:
    template = None
    if config.routing.folder_structure_preset is FolderStructurePreset.CUSTOM:
        template = TemplateStore(Path(config.routing.template_path)).load()
    return PathResolver(config.routing, template=template)


def _project(project_file: str, root: str) -> ProjectReference:
    return ProjectReference.from_project_file(Path(project_file), Path(root))


def _parse_category(value: Optional[str]) -> Optional[AssetCategory]:
    if value is None:
        return None
    category = AssetCategory.parse(value)
    if category is None or not category.is_known:
        raise click.BadParameter(f"Unknown category '{value}'.", param_hint="--category")
    return category


def _result_payload(path: Path, result: ClassificationResult) -> dict[str, Any]:
    payload = result.model_dump(mode="json")
    payload["path"] = str(path)
    return payload


def _render_tree(node: FolderNode, branch: Tree | None = None) -> Tree:
    tree = branch or Tree(f"[bold]{node.name}/[/bold]")
    for child in node.children:
        _render_tree(child, tree.add(f"{child.name}/"))
    return tree


def _format_history_record(record: HistoryRecord) -> list[str]:
    return [
        record.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
        record.filename,
        record.category,
        record.status.value,
        record.destination_path or record.detail or "",
    ]


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="assetroute")
def cli() -> None:
    """assetroute files downloaded creative assets into production projects."""


@cli.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option("--origin-url", type=str, help="Page or download URL of the asset.")
@click.option("--full-detail", is_flag=True, help="Also recover genre/mood for certain categories.")
@click.option("--json", "json_output", is_flag=True, help="Emit the classification as JSON.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def classify(path: Path, origin_url: str | None, full_detail: bool, json_output: bool, verbose: bool) -> None:
    """Classify PATH and print its category and sub-category."""
    _, config = _load_config(verbose=verbose)
    engine = _build_engine(config)
    result = asyncio.run(engine.classify(path, origin_url=origin_url, full_detail=full_detail))

    if json_output:
        console.print_json(data=_result_payload(path, result))
        return

    table = Table(title=path.name, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Category", result.category.value)
    for label, value in (
        ("Genre", result.genre),
        ("Mood", result.mood),
        ("SFX category", result.sfx_category),
        ("Source", result.source.value),
        ("Strategy", result.strategy),
        ("Confidence", result.confidence.value if result.confidence else None),
        ("Error", result.error),
    ):
        if value:
            table.add_row(label, value)
    console.print(table)


@cli.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option("--project-file", required=True, type=click.Path(exists=True, dir_okay=False), help="Primary project file.")
@click.option("--root", required=True, type=click.Path(exists=True, file_okay=False), help="Configured project root.")
@click.option("--category", type=click.Choice(_CATEGORY_CHOICES, case_sensitive=False), help="Skip classification.")
@click.option("--subfolder", type=str, help="Mood/genre or SFX category sub-folder.")
@click.option("--json", "json_output", is_flag=True, help="Emit the destination as JSON.")
def route(
    path: Path,
    project_file: str,
    root: str,
    category: str | None,
    subfolder: str | None,
    json_output: bool,
) -> None:
    """Resolve (and create) the destination folder for PATH without moving it."""
    _, config = _load_config()
    project = _project(project_file, root)
    chosen = _parse_category(category)
    source = None
    if chosen is None or (chosen is AssetCategory.MUSIC and subfolder is None):
        result = asyncio.run(_build_engine(config).classify(path))
        source = result.source
        chosen = chosen or result.category
        if subfolder is None:
            if chosen is AssetCategory.MUSIC:
                subfolder = result.mood if config.routing.music_mode is MusicMode.MOOD else result.genre
            elif chosen is AssetCategory.SFX:
                subfolder = result.sfx_category

    try:
        resolver = _build_resolver(config)
        destination = resolver.resolve_target(
            project, chosen, subfolder, config.routing.music_mode, source
        )
    except (RoutingError, TemplateError, OSError) as exc:
        _handle_cli_error(str(exc), code="route_failed", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(
            data={"path": str(path), "category": chosen.value, "destination": str(destination)}
        )
        return
    console.print(f"[green]{path.name}[/green] ({chosen.value}) -> {destination}")


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--project-file", required=True, type=click.Path(exists=True, dir_okay=False), help="Primary project file.")
@click.option("--root", required=True, type=click.Path(exists=True, file_okay=False), help="Configured project root.")
@click.option("--category", type=click.Choice(_CATEGORY_CHOICES, case_sensitive=False), help="Skip classification.")
@click.option("--yes", "assume_yes", is_flag=True, help="Approve unknown roots once and version conflicts.")
@click.option("--json", "json_output", is_flag=True, help="Emit results as JSON.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option("--quiet", is_flag=True, help="Only report failed items.")
@click.pass_context
def process(
    ctx: click.Context,
    paths: Sequence[Path],
    project_file: str,
    root: str,
    category: str | None,
    assume_yes: bool,
    json_output: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Classify, route and move PATHS into a project."""
    manager, config = _load_config(verbose=verbose)
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    try:
        queue = ProcessingQueue(
            config,
            _build_engine(config),
            _build_resolver(config),
            remember_root=manager.add_project_root,
        )
        outcomes = asyncio.run(
            _run_queue(
                queue,
                list(paths),
                _project(project_file, root),
                _parse_category(category),
                assume_yes=assume_yes or json_output,
            )
        )
    except (QueueError, StateError, TemplateError, ConfigError) as exc:
        _handle_cli_error(str(exc), code="process_failed", json_output=json_output, original=exc)
        return

    rows = []
    for outcome in outcomes:
        item = queue.get(outcome.item_id)
        rows.append(
            {
                "path": str(item.source_path),
                "category": item.category.value,
                "status": outcome.status.value,
                "destination": str(item.target_path) if item.target_path else None,
                "error": item.error,
            }
        )

    if json_output:
        console.print_json(data={"items": rows})
        return

    if quiet_enabled:
        for row in rows:
            if row["status"] == "failed":
                console.print(f"[red]{Path(row['path']).name}: {row['error']}[/red]")
        return

    table = Table(title="Processed assets")
    for column in ("File", "Category", "Status", "Destination"):
        table.add_column(column)
    for row in rows:
        style = {"completed": "green", "failed": "red"}.get(row["status"], "yellow")
        table.add_row(
            Path(row["path"]).name,
            row["category"],
            f"[{style}]{row['status']}[/{style}]",
            row["destination"] or row["error"] or "",
        )
    console.print(table)


async def _run_queue(
    queue: ProcessingQueue,
    paths: List[Path],
    project: ProjectReference,
    category: AssetCategory | None,
    *,
    assume_yes: bool,
) -> List[ProcessOutcome]:
    for path in paths:
        item = await queue.enqueue(path, project=project, category=category)
        if item.needs_manual_classification and not assume_yes:
            answer = click.prompt(
                f"Category for {path.name}",
                type=click.Choice(_CATEGORY_CHOICES, case_sensitive=False),
            )
            await queue.update(item.id, category=AssetCategory.parse(answer))

    finished: List[ProcessOutcome] = []
    waiting: List[ProcessOutcome] = []
    for outcome in await queue.process_all():
        (waiting if outcome.is_pending else finished).append(outcome)

    while waiting:
        outcome = waiting.pop(0)
        decision = outcome.decision
        if decision is None:
            continue
        name = queue.get(outcome.item_id).source_path.name
        if decision.kind is DecisionKind.UNKNOWN_ROOT:
            root_choice = RootResolution.PROCEED_ONCE
            if not assume_yes:
                root_choice = RootResolution(
                    click.prompt(
                        f"{decision.path} is not a configured project root ({name})",
                        type=click.Choice([choice.value for choice in RootResolution]),
                        default=RootResolution.PROCEED_AND_REMEMBER.value,
                    )
                )
            following = await queue.resolve_unknown_root(outcome.item_id, root_choice)
        else:
            conflict_choice = ConflictResolution.VERSION
            if not assume_yes:
                conflict_choice = ConflictResolution(
                    click.prompt(
                        f"{decision.path} already exists",
                        type=click.Choice([choice.value for choice in ConflictResolution]),
                        default=ConflictResolution.VERSION.value,
                    )
                )
            following = await queue.resolve_conflict(outcome.item_id, conflict_choice)
        (waiting if following.is_pending else finished).append(following)
    return finished


@cli.group()
def template() -> None:
    """Scan, analyze, deploy and inspect folder templates."""


@template.command("scan")
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--depth", type=int, default=5, show_default=True, help="Maximum scan depth.")
@click.option("--save", is_flag=True, help="Store the tree as the custom template without analysis.")
def template_scan(directory: Path, depth: int, save: bool) -> None:
    """Print the folder tree of DIRECTORY."""
    _, config = _load_config()
    tree = scan_folder_tree(directory, max_depth=depth)
    console.print(_render_tree(tree))
    if save:
        store = TemplateStore(Path(config.routing.template_path))
        try:
            store.save(CustomFolderTemplate(source_path=str(directory.resolve()), folder_tree=tree))
        except TemplateError as exc:
            raise click.ClickException(str(exc)) from exc
        console.print(f"[green]Saved template to {store.path}.[/green]")


@template.command("analyze")
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path), required=False)
@click.option("--json", "json_output", is_flag=True, help="Emit the mapping as JSON.")
def template_analyze(directory: Path | None, json_output: bool) -> None:
    """Analyze DIRECTORY (or the stored template) and save the category mapping."""
    _, config = _load_config()
    store = TemplateStore(Path(config.routing.template_path))
    client = FolderAnalysisClient(config.templates)
    try:
        if directory is None:
            saved = store.reanalyze(client, config.templates.device_id)
        else:
            tree = scan_folder_tree(directory)
            mapping = client.analyze_structure(tree, config.templates.device_id)
            saved = CustomFolderTemplate(
                source_path=str(directory.resolve()), folder_tree=tree, mapping=mapping
            )
            store.save(saved)
    except TemplateError as exc:
        _handle_cli_error(str(exc), code="analysis_failed", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(data=saved.mapping.model_dump(mode="json", by_alias=True))
        return
    table = Table(title="Category mapping")
    table.add_column("Category")
    table.add_column("Path")
    for category, relative in saved.mapping.paths.items():
        table.add_row(category.value, relative or "[dim]unmapped[/dim]")
    console.print(table)
    if saved.mapping.description:
        console.print(saved.mapping.description)


@template.command("deploy")
@click.argument("target", type=click.Path(path_type=Path))
@click.option(
    "--preset",
    type=click.Choice([preset.value for preset in FolderStructurePreset]),
    help="Override the configured folder structure preset.",
)
def template_deploy(target: Path, preset: str | None) -> None:
    """Create the preset's folder skeleton inside TARGET."""
    _, config = _load_config()
    active = FolderStructurePreset(preset) if preset else config.routing.folder_structure_preset
    try:
        stored = TemplateStore(Path(config.routing.template_path)).load()
        created = deploy(
            target,
            DeployConfig(folder_structure_preset=active, custom_folder_template=stored),
        )
    except TemplateError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[green]Created {created} folder(s) in {target}.[/green]")


@template.command("show")
def template_show() -> None:
    """Show the stored custom template."""
    _, config = _load_config()
    try:
        stored = TemplateStore(Path(config.routing.template_path)).load()
    except TemplateError as exc:
        raise click.ClickException(str(exc)) from exc
    if stored is None:
        console.print("[yellow]No custom folder template saved.[/yellow]")
        return
    console.print(f"Source: {stored.source_path}")
    console.print(_render_tree(stored.folder_tree))
    for category, relative in stored.mapping.paths.items():
        if relative:
            console.print(f"  {category.value}: {relative}")


@template.command("clear")
def template_clear() -> None:
    """Delete the stored custom template."""
    _, config = _load_config()
    if TemplateStore(Path(config.routing.template_path)).clear():
        console.print("[green]Custom folder template removed.[/green]")
    else:
        console.print("[yellow]No custom folder template saved.[/yellow]")


@cli.command()
@click.option("--limit", type=int, help="Number of records to show.")
@click.option("--today", "today_only", is_flag=True, help="Only show records from today.")
@click.option("--json", "json_output", is_flag=True, help="Emit records as JSON.")
def history(limit: int | None, today_only: bool, json_output: bool) -> None:
    """Show processing history, newest first."""
    _, config = _load_config()
    try:
        repository = HistoryRepository(
            Path(config.queue.history_path), config.queue.history_max_records
        )
    except StateError as exc:
        _handle_cli_error(str(exc), code="history_invalid", json_output=json_output, original=exc)
        return

    records = repository.today() if today_only else list(reversed(repository.records()))
    records = records[: limit or config.cli.history_limit]

    if json_output:
        console.print_json(data={"records": [record.model_dump(mode="json") for record in records]})
        return
    if not records:
        console.print("[yellow]No history recorded.[/yellow]")
        return
    table = Table(title="Processing history")
    for column in ("Time", "File", "Category", "Status", "Destination"):
        table.add_column(column)
    for record in records:
        table.add_row(*_format_history_record(record))
    console.print(table)


@cli.group()
def config() -> None:
    """Manage assetroute configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="json"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


def _config_lines(manager: ConfigManager) -> list[str]:
    return [line for line in manager.read_text().splitlines() if not line.startswith("# Last updated")]


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""
    manager = ConfigManager()
    manager.ensure_exists()

    before = _config_lines(manager)
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'routing.music_mode'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=AssetRouteConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = _config_lines(manager)
    diff = list(
        difflib.unified_diff(
            before, after, fromfile="config.yaml (before)", tofile="config.yaml (after)", lineterm=""
        )
    )
    if not diff:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return
    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session."""
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")
    if edited is None or edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=AssetRouteConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
