"""CLI entry point for Memoria."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, NoReturn

import typer
import yaml
from rich import print as rprint
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree

from memoria_core.config import MemoriaConfig, load_config
from memoria_core.config.loader import DEFAULT_CONFIG_TEMPLATE
from memoria_core.errors import LedgerError
from memoria_core.ledger import LearningLedger
from memoria_core.logsetup import configure_logging
from memoria_core.merkle import ZERO_HASH, build_tree

app = typer.Typer(
    name="memoria",
    help="Learning-history ledger: verifiable per-entity Merkle trees.",
)

config_app = typer.Typer(help="Manage Memoria configuration.")
app.add_typer(config_app, name="config")

# Global state
_config: MemoriaConfig | None = None

CallerOption = Annotated[
    str | None,
    typer.Option("--as", envvar="MEMORIA_CALLER", help="Caller identity (defaults to the configured admin)"),
]


def _get_config() -> MemoriaConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to memoria.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(code=2) from e
    configure_logging(_config.log_level, _config.log_format)


def _ledger() -> LearningLedger:
    return LearningLedger.from_config(_get_config())


def _caller(caller: str | None) -> str:
    return caller if caller is not None else _get_config().ledger.admin


def _fail(err: LedgerError) -> NoReturn:
    rprint(f"[red]Error:[/red] {err}")
    raise typer.Exit(code=1)


def _load_tree_file(path: Path) -> dict:
    """Read a node batch file as written by ``memoria build``."""
    if not path.is_file():
        raise typer.BadParameter(f"{path} does not exist")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise typer.BadParameter(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict) or not isinstance(raw.get("nodes", []), list):
        raise typer.BadParameter(f"{path} must be a mapping with a 'nodes' list")
    return raw


def _short(h: str) -> str:
    return f"{h[:10]}…{h[-6:]}" if len(h) > 18 else h


# ---------------------------------------------------------------------------
# Write commands
# ---------------------------------------------------------------------------


@app.command()
def build(
    files: Annotated[list[Path], typer.Argument(help="Payload files, one leaf each")],
    out: Annotated[Path, typer.Option("--out", "-o", help="Where to write the node batch")] = Path(
        "tree.yaml"
    ),
) -> None:
    """Build a node batch, root and per-leaf proofs from payload files."""
    missing = [str(f) for f in files if not f.is_file()]
    if missing:
        rprint(f"[red]Missing file(s):[/red] {', '.join(missing)}")
        raise typer.Exit(code=1)
    try:
        built = build_tree([f.read_bytes() for f in files])
    except LedgerError as e:
        _fail(e)
    doc = {
        "root": built.root,
        "nodes": [n.model_dump(mode="json", exclude={"inserted_at"}) for n in built.nodes],
        "proofs": built.proofs,
    }
    out.write_text(yaml.safe_dump(doc, sort_keys=False))
    rprint(f"[green]Built[/green] {len(built.nodes)} nodes, depth {built.depth} -> {out}")
    rprint(f"[dim]Root:[/dim] {built.root}")


@app.command()
def commit(
    entity: Annotated[str, typer.Argument(help="Entity identifier")],
    root: Annotated[str | None, typer.Option("--root", "-r", help="New root hash")] = None,
    nodes: Annotated[
        Path | None, typer.Option("--nodes", "-n", help="Node batch file (replaces the tree)")
    ] = None,
    proof: Annotated[str, typer.Option("--proof", help="Opaque proof blob (text or 0x hex)")] = "",
    reason: Annotated[str, typer.Option("--reason", help="Why the root changed")] = "",
    caller: CallerOption = None,
) -> None:
    """Commit a new root, optionally replacing the node set with it."""
    batch = _load_tree_file(nodes) if nodes is not None else None
    new_root = root or (batch or {}).get("root")
    if not new_root:
        raise typer.BadParameter("a root is required (--root or a 'root' key in --nodes)")

    ledger = _ledger()
    try:
        if batch is not None:
            update = ledger.commit_root_with_nodes(
                _caller(caller), entity, new_root, batch.get("nodes", []), proof, reason
            )
        else:
            update = ledger.commit_root(_caller(caller), entity, new_root, proof, reason)
    except LedgerError as e:
        _fail(e)
    count = ledger.get_update_count(entity)
    rprint(f"[green]Committed[/green] {update.new_root} for [cyan]{entity}[/cyan] (update #{count})")


@app.command()
def reset(
    entity: Annotated[str, typer.Argument(help="Entity identifier")],
    root: Annotated[str, typer.Argument(help="Root to force")],
    caller: CallerOption = None,
) -> None:
    """Emergency root reset, for when node data is lost or corrupted."""
    ledger = _ledger()
    try:
        update = ledger.emergency_reset_root(_caller(caller), entity, root)
    except LedgerError as e:
        _fail(e)
    rprint(f"[yellow]Reset[/yellow] [cyan]{entity}[/cyan] to {update.new_root}")


# ---------------------------------------------------------------------------
# Read commands
# ---------------------------------------------------------------------------


@app.command()
def show(entity: Annotated[str, typer.Argument(help="Entity identifier")]) -> None:
    """Show root, metrics and tree shape for an entity."""
    ledger = _ledger()
    root = ledger.get_root(entity)
    m = ledger.get_metrics(entity)
    panel_text = (
        f"[bold]{entity}[/bold]\n\n"
        f"[dim]Root:[/dim]         {root if root != ZERO_HASH else '(none)'}\n"
        f"[dim]Updates:[/dim]      {ledger.get_update_count(entity)}\n"
        f"[dim]Nodes:[/dim]        {ledger.node_count(entity)}\n"
        f"[dim]Depth:[/dim]        {ledger.tree_depth(entity)}\n\n"
        f"[dim]Interactions:[/dim] {m.total_interactions}\n"
        f"[dim]Events:[/dim]       {m.learning_events}\n"
        f"[dim]Velocity:[/dim]     {m.learning_velocity}\n"
        f"[dim]Confidence:[/dim]   {m.confidence_score}\n"
        f"[dim]Last update:[/dim]  {m.last_update_timestamp}"
    )
    rprint(Panel(panel_text, title="Learning History", border_style="blue"))


@app.command()
def history(entity: Annotated[str, typer.Argument(help="Entity identifier")]) -> None:
    """List root transitions, oldest first."""
    updates = _ledger().get_update_history(entity)
    table = Table(title=f"Root history ({len(updates)})")
    table.add_column("#", justify="right")
    table.add_column("Previous", style="dim")
    table.add_column("New", style="cyan")
    table.add_column("Reason")
    table.add_column("Timestamp", justify="right")
    for i, u in enumerate(updates, start=1):
        table.add_row(str(i), _short(u.previous_root), _short(u.new_root), u.reason or "-", str(u.timestamp))
    rprint(table)


@app.command()
def nodes(
    entity: Annotated[str, typer.Argument(help="Entity identifier")],
    level: Annotated[int | None, typer.Option("--level", help="Only nodes at this level")] = None,
    leaves: Annotated[bool, typer.Option("--leaves", help="Only leaf nodes")] = False,
) -> None:
    """List stored nodes in insertion order."""
    ledger = _ledger()
    if leaves:
        found = ledger.get_leaf_nodes(entity)
    elif level is not None:
        found = ledger.get_nodes_at_level(entity, level)
    else:
        found = ledger.get_all_nodes(entity)

    table = Table(title=f"Nodes ({len(found)})")
    table.add_column("Hash", style="cyan")
    table.add_column("Level", justify="right")
    table.add_column("Pos", justify="right")
    table.add_column("Kind", justify="center")
    table.add_column("Children", style="dim")
    table.add_column("Data", justify="right")
    for n in found:
        kind = "[green]leaf[/green]" if n.is_leaf else "internal"
        children = ", ".join(_short(c) for c in n.children()) or "-"
        table.add_row(_short(n.hash), str(n.level), str(n.position), kind, children, f"{len(n.data)} B")
    rprint(table)


@app.command()
def verify(
    entity: Annotated[str, typer.Argument(help="Entity identifier")],
    claim: Annotated[str, typer.Argument(help="Claimed leaf hash")],
    proof: Annotated[list[str] | None, typer.Argument(help="Sibling hashes, leaf upward")] = None,
) -> None:
    """Check a membership proof against the entity's current root."""
    ok = _ledger().verify_proof(entity, claim, proof or [])
    if ok:
        rprint("[green]valid[/green]")
    else:
        rprint("[red]invalid[/red]")
        raise typer.Exit(code=1)


@app.command()
def path(
    entity: Annotated[str, typer.Argument(help="Entity identifier")],
    leaf: Annotated[str, typer.Argument(help="Leaf hash")],
    max_hops: Annotated[int | None, typer.Option("--max-hops", help="Hop bound")] = None,
) -> None:
    """Show the leaf-to-root path for a leaf."""
    ledger = _ledger()
    try:
        hashes = ledger.path_to_root(entity, leaf, max_hops)
    except LedgerError as e:
        _fail(e)
    root = ledger.get_root(entity)
    tree = Tree(f"[bold]Path[/bold] ({len(hashes)})")
    branch = tree
    for h in hashes:
        label = f"[magenta]{h}[/magenta] (root)" if h == root else h
        branch = branch.add(label)
    rprint(tree)
    if hashes[-1] != root:
        rprint("[yellow]Root not reached; path is partial.[/yellow]")


@app.command()
def check(
    entity: Annotated[str, typer.Argument(help="Entity identifier")],
    node: Annotated[str | None, typer.Argument(help="Check a single node")] = None,
    fail_on_invalid: Annotated[
        bool, typer.Option("--fail-on-invalid", help="Exit 1 if any node is invalid")
    ] = False,
) -> None:
    """Report structural integrity of one node or the whole tree."""
    ledger = _ledger()
    try:
        if node is not None:
            result = ledger.verify_individual_node(entity, node)
            status = "[green]valid[/green]" if result.is_valid else "[red]invalid[/red]"
            rprint(f"{result.node_hash}: {status}")
            for issue in result.issues:
                rprint(f"  - {issue}")
            bad = not result.is_valid
        else:
            report = ledger.check_integrity(entity)
            table = Table(title=f"Integrity ({report.node_count} nodes)")
            table.add_column("Node", style="cyan")
            table.add_column("Issues")
            for r in report.invalid:
                table.add_row(_short(r.node_hash), "; ".join(r.issues))
            if report.invalid:
                rprint(table)
            for d in report.dangling:
                rprint(f"[yellow]dangling reference[/yellow] {d}")
            if report.ok:
                rprint("[green]All nodes consistent.[/green]")
            bad = not report.ok
    except LedgerError as e:
        _fail(e)

    if fail_on_invalid and bad:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default memoria.yaml in current directory."""
    target = Path("memoria.yaml")
    if target.exists() and not force:
        rprint("[yellow]memoria.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
