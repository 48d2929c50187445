"""Command-line interface for smelltrack."""

import csv
import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from smelltrack.analysis import AnalysisSummary, ProjectAnalysis, analyze_projects
from smelltrack.extraction import GitCommitGraph
from smelltrack.log import configure_logging
from smelltrack.models import RepositoryConfig, Settings
from smelltrack.storage import SqliteSink
from smelltrack.topology import BranchReconstructor

app = typer.Typer(
    name="smelltrack",
    help="Branch-aware code smell lifecycle tracking over Git histories",
    add_completion=False,
)
console = Console()


def _setup(verbose: bool) -> Settings:
    settings = Settings()
    configure_logging("DEBUG" if verbose else settings.log_level)
    return settings


def _print_summary(summary: AnalysisSummary) -> None:
    console.print(f"\n[bold]Project:[/bold] {summary.project} (id {summary.project_id})")
    console.print(
        f"[cyan]Commits:[/cyan] {summary.commits} "
        f"([green]{summary.covered_commits}[/green] analyzed by the smell feed)"
    )
    console.print(f"[cyan]Branches:[/cyan] {summary.branches}")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Category", style="cyan")
    table.add_column("Events", justify="right", style="yellow")
    for category in ("introduction", "presence", "refactor", "lost"):
        table.add_row(category, str(summary.events_per_category.get(category, 0)))
    console.print(table)

    for branch_id, error in sorted(summary.failed_branches.items()):
        console.print(f"[bold yellow]⚠[/bold yellow] Branch {branch_id} failed: {error}")
    unresolved = sum(len(smells) for smells in summary.unresolved.values())
    if unresolved:
        console.print(
            f"[bold yellow]⚠[/bold yellow] {unresolved} smell(s) left unresolved "
            f"on {len(summary.unresolved)} branch(es)"
        )


@app.command()
def branches(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    revision: str = typer.Option("HEAD", "--rev", "-r", help="Revision to reconstruct from"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Reconstruct and list the branches of a repository."""
    try:
        _setup(verbose)
        config = RepositoryConfig(name=repo_path.name, repo_path=repo_path, revision=revision)
        graph = GitCommitGraph(config)

        console.print(f"[bold green]Reconstructing branches of:[/bold green] {repo_path}")
        console.print(f"[bold blue]Revision:[/bold blue] {revision}\n")

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Branch", justify="right", style="cyan")
        table.add_column("Commits", justify="right", style="yellow")
        table.add_column("First", style="green")
        table.add_column("Fork", style="blue")
        table.add_column("Merge", style="blue")

        reconstructed = BranchReconstructor(graph).reconstruct()
        for branch in reconstructed:
            table.add_row(
                "trunk" if branch.is_trunk else str(branch.id),
                str(len(branch.commits)),
                branch.first_commit.short_sha if branch.first_commit else "-",
                branch.fork_point.short_sha if branch.fork_point else "-",
                branch.merge_point.short_sha if branch.merge_point else "-",
            )

        console.print(table)
        console.print(f"\n[bold green]✓[/bold green] {len(reconstructed)} branches")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def commits(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    max_count: int = typer.Option(20, "--max", "-n", help="Maximum commits to show"),
    revision: str = typer.Option("HEAD", "--rev", "-r", help="Revision to list from"),
) -> None:
    """List the most recent commits with their global ordinal."""
    try:
        _setup(False)
        config = RepositoryConfig(name=repo_path.name, repo_path=repo_path, revision=revision)
        graph = GitCommitGraph(config)

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("#", justify="right", style="yellow")
        table.add_column("Hash", style="cyan", width=10)
        table.add_column("Author", style="green")
        table.add_column("Date", style="blue")
        table.add_column("Message", style="white")
        table.add_column("+/-", justify="right", style="yellow")

        history = graph.chronological_commits()
        for commit in reversed(history[-max_count:] if max_count > 0 else []):
            details = graph.commit_details(commit.sha)
            summary = commit.message.split("\n")[0]
            table.add_row(
                str(commit.ordinal),
                commit.short_sha,
                (commit.author_email or "")[:30],
                commit.timestamp.strftime("%Y-%m-%d %H:%M") if commit.timestamp else "",
                summary[:60],
                f"+{details.additions} -{details.deletions}",
            )

        console.print(table)

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def track(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    feed_path: Path = typer.Argument(..., help="Smell feed (JSON file or directory of CSV files)"),
    name: Optional[str] = typer.Option(None, "--name", help="Project name (defaults to the repository directory)"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite database (defaults to SMELLTRACK_DATABASE_PATH)"),
    url: Optional[str] = typer.Option(None, "--url", help="Project URL"),
    json_output: Optional[Path] = typer.Option(None, "--json", help="Also write the lifecycle events to a JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Track smell lifecycles along every branch of a repository."""
    try:
        settings = _setup(verbose)
        config = RepositoryConfig(
            name=name or repo_path.resolve().name,
            repo_path=repo_path,
            feed_path=feed_path,
            url=url,
        )
        sink = SqliteSink(db_path or settings.database_path)

        console.print(f"[bold green]Tracking smells of:[/bold green] {config.name}")
        console.print(f"[bold blue]Database:[/bold blue] {sink.db_path}")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Analyzing history...", total=None)
            try:
                summary = ProjectAnalysis.from_config(config, sink, settings).run()
            finally:
                sink.close()
            progress.update(task, completed=True)

        _print_summary(summary)

        if json_output:
            events = sink.fetch_events(summary.project_id)
            json_output.parent.mkdir(parents=True, exist_ok=True)
            with open(json_output, "w") as f:
                json.dump([event.model_dump(mode="json") for event in events], f, indent=2)
            console.print(f"[bold green]✓[/bold green] Saved {len(events)} events to {json_output}")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _read_projects(projects_csv: Path) -> List[RepositoryConfig]:
    """Read ``name,repository,feed[,url]`` rows, relative paths resolved from the file."""
    base = projects_csv.resolve().parent
    configs = []
    with open(projects_csv, "r", newline="") as f:
        for row in csv.DictReader(f):
            missing = [column for column in ("name", "repository", "feed") if not row.get(column)]
            if missing:
                raise ValueError(f"Missing {', '.join(missing)} in {projects_csv}: {row}")
            configs.append(
                RepositoryConfig(
                    name=row["name"].strip(),
                    repo_path=base / row["repository"].strip(),
                    feed_path=base / row["feed"].strip(),
                    url=(row.get("url") or "").strip() or None,
                )
            )
    return configs


@app.command()
def batch(
    projects_csv: Path = typer.Argument(..., help="CSV file with name,repository,feed[,url] columns"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite database (defaults to SMELLTRACK_DATABASE_PATH)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Projects analyzed concurrently"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Analyze several projects concurrently into one database."""
    try:
        settings = _setup(verbose)
        if workers is not None:
            settings.max_workers = workers
        database = db_path or settings.database_path
        configs = _read_projects(projects_csv)

        console.print(
            f"[bold green]Analyzing {len(configs)} projects[/bold green] "
            f"with {settings.max_workers} workers"
        )
        # Creates the schema once before the workers open their own connections.
        SqliteSink(database)

        summaries = analyze_projects(configs, lambda: SqliteSink(database), settings)

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Project", style="cyan")
        table.add_column("Commits", justify="right", style="yellow")
        table.add_column("Branches", justify="right", style="yellow")
        table.add_column("Events", justify="right", style="green")
        table.add_column("Failed branches", justify="right", style="red")
        for summary in sorted(summaries, key=lambda s: s.project):
            table.add_row(
                summary.project,
                str(summary.commits),
                str(summary.branches),
                str(sum(summary.events_per_category.values())),
                str(len(summary.failed_branches)),
            )
        console.print(table)

        failed = len(configs) - len(summaries)
        if failed:
            console.print(f"[bold red]✗[/bold red] {failed} project(s) failed")
            raise typer.Exit(1)
        console.print(f"[bold green]✓[/bold green] {len(summaries)} projects analyzed")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
