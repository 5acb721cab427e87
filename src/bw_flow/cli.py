"""CLI entry point for bw-flow."""

from pathlib import Path

import typer

APP_HELP = """
Replay agent task event logs into render-ready transcripts.

\b
An event log is JSONL, one event per line, each with a "kind":
  {"kind": "task_submitted", "taskId": "t1", "sessionId": "s1"}
  {"kind": "stream_chunk", "taskId": "t1", "chunk": "Hello", "isFirst": true}
  {"kind": "task_update", "taskId": "t1", "status": "completed"}
"""

TRANSCRIPT_HELP = """
Fold an event log through the reducer and print the transcript as JSON.

Malformed lines and unknown event kinds are skipped with a warning.

\b
Examples:
  # Every block of task t1
  bw-flow transcript events.jsonl | jq '.messages[] | select(.task_id == "t1") | .blocks[]'

  # Tasks that failed
  bw-flow transcript events.jsonl | jq '.messages[] | select(.status == "failed")'

  # Compact output for piping
  bw-flow transcript events.jsonl --compact | jq '.metadata.total_tasks'
"""

SUMMARY_HELP = """
Fold an event log and print one line per message.
"""

app = typer.Typer(add_completion=False, help=APP_HELP)


def _replay(events_path: Path, config: Path | None, verbose: bool):
    from .config import ConfigError, configure_logging, load_settings
    from .events import load_events
    from .reducer import fold

    if not events_path.exists():
        typer.echo(f"Error: File not found: {events_path}", err=True)
        raise typer.Exit(1)

    try:
        settings = load_settings(config)
    except (ConfigError, FileNotFoundError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    configure_logging("DEBUG" if verbose else settings.log_level)
    state = fold(load_events(events_path), marker=settings.reasoning_marker)
    return state, settings


@app.command(help=TRANSCRIPT_HELP)
def transcript(
    events_path: Path = typer.Argument(..., help="Path to JSONL event log"),
    output: Path | None = typer.Option(None, "-o", "--output", help="Output JSON file path"),
    compact: bool = typer.Option(False, "--compact", help="No indentation (for piping)"),
    config: Path | None = typer.Option(None, "--config", help="Settings JSON file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log dropped events"),
) -> None:
    from .renderer import render_json

    state, _ = _replay(events_path, config, verbose)
    json_str = render_json(state, events_path, compact=compact)

    if output is None:
        typer.echo(json_str)
    else:
        output.write_text(json_str, encoding="utf-8")
        typer.echo(f"Written to {output}", err=True)


@app.command(help=SUMMARY_HELP)
def summary(
    events_path: Path = typer.Argument(..., help="Path to JSONL event log"),
    config: Path | None = typer.Option(None, "--config", help="Settings JSON file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log dropped events"),
) -> None:
    from .renderer import summary_lines

    state, settings = _replay(events_path, config, verbose)
    for line in summary_lines(state, settings.preview_max_len):
        typer.echo(line)


if __name__ == "__main__":
    app()
