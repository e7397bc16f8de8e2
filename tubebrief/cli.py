import argparse
import os
import sys
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from tubebrief.config import settings
from tubebrief.core.errors import TubeBriefError
from tubebrief.services.container import build_container

console = Console()

def format_time(seconds: float) -> str:
    m, s = divmod(int(seconds), 60)
    h, m = divmod(m, 60)
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"

def to_markdown(metadata, transcript, summary=None) -> str:
    lines = [f"# {metadata.title}", f"\n> {metadata.author} · {format_time(metadata.duration_seconds)}\n"]
    lines.append(f"Transcript source: `{transcript.source}`" + (f" ({transcript.language_used})" if transcript.language_used else ""))
    if summary is not None:
        lines.append("\n## Summary")
        lines.append(summary.summary)
        lines.append("\n## Key Points")
        for kp in summary.key_points:
            lines.append(f"- {kp}")
    lines.append("\n## Transcript")
    lines.append(transcript.text)
    return "\n".join(lines)

def render(metadata, transcript, summary=None):
    console.print(Panel(f"[bold blue]{metadata.title}[/bold blue]\n[italic]{metadata.author}[/italic]", title="Video Info"))
    console.print(f"[green]✔[/green] Transcript from [bold]{transcript.source}[/bold] ({len(transcript.text)} chars)")
    if summary is not None:
        console.print(Panel(summary.summary, title="Summary", border_style="green"))
        kp_md = "\n".join([f"- {kp}" for kp in summary.key_points])
        console.print(Panel(Markdown(kp_md), title="Key Points", border_style="yellow"))

def run_transcript(args) -> int:
    if args.model:
        settings.LLM_MODEL = args.model
    container = build_container(settings)
    url = args.url.strip().strip('`').strip('"').strip("'").strip()

    try:
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), transient=True) as progress:
            task1 = progress.add_task(description="Fetching video info & transcript...", total=None)
            metadata = container.pipeline.fetch_metadata(url)
            transcript = container.pipeline.run(url, metadata=metadata)
            progress.update(task1, completed=True)

            summary = None
            if not args.no_summary:
                if container.has_summarizer:
                    task2 = progress.add_task(description="Summarizing content...", total=None)
                    summary = container.summarizer.summarize(transcript, metadata)
                    progress.update(task2, completed=True)
                else:
                    console.print("[yellow]LLM_API_KEY not set, skipping summary.[/yellow]")
    except TubeBriefError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    render(metadata, transcript, summary)

    if args.save:
        os.makedirs(args.save, exist_ok=True)
        path = os.path.join(args.save, f"{metadata.id}.md")
        with open(path, "w", encoding="utf-8") as f:
            f.write(to_markdown(metadata, transcript, summary))
        console.print(f"\n[blue]Saved output to {path}[/blue]")
    return 0

def run_server(args) -> int:
    import uvicorn
    uvicorn.run("tubebrief.server:create_app", factory=True, host=args.host, port=args.port)
    return 0

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tubebrief", description="Video transcripts and AI summaries")
    sub = parser.add_subparsers(dest="command")

    p_transcript = sub.add_parser("transcript", help="Fetch the transcript (and summary) of a video")
    p_transcript.add_argument("url", help="Video URL")
    p_transcript.add_argument("--no-summary", action="store_true", help="Only fetch the transcript")
    p_transcript.add_argument("--save", metavar="DIR", help="Write a Markdown report into DIR")
    p_transcript.add_argument("--model", help="LLM Model to use")
    p_transcript.set_defaults(func=run_transcript)

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default=settings.HOST)
    p_serve.add_argument("--port", type=int, default=settings.PORT)
    p_serve.set_defaults(func=run_server)
    return parser

def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        sys.exit(2)
    sys.exit(args.func(args))

if __name__ == "__main__":
    main()
