"""Command line entry point for the continuity film pipeline."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from assembly.clip_assembler import ClipAssembler
from assembly.transcoder import FFmpegTranscoder
from continuity.evaluator import evaluate_continuity
from continuity.shot_planner import ShotRenderer, ShotRequest, plan_shot
from models.continuity import ContinuationMode
from models.storyboard import Scene, ScenesBible, StyleBible
from services.media_store import MediaStore
from services.video_gen_service import VideoGenService, resolve_video_model
from utils.config import load_config, validate_config
from utils.errors import ConfigurationError, ContinuityPipelineError
from utils.logging import get_logger, setup_logging

logger = get_logger(__name__)
console = Console()

MODE_CHOICES = [mode.value for mode in ContinuationMode]

# Subcommands that submit jobs to the remote video service
GENERATING_COMMANDS = frozenset({"render"})


def _build_assembler(config: dict) -> ClipAssembler:
    store = MediaStore(
        config["storage_root"], timeout=config["http_timeout_seconds"]
    )
    return ClipAssembler(store, FFmpegTranscoder(config["ffmpeg_binary"]))


def _read_json(path: Optional[str]) -> Optional[dict]:
    if not path:
        return None
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"cannot read JSON input {path}: {e}") from e


# ----------------------------------------------------------------------
# Subcommands
# ----------------------------------------------------------------------


async def _assemble(args, config: dict) -> int:
    assembler = _build_assembler(config)
    try:
        output = await assembler.create_final_film(args.clips, args.output)
    finally:
        await assembler.media_store.close()
    console.print(f"[green]✓[/green] Final film: {output}")
    return 0


async def _cache(args, config: dict) -> int:
    assembler = _build_assembler(config)
    try:
        output = await assembler.cache_remote_video(args.url, args.output)
    finally:
        await assembler.media_store.close()
    console.print(f"[green]✓[/green] Cached clip: {output}")
    return 0


async def _last_frame(args, config: dict) -> int:
    assembler = _build_assembler(config)
    try:
        output = await assembler.extract_last_frame(args.video, args.output)
    finally:
        await assembler.media_store.close()
    console.print(f"[green]✓[/green] Last frame: {output}")
    return 0


async def _evaluate(args, config: dict) -> int:
    threshold = args.threshold if args.threshold is not None else config["continuity_threshold"]
    evaluation = evaluate_continuity(
        args.mode,
        has_anchor=args.anchor,
        director_layer=args.director,
        cinematographer_layer=args.cinematographer,
        threshold=threshold,
    )

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_row("[bold]Score[/bold]", f"{evaluation.score:.2f}")
    table.add_row(
        "[bold]Regenerate[/bold]",
        "[yellow]yes[/yellow]" if evaluation.recommend_regenerate else "[green]no[/green]",
    )
    table.add_row("[bold]Reason[/bold]", evaluation.reason)
    console.print(table)
    return 0


def _shot_request(args, config: dict) -> ShotRequest:
    scene = Scene.from_dict(_read_json(args.scene) or {})
    previous_data = _read_json(args.previous)
    style_data = _read_json(args.style_bible)
    threshold = args.threshold if args.threshold is not None else config["continuity_threshold"]

    return ShotRequest(
        project_title=args.title,
        synopsis=args.synopsis,
        scene=scene,
        continuation_mode=args.mode,
        style_bible=StyleBible.from_dict(style_data) if style_data else StyleBible.default(),
        scenes_bible=ScenesBible.from_dict(_read_json(args.scenes_bible)),
        film_type=args.film_type,
        director_layer=args.director,
        cinematographer_layer=args.cinematographer,
        auto_regenerate_threshold=threshold,
        previous_scene=Scene.from_dict(previous_data) if previous_data else None,
        previous_clip_last_frame_url=args.last_frame,
    )


async def _plan(args, config: dict) -> int:
    plan = plan_shot(_shot_request(args, config), resolve_video_model(config["video_model"]))
    console.print_json(data=plan.to_dict())
    return 0


async def _render(args, config: dict) -> int:
    model = resolve_video_model(config["video_model"])
    plan = plan_shot(_shot_request(args, config), model)
    for note in plan.notes:
        console.print(f"[dim]{escape(note)}[/dim]")

    assembler = _build_assembler(config)
    video_service = VideoGenService(
        assembler.media_store, api_key=config["fal_key"], model=model
    )
    try:
        rendered = await ShotRenderer(video_service, assembler).render(plan, args.output)
    finally:
        await assembler.media_store.close()

    console.print(f"[green]✓[/green] Clip: {rendered.video_path}")
    console.print(f"[green]✓[/green] Last frame: {rendered.last_frame_path}")
    if plan.evaluation.recommend_regenerate:
        console.print(
            f"[yellow]Continuity {plan.evaluation.score:.2f} is below "
            f"{plan.threshold:.2f}, consider regenerating[/yellow]"
        )
    return 0


COMMANDS = {
    "assemble": _assemble,
    "cache": _cache,
    "last-frame": _last_frame,
    "evaluate": _evaluate,
    "plan": _plan,
    "render": _render,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="continuity-film",
        description="Scene continuity and final-film assembly",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  continuity-film assemble --output film.mp4 /uploads/a.mp4 /uploads/b.mp4
  continuity-film cache --output scene-1.mp4 https://cdn.example.com/clip.mp4
  continuity-film evaluate --mode balanced --anchor
  continuity-film render --scene beat-2.json --last-frame /uploads/beat-1.jpg --output beat-2.mp4
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    assemble = subparsers.add_parser("assemble", help="Build the final film from clips")
    assemble.add_argument("--output", required=True, help="Output filename")
    assemble.add_argument("clips", nargs="+", help="Clip references in playback order")

    cache = subparsers.add_parser("cache", help="Cache a remote clip locally")
    cache.add_argument("--output", required=True, help="Output filename")
    cache.add_argument("url", help="Remote clip URL")

    last_frame = subparsers.add_parser("last-frame", help="Extract a clip's last frame")
    last_frame.add_argument("--output", required=True, help="Output image filename")
    last_frame.add_argument("video", help="Clip reference")

    for name, help_text in (
        ("evaluate", "Score continuity for a shot"),
        ("plan", "Plan a shot from storyboard JSON"),
        ("render", "Plan, generate and cache a shot"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--mode", choices=MODE_CHOICES, default="strict")
        sub.add_argument("--director", default="", help="Director layer text")
        sub.add_argument("--cinematographer", default="", help="Cinematographer layer text")
        sub.add_argument("--threshold", type=float, default=None)
        if name == "evaluate":
            sub.add_argument("--anchor", action="store_true", help="An anchor frame was obtained")
        else:
            sub.add_argument("--scene", required=True, help="Scene JSON file")
            sub.add_argument("--previous", help="Previous scene JSON file")
            sub.add_argument("--last-frame", default="", help="Previous clip's last frame")
            sub.add_argument("--style-bible", help="Style bible JSON file")
            sub.add_argument("--scenes-bible", help="Scenes bible JSON file")
            sub.add_argument("--title", default="", help="Project title")
            sub.add_argument("--synopsis", default="", help="Project synopsis")
            sub.add_argument("--film-type", default="", help="Film type")
        if name == "render":
            sub.add_argument("--output", required=True, help="Output clip filename")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Parse arguments, run one subcommand and return the exit code."""
    args = build_parser().parse_args(argv)
    config = load_config()
    setup_logging(config["log_level"], json_output=config["log_json"])

    config_errors = validate_config(
        config, require_fal_key=args.command in GENERATING_COMMANDS
    )
    if config_errors:
        error_msg = "Configuration errors: " + "; ".join(config_errors)
        logger.error(error_msg)
        console.print(f"[red]✗ {escape(error_msg)}[/red]")
        return 1

    try:
        return asyncio.run(COMMANDS[args.command](args, config))
    except ContinuityPipelineError as e:
        logger.error("command failed", command=args.command, error=str(e))
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted by user")
        return 130


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
