#!/usr/bin/env python3
"""
SynthForge - CLI Entry Point

Compose techno tracks and export them as MIDI.

Usage:
    python main.py compose --seed 42
    python main.py compose --plan blueprint.json --output ./out
    python main.py prompt "acid techno, 303 squelch, 135bpm"
    python main.py ai "dark hypnotic warehouse track" --bars 96
    python main.py randomize --seed 7
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from colorama import Fore, Style, init

from synthforge import (
    BlueprintError,
    ComposeRequest,
    ConfigLoader,
    ConfigLoadError,
    ConfigurationError,
    EngineSettings,
    MoodPromptParser,
    TrackConfig,
    TrackSession,
    __version__,
    apply_blueprint,
    apply_prompt,
    export_filename,
    randomize_all,
    write_midi,
)
from synthforge.arranger import Composition

logger = logging.getLogger("synthforge.cli")


def print_banner():
    """Print application banner."""
    banner = f"""
╔══════════════════════════════════════════════╗
║  SYNTHFORGE {__version__:<8}                         ║
║  Generative techno, section by section       ║
╚══════════════════════════════════════════════╝
    """
    print(f"{Fore.CYAN}{banner}{Style.RESET_ALL}")


def print_step(step: str, message: str):
    print(f"{Fore.GREEN}[{step}]{Style.RESET_ALL} {message}")


def print_info(message: str):
    print(f"{Fore.CYAN}ℹ{Style.RESET_ALL}  {message}")


def print_warning(message: str):
    print(f"{Fore.YELLOW}⚠{Style.RESET_ALL}  {message}")


def print_error(message: str):
    print(f"{Fore.RED}✗{Style.RESET_ALL}  {message}")


def print_success(message: str):
    print(f"{Fore.GREEN}✓{Style.RESET_ALL}  {message}")


def print_config(config: TrackConfig):
    """Print the headline settings and the section layout."""
    print(f"\n{Fore.MAGENTA}{'─' * 50}{Style.RESET_ALL}")
    print(f"   BPM:    {config.bpm}")
    print(f"   Key:    {config.key} {config.scale.value}")
    print(f"   Style:  {config.style.value}  Groove: {config.groove.value}")
    for i, section in enumerate(config.sections):
        layers = ', '.join(section.enabled_layers())
        print(f"   {i:>2}. {section.type.value:<9} {section.bars:>3} bars  "
              f"@{section.intensity:>3}  {layers}")
    print(f"{Fore.MAGENTA}{'─' * 50}{Style.RESET_ALL}\n")


def summarize(composition: Composition) -> dict:
    return {
        "bars": composition.total_bars,
        "bpm": composition.bpm,
        "key": composition.key,
        "seconds": round(composition.duration_seconds(), 2),
        "events": {name: len(events) for name, events in composition.events.items() if events},
        "sections": [
            {"type": plan.type.value, "start_bar": plan.start_bar, "bars": plan.bars,
             "layers": list(plan.layers), "dropped": list(plan.dropped_layers)}
            for plan in composition.sections
        ],
    }


def load_config(args) -> TrackConfig:
    """Starting configuration, optionally with a blueprint file applied."""
    config = TrackConfig()
    if getattr(args, "plan", None):
        with open(args.plan, "r", encoding="utf-8") as f:
            config = apply_blueprint(json.load(f), config)
    return config


def export(composition: Composition, config: TrackConfig, output_dir: Path,
           name: Optional[str]) -> Path:
    filename = name or export_filename(config.key, config.bpm, "mid")
    return write_midi(composition, output_dir / filename, config, humanize=True)


def prompt_parser(settings: EngineSettings) -> Optional[MoodPromptParser]:
    """Parser for a custom presets file named by SYNTHFORGE_PRESETS, if any."""
    if not settings.presets_path:
        return None
    path = Path(settings.presets_path)
    return MoodPromptParser(ConfigLoader(path.parent), path.name)


def run(args) -> int:
    settings = EngineSettings.from_env()
    seed = args.seed if args.seed is not None else settings.base_seed
    config = load_config(args)

    if args.command == "prompt":
        config, parsed = apply_prompt(args.text, config, seed=seed,
                                      parser=prompt_parser(settings))
        if not args.json:
            print_step("1/3", f"Mood: {parsed.mood} (score {parsed.score})")

    elif args.command == "randomize":
        config = randomize_all(config, seed)
        if not args.json:
            print_step("1/3", f"Randomized with seed {seed}")

    with TrackSession(config, settings=settings) as session:
        if args.command == "ai":
            if not args.json:
                print_step("1/3", "Requesting a blueprint from the AI composer...")
            request = ComposeRequest(args.text, seed=seed, duration_bars=args.bars,
                                     bpm_hint=args.bpm_hint, style_hint=args.style_hint)
            outcome = session.compose_with_ai(request).result()
            if not outcome.applied:
                raise BlueprintError(outcome.error or "Blueprint was not applied")
        elif args.command == "compose" and not args.json:
            print_step("1/3", "Using configuration" + (f" from {args.plan}" if args.plan else ""))

        if not args.json:
            print_config(session.config)
            print_step("2/3", f"Composing (seed {seed})...")
        composition = session.regenerate(seed)
        config = session.config

    midi_path = None
    if not args.no_midi:
        midi_path = export(composition, config, Path(args.output), args.name)

    if args.json:
        result = summarize(composition)
        result["success"] = True
        result["midi"] = str(midi_path) if midi_path else None
        print(json.dumps(result, indent=2))
    else:
        print_step("3/3", "Done")
        print_success(f"{composition.total_bars} bars, {composition.event_count()} events, "
                      f"{composition.duration_seconds():.1f}s")
        if midi_path:
            print(f"  📄 MIDI:  {midi_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generative techno composition engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s compose --seed 42
  %(prog)s prompt "hypnotic minimal in G, 124 bpm"
  %(prog)s ai "dark afterlife journey" --style-hint afterlife_kast

The ai command needs OPENAI_API_KEY in the environment.
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--seed", type=int, default=None,
                        help="Base seed (default: SYNTHFORGE_SEED or 1234)")
    common.add_argument("--plan", type=str, default=None,
                        help="Apply a blueprint JSON file before composing")
    common.add_argument("-o", "--output", type=str, default="./output",
                        help="Output directory (default: ./output)")
    common.add_argument("--name", type=str, default=None, help="MIDI file name")
    common.add_argument("--no-midi", action="store_true", help="Skip MIDI export")
    common.add_argument("--json", action="store_true", help="Print a JSON summary")
    common.add_argument("--no-banner", action="store_true", help="Suppress banner")
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("compose", parents=[common], help="Compose the current configuration")

    prompt = commands.add_parser("prompt", parents=[common], help="Offline mood prompt")
    prompt.add_argument("text", type=str, help="Description, e.g. 'acid techno 135bpm'")

    ai = commands.add_parser("ai", parents=[common], help="Blueprint from the AI composer")
    ai.add_argument("text", type=str, help="Description of the track")
    ai.add_argument("--bars", type=int, default=128, help="Intended length in bars (16-256)")
    ai.add_argument("--bpm-hint", type=int, default=None, help="Tempo hint (100-140)")
    ai.add_argument("--style-hint", type=str, default=None,
                    help="afterlife_kast, afterlife_anyma or melodic_underground")

    commands.add_parser("randomize", parents=[common], help="Randomize everything, then compose")
    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    init()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.no_banner and not args.json:
        print_banner()

    try:
        return run(args)
    except KeyboardInterrupt:
        if not args.json:
            print_warning("\nCancelled by user")
        return 130
    except (BlueprintError, ConfigurationError, ConfigLoadError, OSError, ValueError) as e:
        if args.json:
            print(json.dumps({"success": False, "error": str(e)}, indent=2))
        else:
            print_error(f"Generation failed: {e}")
            if args.verbose:
                logger.exception("Generation failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
