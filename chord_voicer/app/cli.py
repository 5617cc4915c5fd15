"""
Command Line Interface for the Chord Voicing Generator
======================================================

Generates playable voicings for a chord from the terminal.

Usage Examples:
    # Four guitar voicings for Cmaj7
    voicing-gen Cmaj7

    # Constraints as flags
    voicing-gen F --voicing-type barre --min-fret 1 --max-fret 8

    # Constraints as free text, with lesson tips
    voicing-gen G7 --nl "something easy, no barre chords" --lesson

    # Other instruments, JSON output
    voicing-gen Dm7 -I piano --register low --json

    # Interactive mode: one chord (plus optional free text) per line
    voicing-gen --interactive

Exit status: 0 on success, 2 when the request cannot be satisfied
(unknown chord, conflicting constraints, nothing playable), 1 otherwise.
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from chord_voicer.data.errors import VoicingGenerationError
from chord_voicer.data.schema import VoicingResponse
from chord_voicer.rules.generate_voicings import format_as_chord_sheet, format_as_json, generate_voicings


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_REQUEST_ERROR = 2


# =============================================================================
# ARGUMENT PARSER SETUP
# =============================================================================

def string_list(value: str) -> List[int]:
    """'3,4,5' → [3, 4, 5]."""
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma-separated string indices, got '{value}'")


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command-line argument parser.

    Returns:
        Configured ArgumentParser object
    """
    parser = argparse.ArgumentParser(
        prog="voicing-gen",
        description="""
🎸 Chord Voicing Generator - playable voicings for guitar, bass and keyboard.

Examples:
  voicing-gen Cmaj7
  voicing-gen F --voicing-type barre --max-fret 8
  voicing-gen G7 --nl "something easy, no barre chords" --lesson
  voicing-gen Dm7 -I piano --register low
  voicing-gen Em7 --open E --open B --chord-type seventh
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "chord",
        nargs="?",
        type=str,
        help="Chord symbol, e.g. Cmaj7, F#m7b5, Bb7(#9), D/F#",
    )

    # ─────────────────────────────────────────────────────────────────────────
    # Request options
    # ─────────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "-I", "--instrument",
        default="guitar",
        choices=["guitar", "bass", "keyboard", "piano"],
        help="Target instrument (default: guitar)",
    )
    parser.add_argument(
        "-n", "--count",
        type=int,
        default=4,
        help="Number of voicings, clamped to 3-4 (default: 4)",
    )
    parser.add_argument(
        "--lesson",
        action="store_true",
        help="Add a practice tip to every voicing",
    )
    parser.add_argument(
        "--nl",
        metavar="TEXT",
        help="Constraints in plain words, e.g. \"easy, no barre chords\"",
    )

    # ─────────────────────────────────────────────────────────────────────────
    # Explicit constraints
    # ─────────────────────────────────────────────────────────────────────────
    constraints = parser.add_argument_group("constraints")
    constraints.add_argument("--difficulty", choices=["beginner", "intermediate", "advanced", "any"])
    constraints.add_argument("--voicing-type", choices=["open", "barre", "drop_voicing", "any"])
    constraints.add_argument("--min-fret", type=int, metavar="N")
    constraints.add_argument("--max-fret", type=int, metavar="N")
    constraints.add_argument("--max-span", type=int, metavar="N")
    constraints.add_argument("--no-mute", action="store_true", help="Every string must sound")
    constraints.add_argument("--strings", type=string_list, metavar="3,4,5",
                             help="String indices to use (0 = lowest string)")
    constraints.add_argument("--tuning", help="Tuning preset, e.g. drop_d, half_step_down, open_g")
    constraints.add_argument("--open-strings", choices=["prefer", "avoid"], dest="open_preference")
    constraints.add_argument("--register", choices=["low", "mid", "high"], help="Keyboard register")
    constraints.add_argument("--chord-type", choices=["triad", "seventh", "extended", "any"],
                             help="Which chord tones to voice")
    constraints.add_argument("--open", action="append", dest="open_notes", metavar="NOTE",
                             help="Note that must ring as an open string (repeatable)")

    # ─────────────────────────────────────────────────────────────────────────
    # Output & mode flags
    # ─────────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output result as JSON (useful for scripting)",
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        help="One line per voicing",
    )
    parser.add_argument(
        "-i", "--interactive",
        action="store_true",
        help="Enter interactive mode (keep generating until you quit)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show detailed processing information",
    )

    return parser


def build_constraints(args: argparse.Namespace) -> Dict[str, Any]:
    """Explicit constraints from the flags that were given."""
    constraints = {
        "difficulty": args.difficulty,
        "voicing_type": args.voicing_type,
        "min_fret": args.min_fret,
        "max_fret": args.max_fret,
        "max_span": args.max_span,
        "allow_muted": False if args.no_mute else None,
        "string_subset": args.strings,
        "tuning": args.tuning,
        "open_preference": args.open_preference,
        "keyboard_register": args.register,
        "chord_type": args.chord_type,
        "require_open_strings": args.open_notes,
    }
    return {k: v for k, v in constraints.items() if v is not None}


def build_request(args: argparse.Namespace, chord: str, natural_language: Optional[str]) -> Dict[str, Any]:
    return {
        "instrument": args.instrument,
        "chord_input": chord,
        "constraints": build_constraints(args),
        "natural_language": natural_language,
        "count": args.count,
        "lesson_mode": args.lesson,
    }


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

def format_result_compact(response: VoicingResponse) -> str:
    """One line per voicing: diagram, level, position."""
    lines = []
    for shape in response.voicings:
        lines.append(f"{shape.diagram():<20} {shape.difficulty.value:<13} {shape.position}")
    return "\n".join(lines)


def format_error(error: VoicingGenerationError, as_json: bool = False) -> str:
    if as_json:
        return json.dumps(error.to_dict(), indent=2)
    lines = [f"❌ {error.code}: {error.message}"]
    for suggestion in error.suggestions:
        lines.append(f"   • {suggestion}")
    return "\n".join(lines)


# =============================================================================
# GENERATION
# =============================================================================

def run_single_generation(args: argparse.Namespace, chord: str, natural_language: Optional[str]) -> int:
    """Generate and print voicings for one chord; returns the exit status."""
    try:
        response = generate_voicings(build_request(args, chord, natural_language), verbose=args.verbose)
    except VoicingGenerationError as e:
        print(format_error(e, as_json=args.json), file=sys.stdout if args.json else sys.stderr)
        return EXIT_REQUEST_ERROR
    except Exception as e:
        print(f"\n❌ Generation Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return EXIT_FAILURE

    if args.json:
        print(format_as_json(response))
    elif args.compact:
        print(format_result_compact(response))
    else:
        print(format_as_chord_sheet(response))
    return EXIT_OK


def run_interactive_mode(args: argparse.Namespace) -> int:
    """
    Read one request per line: a chord symbol, optionally followed by free text.

    'quit' or 'exit' stops; the flags given on the command line apply to
    every line.
    """
    print("Interactive Mode - enter a chord, optionally followed by constraints in words.")
    print("Example: Am7 easy, no barre chords")
    print("Commands: 'quit' or 'exit' to stop")
    print("─" * 75)

    status = EXIT_OK
    while True:
        try:
            line = input("🎸 Chord: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n👋 Goodbye!")
            break

        if line.lower() in ("quit", "exit", "q"):
            break
        if not line:
            continue

        chord, _, text = line.partition(" ")
        natural_language = " ".join(filter(None, [args.nl, text.strip()])) or None
        status = run_single_generation(args, chord, natural_language)
        print("─" * 75)
    return status


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Returns:
        Process exit status
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.interactive:
        return run_interactive_mode(args)

    if not args.chord:
        parser.print_help()
        print("\n⚠️  Please provide a chord symbol or use --interactive mode")
        return EXIT_FAILURE

    return run_single_generation(args, args.chord, args.nl)


if __name__ == "__main__":
    sys.exit(main())
