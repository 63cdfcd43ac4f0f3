#!/usr/bin/env python3
"""
PageVoice reader: CLI entry point.

Reads a PDF (or a form-feed paginated text file) aloud, page by page,
with offline Kokoro or Piper synthesis.  Pages without extractable text
are skipped.

Usage::

    python read_pdf.py book.pdf
    python read_pdf.py book.pdf --page 12 --engine piper --lang ru,pl
    python read_pdf.py notes.txt --single --rate 0.7 --pitch 1.1
    python read_pdf.py --list-voices --engine piper

Interactive commands (type a command and press Enter)::

    p        pause / resume
    s        stop
    r        read from the current page
    n / b    next / previous page
    g N      go to page N (1-based)
    v ID     choose voice ID ("v auto" for automatic selection)
    + / -    faster / slower
    t        speak a test sentence with the current settings
    q        quit

Verbosity levels::

    -v 0   Quiet: warnings and errors only.
    -v 1   Normal: session milestones (default).
    -v 2   Debug: per-page decisions and backend events.
"""

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

from readaloud.errors import NarrationError, UnknownVoiceError
from readaloud.playback.config import PITCH_RANGE, RATE_RANGE, VOLUME_RANGE, PlaybackConfig
from readaloud.playback.models import NarrationCallbacks, PlaybackState
from readaloud.reader import ENGINE_NAMES, DocumentReader, ReaderConfig, create_tts_engine
from readaloud.tts.voices import DEFAULT_LANGUAGE_PREFERENCES, select_voice

logger = logging.getLogger("readaloud")

# Mapping from --verbose integer to logging level
_VERBOSITY_MAP = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}

# Rate change per "+" / "-" command
_RATE_STEP = 0.1

_SAMPLE_SENTENCE = "This is how the current voice settings sound."


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _parse_languages(value: str):
    """
    Parse a comma-separated list of language prefixes (``"bg,ru,en"``).

    Raises:
        argparse.ArgumentTypeError: On an empty list.
    """
    prefixes = tuple(p.strip() for p in value.split(",") if p.strip())
    if not prefixes:
        raise argparse.ArgumentTypeError(
            f"Invalid language list '{value}'. Use e.g. bg,ru,en"
        )
    return prefixes


def _parse_page(value: str) -> int:
    """Parse a 1-based page number into a 0-based index."""
    try:
        page = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid page '{value}'. Use a number >= 1.")
    if page < 1:
        raise argparse.ArgumentTypeError(f"Invalid page '{value}'. Use a number >= 1.")
    return page - 1


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser with all reader options."""
    p = argparse.ArgumentParser(
        description="Read a PDF aloud, page by page, with offline TTS.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python read_pdf.py book.pdf\n"
            "  python read_pdf.py book.pdf --page 12 --engine piper --lang ru,pl\n"
            "  python read_pdf.py notes.txt --single --rate 0.7\n"
            "  python read_pdf.py --list-voices --engine piper\n"
        ),
    )

    # -- Positional --------------------------------------------------------
    p.add_argument(
        "input",
        nargs="?",
        default=None,
        help="PDF or text file to read. Optional with --list-voices.",
    )

    # -- Pages -------------------------------------------------------------
    pages = p.add_argument_group("pages")
    pages.add_argument(
        "--page",
        type=_parse_page,
        default=0,
        metavar="N",
        help="Page to start from, 1-based (default: 1)",
    )
    pages.add_argument(
        "--single",
        action="store_true",
        help="Read only the starting page, then stop",
    )

    # -- Voice -------------------------------------------------------------
    voice = p.add_argument_group("voice")
    voice.add_argument(
        "--engine",
        default="kokoro",
        choices=list(ENGINE_NAMES),
        help="Speech synthesizer (default: kokoro)",
    )
    voice.add_argument(
        "--voice",
        default=None,
        metavar="ID",
        help="Voice ID (default: chosen by language). Use --list-voices to see all.",
    )
    voice.add_argument(
        "--lang",
        type=_parse_languages,
        default=DEFAULT_LANGUAGE_PREFERENCES,
        metavar="LIST",
        help="Preferred language prefixes, in order "
        f"(default: {','.join(DEFAULT_LANGUAGE_PREFERENCES)})",
    )
    voice.add_argument(
        "--voice-dir",
        type=Path,
        default=None,
        metavar="DIR",
        help="Directory for downloaded Piper voice models",
    )
    voice.add_argument(
        "--list-voices",
        action="store_true",
        help="List the engine's voices, then exit",
    )

    # -- Prosody -----------------------------------------------------------
    prosody = p.add_argument_group("prosody")
    prosody.add_argument(
        "--rate",
        type=float,
        default=0.5,
        metavar="FLOAT",
        help=f"Speech rate {RATE_RANGE[0]}-{RATE_RANGE[1]}, 0.5 is normal (default: 0.5)",
    )
    prosody.add_argument(
        "--pitch",
        type=float,
        default=1.0,
        metavar="FLOAT",
        help=f"Pitch multiplier {PITCH_RANGE[0]}-{PITCH_RANGE[1]} (default: 1.0)",
    )
    prosody.add_argument(
        "--volume",
        type=float,
        default=1.0,
        metavar="FLOAT",
        help=f"Volume {VOLUME_RANGE[0]}-{VOLUME_RANGE[1]} (default: 1.0)",
    )

    # -- Content -----------------------------------------------------------
    content = p.add_argument_group("content")
    content.add_argument(
        "--raw-text",
        action="store_true",
        help="Speak page text as extracted, without speech cleanup",
    )
    content.add_argument(
        "--strip-references",
        action="store_true",
        help="Drop [N]-style citation markers",
    )

    # -- Output control ----------------------------------------------------
    output = p.add_argument_group("output")
    output.add_argument(
        "--show-text",
        action="store_true",
        help="Print each page's text as it is read",
    )
    output.add_argument(
        "--no-interactive",
        action="store_true",
        help="Read without a command prompt and exit when narration ends",
    )
    output.add_argument(
        "-v",
        "--verbose",
        type=int,
        choices=[0, 1, 2],
        default=1,
        help="Verbosity: 0=quiet, 1=normal (default), 2=debug",
    )

    return p


# ------------------------------------------------------------------
# Logging setup
# ------------------------------------------------------------------


def _configure_logging(verbosity: int) -> None:
    """
    Set up the ``readaloud`` and ``reader_core`` loggers.

    At verbosity 0 (WARNING), uses a minimal format. At 2 (DEBUG),
    includes timestamps, thread and module names, since engine and
    backend run on separate threads.
    """
    level = _VERBOSITY_MAP.get(verbosity, logging.INFO)

    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(threadName)s %(name)s %(levelname)s: %(message)s"
        datefmt = "%H:%M:%S"
    elif level <= logging.INFO:
        fmt = "%(message)s"
        datefmt = None
    else:
        fmt = "%(levelname)s: %(message)s"
        datefmt = None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    for name in ("readaloud", "reader_core"):
        root = logging.getLogger(name)
        root.setLevel(level)
        root.handlers.clear()
        root.addHandler(handler)
        root.propagate = False

    # Suppress noisy third-party loggers regardless of verbosity
    for name in ("kokoro", "piper", "phonemizer", "urllib3", "pydub"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ------------------------------------------------------------------
# Sub-commands
# ------------------------------------------------------------------


def _cmd_list_voices(args: argparse.Namespace) -> None:
    """Print the engine's voices, marking the automatic choice, then exit."""
    engine = create_tts_engine(args.engine, voice_dir=args.voice_dir)
    voices = engine.list_voices()
    chosen = select_voice(voices, args.lang)

    print(f"Voices for {engine.engine_name}:")
    print()
    print(f"  {'ID':<32} {'LANGUAGE':<10} NAME")
    print(f"  {'-' * 32} {'-' * 10} {'-' * 12}")
    for voice in voices:
        mark = "*" if voice == chosen else " "
        print(f"{mark} {voice.id:<32} {voice.language_tag:<10} {voice.display_name}")
    print()
    print(f"* automatic choice for --lang {','.join(args.lang)}")
    print("Use --voice ID to select.")


# ------------------------------------------------------------------
# Session monitor
# ------------------------------------------------------------------


class _SessionMonitor:
    """Prints progress and signals when narration becomes idle."""

    def __init__(self, show_text: bool):
        self.show_text = show_text
        self.reader: Optional[DocumentReader] = None
        self.idle = threading.Event()
        self.idle.set()

    def callbacks(self) -> NarrationCallbacks:
        return NarrationCallbacks(
            on_state_changed=self._on_state,
            on_page_changed=self._on_page,
            on_voice_changed=self._on_voice,
            on_utterance=self._on_utterance,
            on_error=self._on_error,
        )

    def _on_state(self, state: PlaybackState) -> None:
        if state is PlaybackState.IDLE:
            self.idle.set()
        else:
            self.idle.clear()
        logger.debug("[%s]", state.value)

    def _on_page(self, index: int) -> None:
        if self.reader is not None:
            logger.info("Page %d/%d", index + 1, self.reader.engine.page_count)

    def _on_voice(self, voice) -> None:
        logger.info("Voice: %s", voice or "backend default")

    def _on_utterance(self, utterance) -> None:
        if self.show_text and utterance.page_index is not None:
            print(f"\n--- page {utterance.page_index + 1} ---\n{utterance.text}\n")

    def _on_error(self, error: Exception) -> None:
        logger.error("Narration error: %s", error)


# ------------------------------------------------------------------
# Interactive loop
# ------------------------------------------------------------------


def _run_command(reader: DocumentReader, line: str) -> bool:
    """
    Execute one interactive command.

    Returns:
        ``False`` when the user asked to quit.
    """
    engine = reader.engine
    cmd, _, arg = line.strip().partition(" ")
    arg = arg.strip()

    if cmd == "q":
        return False
    if cmd == "p":
        engine.toggle_pause()
    elif cmd == "s":
        engine.stop()
    elif cmd == "r":
        engine.start()
    elif cmd == "n":
        engine.seek(engine.current_page_index + 1)
    elif cmd == "b":
        engine.seek(engine.current_page_index - 1)
    elif cmd == "g":
        try:
            engine.seek(int(arg) - 1)
        except ValueError:
            print("Usage: g N")
    elif cmd == "v":
        try:
            engine.select_voice(None if arg in ("", "auto") else arg)
        except UnknownVoiceError as e:
            print(e)
    elif cmd in ("+", "-"):
        step = _RATE_STEP if cmd == "+" else -_RATE_STEP
        config = engine.set_config(rate=engine.config.rate + step)
        print(f"Rate: {config.rate:.1f} ({config.speed_factor:.2f}x)")
    elif cmd == "t":
        engine.speak_sample(_SAMPLE_SENTENCE)
    elif cmd:
        print("Commands: p s r n b g N v ID + - t q")
    return True


def _interactive(reader: DocumentReader) -> None:
    print("Commands: p pause/resume, s stop, r read, n/b next/prev, g N goto, "
          "v ID voice, +/- rate, t test, q quit")
    for line in sys.stdin:
        try:
            if not _run_command(reader, line):
                break
        except NarrationError as e:
            print(f"Error: {e}")


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def main():
    """Parse arguments, configure logging, and run the reader."""
    parser = _build_parser()
    args = parser.parse_args()

    # Logging must be configured before any logger calls
    _configure_logging(args.verbose)

    # --list-voices exits early
    if args.list_voices:
        _cmd_list_voices(args)
        return

    if args.input is None:
        parser.error("An input file is required unless using --list-voices.")
    input_path = Path(args.input)
    if not input_path.exists():
        parser.error(f"Input file not found: {input_path}")

    config = ReaderConfig(
        engine=args.engine,
        voice_dir=args.voice_dir,
        preferred_languages=args.lang,
        clean_text=not args.raw_text,
        strip_references=args.strip_references,
    )
    playback = PlaybackConfig(
        rate=args.rate,
        pitch=args.pitch,
        volume=args.volume,
        voice_id=args.voice,
    )
    monitor = _SessionMonitor(show_text=args.show_text)

    # Log run header
    logger.info("PageVoice reader")
    logger.info("  Input:  %s", input_path)
    logger.info("  Engine: %s", config.engine)
    logger.info("  Rate:   %.2f  Pitch: %.2f  Volume: %.2f", playback.rate, playback.pitch, playback.volume)

    try:
        reader = DocumentReader(config, playback=playback, callbacks=monitor.callbacks())
    except (ImportError, NarrationError) as e:
        logger.error("Cannot start the reader: %s", e)
        sys.exit(1)

    monitor.reader = reader
    with reader:
        try:
            reader.open(input_path)
        except (RuntimeError, ValueError) as e:
            logger.error("Cannot open %s: %s", input_path, e)
            sys.exit(1)

        try:
            if args.single:
                reader.engine.read_page(args.page)
            else:
                reader.engine.start(args.page)
        except NarrationError as e:
            logger.error("Cannot start narration: %s", e)
            sys.exit(1)

        if args.no_interactive:
            try:
                monitor.idle.wait()
            except KeyboardInterrupt:
                reader.engine.stop()
        else:
            _interactive(reader)


if __name__ == "__main__":
    main()
